from typing import Optional

from pydantic import BaseModel


class HATEOASLink(BaseModel):
    rel: str          # "self", "update", "delete", "pay", ...
    href: str           # absolute URL
    method: str       # "GET", "POST", "PATCH", "DELETE"
    title: Optional[str] = None
