from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class Health(BaseModel):
    status: int = Field(..., description="HTTP status code of the service")
    status_message: str = Field(..., description="Human readable status")
    timestamp: str = Field(..., description="ISO-8601 timestamp (UTC)")
    ip_address: str = Field(..., description="IP address of the serving host")
    echo: Optional[str] = Field(None, description="Echoed query string value")
    path_echo: Optional[str] = Field(None, description="Echoed path value")
