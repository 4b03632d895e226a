"""
Content negotiation between plain JSON, HAL and JSON:API.

The representation is picked from the request's ``Accept`` header using
quality values. JSON:API adds two rules of its own: an ``Accept`` header
whose JSON:API entries all carry parameters other than ``ext``/``profile``
must be answered with 406, and a request body sent with such parameters in
``Content-Type`` must be answered with 415.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from fastapi import HTTPException, Request, Response, status


class MediaType(str, Enum):
    JSON = "application/json"
    HAL = "application/hal+json"
    JSONAPI = "application/vnd.api+json"


SUPPORTED = [MediaType.JSON, MediaType.HAL, MediaType.JSONAPI]
JSONAPI_ALLOWED_PARAMS = {"ext", "profile"}


@dataclass
class AcceptEntry:
    type: str
    params: Dict[str, str] = field(default_factory=dict)
    q: float = 1.0
    position: int = 0

    def matches(self, media_type: MediaType) -> bool:
        main, _, sub = media_type.value.partition("/")
        want_main, _, want_sub = self.type.partition("/")
        if want_main == "*":
            return True
        return want_main == main and want_sub in ("*", sub)


def parse_media_type(value: str) -> tuple[str, Dict[str, str]]:
    """Split `type/subtype; a=b` into ("type/subtype", {"a": "b"})."""
    parts = [p.strip() for p in value.split(";")]
    params: Dict[str, str] = {}
    for part in parts[1:]:
        if not part:
            continue
        key, _, val = part.partition("=")
        params[key.strip().lower()] = val.strip().strip('"')
    return parts[0].lower(), params


def parse_accept(header: Optional[str]) -> List[AcceptEntry]:
    """Parse an Accept header into entries; malformed q values count as q=0."""
    if not header or not header.strip():
        return [AcceptEntry(type="*/*")]

    entries: List[AcceptEntry] = []
    for position, raw in enumerate(header.split(",")):
        if not raw.strip():
            continue
        media_type, params = parse_media_type(raw)
        q_raw = params.pop("q", "1")
        try:
            q = float(q_raw)
        except ValueError:
            q = 0.0
        entries.append(AcceptEntry(type=media_type, params=params, q=max(0.0, min(q, 1.0)), position=position))
    return entries


def has_illegal_jsonapi_params(params: Dict[str, str]) -> bool:
    return any(key not in JSONAPI_ALLOWED_PARAMS for key in params)


def negotiate(accept: Optional[str]) -> Optional[MediaType]:
    """
    Return the best supported media type for an Accept header, or None when
    nothing acceptable is offered.
    """
    entries = parse_accept(accept)

    jsonapi_entries = [e for e in entries if e.type == MediaType.JSONAPI.value]
    if jsonapi_entries and all(has_illegal_jsonapi_params(e.params) for e in jsonapi_entries):
        return None

    best: Optional[MediaType] = None
    best_key: tuple = ()
    for media_type in SUPPORTED:
        candidates = [e for e in entries if e.matches(media_type)]
        if media_type == MediaType.JSONAPI:
            candidates = [
                e for e in candidates
                if e.type != MediaType.JSONAPI.value or not has_illegal_jsonapi_params(e.params)
            ]
        if not candidates:
            continue

        # Most specific entry decides the q value for this media type
        entry = max(candidates, key=lambda e: (e.type.count("*") == 0, e.type != "*/*", -e.position))
        if entry.q <= 0:
            continue

        # Higher q first, then exact matches over wildcards, then header order,
        # then our preference order (SUPPORTED) for wildcard ties
        key = (entry.q, entry.type != "*/*" and "*" not in entry.type, -entry.position)
        if best is None or key > best_key:
            best, best_key = media_type, key
    return best


# -----------------------------------------------------------------------------
# FastAPI dependencies
# -----------------------------------------------------------------------------
def get_media_type(request: Request) -> MediaType:
    """Negotiate the response representation; 406 when nothing fits."""
    media_type = negotiate(request.headers.get("accept"))
    if media_type is None:
        raise HTTPException(
            status_code=status.HTTP_406_NOT_ACCEPTABLE,
            detail=f"Supported media types: {', '.join(m.value for m in SUPPORTED)}",
        )
    request.state.media_type = media_type
    return media_type


def check_content_type(request: Request) -> None:
    """Reject JSON:API request bodies sent with unsupported media type parameters."""
    content_type = request.headers.get("content-type")
    if not content_type:
        return
    media_type, params = parse_media_type(content_type)
    if media_type == MediaType.JSONAPI.value and has_illegal_jsonapi_params(params):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="JSON:API media type parameters other than 'ext' and 'profile' are not supported",
        )


def media_type_for_errors(request: Request) -> MediaType:
    """Best-effort representation for error bodies; never raises."""
    media_type = getattr(request.state, "media_type", None)
    if media_type is not None:
        return media_type
    return negotiate(request.headers.get("accept")) or MediaType.JSON


def vary_on_accept(response: Response) -> None:
    """Add `Accept` to the response's Vary header, keeping what is already there."""
    existing = [v.strip() for v in response.headers.get("vary", "").split(",") if v.strip()]
    if "accept" not in {v.lower() for v in existing} and "*" not in existing:
        existing.append("Accept")
    response.headers["Vary"] = ", ".join(existing)
