"""
JSON:API (application/vnd.api+json) documents.

Reference: https://jsonapi.org/format/
"""
from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from fastapi import HTTPException, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from config.settings import settings
from models.hateoas import HATEOASLink
from utils.pagination import Page
from utils.resources import ResourceView

ModelT = TypeVar("ModelT", bound=BaseModel)


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------
def jsonapi_links(links: Iterable[HATEOASLink]) -> Dict[str, Any]:
    """Top-level/pagination links: rel -> href string."""
    return {link.rel: link.href for link in links}


def jsonapi_resource(view: ResourceView) -> Dict[str, Any]:
    relationships: Dict[str, Any] = {}
    for name, relationship in view.relationships.items():
        rel_obj: Dict[str, Any] = {"links": {"related": relationship.related_href}}
        if relationship.ids is not None:
            rel_obj["data"] = relationship.linkage()
        relationships[name] = rel_obj

    # `self` as a string; actions as link objects with the HTTP method in meta
    links: Dict[str, Any] = {"self": view.self_href}
    for link in view.links:
        if link.rel == "self" or link.rel in view.relationships or link.rel in links:
            continue
        link_obj: Dict[str, Any] = {"href": link.href, "meta": {"method": link.method}}
        if link.title:
            link_obj["title"] = link.title
        links[link.rel] = link_obj

    resource: Dict[str, Any] = {
        "type": view.type,
        "id": view.id,
        "attributes": view.attributes,
    }
    if relationships:
        resource["relationships"] = relationships
    resource["links"] = links
    return resource


def collect_included(views: Iterable[ResourceView], include: Iterable[str]) -> List[Dict[str, Any]]:
    """
    Resolve dotted include paths against `views`. Each resource appears once,
    and never when it is already part of the primary data.
    """
    views = list(views)
    seen: set[Tuple[str, str]] = {(v.type, v.id) for v in views}
    included: List[Dict[str, Any]] = []

    for path in sorted(include):
        current = views
        for name in path.split("."):
            current = [child for view in current for child in view.related(name)]
            for child in current:
                key = (child.type, child.id)
                if key not in seen:
                    seen.add(key)
                    included.append(jsonapi_resource(child))
    return included


def _document(data: Any, self_href: str) -> Dict[str, Any]:
    return {
        "jsonapi": {"version": settings.JSONAPI_VERSION},
        "data": data,
        "links": {"self": self_href},
    }


def jsonapi_document(view: ResourceView, self_href: str, include: Iterable[str] = ()) -> Dict[str, Any]:
    document = _document(jsonapi_resource(view), self_href)
    include = list(include)
    if include:
        document["included"] = collect_included([view], include)
    return document


def jsonapi_collection(
    views: List[ResourceView],
    links: List[HATEOASLink],
    page: Optional[Page] = None,
    include: Iterable[str] = (),
) -> Dict[str, Any]:
    top_links = jsonapi_links(links)
    document = _document([jsonapi_resource(v) for v in views], top_links.get("self", ""))
    document["links"] = top_links
    include = list(include)
    if include:
        document["included"] = collect_included(views, include)
    if page is not None:
        document["meta"] = {
            "page": page.page,
            "size": page.size,
            "total": page.total,
            "total_pages": page.total_pages,
        }
    else:
        document["meta"] = {"total": len(views)}
    return document


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------
def jsonapi_error(status_code: int, detail: Any, source: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    try:
        title = HTTPStatus(status_code).phrase
    except ValueError:
        title = "Error"
    error: Dict[str, Any] = {"status": str(status_code), "title": title}
    if detail is not None:
        error["detail"] = detail if isinstance(detail, str) else str(detail)
    if source:
        error["source"] = source
    return error


def validation_source(loc: Tuple[Any, ...]) -> Dict[str, str]:
    """Map a FastAPI error location to a JSON:API error source."""
    if not loc:
        return {}
    where, rest = loc[0], [str(part) for part in loc[1:]]
    if where == "body":
        # Attributes of a JSON:API document live under /data/attributes
        if rest[:2] == ["data", "attributes"] or rest[:1] == ["data"]:
            return {"pointer": "/" + "/".join(rest)}
        return {"pointer": "/data/attributes/" + "/".join(rest) if rest else "/data"}
    if where in ("query", "path", "header"):
        return {"parameter": rest[0]} if rest else {}
    return {}


def jsonapi_validation_errors(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        jsonapi_error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            error.get("msg"),
            validation_source(tuple(error.get("loc", ()))),
        )
        for error in errors
    ]


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------
def unwrap_request(
    payload: Any,
    resource_type: str,
    resource_id: Optional[str] = None,
) -> Tuple[Dict[str, Any], bool]:
    """
    Accept either a plain attributes object or a JSON:API document
    ``{"data": {"type", "id"?, "attributes", "relationships"?}}``.

    Returns (attributes, is_document). To-one relationships are folded into
    the attributes as ``<name>_id``.
    """
    if not isinstance(payload, dict):
        raise RequestValidationError(
            [{"type": "dict_type", "loc": ("body",), "msg": "Request body must be an object", "input": payload}]
        )

    data = payload.get("data")
    if not isinstance(data, dict) or "type" not in data:
        return payload, False

    if data["type"] != resource_type:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Resource type '{data['type']}' does not match '{resource_type}'",
        )
    if resource_id is not None and "id" in data and str(data["id"]) != resource_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Resource id '{data['id']}' does not match the URL",
        )

    attributes = dict(data.get("attributes") or {})
    for name, relationship in (data.get("relationships") or {}).items():
        linkage = relationship.get("data") if isinstance(relationship, dict) else None
        if isinstance(linkage, dict) and "id" in linkage:
            attributes[f"{name}_id"] = linkage["id"]
    return attributes, True


def parse_body(
    model_cls: Type[ModelT],
    payload: Any,
    resource_type: str,
    resource_id: Optional[str] = None,
) -> ModelT:
    """Validate a plain or JSON:API request body against `model_cls`."""
    attributes, is_document = unwrap_request(payload, resource_type, resource_id)
    try:
        return model_cls.model_validate(attributes)
    except ValidationError as exc:
        prefix: Tuple[str, ...] = ("body", "data", "attributes") if is_document else ("body",)
        raise RequestValidationError(
            [{**error, "loc": prefix + tuple(error["loc"])} for error in exc.errors(include_url=False, include_context=False)]
        )
