"""
HAL (application/hal+json) documents.

    {
        "id": "...", "status": "pending", ...,
        "_links": {"self": {"href": "..."}, "items": {"href": "..."}},
        "_embedded": {"items": [ ... ]}
    }

Non-GET links carry a ``method`` attribute so clients can tell actions
(``pay``, ``cancel``, ...) from navigation.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

from models.hateoas import HATEOASLink
from utils.pagination import Page
from utils.resources import ResourceView

TEMPLATE_PATTERN = re.compile(r"\{[^}]+\}")

# Relations embedded for every representation of a resource type
DEFAULT_EMBEDS: Dict[str, frozenset] = {
    "orders": frozenset({"items"}),
}


def hal_link(link: HATEOASLink) -> Dict[str, Any]:
    obj: Dict[str, Any] = {"href": link.href}
    if TEMPLATE_PATTERN.search(link.href):
        obj["templated"] = True
    if link.method != "GET":
        obj["method"] = link.method
    if link.title:
        obj["title"] = link.title
    return obj


def hal_links(links: Iterable[HATEOASLink]) -> Dict[str, Any]:
    """Group links by rel; a rel used more than once becomes an array. `self` goes first."""
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for link in sorted(links, key=lambda l: l.rel != "self"):
        grouped.setdefault(link.rel, []).append(hal_link(link))
    return {rel: objs[0] if len(objs) == 1 else objs for rel, objs in grouped.items()}


def _nested(paths: Iterable[str], name: str) -> frozenset:
    prefix = name + "."
    return frozenset(p[len(prefix):] for p in paths if p.startswith(prefix))


def hal_resource(view: ResourceView, embed: Iterable[str] = ()) -> Dict[str, Any]:
    """
    Render one resource. `embed` holds dotted relationship paths
    (e.g. "customer", "items.product") to place under `_embedded`.
    """
    embed = frozenset(embed)
    document: Dict[str, Any] = {"id": view.id, **view.attributes}
    document["_links"] = hal_links(view.links)

    names = DEFAULT_EMBEDS.get(view.type, frozenset()) | {p.split(".", 1)[0] for p in embed}
    embedded: Dict[str, Any] = {}
    for name in sorted(names):
        relationship = view.relationships.get(name)
        if relationship is None or relationship.resources is None:
            continue
        children = [hal_resource(child, _nested(embed, name)) for child in relationship.resources]
        if relationship.many:
            embedded[name] = children
        elif children:
            embedded[name] = children[0]
    if embedded:
        document["_embedded"] = embedded
    return document


def hal_collection(
    key: str,
    views: List[ResourceView],
    links: List[HATEOASLink],
    page: Optional[Page] = None,
    embed: Iterable[str] = (),
) -> Dict[str, Any]:
    document: Dict[str, Any] = {
        "_links": hal_links(links),
        "_embedded": {key: [hal_resource(v, embed) for v in views]},
    }
    if page is not None:
        document.update(
            page=page.page,
            size=page.size,
            total=page.total,
            total_pages=page.total_pages,
        )
    else:
        document["total"] = len(views)
    return document


def hal_error(status_code: int, message: Any, self_href: str) -> Dict[str, Any]:
    """vnd.error-style body used for HAL responses."""
    return {
        "message": message,
        "status": status_code,
        "_links": {"self": {"href": self_href}},
    }
