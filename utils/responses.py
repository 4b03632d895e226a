"""
Render ORM objects in the negotiated representation.

Routers hand over the object(s) and the media type chosen by
``utils.negotiation.get_media_type``; plain JSON uses the ``*Read`` models with
their ``links`` array, HAL and JSON:API go through ``ResourceView``.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from models.hateoas import HATEOASLink
from utils.hal import hal_collection, hal_resource
from utils.hateoas import hateoas_customer, hateoas_order, hateoas_order_item, hateoas_product
from utils.jsonapi import jsonapi_collection, jsonapi_document
from utils.negotiation import MediaType, vary_on_accept
from utils.pagination import Page
from utils.resources import (
    CUSTOMERS,
    ORDER_ITEMS,
    ORDERS,
    PRODUCTS,
    ResourceView,
    customer_view,
    order_item_view,
    order_view,
    parse_include,
    product_view,
)


class HALResponse(JSONResponse):
    media_type = MediaType.HAL.value


class JSONAPIResponse(JSONResponse):
    media_type = MediaType.JSONAPI.value


RESPONSE_CLASSES = {
    MediaType.JSON: JSONResponse,
    MediaType.HAL: HALResponse,
    MediaType.JSONAPI: JSONAPIResponse,
}

# resource type -> (plain read model builder, view builder, HAL embedded key)
RENDERERS: Dict[str, Tuple[Callable[..., Any], Callable[..., ResourceView], str]] = {
    CUSTOMERS: (hateoas_customer, customer_view, "customers"),
    PRODUCTS: (hateoas_product, product_view, "products"),
    ORDERS: (hateoas_order, order_view, "orders"),
    ORDER_ITEMS: (hateoas_order_item, order_item_view, "items"),
}


def make_response(
    media_type: MediaType,
    content: Any,
    status_code: int = 200,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    response = RESPONSE_CLASSES[media_type](
        content=jsonable_encoder(content),
        status_code=status_code,
        headers=dict(headers or {}),
    )
    vary_on_accept(response)
    return response


def requested_paths(
    media_type: MediaType,
    resource_type: str,
    include: Optional[str] = None,
    embed: Optional[str] = None,
) -> frozenset:
    """`include` applies to JSON:API, `embed` to HAL; plain JSON embeds nothing."""
    if media_type == MediaType.JSONAPI:
        return parse_include(include, resource_type)
    if media_type == MediaType.HAL:
        return parse_include(embed, resource_type)
    return frozenset()


def render_resource(
    request: Request,
    media_type: MediaType,
    resource_type: str,
    obj: Any,
    paths: frozenset = frozenset(),
    status_code: int = 200,
    headers: Optional[Mapping[str, str]] = None,
    **view_kwargs: Any,
) -> JSONResponse:
    plain_fn, view_fn, _ = RENDERERS[resource_type]

    if media_type == MediaType.JSON:
        content: Any = plain_fn(request, obj)
    else:
        view = view_fn(request, obj, **view_kwargs)
        if media_type == MediaType.HAL:
            content = hal_resource(view, paths)
        else:
            content = jsonapi_document(view, view.self_href, paths)

    return make_response(media_type, content, status_code, headers)


def render_collection(
    request: Request,
    media_type: MediaType,
    resource_type: str,
    objs: Sequence[Any],
    links: List[HATEOASLink],
    page: Optional[Page] = None,
    paths: frozenset = frozenset(),
    **view_kwargs: Any,
) -> JSONResponse:
    plain_fn, view_fn, key = RENDERERS[resource_type]

    if media_type == MediaType.JSON:
        content: Dict[str, Any] = {"data": [plain_fn(request, obj) for obj in objs]}
        if page is not None:
            content.update(
                page=page.page,
                size=page.size,
                total=page.total,
                total_pages=page.total_pages,
                has_next=page.has_next,
            )
        content["links"] = links
    else:
        views = [view_fn(request, obj, **view_kwargs) for obj in objs]
        if media_type == MediaType.HAL:
            content = hal_collection(key, views, links, page, paths)
        else:
            content = jsonapi_collection(views, links, page, paths)

    return make_response(media_type, content)
