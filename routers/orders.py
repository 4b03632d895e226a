import logging
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from models.customer import Customer
from models.order import (
    Order,
    OrderCreate,
    OrderItemCreate,
    OrderItemList,
    OrderItemRead,
    OrderItemUpdate,
    OrderPaginated,
    OrderRead,
    OrderStatus,
    OrderUpdate,
)
from models.hateoas import HATEOASLink
from models.product import Product
from services.database import get_db
from services.orders import (
    OrderInputError,
    OrderStateError,
    add_item,
    change_item_quantity,
    find_item,
    load_order,
    remove_item,
    transition_order,
)
from utils.etag import conditional_get, related_rows, representation_variant, set_etag_headers
from utils.jsonapi import parse_body
from utils.negotiation import MediaType, check_content_type, get_media_type
from utils.pagination import build_page_links, paginate
from utils.resources import ORDER_ITEMS, ORDERS
from utils.responses import render_collection, render_resource, requested_paths

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
)


async def get_order_or_404(db: AsyncSession, order_id: UUID) -> Order:
    order = await load_order(db, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


async def get_product_or_400(db: AsyncSession, product_id: UUID) -> Product:
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalar_one_or_none()
    if product is None:
        raise HTTPException(status_code=400, detail=f"Unknown product {product_id}")
    return product


def domain_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, OrderStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


# -----------------------------------------------------------------------------
# POST/PATCH Endpoints
# -----------------------------------------------------------------------------

@router.post(
    "/",
    response_model=OrderRead,
    status_code=201,
    name="create_order",
    dependencies=[Depends(check_content_type)],
)
async def create_order(
    request: Request,
    payload: Dict[str, Any] = Body(..., description="Order attributes or a JSON:API document"),
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
):
    """Create an order for an existing customer, optionally with initial items"""
    order_req = parse_body(OrderCreate, payload, ORDERS)

    result = await db.execute(select(Customer).where(Customer.id == order_req.customer_id))
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Customer not found")

    order = Order(
        customer_id=order_req.customer_id,
        status=OrderStatus.PENDING,
        currency=order_req.currency or settings.DEFAULT_CURRENCY,
        notes=order_req.notes,
    )

    for item_req in order_req.items:
        product = await get_product_or_400(db, item_req.product_id)
        try:
            add_item(order, product, item_req.quantity)
        except (OrderStateError, OrderInputError) as exc:
            raise domain_http_error(exc)

    db.add(order)
    await db.commit()
    logger.info("Created order %s for customer %s", order.id, order.customer_id)

    order = await get_order_or_404(db, order.id)
    location = str(request.url_for("get_order", order_id=order.id))
    return render_resource(request, media_type, ORDERS, order, status_code=201, headers={"Location": location})


@router.patch(
    "/{order_id}",
    response_model=OrderRead,
    status_code=200,
    name="update_order",
    dependencies=[Depends(check_content_type)],
)
async def update_order(
    request: Request,
    order_id: UUID,
    payload: Dict[str, Any] = Body(..., description="Status and/or notes, plain or as a JSON:API document"),
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
):
    """Change an order's notes and/or move it through its lifecycle"""
    order_update = parse_body(OrderUpdate, payload, ORDERS, str(order_id))
    order = await get_order_or_404(db, order_id)

    update_data = order_update.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields provided for update",
        )

    if order_update.status is not None:
        try:
            transition_order(order, order_update.status)
        except OrderStateError as exc:
            raise domain_http_error(exc)

    if "notes" in update_data:
        order.notes = order_update.notes

    await db.commit()
    order = await get_order_or_404(db, order_id)

    return render_resource(request, media_type, ORDERS, order)


# -----------------------------------------------------------------------------
# GET Endpoints
# -----------------------------------------------------------------------------

@router.get("/", response_model=OrderPaginated, status_code=200, name="list_orders")
async def list_orders(
    request: Request,
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
    # Pagination
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Page size"),
    # Filters
    customer_id: Optional[UUID] = Query(None, description="Filter by customer id"),
    order_status: Optional[OrderStatus] = Query(None, alias="status", description="Filter by order status"),
    created_from: Optional[datetime] = Query(None, description="Filter orders created on/after this datetime (ISO8601)"),
    created_to: Optional[datetime] = Query(None, description="Filter orders created on/before this datetime (ISO8601)"),
    # Hypermedia
    include: Optional[str] = Query(None, description="JSON:API include paths (items, customer, items.product)"),
    embed: Optional[str] = Query(None, description="HAL embed paths (customer, items.product)"),
):
    """List orders with filtering and pagination."""
    paths = requested_paths(media_type, ORDERS, include, embed)

    query = select(Order)

    if customer_id is not None:
        query = query.where(Order.customer_id == customer_id)

    if order_status is not None:
        query = query.where(Order.status == order_status)

    if created_from is not None:
        query = query.where(Order.created_at >= created_from)

    if created_to is not None:
        query = query.where(Order.created_at <= created_to)

    query = query.order_by(Order.created_at.desc(), Order.id.asc())
    result_page = await paginate(db, query, page, size)

    return render_collection(
        request, media_type, ORDERS, result_page.items, build_page_links(request, result_page), result_page, paths,
    )


# GET Order specific (eTAG support)
@router.get("/{order_id}", response_model=OrderRead, status_code=200, name="get_order")
async def get_order(
    request: Request,
    order_id: UUID,
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
    include: Optional[str] = Query(None, description="JSON:API include paths (items, customer, items.product)"),
    embed: Optional[str] = Query(None, description="HAL embed paths (customer, items.product)"),
):
    paths = requested_paths(media_type, ORDERS, include, embed)
    order = await get_order_or_404(db, order_id)

    etag, not_modified = conditional_get(
        request, order, representation_variant(media_type, paths), related_rows(order, paths),
    )
    if not_modified is not None:
        return not_modified

    response = render_resource(request, media_type, ORDERS, order, paths)
    set_etag_headers(response, etag)
    return response


# -----------------------------------------------------------------------------
# DELETE Endpoints
# -----------------------------------------------------------------------------

@router.delete("/{order_id}", status_code=204, name="delete_order")
async def delete_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    order = await get_order_or_404(db, order_id)

    await db.delete(order)
    await db.commit()
    logger.info("Deleted order %s", order_id)
    return Response(status_code=204)


# -----------------------------------------------------------------------------
# Order item Endpoints
# -----------------------------------------------------------------------------

@router.get("/{order_id}/items", response_model=OrderItemList, status_code=200, name="list_order_items")
async def list_order_items(
    request: Request,
    order_id: UUID,
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
    include: Optional[str] = Query(None, description="JSON:API include paths (product, order)"),
    embed: Optional[str] = Query(None, description="HAL embed paths (product, order)"),
):
    paths = requested_paths(media_type, ORDER_ITEMS, include, embed)
    order = await get_order_or_404(db, order_id)

    links = [
        HATEOASLink(rel="self", href=str(request.url_for("list_order_items", order_id=order.id)), method="GET"),
        HATEOASLink(rel="order", href=str(request.url_for("get_order", order_id=order.id)), method="GET"),
    ]
    return render_collection(request, media_type, ORDER_ITEMS, order.items, links, paths=paths, order=order)


@router.post(
    "/{order_id}/items",
    response_model=OrderItemRead,
    status_code=201,
    name="add_order_item",
    dependencies=[Depends(check_content_type)],
)
async def add_order_item(
    request: Request,
    order_id: UUID,
    payload: Dict[str, Any] = Body(..., description="product_id and quantity, plain or as a JSON:API document"),
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
):
    """Add a product to a pending order; a product already on the order has its quantity increased"""
    item_req = parse_body(OrderItemCreate, payload, ORDER_ITEMS)
    order = await get_order_or_404(db, order_id)
    product = await get_product_or_400(db, item_req.product_id)

    is_new = not any(existing.product_id == product.id for existing in order.items)
    try:
        item = add_item(order, product, item_req.quantity)
    except (OrderStateError, OrderInputError) as exc:
        raise domain_http_error(exc)

    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request added the same product first: merge into its item
        await db.rollback()
        logger.info("Order %s already has product %s, merging quantities", order_id, item_req.product_id)
        order = await get_order_or_404(db, order_id)
        product = await get_product_or_400(db, item_req.product_id)
        is_new = False
        try:
            item = add_item(order, product, item_req.quantity)
        except (OrderStateError, OrderInputError) as exc:
            raise domain_http_error(exc)
        await db.commit()
    item_id = item.id

    order = await get_order_or_404(db, order_id)
    item = find_item(order, item_id)
    location = str(request.url_for("get_order_item", order_id=order_id, item_id=item_id))
    return render_resource(
        request, media_type, ORDER_ITEMS, item,
        status_code=201 if is_new else 200,
        headers={"Location": location},
        order=order,
    )


@router.get("/{order_id}/items/{item_id}", response_model=OrderItemRead, status_code=200, name="get_order_item")
async def get_order_item(
    request: Request,
    order_id: UUID,
    item_id: UUID,
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
    include: Optional[str] = Query(None, description="JSON:API include paths (product, order)"),
    embed: Optional[str] = Query(None, description="HAL embed paths (product, order)"),
):
    paths = requested_paths(media_type, ORDER_ITEMS, include, embed)
    order = await get_order_or_404(db, order_id)
    item = find_item(order, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Order item not found")

    etag, not_modified = conditional_get(
        request, item, representation_variant(media_type, paths), related_rows(item, paths, order=order),
    )
    if not_modified is not None:
        return not_modified

    response = render_resource(request, media_type, ORDER_ITEMS, item, paths, order=order)
    set_etag_headers(response, etag)
    return response


@router.patch(
    "/{order_id}/items/{item_id}",
    response_model=OrderItemRead,
    status_code=200,
    name="update_order_item",
    dependencies=[Depends(check_content_type)],
)
async def update_order_item(
    request: Request,
    order_id: UUID,
    item_id: UUID,
    payload: Dict[str, Any] = Body(..., description="New quantity, plain or as a JSON:API document"),
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
):
    item_update = parse_body(OrderItemUpdate, payload, ORDER_ITEMS, str(item_id))
    order = await get_order_or_404(db, order_id)
    item = find_item(order, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Order item not found")

    try:
        change_item_quantity(order, item, item_update.quantity)
    except OrderStateError as exc:
        raise domain_http_error(exc)

    await db.commit()
    order = await get_order_or_404(db, order_id)
    item = find_item(order, item_id)

    return render_resource(request, media_type, ORDER_ITEMS, item, order=order)


@router.delete("/{order_id}/items/{item_id}", status_code=204, name="delete_order_item")
async def delete_order_item(
    order_id: UUID,
    item_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    order = await get_order_or_404(db, order_id)
    item = find_item(order, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Order item not found")

    try:
        remove_item(order, item)
    except OrderStateError as exc:
        raise domain_http_error(exc)

    await db.commit()
    return Response(status_code=204)
