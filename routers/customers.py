import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from models.customer import (
    Customer,
    CustomerCreate,
    CustomerPaginated,
    CustomerRead,
    CustomerUpdate,
)
from models.order import Order, OrderPaginated, OrderStatus
from services.database import get_db
from utils.etag import conditional_get, representation_variant, set_etag_headers
from utils.jsonapi import parse_body
from utils.negotiation import MediaType, check_content_type, get_media_type
from utils.pagination import build_page_links, paginate
from utils.resources import CUSTOMERS, ORDERS
from utils.responses import render_collection, render_resource, requested_paths

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/customers",
    tags=["Customers"],
)


async def get_customer_or_404(db: AsyncSession, customer_id: UUID) -> Customer:
    result = await db.execute(select(Customer).where(Customer.id == customer_id))
    customer = result.scalar_one_or_none()
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


# -----------------------------------------------------------------------------
# POST/PATCH Endpoints
# -----------------------------------------------------------------------------

@router.post(
    "/",
    response_model=CustomerRead,
    status_code=201,
    name="create_customer",
    dependencies=[Depends(check_content_type)],
)
async def create_customer(
    request: Request,
    payload: Dict[str, Any] = Body(..., description="Customer attributes or a JSON:API document"),
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
):
    customer_req = parse_body(CustomerCreate, payload, CUSTOMERS)

    customer = Customer(name=customer_req.name, email=customer_req.email)
    db.add(customer)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A customer with email {customer_req.email} already exists",
        )
    await db.refresh(customer)
    logger.info("Created customer %s", customer.id)

    location = str(request.url_for("get_customer", customer_id=customer.id))
    return render_resource(request, media_type, CUSTOMERS, customer, status_code=201, headers={"Location": location})


# PATCH Customer update
@router.patch(
    "/{customer_id}",
    response_model=CustomerRead,
    status_code=200,
    name="update_customer",
    dependencies=[Depends(check_content_type)],
)
async def update_customer(
    request: Request,
    customer_id: UUID,
    payload: Dict[str, Any] = Body(..., description="Changed attributes or a JSON:API document"),
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
):
    """Updates the details of a customer"""
    customer_update = parse_body(CustomerUpdate, payload, CUSTOMERS, str(customer_id))
    customer = await get_customer_or_404(db, customer_id)

    update_data = customer_update.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields provided for update",
        )

    for field, value in update_data.items():
        setattr(customer, field, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A customer with email {update_data.get('email')} already exists",
        )
    await db.refresh(customer)

    return render_resource(request, media_type, CUSTOMERS, customer)


# -----------------------------------------------------------------------------
# GET Endpoints
# -----------------------------------------------------------------------------

@router.get("/", response_model=CustomerPaginated, status_code=200, name="list_customers")
async def list_customers(
    request: Request,
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
    # Pagination
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Page size"),
    # Filters
    email: Optional[str] = Query(None, description="Filter by email (partial match)"),
    search: Optional[str] = Query(None, description="Free-text search in name and email"),
):
    """List customers with filtering and pagination."""
    query = select(Customer)

    if email:
        query = query.where(Customer.email.ilike(f"%{email}%"))

    if search:
        like_pattern = f"%{search}%"
        query = query.where(
            or_(
                Customer.name.ilike(like_pattern),
                Customer.email.ilike(like_pattern),
            )
        )

    query = query.order_by(Customer.created_at.asc(), Customer.id.asc())
    result_page = await paginate(db, query, page, size)

    return render_collection(
        request, media_type, CUSTOMERS, result_page.items, build_page_links(request, result_page), result_page,
    )


# GET Customer specific (eTAG support)
@router.get("/{customer_id}", response_model=CustomerRead, status_code=200, name="get_customer")
async def get_customer(
    request: Request,
    customer_id: UUID,
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
):
    """Get information about a specific customer"""
    customer = await get_customer_or_404(db, customer_id)

    etag, not_modified = conditional_get(request, customer, representation_variant(media_type))
    if not_modified is not None:
        return not_modified

    response = render_resource(request, media_type, CUSTOMERS, customer)
    set_etag_headers(response, etag)
    return response


# GET a customer's orders
@router.get("/{customer_id}/orders", response_model=OrderPaginated, status_code=200, name="list_customer_orders")
async def list_customer_orders(
    request: Request,
    customer_id: UUID,
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Page size"),
    order_status: Optional[OrderStatus] = Query(None, alias="status", description="Filter by order status"),
    include: Optional[str] = Query(None, description="JSON:API include paths (items, customer, items.product)"),
    embed: Optional[str] = Query(None, description="HAL embed paths (customer, items.product)"),
):
    await get_customer_or_404(db, customer_id)
    paths = requested_paths(media_type, ORDERS, include, embed)

    query = select(Order).where(Order.customer_id == customer_id)
    if order_status is not None:
        query = query.where(Order.status == order_status)
    query = query.order_by(Order.created_at.desc(), Order.id.asc())

    result_page = await paginate(db, query, page, size)
    return render_collection(
        request, media_type, ORDERS, result_page.items, build_page_links(request, result_page), result_page, paths,
    )


# -----------------------------------------------------------------------------
# DELETE Endpoints
# -----------------------------------------------------------------------------

@router.delete("/{customer_id}", status_code=204, name="delete_customer")
async def delete_customer(
    customer_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    customer = await get_customer_or_404(db, customer_id)

    await db.delete(customer)
    await db.commit()
    logger.info("Deleted customer %s", customer_id)
    return Response(status_code=204)
