import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from models.order import OrderItem
from models.product import (
    Product,
    ProductCreate,
    ProductPaginated,
    ProductRead,
    ProductUpdate,
)
from services.database import get_db
from utils.etag import conditional_get, representation_variant, set_etag_headers
from utils.jsonapi import parse_body
from utils.negotiation import MediaType, check_content_type, get_media_type
from utils.pagination import build_page_links, paginate
from utils.resources import PRODUCTS
from utils.responses import render_collection, render_resource

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/products",
    tags=["Products"],
)


async def get_product_or_404(db: AsyncSession, product_id: UUID) -> Product:
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalar_one_or_none()
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# -----------------------------------------------------------------------------
# POST/PATCH Endpoints
# -----------------------------------------------------------------------------

@router.post(
    "/",
    response_model=ProductRead,
    status_code=201,
    name="create_product",
    dependencies=[Depends(check_content_type)],
)
async def create_product(
    request: Request,
    payload: Dict[str, Any] = Body(..., description="Product attributes or a JSON:API document"),
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
):
    product_req = parse_body(ProductCreate, payload, PRODUCTS)

    product = Product(
        sku=product_req.sku,
        name=product_req.name,
        description=product_req.description,
        unit_price_cents=product_req.unit_price_cents,
        currency=product_req.currency or settings.DEFAULT_CURRENCY,
        is_active=product_req.is_active,
    )
    db.add(product)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A product with sku {product_req.sku} already exists",
        )
    await db.refresh(product)
    logger.info("Created product %s (%s)", product.id, product.sku)

    location = str(request.url_for("get_product", product_id=product.id))
    return render_resource(request, media_type, PRODUCTS, product, status_code=201, headers={"Location": location})


@router.patch(
    "/{product_id}",
    response_model=ProductRead,
    status_code=200,
    name="update_product",
    dependencies=[Depends(check_content_type)],
)
async def update_product(
    request: Request,
    product_id: UUID,
    payload: Dict[str, Any] = Body(..., description="Changed attributes or a JSON:API document"),
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
):
    """Updates a product. Prices already captured on order items are not affected."""
    product_update = parse_body(ProductUpdate, payload, PRODUCTS, str(product_id))
    product = await get_product_or_404(db, product_id)

    update_data = product_update.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields provided for update",
        )

    for field, value in update_data.items():
        setattr(product, field, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A product with sku {update_data.get('sku')} already exists",
        )
    await db.refresh(product)

    return render_resource(request, media_type, PRODUCTS, product)


# -----------------------------------------------------------------------------
# GET Endpoints
# -----------------------------------------------------------------------------

@router.get("/", response_model=ProductPaginated, status_code=200, name="list_products")
async def list_products(
    request: Request,
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
    # Pagination
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Page size"),
    # Filters
    is_active: Optional[bool] = Query(None, description="Filter by active status"),
    currency: Optional[str] = Query(None, description="Filter by currency code"),
    min_price_cents: Optional[int] = Query(None, ge=0, description="Minimum unit price"),
    max_price_cents: Optional[int] = Query(None, ge=0, description="Maximum unit price"),
    search: Optional[str] = Query(None, description="Free-text search in name, sku and description"),
    # Sorting
    sort_by: str = Query(
        "created_at",
        pattern="^(created_at|name|unit_price_cents|sku)$",
        description="Sort field",
    ),
    sort_order: str = Query(
        "asc",
        pattern="^(asc|desc)$",
        description="Sort order",
    ),
):
    """List products with filtering, sorting and pagination."""
    query = select(Product)

    if is_active is not None:
        query = query.where(Product.is_active == is_active)

    if currency:
        query = query.where(Product.currency == currency.upper())

    if min_price_cents is not None:
        query = query.where(Product.unit_price_cents >= min_price_cents)

    if max_price_cents is not None:
        query = query.where(Product.unit_price_cents <= max_price_cents)

    if search:
        like_pattern = f"%{search}%"
        query = query.where(
            or_(
                Product.name.ilike(like_pattern),
                Product.sku.ilike(like_pattern),
                Product.description.ilike(like_pattern),
            )
        )

    sort_column = getattr(Product, sort_by)
    if sort_order == "desc":
        query = query.order_by(sort_column.desc(), Product.id.asc())
    else:
        query = query.order_by(sort_column.asc(), Product.id.asc())

    result_page = await paginate(db, query, page, size)
    return render_collection(
        request, media_type, PRODUCTS, result_page.items, build_page_links(request, result_page), result_page,
    )


# GET Product specific (eTAG support)
@router.get("/{product_id}", response_model=ProductRead, status_code=200, name="get_product")
async def get_product(
    request: Request,
    product_id: UUID,
    media_type: MediaType = Depends(get_media_type),
    db: AsyncSession = Depends(get_db),
):
    product = await get_product_or_404(db, product_id)

    etag, not_modified = conditional_get(request, product, representation_variant(media_type))
    if not_modified is not None:
        return not_modified

    response = render_resource(request, media_type, PRODUCTS, product)
    set_etag_headers(response, etag)
    return response


# -----------------------------------------------------------------------------
# DELETE Endpoints
# -----------------------------------------------------------------------------

@router.delete("/{product_id}", status_code=204, name="delete_product")
async def delete_product(
    product_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    product = await get_product_or_404(db, product_id)

    # Order items keep a reference to the product they were bought as
    result = await db.execute(
        select(func.count()).select_from(OrderItem).where(OrderItem.product_id == product_id)
    )
    if result.scalar_one() > 0:
        logger.warning("Refused to delete product %s: referenced by order items", product_id)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Product is referenced by existing orders; deactivate it instead",
        )

    await db.delete(product)
    await db.commit()
    logger.info("Deleted product %s", product_id)
    return Response(status_code=204)
