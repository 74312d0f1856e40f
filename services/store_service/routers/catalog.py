"""Store catalog router: public product browsing and search."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from libs.common.error_handler import StoreError
from libs.db.session import get_async_db
from services.store_service.models import (
    AnalyticsEventType,
    Product,
    ProductVariant,
)
from services.store_service.routers._helpers import get_session_id, ok, product_payload
from services.store_service.services.analytics import record_event
from sqlalchemy import String, cast, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])

FEATURED_LIMIT = 8
RELATED_LIMIT = 8
SEARCH_LIMIT = 20
MIN_SEARCH_LENGTH = 2

SORT_OPTIONS = {
    "newest": (Product.created_at.desc(),),
    "price-low": (Product.price.asc(),),
    "price-high": (Product.price.desc(),),
    "featured": (Product.is_featured.desc(), Product.created_at.desc()),
}


def purchasable_products():
    """Active products linked to a Printful sync product."""
    return select(Product).where(
        Product.is_active.is_(True),
        Product.printful_sync_product_id.is_not(None),
    )


def _split(value: Optional[str]) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


# ============================================================================
# PRODUCTS
# ============================================================================


@router.get("/products")
async def list_products(
    categories: Optional[str] = Query(None, description="Comma-separated categories"),
    sizes: Optional[str] = Query(None, description="Comma-separated sizes"),
    sort: str = Query("featured"),
    db: AsyncSession = Depends(get_async_db),
):
    """List purchasable products."""
    query = purchasable_products()

    category_list = _split(categories)
    if category_list:
        query = query.where(cast(Product.category, String).in_(category_list))

    size_list = _split(sizes)
    if size_list:
        query = query.where(Product.variants.any(ProductVariant.size.in_(size_list)))

    query = query.order_by(*SORT_OPTIONS.get(sort, SORT_OPTIONS["featured"]))
    result = await db.execute(query)
    return ok([product_payload(p) for p in result.scalars().all()])


@router.get("/products/featured")
async def featured_products(db: AsyncSession = Depends(get_async_db)):
    result = await db.execute(
        purchasable_products()
        .where(Product.is_featured.is_(True))
        .order_by(Product.created_at.desc())
        .limit(FEATURED_LIMIT)
    )
    return ok([product_payload(p) for p in result.scalars().all()])


@router.get("/products/{slug}")
async def get_product(slug: str, db: AsyncSession = Depends(get_async_db)):
    """Get a purchasable product by slug."""
    result = await db.execute(purchasable_products().where(Product.slug == slug.lower()))
    product = result.scalar_one_or_none()
    if product is None:
        raise StoreError("Product not found", status_code=404)
    return ok(product_payload(product))


@router.get("/products/{product_id}/related")
async def related_products(product_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)):
    """Other purchasable products in the same category."""
    product = await db.get(Product, product_id)
    if product is None:
        raise StoreError("Product not found", status_code=404)

    result = await db.execute(
        purchasable_products()
        .where(Product.id != product.id, Product.category == product.category)
        .order_by(Product.is_featured.desc(), Product.created_at.desc())
        .limit(RELATED_LIMIT)
    )
    return ok([product_payload(p) for p in result.scalars().all()])


# ============================================================================
# SEARCH
# ============================================================================


@router.get("/search")
async def search_products(
    request: Request,
    q: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
):
    """Case-insensitive search over name, description, tags and category."""
    term = (q or "").strip()
    if len(term) < MIN_SEARCH_LENGTH:
        return ok([])

    result = await db.execute(
        purchasable_products()
        .where(
            or_(
                Product.name.icontains(term, autoescape=True),
                Product.description.icontains(term, autoescape=True),
                cast(Product.tags, String).icontains(term, autoescape=True),
                cast(Product.category, String).icontains(term, autoescape=True),
            )
        )
        .order_by(Product.is_featured.desc(), Product.sales_count.desc())
        .limit(SEARCH_LIMIT)
    )
    products = [product_payload(p) for p in result.scalars().all()]

    await record_event(
        db,
        AnalyticsEventType.SEARCH,
        user_agent=request.headers.get("user-agent"),
        session_id=session_id,
        search_query=term[:255],
        search_results_count=len(products),
    )
    return ok(products)
