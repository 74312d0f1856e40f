"""Admin store catalog router: products, variant prices, images and Printful sync."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_admin
from libs.auth.models import AdminPrincipal
from libs.common.error_handler import StoreError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import Product, ProductImage, ProductVariant
from services.store_service.printful_client import PrintfulClient
from services.store_service.routers._helpers import (
    admin_product_payload,
    get_optional_printful,
    get_printful,
    ok,
)
from services.store_service.schemas import (
    ProductCreate,
    ProductImageSchema,
    ProductImagesUpdate,
    ProductUpdate,
    VariantPricesUpdate,
)
from services.store_service.services import catalog_sync
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])
logger = get_logger(__name__)


async def _get_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    product = await db.get(Product, product_id)
    if product is None:
        raise StoreError("Product not found", status_code=404)
    return product


async def _ensure_unique_slug(
    db: AsyncSession, slug: str, exclude_id: Optional[uuid.UUID] = None
) -> None:
    query = select(func.count()).select_from(Product).where(Product.slug == slug)
    if exclude_id is not None:
        query = query.where(Product.id != exclude_id)
    if (await db.execute(query)).scalar_one():
        raise StoreError("A product with this slug already exists", status_code=400)


def _images(images: list[ProductImageSchema], product_name: str) -> list[ProductImage]:
    """The first image is always the primary one."""
    return [
        ProductImage(url=img.url, alt=img.alt or product_name, is_primary=index == 0, sort_order=index)
        for index, img in enumerate(images)
    ]


# ============================================================================
# PRODUCTS
# ============================================================================


@router.get("/products")
async def list_all_products(
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all products (including inactive and unsynced) with margin and price range."""
    result = await db.execute(select(Product).order_by(Product.created_at.desc()))
    return ok([admin_product_payload(p) for p in result.scalars().all()])


@router.post("/products", status_code=201)
async def create_product(
    payload: ProductCreate,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    slug = catalog_sync.slugify(payload.slug or payload.name)
    if not slug:
        raise StoreError("Product slug cannot be empty", status_code=400)
    await _ensure_unique_slug(db, slug)

    product = Product(
        name=payload.name,
        slug=slug,
        description=payload.description,
        price=payload.price,
        compare_at_price=payload.compare_at_price,
        category=payload.category,
        tags=payload.tags,
        is_active=payload.is_active,
        is_featured=payload.is_featured,
        print_files=payload.print_files,
        printful_sync_product_id=payload.printful_sync_product_id,
        images=_images(payload.images, payload.name),
        variants=[
            ProductVariant(position=index, **variant.model_dump())
            for index, variant in enumerate(payload.variants)
        ],
    )
    db.add(product)
    await db.commit()
    logger.info("Admin %s created product %s", current_admin.admin_id, product.slug)
    return ok(admin_product_payload(product), message="Product created")


@router.get("/products/{product_id}")
async def get_product_for_edit(
    product_id: uuid.UUID,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = await _get_product(db, product_id)
    return ok(admin_product_payload(product))


@router.patch("/products/{product_id}")
async def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = await _get_product(db, product_id)
    updates = payload.model_dump(exclude_unset=True)

    if "slug" in updates:
        slug = catalog_sync.slugify(updates["slug"] or "")
        if not slug:
            raise StoreError("Product slug cannot be empty", status_code=400)
        await _ensure_unique_slug(db, slug, exclude_id=product.id)
        updates["slug"] = slug

    for field, value in updates.items():
        if value is None and field in ("name", "price", "category", "tags", "is_active", "is_featured"):
            continue
        setattr(product, field, value)

    await db.commit()
    return ok(admin_product_payload(product), message="Product updated")


@router.post("/products/{product_id}/toggle-active")
async def toggle_product_active(
    product_id: uuid.UUID,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = await _get_product(db, product_id)
    product.is_active = not product.is_active
    await db.commit()
    return ok({"is_active": product.is_active})


@router.post("/products/{product_id}/toggle-featured")
async def toggle_product_featured(
    product_id: uuid.UUID,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = await _get_product(db, product_id)
    product.is_featured = not product.is_featured
    await db.commit()
    return ok({"is_featured": product.is_featured})


@router.put("/products/{product_id}/variants")
async def update_variant_prices(
    product_id: uuid.UUID,
    payload: VariantPricesUpdate,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Set variant prices and price locks. Locked prices survive Printful syncs."""
    product = await _get_product(db, product_id)
    variants = {v.id: v for v in product.variants}

    for update in payload.variants:
        variant = variants.get(update.variant_id)
        if variant is None:
            raise StoreError(f"Variant {update.variant_id} not found", status_code=404)
        if update.price is not None:
            variant.price = update.price
        if update.price_locked is not None:
            variant.price_locked = update.price_locked

    await db.commit()
    logger.info("Updated variants for product %s", product.id)
    return ok(admin_product_payload(product), message="Variants updated")


@router.put("/products/{product_id}/images")
async def update_product_images(
    product_id: uuid.UUID,
    payload: ProductImagesUpdate,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = await _get_product(db, product_id)
    product.images = _images(payload.images, product.name)
    await db.commit()
    logger.info("Updated images for product %s", product.id)
    return ok(admin_product_payload(product), message="Images updated")


@router.delete("/products/{product_id}")
async def delete_product(
    product_id: uuid.UUID,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = await _get_product(db, product_id)
    await db.delete(product)
    await db.commit()
    logger.info("Admin %s deleted product %s", current_admin.admin_id, product.slug)
    return ok(message="Product deleted")


# ============================================================================
# PRINTFUL SYNC
# ============================================================================


@router.get("/printful/status")
async def printful_sync_status(
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    printful: Optional[PrintfulClient] = Depends(get_optional_printful),
):
    return ok(await catalog_sync.sync_status(db, printful))


@router.post("/printful/sync")
async def sync_all_products(
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    printful: PrintfulClient = Depends(get_printful),
):
    """Pull every Printful sync product into the catalog."""
    logger.info("Starting Printful product sync")
    result = await catalog_sync.sync_all(db, printful)
    return ok(
        {
            "synced": result.synced,
            "created": result.created,
            "updated": result.updated,
            "errors": result.errors,
            "products": result.products,
        },
        message="Product sync completed",
    )


@router.post("/printful/sync/{sync_product_id}")
async def sync_single_product(
    sync_product_id: int,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    printful: PrintfulClient = Depends(get_printful),
):
    product = await catalog_sync.sync_product(db, printful, sync_product_id)
    return ok(admin_product_payload(product), message="Product synced successfully")
