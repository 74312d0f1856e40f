"""Mirror Printful sync products into the local catalog."""

import re
from dataclasses import dataclass, field
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.error_handler import StoreError
from libs.common.logging import get_logger
from services.store_service.models import (
    Order,
    Product,
    ProductCategory,
    ProductImage,
    ProductVariant,
)
from services.store_service.printful_client import (
    PrintfulClient,
    PrintfulError,
    map_category,
    normalize_size,
    to_price,
)
from services.store_service.services.store_settings import get_setting, set_setting
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

SYNCED_STOCK = 999
PLACEHOLDER_IMAGE = "/static/images/placeholder.png"


@dataclass
class SyncResult:
    created: int = 0
    updated: int = 0
    errors: int = 0
    products: list[dict] = field(default_factory=list)

    @property
    def synced(self) -> int:
        return self.created + self.updated


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")


async def _unique_slug(db: AsyncSession, name: str, sync_id: int) -> str:
    base = slugify(name) or f"product-{sync_id}"
    result = await db.execute(
        select(Product.id).where(
            Product.slug == base,
            (Product.printful_sync_product_id != sync_id)
            | Product.printful_sync_product_id.is_(None),
        )
    )
    return f"{base}-{sync_id}" if result.first() else base


def _images_for(sync_product: dict, sync_variants: list[dict]) -> list[ProductImage]:
    name = sync_product.get("name", "")
    images = []
    seen = set()
    thumbnail = sync_product.get("thumbnail_url")
    if thumbnail:
        images.append(ProductImage(url=thumbnail, alt=name, is_primary=True, sort_order=0))
        seen.add(thumbnail)

    for variant in sync_variants:
        for file in variant.get("files") or []:
            url = file.get("preview_url") or file.get("thumbnail_url")
            if file.get("type") != "preview" or not url or url in seen:
                continue
            images.append(
                ProductImage(
                    url=url,
                    alt=f"{name} - {variant.get('name', '')}".strip(" -"),
                    is_primary=not images,
                    sort_order=len(images),
                )
            )
            seen.add(url)

    if not images:
        images.append(ProductImage(url=PLACEHOLDER_IMAGE, alt=name, is_primary=True, sort_order=0))
    return images


def _variant_from(sync_variant: dict, position: int) -> ProductVariant:
    return ProductVariant(
        size=normalize_size(sync_variant.get("size")),
        color=sync_variant.get("color") or "",
        sku=sync_variant.get("sku") or f"PF-{sync_variant.get('id')}",
        stock=SYNCED_STOCK,
        price=to_price(sync_variant.get("retail_price")),
        price_locked=False,
        printful_variant_id=sync_variant.get("variant_id"),
        printful_sync_variant_id=sync_variant.get("id"),
        printful_cost=to_price(sync_variant.get("cost")) if sync_variant.get("cost") else None,
        position=position,
    )


def _category_for(sync_variants: list[dict]) -> ProductCategory:
    category = "other"
    for variant in sync_variants:
        product_name = (variant.get("product") or {}).get("name")
        if product_name:
            category = map_category(product_name.split(" ")[0])
    return ProductCategory(category)


async def upsert_sync_product(db: AsyncSession, details: dict) -> tuple[Product, bool]:
    """Create or update the local product for one Printful sync product.

    Variants whose price was locked by an admin keep that price. Returns the
    product and whether it was created. The caller commits.
    """
    sync_product = details.get("sync_product") or {}
    sync_variants = details.get("sync_variants") or []
    sync_id = sync_product["id"]

    existing = (
        await db.execute(select(Product).where(Product.printful_sync_product_id == sync_id))
    ).scalar_one_or_none()

    variants = [_variant_from(v, i) for i, v in enumerate(sync_variants)]
    if existing is not None:
        locked = {
            (v.size, v.color or ""): v.price for v in existing.variants if v.price_locked
        }
        for variant in variants:
            key = (variant.size, variant.color or "")
            if key in locked:
                variant.price = locked[key]
                variant.price_locked = True

    product = existing or Product(printful_sync_product_id=sync_id, description=sync_product.get("name"))
    product.name = sync_product.get("name") or product.name
    product.slug = await _unique_slug(db, product.name, sync_id)
    product.price = variants[0].price if variants else to_price(0)
    product.printful_base_cost = variants[0].printful_cost if variants else None
    product.category = _category_for(sync_variants)
    product.printful_external_id = sync_product.get("external_id")
    product.is_active = not sync_product.get("is_ignored", False)
    product.variants = variants
    product.images = _images_for(sync_product, sync_variants)

    if existing is None:
        db.add(product)
    return product, existing is None


async def sync_product(db: AsyncSession, printful: PrintfulClient, sync_product_id: int) -> Product:
    """Sync a single Printful product."""
    try:
        details = await printful.get_sync_product(sync_product_id)
    except PrintfulError as e:
        if e.status_code == 404:
            raise StoreError("Product not found in Printful", status_code=404) from e
        raise StoreError("Failed to sync product", status_code=502) from e
    if not details.get("sync_product"):
        raise StoreError("Product not found in Printful", status_code=404)

    product, created = await upsert_sync_product(db, details)
    await db.commit()
    logger.info("%s product %s from Printful", "Created" if created else "Updated", product.slug)
    return product


async def sync_all(db: AsyncSession, printful: PrintfulClient) -> SyncResult:
    """Sync every Printful product. One product failing does not stop the run."""
    try:
        summaries = await printful.get_sync_products()
    except PrintfulError as e:
        logger.error("Unable to list Printful products: %s", e.message)
        raise StoreError(
            "Unable to connect to Printful. Please check your API token.", status_code=502
        ) from e

    result = SyncResult()
    for summary in summaries:
        sync_id = summary.get("id")
        try:
            details = await printful.get_sync_product(sync_id)
        except PrintfulError as e:
            logger.warning("Could not get details for Printful product %s: %s", sync_id, e.message)
            result.errors += 1
            continue
        if not details.get("sync_product"):
            logger.warning("Could not get details for Printful product %s", sync_id)
            result.errors += 1
            continue

        product, created = await upsert_sync_product(db, details)
        await db.commit()
        if created:
            result.created += 1
        else:
            result.updated += 1
        result.products.append(
            {"id": str(product.id), "name": product.name, "action": "created" if created else "updated"}
        )

    await set_setting(db, "printful_last_sync", utc_now().isoformat())
    await db.commit()
    logger.info(
        "Printful sync completed",
        extra={
            "extra_fields": {
                "created": result.created,
                "updated": result.updated,
                "errors": result.errors,
            }
        },
    )
    return result


async def sync_status(db: AsyncSession, printful: Optional[PrintfulClient]) -> dict:
    """Connection state plus local and remote product counts."""
    connected = False
    store_name = None
    printful_products = 0
    if printful is not None:
        try:
            stores = await printful.get_stores()
            connected = bool(stores)
            if connected:
                store_name = stores[0].get("name")
                printful_products = len(await printful.get_sync_products())
        except PrintfulError as e:
            logger.warning("Printful status check failed: %s", e.message)
            connected = False

    local = (await db.execute(select(func.count()).select_from(Product))).scalar_one()
    synced = (
        await db.execute(
            select(func.count())
            .select_from(Product)
            .where(Product.printful_sync_product_id.is_not(None))
        )
    ).scalar_one()
    printful_orders = (
        await db.execute(
            select(func.count()).select_from(Order).where(Order.printful_order_id.is_not(None))
        )
    ).scalar_one()

    return {
        "printful_connected": connected,
        "store_name": store_name,
        "printful_products": printful_products,
        "local_products": local,
        "synced_products": synced,
        "unsynced_products": local - synced,
        "printful_orders": printful_orders,
        "last_sync": await get_setting(db, "printful_last_sync"),
    }
