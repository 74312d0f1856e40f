"""Cart operations keyed by the storefront session id."""

import uuid
from dataclasses import dataclass
from typing import Optional

from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.error_handler import StoreError
from libs.common.logging import get_logger
from services.store_service.models import Cart, CartItem, Product
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass
class CartIssue:
    """Why a cart line cannot be bought."""

    item_id: uuid.UUID
    product_name: str
    error: str


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


async def load_cart(db: AsyncSession, session_id: str) -> Optional[Cart]:
    """Fetch the session's cart with items and products, dropping it if expired."""
    result = await db.execute(
        select(Cart)
        .where(Cart.session_id == session_id)
        .execution_options(populate_existing=True)
    )
    cart = result.scalar_one_or_none()
    if cart is None:
        return None

    if ensure_utc(cart.expires_at) <= utc_now():
        logger.info("Discarding expired cart for session %s", session_id)
        await db.delete(cart)
        await db.commit()
        return None
    return cart


async def get_or_create_cart(db: AsyncSession, session_id: str) -> Cart:
    cart = await load_cart(db, session_id)
    if cart is not None:
        return cart

    cart = Cart(session_id=session_id, items=[])
    db.add(cart)
    await db.commit()
    return cart


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def line_issue(item: CartItem) -> Optional[str]:
    """Reason a line is no longer purchasable, or None."""
    product = item.product
    if product is None or not product.is_purchasable:
        return "This product is not available for purchase"
    variant = product.find_variant(item.size, item.color or None)
    if variant is None:
        return "Variant not found"
    if not variant.is_purchasable:
        return "This variant is not available for purchase"
    return None


def find_cart_issues(cart: Cart) -> list[CartIssue]:
    issues = []
    for item in cart.items:
        error = line_issue(item)
        if error:
            issues.append(
                CartIssue(
                    item_id=item.id,
                    product_name=item.product.name if item.product else "Unknown product",
                    error=error,
                )
            )
    return issues


def ensure_purchasable(cart: Optional[Cart]) -> Cart:
    """Raise unless the cart has items and every line can be bought."""
    if cart is None or not cart.items:
        raise StoreError("Cart is empty", status_code=400)

    issues = find_cart_issues(cart)
    if issues:
        details = ", ".join(f"{i.product_name}: {i.error}" for i in issues)
        raise StoreError(
            f"Some items in your cart are not available: {details}",
            status_code=400,
            data={
                "errors": [
                    {"item_id": str(i.item_id), "product_name": i.product_name, "error": i.error}
                    for i in issues
                ]
            },
        )
    return cart


async def prune_unpurchasable(db: AsyncSession, cart: Cart) -> list[str]:
    """Remove lines whose product or variant can no longer be bought.

    Returns the names of the removed products.
    """
    removed = []
    for item in list(cart.items):
        if line_issue(item):
            removed.append(item.product.name if item.product else "Unknown product")
            cart.items.remove(item)
    if removed:
        cart.touch()
        await db.commit()
        logger.info(
            "Removed %d unavailable item(s) from cart",
            len(removed),
            extra={"extra_fields": {"session_id": cart.session_id, "removed": removed}},
        )
    return removed


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def add_item(
    db: AsyncSession,
    session_id: str,
    product_id: uuid.UUID,
    size: str,
    quantity: int = 1,
    color: Optional[str] = None,
) -> tuple[Cart, Product]:
    """Add a product variant to the cart, merging with an existing line."""
    if quantity < 1:
        raise StoreError("Quantity must be at least 1", status_code=400)

    product = await db.get(Product, product_id)
    if product is None or not product.is_active:
        raise StoreError("Product not found", status_code=404)
    if not product.is_synced:
        raise StoreError("This product is not available for purchase", status_code=400)

    variant = product.find_variant(size, color)
    if variant is None:
        raise StoreError("Variant not found", status_code=400)
    if not variant.is_purchasable:
        raise StoreError("This variant is not available for purchase", status_code=400)

    cart = await get_or_create_cart(db, session_id)
    existing = next(
        (i for i in cart.items if i.product_id == product.id and i.size == variant.size),
        None,
    )
    requested = quantity + (existing.quantity if existing else 0)
    if variant.stock < requested:
        raise StoreError("Insufficient stock", status_code=400)

    if existing:
        existing.quantity = requested
    else:
        cart.items.append(
            CartItem(
                product_id=product.id,
                product=product,
                size=variant.size,
                color=variant.color or "",
                quantity=quantity,
                price=product.variant_price(variant),
            )
        )
    cart.touch()
    await db.commit()
    return cart, product


def _find_item(cart: Optional[Cart], item_id: uuid.UUID) -> CartItem:
    if cart is None:
        raise StoreError("Cart not found", status_code=404)
    item = next((i for i in cart.items if i.id == item_id), None)
    if item is None:
        raise StoreError("Item not found in cart", status_code=404)
    return item


async def update_item(
    db: AsyncSession, session_id: str, item_id: uuid.UUID, quantity: int
) -> Cart:
    """Set a line's quantity. Zero or less removes the line."""
    cart = await load_cart(db, session_id)
    item = _find_item(cart, item_id)

    if quantity <= 0:
        cart.items.remove(item)
    else:
        variant = item.product.find_variant(item.size, item.color or None) if item.product else None
        if variant is None or variant.stock < quantity:
            raise StoreError("Insufficient stock", status_code=400)
        item.quantity = quantity

    cart.touch()
    await db.commit()
    return cart


async def remove_item(db: AsyncSession, session_id: str, item_id: uuid.UUID) -> tuple[Cart, CartItem]:
    cart = await load_cart(db, session_id)
    item = _find_item(cart, item_id)
    cart.items.remove(item)
    cart.touch()
    await db.commit()
    return cart, item


async def clear_cart(db: AsyncSession, session_id: str) -> None:
    cart = await load_cart(db, session_id)
    if cart is None:
        return
    cart.items.clear()
    cart.touch()
    await db.commit()


async def delete_cart(db: AsyncSession, cart: Cart) -> None:
    """Remove the cart and its lines (after a successful checkout). The caller commits."""
    await db.delete(cart)
