"""Promotion lookups and discount evaluation against carts and products."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from libs.common.currency import to_decimal
from libs.common.datetime_utils import utc_now
from libs.common.error_handler import StoreError
from services.store_service.models import Cart, Product, Promotion
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class AppliedPromotion:
    promotion: Promotion
    discount: Decimal
    free_shipping: bool = False


def _currently_valid(now: datetime):
    return (
        Promotion.is_active.is_(True),
        Promotion.valid_from <= now,
        Promotion.valid_until >= now,
    )


def normalize_code(code: Optional[str]) -> Optional[str]:
    code = (code or "").strip().upper()
    return code or None


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def find_by_code(db: AsyncSession, code: str) -> Optional[Promotion]:
    result = await db.execute(select(Promotion).where(Promotion.code == normalize_code(code)))
    return result.scalar_one_or_none()


async def find_auto_apply(db: AsyncSession, now: Optional[datetime] = None) -> list[Promotion]:
    now = now or utc_now()
    result = await db.execute(
        select(Promotion)
        .where(Promotion.auto_apply.is_(True), *_currently_valid(now))
        .order_by(Promotion.priority.desc(), Promotion.created_at.desc())
    )
    return [p for p in result.scalars().all() if p.is_valid(now)]


async def find_with_banner(db: AsyncSession, now: Optional[datetime] = None) -> list[Promotion]:
    now = now or utc_now()
    result = await db.execute(
        select(Promotion)
        .where(Promotion.show_banner.is_(True), *_currently_valid(now))
        .order_by(Promotion.priority.desc(), Promotion.created_at.desc())
    )
    return [p for p in result.scalars().all() if p.is_valid(now)]


async def find_for_product(
    db: AsyncSession, product: Product, now: Optional[datetime] = None
) -> list[Promotion]:
    """Valid auto-apply promotions that cover ``product``."""
    promotions = await find_auto_apply(db, now)
    category = product.category.value if product.category else None
    return [p for p in promotions if p.applies_to_product(str(product.id), category)]


def best_for_price(
    promotions: Iterable[Promotion], price: Decimal, now: Optional[datetime] = None
) -> Optional[tuple[Promotion, Decimal]]:
    """The promotion giving the lowest price, with that price."""
    best = None
    for promotion in promotions:
        if promotion.is_free_shipping:
            continue
        discounted = promotion.discounted_price(price, now)
        if discounted < to_decimal(price) and (best is None or discounted < best[1]):
            best = (promotion, discounted)
    return best


async def count_codes(db: AsyncSession, code: str, exclude_id=None) -> int:
    query = select(func.count()).select_from(Promotion).where(Promotion.code == normalize_code(code))
    if exclude_id is not None:
        query = query.where(Promotion.id != exclude_id)
    return (await db.execute(query)).scalar_one()


# ---------------------------------------------------------------------------
# Cart evaluation
# ---------------------------------------------------------------------------


def applicable_subtotal(promotion: Promotion, cart: Cart) -> Decimal:
    """Portion of the cart the promotion is scoped to."""
    total = Decimal("0.00")
    for item in cart.items:
        category = item.product.category.value if item.product and item.product.category else None
        if promotion.applies_to_product(str(item.product_id), category):
            total += item.line_total
    return to_decimal(total)


def evaluate(promotion: Promotion, cart: Cart, now: Optional[datetime] = None) -> AppliedPromotion:
    subtotal = cart.subtotal
    scoped = applicable_subtotal(promotion, cart)
    if promotion.is_free_shipping:
        eligible = (
            promotion.is_valid(now)
            and subtotal >= to_decimal(promotion.min_purchase_amount)
            and scoped > 0
        )
        return AppliedPromotion(promotion, Decimal("0.00"), free_shipping=eligible)
    return AppliedPromotion(promotion, promotion.calculate_discount(subtotal, scoped, now))


async def validate_code(
    db: AsyncSession, code: Optional[str], subtotal: Decimal, now: Optional[datetime] = None
) -> tuple[Promotion, Decimal]:
    """Look up a code and check it against a subtotal.

    Returns the promotion and its discount, raising StoreError when the code
    is missing, unknown, no longer valid or below its minimum purchase.
    """
    code = normalize_code(code)
    if not code:
        raise StoreError("Promotion code is required", status_code=400)

    promotion = await find_by_code(db, code)
    if promotion is None:
        raise StoreError("Invalid promotion code", status_code=404)
    if not promotion.is_valid(now):
        raise StoreError("This promotion has expired or is no longer valid", status_code=400)

    subtotal = to_decimal(subtotal)
    minimum = to_decimal(promotion.min_purchase_amount)
    if subtotal < minimum:
        raise StoreError(f"Minimum purchase of ${minimum:.2f} required", status_code=400)

    return promotion, promotion.calculate_discount(subtotal, now=now)


async def best_auto_discount(
    db: AsyncSession, cart: Cart, now: Optional[datetime] = None
) -> Optional[AppliedPromotion]:
    """Largest discount among auto-apply promotions for the cart."""
    best: Optional[AppliedPromotion] = None
    for promotion in await find_auto_apply(db, now):
        applied = evaluate(promotion, cart, now)
        if applied.discount <= 0 and not applied.free_shipping:
            continue
        if best is None or applied.discount > best.discount:
            best = applied
    return best
