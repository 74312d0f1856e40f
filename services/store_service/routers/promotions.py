"""Store promotions router: banners, code validation and discounts."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.common.currency import as_float, to_decimal
from libs.common.error_handler import StoreError
from libs.db.session import get_async_db
from services.store_service.models import Product
from services.store_service.routers._helpers import get_session_id, ok
from services.store_service.schemas import PromotionBanner, ValidatePromotionRequest
from services.store_service.services import cart_service, promotions
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


def _summary(promotion) -> dict:
    return {
        "id": str(promotion.id),
        "name": promotion.name,
        "code": promotion.code,
        "type": promotion.type.value,
        "value": as_float(promotion.value),
    }


@router.get("/promotions/banners")
async def active_banners(db: AsyncSession = Depends(get_async_db)):
    banners = await promotions.find_with_banner(db)
    return ok([PromotionBanner.model_validate(p).model_dump(mode="json") for p in banners])


@router.get("/promotions/auto-apply")
async def auto_apply_promotions(db: AsyncSession = Depends(get_async_db)):
    found = await promotions.find_auto_apply(db)
    return ok(
        [
            {
                **_summary(p),
                "scope": p.scope.value,
                "min_purchase_amount": as_float(p.min_purchase_amount),
                "max_discount_amount": (
                    as_float(p.max_discount_amount) if p.max_discount_amount is not None else None
                ),
            }
            for p in found
        ]
    )


@router.post("/promotions/validate")
async def validate_promotion_code(
    payload: ValidatePromotionRequest, db: AsyncSession = Depends(get_async_db)
):
    """Check a code against a subtotal and report the discount."""
    promotion, discount = await promotions.validate_code(db, payload.code, payload.subtotal)
    subtotal = to_decimal(payload.subtotal)
    return ok(
        {
            "promotion": {**_summary(promotion), "description": promotion.description},
            "discount": as_float(discount),
            "free_shipping": promotion.is_free_shipping,
            "final_subtotal": as_float(subtotal - discount),
        },
        message="Promotion code applied",
    )


@router.get("/promotions/product/{product_id}")
async def product_promotions(
    product_id: uuid.UUID,
    price: Optional[Decimal] = Query(None, ge=0),
    db: AsyncSession = Depends(get_async_db),
):
    """Auto-apply promotions for a product and the one that saves the most."""
    product = await db.get(Product, product_id)
    if product is None:
        raise StoreError("Product not found", status_code=404)

    found = await promotions.find_for_product(db, product)
    base_price = to_decimal(price if price is not None else product.price)

    items = []
    for promotion in found:
        discounted = promotion.discounted_price(base_price)
        items.append(
            {
                **_summary(promotion),
                "discounted_price": as_float(discounted),
                "savings": as_float(base_price - discounted),
            }
        )

    best = None
    winner = promotions.best_for_price(found, base_price)
    if winner is not None:
        best = items[found.index(winner[0])]
    return ok({"promotions": items, "best": best})


@router.get("/promotions/cart-discount")
async def cart_discount(
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
):
    """Best auto-apply discount for the session cart."""
    cart = await cart_service.load_cart(db, session_id)
    subtotal = cart.subtotal if cart else Decimal("0.00")
    applied = await promotions.best_auto_discount(db, cart) if cart and cart.items else None

    discount = applied.discount if applied else Decimal("0.00")
    return ok(
        {
            "subtotal": as_float(subtotal),
            "total_discount": as_float(discount),
            "free_shipping": bool(applied and applied.free_shipping),
            "applied_promotion": (
                {**_summary(applied.promotion), "discount": as_float(discount)} if applied else None
            ),
            "final_subtotal": as_float(subtotal - discount),
        }
    )
