"""Store cart router: the session cart."""

import uuid

from fastapi import APIRouter, Depends, Request
from libs.db.session import get_async_db
from services.store_service.models import AnalyticsEventType
from services.store_service.routers._helpers import cart_payload, get_session_id, ok
from services.store_service.schemas import CartItemAdd, CartItemUpdate
from services.store_service.services import cart_service
from services.store_service.services.analytics import record_event
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


@router.get("/cart")
async def get_cart(
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
):
    """Return the cart, dropping lines that can no longer be bought."""
    cart = await cart_service.load_cart(db, session_id)
    removed = await cart_service.prune_unpurchasable(db, cart) if cart else []
    return ok(cart_payload(cart, removed))


@router.post("/cart/items")
async def add_to_cart(
    payload: CartItemAdd,
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
):
    cart, product = await cart_service.add_item(
        db,
        session_id,
        payload.product_id,
        payload.size,
        quantity=payload.quantity,
        color=payload.color,
    )
    data = cart_payload(cart)

    await record_event(
        db,
        AnalyticsEventType.ADD_TO_CART,
        user_agent=request.headers.get("user-agent"),
        session_id=session_id,
        product_id=product.id,
        product_name=product.name,
        product_category=product.category.value,
        product_price=product.price,
        quantity=payload.quantity,
        cart_total=cart.subtotal,
    )
    return ok(data, message="Item added to cart")


@router.patch("/cart/items/{item_id}")
async def update_cart_item(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
):
    """Change a line's quantity. Zero removes it."""
    cart = await cart_service.update_item(db, session_id, item_id, payload.quantity)
    return ok(cart_payload(cart), message="Cart updated")


@router.delete("/cart/items/{item_id}")
async def remove_cart_item(
    item_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
):
    cart, item = await cart_service.remove_item(db, session_id, item_id)
    data = cart_payload(cart)

    await record_event(
        db,
        AnalyticsEventType.REMOVE_FROM_CART,
        user_agent=request.headers.get("user-agent"),
        session_id=session_id,
        product_id=item.product_id,
        product_name=item.product.name if item.product else None,
        quantity=item.quantity,
        cart_total=cart.subtotal,
    )
    return ok(data, message="Item removed from cart")


@router.delete("/cart")
async def clear_cart(
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
):
    await cart_service.clear_cart(db, session_id)
    return ok(cart_payload(None), message="Cart cleared")
