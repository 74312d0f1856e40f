"""Shared helpers for store routers: session id, client dependencies, payload builders."""

import uuid
from typing import Any, Optional

from fastapi import Request
from libs.common.config import get_settings
from libs.common.currency import as_float
from libs.common.error_handler import StoreError
from services.store_service.models import Cart, Order, Product
from services.store_service.printful_client import (
    PrintfulClient,
    PrintfulError,
    get_printful_client,
)
from services.store_service.schemas import (
    AdminProductResponse,
    CartItemResponse,
    CartResponse,
    OrderClientResponse,
    OrderItemResponse,
    OrderResponse,
    ProductResponse,
    TrackingInfo,
)
from services.store_service.services.fulfillment import (
    carrier_tracking_url,
    client_status_label,
)
from services.store_service.stripe_client import (
    StripeClient,
    StripeError,
    get_stripe_client,
)

settings = get_settings()

SESSION_ID_KEY = "session_id"


def ok(data: Any = None, message: Optional[str] = None, **extra: Any) -> dict:
    """The success envelope every JSON endpoint returns."""
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


# ============================================================================
# DEPENDENCIES
# ============================================================================


def get_session_id(request: Request) -> str:
    """The storefront session id, created on first use."""
    session_id = request.session.get(SESSION_ID_KEY)
    if not session_id:
        session_id = uuid.uuid4().hex
        request.session[SESSION_ID_KEY] = session_id
    return session_id


def get_client_metadata(request: Request) -> dict:
    forwarded = request.headers.get("X-Forwarded-For")
    ip = forwarded.split(",")[0].strip() if forwarded else (
        request.client.host if request.client else None
    )
    return {"ip": ip, "user_agent": request.headers.get("user-agent")}


def get_stripe() -> StripeClient:
    try:
        return get_stripe_client()
    except StripeError as e:
        raise StoreError(e.message, status_code=e.status_code or 503) from e


def get_printful() -> PrintfulClient:
    """Printful client for endpoints that cannot work without it."""
    try:
        return get_printful_client()
    except PrintfulError as e:
        raise StoreError(e.message, status_code=e.status_code or 400) from e


def get_optional_printful() -> Optional[PrintfulClient]:
    """Printful client when a token is configured, else None."""
    if not settings.PRINTFUL_API_TOKEN:
        return None
    return get_printful_client()


# ============================================================================
# PAYLOADS
# ============================================================================


def product_payload(product: Product) -> dict:
    return ProductResponse.model_validate(product).model_dump(mode="json")


def admin_product_payload(product: Product) -> dict:
    payload = AdminProductResponse.model_validate(product).model_dump(mode="json")
    low, high = product.price_range
    payload["min_price"] = as_float(low)
    payload["max_price"] = as_float(high)
    return payload


def cart_payload(cart: Optional[Cart], removed_items: Optional[list[str]] = None) -> dict:
    if cart is None:
        return CartResponse(removed_items=removed_items or []).model_dump(mode="json")

    items = [
        CartItemResponse(
            id=item.id,
            product_id=item.product_id,
            product_name=item.product.name if item.product else "Unknown product",
            product_slug=item.product.slug if item.product else None,
            image_url=item.product.primary_image_url if item.product else None,
            size=item.size,
            color=item.color or "",
            quantity=item.quantity,
            price=as_float(item.price),
            line_total=as_float(item.line_total),
        )
        for item in cart.items
    ]
    return CartResponse(
        id=cart.id,
        items=items,
        item_count=cart.item_count,
        subtotal=as_float(cart.subtotal),
        expires_at=cart.expires_at,
        removed_items=removed_items or [],
    ).model_dump(mode="json")


def order_payload(order: Order) -> dict:
    return OrderResponse.model_validate(order).model_dump(mode="json")


def order_client_payload(order: Order) -> dict:
    tracking = None
    if order.tracking_number:
        tracking = TrackingInfo(
            number=order.tracking_number,
            carrier=order.tracking_carrier,
            url=order.tracking_url
            or carrier_tracking_url(order.tracking_carrier, order.tracking_number),
            shipped_at=order.shipped_at,
            delivered_at=order.delivered_at,
        )
    return OrderClientResponse(
        order_number=order.order_number,
        status=order.fulfillment_status,
        status_label=client_status_label(order.fulfillment_status),
        customer_first_name=order.customer_first_name,
        items=[OrderItemResponse.model_validate(item) for item in order.items],
        subtotal=as_float(order.subtotal),
        shipping_cost=as_float(order.shipping_cost),
        discount_amount=as_float(order.discount_amount),
        discount_code=order.discount_code,
        donation_amount=as_float(order.donation_amount),
        donation_description=order.donation_description,
        total=as_float(order.total),
        shipping_address=order.shipping_address,
        tracking=tracking,
        created_at=order.created_at,
    ).model_dump(mode="json")
