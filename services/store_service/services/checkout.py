"""Checkout: pricing a cart, opening a payment intent and turning a paid cart into an order."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from libs.common.config import get_settings
from libs.common.currency import dollars_to_cents, to_decimal
from libs.common.datetime_utils import utc_now
from libs.common.error_handler import StoreError
from libs.common.logging import get_logger
from services.store_service.models import (
    Cart,
    FulfillmentStatus,
    Order,
    OrderItem,
    PaymentMethod,
    PaymentStatus,
    Promotion,
)
from services.store_service.printful_client import (
    PrintfulClient,
    PrintfulError,
    Recipient,
)
from services.store_service.services import cart_service, promotions
from services.store_service.services.shipping import ShippingQuote, quote_shipping
from services.store_service.services.store_settings import get_setting
from services.store_service.stripe_client import PaymentIntent, StripeClient, StripeError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
settings = get_settings()


@dataclass
class CartTotals:
    subtotal: Decimal
    shipping: ShippingQuote
    discount: Decimal
    donation: Decimal
    promotion: Optional[Promotion] = None

    @property
    def total(self) -> Decimal:
        """subtotal + shipping - discount + donation. Tax is not charged."""
        return to_decimal(
            self.subtotal + self.shipping.cost - self.discount + self.donation
        )


def shipping_items(cart: Cart) -> list[dict]:
    """Cart lines in the shape Printful's shipping and order APIs expect."""
    items = []
    for item in cart.items:
        variant = item.product.find_variant(item.size, item.color or None) if item.product else None
        if variant is None:
            continue
        line = {"quantity": item.quantity}
        if variant.printful_sync_variant_id:
            line["sync_variant_id"] = variant.printful_sync_variant_id
        elif variant.printful_variant_id:
            line["variant_id"] = variant.printful_variant_id
            if item.product.print_files:
                line["files"] = item.product.print_files
        else:
            continue
        items.append(line)
    return items


async def price_cart(
    db: AsyncSession,
    cart: Cart,
    address: Optional[dict] = None,
    promotion_code: Optional[str] = None,
    printful: Optional[PrintfulClient] = None,
) -> CartTotals:
    """Work out every line of the order total for a cart.

    An explicit promotion code must be valid; without one the best
    auto-apply promotion is used.
    """
    subtotal = cart.subtotal
    applied: Optional[promotions.AppliedPromotion] = None
    if promotion_code:
        promotion, _ = await promotions.validate_code(db, promotion_code, subtotal)
        applied = promotions.evaluate(promotion, cart)
    else:
        applied = await promotions.best_auto_discount(db, cart)

    shipping = await quote_shipping(
        subtotal,
        address or {"country": "US"},
        shipping_items(cart),
        printful=printful,
        free_shipping=bool(applied and applied.free_shipping),
    )
    donation = to_decimal(await get_setting(db, "donation_per_purchase", 5.0))
    return CartTotals(
        subtotal=subtotal,
        shipping=shipping,
        discount=applied.discount if applied else Decimal("0.00"),
        donation=donation,
        promotion=applied.promotion if applied else None,
    )


# ---------------------------------------------------------------------------
# Payment intent
# ---------------------------------------------------------------------------


async def create_payment_session(
    db: AsyncSession,
    session_id: str,
    stripe: StripeClient,
    address: Optional[dict] = None,
    promotion_code: Optional[str] = None,
    printful: Optional[PrintfulClient] = None,
    email: Optional[str] = None,
) -> tuple[PaymentIntent, CartTotals, Cart]:
    """Validate the cart and open a payment intent for its total."""
    cart = cart_service.ensure_purchasable(await cart_service.load_cart(db, session_id))
    totals = await price_cart(db, cart, address, promotion_code, printful)

    try:
        intent = await stripe.create_payment_intent(
            dollars_to_cents(totals.total),
            metadata={"session_id": session_id, "items": cart.item_count},
            receipt_email=email,
        )
    except StripeError as e:
        logger.error("Payment intent creation failed: %s", e.message)
        raise StoreError("Failed to create checkout session", status_code=502) from e

    logger.info(
        "Created payment intent %s for %s",
        intent.id,
        totals.total,
        extra={"extra_fields": {"session_id": session_id}},
    )
    return intent, totals, cart


# ---------------------------------------------------------------------------
# Confirmation
# ---------------------------------------------------------------------------


def _snapshot_items(cart: Cart) -> list[OrderItem]:
    order_items = []
    for item in cart.items:
        product = item.product
        variant = product.find_variant(item.size, item.color or None)
        order_items.append(
            OrderItem(
                product_id=product.id,
                product_name=product.name,
                product_slug=product.slug,
                product_image=product.primary_image_url,
                size=item.size,
                color=item.color or "",
                sku=variant.sku if variant else None,
                printful_variant_id=variant.printful_variant_id if variant else None,
                printful_sync_variant_id=variant.printful_sync_variant_id if variant else None,
                print_files=product.print_files,
                quantity=item.quantity,
                price=to_decimal(item.price),
                subtotal=to_decimal(item.line_total),
            )
        )
    return order_items


def _record_sale(cart: Cart) -> None:
    for item in cart.items:
        product = item.product
        product.sales_count = (product.sales_count or 0) + item.quantity
        variant = product.find_variant(item.size, item.color or None)
        if variant is not None:
            variant.stock = max((variant.stock or 0) - item.quantity, 0)


def _printful_order_items(order: Order) -> list[dict]:
    items = []
    for item in order.items:
        line = {"quantity": item.quantity, "retail_price": f"{item.price:.2f}", "name": item.product_name}
        if item.printful_sync_variant_id:
            line["sync_variant_id"] = item.printful_sync_variant_id
        elif item.printful_variant_id:
            line["variant_id"] = item.printful_variant_id
            if item.print_files:
                line["files"] = item.print_files
        else:
            continue
        items.append(line)
    return items


async def submit_to_printful(order: Order, printful: Optional[PrintfulClient]) -> None:
    """Create the Printful order. Failures are noted on the order, never raised."""
    items = _printful_order_items(order)
    if printful is None:
        order.fulfillment_notes = "Printful is not configured - manual fulfillment required"
        logger.warning("Order %s not sent to Printful: not configured", order.order_number)
        return
    if not items:
        order.fulfillment_notes = "No Printful products - manual fulfillment required"
        logger.warning("Order %s has no Printful items", order.order_number)
        return

    address = order.shipping_address
    recipient = Recipient(
        name=order.customer_name,
        address1=address.get("line1", ""),
        address2=address.get("line2") or "",
        city=address.get("city", ""),
        state_code=address.get("state"),
        country_code=(address.get("country") or "US").upper(),
        zip=address.get("postal_code", ""),
        email=order.customer_email,
        phone=order.customer_phone or "",
    )
    try:
        result = await printful.create_order(
            external_id=order.order_number,
            recipient=recipient,
            items=items,
            retail_costs={
                "subtotal": f"{order.subtotal:.2f}",
                "shipping": f"{order.shipping_cost:.2f}",
                "discount": f"{order.discount_amount:.2f}",
            },
        )
    except PrintfulError as e:
        order.fulfillment_notes = f"Printful order creation failed: {e.message}"
        logger.error(
            "Printful order creation failed for %s: %s",
            order.order_number,
            e.message,
            extra={"extra_fields": {"response": e.response_data}},
        )
        return

    order.printful_order_id = result.id
    order.printful_status = result.status
    order.fulfillment_status = FulfillmentStatus.PROCESSING.value
    logger.info("Order %s submitted to Printful as %s", order.order_number, result.id)


async def confirm_checkout(
    db: AsyncSession,
    *,
    session_id: str,
    payment_intent_id: str,
    customer: dict,
    shipping_address: dict,
    stripe: StripeClient,
    billing_address: Optional[dict] = None,
    promotion_code: Optional[str] = None,
    printful: Optional[PrintfulClient] = None,
    client_metadata: Optional[dict] = None,
) -> Order:
    """Turn a paid cart into an order.

    1. the payment intent must have succeeded
    2. the session's cart must be non-empty and purchasable
    3. line items are snapshotted and totals fixed
    4. the order is persisted
    5. Printful fulfillment is requested (failure is recorded, not raised)
    6. the cart is deleted
    """
    try:
        intent = await stripe.retrieve_payment_intent(payment_intent_id)
    except StripeError as e:
        logger.error("Could not retrieve payment intent %s: %s", payment_intent_id, e.message)
        raise StoreError("Could not verify payment", status_code=502) from e
    if not intent.succeeded:
        raise StoreError("Payment not completed", status_code=400)

    cart = cart_service.ensure_purchasable(await cart_service.load_cart(db, session_id))
    totals = await price_cart(db, cart, shipping_address, promotion_code, printful)

    order = Order(
        session_id=session_id,
        customer_email=customer["email"].lower(),
        customer_first_name=customer["first_name"],
        customer_last_name=customer["last_name"],
        customer_phone=customer.get("phone"),
        shipping_address=shipping_address,
        billing_address=billing_address,
        items=_snapshot_items(cart),
        subtotal=totals.subtotal,
        shipping_cost=totals.shipping.cost,
        shipping_method=totals.shipping.method,
        tax=Decimal("0.00"),
        discount_code=totals.promotion.code if totals.promotion else None,
        discount_amount=totals.discount,
        donation_amount=totals.donation,
        donation_description=settings.DONATION_DESCRIPTION,
        total=totals.total,
        payment_method=PaymentMethod.STRIPE,
        payment_status=PaymentStatus.COMPLETED,
        stripe_payment_intent_id=intent.id,
        paid_at=utc_now(),
        fulfillment_status=FulfillmentStatus.PENDING.value,
        client_metadata=client_metadata or {},
    )
    if totals.promotion is not None:
        totals.promotion.usage_count = (totals.promotion.usage_count or 0) + 1
    _record_sale(cart)
    db.add(order)
    await db.commit()

    logger.info(
        "Created order %s",
        order.order_number,
        extra={
            "extra_fields": {
                "order_number": order.order_number,
                "total": str(order.total),
                "payment_intent": intent.id,
            }
        },
    )

    await submit_to_printful(order, printful)
    await cart_service.delete_cart(db, cart)
    await db.commit()
    return order
