"""Syncing local orders with Printful order status and shipments."""

from typing import Optional

from libs.common.datetime_utils import from_unix, utc_now
from libs.common.error_handler import StoreError
from libs.common.logging import get_logger
from services.store_service.models import FulfillmentStatus, Order
from services.store_service.printful_client import PrintfulClient, PrintfulError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# Printful order status -> local fulfillment status
PRINTFUL_STATUS_MAP: dict[str, str] = {
    "draft": FulfillmentStatus.PENDING.value,
    "pending": FulfillmentStatus.PENDING.value,
    "failed": FulfillmentStatus.FAILED.value,
    "canceled": FulfillmentStatus.CANCELLED.value,
    "inprocess": FulfillmentStatus.PROCESSING.value,
    "onhold": FulfillmentStatus.ON_HOLD.value,
    "partial": FulfillmentStatus.SHIPPED.value,
    "fulfilled": FulfillmentStatus.DELIVERED.value,
    "archived": FulfillmentStatus.DELIVERED.value,
}

# Printful webhook types that warrant re-reading the order
SYNC_WEBHOOK_TYPES = frozenset(
    {"package_shipped", "order_updated", "order_failed", "order_canceled"}
)

CLIENT_STATUS_LABELS = {
    FulfillmentStatus.PENDING.value: "Order Received",
    FulfillmentStatus.PROCESSING.value: "Being Prepared",
    FulfillmentStatus.SHIPPED.value: "Shipped",
    FulfillmentStatus.DELIVERED.value: "Delivered",
    FulfillmentStatus.CANCELLED.value: "Cancelled",
    FulfillmentStatus.ON_HOLD.value: "On Hold",
    FulfillmentStatus.FAILED.value: "Issue with Order",
}

CARRIER_TRACKING_URLS = {
    "USPS": "https://tools.usps.com/go/TrackConfirmAction?tLabels={number}",
    "UPS": "https://www.ups.com/track?tracknum={number}",
    "FEDEX": "https://www.fedex.com/fedextrack/?trknbr={number}",
    "DHL": "https://www.dhl.com/en/express/tracking.html?AWB={number}",
}


def map_printful_status(printful_status: Optional[str]) -> Optional[str]:
    """Local status for a Printful status; unmapped values pass through unchanged."""
    if not printful_status:
        return None
    return PRINTFUL_STATUS_MAP.get(printful_status, printful_status)


def client_status_label(status: Optional[str]) -> str:
    return CLIENT_STATUS_LABELS.get(status or "", "Processing")


def carrier_tracking_url(carrier: Optional[str], number: Optional[str]) -> Optional[str]:
    if not carrier or not number:
        return None
    template = CARRIER_TRACKING_URLS.get(carrier.upper())
    return template.format(number=number) if template else None


def apply_printful_order(order: Order, printful_order: dict) -> bool:
    """Copy status and first-shipment tracking from a Printful order onto ``order``.

    Returns True when anything changed. The caller commits.
    """
    changed = False
    printful_status = printful_order.get("status")
    if printful_status:
        local_status = map_printful_status(printful_status)
        if order.printful_status != printful_status:
            order.printful_status = printful_status
            changed = True
        if order.fulfillment_status != local_status:
            logger.info(
                "Order %s fulfillment %s -> %s",
                order.order_number,
                order.fulfillment_status,
                local_status,
                extra={"extra_fields": {"printful_status": printful_status}},
            )
            order.fulfillment_status = local_status
            changed = True
            if local_status == FulfillmentStatus.DELIVERED.value and order.delivered_at is None:
                order.delivered_at = utc_now()

    shipments = printful_order.get("shipments") or []
    if shipments:
        shipment = shipments[0]
        tracking = {
            "tracking_number": shipment.get("tracking_number"),
            "tracking_carrier": shipment.get("carrier"),
            "tracking_url": shipment.get("tracking_url"),
        }
        for attr, value in tracking.items():
            if value and getattr(order, attr) != value:
                setattr(order, attr, value)
                changed = True
        shipped_at = from_unix(shipment.get("shipped_at"))
        if shipped_at and order.shipped_at != shipped_at:
            order.shipped_at = shipped_at
            changed = True

    return changed


async def refresh_order_from_printful(
    db: AsyncSession, order: Order, printful: PrintfulClient
) -> Order:
    """Pull the latest Printful state for ``order`` and persist it."""
    if not order.printful_order_id:
        raise StoreError("Order is not associated with Printful", status_code=400)

    try:
        printful_order = await printful.get_order(order.printful_order_id)
    except PrintfulError as e:
        logger.error(
            "Failed to fetch Printful order %s: %s", order.printful_order_id, e.message
        )
        raise StoreError("Failed to fetch order status from Printful", status_code=502) from e
    if not printful_order:
        raise StoreError("Failed to fetch order status from Printful", status_code=502)

    if apply_printful_order(order, printful_order):
        await db.commit()
    return order
