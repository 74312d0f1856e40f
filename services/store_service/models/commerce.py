"""Store commerce models: carts and orders."""

import random
import string
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.store_service.models.enums import (
    FulfillmentStatus,
    PaymentMethod,
    PaymentStatus,
    enum_values,
)
from sqlalchemy import BigInteger, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

CART_TTL = timedelta(days=30)
ORDER_NUMBER_PREFIX = "48R"


def cart_expiry() -> datetime:
    return utc_now() + CART_TTL


def generate_order_number() -> str:
    """48R-<epoch ms>-<5 uppercase alphanumerics>."""
    timestamp_ms = int(utc_now().timestamp() * 1000)
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=5))
    return f"{ORDER_NUMBER_PREFIX}-{timestamp_ms}-{suffix}"


# ============================================================================
# CART MODELS
# ============================================================================


class Cart(Base):
    """Shopping cart, one per storefront session."""

    __tablename__ = "store_carts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id: Mapped[str] = mapped_column(
        String(128), unique=True, index=True, nullable=False
    )

    # Carts are purged 30 days after their last change
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=cart_expiry, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.created_at",
        lazy="selectin",
    )

    @property
    def subtotal(self) -> Decimal:
        """Sum of price * quantity over the items. Never stored."""
        return sum(
            (item.line_total for item in self.items), Decimal("0.00")
        ).quantize(Decimal("0.01"))

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def touch(self) -> None:
        """Push the expiry out after a mutation."""
        self.expires_at = cart_expiry()
        self.updated_at = utc_now()

    def __repr__(self):
        return f"<Cart {self.session_id} items={len(self.items)}>"


class CartItem(Base):
    """Cart line items with the price captured when the item was added."""

    __tablename__ = "store_cart_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cart_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_carts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_products.id", ondelete="CASCADE"),
        nullable=False,
    )

    size: Mapped[str] = mapped_column(String(32), nullable=False)
    color: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (CheckConstraint("quantity > 0", name="cart_item_positive_quantity"),)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product", lazy="selectin")

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.price) * self.quantity

    def __repr__(self):
        return f"<CartItem product={self.product_id} size={self.size} qty={self.quantity}>"


# ============================================================================
# ORDER MODELS
# ============================================================================


class Order(Base):
    """A placed order. Totals and line snapshots are fixed at creation."""

    __tablename__ = "store_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(
        String(40), unique=True, index=True, nullable=False, default=generate_order_number
    )
    session_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    # Customer
    customer_email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    customer_first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # {"line1", "line2", "city", "state", "postal_code", "country"}
    shipping_address: Mapped[dict] = mapped_column(JSONType, nullable=False)
    billing_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    # Pricing (USD)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    shipping_cost: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0.00"), nullable=False
    )
    shipping_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    tax: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0.00"), nullable=False
    )
    discount_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0.00"), nullable=False
    )
    donation_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0.00"), nullable=False
    )
    donation_description: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Payment
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(
            PaymentMethod,
            values_callable=enum_values,
            name="store_payment_method_enum",
        ),
        default=PaymentMethod.STRIPE,
        nullable=False,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(
            PaymentStatus,
            values_callable=enum_values,
            name="store_payment_status_enum",
        ),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    stripe_payment_intent_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, index=True, nullable=True
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    refunded_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0.00"), nullable=False
    )

    # Fulfillment. Normally a FulfillmentStatus value; unknown Printful
    # statuses are stored verbatim.
    fulfillment_status: Mapped[str] = mapped_column(
        String(32), default=FulfillmentStatus.PENDING.value, nullable=False, index=True
    )
    printful_order_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, index=True, nullable=True
    )
    printful_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    tracking_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tracking_carrier: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tracking_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    shipped_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    fulfillment_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # {"ip": ..., "user_agent": ...}
    client_metadata: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def customer_name(self) -> str:
        return f"{self.customer_first_name} {self.customer_last_name}".strip()

    def __repr__(self):
        return f"<Order {self.order_number}>"


class OrderItem(Base):
    """Order line with the product and variant details as they were at checkout."""

    __tablename__ = "store_order_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("store_products.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Product snapshot
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_slug: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    product_image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    # Variant snapshot
    size: Mapped[str] = mapped_column(String(32), nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    printful_variant_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    printful_sync_variant_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, nullable=True
    )
    print_files: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    __table_args__ = (CheckConstraint("quantity > 0", name="order_item_positive_quantity"),)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.product_name} x{self.quantity}>"
