"""Promotion model and its discount rules."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.currency import to_decimal
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.db.base import Base, JSONType
from services.store_service.models.enums import (
    PromotionScope,
    PromotionType,
    enum_values,
)
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

DEFAULT_BANNER_COLOR = "#c41e3a"


class Promotion(Base):
    """A code-based or auto-applied discount rule."""

    __tablename__ = "store_promotions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(
        String(50), unique=True, index=True, nullable=True
    )  # always uppercase
    description: Mapped[str] = mapped_column(Text, nullable=False)

    type: Mapped[PromotionType] = mapped_column(
        SAEnum(
            PromotionType,
            values_callable=enum_values,
            name="store_promotion_type_enum",
        ),
        nullable=False,
    )
    value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    scope: Mapped[PromotionScope] = mapped_column(
        SAEnum(
            PromotionScope,
            values_callable=enum_values,
            name="store_promotion_scope_enum",
        ),
        default=PromotionScope.GLOBAL,
        nullable=False,
    )
    applicable_products: Mapped[list] = mapped_column(
        JSONType, default=list, nullable=False
    )  # product ids as strings
    applicable_categories: Mapped[list] = mapped_column(
        JSONType, default=list, nullable=False
    )

    # Display
    auto_apply: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    show_banner: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    banner_text: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    banner_color: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_BANNER_COLOR, nullable=False
    )

    # Limits
    min_purchase_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0.00"), nullable=False
    )
    max_discount_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2), nullable=True
    )
    usage_limit_total: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    usage_limit_per_customer: Mapped[int] = mapped_column(
        Integer, default=1, nullable=False
    )
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Validity
    valid_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    valid_until: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Active, inside the validity window, and under the total usage cap."""
        now = now or utc_now()
        if not self.is_active:
            return False
        if ensure_utc(self.valid_from) > now or ensure_utc(self.valid_until) < now:
            return False
        if self.usage_limit_total is not None and (self.usage_count or 0) >= self.usage_limit_total:
            return False
        return True

    def applies_to_product(self, product_id: str, category: Optional[str] = None) -> bool:
        scope = PromotionScope(self.scope)
        if scope == PromotionScope.GLOBAL:
            return True
        if scope == PromotionScope.PRODUCTS:
            return str(product_id) in {str(p) for p in (self.applicable_products or [])}
        if scope == PromotionScope.CATEGORIES:
            return category is not None and category in (self.applicable_categories or [])
        return False

    def calculate_discount(
        self,
        subtotal: Decimal,
        applicable_subtotal: Optional[Decimal] = None,
        now: Optional[datetime] = None,
    ) -> Decimal:
        """Discount for an order subtotal.

        Percentage promotions apply to ``applicable_subtotal`` when given (the
        part of the cart the promotion is scoped to). The result never exceeds
        ``max_discount_amount`` or the subtotal itself.
        """
        subtotal = to_decimal(subtotal)
        if not self.is_valid(now):
            return Decimal("0.00")
        if subtotal < to_decimal(self.min_purchase_amount):
            return Decimal("0.00")

        base = to_decimal(applicable_subtotal) if applicable_subtotal is not None else subtotal
        promotion_type = PromotionType(self.type)
        if promotion_type == PromotionType.PERCENTAGE:
            discount = base * Decimal(self.value) / Decimal(100)
        elif promotion_type == PromotionType.FIXED:
            discount = Decimal(self.value)
        else:
            # Free shipping is applied to the shipping line, not the subtotal
            discount = Decimal("0.00")

        if self.max_discount_amount is not None:
            discount = min(discount, Decimal(self.max_discount_amount))
        discount = min(discount, subtotal)
        return to_decimal(max(discount, Decimal("0.00")))

    def discounted_price(self, price: Decimal, now: Optional[datetime] = None) -> Decimal:
        """Single-item price after this promotion (ignores minimum purchase)."""
        price = to_decimal(price)
        if not self.is_valid(now):
            return price
        promotion_type = PromotionType(self.type)
        if promotion_type == PromotionType.PERCENTAGE:
            discount = price * Decimal(self.value) / Decimal(100)
        elif promotion_type == PromotionType.FIXED:
            discount = Decimal(self.value)
        else:
            return price
        if self.max_discount_amount is not None:
            discount = min(discount, Decimal(self.max_discount_amount))
        return to_decimal(max(price - discount, Decimal("0.00")))

    @property
    def is_free_shipping(self) -> bool:
        return PromotionType(self.type) == PromotionType.FREE_SHIPPING

    def __repr__(self):
        return f"<Promotion {self.code or self.name}>"
