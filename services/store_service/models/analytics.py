"""Analytics models: append-only event log and daily rollups."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.store_service.models.enums import (
    AnalyticsEventType,
    DeviceType,
    enum_values,
)
from sqlalchemy import Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class AnalyticsEvent(Base):
    """A single tracked storefront event."""

    __tablename__ = "store_analytics_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    event_type: Mapped[AnalyticsEventType] = mapped_column(
        SAEnum(
            AnalyticsEventType,
            values_callable=enum_values,
            name="store_analytics_event_type_enum",
        ),
        nullable=False,
    )

    # Session / visitor
    session_id: Mapped[Optional[str]] = mapped_column(String(128), index=True, nullable=True)
    visitor_id: Mapped[Optional[str]] = mapped_column(String(128), index=True, nullable=True)

    # Page
    page: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    referrer: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    # Product (no FK; events outlive deleted products)
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, index=True, nullable=True)
    product_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    product_category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    product_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    # Cart
    quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cart_total: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    # Order
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    order_number: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    order_total: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    # Promotion
    promotion_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    promotion_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    discount_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    # Search
    search_query: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    search_results_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Device / browser
    user_agent: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    device_type: Mapped[DeviceType] = mapped_column(
        SAEnum(
            DeviceType,
            values_callable=enum_values,
            name="store_device_type_enum",
        ),
        default=DeviceType.UNKNOWN,
        nullable=False,
    )
    browser: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    os: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    event_metadata: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )

    __table_args__ = (
        Index("ix_store_analytics_events_type_created", "event_type", "created_at"),
        Index(
            "ix_store_analytics_events_product_type_created",
            "product_id",
            "event_type",
            "created_at",
        ),
    )

    def __repr__(self):
        return f"<AnalyticsEvent {self.event_type} {self.created_at}>"


class DailySummary(Base):
    """Pre-aggregated stats for one UTC day."""

    __tablename__ = "store_analytics_daily_summaries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    date: Mapped[date] = mapped_column(Date, unique=True, index=True, nullable=False)

    # Traffic
    page_views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unique_visitors: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sessions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Products and cart
    product_views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unique_products_viewed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    add_to_carts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    remove_from_carts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Checkout
    checkouts_started: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    checkouts_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    conversion_rate: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), default=Decimal("0.00"), nullable=False
    )

    # Revenue
    revenue: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )
    order_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    average_order_value: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0.00"), nullable=False
    )

    # Promotions / search
    promotions_applied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_discount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0.00"), nullable=False
    )
    searches: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    top_products: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    traffic_sources: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    devices: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<DailySummary {self.date}>"
