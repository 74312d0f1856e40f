"""Storefront analytics: event recording and the admin reporting queries."""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from libs.common.currency import as_float, to_decimal
from libs.common.datetime_utils import start_of_day, utc_now
from libs.common.logging import get_logger
from services.store_service.models import (
    AnalyticsEvent,
    AnalyticsEventType,
    DailySummary,
    DeviceType,
    Order,
    PaymentStatus,
)
from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from user_agents import parse as parse_ua

logger = get_logger(__name__)

PERIODS = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}
DEFAULT_PERIOD = "7d"

TIMESERIES_METRICS = {
    "pageViews": AnalyticsEventType.PAGE_VIEW,
    "productViews": AnalyticsEventType.PRODUCT_VIEW,
    "addToCarts": AnalyticsEventType.ADD_TO_CART,
    "checkouts": AnalyticsEventType.CHECKOUT_COMPLETED,
    "searches": AnalyticsEventType.SEARCH,
}

ORGANIC_REFERRERS = re.compile(r"google|bing|yahoo|duckduckgo", re.IGNORECASE)
SOCIAL_REFERRERS = re.compile(r"facebook|instagram|twitter|tiktok|pinterest", re.IGNORECASE)


@dataclass
class ClientInfo:
    user_agent: str
    device_type: DeviceType
    browser: Optional[str]
    os: Optional[str]


def parse_user_agent(user_agent: Optional[str]) -> ClientInfo:
    """Device type, browser and OS from a User-Agent header."""
    user_agent = user_agent or ""
    if not user_agent:
        return ClientInfo("", DeviceType.UNKNOWN, None, None)

    ua = parse_ua(user_agent)
    if ua.is_tablet:
        device = DeviceType.TABLET
    elif ua.is_mobile:
        device = DeviceType.MOBILE
    else:
        device = DeviceType.DESKTOP

    browser = ua.browser.family if ua.browser.family != "Other" else None
    os_name = ua.os.family if ua.os.family != "Other" else None
    return ClientInfo(user_agent[:512], device, browser, os_name)


def classify_referrer(referrer: Optional[str]) -> str:
    if not referrer:
        return "direct"
    if ORGANIC_REFERRERS.search(referrer):
        return "organic"
    if SOCIAL_REFERRERS.search(referrer):
        return "social"
    return "referral"


def period_window(period: Optional[str], now: Optional[datetime] = None) -> tuple[str, datetime, datetime]:
    """(period, start, end) for a period key; unknown keys use the default."""
    now = now or utc_now()
    if period not in PERIODS:
        period = DEFAULT_PERIOD
    return period, now - PERIODS[period], now


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


async def record_event(
    db: AsyncSession,
    event_type: AnalyticsEventType,
    *,
    user_agent: Optional[str] = None,
    **fields: Any,
) -> Optional[AnalyticsEvent]:
    """Persist an event. Failures are logged and swallowed; tracking never breaks a request."""
    try:
        client = parse_user_agent(user_agent)
        metadata = fields.pop("metadata", None) or {}
        event = AnalyticsEvent(
            event_type=event_type,
            user_agent=client.user_agent or None,
            device_type=client.device_type,
            browser=client.browser,
            os=client.os,
            event_metadata=metadata,
            **fields,
        )
        db.add(event)
        await db.commit()
        return event
    except Exception as e:
        logger.error("Error tracking analytics event %s: %s", getattr(event_type, "value", event_type), e)
        await db.rollback()
        return None


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


def _in_window(start: datetime, end: datetime):
    return (AnalyticsEvent.created_at >= start, AnalyticsEvent.created_at <= end)


async def count_events(
    db: AsyncSession, event_type: AnalyticsEventType, start: datetime, end: datetime
) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(AnalyticsEvent)
        .where(AnalyticsEvent.event_type == event_type, *_in_window(start, end))
    )
    return result.scalar_one()


async def count_distinct(db: AsyncSession, column, start: datetime, end: datetime, *criteria) -> int:
    result = await db.execute(
        select(func.count(distinct(column))).where(
            column.is_not(None), *_in_window(start, end), *criteria
        )
    )
    return result.scalar_one()


async def revenue_between(db: AsyncSession, start: datetime, end: datetime) -> tuple[Decimal, int]:
    """Revenue and order count of paid orders created in the window."""
    result = await db.execute(
        select(func.coalesce(func.sum(Order.total), 0), func.count(Order.id)).where(
            Order.payment_status == PaymentStatus.COMPLETED,
            Order.created_at >= start,
            Order.created_at <= end,
        )
    )
    revenue, count = result.one()
    return to_decimal(revenue), count


async def overview(db: AsyncSession, period: Optional[str] = None) -> dict:
    period, start, end = period_window(period)

    counts = {
        name: await count_events(db, event_type, start, end)
        for name, event_type in (
            ("pageViews", AnalyticsEventType.PAGE_VIEW),
            ("productViews", AnalyticsEventType.PRODUCT_VIEW),
            ("addToCarts", AnalyticsEventType.ADD_TO_CART),
            ("checkoutsCompleted", AnalyticsEventType.CHECKOUT_COMPLETED),
            ("searches", AnalyticsEventType.SEARCH),
        )
    }
    unique_visitors = await count_distinct(db, AnalyticsEvent.visitor_id, start, end)
    revenue, order_count = await revenue_between(db, start, end)
    average = revenue / order_count if order_count else Decimal("0")
    conversion = (order_count / unique_visitors * 100) if unique_visitors else 0.0

    return {
        "period": period,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "metrics": {
            **counts,
            "uniqueVisitors": unique_visitors,
            "revenue": as_float(revenue),
            "orderCount": order_count,
            "averageOrderValue": as_float(average),
            "conversionRate": round(conversion, 2),
        },
    }


async def timeseries(db: AsyncSession, period: Optional[str] = None, metric: Optional[str] = None) -> dict:
    """Daily counts for one metric with missing days filled with zero."""
    period, start, end = period_window(period)
    if metric not in TIMESERIES_METRICS:
        metric = "pageViews"

    day = func.date(AnalyticsEvent.created_at)
    result = await db.execute(
        select(day, func.count())
        .where(AnalyticsEvent.event_type == TIMESERIES_METRICS[metric], *_in_window(start, end))
        .group_by(day)
    )
    counts = {str(row[0]): row[1] for row in result.all()}

    series = []
    current = start.date()
    while current <= end.date():
        series.append(
            {
                "date": current.isoformat(),
                "label": f"{current:%b} {current.day}",
                "value": counts.get(current.isoformat(), 0),
            }
        )
        current += timedelta(days=1)

    return {"period": period, "metric": metric, "series": series}


async def _top_products_for(
    db: AsyncSession, event_type: AnalyticsEventType, start: datetime, end: datetime, limit: int
) -> list[dict]:
    count = func.count().label("count")
    result = await db.execute(
        select(
            AnalyticsEvent.product_id,
            func.max(AnalyticsEvent.product_name),
            func.max(AnalyticsEvent.product_category),
            count,
            func.coalesce(func.sum(AnalyticsEvent.quantity), 0),
        )
        .where(
            AnalyticsEvent.event_type == event_type,
            AnalyticsEvent.product_id.is_not(None),
            *_in_window(start, end),
        )
        .group_by(AnalyticsEvent.product_id)
        .order_by(count.desc())
        .limit(limit)
    )
    return [
        {
            "product_id": str(product_id),
            "name": name,
            "category": category,
            "count": total,
            "quantity": int(quantity or 0),
        }
        for product_id, name, category, total, quantity in result.all()
    ]


async def top_products(db: AsyncSession, period: Optional[str] = None, limit: int = 10) -> dict:
    period, start, end = period_window(period)
    viewed = await _top_products_for(db, AnalyticsEventType.PRODUCT_VIEW, start, end, limit)
    added = await _top_products_for(db, AnalyticsEventType.ADD_TO_CART, start, end, limit)
    return {
        "topViewed": [
            {"product_id": p["product_id"], "name": p["name"], "category": p["category"], "views": p["count"]}
            for p in viewed
        ],
        "topAddedToCart": [
            {
                "product_id": p["product_id"],
                "name": p["name"],
                "category": p["category"],
                "addToCarts": p["count"],
                "totalQuantity": p["quantity"],
            }
            for p in added
        ],
    }


async def traffic_sources(db: AsyncSession, period: Optional[str] = None) -> dict:
    period, start, end = period_window(period)
    result = await db.execute(
        select(AnalyticsEvent.referrer, func.count())
        .where(AnalyticsEvent.event_type == AnalyticsEventType.PAGE_VIEW, *_in_window(start, end))
        .group_by(AnalyticsEvent.referrer)
    )
    sources = {"direct": 0, "organic": 0, "social": 0, "referral": 0}
    for referrer, count in result.all():
        sources[classify_referrer(referrer)] += count
    return sources


async def devices(db: AsyncSession, period: Optional[str] = None) -> dict:
    period, start, end = period_window(period)
    result = await db.execute(
        select(AnalyticsEvent.device_type, func.count())
        .where(AnalyticsEvent.event_type == AnalyticsEventType.PAGE_VIEW, *_in_window(start, end))
        .group_by(AnalyticsEvent.device_type)
    )
    breakdown = {device.value: 0 for device in DeviceType}
    for device_type, count in result.all():
        key = DeviceType(device_type).value if device_type else DeviceType.UNKNOWN.value
        breakdown[key] += count
    return breakdown


async def top_searches(db: AsyncSession, limit: int = 20) -> list[dict]:
    count = func.count().label("count")
    result = await db.execute(
        select(AnalyticsEvent.search_query, count, func.max(AnalyticsEvent.created_at))
        .where(
            AnalyticsEvent.event_type == AnalyticsEventType.SEARCH,
            AnalyticsEvent.search_query.is_not(None),
        )
        .group_by(AnalyticsEvent.search_query)
        .order_by(count.desc())
        .limit(limit)
    )
    return [
        {
            "query": query,
            "count": total,
            "last_searched": last.isoformat() if isinstance(last, datetime) else last,
        }
        for query, total, last in result.all()
    ]


async def promotion_usage(db: AsyncSession, period: Optional[str] = "30d") -> dict:
    period, start, end = period_window(period or "30d")
    uses = func.count().label("uses")
    result = await db.execute(
        select(
            AnalyticsEvent.promotion_code,
            uses,
            func.coalesce(func.sum(AnalyticsEvent.discount_amount), 0),
        )
        .where(
            AnalyticsEvent.event_type == AnalyticsEventType.PROMOTION_APPLIED,
            *_in_window(start, end),
        )
        .group_by(AnalyticsEvent.promotion_code)
        .order_by(uses.desc())
    )
    promotions = [
        {"code": code, "uses": total, "total_discount": as_float(discount)}
        for code, total, discount in result.all()
    ]
    return {
        "period": period,
        "promotions": promotions,
        "summary": {
            "total_uses": sum(p["uses"] for p in promotions),
            "total_discount": round(sum(p["total_discount"] for p in promotions), 2),
        },
    }


# ---------------------------------------------------------------------------
# Daily rollup
# ---------------------------------------------------------------------------


async def rollup_day(db: AsyncSession, day: date) -> DailySummary:
    """Compute the summary for one UTC day and upsert it."""
    start = start_of_day(day)
    end = start + timedelta(days=1) - timedelta(microseconds=1)

    summary = (
        await db.execute(select(DailySummary).where(DailySummary.date == day))
    ).scalar_one_or_none()
    if summary is None:
        summary = DailySummary(date=day)
        db.add(summary)

    summary.page_views = await count_events(db, AnalyticsEventType.PAGE_VIEW, start, end)
    summary.product_views = await count_events(db, AnalyticsEventType.PRODUCT_VIEW, start, end)
    summary.add_to_carts = await count_events(db, AnalyticsEventType.ADD_TO_CART, start, end)
    summary.remove_from_carts = await count_events(db, AnalyticsEventType.REMOVE_FROM_CART, start, end)
    summary.checkouts_started = await count_events(db, AnalyticsEventType.CHECKOUT_STARTED, start, end)
    summary.checkouts_completed = await count_events(db, AnalyticsEventType.CHECKOUT_COMPLETED, start, end)
    summary.promotions_applied = await count_events(db, AnalyticsEventType.PROMOTION_APPLIED, start, end)
    summary.searches = await count_events(db, AnalyticsEventType.SEARCH, start, end)

    summary.unique_visitors = await count_distinct(db, AnalyticsEvent.visitor_id, start, end)
    summary.sessions = await count_distinct(db, AnalyticsEvent.session_id, start, end)
    summary.unique_products_viewed = await count_distinct(
        db,
        AnalyticsEvent.product_id,
        start,
        end,
        AnalyticsEvent.event_type == AnalyticsEventType.PRODUCT_VIEW,
    )

    revenue, order_count = await revenue_between(db, start, end)
    summary.revenue = revenue
    summary.order_count = order_count
    summary.average_order_value = to_decimal(revenue / order_count) if order_count else Decimal("0.00")
    summary.conversion_rate = (
        to_decimal(Decimal(order_count) / summary.unique_visitors * 100)
        if summary.unique_visitors
        else Decimal("0.00")
    )

    discount = (
        await db.execute(
            select(func.coalesce(func.sum(AnalyticsEvent.discount_amount), 0)).where(
                AnalyticsEvent.event_type == AnalyticsEventType.PROMOTION_APPLIED,
                *_in_window(start, end),
            )
        )
    ).scalar_one()
    summary.total_discount = to_decimal(discount)

    top = await _top_products_for(db, AnalyticsEventType.PRODUCT_VIEW, start, end, 10)
    summary.top_products = [
        {"product_id": p["product_id"], "name": p["name"], "views": p["count"]} for p in top
    ]

    sources = {"direct": 0, "organic": 0, "social": 0, "referral": 0}
    breakdown = {device.value: 0 for device in DeviceType}
    result = await db.execute(
        select(AnalyticsEvent.referrer, AnalyticsEvent.device_type).where(
            AnalyticsEvent.event_type == AnalyticsEventType.PAGE_VIEW, *_in_window(start, end)
        )
    )
    for referrer, device_type in result.all():
        sources[classify_referrer(referrer)] += 1
        breakdown[DeviceType(device_type).value if device_type else DeviceType.UNKNOWN.value] += 1
    summary.traffic_sources = sources
    summary.devices = breakdown
    summary.updated_at = utc_now()

    await db.commit()
    logger.info(
        "Rolled up analytics for %s",
        day.isoformat(),
        extra={"extra_fields": {"page_views": summary.page_views, "orders": order_count}},
    )
    return summary
