"""Integration tests for the session cart, checkout and order status endpoints."""

from datetime import timedelta
from decimal import Decimal

import pytest
from libs.common.datetime_utils import utc_now
from services.store_service.models import (
    AnalyticsEvent,
    AnalyticsEventType,
    Cart,
    Order,
    PaymentStatus,
    PromotionType,
)
from services.store_service.printful_client import PrintfulError
from services.store_service.stripe_client import PaymentIntent, StripeError
from sqlalchemy import select
from tests.factories import OrderFactory, ProductFactory, PromotionFactory, VariantFactory

CUSTOMER = {"email": "Buyer@Test.com", "first_name": "Lina", "last_name": "Haddad"}
ADDRESS = {
    "line1": "1 Olive St",
    "city": "Austin",
    "state": "TX",
    "postal_code": "78701",
    "country": "us",
}


async def _product(db, **overrides):
    product = ProductFactory.create(**overrides)
    db.add(product)
    await db.commit()
    return product


async def _add_to_cart(client, product, size="M", quantity=1):
    response = await client.post(
        "/api/cart/items",
        json={"product_id": str(product.id), "size": size, "quantity": quantity},
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


def _confirm_payload(**overrides):
    payload = {
        "payment_intent_id": "pi_test_123",
        "customer": CUSTOMER,
        "shipping_address": ADDRESS,
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_empty_cart(client):
    response = await client.get("/api/cart")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["items"] == []
    assert data["subtotal"] == 0.0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_to_cart_persists_across_requests(client, db_session):
    product = await _product(db_session, price=Decimal("29.99"))

    added = await _add_to_cart(client, product, quantity=2)
    fetched = (await client.get("/api/cart")).json()["data"]

    assert added["item_count"] == 2
    assert fetched["subtotal"] == 59.98
    assert fetched["items"][0]["product_name"] == product.name
    assert fetched["items"][0]["line_total"] == 59.98


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_to_cart_records_event(client, db_session):
    product = await _product(db_session)

    await _add_to_cart(client, product)

    event = (await db_session.execute(select(AnalyticsEvent))).scalar_one()
    assert event.event_type == AnalyticsEventType.ADD_TO_CART
    assert event.product_id == product.id
    assert event.session_id


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_to_cart_insufficient_stock(client, db_session):
    product = await _product(db_session, variants=[VariantFactory.create(size="M", stock=1)])

    response = await client.post(
        "/api/cart/items", json={"product_id": str(product.id), "size": "M", "quantity": 2}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Insufficient stock"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_unsynced_product_rejected(client, db_session):
    product = await _product(db_session, synced=False)

    response = await client.post(
        "/api/cart/items", json={"product_id": str(product.id), "size": "M"}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "This product is not available for purchase"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_and_remove_cart_item(client, db_session):
    product = await _product(db_session)
    item_id = (await _add_to_cart(client, product))["items"][0]["id"]

    updated = await client.patch(f"/api/cart/items/{item_id}", json={"quantity": 3})
    removed = await client.delete(f"/api/cart/items/{item_id}")

    assert updated.json()["data"]["items"][0]["quantity"] == 3
    assert removed.json()["data"]["items"] == []
    assert removed.json()["message"] == "Item removed from cart"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cart_drops_lines_that_became_unavailable(client, db_session):
    product = await _product(db_session, name="Retired Tee")
    await _add_to_cart(client, product)
    product.printful_sync_product_id = None
    await db_session.commit()

    data = (await client.get("/api/cart")).json()["data"]

    assert data["items"] == []
    assert data["removed_items"] == ["Retired Tee"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_carts_are_per_session(client, db_session):
    product = await _product(db_session)
    await _add_to_cart(client, product)

    client.cookies.clear()
    response = await client.get("/api/cart")

    assert response.json()["data"]["items"] == []


# ---------------------------------------------------------------------------
# Shipping and payment intent
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_calculate_shipping_requires_items(client):
    response = await client.post("/api/checkout/calculate-shipping", json={})

    assert response.status_code == 400
    assert response.json()["message"] == "Cart is empty"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_calculate_shipping_region_rates(client, db_session):
    product = await _product(db_session, price=Decimal("30.00"))
    await _add_to_cart(client, product)

    response = await client.post(
        "/api/checkout/calculate-shipping", json={"shipping_address": {"country": "ca"}}
    )

    data = response.json()["data"]
    assert data["shipping"] == 10.19
    assert data["shipping_source"] == "region"
    assert data["total"] == 45.19


@pytest.mark.asyncio
@pytest.mark.integration
async def test_calculate_shipping_live_quote(client, db_session, use_printful):
    use_printful.get_standard_shipping_rate.return_value = Decimal("4.75")
    product = await _product(db_session, price=Decimal("30.00"))
    await _add_to_cart(client, product)

    response = await client.post(
        "/api/checkout/calculate-shipping", json={"shipping_address": ADDRESS}
    )

    data = response.json()["data"]
    assert data["shipping"] == 4.75
    assert data["shipping_source"] == "printful"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_session_charges_full_total(client, db_session, stripe_mock):
    product = await _product(db_session, price=Decimal("30.00"))
    await _add_to_cart(client, product, quantity=2)

    response = await client.post(
        "/api/checkout/create-session", json={"shipping_address": {"country": "US"}}
    )

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["client_secret"] == "pi_test_123_secret"
    assert data["totals"]["total"] == 73.49
    assert stripe_mock.create_payment_intent.await_args.args[0] == 7349


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_session_stripe_failure(client, db_session, stripe_mock):
    stripe_mock.create_payment_intent.side_effect = StripeError("card_declined", status_code=402)
    product = await _product(db_session)
    await _add_to_cart(client, product)

    response = await client.post("/api/checkout/create-session", json={})

    assert response.status_code == 502
    assert response.json()["message"] == "Failed to create checkout session"


# ---------------------------------------------------------------------------
# Confirmation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_confirm_creates_order_and_clears_cart(client, db_session):
    product = await _product(db_session, price=Decimal("30.00"))
    await _add_to_cart(client, product, quantity=2)

    response = await client.post("/api/checkout/confirm", json=_confirm_payload())

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["order_number"].startswith("48R-")
    assert data["total"] == 73.49
    assert data["donation_amount"] == 5.0
    assert data["status"] == "pending"

    order = (await db_session.execute(select(Order))).scalar_one()
    assert order.customer_email == "buyer@test.com"
    assert order.payment_status == PaymentStatus.COMPLETED
    assert order.total == Decimal("73.49")
    assert order.shipping_address["country"] == "US"
    assert order.items[0].quantity == 2
    assert "manual fulfillment" in order.fulfillment_notes

    assert (await db_session.execute(select(Cart))).scalars().all() == []
    assert product.sales_count == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_confirm_submits_to_printful(client, db_session, use_printful):
    product = await _product(db_session)
    await _add_to_cart(client, product)

    response = await client.post("/api/checkout/confirm", json=_confirm_payload())

    assert response.json()["data"]["status"] == "processing"
    kwargs = use_printful.create_order.await_args.kwargs
    assert kwargs["recipient"].country_code == "US"
    assert kwargs["items"][0]["sync_variant_id"] == product.find_variant("M").printful_sync_variant_id
    order = (await db_session.execute(select(Order))).scalar_one()
    assert order.printful_order_id == 555001


@pytest.mark.asyncio
@pytest.mark.integration
async def test_printful_failure_does_not_fail_checkout(client, db_session, use_printful):
    use_printful.create_order.side_effect = PrintfulError("Recipient address invalid", status_code=400)
    product = await _product(db_session)
    await _add_to_cart(client, product)

    response = await client.post("/api/checkout/confirm", json=_confirm_payload())

    assert response.status_code == 200
    order = (await db_session.execute(select(Order))).scalar_one()
    assert order.printful_order_id is None
    assert "Recipient address invalid" in order.fulfillment_notes


@pytest.mark.asyncio
@pytest.mark.integration
async def test_confirm_requires_succeeded_payment(client, db_session, stripe_mock):
    stripe_mock.retrieve_payment_intent.return_value = PaymentIntent(
        id="pi_test_123", status="requires_payment_method", amount=0, currency="usd"
    )
    product = await _product(db_session)
    await _add_to_cart(client, product)

    response = await client.post("/api/checkout/confirm", json=_confirm_payload())

    assert response.status_code == 400
    assert response.json()["message"] == "Payment not completed"
    assert (await db_session.execute(select(Order))).scalars().all() == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_confirm_unverifiable_payment(client, db_session, stripe_mock):
    stripe_mock.retrieve_payment_intent.side_effect = StripeError("No such payment_intent")
    product = await _product(db_session)
    await _add_to_cart(client, product)

    response = await client.post("/api/checkout/confirm", json=_confirm_payload())

    assert response.status_code == 502
    assert response.json()["message"] == "Could not verify payment"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_confirm_with_promotion_code(client, db_session):
    promo = PromotionFactory.create(code="ROOTS10", value=Decimal("10"))
    db_session.add(promo)
    product = await _product(db_session, price=Decimal("30.00"))
    await _add_to_cart(client, product, quantity=2)

    response = await client.post(
        "/api/checkout/confirm", json=_confirm_payload(promotion_code="roots10")
    )

    data = response.json()["data"]
    assert data["discount_amount"] == 6.0
    assert data["discount_code"] == "ROOTS10"
    assert data["total"] == 67.49
    assert promo.usage_count == 1
    types = (await db_session.execute(select(AnalyticsEvent.event_type))).scalars().all()
    assert AnalyticsEventType.PROMOTION_APPLIED in types


@pytest.mark.asyncio
@pytest.mark.integration
async def test_confirm_rejects_expired_promotion(client, db_session):
    db_session.add(
        PromotionFactory.create(code="OLD", valid_until=utc_now() - timedelta(days=1))
    )
    product = await _product(db_session)
    await _add_to_cart(client, product)

    response = await client.post("/api/checkout/confirm", json=_confirm_payload(promotion_code="OLD"))

    assert response.status_code == 400
    assert response.json()["message"] == "This promotion has expired or is no longer valid"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_free_shipping_auto_promotion(client, db_session):
    db_session.add(
        PromotionFactory.create(
            code=None, auto_apply=True, type=PromotionType.FREE_SHIPPING, value=Decimal("0")
        )
    )
    product = await _product(db_session, price=Decimal("30.00"))
    await _add_to_cart(client, product)

    response = await client.post("/api/checkout/confirm", json=_confirm_payload())

    data = response.json()["data"]
    assert data["shipping_cost"] == 0.0
    assert data["total"] == 35.0


# ---------------------------------------------------------------------------
# Order status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_status_with_tracking(client, db_session):
    order = OrderFactory.create(
        fulfillment_status="shipped", tracking_number="1Z999", tracking_carrier="UPS"
    )
    db_session.add(order)
    await db_session.commit()

    response = await client.get(f"/api/orders/{order.order_number}")

    data = response.json()["data"]
    assert data["status_label"] == "Shipped"
    assert data["tracking"]["url"] == "https://www.ups.com/track?tracknum=1Z999"
    assert "customer_email" not in data


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_order(client):
    response = await client.get("/api/orders/48R-0-XXXXX")
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_refresh_order_from_printful(client, db_session, printful_mock):
    order = OrderFactory.create(printful_order_id=555001, fulfillment_status="processing")
    db_session.add(order)
    await db_session.commit()
    printful_mock.get_order.return_value = {"status": "fulfilled", "shipments": []}

    response = await client.post(f"/api/orders/{order.order_number}/refresh")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "delivered"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_refresh_order_without_printful_link(client, db_session):
    order = OrderFactory.create(printful_order_id=None)
    db_session.add(order)
    await db_session.commit()

    response = await client.post(f"/api/orders/{order.order_number}/refresh")

    assert response.status_code == 400
