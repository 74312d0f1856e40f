"""Integration tests for the back office: sign-in, catalog, orders, promotions and settings."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from libs.auth.models import AdminPrincipal
from libs.auth.tokens import create_admin_token
from libs.common.datetime_utils import utc_now
from services.store_service.models import (
    AdminRole,
    PaymentStatus,
    Product,
    Promotion,
    StoreSetting,
)
from services.store_service.printful_client import PrintfulError
from services.store_service.stripe_client import Refund, StripeError
from sqlalchemy import select
from tests.factories import (
    TEST_PASSWORD,
    AdminFactory,
    OrderFactory,
    ProductFactory,
    PromotionFactory,
)


def _headers_for(admin) -> dict:
    principal = AdminPrincipal(
        admin_id=str(admin.id), email=admin.email, name=admin.name, role=admin.role.value
    )
    return {"Authorization": f"Bearer {create_admin_token(principal)}"}


async def _add(db, obj):
    db.add(obj)
    await db.commit()
    return obj


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_login_starts_session(client, admin):
    response = await client.post(
        "/api/admin/login", json={"email": admin.email.upper(), "password": TEST_PASSWORD}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["data"]["token_type"] == "bearer"
    assert body["data"]["admin"]["email"] == admin.email

    me = await client.get("/api/admin/me")
    assert me.status_code == 200
    assert me.json()["data"]["id"] == str(admin.id)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_logout_clears_session(client, admin):
    await client.post("/api/admin/login", json={"email": admin.email, "password": TEST_PASSWORD})

    await client.post("/api/admin/logout")

    assert (await client.get("/api/admin/me")).status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_login_requires_both_fields(client):
    response = await client.post("/api/admin/login", json={"email": "a@test.com"})

    assert response.status_code == 400
    assert response.json()["message"] == "Email and password are required"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_login_unknown_email(client):
    response = await client.post(
        "/api/admin/login", json={"email": "nobody@test.com", "password": "x"}
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_fifth_failure_locks_account(client, db_session, admin):
    for _ in range(5):
        response = await client.post(
            "/api/admin/login", json={"email": admin.email, "password": "wrong"}
        )
        assert response.status_code == 401

    locked = await client.post(
        "/api/admin/login", json={"email": admin.email, "password": TEST_PASSWORD}
    )

    assert locked.status_code == 423
    await db_session.refresh(admin)
    assert admin.login_attempts == 5
    assert admin.lock_until is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_expired_lock_allows_login(client, db_session):
    admin = await _add(
        db_session,
        AdminFactory.create(login_attempts=5, lock_until=utc_now() - timedelta(minutes=1)),
    )

    response = await client.post(
        "/api/admin/login", json={"email": admin.email, "password": TEST_PASSWORD}
    )

    assert response.status_code == 200
    await db_session.refresh(admin)
    assert admin.login_attempts == 0
    assert admin.last_login is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_deactivated_admin_cannot_login(client, db_session):
    admin = await _add(db_session, AdminFactory.create(is_active=False))

    response = await client.post(
        "/api/admin/login", json={"email": admin.email, "password": TEST_PASSWORD}
    )

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_endpoints_require_auth(client):
    response = await client.get("/api/admin/products")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Authentication required"}


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_lists_unpurchasable_products(client, db_session, admin_headers):
    await _add(db_session, ProductFactory.create(synced=False, printful_base_cost=Decimal("12")))

    response = await client.get("/api/admin/products", headers=admin_headers)

    data = response.json()["data"]
    assert len(data) == 1
    assert data[0]["is_purchasable"] is False
    assert data[0]["profit_margin"] == 60.0
    assert data[0]["min_price"] == 30.0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product(client, db_session, admin_headers):
    payload = {
        "name": "Olive Tree Crewneck",
        "price": "42.00",
        "category": "sweatshirts",
        "tags": ["olive"],
        "images": [{"url": "https://img.test/a.png"}, {"url": "https://img.test/b.png"}],
        "variants": [{"size": "M", "stock": 5}, {"size": "L", "stock": 5}],
    }

    response = await client.post("/api/admin/products", json=payload, headers=admin_headers)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["slug"] == "olive-tree-crewneck"
    assert data["primary_image_url"] == "https://img.test/a.png"
    assert [v["size"] for v in data["variants"]] == ["M", "L"]
    assert data["is_purchasable"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product_duplicate_slug(client, db_session, admin_headers):
    await _add(db_session, ProductFactory.create(slug="roots-tee"))

    response = await client.post(
        "/api/admin/products",
        json={"name": "Roots Tee", "price": "30.00"},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "A product with this slug already exists"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_product(client, db_session, admin_headers):
    product = await _add(db_session, ProductFactory.create())

    response = await client.patch(
        f"/api/admin/products/{product.id}",
        json={"price": "35.00", "description": "Heavyweight cotton"},
        headers=admin_headers,
    )

    data = response.json()["data"]
    assert data["price"] == 35.0
    assert data["description"] == "Heavyweight cotton"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_toggle_product_flags(client, db_session, admin_headers):
    product = await _add(db_session, ProductFactory.create(is_featured=False))

    active = await client.post(
        f"/api/admin/products/{product.id}/toggle-active", headers=admin_headers
    )
    featured = await client.post(
        f"/api/admin/products/{product.id}/toggle-featured", headers=admin_headers
    )

    assert active.json()["data"] == {"is_active": False}
    assert featured.json()["data"] == {"is_featured": True}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_lock_variant_price(client, db_session, admin_headers):
    product = await _add(db_session, ProductFactory.create(sizes=("M",)))
    variant = product.variants[0]

    response = await client.put(
        f"/api/admin/products/{product.id}/variants",
        json={"variants": [{"variant_id": str(variant.id), "price": "36.00", "price_locked": True}]},
        headers=admin_headers,
    )

    assert response.status_code == 200
    await db_session.refresh(variant)
    assert variant.price == Decimal("36.00")
    assert variant.price_locked is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_variant_rejected(client, db_session, admin_headers):
    product = await _add(db_session, ProductFactory.create())

    response = await client.put(
        f"/api/admin/products/{product.id}/variants",
        json={"variants": [{"variant_id": str(uuid.uuid4()), "price": "1.00"}]},
        headers=admin_headers,
    )

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_product(client, db_session, admin_headers):
    product = await _add(db_session, ProductFactory.create())

    response = await client.delete(f"/api/admin/products/{product.id}", headers=admin_headers)

    assert response.json()["message"] == "Product deleted"
    assert (await db_session.execute(select(Product))).scalars().all() == []


# ---------------------------------------------------------------------------
# Printful sync
# ---------------------------------------------------------------------------


def _sync_details(sync_id=42, price="31.00"):
    return {
        "sync_product": {
            "id": sync_id,
            "name": "Sunbird Hoodie",
            "external_id": "ext-42",
            "thumbnail_url": "https://files.test/sunbird.png",
        },
        "sync_variants": [
            {
                "id": 9001,
                "variant_id": 4011,
                "size": "M",
                "color": "Black",
                "retail_price": price,
                "cost": "19.50",
                "product": {"name": "Hoodie | Gildan 18500"},
            },
            {
                "id": 9002,
                "variant_id": 4012,
                "size": "2XL",
                "color": "Black",
                "retail_price": "34.00",
                "product": {"name": "Hoodie | Gildan 18500"},
            },
        ],
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_printful_sync_creates_products(client, db_session, admin_headers, printful_mock):
    printful_mock.get_sync_products.return_value = [{"id": 42}]
    printful_mock.get_sync_product.return_value = _sync_details()

    response = await client.post("/api/admin/printful/sync", headers=admin_headers)

    data = response.json()["data"]
    assert data["created"] == 1
    assert data["synced"] == 1
    assert data["errors"] == 0

    product = (await db_session.execute(select(Product))).scalar_one()
    assert product.slug == "sunbird-hoodie"
    assert product.printful_sync_product_id == 42
    assert product.price == Decimal("31.00")
    assert product.is_purchasable
    assert {v.printful_sync_variant_id for v in product.variants} == {9001, 9002}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_printful_sync_keeps_locked_prices(client, db_session, admin_headers, printful_mock):
    printful_mock.get_sync_products.return_value = [{"id": 42}]
    printful_mock.get_sync_product.return_value = _sync_details()
    await client.post("/api/admin/printful/sync", headers=admin_headers)
    product = (await db_session.execute(select(Product))).scalar_one()
    medium = product.find_variant("M", "Black")
    await client.put(
        f"/api/admin/products/{product.id}/variants",
        json={"variants": [{"variant_id": str(medium.id), "price": "40.00", "price_locked": True}]},
        headers=admin_headers,
    )

    printful_mock.get_sync_product.return_value = _sync_details(price="29.00")
    response = await client.post("/api/admin/printful/sync", headers=admin_headers)

    assert response.json()["data"]["updated"] == 1
    product = (
        await db_session.execute(select(Product).execution_options(populate_existing=True))
    ).scalar_one()
    assert product.find_variant("M", "Black").price == Decimal("40.00")
    assert product.find_variant("2XL", "Black").price == Decimal("34.00")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_printful_sync_counts_failures(client, admin_headers, printful_mock):
    printful_mock.get_sync_products.return_value = [{"id": 1}, {"id": 2}]
    printful_mock.get_sync_product.side_effect = [
        PrintfulError("Not found", status_code=404),
        _sync_details(sync_id=2),
    ]

    response = await client.post("/api/admin/printful/sync", headers=admin_headers)

    data = response.json()["data"]
    assert data["errors"] == 1
    assert data["created"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_printful_sync_unreachable(client, admin_headers, printful_mock):
    printful_mock.get_sync_products.side_effect = PrintfulError("Unauthorized", status_code=401)

    response = await client.post("/api/admin/printful/sync", headers=admin_headers)

    assert response.status_code == 502


@pytest.mark.asyncio
@pytest.mark.integration
async def test_printful_status_without_client(client, db_session, admin_headers):
    await _add(db_session, ProductFactory.create())
    await _add(db_session, ProductFactory.create(synced=False))

    response = await client.get("/api/admin/printful/status", headers=admin_headers)

    data = response.json()["data"]
    assert data["printful_connected"] is False
    assert data["local_products"] == 2
    assert data["synced_products"] == 1
    assert data["unsynced_products"] == 1


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_orders_includes_customer_details(client, db_session, admin_headers):
    order = await _add(db_session, OrderFactory.create())

    response = await client.get("/api/admin/orders", headers=admin_headers)

    data = response.json()["data"]
    assert data[0]["order_number"] == order.order_number
    assert data[0]["customer_email"] == "buyer@test.com"
    assert data[0]["payment_status"] == "completed"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_partial_refund(client, db_session, admin_headers, stripe_mock):
    order = await _add(db_session, OrderFactory.create())

    response = await client.post(
        f"/api/admin/orders/{order.id}/refund",
        json={"amount": "20.00", "reason": "Damaged print"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["data"]["refund_id"] == "re_test_123"
    stripe_mock.create_refund.assert_awaited_once_with(
        order.stripe_payment_intent_id, amount_cents=2000
    )
    await db_session.refresh(order)
    assert order.refunded_amount == Decimal("20.00")
    assert order.payment_status == PaymentStatus.REFUNDED
    assert order.notes == "Damaged print"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_full_refund_sends_no_amount(client, db_session, admin_headers, stripe_mock):
    stripe_mock.create_refund.return_value = Refund(
        id="re_full", status="succeeded", amount=7349, payment_intent="pi_x"
    )
    order = await _add(db_session, OrderFactory.create())

    await client.post(f"/api/admin/orders/{order.id}/refund", json={}, headers=admin_headers)

    assert stripe_mock.create_refund.await_args.kwargs["amount_cents"] is None
    await db_session.refresh(order)
    assert order.refunded_amount == Decimal("73.49")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_refund_over_total_rejected(client, db_session, admin_headers, stripe_mock):
    order = await _add(db_session, OrderFactory.create())

    response = await client.post(
        f"/api/admin/orders/{order.id}/refund", json={"amount": "100.00"}, headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Refund amount must be between $0.01 and $73.49"
    stripe_mock.create_refund.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_refund_requires_paid_order(client, db_session, admin_headers):
    order = await _add(db_session, OrderFactory.create(payment_status=PaymentStatus.PENDING))

    response = await client.post(
        f"/api/admin/orders/{order.id}/refund", json={}, headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Only paid orders can be refunded"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_refund_stripe_failure(client, db_session, admin_headers, stripe_mock):
    stripe_mock.create_refund.side_effect = StripeError("charge_already_refunded", status_code=400)
    order = await _add(db_session, OrderFactory.create())

    response = await client.post(
        f"/api/admin/orders/{order.id}/refund", json={}, headers=admin_headers
    )

    assert response.status_code == 502
    assert response.json()["message"] == "Refund failed: charge_already_refunded"
    await db_session.refresh(order)
    assert order.payment_status == PaymentStatus.COMPLETED


@pytest.mark.asyncio
@pytest.mark.integration
async def test_refresh_unlinked_order(client, db_session, admin_headers):
    order = await _add(db_session, OrderFactory.create(printful_order_id=None))

    response = await client.post(
        f"/api/admin/orders/{order.id}/refresh", headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Order not linked to Printful"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_refresh_linked_order(client, db_session, admin_headers, printful_mock):
    order = await _add(db_session, OrderFactory.create(printful_order_id=555001))
    printful_mock.get_order.return_value = {
        "status": "partial",
        "shipments": [{"tracking_number": "1Z1", "carrier": "UPS"}],
    }

    response = await client.post(
        f"/api/admin/orders/{order.id}/refresh", headers=admin_headers
    )

    data = response.json()["data"]
    assert data["fulfillment_status"] == "shipped"
    assert data["tracking_number"] == "1Z1"


# ---------------------------------------------------------------------------
# Promotions
# ---------------------------------------------------------------------------


def _promotion_payload(**overrides):
    now = utc_now()
    payload = {
        "name": "Spring Sale",
        "code": "spring15",
        "description": "15% off everything",
        "type": "percentage",
        "value": "15",
        "valid_from": now.isoformat(),
        "valid_until": (now + timedelta(days=14)).isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_promotion_normalizes_code(client, db_session, admin_headers):
    response = await client.post(
        "/api/admin/promotions", json=_promotion_payload(), headers=admin_headers
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["code"] == "SPRING15"
    assert data["is_currently_valid"] is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_promotion_duplicate_code(client, db_session, admin_headers):
    await _add(db_session, PromotionFactory.create(code="SPRING15"))

    response = await client.post(
        "/api/admin/promotions", json=_promotion_payload(), headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == "A promotion with this code already exists"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_promotion_window_must_be_ordered(client, admin_headers):
    now = utc_now()
    response = await client.post(
        "/api/admin/promotions",
        json=_promotion_payload(
            valid_from=now.isoformat(), valid_until=(now - timedelta(days=1)).isoformat()
        ),
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "End date must be after start date"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_toggle_and_delete_promotion(client, db_session, admin_headers):
    promo = await _add(db_session, PromotionFactory.create())

    updated = await client.patch(
        f"/api/admin/promotions/{promo.id}",
        json={"value": "25", "banner_text": "25% off"},
        headers=admin_headers,
    )
    toggled = await client.post(f"/api/admin/promotions/{promo.id}/toggle", headers=admin_headers)
    deleted = await client.delete(f"/api/admin/promotions/{promo.id}", headers=admin_headers)

    assert updated.json()["data"]["value"] == 25.0
    assert toggled.json()["data"] == {"is_active": False}
    assert deleted.json()["message"] == "Promotion deleted"
    assert (await db_session.execute(select(Promotion))).scalars().all() == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_promotion_product_picker(client, db_session, admin_headers):
    product = await _add(db_session, ProductFactory.create(name="Roots Tee"))

    response = await client.get("/api/admin/promotions/products", headers=admin_headers)

    assert response.json()["data"] == [
        {"id": str(product.id), "name": "Roots Tee", "category": "tshirts", "price": 30.0}
    ]


# ---------------------------------------------------------------------------
# Settings and dashboard
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_settings(client, db_session, admin_headers):
    response = await client.put(
        "/api/admin/settings",
        json={"settings": {"donation_per_purchase": 3, "store_announcement": "Free stickers"}},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["donation_per_purchase"] == 3
    assert data["store_announcement"] == "Free stickers"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_setting_rejects_whole_update(client, db_session, admin_headers):
    response = await client.put(
        "/api/admin/settings",
        json={"settings": {"store_phone": "555-0100", "favourite_colour": "red"}},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert (await db_session.execute(select(StoreSetting))).scalars().all() == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_manager_cannot_change_settings(client, db_session):
    manager = await _add(db_session, AdminFactory.create(role=AdminRole.MANAGER))

    read = await client.get("/api/admin/settings", headers=_headers_for(manager))
    write = await client.put(
        "/api/admin/settings",
        json={"settings": {"store_phone": "555-0100"}},
        headers=_headers_for(manager),
    )

    assert read.status_code == 200
    assert write.status_code == 403
    assert write.json()["message"] == "Insufficient permissions"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_dashboard_summary(client, db_session, admin_headers):
    await _add(db_session, ProductFactory.create())
    await _add(db_session, ProductFactory.create(is_active=False, synced=False))
    await _add(db_session, OrderFactory.create())
    await _add(
        db_session,
        OrderFactory.create(payment_status=PaymentStatus.FAILED, fulfillment_status="cancelled"),
    )

    response = await client.get("/api/admin/dashboard", headers=admin_headers)

    data = response.json()["data"]
    assert data["products"] == {"total": 2, "active": 1, "synced": 1}
    assert data["orders"] == {"total": 2, "pending_fulfillment": 1}
    assert data["revenue"] == 73.49
    assert len(data["recent_orders"]) == 2
