"""Unit tests for cart_service and checkout pricing.

Tests call the service functions directly with the db_session fixture.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from libs.common.datetime_utils import utc_now
from libs.common.error_handler import StoreError
from services.store_service.models import Cart, PromotionType
from services.store_service.services import cart_service
from services.store_service.services.checkout import price_cart, shipping_items
from tests.factories import ProductFactory, PromotionFactory, VariantFactory

SESSION = "sess-cart-unit"


async def _add_product(db, **overrides):
    product = ProductFactory.create(**overrides)
    db.add(product)
    await db.commit()
    return product


# ---------------------------------------------------------------------------
# add_item
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_add_item_creates_cart_with_captured_price(db_session):
    product = await _add_product(db_session, price=Decimal("29.99"))

    cart, _ = await cart_service.add_item(db_session, SESSION, product.id, "M", 2)

    assert len(cart.items) == 1
    assert cart.items[0].price == Decimal("29.99")
    assert cart.subtotal == Decimal("59.98")
    assert cart.item_count == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_add_same_variant_merges_lines(db_session):
    product = await _add_product(db_session)

    await cart_service.add_item(db_session, SESSION, product.id, "M", 1)
    cart, _ = await cart_service.add_item(db_session, SESSION, product.id, "M", 2)

    assert len(cart.items) == 1
    assert cart.items[0].quantity == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_variant_price_override_is_captured(db_session):
    product = await _add_product(
        db_session,
        price=Decimal("30.00"),
        variants=[VariantFactory.create(size="3XL", price=Decimal("34.00"))],
    )

    cart, _ = await cart_service.add_item(db_session, SESSION, product.id, "3XL")

    assert cart.items[0].price == Decimal("34.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_add_item_rejects_unsynced_product(db_session):
    product = await _add_product(db_session, synced=False)

    with pytest.raises(StoreError) as exc:
        await cart_service.add_item(db_session, SESSION, product.id, "M")

    assert exc.value.status_code == 400
    assert exc.value.message == "This product is not available for purchase"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_add_item_rejects_unsynced_variant(db_session):
    product = await _add_product(
        db_session, variants=[VariantFactory.create(size="M", printful_sync_variant_id=None)]
    )

    with pytest.raises(StoreError) as exc:
        await cart_service.add_item(db_session, SESSION, product.id, "M")

    assert exc.value.message == "This variant is not available for purchase"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_add_item_unknown_variant(db_session):
    product = await _add_product(db_session, sizes=("S",))

    with pytest.raises(StoreError) as exc:
        await cart_service.add_item(db_session, SESSION, product.id, "XL")

    assert exc.value.message == "Variant not found"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_merged_quantity_checked_against_stock(db_session):
    product = await _add_product(db_session, variants=[VariantFactory.create(size="M", stock=3)])
    await cart_service.add_item(db_session, SESSION, product.id, "M", 2)

    with pytest.raises(StoreError) as exc:
        await cart_service.add_item(db_session, SESSION, product.id, "M", 2)

    assert exc.value.message == "Insufficient stock"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_zero_quantity_rejected(db_session):
    product = await _add_product(db_session)

    with pytest.raises(StoreError):
        await cart_service.add_item(db_session, SESSION, product.id, "M", 0)


# ---------------------------------------------------------------------------
# Updates, expiry and validation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_to_zero_removes_line(db_session):
    product = await _add_product(db_session)
    cart, _ = await cart_service.add_item(db_session, SESSION, product.id, "M", 2)

    cart = await cart_service.update_item(db_session, SESSION, cart.items[0].id, 0)

    assert cart.items == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_expired_cart_is_discarded(db_session):
    db_session.add(Cart(session_id=SESSION, items=[], expires_at=utc_now() - timedelta(minutes=1)))
    await db_session.commit()

    assert await cart_service.load_cart(db_session, SESSION) is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_ensure_purchasable_reports_each_bad_line(db_session):
    product = await _add_product(db_session, name="Olive Tree Crewneck")
    cart, _ = await cart_service.add_item(db_session, SESSION, product.id, "M")
    product.is_active = False
    await db_session.commit()

    with pytest.raises(StoreError) as exc:
        cart_service.ensure_purchasable(cart)

    assert exc.value.data["errors"][0]["product_name"] == "Olive Tree Crewneck"
    assert "not available" in exc.value.message


@pytest.mark.unit
def test_empty_cart_is_not_purchasable():
    with pytest.raises(StoreError) as exc:
        cart_service.ensure_purchasable(Cart(session_id=SESSION, items=[]))
    assert exc.value.message == "Cart is empty"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_prune_removes_unavailable_lines(db_session):
    keep = await _add_product(db_session)
    drop = await _add_product(db_session, name="Retired Tee")
    await cart_service.add_item(db_session, SESSION, keep.id, "M")
    cart, _ = await cart_service.add_item(db_session, SESSION, drop.id, "M")
    drop.printful_sync_product_id = None
    await db_session.commit()

    removed = await cart_service.prune_unpurchasable(db_session, cart)

    assert removed == ["Retired Tee"]
    assert [i.product_id for i in cart.items] == [keep.id]


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_price_cart_total_includes_shipping_and_donation(db_session):
    product = await _add_product(db_session, price=Decimal("30.00"))
    cart, _ = await cart_service.add_item(db_session, SESSION, product.id, "M", 1)

    totals = await price_cart(db_session, cart, {"country": "US"})

    assert totals.subtotal == Decimal("30.00")
    assert totals.shipping.cost == Decimal("8.49")
    assert totals.donation == Decimal("5.00")
    assert totals.discount == Decimal("0.00")
    assert totals.total == Decimal("43.49")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_price_cart_uses_best_auto_promotion(db_session):
    product = await _add_product(db_session, price=Decimal("50.00"))
    db_session.add_all(
        [
            PromotionFactory.create(auto_apply=True, value=Decimal("10"), code=None),
            PromotionFactory.create(
                auto_apply=True, type=PromotionType.FIXED, value=Decimal("8"), code=None
            ),
        ]
    )
    await db_session.commit()
    cart, _ = await cart_service.add_item(db_session, SESSION, product.id, "M", 1)

    totals = await price_cart(db_session, cart, {"country": "US"})

    assert totals.discount == Decimal("8.00")
    assert totals.total == Decimal("50.00") + Decimal("8.49") - Decimal("8.00") + Decimal("5.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_price_cart_free_shipping_promotion(db_session):
    product = await _add_product(db_session, price=Decimal("30.00"))
    promo = PromotionFactory.create(type=PromotionType.FREE_SHIPPING, value=Decimal("0"))
    db_session.add(promo)
    await db_session.commit()
    cart, _ = await cart_service.add_item(db_session, SESSION, product.id, "M", 1)

    totals = await price_cart(db_session, cart, {"country": "US"}, promotion_code=promo.code)

    assert totals.shipping.cost == Decimal("0.00")
    assert totals.shipping.source == "promotion"
    assert totals.promotion is promo


@pytest.mark.asyncio
@pytest.mark.unit
async def test_price_cart_rejects_expired_code(db_session):
    product = await _add_product(db_session)
    promo = PromotionFactory.create(valid_until=utc_now() - timedelta(days=1))
    db_session.add(promo)
    await db_session.commit()
    cart, _ = await cart_service.add_item(db_session, SESSION, product.id, "M", 1)

    with pytest.raises(StoreError) as exc:
        await price_cart(db_session, cart, promotion_code=promo.code.lower())

    assert exc.value.message == "This promotion has expired or is no longer valid"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_shipping_items_prefer_sync_variants(db_session):
    product = await _add_product(db_session)
    cart, _ = await cart_service.add_item(db_session, SESSION, product.id, "L", 2)

    items = shipping_items(cart)

    variant = product.find_variant("L")
    assert items == [{"quantity": 2, "sync_variant_id": variant.printful_sync_variant_id}]
