"""Integration tests for the public catalog and search endpoints."""

import uuid
from decimal import Decimal

import pytest
from services.store_service.models import AnalyticsEvent, AnalyticsEventType, ProductCategory
from sqlalchemy import select
from tests.factories import ProductFactory, VariantFactory


async def _seed(db, *objects):
    db.add_all(objects)
    await db.commit()
    return objects


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_only_purchasable_products(client, db_session):
    live, unsynced, inactive = await _seed(
        db_session,
        ProductFactory.create(),
        ProductFactory.create(synced=False),
        ProductFactory.create(is_active=False),
    )

    response = await client.get("/api/products")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    ids = [p["id"] for p in body["data"]]
    assert ids == [str(live.id)]
    assert body["data"][0]["is_purchasable"] is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_filter_by_category_and_size(client, db_session):
    tee, hoodie = await _seed(
        db_session,
        ProductFactory.create(category=ProductCategory.TSHIRTS, sizes=("S", "M")),
        ProductFactory.create(category=ProductCategory.HOODIES, sizes=("XL",)),
    )

    by_category = await client.get("/api/products", params={"categories": "hoodies,mugs"})
    by_size = await client.get("/api/products", params={"sizes": "S"})

    assert [p["id"] for p in by_category.json()["data"]] == [str(hoodie.id)]
    assert [p["id"] for p in by_size.json()["data"]] == [str(tee.id)]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sort_by_price(client, db_session):
    await _seed(
        db_session,
        ProductFactory.create(price=Decimal("40.00")),
        ProductFactory.create(price=Decimal("20.00")),
        ProductFactory.create(price=Decimal("30.00")),
    )

    low = await client.get("/api/products", params={"sort": "price-low"})
    high = await client.get("/api/products", params={"sort": "price-high"})

    assert [p["price"] for p in low.json()["data"]] == [20.0, 30.0, 40.0]
    assert [p["price"] for p in high.json()["data"]] == [40.0, 30.0, 20.0]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_featured_products(client, db_session):
    featured, _ = await _seed(
        db_session,
        ProductFactory.create(is_featured=True),
        ProductFactory.create(is_featured=False),
    )

    response = await client.get("/api/products/featured")

    assert [p["id"] for p in response.json()["data"]] == [str(featured.id)]


# ---------------------------------------------------------------------------
# Detail and related
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_product_by_slug(client, db_session):
    (product,) = await _seed(
        db_session,
        ProductFactory.create(
            slug="olive-tree-crewneck",
            variants=[
                VariantFactory.create(size="M", position=0),
                VariantFactory.create(size="2XL", price=Decimal("33.00"), position=1),
            ],
        ),
    )

    response = await client.get("/api/products/Olive-Tree-Crewneck")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == str(product.id)
    assert [v["size"] for v in data["variants"]] == ["M", "2XL"]
    assert data["variants"][1]["price"] == 33.0
    assert data["primary_image_url"].startswith("https://img.test/")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unpurchasable_product_detail_is_not_found(client, db_session):
    (product,) = await _seed(db_session, ProductFactory.create(synced=False))

    response = await client.get(f"/api/products/{product.slug}")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Product not found"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_related_products_share_category(client, db_session):
    base, same, other = await _seed(
        db_session,
        ProductFactory.create(category=ProductCategory.HOODIES),
        ProductFactory.create(category=ProductCategory.HOODIES),
        ProductFactory.create(category=ProductCategory.TSHIRTS),
    )

    response = await client.get(f"/api/products/{base.id}/related")

    assert [p["id"] for p in response.json()["data"]] == [str(same.id)]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_related_for_unknown_product(client):
    response = await client.get(f"/api/products/{uuid.uuid4()}/related")
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_matches_name_and_tags(client, db_session):
    by_name, by_tag, _ = await _seed(
        db_session,
        ProductFactory.create(name="Jerusalem Skyline Tee", tags=["city"]),
        ProductFactory.create(name="Plain Tee", tags=["skyline", "night"]),
        ProductFactory.create(name="Olive Hoodie", tags=["tree"]),
    )

    response = await client.get("/api/search", params={"q": "SKYLINE"})

    ids = {p["id"] for p in response.json()["data"]}
    assert ids == {str(by_name.id), str(by_tag.id)}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_records_event(client, db_session):
    await _seed(db_session, ProductFactory.create(name="Olive Hoodie"))

    await client.get("/api/search", params={"q": "olive"})

    events = (await db_session.execute(select(AnalyticsEvent))).scalars().all()
    assert len(events) == 1
    assert events[0].event_type == AnalyticsEventType.SEARCH
    assert events[0].search_query == "olive"
    assert events[0].search_results_count == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_short_search_returns_nothing(client, db_session):
    await _seed(db_session, ProductFactory.create(name="A Tee"))

    response = await client.get("/api/search", params={"q": "a"})

    assert response.json() == {"success": True, "data": []}
    events = (await db_session.execute(select(AnalyticsEvent))).scalars().all()
    assert events == []
