import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock

# Test settings MUST be in place before anything calls get_settings()
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["PRINTFUL_API_TOKEN"] = ""
os.environ["PRINTFUL_WEBHOOK_SECRET"] = ""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.models import AdminPrincipal
from libs.auth.tokens import create_admin_token
from libs.common.config import get_settings
from libs.db.base import Base
from libs.db.session import get_async_db
from services.store_service import models as _store_models  # noqa: F401
from services.store_service.app.main import app
from services.store_service.printful_client import PrintfulOrderResult
from services.store_service.routers._helpers import (
    get_optional_printful,
    get_printful,
    get_stripe,
)
from services.store_service.stripe_client import PaymentIntent, Refund
from tests.factories import AdminFactory

get_settings.cache_clear()
settings = get_settings()


@pytest_asyncio.fixture
async def test_engine():
    """
    In-memory SQLite database, created fresh for every test.
    StaticPool keeps the single connection alive for the test's lifetime.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def stripe_mock():
    """Stripe client stub: intents succeed unless a test says otherwise."""
    stripe = AsyncMock()
    stripe.create_payment_intent.return_value = PaymentIntent(
        id="pi_test_123",
        status="requires_payment_method",
        amount=0,
        currency="usd",
        client_secret="pi_test_123_secret",
    )
    stripe.retrieve_payment_intent.return_value = PaymentIntent(
        id="pi_test_123", status="succeeded", amount=0, currency="usd"
    )
    stripe.create_refund.return_value = Refund(
        id="re_test_123", status="succeeded", amount=0, payment_intent="pi_test_123"
    )
    return stripe


@pytest.fixture
def printful_mock():
    """Printful client stub with an accepted draft order and no live shipping quote."""
    printful = AsyncMock()
    printful.create_order.return_value = PrintfulOrderResult(
        id=555001, status="draft", raw={}
    )
    printful.get_order.return_value = {}
    printful.get_standard_shipping_rate.return_value = None
    return printful


@pytest_asyncio.fixture
async def client(db_session, stripe_mock, printful_mock) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient against the store app with the DB and external clients overridden.
    Printful counts as not configured unless a test overrides get_optional_printful.
    """

    async def _db():
        yield db_session

    app.dependency_overrides[get_async_db] = _db
    app.dependency_overrides[get_stripe] = lambda: stripe_mock
    app.dependency_overrides[get_printful] = lambda: printful_mock
    app.dependency_overrides[get_optional_printful] = lambda: None

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def use_printful(printful_mock):
    """Make endpoints see a configured Printful client."""
    app.dependency_overrides[get_optional_printful] = lambda: printful_mock
    return printful_mock


@pytest_asyncio.fixture
async def admin(db_session):
    admin = AdminFactory.create()
    db_session.add(admin)
    await db_session.commit()
    return admin


@pytest.fixture
def admin_headers(admin) -> dict:
    """Bearer token for the ``admin`` fixture."""
    principal = AdminPrincipal(
        admin_id=str(admin.id), email=admin.email, name=admin.name, role=admin.role.value
    )
    return {"Authorization": f"Bearer {create_admin_token(principal)}"}
