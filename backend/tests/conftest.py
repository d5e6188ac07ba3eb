"""Shared test configuration and fixtures.

Each test gets a fresh in-memory SQLite database (via aiosqlite) with all
tables created, so tests are isolated without a running PostgreSQL.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")

import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from datetime import datetime  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from billing_hub.auth.jwt import create_access_token  # noqa: E402
from billing_hub.database import Base, get_db  # noqa: E402
from billing_hub.main import app  # noqa: E402
from billing_hub.models.payment_method import PaymentMethod  # noqa: E402
from billing_hub.models.subscription import Subscription  # noqa: E402
from billing_hub.models.user import User  # noqa: E402

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session bound to the per-test engine."""
    async with AsyncSession(bind=test_engine, expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to use the test DB session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers shared by test modules
# ---------------------------------------------------------------------------


async def create_user(db_session: AsyncSession, is_active: bool = True) -> User:
    """Insert a user directly in the DB."""
    unique = uuid.uuid4().hex[:8]
    user = User(email=f"user-{unique}@test.com", name="Test User", is_active=is_active)
    db_session.add(user)
    await db_session.flush()
    return user


async def create_subscription(
    db_session: AsyncSession,
    user: User,
    plan_type: str | None = "monthly",
    status: str = "active",
    stripe_subscription_id: str | None = None,
    current_period_start: datetime | None = None,
    current_period_end: datetime | None = None,
    cancel_at_period_end: bool = False,
    **extra,
) -> Subscription:
    """Insert a subscription for ``user``."""
    subscription = Subscription(
        user_id=user.id,
        plan_type=plan_type,
        status=status,
        stripe_subscription_id=stripe_subscription_id,
        current_period_start=current_period_start,
        current_period_end=current_period_end,
        cancel_at_period_end=cancel_at_period_end,
        **extra,
    )
    db_session.add(subscription)
    await db_session.flush()
    return subscription


async def create_payment_method(
    db_session: AsyncSession,
    user: User,
    stripe_payment_method_id: str,
    is_default: bool = False,
    brand: str = "visa",
    last4: str = "4242",
) -> PaymentMethod:
    """Insert a saved card for ``user``."""
    method = PaymentMethod(
        user_id=user.id,
        stripe_payment_method_id=stripe_payment_method_id,
        brand=brand,
        last4=last4,
        exp_month=12,
        exp_year=2030,
        is_default=is_default,
    )
    db_session.add(method)
    await db_session.flush()
    return method


def auth_headers_for(user: User) -> dict[str, str]:
    """Authorization headers carrying an access token for ``user``."""
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


class StripeObj(SimpleNamespace):
    """SimpleNamespace with bracket notation support (like Stripe API objects)."""

    def __getitem__(self, key: str):
        return getattr(self, key)


def make_stripe_sub(
    sub_id: str = "sub_test_123",
    price_id: str = "price_test_monthly",
    status: str = "active",
    period_start: int = 1704067200,  # 2024-01-01 UTC
    period_end: int = 1706745600,  # 2024-02-01 UTC
    cancel_at_period_end: bool = False,
    customer: str = "cus_test_123",
) -> StripeObj:
    """Fake Stripe Subscription with the period on the first item (API 2025-08-27+)."""
    return StripeObj(
        id=sub_id,
        customer=customer,
        status=status,
        cancel_at_period_end=cancel_at_period_end,
        items=StripeObj(
            data=[
                StripeObj(
                    price=StripeObj(id=price_id),
                    current_period_start=period_start,
                    current_period_end=period_end,
                )
            ]
        ),
    )


def make_event(event_type: str, data_object) -> StripeObj:
    """Fake Stripe Event wrapping ``data_object``."""
    if isinstance(data_object, dict):
        data_object = StripeObj(**data_object)
    return StripeObj(
        type=event_type,
        id=f"evt_test_{uuid.uuid4().hex[:8]}",
        data=StripeObj(object=data_object),
    )


# ---------------------------------------------------------------------------
# Convenience fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await create_user(db_session)


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict[str, str]:
    return auth_headers_for(test_user)
