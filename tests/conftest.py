"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.pool import StaticPool

from app.db.base import Base, create_engine_from_url, create_session_factory
from app.db.models import CustomerLookup, OrderStats
from app.services.reports.cache import InMemoryCacheBackend, ReportCache

BASE_DATE = datetime(2024, 1, 1, 12, 0, 0)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite database with the reporting schema."""
    engine = create_engine_from_url(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def cache_backend() -> InMemoryCacheBackend:
    return InMemoryCacheBackend()


@pytest.fixture
def report_cache(cache_backend: InMemoryCacheBackend) -> ReportCache:
    return ReportCache(cache_backend, prefix="test")


@pytest.fixture
def make_customer(db: AsyncSession):
    """Insert a customer_lookup row, registered when user_id is given."""
    async def _make_customer(
        email: str,
        user_id: Optional[int] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        country: Optional[str] = "US",
        city: Optional[str] = None,
        username: Optional[str] = None,
        registered_days_ago: Optional[int] = None,
        last_active: Optional[datetime] = None,
    ) -> CustomerLookup:
        customer = CustomerLookup(
            user_id=user_id,
            username=username,
            first_name=first_name,
            last_name=last_name,
            email=email,
            country=country,
            city=city,
            date_registered=(
                BASE_DATE - timedelta(days=registered_days_ago) if registered_days_ago is not None else None
            ),
            date_last_active=last_active,
        )
        db.add(customer)
        await db.commit()
        return customer

    return _make_customer


@pytest.fixture
def make_order(db: AsyncSession):
    """Insert an order_stats row for a customer."""
    counter = {"next_id": 1000}

    async def _make_order(
        customer: Optional[CustomerLookup],
        gross_total: str = "10.50",
        days_ago: int = 0,
        status: str = "completed",
    ) -> OrderStats:
        counter["next_id"] += 1
        order = OrderStats(
            order_id=counter["next_id"],
            customer_id=customer.customer_id if customer else None,
            date_created=BASE_DATE - timedelta(days=days_ago),
            status=status,
            num_items_sold=1,
            gross_total=Decimal(gross_total),
            net_total=Decimal(gross_total),
        )
        db.add(order)
        await db.commit()
        return order

    return _make_order


@pytest.fixture
def base_date() -> datetime:
    """Reference "now" of the seeded rows; day offsets are counted back from it."""
    return BASE_DATE
