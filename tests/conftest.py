"""
LP Market - Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- In-memory aiosqlite catalog (engine, session factory, SqlCatalogStore)
- Offer / identifier builders
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lpmarket.models import Base, LpOffer, LpProduct
from lpmarket.pipeline.catalog_store import SqlCatalogStore
from lpmarket.scraper import ProductIdentifier, VendorOffer


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    Fresh in-memory SQLite catalog per test.

    StaticPool keeps one connection so every session sees the same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    await engine.dispose()


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> SqlCatalogStore:
    return SqlCatalogStore(session_factory)


@pytest.fixture
def seed_product(session_factory: async_sessionmaker[AsyncSession]) -> Callable[..., Any]:
    """Async helper inserting an LpProduct row; returns its id."""

    async def _seed(**fields: Any) -> str:
        values: dict[str, Any] = {"title": "Kind Of Blue", "artist": "Miles Davis", "format": "Vinyl, LP"}
        values.update(fields)
        async with session_factory() as session:
            async with session.begin():
                product = LpProduct(**values)
                session.add(product)
        return product.id

    return _seed


@pytest.fixture
def seed_offer(session_factory: async_sessionmaker[AsyncSession]) -> Callable[..., Any]:
    """Async helper inserting an LpOffer row for a product; returns its id."""

    async def _seed(product_id: str, **fields: Any) -> str:
        values: dict[str, Any] = {
            "vendor_name": "YES24",
            "channel_id": "mega-book",
            "base_price": 35000,
            "shipping_fee": 0,
            "url": "https://www.yes24.com/Product/Goods/100",
        }
        values.update(fields)
        async with session_factory() as session:
            async with session.begin():
                offer = LpOffer(product_id=product_id, **values)
                session.add(offer)
        return offer.id

    return _seed


# ---------------------------------------------------------------------------
# Domain Builders
# ---------------------------------------------------------------------------


def make_offer(**overrides: Any) -> VendorOffer:
    values: dict[str, Any] = {
        "vendor_name": "YES24",
        "channel_id": "mega-book",
        "base_price": 35000,
        "shipping_fee": 0,
        "shipping_policy": "5만원 이상 무료배송",
        "url": "https://www.yes24.com/Product/Goods/100",
        "in_stock": True,
    }
    values.update(overrides)
    return VendorOffer(**values)


@pytest.fixture
def offer_factory() -> Callable[..., VendorOffer]:
    return make_offer


@pytest.fixture
def keyword_identifier() -> ProductIdentifier:
    return ProductIdentifier(product_id="p-1", title="Kind Of Blue", artist="Miles Davis")


@pytest.fixture
def barcode_identifier() -> ProductIdentifier:
    return ProductIdentifier(product_id="p-2", barcode="0194398665212", title="Folklore", artist="Taylor Swift")


# ---------------------------------------------------------------------------
# Utility Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def now() -> datetime:
    """Current timestamp for tests."""
    return datetime.now(timezone.utc)
