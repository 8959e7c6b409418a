"""
LP Market - Catalog Store

The persistence seam between the price pipeline and the catalog. The pipeline
talks to the CatalogStore protocol only; SqlCatalogStore implements it on the
async SQLAlchemy models (Postgres in production, SQLite in tests).

Offers are only ever replaced as a whole set per product: replace_offers()
deletes and inserts inside one transaction, so readers never see a mix of
old and new offers.
"""

from __future__ import annotations

from datetime import datetime
from typing import NamedTuple, Protocol, Sequence

import structlog
from sqlalchemy import case, delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lpmarket.models import LpOffer, LpPriceHistory, LpProduct
from lpmarket.scraper import ProductIdentifier, VendorOffer

logger = structlog.get_logger(__name__)


class ProductRecord(NamedTuple):
    """Persisted product as seen by the integrity sweep."""

    id: str
    title: str | None
    artist: str | None
    ean: str | None
    discogs_id: str | None
    format: str | None
    created_at: datetime | None


class OfferRecord(NamedTuple):
    """Persisted offer as seen by the integrity sweep."""

    id: str
    product_id: str
    vendor_name: str
    base_price: int
    shipping_fee: int
    url: str | None
    created_at: datetime | None

    @property
    def effective_price(self) -> int:
        return self.base_price + (self.shipping_fee or 0)


class CatalogStore(Protocol):
    async def list_products_for_sync(
        self, stale_before: datetime, limit: int | None = None
    ) -> list[ProductIdentifier]: ...

    async def get_product(self, product_id: str) -> ProductIdentifier | None: ...

    async def replace_offers(
        self, product_id: str, offers: Sequence[VendorOffer], synced_at: datetime
    ) -> None: ...

    async def append_price_point(
        self, product_id: str, price: int, vendor_name: str | None, recorded_at: datetime
    ) -> None: ...

    async def list_all_products(self, offset: int, limit: int) -> list[ProductRecord]: ...

    async def list_all_offers(self, offset: int, limit: int) -> list[OfferRecord]: ...

    async def delete_products(self, ids: Sequence[str]) -> int: ...

    async def delete_offers(self, ids: Sequence[str]) -> int: ...


def _to_identifier(row: LpProduct) -> ProductIdentifier:
    return ProductIdentifier(
        product_id=row.id,
        catalog_id=row.discogs_id,
        barcode=row.ean,
        title=row.title,
        artist=row.artist,
    )


class SqlCatalogStore:
    """
    CatalogStore on async SQLAlchemy.

    Usage:
        store = SqlCatalogStore(session_factory)
        products = await store.list_products_for_sync(stale_before=cutoff)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # -----------------------------------------------------------------------
    # Sync side
    # -----------------------------------------------------------------------

    async def list_products_for_sync(
        self, stale_before: datetime, limit: int | None = None
    ) -> list[ProductIdentifier]:
        """Never-synced products first, then oldest sync first."""
        never_synced_first = case((LpProduct.last_synced_at.is_(None), 0), else_=1)
        stmt = (
            select(LpProduct)
            .where(
                or_(
                    LpProduct.last_synced_at.is_(None),
                    LpProduct.last_synced_at < stale_before,
                )
            )
            .order_by(never_synced_first, LpProduct.last_synced_at, LpProduct.created_at, LpProduct.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()

        return [_to_identifier(row) for row in rows]

    async def get_product(self, product_id: str) -> ProductIdentifier | None:
        async with self._session_factory() as session:
            row = await session.get(LpProduct, product_id)
        return _to_identifier(row) if row is not None else None

    async def replace_offers(
        self,
        product_id: str,
        offers: Sequence[VendorOffer],
        synced_at: datetime,
    ) -> None:
        """
        Delete the product's offers, insert the new set, stamp last_synced_at.

        An empty `offers` clears the product's offers; that is how "no known
        price right now" is recorded.
        """
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(LpOffer).where(LpOffer.product_id == product_id))
                session.add_all(
                    [
                        LpOffer(
                            product_id=product_id,
                            vendor_name=offer.vendor_name,
                            channel_id=offer.channel_id,
                            base_price=offer.base_price,
                            currency=offer.currency,
                            shipping_fee=offer.shipping_fee,
                            shipping_policy=offer.shipping_policy,
                            url=offer.url,
                            affiliate_code=offer.affiliate_code,
                            affiliate_param_key=offer.affiliate_param_key,
                            is_stock_available=offer.in_stock,
                            last_checked=offer.last_checked,
                            created_at=synced_at,
                        )
                        for offer in offers
                    ]
                )
                await session.execute(
                    update(LpProduct)
                    .where(LpProduct.id == product_id)
                    .values(last_synced_at=synced_at, updated_at=synced_at)
                )

        logger.debug("catalog_offers_replaced", product_id=product_id, offer_count=len(offers))

    async def append_price_point(
        self,
        product_id: str,
        price: int,
        vendor_name: str | None,
        recorded_at: datetime,
    ) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    LpPriceHistory(
                        product_id=product_id,
                        price=price,
                        vendor_name=vendor_name,
                        recorded_at=recorded_at,
                    )
                )

    # -----------------------------------------------------------------------
    # Sweep side
    # -----------------------------------------------------------------------

    async def list_all_products(self, offset: int, limit: int) -> list[ProductRecord]:
        stmt = (
            select(LpProduct)
            .order_by(LpProduct.created_at, LpProduct.id)
            .offset(offset)
            .limit(limit)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [
            ProductRecord(
                id=row.id,
                title=row.title,
                artist=row.artist,
                ean=row.ean,
                discogs_id=row.discogs_id,
                format=row.format,
                created_at=row.created_at,
            )
            for row in rows
        ]

    async def list_all_offers(self, offset: int, limit: int) -> list[OfferRecord]:
        stmt = (
            select(LpOffer)
            .order_by(LpOffer.created_at, LpOffer.id)
            .offset(offset)
            .limit(limit)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [
            OfferRecord(
                id=row.id,
                product_id=row.product_id,
                vendor_name=row.vendor_name,
                base_price=row.base_price,
                shipping_fee=row.shipping_fee,
                url=row.url,
                created_at=row.created_at,
            )
            for row in rows
        ]

    async def delete_products(self, ids: Sequence[str]) -> int:
        """Delete products together with their offers and price history."""
        if not ids:
            return 0
        id_list = list(ids)
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(LpOffer).where(LpOffer.product_id.in_(id_list)))
                await session.execute(
                    delete(LpPriceHistory).where(LpPriceHistory.product_id.in_(id_list))
                )
                result = await session.execute(delete(LpProduct).where(LpProduct.id.in_(id_list)))
        return result.rowcount or 0

    async def delete_offers(self, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(delete(LpOffer).where(LpOffer.id.in_(list(ids))))
        return result.rowcount or 0
