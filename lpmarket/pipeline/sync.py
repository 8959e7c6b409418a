"""
LP Market - Sync Orchestrator

Walks the stale part of the catalog one product at a time:

    identifier -> (no barcode) resolve -> aggregate -> replace offers

Products are processed strictly sequentially with a fixed delay between them.
Each product already fans out to ten vendors at once; syncing products in
parallel would multiply per-vendor request rates.

A product with no surviving offers gets its offer set explicitly cleared, so
stale prices never outlive a sync. A vendor block aborts the whole run.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable

import structlog
from pydantic import BaseModel, Field

from lpmarket.config import settings
from lpmarket.pipeline.aggregator import Aggregator, RateLimitDetected, rank_offers
from lpmarket.pipeline.catalog_store import CatalogStore
from lpmarket.pipeline.discogs import IdentifierResolver
from lpmarket.scraper import ProductIdentifier
from lpmarket.scraper.fetch import BlockedError, Fetcher

logger = structlog.get_logger(__name__)


class SyncReport(BaseModel):
    """Counters for one sync run."""

    processed: int = 0
    updated: int = 0
    cleared: int = 0
    skipped: int = 0
    not_applicable: int = 0
    failed: int = 0
    aborted: bool = False
    blocked_vendors: list[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None


class SyncOrchestrator:
    """
    Usage:
        orchestrator = SyncOrchestrator(SqlCatalogStore(session_factory))
        report = await orchestrator.run()
        report = await orchestrator.refresh_product(product_id)
    """

    def __init__(
        self,
        store: CatalogStore,
        aggregator: Aggregator | None = None,
        fetcher_factory: Callable[[], Fetcher] = Fetcher,
        resolver_factory: Callable[[Fetcher], IdentifierResolver] = IdentifierResolver,
        inter_product_delay: float | None = None,
    ):
        self._store = store
        self._aggregator = aggregator or Aggregator()
        self._fetcher_factory = fetcher_factory
        self._resolver_factory = resolver_factory
        self._inter_product_delay = inter_product_delay

    @property
    def inter_product_delay(self) -> float:
        if self._inter_product_delay is not None:
            return self._inter_product_delay
        return settings.SYNC_INTER_PRODUCT_DELAY_SECONDS

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def run(self, limit: int | None = None) -> SyncReport:
        """
        Sync every product never synced or older than SYNC_STALE_AFTER_HOURS.

        Args:
            limit: Max products this run (default settings.SYNC_BATCH_LIMIT).
        """
        stale_before = datetime.now(timezone.utc) - timedelta(hours=settings.SYNC_STALE_AFTER_HOURS)
        batch_limit = limit if limit is not None else settings.SYNC_BATCH_LIMIT
        products = await self._store.list_products_for_sync(stale_before, batch_limit)

        logger.info(
            "sync_run_start",
            products=len(products),
            stale_before=stale_before.isoformat(),
            delay_seconds=self.inter_product_delay,
        )
        return await self._process(products)

    async def refresh_product(self, product_id: str) -> SyncReport:
        """Force-refresh one product regardless of staleness."""
        identifier = await self._store.get_product(product_id)
        if identifier is None:
            logger.warning("sync_refresh_unknown_product", product_id=product_id)
            report = SyncReport(skipped=1)
            report.finished_at = datetime.now(timezone.utc)
            return report

        logger.info("sync_refresh_start", product_id=product_id)
        return await self._process([identifier])

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    async def _process(self, products: list[ProductIdentifier]) -> SyncReport:
        report = SyncReport()

        async with self._fetcher_factory() as fetcher:
            resolver = self._resolver_factory(fetcher)

            for index, identifier in enumerate(products):
                if index > 0 and self.inter_product_delay > 0:
                    await asyncio.sleep(self.inter_product_delay)

                report.processed += 1
                try:
                    await self._sync_product(identifier, fetcher, resolver, report)
                except RateLimitDetected as e:
                    report.aborted = True
                    report.blocked_vendors = e.blocked_vendors
                    logger.error(
                        "sync_rate_limit_abort",
                        product_id=identifier.product_id,
                        blocked_vendors=e.blocked_vendors,
                        remaining=len(products) - index - 1,
                    )
                    break
                except BlockedError as e:
                    report.aborted = True
                    report.blocked_vendors = [e.url or "resolver"]
                    logger.error(
                        "sync_rate_limit_abort",
                        product_id=identifier.product_id,
                        blocked_url=e.url,
                        remaining=len(products) - index - 1,
                    )
                    break
                except Exception as e:
                    report.failed += 1
                    logger.error(
                        "sync_product_failed",
                        product_id=identifier.product_id,
                        error=str(e),
                        error_type=type(e).__name__,
                    )

        report.finished_at = datetime.now(timezone.utc)
        logger.info("sync_run_complete", **report.model_dump(exclude={"started_at", "finished_at"}))
        return report

    async def _sync_product(
        self,
        identifier: ProductIdentifier,
        fetcher: Fetcher,
        resolver: IdentifierResolver,
        report: SyncReport,
    ) -> None:
        product_id = identifier.product_id
        if product_id is None:
            report.skipped += 1
            logger.warning("sync_product_skipped", product_id=None, reason="no_product_id")
            return
        if not identifier.is_usable():
            await self._skip(product_id, report, reason="no_identifier")
            return

        resolved = await resolver.resolve(identifier)

        if resolved is None:
            # Canonical release is not an LP: no vendor queries, no stale offers
            await self._store.replace_offers(product_id, [], datetime.now(timezone.utc))
            report.not_applicable += 1
            report.cleared += 1
            logger.info("sync_product_not_applicable", product_id=product_id)
            return

        if not resolved.is_searchable():
            await self._skip(
                product_id, report, reason="no_searchable_identifier", catalog_id=resolved.catalog_id
            )
            return

        offers = await self._aggregator.aggregate(resolved, fetcher)
        synced_at = datetime.now(timezone.utc)
        await self._store.replace_offers(product_id, offers, synced_at)

        if not offers:
            report.cleared += 1
            logger.info("sync_product_cleared", product_id=product_id)
            return

        best = rank_offers(offers)[0]
        await self._store.append_price_point(
            product_id, best.effective_price, best.vendor_name, synced_at
        )
        report.updated += 1
        logger.info(
            "sync_product_updated",
            product_id=product_id,
            offers=len(offers),
            lowest_price=best.effective_price,
            lowest_vendor=best.vendor_name,
        )

    async def _skip(self, product_id: str, report: SyncReport, reason: str, **fields) -> None:
        """
        Clear and stamp a product that cannot be searched.

        Stamped rows wait out SYNC_STALE_AFTER_HOURS like synced ones instead
        of heading the never-synced queue on every run.
        """
        await self._store.replace_offers(product_id, [], datetime.now(timezone.utc))
        report.skipped += 1
        report.cleared += 1
        logger.warning("sync_product_skipped", product_id=product_id, reason=reason, **fields)
