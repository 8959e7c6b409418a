"""
LP Market - Integrity Sweep

Periodic catalog-wide re-validation, independent of the sync orchestrator.
Vendor data drifts after the fact (delisted, miscategorized, repriced), so the
same vocabulary, price band and URL rules that gate new offers are re-applied
to everything already persisted.

Phases, in order:
    1. invalid products      missing title/artist, disqualifying title, non-LP formats
    2. out-of-band offers    base price outside the floor/ceiling band
    3. invalid-URL offers    missing URL or URL in a non-music category
    4. duplicate offers      same product + vendor + effective price, keep earliest
    5. duplicate URLs        same product + normalized URL, keep earliest

Each phase scans page by page into a SweepAccumulator, then deletes in
bounded batches. A failed batch is logged and counted; the sweep continues.
Running the sweep twice with no data change deletes nothing the second time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Awaitable, Callable, Sequence

import structlog
from pydantic import BaseModel, Field

from lpmarket.config import settings
from lpmarket.engine.price import calculate_effective_price, price_in_band
from lpmarket.engine.validation import (
    classify_format_tags,
    find_blocked_keyword,
    is_exclusively_disqualified,
    is_valid_product_url,
    split_format_tags,
)
from lpmarket.pipeline.aggregator import normalize_offer_url
from lpmarket.pipeline.catalog_store import CatalogStore, OfferRecord, ProductRecord

logger = structlog.get_logger(__name__)


class SweepReport(BaseModel):
    """Deletions per phase (would-be deletions when dry_run)."""

    invalid_products: int = 0
    out_of_band_offers: int = 0
    invalid_url_offers: int = 0
    duplicate_offers: int = 0
    duplicate_url_offers: int = 0
    failed_batches: int = 0
    dry_run: bool = False
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    @property
    def total_deleted(self) -> int:
        return (
            self.invalid_products
            + self.out_of_band_offers
            + self.invalid_url_offers
            + self.duplicate_offers
            + self.duplicate_url_offers
        )


class SweepAccumulator:
    """
    State threaded through one sweep.

    `removed_*` span the whole sweep so a dry run never counts a row twice
    across phases; `seen` is reset per dedup phase.
    """

    def __init__(self) -> None:
        self.removed_products: set[str] = set()
        self.removed_offers: set[str] = set()
        self.seen: set[tuple] = set()
        self.pending: list[str] = []

    def start_phase(self) -> None:
        self.seen = set()
        self.pending = []

    def mark(self, row_id: str) -> None:
        self.pending.append(row_id)


def product_violation(product: ProductRecord) -> str | None:
    """
    Reason a catalog entry is invalid, or None.

    Format tags that positively name an LP outrank the title blocklist, and
    title keywords only count as whole words ("산책" is not a book).
    """
    if not (product.title and product.title.strip()) or not (product.artist and product.artist.strip()):
        return "missing_title_or_artist"
    tags = split_format_tags(product.format)
    if is_exclusively_disqualified(tags):
        return "disqualified_format"
    lp_tagged, _ = classify_format_tags(tags)
    if not lp_tagged and find_blocked_keyword(product.title, whole_tokens=True) is not None:
        return "blocked_title"
    return None


class IntegritySweep:
    """
    Usage:
        sweep = IntegritySweep(SqlCatalogStore(session_factory))
        report = await sweep.run()
    """

    def __init__(
        self,
        store: CatalogStore,
        page_size: int | None = None,
        batch_size: int | None = None,
    ):
        self._store = store
        self._page_size = page_size or settings.CLEANUP_SCAN_PAGE_SIZE
        self._batch_size = batch_size or settings.CLEANUP_DELETE_BATCH_SIZE

    # -----------------------------------------------------------------------
    # Scanning
    # -----------------------------------------------------------------------

    async def _iter_products(self) -> list[ProductRecord]:
        records: list[ProductRecord] = []
        offset = 0
        while True:
            page = await self._store.list_all_products(offset, self._page_size)
            records.extend(page)
            if len(page) < self._page_size:
                return records
            offset += self._page_size

    async def _scan_offers(
        self,
        acc: SweepAccumulator,
        visit: Callable[[OfferRecord, SweepAccumulator], None],
    ) -> None:
        """Feed live offers to `visit` page by page, oldest first."""
        offset = 0
        while True:
            page = await self._store.list_all_offers(offset, self._page_size)
            for offer in page:
                if offer.id in acc.removed_offers or offer.product_id in acc.removed_products:
                    continue
                visit(offer, acc)
            if len(page) < self._page_size:
                return
            offset += self._page_size

    # -----------------------------------------------------------------------
    # Deleting
    # -----------------------------------------------------------------------

    async def _delete_in_batches(
        self,
        phase: str,
        ids: Sequence[str],
        delete: Callable[[Sequence[str]], Awaitable[int]],
        report: SweepReport,
    ) -> int:
        if not ids:
            return 0
        if report.dry_run:
            logger.info("sweep_phase_dry_run", phase=phase, would_delete=len(ids))
            return len(ids)

        deleted = 0
        for start in range(0, len(ids), self._batch_size):
            batch = list(ids[start : start + self._batch_size])
            try:
                deleted += await delete(batch)
            except Exception as e:
                report.failed_batches += 1
                logger.error(
                    "sweep_batch_delete_failed",
                    phase=phase,
                    batch_start=start,
                    batch_size=len(batch),
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return deleted

    # -----------------------------------------------------------------------
    # Phases
    # -----------------------------------------------------------------------

    async def _purge_invalid_products(self, acc: SweepAccumulator, report: SweepReport) -> None:
        acc.start_phase()
        for product in await self._iter_products():
            reason = product_violation(product)
            if reason is not None:
                logger.debug("sweep_invalid_product", product_id=product.id, reason=reason)
                acc.mark(product.id)

        ids = list(acc.pending)
        acc.removed_products.update(ids)
        report.invalid_products = await self._delete_in_batches(
            "invalid_products", ids, self._store.delete_products, report
        )

    async def _purge_offers(
        self,
        phase: str,
        acc: SweepAccumulator,
        report: SweepReport,
        visit: Callable[[OfferRecord, SweepAccumulator], None],
    ) -> int:
        acc.start_phase()
        await self._scan_offers(acc, visit)
        ids = list(acc.pending)
        acc.removed_offers.update(ids)
        return await self._delete_in_batches(phase, ids, self._store.delete_offers, report)

    @staticmethod
    def _visit_price_band(offer: OfferRecord, acc: SweepAccumulator) -> None:
        if not price_in_band(offer.base_price):
            acc.mark(offer.id)

    @staticmethod
    def _visit_url(offer: OfferRecord, acc: SweepAccumulator) -> None:
        if not is_valid_product_url(offer.url):
            acc.mark(offer.id)

    @staticmethod
    def _visit_duplicate_price(offer: OfferRecord, acc: SweepAccumulator) -> None:
        key = (
            offer.product_id,
            offer.vendor_name,
            calculate_effective_price(offer.base_price, offer.shipping_fee or 0),
        )
        if key in acc.seen:
            acc.mark(offer.id)
        else:
            acc.seen.add(key)

    @staticmethod
    def _visit_duplicate_url(offer: OfferRecord, acc: SweepAccumulator) -> None:
        # Offers without URL were removed in the URL phase
        key = (offer.product_id, normalize_offer_url(offer.url or ""))
        if key in acc.seen:
            acc.mark(offer.id)
        else:
            acc.seen.add(key)

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def run(self, dry_run: bool = False) -> SweepReport:
        report = SweepReport(dry_run=dry_run)
        acc = SweepAccumulator()

        logger.info("sweep_start", dry_run=dry_run, batch_size=self._batch_size)

        await self._purge_invalid_products(acc, report)
        logger.info("sweep_phase_complete", phase="invalid_products", count=report.invalid_products)

        report.out_of_band_offers = await self._purge_offers(
            "out_of_band_offers", acc, report, self._visit_price_band
        )
        logger.info("sweep_phase_complete", phase="out_of_band_offers", count=report.out_of_band_offers)

        report.invalid_url_offers = await self._purge_offers(
            "invalid_url_offers", acc, report, self._visit_url
        )
        logger.info("sweep_phase_complete", phase="invalid_url_offers", count=report.invalid_url_offers)

        report.duplicate_offers = await self._purge_offers(
            "duplicate_offers", acc, report, self._visit_duplicate_price
        )
        logger.info("sweep_phase_complete", phase="duplicate_offers", count=report.duplicate_offers)

        report.duplicate_url_offers = await self._purge_offers(
            "duplicate_url_offers", acc, report, self._visit_duplicate_url
        )
        logger.info(
            "sweep_phase_complete", phase="duplicate_url_offers", count=report.duplicate_url_offers
        )

        report.finished_at = datetime.now(timezone.utc)
        logger.info(
            "sweep_complete",
            total_deleted=report.total_deleted,
            failed_batches=report.failed_batches,
            dry_run=dry_run,
        )
        return report
