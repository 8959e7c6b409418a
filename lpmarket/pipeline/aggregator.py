"""
LP Market - Offer Aggregator

Fans one product out to every vendor adapter concurrently and fans the
results back in. Every adapter runs to completion independently; a slow or
failing vendor never holds back another's offer. Results arrive in
completion order. Callers that display offers sort with rank_offers().

If any vendor answered with an automated-traffic block, RateLimitDetected is
raised after fan-in so the sync run can stop hitting the throttled vendor.
"""

from __future__ import annotations

import asyncio
from typing import Iterable, Sequence
from urllib.parse import urlsplit

import structlog

from lpmarket.scraper import ProductIdentifier, VendorOffer
from lpmarket.scraper.fetch import Fetcher
from lpmarket.vendors import CollectOutcome, OutcomeStatus, VendorAdapter, build_default_adapters

logger = structlog.get_logger(__name__)


class RateLimitDetected(Exception):
    """At least one vendor blocked us; carries what was collected anyway."""

    def __init__(self, blocked_vendors: list[str], offers: list[VendorOffer]):
        super().__init__(f"Blocked by: {', '.join(blocked_vendors)}")
        self.blocked_vendors = blocked_vendors
        self.offers = offers


def normalize_offer_url(url: str) -> str:
    """scheme://host/path, lowercased; query and fragment dropped."""
    parts = urlsplit(url.strip())
    return f"{parts.scheme}://{parts.netloc}{parts.path}".lower()


def dedupe_offers(offers: Iterable[VendorOffer]) -> list[VendorOffer]:
    """Drop offers whose normalized URL was already seen, keeping the first."""
    seen: set[str] = set()
    unique: list[VendorOffer] = []
    for offer in offers:
        key = normalize_offer_url(offer.url)
        if key in seen:
            logger.debug("aggregate_duplicate_url", vendor=offer.vendor_name, url=offer.url)
            continue
        seen.add(key)
        unique.append(offer)
    return unique


def rank_offers(offers: Iterable[VendorOffer]) -> list[VendorOffer]:
    """Cheapest effective price first; ties keep their input order."""
    return sorted(offers, key=lambda offer: offer.effective_price)


class Aggregator:
    """
    Concurrent fan-out over vendor adapters.

    Usage:
        aggregator = Aggregator()
        async with Fetcher() as fetcher:
            offers = await aggregator.aggregate(identifier, fetcher)
    """

    def __init__(self, adapters: Sequence[VendorAdapter] | None = None):
        self.adapters = list(adapters) if adapters is not None else build_default_adapters()

    async def _collect(
        self,
        adapter: VendorAdapter,
        identifier: ProductIdentifier,
        fetcher: Fetcher,
    ) -> CollectOutcome:
        try:
            return await adapter.collect(identifier, fetcher)
        except Exception as e:
            # collect() is not supposed to raise; contain it anyway
            logger.error(
                "aggregate_adapter_crashed",
                vendor=adapter.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return CollectOutcome(vendor=adapter.name, status=OutcomeStatus.ERROR, reason="crashed")

    def _log_outcome(self, identifier: ProductIdentifier, outcome: CollectOutcome) -> None:
        if outcome.found:
            logger.info(
                "aggregate_vendor_offer",
                product_id=identifier.product_id,
                vendor=outcome.vendor,
                price=outcome.offer.base_price,
                effective_price=outcome.offer.effective_price,
            )
        else:
            logger.info(
                "aggregate_vendor_no_offer",
                product_id=identifier.product_id,
                vendor=outcome.vendor,
                status=outcome.status.value,
                reason=outcome.reason,
            )

    async def aggregate(
        self,
        identifier: ProductIdentifier,
        fetcher: Fetcher,
    ) -> list[VendorOffer]:
        """
        Collect offers from all adapters.

        Returns:
            Offers in completion order, URL-deduplicated.

        Raises:
            RateLimitDetected: If any adapter outcome was BLOCKED.
        """
        offers: list[VendorOffer] = []
        blocked: list[str] = []

        pending = [self._collect(adapter, identifier, fetcher) for adapter in self.adapters]
        for next_done in asyncio.as_completed(pending):
            outcome = await next_done
            self._log_outcome(identifier, outcome)
            if outcome.status is OutcomeStatus.BLOCKED:
                blocked.append(outcome.vendor)
            elif outcome.found:
                offers.append(outcome.offer)

        unique = dedupe_offers(offers)
        logger.info(
            "aggregate_complete",
            product_id=identifier.product_id,
            vendors=len(self.adapters),
            offers=len(unique),
            blocked=blocked,
        )

        if blocked:
            raise RateLimitDetected(blocked, unique)
        return unique
