"""
LP Market - Vendor Adapter Base

Uniform contract for all vendors:

    outcome = await adapter.collect(identifier, fetcher)

collect() never raises. "No offer", "rejected by validation", "blocked" and
"error" are all ordinary CollectOutcome values, so the aggregator's fan-in is
a plain loop over results instead of exception plumbing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple

import structlog

from lpmarket.engine.validation import validate
from lpmarket.scraper import (
    Candidate,
    LookupMode,
    ProductIdentifier,
    VendorOffer,
    VerdictReason,
)
from lpmarket.scraper.fetch import BlockedError, FetchError, FetchTimeoutError, Fetcher, NetworkError

logger = structlog.get_logger(__name__)

SOLD_OUT_MARKERS: tuple[str, ...] = ("품절", "일시품절", "절판", "재고없음", "sold out", "out of stock")


class OutcomeStatus(str, Enum):
    OFFER = "offer"
    NO_OFFER = "no_offer"
    REJECTED = "rejected"
    BLOCKED = "blocked"
    ERROR = "error"


class CollectOutcome(NamedTuple):
    """Result of one adapter call: an offer, or the reason there is none."""

    vendor: str
    status: OutcomeStatus
    offer: VendorOffer | None = None
    reason: str = ""

    @property
    def found(self) -> bool:
        return self.status is OutcomeStatus.OFFER and self.offer is not None


def is_in_stock(text: str | None) -> bool:
    """Stock is assumed unless sold-out vocabulary is present."""
    if not text:
        return True
    lowered = text.casefold()
    return not any(marker in lowered for marker in SOLD_OUT_MARKERS)


class VendorAdapter(ABC):
    """
    One vendor's query construction, response parsing and offer shaping.

    Subclasses set the class attributes and implement search(), which returns
    candidates in the vendor's own result order.
    """

    name: str = ""
    channel_id: str = ""
    shipping_fee: int = 0
    shipping_policy: str = ""
    affiliate_code: str | None = None
    affiliate_param_key: str | None = None
    supports_barcode_search: bool = True
    max_candidates: int = 1

    def is_configured(self) -> bool:
        """API-backed vendors return False when credentials are missing."""
        return True

    def lookup_mode(self, identifier: ProductIdentifier) -> LookupMode:
        if self.supports_barcode_search and identifier.has_barcode():
            return LookupMode.IDENTIFIER_EXACT
        return LookupMode.KEYWORD_SEARCH

    def build_query(self, identifier: ProductIdentifier, mode: LookupMode) -> str | None:
        """Barcode for exact lookups, else "artist title LP"."""
        if mode is LookupMode.IDENTIFIER_EXACT:
            return (identifier.barcode or "").strip() or None
        if not identifier.has_title_and_artist():
            return None
        return f"{identifier.artist.strip()} {identifier.title.strip()} LP"

    def validation_mode(self, candidate: Candidate, mode: LookupMode) -> LookupMode:
        """Hook for vendors whose exact results still need identity checks."""
        return mode

    @abstractmethod
    async def search(
        self,
        fetcher: Fetcher,
        query: str,
        identifier: ProductIdentifier,
    ) -> list[Candidate]:
        """Query the vendor and return up to max_candidates candidates."""

    def make_offer(self, candidate: Candidate, price: int) -> VendorOffer:
        return VendorOffer(
            vendor_name=self.name,
            channel_id=self.channel_id,
            base_price=price,
            shipping_fee=self.shipping_fee,
            shipping_policy=self.shipping_policy,
            url=candidate.url or "",
            in_stock=candidate.in_stock,
            affiliate_code=self.affiliate_code,
            affiliate_param_key=self.affiliate_param_key,
            last_checked=datetime.now(timezone.utc),
        )

    def _outcome(self, status: OutcomeStatus, reason: str = "", offer: VendorOffer | None = None) -> CollectOutcome:
        return CollectOutcome(vendor=self.name, status=status, offer=offer, reason=reason)

    async def collect(self, identifier: ProductIdentifier, fetcher: Fetcher) -> CollectOutcome:
        """
        Search the vendor and return the first candidate that validates.

        Returns:
            CollectOutcome. Never raises: blocks map to BLOCKED, fetch and
            parse failures to ERROR, empty results to NO_OFFER, and
            candidates failing validation to REJECTED.
        """
        if not self.is_configured():
            return self._outcome(OutcomeStatus.NO_OFFER, "not_configured")

        mode = self.lookup_mode(identifier)
        query = self.build_query(identifier, mode)
        if not query:
            return self._outcome(OutcomeStatus.NO_OFFER, "no_query")

        try:
            candidates = await self.search(fetcher, query, identifier)
        except BlockedError as e:
            logger.warning("vendor_blocked", vendor=self.name, status_code=e.status_code, url=e.url)
            return self._outcome(OutcomeStatus.BLOCKED, f"blocked_http_{e.status_code}")
        except FetchTimeoutError:
            logger.warning("vendor_timeout", vendor=self.name, query=query)
            return self._outcome(OutcomeStatus.ERROR, "timeout")
        except NetworkError as e:
            logger.warning("vendor_network_error", vendor=self.name, error=str(e))
            return self._outcome(OutcomeStatus.ERROR, "network")
        except FetchError as e:
            logger.warning("vendor_fetch_error", vendor=self.name, status_code=e.status_code, error=str(e))
            return self._outcome(OutcomeStatus.ERROR, "fetch_error")
        except Exception as e:
            logger.error(
                "vendor_unexpected_error",
                vendor=self.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self._outcome(OutcomeStatus.ERROR, "unexpected")

        if not candidates:
            return self._outcome(OutcomeStatus.NO_OFFER, "no_candidate")

        last_reason = VerdictReason.PRICE_UNPARSABLE
        for candidate in candidates[: self.max_candidates]:
            verdict = validate(candidate, identifier, self.validation_mode(candidate, mode))
            if verdict.passed and verdict.price is not None:
                return self._outcome(
                    OutcomeStatus.OFFER, offer=self.make_offer(candidate, verdict.price)
                )
            last_reason = verdict.reason

        if last_reason is VerdictReason.PRICE_UNPARSABLE:
            return self._outcome(OutcomeStatus.NO_OFFER, last_reason.value)
        return self._outcome(OutcomeStatus.REJECTED, last_reason.value)
