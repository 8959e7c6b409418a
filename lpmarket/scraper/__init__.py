"""LP Market - Scraper Layer shared models"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, Field

from lpmarket.config import settings

_NON_DIGIT_RE = re.compile(r"\D")
MIN_BARCODE_DIGITS = 8


class LookupMode(str, Enum):
    """How a vendor query was keyed."""

    IDENTIFIER_EXACT = "identifier_exact"
    KEYWORD_SEARCH = "keyword_search"


class VerdictReason(str, Enum):
    """Reason codes produced by the validation engine."""

    OK = "ok"
    PRICE_OUT_OF_RANGE = "price_out_of_range"
    PRICE_UNPARSABLE = "price_unparsable"
    MISSING_FORMAT_KEYWORD = "missing_format_keyword"
    BLOCKED_KEYWORD = "blocked_keyword"
    LOW_SIMILARITY = "low_similarity"
    ARTIST_MISSING = "artist_missing"
    INVALID_URL = "invalid_url"
    TITLE_TOO_SHORT = "title_too_short"


class ProductIdentifier(BaseModel):
    """Query key for one catalog entry. Never mutated; enrich via enriched()."""

    model_config = {"frozen": True}

    product_id: str | None = None
    catalog_id: str | None = None
    barcode: str | None = None
    title: str | None = None
    artist: str | None = None

    def has_barcode(self) -> bool:
        if not self.barcode:
            return False
        return len(_NON_DIGIT_RE.sub("", self.barcode)) >= MIN_BARCODE_DIGITS

    def has_title_and_artist(self) -> bool:
        return bool(self.title and self.title.strip() and self.artist and self.artist.strip())

    def is_usable(self) -> bool:
        """At least one of barcode, catalog id, or title+artist is present."""
        return self.has_barcode() or bool(self.catalog_id) or self.has_title_and_artist()

    def is_searchable(self) -> bool:
        """Vendors can only be queried by barcode or by title+artist."""
        return self.has_barcode() or self.has_title_and_artist()

    def enriched(
        self,
        barcode: str | None = None,
        title: str | None = None,
        artist: str | None = None,
    ) -> ProductIdentifier:
        """Return a copy with the given non-empty values filled in."""
        update = {
            key: value
            for key, value in (("barcode", barcode), ("title", title), ("artist", artist))
            if value
        }
        return self.model_copy(update=update)


class Candidate(BaseModel):
    """Raw result extracted by a vendor adapter, before validation."""

    title: str = ""
    price: int | str | None = None  # raw text like "59,000원" or an API integer
    url: str | None = None
    in_stock: bool = True
    category: str = ""
    format_pure: bool = False  # source collection guarantees LP format


class VendorOffer(BaseModel):
    """One vendor's validated claim about where and how much a product costs."""

    vendor_name: str
    channel_id: str
    base_price: int
    shipping_fee: int = 0
    shipping_policy: str = ""
    url: str
    in_stock: bool = True
    affiliate_code: str | None = None
    affiliate_param_key: str | None = None
    currency: str = Field(default_factory=lambda: settings.DEFAULT_CURRENCY)
    last_checked: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def effective_price(self) -> int:
        """Base price plus shipping. Used for ranking only, never persisted."""
        return self.base_price + self.shipping_fee


class ValidationVerdict(NamedTuple):
    """Pass/fail result of validate(). Ephemeral, never persisted."""

    passed: bool
    reason: VerdictReason
    detail: str = ""
    price: int | None = None


__all__ = [
    "Candidate",
    "LookupMode",
    "ProductIdentifier",
    "ValidationVerdict",
    "VendorOffer",
    "VerdictReason",
]
