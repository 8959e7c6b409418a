"""
LP Market - Naver Shopping Search API Adapter

Naver's shopping search aggregates thousands of sellers, so results are
restricted to a trusted-seller domain allowlist. Open-market smartstore
listings are checked for identity even on barcode lookups, since sellers
there reuse barcodes loosely.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

import structlog
from pydantic import BaseModel, Field, field_validator

from lpmarket.config import settings
from lpmarket.engine.price import normalize_price
from lpmarket.engine.validation import strip_markup
from lpmarket.scraper import Candidate, LookupMode, ProductIdentifier
from lpmarket.scraper.fetch import Fetcher
from lpmarket.vendors.base import VendorAdapter

logger = structlog.get_logger(__name__)

ALLOWED_DOMAINS: tuple[str, ...] = (
    "smartstore.naver.com",
    "brand.naver.com",
    "shopping.naver.com",
    "www.yes24.com",
    "www.aladin.co.kr",
    "www.synnara.co.kr",
    "hottracks.kyobobook.co.kr",
    "book.interpark.com",
    "shopping.interpark.com",
)

OPEN_MARKET_DOMAINS: tuple[str, ...] = ("smartstore.naver.com",)

# ---------------------------------------------------------------------------
# Pydantic Response Models
# ---------------------------------------------------------------------------


class NaverShopItem(BaseModel):
    """One item from the shopping search response."""

    title: str = ""
    link: str = ""
    lprice: int | None = Field(default=None, description="Lowest price in KRW")
    mall_name: str = Field(default="", alias="mallName")
    category1: str = ""
    category2: str = ""
    category3: str = ""
    category4: str = ""

    @field_validator("lprice", mode="before")
    @classmethod
    def parse_price(cls, v: Any) -> int | None:
        """lprice arrives as a digit string; blank means unknown."""
        if v is None or v == "":
            return None
        return normalize_price(v if isinstance(v, int) else str(v))

    @property
    def category_text(self) -> str:
        return " ".join(c for c in (self.category1, self.category2, self.category3, self.category4) if c)


class NaverSearchResponse(BaseModel):
    total: int = 0
    items: list[NaverShopItem] = Field(default_factory=list)


def _host(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def _host_matches(host: str, domains: tuple[str, ...]) -> bool:
    return any(host == domain or host.endswith("." + domain) for domain in domains)


def is_allowed_domain(url: str) -> bool:
    host = _host(url)
    return bool(host) and _host_matches(host, ALLOWED_DOMAINS)


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class NaverShoppingAdapter(VendorAdapter):
    """
    Keyed JSON search API.

    Usage:
        adapter = NaverShoppingAdapter()
        outcome = await adapter.collect(identifier, fetcher)
    """

    name = "네이버쇼핑"
    channel_id = "naver-api"
    shipping_fee = 0
    shipping_policy = "상세 페이지 참조"
    affiliate_code = "itsmyturn"
    affiliate_param_key = "NaverCode"

    def __init__(self, client_id: str | None = None, client_secret: str | None = None):
        self._client_id = client_id
        self._client_secret = client_secret
        self.max_candidates = settings.NAVER_MAX_OFFERS_SCANNED

    @property
    def client_id(self) -> str:
        return self._client_id if self._client_id is not None else settings.NAVER_CLIENT_ID

    @property
    def client_secret(self) -> str:
        return self._client_secret if self._client_secret is not None else settings.NAVER_CLIENT_SECRET

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def validation_mode(self, candidate: Candidate, mode: LookupMode) -> LookupMode:
        if candidate.url and _host_matches(_host(candidate.url), OPEN_MARKET_DOMAINS):
            return LookupMode.KEYWORD_SEARCH
        return mode

    async def search(
        self,
        fetcher: Fetcher,
        query: str,
        identifier: ProductIdentifier,
    ) -> list[Candidate]:
        data = await fetcher.fetch_json(
            settings.NAVER_SEARCH_URL,
            params={"query": query, "display": self.max_candidates, "sort": "sim"},
            headers={
                "X-Naver-Client-Id": self.client_id,
                "X-Naver-Client-Secret": self.client_secret,
            },
        )
        response = NaverSearchResponse.model_validate(data)

        candidates: list[Candidate] = []
        for item in response.items:
            if not is_allowed_domain(item.link):
                logger.debug("naver_domain_skipped", link=item.link, mall=item.mall_name)
                continue
            candidates.append(
                Candidate(
                    title=strip_markup(item.title),
                    price=item.lprice,
                    url=item.link,
                    category=item.category_text,
                )
            )

        logger.info(
            "naver_search_complete",
            query=query,
            results_count=len(response.items),
            allowed_count=len(candidates),
        )
        return candidates
