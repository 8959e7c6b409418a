"""
LP Market - Aladin Open API Adapter

ItemSearch over the music target. Aladin files LPs under dedicated
categories (e.g. "음반>가요>LP"), and such a category guarantees the format
even when the item title omits it.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel, Field, field_validator

from lpmarket.config import settings
from lpmarket.engine.price import normalize_price
from lpmarket.engine.validation import find_format_keyword, strip_markup
from lpmarket.scraper import Candidate, ProductIdentifier
from lpmarket.scraper.fetch import Fetcher
from lpmarket.vendors.base import VendorAdapter, is_in_stock

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Pydantic Response Models
# ---------------------------------------------------------------------------


class AladinItem(BaseModel):
    title: str = ""
    link: str = ""
    price_sales: int | None = Field(default=None, alias="priceSales")
    price_standard: int | None = Field(default=None, alias="priceStandard")
    stock_status: str = Field(default="", alias="stockStatus")
    category_name: str = Field(default="", alias="categoryName")

    @field_validator("price_sales", "price_standard", mode="before")
    @classmethod
    def parse_price(cls, v: Any) -> int | None:
        if v is None or v == "":
            return None
        return normalize_price(v if isinstance(v, int) else str(v))

    @property
    def price(self) -> int | None:
        return self.price_sales or self.price_standard


class AladinSearchResponse(BaseModel):
    total_results: int = Field(default=0, alias="totalResults")
    item: list[AladinItem] = Field(default_factory=list)
    error_code: int | None = Field(default=None, alias="errorCode")
    error_message: str | None = Field(default=None, alias="errorMessage")


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class AladinAdapter(VendorAdapter):
    name = "알라딘"
    channel_id = "aladin-api"
    shipping_fee = 0
    shipping_policy = "조건부 무료"
    affiliate_code = "itsmyturn"
    affiliate_param_key = "Acode"
    max_candidates = 10

    def __init__(self, ttb_key: str | None = None):
        self._ttb_key = ttb_key

    @property
    def ttb_key(self) -> str:
        return self._ttb_key if self._ttb_key is not None else settings.ALADIN_TTB_KEY

    def is_configured(self) -> bool:
        return bool(self.ttb_key)

    async def search(
        self,
        fetcher: Fetcher,
        query: str,
        identifier: ProductIdentifier,
    ) -> list[Candidate]:
        data = await fetcher.fetch_json(
            settings.ALADIN_SEARCH_URL,
            params={
                "ttbkey": self.ttb_key,
                "QueryType": "Keyword",
                "Query": query,
                "MaxResults": self.max_candidates,
                "start": 1,
                "SearchTarget": "Music",
                "Output": "JS",
                "Version": "20131101",
            },
        )
        response = AladinSearchResponse.model_validate(data)

        if response.error_code is not None:
            logger.warning(
                "aladin_api_error",
                error_code=response.error_code,
                error_message=response.error_message,
            )
            return []

        candidates = [
            Candidate(
                title=strip_markup(item.title),
                price=item.price,
                url=item.link,
                in_stock=is_in_stock(item.stock_status),
                category=item.category_name,
                format_pure=find_format_keyword(item.category_name) is not None,
            )
            for item in response.item
        ]

        logger.info("aladin_search_complete", query=query, results_count=len(candidates))
        return candidates
