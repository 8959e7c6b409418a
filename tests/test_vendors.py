"""
Tests for lpmarket/vendors/

Each adapter is exercised through collect() with respx-mocked vendor
responses, so query building, extraction, validation and offer shaping are
all covered together.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from lpmarket.config import settings
from lpmarket.scraper import ProductIdentifier
from lpmarket.scraper.fetch import Fetcher
from lpmarket.vendors import (
    AladinAdapter,
    InterparkAdapter,
    KimbapRecordAdapter,
    NaverShoppingAdapter,
    OutcomeStatus,
    Yes24Adapter,
    build_default_adapters,
)
from lpmarket.vendors.base import is_in_stock
from lpmarket.vendors.naver import NaverShopItem, is_allowed_domain

YES24_URL = "https://www.yes24.com/Product/Search"
INTERPARK_URL = "https://shopping.interpark.com/search/totalSearch.do"
KIMBAP_URL = "https://kimbaprecord.com/search"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _yes24_page(*items: tuple[str, str, str]) -> str:
    rows = "".join(
        f'<li class="goodsList_item"><div class="goods_name"><a href="{href}">{title}</a></div>'
        f'<div class="price"><em>{price}</em>원</div></li>'
        for title, price, href in items
    )
    return f'<html><body><ul class="yesUI_list">{rows}</ul></body></html>'


def _naver_item(title: str, link: str, lprice: str = "52000", **extra) -> dict:
    item = {
        "title": title,
        "link": link,
        "lprice": lprice,
        "mallName": "shop",
        "category1": "도서",
        "category2": "음반",
    }
    item.update(extra)
    return item


# ---------------------------------------------------------------------------
# Base contract
# ---------------------------------------------------------------------------


class TestAdapterBase:
    def test_query_building(self, keyword_identifier, barcode_identifier):
        adapter = Yes24Adapter()

        exact = adapter.lookup_mode(barcode_identifier)
        keyword = adapter.lookup_mode(keyword_identifier)

        assert adapter.build_query(barcode_identifier, exact) == "0194398665212"
        assert adapter.build_query(keyword_identifier, keyword) == "Miles Davis Kind Of Blue LP"

    @pytest.mark.asyncio
    async def test_no_query_without_barcode_or_title(self):
        fetcher = AsyncMock()
        identifier = ProductIdentifier(product_id="p-9", catalog_id="249504")

        outcome = await Yes24Adapter().collect(identifier, fetcher)

        assert outcome.status is OutcomeStatus.NO_OFFER
        assert outcome.reason == "no_query"
        fetcher.fetch.assert_not_awaited()

    def test_default_adapters(self):
        adapters = build_default_adapters()
        assert len(adapters) == 10
        assert len({a.name for a in adapters}) == 10

    @pytest.mark.parametrize(
        "text, expected",
        [(None, True), ("재고있음", True), ("일시품절", False), ("SOLD OUT", False)],
    )
    def test_is_in_stock(self, text, expected):
        assert is_in_stock(text) is expected

    def test_resolve_link(self):
        adapter = Yes24Adapter()
        assert adapter.resolve_link("/Product/Goods/1") == "https://www.yes24.com/Product/Goods/1"
        assert adapter.resolve_link("javascript:void(0)") is None
        assert adapter.resolve_link(None) is None


# ---------------------------------------------------------------------------
# HTML storefronts
# ---------------------------------------------------------------------------


class TestHtmlStorefronts:
    """YES24 / Interpark / independent shops through collect()."""

    @pytest.mark.asyncio
    async def test_barcode_lookup_skips_cd_and_takes_lp(self, barcode_identifier):
        html = _yes24_page(
            ("Taylor Swift - Folklore [CD]", "19,800", "/Product/Goods/111"),
            ("Taylor Swift - Folklore [LP]", "59,000", "/Product/Goods/222"),
        )
        with respx.mock:
            route = respx.get(YES24_URL).mock(return_value=httpx.Response(200, text=html))

            async with Fetcher(max_retries=0) as fetcher:
                outcome = await Yes24Adapter().collect(barcode_identifier, fetcher)

        assert outcome.found
        offer = outcome.offer
        assert offer.vendor_name == "YES24"
        assert offer.base_price == 59000
        assert offer.url == "https://www.yes24.com/Product/Goods/222"
        assert offer.affiliate_param_key == "Acode"
        assert route.calls.last.request.url.params["query"] == "0194398665212"
        assert route.calls.last.request.url.params["domain"] == "ALL"

    @pytest.mark.asyncio
    async def test_only_cd_results_rejected(self, keyword_identifier):
        html = _yes24_page(("Miles Davis - Kind Of Blue CD", "25,000", "/Product/Goods/1"))
        with respx.mock:
            respx.get(YES24_URL).mock(return_value=httpx.Response(200, text=html))

            async with Fetcher(max_retries=0) as fetcher:
                outcome = await Yes24Adapter().collect(keyword_identifier, fetcher)

        assert outcome.status is OutcomeStatus.REJECTED
        assert outcome.reason == "missing_format_keyword"
        assert outcome.offer is None

    @pytest.mark.asyncio
    async def test_empty_result_page(self, keyword_identifier):
        with respx.mock:
            respx.get(YES24_URL).mock(
                return_value=httpx.Response(200, text="<html><body>검색결과가 없습니다</body></html>")
            )

            async with Fetcher(max_retries=0) as fetcher:
                outcome = await Yes24Adapter().collect(keyword_identifier, fetcher)

        assert outcome.status is OutcomeStatus.NO_OFFER
        assert outcome.reason == "no_candidate"

    @pytest.mark.asyncio
    async def test_unparsable_price_is_no_offer(self, keyword_identifier):
        html = _yes24_page(("Miles Davis - Kind Of Blue LP", "가격문의", "/Product/Goods/1"))
        with respx.mock:
            respx.get(YES24_URL).mock(return_value=httpx.Response(200, text=html))

            async with Fetcher(max_retries=0) as fetcher:
                outcome = await Yes24Adapter().collect(keyword_identifier, fetcher)

        assert outcome.status is OutcomeStatus.NO_OFFER
        assert outcome.reason == "price_unparsable"

    @pytest.mark.asyncio
    async def test_blocked_vendor(self, keyword_identifier):
        with respx.mock:
            respx.get(YES24_URL).mock(return_value=httpx.Response(429))

            async with Fetcher(max_retries=2, base_backoff=0.0) as fetcher:
                outcome = await Yes24Adapter().collect(keyword_identifier, fetcher)

        assert outcome.status is OutcomeStatus.BLOCKED
        assert outcome.reason == "blocked_http_429"

    @pytest.mark.asyncio
    async def test_network_failure_is_error(self, keyword_identifier):
        with respx.mock:
            respx.get(YES24_URL).mock(side_effect=httpx.ConnectError("refused"))

            async with Fetcher(max_retries=1, base_backoff=0.0) as fetcher:
                outcome = await Yes24Adapter().collect(keyword_identifier, fetcher)

        assert outcome.status is OutcomeStatus.ERROR
        assert outcome.reason == "network"

    @pytest.mark.asyncio
    async def test_timeout_is_error(self, keyword_identifier):
        with respx.mock:
            respx.get(YES24_URL).mock(side_effect=httpx.ReadTimeout("slow"))

            async with Fetcher(max_retries=1, base_backoff=0.0) as fetcher:
                outcome = await Yes24Adapter().collect(keyword_identifier, fetcher)

        assert outcome.status is OutcomeStatus.ERROR
        assert outcome.reason == "timeout"

    @pytest.mark.asyncio
    async def test_item_without_link_uses_search_page(self, keyword_identifier):
        html = (
            '<div class="productItem"><span class="name">Miles Davis - Kind Of Blue LP</span>'
            '<span class="price">41,000원</span></div>'
        )
        with respx.mock:
            respx.get(INTERPARK_URL).mock(return_value=httpx.Response(200, text=html))

            async with Fetcher(max_retries=0) as fetcher:
                outcome = await InterparkAdapter().collect(keyword_identifier, fetcher)

        assert outcome.found
        assert outcome.offer.url.startswith(INTERPARK_URL + "?")
        assert outcome.offer.base_price == 41000

    @pytest.mark.asyncio
    async def test_indie_shop_flat_shipping_and_stock(self, keyword_identifier):
        html = (
            '<div class="product"><a href="/product/123"><span class="name">'
            "Miles Davis - Kind Of Blue LP</span></a>"
            '<span class="price">38,000원</span><span class="soldout">품절</span></div>'
        )
        with respx.mock:
            respx.get(KIMBAP_URL).mock(return_value=httpx.Response(200, text=html))

            async with Fetcher(max_retries=0) as fetcher:
                outcome = await KimbapRecordAdapter().collect(keyword_identifier, fetcher)

        offer = outcome.offer
        assert offer is not None
        assert offer.url == "https://kimbaprecord.com/product/123"
        assert offer.shipping_fee == 3000
        assert offer.effective_price == 41000
        assert offer.in_stock is False
        assert offer.channel_id == "indy-shop"


# ---------------------------------------------------------------------------
# Naver shopping search
# ---------------------------------------------------------------------------


class TestNaverShopping:
    @pytest.mark.asyncio
    async def test_not_configured(self, barcode_identifier):
        fetcher = AsyncMock()

        outcome = await NaverShoppingAdapter(client_id="", client_secret="").collect(
            barcode_identifier, fetcher
        )

        assert outcome.status is OutcomeStatus.NO_OFFER
        assert outcome.reason == "not_configured"
        fetcher.fetch_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_untrusted_domains_filtered(self, barcode_identifier):
        payload = {
            "total": 2,
            "items": [
                _naver_item("Taylor Swift Folklore LP", "https://www.coupang.com/vp/products/1", "45000"),
                _naver_item(
                    "<b>Taylor Swift</b> - Folklore [LP]",
                    "https://smartstore.naver.com/vinylshop/products/555",
                ),
            ],
        }
        with respx.mock:
            route = respx.get(settings.NAVER_SEARCH_URL).mock(
                return_value=httpx.Response(200, json=payload)
            )

            async with Fetcher(max_retries=0) as fetcher:
                outcome = await NaverShoppingAdapter("id", "secret").collect(barcode_identifier, fetcher)

        assert outcome.found
        assert outcome.offer.base_price == 52000
        assert outcome.offer.url == "https://smartstore.naver.com/vinylshop/products/555"
        request = route.calls.last.request
        assert request.headers["X-Naver-Client-Id"] == "id"
        assert request.headers["X-Naver-Client-Secret"] == "secret"
        assert request.url.params["sort"] == "sim"

    @pytest.mark.asyncio
    async def test_smartstore_checked_for_identity_on_barcode_lookup(self, barcode_identifier):
        payload = {
            "total": 2,
            "items": [
                _naver_item("Taylor Swift - Evermore LP", "https://smartstore.naver.com/s/products/1"),
                _naver_item(
                    "Taylor Swift - Evermore LP", "https://www.yes24.com/Product/Goods/9", "61000"
                ),
            ],
        }
        with respx.mock:
            respx.get(settings.NAVER_SEARCH_URL).mock(return_value=httpx.Response(200, json=payload))

            async with Fetcher(max_retries=0) as fetcher:
                outcome = await NaverShoppingAdapter("id", "secret").collect(barcode_identifier, fetcher)

        # the trusted bookstore listing is taken on the barcode alone
        assert outcome.found
        assert outcome.offer.url == "https://www.yes24.com/Product/Goods/9"
        assert outcome.offer.base_price == 61000

    def test_allowed_domain(self):
        assert is_allowed_domain("https://smartstore.naver.com/x/products/1") is True
        assert is_allowed_domain("https://m.smartstore.naver.com/x/products/1") is True
        assert is_allowed_domain("https://evilsmartstore.naver.com.example.com/") is False
        assert is_allowed_domain("not a url") is False

    def test_item_price_parsing(self):
        assert NaverShopItem.model_validate({"lprice": "45000"}).lprice == 45000
        assert NaverShopItem.model_validate({"lprice": ""}).lprice is None


# ---------------------------------------------------------------------------
# Aladin open API
# ---------------------------------------------------------------------------


class TestAladin:
    @pytest.mark.asyncio
    async def test_offer_from_music_search(self, keyword_identifier):
        payload = {
            "totalResults": 1,
            "item": [
                {
                    "title": "Miles Davis - Kind Of Blue",
                    "link": "https://www.aladin.co.kr/shop/wproduct.aspx?ItemId=1",
                    "priceSales": 36000,
                    "priceStandard": 40000,
                    "stockStatus": "",
                    "categoryName": "음반>재즈>LP",
                }
            ],
        }
        with respx.mock:
            route = respx.get(settings.ALADIN_SEARCH_URL).mock(
                return_value=httpx.Response(200, json=payload)
            )

            async with Fetcher(max_retries=0) as fetcher:
                outcome = await AladinAdapter(ttb_key="key").collect(keyword_identifier, fetcher)

        assert outcome.found
        assert outcome.offer.base_price == 36000
        assert outcome.offer.vendor_name == "알라딘"
        params = route.calls.last.request.url.params
        assert params["SearchTarget"] == "Music"
        assert params["Query"] == "Miles Davis Kind Of Blue LP"
        assert params["ttbkey"] == "key"

    @pytest.mark.asyncio
    async def test_api_error_is_no_offer(self, keyword_identifier):
        with respx.mock:
            respx.get(settings.ALADIN_SEARCH_URL).mock(
                return_value=httpx.Response(200, json={"errorCode": 100, "errorMessage": "잘못된 TTBKey"})
            )

            async with Fetcher(max_retries=0) as fetcher:
                outcome = await AladinAdapter(ttb_key="bad").collect(keyword_identifier, fetcher)

        assert outcome.status is OutcomeStatus.NO_OFFER
        assert outcome.reason == "no_candidate"

    @pytest.mark.asyncio
    async def test_sold_out_and_standard_price_fallback(self, keyword_identifier):
        payload = {
            "item": [
                {
                    "title": "Miles Davis - Kind Of Blue LP",
                    "link": "https://www.aladin.co.kr/shop/wproduct.aspx?ItemId=2",
                    "priceStandard": 42000,
                    "stockStatus": "품절",
                    "categoryName": "음반>재즈",
                }
            ],
        }
        with respx.mock:
            respx.get(settings.ALADIN_SEARCH_URL).mock(return_value=httpx.Response(200, json=payload))

            async with Fetcher(max_retries=0) as fetcher:
                outcome = await AladinAdapter(ttb_key="key").collect(keyword_identifier, fetcher)

        assert outcome.offer.base_price == 42000
        assert outcome.offer.in_stock is False

    def test_not_configured_without_key(self):
        assert AladinAdapter(ttb_key="").is_configured() is False
