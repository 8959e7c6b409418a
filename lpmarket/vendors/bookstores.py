"""
LP Market - Mega Bookstore Adapters (YES24, Kyobo, Interpark)

Large online bookstores with music sections. All three accept a barcode in
their main search box, and list several formats of the same album, so YES24
and Kyobo scan the first few results for the LP pressing.
"""

from __future__ import annotations

from lpmarket.vendors.cascades import INTERPARK_CASCADE, KYOBO_CASCADE, YES24_CASCADE
from lpmarket.vendors.html import HtmlVendorAdapter

MEGA_BOOK_CHANNEL = "mega-book"


class Yes24Adapter(HtmlVendorAdapter):
    name = "YES24"
    channel_id = MEGA_BOOK_CHANNEL
    shipping_fee = 0
    shipping_policy = "5만원 이상 무료배송"
    affiliate_code = "itsmyturn"
    affiliate_param_key = "Acode"
    max_candidates = 5

    search_url = "https://www.yes24.com/Product/Search"
    query_param = "query"
    extra_params = {"domain": "ALL"}
    base_url = "https://www.yes24.com"
    cascade = YES24_CASCADE


class KyoboAdapter(HtmlVendorAdapter):
    name = "교보문고"
    channel_id = MEGA_BOOK_CHANNEL
    shipping_fee = 0
    shipping_policy = "5만원 이상 무료배송"
    affiliate_code = "itsmyturn"
    affiliate_param_key = "KyoboCode"
    max_candidates = 5

    search_url = "https://search.kyobobook.co.kr/search"
    query_param = "keyword"
    extra_params = {"gbCode": "MUC", "target": "total"}
    base_url = "https://product.kyobobook.co.kr"
    cascade = KYOBO_CASCADE


class InterparkAdapter(HtmlVendorAdapter):
    name = "인터파크"
    channel_id = MEGA_BOOK_CHANNEL
    shipping_fee = 0
    shipping_policy = "5만원 이상 무료배송"
    max_candidates = 1

    search_url = "https://shopping.interpark.com/search/totalSearch.do"
    query_param = "q"
    base_url = "https://shopping.interpark.com"
    cascade = INTERPARK_CASCADE
    link_fallback_to_search = True
