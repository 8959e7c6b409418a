"""
LP Market - Record Shop Adapters

Record chains (Synnara, Hottracks) and independent shops (Hyang Music, Kimbap
Record, Majang Music). The independent shops run on small storefront builders
with a flat search page and charge a flat shipping fee.
"""

from __future__ import annotations

from lpmarket.vendors.cascades import HOTTRACKS_CASCADE, INDIE_SHOP_CASCADE, SYNNARA_CASCADE
from lpmarket.vendors.html import HtmlVendorAdapter

RECORD_SHOP_CHANNEL = "record-shop"
INDY_SHOP_CHANNEL = "indy-shop"

INDY_SHIPPING_FEE = 3000
INDY_SHIPPING_POLICY = "7만원 이상 무료배송"


# ---------------------------------------------------------------------------
# Record chains
# ---------------------------------------------------------------------------


class SynnaraAdapter(HtmlVendorAdapter):
    name = "신나라레코드"
    channel_id = RECORD_SHOP_CHANNEL
    shipping_fee = 0
    shipping_policy = "3만원 이상 무료배송"
    max_candidates = 3

    search_url = "https://www.synnara.co.kr/search/search.asp"
    query_param = "keyword"
    base_url = "https://www.synnara.co.kr"
    cascade = SYNNARA_CASCADE


class HottracksAdapter(HtmlVendorAdapter):
    name = "핫트랙스"
    channel_id = RECORD_SHOP_CHANNEL
    shipping_fee = 0
    shipping_policy = "2만원 이상 무료배송"
    max_candidates = 3

    search_url = "https://hottracks.kyobobook.co.kr/ht/search/searchList"
    query_param = "searchTerm"
    base_url = "https://hottracks.kyobobook.co.kr"
    cascade = HOTTRACKS_CASCADE


# ---------------------------------------------------------------------------
# Independent shops
# ---------------------------------------------------------------------------


class _IndieShopAdapter(HtmlVendorAdapter):
    channel_id = INDY_SHOP_CHANNEL
    shipping_fee = INDY_SHIPPING_FEE
    shipping_policy = INDY_SHIPPING_POLICY
    max_candidates = 1
    cascade = INDIE_SHOP_CASCADE
    link_fallback_to_search = True


class HyangMusicAdapter(_IndieShopAdapter):
    name = "향뮤직"
    affiliate_code = "cursor-track"
    affiliate_param_key = "ref"

    search_url = "https://www.hyangmusic.com/"
    query_param = "keyword"
    extra_params = {"page": "search"}
    base_url = "https://www.hyangmusic.com"


class KimbapRecordAdapter(_IndieShopAdapter):
    name = "김밥레코드"

    search_url = "https://kimbaprecord.com/search"
    query_param = "q"
    base_url = "https://kimbaprecord.com"


class MajangMusicAdapter(_IndieShopAdapter):
    name = "마장뮤직앤픽쳐스"

    search_url = "https://majangmusic.com/search"
    query_param = "q"
    base_url = "https://majangmusic.com"
