"""
LP Market - Vendor Selector Cascades

Selector data only. When a storefront changes its markup, add the new
selector at the front of the relevant tuple and keep the old ones as
fallbacks until the old layout is confirmed gone.
"""

from __future__ import annotations

from lpmarket.scraper.selectors import SelectorCascade, css_attr, css_text, regex_text

# Any "12,345원" run in the item text, used when no price element matches
KRW_PRICE_PATTERN = r"\d[\d,]*\s*원"

# ---------------------------------------------------------------------------
# Mega bookstores
# ---------------------------------------------------------------------------
YES24_CASCADE = SelectorCascade(
    items=(".goodsList_item", ".itemUnit", ".yesUI_list li", 'li[class*="item"]', 'li[class*="goods"]'),
    title=(css_text(".goods_name a"), css_text(".gd_name"), css_text("a")),
    price=(
        css_text(".price"),
        css_text(".yes_price"),
        css_text('[class*="price"]'),
        regex_text(KRW_PRICE_PATTERN),
    ),
    link=(css_attr(".goods_name a", "href"), css_attr(".gd_name", "href"), css_attr("a", "href")),
    stock=(css_text(".stock"), css_text('[class*="stock"]')),
)

KYOBO_CASCADE = SelectorCascade(
    items=(".prod_item", ".prod_list_item"),
    title=(css_text(".prod_link"), css_text('[id^="cmdtName"]'), css_text(".prod_name")),
    price=(css_text(".price > .val"), css_text(".price"), regex_text(KRW_PRICE_PATTERN)),
    link=(css_attr(".prod_link", "href"), css_attr("a", "href")),
    stock=(css_text(".prod_status"), css_text('[class*="stock"]')),
)

INTERPARK_CASCADE = SelectorCascade(
    items=(".productItem", ".item", '[class*="product"]'),
    title=(
        css_text(".name"),
        css_text(".title"),
        css_text(".productName"),
        css_attr("a[title]", "title"),
        css_text("a"),
    ),
    price=(
        css_text(".price"),
        css_text(".sell_price"),
        css_text('[class*="price"]'),
        regex_text(KRW_PRICE_PATTERN),
    ),
    link=(css_attr("a", "href"),),
    stock=(css_text('[class*="soldout"]'), css_text('[class*="stock"]')),
)

# ---------------------------------------------------------------------------
# Record chains
# ---------------------------------------------------------------------------
SYNNARA_CASCADE = SelectorCascade(
    items=(".goods_list li", ".prd_list li", 'li[class*="goods"]', '[class*="product"]'),
    title=(css_text(".goods_name"), css_text(".prd_name"), css_text(".title"), css_text("a")),
    price=(
        css_text(".sale_price"),
        css_text(".price"),
        css_text('[class*="price"]'),
        regex_text(KRW_PRICE_PATTERN),
    ),
    link=(css_attr(".goods_name a", "href"), css_attr("a", "href")),
    stock=(css_text(".soldout"), css_text('[class*="stock"]')),
)

HOTTRACKS_CASCADE = SelectorCascade(
    items=(".prod_list .item", ".product_list li", 'li[class*="item"]', '[class*="product"]'),
    title=(css_text(".prod_name"), css_text(".tit"), css_text(".title"), css_text("a")),
    price=(
        css_text(".price .num"),
        css_text(".price"),
        css_text('[class*="price"]'),
        regex_text(KRW_PRICE_PATTERN),
    ),
    link=(css_attr(".prod_name a", "href"), css_attr("a", "href")),
    stock=(css_text(".soldout"), css_text('[class*="stock"]')),
)

# ---------------------------------------------------------------------------
# Independent shops (shared storefront builders, so one generic cascade)
# ---------------------------------------------------------------------------
INDIE_SHOP_CASCADE = SelectorCascade(
    items=(".product", ".item", '[class*="product"]'),
    title=(css_text(".name"), css_text(".title"), css_text(".product-title"), css_text("a")),
    price=(css_text(".price"), css_text('[class*="price"]'), regex_text(KRW_PRICE_PATTERN)),
    link=(css_attr("a", "href"),),
    stock=(css_text(".soldout"), css_text('[class*="stock"]'), css_text('[class*="sold"]')),
)
