"""
Tests for lpmarket/scraper/selectors.py

Cascades are evaluated against small inline documents; no network.
"""

from lpmarket.engine.price import normalize_price
from lpmarket.scraper.selectors import (
    SelectorCascade,
    css_attr,
    css_text,
    extract_item,
    first_match,
    parse_document,
    regex_text,
    select_items,
)
from lpmarket.vendors.cascades import KRW_PRICE_PATTERN, YES24_CASCADE

YES24_HTML = """
<ul class="yesUI_list">
  <li class="goodsList_item">
    <div class="goods_name"><a href="/Product/Goods/111">Taylor Swift - Folklore [CD]</a></div>
    <div class="price"><em>19,800</em>원</div>
  </li>
  <li class="goodsList_item">
    <div class="goods_name"><a href="/Product/Goods/222">Taylor Swift - Folklore [LP]</a></div>
    <div class="price"><em>59,000</em>원</div>
    <span class="stock">일시품절</span>
  </li>
</ul>
"""


class TestSelectItems:
    """The first item selector with any match wins."""

    def test_primary_selector(self):
        soup = parse_document(YES24_HTML)
        nodes = select_items(soup, YES24_CASCADE.items, limit=5)
        assert len(nodes) == 2

    def test_falls_back_to_next_selector(self):
        soup = parse_document('<div><p class="row">a</p><p class="row">b</p></div>')
        nodes = select_items(soup, (".missing", "p.row"), limit=5)
        assert [n.get_text() for n in nodes] == ["a", "b"]

    def test_limit(self):
        soup = parse_document(YES24_HTML)
        assert len(select_items(soup, YES24_CASCADE.items, limit=1)) == 1

    def test_nothing_matches(self):
        soup = parse_document("<html><body>검색결과가 없습니다</body></html>")
        assert select_items(soup, YES24_CASCADE.items, limit=5) == []


class TestExtractItem:
    def test_yes24_fields(self):
        soup = parse_document(YES24_HTML)
        second = select_items(soup, YES24_CASCADE.items, limit=5)[1]

        item = extract_item(second, YES24_CASCADE)

        assert item.title == "Taylor Swift - Folklore [LP]"
        assert normalize_price(item.price) == 59000
        assert item.link == "/Product/Goods/222"
        assert item.stock == "일시품절"

    def test_missing_stock_is_none(self):
        soup = parse_document(YES24_HTML)
        first = select_items(soup, YES24_CASCADE.items, limit=5)[0]
        assert extract_item(first, YES24_CASCADE).stock is None


class TestExtractors:
    def test_first_non_empty_wins(self):
        node = parse_document('<div><span class="a"></span><span class="b">Abbey Road</span></div>')
        assert first_match(node, (css_text(".a"), css_text(".b"))) == "Abbey Road"

    def test_first_match_none(self):
        node = parse_document("<div></div>")
        assert first_match(node, (css_text(".a"),)) is None

    def test_css_attr_skips_elements_without_attr(self):
        node = parse_document('<div><a>no link</a><a href="/item/9">item</a></div>')
        assert css_attr("a", "href")(node) == "/item/9"

    def test_regex_text_price(self):
        node = parse_document("<div>Abbey Road 판매가 35,000원 적립 350P</div>")
        assert regex_text(KRW_PRICE_PATTERN)(node) == "35,000원"

    def test_custom_cascade(self):
        cascade = SelectorCascade(
            items=(".card",),
            title=(css_text(".missing"), css_text("h3")),
            price=(css_text(".cost"),),
            link=(css_attr("a", "href"),),
        )
        node = parse_document('<div class="card"><h3>Blue Train LP</h3><b class="cost">33,000원</b></div>')
        item = extract_item(select_items(node, cascade.items, 1)[0], cascade)
        assert item.title == "Blue Train LP"
        assert item.price == "33,000원"
        assert item.link is None
        assert item.stock is None
