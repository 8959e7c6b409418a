"""
Tests for lpmarket/engine/validation.py

Covers:
- Rule order of validate() (first failing rule wins)
- Allowlist / blocklist / override phrases
- Keyword-search identity and artist checks
- URL category checks
- Format tag helpers shared with the integrity sweep
"""

from __future__ import annotations

import pytest

from lpmarket.engine.validation import (
    classify_format_tags,
    find_blocked_keyword,
    find_format_keyword,
    is_exclusively_disqualified,
    is_valid_product_url,
    split_format_tags,
    strip_markup,
    validate,
)
from lpmarket.scraper import Candidate, LookupMode, ProductIdentifier, VerdictReason


GOOD_URL = "https://www.yes24.com/Product/Goods/123"


def _candidate(title: str, price="35,000원", url: str = GOOD_URL, **extra) -> Candidate:
    return Candidate(title=title, price=price, url=url, **extra)


@pytest.fixture
def kind_of_blue() -> ProductIdentifier:
    return ProductIdentifier(product_id="p-1", title="Kind Of Blue", artist="Miles Davis")


# ---------------------------------------------------------------------------
# validate()
# ---------------------------------------------------------------------------


class TestValidateAccepts:
    """Well-formed LP candidates pass with a normalized price."""

    def test_barcode_lookup_accepts_lp(self, barcode_identifier):
        candidate = _candidate("Taylor Swift - Folklore LP", price="59,000원")

        verdict = validate(candidate, barcode_identifier, LookupMode.IDENTIFIER_EXACT)

        assert verdict.passed is True
        assert verdict.reason == VerdictReason.OK
        assert verdict.price == 59000

    def test_keyword_search_accepts_matching_title(self, kind_of_blue):
        candidate = _candidate("Miles Davis - Kind Of Blue (180g Vinyl LP)")

        verdict = validate(candidate, kind_of_blue, LookupMode.KEYWORD_SEARCH)

        assert verdict.passed is True
        assert verdict.price == 35000

    def test_override_phrase_neutralizes_blocked_word(self, kind_of_blue):
        candidate = _candidate("Miles Davis Kind Of Blue LP + CD")

        verdict = validate(candidate, kind_of_blue, LookupMode.KEYWORD_SEARCH)

        assert verdict.passed is True

    def test_markup_stripped_before_matching(self, kind_of_blue):
        candidate = _candidate("<b>Miles Davis</b> Kind Of Blue <b>LP</b>")

        verdict = validate(candidate, kind_of_blue, LookupMode.KEYWORD_SEARCH)

        assert verdict.passed is True

    def test_format_pure_source_skips_allowlist(self, kind_of_blue):
        candidate = _candidate("Kind Of Blue", format_pure=True)

        verdict = validate(candidate, kind_of_blue, LookupMode.IDENTIFIER_EXACT)

        assert verdict.passed is True


class TestValidateRejects:
    """Each rule produces its own rejection reason."""

    def test_cd_title_rejected(self, kind_of_blue):
        candidate = _candidate("Miles Davis Kind Of Blue CD")

        verdict = validate(candidate, kind_of_blue, LookupMode.KEYWORD_SEARCH)

        assert verdict.passed is False
        assert verdict.reason == VerdictReason.MISSING_FORMAT_KEYWORD

    def test_blocklist_wins_over_allowlist(self, kind_of_blue):
        candidate = _candidate("Miles Davis Kind Of Blue LP CD")

        verdict = validate(candidate, kind_of_blue, LookupMode.KEYWORD_SEARCH)

        assert verdict.passed is False
        assert verdict.reason == VerdictReason.BLOCKED_KEYWORD

    def test_price_above_ceiling(self, kind_of_blue):
        candidate = _candidate("Miles Davis Kind Of Blue LP", price="12,345,000원")

        verdict = validate(candidate, kind_of_blue, LookupMode.KEYWORD_SEARCH)

        assert verdict.passed is False
        assert verdict.reason == VerdictReason.PRICE_OUT_OF_RANGE
        assert verdict.price == 12345000

    def test_price_below_floor(self, kind_of_blue):
        candidate = _candidate("Miles Davis Kind Of Blue LP", price="9,900원")

        verdict = validate(candidate, kind_of_blue, LookupMode.KEYWORD_SEARCH)

        assert verdict.reason == VerdictReason.PRICE_OUT_OF_RANGE

    @pytest.mark.parametrize("raw", ["품절", 0, None])
    def test_price_unparsable(self, kind_of_blue, raw):
        candidate = _candidate("Miles Davis Kind Of Blue LP", price=raw)

        verdict = validate(candidate, kind_of_blue, LookupMode.KEYWORD_SEARCH)

        assert verdict.reason == VerdictReason.PRICE_UNPARSABLE

    def test_price_checked_before_title(self, kind_of_blue):
        verdict = validate(_candidate("LP", price="품절"), kind_of_blue, LookupMode.KEYWORD_SEARCH)

        assert verdict.reason == VerdictReason.PRICE_UNPARSABLE

    @pytest.mark.parametrize("title", ["LP", "1234-5678"])
    def test_title_too_short(self, kind_of_blue, title):
        verdict = validate(_candidate(title), kind_of_blue, LookupMode.IDENTIFIER_EXACT)

        assert verdict.reason == VerdictReason.TITLE_TOO_SHORT

    def test_different_album_low_similarity(self, kind_of_blue):
        candidate = _candidate("Miles Davis - Bitches Brew LP")

        verdict = validate(candidate, kind_of_blue, LookupMode.KEYWORD_SEARCH)

        assert verdict.reason == VerdictReason.LOW_SIMILARITY

    def test_exact_lookup_skips_identity_checks(self, kind_of_blue):
        candidate = _candidate("Miles Davis - Bitches Brew LP")

        verdict = validate(candidate, kind_of_blue, LookupMode.IDENTIFIER_EXACT)

        assert verdict.passed is True

    def test_artist_missing(self, kind_of_blue):
        candidate = _candidate("Kind Of Blue LP (Remastered)")

        verdict = validate(candidate, kind_of_blue, LookupMode.KEYWORD_SEARCH)

        assert verdict.reason == VerdictReason.ARTIST_MISSING

    def test_explicit_threshold(self, kind_of_blue):
        candidate = _candidate("Miles Davis Kind Of Blue LP")

        verdict = validate(candidate, kind_of_blue, LookupMode.KEYWORD_SEARCH, threshold=1.01)

        assert verdict.reason == VerdictReason.LOW_SIMILARITY

    def test_non_music_url(self, kind_of_blue):
        candidate = _candidate("Miles Davis Kind Of Blue LP", url="https://shop.example.com/book/123")

        verdict = validate(candidate, kind_of_blue, LookupMode.KEYWORD_SEARCH)

        assert verdict.reason == VerdictReason.INVALID_URL


# ---------------------------------------------------------------------------
# Vocabulary helpers
# ---------------------------------------------------------------------------


class TestKeywords:
    def test_lp_inside_2lp(self):
        assert find_format_keyword("Folklore 2LP") == "lp"

    def test_lp_not_inside_word(self):
        assert find_format_keyword("Help!") is None

    def test_korean_keyword(self):
        assert find_format_keyword("김광석 다시부르기 바이닐") == "바이닐"

    def test_poster_bundle_override(self):
        assert find_blocked_keyword("Abbey Road LP with poster") is None

    def test_poster_alone_blocked(self):
        assert find_blocked_keyword("Abbey Road Poster") == "poster"

    def test_turntable_blocked(self):
        assert find_blocked_keyword("Bluetooth Turntable for LP") is not None

    def test_korean_substring_matches_by_default(self):
        assert find_blocked_keyword("산책") == "책"

    def test_whole_tokens_korean(self):
        assert find_blocked_keyword("산책", whole_tokens=True) is None
        assert find_blocked_keyword("책갈피", whole_tokens=True) is None
        assert find_blocked_keyword("한정판 책 세트", whole_tokens=True) == "책"

    def test_whole_tokens_leaves_ascii_rules_alone(self):
        assert find_blocked_keyword("Abbey Road Posters", whole_tokens=True) == "poster"

    def test_strip_markup(self):
        assert strip_markup("<b>Kind</b>   Of <i>Blue</i>") == "Kind Of Blue"


class TestFormatTags:
    def test_vinyl_release(self):
        assert classify_format_tags(["Vinyl", "LP", "Album"]) == (True, False)

    def test_cd_release(self):
        assert classify_format_tags(["CD", "Album"]) == (False, True)

    def test_exclusively_digital(self):
        assert is_exclusively_disqualified(["File", "MP3"]) is True

    def test_mixed_release_not_exclusive(self):
        assert is_exclusively_disqualified(["Vinyl", "CD"]) is False

    def test_no_tags(self):
        assert is_exclusively_disqualified([]) is False

    def test_split(self):
        assert split_format_tags("Vinyl, LP / CD") == ["Vinyl", "LP", "CD"]
        assert split_format_tags(None) == []


class TestProductUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.yes24.com/Product/Goods/123",
            "https://smartstore.naver.com/shop/products/987",
            "https://shop.example.com/book/music/1",
        ],
    )
    def test_valid(self, url):
        assert is_valid_product_url(url) is True

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "/Product/Goods/123",
            "ftp://www.yes24.com/item",
            "https://shop.example.com/clothing/42",
            "https://shop.example.com/item?category=poster",
        ],
    )
    def test_invalid(self, url):
        assert is_valid_product_url(url) is False
