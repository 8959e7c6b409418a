"""
LP Market - Matching & Validation Engine

Decides whether a scraped candidate really is the requested LP and is
well-formed. validate() is pure apart from logging; rules run in order and the
first failure wins:

    1. price sanity        price parses and lies inside the floor/ceiling band
    2. title sanity        markup stripped, at least a few meaningful characters
    3. format allowlist    LP vocabulary present, unless the source is format-pure
    4. format blocklist    no CD / merch / hardware vocabulary (override phrases aside)
    5. identity            keyword-search only: bigram similarity >= threshold
    6. artist inclusion    keyword-search only: artist appears in candidate title
    7. url category        product URL does not live in a non-music category

The same vocabulary helpers back the integrity sweep, so persisted data is
judged by exactly the rules new data is.
"""

from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import parse_qs, unquote, urlsplit

import structlog

from lpmarket.config import settings
from lpmarket.engine.price import normalize_price, price_in_band
from lpmarket.engine.similarity import contains_normalized, title_similarity
from lpmarket.scraper import (
    Candidate,
    LookupMode,
    ProductIdentifier,
    ValidationVerdict,
    VerdictReason,
)

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------
LP_KEYWORDS: tuple[str, ...] = (
    "lp", "vinyl", "바이닐", "엘피", "레코드", "record", '12"', "12인치",
)

DISC_FORMAT_KEYWORDS: tuple[str, ...] = (
    "cd", "compact disc", "sacd", "cdr", "디지털", "digital", "mp3", "flac",
    "wav", "cassette", "카세트",
)

# Catalog format tags that mean "not an LP" (Discogs uses "File" for digital).
DISQUALIFIED_FORMAT_TAGS: tuple[str, ...] = DISC_FORMAT_KEYWORDS + (
    "file", "dvd", "vhs", "blu-ray",
)

NON_MUSIC_KEYWORDS: tuple[str, ...] = (
    # apparel / print
    "dress", "t-shirt", "hoodie", "book", "책", "comic", "novel", "magazine",
    "calendar", "poster", "포스터",
    # merch
    "goods", "굿즈", "merch", "keyring", "photocard", "sticker", "patch", "frame", "액자",
    # video / tape
    "tape", "vhs", "dvd", "blu-ray",
    # hardware / accessories
    "scale", "체중계", "bluetooth", "metronome", "cleaner", "turntable", "턴테이블",
    "needle", "stylus", "cartridge", "tonearm",
)

BLOCKED_KEYWORDS: tuple[str, ...] = DISC_FORMAT_KEYWORDS + NON_MUSIC_KEYWORDS

# Phrases that neutralize a blocked word because the item is still an LP
# bundle (e.g. "LP + CD", "with poster"). They are removed before the
# blocklist scan; the rest of the title is still checked.
OVERRIDE_PHRASES: tuple[str, ...] = (
    "lp + cd", "lp+cd", "cd + lp", "cd+lp", "lp & cd", "with cd", "cd 포함",
    "with poster", "+ poster", "+poster", "w/ poster", "포스터 포함", "포스터 증정",
    "digital remaster", "디지털 리마스터",
)

# ---------------------------------------------------------------------------
# URL categories
# ---------------------------------------------------------------------------
INVALID_PATH_SEGMENTS: frozenset[str] = frozenset({
    "book", "books", "도서", "clothing", "fashion", "apparel", "의류", "패션",
    "health", "scale", "건강", "poster", "포스터",
    "cd", "cassette", "카세트", "turntable", "턴테이블", "needle", "stylus",
})

MUSIC_PATH_SEGMENTS: frozenset[str] = frozenset({
    "music", "lp", "vinyl", "record", "records", "album", "음반", "음악", "레코드",
})

CATEGORY_QUERY_KEYS: tuple[str, ...] = ("category", "cat", "c")

_TAG_RE = re.compile(r"<[^>]+>")
_MEANINGFUL_RE = re.compile(r"[^\W\d_]", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")
_keyword_patterns: dict[str, re.Pattern[str]] = {}
_token_patterns: dict[str, re.Pattern[str]] = {}


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    """ASCII words match on letter boundaries so "2LP" hits but "help" doesn't."""
    pattern = _keyword_patterns.get(keyword)
    if pattern is None:
        pattern = re.compile(r"(?<![a-z])" + re.escape(keyword) + r"s?(?![a-z])")
        _keyword_patterns[keyword] = pattern
    return pattern


def _token_pattern(keyword: str) -> re.Pattern[str]:
    """Any keyword as a whole token: "책" hits "책 세트" but not "산책"."""
    pattern = _token_patterns.get(keyword)
    if pattern is None:
        pattern = re.compile(r"(?<!\w)" + re.escape(keyword) + r"(?!\w)")
        _token_patterns[keyword] = pattern
    return pattern


def _contains_keyword(text: str, keyword: str, whole_tokens: bool = False) -> bool:
    if keyword.isascii():
        return _keyword_pattern(keyword).search(text) is not None
    if whole_tokens:
        return _token_pattern(keyword).search(text) is not None
    return keyword in text


def _prepare(text: str | None) -> str:
    return _WHITESPACE_RE.sub(" ", (text or "").casefold())


def strip_markup(text: str | None) -> str:
    """Remove embedded tags (search APIs wrap hits in <b>) and squeeze spaces."""
    return _WHITESPACE_RE.sub(" ", _TAG_RE.sub("", text or "")).strip()


def find_format_keyword(text: str | None) -> str | None:
    """First LP keyword present in text, or None."""
    prepared = _prepare(text)
    for keyword in LP_KEYWORDS:
        if _contains_keyword(prepared, keyword):
            return keyword
    return None


def find_blocked_keyword(text: str | None, whole_tokens: bool = False) -> str | None:
    """
    First disqualifying keyword present once override phrases are removed.

    Korean keywords match as raw substrings by default, which suits noisy
    vendor listings. whole_tokens=True makes them match only as separate
    words, for curated catalog titles such as "산책" or "책갈피".
    """
    prepared = _prepare(text)
    for phrase in OVERRIDE_PHRASES:
        prepared = prepared.replace(phrase, " ")
    for keyword in BLOCKED_KEYWORDS:
        if _contains_keyword(prepared, keyword, whole_tokens):
            return keyword
    return None


def classify_format_tags(tags: Iterable[str]) -> tuple[bool, bool]:
    """
    Classify catalog format tags (e.g. ["Vinyl", "LP", "Album"] or ["CD"]).

    Returns:
        (has_target_format, has_disqualified_format)
    """
    has_target = False
    has_disqualified = False
    for tag in tags:
        prepared = _prepare(tag)
        if not prepared:
            continue
        if any(_contains_keyword(prepared, kw) for kw in LP_KEYWORDS):
            has_target = True
        elif any(_contains_keyword(prepared, kw) for kw in DISQUALIFIED_FORMAT_TAGS):
            has_disqualified = True
    return has_target, has_disqualified


def is_exclusively_disqualified(tags: Iterable[str]) -> bool:
    """True when at least one disqualified format is tagged and no LP format is."""
    has_target, has_disqualified = classify_format_tags(tags)
    return has_disqualified and not has_target


def split_format_tags(raw_format: str | None) -> list[str]:
    """Split a stored format column like "Vinyl, LP / CD" into tags."""
    if not raw_format:
        return []
    return [part.strip() for part in re.split(r"[,/|;]", raw_format) if part.strip()]


def is_valid_product_url(url: str | None) -> bool:
    """
    Absolute http(s) URL that does not sit in a non-music category.

    A non-music path segment (e.g. /book/, /goods/) is tolerated when a music
    segment (/music/, /lp/, /album/) is also present.
    """
    if not url:
        return False
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return False

    segments = {seg.casefold() for seg in unquote(parts.path).split("/") if seg}
    if segments & INVALID_PATH_SEGMENTS and not segments & MUSIC_PATH_SEGMENTS:
        return False

    query = parse_qs(parts.query)
    for key in CATEGORY_QUERY_KEYS:
        for value in query.get(key, []):
            words = set(re.split(r"[\s_\-/,]+", value.casefold()))
            if words & INVALID_PATH_SEGMENTS and not words & MUSIC_PATH_SEGMENTS:
                return False
    return True


def _title_is_meaningful(title: str) -> bool:
    if len(title) < settings.MIN_CANDIDATE_TITLE_LENGTH:
        return False
    return _MEANINGFUL_RE.search(title) is not None


def _reject(
    reason: VerdictReason,
    detail: str,
    candidate: Candidate,
    price: int | None = None,
) -> ValidationVerdict:
    logger.info(
        "candidate_rejected",
        reason=reason.value,
        detail=detail,
        title=candidate.title[:120],
        url=candidate.url,
    )
    return ValidationVerdict(passed=False, reason=reason, detail=detail, price=price)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate(
    candidate: Candidate,
    identifier: ProductIdentifier,
    mode: LookupMode,
    threshold: float | None = None,
) -> ValidationVerdict:
    """
    Validate one candidate against the product it was searched for.

    Args:
        candidate: Extracted vendor result.
        identifier: Product the vendor was queried for.
        mode: IDENTIFIER_EXACT lookups skip the identity and artist rules.
        threshold: Similarity threshold (default settings.SIMILARITY_THRESHOLD).

    Returns:
        ValidationVerdict; on success `price` carries the normalized price.
    """
    # 1. Price sanity
    price = normalize_price(candidate.price)
    if not price:
        return _reject(VerdictReason.PRICE_UNPARSABLE, f"raw={candidate.price!r}", candidate)
    if not price_in_band(price):
        return _reject(
            VerdictReason.PRICE_OUT_OF_RANGE,
            f"price={price} band={settings.PRICE_FLOOR}..{settings.PRICE_CEILING}",
            candidate,
            price,
        )

    # 2. Title sanity
    title = strip_markup(candidate.title)
    if not _title_is_meaningful(title):
        return _reject(VerdictReason.TITLE_TOO_SHORT, f"title={title!r}", candidate, price)

    text = f"{title} {candidate.category}"

    # 3. Format allowlist
    if not candidate.format_pure and find_format_keyword(text) is None:
        return _reject(VerdictReason.MISSING_FORMAT_KEYWORD, "no_lp_keyword", candidate, price)

    # 4. Format blocklist
    blocked = find_blocked_keyword(text)
    if blocked is not None:
        return _reject(VerdictReason.BLOCKED_KEYWORD, f"keyword={blocked}", candidate, price)

    if mode is LookupMode.KEYWORD_SEARCH:
        # 5. Identity confidence
        if identifier.title:
            cutoff = threshold if threshold is not None else settings.SIMILARITY_THRESHOLD
            score = title_similarity(identifier.title, title)
            if score < cutoff:
                return _reject(
                    VerdictReason.LOW_SIMILARITY,
                    f"score={score:.3f} threshold={cutoff}",
                    candidate,
                    price,
                )

        # 6. Artist inclusion
        if identifier.artist and not contains_normalized(title, identifier.artist):
            return _reject(
                VerdictReason.ARTIST_MISSING, f"artist={identifier.artist}", candidate, price
            )

    # 7. URL category
    if not is_valid_product_url(candidate.url):
        return _reject(VerdictReason.INVALID_URL, f"url={candidate.url}", candidate, price)

    return ValidationVerdict(passed=True, reason=VerdictReason.OK, price=price)
