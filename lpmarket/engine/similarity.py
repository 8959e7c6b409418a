"""
LP Market - Title Similarity

Bigram-overlap similarity between a query title and a scraped candidate title.
Keyword search on vendor sites happily returns a different album by the same
artist, so keyword-search candidates must clear settings.SIMILARITY_THRESHOLD.

Score is the overlap coefficient over character-bigram multisets:

    sim(a, b) = |bigrams(a) ∩ bigrams(b)| / min(|bigrams(a)|, |bigrams(b)|)

The min() denominator lets a short query ("Kind Of Blue") fully match inside a
long listing title ("Miles Davis - Kind Of Blue (180g LP)").
"""

from __future__ import annotations

from collections import Counter


def normalize_text(text: str | None) -> str:
    """Casefold and drop every non-alphanumeric character (Unicode aware)."""
    if not text:
        return ""
    return "".join(ch for ch in text.casefold() if ch.isalnum())


def _bigrams(normalized: str) -> Counter[str]:
    return Counter(normalized[i : i + 2] for i in range(len(normalized) - 1))


def title_similarity(a: str | None, b: str | None) -> float:
    """
    Similarity in [0.0, 1.0]. Symmetric, and 1.0 for identical inputs.

    Strings that normalize to fewer than two characters have no bigrams and
    score 0.0 against anything they are not equal to.
    """
    left = normalize_text(a)
    right = normalize_text(b)

    if left == right:
        return 1.0

    left_grams = _bigrams(left)
    right_grams = _bigrams(right)
    if not left_grams or not right_grams:
        return 0.0

    overlap = sum((left_grams & right_grams).values())
    denominator = min(sum(left_grams.values()), sum(right_grams.values()))
    return overlap / denominator


def contains_normalized(haystack: str | None, needle: str | None) -> bool:
    """True when normalized needle is a substring of normalized haystack."""
    norm_needle = normalize_text(needle)
    if not norm_needle:
        return True
    return norm_needle in normalize_text(haystack)
