from lpmarket.engine.price import calculate_effective_price, normalize_price, price_in_band
from lpmarket.engine.similarity import normalize_text, title_similarity
from lpmarket.engine.validation import (
    find_blocked_keyword,
    find_format_keyword,
    is_exclusively_disqualified,
    is_valid_product_url,
    validate,
)

__all__ = [
    "calculate_effective_price",
    "find_blocked_keyword",
    "find_format_keyword",
    "is_exclusively_disqualified",
    "is_valid_product_url",
    "normalize_price",
    "normalize_text",
    "price_in_band",
    "title_similarity",
    "validate",
]
