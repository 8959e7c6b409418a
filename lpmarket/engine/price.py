"""
LP Market - Price Normalization & Sanity Band

Single shared rule for turning vendor price strings into integers. Every
adapter goes through normalize_price() so a malformed price is rejected the
same way everywhere.
"""

from __future__ import annotations

import re

import structlog

from lpmarket.config import settings

logger = structlog.get_logger(__name__)

# First run of digits, allowing thousands separators: "59,000원" -> "59,000"
_PRICE_RUN_RE = re.compile(r"\d[\d,]*")


def normalize_price(raw: int | str | None) -> int | None:
    """
    Parse a currency-formatted price into an integer amount.

    Args:
        raw: Integer from a structured API, or text such as "59,000원",
            "₩ 32,000" or "판매가 45,000원 (10% 할인)".

    Returns:
        The integer price, or None when no digits are present. Only the first
        digit run is used, so trailing discount percentages or point counts
        never get concatenated into the price.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw

    match = _PRICE_RUN_RE.search(str(raw))
    if match is None:
        return None

    digits = match.group().replace(",", "")
    if not digits:
        return None
    return int(digits)


def price_in_band(
    price: int,
    floor: int | None = None,
    ceiling: int | None = None,
) -> bool:
    """True when floor <= price <= ceiling (bounds default to settings)."""
    low = floor if floor is not None else settings.PRICE_FLOOR
    high = ceiling if ceiling is not None else settings.PRICE_CEILING
    return low <= price <= high


def calculate_effective_price(base_price: int, shipping_fee: int = 0) -> int:
    """
    Effective price = base price + shipping fee.

    Raises:
        ValueError: If either amount is negative.
    """
    if base_price < 0:
        raise ValueError("base_price must be non-negative")
    if shipping_fee < 0:
        raise ValueError("shipping_fee must be non-negative")
    return base_price + shipping_fee
