"""
LP Market - Affiliate URL Builder

Turns an offer's product URL into a partner-tracked link for the storefront
UI. Deterministic: the same offer always yields the same URL.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog

from lpmarket.config import settings
from lpmarket.scraper import VendorOffer

logger = structlog.get_logger(__name__)


def add_affiliate_param(url: str, code: str | None, param_key: str | None = None) -> str:
    """
    Set `param_key=code` on url's query string.

    An existing parameter with the same key is overwritten in place. When url
    is not a well-formed absolute URL, falls back to plain concatenation with
    "&" or "?" depending on whether a query string is already present.

    Args:
        url: Product page URL.
        code: Partner code. No code means url is returned unchanged.
        param_key: Query key (default settings.DEFAULT_AFFILIATE_PARAM_KEY).
    """
    if not code:
        return url

    key = param_key or settings.DEFAULT_AFFILIATE_PARAM_KEY

    try:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError("not an absolute URL")
    except ValueError:
        separator = "&" if "?" in url else "?"
        fallback = f"{url}{separator}{key}={code}"
        logger.debug("affiliate_url_fallback", url=url, source="affiliate")
        return fallback

    pairs = parse_qsl(parts.query, keep_blank_values=True)
    rebuilt: list[tuple[str, str]] = []
    replaced = False
    for name, value in pairs:
        if name == key:
            if not replaced:
                rebuilt.append((key, code))
                replaced = True
            continue
        rebuilt.append((name, value))
    if not replaced:
        rebuilt.append((key, code))

    return urlunsplit(
        (parts.scheme, parts.netloc, parts.path, urlencode(rebuilt), parts.fragment)
    )


def build_affiliate_url(offer: VendorOffer) -> str:
    """Affiliate link for an offer (its plain URL when it has no affiliate code)."""
    return add_affiliate_param(offer.url, offer.affiliate_code, offer.affiliate_param_key)
