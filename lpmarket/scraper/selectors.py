"""
LP Market - Selector Cascades

Vendor markup drifts, so every field is located by an ordered list of
extractors: the first one returning a non-empty value wins. Cascades are plain
data (see vendors/cascades.py); this module only evaluates them, so a selector
update never touches adapter control flow.
"""

from __future__ import annotations

import re
from typing import Callable, NamedTuple, Optional, Sequence

import structlog
from bs4 import BeautifulSoup, Tag

logger = structlog.get_logger(__name__)

Extractor = Callable[[Tag], Optional[str]]


# ---------------------------------------------------------------------------
# Extractor factories
# ---------------------------------------------------------------------------


def css_text(selector: str) -> Extractor:
    """Text of the first element matching `selector` inside the node."""

    def extract(node: Tag) -> str | None:
        element = node.select_one(selector)
        if element is None:
            return None
        return element.get_text(" ", strip=True) or None

    extract.__name__ = f"css_text({selector})"
    return extract


def css_attr(selector: str, attr: str) -> Extractor:
    """Attribute of the first element matching `selector` that carries it."""

    def extract(node: Tag) -> str | None:
        for element in node.select(selector):
            value = element.get(attr)
            if isinstance(value, list):
                value = " ".join(value)
            if value and value.strip():
                return value.strip()
        return None

    extract.__name__ = f"css_attr({selector}@{attr})"
    return extract


def regex_text(pattern: str) -> Extractor:
    """First regex match over the node's whole text."""
    compiled = re.compile(pattern)

    def extract(node: Tag) -> str | None:
        match = compiled.search(node.get_text(" ", strip=True))
        return match.group(0) if match else None

    extract.__name__ = f"regex_text({pattern})"
    return extract


# ---------------------------------------------------------------------------
# Cascade definition and evaluation
# ---------------------------------------------------------------------------


class SelectorCascade(NamedTuple):
    """Per-vendor extraction strategy, each field in priority order."""

    items: tuple[str, ...]
    title: tuple[Extractor, ...]
    price: tuple[Extractor, ...]
    link: tuple[Extractor, ...]
    stock: tuple[Extractor, ...] = ()


class ExtractedItem(NamedTuple):
    title: str | None
    price: str | None
    link: str | None
    stock: str | None


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def first_match(node: Tag, extractors: Sequence[Extractor]) -> str | None:
    """Run extractors in order; the first non-empty result wins."""
    for extractor in extractors:
        value = extractor(node)
        if value:
            return value
    return None


def select_items(soup: BeautifulSoup | Tag, selectors: Sequence[str], limit: int) -> list[Tag]:
    """
    Candidate result nodes from the first item selector that matches anything.

    Args:
        soup: Parsed document.
        selectors: Item container selectors, primary first.
        limit: Maximum nodes to return.
    """
    for selector in selectors:
        nodes = soup.select(selector)
        if nodes:
            logger.debug("selector_items_matched", selector=selector, count=len(nodes))
            return nodes[:limit]
    return []


def extract_item(node: Tag, cascade: SelectorCascade) -> ExtractedItem:
    return ExtractedItem(
        title=first_match(node, cascade.title),
        price=first_match(node, cascade.price),
        link=first_match(node, cascade.link),
        stock=first_match(node, cascade.stock),
    )
