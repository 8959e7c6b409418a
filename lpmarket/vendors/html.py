"""
LP Market - Generic HTML Storefront Adapter

Storefronts without an API differ only in data: search URL, query parameter,
selector cascade, base URL for relative links and offer terms. This adapter
evaluates that data; subclasses in bookstores.py / record_shops.py declare it.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urljoin

import httpx
import structlog

from lpmarket.scraper import Candidate, ProductIdentifier
from lpmarket.scraper.fetch import Fetcher
from lpmarket.scraper.selectors import SelectorCascade, extract_item, parse_document, select_items
from lpmarket.vendors.base import VendorAdapter, is_in_stock

logger = structlog.get_logger(__name__)


class HtmlVendorAdapter(VendorAdapter):
    """Search page scraper driven by a SelectorCascade."""

    search_url: str = ""
    query_param: str = "q"
    extra_params: dict[str, str] = {}
    base_url: str = ""
    cascade: SelectorCascade
    # Use the search results page as the offer URL when the item has no link
    link_fallback_to_search: bool = False

    def build_params(self, query: str) -> dict[str, Any]:
        params: dict[str, Any] = dict(self.extra_params)
        params[self.query_param] = query
        return params

    def resolve_link(self, link: str | None) -> str | None:
        if not link:
            return None
        link = link.strip()
        if link.startswith(("javascript:", "#", "mailto:")):
            return None
        return urljoin(self.base_url or self.search_url, link)

    async def search(
        self,
        fetcher: Fetcher,
        query: str,
        identifier: ProductIdentifier,
    ) -> list[Candidate]:
        params = self.build_params(query)
        html = await fetcher.fetch(self.search_url, params=params)

        soup = parse_document(html)
        nodes = select_items(soup, self.cascade.items, self.max_candidates)
        if not nodes:
            logger.info("vendor_no_items", vendor=self.name, query=query)
            return []

        search_page = str(httpx.URL(self.search_url, params=params))
        candidates: list[Candidate] = []
        for node in nodes:
            item = extract_item(node, self.cascade)
            if not item.title:
                logger.debug("vendor_item_without_title", vendor=self.name)
                continue

            url = self.resolve_link(item.link)
            if url is None and self.link_fallback_to_search:
                url = search_page

            candidates.append(
                Candidate(
                    title=item.title,
                    price=item.price,
                    url=url,
                    in_stock=is_in_stock(item.stock or node.get_text(" ", strip=True)),
                )
            )

        logger.debug("vendor_candidates", vendor=self.name, count=len(candidates))
        return candidates
