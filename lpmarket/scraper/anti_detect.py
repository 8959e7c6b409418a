"""
LP Market - Anti-Detection Layer

Browser-like request shaping for vendor storefronts: rotating desktop user
agents, the header set a real Korean-locale Chrome/Edge session sends, optional
proxy, and detection of automated-traffic rejection pages.
"""

from __future__ import annotations

import random

import structlog

from lpmarket.config import settings

logger = structlog.get_logger(__name__)

# Markers vendors put on captcha / rate-limit interstitials
BLOCK_MARKERS: tuple[str, ...] = (
    "captcha",
    "access denied",
    "too many requests",
    "unusual traffic",
    "automated access",
    "자동입력 방지",
    "비정상적인 접근",
)

# A real catalog page is large; interstitials are small
BLOCK_PAGE_MAX_LENGTH = 5000


class AntiDetect:
    """
    Request shaping for httpx-based fetching.

    Manages:
    - User-agent rotation
    - Browser header set (Accept, Accept-Language ko-KR, Sec-Fetch-*)
    - Proxy configuration
    - Block page heuristics
    """

    # Realistic user agents for rotation
    USER_AGENTS = [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36 Edg/124.0.0.0",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    ]

    def get_random_user_agent(self) -> str:
        """Return a random user agent string."""
        return random.choice(self.USER_AGENTS)

    def build_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        """Browser-like headers, with `extra` taking precedence."""
        headers = {
            "User-Agent": self.get_random_user_agent(),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
            "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
            "Upgrade-Insecure-Requests": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Sec-Fetch-User": "?1",
        }
        if extra:
            headers.update(extra)
        return headers

    def get_proxy_url(self) -> str | None:
        """Return the proxy URL if PROXY_URL is set."""
        return settings.PROXY_URL or None

    @staticmethod
    def looks_blocked(body: str, status_code: int = 200) -> bool:
        """
        Heuristic for an automated-traffic rejection page.

        Error responses are checked for markers at any size; successful
        responses only when they are small enough to be an interstitial.
        """
        if status_code < 400 and len(body) >= BLOCK_PAGE_MAX_LENGTH:
            return False
        lowered = body.casefold()
        return any(marker in lowered for marker in BLOCK_MARKERS)
