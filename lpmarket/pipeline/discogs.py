"""
LP Market - Identifier Resolver (Discogs)

Fills in a missing barcode for a product that only has a Discogs release id,
and acts as a hard format gate: a release whose formats are exclusively
non-LP (CD, cassette, file) resolves to None, and no vendor is queried.

Base URL: https://api.discogs.com
Endpoint: GET /releases/{id}   (User-Agent header required)
"""

from __future__ import annotations

import re

import structlog
from pydantic import BaseModel, Field, ValidationError

from lpmarket.config import settings
from lpmarket.engine.validation import classify_format_tags
from lpmarket.scraper import MIN_BARCODE_DIGITS, ProductIdentifier
from lpmarket.scraper.fetch import BlockedError, FetchError, Fetcher

logger = structlog.get_logger(__name__)

# Discogs disambiguates homonymous artists as "Name (2)"
_ARTIST_SUFFIX_RE = re.compile(r"\s*\(\d+\)$")
_NON_DIGIT_RE = re.compile(r"\D")

# ---------------------------------------------------------------------------
# Pydantic Response Models
# ---------------------------------------------------------------------------


class DiscogsFormat(BaseModel):
    """One entry of a release's format list, e.g. Vinyl / ["LP", "Album"]."""
    name: str = ""
    qty: str | None = None
    descriptions: list[str] = Field(default_factory=list)


class DiscogsIdentifier(BaseModel):
    type: str = ""
    value: str = ""


class DiscogsArtist(BaseModel):
    name: str = ""


class DiscogsRelease(BaseModel):
    """The subset of a Discogs release the resolver uses."""

    id: int | None = None
    title: str = ""
    artists: list[DiscogsArtist] = Field(default_factory=list)
    formats: list[DiscogsFormat] = Field(default_factory=list)
    identifiers: list[DiscogsIdentifier] = Field(default_factory=list)

    @property
    def format_tags(self) -> list[str]:
        tags: list[str] = []
        for fmt in self.formats:
            if fmt.name:
                tags.append(fmt.name)
            tags.extend(d for d in fmt.descriptions if d)
        return tags

    @property
    def primary_artist(self) -> str | None:
        if not self.artists or not self.artists[0].name:
            return None
        return _ARTIST_SUFFIX_RE.sub("", self.artists[0].name).strip() or None

    @property
    def barcode(self) -> str | None:
        """First barcode identifier with enough digits, digits only."""
        for ident in self.identifiers:
            if ident.type.casefold() != "barcode":
                continue
            digits = _NON_DIGIT_RE.sub("", ident.value)
            if len(digits) >= MIN_BARCODE_DIGITS:
                return digits
        return None


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class IdentifierResolver:
    """
    Enriches ProductIdentifiers from Discogs.

    Usage:
        async with Fetcher() as fetcher:
            resolver = IdentifierResolver(fetcher)
            identifier = await resolver.resolve(identifier)
            if identifier is None:
                ...  # not an LP release, skip vendors
    """

    def __init__(
        self,
        fetcher: Fetcher,
        base_url: str | None = None,
        user_agent: str | None = None,
        token: str | None = None,
    ):
        self._fetcher = fetcher
        self._base_url = (base_url or settings.DISCOGS_BASE_URL).rstrip("/")
        self._user_agent = user_agent or settings.DISCOGS_USER_AGENT
        self._token = token if token is not None else settings.DISCOGS_TOKEN

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": self._user_agent}
        if self._token:
            headers["Authorization"] = f"Discogs token={self._token}"
        return headers

    async def fetch_release(self, catalog_id: str) -> DiscogsRelease:
        """
        Fetch one release by id.

        Raises:
            FetchError: On network failure or a non-JSON body.
            pydantic.ValidationError: If the body is not a release object.
        """
        data = await self._fetcher.fetch_json(
            f"{self._base_url}/releases/{catalog_id}",
            headers=self._headers(),
        )
        return DiscogsRelease.model_validate(data)

    async def resolve(self, identifier: ProductIdentifier) -> ProductIdentifier | None:
        """
        Return an enriched copy, the identifier unchanged, or None.

        None means the canonical release is not an LP. Lookup failures leave
        the identifier unchanged (vendors can still be searched by title and
        artist), except BlockedError, which propagates so the run aborts.
        """
        if identifier.has_barcode() or not identifier.catalog_id:
            return identifier

        try:
            release = await self.fetch_release(identifier.catalog_id)
        except BlockedError:
            raise
        except FetchError as e:
            logger.warning(
                "resolver_lookup_failed",
                catalog_id=identifier.catalog_id,
                status_code=e.status_code,
                error=str(e),
                source="discogs",
            )
            return identifier
        except ValidationError as e:
            logger.warning(
                "resolver_bad_payload",
                catalog_id=identifier.catalog_id,
                error=str(e),
                source="discogs",
            )
            return identifier

        has_target, has_disqualified = classify_format_tags(release.format_tags)
        if has_disqualified and not has_target:
            logger.info(
                "resolver_format_not_applicable",
                catalog_id=identifier.catalog_id,
                formats=release.format_tags,
                source="discogs",
            )
            return None

        # Catalog title/artist stay authoritative; Discogs only fills gaps
        enriched = identifier.enriched(
            barcode=release.barcode,
            title=None if identifier.title else release.title,
            artist=None if identifier.artist else release.primary_artist,
        )
        logger.info(
            "resolver_enriched",
            catalog_id=identifier.catalog_id,
            barcode_found=enriched.has_barcode(),
            source="discogs",
        )
        return enriched
