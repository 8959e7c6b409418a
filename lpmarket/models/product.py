"""
LP Market - Product Model

One catalog entry (an LP release). Owned by the catalog; the price pipeline
only reads identifiers from it, stamps last_synced_at, and the integrity sweep
may delete rows that fail validation.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import TIMESTAMP, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lpmarket.models.base import Base, new_uuid, utcnow


class LpProduct(Base):
    """
    Catalog row keyed by UUID.

    Identifiers: ean (barcode) and discogs_id (canonical catalog id) are both
    optional; title + artist is the keyword-search fallback.
    """

    __tablename__ = "lp_products"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=new_uuid, comment="UUID primary key"
    )
    ean: Mapped[str | None] = mapped_column(
        String(32), nullable=True, comment="Barcode (EAN/UPC), digits only"
    )
    discogs_id: Mapped[str | None] = mapped_column(
        String(32), nullable=True, comment="Discogs release id"
    )
    title: Mapped[str | None] = mapped_column(String, nullable=True, comment="Album title")
    artist: Mapped[str | None] = mapped_column(String, nullable=True, comment="Primary artist")
    format: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="Format tags, comma separated (e.g. 'Vinyl, LP, Album')"
    )
    last_synced_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
        comment="Last price sync; NULL = never synced",
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_lp_products_last_synced_at", "last_synced_at"),
        Index("ix_lp_products_ean", "ean"),
    )

    def __repr__(self) -> str:
        return f"<LpProduct id={self.id!r} artist={self.artist!r} title={self.title!r}>"
