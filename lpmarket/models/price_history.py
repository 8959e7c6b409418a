"""
LP Market - Price History Model

Append-only log of the lowest effective price per product per sync.
Never updated. Trend display reads it; the pipeline only appends.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import INTEGER, TIMESTAMP, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lpmarket.models.base import Base, new_uuid, utcnow


class LpPriceHistory(Base):
    """
    One (date, price) point.

    Index: (product_id, recorded_at) supports per-product range scans.
    """

    __tablename__ = "lp_price_history"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=new_uuid, comment="UUID primary key"
    )
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("lp_products.id", ondelete="CASCADE"),
        nullable=False,
    )
    price: Mapped[int] = mapped_column(
        INTEGER, nullable=False, comment="Lowest effective price in KRW at sync time"
    )
    vendor_name: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="Vendor holding the lowest price"
    )
    recorded_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_lp_price_history_product_recorded", "product_id", "recorded_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<LpPriceHistory product_id={self.product_id!r} price={self.price} "
            f"recorded_at={self.recorded_at!r}>"
        )
