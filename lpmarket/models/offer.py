"""
LP Market - Offer Model

Current vendor offers per product. Never patched in place: every sync deletes
a product's offers and inserts the new set in one transaction.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BOOLEAN, INTEGER, TIMESTAMP, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lpmarket.models.base import Base, new_uuid, utcnow


class LpOffer(Base):
    """One vendor offer. Effective price (base + shipping) is derived, not stored."""

    __tablename__ = "lp_offers"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=new_uuid, comment="UUID primary key"
    )
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("lp_products.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning product",
    )
    vendor_name: Mapped[str] = mapped_column(String, nullable=False)
    channel_id: Mapped[str] = mapped_column(
        String, nullable=False, comment="Vendor category: naver-api, mega-book, indy-shop, ..."
    )
    base_price: Mapped[int] = mapped_column(INTEGER, nullable=False, comment="Price in KRW")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="KRW")
    shipping_fee: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)
    shipping_policy: Mapped[str | None] = mapped_column(String, nullable=True)
    url: Mapped[str | None] = mapped_column(String, nullable=True, comment="Product page URL")
    affiliate_code: Mapped[str | None] = mapped_column(String, nullable=True)
    affiliate_param_key: Mapped[str | None] = mapped_column(String, nullable=True)
    is_stock_available: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    last_checked: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_lp_offers_product_id", "product_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<LpOffer product_id={self.product_id!r} vendor={self.vendor_name!r} "
            f"base_price={self.base_price}>"
        )
