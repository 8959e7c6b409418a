"""Initial schema: lp_products, lp_offers, lp_price_history

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- lp_products (catalog, read by the sync orchestrator) ---
    op.create_table(
        "lp_products",
        sa.Column("id", sa.String(36), nullable=False, comment="UUID primary key"),
        sa.Column("ean", sa.String(32), nullable=True, comment="Barcode (EAN/UPC), digits only"),
        sa.Column("discogs_id", sa.String(32), nullable=True, comment="Discogs release id"),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("artist", sa.String(), nullable=True),
        sa.Column("format", sa.String(), nullable=True, comment="Format tags, comma separated"),
        sa.Column("last_synced_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_lp_products_last_synced_at", "lp_products", ["last_synced_at"])
    op.create_index("ix_lp_products_ean", "lp_products", ["ean"])

    # --- lp_offers (replaced as a set on every sync) ---
    op.create_table(
        "lp_offers",
        sa.Column("id", sa.String(36), nullable=False, comment="UUID primary key"),
        sa.Column(
            "product_id",
            sa.String(36),
            sa.ForeignKey("lp_products.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("vendor_name", sa.String(), nullable=False),
        sa.Column("channel_id", sa.String(), nullable=False),
        sa.Column("base_price", sa.INTEGER(), nullable=False, comment="Price in KRW"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="KRW"),
        sa.Column("shipping_fee", sa.INTEGER(), nullable=False, server_default="0"),
        sa.Column("shipping_policy", sa.String(), nullable=True),
        sa.Column("url", sa.String(), nullable=True),
        sa.Column("affiliate_code", sa.String(), nullable=True),
        sa.Column("affiliate_param_key", sa.String(), nullable=True),
        sa.Column("is_stock_available", sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column(
            "last_checked",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_lp_offers_product_id", "lp_offers", ["product_id"])

    # --- lp_price_history (append-only) ---
    op.create_table(
        "lp_price_history",
        sa.Column("id", sa.String(36), nullable=False, comment="UUID primary key"),
        sa.Column(
            "product_id",
            sa.String(36),
            sa.ForeignKey("lp_products.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("price", sa.INTEGER(), nullable=False, comment="Lowest effective price in KRW"),
        sa.Column("vendor_name", sa.String(), nullable=True),
        sa.Column(
            "recorded_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_lp_price_history_product_recorded",
        "lp_price_history",
        ["product_id", "recorded_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_lp_price_history_product_recorded", table_name="lp_price_history")
    op.drop_table("lp_price_history")
    op.drop_index("ix_lp_offers_product_id", table_name="lp_offers")
    op.drop_table("lp_offers")
    op.drop_index("ix_lp_products_ean", table_name="lp_products")
    op.drop_index("ix_lp_products_last_synced_at", table_name="lp_products")
    op.drop_table("lp_products")
