"""007: create listings table

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE listings (
            listing_ref     VARCHAR(66)     PRIMARY KEY,
            zpid            BIGINT          NOT NULL,
            city            VARCHAR(64)     NOT NULL,
            address         VARCHAR(255)    NOT NULL DEFAULT '',
            actual_price    BIGINT          NOT NULL,
            displayed_price BIGINT          NOT NULL,
            payload         JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_listings_actual_price_gt_0 CHECK (actual_price > 0)
        );
    """)
    op.execute("COMMENT ON TABLE listings IS 'Listings attached to games — the settler reads actual_price back';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listings CASCADE;")
