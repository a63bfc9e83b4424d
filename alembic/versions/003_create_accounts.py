"""003: create accounts and allowances tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE accounts (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id         VARCHAR(64)     NOT NULL,
            balance         NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            version         BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_accounts_user_id      UNIQUE (user_id),
            CONSTRAINT ck_accounts_balance_gte_0 CHECK (balance >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_accounts_updated_at
            BEFORE UPDATE ON accounts
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        CREATE TABLE allowances (
            id              BIGSERIAL       PRIMARY KEY,
            owner_id        VARCHAR(64)     NOT NULL,
            spender_id      VARCHAR(64)     NOT NULL,
            amount          NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_allowances_owner_spender UNIQUE (owner_id, spender_id),
            CONSTRAINT ck_allowances_amount_gte_0  CHECK (amount >= 0)
        );
    """)
    # The game's own account: receives batch payments, pays winners
    op.execute("""
        INSERT INTO accounts (user_id, balance, version)
        VALUES ('zillopoly-house', 0, 0)
        ON CONFLICT (user_id) DO NOTHING;
    """)
    op.execute("COMMENT ON TABLE accounts IS 'Token balances — base units, 10^18 per HOBO';")
    op.execute("COMMENT ON TABLE allowances IS 'ERC-20 style allowances (owner, spender) -> amount';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS allowances CASCADE;")
    op.execute("DROP TABLE IF EXISTS accounts CASCADE;")
