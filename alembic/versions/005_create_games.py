"""005: create games and game_counters tables

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE game_counters (
            name            VARCHAR(32)     PRIMARY KEY,
            next_id         BIGINT          NOT NULL DEFAULT 1,
            CONSTRAINT ck_game_counters_next_id_gte_1 CHECK (next_id >= 1)
        );
    """)
    op.execute("INSERT INTO game_counters (name, next_id) VALUES ('games', 1);")
    op.execute("""
        CREATE TABLE games (
            id              BIGINT          PRIMARY KEY,
            owner_id        VARCHAR(64)     NOT NULL,
            cost            NUMERIC(78, 0)  NOT NULL,
            stage           VARCHAR(20)     NOT NULL DEFAULT 'NOT_STARTED',
            displayed_price BIGINT          NOT NULL DEFAULT 0,
            actual_price    BIGINT          NOT NULL DEFAULT 0,
            guess_higher    BOOLEAN,
            listing_ref     VARCHAR(66),
            won             BOOLEAN         NOT NULL DEFAULT FALSE,
            payout          NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            initialized_at  TIMESTAMPTZ,
            guessed_at      TIMESTAMPTZ,
            settled_at      TIMESTAMPTZ,
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_games_stage CHECK (
                stage IN ('NOT_STARTED', 'INITIALIZED', 'GUESS_SUBMITTED', 'SETTLED')
            ),
            CONSTRAINT ck_games_cost_gt_0 CHECK (cost > 0),
            CONSTRAINT ck_games_displayed_price_set CHECK (
                stage = 'NOT_STARTED' OR (displayed_price > 0 AND listing_ref IS NOT NULL)
            ),
            CONSTRAINT ck_games_guess_set CHECK (
                stage IN ('NOT_STARTED', 'INITIALIZED') OR guess_higher IS NOT NULL
            ),
            CONSTRAINT ck_games_settled CHECK (
                stage <> 'SETTLED' OR actual_price > 0
            )
        );
    """)
    op.execute("CREATE INDEX idx_games_owner_id ON games (owner_id, id DESC);")
    op.execute("CREATE INDEX idx_games_owner_stage ON games (owner_id, stage);")
    op.execute("""
        CREATE TRIGGER trg_games_updated_at
            BEFORE UPDATE ON games
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE games IS 'One row per game slot — the authoritative store, never deleted';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS games CASCADE;")
    op.execute("DROP TABLE IF EXISTS game_counters CASCADE;")
