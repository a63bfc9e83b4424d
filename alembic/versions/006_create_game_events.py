"""006: create game_events and observer_cursors tables

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE game_events (
            id                  BIGSERIAL       PRIMARY KEY,
            tx_hash             VARCHAR(66)     NOT NULL,
            event_name          VARCHAR(40)     NOT NULL,
            signature           VARCHAR(128)    NOT NULL,
            contract_address    VARCHAR(42)     NOT NULL,
            chain_name          VARCHAR(64)     NOT NULL,
            player_id           VARCHAR(64)     NOT NULL,
            game_id             BIGINT,
            payload             JSONB           NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_game_events_name CHECK (
                event_name IN (
                    'BatchGamesCreated',
                    'GameInitialized',
                    'GuessSubmitted',
                    'GamePlayed'
                )
            )
        );
    """)
    op.execute("CREATE INDEX idx_game_events_signature ON game_events (signature, id);")
    op.execute("CREATE INDEX idx_game_events_game_id ON game_events (game_id) WHERE game_id IS NOT NULL;")
    op.execute("""
        CREATE TABLE observer_cursors (
            name            VARCHAR(64)     PRIMARY KEY,
            last_event_id   BIGINT          NOT NULL DEFAULT 0,
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("COMMENT ON TABLE game_events IS 'Ledger event log — append-only, id doubles as block number';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS observer_cursors CASCADE;")
    op.execute("DROP TABLE IF EXISTS game_events CASCADE;")
