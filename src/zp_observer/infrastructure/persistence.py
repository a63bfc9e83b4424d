"""Event reader and cursor store for the observer.

The cursor is the id of the last game_events row handed to subscribers.
`id > cursor` relies on rows becoming visible in id order. GameEventRepository
guarantees that by serializing event transactions on an advisory lock, so any
writer that bypasses it can commit a lower id after the cursor has moved on.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_observer.domain.models import StoredEvent

_FETCH_EVENTS_SQL = text("""
    SELECT id, tx_hash, event_name, signature, contract_address, chain_name,
           player_id, game_id, payload, created_at
    FROM game_events
    WHERE id > :after_id
    ORDER BY id ASC
    LIMIT :limit
""")

_GET_CURSOR_SQL = text("""
    SELECT last_event_id FROM observer_cursors WHERE name = :name
""")

_SET_CURSOR_SQL = text("""
    INSERT INTO observer_cursors (name, last_event_id)
    VALUES (:name, :last_event_id)
    ON CONFLICT (name) DO UPDATE
        SET last_event_id = EXCLUDED.last_event_id,
            updated_at = NOW()
""")


class EventReader:
    async def fetch_after(
        self, db: AsyncSession, after_id: int, limit: int
    ) -> list[StoredEvent]:
        result = await db.execute(_FETCH_EVENTS_SQL, {"after_id": after_id, "limit": limit})
        return [
            StoredEvent(
                id=row.id,
                tx_hash=row.tx_hash,
                event_name=row.event_name,
                signature=row.signature,
                contract_address=row.contract_address,
                chain_name=row.chain_name,
                player_id=row.player_id,
                game_id=row.game_id,
                payload=row.payload or {},
                created_at=row.created_at,
            )
            for row in result.fetchall()
        ]


class CursorRepository:
    async def get(self, db: AsyncSession, name: str) -> int:
        result = await db.execute(_GET_CURSOR_SQL, {"name": name})
        row = result.fetchone()
        return int(row.last_event_id) if row else 0

    async def set(self, db: AsyncSession, name: str, last_event_id: int) -> None:
        await db.execute(_SET_CURSOR_SQL, {"name": name, "last_event_id": last_event_id})
