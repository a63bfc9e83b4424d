"""GameEventRepository — appends ledger events to the game_events outbox.

Called from GameLedgerService within the mutating transaction, so an event
exists if and only if the state change it describes was committed.

BIGSERIAL ids are drawn at insert time, not commit time. Each write first
takes a transaction-scoped advisory lock, held until commit or rollback, so
event transactions commit one at a time and in id order. A reader polling
`id > cursor` therefore never sees a gap that a later commit fills in.
"""

import json

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.zp_common.errors import InternalError
from src.zp_game.domain.events import LedgerEvent

# Advisory lock key shared by every game_events writer
EVENT_ORDER_LOCK_KEY = 0x5A50_4556

_LOCK_EVENT_ORDER_SQL = text("SELECT pg_advisory_xact_lock(:key)")

_INSERT_EVENT_SQL = text("""
    INSERT INTO game_events
        (tx_hash, event_name, signature, contract_address, chain_name,
         player_id, game_id, payload)
    VALUES
        (:tx_hash, :event_name, :signature, :contract_address, :chain_name,
         :player_id, :game_id, CAST(:payload AS JSONB))
    RETURNING id
""")


class GameEventRepository:
    def __init__(
        self,
        contract_address: str | None = None,
        chain_name: str | None = None,
    ) -> None:
        self._contract_address = contract_address or settings.CONTRACT_ADDRESS
        self._chain_name = chain_name or settings.CHAIN_NAME

    async def write(self, db: AsyncSession, event: LedgerEvent, tx_hash: str) -> int:
        await db.execute(_LOCK_EVENT_ORDER_SQL, {"key": EVENT_ORDER_LOCK_KEY})
        result = await db.execute(
            _INSERT_EVENT_SQL,
            {
                "tx_hash": tx_hash,
                "event_name": event.name.value,
                "signature": event.signature,
                "contract_address": self._contract_address,
                "chain_name": self._chain_name,
                "player_id": event.player,
                "game_id": event.game_id,
                "payload": json.dumps(event.payload()),
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Event insert returned no rows — this should never happen")
        return int(row.id)
