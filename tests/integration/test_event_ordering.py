"""Event ids must become visible in commit order (requires running PostgreSQL).

Run: pytest tests/integration/test_event_ordering.py -v
Pre-condition: alembic upgrade head
"""

import asyncio
import uuid

import pytest
from sqlalchemy import text

from src.zp_common.database import async_session_factory
from src.zp_game.domain.events import GameInitialized
from src.zp_game.infrastructure.events import GameEventRepository
from src.zp_observer.infrastructure.persistence import EventReader

pytestmark = pytest.mark.asyncio(loop_scope="session")


def _event(game_id: int) -> GameInitialized:
    return GameInitialized(
        player="ordering-test", id=game_id, listing_ref="0x" + "4" * 64, displayed_price=1
    )


class TestEventOrdering:
    async def test_second_writer_waits_for_first_commit(self) -> None:
        repo = GameEventRepository()
        tx_hash = "0x" + uuid.uuid4().hex.rjust(64, "0")

        async with async_session_factory() as first, async_session_factory() as second:
            first_id = await repo.write(first, _event(900_001), tx_hash)

            async def write_second() -> int:
                event_id = await repo.write(second, _event(900_002), tx_hash)
                await second.commit()
                return event_id

            pending = asyncio.create_task(write_second())
            await asyncio.sleep(0.3)
            # Blocked on the order lock, so no id has been drawn yet
            assert not pending.done()

            async with async_session_factory() as reader:
                visible = await EventReader().fetch_after(reader, first_id - 1, 10)
            assert all(e.tx_hash != tx_hash for e in visible)

            await first.commit()
            second_id = await asyncio.wait_for(pending, timeout=5)

        assert second_id > first_id
        async with async_session_factory() as reader:
            seen = await EventReader().fetch_after(reader, first_id - 1, 1000)
            ours = [e.id for e in seen if e.tx_hash == tx_hash]
            assert ours == [first_id, second_id]
            await reader.execute(
                text("DELETE FROM game_events WHERE tx_hash = :tx_hash"), {"tx_hash": tx_hash}
            )
            await reader.commit()
