"""Repository Protocols — dependency inversion for testability.

Unit tests inject in-memory fakes that conform to these Protocols.
Infrastructure layer provides the real implementations.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_common.enums import GameStage
from src.zp_game.domain.events import LedgerEvent
from src.zp_game.domain.models import Game


class GameRepositoryProtocol(Protocol):
    async def allocate_ids(self, db: AsyncSession, count: int) -> int:
        """Reserve `count` contiguous ids; returns the first. Row-locks the counter."""
        ...

    async def insert_batch(
        self,
        db: AsyncSession,
        first_id: int,
        count: int,
        owner_id: str,
        cost: int,
        created_at: datetime,
    ) -> list[Game]: ...

    async def get_game(
        self, db: AsyncSession, game_id: int, for_update: bool = False
    ) -> Game | None: ...

    async def update_game(
        self, db: AsyncSession, game: Game, expected_stage: GameStage
    ) -> None:
        """Persist `game` only if the stored row is still in `expected_stage`.

        Raises WrongStageError when the row moved on underneath us.
        """
        ...

    async def list_games_by_owner(
        self,
        db: AsyncSession,
        owner_id: str,
        stage: GameStage | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Game]: ...

    async def count_games(self, db: AsyncSession) -> int: ...

    async def count_games_by_stage(self, db: AsyncSession, owner_id: str) -> dict[str, int]: ...


class GameEventWriterProtocol(Protocol):
    async def write(self, db: AsyncSession, event: LedgerEvent, tx_hash: str) -> int:
        """Append one event row in the caller's transaction; returns its id."""
        ...
