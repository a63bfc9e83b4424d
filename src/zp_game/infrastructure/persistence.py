"""GameRepository — concrete implementation of GameRepositoryProtocol.

One authoritative `games` table keyed by id. Per-player views are plain
queries on the (owner_id, id) index; nothing is stored twice.

Concurrency:
  - allocate_ids bumps the single game_counters row with UPDATE ... RETURNING;
    the row lock serializes allocators across processes until commit.
  - get_game(for_update=True) takes the row lock for the rest of the transaction.
  - update_game is guarded by `stage = :expected_stage`, so a writer that lost
    a race updates 0 rows and gets WrongStageError.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_common.enums import GameStage
from src.zp_common.errors import GameNotFoundError, InternalError, WrongStageError
from src.zp_common.units import from_db_numeric
from src.zp_game.domain.models import Game

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_GAME_COLUMNS = """
    id, owner_id, cost, stage, displayed_price, actual_price,
    guess_higher, listing_ref, won, payout,
    created_at, initialized_at, guessed_at, settled_at, updated_at
"""

_ALLOCATE_IDS_SQL = text("""
    UPDATE game_counters
    SET next_id = next_id + :count
    WHERE name = 'games'
    RETURNING next_id - :count AS first_id
""")

_INSERT_BATCH_SQL = text("""
    INSERT INTO games (id, owner_id, cost, stage, created_at, updated_at)
    SELECT gs, CAST(:owner_id AS VARCHAR), CAST(:cost AS NUMERIC), 'NOT_STARTED', :created_at, :created_at
    FROM generate_series(CAST(:first_id AS BIGINT), CAST(:last_id AS BIGINT)) AS gs
""")

_GET_GAME_SQL = text(f"SELECT {_GAME_COLUMNS} FROM games WHERE id = :game_id")

_GET_GAME_FOR_UPDATE_SQL = text(
    f"SELECT {_GAME_COLUMNS} FROM games WHERE id = :game_id FOR UPDATE"
)

_GET_STAGE_SQL = text("SELECT stage FROM games WHERE id = :game_id")

_UPDATE_GAME_SQL = text("""
    UPDATE games
    SET stage = :stage,
        displayed_price = :displayed_price,
        actual_price = :actual_price,
        guess_higher = :guess_higher,
        listing_ref = :listing_ref,
        won = :won,
        payout = CAST(:payout AS NUMERIC),
        initialized_at = :initialized_at,
        guessed_at = :guessed_at,
        settled_at = :settled_at,
        updated_at = :updated_at
    WHERE id = :game_id AND stage = :expected_stage
""")

_LIST_BY_OWNER_SQL = text(f"""
    SELECT {_GAME_COLUMNS}
    FROM games
    WHERE owner_id = :owner_id
      AND (CAST(:stage AS TEXT) IS NULL OR stage = CAST(:stage AS TEXT))
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")

_COUNT_GAMES_SQL = text("SELECT COUNT(*) AS total FROM games")

_COUNT_BY_STAGE_SQL = text("""
    SELECT stage, COUNT(*) AS total
    FROM games
    WHERE owner_id = :owner_id
    GROUP BY stage
""")

# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_game(row: object) -> Game:
    return Game(
        id=row.id,  # type: ignore[attr-defined]
        owner_id=row.owner_id,  # type: ignore[attr-defined]
        cost=from_db_numeric(row.cost),  # type: ignore[attr-defined]
        stage=GameStage(row.stage),  # type: ignore[attr-defined]
        displayed_price=row.displayed_price,  # type: ignore[attr-defined]
        actual_price=row.actual_price,  # type: ignore[attr-defined]
        guess_higher=row.guess_higher,  # type: ignore[attr-defined]
        listing_ref=row.listing_ref,  # type: ignore[attr-defined]
        won=row.won,  # type: ignore[attr-defined]
        payout=from_db_numeric(row.payout),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        initialized_at=row.initialized_at,  # type: ignore[attr-defined]
        guessed_at=row.guessed_at,  # type: ignore[attr-defined]
        settled_at=row.settled_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class GameRepository:
    async def allocate_ids(self, db: AsyncSession, count: int) -> int:
        result = await db.execute(_ALLOCATE_IDS_SQL, {"count": count})
        row = result.fetchone()
        if row is None:
            raise InternalError("game_counters row missing — run migrations")
        return int(row.first_id)

    async def insert_batch(
        self,
        db: AsyncSession,
        first_id: int,
        count: int,
        owner_id: str,
        cost: int,
        created_at: datetime,
    ) -> list[Game]:
        last_id = first_id + count - 1
        await db.execute(
            _INSERT_BATCH_SQL,
            {
                "owner_id": owner_id,
                "cost": cost,
                "created_at": created_at,
                "first_id": first_id,
                "last_id": last_id,
            },
        )
        return [
            Game(
                id=game_id,
                owner_id=owner_id,
                cost=cost,
                created_at=created_at,
                updated_at=created_at,
            )
            for game_id in range(first_id, last_id + 1)
        ]

    async def get_game(
        self, db: AsyncSession, game_id: int, for_update: bool = False
    ) -> Game | None:
        sql = _GET_GAME_FOR_UPDATE_SQL if for_update else _GET_GAME_SQL
        result = await db.execute(sql, {"game_id": game_id})
        row = result.fetchone()
        return _row_to_game(row) if row else None

    async def update_game(
        self, db: AsyncSession, game: Game, expected_stage: GameStage
    ) -> None:
        result = await db.execute(
            _UPDATE_GAME_SQL,
            {
                "game_id": game.id,
                "expected_stage": expected_stage.value,
                "stage": game.stage.value,
                "displayed_price": game.displayed_price,
                "actual_price": game.actual_price,
                "guess_higher": game.guess_higher,
                "listing_ref": game.listing_ref,
                "won": game.won,
                "payout": game.payout,
                "initialized_at": game.initialized_at,
                "guessed_at": game.guessed_at,
                "settled_at": game.settled_at,
                "updated_at": game.updated_at,
            },
        )
        if result.rowcount == 1:  # type: ignore[attr-defined]
            return
        stage_row = (await db.execute(_GET_STAGE_SQL, {"game_id": game.id})).fetchone()
        if stage_row is None:
            raise GameNotFoundError(game.id)
        raise WrongStageError(game.id, expected_stage.value, stage_row.stage)

    async def list_games_by_owner(
        self,
        db: AsyncSession,
        owner_id: str,
        stage: GameStage | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Game]:
        result = await db.execute(
            _LIST_BY_OWNER_SQL,
            {
                "owner_id": owner_id,
                "stage": stage.value if stage else None,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_game(row) for row in result.fetchall()]

    async def count_games(self, db: AsyncSession) -> int:
        result = await db.execute(_COUNT_GAMES_SQL)
        row = result.fetchone()
        return int(row.total) if row else 0

    async def count_games_by_stage(self, db: AsyncSession, owner_id: str) -> dict[str, int]:
        result = await db.execute(_COUNT_BY_STAGE_SQL, {"owner_id": owner_id})
        return {row.stage: int(row.total) for row in result.fetchall()}
