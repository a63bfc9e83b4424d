"""GameLedgerService — the authoritative game store and its stage machine.

Every mutation runs in one transaction: funds movement, game rows and the
outbox event commit together or not at all. Per-game work is serialized twice:
an in-process asyncio.Lock striped by game id, and SELECT ... FOR UPDATE plus a
stage-guarded UPDATE in the database for writers in other processes.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.zp_common.caller import Caller
from src.zp_common.datetime_utils import to_unix_seconds, utc_now
from src.zp_common.enums import GameStage, LedgerEntryType
from src.zp_common.errors import (
    AccountNotFoundError,
    FundsError,
    GameNotFoundError,
    InvalidBatchSizeError,
    InvalidPriceError,
    PayoutTransferFailedError,
    UnauthorizedError,
)
from src.zp_common.id_generator import new_tx_hash
from src.zp_common.units import tokens_to_wei
from src.zp_game.application.schemas import cursor_decode, cursor_encode
from src.zp_game.domain.events import (
    BatchGamesCreated,
    GameInitialized,
    GuessSubmitted,
    game_played,
    guess_code,
)
from src.zp_game.domain.models import BatchResult, Game, GamePage
from src.zp_game.domain.repository import GameEventWriterProtocol, GameRepositoryProtocol
from src.zp_game.infrastructure.events import GameEventRepository
from src.zp_game.infrastructure.persistence import GameRepository
from src.zp_token.application.custody import TokenCustody
from src.zp_token.domain.constants import HOUSE_ACCOUNT_ID
from src.zp_token.domain.models import TransferReference

logger = logging.getLogger(__name__)


class GameLedgerService:
    def __init__(
        self,
        repo: GameRepositoryProtocol | None = None,
        custody: TokenCustody | None = None,
        events: GameEventWriterProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo: GameRepositoryProtocol = repo or GameRepository()
        self._custody = custody or TokenCustody()
        self._events: GameEventWriterProtocol = events or GameEventRepository()
        self._clock = clock
        # Fixed pool striped by game_id; the pool size never changes
        self._game_locks = [asyncio.Lock() for _ in range(settings.GAME_LOCK_STRIPES)]
        self._allocation_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_batch(
        self,
        db: AsyncSession,
        caller: Caller,
        batch_size: int | None = None,
        cost_per_game: int | None = None,
    ) -> BatchResult:
        """Charge the caller for `batch_size` slots and allocate them.

        The house pulls the funds on the caller's allowance, so the caller must
        have approved the house for at least batch_size * cost_per_game first.
        """
        size = settings.GAME_BATCH_SIZE if batch_size is None else batch_size
        cost = tokens_to_wei(settings.GAME_COST_TOKENS) if cost_per_game is None else cost_per_game
        if not 1 <= size <= settings.GAME_MAX_BATCH_SIZE:
            raise InvalidBatchSizeError(size, settings.GAME_MAX_BATCH_SIZE)
        if cost <= 0:
            raise InvalidPriceError(cost)

        total = size * cost
        tx_hash = new_tx_hash()
        async with self._allocation_lock:
            try:
                await self._custody.transfer_from(
                    db,
                    spender_id=HOUSE_ACCOUNT_ID,
                    payer_id=caller.user_id,
                    recipient_id=HOUSE_ACCOUNT_ID,
                    amount=total,
                    reference=TransferReference(
                        "GAME_BATCH",
                        tx_hash,
                        LedgerEntryType.BATCH_DEBIT,
                        LedgerEntryType.BATCH_CREDIT,
                        f"Batch of {size} games",
                    ),
                )
                first_id = await self._repo.allocate_ids(db, size)
                now = self._clock()
                games = await self._repo.insert_batch(
                    db, first_id, size, caller.user_id, cost, now
                )
                await self._events.write(
                    db,
                    BatchGamesCreated(
                        player=caller.user_id,
                        start_game_id=games[0].id,
                        end_game_id=games[-1].id,
                        timestamp=to_unix_seconds(now),
                    ),
                    tx_hash,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info(
            "Batch created: player=%s games=%d..%d cost=%d",
            caller.user_id, games[0].id, games[-1].id, cost,
        )
        return BatchResult(
            first_game_id=games[0].id,
            last_game_id=games[-1].id,
            owner_id=caller.user_id,
            cost_per_game=cost,
            total_cost=total,
            tx_hash=tx_hash,
        )

    async def initialize(
        self,
        db: AsyncSession,
        caller: Caller,
        game_id: int,
        listing_ref: str,
        displayed_price: int,
    ) -> Game:
        if not caller.is_settler:
            raise UnauthorizedError("only the settler may initialize games")
        async with self._lock_for(game_id):
            try:
                game = await self._load_for_update(db, game_id)
                game.initialize(listing_ref, displayed_price, self._clock())
                await self._repo.update_game(db, game, GameStage.NOT_STARTED)
                await self._events.write(
                    db,
                    GameInitialized(
                        player=game.owner_id,
                        id=game.id,
                        listing_ref=listing_ref,
                        displayed_price=displayed_price,
                    ),
                    new_tx_hash(),
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Game %d initialized: displayed_price=%d", game_id, displayed_price)
        return game

    async def submit_guess(
        self, db: AsyncSession, caller: Caller, game_id: int, guess_higher: bool
    ) -> Game:
        async with self._lock_for(game_id):
            try:
                game = await self._load_for_update(db, game_id)
                if game.owner_id != caller.user_id:
                    raise UnauthorizedError("only the game owner may guess")
                game.submit_guess(guess_higher, self._clock())
                await self._repo.update_game(db, game, GameStage.INITIALIZED)
                await self._events.write(
                    db,
                    GuessSubmitted(
                        player=game.owner_id, id=game.id, guess=guess_code(guess_higher)
                    ),
                    new_tx_hash(),
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info(
            "Game %d guess submitted: %s", game_id, "HIGHER" if guess_higher else "LOWER"
        )
        return game

    async def settle(
        self, db: AsyncSession, caller: Caller, game_id: int, actual_price: int
    ) -> Game:
        """Reveal the actual price and pay a winner from the house account.

        A failed payout aborts the whole settlement; the game stays
        GUESS_SUBMITTED and can be settled again once the house is funded.
        """
        if not caller.is_settler:
            raise UnauthorizedError("only the settler may settle games")
        async with self._lock_for(game_id):
            try:
                game = await self._load_for_update(db, game_id)
                game.settle(actual_price, self._clock())
                await self._repo.update_game(db, game, GameStage.GUESS_SUBMITTED)
                tx_hash = new_tx_hash()
                if game.won:
                    try:
                        await self._custody.transfer(
                            db,
                            sender_id=HOUSE_ACCOUNT_ID,
                            recipient_id=game.owner_id,
                            amount=game.payout,
                            reference=TransferReference(
                                "GAME_PAYOUT",
                                str(game.id),
                                LedgerEntryType.PAYOUT_DEBIT,
                                LedgerEntryType.PAYOUT_CREDIT,
                                f"Payout for game {game.id}",
                            ),
                        )
                    except (FundsError, AccountNotFoundError) as exc:
                        raise PayoutTransferFailedError(game.id, game.payout) from exc
                await self._events.write(db, game_played(game), tx_hash)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info(
            "Game %d settled: actual=%d displayed=%d won=%s payout=%d",
            game_id, game.actual_price, game.displayed_price, game.won, game.payout,
        )
        return game

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_game(self, db: AsyncSession, game_id: int) -> Game:
        game = await self._repo.get_game(db, game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        return game

    async def list_player_games(
        self,
        db: AsyncSession,
        player_id: str,
        stage: GameStage | None = None,
        cursor: str | None = None,
        limit: int = 20,
    ) -> GamePage:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        games = await self._repo.list_games_by_owner(
            db, player_id, stage, cursor_id, limit + 1
        )
        has_more = len(games) > limit
        page = games[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return GamePage(items=page, next_cursor=next_cursor, has_more=has_more)

    async def count_games(self, db: AsyncSession) -> int:
        return await self._repo.count_games(db)

    async def count_player_games_by_stage(
        self, db: AsyncSession, player_id: str
    ) -> dict[str, int]:
        counts = await self._repo.count_games_by_stage(db, player_id)
        return {stage.value: counts.get(stage.value, 0) for stage in GameStage}

    async def _load_for_update(self, db: AsyncSession, game_id: int) -> Game:
        game = await self._repo.get_game(db, game_id, for_update=True)
        if game is None:
            raise GameNotFoundError(game_id)
        return game

    def _lock_for(self, game_id: int) -> asyncio.Lock:
        return self._game_locks[game_id % len(self._game_locks)]
