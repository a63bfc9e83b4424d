"""Observer handlers: GamePlayed logging, batch initialization, settlement."""

import json
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_common.caller import Caller, system_settler
from src.zp_common.database import session_scope
from src.zp_common.datetime_utils import utc_now
from src.zp_common.errors import InternalError, InvalidListingError, ListingNotFoundError
from src.zp_game.application.service import GameLedgerService
from src.zp_game.domain.events import BatchGamesCreated, GamePlayed, GuessSubmitted
from src.zp_listing.application.initializer import ListingInitializer
from src.zp_listing.domain.models import InitializationReport
from src.zp_listing.domain.repository import ListingRepositoryProtocol
from src.zp_listing.infrastructure.persistence import ListingRepository
from src.zp_observer.application.observer import EventObserver
from src.zp_observer.domain.decoding import (
    BatchGamesCreatedArgs,
    GamePlayedArgs,
    GuessSubmittedArgs,
)
from src.zp_observer.domain.models import LogPayload

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

ArgsT = TypeVar("ArgsT")


def _args_as(payload: LogPayload, expected: type[ArgsT]) -> ArgsT:
    args = payload.args
    if not isinstance(args, expected):
        raise InternalError(
            f"{payload.event_name} decoded as {type(args).__name__}, expected {expected.__name__}"
        )
    return args


async def log_game_played(payload: LogPayload) -> str:
    """Log a settled game and return the JSON summary."""
    args = _args_as(payload, GamePlayedArgs)
    logger.info("=== Game Played Event Detected ===")
    logger.info("Player: %s", args.player)
    logger.info("Bet Amount: %d HOBO", args.bet_amount)
    logger.info("Threshold: %d", args.threshold)
    logger.info("Guess: %s", args.guess_label)
    logger.info("Result: %d", args.result)
    logger.info("Won: %s", args.won)
    logger.info("Payout: %d HOBO", args.payout)
    logger.info("Block Number: %d", payload.block_number)
    logger.info("Transaction Hash: %s", payload.transaction_hash)
    return json.dumps(
        {
            "event": "GamePlayed",
            "player": args.player,
            "gameId": args.game_id,
            "won": args.won,
            "betAmount": str(args.bet_amount),
            "payout": str(args.payout),
            "result": str(args.result),
            "timestamp": utc_now().isoformat(),
        },
        indent=2,
    )


class SettlerAutomation:
    """Drives the ledger as the system settler in response to events.

    Each handler opens its own session: the observer's session only carries
    the cursor, and the ledger commits per game.
    """

    def __init__(
        self,
        ledger: GameLedgerService,
        initializer: ListingInitializer | None = None,
        listings: ListingRepositoryProtocol | None = None,
        session_factory: SessionFactory = session_scope,
        settler: Caller | None = None,
    ) -> None:
        self._ledger = ledger
        self._settler = settler or system_settler()
        self._initializer = initializer or ListingInitializer(ledger, settler=self._settler)
        self._listings: ListingRepositoryProtocol = listings or ListingRepository()
        self._session_factory = session_factory

    async def initialize_new_batch(self, payload: LogPayload) -> InitializationReport:
        args = _args_as(payload, BatchGamesCreatedArgs)
        async with self._session_factory() as db:
            return await self._initializer.initialize_batch(
                db, args.start_game_id, args.end_game_id
            )

    async def settle_submitted_guess(self, payload: LogPayload) -> Any:
        args = _args_as(payload, GuessSubmittedArgs)
        async with self._session_factory() as db:
            game = await self._ledger.get_game(db, args.game_id)
            if game.listing_ref is None:
                raise InvalidListingError(None)
            record = await self._listings.get(db, game.listing_ref)
            if record is None:
                raise ListingNotFoundError(game.listing_ref)
            # End the read transaction; settle takes its own row lock
            await db.rollback()
            return await self._ledger.settle(db, self._settler, args.game_id, record.actual_price)


def register_default_handlers(observer: EventObserver, automation: SettlerAutomation) -> None:
    observer.subscribe(GamePlayed.signature, log_game_played)
    observer.subscribe(BatchGamesCreated.signature, automation.initialize_new_batch)
    observer.subscribe(GuessSubmitted.signature, automation.settle_submitted_guess)
