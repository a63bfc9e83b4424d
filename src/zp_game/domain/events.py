"""Ledger events, written to the game_events outbox in the mutating transaction.

Each event has a Solidity-style signature so subscribers can filter the same
way a log trigger filters on topic 0. Amounts go into the JSON payload as
decimal strings (uint256 does not round-trip through every JSON reader).
"""

from dataclasses import dataclass
from typing import Any, ClassVar

from src.zp_common.enums import GameEventName
from src.zp_common.errors import InternalError
from src.zp_game.domain.models import Game

GUESS_UNDER = 0
GUESS_OVER = 1


@dataclass(frozen=True)
class LedgerEvent:
    name: ClassVar[GameEventName]
    signature: ClassVar[str]

    player: str

    @property
    def game_id(self) -> int | None:
        return None

    def payload(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class BatchGamesCreated(LedgerEvent):
    name: ClassVar[GameEventName] = GameEventName.BATCH_GAMES_CREATED
    signature: ClassVar[str] = "BatchGamesCreated(address,uint256,uint256,uint256)"

    start_game_id: int
    end_game_id: int
    timestamp: int

    def payload(self) -> dict[str, Any]:
        return {
            "player": self.player,
            "startGameId": self.start_game_id,
            "endGameId": self.end_game_id,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class GameInitialized(LedgerEvent):
    name: ClassVar[GameEventName] = GameEventName.GAME_INITIALIZED
    signature: ClassVar[str] = "GameInitialized(uint256,bytes32,uint256)"

    id: int
    listing_ref: str
    displayed_price: int

    @property
    def game_id(self) -> int | None:
        return self.id

    def payload(self) -> dict[str, Any]:
        return {
            "player": self.player,
            "gameId": self.id,
            "listingId": self.listing_ref,
            "displayedPrice": str(self.displayed_price),
        }


@dataclass(frozen=True)
class GuessSubmitted(LedgerEvent):
    name: ClassVar[GameEventName] = GameEventName.GUESS_SUBMITTED
    signature: ClassVar[str] = "GuessSubmitted(address,uint256,uint8)"

    id: int
    guess: int

    @property
    def game_id(self) -> int | None:
        return self.id

    def payload(self) -> dict[str, Any]:
        return {"player": self.player, "gameId": self.id, "guess": self.guess}


@dataclass(frozen=True)
class GamePlayed(LedgerEvent):
    name: ClassVar[GameEventName] = GameEventName.GAME_PLAYED
    signature: ClassVar[str] = (
        "GamePlayed(address,uint256,uint256,uint8,uint256,bool,uint256)"
    )

    id: int
    bet_amount: int
    threshold: int
    guess: int
    result: int
    won: bool
    payout: int

    @property
    def game_id(self) -> int | None:
        return self.id

    def payload(self) -> dict[str, Any]:
        return {
            "player": self.player,
            "gameId": self.id,
            "betAmount": str(self.bet_amount),
            "threshold": str(self.threshold),
            "guess": self.guess,
            "result": str(self.result),
            "won": self.won,
            "payout": str(self.payout),
        }


def guess_code(guess_higher: bool) -> int:
    return GUESS_OVER if guess_higher else GUESS_UNDER


def game_played(game: Game) -> GamePlayed:
    if game.guess_higher is None:
        raise InternalError(f"Game {game.id} has no guess to report")
    return GamePlayed(
        player=game.owner_id,
        id=game.id,
        bet_amount=game.cost,
        threshold=game.displayed_price,
        guess=guess_code(game.guess_higher),
        result=game.actual_price,
        won=game.won,
        payout=game.payout,
    )
