"""Typed decoding of event payloads, keyed by event signature."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.zp_game.domain.events import (
    GUESS_OVER,
    BatchGamesCreated,
    GameInitialized,
    GamePlayed,
    GuessSubmitted,
)


class _EventArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    player: str


class BatchGamesCreatedArgs(_EventArgs):
    start_game_id: int = Field(alias="startGameId")
    end_game_id: int = Field(alias="endGameId")
    timestamp: int


class GameInitializedArgs(_EventArgs):
    game_id: int = Field(alias="gameId")
    listing_id: str = Field(alias="listingId")
    displayed_price: int = Field(alias="displayedPrice")


class GuessSubmittedArgs(_EventArgs):
    game_id: int = Field(alias="gameId")
    guess: int

    @property
    def guess_label(self) -> str:
        return "OVER" if self.guess == GUESS_OVER else "UNDER"


class GamePlayedArgs(_EventArgs):
    game_id: int = Field(alias="gameId")
    bet_amount: int = Field(alias="betAmount")
    threshold: int
    guess: int
    result: int
    won: bool
    payout: int

    @property
    def guess_label(self) -> str:
        return "OVER" if self.guess == GUESS_OVER else "UNDER"


DECODERS: dict[str, type[_EventArgs]] = {
    BatchGamesCreated.signature: BatchGamesCreatedArgs,
    GameInitialized.signature: GameInitializedArgs,
    GuessSubmitted.signature: GuessSubmittedArgs,
    GamePlayed.signature: GamePlayedArgs,
}


def decode_event(signature: str, payload: dict[str, Any]) -> _EventArgs:
    """Raises KeyError for an unknown signature and pydantic ValidationError for a bad payload."""
    return DECODERS[signature].model_validate(payload)
