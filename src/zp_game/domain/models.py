"""Domain models for zp_game — dataclasses plus the stage transitions.

The transition methods validate input and pre-stage and mutate in place.
Persisting (and the conditional UPDATE that guards against races) is the
repository's job; moving funds is the application service's job.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime

from src.zp_common.enums import GameStage
from src.zp_common.errors import (
    AlreadyInitializedError,
    InternalError,
    InvalidListingError,
    InvalidPriceError,
    WrongStageError,
)
from src.zp_game.domain.outcome import determine_outcome

# bytes32-style reference: 0x + 64 hex chars, all-zero means "unset"
_LISTING_REF_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
ZERO_LISTING_REF = "0x" + "0" * 64


def is_valid_listing_ref(listing_ref: str | None) -> bool:
    if not listing_ref or not _LISTING_REF_RE.match(listing_ref):
        return False
    return listing_ref.lower() != ZERO_LISTING_REF


@dataclass
class Game:
    id: int
    owner_id: str
    cost: int                          # base units paid for this slot
    stage: GameStage = GameStage.NOT_STARTED
    displayed_price: int = 0           # 0 until initialized
    actual_price: int = 0              # 0 until settled
    guess_higher: bool | None = None   # None until guessed
    listing_ref: str | None = None
    won: bool = False
    payout: int = 0
    created_at: datetime | None = None
    initialized_at: datetime | None = None
    guessed_at: datetime | None = None
    settled_at: datetime | None = None
    updated_at: datetime | None = None

    def initialize(self, listing_ref: str, displayed_price: int, now: datetime) -> None:
        if not is_valid_listing_ref(listing_ref):
            raise InvalidListingError(listing_ref)
        if displayed_price <= 0:
            raise InvalidPriceError(displayed_price)
        if self.stage != GameStage.NOT_STARTED:
            raise AlreadyInitializedError(self.id, self.stage.value)
        self.listing_ref = listing_ref
        self.displayed_price = displayed_price
        self.stage = GameStage.INITIALIZED
        self.initialized_at = now
        self.updated_at = now

    def submit_guess(self, guess_higher: bool, now: datetime) -> None:
        self._require_stage(GameStage.INITIALIZED)
        self.guess_higher = guess_higher
        self.stage = GameStage.GUESS_SUBMITTED
        self.guessed_at = now
        self.updated_at = now

    def settle(self, actual_price: int, now: datetime) -> None:
        if actual_price <= 0:
            raise InvalidPriceError(actual_price)
        self._require_stage(GameStage.GUESS_SUBMITTED)
        if self.guess_higher is None:
            raise InternalError(f"Game {self.id} reached GUESS_SUBMITTED without a guess")
        outcome = determine_outcome(
            self.guess_higher, self.displayed_price, actual_price, self.cost
        )
        self.actual_price = actual_price
        self.won = outcome.won
        self.payout = outcome.payout
        self.stage = GameStage.SETTLED
        self.settled_at = now
        self.updated_at = now

    def _require_stage(self, expected: GameStage) -> None:
        if self.stage != expected:
            raise WrongStageError(self.id, expected.value, self.stage.value)


@dataclass
class BatchResult:
    first_game_id: int
    last_game_id: int
    owner_id: str
    cost_per_game: int
    total_cost: int
    tx_hash: str

    @property
    def game_count(self) -> int:
        return self.last_game_id - self.first_game_id + 1


@dataclass
class GamePage:
    items: list[Game] = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False
