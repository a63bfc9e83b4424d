"""Pydantic schemas and cursor utilities for zp_game API."""

import base64
import json

from pydantic import BaseModel, Field

from src.zp_common.enums import GuessDirection
from src.zp_common.units import wei_to_display
from src.zp_game.domain.models import BatchResult, Game, GamePage

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a game id into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen game id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except Exception:
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateBatchRequest(BaseModel):
    batch_size: int | None = Field(None, ge=1, description="Defaults to GAME_BATCH_SIZE")
    cost_per_game: int | None = Field(
        None, gt=0, description="Base units per game (10^18 per token)"
    )


class InitializeRequest(BaseModel):
    listing_ref: str = Field(..., min_length=3, max_length=66)
    displayed_price: int = Field(..., description="Displayed price in whole dollars")


class GuessRequest(BaseModel):
    direction: GuessDirection

    @property
    def guess_higher(self) -> bool:
        return self.direction == GuessDirection.HIGHER


class SettleRequest(BaseModel):
    actual_price: int = Field(..., description="Actual price in whole dollars")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


def _iso(value: object) -> str | None:
    return value.isoformat() if value is not None else None  # type: ignore[attr-defined]


class GameDetail(BaseModel):
    id: int
    owner_id: str
    stage: str
    cost: str
    cost_display: str
    listing_ref: str | None
    displayed_price: int
    actual_price: int
    guess: str | None       # HIGHER / LOWER, null until guessed
    won: bool
    payout: str
    payout_display: str
    created_at: str | None
    initialized_at: str | None
    guessed_at: str | None
    settled_at: str | None

    @classmethod
    def from_domain(cls, g: Game) -> "GameDetail":
        guess = None
        if g.guess_higher is not None:
            guess = (GuessDirection.HIGHER if g.guess_higher else GuessDirection.LOWER).value
        return cls(
            id=g.id,
            owner_id=g.owner_id,
            stage=g.stage.value,
            cost=str(g.cost),
            cost_display=wei_to_display(g.cost),
            listing_ref=g.listing_ref,
            displayed_price=g.displayed_price,
            actual_price=g.actual_price,
            guess=guess,
            won=g.won,
            payout=str(g.payout),
            payout_display=wei_to_display(g.payout),
            created_at=_iso(g.created_at),
            initialized_at=_iso(g.initialized_at),
            guessed_at=_iso(g.guessed_at),
            settled_at=_iso(g.settled_at),
        )


class GameListResponse(BaseModel):
    items: list[GameDetail]
    next_cursor: str | None
    has_more: bool

    @classmethod
    def from_page(cls, page: GamePage) -> "GameListResponse":
        return cls(
            items=[GameDetail.from_domain(g) for g in page.items],
            next_cursor=page.next_cursor,
            has_more=page.has_more,
        )


class BatchResponse(BaseModel):
    first_game_id: int
    last_game_id: int
    game_count: int
    cost_per_game: str
    total_cost: str
    total_cost_display: str
    tx_hash: str

    @classmethod
    def from_domain(cls, r: BatchResult) -> "BatchResponse":
        return cls(
            first_game_id=r.first_game_id,
            last_game_id=r.last_game_id,
            game_count=r.game_count,
            cost_per_game=str(r.cost_per_game),
            total_cost=str(r.total_cost),
            total_cost_display=wei_to_display(r.total_cost),
            tx_hash=r.tx_hash,
        )


class GameCountResponse(BaseModel):
    total: int


class GameStatsResponse(BaseModel):
    player_id: str
    by_stage: dict[str, int]
    total: int
