"""zp_game REST API — all endpoints require JWT authentication.

POST /games/batch              — buy a batch of game slots
GET  /games                    — caller's games, newest first, cursor paginated
GET  /games/count              — total games ever created
GET  /games/stats              — caller's games counted per stage
GET  /games/{game_id}          — one game
POST /games/{game_id}/initialize — settler: attach listing + displayed price
POST /games/{game_id}/guess    — owner: HIGHER / LOWER
POST /games/{game_id}/settle   — settler: reveal actual price, pay winner
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_common.caller import Caller
from src.zp_common.database import get_db_session
from src.zp_common.enums import GameStage
from src.zp_common.response import ApiResponse, respond
from src.zp_game.application.schemas import (
    BatchResponse,
    CreateBatchRequest,
    GameCountResponse,
    GameDetail,
    GameListResponse,
    GameStatsResponse,
    GuessRequest,
    InitializeRequest,
    SettleRequest,
)
from src.zp_game.application.service import GameLedgerService
from src.zp_gateway.auth.dependencies import get_caller

router = APIRouter(prefix="/games", tags=["games"])

# Module-level singleton: the per-game locks must be shared across requests
_service = GameLedgerService()


@router.post("/batch", status_code=201)
async def create_batch(
    body: CreateBatchRequest,
    caller: Annotated[Caller, Depends(get_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.create_batch(db, caller, body.batch_size, body.cost_per_game)
    return respond(request, BatchResponse.from_domain(result))


@router.get("")
async def list_games(
    caller: Annotated[Caller, Depends(get_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    stage: GameStage | None = Query(None, description="Filter by stage"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    page = await _service.list_player_games(db, caller.user_id, stage, cursor, limit)
    return respond(request, GameListResponse.from_page(page))


@router.get("/count")
async def count_games(
    caller: Annotated[Caller, Depends(get_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    return respond(request, GameCountResponse(total=await _service.count_games(db)))


@router.get("/stats")
async def game_stats(
    caller: Annotated[Caller, Depends(get_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    by_stage = await _service.count_player_games_by_stage(db, caller.user_id)
    data = GameStatsResponse(
        player_id=caller.user_id, by_stage=by_stage, total=sum(by_stage.values())
    )
    return respond(request, data)


@router.get("/{game_id}")
async def get_game(
    game_id: int,
    caller: Annotated[Caller, Depends(get_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    game = await _service.get_game(db, game_id)
    return respond(request, GameDetail.from_domain(game))


@router.post("/{game_id}/initialize")
async def initialize_game(
    game_id: int,
    body: InitializeRequest,
    caller: Annotated[Caller, Depends(get_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    game = await _service.initialize(
        db, caller, game_id, body.listing_ref, body.displayed_price
    )
    return respond(request, GameDetail.from_domain(game))


@router.post("/{game_id}/guess")
async def submit_guess(
    game_id: int,
    body: GuessRequest,
    caller: Annotated[Caller, Depends(get_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    game = await _service.submit_guess(db, caller, game_id, body.guess_higher)
    return respond(request, GameDetail.from_domain(game))


@router.post("/{game_id}/settle")
async def settle_game(
    game_id: int,
    body: SettleRequest,
    caller: Annotated[Caller, Depends(get_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    game = await _service.settle(db, caller, game_id, body.actual_price)
    return respond(request, GameDetail.from_domain(game))
