"""zp_token REST API — all endpoints require JWT authentication.

GET  /token/balance     — caller's balance
GET  /token/allowance   — caller's allowance to a spender (default: the house)
POST /token/approve     — set allowance
POST /token/mint        — settler-only faucet
GET  /token/ledger      — caller's ledger entries, cursor paginated
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_common.caller import Caller
from src.zp_common.database import get_db_session
from src.zp_common.response import ApiResponse, respond
from src.zp_gateway.auth.dependencies import get_caller, require_settler
from src.zp_token.application.schemas import ApproveRequest, MintRequest
from src.zp_token.application.service import TokenApplicationService
from src.zp_token.domain.constants import HOUSE_ACCOUNT_ID

router = APIRouter(prefix="/token", tags=["token"])

_service = TokenApplicationService()


@router.get("/balance")
async def get_balance(
    caller: Annotated[Caller, Depends(get_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    return respond(request, await _service.get_balance(db, caller.user_id))


@router.get("/allowance")
async def get_allowance(
    caller: Annotated[Caller, Depends(get_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    spender_id: str = Query(HOUSE_ACCOUNT_ID),
) -> ApiResponse:
    return respond(request, await _service.get_allowance(db, caller.user_id, spender_id))


@router.post("/approve")
async def approve(
    body: ApproveRequest,
    caller: Annotated[Caller, Depends(get_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.approve(db, caller, body.spender_id, body.amount)
    return respond(request, data)


@router.post("/mint")
async def mint(
    body: MintRequest,
    caller: Annotated[Caller, Depends(require_settler)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.mint(db, caller, body.account_id, body.amount)
    return respond(request, data)


@router.get("/ledger")
async def list_ledger(
    caller: Annotated[Caller, Depends(get_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    entry_type: str | None = Query(None, description="Filter by LedgerEntryType"),
) -> ApiResponse:
    data = await _service.list_ledger(db, caller.user_id, cursor, limit, entry_type)
    return respond(request, data)
