"""Auth API router: register, login, refresh."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.zp_common.database import get_db_session
from src.zp_common.response import ApiResponse, respond
from src.zp_gateway.user.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UserInfo,
)
from src.zp_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    summary="User registration",
)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    async with db.begin():
        user = await _service.register(body.username, body.email, body.password, db)

    data = RegisterResponse(
        user_id=str(user.id),
        username=user.username,
        email=user.email,
        role=user.role,
        created_at=user.created_at.isoformat(),
    )
    resp = respond(request, data)
    resp.message = "User registered successfully"
    return resp


@router.post("/login", response_model=ApiResponse, summary="User login")
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    user, access_token, refresh_token = await _service.login(body.username, body.password, db)

    data = LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
        user=UserInfo(
            user_id=str(user.id),
            username=user.username,
            email=user.email,
            role=user.role,
        ),
    )
    resp = respond(request, data)
    resp.message = "Login successful"
    return resp


@router.post("/refresh", response_model=ApiResponse, summary="Refresh access token")
async def refresh_token(
    request: Request,
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    new_access_token = await _service.refresh(body.refresh_token, db)
    data = RefreshResponse(
        access_token=new_access_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )
    resp = respond(request, data)
    resp.message = "Token refreshed"
    return resp
