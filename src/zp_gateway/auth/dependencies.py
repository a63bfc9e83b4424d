"""FastAPI dependencies: get_current_user, get_caller, require_settler.

Usage in any protected router:
    from src.zp_gateway.auth.dependencies import get_caller

    @router.post("/games/{game_id}/guess")
    async def guess(caller: Caller = Depends(get_caller)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_common.caller import Caller
from src.zp_common.database import get_db_session
from src.zp_common.errors import AccountDisabledError, InvalidCredentialsError, UnauthorizedError
from src.zp_gateway.auth.jwt_handler import decode_token
from src.zp_gateway.user.db_models import UserModel

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Extract and validate the JWT Bearer token, return the UserModel.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    Raises AccountDisabledError (403) if the user account is disabled.
    """
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id: str | None = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION

    if not user.is_active:
        raise AccountDisabledError()

    return user


async def get_caller(current_user: UserModel = Depends(get_current_user)) -> Caller:
    """Role comes from the user row, not the token claim, so demotions apply immediately."""
    return current_user.as_caller()


async def require_settler(caller: Caller = Depends(get_caller)) -> Caller:
    """Guard for settler-only endpoints that have no service-level check (mint)."""
    if not caller.is_settler:
        raise UnauthorizedError("settler role required")
    return caller
