"""User domain service: register, login, refresh.

All DB operations use the injected AsyncSession. Transactions are managed
by the caller (router layer) via `async with db.begin()`.
"""

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.zp_common.enums import UserRole
from src.zp_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    UsernameExistsError,
)
from src.zp_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.zp_gateway.auth.password import hash_password, verify_password
from src.zp_gateway.user.db_models import UserModel

_CREATE_ACCOUNT_SQL = text(
    "INSERT INTO accounts (user_id, balance, version) VALUES (:user_id, 0, 0)"
)


def role_for_username(username: str) -> UserRole:
    return UserRole.SETTLER if username in settings.SETTLER_USERNAMES else UserRole.PLAYER


class UserService:
    """Stateless service — instantiate once, reuse across requests."""

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        db: AsyncSession,
    ) -> UserModel:
        """Register a new user and create their token account row.

        Both inserts share the caller's transaction (`async with db.begin()`).
        """
        result = await db.execute(
            select(UserModel).where(UserModel.username == username)
        )
        if result.scalar_one_or_none() is not None:
            raise UsernameExistsError()

        result = await db.execute(
            select(UserModel).where(UserModel.email == email)
        )
        if result.scalar_one_or_none() is not None:
            raise EmailExistsError()

        user = UserModel(
            username=username,
            email=email,
            password_hash=hash_password(password),
            role=role_for_username(username).value,
            is_active=True,
        )
        db.add(user)
        await db.flush()  # Get user.id without committing

        await db.execute(_CREATE_ACCOUNT_SQL, {"user_id": str(user.id)})
        return user

    async def login(
        self,
        username: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, str, str]:
        """Authenticate and return (user, access_token, refresh_token).

        Unknown user and wrong password raise the same error.
        """
        result = await db.execute(
            select(UserModel).where(UserModel.username == username)
        )
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        if not user.is_active:
            raise AccountDisabledError()

        return (
            user,
            create_access_token(str(user.id), UserRole(user.role)),
            create_refresh_token(str(user.id)),
        )

    async def refresh(self, refresh_token: str, db: AsyncSession) -> str:
        """Validate refresh token and return a new access token with the current role."""
        payload = decode_token(refresh_token, expected_type="refresh")
        user_id = str(payload["sub"])
        result = await db.execute(select(UserModel).where(UserModel.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise InvalidRefreshTokenError()
        if not user.is_active:
            raise AccountDisabledError()
        return create_access_token(user_id, UserRole(user.role))
