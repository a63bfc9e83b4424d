"""Unit tests for user service (mocked DB)."""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

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
from src.zp_gateway.user.db_models import UserModel
from src.zp_gateway.user.service import UserService, role_for_username


def _make_user(is_active: bool = True, role: UserRole = UserRole.PLAYER) -> UserModel:
    user = UserModel()
    user.id = uuid.uuid4()
    user.username = "alice"
    user.email = "alice@example.com"
    user.password_hash = "$2b$12$fakehash"
    user.role = role.value
    user.is_active = is_active
    return user


def _result(value: object) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


@pytest.fixture
def mock_db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service() -> UserService:
    return UserService()


class TestRoleForUsername:
    def test_regular_user_is_player(self) -> None:
        assert role_for_username("alice") == UserRole.PLAYER

    def test_configured_username_is_settler(self) -> None:
        with patch("src.zp_gateway.user.service.settings.SETTLER_USERNAMES", ["oracle"]):
            assert role_for_username("oracle") == UserRole.SETTLER


class TestRegister:
    async def test_duplicate_username_raises_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user()))

        with pytest.raises(UsernameExistsError):
            await service.register("alice", "new@email.com", "Pass1word", mock_db)

    async def test_duplicate_email_raises_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(side_effect=[_result(None), _result(_make_user())])

        with pytest.raises(EmailExistsError):
            await service.register("newuser", "alice@example.com", "Pass1word", mock_db)

    async def test_success_creates_user_and_token_account(
        self, service: UserService
    ) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_result(None), _result(None), MagicMock()])
        new_id = uuid.uuid4()

        async def _flush() -> None:
            db.add.call_args.args[0].id = new_id

        db.flush = AsyncMock(side_effect=_flush)

        user = await service.register("bob", "bob@example.com", "Pass1word", db)

        assert user.username == "bob"
        assert user.role == "PLAYER"
        assert user.password_hash != "Pass1word"
        account_params = db.execute.await_args_list[2].args[1]
        assert account_params == {"user_id": str(new_id)}


class TestLogin:
    async def test_wrong_username_raises_credentials_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(None))

        with pytest.raises(InvalidCredentialsError):
            await service.login("nobody", "Pass1word", mock_db)

    async def test_wrong_password_raises_credentials_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user()))

        with (
            patch("src.zp_gateway.user.service.verify_password", return_value=False),
            pytest.raises(InvalidCredentialsError),
        ):
            await service.login("alice", "WrongPass1", mock_db)

    async def test_disabled_account_raises_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user(is_active=False)))

        with (
            patch("src.zp_gateway.user.service.verify_password", return_value=True),
            pytest.raises(AccountDisabledError),
        ):
            await service.login("alice", "Pass1word", mock_db)

    async def test_settler_login_embeds_role(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user(role=UserRole.SETTLER)))

        with patch("src.zp_gateway.user.service.verify_password", return_value=True):
            _, access, refresh = await service.login("alice", "Pass1word", mock_db)

        assert decode_token(access, "access")["role"] == "SETTLER"
        assert access != refresh


class TestRefresh:
    async def test_invalid_refresh_token_raises_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh("not.a.real.token", mock_db)

    async def test_access_token_used_as_refresh_raises_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(create_access_token("user-123"), mock_db)

    async def test_deleted_user_raises_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(None))
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(create_refresh_token(str(uuid.uuid4())), mock_db)

    async def test_new_access_token_uses_current_role(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        user = _make_user(role=UserRole.SETTLER)
        mock_db.execute = AsyncMock(return_value=_result(user))

        access = await service.refresh(create_refresh_token(str(user.id)), mock_db)

        payload = decode_token(access, "access")
        assert payload["sub"] == str(user.id)
        assert payload["role"] == "SETTLER"
