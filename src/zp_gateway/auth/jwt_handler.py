"""JWT token creation and verification.

HS256 with a single shared JWT_SECRET. Access tokens carry the caller's role
("PLAYER" or "SETTLER") so routers can build a Caller without a DB lookup;
get_current_user still loads the user row to catch disabled accounts.

No revocation: a token is valid until expiry.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.zp_common.enums import UserRole
from src.zp_common.errors import InvalidCredentialsError, InvalidRefreshTokenError

_ALGORITHM = settings.JWT_ALGORITHM
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
_REFRESH_EXPIRE = timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)


def create_access_token(user_id: str, role: UserRole = UserRole.PLAYER) -> str:
    """Issue a short-lived access token (default: 30 min)."""
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "type": "access",
        "role": role.value,
        "iat": now,
        "exp": now + _ACCESS_EXPIRE,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def create_refresh_token(user_id: str) -> str:
    """Issue a long-lived refresh token (default: 7 days). Not rotated on use."""
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "type": "refresh",
        "iat": now,
        "exp": now + _REFRESH_EXPIRE,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Decode and validate a JWT token.

    Args:
        token: Raw JWT string.
        expected_type: "access" or "refresh"; a token of the other type is rejected.

    Raises:
        InvalidCredentialsError: Token invalid/expired and expected_type="access".
        InvalidRefreshTokenError: Token invalid/expired and expected_type="refresh".
    """
    payload: dict[str, str] = {}
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],
        )
    except JWTError:
        _raise_auth_error(expected_type)

    if payload.get("type") != expected_type:
        _raise_auth_error(expected_type)

    return payload


def _raise_auth_error(expected_type: str) -> None:
    if expected_type == "access":
        raise InvalidCredentialsError()
    raise InvalidRefreshTokenError()
