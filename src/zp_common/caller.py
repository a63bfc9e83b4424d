"""Caller identity passed into every mutating ledger/token operation.

Role checks are explicit comparisons against this object, never inferred
from which router the request came through.
"""

from dataclasses import dataclass

from config.settings import settings
from src.zp_common.enums import UserRole


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: UserRole = UserRole.PLAYER

    @property
    def is_settler(self) -> bool:
        return self.role == UserRole.SETTLER


def system_settler() -> Caller:
    """Identity used by the initializer and settler automation."""
    return Caller(user_id=settings.SETTLER_SYSTEM_ID, role=UserRole.SETTLER)
