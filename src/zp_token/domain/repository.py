"""Repository Protocol — dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_common.enums import LedgerEntryType
from src.zp_token.domain.models import Account, LedgerEntry


class TokenRepositoryProtocol(Protocol):
    async def get_account(self, db: AsyncSession, user_id: str) -> Account | None: ...

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        entry_type: LedgerEntryType,
        ref_type: str | None,
        ref_id: str | None,
        description: str | None,
    ) -> tuple[Account, LedgerEntry]: ...

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        entry_type: LedgerEntryType,
        ref_type: str | None,
        ref_id: str | None,
        description: str | None,
    ) -> tuple[Account, LedgerEntry]: ...

    async def get_allowance(self, db: AsyncSession, owner_id: str, spender_id: str) -> int: ...

    async def set_allowance(
        self, db: AsyncSession, owner_id: str, spender_id: str, amount: int
    ) -> int: ...

    async def spend_allowance(
        self, db: AsyncSession, owner_id: str, spender_id: str, amount: int
    ) -> int: ...

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]: ...
