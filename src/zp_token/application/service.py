"""TokenApplicationService — thin composition layer for the token API.

Mutations (approve, mint) commit their own transaction and roll back on any
error. Reads run without an explicit transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_common.caller import Caller
from src.zp_common.enums import LedgerEntryType
from src.zp_common.errors import AccountNotFoundError, UnauthorizedError
from src.zp_common.units import wei_to_display
from src.zp_token.application.schemas import (
    AllowanceResponse,
    BalanceResponse,
    LedgerEntryItem,
    LedgerResponse,
    MintResponse,
    cursor_decode,
    cursor_encode,
)
from src.zp_token.domain.repository import TokenRepositoryProtocol
from src.zp_token.infrastructure.persistence import TokenRepository

logger = logging.getLogger(__name__)


class TokenApplicationService:
    def __init__(self, repo: TokenRepositoryProtocol | None = None) -> None:
        self._repo: TokenRepositoryProtocol = repo or TokenRepository()

    async def get_balance(self, db: AsyncSession, account_id: str) -> BalanceResponse:
        account = await self._repo.get_account(db, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return BalanceResponse.from_amount(account_id, account.balance)

    async def get_allowance(
        self, db: AsyncSession, owner_id: str, spender_id: str
    ) -> AllowanceResponse:
        amount = await self._repo.get_allowance(db, owner_id, spender_id)
        return AllowanceResponse.from_amount(owner_id, spender_id, amount)

    async def approve(
        self, db: AsyncSession, caller: Caller, spender_id: str, amount: int
    ) -> AllowanceResponse:
        """ERC-20 style approve: sets (not adds to) the allowance."""
        try:
            allowed = await self._repo.set_allowance(db, caller.user_id, spender_id, amount)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return AllowanceResponse.from_amount(caller.user_id, spender_id, allowed)

    async def mint(
        self, db: AsyncSession, caller: Caller, account_id: str, amount: int
    ) -> MintResponse:
        if not caller.is_settler:
            raise UnauthorizedError("only the settler may mint")
        try:
            account, entry = await self._repo.credit(
                db, account_id, amount, LedgerEntryType.MINT,
                "MINT", caller.user_id, "Faucet mint",
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Minted %d to %s by %s", amount, account_id, caller.user_id)
        return MintResponse(
            account_id=account_id,
            minted=str(amount),
            minted_display=wei_to_display(amount),
            balance=str(account.balance),
            balance_display=wei_to_display(account.balance),
            ledger_entry_id=entry.id,
        )

    async def list_ledger(
        self,
        db: AsyncSession,
        account_id: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_ledger_entries(
            db, account_id, cursor_id, limit + 1, entry_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(
            items=[LedgerEntryItem.from_domain(e) for e in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
