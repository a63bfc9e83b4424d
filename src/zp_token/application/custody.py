"""TokenCustody — the balance capability the game ledger debits and credits.

Runs inside the caller's transaction and never commits: a failed leg raises,
and the caller's rollback undoes any leg that already went through.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_common.errors import AccountNotFoundError, InvalidAmountError
from src.zp_token.domain.models import TransferReference
from src.zp_token.domain.repository import TokenRepositoryProtocol
from src.zp_token.infrastructure.persistence import TokenRepository

logger = logging.getLogger(__name__)


class TokenCustody:
    def __init__(self, repo: TokenRepositoryProtocol | None = None) -> None:
        self._repo: TokenRepositoryProtocol = repo or TokenRepository()

    async def balance_of(self, db: AsyncSession, account_id: str) -> int:
        account = await self._repo.get_account(db, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account.balance

    async def transfer_from(
        self,
        db: AsyncSession,
        spender_id: str,
        payer_id: str,
        recipient_id: str,
        amount: int,
        reference: TransferReference,
    ) -> None:
        """Move `amount` from payer to recipient on the spender's allowance.

        Balance is checked before allowance so a short balance always reports
        InsufficientFundsError.
        """
        _check_amount(amount)
        await self._repo.debit(
            db, payer_id, amount, reference.debit_type,
            reference.reference_type, reference.reference_id, reference.description,
        )
        await self._repo.spend_allowance(db, payer_id, spender_id, amount)
        await self._repo.credit(
            db, recipient_id, amount, reference.credit_type,
            reference.reference_type, reference.reference_id, reference.description,
        )
        logger.info(
            "transfer_from %s -> %s amount=%d ref=%s:%s",
            payer_id, recipient_id, amount, reference.reference_type, reference.reference_id,
        )

    async def transfer(
        self,
        db: AsyncSession,
        sender_id: str,
        recipient_id: str,
        amount: int,
        reference: TransferReference,
    ) -> None:
        _check_amount(amount)
        await self._repo.debit(
            db, sender_id, amount, reference.debit_type,
            reference.reference_type, reference.reference_id, reference.description,
        )
        await self._repo.credit(
            db, recipient_id, amount, reference.credit_type,
            reference.reference_type, reference.reference_id, reference.description,
        )
        logger.info(
            "transfer %s -> %s amount=%d ref=%s:%s",
            sender_id, recipient_id, amount, reference.reference_type, reference.reference_id,
        )


def _check_amount(amount: int) -> None:
    if amount <= 0:
        raise InvalidAmountError(amount)
