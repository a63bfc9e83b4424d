"""TokenRepository — concrete implementation of TokenRepositoryProtocol.

All balance-mutating operations use atomic PostgreSQL UPDATE ... RETURNING.
A result of 0 rows means a business constraint was violated (insufficient
funds / allowance) or the account does not exist; the follow-up SELECT tells
which.

Amount columns are NUMERIC(78,0) (uint256 range); parameters are CAST so
asyncpg never has to guess an int64.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_common.enums import LedgerEntryType
from src.zp_common.errors import (
    AccountNotFoundError,
    InsufficientAllowanceError,
    InsufficientFundsError,
    InternalError,
)
from src.zp_common.units import from_db_numeric
from src.zp_token.domain.models import Account, LedgerEntry

# ---------------------------------------------------------------------------
# SQL: accounts
# ---------------------------------------------------------------------------

_GET_ACCOUNT_SQL = text("""
    SELECT user_id, balance, version, created_at, updated_at
    FROM accounts
    WHERE user_id = :user_id
""")

_CREDIT_SQL = text("""
    UPDATE accounts
    SET balance = balance + CAST(:amount AS NUMERIC),
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING user_id, balance, version, created_at, updated_at
""")

_DEBIT_SQL = text("""
    UPDATE accounts
    SET balance = balance - CAST(:amount AS NUMERIC),
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND balance >= CAST(:amount AS NUMERIC)
    RETURNING user_id, balance, version, created_at, updated_at
""")

_INSERT_LEDGER_SQL = text("""
    INSERT INTO ledger_entries
        (user_id, entry_type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :entry_type, CAST(:amount AS NUMERIC), CAST(:balance_after AS NUMERIC),
         :reference_type, :reference_id, :description)
    RETURNING id, user_id, entry_type, amount, balance_after,
              reference_type, reference_id, description, created_at
""")

_LIST_LEDGER_SQL = text("""
    SELECT id, user_id, entry_type, amount, balance_after,
           reference_type, reference_id, description, created_at
    FROM ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = CAST(:entry_type AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL: allowances
# ---------------------------------------------------------------------------

_GET_ALLOWANCE_SQL = text("""
    SELECT amount FROM allowances
    WHERE owner_id = :owner_id AND spender_id = :spender_id
""")

_SET_ALLOWANCE_SQL = text("""
    INSERT INTO allowances (owner_id, spender_id, amount)
    VALUES (:owner_id, :spender_id, CAST(:amount AS NUMERIC))
    ON CONFLICT (owner_id, spender_id) DO UPDATE
        SET amount = EXCLUDED.amount,
            updated_at = NOW()
    RETURNING amount
""")

_SPEND_ALLOWANCE_SQL = text("""
    UPDATE allowances
    SET amount = amount - CAST(:amount AS NUMERIC),
        updated_at = NOW()
    WHERE owner_id = :owner_id
      AND spender_id = :spender_id
      AND amount >= CAST(:amount AS NUMERIC)
    RETURNING amount
""")


def _row_to_account(row: object) -> Account:
    return Account(
        user_id=row.user_id,  # type: ignore[attr-defined]
        balance=from_db_numeric(row.balance),  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_ledger(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=from_db_numeric(row.amount),  # type: ignore[attr-defined]
        balance_after=from_db_numeric(row.balance_after),  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class TokenRepository:
    """Concrete repository — all operations atomic at the SQL level."""

    async def get_account(self, db: AsyncSession, user_id: str) -> Account | None:
        result = await db.execute(_GET_ACCOUNT_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        entry_type: LedgerEntryType,
        ref_type: str | None,
        ref_id: str | None,
        description: str | None,
    ) -> tuple[Account, LedgerEntry]:
        result = await db.execute(_CREDIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise AccountNotFoundError(user_id)
        account = _row_to_account(row)
        entry = await self._write_ledger(
            db, account, entry_type, amount, ref_type, ref_id, description
        )
        return account, entry

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        entry_type: LedgerEntryType,
        ref_type: str | None,
        ref_id: str | None,
        description: str | None,
    ) -> tuple[Account, LedgerEntry]:
        result = await db.execute(_DEBIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            current = await self.get_account(db, user_id)
            if current is None:
                raise AccountNotFoundError(user_id)
            raise InsufficientFundsError(amount, current.balance)
        account = _row_to_account(row)
        entry = await self._write_ledger(
            db, account, entry_type, -amount, ref_type, ref_id, description
        )
        return account, entry

    async def get_allowance(self, db: AsyncSession, owner_id: str, spender_id: str) -> int:
        result = await db.execute(
            _GET_ALLOWANCE_SQL, {"owner_id": owner_id, "spender_id": spender_id}
        )
        row = result.fetchone()
        return from_db_numeric(row.amount) if row else 0

    async def set_allowance(
        self, db: AsyncSession, owner_id: str, spender_id: str, amount: int
    ) -> int:
        result = await db.execute(
            _SET_ALLOWANCE_SQL,
            {"owner_id": owner_id, "spender_id": spender_id, "amount": amount},
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Allowance upsert returned no rows — this should never happen")
        return from_db_numeric(row.amount)

    async def spend_allowance(
        self, db: AsyncSession, owner_id: str, spender_id: str, amount: int
    ) -> int:
        result = await db.execute(
            _SPEND_ALLOWANCE_SQL,
            {"owner_id": owner_id, "spender_id": spender_id, "amount": amount},
        )
        row = result.fetchone()
        if row is None:
            allowed = await self.get_allowance(db, owner_id, spender_id)
            raise InsufficientAllowanceError(amount, allowed)
        return from_db_numeric(row.amount)

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_LEDGER_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "entry_type": entry_type,
                "limit": limit,
            },
        )
        return [_row_to_ledger(row) for row in result.fetchall()]

    async def _write_ledger(
        self,
        db: AsyncSession,
        account: Account,
        entry_type: LedgerEntryType,
        signed_amount: int,
        ref_type: str | None,
        ref_id: str | None,
        description: str | None,
    ) -> LedgerEntry:
        ledger_result = await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "user_id": account.user_id,
                "entry_type": entry_type.value,
                "amount": signed_amount,
                "balance_after": account.balance,
                "reference_type": ref_type,
                "reference_id": ref_id,
                "description": description,
            },
        )
        ledger_row = ledger_result.fetchone()
        if ledger_row is None:
            raise InternalError("Ledger insert returned no rows — this should never happen")
        return _row_to_ledger(ledger_row)
