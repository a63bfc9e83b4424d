"""Unit tests for TokenCustody over the in-memory token repository."""

import pytest

from src.zp_common.enums import LedgerEntryType
from src.zp_common.errors import (
    AccountNotFoundError,
    InsufficientAllowanceError,
    InsufficientFundsError,
    InvalidAmountError,
)
from src.zp_token.application.custody import TokenCustody
from src.zp_token.domain.constants import HOUSE_ACCOUNT_ID
from src.zp_token.domain.models import TransferReference
from tests.unit.fakes import FakeSession, FakeTokenRepository, seed_account, seed_allowance

REF = TransferReference("TEST", "ref-1")


@pytest.fixture
def custody() -> TokenCustody:
    return TokenCustody(FakeTokenRepository())


@pytest.fixture
def db() -> FakeSession:
    return FakeSession()


class TestBalanceOf:
    async def test_existing_account(self, custody: TokenCustody, db: FakeSession) -> None:
        await seed_account(db, "alice", 500)
        assert await custody.balance_of(db, "alice") == 500

    async def test_missing_account(self, custody: TokenCustody, db: FakeSession) -> None:
        with pytest.raises(AccountNotFoundError):
            await custody.balance_of(db, "ghost")


class TestTransferFrom:
    async def test_moves_funds_and_spends_allowance(
        self, custody: TokenCustody, db: FakeSession
    ) -> None:
        await seed_account(db, "alice", 1000)
        await seed_allowance(db, "alice", HOUSE_ACCOUNT_ID, 600)

        await custody.transfer_from(db, HOUSE_ACCOUNT_ID, "alice", HOUSE_ACCOUNT_ID, 400, REF)

        assert db.store.accounts["alice"] == 600
        assert db.store.accounts[HOUSE_ACCOUNT_ID] == 400
        assert db.store.allowances[("alice", HOUSE_ACCOUNT_ID)] == 200

    async def test_ledger_legs_carry_reference_and_types(
        self, custody: TokenCustody, db: FakeSession
    ) -> None:
        await seed_account(db, "alice", 1000)
        await seed_allowance(db, "alice", HOUSE_ACCOUNT_ID, 1000)
        ref = TransferReference(
            "GAME_BATCH", "0xabc", LedgerEntryType.BATCH_DEBIT, LedgerEntryType.BATCH_CREDIT
        )

        await custody.transfer_from(db, HOUSE_ACCOUNT_ID, "alice", HOUSE_ACCOUNT_ID, 300, ref)

        debit, credit = db.store.ledger
        assert (debit.user_id, debit.entry_type, debit.amount) == ("alice", "BATCH_DEBIT", -300)
        assert (credit.user_id, credit.entry_type, credit.amount) == (
            HOUSE_ACCOUNT_ID, "BATCH_CREDIT", 300,
        )
        assert debit.reference_id == credit.reference_id == "0xabc"

    async def test_short_balance_reports_funds_even_without_allowance(
        self, custody: TokenCustody, db: FakeSession
    ) -> None:
        await seed_account(db, "alice", 100)
        with pytest.raises(InsufficientFundsError):
            await custody.transfer_from(db, HOUSE_ACCOUNT_ID, "alice", HOUSE_ACCOUNT_ID, 400, REF)

    async def test_short_allowance(self, custody: TokenCustody, db: FakeSession) -> None:
        await seed_account(db, "alice", 1000)
        await seed_allowance(db, "alice", HOUSE_ACCOUNT_ID, 100)
        with pytest.raises(InsufficientAllowanceError):
            await custody.transfer_from(db, HOUSE_ACCOUNT_ID, "alice", HOUSE_ACCOUNT_ID, 400, REF)

    async def test_non_positive_amount(self, custody: TokenCustody, db: FakeSession) -> None:
        with pytest.raises(InvalidAmountError):
            await custody.transfer_from(db, HOUSE_ACCOUNT_ID, "alice", HOUSE_ACCOUNT_ID, 0, REF)


class TestTransfer:
    async def test_moves_funds(self, custody: TokenCustody, db: FakeSession) -> None:
        await seed_account(db, HOUSE_ACCOUNT_ID, 1000)
        await seed_account(db, "bob", 0)

        await custody.transfer(db, HOUSE_ACCOUNT_ID, "bob", 250, REF)

        assert db.store.accounts[HOUSE_ACCOUNT_ID] == 750
        assert db.store.accounts["bob"] == 250

    async def test_missing_recipient(self, custody: TokenCustody, db: FakeSession) -> None:
        await seed_account(db, HOUSE_ACCOUNT_ID, 1000)
        with pytest.raises(AccountNotFoundError):
            await custody.transfer(db, HOUSE_ACCOUNT_ID, "ghost", 250, REF)

    async def test_never_commits(self, custody: TokenCustody, db: FakeSession) -> None:
        await seed_account(db, HOUSE_ACCOUNT_ID, 1000)
        await seed_account(db, "bob", 0)
        commits = db.commits

        await custody.transfer(db, HOUSE_ACCOUNT_ID, "bob", 250, REF)

        assert db.commits == commits
