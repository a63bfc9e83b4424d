"""Domain models for zp_token — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.zp_common.enums import LedgerEntryType


@dataclass
class Account:
    user_id: str
    balance: int             # base units (10^18 per token)
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class LedgerEntry:
    id: int                          # BIGSERIAL
    user_id: str
    entry_type: str                  # LedgerEntryType value
    amount: int                      # base units, positive=income negative=expense
    balance_after: int               # balance snapshot after op
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class TransferReference:
    """What a transfer is for; written on both ledger legs."""

    reference_type: str
    reference_id: str
    debit_type: LedgerEntryType = LedgerEntryType.TRANSFER_OUT
    credit_type: LedgerEntryType = LedgerEntryType.TRANSFER_IN
    description: str | None = None
