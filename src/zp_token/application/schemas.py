"""Pydantic schemas and cursor utilities for zp_token API."""

import base64
import json

from pydantic import BaseModel, Field

from src.zp_common.units import wei_to_display
from src.zp_token.domain.constants import HOUSE_ACCOUNT_ID
from src.zp_token.domain.models import LedgerEntry

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except Exception:
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ApproveRequest(BaseModel):
    spender_id: str = Field(HOUSE_ACCOUNT_ID, min_length=1, max_length=64)
    amount: int = Field(..., ge=0, description="Allowance in base units (10^18 per token)")


class MintRequest(BaseModel):
    account_id: str = Field(..., min_length=1, max_length=64)
    amount: int = Field(..., gt=0, description="Amount in base units (10^18 per token)")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    account_id: str
    balance: str            # decimal string, uint256 does not fit a JSON number safely
    balance_display: str

    @classmethod
    def from_amount(cls, account_id: str, balance: int) -> "BalanceResponse":
        return cls(
            account_id=account_id,
            balance=str(balance),
            balance_display=wei_to_display(balance),
        )


class AllowanceResponse(BaseModel):
    owner_id: str
    spender_id: str
    amount: str
    amount_display: str

    @classmethod
    def from_amount(cls, owner_id: str, spender_id: str, amount: int) -> "AllowanceResponse":
        return cls(
            owner_id=owner_id,
            spender_id=spender_id,
            amount=str(amount),
            amount_display=wei_to_display(amount),
        )


class MintResponse(BaseModel):
    account_id: str
    minted: str
    minted_display: str
    balance: str
    balance_display: str
    ledger_entry_id: int


class LedgerEntryItem(BaseModel):
    id: int
    entry_type: str
    amount: str
    amount_display: str
    balance_after: str
    balance_after_display: str
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, e: LedgerEntry) -> "LedgerEntryItem":
        return cls(
            id=e.id,
            entry_type=e.entry_type,
            amount=str(e.amount),
            amount_display=wei_to_display(e.amount),
            balance_after=str(e.balance_after),
            balance_after_display=wei_to_display(e.balance_after),
            reference_type=e.reference_type,
            reference_id=e.reference_id,
            description=e.description,
            created_at=e.created_at.isoformat() if e.created_at else "",
        )


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool
