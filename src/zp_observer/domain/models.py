"""Observer-side view of ledger events.

StoredEvent mirrors a game_events row. LogPayload is what a handler receives:
the decoded arguments plus the log coordinates (block number = event row id).
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel


@dataclass
class StoredEvent:
    id: int
    tx_hash: str
    event_name: str
    signature: str
    contract_address: str
    chain_name: str
    player_id: str
    game_id: int | None
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass
class LogPayload:
    block_number: int
    transaction_hash: str
    event_name: str
    signature: str
    contract_address: str
    chain_name: str
    args: BaseModel


Handler = Callable[[LogPayload], Awaitable[Any]]


@dataclass(frozen=True)
class Subscription:
    signature: str
    contract_address: str
    chain_name: str
    handler: Handler

    def matches(self, event: StoredEvent) -> bool:
        return (
            event.signature == self.signature
            and event.contract_address.lower() == self.contract_address.lower()
            and event.chain_name == self.chain_name
        )
