"""EventObserver — polls the ledger event log and dispatches to subscribers.

A subscription filters on (signature, contract_address, chain_name), the same
triple an EVM log trigger filters on. Observation never blocks the ledger:
a handler that raises is logged with its event coordinates, and the cursor
still moves past the event.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.zp_observer.domain.decoding import decode_event
from src.zp_observer.domain.models import Handler, LogPayload, StoredEvent, Subscription
from src.zp_observer.domain.repository import CursorRepositoryProtocol, EventReaderProtocol
from src.zp_observer.infrastructure.persistence import CursorRepository, EventReader

logger = logging.getLogger(__name__)


class EventObserver:
    def __init__(
        self,
        name: str = "default",
        reader: EventReaderProtocol | None = None,
        cursors: CursorRepositoryProtocol | None = None,
        batch_limit: int | None = None,
    ) -> None:
        self.name = name
        self._reader: EventReaderProtocol = reader or EventReader()
        self._cursors: CursorRepositoryProtocol = cursors or CursorRepository()
        self._batch_limit = batch_limit or settings.OBSERVER_BATCH_LIMIT
        self._subscriptions: list[Subscription] = []

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions)

    def subscribe(
        self,
        signature: str,
        handler: Handler,
        contract_address: str | None = None,
        chain_name: str | None = None,
    ) -> Subscription:
        sub = Subscription(
            signature=signature,
            contract_address=contract_address or settings.CONTRACT_ADDRESS,
            chain_name=chain_name or settings.CHAIN_NAME,
            handler=handler,
        )
        self._subscriptions.append(sub)
        logger.info(
            "Observer %s subscribed %s on %s@%s",
            self.name, signature, sub.contract_address, sub.chain_name,
        )
        return sub

    async def poll(self, db: AsyncSession) -> int:
        """Dispatch one page of new events. Returns the number of events read."""
        after_id = await self._cursors.get(db, self.name)
        events = await self._reader.fetch_after(db, after_id, self._batch_limit)
        if not events:
            return 0

        for event in events:
            for sub in self._subscriptions:
                if sub.matches(event):
                    await self._dispatch(sub, event)

        await self._cursors.set(db, self.name, events[-1].id)
        await db.commit()
        logger.debug("Observer %s advanced cursor %d -> %d", self.name, after_id, events[-1].id)
        return len(events)

    async def _dispatch(self, sub: Subscription, event: StoredEvent) -> None:
        try:
            payload = LogPayload(
                block_number=event.id,
                transaction_hash=event.tx_hash,
                event_name=event.event_name,
                signature=event.signature,
                contract_address=event.contract_address,
                chain_name=event.chain_name,
                args=decode_event(event.signature, event.payload),
            )
            await sub.handler(payload)
        except Exception:
            logger.exception(
                "Handler %s failed for %s block=%d tx=%s",
                getattr(sub.handler, "__name__", repr(sub.handler)),
                event.event_name, event.id, event.tx_hash,
            )
