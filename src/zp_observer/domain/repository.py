"""Repository Protocols for the observer — fakes in unit tests, SQL in production."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_observer.domain.models import StoredEvent


class EventReaderProtocol(Protocol):
    async def fetch_after(
        self, db: AsyncSession, after_id: int, limit: int
    ) -> list[StoredEvent]: ...


class CursorRepositoryProtocol(Protocol):
    async def get(self, db: AsyncSession, name: str) -> int: ...

    async def set(self, db: AsyncSession, name: str, last_event_id: int) -> None: ...
