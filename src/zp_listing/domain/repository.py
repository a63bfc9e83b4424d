"""Repository Protocol for stored listings."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_listing.domain.models import ListingRecord


class ListingRepositoryProtocol(Protocol):
    async def upsert(self, db: AsyncSession, record: ListingRecord) -> None: ...

    async def get(self, db: AsyncSession, listing_ref: str) -> ListingRecord | None: ...
