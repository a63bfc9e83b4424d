"""ListingInitializer — fills freshly bought game slots with listings.

Runs off the request path (from the event observer). Each slot is handled on
its own: a failed fetch or a rejected initialize is logged and counted, and
the remaining slots still get processed.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_common.caller import Caller, system_settler
from src.zp_common.errors import AppError
from src.zp_game.application.service import GameLedgerService
from src.zp_listing.application.service import ListingService
from src.zp_listing.domain.models import InitializationReport, ListingRecord
from src.zp_listing.domain.repository import ListingRepositoryProtocol
from src.zp_listing.infrastructure.persistence import ListingRepository

logger = logging.getLogger(__name__)


class ListingInitializer:
    def __init__(
        self,
        ledger: GameLedgerService,
        listings: ListingService | None = None,
        repo: ListingRepositoryProtocol | None = None,
        settler: Caller | None = None,
    ) -> None:
        self._ledger = ledger
        self._listings = listings or ListingService()
        self._repo: ListingRepositoryProtocol = repo or ListingRepository()
        self._settler = settler or system_settler()

    async def initialize_batch(
        self, db: AsyncSession, start_id: int, end_id: int
    ) -> InitializationReport:
        report = InitializationReport()
        for game_id in range(start_id, end_id + 1):
            if await self.initialize_game(db, game_id):
                report.initialized.append(game_id)
            else:
                report.failed.append(game_id)
        logger.info(
            "Batch %d..%d: initialized=%d failed=%d",
            start_id, end_id, len(report.initialized), len(report.failed),
        )
        return report

    async def initialize_game(self, db: AsyncSession, game_id: int) -> bool:
        try:
            chosen = await self._listings.fetch_random_listing()
        except AppError as e:
            logger.warning("Game %d: listing fetch failed: %s", game_id, e.message)
            return False

        try:
            # The record rides on the ledger's commit; a rejected initialize rolls it back
            await self._repo.upsert(db, ListingRecord.from_random_listing(chosen))
            await self._ledger.initialize(
                db, self._settler, game_id, chosen.listing_ref, chosen.displayed_price
            )
        except AppError as e:
            await db.rollback()
            logger.warning("Game %d: initialize rejected: [%d] %s", game_id, e.code, e.message)
            return False
        return True
