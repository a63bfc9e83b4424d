"""Run the event observer: python -m src.zp_observer"""

import asyncio
import logging

from src.zp_common.logging_config import configure_logging
from src.zp_game.application.service import GameLedgerService
from src.zp_observer.application.handlers import SettlerAutomation, register_default_handlers
from src.zp_observer.application.observer import EventObserver
from src.zp_observer.scheduler import build_scheduler

logger = logging.getLogger(__name__)


async def run() -> None:
    observer = EventObserver()
    register_default_handlers(observer, SettlerAutomation(GameLedgerService()))
    scheduler = build_scheduler(observer)
    scheduler.start()
    logger.info("Scheduler started: %d jobs registered", len(scheduler.get_jobs()))
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped cleanly")


def main() -> None:
    configure_logging()
    try:
        asyncio.run(run())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Received interrupt signal")


if __name__ == "__main__":
    main()
