"""Observer job scheduler using APScheduler."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config.settings import settings
from src.zp_common.database import session_scope
from src.zp_observer.application.handlers import SessionFactory
from src.zp_observer.application.observer import EventObserver

logger = logging.getLogger(__name__)

HEARTBEAT_MESSAGE = "Workflow is active and monitoring GamePlayed events"


def heartbeat_job() -> str:
    logger.info("Periodic workflow check triggered")
    logger.info(HEARTBEAT_MESSAGE)
    return HEARTBEAT_MESSAGE


async def poll_events_job(
    observer: EventObserver, session_factory: SessionFactory = session_scope
) -> int:
    async with session_factory() as db:
        return await observer.poll(db)


def build_scheduler(
    observer: EventObserver,
    session_factory: SessionFactory = session_scope,
    poll_seconds: int | None = None,
    heartbeat_cron: str | None = None,
) -> AsyncIOScheduler:
    """Register the poll and heartbeat jobs; the caller starts the scheduler."""
    poll_seconds = poll_seconds or settings.OBSERVER_POLL_SECONDS
    heartbeat_cron = heartbeat_cron or settings.OBSERVER_HEARTBEAT_CRON
    scheduler = AsyncIOScheduler(timezone="UTC")

    scheduler.add_job(
        poll_events_job,
        IntervalTrigger(seconds=poll_seconds),
        args=[observer, session_factory],
        id="observer-poll",
        name="Observer: Event Poll",
        max_instances=1,
        coalesce=True,
    )
    logger.info("Registered job: Observer Event Poll (every %d s)", poll_seconds)

    scheduler.add_job(
        heartbeat_job,
        CronTrigger.from_crontab(heartbeat_cron, timezone="UTC"),
        id="observer-heartbeat",
        name="Observer: Heartbeat",
    )
    logger.info("Registered job: Observer Heartbeat (%s)", heartbeat_cron)
    return scheduler
