"""Background job scheduler for the edge dispatcher tick."""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlmodel import Session

from eventalarm.core.config import settings
from eventalarm.core.database import engine
from eventalarm.edge.dispatcher import EdgeDispatcher
from eventalarm.edge.transport import get_transport

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def edge_tick_job():
    """Scheduled edge tick. Errors are logged so the next tick still runs."""
    try:
        with Session(engine) as session:
            EdgeDispatcher(session, get_transport()).tick()
    except Exception as e:
        logger.error(f"Edge tick failed: {e}")


def start_scheduler():
    """Start the background scheduler."""
    scheduler.add_job(
        edge_tick_job,
        trigger=IntervalTrigger(seconds=settings.edge_tick_seconds),
        id="edge_tick",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started, ticking every {settings.edge_tick_seconds} seconds")


def shutdown_scheduler():
    """Graceful shutdown."""
    scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")
