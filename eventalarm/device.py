"""Device-side runner: local evaluator loops plus the sync pusher.

Runs the foreground and background loops as two independent jobs, each
with its own ``LocalEvaluatorLoop`` instance, and a third job that mirrors
the alarm state to the edge dispatcher.
"""
import logging

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from eventalarm.alarms.local_loop import LocalEvaluatorLoop, Notifier, TaggedNotificationCenter
from eventalarm.alarms.sync_payload import SyncPusher
from eventalarm.core.config import settings
from eventalarm.core.database import create_store_tables, make_engine
from eventalarm.schemas import DeliveryAddress, PushKeys
from eventalarm.store.event_store import EventStore

logger = logging.getLogger(__name__)


def run_loop_job(loop: LocalEvaluatorLoop):
    """One scheduled tick; failures are logged and retried on the next tick."""
    try:
        loop.tick()
    except Exception as e:
        logger.error(f"[{loop.context}] Alarm check failed: {e}")


def run_sync_job(pusher: SyncPusher, schedule_id: str):
    try:
        pusher.push(schedule_id)
    except Exception as e:
        logger.error(f"Alarm sync failed: {e}")


def build_jobs(
    scheduler,
    store: EventStore,
    schedule_id: str,
    notifier: Notifier,
    pusher: SyncPusher | None = None,
) -> list[LocalEvaluatorLoop]:
    """Register the local loops (and the sync job, if any) on a scheduler."""
    loops = [
        LocalEvaluatorLoop(store, notifier, schedule_id, context="foreground"),
        LocalEvaluatorLoop(store, notifier, schedule_id, context="background"),
    ]
    intervals = [settings.foreground_interval_seconds, settings.background_interval_seconds]
    for loop, seconds in zip(loops, intervals):
        scheduler.add_job(
            run_loop_job,
            trigger=IntervalTrigger(seconds=seconds),
            args=[loop],
            id=f"alarm_check_{loop.context}",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    if pusher is not None:
        scheduler.add_job(
            run_sync_job,
            trigger=IntervalTrigger(seconds=settings.sync_interval_seconds),
            args=[pusher, schedule_id],
            id="alarm_sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
    return loops


def run_device():
    """Run the device-side jobs until interrupted."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    engine = make_engine(settings.store_database_url)
    create_store_tables(engine)
    store = EventStore(engine)

    schedule_id = settings.schedule_id or store.current_schedule_id()
    if schedule_id is None:
        logger.error("No schedule in the event store, nothing to watch")
        return

    pusher = None
    if settings.push_endpoint:
        address = DeliveryAddress(
            endpoint=settings.push_endpoint,
            keys=PushKeys(p256dh=settings.push_p256dh, auth=settings.push_auth),
        )
        pusher = SyncPusher(
            store,
            address,
            settings.edge_url,
            refresh_seconds=settings.sync_refresh_minutes * 60,
        )
    else:
        logger.warning("No push subscription configured, edge sync disabled")

    scheduler = BlockingScheduler()
    build_jobs(scheduler, store, schedule_id, TaggedNotificationCenter(), pusher)
    logger.info(f"Watching alarms of schedule {schedule_id}")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Device runner stopped")
