"""Local evaluator loops (foreground and background).

Each loop instance is independent: the foreground loop (default every 10 s)
and the background loop (default every 30 s) share nothing but the event
store and the device notification primitive. Double fires between them are
prevented by two things: ``mark_notified`` is committed before the tick
returns, and the notification primitive coalesces notifications carrying
the same tag.
"""
import logging
import threading
from typing import Protocol

from eventalarm.alarms.notification import build_notification
from eventalarm.alarms.trigger import should_fire
from eventalarm.core.clock import Clock, system_clock
from eventalarm.store.event_store import EventStore

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Device notification primitive."""

    def show(self, payload: dict) -> bool: ...


class TaggedNotificationCenter:
    """In-process notification primitive with tag-based coalescing.

    Showing a payload whose tag is already displayed replaces it silently
    instead of alerting again, like the browser and OS notification APIs do.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._displayed: dict[str, dict] = {}
        self.alerts: list[dict] = []

    def show(self, payload: dict) -> bool:
        """Display a notification. Returns True if it produced a new alert."""
        tag = payload["tag"]
        with self._lock:
            coalesced = tag in self._displayed
            self._displayed[tag] = payload
            if coalesced:
                logger.debug(f"Coalesced notification with tag {tag}")
                return False
            self.alerts.append(payload)
        logger.info(f"Notification: {payload['title']} - {payload['body']}")
        return True

    def dismiss(self, tag: str) -> None:
        with self._lock:
            self._displayed.pop(tag, None)

    @property
    def displayed(self) -> list[dict]:
        with self._lock:
            return list(self._displayed.values())


class LocalEvaluatorLoop:
    """Periodic re-evaluation of every event of the loaded schedule.

    Attributes:
        store: Event store shared with the other local loop.
        notifier: Notification primitive used to surface reminders.
        schedule_id: The currently loaded schedule.
        clock: Returns epoch seconds; injected for tests.
        context: Label for logs ("foreground" or "background").
    """

    def __init__(
        self,
        store: EventStore,
        notifier: Notifier,
        schedule_id: str,
        clock: Clock = system_clock,
        context: str = "foreground",
    ):
        self.store = store
        self.notifier = notifier
        self.schedule_id = schedule_id
        self.clock = clock
        self.context = context

    def tick(self) -> list[int]:
        """
        Run one evaluation pass and return the ids of events that fired.

        For each firing event the notification is shown first, then the
        event is marked notified. A StorageFailure aborts the tick; the next
        tick retries while the event is still inside its window.
        """
        now = self.clock()
        fired = []
        for event in self.store.list_all_events(self.schedule_id):
            meta = self.store.get_meta(event.id)
            if not should_fire(now, event.start_time, meta.alarm_minutes, meta.last_notified_at):
                continue

            payload = build_notification(event.id, event.title, meta.alarm_minutes, event.icon)
            self.notifier.show(payload)
            self.store.mark_notified(event.id, now)
            fired.append(event.id)
            logger.info(f"[{self.context}] Reminder fired for event {event.id} ({event.title!r})")

        return fired
