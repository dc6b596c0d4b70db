"""Edge dispatcher: deliver reminders when the device cannot.

The dispatcher keeps the last payload synced by each device and runs the
trigger evaluator against it on an external schedule (every minute) and
right after each sync. It has no access to the device's ``last_notified_at``,
so the dedupe ledger decides what was already sent.

Send-then-mark ordering: the ledger key is written only after the transport
accepted the notification. A crash between the two yields a possible
duplicate reminder rather than a missed one; a missed reminder is the worse
outcome for this use case. Within one device the notification tag still
collapses such a duplicate into one displayed notification.
"""
import logging

from pydantic import ValidationError
from sqlmodel import Session, select

from eventalarm.alarms.notification import build_notification
from eventalarm.alarms.trigger import GRACE_SECONDS, in_trigger_window, trigger_time
from eventalarm.core.clock import Clock, system_clock
from eventalarm.core.config import settings
from eventalarm.core.errors import MalformedSync, TransportFailure
from eventalarm.edge.ledger import DedupeLedger, dedupe_key
from eventalarm.edge.transport import PushTransport
from eventalarm.models import AlarmSyncState
from eventalarm.schemas import AlarmSyncPayload, DeliveryAddress

logger = logging.getLogger(__name__)


class EdgeDispatcher:
    """Evaluate synced alarm state and send push reminders.

    Attributes:
        session: Edge database session (sync state and ledger).
        transport: Push transport used to reach devices.
        ledger: Dedupe ledger; defaults to one on the same session.
        clock: Returns epoch seconds; injected for tests.
        dedupe_ttl_seconds: Lifetime of a ledger key.
        retention_seconds: State older than this is discarded on tick.
    """

    def __init__(
        self,
        session: Session,
        transport: PushTransport,
        ledger: DedupeLedger | None = None,
        clock: Clock = system_clock,
        dedupe_ttl_seconds: int | None = None,
        retention_seconds: int | None = None,
    ):
        self.session = session
        self.transport = transport
        self.ledger = ledger or DedupeLedger(session)
        self.clock = clock
        self.dedupe_ttl_seconds = (
            settings.dedupe_ttl_seconds if dedupe_ttl_seconds is None else dedupe_ttl_seconds
        )
        self.retention_seconds = (
            settings.state_retention_days * 86400 if retention_seconds is None else retention_seconds
        )

    def sync(self, payload: AlarmSyncPayload) -> dict:
        """
        Store a device's payload, replacing its previous one, then evaluate it.

        Evaluating immediately means a sync that lands inside a trigger
        window does not wait for the next scheduled tick.
        """
        now = self.clock()
        endpoint = payload.delivery_address.endpoint

        state = self.session.get(AlarmSyncState, endpoint)
        if state is None:
            state = AlarmSyncState(endpoint=endpoint, payload={}, updated_at=now)
        state.payload = payload.model_dump(mode="json", by_alias=True)
        state.updated_at = now
        self.session.add(state)
        self.session.commit()
        logger.info(
            f"Stored alarm state for {_short(endpoint)}: "
            f"{len(payload.events)} events, {len(payload.alarms)} alarms"
        )

        self.evaluate(payload, now)
        return {"ok": True}

    def tick(self) -> int:
        """
        Evaluate every stored device state. Returns the number of sends.

        State older than the retention ceiling is treated as abandoned: it
        is deleted and skipped, which is not an error.
        """
        now = self.clock()
        self.ledger.purge_expired(now)

        sent = 0
        states = self.session.exec(select(AlarmSyncState)).all()
        for state in states:
            if now - state.updated_at > self.retention_seconds:
                logger.info(f"Alarm state for {_short(state.endpoint)} is stale, discarding")
                self.session.delete(state)
                self.session.commit()
                continue

            try:
                payload = _load_payload(state)
            except MalformedSync as e:
                logger.error(f"Discarding unreadable alarm state for {_short(state.endpoint)}: {e}")
                self.session.delete(state)
                self.session.commit()
                continue

            sent += self.evaluate(payload, now)

        if sent:
            logger.info(f"Tick sent {sent} push notification(s)")
        else:
            logger.debug("Tick found no reminders to send")
        return sent

    def evaluate(self, payload: AlarmSyncPayload, now: int) -> int:
        """Send every due, not yet dispatched reminder of one payload."""
        sent = 0
        for event in payload.events:
            alarm_minutes = payload.alarm_for(event.id)
            if not in_trigger_window(now, event.start_time, alarm_minutes):
                continue

            key = dedupe_key(event.id, trigger_time(event.start_time, alarm_minutes))
            if self.ledger.exists(key, now):
                continue

            notification = build_notification(event.id, event.title, alarm_minutes, event.icon)
            try:
                self.transport.send(payload.delivery_address, notification)
            except TransportFailure as e:
                # Not retried in this pass; the next tick retries while in window
                logger.error(f"Push for event {event.id} failed: {e}")
                continue

            # The key must outlive the rest of the window, however long the lead time
            ttl = max(self.dedupe_ttl_seconds, event.start_time + GRACE_SECONDS - now + 60)
            self.ledger.put(key, ttl, now)
            sent += 1
            logger.info(f"Sent push reminder for event {event.id} ({event.title!r})")
        return sent

    def send_test(
        self,
        delivery_address: DeliveryAddress,
        title: str | None = None,
        body: str | None = None,
    ) -> None:
        """Send one notification right away. Raises TransportFailure."""
        self.transport.send(
            delivery_address,
            {
                "title": title or settings.notification_title,
                "body": body or "Test notification from the edge dispatcher",
                "icon": settings.default_icon,
                "tag": "alarm-test",
            },
        )


def _load_payload(state: AlarmSyncState) -> AlarmSyncPayload:
    try:
        return AlarmSyncPayload.model_validate(state.payload)
    except ValidationError as e:
        raise MalformedSync(str(e)) from e


def _short(endpoint: str) -> str:
    """Shorten a push endpoint for logs."""
    return endpoint if len(endpoint) <= 48 else f"{endpoint[:45]}..."
