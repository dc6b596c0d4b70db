"""Mirror local alarm state to the edge dispatcher.

The payload is rebuilt from the event store every time and always carries
the complete state; the edge replaces its copy on each sync. Nothing is
queued locally: a failed send is simply retried on the next call, because
the last-sent snapshot is only updated after a successful send.
"""
import logging
import time

import httpx

from eventalarm.schemas import AlarmSyncPayload, DeliveryAddress, SyncEvent
from eventalarm.store.event_store import EventStore

logger = logging.getLogger(__name__)


def build_sync_payload(
    store: EventStore, schedule_id: str, delivery_address: DeliveryAddress
) -> AlarmSyncPayload:
    """Assemble the current events and alarms of a schedule."""
    events = store.list_all_events(schedule_id)
    alarms = store.alarms()
    return AlarmSyncPayload(
        delivery_address=delivery_address,
        events=[
            SyncEvent(id=event.id, title=event.title, start_time=event.start_time, icon=event.icon)
            for event in events
        ],
        alarms={str(event.id): alarms[event.id] for event in events if event.id in alarms},
    )


class SyncPusher:
    """Send the sync payload to the edge dispatcher when it changes.

    Attributes:
        store: Local event store to read from.
        delivery_address: This device's push subscription.
        edge_url: Base URL of the edge dispatcher.
        refresh_seconds: Resend an unchanged payload after this long so the
            edge does not discard it as stale. ``None`` disables refreshing.
        client: httpx client; injected in tests.
    """

    def __init__(
        self,
        store: EventStore,
        delivery_address: DeliveryAddress,
        edge_url: str,
        refresh_seconds: int | None = None,
        client: httpx.Client | None = None,
    ):
        self.store = store
        self.delivery_address = delivery_address
        self.edge_url = edge_url.rstrip("/")
        self.refresh_seconds = refresh_seconds
        self.client = client or httpx.Client(timeout=10)
        self._last_sent: dict | None = None
        self._last_sent_at: float | None = None

    def push(self, schedule_id: str, force: bool = False) -> bool:
        """
        Send the current payload if it differs from the last one sent.

        Returns True if a payload was sent and acknowledged. Failures are
        logged, not raised.
        """
        payload = build_sync_payload(self.store, schedule_id, self.delivery_address)
        body = payload.model_dump(mode="json", by_alias=True)

        if not force and body == self._last_sent and not self._refresh_due():
            return False

        try:
            response = self.client.post(f"{self.edge_url}/sync", json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Alarm sync to {self.edge_url} failed: {e}")
            return False

        self._last_sent = body
        self._last_sent_at = time.monotonic()
        logger.info(
            f"Synced {len(body['events'])} events and {len(body['alarms'])} alarms to the edge"
        )
        return True

    def _refresh_due(self) -> bool:
        if self.refresh_seconds is None or self._last_sent_at is None:
            return False
        return time.monotonic() - self._last_sent_at >= self.refresh_seconds
