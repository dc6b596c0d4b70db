"""Extract events embedded in imported Period blobs."""
import logging
from collections.abc import Iterator

from eventalarm.models import CalendarEvent

logger = logging.getLogger(__name__)


def iter_period_events(blob: dict) -> Iterator[CalendarEvent]:
    """
    Yield the events embedded in an upstream month grid.

    Expected shape:
        {"weeks": [{"days": [{"hasevents": true, "events": [...]}]}]}

    Each upstream event provides ``id``, ``activityname`` (falling back to
    ``name``), ``timestart`` and optionally ``description`` and
    ``icon.iconurl``. Entries without an id or start time are skipped.
    """
    for week in blob.get("weeks") or []:
        for day in week.get("days") or []:
            if not day.get("hasevents", True):
                continue
            for raw in day.get("events") or []:
                event = _to_calendar_event(raw)
                if event is not None:
                    yield event


def _to_calendar_event(raw: dict) -> CalendarEvent | None:
    event_id = raw.get("id")
    start_time = raw.get("timestart")
    if event_id is None or start_time is None:
        logger.debug(f"Skipping period entry without id/timestart: {raw!r:.80}")
        return None

    try:
        event_id = int(event_id)
        start_time = int(start_time)
    except (TypeError, ValueError):
        logger.debug(f"Skipping period entry with non-numeric id/timestart: {raw!r:.80}")
        return None

    icon = raw.get("icon")
    if isinstance(icon, dict):
        icon = icon.get("iconurl") or None

    return CalendarEvent(
        id=event_id,
        title=raw.get("activityname") or raw.get("name") or "Untitled",
        start_time=start_time,
        description=raw.get("description") or "",
        icon=icon,
        is_personal=bool(raw.get("isPersonal", False)),
    )
