"""Trigger evaluation shared by every evaluator.

The foreground loop, the background loop and the edge dispatcher all decide
"should this reminder fire now?" with the functions below. They are pure:
no clock, no store, no I/O. Callers pass ``now`` in epoch seconds.

A reminder fires from its trigger time (``start_time - alarm_minutes*60``)
until ``GRACE_SECONDS`` after the event starts, both ends inclusive. The
grace window keeps a late tick from skipping a reminder while stopping a
freshly opened app from replaying reminders for events long past.
"""

GRACE_SECONDS = 300


def trigger_time(start_time: int, alarm_minutes: int) -> int:
    """Instant (epoch seconds) at which the reminder is due."""
    return start_time - alarm_minutes * 60


def trigger_bucket(trigger_at: int) -> int:
    """Minute-granularity bucket of a trigger time, used in dedupe keys."""
    return trigger_at // 60


def in_trigger_window(now: int, start_time: int, alarm_minutes: int | None) -> bool:
    """Whether ``now`` lies inside the reminder window of an event."""
    if alarm_minutes is None:
        return False
    return trigger_time(start_time, alarm_minutes) <= now <= start_time + GRACE_SECONDS


def should_fire(
    now: int,
    start_time: int,
    alarm_minutes: int | None,
    last_notified_at: int | None,
) -> bool:
    """Decide whether a local evaluator should fire a reminder.

    Fires only inside the trigger window and only if the event has not been
    notified for the current alarm. Re-arming an alarm clears
    ``last_notified_at`` (see ``EventStore.set_alarm``), which makes this
    return True again for the same window.
    """
    if last_notified_at is not None:
        return False
    return in_trigger_window(now, start_time, alarm_minutes)
