"""Reminder notification payloads.

Both the local loops and the edge dispatcher build the same payload, so a
reminder looks identical however it reached the device. The ``tag`` is a
stable function of the event id: the platform notification primitive
replaces a displayed notification with the same tag instead of alerting
twice.
"""
from eventalarm.core.config import settings


def notification_tag(event_id: int) -> str:
    return f"alarm-{event_id}"


def reminder_body(title: str, alarm_minutes: int) -> str:
    """Body text of a reminder."""
    if alarm_minutes == 0:
        return f'Event "{title}" is starting now'
    return f'Upcoming: "{title}" in {alarm_minutes} minutes'


def build_notification(
    event_id: int,
    title: str,
    alarm_minutes: int,
    icon: str | None = None,
) -> dict:
    """Build the notification payload sent to the transport or shown locally."""
    return {
        "title": settings.notification_title,
        "body": reminder_body(title, alarm_minutes),
        "icon": icon or settings.default_icon,
        "tag": notification_tag(event_id),
        "data": {"eventId": event_id},
        "requireInteraction": True,
    }
