"""Unified read model for imported and personal events."""

from sqlmodel import SQLModel


class CalendarEvent(SQLModel):
    """An event as seen by the evaluators, whatever its origin.

    Not a table: imported events live inside Period blobs and personal
    events in their own table. ``EventStore.list_all_events`` merges both
    into this shape.
    """
    id: int
    title: str
    start_time: int
    description: str = ""
    icon: str | None = None
    is_personal: bool = False
