"""Mutable per-event state layered over imported and personal events."""

from sqlmodel import Field, SQLModel


class EventMeta(SQLModel, table=True):
    """Completion flag, alarm lead time and notification state of an event.

    Keyed by event id only, globally rather than per schedule: event ids
    are unique across the whole local store. There is no foreign key, so a
    row may outlive the personal event it describes.

    Attributes:
        event_id: Id of the imported or personal event.
        is_completed: Whether the user ticked the event off.
        alarm_minutes: Minutes before ``start_time`` to remind. ``None`` means
            no alarm, ``0`` means "at start time".
        last_notified_at: Epoch seconds of the last local reminder, or
            ``None`` when the current alarm has not fired yet.
    """
    __tablename__ = "event_meta"

    event_id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    is_completed: bool = Field(default=False)
    alarm_minutes: int | None = None
    last_notified_at: int | None = None
