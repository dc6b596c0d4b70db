"""Personal (user-authored) reminder events."""

from sqlmodel import Field, SQLModel


class PersonalEvent(SQLModel, table=True):
    """A reminder created by the user rather than imported.

    Personal events are stored as a full set per schedule: saving replaces
    every personal event of the schedule (see
    ``EventStore.replace_personal_events``).

    Attributes:
        id: Unique integer, derived from the creation time in milliseconds.
        schedule_id: The schedule this event belongs to.
        title: Short title shown in the reminder.
        description: Free text.
        start_time: Event start as epoch seconds.
        icon: Optional icon URL used for the notification.
        is_personal: Always True; distinguishes these from imported events.
    """
    __tablename__ = "personal_events"

    id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    schedule_id: str = Field(foreign_key="schedules.id", index=True, ondelete="CASCADE")
    title: str
    description: str = ""
    start_time: int = Field(index=True)
    icon: str | None = None
    is_personal: bool = Field(default=True)
