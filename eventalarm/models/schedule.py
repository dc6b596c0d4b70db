"""Schedule and Period models.

A Schedule is a named collection of imported calendar months (Periods) and
user-authored reminders (PersonalEvents). One schedule is "current" for a
session; it is created on first import and never deleted automatically.
"""

from datetime import UTC, datetime

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class Schedule(SQLModel, table=True):
    """A named collection of periods and personal events.

    Attributes:
        id: Opaque unique identifier, usually a creation timestamp string.
        name: Display name chosen at import time.
        updated_at: Refreshed on every import or save.
    """
    __tablename__ = "schedules"

    id: str = Field(primary_key=True)
    name: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)


class Period(SQLModel, table=True):
    """One imported time range (e.g. a month) of upstream calendar data.

    The ``data`` column holds the upstream month grid as-is
    (``weeks -> days -> events``). It is a cache, never edited in place:
    re-importing the same period overwrites it.

    Attributes:
        schedule_id: Owning schedule.
        period_name: Upstream period label, unique within a schedule.
        data: The opaque month blob.
    """
    __tablename__ = "periods"

    schedule_id: str = Field(
        foreign_key="schedules.id", primary_key=True, ondelete="CASCADE"
    )
    period_name: str = Field(primary_key=True)
    data: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
