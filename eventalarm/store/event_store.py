"""Durable local store for schedules, events and per-event alarm state.

Every mutation is committed (and, with ``synchronous=FULL``, fsynced) before
the method returns. If a commit fails the transaction is rolled back and
``StorageFailure`` is raised: the reminder guarantee depends on
``alarm_minutes`` and ``last_notified_at`` surviving restarts, so the store
never reports success for a write that only exists in memory.

EventMeta writes are single-statement upserts (``INSERT ... ON CONFLICT DO
UPDATE``). The foreground and background loops may write the same row from
different connections, and each write is atomic for that row.
"""
import logging
import time
from collections.abc import Iterable
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import delete, not_
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from eventalarm.core.errors import StorageFailure
from eventalarm.models import CalendarEvent, EventMeta, Period, PersonalEvent, Schedule
from eventalarm.store.periods import iter_period_events

logger = logging.getLogger(__name__)


class EventStore:
    """CRUD over Schedule, Period, PersonalEvent and EventMeta."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def _session(self):
        """Session that commits on exit and maps database errors to StorageFailure."""
        session = Session(self.engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Event store operation failed: {e}")
            raise StorageFailure(str(e)) from e
        finally:
            session.close()

    # Schedules and periods

    def upsert_schedule(self, schedule_id: str, name: str) -> None:
        """Create or rename a schedule and bump its ``updated_at``."""
        with self._session() as session:
            schedule = session.get(Schedule, schedule_id)
            if schedule is None:
                schedule = Schedule(id=schedule_id, name=name)
            else:
                schedule.name = name
                schedule.updated_at = datetime.now(UTC)
            session.add(schedule)

    def upsert_period(self, schedule_id: str, period_name: str, blob: dict) -> None:
        """Store an imported period, overwriting any period with the same name."""
        with self._session() as session:
            period = session.get(Period, (schedule_id, period_name))
            if period is None:
                period = Period(schedule_id=schedule_id, period_name=period_name, data=blob)
            else:
                period.data = blob
            session.add(period)

    def list_schedules(self) -> list[dict]:
        """Schedules, most recently updated first, with their period names."""
        with self._session() as session:
            schedules = session.exec(
                select(Schedule).order_by(Schedule.updated_at.desc())
            ).all()
            result = []
            for schedule in schedules:
                months = session.exec(
                    select(Period.period_name)
                    .where(Period.schedule_id == schedule.id)
                    .order_by(Period.period_name)
                ).all()
                result.append(
                    {
                        "id": schedule.id,
                        "name": schedule.name,
                        "updated_at": schedule.updated_at,
                        "months": list(months),
                    }
                )
            return result

    def current_schedule_id(self) -> str | None:
        """Id of the most recently updated schedule, if any."""
        with self._session() as session:
            return session.exec(
                select(Schedule.id).order_by(Schedule.updated_at.desc())
            ).first()

    def delete_schedule(self, schedule_id: str) -> None:
        """Delete a schedule with its periods and personal events.

        EventMeta rows are left alone; they are keyed by event id only and
        tolerate dangling references.
        """
        with self._session() as session:
            session.exec(delete(Period).where(Period.schedule_id == schedule_id))
            session.exec(delete(PersonalEvent).where(PersonalEvent.schedule_id == schedule_id))
            session.exec(delete(Schedule).where(Schedule.id == schedule_id))

    # Personal events

    def replace_personal_events(
        self, schedule_id: str, events: Iterable[PersonalEvent]
    ) -> None:
        """
        Replace every personal event of a schedule with ``events``.

        This is not a merge: events missing from ``events`` are deleted.
        Callers must always pass the complete desired set.
        """
        with self._session() as session:
            self._replace_personal_events(session, schedule_id, list(events))

    def add_personal_event(
        self,
        schedule_id: str,
        title: str,
        start_time: int,
        description: str = "",
        icon: str | None = None,
    ) -> PersonalEvent:
        """Create a personal event with a creation-time id and save the full set."""
        with self._session() as session:
            current = list(
                session.exec(
                    select(PersonalEvent).where(PersonalEvent.schedule_id == schedule_id)
                ).all()
            )
            event = PersonalEvent(
                id=self._new_personal_event_id(session),
                schedule_id=schedule_id,
                title=title,
                description=description,
                start_time=start_time,
                icon=icon,
            )
            self._replace_personal_events(session, schedule_id, current + [event])
        logger.info(f"Added personal event {event.id} ({title!r}) to schedule {schedule_id}")
        return event

    def delete_personal_event(self, event_id: int) -> None:
        """Delete a personal event together with its EventMeta row."""
        with self._session() as session:
            session.exec(delete(PersonalEvent).where(PersonalEvent.id == event_id))
            session.exec(delete(EventMeta).where(EventMeta.event_id == event_id))

    def _replace_personal_events(
        self, session: Session, schedule_id: str, events: list[PersonalEvent]
    ) -> None:
        rows = [
            PersonalEvent(**{**event.model_dump(), "schedule_id": schedule_id})
            for event in events
        ]
        for event in events:
            if event in session:
                session.expunge(event)
        session.exec(delete(PersonalEvent).where(PersonalEvent.schedule_id == schedule_id))
        session.flush()
        session.add_all(rows)

    def _new_personal_event_id(self, session: Session) -> int:
        candidate = int(time.time() * 1000)
        while session.get(PersonalEvent, candidate) is not None:
            candidate += 1
        return candidate

    # Event meta

    def get_meta(self, event_id: int) -> EventMeta:
        """Meta row for an event, or the default (not completed, no alarm)."""
        with self._session() as session:
            meta = session.get(EventMeta, event_id)
            if meta is None:
                return EventMeta(event_id=event_id)
            return meta

    def alarms(self) -> dict[int, int]:
        """Map of event id to alarm minutes for every event with an alarm."""
        with self._session() as session:
            rows = session.exec(
                select(EventMeta).where(EventMeta.alarm_minutes.is_not(None))
            ).all()
            return {row.event_id: row.alarm_minutes for row in rows}

    def set_event_meta(
        self,
        event_id: int,
        is_completed: bool,
        alarm_minutes: int | None,
        clear_notified: bool = False,
    ) -> None:
        """Upsert completion and alarm state.

        ``alarm_minutes=None`` clears the alarm. ``clear_notified`` re-arms
        the alarm: ``last_notified_at`` is reset so the reminder can fire
        again. Without it the notified state is kept as is.
        """
        update = {"is_completed": is_completed, "alarm_minutes": alarm_minutes}
        if clear_notified:
            update["last_notified_at"] = None
        self._upsert_meta(event_id, update)

    def set_alarm(self, event_id: int, alarm_minutes: int | None) -> None:
        """Set or clear an alarm, keeping completion state.

        Setting a non-null alarm always re-arms it.
        """
        update = {"alarm_minutes": alarm_minutes}
        if alarm_minutes is not None:
            update["last_notified_at"] = None
        self._upsert_meta(event_id, update)
        logger.info(f"Alarm for event {event_id} set to {alarm_minutes}")

    def toggle_completed(self, event_id: int) -> bool:
        """Flip the completion flag of an event and return the new value."""
        with self._session() as session:
            stmt = sqlite_insert(EventMeta).values(
                event_id=event_id, is_completed=True, alarm_minutes=None, last_notified_at=None
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[EventMeta.event_id],
                set_={"is_completed": not_(EventMeta.is_completed)},
            )
            session.exec(stmt)
            session.flush()
            return session.exec(
                select(EventMeta.is_completed).where(EventMeta.event_id == event_id)
            ).one()

    def mark_notified(self, event_id: int, when: int) -> None:
        """Record that a reminder was shown. Leaves completion and alarm untouched."""
        self._upsert_meta(event_id, {"last_notified_at": when})

    def _upsert_meta(self, event_id: int, update: dict) -> None:
        values = {
            "event_id": event_id,
            "is_completed": False,
            "alarm_minutes": None,
            "last_notified_at": None,
            **update,
        }
        with self._session() as session:
            stmt = sqlite_insert(EventMeta).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[EventMeta.event_id],
                set_={key: stmt.excluded[key] for key in update},
            )
            session.exec(stmt)

    # Reading events

    def list_all_events(self, schedule_id: str) -> list[CalendarEvent]:
        """
        All events of a schedule: imported ones first, then personal ones.

        Events are deduplicated by id (first occurrence wins) and sorted by
        start time ascending.
        """
        with self._session() as session:
            periods = session.exec(
                select(Period)
                .where(Period.schedule_id == schedule_id)
                .order_by(Period.period_name)
            ).all()
            personal = session.exec(
                select(PersonalEvent).where(PersonalEvent.schedule_id == schedule_id)
            ).all()

        unique: dict[int, CalendarEvent] = {}
        for period in periods:
            for event in iter_period_events(period.data):
                unique.setdefault(event.id, event)
        for row in personal:
            unique.setdefault(
                row.id,
                CalendarEvent(
                    id=row.id,
                    title=row.title,
                    start_time=row.start_time,
                    description=row.description,
                    icon=row.icon,
                    is_personal=True,
                ),
            )
        return sorted(unique.values(), key=lambda event: event.start_time)
