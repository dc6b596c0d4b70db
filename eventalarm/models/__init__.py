from eventalarm.models.edge import AlarmSyncState, DedupeEntry
from eventalarm.models.event import CalendarEvent
from eventalarm.models.event_meta import EventMeta
from eventalarm.models.personal_event import PersonalEvent
from eventalarm.models.schedule import Period, Schedule

STORE_TABLES = [
    Schedule.__table__,
    Period.__table__,
    PersonalEvent.__table__,
    EventMeta.__table__,
]
EDGE_TABLES = [AlarmSyncState.__table__, DedupeEntry.__table__]

__all__ = [
    "AlarmSyncState",
    "CalendarEvent",
    "DedupeEntry",
    "EventMeta",
    "Period",
    "PersonalEvent",
    "Schedule",
    "STORE_TABLES",
    "EDGE_TABLES",
]
