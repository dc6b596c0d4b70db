"""Edge dispatcher state: last synced payloads and the dedupe ledger."""

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class AlarmSyncState(SQLModel, table=True):
    """The last payload synced by one device.

    Keyed by the push endpoint of the device's delivery address, so a new
    sync from the same device replaces its previous state instead of
    merging with it.

    Attributes:
        endpoint: Push service endpoint URL of the device.
        payload: The sync payload as received (camelCase JSON).
        updated_at: Epoch seconds of the last sync. State older than the
            retention ceiling is discarded on the next tick.
    """
    __tablename__ = "alarm_sync_state"

    endpoint: str = Field(primary_key=True)
    payload: dict = Field(sa_column=Column(JSON, nullable=False))
    updated_at: int


class DedupeEntry(SQLModel, table=True):
    """Marker that a reminder for one (event, trigger minute) was sent.

    Existence of an unexpired row means "already dispatched".
    """
    __tablename__ = "dedupe_ledger"

    key: str = Field(primary_key=True)
    value: str = "1"
    expires_at: int = Field(index=True)
