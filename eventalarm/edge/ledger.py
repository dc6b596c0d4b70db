"""Key-value dedupe ledger with per-key expiry.

The ledger is the only gate that keeps the edge dispatcher from sending the
same reminder twice: a key exists for each (event, trigger minute) that has
already been sent. Its TTL must outlive the trigger window plus the grace
period, otherwise a later tick inside the window would send again.
"""
import logging

from sqlalchemy import delete
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session

from eventalarm.alarms.trigger import trigger_bucket
from eventalarm.models import DedupeEntry

logger = logging.getLogger(__name__)


def dedupe_key(event_id: int, trigger_at: int) -> str:
    """Ledger key of one reminder: event id plus trigger minute."""
    return f"notified_{event_id}_{trigger_bucket(trigger_at)}"


class DedupeLedger:
    """put-with-TTL / exists contract over the ``dedupe_ledger`` table."""

    def __init__(self, session: Session):
        self.session = session

    def exists(self, key: str, now: int) -> bool:
        """True if the key was written and has not expired."""
        entry = self.session.get(DedupeEntry, key)
        return entry is not None and entry.expires_at > now

    def put(self, key: str, ttl_seconds: int, now: int, value: str = "1") -> None:
        """Write (or refresh) a key and commit immediately."""
        stmt = sqlite_insert(DedupeEntry).values(
            key=key, value=value, expires_at=now + ttl_seconds
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DedupeEntry.key],
            set_={"value": stmt.excluded.value, "expires_at": stmt.excluded.expires_at},
        )
        self.session.exec(stmt)
        self.session.commit()
        # The ORM identity map may hold a stale copy read by exists()
        self.session.expire_all()

    def purge_expired(self, now: int) -> int:
        """Delete expired keys. Returns how many were removed."""
        result = self.session.exec(delete(DedupeEntry).where(DedupeEntry.expires_at <= now))
        self.session.commit()
        if result.rowcount:
            logger.debug(f"Purged {result.rowcount} expired dedupe keys")
        return result.rowcount
