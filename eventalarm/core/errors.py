"""Exception types shared by the store, the local loops and the edge dispatcher."""


class EventAlarmError(Exception):
    """Base class for all eventalarm errors."""


class StorageFailure(EventAlarmError):
    """The event store could not durably complete a read or write.

    Raised after the failed transaction has been rolled back, so callers can
    assume nothing from the aborted operation was committed.
    """


class TransportFailure(EventAlarmError):
    """A single push notification could not be delivered."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedSync(EventAlarmError):
    """A sync payload is missing required fields or cannot be parsed."""
