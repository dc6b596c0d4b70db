"""Shared test fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, create_engine
from sqlmodel.pool import StaticPool

from eventalarm.core.database import create_edge_tables, create_store_tables, get_session
from eventalarm.core.errors import TransportFailure
from eventalarm.edge.transport import get_transport
from eventalarm.main import app
from eventalarm.schemas import DeliveryAddress, PushKeys
from eventalarm.store.event_store import EventStore

T = 1_767_225_600  # 2026-01-01 00:00:00 UTC


class FakeClock:
    """Settable clock returning epoch seconds."""

    def __init__(self, now: int = T):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class FakeTransport:
    """Records every send; can be told to fail for given event ids."""

    def __init__(self):
        self.sent: list[tuple[str, dict]] = []
        self.fail_for: set[int] = set()

    def send(self, delivery_address: DeliveryAddress, payload: dict) -> None:
        event_id = payload.get("data", {}).get("eventId")
        if event_id in self.fail_for:
            raise TransportFailure(f"push service unavailable for {event_id}")
        self.sent.append((delivery_address.endpoint, payload))

    def sends_for(self, event_id: int) -> list[dict]:
        return [p for _, p in self.sent if p.get("data", {}).get("eventId") == event_id]


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture(name="store_engine")
def store_engine_fixture():
    """In-memory SQLite database with the event store tables."""
    engine = _memory_engine()
    create_store_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="store")
def store_fixture(store_engine) -> EventStore:
    return EventStore(store_engine)


@pytest.fixture(name="edge_engine")
def edge_engine_fixture():
    """In-memory SQLite database with the edge dispatcher tables."""
    engine = _memory_engine()
    create_edge_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(edge_engine):
    """Create a new edge database session for each test."""
    with Session(edge_engine) as session:
        yield session


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock()


@pytest.fixture(name="transport")
def transport_fixture() -> FakeTransport:
    return FakeTransport()


@pytest.fixture(name="address")
def address_fixture() -> DeliveryAddress:
    return DeliveryAddress(
        endpoint="https://push.example.com/send/device-1",
        keys=PushKeys(p256dh="BPubKey", auth="authsecret"),
    )


@pytest.fixture(name="schedule")
def schedule_fixture(store: EventStore) -> str:
    """A schedule with one imported period holding two events."""
    store.upsert_schedule("sched-1", "Spring term")
    store.upsert_period(
        "sched-1",
        "January 2026",
        {
            "periodname": "January 2026",
            "weeks": [
                {
                    "days": [
                        {
                            "hasevents": True,
                            "events": [
                                {
                                    "id": 42,
                                    "activityname": "Quiz 1",
                                    "timestart": T,
                                    "icon": {"iconurl": "https://lms.example.com/quiz.svg"},
                                },
                                {"id": 7, "activityname": "Essay due", "timestart": T + 3600},
                            ],
                        },
                        {"hasevents": False, "events": []},
                    ]
                }
            ],
        },
    )
    return "sched-1"


@pytest.fixture(name="client")
def client_fixture(session: Session, transport: FakeTransport):
    """Create a test client with the test database session and fake transport."""

    def get_session_override():
        return session

    def get_transport_override():
        return transport

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_transport] = get_transport_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
