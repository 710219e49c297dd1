# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ROLLOVER_ENABLED", "false")
os.environ.setdefault("SERVICE_TIMEZONE", "America/Panama")

from turnline.core.clock import Clock, get_clock
from turnline.core.security import create_access_token
from turnline.db.session import Base, build_engine
from turnline.db.session import get_db as app_get_session
from turnline.main import app as fastapi_app
from turnline.models import Ticket, User, UserRole, Window
from turnline.services.locks import KeyedLocks, get_locks
from turnline.services.notifications import Event, NotificationHub, get_notification_hub
from turnline.services.queue import QueueSelector
from turnline.services.rollover import RolloverCoordinator
from turnline.services.sequence import SequenceAllocator
from turnline.services.tickets import TicketStateMachine
from turnline.services.windows import WindowOwnershipManager

TEST_DB_URL = "sqlite://"

# 09:00 in America/Panama (UTC-5, no DST).
START_INSTANT = datetime(2026, 10, 19, 14, 0, 0, tzinfo=UTC)


class ManualClock(Clock):
    """Clock whose current instant only moves when a test moves it."""

    def __init__(self, start: datetime = START_INSTANT, timezone: str = "America/Panama") -> None:
        super().__init__(timezone)
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current

    def set(self, instant: datetime) -> None:
        self.current = instant


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = build_engine(TEST_DB_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

        # Services commit for real; wipe every table so each test starts clean.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def locks() -> KeyedLocks:
    return KeyedLocks()


@pytest.fixture()
def hub() -> NotificationHub:
    return NotificationHub()


@pytest.fixture()
def events(hub: NotificationHub) -> Iterator[list[Event]]:
    """Every event published on the test hub, in order."""
    received: list[Event] = []
    unsubscribe = hub.subscribe(received.append)
    try:
        yield received
    finally:
        unsubscribe()


@pytest.fixture()
def allocator(locks: KeyedLocks) -> SequenceAllocator:
    return SequenceAllocator(locks)


@pytest.fixture()
def ownership(clock: ManualClock, hub: NotificationHub, locks: KeyedLocks) -> WindowOwnershipManager:
    return WindowOwnershipManager(clock, hub, locks)


@pytest.fixture()
def machine(
    clock: ManualClock,
    hub: NotificationHub,
    locks: KeyedLocks,
    allocator: SequenceAllocator,
    ownership: WindowOwnershipManager,
) -> TicketStateMachine:
    return TicketStateMachine(clock, hub, locks, allocator, ownership)


@pytest.fixture()
def selector(machine: TicketStateMachine) -> QueueSelector:
    return QueueSelector(machine)


@pytest.fixture()
def coordinator(
    clock: ManualClock,
    hub: NotificationHub,
    locks: KeyedLocks,
    allocator: SequenceAllocator,
    ownership: WindowOwnershipManager,
) -> RolloverCoordinator:
    return RolloverCoordinator(clock, hub, locks, allocator, ownership)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    clock: ManualClock,
    hub: NotificationHub,
    locks: KeyedLocks,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notification_hub] = lambda: hub
    app.dependency_overrides[get_locks] = lambda: locks
    try:
        yield
    finally:
        for dependency in (app_get_session, get_clock, get_notification_hub, get_locks):
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def _make_user(db: Session, name: str, role: UserRole = UserRole.OPERATOR) -> User:
    user = User(name=name, email=f"{name.lower().replace(' ', '.')}@example.com", role=role.value)
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def operator(db_session: Session) -> User:
    return _make_user(db_session, "Operator One")


@pytest.fixture()
def other_operator(db_session: Session) -> User:
    return _make_user(db_session, "Operator Two")


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, "Admin", UserRole.ADMIN)


@pytest.fixture()
def windows(db_session: Session) -> dict[int, Window]:
    """Active windows 1-3 and an inactive window 9."""
    created = {number: Window(number=number, active=True) for number in (1, 2, 3)}
    created[9] = Window(number=9, active=False)
    db_session.add_all(created.values())
    db_session.commit()
    return created


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, role=user.role)}"}


@pytest.fixture()
def operator_headers(operator: User) -> dict[str, str]:
    return auth_headers(operator)


@pytest.fixture()
def other_headers(other_operator: User) -> dict[str, str]:
    return auth_headers(other_operator)


@pytest.fixture()
def admin_headers(admin_user: User) -> dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture()
def called_ticket(
    db_session: Session,
    machine: TicketStateMachine,
    selector: QueueSelector,
    ownership: WindowOwnershipManager,
    operator: User,
    windows: dict[int, Window],
) -> Ticket:
    """A ticket called to window 1 by ``operator``, who holds window 1."""
    ownership.open_session(db_session, operator.id, 1)
    machine.create(db_session)
    return selector.take_next(db_session, 1, operator.id)
