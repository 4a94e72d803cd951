import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, get_db
from main import app
from core.events import event_bus
from core.room_manager import RoomManager


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def recorded_events():
    """Collect every event published for the rooms passed to watch()"""
    events = []
    unsubscribers = []

    def watch(room_code):
        unsubscribers.append(event_bus.subscribe(room_code, events.append))
        return events

    yield watch
    for unsubscribe in unsubscribers:
        unsubscribe()


@pytest.fixture
def room(db):
    """A Fibonacci room with code ROOM01, its host Hanna and two participants"""
    room, host = RoomManager.create_room(
        db, "Sprint 42", "Hanna", "Fibonacci", code_generator=lambda: "ROOM01"
    )
    _, alex = RoomManager.join_room(db, "ROOM01", "Alex")
    _, bea = RoomManager.join_room(db, "ROOM01", "Bea")
    return {"code": "ROOM01", "host_id": host.id, "alex_id": alex.id, "bea_id": bea.id}
