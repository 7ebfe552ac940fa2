"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests. The
engine session runs on an in-memory key-value store with a fixed clock, a
seeded RNG and an instantaneous training ramp; routes receive it through
a `get_engine` override.
"""
import pytest
from fastapi.testclient import TestClient

import sipsense.models  # noqa: F401
from sipsense.db.base import Base, get_db
from sipsense.main import app
from sipsense.models import KeyValueRecord, Reminder
from sipsense.services.kv_store import MemoryKeyValueStore
from sipsense.services.session import get_engine

from helpers import START, FixedClock, TestingSessionLocal, build_session, engine


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    db = TestingSessionLocal()
    try:
        db.query(Reminder).delete()
        db.query(KeyValueRecord).delete()
        db.commit()
    finally:
        db.close()


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def clock():
    return FixedClock(START)


@pytest.fixture()
def kv():
    return MemoryKeyValueStore()


@pytest.fixture()
def engine_session(kv, clock):
    session = build_session(kv, clock)
    yield session
    session.shutdown()


@pytest.fixture()
def hydration(engine_session):
    return engine_session.hydration


@pytest.fixture()
def reminders(engine_session):
    return engine_session.reminders


@pytest.fixture()
def client(engine_session):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_engine] = lambda: engine_session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
