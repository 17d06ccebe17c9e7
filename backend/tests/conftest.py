"""Shared test fixtures: a throwaway SQLite store, a fake event queue, a fixed clock."""

import json
from collections import defaultdict
from datetime import date, datetime, time

import pytest
from sqlalchemy.orm import sessionmaker

from barbershop.database import build_engine
from barbershop.models import Base
from barbershop.services import catalog, events, schedule
from barbershop.services.slots.config import ShopConfig

# A Monday. Default rules: 10:00–20:00, break 14:00–15:00.
DAY = date(2030, 6, 3)
NOW = datetime(2030, 6, 3, 9, 0)


class FakeRedis:
    """Stands in for the event queue; records every pushed event."""

    def __init__(self):
        self.lists = defaultdict(list)

    def rpush(self, key, value):
        self.lists[key].append(value)
        return len(self.lists[key])

    def ping(self):
        return True

    def events(self, event_type=None):
        decoded = [json.loads(v) for v in self.lists[events.P2P_QUEUE]]
        if event_type is None:
            return decoded
        return [e for e in decoded if e["type"] == event_type]


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(events, "redis_client", fake)
    return fake


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'shop.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def config():
    return ShopConfig(
        slot_step_minutes=30,
        buffer_minutes=10,
        default_duration_minutes=30,
        promotion_hold_minutes=5,
        no_show_grace_minutes=15,
        unattended_policy="expire",
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def day():
    return DAY


@pytest.fixture
def at():
    """at(11, 30) → datetime on the test day."""
    def _at(hour: int, minute: int = 0, on: date = DAY) -> datetime:
        return datetime.combine(on, time(hour, minute))
    return _at


@pytest.fixture
def rules(db):
    return schedule.initialize_default_rules(db)


@pytest.fixture
def services(db, rules):
    """name → id for a small active catalog, in a shop open the default week."""
    haircut = catalog.add_service(db, "Haircut", 25.0, 30)
    beard = catalog.add_service(db, "Beard trim", 15.0, 20)
    color = catalog.add_service(db, "Color", 60.0, 90)
    retired = catalog.add_service(db, "Hot towel", 10.0, 10)
    catalog.toggle_service(db, retired.id)
    return {
        "haircut": haircut.id,
        "beard": beard.id,
        "color": color.id,
        "retired": retired.id,
    }
