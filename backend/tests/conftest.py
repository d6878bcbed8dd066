"""Shared fixtures: an in-memory database and small factories for rows."""
import pytest

from uptovia.database import close_db, create_db_engine, create_session_factory, init_db
from uptovia.models import Device, Monitor
from uptovia.store import MonitorStore


@pytest.fixture
async def db_engine():
    engine = create_db_engine("sqlite+aiosqlite://")
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def store(db_engine):
    return MonitorStore(create_session_factory(db_engine))


@pytest.fixture
def add_monitor(store):
    async def _add(**fields) -> Monitor:
        values = {
            "name": "API",
            "type": "http",
            "url": "https://api.example.com/health",
            "user_id": 1,
        }
        values.update(fields)
        async with store.session() as session:
            monitor = Monitor(**values)
            session.add(monitor)
            await session.commit()
            return await session.get(Monitor, monitor.id)

    return _add


@pytest.fixture
def add_device(store):
    async def _add(token: str, user_id: int = 1, enabled: int = 1) -> Device:
        async with store.session() as session:
            device = Device(device_token=token, user_id=user_id, enabled=enabled)
            session.add(device)
            await session.commit()
            return device

    return _add


@pytest.fixture
def get_monitor(store):
    async def _get(monitor_id: int) -> Monitor:
        async with store.session() as session:
            return await session.get(Monitor, monitor_id)

    return _get
