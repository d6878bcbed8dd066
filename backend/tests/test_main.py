from fastapi.testclient import TestClient

from uptovia.config import Settings
from uptovia.database import close_db
from uptovia.main import build_engine, create_app
from uptovia.services.pinger import SystemPinger


def test_health_without_running_engine() -> None:
    client = TestClient(create_app(Settings(database_url="sqlite+aiosqlite://")))
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "scheduler": None, "push_configured": False}


async def test_build_engine_wires_settings() -> None:
    settings = Settings(
        database_url="sqlite+aiosqlite://",
        tick_seconds=30,
        max_concurrent_checks=7,
        ping_backend="system",
    )
    engine = build_engine(settings)
    try:
        status = engine.scheduler.status()
        assert status["tick_seconds"] == 30
        assert status["max_concurrent_checks"] == 7
        assert status["running"] is False
        assert isinstance(engine.scheduler.checker.pinger, SystemPinger)
        assert engine.push_sender.is_configured is False
        assert engine.scheduler.notifier.email_sender.is_configured is False
    finally:
        await close_db(engine.db_engine)
