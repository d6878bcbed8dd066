from uptovia.config import Settings, get_database_url, is_postgresql


def test_default_database_is_sqlite_in_data_path() -> None:
    settings = Settings(data_path="/tmp/uptovia", database_url=None)
    assert get_database_url(settings) == "sqlite+aiosqlite:////tmp/uptovia/uptovia.db"


def test_heroku_style_postgres_url_rewritten() -> None:
    settings = Settings(database_url="postgres://u:p@db:5432/uptime")
    url = get_database_url(settings)
    assert url == "postgresql+asyncpg://u:p@db:5432/uptime"
    assert is_postgresql(url)


def test_plain_postgresql_url_gets_async_driver() -> None:
    settings = Settings(database_url="postgresql://u:p@db/uptime")
    assert get_database_url(settings) == "postgresql+asyncpg://u:p@db/uptime"


def test_settings_read_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("TICK_SECONDS", "15")
    monkeypatch.setenv("MAX_CONCURRENT_CHECKS", "5")
    monkeypatch.setenv("PING_BACKEND", "system")

    settings = Settings()
    assert settings.tick_seconds == 15
    assert settings.max_concurrent_checks == 5
    assert settings.ping_backend == "system"
