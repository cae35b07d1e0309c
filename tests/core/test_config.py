"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest

from app.core.config import AppEnv, Settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "APP_ENV",
        "LOG_LEVEL",
        "LOG_JSON",
        "PORT",
        "DATABASE_URL",
        "REDIS_URL",
        "LEADERBOARD_CACHE_TTL",
    ):
        monkeypatch.delenv(name, raising=False)


# ---- defaults and normalization ----


def test_load_settings_defaults() -> None:
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.port == 8000
    assert settings.database_url is None
    assert settings.redis_url is None


@pytest.mark.parametrize(
    ("app_env", "log_level", "expected"),
    [
        ("prod", "error", ("prod", "error")),
        ("PROD", "DEBUG", ("prod", "debug")),
        ("  test  ", "  warning  ", ("test", "warning")),
    ],
)
def test_load_settings_normalizes_values(
    monkeypatch: pytest.MonkeyPatch,
    app_env: str,
    log_level: str,
    expected: tuple[str, str],
) -> None:
    monkeypatch.setenv("APP_ENV", app_env)
    monkeypatch.setenv("LOG_LEVEL", log_level)
    settings = load_settings()
    assert (settings.app_env, settings.log_level) == expected


@pytest.mark.parametrize("value", ["staging", ""])
def test_load_settings_rejects_invalid_app_env(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("APP_ENV", value)
    with pytest.raises(ValueError, match="APP_ENV must be"):
        load_settings()


@pytest.mark.parametrize("value", ["verbose", ""])
def test_load_settings_rejects_invalid_log_level(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("LOG_LEVEL", value)
    with pytest.raises(ValueError, match="LOG_LEVEL must be"):
        load_settings()


# ---- Settings properties ----


def _make_settings(app_env: AppEnv = "dev") -> Settings:
    return Settings(  # type: ignore[arg-type]
        app_env=app_env,
        log_level="info",
        log_json=False,
        port=8000,
        database_url=None,
        redis_url=None,
    )


@pytest.mark.parametrize("env", ["dev", "test", "prod"])
def test_settings_env_flags(env: AppEnv) -> None:
    s = _make_settings(env)
    assert (s.is_dev, s.is_test, s.is_prod) == (env == "dev", env == "test", env == "prod")


def test_settings_is_frozen() -> None:
    s = _make_settings()
    with pytest.raises(AttributeError):
        s.app_env = "prod"  # type: ignore[misc]


# ---- LOG_JSON ----


def test_load_settings_parses_log_json(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_JSON", "yes")
    assert load_settings().log_json is True
    monkeypatch.setenv("LOG_JSON", "off")
    assert load_settings().log_json is False


def test_load_settings_rejects_invalid_log_json(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("LOG_JSON", "maybe")
    with pytest.raises(ValueError, match="LOG_JSON must be a boolean"):
        load_settings()


# ---- LEADERBOARD_CACHE_TTL ----


def test_load_settings_leaderboard_ttl_default(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("LEADERBOARD_CACHE_TTL", raising=False)
    assert load_settings().leaderboard_cache_ttl == 60


def test_load_settings_leaderboard_ttl_zero_disables(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("LEADERBOARD_CACHE_TTL", "0")
    assert load_settings().leaderboard_cache_ttl == 0


def test_load_settings_rejects_negative_ttl(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LEADERBOARD_CACHE_TTL", "-5")
    with pytest.raises(ValueError, match="LEADERBOARD_CACHE_TTL must be >= 0"):
        load_settings()


def test_load_settings_rejects_non_integer_port(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("PORT", "eighty")
    with pytest.raises(ValueError, match="PORT must be an integer"):
        load_settings()


def test_load_settings_reads_store_urls(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db/portal")
    monkeypatch.setenv("REDIS_URL", "")
    settings = load_settings()
    assert settings.database_url == "postgresql+asyncpg://u:p@db/portal"
    assert settings.redis_url is None
