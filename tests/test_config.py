"""
Tests for environment-driven settings.
"""

import pytest
from utils.config import Settings, get_settings


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run from an empty directory so a local .env file is not read."""
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    settings = Settings()

    assert settings.database_url == "sqlite:///./traces.db"
    assert settings.stats_source == "server"
    assert settings.default_window_days == 30
    assert settings.reviewer_role == "Reviewer"
    assert settings.prefetch_enabled is True
    assert settings.server_port == 7860


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("TRACE_REVIEW_DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("TRACE_REVIEW_STATS_SOURCE", "client")
    monkeypatch.setenv("TRACE_REVIEW_PREFETCH_ENABLED", "false")
    monkeypatch.setenv("TRACE_REVIEW_SERVER_PORT", "9000")

    settings = Settings()

    assert settings.database_url == "sqlite:///:memory:"
    assert settings.stats_source == "client"
    assert settings.prefetch_enabled is False
    assert settings.server_port == 9000


def test_unprefixed_variables_ignored(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://elsewhere/db")

    assert Settings().database_url == "sqlite:///./traces.db"


def test_env_file(tmp_path):
    (tmp_path / ".env").write_text("TRACE_REVIEW_REVIEWER_ROLE=Inspector\n", encoding="utf-8")

    assert Settings().reviewer_role == "Inspector"


def test_invalid_value_rejected(monkeypatch):
    monkeypatch.setenv("TRACE_REVIEW_SERVER_PORT", "not-a-port")

    with pytest.raises(ValueError):
        Settings()


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
