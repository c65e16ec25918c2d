"""
Unit tests for environment configuration.

Run: pytest backend/tests/test_config.py -v
"""
from __future__ import annotations

import pytest

from consistency.config import ConsistencySettings
from shared.config import ConfigError, load_settings, sanitize_token
from shared.models.enums import RegionalRouting


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("RGAPI-abc", "RGAPI-abc"),
        ("  RGAPI-abc\n", "RGAPI-abc"),
        ('"RGAPI-abc"', "RGAPI-abc"),
        ("'RGAPI-abc'", "RGAPI-abc"),
        ("\"'RGAPI-abc'\"", "'RGAPI-abc'"),
        ("", ""),
        (None, ""),
    ],
)
def test_sanitize_token(raw, expected: str) -> None:
    assert sanitize_token(raw) == expected


def test_valid_environment_loads() -> None:
    settings = load_settings()
    assert settings.riot_api_key == "RGAPI-test-key"
    assert settings.ranked_season_start is None


@pytest.mark.parametrize("missing", ["LW_RIOT_API_KEY", "LW_DATABASE_URL", "LW_DATABASE_PASSWORD"])
def test_missing_required_variable_is_config_error(monkeypatch: pytest.MonkeyPatch, missing: str) -> None:
    monkeypatch.delenv(missing)
    with pytest.raises(ConfigError):
        load_settings()


def test_quoted_blank_key_is_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LW_RIOT_API_KEY", '"  "')
    with pytest.raises(ConfigError):
        load_settings()


def test_unprefixed_key_is_accepted(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LW_RIOT_API_KEY")
    monkeypatch.setenv("RIOT_API_KEY", "'RGAPI-plain'")
    assert load_settings().riot_api_key == "RGAPI-plain"


def test_postgres_url_normalized_and_password_applied(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LW_DATABASE_URL", "postgres://ladder@db.internal:5432/ladderwatch")
    monkeypatch.setenv("LW_DATABASE_PASSWORD", "s3cret")
    settings = load_settings()

    assert settings.database_url.startswith("postgresql+asyncpg://")
    assert ":s3cret@" in settings.database_url_str
    assert "s3cret" not in settings.database_url_safe_log


def test_season_start_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LW_RANKED_SEASON_START", "2025-01-08T20:00:00.000Z")
    assert load_settings().ranked_season_start == "2025-01-08T20:00:00.000Z"


def test_consistency_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LW_CONSISTENCY_PAGE_SIZE", "50")
    monkeypatch.setenv("LW_CONSISTENCY_MAX_RETRIES", "0")
    settings = ConsistencySettings()

    assert settings.page_size == 50
    assert settings.max_retries == 0
    assert settings.sample_size == 20


def test_routing_is_case_insensitive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LW_RIOT_ROUTING", " EUROPE ")
    assert load_settings().riot_routing == RegionalRouting.EUROPE


def test_unknown_routing_is_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LW_RIOT_ROUTING", "antarctica")
    with pytest.raises(ConfigError) as exc_info:
        load_settings()

    assert "riot_routing" in str(exc_info.value)
