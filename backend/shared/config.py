"""
Central configuration for all Ladderwatch entrypoints.
Uses pydantic-settings for env-based config with validation.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

from shared.models.enums import RegionalRouting

DEFAULT_RANKED_SEASON_START = "2026-01-08T20:00:00.000Z"


class ConfigError(Exception):
    """Required configuration is missing or malformed. Fatal at startup."""


class Environment(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


def sanitize_token(raw: Optional[str]) -> str:
    """Strip whitespace and one pair of surrounding quotes from a secret token."""
    value = (raw or "").strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1].strip()
    return value


class Settings(BaseSettings):
    """Root settings shared by the CLI and the API service."""

    model_config = SettingsConfigDict(
        env_prefix="LW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────
    environment: Environment = Environment.DEV
    debug: bool = False
    log_level: str = "INFO"
    instance_id: str = Field(default="", description="Pod/container ID bound to every log line")

    # ── Riot API ─────────────────────────────────────────────
    riot_api_key: str = Field(validation_alias=AliasChoices("LW_RIOT_API_KEY", "RIOT_API_KEY"))
    riot_routing: RegionalRouting = RegionalRouting.AMERICAS

    # ── Postgres (local store) ───────────────────────────────
    database_url: str = Field(validation_alias=AliasChoices("LW_DATABASE_URL", "DATABASE_URL"))
    database_password: SecretStr
    db_pool_min: int = 2
    db_pool_max: int = 10
    db_command_timeout: int = 30

    # ── API ──────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["*"]

    # ── Reference data ───────────────────────────────────────
    ddragon_fallback_version: Optional[str] = None

    # ── Season ───────────────────────────────────────────────
    ranked_season_start: Optional[str] = Field(
        default=None,
        description="Overrides the season table; the CLI falls back to DEFAULT_RANKED_SEASON_START",
        validation_alias=AliasChoices("LW_RANKED_SEASON_START", "RANKED_SEASON_START"),
    )

    # ── Observability ────────────────────────────────────────
    metrics_enabled: bool = True
    metrics_port: int = 9090

    @field_validator("riot_api_key")
    @classmethod
    def clean_riot_api_key(cls, value: str) -> str:
        cleaned = sanitize_token(value)
        if not cleaned:
            raise ValueError("RIOT API key is blank")
        return cleaned

    @field_validator("riot_routing", mode="before")
    @classmethod
    def normalize_riot_routing(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("database_password")
    @classmethod
    def require_database_password(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("database password is blank")
        return value

    @field_validator("database_url")
    @classmethod
    def normalize_database_url_asyncpg(cls, value: str) -> str:
        """Ensure database_url uses the asyncpg driver for Postgres URLs."""
        raw = value.strip()
        if not raw:
            raise ValueError("database url is blank")
        if raw.startswith("postgres://"):
            raw = "postgresql+asyncpg://" + raw[len("postgres://") :]
        elif raw.startswith("postgresql://"):
            raw = raw.replace("postgresql://", "postgresql+asyncpg://", 1)
        return raw

    @property
    def database_url_str(self) -> str:
        """Database URL with the configured password applied (Postgres only)."""
        url = make_url(self.database_url)
        if url.get_backend_name() == "postgresql":
            url = url.set(password=self.database_password.get_secret_value())
        return url.render_as_string(hide_password=False)

    @property
    def database_url_safe_log(self) -> str:
        """URL with password redacted, for logging only."""
        return make_url(self.database_url).render_as_string(hide_password=True)


def load_settings() -> Settings:
    """Build settings from the environment, converting validation errors to ConfigError."""
    try:
        return Settings()
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise ConfigError(
            "Missing or invalid configuration: "
            + ", ".join(fields)
            + " (set LW_RIOT_API_KEY, LW_DATABASE_URL, LW_DATABASE_PASSWORD)"
        ) from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to validated settings."""
    return load_settings()
