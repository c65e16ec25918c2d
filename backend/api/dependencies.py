"""
Dependency injection for the API service.
Provides the database, the Riot fetch client, the reference cache and settings to route handlers.
"""
from __future__ import annotations

from consistency.config import ConsistencySettings
from riot.reference import ReferenceDataCache
from shared.config import Settings, get_settings
from shared.utils.database import DatabaseManager
from shared.utils.http_client import ResilientFetchClient

# Module-level singletons, initialized at startup
_db: DatabaseManager | None = None
_riot: ResilientFetchClient | None = None
_reference: ReferenceDataCache | None = None
_consistency: ConsistencySettings | None = None


def init_dependencies(
    db: DatabaseManager,
    riot: ResilientFetchClient,
    reference: ReferenceDataCache,
    consistency: ConsistencySettings,
) -> None:
    """Initialize module-level singletons. Called once at startup."""
    global _db, _riot, _reference, _consistency
    _db = db
    _riot = riot
    _reference = reference
    _consistency = consistency


def get_db() -> DatabaseManager:
    """FastAPI dependency: returns the shared DatabaseManager."""
    if _db is None:
        raise RuntimeError("DatabaseManager not initialized; call init_dependencies first")
    return _db


def get_riot_client() -> ResilientFetchClient:
    if _riot is None:
        raise RuntimeError("Riot client not initialized; call init_dependencies first")
    return _riot


def get_reference_cache() -> ReferenceDataCache:
    if _reference is None:
        raise RuntimeError("ReferenceDataCache not initialized; call init_dependencies first")
    return _reference


def get_consistency_settings() -> ConsistencySettings:
    if _consistency is None:
        raise RuntimeError("ConsistencySettings not initialized; call init_dependencies first")
    return _consistency


def get_app_settings() -> Settings:
    return get_settings()
