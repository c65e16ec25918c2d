"""
TTL cache for Data Dragon reference data (version tag, champion table).

Entries are replaced wholesale on refresh. A failed refresh never raises:
callers get the previous value, then the dataset's static fallback, then None.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from pydantic import TypeAdapter

from shared.models.domain import VERSION_LIST, ChampionFile, ChampionRef
from shared.utils.http_client import ResilientFetchClient
from shared.utils.logging import get_logger
from shared.utils.metrics import REFERENCE_REFRESHES

logger = get_logger(__name__)

DDRAGON_BASE = "https://ddragon.leagueoflegends.com"
VERSION_TTL_S = 12 * 60 * 60
CHAMPIONS_TTL_S = 24 * 60 * 60
DEFAULT_REFRESH_TIMEOUT_S = 0.8

DDRAGON_VERSION = "ddragon_version"
CHAMPIONS = "champions"

_CHAMPION_FILE = TypeAdapter(ChampionFile)


class ReferenceUnavailable(Exception):
    """Raised by a loader when the remote answered without usable data."""


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    refreshed_at: float


@dataclass(frozen=True)
class ReferenceDataset:
    name: str
    ttl_s: float
    loader: Callable[["ReferenceDataCache"], Awaitable[Any]]
    fallback: Any = None


class ReferenceDataCache:
    """
    Process-lifetime cache of named reference datasets.

    Construct one per process and pass it to whatever needs reference data.
    `clock` returns seconds and is injectable so TTL expiry can be driven in tests.
    """

    def __init__(
        self,
        client: ResilientFetchClient,
        *,
        clock: Callable[[], float] = time.monotonic,
        refresh_timeout_s: float = DEFAULT_REFRESH_TIMEOUT_S,
    ) -> None:
        self._client = client
        self._clock = clock
        self._refresh_timeout = refresh_timeout_s
        self._datasets: dict[str, ReferenceDataset] = {}
        self._entries: dict[str, CacheEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._attempts: dict[str, int] = {}

    @property
    def client(self) -> ResilientFetchClient:
        return self._client

    def register(self, dataset: ReferenceDataset) -> None:
        self._datasets[dataset.name] = dataset
        self._locks.setdefault(dataset.name, asyncio.Lock())

    def peek(self, name: str) -> Optional[CacheEntry]:
        """Current entry without refreshing."""
        return self._entries.get(name)

    def _fresh(self, dataset: ReferenceDataset) -> Optional[CacheEntry]:
        entry = self._entries.get(dataset.name)
        if entry is not None and self._clock() - entry.refreshed_at < dataset.ttl_s:
            return entry
        return None

    async def get(self, name: str) -> Any:
        """Return the dataset value, refreshing it first when missing or stale."""
        dataset = self._datasets.get(name)
        if dataset is None:
            raise KeyError(f"unknown reference dataset: {name}")

        entry = self._fresh(dataset)
        if entry is not None:
            return entry.value

        seen = self._attempts.get(name, 0)
        async with self._locks[name]:
            # Another caller may have refreshed while we waited.
            entry = self._fresh(dataset)
            if entry is not None:
                return entry.value
            # ...or tried and failed; share that outcome instead of queueing another attempt.
            if self._attempts.get(name, 0) != seen:
                return self._degraded(dataset)[1]
            try:
                return await self._refresh(dataset)
            finally:
                self._attempts[name] = self._attempts.get(name, 0) + 1

    def _degraded(self, dataset: ReferenceDataset) -> tuple[str, Any]:
        previous = self._entries.get(dataset.name)
        if previous is not None:
            return "stale", previous.value
        if dataset.fallback is not None:
            return "fallback", dataset.fallback
        return "none", None

    async def _refresh(self, dataset: ReferenceDataset) -> Any:
        try:
            value = await asyncio.wait_for(dataset.loader(self), timeout=self._refresh_timeout)
        except Exception as exc:
            REFERENCE_REFRESHES.labels(dataset=dataset.name, outcome="failed").inc()
            source, value = self._degraded(dataset)
            logger.warning(
                "reference_refresh_failed",
                dataset=dataset.name,
                error=repr(exc),
                serving=source,
            )
            return value

        self._entries[dataset.name] = CacheEntry(value=value, refreshed_at=self._clock())
        REFERENCE_REFRESHES.labels(dataset=dataset.name, outcome="success").inc()
        logger.info("reference_refreshed", dataset=dataset.name)
        return value


# ── Data Dragon datasets ────────────────────────────────────────────────
async def load_latest_version(cache: ReferenceDataCache) -> str:
    result = await cache.client.fetch(f"{DDRAGON_BASE}/api/versions.json", schema=VERSION_LIST)
    if result.is_absent or not result.body:
        raise ReferenceUnavailable("versions.json returned no versions")
    return result.body[0]


def build_champion_table(champions: ChampionFile) -> dict[int, ChampionRef]:
    """Key the table by numeric champion id. A repeated id keeps the last entry seen."""
    table: dict[int, ChampionRef] = {}
    for champ in champions.data.values():
        table[champ.key] = ChampionRef(id=champ.id, name=champ.name)
    return table


async def load_champion_table(cache: ReferenceDataCache) -> dict[int, ChampionRef]:
    version = await cache.get(DDRAGON_VERSION)
    if not version:
        raise ReferenceUnavailable("no Data Dragon version available")
    result = await cache.client.fetch(
        f"{DDRAGON_BASE}/cdn/{version}/data/en_US/champion.json",
        schema=_CHAMPION_FILE,
    )
    if result.is_absent:
        raise ReferenceUnavailable(f"champion.json missing for {version}")
    return build_champion_table(result.body)


def champion_icon_url(dd_version: str, champion_key: str) -> str:
    return f"{DDRAGON_BASE}/cdn/{dd_version}/img/champion/{champion_key}.png"


def build_reference_cache(
    client: ResilientFetchClient,
    *,
    fallback_version: Optional[str] = None,
    clock: Callable[[], float] = time.monotonic,
    refresh_timeout_s: float = DEFAULT_REFRESH_TIMEOUT_S,
) -> ReferenceDataCache:
    """Cache with the Data Dragon version and champion datasets registered."""
    cache = ReferenceDataCache(client, clock=clock, refresh_timeout_s=refresh_timeout_s)
    cache.register(ReferenceDataset(DDRAGON_VERSION, VERSION_TTL_S, load_latest_version, fallback_version))
    cache.register(ReferenceDataset(CHAMPIONS, CHAMPIONS_TTL_S, load_champion_table))
    return cache
