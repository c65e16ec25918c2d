"""
Ranked season windows.
A window is an inclusive start instant with an implicit end of "now".
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

SEASON_STARTS: list[dict] = [
    {"season": 2024, "start": "2024-01-10T20:00:00.000Z"},
    {"season": 2025, "start": "2025-01-08T20:00:00.000Z"},
    {
        "season": 2026,
        "start": "2026-01-08T20:00:00.000Z",
        "regions": {
            "OCE": "2026-01-08T01:00:00.000Z",
            "OC1": "2026-01-08T01:00:00.000Z",
            "JP": "2026-01-08T03:00:00.000Z",
            "JP1": "2026-01-08T03:00:00.000Z",
            "KR": "2026-01-08T03:00:00.000Z",
            "CN": "2026-01-08T04:00:00.000Z",
            "EUNE": "2026-01-08T11:00:00.000Z",
            "EUN1": "2026-01-08T11:00:00.000Z",
            "EUW": "2026-01-08T12:00:00.000Z",
            "EUW1": "2026-01-08T12:00:00.000Z",
            "RU": "2026-01-08T09:00:00.000Z",
            "TR": "2026-01-08T09:00:00.000Z",
            "LAS": "2026-01-08T15:00:00.000Z",
            "LA2": "2026-01-08T15:00:00.000Z",
            "BR": "2026-01-08T15:00:00.000Z",
            "BR1": "2026-01-08T15:00:00.000Z",
            "LAN": "2026-01-08T18:00:00.000Z",
            "LA1": "2026-01-08T18:00:00.000Z",
            "NA": "2026-01-08T20:00:00.000Z",
            "NA1": "2026-01-08T20:00:00.000Z",
        },
    },
]


def parse_instant(text: str) -> datetime:
    """Parse ISO-8601 text into an aware UTC datetime. Naive values are taken as UTC."""
    raw = (text or "").strip()
    if not raw:
        raise ValueError("empty timestamp")
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class SeasonWindow:
    start: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None:
            raise ValueError("season start must be timezone-aware")
        if self.start > datetime.now(timezone.utc):
            raise ValueError(f"season start {self.start.isoformat()} is in the future")

    @classmethod
    def from_iso(cls, text: str) -> "SeasonWindow":
        return cls(parse_instant(text))

    @property
    def start_ms(self) -> int:
        return int(self.start.timestamp() * 1000)

    @property
    def start_unix(self) -> int:
        return self.start_ms // 1000

    @property
    def start_iso(self) -> str:
        return self.start.isoformat().replace("+00:00", "Z")


def _season_table(region: Optional[str]) -> list[tuple[int, datetime]]:
    code = (region or "").strip().upper()
    rows = sorted(SEASON_STARTS, key=lambda r: r["season"])
    return [
        (row["season"], parse_instant(row.get("regions", {}).get(code) or row["start"]))
        for row in rows
    ]


def _season_from_version(dd_version: Optional[str]) -> Optional[int]:
    """Patch 16.x belongs to the 2026 season."""
    if not dd_version:
        return None
    try:
        major = int(dd_version.split(".")[0])
    except ValueError:
        return None
    return 2010 + major if major > 0 else None


def resolve_season_start(
    region: Optional[str] = None,
    now: Optional[datetime] = None,
    dd_version: Optional[str] = None,
    override: Optional[str] = None,
) -> str:
    """
    Resolve the current season start as ISO text.

    An explicit override wins. Otherwise the season containing `now` is taken
    from the table, unless the Data Dragon patch names a season at least as new.
    """
    if override:
        return parse_instant(override).isoformat().replace("+00:00", "Z")

    now = now or datetime.now(timezone.utc)
    table = _season_table(region)

    by_date = table[0]
    for season, start in table:
        if start <= now:
            by_date = (season, start)

    chosen = by_date
    version_season = _season_from_version(dd_version)
    if version_season is not None and version_season >= by_date[0]:
        chosen = next(
            (row for row in table if row[0] == version_season and row[1] <= now),
            by_date,
        )

    return chosen[1].isoformat().replace("+00:00", "Z")
