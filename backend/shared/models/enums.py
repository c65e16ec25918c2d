"""Domain enumerations for Ladderwatch."""
from __future__ import annotations

from enum import Enum


class Queue(str, Enum):
    """Ranked queues tracked locally. Value is the CLI/API name."""
    RANKED_SOLO = "solo"
    RANKED_FLEX = "flex"

    @property
    def queue_id(self) -> int:
        return {Queue.RANKED_SOLO: 420, Queue.RANKED_FLEX: 440}[self]

    @property
    def queue_type(self) -> str:
        return {Queue.RANKED_SOLO: "RANKED_SOLO_5x5", Queue.RANKED_FLEX: "RANKED_FLEX_SR"}[self]


class EndType(str, Enum):
    NORMAL = "NORMAL"
    REMAKE = "REMAKE"
    EARLY_SURRENDER = "EARLY_SURRENDER"
    SURRENDER = "SURRENDER"


class RegionalRouting(str, Enum):
    AMERICAS = "americas"
    EUROPE = "europe"
    ASIA = "asia"
    SEA = "sea"
