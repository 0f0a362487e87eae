"""Market data models for the synthetic feed."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

BAR_PERIOD_SECONDS = 300


def bucket_time(unix_seconds: int, period: int = BAR_PERIOD_SECONDS) -> int:
    """Floor a unix timestamp to the start of its bar bucket."""
    return (int(unix_seconds) // period) * period


class RegimeKind(str, Enum):
    RANGE = "RANGE"
    TREND = "TREND"
    SPIKE = "SPIKE"


@dataclass(frozen=True)
class Tick:
    time: int
    price: float


@dataclass(frozen=True)
class Bar:
    time: int
    open: float
    high: float
    low: float
    close: float


@dataclass
class Regime:
    kind: RegimeKind
    drift: float
    volatility: float
    ticks_remaining: int

    @property
    def expired(self) -> bool:
        return self.ticks_remaining <= 0
