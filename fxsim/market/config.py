"""Configuration for the synthetic price process."""
from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Mapping

from .models import RegimeKind


@dataclass(frozen=True)
class RegimeSpec:
    """Sampling ranges for one regime kind.

    drift is an absolute range; signed kinds draw the sign separately.
    """

    probability: float
    drift: tuple[float, float]
    volatility: tuple[float, float]
    duration: tuple[int, int]
    signed: bool = False


def default_regimes() -> dict[RegimeKind, RegimeSpec]:
    return {
        RegimeKind.RANGE: RegimeSpec(
            probability=0.70,
            drift=(0.0, 0.0),
            volatility=(0.000010, 0.000030),
            duration=(60, 240),
        ),
        RegimeKind.TREND: RegimeSpec(
            probability=0.25,
            drift=(0.000002, 0.000008),
            volatility=(0.000015, 0.000040),
            duration=(30, 120),
            signed=True,
        ),
        RegimeKind.SPIKE: RegimeSpec(
            probability=0.05,
            drift=(0.0, 0.000020),
            volatility=(0.000080, 0.000200),
            duration=(3, 10),
            signed=True,
        ),
    }


@dataclass(frozen=True)
class FeedConfig:
    base_price: float = 1.08
    initial_price: float | None = None
    min_price: float = 1.05
    max_price: float = 1.15
    max_move_per_tick: float = 0.0005
    interval_seconds: float = 0.3
    time_step_seconds: int = 1
    mean_reversion: float = 0.01
    volatility_floor: float = 0.000005
    regimes: Mapping[RegimeKind, RegimeSpec] = field(default_factory=default_regimes)

    @property
    def start_price(self) -> float:
        if self.initial_price is not None:
            return self.initial_price
        return self.base_price

    @classmethod
    def from_env(cls) -> "FeedConfig":
        def _env(key: str, default: str) -> str:
            return os.getenv(key, default)

        initial = os.getenv("FEED_INITIAL_PRICE")
        return cls(
            base_price=float(_env("FEED_BASE_PRICE", str(cls.base_price))),
            initial_price=float(initial) if initial else None,
            min_price=float(_env("FEED_MIN_PRICE", str(cls.min_price))),
            max_price=float(_env("FEED_MAX_PRICE", str(cls.max_price))),
            max_move_per_tick=float(_env("FEED_MAX_MOVE_PER_TICK", str(cls.max_move_per_tick))),
            interval_seconds=float(_env("FEED_INTERVAL_SECONDS", str(cls.interval_seconds))),
            time_step_seconds=int(_env("FEED_TIME_STEP_SECONDS", str(cls.time_step_seconds))),
            mean_reversion=float(_env("FEED_MEAN_REVERSION", str(cls.mean_reversion))),
            volatility_floor=float(_env("FEED_VOLATILITY_FLOOR", str(cls.volatility_floor))),
        )
