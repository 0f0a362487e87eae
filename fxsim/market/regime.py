"""Regime-switching price process.

A regime (RANGE, TREND or SPIKE) fixes the drift and starting volatility of
the per-tick increment for a sampled number of ticks. When it expires a new
one is drawn from the probability table; the same kind may be drawn again.
Every random draw goes through an injected ``uniform`` callable returning a
float in [0, 1), so a seeded source reproduces the exact price path.
"""
from __future__ import annotations

import math
import random
from typing import Callable, Mapping

from fxsim.rounding import round_price

from .config import FeedConfig, RegimeSpec
from .models import Regime, RegimeKind

Uniform = Callable[[], float]

VOLATILITY_KEEP = 0.9
VOLATILITY_REALIZED = 0.1


def seeded_uniform(seed: int | None = None) -> Uniform:
    return random.Random(seed).random


def _between(uniform: Uniform, low: float, high: float) -> float:
    return low + (high - low) * uniform()


def _pick_kind(draw: float, regimes: Mapping[RegimeKind, RegimeSpec]) -> RegimeKind:
    cumulative = 0.0
    last = None
    for kind, spec in regimes.items():
        cumulative += spec.probability
        last = kind
        if draw < cumulative:
            return kind
    if last is None:
        raise ValueError("regime table is empty")
    return last


def sample_regime(uniform: Uniform, regimes: Mapping[RegimeKind, RegimeSpec]) -> Regime:
    """Draw a fresh regime.

    Always consumes five draws in the order kind, sign, drift, volatility,
    duration, whatever kind is chosen.
    """
    kind = _pick_kind(uniform(), regimes)
    spec = regimes[kind]
    sign_draw = uniform()
    drift = _between(uniform, *spec.drift)
    volatility = _between(uniform, *spec.volatility)
    low, high = spec.duration
    duration = low + min(int(uniform() * (high - low + 1)), high - low)
    if spec.signed and sign_draw < 0.5:
        drift = -drift
    return Regime(kind=kind, drift=drift, volatility=volatility, ticks_remaining=duration)


def standard_normal(uniform: Uniform) -> float:
    """Box-Muller transform over two independent uniform draws."""
    u1 = 1.0 - uniform()
    u2 = uniform()
    return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def step(price: float, regime: Regime, config: FeedConfig, uniform: Uniform) -> float:
    """Advance the price by one tick under ``regime``.

    Mutates the regime's volatility (0.9 old / 0.1 realized noise) and
    decrements its remaining duration. The returned price is rounded to
    5 digits and lies in [min_price, max_price].
    """
    noise = regime.volatility * standard_normal(uniform)
    increment = _clamp(
        regime.drift + noise,
        -config.max_move_per_tick,
        config.max_move_per_tick,
    )
    next_price = price + increment
    if regime.kind == RegimeKind.RANGE:
        next_price += (config.base_price - next_price) * config.mean_reversion
    next_price = _clamp(round_price(next_price), config.min_price, config.max_price)

    regime.volatility = max(
        config.volatility_floor,
        VOLATILITY_KEEP * regime.volatility + VOLATILITY_REALIZED * abs(noise),
    )
    regime.ticks_remaining -= 1
    return next_price


class PriceProcess:
    """Owns the current price and regime of one synthetic instrument."""

    def __init__(
        self,
        config: FeedConfig | None = None,
        uniform: Uniform | None = None,
        price: float | None = None,
    ) -> None:
        self.config = config or FeedConfig()
        self.uniform = uniform or seeded_uniform()
        self.price = round_price(price if price is not None else self.config.start_price)
        self.regime = sample_regime(self.uniform, self.config.regimes)

    def advance(self) -> float:
        if self.regime.expired:
            self.regime = sample_regime(self.uniform, self.config.regimes)
        self.price = step(self.price, self.regime, self.config, self.uniform)
        return self.price
