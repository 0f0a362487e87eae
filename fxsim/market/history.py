"""Seed the chart with finalized bars from the same price process."""
from __future__ import annotations

import time

from .config import FeedConfig
from .models import BAR_PERIOD_SECONDS, Bar, bucket_time
from .regime import PriceProcess, Uniform


def generate_bars(
    count: int,
    config: FeedConfig | None = None,
    *,
    now: int | None = None,
    uniform: Uniform | None = None,
    process: PriceProcess | None = None,
) -> list[Bar]:
    """Return ``count`` closed 5-minute bars ending before the current bucket.

    The process advances once per simulated second. When a ``process`` is
    supplied it is advanced in place, so a generator built on it continues
    exactly where the last bar closed; a ``config`` passed alongside it must
    match the process config.
    """
    if count < 0:
        raise ValueError("count must be non-negative")
    if process is not None and config is not None and config != process.config:
        raise ValueError("config conflicts with the supplied process")
    if process is None:
        process = PriceProcess(config, uniform)
    now_sec = int(now if now is not None else time.time())
    start = bucket_time(now_sec) - count * BAR_PERIOD_SECONDS

    bars: list[Bar] = []
    price = process.price
    for index in range(count):
        open_price = price
        high = price
        low = price
        for _ in range(BAR_PERIOD_SECONDS):
            price = process.advance()
            high = max(high, price)
            low = min(low, price)
        bars.append(
            Bar(
                time=start + index * BAR_PERIOD_SECONDS,
                open=open_price,
                high=high,
                low=low,
                close=price,
            )
        )
    return bars
