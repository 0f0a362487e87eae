"""Fold ticks into 5-minute OHLC bars."""
from __future__ import annotations

from dataclasses import dataclass

from .models import BAR_PERIOD_SECONDS, Bar, Tick, bucket_time


@dataclass
class _BarState:
    time: int
    open: float
    high: float
    low: float
    close: float

    def snapshot(self) -> Bar:
        return Bar(time=self.time, open=self.open, high=self.high, low=self.low, close=self.close)


class BarAggregator:
    """Holds the in-progress bar.

    ``apply_tick`` returns the bar to hand to the chart; a returned time later
    than ``last_time`` means a new candle was started. Ticks from a bucket
    earlier than the held bar are ignored and the held bar is returned as is.
    """

    def __init__(self, period: int = BAR_PERIOD_SECONDS) -> None:
        self.period = period
        self._state: _BarState | None = None

    @property
    def last_time(self) -> int | None:
        return self._state.time if self._state is not None else None

    @property
    def current(self) -> Bar | None:
        return self._state.snapshot() if self._state is not None else None

    def apply_tick(self, tick: Tick) -> Bar:
        bar_time = bucket_time(tick.time, self.period)
        state = self._state
        if state is None or bar_time > state.time:
            self._state = _BarState(
                time=bar_time,
                open=tick.price,
                high=tick.price,
                low=tick.price,
                close=tick.price,
            )
        elif bar_time == state.time:
            state.high = max(state.high, tick.price)
            state.low = min(state.low, tick.price)
            state.close = tick.price
        return self._state.snapshot()
