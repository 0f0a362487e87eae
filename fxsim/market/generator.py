"""Timer-driven synthetic tick stream."""
from __future__ import annotations

import asyncio
from pathlib import Path
import time
from typing import Callable

from fxsim.logging_utils import log_line

from .config import FeedConfig
from .feed import MarketFeed, TickCallback
from .models import Tick
from .regime import PriceProcess, Uniform


class TickGenerator(MarketFeed):
    """Emits one tick per ``interval_seconds`` to the current subscriber.

    Each firing advances simulated time by ``time_step_seconds`` and the price
    by one process step. The cadence runs as an asyncio task, so ``subscribe``
    must be called from inside a running event loop.
    """

    def __init__(
        self,
        process: PriceProcess,
        *,
        start_time: int | None = None,
        clock: Callable[[], float] = time.time,
        log_path: str | Path | None = None,
    ) -> None:
        self.process = process
        self._time = int(start_time if start_time is not None else clock())
        self._on_tick: TickCallback | None = None
        self._task: asyncio.Task | None = None
        self._log_path = log_path

    @property
    def running(self) -> bool:
        return self._task is not None

    def subscribe(self, on_tick: TickCallback) -> None:
        if self._on_tick is not None:
            log_line("[generator] subscriber replaced", self._log_path)
        self._on_tick = on_tick
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        self._on_tick = None
        task, self._task = self._task, None
        if task is not None:
            task.cancel()

    def _next_tick(self) -> Tick:
        price = self.process.advance()
        self._time += self.process.config.time_step_seconds
        return Tick(time=self._time, price=price)

    async def _run(self) -> None:
        interval = self.process.config.interval_seconds
        try:
            while True:
                await asyncio.sleep(interval)
                on_tick = self._on_tick
                if on_tick is None:
                    return
                on_tick(self._next_tick())
        except Exception as exc:
            log_line(f"[generator] subscriber failed: {exc!r}", self._log_path)
            raise
        finally:
            if self._task is asyncio.current_task():
                self._task = None


def create_tick_generator(
    config: FeedConfig | None = None,
    *,
    uniform: Uniform | None = None,
    process: PriceProcess | None = None,
    start_time: int | None = None,
    log_path: str | Path | None = None,
) -> TickGenerator:
    """Build an independent generator handle.

    Pass the ``process`` used by ``generate_bars`` to continue the seeded
    price path.
    """
    if process is None:
        process = PriceProcess(config, uniform)
    return TickGenerator(process, start_time=start_time, log_path=log_path)
