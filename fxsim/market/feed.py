"""Uniform subscribe/stop contract shared by simulated and live feeds."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from .models import Tick

TickCallback = Callable[[Tick], None]


class TransportFailure(Exception):
    """External feed could not connect, authenticate or be parsed."""


class MarketFeed(ABC):
    """A source of ticks delivered one at a time to a single subscriber.

    Implementations never call back before ``subscribe``; ``stop`` must be
    safe whether or not ``subscribe`` was called, and more than once.
    """

    @abstractmethod
    def subscribe(self, on_tick: TickCallback) -> None:
        """Register the tick callback and start delivery."""

    @abstractmethod
    def stop(self) -> None:
        """Halt delivery; no callback fires after this returns."""
