"""Synthetic and live market data feeds."""

from .aggregator import BarAggregator
from .config import FeedConfig, RegimeSpec, default_regimes
from .feed import MarketFeed, TickCallback, TransportFailure
from .generator import TickGenerator, create_tick_generator
from .history import generate_bars
from .models import BAR_PERIOD_SECONDS, Bar, Regime, RegimeKind, Tick, bucket_time
from .polygon import PolygonForexFeed, create_live_feed, fetch_polygon_m5_bars
from .regime import PriceProcess, sample_regime, seeded_uniform, standard_normal, step

__all__ = [
    "BAR_PERIOD_SECONDS",
    "Bar",
    "BarAggregator",
    "FeedConfig",
    "MarketFeed",
    "PolygonForexFeed",
    "PriceProcess",
    "Regime",
    "RegimeKind",
    "RegimeSpec",
    "Tick",
    "TickCallback",
    "TickGenerator",
    "TransportFailure",
    "bucket_time",
    "create_live_feed",
    "create_tick_generator",
    "default_regimes",
    "fetch_polygon_m5_bars",
    "generate_bars",
    "sample_regime",
    "seeded_uniform",
    "standard_normal",
    "step",
]
