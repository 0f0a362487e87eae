import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
LOGS_DIR = Path(os.getenv("LOGS_DIR", str(BASE_DIR / "logs")))

POLYGON_API_KEY = os.getenv("POLYGON_API_KEY") or None
DATA_SOURCE = os.getenv("DATA_SOURCE", "simulated")
FOREX_PAIR = os.getenv("FOREX_PAIR", "EUR-USD")
POLYGON_TICKER = os.getenv("POLYGON_TICKER", "C:EURUSD")

DATA_SOURCES = {"simulated", "live"}


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


SEED_BAR_COUNT = _get_int("SEED_BAR_COUNT", 24)
MAX_SEED_BAR_COUNT = _get_int("MAX_SEED_BAR_COUNT", 500)
DRAG_TOLERANCE = _get_float("DRAG_TOLERANCE", 0.00005)
