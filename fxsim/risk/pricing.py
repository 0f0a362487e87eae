"""Price, percent and lot helpers for stop-loss and take-profit levels."""
from __future__ import annotations

import math

from fxsim.rounding import round_lots

from .models import LevelKind, Side

MIN_PERCENT = 0.1
MAX_PERCENT = 100.0
SLIDER_MAX = 100.0
LOTS_MIN = 0.1
LOTS_MAX = 5.0
LEVEL_LOTS_MIN = 0.01
MIN_LEVEL_PRICE = 0.00001


def slider_to_percent(slider_value: float) -> float:
    """Map a linear 0-100 slider onto a logarithmic 0.1%-100% distance."""
    ratio = MAX_PERCENT / MIN_PERCENT
    return MIN_PERCENT * math.pow(ratio, slider_value / SLIDER_MAX)


def percent_to_slider(percent: float) -> float:
    ratio = MAX_PERCENT / MIN_PERCENT
    return (math.log(percent / MIN_PERCENT) / math.log(ratio)) * SLIDER_MAX


def clamp_percent(percent: float) -> float:
    return max(MIN_PERCENT, min(MAX_PERCENT, percent))


def is_valid_level_price(side: Side, kind: LevelKind, entry_price: float, price: float) -> bool:
    """Stops sit on the losing side of entry, targets on the winning side."""
    if not math.isfinite(price) or price <= 0:
        return False
    if side == Side.BUY:
        if kind == LevelKind.STOP_LOSS:
            return price < entry_price
        return price > entry_price
    if kind == LevelKind.STOP_LOSS:
        return price > entry_price
    return price < entry_price


def level_price_from_percent(entry_price: float, side: Side, kind: LevelKind, percent: float) -> float:
    """Price ``percent`` away from entry on the side ``kind`` belongs to.

    Prices below entry are floored one price step above zero, so a 100% stop
    on a BUY stays a valid level.
    """
    multiplier = percent / 100
    below = (side == Side.BUY) == (kind == LevelKind.STOP_LOSS)
    if below:
        return max(MIN_LEVEL_PRICE, entry_price * (1 - multiplier))
    return entry_price * (1 + multiplier)


def percent_from_level_price(entry_price: float, side: Side, kind: LevelKind, price: float) -> float:
    """Inverse of ``level_price_from_percent``, clamped to the slider domain."""
    if entry_price <= 0:
        return MIN_PERCENT
    below = (side == Side.BUY) == (kind == LevelKind.STOP_LOSS)
    if below:
        pct = (entry_price - price) / entry_price * 100
    else:
        pct = (price - entry_price) / entry_price * 100
    return clamp_percent(pct)


def normalize_trade_lots(lots: float) -> float:
    """Round a trade size to 0.01 lots within [LOTS_MIN, LOTS_MAX]."""
    return min(LOTS_MAX, max(LOTS_MIN, round_lots(lots)))
