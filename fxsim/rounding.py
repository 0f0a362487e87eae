"""Half-away-from-zero rounding shared by prices and lot sizes."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

PRICE_DIGITS = 5
LOT_DIGITS = 2


def round_half_away(value: float, digits: int) -> float:
    """Round at 10**-digits, ties away from zero.

    The float's shortest repr is quantized, so 1.000005 rounds to 1.00001
    even though its binary value sits slightly below the tie.
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_price(value: float) -> float:
    return round_half_away(value, PRICE_DIGITS)


def round_lots(value: float) -> float:
    return round_half_away(value, LOT_DIGITS)
