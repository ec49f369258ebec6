"""Numeric helpers shared by the formula modules."""

import math
from decimal import ROUND_HALF_UP, Decimal


def precision_round(value: float | None, precision: int = 0) -> float | None:
    """Round half-up to ``precision`` decimal places.

    Non-finite values and None pass through unchanged.
    """
    if value is None or math.isinf(value) or math.isnan(value):
        return value
    quantum = Decimal(1).scaleb(-precision)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def calc_percent(value: float, total: float) -> float:
    """Return ``value`` as a percentage of ``total`` (0 when total is falsy)."""
    if not total:
        return 0.0
    return value / total * 100
