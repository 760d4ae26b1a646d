# reorder_forecast/core/trend.py
from typing import List

from ..models import OrderLine
from ..utils.math_utils import safe_denominator

STABLE_VOLUME_THRESHOLD = 10.0


def relative_change(sorted_history: List[OrderLine]) -> float:
    """Relative change between the first and last ordered quantities.

    Args:
        sorted_history: Order lines sorted by order date

    Returns:
        (last - first) / max(first, 1); 0 for fewer than two lines
    """
    if len(sorted_history) < 2:
        return 0.0

    first_quantity = sorted_history[0].ordered_quantity
    last_quantity = sorted_history[-1].ordered_quantity

    return (last_quantity - first_quantity) / safe_denominator(first_quantity)


def trend_factor(sorted_history: List[OrderLine]) -> float:
    """Relative change per order interval.

    Only the endpoints are used, so a noisy first or last order skews the
    result.

    Args:
        sorted_history: Order lines sorted by order date

    Returns:
        Relative change divided by the number of intervals; 0 for fewer
        than two lines
    """
    if len(sorted_history) < 2:
        return 0.0

    return relative_change(sorted_history) / (len(sorted_history) - 1)


def describe_volume_trend(
    sorted_history: List[OrderLine],
    stable_threshold: float = STABLE_VOLUME_THRESHOLD
) -> str:
    """Human readable note on how order volumes evolved."""
    if len(sorted_history) < 2:
        return "Not enough data to analyze the order volume trend."

    change = relative_change(sorted_history)

    if abs(change) * 100 < stable_threshold:
        return "Order volumes are stable."
    elif change > 0:
        return f"Order volumes are growing by {round(change * 100)}%."
    else:
        return f"Order volumes are declining by {round(abs(change) * 100)}%."
