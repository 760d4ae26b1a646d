# reorder_forecast/core/priority.py
import math
from datetime import datetime
from typing import List, Tuple

from ..models import PriorityLevel
from ..utils.date_utils import days_between
from ..utils.math_utils import coefficient_of_variation

DEFAULT_PRIORITY_THRESHOLDS = (7, 14, 21)

# (minimum history count, confidence %), checked from the top
CONFIDENCE_TIERS = [
    (20, 95.0),
    (10, 85.0),
    (5, 70.0),
    (3, 50.0),
    (0, 30.0),
]

MAX_CONFIDENCE = 95.0
DEFAULT_VARIATION_FACTOR = 0.5
MAX_VARIATION_FACTOR = 0.5
LOW_CONFIDENCE_LIMIT = 50.0


def calculate_priority(
    placement_date: datetime,
    reference_date: datetime,
    thresholds: Tuple[int, int, int] = DEFAULT_PRIORITY_THRESHOLDS
) -> int:
    """Priority tier from the days left until the placement date.

    Args:
        placement_date: Optimal order placement date
        reference_date: Date the urgency is measured from
        thresholds: Upper bounds in days for priorities 2, 3 and 4

    Returns:
        1 (overdue) to 5 (three weeks or more away)
    """
    days_until_placement = days_between(reference_date, placement_date)
    high, medium, low = thresholds

    if days_until_placement < 0:
        return PriorityLevel.OVERDUE.value
    elif days_until_placement < high:
        return PriorityLevel.URGENT.value
    elif days_until_placement < medium:
        return PriorityLevel.SOON.value
    elif days_until_placement < low:
        return PriorityLevel.PLANNED.value
    else:
        return PriorityLevel.LATER.value


def demote_priority(priority: int, confidence: float) -> int:
    """Lower the urgency by one tier when confidence is below 50%."""
    if confidence < LOW_CONFIDENCE_LIMIT:
        return min(PriorityLevel.LATER.value, priority + 1)
    return priority


def calculate_base_confidence(history_count: int) -> float:
    """Confidence percentage from the amount of order history."""
    for min_count, confidence in CONFIDENCE_TIERS:
        if history_count >= min_count:
            return confidence
    return CONFIDENCE_TIERS[-1][1]


def calculate_projection_confidence(
    base_confidence: float,
    projection_index: int,
    step: float = 10.0,
    floor: float = 50.0
) -> float:
    """Confidence of the i-th successive projection (1-based)."""
    return max(floor, base_confidence - step * projection_index)


def calculate_variation_factor(intervals: List[float]) -> float:
    """Penalty in [0, 0.5] for irregular ordering cadence.

    Args:
        intervals: Days between consecutive orders

    Returns:
        Half the coefficient of variation of the intervals, capped at 0.5;
        0.5 with fewer than two intervals or a zero mean
    """
    if len(intervals) < 2:
        return DEFAULT_VARIATION_FACTOR

    cv = coefficient_of_variation(intervals)
    if math.isnan(cv):
        return DEFAULT_VARIATION_FACTOR

    return min(MAX_VARIATION_FACTOR, cv / 2)


def calculate_adjusted_confidence(history_count: int, intervals: List[float]) -> float:
    """Base confidence reduced by the variation factor, capped at 95%."""
    base_confidence = calculate_base_confidence(history_count)
    variation_factor = calculate_variation_factor(intervals)

    return min(MAX_CONFIDENCE, base_confidence * (1 - variation_factor))
