# reorder_forecast/utils/math_utils.py
import math
from typing import List

import numpy as np
from scipy import stats


def mean(values: List[float]) -> float:
    """Arithmetic mean, 0 for an empty list."""
    if not values:
        return 0.0
    return float(np.mean(values))


def coefficient_of_variation(values: List[float]) -> float:
    """Population standard deviation divided by the mean.

    Args:
        values: Observations

    Returns:
        Coefficient of variation, NaN when the mean is zero
    """
    if not values:
        return float('nan')
    if np.mean(values) == 0:
        return float('nan')
    return float(stats.variation(values, ddof=0))


def safe_denominator(value: float) -> float:
    """Floor a quantity at 1 for ratio computations."""
    return max(value, 1.0)


def round_up_quantity(value: float) -> float:
    """Round a quantity up to the next whole unit."""
    return float(math.ceil(value))

