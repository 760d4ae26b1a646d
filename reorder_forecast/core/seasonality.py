# reorder_forecast/core/seasonality.py
from dataclasses import replace
from typing import List

import numpy as np

from ..models import MONTHS_IN_YEAR, OrderLine, UnifiedProduct

MIN_HISTORY_FOR_SEASONALITY = 12
NEUTRAL_COEFFICIENT = 1.0


def flat_profile(value: float = NEUTRAL_COEFFICIENT) -> List[float]:
    """Seasonality profile with no seasonal effect."""
    return [value] * MONTHS_IN_YEAR


def calculate_monthly_coefficients(history: List[OrderLine]) -> List[float]:
    """Ratio of each calendar month's mean quantity to the overall mean.

    Months are taken from the order date regardless of year. Months without
    observations get a neutral coefficient; coefficients are not clamped.

    Args:
        history: Order lines

    Returns:
        Twelve coefficients, index 0 = January
    """
    if not history:
        return flat_profile()

    quantities = np.array([line.ordered_quantity for line in history], dtype=float)
    months = np.array([line.order_date.month - 1 for line in history])

    monthly_totals = np.bincount(months, weights=quantities, minlength=MONTHS_IN_YEAR)
    monthly_counts = np.bincount(months, minlength=MONTHS_IN_YEAR)

    overall_average = quantities.mean()

    coefficients = flat_profile()
    for month in range(MONTHS_IN_YEAR):
        if monthly_counts[month] > 0 and overall_average > 0:
            coefficients[month] = float(monthly_totals[month] / monthly_counts[month] / overall_average)

    return coefficients


def compute_seasonality(
    product: UnifiedProduct,
    min_history: int = MIN_HISTORY_FOR_SEASONALITY
) -> UnifiedProduct:
    """Compute the monthly seasonality profile of a product.

    Args:
        product: Product to analyze
        min_history: Number of order lines needed for a seasonal signal

    Returns:
        Copy of the product with updated coefficients
    """
    if len(product.order_history) < min_history:
        coefficients = flat_profile()
    else:
        coefficients = calculate_monthly_coefficients(product.order_history)

    return replace(product, seasonality_coefficients=coefficients)
