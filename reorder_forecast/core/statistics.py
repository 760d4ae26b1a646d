# reorder_forecast/core/statistics.py
from dataclasses import replace
from typing import List

import numpy as np

from ..models import UnifiedProduct
from ..utils.date_utils import consecutive_gaps
from ..utils.math_utils import mean

DEFAULT_DELIVERY_TIME = 14.0
MIN_POINTS_FOR_OUTLIER_FILTER = 4
IQR_MULTIPLIER = 1.5


def filter_outliers(
    values: List[float],
    min_points: int = MIN_POINTS_FOR_OUTLIER_FILTER,
    multiplier: float = IQR_MULTIPLIER
) -> List[float]:
    """Remove outliers using Tukey's IQR fences.

    Quartiles are linearly interpolated at positions (n-1)*0.25 and
    (n-1)*0.75 of the sorted values.

    Args:
        values: Observations
        min_points: Minimum number of observations needed to filter
        multiplier: Fence multiplier applied to the IQR

    Returns:
        Values within [Q1 - k*IQR, Q3 + k*IQR], sorted ascending; the input
        unchanged when there are fewer than min_points observations
    """
    if len(values) < min_points:
        return list(values)

    sorted_values = sorted(values)
    q1, q3 = np.percentile(sorted_values, [25, 75], method='linear')
    iqr = q3 - q1

    lower_bound = q1 - multiplier * iqr
    upper_bound = q3 + multiplier * iqr

    return [v for v in sorted_values if lower_bound <= v <= upper_bound]


def robust_mean(
    values: List[float],
    min_points: int = MIN_POINTS_FOR_OUTLIER_FILTER,
    multiplier: float = IQR_MULTIPLIER
) -> float:
    """Mean after outlier filtering, falling back to the plain mean."""
    filtered = filter_outliers(values, min_points, multiplier)
    if filtered:
        return mean(filtered)
    return mean(values)


def calculate_order_intervals(product: UnifiedProduct) -> List[float]:
    """Days between consecutive orders of a product, in date order."""
    return consecutive_gaps(line.order_date for line in product.sorted_history())


def calculate_delivery_times(product: UnifiedProduct) -> List[float]:
    """Lead times in days for the lines that have a delivery date."""
    return [
        line.delivery_days for line in product.order_history
        if line.delivery_date is not None
    ]


def compute_statistics(
    product: UnifiedProduct,
    default_delivery_time: float = DEFAULT_DELIVERY_TIME,
    min_points: int = MIN_POINTS_FOR_OUTLIER_FILTER,
    multiplier: float = IQR_MULTIPLIER
) -> UnifiedProduct:
    """Compute interval, quantity, delivery time and last order date.

    Args:
        product: Product with a non-empty order history
        default_delivery_time: Lead time used when no delivery dates exist
        min_points: Minimum observations for outlier filtering
        multiplier: IQR fence multiplier

    Returns:
        Copy of the product with updated statistics
    """
    if not product.order_history:
        return product

    sorted_history = product.sorted_history()

    intervals = consecutive_gaps(line.order_date for line in sorted_history)
    average_interval = robust_mean(intervals, min_points, multiplier) if intervals else 0.0

    average_quantity = mean([line.ordered_quantity for line in sorted_history])

    delivery_times = calculate_delivery_times(product)
    if delivery_times:
        average_delivery = robust_mean(delivery_times, min_points, multiplier)
    else:
        average_delivery = default_delivery_time

    return replace(
        product,
        average_order_interval=average_interval,
        average_order_quantity=average_quantity,
        average_delivery_time=average_delivery,
        last_order_date=sorted_history[-1].order_date,
    )
