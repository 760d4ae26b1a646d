# reorder_forecast/core/projection.py
import math
from dataclasses import replace
from datetime import datetime
from typing import Optional

from ..models import UnifiedProduct
from ..utils.date_utils import add_days, days_between
from ..utils.math_utils import mean, round_up_quantity
from .trend import trend_factor

DELIVERY_SAFETY_MULTIPLIER = 1.2


def calculate_placement_date(
    next_order_date: datetime,
    average_delivery_time: float,
    safety_multiplier: float = DELIVERY_SAFETY_MULTIPLIER
) -> datetime:
    """Latest date to place an order so it arrives before it is needed.

    Args:
        next_order_date: Date the goods are needed
        average_delivery_time: Average lead time in days
        safety_multiplier: Lead time multiplier including the safety margin

    Returns:
        Placement date; the need date itself when the lead time is unknown
    """
    if average_delivery_time > 0:
        return add_days(next_order_date, -average_delivery_time * safety_multiplier)
    return next_order_date


def calculate_recommended_quantity(product: UnifiedProduct, next_order_date: datetime) -> float:
    """Average quantity adjusted for trend and the seasonality of the target month."""
    factor = trend_factor(product.sorted_history())
    seasonal_coefficient = product.seasonal_coefficient(next_order_date.month)

    return round_up_quantity(product.average_order_quantity * (1 + factor) * seasonal_coefficient)


def derive_next_order(
    product: UnifiedProduct,
    safety_multiplier: float = DELIVERY_SAFETY_MULTIPLIER
) -> UnifiedProduct:
    """Predict the next order date, quantity and placement date.

    The average interval is stretched by the seasonality coefficient of the
    last order's month. Products without a positive interval are returned
    unchanged.

    Args:
        product: Product with statistics and seasonality computed
        safety_multiplier: Lead time multiplier including the safety margin

    Returns:
        Copy of the product with the prediction fields set
    """
    if product.last_order_date is None or product.average_order_interval <= 0:
        return product

    last_coefficient = product.seasonal_coefficient(product.last_order_date.month)
    next_order_date = add_days(product.last_order_date, product.average_order_interval * last_coefficient)

    return replace(
        product,
        next_predicted_order_date=next_order_date,
        recommended_quantity=calculate_recommended_quantity(product, next_order_date),
        optimal_order_placement_date=calculate_placement_date(
            next_order_date, product.average_delivery_time, safety_multiplier
        ),
    )


def roll_forward(last_order_date: datetime, interval: float, start_date: datetime) -> datetime:
    """First date on the interval grid after the last order that is not before start_date."""
    next_order_date = add_days(last_order_date, interval)

    if next_order_date < start_date:
        days_since_last_order = days_between(last_order_date, start_date)
        intervals_to_add = math.ceil(days_since_last_order / interval)
        next_order_date = add_days(last_order_date, intervals_to_add * interval)

    return next_order_date


def refresh_prediction(
    product: UnifiedProduct,
    start_date: datetime,
    safety_multiplier: float = DELIVERY_SAFETY_MULTIPLIER
) -> UnifiedProduct:
    """Re-project a stale prediction so it is not before start_date.

    Uses the plain mean gap over the full history (no outlier filtering) and
    the plain mean quantity. Predictions already on or after start_date are
    kept.

    Args:
        product: Product to refresh
        start_date: Start of the forecast period
        safety_multiplier: Lead time multiplier including the safety margin

    Returns:
        Refreshed copy of the product, or the product unchanged
    """
    current = product.next_predicted_order_date
    if current is not None and current >= start_date:
        return product

    sorted_history = product.sorted_history()
    if len(sorted_history) < 2:
        return product

    first_date = sorted_history[0].order_date
    last_date = sorted_history[-1].order_date
    average_interval = days_between(first_date, last_date) / (len(sorted_history) - 1)

    if average_interval <= 0:
        return product

    next_order_date = roll_forward(last_date, average_interval, start_date)

    return replace(
        product,
        next_predicted_order_date=next_order_date,
        recommended_quantity=mean([line.ordered_quantity for line in sorted_history]),
        optimal_order_placement_date=calculate_placement_date(
            next_order_date, product.average_delivery_time, safety_multiplier
        ),
    )


def next_projection_date(current: datetime, interval: Optional[float], fallback_interval: float = 30.0) -> datetime:
    """Date of the following projected order."""
    if interval is None or interval <= 0:
        interval = fallback_interval
    return add_days(current, interval)
