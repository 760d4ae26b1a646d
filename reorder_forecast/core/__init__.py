from .similarity import similarity, levenshtein_distance, is_similar
from .statistics import compute_statistics, filter_outliers, calculate_order_intervals
from .seasonality import compute_seasonality, calculate_monthly_coefficients
from .trend import trend_factor, relative_change, describe_volume_trend
from .priority import (
    calculate_priority, demote_priority, calculate_base_confidence,
    calculate_projection_confidence, calculate_variation_factor,
    calculate_adjusted_confidence
)
from .projection import derive_next_order, refresh_prediction, calculate_placement_date
from .unification import ProductUnifier, unify_products

__all__ = [
    'similarity',
    'levenshtein_distance',
    'is_similar',
    'compute_statistics',
    'filter_outliers',
    'calculate_order_intervals',
    'compute_seasonality',
    'calculate_monthly_coefficients',
    'trend_factor',
    'relative_change',
    'describe_volume_trend',
    'calculate_priority',
    'demote_priority',
    'calculate_base_confidence',
    'calculate_projection_confidence',
    'calculate_variation_factor',
    'calculate_adjusted_confidence',
    'derive_next_order',
    'refresh_prediction',
    'calculate_placement_date',
    'ProductUnifier',
    'unify_products'
]
