from .date_utils import add_days, days_between, consecutive_gaps, start_of_day, convert_to_datetime
from .math_utils import mean, coefficient_of_variation, safe_denominator, round_up_quantity

__all__ = [
    'add_days',
    'days_between',
    'consecutive_gaps',
    'start_of_day',
    'convert_to_datetime',
    'mean',
    'coefficient_of_variation',
    'safe_denominator',
    'round_up_quantity'
]
