# reorder_forecast/services/recommendation_service.py
import json
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from reorder_forecast.config import ForecastSettings
from reorder_forecast.core.priority import (
    calculate_adjusted_confidence, calculate_priority, demote_priority
)
from reorder_forecast.core.statistics import calculate_order_intervals
from reorder_forecast.exceptions import StorageError
from reorder_forecast.logging_setup import get_logger
from reorder_forecast.models import ForecastResult, UnifiedProduct
from reorder_forecast.services.forecast_service import detailed_notes, sort_by_priority
from reorder_forecast.utils.date_utils import days_between, start_of_day

logger = get_logger(__name__)

# Seasonal coefficients closer than this to 1.0 are not mentioned in notes
SEASONALITY_NOTE_TOLERANCE = 0.1


class RecommendationService:
    """Refines forecasts into order recommendations, batches and calendars."""

    def __init__(
        self,
        settings: Optional[ForecastSettings] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        """Initialize the recommendation service.

        Args:
            settings: Forecast settings (defaults when omitted)
            clock: Callable returning the current time
        """
        self.settings = settings or ForecastSettings()
        self.clock = clock

    def calculate_confidence(self, product: UnifiedProduct) -> float:
        """Confidence from history size, penalized for irregular order intervals."""
        return calculate_adjusted_confidence(product.history_count, calculate_order_intervals(product))

    def generate_order_recommendations(
        self,
        products: List[UnifiedProduct],
        start_date: datetime,
        end_date: datetime
    ) -> List[ForecastResult]:
        """Recommendations for products whose placement date falls in a period.

        Products without a placement date are included. Priority is measured
        from start_date.

        Args:
            products: Analyzed products
            start_date: Start of the period
            end_date: End of the period

        Returns:
            Recommendations sorted by priority, then placement date
        """
        recommendations = []

        for product in products:
            if product.next_predicted_order_date is None:
                continue

            placement = product.optimal_order_placement_date
            if placement is not None and not start_date <= placement <= end_date:
                continue

            if placement is None:
                placement = self.clock()

            recommendations.append(ForecastResult(
                unified_article=product.unified_article,
                product_name=product.primary_name,
                next_order_date=product.next_predicted_order_date,
                recommended_quantity=product.recommended_quantity,
                optimal_order_placement_date=placement,
                priority=calculate_priority(placement, start_date, self.settings.priority_thresholds),
                confidence=self.calculate_confidence(product),
                notes=detailed_notes(product, self.settings, SEASONALITY_NOTE_TOLERANCE),
            ))

        return sort_by_priority(recommendations)

    def refine(
        self,
        forecasts: List[ForecastResult],
        reference_date: Optional[datetime] = None
    ) -> List[ForecastResult]:
        """Recompute priorities, demoting low-confidence forecasts by one tier.

        Args:
            forecasts: Forecasts to refine
            reference_date: Date priorities are measured from (now when omitted)

        Returns:
            New forecasts in the same order
        """
        if reference_date is None:
            reference_date = self.clock()

        thresholds = self.settings.priority_thresholds

        return [
            replace(
                forecast,
                priority=demote_priority(
                    calculate_priority(forecast.optimal_order_placement_date, reference_date, thresholds),
                    forecast.confidence
                )
            )
            for forecast in forecasts
        ]

    def group_by_batches(self, forecasts: List[ForecastResult]) -> List[List[ForecastResult]]:
        """Group forecasts whose placement dates are close together.

        A batch is anchored at its first (earliest) forecast; later forecasts
        join while they are within batch_window_days of the anchor.

        Args:
            forecasts: Forecasts in any order

        Returns:
            Batches in placement date order
        """
        sorted_forecasts = sorted(forecasts, key=lambda f: f.optimal_order_placement_date)
        if not sorted_forecasts:
            return []

        window = self.settings.batch_window_days
        batches = []
        current_batch = [sorted_forecasts[0]]
        anchor = sorted_forecasts[0].optimal_order_placement_date

        for forecast in sorted_forecasts[1:]:
            if days_between(anchor, forecast.optimal_order_placement_date) <= window:
                current_batch.append(forecast)
            else:
                batches.append(current_batch)
                current_batch = [forecast]
                anchor = forecast.optimal_order_placement_date

        batches.append(current_batch)
        return batches

    def create_order_calendar(self, forecasts: List[ForecastResult]) -> Dict[date, List[ForecastResult]]:
        """Bucket forecasts by the calendar date of their placement date."""
        calendar: Dict[date, List[ForecastResult]] = {}
        for forecast in forecasts:
            calendar.setdefault(start_of_day(forecast.optimal_order_placement_date), []).append(forecast)
        return calendar

    def filter_by_confidence(
        self,
        forecasts: List[ForecastResult],
        threshold: Optional[float] = None
    ) -> List[ForecastResult]:
        """Drop forecasts below the confidence threshold (0 disables the filter)."""
        if threshold is None:
            threshold = self.settings.min_confidence_threshold

        if threshold <= 0:
            return list(forecasts)

        return [forecast for forecast in forecasts if forecast.confidence >= threshold]

    def save_recommendations(self, forecasts: List[ForecastResult], path: Union[str, Path]):
        """Write forecasts to an indented JSON file.

        Raises:
            StorageError: If the file cannot be written
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump([forecast.to_dict() for forecast in forecasts], f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.error(f"Error saving recommendations to {path}: {str(e)}")
            raise StorageError(f"Failed to save recommendations: {str(e)}", code='WRITE_FAILED') from e

        logger.info(f"Saved {len(forecasts)} recommendations to {path}")

    def load_recommendations(self, path: Union[str, Path]) -> List[ForecastResult]:
        """Read forecasts saved by save_recommendations.

        Returns:
            Loaded forecasts; an empty list when the file is missing or unreadable
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"No saved recommendations at {path}")
            return []

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return [ForecastResult.from_dict(item) for item in data or []]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Error loading recommendations from {path}: {str(e)}")
            return []
