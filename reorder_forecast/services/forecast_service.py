# reorder_forecast/services/forecast_service.py
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from reorder_forecast.config import ForecastSettings
from reorder_forecast.core.priority import (
    calculate_base_confidence, calculate_priority, calculate_projection_confidence
)
from reorder_forecast.core.projection import (
    calculate_placement_date, next_projection_date, refresh_prediction
)
from reorder_forecast.core.trend import describe_volume_trend
from reorder_forecast.exceptions import ForecastError
from reorder_forecast.logging_setup import get_logger
from reorder_forecast.models import ForecastResult, UnifiedProduct
from reorder_forecast.utils.date_utils import get_month_name

logger = get_logger(__name__)

PROJECTION_CAVEAT = "Confidence reduced because the forecast is further in the future."


def volume_note(product: UnifiedProduct, stable_threshold: float = 10.0) -> str:
    """Note on the trend of order volumes."""
    return describe_volume_trend(product.sorted_history(), stable_threshold)


def delivery_note(product: UnifiedProduct, safety_factor: float = 0.2) -> str:
    """Note on the average delivery time and the safety margin."""
    if product.average_delivery_time <= 0:
        return "No delivery time data."

    return (
        f"Average delivery time: {round(product.average_delivery_time)} days. "
        f"Safety margin: {round(product.average_delivery_time * safety_factor)} days."
    )


def seasonality_note(product: UnifiedProduct, tolerance: float = 0.0) -> Optional[str]:
    """Note on the seasonal factor for the month of the next order.

    Args:
        product: Product with a predicted next order date
        tolerance: Deviation from 1.0 that is not worth mentioning

    Returns:
        Note text, or None when there is no notable seasonal effect
    """
    next_order_date = product.next_predicted_order_date
    if next_order_date is None:
        return None

    coefficient = product.seasonality_coefficients[next_order_date.month - 1]
    deviation = abs(coefficient - 1)

    if deviation <= tolerance:
        return None

    direction = "increase" if coefficient > 1 else "decrease"
    return (
        f"Seasonal factor: {direction} of {round(deviation * 100)}% "
        f"in {get_month_name(next_order_date.month)}."
    )


def interval_note(product: UnifiedProduct) -> Optional[str]:
    if product.average_order_interval <= 0:
        return None
    return f"Average interval between orders: {round(product.average_order_interval)} days."


def detailed_notes(
    product: UnifiedProduct,
    settings: ForecastSettings,
    seasonality_tolerance: float = 0.0
) -> str:
    """Trend, delivery, seasonality and interval notes joined with spaces."""
    notes = [volume_note(product, settings.stable_volume_threshold)]

    if product.average_delivery_time > 0:
        notes.append(delivery_note(product, settings.safety_factor))

    notes.append(seasonality_note(product, seasonality_tolerance))
    notes.append(interval_note(product))

    return " ".join(note for note in notes if note)


def sort_by_priority(forecasts: List[ForecastResult]) -> List[ForecastResult]:
    """Sort by priority, then by placement date (stable)."""
    return sorted(forecasts, key=lambda f: (f.priority, f.optimal_order_placement_date))


class ForecastEngine:
    """Projects future orders for unified products."""

    def __init__(
        self,
        settings: Optional[ForecastSettings] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        """Initialize the forecast engine.

        Args:
            settings: Forecast settings (defaults when omitted)
            clock: Callable returning the current time
        """
        self.settings = settings or ForecastSettings()
        self.clock = clock

    def _build_result(
        self,
        product: UnifiedProduct,
        reference_date: datetime,
        notes: str = ''
    ) -> ForecastResult:
        """Result for the product's current prediction."""
        placement = product.optimal_order_placement_date or reference_date

        return ForecastResult(
            unified_article=product.unified_article,
            product_name=product.primary_name,
            next_order_date=product.next_predicted_order_date,
            recommended_quantity=product.recommended_quantity,
            optimal_order_placement_date=placement,
            priority=calculate_priority(placement, reference_date, self.settings.priority_thresholds),
            confidence=calculate_base_confidence(product.history_count),
            notes=notes,
        )

    def forecast_order_dates(
        self,
        products: List[UnifiedProduct],
        days_ahead: Optional[int] = None
    ) -> List[ForecastResult]:
        """Forecasts for products whose next order falls within the horizon.

        Args:
            products: Analyzed products
            days_ahead: Horizon in days (settings value when omitted)

        Returns:
            Forecasts sorted by priority
        """
        if days_ahead is None:
            days_ahead = self.settings.days_ahead

        now = self.clock()
        end_date = now + timedelta(days=days_ahead)

        forecasts = [
            self._build_result(product, now)
            for product in products
            if product.next_predicted_order_date is not None
            and product.next_predicted_order_date <= end_date
        ]

        return sorted(forecasts, key=lambda f: f.priority)

    def forecast_order_volumes(self, products: List[UnifiedProduct]) -> List[ForecastResult]:
        """Forecasts with volume trend notes, largest recommended quantity first."""
        now = self.clock()

        forecasts = [
            self._build_result(product, now, volume_note(product, self.settings.stable_volume_threshold))
            for product in products
            if product.next_predicted_order_date is not None
        ]

        return sorted(forecasts, key=lambda f: f.recommended_quantity, reverse=True)

    def determine_optimal_placement_dates(self, products: List[UnifiedProduct]) -> List[ForecastResult]:
        """Forecasts with delivery notes, earliest placement date first."""
        now = self.clock()

        forecasts = [
            self._build_result(product, now, delivery_note(product, self.settings.safety_factor))
            for product in products
            if product.next_predicted_order_date is not None
            and product.optimal_order_placement_date is not None
        ]

        return sorted(forecasts, key=lambda f: f.optimal_order_placement_date)

    def refresh_forecast(self, product: UnifiedProduct, start_date: datetime) -> UnifiedProduct:
        """Re-project a product whose prediction is missing or before start_date."""
        return refresh_prediction(product, start_date, self.settings.delivery_safety_multiplier)

    def forecast_product(
        self,
        product: UnifiedProduct,
        start_date: datetime,
        end_date: datetime,
        reference_date: datetime
    ) -> List[ForecastResult]:
        """Primary forecast plus successive projections for one product.

        Args:
            product: Product with a refreshed prediction
            start_date: Start of the forecast period
            end_date: End of the forecast period
            reference_date: Date priorities are measured from

        Returns:
            Forecasts in projection order, all with next order dates within
            [start_date, end_date]
        """
        next_order_date = product.next_predicted_order_date
        if next_order_date is None or not start_date <= next_order_date <= end_date:
            return []

        settings = self.settings
        notes = detailed_notes(product, settings)
        base_confidence = calculate_base_confidence(product.history_count)

        forecasts = [self._build_result(product, reference_date, notes)]

        for i in range(1, settings.max_projections + 1):
            next_order_date = next_projection_date(
                next_order_date, product.average_order_interval, settings.default_order_interval
            )
            if next_order_date > end_date:
                break

            placement = calculate_placement_date(
                next_order_date, product.average_delivery_time, settings.delivery_safety_multiplier
            )

            forecasts.append(ForecastResult(
                unified_article=product.unified_article,
                product_name=product.primary_name,
                next_order_date=next_order_date,
                recommended_quantity=product.recommended_quantity,
                optimal_order_placement_date=placement,
                priority=calculate_priority(placement, reference_date, settings.priority_thresholds),
                confidence=calculate_projection_confidence(
                    base_confidence, i,
                    settings.projection_confidence_step,
                    settings.projection_confidence_floor
                ),
                notes=f"Prognosis #{i + 1} for product. {notes} {PROJECTION_CAVEAT}",
            ))

        return forecasts

    def generate_full_forecasts(
        self,
        products: List[UnifiedProduct],
        start_date: datetime,
        end_date: datetime,
        reference_date: Optional[datetime] = None
    ) -> List[ForecastResult]:
        """Generate forecasts for all products over a period.

        Stale predictions are refreshed first. Each product yields at most
        one primary forecast plus max_projections successive ones.

        Args:
            products: Analyzed products
            start_date: Start of the forecast period
            end_date: End of the forecast period
            reference_date: Date priorities are measured from (now when omitted)

        Returns:
            Forecasts sorted by priority, then placement date

        Raises:
            ForecastError: If end_date precedes start_date
        """
        if end_date < start_date:
            raise ForecastError(
                f"Forecast period ends before it starts: {start_date} - {end_date}",
                code='INVALID_PERIOD'
            )

        if reference_date is None:
            reference_date = self.clock()

        forecasts = []
        skipped = 0

        for product in products:
            if not product.order_history:
                skipped += 1
                continue

            product = self.refresh_forecast(product, start_date)
            forecasts.extend(self.forecast_product(product, start_date, end_date, reference_date))

        logger.info(
            f"Generated {len(forecasts)} forecasts for {len(products) - skipped} products "
            f"between {start_date.date()} and {end_date.date()}"
        )

        return sort_by_priority(forecasts)
