# reorder_forecast/services/analysis_service.py
from typing import Dict, List, Optional

from reorder_forecast.config import ForecastSettings
from reorder_forecast.core.projection import derive_next_order
from reorder_forecast.core.seasonality import compute_seasonality
from reorder_forecast.core.statistics import calculate_order_intervals, compute_statistics
from reorder_forecast.core.trend import describe_volume_trend, trend_factor
from reorder_forecast.logging_setup import get_logger
from reorder_forecast.models import UnifiedProduct

logger = get_logger(__name__)


class OrderAnalyzer:
    """Runs the analysis phases over unified products.

    Each phase returns new products; the input list is never modified.
    """

    def __init__(self, settings: Optional[ForecastSettings] = None):
        """Initialize the analyzer.

        Args:
            settings: Forecast settings (defaults when omitted)
        """
        self.settings = settings or ForecastSettings()

    def analyze_statistics(self, products: List[UnifiedProduct]) -> List[UnifiedProduct]:
        """Recompute interval, quantity and delivery time averages."""
        settings = self.settings
        return [
            compute_statistics(
                product,
                default_delivery_time=settings.default_delivery_time,
                min_points=settings.min_points_for_outlier_filter,
                multiplier=settings.iqr_multiplier,
            )
            for product in products
        ]

    def analyze_seasonality(self, products: List[UnifiedProduct]) -> List[UnifiedProduct]:
        """Recompute the monthly seasonality profiles."""
        return [
            compute_seasonality(product, self.settings.min_history_for_seasonality)
            for product in products
        ]

    def predict_next_orders(self, products: List[UnifiedProduct]) -> List[UnifiedProduct]:
        """Derive next order date, recommended quantity and placement date."""
        return [
            derive_next_order(product, self.settings.delivery_safety_multiplier)
            for product in products
        ]

    def analyze(self, products: List[UnifiedProduct]) -> List[UnifiedProduct]:
        """Run all phases in order: statistics, seasonality, prediction.

        Args:
            products: Unified products with order history

        Returns:
            New list of analyzed products in the same order
        """
        analyzable = [product for product in products if product.order_history]
        if len(analyzable) < len(products):
            logger.debug(f"Skipping {len(products) - len(analyzable)} products without order history")

        analyzed = self.analyze_statistics(analyzable)
        analyzed = self.analyze_seasonality(analyzed)
        analyzed = self.predict_next_orders(analyzed)

        logger.info(f"Analyzed {len(analyzed)} products")
        return analyzed

    def summarize(self, product: UnifiedProduct) -> Dict:
        """Summary of the derived metrics of a product.

        Returns:
            Dictionary with the metrics shown in product reports
        """
        sorted_history = product.sorted_history()

        return {
            'unified_article': product.unified_article,
            'primary_name': product.primary_name,
            'history_count': product.history_count,
            'order_intervals': calculate_order_intervals(product),
            'average_order_interval': product.average_order_interval,
            'average_order_quantity': product.average_order_quantity,
            'average_delivery_time': product.average_delivery_time,
            'trend_factor': trend_factor(sorted_history),
            'trend_note': describe_volume_trend(sorted_history, self.settings.stable_volume_threshold),
            'last_order_date': product.last_order_date,
            'next_predicted_order_date': product.next_predicted_order_date,
            'recommended_quantity': product.recommended_quantity,
            'optimal_order_placement_date': product.optimal_order_placement_date,
        }
