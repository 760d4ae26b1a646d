# reorder_forecast/batch/forecast_job.py
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from reorder_forecast.config import ForecastSettings
from reorder_forecast.core.unification import ProductUnifier
from reorder_forecast.exceptions import BatchProcessError
from reorder_forecast.logging_setup import get_log_manager, get_logger
from reorder_forecast.models import ForecastResult, MappingDatabase, OrderLine, UnifiedProduct
from reorder_forecast.services.analysis_service import OrderAnalyzer
from reorder_forecast.services.forecast_service import ForecastEngine
from reorder_forecast.services.ingestion_service import OrderSource
from reorder_forecast.services.mapping_service import MappingService
from reorder_forecast.services.recommendation_service import RecommendationService

logger = get_logger('forecast_job')

PathLike = Union[str, Path]


def load_orders(source: OrderSource) -> List[OrderLine]:
    """Load order lines from the source."""
    lines = source.load()
    logger.info(f"Loaded {len(lines)} order lines")
    return lines


def unify_orders(
    lines: List[OrderLine],
    settings: ForecastSettings,
    mapping: Optional[MappingDatabase] = None
) -> List[UnifiedProduct]:
    """Group order lines into unified products."""
    products = ProductUnifier(settings, mapping).unify(lines)
    logger.info(f"Unified {len(lines)} order lines into {len(products)} products")
    return products


def forecast_products(
    products: List[UnifiedProduct],
    settings: ForecastSettings,
    start_date: datetime,
    clock: Callable[[], datetime]
) -> Dict:
    """Refresh predictions and generate refined forecasts for the horizon.

    Returns:
        Dictionary with refreshed products, forecasts and batches
    """
    engine = ForecastEngine(settings, clock)
    recommendations = RecommendationService(settings, clock)

    end_date = start_date + timedelta(days=settings.days_ahead)
    products = [engine.refresh_forecast(product, start_date) for product in products]

    forecasts = engine.generate_full_forecasts(products, start_date, end_date)
    forecasts = recommendations.refine(forecasts)

    reported = recommendations.filter_by_confidence(forecasts)
    if len(reported) < len(forecasts):
        logger.info(
            f"{len(forecasts) - len(reported)} forecasts below "
            f"{settings.min_confidence_threshold}% confidence were filtered out"
        )

    return {
        'products': products,
        'forecasts': reported,
        'batches': recommendations.group_by_batches(reported),
    }


def run_forecast_job(
    source: OrderSource,
    settings: Optional[ForecastSettings] = None,
    start_date: Optional[datetime] = None,
    mapping_path: Optional[PathLike] = None,
    forecasts_path: Optional[PathLike] = None,
    clock: Callable[[], datetime] = datetime.now
) -> Dict:
    """Run the full forecasting pipeline.

    Load -> unify (restoring the saved mapping) -> analyze -> forecast ->
    refine -> save mapping and forecasts.

    Args:
        source: Order line source
        settings: Forecast settings (defaults when omitted)
        start_date: Start of the forecast period (now when omitted)
        mapping_path: Optional mapping file, read before and written after unification
        forecasts_path: Optional file the forecasts are saved to
        clock: Callable returning the current time

    Returns:
        Dictionary with job results

    Raises:
        BatchProcessError: If any step fails
    """
    settings = settings or ForecastSettings()
    start_date = start_date or clock()

    log_manager = get_log_manager()
    log_info = log_manager.batch_start_log(
        'forecast_job',
        {'start_date': start_date.isoformat(), 'days_ahead': settings.days_ahead}
    )

    results = {
        'success': False,
        'start_time': datetime.now(),
        'end_time': None,
        'duration': None,
        'start_date': start_date,
        'end_date': start_date + timedelta(days=settings.days_ahead),
    }

    try:
        # Step 1: Load order lines
        logger.info("# Step 1: Load order lines")
        lines = load_orders(source)

        # Step 2: Unify products
        logger.info("# Step 2: Unify products")
        mapping_service = MappingService(mapping_path) if mapping_path else None
        mapping = mapping_service.load_database() if mapping_service else None
        products = unify_orders(lines, settings, mapping)

        # Step 3: Analyze products
        logger.info("# Step 3: Analyze products")
        products = OrderAnalyzer(settings).analyze(products)

        # Step 4: Generate forecasts
        logger.info("# Step 4: Generate forecasts")
        forecast_results = forecast_products(products, settings, start_date, clock)
        products = forecast_results['products']
        forecasts: List[ForecastResult] = forecast_results['forecasts']

        # Step 5: Save mapping and forecasts
        logger.info("# Step 5: Save mapping and forecasts")
        if mapping_service:
            mapping_service.save_database(mapping_service.merge_products(mapping, products))
        if forecasts_path:
            RecommendationService(settings, clock).save_recommendations(forecasts, forecasts_path)

        results.update({
            'success': True,
            'order_line_count': len(lines),
            'product_count': len(products),
            'forecast_count': len(forecasts),
            'batch_count': len(forecast_results['batches']),
            'products': products,
            'forecasts': forecasts,
            'batches': forecast_results['batches'],
        })

    except Exception as e:
        logger.error(f"Error during forecast job: {str(e)}", exc_info=True)
        results['error'] = str(e)
        log_manager.batch_end_log(log_info, success=False, result_info={'error': str(e)})
        raise BatchProcessError(f"Forecast job failed: {str(e)}", details={'error': str(e)}) from e

    finally:
        results['end_time'] = datetime.now()
        results['duration'] = results['end_time'] - results['start_time']

    log_manager.batch_end_log(log_info, success=True, result_info={
        'order_lines': results['order_line_count'],
        'products': results['product_count'],
        'forecasts': results['forecast_count'],
    })

    return results
