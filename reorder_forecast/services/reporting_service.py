# reorder_forecast/services/reporting_service.py
import csv
import io
import json
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from tabulate import tabulate

from reorder_forecast.exceptions import StorageError
from reorder_forecast.logging_setup import get_logger
from reorder_forecast.models import ForecastResult, PriorityLevel, UnifiedProduct

logger = get_logger(__name__)

FORECAST_HEADERS = [
    'Article', 'Product', 'Next Order', 'Quantity', 'Place By', 'Priority', 'Confidence %'
]

PRODUCT_HEADERS = [
    'Article', 'Product', 'Orders', 'Interval (days)', 'Avg Qty', 'Delivery (days)',
    'Last Order', 'Next Order', 'Recommended', 'Place By'
]


def _format_date(value: Optional[Union[date, datetime]]) -> str:
    if value is None:
        return '-'
    return value.strftime('%Y-%m-%d')


class ReportingService:
    """Renders forecasts and products for the console and exports them."""

    def __init__(self, tablefmt: str = 'simple'):
        """Initialize the reporting service.

        Args:
            tablefmt: tabulate table format
        """
        self.tablefmt = tablefmt

    def forecast_rows(self, forecasts: List[ForecastResult]) -> List[List]:
        return [
            [
                forecast.unified_article,
                forecast.product_name,
                _format_date(forecast.next_order_date),
                f"{forecast.recommended_quantity:.0f}",
                _format_date(forecast.optimal_order_placement_date),
                f"{forecast.priority} ({PriorityLevel.from_value(forecast.priority).label})",
                f"{forecast.confidence:.1f}",
            ]
            for forecast in forecasts
        ]

    def forecast_table(self, forecasts: List[ForecastResult]) -> str:
        """Forecasts as a text table."""
        return tabulate(self.forecast_rows(forecasts), headers=FORECAST_HEADERS, tablefmt=self.tablefmt)

    def product_table(self, products: List[UnifiedProduct]) -> str:
        """Unified products and their derived metrics as a text table."""
        rows = [
            [
                product.unified_article,
                product.primary_name,
                product.history_count,
                f"{product.average_order_interval:.1f}",
                f"{product.average_order_quantity:.1f}",
                f"{product.average_delivery_time:.1f}",
                _format_date(product.last_order_date),
                _format_date(product.next_predicted_order_date),
                f"{product.recommended_quantity:.0f}",
                _format_date(product.optimal_order_placement_date),
            ]
            for product in products
        ]
        return tabulate(rows, headers=PRODUCT_HEADERS, tablefmt=self.tablefmt)

    def batch_table(self, batches: List[List[ForecastResult]]) -> str:
        """Order batches, one block per batch."""
        sections = []
        for number, batch in enumerate(batches, start=1):
            first = batch[0].optimal_order_placement_date
            last = batch[-1].optimal_order_placement_date
            sections.append(
                f"Batch {number}: {_format_date(first)} - {_format_date(last)} ({len(batch)} orders)\n"
                + tabulate(self.forecast_rows(batch), headers=FORECAST_HEADERS, tablefmt=self.tablefmt)
            )
        return "\n\n".join(sections)

    def calendar_table(self, calendar: Dict[date, List[ForecastResult]]) -> str:
        """Order calendar: one row per placement day."""
        rows = [
            [
                _format_date(day),
                len(forecasts),
                ", ".join(forecast.unified_article for forecast in forecasts),
                min(forecast.priority for forecast in forecasts),
            ]
            for day, forecasts in sorted(calendar.items())
        ]
        return tabulate(rows, headers=['Date', 'Orders', 'Articles', 'Top Priority'], tablefmt=self.tablefmt)

    def export_forecasts_json(self, forecasts: List[ForecastResult], path: Union[str, Path]):
        """Export forecasts to an indented JSON file.

        Raises:
            StorageError: If the file cannot be written
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump([forecast.to_dict() for forecast in forecasts], f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.error(f"Error exporting forecasts to {path}: {str(e)}")
            raise StorageError(f"Failed to export forecasts: {str(e)}", code='EXPORT_FAILED') from e

        logger.info(f"Exported {len(forecasts)} forecasts to {path}")

    def export_forecasts_csv(self, forecasts: List[ForecastResult], path: Optional[Union[str, Path]] = None) -> str:
        """Export forecasts to CSV.

        Args:
            forecasts: Forecasts to export
            path: Optional file to write the CSV data to

        Returns:
            CSV data as string

        Raises:
            StorageError: If the file cannot be written
        """
        if not forecasts:
            return "No data to export"

        output = io.StringIO()
        writer = csv.writer(output)

        rows = [forecast.to_dict() for forecast in forecasts]
        header = list(rows[0].keys())
        writer.writerow(header)

        for row in rows:
            writer.writerow([row.get(col, '') for col in header])

        data = output.getvalue()

        if path is not None:
            path = Path(path)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(path, 'w', newline='', encoding='utf-8') as f:
                    f.write(data)
            except OSError as e:
                logger.error(f"Error exporting forecasts to {path}: {str(e)}")
                raise StorageError(f"Failed to export forecasts: {str(e)}", code='EXPORT_FAILED') from e

            logger.info(f"Exported {len(forecasts)} forecasts to {path}")

        return data
