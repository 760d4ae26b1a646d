"""
Unit tests for the forecast batch job.
"""
import os
import tempfile
import unittest
from datetime import datetime
from unittest.mock import MagicMock

from reorder_forecast.batch.forecast_job import run_forecast_job
from reorder_forecast.config import ForecastSettings
from reorder_forecast.exceptions import BatchProcessError, IngestionError
from reorder_forecast.services.ingestion_service import InMemoryOrderSource
from reorder_forecast.services.mapping_service import MappingService
from reorder_forecast.services.recommendation_service import RecommendationService
from reorder_forecast.tests.helpers import make_line

START_DATE = datetime(2024, 2, 5)


class TestForecastJob(unittest.TestCase):
    """Test cases for run_forecast_job."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.mapping_path = os.path.join(self.temp_dir.name, 'data', 'item_mapping.json')
        self.forecasts_path = os.path.join(self.temp_dir.name, 'data', 'forecasts.json')

        lines = [make_line(day, article='A-1') for day in (0, 10, 20)]
        lines += [make_line(day, 50, article='B-2', name='Nut') for day in (0, 40, 80)]
        self.source = InMemoryOrderSource(lines)
        self.settings = ForecastSettings(days_ahead=60)

    def run_job(self, **kwargs):
        return run_forecast_job(
            self.source,
            self.settings,
            start_date=START_DATE,
            clock=lambda: START_DATE,
            **kwargs
        )

    def test_job_results(self):
        """Counts and forecasts for the horizon."""
        results = self.run_job()

        self.assertTrue(results['success'])
        self.assertEqual(results['order_line_count'], 6)
        self.assertEqual(results['product_count'], 2)
        self.assertEqual(results['end_date'], datetime(2024, 4, 5))
        # A-1 every 10 days from Feb 10; B-2 next due Apr 30
        self.assertEqual(results['forecast_count'], 6)
        self.assertEqual({f.unified_article for f in results['forecasts']}, {'A-1'})
        self.assertEqual(results['batch_count'], 6)
        self.assertIsNotNone(results['duration'])

    def test_confidence_filter(self):
        """Forecasts below the configured confidence are not reported."""
        self.settings = ForecastSettings(days_ahead=60, min_confidence_threshold=60.0)

        results = self.run_job()

        self.assertEqual(results['forecast_count'], 0)
        self.assertEqual(results['batches'], [])

    def test_saves_mapping_and_forecasts(self):
        """Mapping and forecasts are written when paths are given."""
        results = self.run_job(mapping_path=self.mapping_path, forecasts_path=self.forecasts_path)

        database = MappingService(self.mapping_path).load_database()
        self.assertEqual([group.unified_article for group in database.groups], ['A-1', 'B-2'])

        saved = RecommendationService().load_recommendations(self.forecasts_path)
        self.assertEqual(saved, results['forecasts'])

    def test_mapping_reused_between_runs(self):
        """A second run keeps the groups created by the first."""
        self.run_job(mapping_path=self.mapping_path)
        first_ids = [group.id for group in MappingService(self.mapping_path).load_database().groups]

        results = self.run_job(mapping_path=self.mapping_path)
        second_ids = [group.id for group in MappingService(self.mapping_path).load_database().groups]

        self.assertEqual(results['product_count'], 2)
        self.assertEqual(first_ids, second_ids)

    def test_failure_raises_batch_error(self):
        """Any failing step is reported as BatchProcessError."""
        source = MagicMock()
        source.load.side_effect = IngestionError("Order file not found", code='FILE_NOT_FOUND')

        with self.assertRaises(BatchProcessError) as context:
            run_forecast_job(source, self.settings, start_date=START_DATE, clock=lambda: START_DATE)

        self.assertIn("Order file not found", str(context.exception))
        self.assertIsInstance(context.exception.__cause__, IngestionError)

    def test_empty_source(self):
        results = run_forecast_job(InMemoryOrderSource(), start_date=START_DATE, clock=lambda: START_DATE)

        self.assertTrue(results['success'])
        self.assertEqual(results['product_count'], 0)
        self.assertEqual(results['forecasts'], [])


if __name__ == '__main__':
    unittest.main()
