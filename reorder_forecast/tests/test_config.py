"""
Unit tests for configuration and forecast settings.
"""
import os
import tempfile
import unittest

from reorder_forecast import config as config_module
from reorder_forecast.config import Config, ForecastSettings, load_settings
from reorder_forecast.exceptions import ConfigError
from reorder_forecast.logging_setup import get_log_manager


class TestForecastSettings(unittest.TestCase):
    """Test cases for ForecastSettings."""

    def test_defaults(self):
        settings = ForecastSettings()

        self.assertEqual(settings.days_ahead, 30)
        self.assertEqual(settings.similarity_threshold, 0.8)
        self.assertAlmostEqual(settings.delivery_safety_multiplier, 1.2)
        self.assertEqual(settings.priority_thresholds, (7, 14, 21))
        self.assertIs(settings.validate(), settings)

    def test_from_mapping_converts_strings(self):
        """String values are converted and unknown keys ignored."""
        settings = ForecastSettings.from_mapping({
            'days_ahead': '45.0',
            'similarity_threshold': '0.7',
            'max_projections': '',
            'unknown_key': 'whatever',
        })

        self.assertEqual(settings.days_ahead, 45)
        self.assertIsInstance(settings.days_ahead, int)
        self.assertEqual(settings.similarity_threshold, 0.7)
        self.assertEqual(settings.max_projections, 5)

    def test_from_mapping_bad_value(self):
        with self.assertRaises(ConfigError) as context:
            ForecastSettings.from_mapping({'safety_factor': 'twenty percent'})

        self.assertEqual(context.exception.code, 'SETTINGS_TYPE')

    def test_out_of_range(self):
        """Range errors are collected per parameter."""
        with self.assertRaises(ConfigError) as context:
            ForecastSettings(days_ahead=0, similarity_threshold=1.5).validate()

        self.assertEqual(context.exception.code, 'SETTINGS_RANGE')
        self.assertEqual(set(context.exception.details), {'days_ahead', 'similarity_threshold'})

    def test_priority_days_must_increase(self):
        with self.assertRaises(ConfigError):
            ForecastSettings(high_priority_days=14, medium_priority_days=7).validate()

    def test_describe(self):
        self.assertIn("horizon", ForecastSettings.describe('days_ahead'))
        self.assertEqual(ForecastSettings.describe('nope'), "Description not available")


class TestConfig(unittest.TestCase):
    """Test cases for the INI-backed Config."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.path = os.path.join(self.temp_dir.name, 'config', 'settings.ini')

    def test_creates_default_file(self):
        """A missing file is created with defaults."""
        config = Config(self.path)

        self.assertTrue(os.path.exists(self.path))
        self.assertEqual(config.forecast_settings, ForecastSettings())
        self.assertEqual(config.log_config['level'], 'INFO')
        self.assertEqual(config.log_config['max_size_mb'], 10)
        self.assertEqual(config.storage_config['mapping_file'], 'data/item_mapping.json')

    def test_no_file_when_not_requested(self):
        Config(self.path, create_missing=False)

        self.assertFalse(os.path.exists(self.path))

    def test_save_forecast_settings(self):
        """Saved settings are read back by a new Config."""
        config = Config(self.path)

        config.save_forecast_settings(ForecastSettings(days_ahead=90, min_confidence_threshold=60.0))

        reloaded = Config(self.path).forecast_settings
        self.assertEqual(reloaded.days_ahead, 90)
        self.assertEqual(reloaded.min_confidence_threshold, 60.0)

    def test_save_rejects_invalid_settings(self):
        config = Config(self.path)

        with self.assertRaises(ConfigError):
            config.save_forecast_settings(ForecastSettings(max_projections=-1))

    def test_typed_getters(self):
        config = Config(self.path)
        config.set('CUSTOM', 'count', 3)

        self.assertEqual(config.get_int('CUSTOM', 'count'), 3)
        self.assertEqual(config.get_float('CUSTOM', 'count'), 3.0)
        self.assertEqual(config.get('CUSTOM', 'missing', 'x'), 'x')
        self.assertIsNone(config.get_boolean('NOPE', 'flag'))

    def test_load_settings_falls_back_to_defaults(self):
        """Invalid stored values yield the default settings."""
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write("[FORECAST]\ndays_ahead = -5\n")

        with self.assertLogs('reorder_forecast.config', level='ERROR') as captured:
            self.assertEqual(load_settings(self.path), ForecastSettings())

        self.assertIn('using defaults', captured.output[0])

    def test_config_logger_from_log_manager(self):
        """The config module logs through the managed logger."""
        self.assertEqual(config_module.logger.name, 'reorder_forecast.config')
        self.assertIn('reorder_forecast.config', get_log_manager()._loggers)
        self.assertFalse(config_module.logger.propagate)

    def test_load_settings_reads_file(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write("[FORECAST]\ndays_ahead = 14\nbatch_window_days = 5\n")

        settings = load_settings(self.path)

        self.assertEqual(settings.days_ahead, 14)
        self.assertEqual(settings.batch_window_days, 5.0)


if __name__ == '__main__':
    unittest.main()
