"""
Unit tests for the exception hierarchy.
"""
import unittest

from reorder_forecast.exceptions import (
    BatchProcessError, ConfigError, ForecastError, ReorderForecastError, StorageError
)


class TestExceptions(unittest.TestCase):

    def test_str_includes_code(self):
        self.assertEqual(str(ForecastError("Bad period", code='INVALID_PERIOD')), "[INVALID_PERIOD] Bad period")
        self.assertEqual(str(StorageError()), "Storage error")

    def test_to_dict(self):
        error = ConfigError("Invalid forecast settings", code='SETTINGS_RANGE', details={'days_ahead': 'too small'})

        self.assertEqual(error.to_dict(), {
            'error': 'ConfigError',
            'message': 'Invalid forecast settings',
            'code': 'SETTINGS_RANGE',
            'details': {'days_ahead': 'too small'},
        })
        self.assertEqual(BatchProcessError().to_dict(), {'error': 'BatchProcessError', 'message': 'Batch process error'})

    def test_hierarchy(self):
        for error_class in (ConfigError, ForecastError, StorageError, BatchProcessError):
            self.assertTrue(issubclass(error_class, ReorderForecastError))


if __name__ == '__main__':
    unittest.main()
