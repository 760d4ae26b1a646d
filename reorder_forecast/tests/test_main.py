"""
Unit tests for the command-line interface.
"""
import contextlib
import csv
import io
import os
import tempfile
import unittest
from unittest.mock import patch

from reorder_forecast.config import Config
from reorder_forecast.main import main
from reorder_forecast.services.ingestion_service import InMemoryOrderSource
from reorder_forecast.tests.helpers import make_line

CONFIG_TEMPLATE = """[FORECAST]
days_ahead = 30

[LOGGING]
level = WARNING
directory =
console_output = False

[STORAGE]
mapping_file = {mapping}
forecasts_file = {forecasts}
"""


class TestMain(unittest.TestCase):
    """Test cases for the CLI commands."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.config_path = os.path.join(self.temp_dir.name, 'settings.ini')
        self.mapping_path = os.path.join(self.temp_dir.name, 'item_mapping.json')
        self.forecasts_path = os.path.join(self.temp_dir.name, 'forecasts.json')

        with open(self.config_path, 'w', encoding='utf-8') as f:
            f.write(CONFIG_TEMPLATE.format(mapping=self.mapping_path, forecasts=self.forecasts_path))

    def run_cli(self, *argv):
        output = io.StringIO()
        with contextlib.redirect_stdout(output), contextlib.redirect_stderr(io.StringIO()):
            code = main(['--config', self.config_path] + list(argv))
        return code, output.getvalue()

    def test_no_command(self):
        with contextlib.redirect_stdout(io.StringIO()):
            self.assertEqual(main([]), 1)

    def test_settings_set(self):
        """A changed setting is persisted to the INI file."""
        code, output = self.run_cli('settings', 'set', 'days_ahead', '45')

        self.assertEqual(code, 0)
        self.assertIn('days_ahead = 45', output)
        self.assertEqual(Config(self.config_path).forecast_settings.days_ahead, 45)

    def test_settings_set_rejected(self):
        """Unknown keys and out-of-range values fail without saving."""
        self.assertEqual(self.run_cli('settings', 'set', 'no_such_setting', '1')[0], 1)
        self.assertEqual(self.run_cli('settings', 'set', 'similarity_threshold', '3')[0], 1)
        self.assertEqual(Config(self.config_path).forecast_settings.similarity_threshold, 0.8)

    def test_settings_show(self):
        code, output = self.run_cli('settings', 'show', '--verbose')

        self.assertEqual(code, 0)
        self.assertIn('days_ahead = 30', output)
        self.assertIn('Forecast horizon in days', output)

    def test_mapping_commands(self):
        """Groups and variations can be added, listed and removed."""
        self.assertEqual(self.run_cli('mapping', 'add-group', 'Gaskets', 'main-1')[0], 0)
        self.assertEqual(self.run_cli('mapping', 'add-variation', 'Gaskets', 'Kit of gaskets')[0], 0)

        code, output = self.run_cli('mapping', 'list')
        self.assertEqual(code, 0)
        self.assertIn('Gaskets [MAIN-1]', output)
        self.assertIn('Names: Kit of gaskets', output)

        self.assertEqual(self.run_cli('mapping', 'remove-variation', 'Gaskets', 'nothing')[0], 1)
        self.assertEqual(self.run_cli('mapping', 'add-group', 'gaskets', 'X-1')[0], 1)
        self.assertEqual(self.run_cli('mapping', 'remove-group', 'Gaskets')[0], 0)
        self.assertIn('No mapping groups', self.run_cli('mapping', 'list')[1])

    @patch('reorder_forecast.main.ExcelOrderSource')
    def test_forecast_command(self, mock_source):
        """The forecast command prints the forecast table."""
        lines = [make_line(day, article='A-1') for day in (0, 10, 20)]
        mock_source.return_value = InMemoryOrderSource(lines)

        code, output = self.run_cli(
            'forecast', 'orders.xlsx', '--start', '2024-02-05', '--days', '20', '--batches', '--no-save'
        )

        self.assertEqual(code, 0)
        mock_source.assert_called_once_with('orders.xlsx')
        self.assertIn('Forecasts 2024-02-05 - 2024-02-25', output)
        self.assertIn('A-1', output)
        self.assertIn('Batch 1', output)
        self.assertTrue(os.path.exists(self.mapping_path))
        self.assertFalse(os.path.exists(self.forecasts_path))

    @patch('reorder_forecast.main.ExcelOrderSource')
    def test_forecast_csv_export(self, mock_source):
        """The forecast command writes the forecasts to a CSV file."""
        mock_source.return_value = InMemoryOrderSource([make_line(day, article='A-1') for day in (0, 10, 20)])
        csv_path = os.path.join(self.temp_dir.name, 'exports', 'forecasts.csv')

        code, output = self.run_cli(
            'forecast', 'orders.xlsx', '--start', '2024-02-05', '--days', '20', '--no-save', '--csv', csv_path
        )

        self.assertEqual(code, 0)
        self.assertIn(f"Forecasts exported to {csv_path}", output)
        with open(csv_path, encoding='utf-8', newline='') as f:
            rows = list(csv.reader(f))
        self.assertEqual(rows[0][:3], ['UnifiedArticle', 'ProductName', 'NextOrderDate'])
        self.assertEqual(rows[1][0], 'A-1')

    def test_forecast_missing_file(self):
        """A missing spreadsheet is reported with a non-zero exit code."""
        code, _ = self.run_cli('forecast', os.path.join(self.temp_dir.name, 'missing.xlsx'))

        self.assertEqual(code, 1)


if __name__ == '__main__':
    unittest.main()
