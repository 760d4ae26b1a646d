# reorder_forecast/batch/__init__.py

from .forecast_job import run_forecast_job

__all__ = [
    'run_forecast_job'
]
