from .config import Config, ForecastSettings, load_settings
from .logging_setup import configure_logging, get_logger
from .exceptions import ReorderForecastError, ConfigError, ForecastError, IngestionError, StorageError
from .models import OrderLine, UnifiedProduct, ForecastResult, MappingGroup, MappingDatabase

__version__ = '1.0.0'

__all__ = [
    'Config',
    'ForecastSettings',
    'load_settings',
    'configure_logging',
    'get_logger',
    'ReorderForecastError',
    'ConfigError',
    'ForecastError',
    'IngestionError',
    'StorageError',
    'OrderLine',
    'UnifiedProduct',
    'ForecastResult',
    'MappingGroup',
    'MappingDatabase'
]
