import configparser
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Dict, Optional, Union

from .exceptions import ConfigError
from .logging_setup import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path('config') / 'settings.ini'

PARAMETER_DESCRIPTIONS = {
    'days_ahead': (
        "Forecast horizon in days. Longer horizons allow planning further ahead "
        "but lower the accuracy of distant projections."
    ),
    'min_confidence_threshold': (
        "Forecasts below this confidence (%) are hidden from order reports. "
        "0 disables the filter."
    ),
    'safety_factor': (
        "Extra share of the average delivery time reserved when computing the "
        "optimal placement date (0.2 means a 20% margin)."
    ),
    'similarity_threshold': (
        "Minimum name similarity (0..1) for attaching an order line without an "
        "article code to an existing product."
    ),
    'stable_volume_threshold': (
        "Change in order volume (%) below which volumes are reported as stable."
    ),
    'default_delivery_time': (
        "Delivery lead time in days assumed when no delivery dates are recorded."
    ),
    'default_order_interval': (
        "Interval in days used for successive projections when a product has no "
        "usable order interval."
    ),
    'max_projections': (
        "Maximum number of additional orders projected per product after the "
        "first one."
    ),
    'projection_confidence_step': (
        "Confidence (%) removed for each successive projection."
    ),
    'projection_confidence_floor': (
        "Confidence (%) below which successive projections are never lowered."
    ),
    'batch_window_days': (
        "Orders whose placement dates fall within this many days of the first "
        "order of a batch are grouped together."
    ),
    'min_history_for_seasonality': (
        "Number of historical orders required before monthly seasonality is "
        "estimated."
    ),
    'min_points_for_outlier_filter': (
        "Number of observations required before IQR outlier filtering is applied."
    ),
    'iqr_multiplier': (
        "Tukey fence multiplier used for outlier filtering."
    ),
    'high_priority_days': (
        "Orders to be placed within this many days get priority 2."
    ),
    'medium_priority_days': (
        "Orders to be placed within this many days get priority 3."
    ),
    'low_priority_days': (
        "Orders to be placed within this many days get priority 4; later ones get 5."
    ),
}


@dataclass(frozen=True)
class ForecastSettings:
    """Immutable forecasting parameters passed to every component."""

    days_ahead: int = 30
    min_confidence_threshold: float = 0.0
    safety_factor: float = 0.2
    similarity_threshold: float = 0.8
    stable_volume_threshold: float = 10.0
    default_delivery_time: float = 14.0
    default_order_interval: float = 30.0
    max_projections: int = 5
    projection_confidence_step: float = 10.0
    projection_confidence_floor: float = 50.0
    batch_window_days: float = 3.0
    min_history_for_seasonality: int = 12
    min_points_for_outlier_filter: int = 4
    iqr_multiplier: float = 1.5
    high_priority_days: int = 7
    medium_priority_days: int = 14
    low_priority_days: int = 21

    @property
    def delivery_safety_multiplier(self) -> float:
        """Multiplier applied to the delivery time (1.2 for a 20% margin)."""
        return 1.0 + self.safety_factor

    @property
    def priority_thresholds(self):
        return (self.high_priority_days, self.medium_priority_days, self.low_priority_days)

    def validate(self) -> 'ForecastSettings':
        """Check that every value lies in its accepted range.

        Returns:
            The settings themselves, to allow chaining

        Raises:
            ConfigError: If any value is out of range
        """
        errors = {}

        if not 1 <= self.days_ahead <= 3650:
            errors['days_ahead'] = 'must be between 1 and 3650'
        if not 0 <= self.min_confidence_threshold <= 100:
            errors['min_confidence_threshold'] = 'must be between 0 and 100'
        if not 0 <= self.safety_factor <= 5:
            errors['safety_factor'] = 'must be between 0 and 5'
        if not 0 <= self.similarity_threshold <= 1:
            errors['similarity_threshold'] = 'must be between 0 and 1'
        if not 0 <= self.stable_volume_threshold <= 100:
            errors['stable_volume_threshold'] = 'must be between 0 and 100'
        if self.default_delivery_time < 0:
            errors['default_delivery_time'] = 'must not be negative'
        if self.default_order_interval <= 0:
            errors['default_order_interval'] = 'must be positive'
        if not 0 <= self.max_projections <= 50:
            errors['max_projections'] = 'must be between 0 and 50'
        if not 0 <= self.projection_confidence_step <= 100:
            errors['projection_confidence_step'] = 'must be between 0 and 100'
        if not 0 <= self.projection_confidence_floor <= 100:
            errors['projection_confidence_floor'] = 'must be between 0 and 100'
        if self.batch_window_days < 0:
            errors['batch_window_days'] = 'must not be negative'
        if self.min_history_for_seasonality < 1:
            errors['min_history_for_seasonality'] = 'must be at least 1'
        if self.min_points_for_outlier_filter < 1:
            errors['min_points_for_outlier_filter'] = 'must be at least 1'
        if self.iqr_multiplier <= 0:
            errors['iqr_multiplier'] = 'must be positive'
        if not 0 < self.high_priority_days < self.medium_priority_days < self.low_priority_days:
            errors['priority_days'] = 'thresholds must be positive and strictly increasing'

        if errors:
            raise ConfigError("Invalid forecast settings", code='SETTINGS_RANGE', details=errors)

        return self

    @classmethod
    def from_mapping(cls, values: Dict[str, Union[str, int, float]]) -> 'ForecastSettings':
        """Build settings from raw (possibly string) values, ignoring unknown keys.

        Raises:
            ConfigError: If a value cannot be converted or is out of range
        """
        kwargs = {}
        for field in fields(cls):
            if field.name not in values or values[field.name] in (None, ''):
                continue
            target_type = type(field.default)
            try:
                kwargs[field.name] = target_type(float(values[field.name])) if target_type is int \
                    else target_type(values[field.name])
            except (TypeError, ValueError):
                raise ConfigError(
                    f"Invalid value for {field.name}: {values[field.name]!r}",
                    code='SETTINGS_TYPE'
                )

        return cls(**kwargs).validate()

    def to_dict(self) -> Dict:
        return asdict(self)

    @staticmethod
    def describe(parameter_name: str) -> str:
        """Get a human readable description of a parameter."""
        return PARAMETER_DESCRIPTIONS.get(parameter_name, "Description not available")


class Config:
    """Configuration manager backed by an INI file."""

    def __init__(self, path: Optional[Union[str, Path]] = None, create_missing: bool = True):
        """Load the configuration, writing a default file if none exists.

        Args:
            path: Path to the INI file
            create_missing: Whether to create the file with defaults when missing
        """
        self._config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        self._config = configparser.ConfigParser(interpolation=None)

        if self._config_path.exists():
            self._config.read(self._config_path, encoding='utf-8')
        else:
            self._set_defaults()
            if create_missing:
                self._save_config()

    @property
    def path(self) -> Path:
        return self._config_path

    def _set_defaults(self):
        """Populate default configuration sections."""
        self._config['FORECAST'] = {
            key: str(value) for key, value in ForecastSettings().to_dict().items()
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True'
        }

        self._config['STORAGE'] = {
            'mapping_file': 'data/item_mapping.json',
            'forecasts_file': 'data/forecasts.json'
        }

    def _save_config(self):
        """Save configuration to file."""
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_path, 'w', encoding='utf-8') as configfile:
            self._config.write(configfile)

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def set(self, section, key, value):
        """Set configuration value."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))
        self._save_config()

    @property
    def forecast_settings(self) -> ForecastSettings:
        """Get forecast settings.

        Raises:
            ConfigError: If a value is malformed or out of range
        """
        if not self._config.has_section('FORECAST'):
            return ForecastSettings()

        return ForecastSettings.from_mapping(dict(self._config.items('FORECAST')))

    def save_forecast_settings(self, settings: ForecastSettings):
        """Persist forecast settings after validating them."""
        settings.validate()
        self._config['FORECAST'] = {key: str(value) for key, value in settings.to_dict().items()}
        self._save_config()

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', None),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def storage_config(self):
        """Get storage file locations."""
        return {
            'mapping_file': self.get('STORAGE', 'mapping_file', 'data/item_mapping.json'),
            'forecasts_file': self.get('STORAGE', 'forecasts_file', 'data/forecasts.json')
        }


def load_settings(path: Optional[Union[str, Path]] = None) -> ForecastSettings:
    """Load forecast settings, falling back to defaults on any failure.

    Args:
        path: Path to the INI file

    Returns:
        Loaded settings, or defaults when the file is unreadable or invalid
    """
    try:
        return Config(path).forecast_settings
    except ConfigError as e:
        logger.error(f"Invalid settings in {path or DEFAULT_CONFIG_PATH}, using defaults: {e}")
    except (OSError, configparser.Error) as e:
        logger.error(f"Could not read settings from {path or DEFAULT_CONFIG_PATH}, using defaults: {e}")

    return ForecastSettings()
