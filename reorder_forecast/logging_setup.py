import logging
import logging.handlers
import traceback
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

DEFAULT_LOG_CONFIG = {
    'level': 'INFO',
    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    'directory': None,
    'max_size_mb': 10,
    'backup_count': 5,
    'console_output': True
}


class LogManager:
    """Logging manager for the Reorder Forecast system."""

    def __init__(self, log_config: Optional[Dict] = None):
        """Initialize the manager.

        Args:
            log_config: Logging configuration (see Config.log_config). File
                logging is enabled only when a directory is given.
        """
        self._log_config = dict(DEFAULT_LOG_CONFIG)
        if log_config:
            self._log_config.update(log_config)

        self._loggers = {}
        self._log_dir = None

        if self._log_config.get('directory'):
            self._log_dir = Path(self._log_config['directory'])
            self._log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def level(self) -> int:
        level_name = str(self._log_config['level']).upper()
        return getattr(logging, level_name, logging.INFO)

    def get_logger(self, name: str) -> logging.Logger:
        """Get a logger with the specified name.

        Args:
            name: Name of the logger

        Returns:
            Configured logger instance
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = logging.getLogger(name)
        logger.setLevel(self.level)

        # Remove existing handlers to prevent duplicates
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

        formatter = logging.Formatter(self._log_config['format'])

        if self._log_dir is not None:
            log_file = self._log_dir / f"{name.split('.')[0]}.log"
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=self._log_config['max_size_mb'] * 1024 * 1024,
                backupCount=self._log_config['backup_count'],
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        if self._log_config['console_output']:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        # Prevent propagation to root logger to avoid duplicates
        logger.propagate = False

        self._loggers[name] = logger
        return logger

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception with stack trace.

        Args:
            logger_name: Logger name
            exception: Exception object
            message: Optional message to include
        """
        logger = self.get_logger(logger_name)

        if message:
            logger.error(f"{message}: {str(exception)}")
        else:
            logger.error(str(exception))

        logger.error(traceback.format_exc())

    def batch_start_log(self, process_name, additional_info=None):
        """Log the start of a batch process.

        Args:
            process_name: Name of the batch process
            additional_info: Optional additional information

        Returns:
            Dictionary with batch process logging information
        """
        batch_logger = self.get_logger('batch')
        start_time = datetime.now()

        log_info = {
            'process_name': process_name,
            'start_time': start_time,
            'additional_info': additional_info
        }

        batch_logger.info(f"Starting batch process: {process_name}")
        if additional_info:
            batch_logger.info(f"Process info: {additional_info}")

        return log_info

    def batch_end_log(self, log_info, success=True, result_info=None):
        """Log the end of a batch process.

        Args:
            log_info: Dictionary returned by batch_start_log
            success: Whether the batch process succeeded
            result_info: Optional result information
        """
        batch_logger = self.get_logger('batch')
        end_time = datetime.now()

        process_name = log_info.get('process_name', 'Unknown')
        start_time = log_info.get('start_time', end_time)
        duration = end_time - start_time

        if success:
            batch_logger.info(f"Completed batch process: {process_name}")
        else:
            batch_logger.error(f"Failed batch process: {process_name}")

        batch_logger.info(f"Process duration: {duration}")

        if result_info:
            batch_logger.info(f"Process results: {result_info}")


_manager = None


def configure_logging(log_config: Optional[Dict] = None) -> LogManager:
    """Install the process-wide log manager (called once by entry points)."""
    global _manager
    previous = _manager
    _manager = LogManager(log_config)

    # Loggers created at import time keep their identity, re-attach handlers
    if previous is not None:
        for name in list(previous._loggers):
            _manager.get_logger(name)

    return _manager


def get_log_manager() -> LogManager:
    global _manager
    if _manager is None:
        _manager = LogManager()
    return _manager


def get_logger(name):
    """Get a logger with the specified name."""
    return get_log_manager().get_logger(name)


def log_exception(logger_name, exception, message=None):
    """Log an exception with stack trace."""
    get_log_manager().log_exception(logger_name, exception, message)
