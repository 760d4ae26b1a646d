class ReorderForecastError(Exception):
    """Base exception for Reorder Forecast errors."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Reorder Forecast system"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(ReorderForecastError):
    """Exception raised for configuration errors, including out-of-range settings."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class ValidationError(ReorderForecastError):
    """Exception raised for data validation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class IngestionError(ReorderForecastError):
    """Exception raised when an order spreadsheet cannot be read."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Ingestion error"
        super().__init__(message, code, details)


class ForecastError(ReorderForecastError):
    """Exception raised for forecasting-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Forecasting error"
        super().__init__(message, code, details)


class StorageError(ReorderForecastError):
    """Exception raised when the mapping or forecast store cannot be written."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Storage error"
        super().__init__(message, code, details)


class BatchProcessError(ReorderForecastError):
    """Exception raised for batch process errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Batch process error"
        super().__init__(message, code, details)
