"""
Custom exception hierarchy for the regression calibration system.
"""

class CalibrationException(Exception):
    """Base exception for all system errors."""
    pass

class ConfigurationError(CalibrationException):
    """Configuration validation failed."""
    pass

class DataValidationError(CalibrationException):
    """Dataset validation failed (empty, non-numeric, degenerate range)."""
    pass

class TaskDecodeError(CalibrationException):
    """A hyperparameter grid record could not be decoded."""
    pass

class OutputWriteError(CalibrationException):
    """A grid result could not be written to its destination."""
    pass

class GridSearchError(CalibrationException):
    """Evaluation of a hyperparameter grid failed."""
    pass
