import functools
import logging
from typing import Type

from utils.exceptions import CalibrationException

def handle_engine_errors(operation_name: str, wrap_as: Type[CalibrationException] = CalibrationException):
    """
    Decorator for consistent error handling in engine entry points.

    CalibrationException subclasses propagate unchanged. Anything else is logged
    through the engine's own logger, tagged with the operation and engine class,
    and re-raised as `wrap_as` with the original chained.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except CalibrationException:
                raise
            except Exception as e:
                logger = getattr(self, 'logger', None) or logging.getLogger(func.__module__)
                logger.error(
                    f"{operation_name} failed in {type(self).__name__}: {type(e).__name__}: {e}",
                    exc_info=True,
                )
                raise wrap_as(f"{operation_name} failed: {e}") from e
        return wrapper
    return decorator
