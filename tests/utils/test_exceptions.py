import logging
import pytest
from unittest.mock import Mock, patch
from utils.exceptions import (
    CalibrationException, ConfigurationError, DataValidationError,
    TaskDecodeError, OutputWriteError, GridSearchError,
)
from utils.error_handling import handle_engine_errors

@pytest.mark.parametrize("exc_type", [
    ConfigurationError, DataValidationError, TaskDecodeError, OutputWriteError, GridSearchError,
])
def test_exception_inheritance(exc_type):
    err = exc_type("Test error")
    assert isinstance(err, CalibrationException)
    assert isinstance(err, Exception)
    assert str(err) == "Test error"

class _Engine:
    def __init__(self, error):
        self.logger = Mock()
        self.error = error

    @handle_engine_errors("Test Op")
    def execute(self):
        raise self.error

    @handle_engine_errors("Grid Op", wrap_as=GridSearchError)
    def search(self):
        raise self.error

class _LoggerlessEngine:
    @handle_engine_errors("Bare Op")
    def execute(self):
        raise RuntimeError("no logger here")

def test_calibration_errors_pass_through():
    engine = _Engine(DataValidationError("bad data"))
    with pytest.raises(DataValidationError, match="bad data"):
        engine.execute()
    engine.logger.error.assert_not_called()

def test_unexpected_errors_wrapped_and_logged():
    engine = _Engine(KeyError("boom"))
    with pytest.raises(CalibrationException, match="Test Op failed") as exc_info:
        engine.execute()
    assert isinstance(exc_info.value.__cause__, KeyError)
    engine.logger.error.assert_called_once()

def test_log_line_names_operation_and_engine():
    engine = _Engine(ValueError("odd"))
    with pytest.raises(CalibrationException):
        engine.execute()
    message = engine.logger.error.call_args[0][0]
    assert "Test Op failed in _Engine" in message
    assert "ValueError" in message

def test_wrap_as_selects_exception_type():
    engine = _Engine(ZeroDivisionError("div"))
    with pytest.raises(GridSearchError, match="Grid Op failed: div"):
        engine.search()

def test_falls_back_to_module_logger():
    with patch('utils.error_handling.logging.getLogger') as get_logger:
        with pytest.raises(CalibrationException, match="Bare Op failed"):
            _LoggerlessEngine().execute()
    get_logger.return_value.error.assert_called_once()

def test_wrapped_functions_keep_their_name():
    assert _Engine.execute.__name__ == "execute"
