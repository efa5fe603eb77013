import json
import logging
import math
import threading
from typing import IO, Any, Dict, List, Optional, Tuple

import jsonschema

from modules.grid_search.hyperparameters import HyperparameterGrid
from utils.exceptions import TaskDecodeError
from utils import constants

_AXIS_VALUES = {
    "type": "array",
    "items": {"type": ["string", "number"]}
}

RECORD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        constants.RECORD_OUTPATH: {"type": "string", "minLength": 1},
        constants.RECORD_ALPHA: _AXIS_VALUES,
        constants.RECORD_NUM_EPOCHS: _AXIS_VALUES,
        constants.RECORD_LAMBDA: _AXIS_VALUES,
        constants.RECORD_MINI_BATCH_SIZE: _AXIS_VALUES,
    },
    "required": [constants.RECORD_OUTPATH]
}

_DECODER = json.JSONDecoder()


def _to_floats(key: str, values: Optional[List[Any]]) -> Tuple[float, ...]:
    if values is None:
        return ()
    try:
        floats = tuple(float(v) for v in values)
    except (TypeError, ValueError) as e:
        raise TaskDecodeError(f"Non-numeric value in '{key}': {e}") from e
    if not all(math.isfinite(v) for v in floats):
        raise TaskDecodeError(f"Non-finite value in '{key}': {list(values)}")
    return floats


def _check_encoding(text: str) -> None:
    # Undecodable input bytes arrive as lone surrogates (errors='surrogateescape')
    try:
        text.encode('utf-8')
    except UnicodeEncodeError as e:
        raise TaskDecodeError(f"Record is not valid UTF-8: {e}") from e


def grid_from_record(record: Any) -> HyperparameterGrid:
    """
    Validate a decoded JSON value and build its HyperparameterGrid.

    Raises:
        TaskDecodeError: schema violation, non-numeric or non-finite values.
    """
    try:
        jsonschema.validate(instance=record, schema=RECORD_SCHEMA)
    except jsonschema.ValidationError as e:
        raise TaskDecodeError(f"Record schema validation failed: {e.message}") from e

    return HyperparameterGrid(
        outpath=record[constants.RECORD_OUTPATH],
        alpha=_to_floats(constants.RECORD_ALPHA, record.get(constants.RECORD_ALPHA)),
        num_epochs=_to_floats(constants.RECORD_NUM_EPOCHS, record.get(constants.RECORD_NUM_EPOCHS)),
        lambda_=_to_floats(constants.RECORD_LAMBDA, record.get(constants.RECORD_LAMBDA)),
        mini_batch_size=_to_floats(constants.RECORD_MINI_BATCH_SIZE, record.get(constants.RECORD_MINI_BATCH_SIZE)),
    )


def parse_record(text: str) -> HyperparameterGrid:
    """
    Decode one JSON record into a HyperparameterGrid.

    Raises:
        TaskDecodeError: invalid encoding, invalid JSON, schema violation or bad values.
    """
    _check_encoding(text)
    try:
        record = json.loads(text)
    except json.JSONDecodeError as e:
        raise TaskDecodeError(f"Invalid JSON: {e}") from e
    return grid_from_record(record)


class TaskSource:
    """
    Owns the shared task stream. Readers only ever call next_batch().

    The stream is a whitespace-separated sequence of JSON objects: a record may
    span several lines and several records may share one. A single lock
    serialises decoding, so each record is delivered to exactly one caller.
    Malformed records are logged and skipped.
    """

    def __init__(self, stream: IO[str], logger: logging.Logger,
                 max_permutations: int = constants.DEFAULT_MAX_GRID_PERMUTATIONS):
        self._stream = stream
        self._lock = threading.Lock()
        self._buffer = ''
        self._eof = False
        self._exhausted = False
        self._line_number = 0
        self._record_line = 0
        self.logger = logger
        self.max_permutations = max_permutations
        self.delivered_records = 0
        self.skipped_records = 0

    @property
    def exhausted(self) -> bool:
        with self._lock:
            return self._exhausted

    def next_batch(self, batch_size: int) -> List[HyperparameterGrid]:
        """
        Decode up to batch_size grids.

        Returns a shorter list when the stream ends mid-batch and an empty list
        once it is exhausted; exhaustion is permanent.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        batch: List[HyperparameterGrid] = []
        with self._lock:
            while len(batch) < batch_size and not self._exhausted:
                try:
                    item = self._read_value()
                    if item is None:
                        self._exhausted = True
                        self.logger.debug(f"Task stream exhausted after {self._line_number} lines.")
                        break
                    text, record = item
                    _check_encoding(text)
                    grid = grid_from_record(record)
                    self._check_size(grid)
                except TaskDecodeError as e:
                    self.skipped_records += 1
                    self.logger.warning(f"Skipping malformed task record on line {self._record_line}: {e}")
                    continue

                batch.append(grid)
            self.delivered_records += len(batch)
        return batch

    def _read_value(self) -> Optional[Tuple[str, Any]]:
        """
        Next JSON value as (source text, decoded value); None at end of stream.

        Raises:
            TaskDecodeError: the buffered input is not valid JSON. It is discarded
                and decoding resumes on the next unread line.
        """
        while True:
            self._buffer = self._buffer.lstrip()
            if self._buffer:
                self._record_line = self._buffer_start_line()
                try:
                    value, end = _DECODER.raw_decode(self._buffer)
                except json.JSONDecodeError as e:
                    # An error at the end of the buffer means the record continues on the next line
                    if e.pos < len(self._buffer) or self._eof:
                        self._buffer = ''
                        raise TaskDecodeError(f"Invalid JSON: {e}") from e
                else:
                    text = self._buffer[:end]
                    self._buffer = self._buffer[end:]
                    return text, value
            elif self._eof:
                return None
            self._fill()

    def _fill(self) -> None:
        try:
            line = self._stream.readline()
        except UnicodeDecodeError as e:
            self._line_number += 1
            self._record_line = self._line_number
            self._buffer = ''
            raise TaskDecodeError(f"Record is not valid UTF-8: {e}") from e
        if not line:
            self._eof = True
            return
        self._line_number += 1
        self._buffer += line

    def _buffer_start_line(self) -> int:
        lines_buffered = self._buffer.count('\n') + (0 if self._buffer.endswith('\n') else 1)
        return self._line_number - lines_buffered + 1

    def _check_size(self, grid: HyperparameterGrid) -> None:
        if grid.permutation_count > self.max_permutations:
            raise TaskDecodeError(
                f"Grid for '{grid.outpath}' has {grid.permutation_count} permutations, "
                f"exceeding the limit of {self.max_permutations}."
            )
