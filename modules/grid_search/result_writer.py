import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from modules.grid_search.best_result import BestResult
from utils.exceptions import OutputWriteError
from utils import constants


def _format(value: Optional[float]) -> str:
    if value is None:
        return constants.NOT_APPLICABLE
    return constants.FLOAT_FORMAT.format(value)


def format_row(best: BestResult) -> List[str]:
    """Render a result in RESULT_HEADER order, NA for axes that do not apply."""
    point = best.point
    return [
        _format(point.alpha),
        _format(point.num_epochs),
        _format(point.lambda_),
        _format(point.mini_batch_size),
        _format(best.parameters.beta),
        _format(best.parameters.mu),
    ]


class ResultWriter:
    """
    Persists the winning hyperparameters of one grid as a single-row CSV.

    Shared by every reader. Writes to the same destination are serialised by a
    per-path lock; writes to different files proceed concurrently.
    """

    def __init__(self, output_dir: Union[str, Path], logger: logging.Logger):
        self.output_dir = Path(output_dir)
        self.logger = logger
        self._registry_lock = threading.Lock()
        self._path_locks: Dict[Path, threading.Lock] = {}

    def resolve(self, outpath: str) -> Path:
        path = Path(outpath)
        if path.is_absolute():
            return path
        return self.output_dir / path

    def _lock_for(self, path: Path) -> threading.Lock:
        key = Path(os.path.abspath(path))
        with self._registry_lock:
            if key not in self._path_locks:
                self._path_locks[key] = threading.Lock()
            return self._path_locks[key]

    def write(self, best: BestResult) -> Path:
        """
        Create the destination (and its parent directories) and write header + row.

        Raises:
            OutputWriteError: destination could not be created or written.
        """
        path = self.resolve(best.point.outpath)
        row = format_row(best)
        df = pd.DataFrame([row], columns=constants.RESULT_HEADER)

        with self._lock_for(path):
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                df.to_csv(path, index=False)
            except OSError as e:
                raise OutputWriteError(f"Cannot write result to {path}: {e}") from e

        self.logger.info(f"Wrote {path}: {row}")
        return path
