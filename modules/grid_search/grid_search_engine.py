import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import IO, Any, Dict, List

from modules.base.base_engine import BaseEngine
from modules.regression_engine import Dataset, NormalizedDataset, prepare_dataset
from modules.grid_search.reader import ReaderReport, TaskReader
from modules.grid_search.result_writer import ResultWriter
from modules.grid_search.task_source import TaskSource
from modules.grid_search.worker import GridWorker
from utils.error_handling import handle_engine_errors
from utils.exceptions import GridSearchError
from utils import constants


@dataclass(frozen=True)
class GridSearchSummary:
    grids_written: int
    grids_failed: int
    records_skipped: int
    readers: int
    duration_sec: float


def reader_count(threads: int, reader_fraction: float = constants.DEFAULT_READER_FRACTION) -> int:
    """Readers derived from the thread budget; at least one."""
    return max(1, math.ceil(threads * reader_fraction))


class GridSearchEngine(BaseEngine):
    """
    Runs the grid-search pipeline over a stream of hyperparameter grids.

    threads > 0: R concurrent readers, each grid fanned out over up to
    `threads` sub-workers. threads == 0: a single inline reader and one
    sub-worker per grid, no threads spawned.
    """

    def __init__(self, config: Dict[str, Any], logger: logging.Logger):
        super().__init__(config, logger)
        execution = config.get('execution', {})
        self.threads = execution.get('threads', constants.DEFAULT_THREADS)
        self.batch_size = execution.get('batch_size', constants.DEFAULT_BATCH_SIZE)
        self.reader_fraction = execution.get('reader_fraction', constants.DEFAULT_READER_FRACTION)
        self.max_permutations = config.get('resources', {}).get(
            'max_grid_permutations', constants.DEFAULT_MAX_GRID_PERMUTATIONS
        )

    def _get_engine_directory_name(self) -> str:
        return self.config.get('outputs', {}).get('results_subdir', '')

    @handle_engine_errors("Grid Search", wrap_as=GridSearchError)
    def execute(self, dataset: Dataset, stream: IO[str]) -> GridSearchSummary:
        """
        Evaluate every grid in the stream and write one result file per grid.

        Args:
            dataset: Training data, shared read-only by all threads.
            stream: Text stream of JSON Lines grid records.

        Returns:
            GridSearchSummary with counts of written, failed and skipped grids.

        Raises:
            DataValidationError: dataset is empty or x is constant (before any grid is read).
        """
        data = prepare_dataset(dataset)
        source = TaskSource(stream, self.logger, max_permutations=self.max_permutations)
        writer = ResultWriter(self.output_dir, self.logger)

        start_time = time.time()
        if self.threads == 0:
            self.logger.info("Starting sequential grid search...")
            reports = [self._make_reader(0, source, data, writer, n_threads=1).run()]
        else:
            n_readers = reader_count(self.threads, self.reader_fraction)
            self.logger.info(
                f"Starting parallel grid search: {self.threads} threads, "
                f"{n_readers} readers, batch size {self.batch_size}"
            )
            with ThreadPoolExecutor(max_workers=n_readers, thread_name_prefix="reader") as pool:
                futures = [
                    pool.submit(self._make_reader(i, source, data, writer, n_threads=self.threads).run)
                    for i in range(n_readers)
                ]
                reports = [future.result() for future in futures]
        duration = time.time() - start_time

        summary = self._summarize(reports, source, duration)
        self.logger.info(
            f"Grid search completed in {duration:.2f} seconds: {summary.grids_written} written, "
            f"{summary.grids_failed} failed, {summary.records_skipped} records skipped."
        )
        return summary

    def _make_reader(self, reader_id: int, source: TaskSource, data: NormalizedDataset,
                     writer: ResultWriter, n_threads: int) -> TaskReader:
        def worker_factory() -> GridWorker:
            return GridWorker(data, n_threads, writer, self.logger)

        return TaskReader(reader_id, source, worker_factory, self.batch_size, self.logger)

    @staticmethod
    def _summarize(reports: List[ReaderReport], source: TaskSource, duration: float) -> GridSearchSummary:
        outcomes = [outcome for report in reports for outcome in report.outcomes]
        written = sum(1 for outcome in outcomes if outcome.written)
        return GridSearchSummary(
            grids_written=written,
            grids_failed=len(outcomes) - written,
            records_skipped=source.skipped_records,
            readers=len(reports),
            duration_sec=duration,
        )
