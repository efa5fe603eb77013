import logging
from dataclasses import dataclass, field
from typing import Callable, List

from modules.grid_search.task_source import TaskSource
from modules.grid_search.worker import GridOutcome, GridWorker


@dataclass
class ReaderReport:
    reader_id: int
    batches: int = 0
    outcomes: List[GridOutcome] = field(default_factory=list)


class TaskReader:
    """
    Pulls batches from the shared TaskSource and hands each to a fresh GridWorker.

    One batch is in flight per reader; the next batch is requested only after
    the worker returns, so a reader processes grids in the order it received them.
    """

    def __init__(self, reader_id: int, source: TaskSource, worker_factory: Callable[[], GridWorker],
                 batch_size: int, logger: logging.Logger):
        self.reader_id = reader_id
        self.source = source
        self.worker_factory = worker_factory
        self.batch_size = batch_size
        self.logger = logger

    def run(self) -> ReaderReport:
        report = ReaderReport(self.reader_id)
        while True:
            batch = self.source.next_batch(self.batch_size)
            if not batch:
                self.logger.debug(
                    f"Reader {self.reader_id} done: {report.batches} batches, {len(report.outcomes)} grids."
                )
                return report

            worker = self.worker_factory()
            report.outcomes.extend(worker.process_batch(batch))
            report.batches += 1
