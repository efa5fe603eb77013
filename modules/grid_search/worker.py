import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from joblib import Parallel, delayed

from modules.regression_engine import (
    NormalizedDataset,
    denormalize,
    forecast,
    mean_squared_error,
    run_gradient_descent,
)
from modules.grid_search.best_result import BestResult, BestResultArena
from modules.grid_search.hyperparameters import (
    HyperparameterGrid,
    HyperparameterPoint,
    expand_permutations,
    partition,
)
from modules.grid_search.result_writer import ResultWriter
from utils.exceptions import GridSearchError, OutputWriteError


@dataclass(frozen=True)
class GridOutcome:
    """What happened to one grid: the result written, or why nothing was."""
    outpath: str
    best: Optional[BestResult] = None
    error: Optional[str] = None

    @property
    def written(self) -> bool:
        return self.error is None


def evaluate_point(data: NormalizedDataset, point: HyperparameterPoint) -> BestResult:
    """Fit on normalised x, map back to raw x, score against the raw dataset."""
    fitted = run_gradient_descent(data.normalized, point.alpha, point.num_epochs)
    with np.errstate(over='ignore', invalid='ignore'):
        parameters = denormalize(fitted, data.min_x, data.max_x)
        predicted = forecast(parameters.mu, parameters.beta, data.raw.x)
        mse = mean_squared_error(predicted, data.raw.y)
    return BestResult(point, mse, parameters)


class GridWorker:
    """
    Processes one batch of grids, one grid at a time.

    Each grid's permutations are split into contiguous chunks, one per
    sub-worker; sub-workers run concurrently and reduce into a shared
    BestResultArena before the grid's result is written.
    """

    def __init__(self, data: NormalizedDataset, n_threads: int, writer: ResultWriter,
                 logger: logging.Logger):
        if n_threads < 1:
            raise ValueError(f"n_threads must be >= 1, got {n_threads}")
        self.data = data
        self.n_threads = n_threads
        self.writer = writer
        self.logger = logger

    def process_batch(self, batch: Sequence[HyperparameterGrid]) -> List[GridOutcome]:
        outcomes = []
        for grid in batch:
            try:
                best = self.process_grid(grid)
                self.writer.write(best)
            except (GridSearchError, OutputWriteError) as e:
                self.logger.error(f"Grid '{grid.outpath}' failed: {e}")
                outcomes.append(GridOutcome(grid.outpath, error=str(e)))
                continue
            outcomes.append(GridOutcome(grid.outpath, best=best))
        return outcomes

    def process_grid(self, grid: HyperparameterGrid) -> BestResult:
        """
        Evaluate every permutation of the grid and return the frozen best.

        Raises:
            GridSearchError: a sub-worker failed; no partial result is kept.
        """
        points = expand_permutations(grid)
        chunks = partition(points, self.n_threads)
        arena = BestResultArena(grid.outpath)

        self.logger.debug(
            f"Grid '{grid.outpath}': {len(points)} permutations across {len(chunks)} sub-workers"
        )

        try:
            if len(chunks) > 1:
                # Parallel returns only after every chunk has finished (barrier).
                Parallel(n_jobs=len(chunks), backend="threading")(
                    delayed(self._run_sub_worker)(chunk, arena) for chunk in chunks
                )
            else:
                for chunk in chunks:
                    self._run_sub_worker(chunk, arena)
        except Exception as e:
            raise GridSearchError(f"Sub-worker failed for '{grid.outpath}': {e}") from e

        best = arena.snapshot()
        if math.isinf(best.mse):
            self.logger.warning(f"Grid '{grid.outpath}' produced no finite-error permutation.")
        return best

    def _run_sub_worker(self, chunk: Sequence[HyperparameterPoint], arena: BestResultArena) -> BestResult:
        local_best = BestResult.initial(arena.outpath)
        for point in chunk:
            candidate = evaluate_point(self.data, point)
            if candidate.improves_on(local_best):
                local_best = candidate
        arena.offer(local_best)
        return local_best
