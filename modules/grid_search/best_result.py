import math
import threading
from dataclasses import dataclass

from modules.regression_engine import ModelParameters
from modules.grid_search.hyperparameters import HyperparameterPoint


@dataclass(frozen=True)
class BestResult:
    """Lowest-error permutation found for one grid, with its fitted parameters."""
    point: HyperparameterPoint
    mse: float
    parameters: ModelParameters

    @classmethod
    def initial(cls, outpath: str) -> 'BestResult':
        return cls(HyperparameterPoint(outpath), math.inf, ModelParameters())

    def improves_on(self, other: 'BestResult') -> bool:
        # NaN never compares lower, so diverged fits cannot win
        return self.mse < other.mse


class BestResultArena:
    """
    Shared best-so-far slot for one grid.

    Every update reads, compares and writes within a single lock acquisition.
    """

    def __init__(self, outpath: str):
        self.outpath = outpath
        self._lock = threading.Lock()
        self._best = BestResult.initial(outpath)
        self.offers = 0

    def offer(self, candidate: BestResult) -> bool:
        """Replace the held result if the candidate's error is strictly lower."""
        with self._lock:
            self.offers += 1
            if candidate.improves_on(self._best):
                self._best = candidate
                return True
            return False

    def snapshot(self) -> BestResult:
        with self._lock:
            return self._best
