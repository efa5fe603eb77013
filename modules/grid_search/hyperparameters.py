import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, TypeVar

from sklearn.model_selection import ParameterGrid

T = TypeVar('T')


@dataclass(frozen=True)
class HyperparameterGrid:
    """
    One decoded task: an output destination plus candidate values per axis.

    lambda_ and mini_batch_size are parsed and carried but not searched.
    """
    outpath: str
    alpha: Tuple[float, ...] = ()
    num_epochs: Tuple[float, ...] = ()
    lambda_: Tuple[float, ...] = ()
    mini_batch_size: Tuple[float, ...] = ()

    @property
    def permutation_count(self) -> int:
        return len(self.alpha) * len(self.num_epochs)


@dataclass(frozen=True)
class HyperparameterPoint:
    """A single permutation drawn from a grid. None marks an axis that does not apply."""
    outpath: str
    alpha: Optional[float] = None
    num_epochs: Optional[float] = None
    lambda_: Optional[float] = None
    mini_batch_size: Optional[float] = None


def expand_permutations(grid: HyperparameterGrid) -> List[HyperparameterPoint]:
    """
    Cross product of the learning-rate and epoch-count lists.
    Ordered with alpha as the outer loop and epochs as the inner one.
    """
    if not grid.alpha or not grid.num_epochs:
        return []

    # ParameterGrid iterates keys in sorted order, the last key varying fastest.
    param_grid = ParameterGrid({'alpha': list(grid.alpha), 'num_epochs': list(grid.num_epochs)})
    return [
        HyperparameterPoint(grid.outpath, alpha=params['alpha'], num_epochs=params['num_epochs'])
        for params in param_grid
    ]


def partition(items: Sequence[T], n_chunks: int) -> List[Sequence[T]]:
    """
    Split items into contiguous chunks of ceil(len / n_chunks) elements.

    Every item lands in exactly one chunk; the trailing partial chunk is kept,
    so fewer than n_chunks chunks may be returned.
    """
    if n_chunks < 1:
        raise ValueError(f"n_chunks must be >= 1, got {n_chunks}")
    if not items:
        return []
    chunk_size = math.ceil(len(items) / n_chunks)
    return [items[start:start + chunk_size] for start in range(0, len(items), chunk_size)]
