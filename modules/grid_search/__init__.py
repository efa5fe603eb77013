"""
Grid Search Module
==================

Responsibility:
- Serialised decoding of hyperparameter grid records (TaskSource).
- Concurrent readers pulling batches of grids (TaskReader).
- Per-grid fan-out of permutations across sub-workers (GridWorker).
- Lock-protected best-result reduction (BestResultArena).
- One CSV result row per grid (ResultWriter).
"""

from .hyperparameters import HyperparameterGrid, HyperparameterPoint, expand_permutations, partition
from .best_result import BestResult, BestResultArena
from .task_source import TaskSource, grid_from_record, parse_record
from .result_writer import ResultWriter
from .worker import GridOutcome, GridWorker, evaluate_point
from .reader import ReaderReport, TaskReader
from .grid_search_engine import GridSearchEngine, GridSearchSummary, reader_count

__all__ = [
    'HyperparameterGrid',
    'HyperparameterPoint',
    'expand_permutations',
    'partition',
    'BestResult',
    'BestResultArena',
    'TaskSource',
    'grid_from_record',
    'parse_record',
    'ResultWriter',
    'GridOutcome',
    'GridWorker',
    'evaluate_point',
    'ReaderReport',
    'TaskReader',
    'GridSearchEngine',
    'GridSearchSummary',
    'reader_count',
]
