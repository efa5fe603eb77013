import csv
import logging
import math
import pytest
import numpy as np
from unittest.mock import MagicMock, patch

from modules.regression_engine import Dataset, prepare_dataset
from modules.grid_search.hyperparameters import HyperparameterGrid, expand_permutations
from modules.grid_search.result_writer import ResultWriter
from modules.grid_search.worker import GridWorker, evaluate_point
from utils.exceptions import GridSearchError

# --- Fixtures ---

@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)

@pytest.fixture
def line_data():
    return prepare_dataset(Dataset(x=[0.0, 10.0, 20.0], y=[100.0, 150.0, 200.0]))

@pytest.fixture
def noisy_data():
    rng = np.random.default_rng(42)
    x = rng.uniform(0, 100, 100)
    return prepare_dataset(Dataset(x=x, y=5 * x + 100 + rng.normal(0, 25, 100)))

@pytest.fixture
def wide_grid():
    return HyperparameterGrid(
        "wide.csv",
        alpha=(0.001, 0.01, 0.05, 0.1, 0.3, 0.5, 0.9, 2.0),
        num_epochs=(1.0, 10.0, 50.0, 100.0, 300.0),
    )

# --- Tests ---

def test_end_to_end_exact_line(line_data, mock_logger, tmp_path):
    grid = HyperparameterGrid("result.csv", alpha=(0.01, 0.1), num_epochs=(100.0, 1000.0))
    worker = GridWorker(line_data, 4, ResultWriter(tmp_path, mock_logger), mock_logger)

    outcomes = worker.process_batch([grid])

    assert len(outcomes) == 1 and outcomes[0].written
    best = outcomes[0].best
    assert best.point.alpha == 0.1
    assert best.point.num_epochs == 1000.0
    assert best.parameters.beta == pytest.approx(5.0, abs=1e-4)
    assert best.parameters.mu == pytest.approx(100.0, abs=1e-4)

    with open(tmp_path / "result.csv", newline='') as f:
        header, row = list(csv.reader(f))
    assert header == ["alpha", "numEpochs", "lambda", "miniBatchSize", "beta", "mu"]
    assert row[:4] == ["0.100000", "1000.000000", "NA", "NA"]
    assert float(row[4]) == pytest.approx(5.0, abs=1e-4)
    assert float(row[5]) == pytest.approx(100.0, abs=1e-4)

def test_best_is_no_worse_than_any_permutation(noisy_data, wide_grid, mock_logger):
    worker = GridWorker(noisy_data, 3, MagicMock(), mock_logger)
    best = worker.process_grid(wide_grid)

    errors = [evaluate_point(noisy_data, p).mse for p in expand_permutations(wide_grid)]
    finite = [e for e in errors if math.isfinite(e)]
    assert best.mse == min(finite)
    assert all(best.mse <= e for e in finite)

@pytest.mark.parametrize("n_threads", [2, 3, 7, 40, 64])
def test_sub_worker_count_does_not_change_optimum(noisy_data, wide_grid, mock_logger, n_threads):
    single = GridWorker(noisy_data, 1, MagicMock(), mock_logger).process_grid(wide_grid)
    many = GridWorker(noisy_data, n_threads, MagicMock(), mock_logger).process_grid(wide_grid)

    assert many.mse == pytest.approx(single.mse)

def test_every_permutation_is_evaluated(line_data, mock_logger):
    grid = HyperparameterGrid("g.csv", alpha=(0.1, 0.2, 0.3), num_epochs=(1.0, 2.0, 3.0))  # 9 over 4 threads
    worker = GridWorker(line_data, 4, MagicMock(), mock_logger)

    with patch('modules.grid_search.worker.evaluate_point', wraps=evaluate_point) as spy:
        worker.process_grid(grid)

    evaluated = sorted((call.args[1].alpha, call.args[1].num_epochs) for call in spy.call_args_list)
    assert evaluated == sorted((p.alpha, p.num_epochs) for p in expand_permutations(grid))

def test_empty_grid_writes_initial_result(line_data, mock_logger, tmp_path):
    worker = GridWorker(line_data, 4, ResultWriter(tmp_path, mock_logger), mock_logger)
    outcomes = worker.process_batch([HyperparameterGrid("empty.csv", alpha=(0.1,))])

    assert outcomes[0].written
    assert outcomes[0].best.mse == math.inf
    with open(tmp_path / "empty.csv", newline='') as f:
        assert list(csv.reader(f))[1] == ["NA", "NA", "NA", "NA", "0.000000", "0.000000"]

def test_write_failure_is_scoped_to_its_grid(line_data, mock_logger, tmp_path):
    (tmp_path / "blocked").mkdir()
    worker = GridWorker(line_data, 2, ResultWriter(tmp_path, mock_logger), mock_logger)
    batch = [
        HyperparameterGrid("blocked", alpha=(0.1,), num_epochs=(10.0,)),
        HyperparameterGrid("fine.csv", alpha=(0.1,), num_epochs=(10.0,)),
    ]

    outcomes = worker.process_batch(batch)

    assert [o.written for o in outcomes] == [False, True]
    assert "Cannot write result" in outcomes[0].error
    assert (tmp_path / "fine.csv").exists()
    mock_logger.error.assert_called_once()

def test_sub_worker_failure_aborts_grid(line_data, mock_logger):
    grid = HyperparameterGrid("g.csv", alpha=(0.1, 0.2), num_epochs=(1.0, 2.0))
    worker = GridWorker(line_data, 2, MagicMock(), mock_logger)

    with patch('modules.grid_search.worker.evaluate_point', side_effect=RuntimeError("boom")):
        with pytest.raises(GridSearchError, match="boom"):
            worker.process_grid(grid)

def test_grids_in_batch_written_in_order(line_data, mock_logger):
    writer = MagicMock()
    worker = GridWorker(line_data, 2, writer, mock_logger)
    batch = [HyperparameterGrid(f"{i}.csv", alpha=(0.1,), num_epochs=(5.0,)) for i in range(4)]

    worker.process_batch(batch)

    assert [c.args[0].point.outpath for c in writer.write.call_args_list] == ["0.csv", "1.csv", "2.csv", "3.csv"]

def test_invalid_thread_count(line_data, mock_logger):
    with pytest.raises(ValueError):
        GridWorker(line_data, 0, MagicMock(), mock_logger)
