import csv
import io
import json
import logging
import threading
import time
import pandas as pd
import pytest
from unittest.mock import MagicMock, patch

from modules.regression_engine import Dataset
from modules.grid_search.grid_search_engine import GridSearchEngine, reader_count
from utils.exceptions import DataValidationError

# --- Fixtures ---

@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)

@pytest.fixture
def dataset():
    return Dataset(x=[0.0, 10.0, 20.0], y=[100.0, 150.0, 200.0])

@pytest.fixture
def engine_config(tmp_path):
    return {
        'outputs': {'base_results_dir': str(tmp_path)},
        'execution': {'threads': 4, 'batch_size': 2, 'reader_fraction': 0.5},
        'resources': {'max_grid_permutations': 100},
    }

def _task_stream(n_grids, malformed=0):
    lines = [
        json.dumps({"outpath": f"grid_{i}.csv", "alpha": ["0.01", "0.1"], "numEpochs": ["100", "1000"]})
        for i in range(n_grids)
    ]
    lines += ["{broken"] * malformed
    return io.StringIO("\n".join(lines) + "\n")

def _row(path):
    with open(path, newline='') as f:
        return list(csv.reader(f))[1]

# --- Tests ---

@pytest.mark.parametrize("threads, fraction, expected", [
    (1, 0.2, 1), (5, 0.2, 1), (6, 0.2, 2), (10, 0.2, 2), (4, 0.5, 2), (3, 1.0, 3),
])
def test_reader_count(threads, fraction, expected):
    assert reader_count(threads, fraction) == expected

def test_parallel_run_writes_one_file_per_grid(engine_config, dataset, mock_logger, tmp_path):
    engine = GridSearchEngine(engine_config, mock_logger)

    summary = engine.execute(dataset, _task_stream(7, malformed=2))

    assert summary.grids_written == 7
    assert summary.grids_failed == 0
    assert summary.records_skipped == 2
    assert summary.readers == 2
    for i in range(7):
        row = _row(tmp_path / f"grid_{i}.csv")
        assert row[:4] == ["0.100000", "1000.000000", "NA", "NA"]
        assert float(row[4]) == pytest.approx(5.0, abs=1e-4)
        assert float(row[5]) == pytest.approx(100.0, abs=1e-4)

def test_sequential_mode_matches_parallel(engine_config, dataset, mock_logger, tmp_path):
    engine_config['execution']['threads'] = 0
    engine = GridSearchEngine(engine_config, mock_logger)

    summary = engine.execute(dataset, _task_stream(3))

    assert summary.readers == 1
    assert summary.grids_written == 3
    assert _row(tmp_path / "grid_0.csv")[:2] == ["0.100000", "1000.000000"]

def test_results_subdir(engine_config, dataset, mock_logger, tmp_path):
    engine_config['outputs']['results_subdir'] = "calibration"
    GridSearchEngine(engine_config, mock_logger).execute(dataset, _task_stream(1))
    assert (tmp_path / "calibration" / "grid_0.csv").exists()

def test_empty_stream(engine_config, dataset, mock_logger):
    summary = GridSearchEngine(engine_config, mock_logger).execute(dataset, io.StringIO(""))
    assert summary.grids_written == 0
    assert summary.grids_failed == 0

def test_failed_grid_does_not_stop_others(engine_config, dataset, mock_logger, tmp_path):
    (tmp_path / "grid_1.csv").mkdir()
    summary = GridSearchEngine(engine_config, mock_logger).execute(dataset, _task_stream(4))

    assert summary.grids_written == 3
    assert summary.grids_failed == 1

def test_degenerate_dataset_rejected_before_reading(engine_config, mock_logger):
    stream = _task_stream(2)
    engine = GridSearchEngine(engine_config, mock_logger)

    with pytest.raises(DataValidationError):
        engine.execute(Dataset(x=[3.0, 3.0], y=[1.0, 2.0]), stream)
    assert stream.tell() == 0

def test_readers_never_write_one_outpath_concurrently(engine_config, dataset, mock_logger, tmp_path):
    engine_config['execution'].update({'threads': 4, 'batch_size': 1, 'reader_fraction': 0.5})
    record = json.dumps({"outpath": "same.csv", "alpha": ["0.1"], "numEpochs": ["1000"]})
    stream = io.StringIO(f"{record}\n{record}\n{record}\n{record}\n")
    active = []
    overlaps = []
    guard = threading.Lock()
    original = pd.DataFrame.to_csv

    def to_csv(frame, path, *args, **kwargs):
        with guard:
            if path in active:
                overlaps.append(path)
            active.append(path)
        time.sleep(0.05)
        try:
            return original(frame, path, *args, **kwargs)
        finally:
            with guard:
                active.remove(path)

    with patch.object(pd.DataFrame, 'to_csv', autospec=True, side_effect=to_csv):
        summary = GridSearchEngine(engine_config, mock_logger).execute(dataset, stream)

    assert summary.readers == 2
    assert summary.grids_written == 4
    assert overlaps == []
    assert _row(tmp_path / "same.csv")[:2] == ["0.100000", "1000.000000"]
