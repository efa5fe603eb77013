import logging
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from modules.regression_engine import Dataset
from utils.exceptions import DataValidationError
from utils.error_handling import handle_engine_errors
from utils import constants

class DataManager:
    """
    Loads and validates the training dataset.

    Every dataset problem (missing file, empty frame, non-numeric or non-finite
    values, constant x) is reported here, before any grid is read.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger
        self.data: Optional[pd.DataFrame] = None

    @handle_engine_errors("Data Management", wrap_as=DataValidationError)
    def execute(self) -> Dataset:
        """
        Load, validate and wrap the dataset.

        Returns:
            Dataset: immutable x/y arrays.
        """
        self.logger.info("Starting Data Manager execution...")
        self.load_data()
        self.validate_values()
        self.validate_range()

        dataset = Dataset(
            x=self.data[constants.X_COLUMN].to_numpy(dtype=np.float64),
            y=self.data[constants.Y_COLUMN].to_numpy(dtype=np.float64),
        )
        self.logger.info(f"Dataset ready: {len(dataset)} samples")
        return dataset

    def load_data(self) -> pd.DataFrame:
        """
        Load a header-less two-column file: independent x, dependent y.
        """
        file_path = Path(self.config.get('data', {}).get('file_path', ''))
        if not file_path.is_file():
            raise DataValidationError(f"Data file not found: {file_path}")

        self.logger.info(f"Loading data from {file_path}")
        ext = file_path.suffix.lower()
        try:
            if ext == '.parquet':
                frame = pd.read_parquet(file_path)
                frame = frame.iloc[:, :2]
            elif ext in ('.csv', '.txt'):
                frame = pd.read_csv(file_path, header=None)
            else:
                raise DataValidationError(f"Unsupported file extension: {ext}")
        except pd.errors.EmptyDataError:
            raise DataValidationError(f"Data file is empty: {file_path}")
        except (OSError, ValueError) as e:
            raise DataValidationError(f"Failed to load data: {str(e)}")

        if frame.shape[1] != 2:
            raise DataValidationError(f"Expected 2 columns (x, y), found {frame.shape[1]}.")
        frame.columns = [constants.X_COLUMN, constants.Y_COLUMN]
        self.data = frame

        self.logger.info(f"Data loaded successfully. Shape: {self.data.shape}")
        return self.data

    def validate_values(self) -> None:
        """Reject empty frames and non-numeric, NaN or infinite values."""
        if self.data is None or self.data.empty:
            raise DataValidationError("Dataframe is empty or None.")

        numeric = self.data.apply(pd.to_numeric, errors='coerce')
        bad_rows = ~np.isfinite(numeric).all(axis=1)
        if bad_rows.any():
            first = bad_rows.idxmax()
            raise DataValidationError(
                f"{int(bad_rows.sum())} rows contain non-numeric or non-finite values "
                f"(first at row {first})."
            )
        self.data = numeric.astype(np.float64)

    def validate_range(self) -> None:
        """Normalisation divides by (max - min) of x, so a constant x is rejected."""
        x = self.data[constants.X_COLUMN]
        if x.min() == x.max():
            raise DataValidationError(
                f"Independent variable is constant ({x.min()}); cannot normalise."
            )
