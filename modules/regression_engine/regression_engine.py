import numpy as np
from dataclasses import dataclass
from typing import Tuple

from utils.exceptions import DataValidationError


def _frozen_array(values) -> np.ndarray:
    arr = np.array(values, dtype=np.float64)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class Dataset:
    """
    Independent (x) and dependent (y) observations.
    Arrays are read-only so the dataset can be shared across threads without a lock.
    """
    x: np.ndarray
    y: np.ndarray

    def __post_init__(self):
        x = _frozen_array(self.x)
        y = _frozen_array(self.y)
        if x.ndim != 1 or y.ndim != 1:
            raise DataValidationError("Dataset columns must be one-dimensional.")
        if len(x) != len(y):
            raise DataValidationError(f"Dataset columns differ in length: x={len(x)}, y={len(y)}")
        object.__setattr__(self, 'x', x)
        object.__setattr__(self, 'y', y)

    def __len__(self) -> int:
        return len(self.x)


@dataclass(frozen=True)
class ModelParameters:
    """Intercept (mu) and slope (beta) of the univariate model."""
    mu: float = 0.0
    beta: float = 0.0


@dataclass(frozen=True)
class NormalizedDataset:
    """Raw dataset plus its normalised copy and the scaling bounds used."""
    raw: Dataset
    normalized: Dataset
    min_x: float
    max_x: float


def forecast(mu: float, beta: float, x: np.ndarray) -> np.ndarray:
    """Predictions of the linear model for every x."""
    return beta * np.asarray(x, dtype=np.float64) + mu


def mean_squared_error(predicted: np.ndarray, actual: np.ndarray) -> float:
    """Average squared residual, the loss minimised by the grid search."""
    residuals = np.asarray(predicted, dtype=np.float64) - np.asarray(actual, dtype=np.float64)
    return float(np.mean(residuals ** 2))


def gradient_mu(predicted: np.ndarray, actual: np.ndarray) -> float:
    """d(MSE)/d(mu) = -(2/n) * sum(y - yhat)"""
    return -2.0 * float(np.mean(actual - predicted))


def gradient_beta(predicted: np.ndarray, data: Dataset) -> float:
    """d(MSE)/d(beta) = -(2/n) * sum(x * (y - yhat))"""
    return -2.0 * float(np.mean((data.y - predicted) * data.x))


def update_params(parameters: ModelParameters, data: Dataset, alpha: float) -> ModelParameters:
    """
    One gradient descent step.

    Both gradients come from the same prediction pass and are applied together;
    the intercept step never sees the already-updated slope, or vice versa.
    """
    predicted = forecast(parameters.mu, parameters.beta, data.x)
    step_mu = alpha * gradient_mu(predicted, data.y)
    step_beta = alpha * gradient_beta(predicted, data)
    return ModelParameters(mu=parameters.mu - step_mu, beta=parameters.beta - step_beta)


def min_max(values: np.ndarray) -> Tuple[float, float]:
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        raise DataValidationError("Cannot compute min/max of an empty sequence.")
    return float(values.min()), float(values.max())


def normalize(data: Dataset, min_x: float, max_x: float) -> Dataset:
    """
    Rescale x into [0, 1] using the dataset's own bounds; y is left untouched.
    Feature scaling keeps a single learning rate usable across data magnitudes.
    """
    span = max_x - min_x
    if span == 0:
        raise DataValidationError(
            f"Independent variable is constant (min == max == {min_x}); normalisation is undefined."
        )
    return Dataset(x=(data.x - min_x) / span, y=data.y)


def denormalize(parameters: ModelParameters, min_x: float, max_x: float) -> ModelParameters:
    """
    Map parameters fitted on normalised x back to raw x.

    With x' = (x - min) / (max - min):
        y = beta' * x' + mu' = (beta' / span) * x + (mu' - beta' * min / span)
    """
    span = max_x - min_x
    if span == 0:
        raise DataValidationError("Cannot denormalise parameters for a zero-width range.")
    return ModelParameters(
        mu=parameters.mu - parameters.beta * min_x / span,
        beta=parameters.beta / span,
    )


def run_gradient_descent(data: Dataset, alpha: float, num_epochs: float) -> ModelParameters:
    """
    Calibrate parameters with a fixed number of full-batch updates.
    Starts from (0, 0) on every call; no convergence check.
    """
    parameters = ModelParameters()
    # Divergent learning rates overflow to inf/nan; those runs simply lose the comparison.
    with np.errstate(over='ignore', invalid='ignore'):
        for _ in range(max(0, int(num_epochs))):
            parameters = update_params(parameters, data, alpha)
    return parameters


def prepare_dataset(dataset: Dataset) -> NormalizedDataset:
    """Compute scaling bounds once and normalise. Rejects empty or constant x."""
    min_x, max_x = min_max(dataset.x)
    return NormalizedDataset(
        raw=dataset,
        normalized=normalize(dataset, min_x, max_x),
        min_x=min_x,
        max_x=max_x,
    )
