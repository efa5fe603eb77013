"""
Regression Engine Module
========================

Responsibility:
- Univariate linear model y = beta * x + mu.
- Batch gradient descent with simultaneous parameter updates.
- Min-max normalisation of the independent variable and the inverse
  mapping of fitted parameters back to raw-x space.
"""

from .regression_engine import (
    Dataset,
    ModelParameters,
    NormalizedDataset,
    forecast,
    mean_squared_error,
    gradient_mu,
    gradient_beta,
    update_params,
    min_max,
    normalize,
    denormalize,
    run_gradient_descent,
    prepare_dataset,
)

__all__ = [
    'Dataset',
    'ModelParameters',
    'NormalizedDataset',
    'forecast',
    'mean_squared_error',
    'gradient_mu',
    'gradient_beta',
    'update_params',
    'min_max',
    'normalize',
    'denormalize',
    'run_gradient_descent',
    'prepare_dataset',
]
