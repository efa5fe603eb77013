"""
Data Manager Module
===================

Responsibility:
- Loading of the two-column training dataset (CSV, Parquet).
- Validation of types, finiteness, emptiness and x-range degeneracy.
- Construction of the immutable Dataset shared by the grid search.
"""

from .data_manager import DataManager

__all__ = ['DataManager']
