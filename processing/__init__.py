"""
Processing package for the MODIS State Explorer

This package contains the dataset loader: CSV and boundary ingestion,
validation and normalization into the explorer's core structures.
"""

__version__ = "0.1.0"

# Import key utilities for easy access
from .data_utils import (
    clean_numeric,
    find_column_by_pattern,
    validate_required_columns,
)
from .load_observations import (
    Dataset,
    build_explorer_inputs,
    build_period_keys,
    load_boundaries,
    load_dataset,
    normalize_observations,
    read_observations_csv,
)

__all__ = [
    "clean_numeric",
    "find_column_by_pattern",
    "validate_required_columns",
    "Dataset",
    "build_explorer_inputs",
    "build_period_keys",
    "load_boundaries",
    "load_dataset",
    "normalize_observations",
    "read_observations_csv",
]
