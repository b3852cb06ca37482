#!/usr/bin/env python3
"""
data_utils.py - Shared Data Processing Utilities

Column discovery and numeric cleaning used by the observation loader.
"""

from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from loguru import logger


def find_column_by_pattern(
    df: pd.DataFrame, patterns: List[str], description: str = "column"
) -> Optional[str]:
    """Find a column by matching patterns (case-insensitive).

    Exact (case-insensitive) matches win over substring matches so that
    ``month`` does not resolve to ``month_name``.

    Args:
        df: DataFrame to search
        patterns: List of patterns to match (e.g., ["state", "region"])
        description: Description for logging

    Returns:
        Column name if found, None if not found
    """
    lowered = {str(col).lower(): col for col in df.columns}
    for pattern in patterns:
        if pattern.lower() in lowered:
            found = lowered[pattern.lower()]
            logger.debug(f"  📍 Found {description} column: {found} (pattern: {pattern})")
            return found

    for pattern in patterns:
        matching_cols = [col for col in df.columns if pattern.lower() in str(col).lower()]
        if matching_cols:
            logger.debug(
                f"  📍 Found {description} column: {matching_cols[0]} (pattern: {pattern})"
            )
            return matching_cols[0]

    logger.debug(f"  No {description} column found for patterns: {patterns}")
    return None


def validate_required_columns(df: pd.DataFrame, required_patterns: Dict[str, List[str]]) -> List[str]:
    """Validate that required columns exist in DataFrame.

    Args:
        df: DataFrame to validate
        required_patterns: Dict of {description: [patterns]} for required columns

    Returns:
        Descriptions of the required columns that could not be found
    """
    missing_columns = [
        description
        for description, patterns in required_patterns.items()
        if not find_column_by_pattern(df, patterns, description)
    ]

    if missing_columns:
        logger.error(f"❌ Missing required columns: {missing_columns}")
        logger.info(f"Available columns: {list(df.columns)}")

    return missing_columns


def clean_numeric(series: pd.Series) -> pd.Series:
    """
    Cleans a pandas Series to numeric type, handling commas and percent signs.

    Blank cells become NaN; so do cells that cannot be parsed. Use
    ``malformed_mask`` to tell the two apart.

    Args:
        series: The pandas Series to clean.

    Returns:
        A pandas Series with numeric data.
    """
    s = (
        series.astype(str)
        .str.replace(",", "", regex=False)
        .str.replace("%", "", regex=False)
        .str.strip()
    )
    return pd.to_numeric(s, errors="coerce")


def blank_mask(series: pd.Series) -> pd.Series:
    """True where a cell is empty (NaN, None or whitespace only)."""
    return series.isna() | series.astype(str).str.strip().isin(["", "nan", "NaN", "None"])


def malformed_mask(series: pd.Series) -> pd.Series:
    """True where a cell is non-empty but does not parse as a finite number."""
    values = clean_numeric(series)
    return ~np.isfinite(values.astype(float)) & ~blank_mask(series)
