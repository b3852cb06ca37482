#!/usr/bin/env python3
"""
load_observations.py

Dataset Loader for the MODIS State Explorer

Turns the two raw inputs into what the explorer core needs:

1. Observations CSV, in either layout:
   - long:  State, year, month, variable, value   (one row per region/period/variable)
   - wide:  State, year, month, NDVI, LST_Day, ET (one row per region/period)
   Period keys come from a combined period/date column, from year+month, or
   from month alone, and are always emitted zero-padded ("2024-03" or "03")
   so that string order is chronological order.
2. Region boundaries (GeoJSON) read with geopandas, keyed by region name.

Malformed input (missing columns, unparseable numbers, blank region or period)
raises DataShapeError here so the core never starts on bad data. Blank value
cells are legitimate gaps and survive as missing values.

Usage:
    config = Config()
    dataset = load_dataset(config)
    store, registry, regions = build_explorer_inputs(dataset, config)
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import geopandas as gpd
import pandas as pd
from loguru import logger

from explorer.errors import DataShapeError
from explorer.observations import ObservationStore
from explorer.variables import VariableRegistry, build_registry
from ops.config_loader import Config

from .data_utils import (
    blank_mask,
    clean_numeric,
    find_column_by_pattern,
    malformed_mask,
    validate_required_columns,
)

REGION_PATTERNS = ["state", "region", "name"]
PERIOD_PATTERNS = ["period", "date", "time"]
YEAR_PATTERNS = ["year"]
MONTH_PATTERNS = ["month"]
VARIABLE_PATTERNS = ["variable", "band", "product"]
VALUE_PATTERNS = ["value"]
BOUNDARY_NAME_PATTERNS = ["name", "state", "region"]

_YEAR_MONTH = re.compile(r"^\d{4}-\d{2}$")
MAX_REPORTED_ROWS = 5


@dataclass
class Dataset:
    """Loaded inputs: long-format observations plus optional boundaries."""

    observations: pd.DataFrame
    boundaries: Optional[gpd.GeoDataFrame] = None
    region_field: Optional[str] = None

    @property
    def boundary_regions(self) -> Optional[List[str]]:
        if self.boundaries is None or self.region_field is None:
            return None
        return [str(name) for name in self.boundaries[self.region_field]]


def _resolve_column(
    df: pd.DataFrame, configured: Optional[str], patterns: List[str], description: str
) -> Optional[str]:
    if configured and configured in df.columns:
        return configured
    return find_column_by_pattern(df, patterns, description)


def _report_rows(mask: pd.Series) -> str:
    rows = [str(i + 2) for i in mask[mask].index[:MAX_REPORTED_ROWS]]  # +2: header, 1-based
    more = int(mask.sum()) - len(rows)
    suffix = f" (+{more} more)" if more > 0 else ""
    return ", ".join(rows) + suffix


def _integer_column(df: pd.DataFrame, column: str, description: str) -> pd.Series:
    values = clean_numeric(df[column])
    bad = values.isna() | (values != values.round())
    if bad.any():
        raise DataShapeError(f"Malformed {description} in CSV rows {_report_rows(bad)}")
    return values.astype(int)


def build_period_keys(
    df: pd.DataFrame,
    period_col: Optional[str] = None,
    year_col: Optional[str] = None,
    month_col: Optional[str] = None,
) -> pd.Series:
    """
    Build zero-padded, chronologically sortable period keys.

    Args:
        df: Raw observations
        period_col: Combined period/date column, if present
        year_col: Year column, if present
        month_col: Month column, if present

    Returns:
        Series of period keys aligned with ``df``
    """
    if period_col is not None:
        raw = df[period_col].astype(str).str.strip()
        if raw.str.match(_YEAR_MONTH).all():
            months = raw.str[5:].astype(int)
            out_of_range = (months < 1) | (months > 12)
            if out_of_range.any():
                raise DataShapeError(
                    f"Month outside 1-12 in CSV rows {_report_rows(out_of_range)}"
                )
            return raw
        parsed = pd.to_datetime(raw, errors="coerce")
        bad = parsed.isna()
        if bad.any():
            raise DataShapeError(f"Unparseable period values in CSV rows {_report_rows(bad)}")
        return parsed.dt.strftime("%Y-%m")

    if month_col is None:
        raise DataShapeError("No period, year/month or month column found")

    months = _integer_column(df, month_col, "month")
    out_of_range = (months < 1) | (months > 12)
    if out_of_range.any():
        raise DataShapeError(f"Month outside 1-12 in CSV rows {_report_rows(out_of_range)}")

    if year_col is not None:
        years = _integer_column(df, year_col, "year")
        return years.map(lambda y: f"{y:04d}") + "-" + months.map(lambda m: f"{m:02d}")

    return months.map(lambda m: f"{m:02d}")


def normalize_observations(df: pd.DataFrame, config: Config) -> pd.DataFrame:
    """
    Validate a raw observations table and convert it to long format.

    Args:
        df: Raw CSV contents (all columns as strings)
        config: Configuration instance

    Returns:
        DataFrame with ``region``, ``time_period``, ``variable``, ``value`` columns
    """
    logger.info("🧹 Normalizing observations...")

    missing = validate_required_columns(
        df, {"region": [config.get_column_name("region")] + REGION_PATTERNS}
    )
    if missing:
        raise DataShapeError(f"No region column found in {list(df.columns)}")
    region_col = _resolve_column(df, config.get_column_name("region"), REGION_PATTERNS, "region")

    period_col = _resolve_column(df, config.get_column_name("period"), PERIOD_PATTERNS, "period")
    year_col = _resolve_column(df, config.get_column_name("year"), YEAR_PATTERNS, "year")
    month_col = _resolve_column(df, config.get_column_name("month"), MONTH_PATTERNS, "month")
    variable_col = _resolve_column(
        df, config.get_column_name("variable"), VARIABLE_PATTERNS, "variable"
    )
    value_col = _resolve_column(df, config.get_column_name("value"), VALUE_PATTERNS, "value")

    if df.empty:
        logger.warning("⚠️ Observations table has no rows")
        return pd.DataFrame(columns=["region", "time_period", "variable", "value"])

    blank_regions = blank_mask(df[region_col])
    if blank_regions.any():
        raise DataShapeError(f"Blank region name in CSV rows {_report_rows(blank_regions)}")

    time_period = build_period_keys(df, period_col, year_col, month_col)

    if variable_col is not None and value_col is not None:
        logger.debug("  📐 Long format detected")
        long_df = pd.DataFrame(
            {
                "region": df[region_col].astype(str),
                "time_period": time_period,
                "variable": df[variable_col].astype(str).str.strip(),
                "raw_value": df[value_col],
            }
        )
        blank_variables = blank_mask(long_df["variable"])
        if blank_variables.any():
            raise DataShapeError(
                f"Blank variable name in CSV rows {_report_rows(blank_variables)}"
            )
    else:
        id_columns = {c for c in (region_col, period_col, year_col, month_col) if c is not None}
        variable_columns = [c for c in df.columns if c not in id_columns]
        if not variable_columns:
            raise DataShapeError("Wide-format CSV has no variable columns")
        logger.debug(f"  📐 Wide format detected: {variable_columns}")

        wide = df[variable_columns].copy()
        wide["region"] = df[region_col].astype(str)
        wide["time_period"] = time_period
        long_df = wide.melt(
            id_vars=["region", "time_period"],
            value_vars=variable_columns,
            var_name="variable",
            value_name="raw_value",
        )

    malformed = malformed_mask(long_df["raw_value"])
    if malformed.any():
        raise DataShapeError(
            f"Malformed numeric values in {int(malformed.sum())} cell(s): "
            f"{long_df.loc[malformed, 'raw_value'].head(MAX_REPORTED_ROWS).tolist()}"
        )

    long_df["value"] = clean_numeric(long_df["raw_value"])
    long_df = long_df.drop(columns=["raw_value"]).reset_index(drop=True)

    gaps = int(long_df["value"].isna().sum())
    logger.success(
        f"  ✅ {len(long_df):,} observations across {long_df['region'].nunique()} regions, "
        f"{long_df['time_period'].nunique()} periods ({gaps} gaps)"
    )
    return long_df


def read_observations_csv(path: Union[str, Path], config: Config) -> pd.DataFrame:
    """Read and normalize the observations CSV."""
    path = Path(path)
    logger.info(f"📥 Reading observations: {path}")
    if not path.exists():
        raise FileNotFoundError(f"Observations CSV not found: {path}")
    raw = pd.read_csv(path, dtype=str, keep_default_na=False)
    return normalize_observations(raw, config)


def load_boundaries(
    path: Union[str, Path], region_field: Optional[str] = None
) -> Tuple[gpd.GeoDataFrame, str]:
    """
    Load region boundaries and find the field holding region names.

    Args:
        path: GeoJSON (or any format geopandas reads)
        region_field: Preferred name field

    Returns:
        (GeoDataFrame in EPSG:4326, region name field)
    """
    path = Path(path)
    logger.info(f"🗺️ Reading boundaries: {path}")
    if not path.exists():
        raise FileNotFoundError(f"Boundary file not found: {path}")

    gdf = gpd.read_file(path)
    if region_field is None or region_field not in gdf.columns:
        region_field = find_column_by_pattern(gdf, BOUNDARY_NAME_PATTERNS, "boundary name")
    if region_field is None:
        raise DataShapeError(f"No region name field in boundary file {path}")

    if gdf.crs is not None and gdf.crs.to_epsg() != 4326:
        logger.debug(f"  🔄 Reprojecting boundaries from {gdf.crs} to EPSG:4326")
        gdf = gdf.to_crs("EPSG:4326")

    logger.success(f"  ✅ Loaded {len(gdf)} boundaries keyed by '{region_field}'")
    return gdf, region_field


def load_dataset(config: Config, with_boundaries: bool = True) -> Dataset:
    """Load observations and, when configured, boundaries."""
    observations = read_observations_csv(config.get_input_path("observations_csv"), config)

    if not with_boundaries or "boundaries_geojson" not in config.get("input_files", {}):
        return Dataset(observations=observations)

    boundaries, region_field = load_boundaries(
        config.get_input_path("boundaries_geojson"),
        config.get_data_setting("boundary_region_field"),
    )
    return Dataset(observations=observations, boundaries=boundaries, region_field=region_field)


def build_explorer_inputs(
    dataset: Dataset, config: Config
) -> Tuple[ObservationStore, VariableRegistry, List[str]]:
    """
    Build the immutable core structures from a loaded dataset.

    Returns:
        (observation store, variable registry, region names to draw)
    """
    store = ObservationStore.from_frame(
        dataset.observations, duplicates=config.get_data_setting("duplicates")
    )

    observed_ranges: Dict[str, Optional[Tuple[float, float]]] = {
        variable: store.value_range(variable) for variable in store.variables
    }
    registry = build_registry(
        config.get_variable_configs(),
        observed_variables=store.variables,
        observed_ranges=observed_ranges,
        no_data_color=config.get_visualization_setting("no_data_color"),
        default_interpolator=config.get_visualization_setting("default_interpolator"),
    )

    regions = dataset.boundary_regions
    if regions is None:
        regions = list(store.regions)
    else:
        unmatched = sorted(set(store.regions) - set(regions))
        if unmatched:
            logger.warning(
                f"⚠️ {len(unmatched)} region(s) in data have no boundary (exact name match): "
                f"{unmatched[:MAX_REPORTED_ROWS]}"
            )

    return store, registry, regions
