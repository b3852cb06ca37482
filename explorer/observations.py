"""
Observation Store for the map explorer.

Normalizes flat (region, period, variable, value) observations into the two
lookups the visual state engine needs:

    store.values_at("2024-05", "NDVI")   # region -> value for one map frame
    store.series_for("Texas", "NDVI")    # ordered trajectory for the line chart

The store is built once after data load and never mutated afterwards.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd
from loguru import logger

from .errors import DuplicateObservation

DUPLICATE_POLICIES = ("last", "first", "error")


@dataclass(frozen=True)
class Observation:
    """One measured value for a region, time period and variable."""

    region: str
    time_period: str
    variable: str
    value: Optional[float] = None


@dataclass(frozen=True)
class TrajectoryPoint:
    """A point on a region's time series. ``value`` is None for a gap."""

    time_period: str
    value: Optional[float]

    @property
    def defined(self) -> bool:
        return self.value is not None


def _clean_value(value) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    if math.isnan(value):
        return None
    return value


class ObservationStore:
    """
    Immutable, queryable index over observations.

    Grouping key for map slices is (time_period, variable). A region missing
    from a slice is "absent"; a region whose observation carries no value maps
    to None. Both render as no-data, but only the first is absent from
    ``values_at``.
    """

    def __init__(self, observations: Iterable[Observation], duplicates: str = "last"):
        if duplicates not in DUPLICATE_POLICIES:
            raise ValueError(
                f"Unknown duplicates policy {duplicates!r}; expected one of {DUPLICATE_POLICIES}"
            )

        self._slices: Dict[Tuple[str, str], Dict[str, Optional[float]]] = {}
        self._series: Dict[Tuple[str, str], Dict[str, Optional[float]]] = {}
        regions = set()
        periods = set()
        variables = set()
        duplicate_count = 0

        for obs in observations:
            value = _clean_value(obs.value)
            slice_ = self._slices.setdefault((obs.time_period, obs.variable), {})

            if obs.region in slice_:
                duplicate_count += 1
                if duplicates == "error":
                    raise DuplicateObservation(
                        f"Duplicate observation for region={obs.region!r} "
                        f"period={obs.time_period!r} variable={obs.variable!r}"
                    )
                if duplicates == "first":
                    continue

            slice_[obs.region] = value
            self._series.setdefault((obs.region, obs.variable), {})[obs.time_period] = value
            regions.add(obs.region)
            periods.add(obs.time_period)
            variables.add(obs.variable)

        if duplicate_count:
            logger.warning(
                f"⚠️ {duplicate_count} duplicate observation(s) resolved with '{duplicates}' policy"
            )

        self._regions: Tuple[str, ...] = tuple(sorted(regions))
        self._periods: Tuple[str, ...] = tuple(sorted(periods))
        self._variables: Tuple[str, ...] = tuple(sorted(variables))
        self._count = sum(len(s) for s in self._slices.values())

        logger.debug(
            f"📦 Observation store: {self._count} observations, {len(self._regions)} regions, "
            f"{len(self._periods)} periods, {len(self._variables)} variables"
        )

    @classmethod
    def from_frame(cls, df: pd.DataFrame, duplicates: str = "last") -> "ObservationStore":
        """
        Build a store from a normalized long DataFrame.

        Args:
            df: DataFrame with ``region``, ``time_period``, ``variable`` and ``value`` columns
            duplicates: Policy for repeated (region, period, variable) rows

        Returns:
            ObservationStore
        """
        records: List[Observation] = []
        for row in df[["region", "time_period", "variable", "value"]].itertuples(index=False):
            value = None if pd.isna(row.value) else float(row.value)
            records.append(
                Observation(
                    region=str(row.region),
                    time_period=str(row.time_period),
                    variable=str(row.variable),
                    value=value,
                )
            )
        return cls(records, duplicates=duplicates)

    def __len__(self) -> int:
        return self._count

    @property
    def is_empty(self) -> bool:
        return self._count == 0

    @property
    def regions(self) -> Tuple[str, ...]:
        return self._regions

    @property
    def periods(self) -> Tuple[str, ...]:
        """All time periods seen, deduplicated and ascending."""
        return self._periods

    @property
    def variables(self) -> Tuple[str, ...]:
        return self._variables

    def values_at(self, time_period: str, variable_id: str) -> Dict[str, Optional[float]]:
        """Return region -> value for one (period, variable) slice."""
        return dict(self._slices.get((time_period, variable_id), {}))

    def series_for(self, region: str, variable_id: str) -> Tuple[TrajectoryPoint, ...]:
        """
        Return the region's time series for a variable.

        Every period in the store appears once, ascending. Periods with no
        observation or a null value carry ``value=None`` so callers can break
        the line there instead of interpolating.
        """
        by_period = self._series.get((region, variable_id), {})
        return tuple(TrajectoryPoint(p, by_period.get(p)) for p in self._periods)

    def value_range(self, variable_id: str) -> Optional[Tuple[float, float]]:
        """Global [min, max] of defined values for a variable, or None."""
        values = [
            v
            for (_, variable), slice_ in self._slices.items()
            if variable == variable_id
            for v in slice_.values()
            if v is not None
        ]
        if not values:
            return None
        return min(values), max(values)
