"""
Visual State Engine.

Pure computation from (store, registry, variable, period, pinned region) to
everything a render projection needs for one frame: per-region colors, legend
buckets, and the pinned region's trajectory. Nothing here draws or mutates.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from .observations import ObservationStore, TrajectoryPoint
from .variables import NO_DATA_LABEL, LegendBucket, VariableRegistry


@dataclass(frozen=True)
class Frame:
    """Everything needed to draw the map and line chart for one state."""

    variable_id: Optional[str]
    time_period: Optional[str]
    region_colors: Dict[str, str] = field(default_factory=dict)
    region_values: Dict[str, Optional[float]] = field(default_factory=dict)
    legend_buckets: Tuple[LegendBucket, ...] = ()
    domain: Optional[Tuple[float, float]] = None
    pinned_region: Optional[str] = None
    trajectory: Optional[Tuple[TrajectoryPoint, ...]] = None
    tracked_point: Optional[TrajectoryPoint] = None

    @property
    def is_empty(self) -> bool:
        return self.time_period is None

    @classmethod
    def empty(cls, variable_id: Optional[str] = None) -> "Frame":
        """Frame for "nothing to render" (empty dataset)."""
        return cls(variable_id=variable_id, time_period=None)


def render(
    store: ObservationStore,
    registry: VariableRegistry,
    variable_id: str,
    time_period: Optional[str],
    pinned_region: Optional[str] = None,
    regions: Optional[Sequence[str]] = None,
) -> Frame:
    """
    Compute the visual state for one (variable, period, pinned region).

    Args:
        store: Observation store
        registry: Variable registry
        variable_id: Selected variable
        time_period: Current period, or None when the time axis is empty
        pinned_region: Region selected for the line chart, if any
        regions: Regions of the boundary set (defaults to regions seen in the data)

    Returns:
        Frame

    Raises:
        UnknownVariable: variable_id is not registered
    """
    if time_period is None:
        return Frame.empty(variable_id)

    spec = registry.resolve(variable_id)
    slice_ = store.values_at(time_period, variable_id)
    domain = spec.active_domain(slice_.values())

    if regions is None:
        regions = store.regions

    region_colors: Dict[str, str] = {}
    region_values: Dict[str, Optional[float]] = {}
    for region in regions:
        value = slice_.get(region)
        region_values[region] = value
        region_colors[region] = spec.color_for(value, domain)

    trajectory = None
    tracked_point = None
    if pinned_region is not None:
        trajectory = store.series_for(pinned_region, variable_id)
        tracked_point = find_tracked_point(trajectory, time_period)

    logger.trace(
        f"Rendered {variable_id} @ {time_period}: {len(slice_)}/{len(region_colors)} regions with data"
    )

    return Frame(
        variable_id=variable_id,
        time_period=time_period,
        region_colors=region_colors,
        region_values=region_values,
        legend_buckets=spec.legend(domain),
        domain=domain,
        pinned_region=pinned_region,
        trajectory=trajectory,
        tracked_point=tracked_point,
    )


def find_tracked_point(
    trajectory: Sequence[TrajectoryPoint], time_period: str
) -> Optional[TrajectoryPoint]:
    """The trajectory point at ``time_period`` when it carries a value."""
    for point in trajectory:
        if point.time_period == time_period:
            return point if point.defined else None
    return None


def split_segments(trajectory: Sequence[TrajectoryPoint]) -> List[List[TrajectoryPoint]]:
    """Contiguous runs of defined points; a gap starts a new segment."""
    segments: List[List[TrajectoryPoint]] = []
    current: List[TrajectoryPoint] = []
    for point in trajectory:
        if point.defined:
            current.append(point)
        elif current:
            segments.append(current)
            current = []
    if current:
        segments.append(current)
    return segments


def format_value(value: Optional[float]) -> str:
    """Two-decimal display value, or the no-data label."""
    if value is None:
        return NO_DATA_LABEL
    return f"{value:.2f}"
