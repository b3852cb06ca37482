"""
Map explorer core for the MODIS state explorer

Turns a time-indexed, variable-indexed table of regional observations into
map colors, legend buckets and a pinned region's trajectory, with time
scrubbing and autoplay. Drawing and data loading live elsewhere
(``analysis`` and ``processing``).
"""

__version__ = "0.1.0"

from .autoplay import AutoplayDriver, IntervalTicker, ManualTicker
from .engine import Frame, format_value, render, split_segments
from .errors import (
    DataShapeError,
    DuplicateObservation,
    EmptyAxis,
    ExplorerError,
    IndexOutOfRange,
    NotLoaded,
    UnknownVariable,
)
from .observations import Observation, ObservationStore, TrajectoryPoint
from .selection import SelectionState
from .session import HoverInfo, MapExplorer, RenderProjection
from .time_axis import TimeAxis, period_label
from .variables import (
    NO_DATA_COLOR,
    BinnedColorMode,
    ContinuousColorMode,
    LegendBucket,
    VariableRegistry,
    VariableSpec,
    build_registry,
)

__all__ = [
    "AutoplayDriver",
    "IntervalTicker",
    "ManualTicker",
    "Frame",
    "format_value",
    "render",
    "split_segments",
    "DataShapeError",
    "DuplicateObservation",
    "EmptyAxis",
    "ExplorerError",
    "IndexOutOfRange",
    "NotLoaded",
    "UnknownVariable",
    "Observation",
    "ObservationStore",
    "TrajectoryPoint",
    "SelectionState",
    "HoverInfo",
    "MapExplorer",
    "RenderProjection",
    "TimeAxis",
    "period_label",
    "NO_DATA_COLOR",
    "BinnedColorMode",
    "ContinuousColorMode",
    "LegendBucket",
    "VariableRegistry",
    "VariableSpec",
    "build_registry",
]
