"""
Variable Registry for the map explorer.

Each selectable variable carries its own color rule, resolved once when the
registry is built:

- BinnedColorMode: fixed thresholds mapped onto a discrete palette
- ContinuousColorMode: value clamped to a domain and sampled from a
  matplotlib colormap

Downstream code calls the mode's methods and never branches on the mode type.
"""

import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import matplotlib
import matplotlib.colors as mcolors
from loguru import logger

from .errors import UnknownVariable

NO_DATA_COLOR = "#444444"
NO_DATA_LABEL = "N/A"
DEFAULT_INTERPOLATOR = "viridis"
DOMAIN_POLICIES = ("fixed", "slice")


@dataclass(frozen=True)
class LegendBucket:
    """One legend entry: a label and the color it stands for."""

    label: str
    color: str


def format_number(value: float) -> str:
    """Compact label formatting for legend breakpoints."""
    return f"{value:g}"


def _is_missing(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


@dataclass(frozen=True)
class BinnedColorMode:
    """Step-function colors over ascending breakpoints."""

    breakpoints: Tuple[float, ...]
    domain: Tuple[float, float]
    palette: Tuple[str, ...]

    def __post_init__(self) -> None:
        breakpoints = tuple(float(b) for b in self.breakpoints)
        object.__setattr__(self, "breakpoints", breakpoints)
        object.__setattr__(self, "domain", (float(self.domain[0]), float(self.domain[1])))
        object.__setattr__(self, "palette", tuple(self.palette))

        if not breakpoints:
            raise ValueError("Binned color mode needs at least one breakpoint")
        if any(lower >= upper for lower, upper in zip(breakpoints, breakpoints[1:])):
            raise ValueError(f"Breakpoints must be strictly ascending: {breakpoints}")
        if len(self.palette) != len(breakpoints) + 1:
            raise ValueError(
                f"Palette needs {len(breakpoints) + 1} colors for {len(breakpoints)} breakpoints, "
                f"got {len(self.palette)}"
            )
        low, high = self.domain
        if low > breakpoints[0] or high < breakpoints[-1]:
            raise ValueError(f"Domain {self.domain} does not cover breakpoints {breakpoints}")

    def bucket_index(self, value: float) -> int:
        return bisect_right(self.breakpoints, value)

    def active_domain(self, values: Iterable[Optional[float]]) -> Tuple[float, float]:
        return self.domain

    def color_for(self, value: float, domain: Optional[Tuple[float, float]] = None) -> str:
        return self.palette[self.bucket_index(value)]

    def legend(self, domain: Optional[Tuple[float, float]] = None) -> Tuple[LegendBucket, ...]:
        bps = self.breakpoints
        labels = [f"< {format_number(bps[0])}"]
        for lower, upper in zip(bps, bps[1:]):
            labels.append(f"{format_number(lower)} – {format_number(upper)}")
        labels.append(f"{format_number(bps[-1])} – {format_number(self.domain[1])}")
        return tuple(LegendBucket(label, color) for label, color in zip(labels, self.palette))


@dataclass(frozen=True)
class ContinuousColorMode:
    """Linear interpolation through a named matplotlib colormap."""

    min_domain: float
    max_domain: float
    interpolator: str = DEFAULT_INTERPOLATOR
    domain_policy: str = "fixed"

    def __post_init__(self) -> None:
        if self.domain_policy not in DOMAIN_POLICIES:
            raise ValueError(
                f"Unknown domain policy {self.domain_policy!r}; expected one of {DOMAIN_POLICIES}"
            )
        if self.min_domain > self.max_domain:
            raise ValueError(f"Domain min {self.min_domain} exceeds max {self.max_domain}")
        if self.interpolator not in matplotlib.colormaps:
            raise ValueError(f"Unknown colormap: {self.interpolator!r}")

    def active_domain(self, values: Iterable[Optional[float]]) -> Tuple[float, float]:
        """Fixed domain, or [min, max] of the visible slice under the 'slice' policy."""
        if self.domain_policy == "slice":
            defined = [v for v in values if not _is_missing(v)]
            if defined:
                return min(defined), max(defined)
        return self.min_domain, self.max_domain

    def color_for(self, value: float, domain: Optional[Tuple[float, float]] = None) -> str:
        low, high = domain if domain is not None else (self.min_domain, self.max_domain)
        if high == low:
            t = 0.5
        else:
            clamped = min(max(value, low), high)
            t = (clamped - low) / (high - low)
        cmap = matplotlib.colormaps[self.interpolator]
        return mcolors.to_hex(cmap(t))

    def legend(self, domain: Optional[Tuple[float, float]] = None) -> Tuple[LegendBucket, ...]:
        low, high = domain if domain is not None else (self.min_domain, self.max_domain)
        return (
            LegendBucket(format_number(low), self.color_for(low, (low, high))),
            LegendBucket(format_number(high), self.color_for(high, (low, high))),
        )


ColorMode = Union[BinnedColorMode, ContinuousColorMode]


@dataclass(frozen=True)
class VariableSpec:
    """Static description of one selectable variable."""

    id: str
    unit: str
    color_mode: ColorMode
    display_name: Optional[str] = None
    no_data_color: str = NO_DATA_COLOR

    @property
    def label(self) -> str:
        return self.display_name or self.id

    def color_for(self, value: Optional[float], domain: Optional[Tuple[float, float]] = None) -> str:
        """Color for a value; missing values map to the no-data color."""
        if _is_missing(value):
            return self.no_data_color
        return self.color_mode.color_for(float(value), domain)

    def active_domain(self, values: Iterable[Optional[float]]) -> Tuple[float, float]:
        return self.color_mode.active_domain(values)

    def legend(self, domain: Optional[Tuple[float, float]] = None) -> Tuple[LegendBucket, ...]:
        return self.color_mode.legend(domain)


class VariableRegistry:
    """Immutable lookup of VariableSpec by id."""

    def __init__(self, specs: Iterable[VariableSpec]):
        self._specs: Dict[str, VariableSpec] = {}
        for spec in specs:
            if spec.id in self._specs:
                raise ValueError(f"Variable registered twice: {spec.id!r}")
            self._specs[spec.id] = spec

    def resolve(self, variable_id: str) -> VariableSpec:
        try:
            return self._specs[variable_id]
        except KeyError:
            raise UnknownVariable(variable_id) from None

    def __contains__(self, variable_id: object) -> bool:
        return variable_id in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def ids(self) -> List[str]:
        """Registered ids in selector order (sorted)."""
        return sorted(self._specs)

    @property
    def default_id(self) -> Optional[str]:
        ids = self.ids()
        return ids[0] if ids else None


def spec_from_config(
    variable_id: str,
    cfg: Mapping[str, Any],
    no_data_color: str = NO_DATA_COLOR,
    default_interpolator: str = DEFAULT_INTERPOLATOR,
    observed_range: Optional[Tuple[float, float]] = None,
) -> VariableSpec:
    """
    Build a VariableSpec from one ``variables`` entry of config.yaml.

    Args:
        variable_id: Variable id as it appears in the data
        cfg: Mapping with ``mode`` plus mode-specific keys
        no_data_color: Sentinel color for absent values
        default_interpolator: Colormap used when a continuous entry names none
        observed_range: Data range used when a continuous entry has no domain

    Returns:
        VariableSpec
    """
    mode = str(cfg.get("mode", "continuous")).lower()

    color_mode: ColorMode
    if mode == "binned":
        breakpoints = cfg.get("breakpoints")
        palette = cfg.get("palette")
        if not breakpoints or not palette:
            raise ValueError(f"Binned variable {variable_id!r} needs breakpoints and palette")
        domain = cfg.get("domain") or (breakpoints[0], breakpoints[-1])
        color_mode = BinnedColorMode(
            breakpoints=tuple(breakpoints), domain=tuple(domain), palette=tuple(palette)
        )
    elif mode == "continuous":
        domain = cfg.get("domain") or observed_range or (0.0, 1.0)
        color_mode = ContinuousColorMode(
            min_domain=float(domain[0]),
            max_domain=float(domain[1]),
            interpolator=cfg.get("interpolator", default_interpolator),
            domain_policy=cfg.get("domain_policy", "fixed"),
        )
    else:
        raise ValueError(f"Unknown color mode {mode!r} for variable {variable_id!r}")

    return VariableSpec(
        id=variable_id,
        unit=str(cfg.get("unit", "")),
        color_mode=color_mode,
        display_name=cfg.get("display_name"),
        no_data_color=no_data_color,
    )


def build_registry(
    variables_cfg: Optional[Mapping[str, Mapping[str, Any]]],
    observed_variables: Sequence[str] = (),
    observed_ranges: Optional[Mapping[str, Optional[Tuple[float, float]]]] = None,
    no_data_color: str = NO_DATA_COLOR,
    default_interpolator: str = DEFAULT_INTERPOLATOR,
) -> VariableRegistry:
    """
    Build the registry from config, auto-registering variables seen in the data.

    Variables present in the data but missing from config become continuous
    variables with a fixed domain equal to their observed global range.
    """
    variables_cfg = variables_cfg or {}
    observed_ranges = observed_ranges or {}
    specs: List[VariableSpec] = []

    for variable_id, cfg in variables_cfg.items():
        specs.append(
            spec_from_config(
                str(variable_id),
                cfg or {},
                no_data_color=no_data_color,
                default_interpolator=default_interpolator,
                observed_range=observed_ranges.get(variable_id),
            )
        )
        logger.debug(f"Registered variable: {variable_id}")

    auto_registered = 0
    for variable_id in observed_variables:
        if variable_id in variables_cfg:
            continue
        specs.append(
            spec_from_config(
                variable_id,
                {"mode": "continuous"},
                no_data_color=no_data_color,
                default_interpolator=default_interpolator,
                observed_range=observed_ranges.get(variable_id),
            )
        )
        auto_registered += 1

    if auto_registered:
        logger.info(f"  🔄 Auto-registered {auto_registered} variable(s) found only in the data")

    return VariableRegistry(specs)
