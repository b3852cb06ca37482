import math

import matplotlib
import matplotlib.colors as mcolors
import pytest

from explorer.errors import UnknownVariable
from explorer.variables import (
    NO_DATA_COLOR,
    BinnedColorMode,
    ContinuousColorMode,
    VariableRegistry,
    build_registry,
    spec_from_config,
)

from .conftest import PALETTE


def viridis(t: float) -> str:
    return mcolors.to_hex(matplotlib.colormaps["viridis"](t))


def test_binned_step_function_edges(ndvi_spec):
    assert ndvi_spec.color_for(0.1) == PALETTE[0]
    assert ndvi_spec.color_for(0.2) == PALETTE[1]
    assert ndvi_spec.color_for(0.39) == PALETTE[1]
    assert ndvi_spec.color_for(0.4) == PALETTE[2]
    assert ndvi_spec.color_for(0.6) == PALETTE[3]
    assert ndvi_spec.color_for(5.0) == PALETTE[3]
    assert ndvi_spec.color_for(-10.0) == PALETTE[0]


def test_binned_colors_monotonic_and_cover_palette(ndvi_spec):
    mode = ndvi_spec.color_mode
    values = [-0.2 + i * 0.01 for i in range(121)]
    indexes = [mode.bucket_index(v) for v in values]

    assert indexes == sorted(indexes)
    colors = [ndvi_spec.color_for(v) for v in values]
    assert set(colors) == set(PALETTE)
    # each color appears as one contiguous run
    runs = [c for i, c in enumerate(colors) if i == 0 or colors[i - 1] != c]
    assert runs == list(PALETTE)


def test_missing_value_maps_to_no_data(ndvi_spec, lst_spec):
    assert ndvi_spec.color_for(None) == NO_DATA_COLOR
    assert ndvi_spec.color_for(math.nan) == NO_DATA_COLOR
    assert lst_spec.color_for(None) == NO_DATA_COLOR
    assert NO_DATA_COLOR not in PALETTE


def test_zero_is_a_value_not_no_data(ndvi_spec):
    assert ndvi_spec.color_for(0.0) == PALETTE[0]


def test_binned_legend_labels(ndvi_spec):
    legend = ndvi_spec.legend()

    assert [b.label for b in legend] == ["< 0.2", "0.2 – 0.4", "0.4 – 0.6", "0.6 – 1"]
    assert [b.color for b in legend] == list(PALETTE)


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(breakpoints=(0.2, 0.4), domain=(0, 1), palette=PALETTE),
        dict(breakpoints=(0.4, 0.2, 0.6), domain=(0, 1), palette=PALETTE),
        dict(breakpoints=(), domain=(0, 1), palette=PALETTE[:1]),
        dict(breakpoints=(0.2, 0.4, 0.6), domain=(0.3, 1), palette=PALETTE),
    ],
)
def test_binned_mode_rejects_inconsistent_specs(kwargs):
    with pytest.raises(ValueError):
        BinnedColorMode(**kwargs)


def test_continuous_clamps_to_domain(lst_spec):
    assert lst_spec.color_for(0.0) == viridis(0.0)
    assert lst_spec.color_for(40.0) == viridis(1.0)
    assert lst_spec.color_for(-100.0) == viridis(0.0)
    assert lst_spec.color_for(100.0) == viridis(1.0)
    assert lst_spec.color_for(20.0) == viridis(0.5)


def test_continuous_legend_is_two_point_gradient(lst_spec):
    legend = lst_spec.legend()

    assert [b.label for b in legend] == ["0", "40"]
    assert [b.color for b in legend] == [viridis(0.0), viridis(1.0)]


def test_continuous_fixed_policy_ignores_slice(lst_spec):
    assert lst_spec.active_domain([5.0, 6.0]) == (0.0, 40.0)


def test_continuous_slice_policy_uses_visible_values():
    mode = ContinuousColorMode(0.0, 40.0, domain_policy="slice")

    assert mode.active_domain([5.0, None, 15.0]) == (5.0, 15.0)
    assert mode.active_domain([None]) == (0.0, 40.0)
    assert mode.color_for(15.0, (5.0, 15.0)) == viridis(1.0)


def test_continuous_single_value_domain_uses_midpoint():
    mode = ContinuousColorMode(3.0, 3.0)

    assert mode.color_for(3.0) == viridis(0.5)


def test_continuous_rejects_unknown_colormap():
    with pytest.raises(ValueError):
        ContinuousColorMode(0.0, 1.0, interpolator="not-a-colormap")


def test_registry_resolve_and_unknown(registry):
    assert registry.resolve("NDVI").id == "NDVI"
    assert registry.ids() == ["LST", "NDVI"]
    assert registry.default_id == "LST"

    with pytest.raises(UnknownVariable) as excinfo:
        registry.resolve("EVI")
    assert isinstance(excinfo.value, KeyError)
    assert "EVI" in str(excinfo.value)


def test_registry_rejects_duplicate_ids(ndvi_spec):
    with pytest.raises(ValueError):
        VariableRegistry([ndvi_spec, ndvi_spec])


def test_spec_from_config_binned_defaults_domain_to_breakpoints():
    spec = spec_from_config(
        "NDVI", {"mode": "binned", "breakpoints": [0.2, 0.4], "palette": ["#1", "#2", "#3"]}
    )

    assert spec.color_mode.domain == (0.2, 0.4)


def test_spec_from_config_unknown_mode():
    with pytest.raises(ValueError):
        spec_from_config("X", {"mode": "diverging"})


def test_build_registry_auto_registers_observed_variables():
    registry = build_registry(
        {"NDVI": {"mode": "binned", "breakpoints": [0.5], "palette": ["#000000", "#ffffff"]}},
        observed_variables=["ET", "NDVI"],
        observed_ranges={"ET": (2.0, 8.0)},
        no_data_color="#123456",
    )

    et = registry.resolve("ET")
    assert et.color_mode.min_domain == 2.0
    assert et.color_mode.max_domain == 8.0
    assert et.color_for(None) == "#123456"
    assert registry.ids() == ["ET", "NDVI"]
