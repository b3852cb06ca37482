# tests/conftest.py
from pathlib import Path

import geopandas as gpd
import matplotlib
import pytest
from loguru import logger
from shapely.geometry import box

from explorer.observations import Observation, ObservationStore
from explorer.variables import (
    BinnedColorMode,
    ContinuousColorMode,
    VariableRegistry,
    VariableSpec,
)
from ops.config_loader import Config

matplotlib.use("Agg")

PALETTE = ("#c0c0c0", "#c1c1c1", "#c2c2c2", "#c3c3c3")


@pytest.fixture(autouse=True)
def silence_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


@pytest.fixture
def ndvi_spec() -> VariableSpec:
    return VariableSpec(
        id="NDVI",
        unit="",
        color_mode=BinnedColorMode(
            breakpoints=(0.2, 0.4, 0.6), domain=(-0.2, 1.0), palette=PALETTE
        ),
    )


@pytest.fixture
def lst_spec() -> VariableSpec:
    return VariableSpec(
        id="LST",
        unit="°C",
        color_mode=ContinuousColorMode(min_domain=0.0, max_domain=40.0, interpolator="viridis"),
    )


@pytest.fixture
def registry(ndvi_spec, lst_spec) -> VariableRegistry:
    return VariableRegistry([ndvi_spec, lst_spec])


@pytest.fixture
def observations():
    """
    Three regions over three months.

    A: NDVI 0.1, null, 0.3   LST 10, 20, 30
    B: NDVI 0.5, 0.55, 0.7   (no LST)
    C: no observations at all
    """
    return [
        Observation("A", "2024-01", "NDVI", 0.1),
        Observation("A", "2024-02", "NDVI", None),
        Observation("A", "2024-03", "NDVI", 0.3),
        Observation("B", "2024-01", "NDVI", 0.5),
        Observation("B", "2024-02", "NDVI", 0.55),
        Observation("B", "2024-03", "NDVI", 0.7),
        Observation("A", "2024-01", "LST", 10.0),
        Observation("A", "2024-02", "LST", 20.0),
        Observation("A", "2024-03", "LST", 30.0),
    ]


@pytest.fixture
def store(observations) -> ObservationStore:
    return ObservationStore(observations)


@pytest.fixture
def regions():
    return ["A", "B", "C"]


@pytest.fixture
def boundaries() -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(
        {"name": ["A", "B", "C"]},
        geometry=[box(0, 0, 1, 1), box(1, 0, 2, 1), box(2, 0, 3, 1)],
        crs="EPSG:4326",
    )


@pytest.fixture
def config(tmp_path: Path) -> Config:
    data = {
        "input_files": {
            "observations_csv": "data/observations.csv",
            "boundaries_geojson": "data/states.geojson",
        },
        "columns": {"region": "State"},
        "variables": {
            "NDVI": {
                "mode": "binned",
                "breakpoints": [0.2, 0.4, 0.6],
                "domain": [-0.2, 1.0],
                "palette": list(PALETTE),
            },
        },
        "output": {"frames": "out/frames", "html": "out/html"},
    }
    return Config.from_dict(data, tmp_path)
