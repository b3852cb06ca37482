import time

import pytest

from explorer.autoplay import PAUSE_LABEL, PLAY_LABEL, AutoplayDriver, ManualTicker
from explorer.errors import NotLoaded
from explorer.observations import ObservationStore
from explorer.session import MapExplorer
from explorer.variables import NO_DATA_COLOR, VariableRegistry


class RecordingProjection:
    def __init__(self):
        self.frames = []

    def draw(self, frame):
        self.frames.append(frame)


class ManualTickers:
    """Ticker factory that remembers the tickers it creates."""

    def __init__(self):
        self.created = []

    def __call__(self, interval, callback):
        ticker = ManualTicker(interval, callback)
        self.created.append(ticker)
        return ticker

    @property
    def last(self) -> ManualTicker:
        return self.created[-1]


@pytest.fixture
def tickers():
    return ManualTickers()


@pytest.fixture
def projection():
    return RecordingProjection()


@pytest.fixture
def explorer(store, registry, regions, projection, tickers):
    explorer = MapExplorer(projection=projection, ticker_factory=tickers)
    explorer.load(store, registry, regions, variable_id="NDVI")
    return explorer


def test_events_before_load_are_ignored():
    explorer = MapExplorer()

    assert not explorer.loaded
    assert explorer.select_variable("NDVI") is None
    assert explorer.scrub(1) is None
    assert explorer.step() is None
    assert explorer.click("A") is None
    assert explorer.hover("A") is None
    assert explorer.toggle_play() == PLAY_LABEL
    assert explorer.current_frame() is None


def test_strict_mode_rejects_events_before_load():
    explorer = MapExplorer(strict=True)

    with pytest.raises(NotLoaded):
        explorer.scrub(0)


def test_load_draws_initial_frame(explorer, projection):
    assert explorer.loaded
    assert len(projection.frames) == 1
    frame = projection.frames[0]
    assert frame.variable_id == "NDVI"
    assert frame.time_period == "2024-01"
    assert frame.region_colors["C"] == NO_DATA_COLOR


def test_load_defaults_to_first_variable(store, registry, regions):
    explorer = MapExplorer()

    frame = explorer.load(store, registry, regions)

    assert frame.variable_id == "LST"


def test_load_with_unknown_variable_falls_back_to_default(store, registry, regions):
    explorer = MapExplorer()

    frame = explorer.load(store, registry, regions, variable_id="EVI")

    assert frame.variable_id == "LST"
    assert explorer.selection.variable_id == "LST"


def test_reload_with_empty_registry_clears_projection(explorer, projection, store, regions):
    explorer.click("A")
    assert projection.frames[-1].trajectory is not None

    frame = explorer.load(store, VariableRegistry([]), regions)

    assert frame.is_empty
    assert projection.frames[-1] is frame
    assert projection.frames[-1].trajectory is None


def test_select_variable(explorer):
    frame = explorer.select_variable("LST")

    assert frame.variable_id == "LST"
    assert explorer.selection.variable_id == "LST"


def test_unknown_variable_is_a_no_op(explorer, projection):
    before = explorer.selection

    assert explorer.select_variable("EVI") is None
    assert explorer.selection is before
    assert len(projection.frames) == 1


def test_scrub_sets_time_and_clamps(explorer):
    assert explorer.scrub(2).time_period == "2024-03"
    assert explorer.selection.time_index == 2
    assert explorer.time_label == "Mar 2024"

    assert explorer.scrub(50).time_period == "2024-03"
    assert explorer.scrub(-3).time_period == "2024-01"


def test_step_wraps(explorer):
    explorer.scrub(2)

    frame = explorer.step()

    assert frame.time_period == "2024-01"
    assert explorer.selection.time_index == 0


def test_selection_is_replaced_not_mutated(explorer):
    before = explorer.selection

    explorer.scrub(1)

    assert before.time_index == 0
    assert explorer.selection is not before


def test_click_pins_and_unpins(explorer):
    initial = explorer.current_frame()

    pinned = explorer.click("A")
    assert pinned.pinned_region == "A"
    assert [p.value for p in pinned.trajectory] == [0.1, None, 0.3]
    assert pinned.tracked_point.value == 0.1

    unpinned = explorer.click("A")
    assert unpinned.trajectory is None
    assert unpinned.tracked_point is None
    assert explorer.selection.pinned_region is None
    assert unpinned == initial


def test_click_other_region_moves_pin(explorer):
    explorer.click("A")

    frame = explorer.click("B")

    assert frame.pinned_region == "B"


def test_hover_payload(explorer):
    info = explorer.hover("B")
    assert info.region == "B"
    assert info.variable_id == "NDVI"
    assert info.display == "0.50"

    missing = explorer.hover("C")
    assert missing.value is None
    assert missing.display == "N/A"


def test_hover_does_not_change_selection(explorer, projection):
    before = explorer.selection

    explorer.hover("A")

    assert explorer.selection is before
    assert len(projection.frames) == 1


def test_hover_shows_zero_as_value(registry):
    from explorer.observations import Observation

    store = ObservationStore([Observation("A", "2024-01", "NDVI", 0.0)])
    explorer = MapExplorer()
    explorer.load(store, registry, ["A"], variable_id="NDVI")

    assert explorer.hover("A").display == "0.00"


def test_autoplay_five_ticks(explorer, tickers):
    explorer.scrub(1)

    assert explorer.toggle_play() == PAUSE_LABEL
    assert tickers.last.fire(5) == 5

    assert explorer.selection.time_index == (1 + 5) % 3
    assert explorer.axis.index == (1 + 5) % 3


def test_autoplay_stop_cancels_ticks(explorer, tickers):
    explorer.play()
    ticker = tickers.last
    ticker.fire(1)

    assert explorer.toggle_play() == PLAY_LABEL
    assert ticker.fire(3) == 0
    assert explorer.selection.time_index == 1


def test_autoplay_ticks_emit_frames(explorer, tickers, projection):
    explorer.play()
    tickers.last.fire(2)
    explorer.pause()

    assert [f.time_period for f in projection.frames] == ["2024-01", "2024-02", "2024-03"]


def test_autoplay_on_empty_dataset_is_harmless(registry, tickers):
    explorer = MapExplorer(ticker_factory=tickers)
    frame = explorer.load(ObservationStore([]), registry, ["A"])

    assert frame.is_empty
    explorer.play()
    tickers.last.fire(3)
    assert explorer.current_frame().is_empty
    assert explorer.scrub(4).is_empty


def test_interval_ticker_stops_firing_after_stop(store, registry, regions):
    projection = RecordingProjection()
    explorer = MapExplorer(projection=projection, interval=0.01)
    explorer.load(store, registry, regions)

    explorer.play()
    time.sleep(0.2)
    explorer.pause()
    count = len(projection.frames)
    time.sleep(0.1)

    assert count > 1
    assert len(projection.frames) == count
    assert explorer.play_label == PLAY_LABEL


def test_driver_labels_and_idempotent_transitions():
    ticks = []
    driver = AutoplayDriver(lambda: ticks.append(1), ticker_factory=ManualTicker)

    assert driver.label == PLAY_LABEL
    assert driver.stop() == PLAY_LABEL
    assert driver.start() == PAUSE_LABEL
    ticker = driver.ticker
    assert driver.start() == PAUSE_LABEL
    assert driver.ticker is ticker

    ticker.fire(2)
    assert driver.toggle() == PLAY_LABEL
    assert ticks == [1, 1]
