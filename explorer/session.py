"""
Session controller for the map explorer.

MapExplorer is the UI-facing surface: every control event (variable
selector, time scrubber, next, play/pause, hover, click) and every autoplay
tick goes through one lock, so events are processed one at a time. Each event
replaces the SelectionState, recomputes the frame through the visual state
engine and hands it to the render projection, if one is attached.

Usage:
    explorer = MapExplorer(projection=FrameRenderer(boundaries, "frames/"))
    explorer.load(store, registry, regions)
    explorer.select_variable("NDVI")
    explorer.scrub(3)
    explorer.click("Texas")
"""

import threading
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple

from loguru import logger

from .autoplay import DEFAULT_INTERVAL, AutoplayDriver, IntervalTicker, TickerFactory
from .engine import Frame, format_value, render
from .errors import EmptyAxis, NotLoaded, UnknownVariable
from .observations import ObservationStore
from .selection import SelectionState
from .time_axis import TimeAxis, period_label
from .variables import VariableRegistry


class RenderProjection(Protocol):
    """Anything that can draw a computed frame."""

    def draw(self, frame: Frame) -> None: ...


@dataclass(frozen=True)
class HoverInfo:
    """Transient tooltip payload for a hovered region."""

    region: str
    variable_id: str
    value: Optional[float]
    display: str
    unit: str = ""

    @property
    def text(self) -> str:
        unit = f" {self.unit}" if self.unit and self.value is not None else ""
        return f"{self.region}\n{self.variable_id}: {self.display}{unit}"


class MapExplorer:
    """Owns selection state, time axis and autoplay; emits frames on change."""

    def __init__(
        self,
        projection: Optional[RenderProjection] = None,
        interval: float = DEFAULT_INTERVAL,
        ticker_factory: TickerFactory = IntervalTicker,
        strict: bool = False,
    ):
        self.projection = projection
        self.strict = strict
        self._lock = threading.RLock()
        self.autoplay = AutoplayDriver(
            self._on_tick, interval=interval, ticker_factory=ticker_factory
        )

        self.store: Optional[ObservationStore] = None
        self.registry: Optional[VariableRegistry] = None
        self.regions: Tuple[str, ...] = ()
        self.axis = TimeAxis(())
        self.selection: Optional[SelectionState] = None
        self.frame: Optional[Frame] = None

    @property
    def loaded(self) -> bool:
        return self.selection is not None

    def load(
        self,
        store: ObservationStore,
        registry: VariableRegistry,
        regions: Optional[Sequence[str]] = None,
        variable_id: Optional[str] = None,
    ) -> Optional[Frame]:
        """Install the loaded data and draw the initial frame."""
        with self._lock:
            self.autoplay.stop()
            self.store = store
            self.registry = registry
            self.regions = tuple(regions) if regions is not None else store.regions
            self.axis = TimeAxis(store.periods)

            if variable_id is not None and variable_id not in registry:
                logger.warning(
                    f"⚠️ Unknown variable {variable_id!r}; starting with {registry.default_id!r}"
                )
                variable_id = None
            variable_id = variable_id or registry.default_id
            if variable_id is None:
                logger.warning("⚠️ No variables registered; nothing to render")

            self.selection = SelectionState(
                variable_id=variable_id or "", time_index=self.axis.index
            )
            logger.info(
                f"🗺️ Explorer loaded: {len(registry)} variables, {len(self.axis)} periods, "
                f"{len(self.regions)} regions"
            )
            return self._refresh()

    def _ready(self, event: str) -> bool:
        if self.loaded:
            return True
        if self.strict:
            raise NotLoaded(f"Cannot handle '{event}' before data is loaded")
        logger.warning(f"⚠️ Ignoring '{event}': data not loaded yet")
        return False

    @property
    def time_label(self) -> str:
        period = self.axis.current_or_none()
        return period_label(period) if period is not None else ""

    @property
    def play_label(self) -> str:
        return self.autoplay.label

    def _refresh(self) -> Frame:
        selection = self.selection
        if not selection.variable_id:
            self.frame = Frame.empty()
        else:
            self.frame = render(
                self.store,
                self.registry,
                selection.variable_id,
                self.axis.current_or_none(),
                pinned_region=selection.pinned_region,
                regions=self.regions,
            )
        if self.projection is not None:
            self.projection.draw(self.frame)
        return self.frame

    def current_frame(self) -> Optional[Frame]:
        return self.frame

    def select_variable(self, variable_id: str) -> Optional[Frame]:
        with self._lock:
            if not self._ready("select_variable"):
                return None
            try:
                self.registry.resolve(variable_id)
            except UnknownVariable as e:
                logger.warning(f"⚠️ {e}; keeping {self.selection.variable_id!r}")
                return None
            self.selection = self.selection.with_variable(variable_id)
            return self._refresh()

    def scrub(self, index: int) -> Optional[Frame]:
        """Time scrubber moved to ``index`` (clamped to the axis)."""
        with self._lock:
            if not self._ready("scrub"):
                return None
            if self.axis.is_empty:
                return self._refresh()
            clamped = self.axis.clamp(index)
            if clamped != index:
                logger.debug(f"Scrub index {index} clamped to {clamped}")
            self.selection = self.selection.with_time_index(self.axis.set_index(clamped))
            return self._refresh()

    def step(self) -> Optional[Frame]:
        """Advance one period, wrapping past the end."""
        with self._lock:
            if not self._ready("step"):
                return None
            try:
                index = self.axis.advance()
            except EmptyAxis:
                return self._refresh()
            self.selection = self.selection.with_time_index(index)
            return self._refresh()

    def _on_tick(self) -> None:
        # At most one render in flight; a tick arriving mid-event is dropped.
        if not self._lock.acquire(blocking=False):
            logger.trace("Autoplay tick coalesced")
            return
        try:
            if self.autoplay.running:
                self.step()
        finally:
            self._lock.release()

    def play(self) -> str:
        with self._lock:
            if not self._ready("play"):
                return self.autoplay.label
            return self.autoplay.start()

    def pause(self) -> str:
        with self._lock:
            return self.autoplay.stop()

    def toggle_play(self) -> str:
        """Play/pause control; returns the new button label."""
        with self._lock:
            if self.autoplay.running:
                return self.autoplay.stop()
            if not self._ready("toggle_play"):
                return self.autoplay.label
            return self.autoplay.start()

    def hover(self, region: str) -> Optional[HoverInfo]:
        """Tooltip payload for a region; selection state is untouched."""
        with self._lock:
            if not self._ready("hover"):
                return None
            variable_id = self.selection.variable_id
            value = None
            if self.frame is not None:
                value = self.frame.region_values.get(region)
            unit = self.registry.resolve(variable_id).unit if variable_id in self.registry else ""
            return HoverInfo(
                region=region,
                variable_id=variable_id,
                value=value,
                display=format_value(value),
                unit=unit,
            )

    def click(self, region: str) -> Optional[Frame]:
        """Pin a region for the line chart; clicking it again un-pins."""
        with self._lock:
            if not self._ready("click"):
                return None
            self.selection = self.selection.toggle_pin(region)
            logger.debug(f"📌 Pinned region: {self.selection.pinned_region}")
            return self._refresh()
