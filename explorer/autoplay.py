"""
Autoplay Driver: a two-state (Stopped/Running) timer that steps the time axis.

The driver does not know about maps. It calls ``on_tick`` once per interval
while running. Tickers are pluggable:

- IntervalTicker: background thread, fixed interval (default one second)
- ManualTicker: fires only when ``fire()`` is called; used for frame export
  and deterministic tests
"""

import threading
from typing import Callable, Optional

from loguru import logger

PLAY_LABEL = "Play"
PAUSE_LABEL = "Pause"
DEFAULT_INTERVAL = 1.0

TickCallback = Callable[[], None]


class IntervalTicker:
    """Calls ``callback`` every ``interval`` seconds on a daemon thread until cancelled."""

    def __init__(self, interval: float, callback: TickCallback):
        self.interval = interval
        self.callback = callback
        self._cancelled = threading.Event()
        self._lock = threading.RLock()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, name="autoplay-ticker", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._cancelled.wait(self.interval):
            with self._lock:
                if self._cancelled.is_set():
                    break
                self.callback()

    def cancel(self) -> None:
        """Stop ticking. No tick runs after this returns."""
        self._cancelled.set()
        # Waits out a tick in progress on another thread.
        with self._lock:
            pass
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval + 1.0)


class ManualTicker:
    """Ticker driven by explicit ``fire()`` calls."""

    def __init__(self, interval: float, callback: TickCallback):
        self.interval = interval
        self.callback = callback
        self.active = False

    def start(self) -> None:
        self.active = True

    def cancel(self) -> None:
        self.active = False

    def fire(self, count: int = 1) -> int:
        """Deliver up to ``count`` ticks; returns how many actually fired."""
        fired = 0
        for _ in range(count):
            if not self.active:
                break
            self.callback()
            fired += 1
        return fired


TickerFactory = Callable[[float, TickCallback], object]


class AutoplayDriver:
    """Play/pause state machine around a ticker."""

    def __init__(
        self,
        on_tick: TickCallback,
        interval: float = DEFAULT_INTERVAL,
        ticker_factory: TickerFactory = IntervalTicker,
    ):
        self.on_tick = on_tick
        self.interval = interval
        self.ticker_factory = ticker_factory
        self.ticker = None

    @property
    def running(self) -> bool:
        return self.ticker is not None

    @property
    def label(self) -> str:
        """Label for the play/pause control."""
        return PAUSE_LABEL if self.running else PLAY_LABEL

    def start(self) -> str:
        if self.running:
            return self.label
        self.ticker = self.ticker_factory(self.interval, self.on_tick)
        self.ticker.start()
        logger.debug(f"▶️ Autoplay started ({self.interval}s interval)")
        return self.label

    def stop(self) -> str:
        if not self.running:
            return self.label
        ticker, self.ticker = self.ticker, None
        ticker.cancel()
        logger.debug("⏸️ Autoplay stopped")
        return self.label

    def toggle(self) -> str:
        return self.stop() if self.running else self.start()
