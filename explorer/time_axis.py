"""
Time Axis: the ordered, deduplicated periods of the dataset plus a cursor.

Both the manual "next" control and the autoplay driver step through
``advance()``, which wraps back to the first period.
"""

import calendar
import re
from typing import Iterable, Optional, Tuple

from .errors import EmptyAxis, IndexOutOfRange

_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{2})$")
_MONTH_ONLY = re.compile(r"^(\d{1,2})$")


def period_label(time_period: str) -> str:
    """Human label for a period key ("2024-03" -> "Mar 2024", "03" -> "Month: 3")."""
    match = _YEAR_MONTH.match(time_period)
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        if 1 <= month <= 12:
            return f"{calendar.month_abbr[month]} {year}"
    match = _MONTH_ONLY.match(time_period)
    if match:
        return f"Month: {int(match.group(1))}"
    return time_period


class TimeAxis:
    """Ascending periods with a current position."""

    def __init__(self, periods: Iterable[str], index: int = 0):
        self._periods: Tuple[str, ...] = tuple(sorted(set(periods)))
        self._index = 0
        if self._periods:
            self.set_index(index)

    def __len__(self) -> int:
        return len(self._periods)

    @property
    def is_empty(self) -> bool:
        return not self._periods

    @property
    def index(self) -> int:
        return self._index

    def all_periods(self) -> Tuple[str, ...]:
        return self._periods

    def current(self) -> str:
        if not self._periods:
            raise EmptyAxis("Time axis has no periods")
        return self._periods[self._index]

    def current_or_none(self) -> Optional[str]:
        return self._periods[self._index] if self._periods else None

    def set_index(self, index: int) -> int:
        if not 0 <= index < len(self._periods):
            raise IndexOutOfRange(index, len(self._periods))
        self._index = index
        return index

    def clamp(self, index: int) -> int:
        """Nearest valid index; used by UI controls before calling set_index."""
        if not self._periods:
            raise EmptyAxis("Time axis has no periods")
        return min(max(index, 0), len(self._periods) - 1)

    def advance(self) -> int:
        """Step forward one period, wrapping to 0 past the end."""
        if not self._periods:
            raise EmptyAxis("Time axis has no periods")
        self._index = (self._index + 1) % len(self._periods)
        return self._index

    def index_of(self, time_period: str) -> int:
        try:
            return self._periods.index(time_period)
        except ValueError:
            raise KeyError(f"Unknown time period: {time_period!r}") from None
