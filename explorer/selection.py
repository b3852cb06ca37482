"""Selection State: what the user is looking at, replaced wholesale on every change."""

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class SelectionState:
    variable_id: str
    time_index: int = 0
    pinned_region: Optional[str] = None

    def with_variable(self, variable_id: str) -> "SelectionState":
        return replace(self, variable_id=variable_id)

    def with_time_index(self, time_index: int) -> "SelectionState":
        return replace(self, time_index=time_index)

    def toggle_pin(self, region: str) -> "SelectionState":
        """Pin a region, or un-pin it when it is already pinned."""
        if self.pinned_region == region:
            return replace(self, pinned_region=None)
        return replace(self, pinned_region=region)
