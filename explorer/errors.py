"""
Error taxonomy for the map explorer core.

Absent per-region values are not errors; they resolve to the no-data color.
"""


class ExplorerError(Exception):
    """Base class for all explorer errors."""


class UnknownVariable(ExplorerError, KeyError):
    """Requested variable id is not registered."""

    def __init__(self, variable_id: str):
        self.variable_id = variable_id
        super().__init__(f"Unknown variable: {variable_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class IndexOutOfRange(ExplorerError, IndexError):
    """Time index outside the axis bounds."""

    def __init__(self, index: int, length: int):
        self.index = index
        self.length = length
        super().__init__(f"Time index {index} outside [0, {length - 1}]")


class EmptyAxis(ExplorerError):
    """The time axis has no periods (empty dataset)."""


class DataShapeError(ExplorerError, ValueError):
    """Input data is missing columns or carries malformed values."""


class DuplicateObservation(ExplorerError, ValueError):
    """More than one observation for a (region, period, variable) triple."""


class NotLoaded(ExplorerError):
    """Interaction attempted before the dataset finished loading."""
