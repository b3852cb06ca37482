import dataclasses

import pytest

from explorer.selection import SelectionState


def test_transitions_return_new_state():
    state = SelectionState(variable_id="NDVI")

    moved = state.with_time_index(2).with_variable("LST")

    assert state == SelectionState("NDVI", 0, None)
    assert moved == SelectionState("LST", 2, None)


def test_toggle_pin_round_trip():
    state = SelectionState(variable_id="NDVI", time_index=1)

    pinned = state.toggle_pin("Texas")
    assert pinned.pinned_region == "Texas"
    assert pinned.toggle_pin("Texas") == state


def test_pinning_another_region_replaces_pin():
    state = SelectionState(variable_id="NDVI").toggle_pin("Texas")

    assert state.toggle_pin("Ohio").pinned_region == "Ohio"


def test_state_is_frozen():
    state = SelectionState(variable_id="NDVI")

    with pytest.raises(dataclasses.FrozenInstanceError):
        state.variable_id = "LST"
