"""
Tests for config_groups module.
"""

import dataclasses

from particle_life.params import ACCELERATION_METHODS, SHAPES, SimulationSettings
from particle_life.utils.config_groups import (
    CHOICE_KEYS,
    GRID_KEYS,
    MENU_GROUPS,
    MENU_ORDER,
    NUDGE_STEPS,
    PARAM_HINTS,
    TOGGLE_KEYS,
    get_menu_group_title,
    get_param_hint,
    is_grid_related,
    needs_color_randomize,
    needs_position_randomize,
    nudge_value,
)

SETTINGS_FIELDS = {f.name for f in dataclasses.fields(SimulationSettings)}


class TestConfigGroups:
    """Tests for configuration group constants and functions."""

    def test_menu_keys_are_settings_fields(self):
        assert set(MENU_GROUPS) <= SETTINGS_FIELDS

    def test_every_menu_key_has_hint(self):
        for key in MENU_ORDER:
            assert get_param_hint(key), key
        assert set(PARAM_HINTS) == set(MENU_GROUPS)

    def test_every_menu_key_is_editable(self):
        for key in MENU_ORDER:
            if key in ("bounds_x", "bounds_y"):
                continue
            assert key in NUDGE_STEPS or key in CHOICE_KEYS or key in TOGGLE_KEYS, key

    def test_choice_keys_match_settings(self):
        assert CHOICE_KEYS["acceleration_method"] == ACCELERATION_METHODS
        assert CHOICE_KEYS["shape"] == SHAPES

    def test_menu_group_title(self):
        assert get_menu_group_title("max_distance") == ("Simulation", "Range")
        assert get_menu_group_title("nonexistent") == (None, None)

    def test_grid_keys(self):
        assert "max_distance" in GRID_KEYS
        assert is_grid_related("bounds_x")
        assert not is_grid_related("particle_size")

    def test_randomize_keys(self):
        assert needs_color_randomize("color_count")
        assert needs_position_randomize("bounds_y")
        assert not needs_position_randomize("time_scale")


class TestNudgeValue:
    """Tests for LEFT/RIGHT menu edits."""

    def test_numeric(self):
        assert nudge_value("particle_count", 10_000, +1) == 11_000
        assert nudge_value("min_distance", 30.0, -1) == 25.0
        assert nudge_value("time_scale", 1.0, +1) == 1.1

    def test_choice_cycles(self):
        assert nudge_value("acceleration_method", "r1", -1) == "planets"
        assert nudge_value("shape", "square", +1) == "circle"
        assert nudge_value("shape", "hexagon", +1) == "circle"

    def test_toggle(self):
        assert nudge_value("rgb", False, +1) is True
        assert nudge_value("debug_checks", True, -1) is False

    def test_unknown_key_unchanged(self):
        assert nudge_value("seed", 5, +1) == 5
