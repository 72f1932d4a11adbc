"""
Configuration constants and parameter groups for the particle-life viewer.

This module centralizes parameter categorization, menu groups, nudge steps and
which edits need follow-up work (grid re-snap, particle re-randomization).
"""

from __future__ import annotations


# =============================================================================
# Grid Keys - Changes that re-snap the world bounds to the cell size
# =============================================================================

GRID_KEYS = {
    "max_distance",
    "bounds_x",
    "bounds_y",
}


# =============================================================================
# Re-randomization Keys - Changes that queue a command on the simulation
# =============================================================================

RANDOMIZE_POSITIONS_KEYS = {
    "bounds_x",
    "bounds_y",
}

RANDOMIZE_COLORS_KEYS = {
    "color_count",
}


# =============================================================================
# Menu Groups - Organizes parameters in the UI menu
# =============================================================================

MENU_GROUPS = {
    "particle_count": ("Particles", "Population"),
    "color_count": ("Particles", "Population"),
    "spawn_batch": ("Particles", "Population"),
    "time_scale": ("Simulation", "Time"),
    "acceleration_method": ("Simulation", "Forces"),
    "force_factor": ("Simulation", "Forces"),
    "min_distance": ("Simulation", "Range"),
    "max_distance": ("Simulation", "Range"),
    "max_velocity": ("Simulation", "Dynamics"),
    "velocity_half_life": ("Simulation", "Dynamics"),
    "bounds_x": ("World", "Bounds"),
    "bounds_y": ("World", "Bounds"),
    "particle_size": ("View", "Shape"),
    "shape": ("View", "Shape"),
    "circle_corners": ("View", "Shape"),
    "rgb": ("View", "Color"),
    "rgb_speed": ("View", "Color"),
    "chunk_size": ("Performance", "Grid"),
    "worker_threads": ("Performance", "Threads"),
    "debug_checks": ("Performance", "Debug"),
}

MENU_ORDER = list(MENU_GROUPS)


# =============================================================================
# Nudge Steps - LEFT/RIGHT increments in the viewer menu
# =============================================================================

NUDGE_STEPS = {
    "particle_count": 1000,
    "color_count": 1,
    "spawn_batch": 10_000,
    "time_scale": 0.1,
    "force_factor": 0.1,
    "min_distance": 5.0,
    "max_distance": 10.0,
    "max_velocity": 50.0,
    "velocity_half_life": 0.005,
    "particle_size": 0.5,
    "circle_corners": 1,
    "rgb_speed": 0.1,
    "chunk_size": 512,
    "worker_threads": 1,
}

CHOICE_KEYS = {
    "acceleration_method": ("r1", "r2", "r3", "deg90", "attr", "planets"),
    "shape": ("circle", "square"),
}

TOGGLE_KEYS = {
    "rgb",
    "debug_checks",
}


# =============================================================================
# Parameter Hints - Help text for each parameter
# =============================================================================

PARAM_HINTS = {
    "particle_count": "Number of simulated particles.",
    "color_count": "Number of active colors (species).",
    "spawn_batch": "Max new particles initialized per frame.",
    "time_scale": "Simulated time multiplier.",
    "acceleration_method": "Force law: r1, r2, r3, deg90, attr or planets.",
    "force_factor": "Global acceleration multiplier.",
    "min_distance": "Repulsion radius (world units).",
    "max_distance": "Interaction cutoff and grid cell size.",
    "max_velocity": "Speed clamp.",
    "velocity_half_life": "Seconds for velocity to halve without forces.",
    "bounds_x": "World half-width (snapped to max_distance).",
    "bounds_y": "World half-height (snapped to max_distance).",
    "particle_size": "Particle radius (world units).",
    "shape": "Particle shape: circle or square.",
    "circle_corners": "Polygon corners used for circles.",
    "rgb": "Cycle palette hues over time.",
    "rgb_speed": "Hue cycling speed.",
    "chunk_size": "Particles per partition work unit.",
    "worker_threads": "numba worker threads (0 = default).",
    "debug_checks": "Verify the spatial partition every frame.",
}


# =============================================================================
# Helper Functions
# =============================================================================

def get_menu_group_title(key: str) -> tuple[str | None, str | None]:
    """
    Get the menu group and subgroup for a parameter.

    Args:
        key: Parameter key name

    Returns:
        (group_name, subgroup_name) or (None, None) if not found
    """
    group = MENU_GROUPS.get(key)
    if group is None:
        return None, None
    return group


def get_param_hint(key: str) -> str:
    return PARAM_HINTS.get(key, "")


def is_grid_related(key: str) -> bool:
    """Check if changing this parameter re-snaps the world bounds."""
    return key in GRID_KEYS


def needs_position_randomize(key: str) -> bool:
    return key in RANDOMIZE_POSITIONS_KEYS


def needs_color_randomize(key: str) -> bool:
    return key in RANDOMIZE_COLORS_KEYS


def nudge_value(key: str, value: object, direction: int) -> object:
    """
    Next value for ``key`` after one LEFT (-1) or RIGHT (+1) press.

    Numeric keys move by their NUDGE_STEPS entry, choice keys cycle, toggles flip.
    Unknown keys are returned unchanged.
    """
    direction = 1 if direction >= 0 else -1
    if key in TOGGLE_KEYS:
        return not bool(value)
    if key in CHOICE_KEYS:
        choices = CHOICE_KEYS[key]
        try:
            i = choices.index(str(value))
        except ValueError:
            return choices[0]
        return choices[(i + direction) % len(choices)]
    step = NUDGE_STEPS.get(key)
    if step is None:
        return value
    if isinstance(step, int) and isinstance(value, int) and not isinstance(value, bool):
        return value + direction * step
    return round(float(value) + direction * float(step), 6)  # type: ignore[arg-type]
