"""
Initial condition generators for particle-life.

New particles are spawned uniformly over the world box with zero velocity and
a uniformly drawn color id. The same samplers back the "randomize positions"
and "randomize colors" commands.
"""

from __future__ import annotations

import numpy as np


def random_positions(rng: np.random.Generator, count: int, bounds: tuple[float, float]) -> np.ndarray:
    """
    Sample positions uniformly in ``[-bounds, bounds)`` per axis.

    Args:
        rng: numpy random generator
        count: Number of positions to draw
        bounds: (half-width, half-height) of the world box

    Returns:
        float32 array of shape (count, 2)
    """
    count = max(0, int(count))
    bx, by = float(bounds[0]), float(bounds[1])
    out = np.empty((count, 2), dtype=np.float32)
    out[:, 0] = rng.uniform(-bx, bx, size=count)
    out[:, 1] = rng.uniform(-by, by, size=count)
    # float32 rounding can land a sample exactly on +bound
    np.clip(out[:, 0], -bx, np.nextafter(np.float32(bx), np.float32(0.0)), out=out[:, 0])
    np.clip(out[:, 1], -by, np.nextafter(np.float32(by), np.float32(0.0)), out=out[:, 1])
    return out


def random_colors(rng: np.random.Generator, count: int, color_count: int) -> np.ndarray:
    """Color ids drawn uniformly from ``[0, color_count)``."""
    count = max(0, int(count))
    color_count = max(1, int(color_count))
    return rng.integers(0, color_count, size=count, dtype=np.uint32)
