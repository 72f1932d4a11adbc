"""
Pairwise force evaluation and integration over the uniform grid.

Per particle, the 3x3 block of cells around its own cell is scanned (wrapping
toroidally), each candidate neighbor is mapped to its closest periodic image
and, when within ``max_distance``, contributes an acceleration chosen by the
active law. Distances handed to the laws are normalized so that 1.0 equals
``max_distance``.

Velocities are updated in one parallel pass and positions in a second, so
every particle reads neighbor positions from the same frame.
"""

from __future__ import annotations

import math
from enum import IntEnum
from typing import TYPE_CHECKING

import numpy as np
from numba import njit, prange

from particle_life.physics.grid import cell_coords

if TYPE_CHECKING:
    from particle_life.core.snapshot import SettingsSnapshot
    from particle_life.physics.grid import SortedIndex

_R1 = 0
_R2 = 1
_R3 = 2
_DEG90 = 3
_ATTR = 4
_PLANETS = 5


class AccelerationMethod(IntEnum):
    R1 = _R1
    R2 = _R2
    R3 = _R3
    DEG90 = _DEG90
    ATTR = _ATTR
    PLANETS = _PLANETS

    @classmethod
    def from_name(cls, name: str) -> "AccelerationMethod":
        key = str(name).strip().upper()
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown acceleration method: {name!r}") from None

    @property
    def label(self) -> str:
        return self.name.lower()


@njit(cache=True, fastmath=True)
def _radial_force(rmin, dist, a):
    if dist < rmin:
        return dist / rmin - 1.0
    return a * (1.0 - abs(1.0 + rmin - 2.0 * dist) / (1.0 - rmin))


@njit(cache=True, fastmath=True)
def acceleration(method, rmin, dx, dy, a):
    """
    Acceleration on a particle from a neighbor at normalized offset (dx, dy).

    Args:
        method: Integer value of an AccelerationMethod.
        rmin: min_distance / max_distance, in [0, 1).
        dx, dy: Neighbor offset divided by max_distance; must not both be 0.
        a: Attraction of the particle's color towards the neighbor's color.

    Returns:
        (ax, ay) in normalized units.
    """
    dist = math.sqrt(dx * dx + dy * dy)
    if method == _R1:
        f = _radial_force(rmin, dist, a) / dist
        return dx * f, dy * f
    if method == _R2:
        f = _radial_force(rmin, dist, a) / (dist * dist)
        return dx * f, dy * f
    if method == _R3:
        f = _radial_force(rmin, dist, a) / (dist * dist * dist)
        return dx * f, dy * f
    if method == _DEG90:
        f = a * (1.0 - dist) / dist
        return -dy * f, dx * f
    if method == _ATTR:
        angle = -a * math.pi
        c = math.cos(angle)
        s = math.sin(angle)
        f = (1.0 - dist) / dist
        return (c * dx + s * dy) * f, (-s * dx + c * dy) * f
    if method == _PLANETS:
        d = max(dist, 0.01)
        f = 0.01 / (d * d * d)
        return dx * f, dy * f
    return 0.0, 0.0


@njit(cache=True, fastmath=True)
def closest_wrapped(pos, other, bound):
    """Coordinate of ``other`` or its periodic image, whichever is closer to ``pos``."""
    if other > 0.0:
        wrapped = other - 2.0 * bound
    else:
        wrapped = other + 2.0 * bound
    if abs(pos - wrapped) < abs(pos - other):
        return wrapped
    return other


@njit(cache=True)
def wrap_coordinate(x, bound):
    if x > bound or x < -bound:
        span = 2.0 * bound
        x = (x + bound) % span - bound
    return x


@njit(cache=True)
def _axis_step_used(step, cells):
    # With fewer than 3 cells on an axis, -1/0/+1 alias each other.
    if cells == 1:
        return step == 0
    if cells == 2:
        return step != 1
    return True


@njit(parallel=True, fastmath=True, cache=True)
def update_velocities(
    positions,
    velocities,
    colors,
    n,
    sorted_index,
    offsets,
    cells_x,
    cells_y,
    matrix,
    matrix_size,
    method,
    rmin,
    max_distance,
    max_velocity,
    half_life,
    force_factor,
    bounds_x,
    bounds_y,
    dt,
):
    max_d2 = max_distance * max_distance
    inv_md = 1.0 / max_distance
    decay = 0.5 ** (dt / half_life)
    gain = max_distance * force_factor * dt
    vmax2 = max_velocity * max_velocity
    for i in prange(n):
        px = positions[i, 0]
        py = positions[i, 1]
        row = int(colors[i]) * matrix_size
        gx, gy = cell_coords(px, py, bounds_x, bounds_y, max_distance, cells_x, cells_y)
        ax = 0.0
        ay = 0.0
        for sy in range(-1, 2):
            if not _axis_step_used(sy, cells_y):
                continue
            ny = (gy + sy) % cells_y
            for sx in range(-1, 2):
                if not _axis_step_used(sx, cells_x):
                    continue
                nx = (gx + sx) % cells_x
                cell = nx + ny * cells_x
                for k in range(offsets[cell], offsets[cell + 1]):
                    j = sorted_index[k]
                    dx = closest_wrapped(px, positions[j, 0], bounds_x) - px
                    dy = closest_wrapped(py, positions[j, 1], bounds_y) - py
                    d2 = dx * dx + dy * dy
                    if d2 == 0.0 or d2 > max_d2:
                        continue
                    a = matrix[int(colors[j]) + row]
                    rx, ry = acceleration(method, rmin, dx * inv_md, dy * inv_md, a)
                    ax += rx
                    ay += ry

        vx = velocities[i, 0] * decay + ax * gain
        vy = velocities[i, 1] * decay + ay * gain
        speed2 = vx * vx + vy * vy
        if speed2 > vmax2:
            s = max_velocity / math.sqrt(speed2)
            vx *= s
            vy *= s
        velocities[i, 0] = vx
        velocities[i, 1] = vy


@njit(parallel=True, fastmath=True, cache=True)
def update_positions(positions, velocities, n, bounds_x, bounds_y, dt):
    for i in prange(n):
        positions[i, 0] = wrap_coordinate(positions[i, 0] + velocities[i, 0] * dt, bounds_x)
        positions[i, 1] = wrap_coordinate(positions[i, 1] + velocities[i, 1] * dt, bounds_y)


def apply_forces(
    positions: np.ndarray,
    velocities: np.ndarray,
    colors: np.ndarray,
    n: int,
    index: "SortedIndex",
    snapshot: "SettingsSnapshot",
) -> None:
    """Velocity pass: neighbor accelerations, damping and speed clamp for the first ``n`` particles."""
    if n <= 0:
        return
    grid = snapshot.grid
    update_velocities(
        positions,
        velocities,
        colors,
        int(n),
        index.sorted_index,
        index.offsets,
        grid.cells_x,
        grid.cells_y,
        snapshot.matrix.flat(),
        snapshot.matrix.size,
        int(snapshot.acceleration_method),
        float(snapshot.relative_min_distance),
        float(snapshot.max_distance),
        float(snapshot.max_velocity),
        float(snapshot.velocity_half_life),
        float(snapshot.force_factor),
        grid.bounds_x,
        grid.bounds_y,
        float(snapshot.dt),
    )


def integrate(positions: np.ndarray, velocities: np.ndarray, n: int, snapshot: "SettingsSnapshot") -> None:
    """Position pass: advance by velocity * dt and wrap into the world box."""
    if n <= 0:
        return
    update_positions(positions, velocities, int(n), float(snapshot.bounds[0]), float(snapshot.bounds[1]), float(snapshot.dt))
