"""
Per-frame immutable view of the simulation settings.

The snapshot is rebuilt at the start of every frame, so settings edited
between frames take effect atomically. Every pipeline stage reads the same
snapshot.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from particle_life.core.palette import PALETTE_SIZE, resolve_palette
from particle_life.physics.forces import AccelerationMethod
from particle_life.physics.grid import GridGeometry

if TYPE_CHECKING:
    from particle_life.params import SimulationSettings

LANES = 4


class ColorMatrix:
    """
    Square interaction matrix packed row-major into groups of 4 float32 lanes.

    Entry (x, y) lives at group ``(x + y*size) // 4``, lane ``(x + y*size) % 4``.
    ``y`` is the color of the particle being accelerated, ``x`` the color of
    its neighbor.
    """

    __slots__ = ("size", "groups")

    def __init__(self, size: int = PALETTE_SIZE) -> None:
        self.size = int(size)
        n_groups = (self.size * self.size) // LANES + 1
        self.groups = np.zeros((n_groups, LANES), dtype=np.float32)

    @classmethod
    def from_rows(cls, rows: list[list[float]], size: int = PALETTE_SIZE) -> "ColorMatrix":
        this = cls(size)
        for y, row in enumerate(rows[:size]):
            for x, value in enumerate(row[:size]):
                this.set(x, y, value)
        return this

    def _locate(self, x: int, y: int) -> tuple[int, int]:
        if not (0 <= x < self.size and 0 <= y < self.size):
            raise IndexError(f"matrix index ({x}, {y}) out of range for size {self.size}")
        flat = x + y * self.size
        return flat // LANES, flat % LANES

    def set(self, x: int, y: int, value: float) -> None:
        group, lane = self._locate(x, y)
        self.groups[group, lane] = value

    def get(self, x: int, y: int) -> float:
        group, lane = self._locate(x, y)
        return float(self.groups[group, lane])

    def to_rows(self) -> list[list[float]]:
        return [[self.get(x, y) for x in range(self.size)] for y in range(self.size)]

    def flat(self) -> np.ndarray:
        """Contiguous lane view used by the force kernel (index ``x + y*size``)."""
        return self.groups.reshape(-1)


@dataclass(frozen=True, slots=True)
class SettingsSnapshot:
    dt: float
    particle_count: int
    min_distance: float
    max_distance: float
    max_velocity: float
    velocity_half_life: float
    force_factor: float
    bounds: tuple[float, float]
    grid: GridGeometry
    particle_size: float
    shape: str
    circle_corners: int
    color_count: int
    palette: tuple[tuple[int, int, int, int], ...]
    matrix: ColorMatrix
    acceleration_method: AccelerationMethod
    spawn_batch: int
    chunk_size: int
    debug_checks: bool

    @property
    def cell_count(self) -> tuple[int, int]:
        return self.grid.cells_x, self.grid.cells_y

    @property
    def relative_min_distance(self) -> float:
        return self.min_distance / self.max_distance

    @property
    def max_color_count(self) -> int:
        return len(self.palette)


def build_snapshot(settings: "SimulationSettings", frame_dt: float) -> SettingsSnapshot:
    """Freeze ``settings`` for one frame that advanced ``frame_dt`` seconds of wall time.

    Built from a clamped copy: in-place edits to the live settings reach the
    kernels clamped and with snapped bounds.
    """
    settings = settings.copy().clamp()
    dt = float(frame_dt) * float(settings.time_scale)
    if not math.isfinite(dt) or dt < 0.0:
        dt = 0.0
    bounds = (float(settings.bounds_x), float(settings.bounds_y))
    return SettingsSnapshot(
        dt=dt,
        particle_count=int(settings.particle_count),
        min_distance=float(settings.min_distance),
        max_distance=float(settings.max_distance),
        max_velocity=float(settings.max_velocity),
        velocity_half_life=float(settings.velocity_half_life),
        force_factor=float(settings.force_factor),
        bounds=bounds,
        grid=GridGeometry.from_bounds(bounds, float(settings.max_distance)),
        particle_size=float(settings.particle_size),
        shape=str(settings.shape),
        circle_corners=int(settings.circle_corners),
        color_count=int(settings.color_count),
        palette=resolve_palette(settings.color_order),
        matrix=ColorMatrix.from_rows(settings.matrix),
        acceleration_method=AccelerationMethod.from_name(settings.acceleration_method),
        spawn_batch=int(settings.spawn_batch),
        chunk_size=int(settings.chunk_size),
        debug_checks=bool(settings.debug_checks),
    )
