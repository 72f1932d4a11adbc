from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from particle_life.core.init_conditions import random_colors, random_positions

if TYPE_CHECKING:
    from particle_life.core.snapshot import SettingsSnapshot

logger = logging.getLogger("particle_life")


@dataclass(slots=True)
class Particle:
    x: float
    y: float
    vx: float
    vy: float
    color: int


class ParticleStore:
    """
    Growable structure-of-arrays particle buffers.

    Slots below ``initialized`` hold live particles; slots past it are
    allocated but not yet spawned. Only ``initialize_range`` moves the counter.
    """

    def __init__(self, capacity: int = 0) -> None:
        capacity = max(0, int(capacity))
        self.positions = np.zeros((capacity, 2), dtype=np.float32)
        self.velocities = np.zeros((capacity, 2), dtype=np.float32)
        self.colors = np.zeros(capacity, dtype=np.uint32)
        self._initialized = 0

    @property
    def capacity(self) -> int:
        return int(self.colors.shape[0])

    @property
    def initialized(self) -> int:
        return self._initialized

    def ensure_capacity(self, n: int) -> bool:
        """Grow the buffers to hold ``n`` particles. Returns True when they were reallocated."""
        n = int(n)
        old = self.capacity
        if n <= 0 or n <= old:
            return False

        positions = np.zeros((n, 2), dtype=np.float32)
        velocities = np.zeros((n, 2), dtype=np.float32)
        colors = np.zeros(n, dtype=np.uint32)
        keep = min(old, n)
        positions[:keep] = self.positions[:keep]
        velocities[:keep] = self.velocities[:keep]
        colors[:keep] = self.colors[:keep]
        self.positions = positions
        self.velocities = velocities
        self.colors = colors
        logger.info("particle buffers grown %d -> %d", old, n)
        return True

    def initialize_range(
        self,
        start: int,
        count: int,
        snapshot: "SettingsSnapshot",
        rng: np.random.Generator,
    ) -> int:
        """Spawn ``count`` particles from slot ``start``; returns how many were written.

        Spawning happens at the tail: ``start`` is the current ``initialized``
        count and the counter advances by the number of slots written.
        """
        start = max(0, int(start))
        end = min(self.capacity, start + max(0, int(count)))
        written = max(0, end - start)
        if written == 0:
            return 0
        self.positions[start:end] = random_positions(rng, written, snapshot.bounds)
        self.velocities[start:end] = 0.0
        self.colors[start:end] = random_colors(rng, written, snapshot.color_count)
        self._initialized = min(self.capacity, self._initialized + written)
        return written

    def randomize_positions(self, bounds: tuple[float, float], rng: np.random.Generator) -> None:
        n = self._initialized
        self.positions[:n] = random_positions(rng, n, bounds)

    def randomize_colors(self, color_count: int, rng: np.random.Generator) -> None:
        n = self._initialized
        self.colors[:n] = random_colors(rng, n, color_count)

    def particle(self, i: int) -> Particle:
        if not (0 <= i < self._initialized):
            raise IndexError(f"particle {i} out of range (initialized={self._initialized})")
        x, y = self.positions[i]
        vx, vy = self.velocities[i]
        return Particle(x=float(x), y=float(y), vx=float(vx), vy=float(vy), color=int(self.colors[i]))

    def view(self, n: int) -> tuple[np.ndarray, np.ndarray]:
        """Read-only (positions, colors) views over the first ``n`` live particles."""
        n = max(0, min(int(n), self._initialized))
        positions = self.positions[:n].view()
        colors = self.colors[:n].view()
        positions.flags.writeable = False
        colors.flags.writeable = False
        return positions, colors
