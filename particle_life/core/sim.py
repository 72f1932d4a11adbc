from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import numba
import numpy as np

from particle_life.core.commands import Command, CommandQueue
from particle_life.core.palette import PALETTE_SIZE
from particle_life.core.snapshot import SettingsSnapshot, build_snapshot
from particle_life.core.store import ParticleStore
from particle_life.params import SimulationSettings
from particle_life.physics.forces import apply_forces, integrate
from particle_life.physics.grid import SpatialPartitioner

logger = logging.getLogger("particle_life")

STAGES = (
    "grow_buffers",
    "apply_commands",
    "initialize_new",
    "count_cells",
    "prefix_sum",
    "scatter",
    "forces",
    "integrate",
)


@dataclass(frozen=True, slots=True)
class ParticleView:
    """What the renderer gets each frame. Arrays are read-only views of the live buffers."""

    positions: np.ndarray
    colors: np.ndarray
    particle_count: int
    particle_size: float
    shape: str
    circle_corners: int
    palette: tuple[tuple[int, int, int, int], ...]


class ParticleLifeSim:
    def __init__(self, settings: SimulationSettings) -> None:
        self._settings = settings
        self._rng = np.random.default_rng(settings.seed)
        self.store = ParticleStore()
        self.partitioner = SpatialPartitioner()
        self.commands = CommandQueue()
        self.snapshot: SettingsSnapshot | None = None
        self.last_stage_ms: dict[str, float] = {}
        self.frame = 0
        self._threads: int | None = None

    @property
    def settings(self) -> SimulationSettings:
        return self._settings

    @settings.setter
    def settings(self, settings: SimulationSettings) -> None:
        # Picked up by the next frame's snapshot.
        self._settings = settings

    @property
    def particle_count(self) -> int:
        """Particles simulated and drawn this frame."""
        return min(self._frame_snapshot().particle_count, self.store.initialized)

    def _frame_snapshot(self) -> SettingsSnapshot:
        if self.snapshot is not None:
            return self.snapshot
        return build_snapshot(self._settings, 0.0)

    def queue(self, command: Command) -> None:
        self.commands.push(command)

    def load_settings(self, text: str) -> bool:
        parsed = SimulationSettings.deserialize(text)
        if parsed is None:
            logger.warning("Rejected settings string; keeping current settings.")
            return False
        self._settings = parsed
        self.queue(Command.RANDOMIZE_COLORS)
        self.queue(Command.RANDOMIZE_POSITIONS)
        logger.info(
            "Loaded settings: %d particles, %d colors, method=%s",
            parsed.particle_count,
            parsed.color_count,
            parsed.acceleration_method,
        )
        return True

    def _apply_worker_threads(self) -> None:
        wanted = int(self._settings.worker_threads)
        if wanted <= 0 or wanted == self._threads:
            return
        wanted = min(wanted, numba.config.NUMBA_NUM_THREADS)
        numba.set_num_threads(wanted)
        self._threads = wanted
        logger.info("numba worker threads set to %d", wanted)

    def step(self, frame_dt: float) -> SettingsSnapshot:
        """Advance one frame. Stages run strictly in order; each returns before the next starts."""
        snap = build_snapshot(self._settings, frame_dt)
        self.snapshot = snap
        self._apply_worker_threads()
        store = self.store
        timings: dict[str, float] = {}
        t0 = time.perf_counter()

        def mark(stage: str) -> None:
            nonlocal t0
            now = time.perf_counter()
            timings[stage] = (now - t0) * 1000.0
            t0 = now

        store.ensure_capacity(snap.particle_count)
        mark("grow_buffers")

        pending = self.commands.drain()
        if Command.RANDOMIZE_POSITIONS in pending:
            store.randomize_positions(snap.bounds, self._rng)
        if Command.RANDOMIZE_COLORS in pending:
            store.randomize_colors(snap.color_count, self._rng)
        mark("apply_commands")

        spawn = min(snap.spawn_batch, max(0, snap.particle_count - store.initialized))
        if spawn > 0:
            store.initialize_range(store.initialized, spawn, snap, self._rng)
        mark("initialize_new")

        n = min(snap.particle_count, store.initialized)
        self.partitioner.count(store.positions, n, snap.grid, snap.chunk_size)
        mark("count_cells")
        self.partitioner.prefix_sum()
        mark("prefix_sum")
        index = self.partitioner.scatter()
        if snap.debug_checks:
            self.partitioner.verify()
        mark("scatter")

        apply_forces(store.positions, store.velocities, store.colors, n, index, snap)
        mark("forces")
        integrate(store.positions, store.velocities, n, snap)
        mark("integrate")

        self.last_stage_ms = timings
        self.frame += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "frame %d n=%d %s",
                self.frame,
                n,
                " ".join(f"{k}={v:.2f}ms" for k, v in timings.items()),
            )
        return snap

    def view(self) -> ParticleView:
        snap = self._frame_snapshot()
        n = self.particle_count
        positions, colors = self.store.view(n)
        return ParticleView(
            positions=positions,
            colors=colors,
            particle_count=n,
            particle_size=snap.particle_size,
            shape=snap.shape,
            circle_corners=snap.circle_corners,
            palette=snap.palette,
        )

    def validate_state(self) -> list[str]:
        issues: list[str] = []
        n = self.particle_count
        if n == 0:
            return issues
        bx, by = self._frame_snapshot().bounds
        eps = 1e-3
        pos = self.store.positions[:n]
        vel = self.store.velocities[:n]
        colors = self.store.colors[:n]

        finite = np.isfinite(pos).all(axis=1) & np.isfinite(vel).all(axis=1)
        for i in np.flatnonzero(~finite):
            issues.append(f"particle {int(i)} has non-finite position/velocity")

        outside = finite & ((np.abs(pos[:, 0]) > bx + eps) | (np.abs(pos[:, 1]) > by + eps))
        for i in np.flatnonzero(outside):
            issues.append(f"particle {int(i)} out of bounds")

        for i in np.flatnonzero(colors >= PALETTE_SIZE):
            issues.append(f"particle {int(i)} has invalid color {int(colors[i])}")

        return issues
