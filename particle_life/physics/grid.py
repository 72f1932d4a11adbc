"""
Uniform grid spatial partitioning via counting sort.

The world ``[-bounds, bounds]`` is split into square cells whose side equals
the interaction cutoff, so every neighbor of a particle lies in its own cell
or one of the 8 surrounding cells. Every frame the partitioner runs three
dependent passes:

1. count: cell index per particle plus a per-cell histogram;
2. prefix sum: exclusive scan of the histogram into cell start offsets;
3. scatter: particle ids written into a per-cell contiguous order.

Particles themselves never move; only the ``sorted_index`` permutation is
rebuilt. Work is split into units of ``chunk_size`` particles. CPU kernels
have no atomics, so each unit counts into a private histogram row and later
scatters through its own cursors, which also keeps the original particle
order inside each cell.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass

import numpy as np
from numba import njit, prange

from particle_life.physics.prefix_sum import exclusive_scan

logger = logging.getLogger("particle_life")

# Upper bound on units * cells for the private histograms.
UNIT_CELL_BUDGET = 1 << 22


class PartitionInvariantError(RuntimeError):
    """Raised when counting and scattering disagree about cell membership."""


@dataclass(frozen=True, slots=True)
class GridGeometry:
    bounds_x: float
    bounds_y: float
    cell_size: float
    cells_x: int
    cells_y: int

    @classmethod
    def from_bounds(cls, bounds: tuple[float, float], cell_size: float) -> "GridGeometry":
        cell_size = float(cell_size)
        if cell_size <= 0.0:
            raise ValueError("cell_size must be > 0")
        bx, by = float(bounds[0]), float(bounds[1])
        cells_x = max(1, math.ceil((2.0 * bx) / cell_size - 1e-6))
        cells_y = max(1, math.ceil((2.0 * by) / cell_size - 1e-6))
        return cls(bounds_x=bx, bounds_y=by, cell_size=cell_size, cells_x=cells_x, cells_y=cells_y)

    @property
    def total_cells(self) -> int:
        return self.cells_x * self.cells_y

    def cell_index(self, x: float, y: float) -> int:
        cx, cy = cell_coords(
            float(x), float(y), self.bounds_x, self.bounds_y, self.cell_size, self.cells_x, self.cells_y
        )
        return int(cx + cy * self.cells_x)


@njit(cache=True)
def cell_coords(x, y, bounds_x, bounds_y, cell_size, cells_x, cells_y):
    cx = int(math.floor((x + bounds_x) / cell_size))
    cy = int(math.floor((y + bounds_y) / cell_size))
    # Positions exactly on +bound (or a rounding step past it) belong to the
    # wrapped cell on the opposite side.
    if cx < 0 or cx >= cells_x:
        cx = cx % cells_x
    if cy < 0 or cy >= cells_y:
        cy = cy % cells_y
    return cx, cy


@njit(parallel=True, cache=True)
def _count_kernel(positions, n, bounds_x, bounds_y, cell_size, cells_x, cells_y, chunk, cell_of, unit_counts):
    units = unit_counts.shape[0]
    total = unit_counts.shape[1]
    for u in prange(units):
        for k in range(total):
            unit_counts[u, k] = 0
        start = u * chunk
        end = min(start + chunk, n)
        for i in range(start, end):
            cx, cy = cell_coords(positions[i, 0], positions[i, 1], bounds_x, bounds_y, cell_size, cells_x, cells_y)
            c = cx + cy * cells_x
            cell_of[i] = c
            unit_counts[u, c] += 1


@njit(parallel=True, cache=True)
def _reduce_kernel(unit_counts, counts):
    # Folds the private rows into the histogram and turns each row into the
    # unit's starting position inside every cell.
    units = unit_counts.shape[0]
    total = unit_counts.shape[1]
    for k in prange(total):
        running = 0
        for u in range(units):
            v = unit_counts[u, k]
            unit_counts[u, k] = running
            running += v
        counts[k] = running


@njit(parallel=True, cache=True)
def _scatter_kernel(cell_of, n, chunk, offsets, unit_cursors, sorted_index, overflow):
    units = unit_cursors.shape[0]
    for u in prange(units):
        overflow[u] = 0
        start = u * chunk
        end = min(start + chunk, n)
        for i in range(start, end):
            c = cell_of[i]
            slot = offsets[c] + unit_cursors[u, c]
            unit_cursors[u, c] += 1
            if slot < offsets[c + 1]:
                sorted_index[slot] = i
            else:
                overflow[u] += 1


@dataclass(slots=True)
class SortedIndex:
    """Per-frame grid buffers. Only the first ``particle_count`` entries are meaningful."""

    geometry: GridGeometry | None
    particle_count: int
    chunk: int
    cell_of: np.ndarray
    counts: np.ndarray
    offsets: np.ndarray
    sorted_index: np.ndarray
    unit_cursors: np.ndarray
    overflow: np.ndarray

    @classmethod
    def empty(cls) -> "SortedIndex":
        return cls(
            geometry=None,
            particle_count=0,
            chunk=1,
            cell_of=np.zeros(0, dtype=np.int32),
            counts=np.zeros(0, dtype=np.int32),
            offsets=np.zeros(1, dtype=np.int32),
            sorted_index=np.zeros(0, dtype=np.int32),
            unit_cursors=np.zeros((1, 0), dtype=np.int32),
            overflow=np.zeros(1, dtype=np.int32),
        )

    def cell_range(self, cell: int) -> tuple[int, int]:
        return int(self.offsets[cell]), int(self.offsets[cell + 1])

    def members(self, cell: int) -> np.ndarray:
        start, end = self.cell_range(cell)
        return self.sorted_index[start:end]


class SpatialPartitioner:
    def __init__(self, *, cell_budget: int = UNIT_CELL_BUDGET) -> None:
        self.cell_budget = max(1, int(cell_budget))
        self.index = SortedIndex.empty()
        self.last_pass_ms: dict[str, float] = {}
        self._cell_of_buf = np.zeros(0, dtype=np.int32)
        self._sorted_buf = np.zeros(0, dtype=np.int32)
        self._units_buf = np.zeros(0, dtype=np.int32)

    def _units_for(self, n: int, total_cells: int, chunk_size: int) -> tuple[int, int]:
        if n <= 0:
            return 1, 1
        units = max(1, math.ceil(n / max(1, chunk_size)))
        if units * total_cells > self.cell_budget:
            units = max(1, self.cell_budget // total_cells)
        chunk = math.ceil(n / units)
        return units, chunk

    def _prepare(self, n: int, geometry: GridGeometry, chunk_size: int) -> SortedIndex:
        total = geometry.total_cells
        units, chunk = self._units_for(n, total, chunk_size)

        if self._cell_of_buf.shape[0] < n:
            self._cell_of_buf = np.zeros(n, dtype=np.int32)
            self._sorted_buf = np.zeros(n, dtype=np.int32)
        if self._units_buf.shape[0] < units * total:
            self._units_buf = np.zeros(units * total, dtype=np.int32)

        idx = self.index
        if idx.counts.shape[0] != total:
            idx.counts = np.zeros(total, dtype=np.int32)
            idx.offsets = np.zeros(total + 1, dtype=np.int32)
        idx.geometry = geometry
        idx.particle_count = n
        idx.chunk = chunk
        idx.cell_of = self._cell_of_buf[:n]
        idx.sorted_index = self._sorted_buf[:n]
        idx.unit_cursors = self._units_buf[: units * total].reshape(units, total)
        if idx.overflow.shape[0] != units:
            idx.overflow = np.zeros(units, dtype=np.int32)
        return idx

    def count(self, positions: np.ndarray, n: int, geometry: GridGeometry, chunk_size: int) -> SortedIndex:
        """Pass 1: cell index per particle and the per-cell histogram."""
        t0 = time.perf_counter()
        n = max(0, int(n))
        idx = self._prepare(n, geometry, chunk_size)
        _count_kernel(
            positions,
            n,
            geometry.bounds_x,
            geometry.bounds_y,
            geometry.cell_size,
            geometry.cells_x,
            geometry.cells_y,
            idx.chunk,
            idx.cell_of,
            idx.unit_cursors,
        )
        _reduce_kernel(idx.unit_cursors, idx.counts)
        self.last_pass_ms["count"] = (time.perf_counter() - t0) * 1000.0
        return idx

    def prefix_sum(self) -> SortedIndex:
        """Pass 2: exclusive scan of the histogram into cell start offsets."""
        t0 = time.perf_counter()
        idx = self.index
        exclusive_scan(idx.counts, idx.offsets)
        self.last_pass_ms["prefix_sum"] = (time.perf_counter() - t0) * 1000.0
        return idx

    def scatter(self) -> SortedIndex:
        """Pass 3: write every particle id into its cell's contiguous range."""
        t0 = time.perf_counter()
        idx = self.index
        _scatter_kernel(
            idx.cell_of,
            idx.particle_count,
            idx.chunk,
            idx.offsets,
            idx.unit_cursors,
            idx.sorted_index,
            idx.overflow,
        )
        self.last_pass_ms["scatter"] = (time.perf_counter() - t0) * 1000.0
        dropped = int(idx.overflow.sum())
        if dropped:
            logger.error("scatter dropped %d particle(s): cell cursor overran its range", dropped)
        return idx

    def partition(
        self,
        positions: np.ndarray,
        n: int,
        geometry: GridGeometry,
        chunk_size: int = 4096,
        *,
        verify: bool = False,
    ) -> SortedIndex:
        self.count(positions, n, geometry, chunk_size)
        self.prefix_sum()
        idx = self.scatter()
        if verify:
            self.verify()
        return idx

    def verify(self) -> None:
        """Check that scatter reproduced exactly the membership that count measured."""
        idx = self.index
        geometry = idx.geometry
        if geometry is None:
            return
        n = idx.particle_count
        total = geometry.total_cells
        if int(idx.overflow.sum()) != 0:
            raise PartitionInvariantError("sorted-index write cursor exceeded its cell range")
        if int(idx.offsets[total]) != n:
            raise PartitionInvariantError(f"offsets end at {int(idx.offsets[total])}, expected {n}")
        if n == 0:
            return
        cells = idx.cell_of
        if int(cells.min()) < 0 or int(cells.max()) >= total:
            raise PartitionInvariantError("cell index outside [0, cell_count)")
        # unit_cursors now holds each unit's end cursor; the last unit must land on the next cell start.
        expected_end = idx.offsets[1:] - idx.offsets[:-1]
        if not np.array_equal(idx.unit_cursors[-1], expected_end):
            raise PartitionInvariantError("cell cursors do not match cell counts")
        owner = np.repeat(np.arange(total, dtype=np.int64), idx.counts.astype(np.int64))
        if not np.array_equal(cells[idx.sorted_index].astype(np.int64), owner):
            raise PartitionInvariantError("sorted particle found outside its cell range")
