import math
import unittest

import numpy as np

from particle_life.core.palette import PALETTE, PALETTE_SIZE, resolve_palette
from particle_life.core.snapshot import LANES, ColorMatrix, build_snapshot
from particle_life.params import SimulationSettings
from particle_life.physics.forces import AccelerationMethod


class TestColorMatrix(unittest.TestCase):
    def test_group_layout(self) -> None:
        m = ColorMatrix(PALETTE_SIZE)
        self.assertEqual(m.groups.shape, (PALETTE_SIZE * PALETTE_SIZE // LANES + 1, LANES))
        self.assertEqual(m.groups.dtype, np.float32)

    def test_set_get_every_entry(self) -> None:
        """Every (x, y) lands in its own lane and reads back exactly."""
        m = ColorMatrix(PALETTE_SIZE)
        lanes_hit = set()
        for y in range(PALETTE_SIZE):
            for x in range(PALETTE_SIZE):
                m.set(x, y, (x - y) / 32.0)
                lanes_hit.add((x + y * PALETTE_SIZE) % LANES)
        for y in range(PALETTE_SIZE):
            for x in range(PALETTE_SIZE):
                self.assertEqual(m.get(x, y), (x - y) / 32.0)
        self.assertEqual(lanes_hit, set(range(LANES)))

    def test_flat_index_matches_get(self) -> None:
        m = ColorMatrix(5)
        m.set(3, 2, 0.75)
        m.set(0, 4, -0.5)
        flat = m.flat()
        self.assertEqual(float(flat[3 + 2 * 5]), 0.75)
        self.assertEqual(float(flat[0 + 4 * 5]), -0.5)

    def test_out_of_range(self) -> None:
        m = ColorMatrix(4)
        with self.assertRaises(IndexError):
            m.set(4, 0, 1.0)
        with self.assertRaises(IndexError):
            m.get(0, -1)

    def test_from_rows_round_trip(self) -> None:
        rows = [[0.5, -0.25, 0.0], [1.0, 0.125, -1.0], [0.0, 0.0, 0.375]]
        m = ColorMatrix.from_rows(rows, 3)
        self.assertEqual(m.to_rows(), rows)


class TestBuildSnapshot(unittest.TestCase):
    def test_dt_scaled_by_time_scale(self) -> None:
        snap = build_snapshot(SimulationSettings(time_scale=2.0).clamp(), 0.01)
        self.assertAlmostEqual(snap.dt, 0.02, places=12)

    def test_bad_frame_dt_becomes_zero(self) -> None:
        settings = SimulationSettings().clamp()
        self.assertEqual(build_snapshot(settings, -1.0).dt, 0.0)
        self.assertEqual(build_snapshot(settings, math.nan).dt, 0.0)
        self.assertEqual(build_snapshot(settings, math.inf).dt, 0.0)

    def test_cell_count_from_defaults(self) -> None:
        snap = build_snapshot(SimulationSettings().clamp(), 0.0)
        self.assertEqual(snap.cell_count, (10, 6))
        self.assertEqual(snap.grid.total_cells, 60)

    def test_palette_follows_color_order(self) -> None:
        order = [3, 0, 1] + list(range(4, PALETTE_SIZE)) + [2]
        settings = SimulationSettings(color_order=order).clamp()
        snap = build_snapshot(settings, 0.0)
        self.assertEqual(snap.palette[0], PALETTE[3])
        self.assertEqual(snap.palette, resolve_palette(order))
        self.assertEqual(snap.max_color_count, PALETTE_SIZE)

    def test_matrix_row_is_acting_color(self) -> None:
        settings = SimulationSettings().clamp()
        settings.matrix[2][4] = 0.5
        snap = build_snapshot(settings, 0.0)
        self.assertEqual(snap.matrix.get(4, 2), 0.5)
        self.assertEqual(snap.matrix.get(2, 4), 0.0)

    def test_method_and_ratios(self) -> None:
        settings = SimulationSettings(acceleration_method="planets", min_distance=50.0, max_distance=200.0).clamp()
        snap = build_snapshot(settings, 0.0)
        self.assertIs(snap.acceleration_method, AccelerationMethod.PLANETS)
        self.assertAlmostEqual(snap.relative_min_distance, 0.25)

    def test_snapshot_is_frozen(self) -> None:
        snap = build_snapshot(SimulationSettings().clamp(), 0.0)
        with self.assertRaises(AttributeError):
            snap.dt = 1.0  # type: ignore[misc]

    def test_snapshot_isolated_from_later_edits(self) -> None:
        settings = SimulationSettings().clamp()
        snap = build_snapshot(settings, 0.0)
        settings.matrix[0][0] = 1.0
        settings.particle_count = 5
        self.assertEqual(snap.matrix.get(0, 0), 0.0)
        self.assertEqual(snap.particle_count, 10_000)

    def test_unclamped_fields_are_clamped_in_snapshot(self) -> None:
        settings = SimulationSettings(max_distance=50.0).clamp()
        settings.color_count = 60
        settings.max_distance = 0.0
        settings.bounds_x = 230.0
        snap = build_snapshot(settings, 0.0)
        self.assertEqual(snap.color_count, PALETTE_SIZE)
        self.assertEqual(snap.max_distance, 1.0)
        self.assertEqual(snap.grid.cell_size, 1.0)
        self.assertEqual(snap.bounds[0], 230.0)
        # the live settings are left as edited
        self.assertEqual(settings.color_count, 60)
        self.assertEqual(settings.max_distance, 0.0)

    def test_bounds_snapped_to_whole_cells(self) -> None:
        settings = SimulationSettings(max_distance=50.0).clamp()
        settings.bounds_x = 230.0
        snap = build_snapshot(settings, 0.0)
        self.assertEqual(snap.bounds[0], 250.0)
        self.assertEqual(snap.grid.cells_x * snap.grid.cell_size, 2 * snap.bounds[0])


if __name__ == "__main__":
    unittest.main()
