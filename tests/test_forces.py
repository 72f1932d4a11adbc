"""
Tests for the acceleration laws and the force / integration kernels.
"""

import math
import unittest

import numpy as np

from particle_life.core.snapshot import build_snapshot
from particle_life.params import SimulationSettings
from particle_life.physics.forces import (
    AccelerationMethod,
    acceleration,
    apply_forces,
    closest_wrapped,
    integrate,
    wrap_coordinate,
)
from particle_life.physics.grid import SpatialPartitioner


def _pair_settings(**overrides) -> SimulationSettings:
    kwargs = dict(
        particle_count=2,
        color_count=1,
        min_distance=0.0,
        max_distance=100.0,
        bounds_x=500.0,
        bounds_y=500.0,
        max_velocity=1e6,
        velocity_half_life=1.0,
    )
    kwargs.update(overrides)
    settings = SimulationSettings(**kwargs).clamp()
    settings.matrix[0][0] = 0.5
    return settings


def _run_forces(settings: SimulationSettings, positions: np.ndarray, velocities: np.ndarray | None = None, dt: float = 0.01):
    n = positions.shape[0]
    positions = positions.astype(np.float32)
    if velocities is None:
        velocities = np.zeros((n, 2), dtype=np.float32)
    colors = np.zeros(n, dtype=np.uint32)
    snap = build_snapshot(settings, dt)
    idx = SpatialPartitioner().partition(positions, n, snap.grid, snap.chunk_size, verify=True)
    apply_forces(positions, velocities, colors, n, idx, snap)
    return positions, velocities, snap


class TestAccelerationMethod(unittest.TestCase):
    def test_from_name(self) -> None:
        self.assertIs(AccelerationMethod.from_name("Deg90"), AccelerationMethod.DEG90)
        self.assertIs(AccelerationMethod.from_name("planets"), AccelerationMethod.PLANETS)
        self.assertEqual(AccelerationMethod.R2.label, "r2")

    def test_unknown_name(self) -> None:
        with self.assertRaises(ValueError):
            AccelerationMethod.from_name("r4")


class TestAccelerationLaws(unittest.TestCase):
    def _acc(self, method: AccelerationMethod, rmin: float, dx: float, dy: float, a: float) -> tuple[float, float]:
        ax, ay = acceleration(int(method), rmin, dx, dy, a)
        return float(ax), float(ay)

    def test_r1_attraction_band(self) -> None:
        ax, ay = self._acc(AccelerationMethod.R1, 0.3, 0.5, 0.0, 0.5)
        expected = 0.5 * (1.0 - 0.3 / 0.7)
        self.assertAlmostEqual(ax, expected, places=5)
        self.assertAlmostEqual(ay, 0.0, places=7)

    def test_r1_repels_inside_min_distance(self) -> None:
        ax, _ = self._acc(AccelerationMethod.R1, 0.3, 0.1, 0.0, 0.5)
        self.assertAlmostEqual(ax, 0.1 / 0.3 - 1.0, places=5)
        self.assertLess(ax, 0.0)

    def test_r1_repulsion_ignores_coefficient(self) -> None:
        a1, _ = self._acc(AccelerationMethod.R1, 0.3, 0.1, 0.0, 1.0)
        a2, _ = self._acc(AccelerationMethod.R1, 0.3, 0.1, 0.0, -1.0)
        self.assertAlmostEqual(a1, a2, places=6)

    def test_r2_and_r3_scale_with_distance(self) -> None:
        force = 0.5 * (1.0 - 0.3 / 0.7)
        r2, _ = self._acc(AccelerationMethod.R2, 0.3, 0.5, 0.0, 0.5)
        r3, _ = self._acc(AccelerationMethod.R3, 0.3, 0.5, 0.0, 0.5)
        self.assertAlmostEqual(r2, 0.5 * force / 0.25, places=5)
        self.assertAlmostEqual(r3, 0.5 * force / 0.125, places=5)

    def test_deg90_is_perpendicular(self) -> None:
        ax, ay = self._acc(AccelerationMethod.DEG90, 0.0, 0.5, 0.0, 0.5)
        self.assertAlmostEqual(ax, 0.0, places=7)
        self.assertAlmostEqual(ay, 0.25, places=5)

    def test_attr_rotates_by_coefficient(self) -> None:
        ax, ay = self._acc(AccelerationMethod.ATTR, 0.0, 0.5, 0.0, 0.0)
        self.assertAlmostEqual(ax, 0.5, places=5)
        self.assertAlmostEqual(ay, 0.0, places=6)
        ax, ay = self._acc(AccelerationMethod.ATTR, 0.0, 0.5, 0.0, 0.5)
        self.assertAlmostEqual(ax, 0.0, places=5)
        self.assertAlmostEqual(ay, 0.5, places=5)

    def test_planets_ignores_coefficient(self) -> None:
        ax, _ = self._acc(AccelerationMethod.PLANETS, 0.0, 0.5, 0.0, -1.0)
        self.assertAlmostEqual(ax, 0.5 * 0.01 / 0.125, places=6)
        close, _ = self._acc(AccelerationMethod.PLANETS, 0.0, 0.001, 0.0, 0.0)
        self.assertAlmostEqual(close, 0.001 * 0.01 / 1e-6, places=4)


class TestWrapping(unittest.TestCase):
    def test_wrap_identity_inside(self) -> None:
        for x in (-100.0, -37.5, 0.0, 12.25, 100.0):
            self.assertEqual(wrap_coordinate(x, 100.0), x)

    def test_wrap_crossing(self) -> None:
        self.assertAlmostEqual(wrap_coordinate(100.5, 100.0), -99.5, places=9)
        self.assertAlmostEqual(wrap_coordinate(-100.5, 100.0), 99.5, places=9)
        self.assertAlmostEqual(wrap_coordinate(450.0, 100.0), 50.0, places=9)

    def test_wrap_idempotent(self) -> None:
        for x in (-731.0, -100.25, 3.0, 199.0, 1000.0):
            once = wrap_coordinate(x, 100.0)
            self.assertEqual(wrap_coordinate(once, 100.0), once)
            self.assertLessEqual(abs(once), 100.0)

    def test_closest_wrapped(self) -> None:
        self.assertEqual(closest_wrapped(90.0, -95.0, 100.0), 105.0)
        self.assertEqual(closest_wrapped(-90.0, 95.0, 100.0), -105.0)
        self.assertEqual(closest_wrapped(0.0, 50.0, 100.0), 50.0)
        # equidistant images keep the original
        self.assertEqual(closest_wrapped(0.0, 100.0, 100.0), 100.0)


class TestForceStage(unittest.TestCase):
    def test_pair_attracts(self) -> None:
        positions = np.array([[-25.0, 0.0], [25.0, 0.0]])
        _, vel, _ = _run_forces(_pair_settings(), positions)
        self.assertGreater(vel[0, 0], 0.0)
        self.assertLess(vel[1, 0], 0.0)
        self.assertAlmostEqual(float(vel[0, 0]), -float(vel[1, 0]), places=4)
        self.assertAlmostEqual(float(vel[0, 1]), 0.0, places=6)

    def test_pair_attracts_across_the_seam(self) -> None:
        positions = np.array([[-495.0, 0.0], [495.0, 0.0]])
        _, vel, _ = _run_forces(_pair_settings(), positions)
        self.assertLess(vel[0, 0], 0.0)
        self.assertGreater(vel[1, 0], 0.0)

    def test_out_of_range_pair_ignored(self) -> None:
        positions = np.array([[-75.0, 0.0], [75.0, 0.0]])
        _, vel, _ = _run_forces(_pair_settings(), positions)
        self.assertTrue(np.all(vel == 0.0))

    def test_coincident_particles_skipped(self) -> None:
        positions = np.array([[10.0, 10.0], [10.0, 10.0]])
        _, vel, _ = _run_forces(_pair_settings(), positions)
        self.assertTrue(np.all(np.isfinite(vel)))
        self.assertTrue(np.all(vel == 0.0))

    def test_velocity_halves_after_half_life(self) -> None:
        positions = np.array([[0.0, 0.0]])
        velocities = np.array([[10.0, -4.0]], dtype=np.float32)
        settings = _pair_settings(particle_count=1, velocity_half_life=0.5)
        _, vel, _ = _run_forces(settings, positions, velocities, dt=0.5)
        self.assertAlmostEqual(float(vel[0, 0]), 5.0, places=4)
        self.assertAlmostEqual(float(vel[0, 1]), -2.0, places=4)

    def test_speed_clamped(self) -> None:
        positions = np.array([[-25.0, 0.0], [25.0, 0.0]])
        settings = _pair_settings(max_velocity=1.0, force_factor=1000.0)
        _, vel, _ = _run_forces(settings, positions, dt=0.1)
        speeds = np.hypot(vel[:, 0], vel[:, 1])
        self.assertTrue(np.all(speeds <= 1.0 + 1e-5))
        self.assertGreater(float(speeds.min()), 0.99)

    def test_three_cells_or_fewer_per_axis(self) -> None:
        """Small worlds alias neighbor cells; each neighbor must still count once."""
        settings_small = _pair_settings(bounds_x=100.0, bounds_y=100.0)
        settings_big = _pair_settings(bounds_x=500.0, bounds_y=500.0)
        positions = np.array([[-25.0, 0.0], [25.0, 0.0]])
        _, vel_small, snap = _run_forces(settings_small, positions)
        _, vel_big, _ = _run_forces(settings_big, positions)
        self.assertEqual(snap.cell_count, (2, 2))
        np.testing.assert_allclose(vel_small, vel_big, rtol=1e-5)

    def test_integrate_moves_and_wraps(self) -> None:
        settings = _pair_settings()
        snap = build_snapshot(settings, 0.5)
        positions = np.array([[490.0, 0.0], [0.0, -499.0]], dtype=np.float32)
        velocities = np.array([[40.0, 0.0], [0.0, -4.0]], dtype=np.float32)
        integrate(positions, velocities, 2, snap)
        self.assertAlmostEqual(float(positions[0, 0]), -490.0, places=3)
        self.assertAlmostEqual(float(positions[1, 1]), 499.0, places=3)
        self.assertTrue(math.isclose(float(positions[0, 1]), 0.0))


if __name__ == "__main__":
    unittest.main()
