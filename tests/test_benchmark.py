import unittest

from particle_life.core.sim import STAGES
from particle_life.utils.benchmark import main, make_settings, run_benchmark


class TestBenchmark(unittest.TestCase):
    def test_make_settings_spawns_in_one_frame(self) -> None:
        settings = make_settings(5000, seed=1)
        self.assertEqual(settings.particle_count, 5000)
        self.assertGreaterEqual(settings.spawn_batch, 5000)
        self.assertTrue(any(v != 0.0 for row in settings.matrix for v in row))

    def test_run_benchmark_reports_every_stage(self) -> None:
        results = run_benchmark(300, 2, quiet=True)
        self.assertEqual(set(results), set(STAGES) | {"frame"})
        for mean_ms, std_ms in results.values():
            self.assertGreaterEqual(mean_ms, 0.0)
            self.assertGreaterEqual(std_ms, 0.0)
        stage_total = sum(results[s][0] for s in STAGES)
        self.assertAlmostEqual(results["frame"][0], stage_total, places=6)

    def test_cli(self) -> None:
        main(["--particles", "200", "--iterations", "1"])


if __name__ == "__main__":
    unittest.main()
