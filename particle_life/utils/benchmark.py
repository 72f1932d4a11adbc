#!/usr/bin/env python3
"""
Performance benchmark for the particle-life pipeline.

Runs full frames (partition + forces + integration) and reports per-stage
timings. The first frame is not timed since it triggers numba compilation
and spawns the population.

Usage:
    python -m particle_life.utils.benchmark [--particles 10000] [--iterations 10]
"""

from __future__ import annotations

import argparse
import random
import sys

import numba
import numpy as np

from particle_life.core.sim import STAGES, ParticleLifeSim
from particle_life.params import SimulationSettings


def make_settings(n_particles: int, *, seed: int = 42, color_count: int = 6) -> SimulationSettings:
    """Settings with a random interaction matrix and ``n_particles`` spawned in one frame."""
    settings = SimulationSettings(
        particle_count=n_particles,
        color_count=color_count,
        seed=seed,
        spawn_batch=max(1, n_particles),
    ).clamp()
    settings.randomize_attractions(random.Random(seed))
    return settings


def run_benchmark(n_particles: int, iterations: int, *, dt: float = 1.0 / 60.0, quiet: bool = False) -> dict[str, tuple[float, float]]:
    """
    Time ``iterations`` frames of ``n_particles``.

    Returns:
        {stage: (mean_ms, std_ms)} plus a "frame" entry for the whole step.
    """
    iterations = max(1, int(iterations))
    sim = ParticleLifeSim(make_settings(n_particles))
    sim.step(dt)

    samples: dict[str, list[float]] = {stage: [] for stage in STAGES}
    for _ in range(iterations):
        sim.step(dt)
        for stage in STAGES:
            samples[stage].append(sim.last_stage_ms.get(stage, 0.0))

    results: dict[str, tuple[float, float]] = {}
    frame = np.zeros(iterations, dtype=np.float64)
    for stage, values in samples.items():
        arr = np.asarray(values, dtype=np.float64)
        frame += arr
        results[stage] = (float(arr.mean()), float(arr.std()))
    results["frame"] = (float(frame.mean()), float(frame.std()))

    if not quiet:
        print(f"\n{'='*60}")
        print(f"Benchmark: {n_particles} particles, {iterations} iterations")
        print(f"{'='*60}")
        for stage, (mean_ms, std_ms) in results.items():
            print(f"  {stage:<15} {mean_ms:8.2f} ± {std_ms:.2f} ms")
        issues = sim.validate_state()
        if issues:
            print(f"  state issues: {len(issues)} (first: {issues[0]})")
    return results


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Benchmark the particle-life frame pipeline")
    parser.add_argument("--particles", "-n", type=int, default=10_000, help="Number of particles")
    parser.add_argument("--iterations", "-i", type=int, default=10, help="Benchmark iterations")
    parser.add_argument("--sweep", action="store_true", help="Run sweep over particle counts")
    args = parser.parse_args(argv)

    print("particle-life Performance Benchmark")
    print(f"Platform: {sys.platform}")
    print(f"numba threads: {numba.get_num_threads()}")

    if args.sweep:
        for n in (1_000, 10_000, 50_000, 100_000):
            run_benchmark(n, args.iterations)
    else:
        run_benchmark(args.particles, args.iterations)


if __name__ == "__main__":
    main()
