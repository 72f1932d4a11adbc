from __future__ import annotations

import json
import math
import random
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from particle_life.core.palette import PALETTE_SIZE

ACCELERATION_METHODS = ("r1", "r2", "r3", "deg90", "attr", "planets")
SHAPES = ("circle", "square")

# Keeps per-frame grid buffers bounded; bounds are shrunk to fit.
MAX_CELLS_PER_AXIS = 2048
MAX_PARTICLES = 2_000_000
MAX_RELATIVE_MIN_DISTANCE = 0.99


def _snap_bound(value: float, cell: float) -> float:
    cells = math.ceil(max(0.0, float(value)) / cell - 1e-9)
    cells = max(1, min(MAX_CELLS_PER_AXIS // 2, cells))
    return cells * cell


def _default_matrix() -> list[list[float]]:
    return [[0.0] * PALETTE_SIZE for _ in range(PALETTE_SIZE)]


@dataclass(slots=True)
class SimulationSettings:
    width: int = 1280
    height: int = 800
    background: tuple[int, int, int] = (10, 10, 14)
    target_fps: int = 60
    seed: int = 1

    particle_count: int = 10_000
    min_distance: float = 30.0
    max_distance: float = 250.0  # also the grid cell size
    max_velocity: float = 1000.0
    velocity_half_life: float = 0.043
    force_factor: float = 1.0
    bounds_x: float = 1250.0  # half-extent: world is [-bounds_x, +bounds_x]
    bounds_y: float = 750.0
    time_scale: float = 1.0

    color_count: int = 5
    color_order: list[int] = field(default_factory=lambda: list(range(PALETTE_SIZE)))
    matrix: list[list[float]] = field(default_factory=_default_matrix)
    acceleration_method: str = "r1"  # r1 | r2 | r3 | deg90 | attr | planets

    particle_size: float = 4.0
    shape: str = "circle"  # circle | square
    circle_corners: int = 16
    rgb: bool = False
    rgb_speed: float = 1.0

    spawn_batch: int = 250_000  # max particles initialized per frame
    chunk_size: int = 4096  # particles per partition work unit
    worker_threads: int = 0  # 0 = numba default
    debug_checks: bool = False

    @property
    def bounds(self) -> tuple[float, float]:
        return self.bounds_x, self.bounds_y

    def clamp(self) -> "SimulationSettings":
        self.width = max(320, int(self.width))
        self.height = max(240, int(self.height))
        self.background = tuple(max(0, min(255, int(c))) for c in tuple(self.background)[:3])  # type: ignore[assignment]
        if len(self.background) != 3:
            self.background = (10, 10, 14)
        self.target_fps = max(10, int(self.target_fps))
        self.seed = int(self.seed)

        self.particle_count = max(0, min(MAX_PARTICLES, int(self.particle_count)))
        max_distance = float(self.max_distance)
        if not math.isfinite(max_distance):
            max_distance = 250.0
        self.max_distance = min(10_000.0, max(1.0, max_distance))
        min_distance = float(self.min_distance)
        if not math.isfinite(min_distance):
            min_distance = 0.0
        self.min_distance = min(self.max_distance * MAX_RELATIVE_MIN_DISTANCE, max(0.0, min_distance))
        self.max_velocity = max(0.0, float(self.max_velocity))
        self.velocity_half_life = max(1e-4, float(self.velocity_half_life))
        self.force_factor = max(0.0, float(self.force_factor))
        self.bounds_x = _snap_bound(self.bounds_x, self.max_distance)
        self.bounds_y = _snap_bound(self.bounds_y, self.max_distance)
        self.time_scale = min(10.0, max(0.0, float(self.time_scale)))

        self.color_count = max(1, min(PALETTE_SIZE, int(self.color_count)))
        self.color_order = _complete_order(self.color_order)
        self.matrix = _pad_matrix(self.matrix, PALETTE_SIZE)
        self.acceleration_method = str(self.acceleration_method or "r1").strip().lower()
        if self.acceleration_method not in ACCELERATION_METHODS:
            self.acceleration_method = "r1"

        self.particle_size = max(0.5, float(self.particle_size))
        self.shape = str(self.shape or "circle").strip().lower()
        if self.shape not in SHAPES:
            self.shape = "circle"
        self.circle_corners = max(3, min(128, int(self.circle_corners)))
        self.rgb = bool(self.rgb)
        self.rgb_speed = min(10.0, max(0.1, float(self.rgb_speed)))

        self.spawn_batch = max(1, int(self.spawn_batch))
        self.chunk_size = max(64, int(self.chunk_size))
        self.worker_threads = max(0, int(self.worker_threads))
        self.debug_checks = bool(self.debug_checks)
        return self

    def validate(self) -> list[str]:
        warnings: list[str] = []

        if self.min_distance <= 0.0 and self.acceleration_method in {"r1", "r2", "r3"}:
            warnings.append("min_distance=0 disables short-range repulsion.")
        if self.acceleration_method in {"planets"}:
            warnings.append("acceleration_method=planets ignores the interaction matrix.")
        if self.particle_count > 0 and self.spawn_batch < self.particle_count:
            frames = math.ceil(self.particle_count / self.spawn_batch)
            warnings.append(f"spawn_batch={self.spawn_batch}: initial population takes {frames} frames.")
        if self.time_scale <= 0.0:
            warnings.append("time_scale=0 freezes the simulation.")
        if self.max_velocity <= 0.0:
            warnings.append("max_velocity=0 keeps every particle at rest.")
        used = self.color_count
        if all(self.matrix[i][j] == 0.0 for i in range(used) for j in range(used)):
            warnings.append("interaction matrix is all zeros for the active colors.")

        return warnings

    def update_max_distance(self, max_distance: float) -> None:
        self.max_distance = min(10_000.0, max(1.0, float(max_distance)))
        self.min_distance = min(self.min_distance, self.max_distance * MAX_RELATIVE_MIN_DISTANCE)
        self.bounds_x = _snap_bound(self.bounds_x, self.max_distance)
        self.bounds_y = _snap_bound(self.bounds_y, self.max_distance)

    def update_bounds(self, bounds_x: float, bounds_y: float) -> None:
        self.bounds_x = _snap_bound(bounds_x, self.max_distance)
        self.bounds_y = _snap_bound(bounds_y, self.max_distance)

    def randomize_attractions(self, rng: random.Random | None = None) -> None:
        rng = rng or random.Random()
        self.matrix = [[rng.uniform(-1.0, 1.0) for _ in range(PALETTE_SIZE)] for _ in range(PALETTE_SIZE)]

    def reset_attractions(self) -> None:
        self.matrix = _default_matrix()

    def randomize_colors(self, rng: random.Random | None = None) -> None:
        """Shuffle which palette entries the active colors are drawn with."""
        rng = rng or random.Random()
        order = list(range(PALETTE_SIZE))
        rng.shuffle(order)
        self.color_order = order

    def serialize(self) -> str:
        """Compact textual form with matrix and color order cut to the active colors."""
        data = asdict(self)
        n = self.color_count
        data["color_order"] = list(self.color_order[:n])
        data["matrix"] = [list(row[:n]) for row in self.matrix[:n]]
        return json.dumps(data, separators=(",", ":"))

    @classmethod
    def deserialize(cls, text: str) -> "SimulationSettings | None":
        try:
            data = json.loads(text)
        except (TypeError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        try:
            return cls.from_dict(data)
        except (TypeError, ValueError):
            return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SimulationSettings":
        # Older files stored the world size as a single square half-extent.
        if "bounds" in data and "bounds_x" not in data:
            try:
                data["bounds_x"] = float(data["bounds"])
                data["bounds_y"] = float(data["bounds"])
            except (TypeError, ValueError):
                pass
        filtered: dict[str, Any] = {k: v for k, v in data.items() if k in cls.__annotations__}
        if "background" in filtered:
            filtered["background"] = tuple(filtered["background"])
        if "matrix" in filtered and not isinstance(filtered["matrix"], list):
            raise ValueError("matrix must be a list of rows.")
        if "color_order" in filtered and not isinstance(filtered["color_order"], list):
            raise ValueError("color_order must be a list.")
        return cls(**filtered).clamp()

    @classmethod
    def load(cls, path: str | Path) -> "SimulationSettings":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Settings file must contain a JSON object.")
        return cls.from_dict(data)

    def save(self, path: str | Path) -> None:
        data = asdict(self)
        Path(path).write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    def copy(self) -> "SimulationSettings":
        data = asdict(self)
        return type(self)(**data)


def _complete_order(order: Any) -> list[int]:
    seen: list[int] = []
    for raw in list(order or []):
        try:
            idx = int(raw)
        except (TypeError, ValueError):
            continue
        if 0 <= idx < PALETTE_SIZE and idx not in seen:
            seen.append(idx)
    seen.extend(i for i in range(PALETTE_SIZE) if i not in seen)
    return seen


def _pad_matrix(rows: Any, size: int) -> list[list[float]]:
    out = [[0.0] * size for _ in range(size)]
    for y, row in enumerate(list(rows or [])[:size]):
        if not isinstance(row, (list, tuple)):
            continue
        for x, value in enumerate(list(row)[:size]):
            try:
                v = float(value)
            except (TypeError, ValueError):
                continue
            if math.isfinite(v):
                out[y][x] = min(1.0, max(-1.0, v))
    return out
