from __future__ import annotations

import argparse
import logging
import random
import time
from pathlib import Path

from particle_life.core.commands import Command
from particle_life.core.sim import ParticleLifeSim, ParticleView
from particle_life.params import SimulationSettings
from particle_life.rendering.drawing import rgb_cycle_palette
from particle_life.utils.config_groups import (
    MENU_ORDER,
    get_menu_group_title,
    get_param_hint,
    is_grid_related,
    needs_color_randomize,
    needs_position_randomize,
    nudge_value,
)
from particle_life.utils.logging_setup import setup_logging

logger = logging.getLogger("particle_life")

MAX_FRAME_DT = 0.05


class ParticleLifeApp:
    def __init__(self, params_path: str | Path | None = None) -> None:
        if params_path is None:
            params_path = Path(__file__).resolve().parent / "params.json"
        self.params_path = Path(params_path)
        self.params = self._load_initial_params()
        self.sim = ParticleLifeSim(self.params)
        self._ui_rng = random.Random(self.params.seed)

        self._running = True
        self._menu_open = False
        self._menu_index = 0
        self._sim_time = 0.0
        self._params_error = ""

        self._last_params_mtime: float | None = self.params_path.stat().st_mtime if self.params_path.exists() else None
        self._last_autoreload = time.monotonic()

    def run(self) -> None:
        from particle_life.rendering.pyglet_renderer import run_pyglet

        run_pyglet(
            width=self.params.width,
            height=self.params.height,
            background_rgb=tuple(self.params.background),  # type: ignore[arg-type]
            get_view=self.sim.view,
            get_bounds=lambda: self.params.bounds,
            step_simulation=self._step,
            on_key=self._on_key,
            get_palette=self._palette_for,
            get_overlay_text=self._get_overlay_text,
            get_caption=self._get_caption,
            target_fps=self.params.target_fps,
            title="particle-life - pyglet/OpenGL",
        )

    def _get_caption(self) -> str:
        state = "PAUSE" if not self._running else "RUN"
        stages = self.sim.last_stage_ms
        frame_ms = sum(stages.values())
        return (
            f"particle-life | t={self._sim_time:7.1f}s | x{float(self.params.time_scale):4.2f} | {state} | "
            f"N={self.sim.particle_count} | {self.params.acceleration_method} | {frame_ms:5.1f} ms"
        )

    def _palette_for(self, view: ParticleView) -> tuple[tuple[int, int, int, int], ...]:
        if not self.params.rgb:
            return view.palette
        return rgb_cycle_palette(view.palette, self._sim_time, self.params.rgb_speed)

    def _load_initial_params(self) -> SimulationSettings:
        if self.params_path.exists():
            try:
                return SimulationSettings.load(self.params_path)
            except (OSError, ValueError, TypeError) as e:
                logger.warning("Could not read %s (%s); using defaults.", self.params_path, e)
        return SimulationSettings().clamp()

    def _maybe_autoreload(self) -> None:
        if not self.params_path.exists():
            return
        now = time.monotonic()
        if (now - self._last_autoreload) < 0.5:
            return
        self._last_autoreload = now

        mtime = self.params_path.stat().st_mtime
        if self._last_params_mtime is None or mtime > self._last_params_mtime:
            self._last_params_mtime = mtime
            self._load_params()

    def _load_params(self) -> None:
        try:
            loaded = SimulationSettings.load(self.params_path)
        except (OSError, ValueError, TypeError) as e:
            self._params_error = f"Params reload failed: {e}"
            logger.warning(self._params_error)
            return

        self._params_error = ""
        self._set_params(loaded)
        logger.info("Reloaded %s", self.params_path)
        for warning in loaded.validate():
            logger.info("params: %s", warning)

    def _set_params(self, params: SimulationSettings) -> None:
        self.params = params
        self.sim.settings = params

    def load_settings_text(self, text: str) -> bool:
        """Apply a serialized settings string; the current settings stay on failure."""
        if not self.sim.load_settings(text):
            self._params_error = "Settings string rejected."
            return False
        self._params_error = ""
        self.params = self.sim.settings
        return True

    def _apply_edit(self, key: str, value: object) -> None:
        p = self.params
        if key == "max_distance":
            p.update_max_distance(float(value))  # type: ignore[arg-type]
        elif key in ("bounds_x", "bounds_y"):
            bx = float(value) if key == "bounds_x" else p.bounds_x  # type: ignore[arg-type]
            by = float(value) if key == "bounds_y" else p.bounds_y  # type: ignore[arg-type]
            p.update_bounds(bx, by)
        else:
            setattr(p, key, value)
            p.clamp()
        if is_grid_related(key):
            logger.debug("grid re-snapped: bounds=(%g, %g) cell=%g", p.bounds_x, p.bounds_y, p.max_distance)
        if needs_position_randomize(key):
            self.sim.queue(Command.RANDOMIZE_POSITIONS)
        if needs_color_randomize(key):
            self.sim.queue(Command.RANDOMIZE_COLORS)

    def _on_key(self, k: str) -> None:
        if k == "tab":
            self._menu_open = not self._menu_open
            return

        if self._menu_open:
            if k == "esc":
                self._menu_open = False
                return
            if k in ("up", "down"):
                delta = -1 if k == "up" else 1
                self._menu_index = (self._menu_index + delta) % len(MENU_ORDER)
                return
            if k in ("left", "right"):
                key = MENU_ORDER[self._menu_index]
                direction = +1 if k == "right" else -1
                current = getattr(self.params, key)
                if key in ("bounds_x", "bounds_y"):
                    # bounds move in whole cells
                    self._apply_edit(key, float(current) + direction * float(self.params.max_distance))
                else:
                    self._apply_edit(key, nudge_value(key, current, direction))
                return

        if k in ("plus", "minus"):
            self._nudge_time_scale(+1 if k == "plus" else -1)
            return
        if k == "space":
            self._running = not self._running
            return
        if k == "p":
            self.sim.queue(Command.RANDOMIZE_POSITIONS)
            return
        if k == "c":
            self.sim.queue(Command.RANDOMIZE_COLORS)
            return
        if k == "a":
            self.params.randomize_attractions(self._ui_rng)
            return
        if k == "z":
            self.params.reset_attractions()
            return
        if k == "k":
            self.params.randomize_colors(self._ui_rng)
            return
        if k == "v":
            self.params.rgb = not bool(self.params.rgb)
            return
        if k == "r":
            self._load_params()
            return
        if k == "s":
            self.params.save(self.params_path)
            if self.params_path.exists():
                self._last_params_mtime = self.params_path.stat().st_mtime
            logger.info("Saved %s", self.params_path)
            return
        if k == "esc":
            raise SystemExit(0)

    def _nudge_time_scale(self, direction: int) -> None:
        self.params.time_scale = float(self.params.time_scale) * (1.25 if direction > 0 else 0.8)
        self.params.clamp()

    def _step(self, dt: float) -> None:
        self._maybe_autoreload()
        if not self._running:
            return
        frame_dt = max(0.0, min(MAX_FRAME_DT, float(dt)))
        snap = self.sim.step(frame_dt)
        self._sim_time += snap.dt

    def _get_overlay_text(self) -> str:
        lines: list[str] = []
        if self._params_error:
            lines.append(self._params_error)
        if not self._menu_open:
            return "\n".join(lines)

        last_group = None
        for i, key in enumerate(MENU_ORDER):
            group, sub = get_menu_group_title(key)
            if group != last_group:
                lines.append(f"[{group}]")
                last_group = group
            marker = ">" if i == self._menu_index else " "
            lines.append(f"{marker} {sub}: {key} = {getattr(self.params, key)}")
        hint = get_param_hint(MENU_ORDER[self._menu_index])
        if hint:
            lines.append("")
            lines.append(hint)
        return "\n".join(lines)

    def run_headless(self, frames: int, dt: float = 1.0 / 60.0) -> None:
        for _ in range(max(0, int(frames))):
            self._step(dt)
        issues = self.sim.validate_state()
        logger.info(
            "headless: %d frames, %d particles, t=%.2fs, %d state issue(s)",
            frames,
            self.sim.particle_count,
            self._sim_time,
            len(issues),
        )
        for issue in issues[:10]:
            logger.warning(issue)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="particle-life viewer")
    parser.add_argument("--params", type=Path, default=None, help="Settings JSON file (auto-reloaded)")
    parser.add_argument("--settings", type=Path, default=None, help="Serialized settings string to apply at start")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument("--log-file", type=Path, default=None, help="Also log to this file")
    parser.add_argument("--headless", type=int, default=0, metavar="FRAMES", help="Run FRAMES frames without a window")
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_file)
    app = ParticleLifeApp(args.params)
    if args.settings is not None:
        app.load_settings_text(args.settings.read_text(encoding="utf-8"))
    if args.headless > 0:
        app.run_headless(args.headless)
        return
    app.run()


if __name__ == "__main__":
    main()
