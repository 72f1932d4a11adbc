from __future__ import annotations

import logging
from typing import Any, Callable

import numpy as np

from . import drawing as drawing_mod
from ..core.sim import ParticleView

logger = logging.getLogger("particle_life")


def run_pyglet(
    *,
    width: int,
    height: int,
    background_rgb: tuple[int, int, int],
    get_view: Callable[[], ParticleView],
    get_bounds: Callable[[], tuple[float, float]],
    step_simulation: Callable[[float], None],
    on_key: Callable[[str], None],
    get_palette: Callable[[ParticleView], tuple[tuple[int, int, int, int], ...]] | None = None,
    get_overlay_text: Callable[[], str] | None = None,
    get_caption: Callable[[], str] | None = None,
    target_fps: int,
    title: str,
) -> None:
    try:
        import pyglet  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("Missing dependency: install pyglet (pip install pyglet).") from e

    from pyglet import gl  # type: ignore

    window = None
    config_candidates: list[dict[str, Any]] = [
        {"double_buffer": True, "sample_buffers": 1, "samples": 4},
        {"double_buffer": True},
    ]
    for cfg_kwargs in config_candidates:
        try:
            config = gl.Config(**cfg_kwargs)
            window = pyglet.window.Window(
                width=width,
                height=height,
                caption=title,
                config=config,
                resizable=True,
                vsync=True,
            )
            break
        except pyglet.window.NoSuchConfigException:
            continue

    if window is None:
        window = pyglet.window.Window(width=width, height=height, caption=title, resizable=True, vsync=True)

    bg_r, bg_g, bg_b = background_rgb
    gl.glClearColor(bg_r / 255.0, bg_g / 255.0, bg_b / 255.0, 1.0)
    gl.glEnable(gl.GL_BLEND)
    gl.glBlendFunc(gl.GL_SRC_ALPHA, gl.GL_ONE_MINUS_SRC_ALPHA)

    fps_display = pyglet.window.FPSDisplay(window)
    fps_display.label.anchor_x = "right"
    fps_display.label.anchor_y = "top"
    fps_display.label.x = window.width - 10
    fps_display.label.y = window.height - 10

    help_label = pyglet.text.Label(
        "TAB menu | UP/DOWN select | LEFT/RIGHT adjust | SPACE pause | P positions | C colors | A attractions | Z zero matrix | K palette | R reload | S save | +/- speed",
        x=10,
        y=10,
        anchor_x="left",
        anchor_y="bottom",
        font_size=12,
        color=(235, 240, 255, 245),
    )
    menu_label = pyglet.text.Label(
        "",
        x=10,
        y=height - 10,
        anchor_x="left",
        anchor_y="top",
        font_name="Consolas",
        font_size=14,
        color=(245, 250, 255, 255),
        multiline=True,
        width=560,
    )

    program = pyglet.graphics.get_default_shader()
    particle_list = None
    particle_count = 0
    border_list = None
    border_key: tuple[float, float, int, int] | None = None

    def upload_particles(xyz: np.ndarray, rgba: np.ndarray) -> None:
        nonlocal particle_list, particle_count
        count = int(xyz.shape[0]) // 3
        if count == 0:
            if particle_list is not None:
                particle_list.delete()
                particle_list = None
            particle_count = 0
            return
        if particle_list is None:
            particle_count = count
            particle_list = program.vertex_list(
                count,
                gl.GL_TRIANGLES,
                position=("f", xyz),
                colors=("Bn", rgba),
            )
            return
        if count != particle_count:
            particle_count = count
            particle_list.resize(count)
        particle_list.position[:] = xyz
        particle_list.colors[:] = rgba

    def update_border(bounds: tuple[float, float]) -> None:
        nonlocal border_list, border_key
        key = (float(bounds[0]), float(bounds[1]), window.width, window.height)
        if key == border_key and border_list is not None:
            return
        border_key = key
        verts = drawing_mod.bounds_outline(bounds, window.width, window.height)
        if border_list is not None:
            border_list.delete()
        border_list = program.vertex_list(
            len(verts) // 3,
            gl.GL_LINES,
            position=("f", verts),
            colors=("Bn", [90, 100, 120, 200] * (len(verts) // 3)),
        )

    @window.event
    def on_resize(w: int, h: int) -> None:
        fps_display.label.x = w - 10
        fps_display.label.y = h - 10
        menu_label.y = h - 10

    @window.event
    def on_draw() -> None:
        window.clear()
        view = get_view()
        bounds = get_bounds()
        centers, scale = drawing_mod.world_to_screen(view.positions, bounds, window.width, window.height)
        palette = get_palette(view) if get_palette is not None else view.palette
        xyz, rgba = drawing_mod.build_triangles(
            centers,
            view.colors,
            palette,
            shape=view.shape,
            corners=view.circle_corners,
            radius=max(0.5, view.particle_size * scale),
        )
        upload_particles(xyz, rgba)
        update_border(bounds)

        program.use()
        if border_list is not None:
            border_list.draw(gl.GL_LINES)
        if particle_list is not None:
            particle_list.draw(gl.GL_TRIANGLES)
        program.stop()

        if get_overlay_text is not None:
            text = get_overlay_text()
            if text:
                menu_label.text = text
                menu_label.draw()
        help_label.draw()
        fps_display.draw()

    @window.event
    def on_key_press(symbol: int, modifiers: int) -> None:  # noqa: ARG001
        from pyglet.window import key  # type: ignore

        mapping = {
            key.SPACE: "space",
            key.R: "r",
            key.S: "s",
            key.P: "p",
            key.C: "c",
            key.A: "a",
            key.Z: "z",
            key.K: "k",
            key.V: "v",
            key.ESCAPE: "esc",
            key.TAB: "tab",
            key.UP: "up",
            key.DOWN: "down",
            key.LEFT: "left",
            key.RIGHT: "right",
            key.PLUS: "plus",
            key.EQUAL: "plus",
            key.NUM_ADD: "plus",
            key.MINUS: "minus",
            key.NUM_SUBTRACT: "minus",
        }
        k = mapping.get(symbol)
        if k is None:
            return
        try:
            on_key(k)
        except SystemExit:
            pyglet.app.exit()

    def tick(dt: float) -> None:
        step_simulation(dt)
        window.set_caption(get_caption() if get_caption is not None else title)

    pyglet.clock.schedule_interval(tick, 1.0 / max(10, target_fps))
    pyglet.app.run()
