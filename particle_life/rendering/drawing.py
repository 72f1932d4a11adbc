"""
Drawing utilities for 2D particle visualization.

Pure numpy geometry: particle quads and circle fans are expanded into flat
triangle lists that the pyglet renderer uploads as-is. Nothing here imports
pyglet, so it can be exercised headless.
"""

from __future__ import annotations

import colorsys
import math

import numpy as np


# =============================================================================
# View Transform
# =============================================================================

def fit_scale(bounds: tuple[float, float], width: float, height: float) -> float:
    """
    Pixels per world unit so the whole ``[-bounds, bounds]`` box fits the window.

    Args:
        bounds: (half-width, half-height) of the world
        width, height: Window size in pixels

    Returns:
        Uniform scale factor (> 0)
    """
    bx = max(1e-6, float(bounds[0]))
    by = max(1e-6, float(bounds[1]))
    return max(1e-6, min(float(width) / (2.0 * bx), float(height) / (2.0 * by)))


def world_to_screen(
    positions: np.ndarray,
    bounds: tuple[float, float],
    width: float,
    height: float,
) -> tuple[np.ndarray, float]:
    """Map world positions (N, 2) to window pixels, world origin at the window center."""
    scale = fit_scale(bounds, width, height)
    out = np.empty((positions.shape[0], 2), dtype=np.float32)
    out[:, 0] = positions[:, 0] * scale + float(width) * 0.5
    out[:, 1] = positions[:, 1] * scale + float(height) * 0.5
    return out, scale


# =============================================================================
# Particle Shapes
# =============================================================================

def circle_offsets(corners: int, radius: float) -> np.ndarray:
    """Vertices of a regular polygon with ``corners`` sides, shape (corners, 2)."""
    corners = max(3, int(corners))
    angles = np.arange(corners, dtype=np.float64) * (2.0 * math.pi / corners)
    out = np.empty((corners, 2), dtype=np.float32)
    out[:, 0] = np.cos(angles) * radius
    out[:, 1] = np.sin(angles) * radius
    return out


def shape_template(shape: str, corners: int, radius: float) -> np.ndarray:
    """
    Triangle list for one particle centered at the origin.

    Circle: a fan of ``corners`` triangles (center, k, k+1).
    Square: two triangles covering the axis-aligned quad.

    Returns:
        float32 array of shape (vertices_per_particle, 2)
    """
    if shape == "square":
        r = float(radius)
        return np.array(
            [(-r, -r), (r, -r), (r, r), (-r, -r), (r, r), (-r, r)],
            dtype=np.float32,
        )
    ring = circle_offsets(corners, radius)
    nxt = np.roll(ring, -1, axis=0)
    tris = np.zeros((ring.shape[0], 3, 2), dtype=np.float32)
    tris[:, 1] = ring
    tris[:, 2] = nxt
    return tris.reshape(-1, 2)


def build_triangles(
    centers: np.ndarray,
    colors: np.ndarray,
    palette: tuple[tuple[int, int, int, int], ...],
    *,
    shape: str,
    corners: int,
    radius: float,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Expand particle centers into triangle vertex and color buffers.

    Args:
        centers: (N, 2) screen-space particle centers
        colors: (N,) color ids, each indexing ``palette``
        palette: RGBA entries
        shape: "circle" or "square"
        corners: Polygon corners for circles
        radius: Screen-space radius (half the side for squares)

    Returns:
        (xyz, rgba) flat arrays: float32 of length N*V*3, uint8 of length N*V*4
    """
    template = shape_template(shape, corners, radius)
    per = template.shape[0]
    n = int(centers.shape[0])

    xyz = np.zeros((n, per, 3), dtype=np.float32)
    xyz[:, :, :2] = centers[:, None, :2] + template[None, :, :]

    lut = np.asarray(palette, dtype=np.uint8).reshape(-1, 4)
    idx = np.asarray(colors, dtype=np.int64) % max(1, lut.shape[0])
    rgba = np.repeat(lut[idx], per, axis=0)
    return xyz.reshape(-1), rgba.reshape(-1)


# =============================================================================
# Color Cycling
# =============================================================================

def rgb_cycle_palette(
    palette: tuple[tuple[int, int, int, int], ...],
    t: float,
    speed: float = 1.0,
) -> tuple[tuple[int, int, int, int], ...]:
    """
    Palette with every entry's hue rotated by ``t * speed * 0.1`` turns.

    Saturation, value and alpha are preserved.
    """
    shift = (float(t) * float(speed) * 0.1) % 1.0
    out: list[tuple[int, int, int, int]] = []
    for r, g, b, a in palette:
        h, s, v = colorsys.rgb_to_hsv(r / 255.0, g / 255.0, b / 255.0)
        nr, ng, nb = colorsys.hsv_to_rgb((h + shift) % 1.0, s, v)
        out.append((int(round(nr * 255)), int(round(ng * 255)), int(round(nb * 255)), int(a)))
    return tuple(out)


def bounds_outline(bounds: tuple[float, float], width: float, height: float) -> list[float]:
    """GL_LINES vertices [x, y, z, ...] for the world border in screen space."""
    scale = fit_scale(bounds, width, height)
    cx, cy = float(width) * 0.5, float(height) * 0.5
    hx, hy = float(bounds[0]) * scale, float(bounds[1]) * scale
    x0, x1, y0, y1 = cx - hx, cx + hx, cy - hy, cy + hy
    return [
        x0, y0, 0.0, x1, y0, 0.0,
        x1, y0, 0.0, x1, y1, 0.0,
        x1, y1, 0.0, x0, y1, 0.0,
        x0, y1, 0.0, x0, y0, 0.0,
    ]
