"""
Fixed color palette.

Particles carry an index into the active color order; the order maps that
index to one of these palette entries. The palette size also fixes the size
of the interaction matrix.
"""

from __future__ import annotations

# Tailwind "600" shades, sRGB.
PALETTE: tuple[tuple[int, int, int, int], ...] = (
    (217, 119, 6, 255),    # amber
    (37, 99, 235, 255),    # blue
    (8, 145, 178, 255),    # cyan
    (5, 150, 105, 255),    # emerald
    (192, 38, 211, 255),   # fuchsia
    (22, 163, 74, 255),    # green
    (79, 70, 229, 255),    # indigo
    (101, 163, 13, 255),   # lime
    (234, 88, 12, 255),    # orange
    (219, 39, 119, 255),   # pink
    (147, 51, 234, 255),   # purple
    (220, 38, 38, 255),    # red
    (225, 29, 72, 255),    # rose
    (2, 132, 199, 255),    # sky
    (71, 85, 105, 255),    # slate
    (124, 58, 237, 255),   # violet
    (13, 148, 136, 255),   # teal
    (202, 138, 4, 255),    # yellow
)

PALETTE_SIZE = len(PALETTE)


def resolve_palette(color_order: list[int] | tuple[int, ...]) -> tuple[tuple[int, int, int, int], ...]:
    """Palette as seen by particles: entry i is the color of ColorId i."""
    return tuple(PALETTE[int(idx) % PALETTE_SIZE] for idx in color_order)
