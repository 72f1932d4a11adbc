"""
Two-level block exclusive scan.

The histogram is split into blocks of BLOCK_SIZE cells. Each block is scanned
locally in parallel, the per-block totals are scanned, and finally every
element gets its block's prefix added back in parallel. Each kernel call is a
barrier: it returns only once every block has finished.
"""

from __future__ import annotations

import numpy as np
from numba import njit, prange

BLOCK_SIZE = 256


def block_count(total_cells: int) -> int:
    return (int(total_cells) + BLOCK_SIZE - 1) // BLOCK_SIZE


@njit(parallel=True, cache=True)
def _scan_blocks(counts, offsets, block_totals):
    total = counts.shape[0]
    for b in prange(block_totals.shape[0]):
        start = b * BLOCK_SIZE
        end = min(start + BLOCK_SIZE, total)
        running = 0
        for k in range(start, end):
            offsets[k] = running
            running += counts[k]
        block_totals[b] = running


@njit(cache=True)
def _scan_block_totals(block_totals, block_offsets):
    running = 0
    for b in range(block_totals.shape[0]):
        block_offsets[b] = running
        running += block_totals[b]
    return running


@njit(parallel=True, cache=True)
def _add_block_offsets(offsets, block_offsets, total):
    for b in prange(block_offsets.shape[0]):
        base = block_offsets[b]
        if base != 0:
            start = b * BLOCK_SIZE
            end = min(start + BLOCK_SIZE, total)
            for k in range(start, end):
                offsets[k] += base


def exclusive_scan(counts: np.ndarray, offsets: np.ndarray | None = None) -> np.ndarray:
    """
    Exclusive prefix sum of ``counts``.

    Args:
        counts: Per-cell histogram (1D integer array).
        offsets: Optional output of length ``len(counts) + 1``.

    Returns:
        ``offsets`` where ``offsets[i] = sum(counts[:i])`` and the trailing
        sentinel ``offsets[len(counts)]`` holds the grand total.
    """
    total = int(counts.shape[0])
    if offsets is None:
        offsets = np.empty(total + 1, dtype=np.int64)
    elif offsets.shape[0] != total + 1:
        raise ValueError(f"offsets must have length {total + 1}, got {offsets.shape[0]}")

    n_blocks = block_count(total)
    block_totals = np.empty(n_blocks, dtype=np.int64)
    block_offsets = np.empty(n_blocks, dtype=np.int64)
    grand_total = 0
    if total > 0:
        _scan_blocks(counts, offsets, block_totals)
        grand_total = _scan_block_totals(block_totals, block_offsets)
        _add_block_offsets(offsets, block_offsets, total)
    offsets[total] = grand_total
    return offsets
