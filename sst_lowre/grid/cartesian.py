"""
Rectilinear grid generation with geometric wall-normal stretching.

Grids follow the node layout of ``grid.metrics``: X, Y of shape
(NI+1, NJ+1) with j=0 on the lower wall.
"""

from typing import Tuple

import numpy as np


def generate_stretched_grid(n: int, total_length: float, ratio: float) -> np.ndarray:
    """
    Node coordinates 0..total_length with n cells growing by ``ratio``.

    The first spacing is h0 = L (1 - r) / (1 - r^n).
    """
    if n < 1:
        raise ValueError(f"Need at least one cell, got n={n}")
    if abs(ratio - 1.0) < 1e-6:
        return np.linspace(0.0, total_length, n + 1)
    h0 = total_length * (1 - ratio) / (1 - ratio**n)
    indices = np.arange(n + 1)
    grid = h0 * (1 - ratio**indices) / (1 - ratio)
    grid[-1] = total_length
    return grid


def first_cell_height(n: int, total_length: float, ratio: float) -> float:
    """Height of the wall-adjacent cell of ``generate_stretched_grid``."""
    grid = generate_stretched_grid(n, total_length, ratio)
    return float(grid[1] - grid[0])


def flat_plate_grid(NI: int, NJ: int, length: float = 1.0, height: float = 0.1,
                    ratio: float = 1.1) -> Tuple[np.ndarray, np.ndarray]:
    """Grid over a plate at y=0, stretched away from the wall."""
    x = np.linspace(0.0, length, NI + 1)
    y = generate_stretched_grid(NJ, height, ratio)
    X, Y = np.meshgrid(x, y, indexing='ij')
    return X, Y


def channel_grid(NI: int, NJ: int, length: float = 1.0, height: float = 2.0,
                 ratio: float = 1.1) -> Tuple[np.ndarray, np.ndarray]:
    """
    Grid between walls at y=0 and y=height, clustered towards both walls.

    NJ must be even; each half is stretched from its wall to the centerline.
    """
    if NJ % 2:
        raise ValueError(f"channel_grid needs an even NJ, got {NJ}")
    half = generate_stretched_grid(NJ // 2, 0.5 * height, ratio)
    y = np.concatenate([half, height - half[-2::-1]])
    x = np.linspace(0.0, length, NI + 1)
    X, Y = np.meshgrid(x, y, indexing='ij')
    return X, Y
