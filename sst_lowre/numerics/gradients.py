"""
Gradient Reconstruction for Finite Volume Method.

This module implements gradient computation using the Green-Gauss theorem,
optimized with Numba JIT compilation.

The Green-Gauss theorem states:
    ∇φ ≈ (1/V) ∮ φ n̂ dA = (1/V) Σ φ_face · S_face

where S_face is the area-scaled normal vector (nx*A, ny*A).

Boundary Handling:
    Ghost cells are assumed to be set correctly by boundary conditions
    (see ``FieldBoundaryConditions.apply``). For example, no-slip walls
    have u_ghost = -u_interior, so the face average 0.5*(L+R) is the wall
    value and the wall-normal gradient is u_interior/dn.
"""

import numpy as np
from numba import njit
from typing import NamedTuple

from sst_lowre.constants import U_IDX, V_IDX


class GradientMetrics(NamedTuple):
    """
    Grid metrics required for gradient computation.

    All arrays are for the interior grid (no ghost cells in metrics).

    Attributes
    ----------
    Si_x, Si_y : ndarray, shape (NI+1, NJ)
        I-face normal components (scaled by area).
    Sj_x, Sj_y : ndarray, shape (NI, NJ+1)
        J-face normal components (scaled by area).
    volume : ndarray, shape (NI, NJ)
        Cell volumes.
    """
    Si_x: np.ndarray
    Si_y: np.ndarray
    Sj_x: np.ndarray
    Sj_y: np.ndarray
    volume: np.ndarray

    @classmethod
    def from_fvm(cls, metrics) -> 'GradientMetrics':
        return cls(metrics.Si_x, metrics.Si_y, metrics.Sj_x, metrics.Sj_y, metrics.volume)


@njit(cache=True)
def _gradient_kernel(Q: np.ndarray,
                     Si_x: np.ndarray, Si_y: np.ndarray,
                     Sj_x: np.ndarray, Sj_y: np.ndarray,
                     volume: np.ndarray,
                     grad: np.ndarray) -> None:
    """
    Numba kernel for Green-Gauss gradients of every variable in Q.

    Parameters
    ----------
    Q : ndarray, shape (NI+2, NJ+2, nvar)
        Variables with one layer of ghost cells.
    Si_x, Si_y : ndarray, shape (NI+1, NJ)
    Sj_x, Sj_y : ndarray, shape (NI, NJ+1)
    volume : ndarray, shape (NI, NJ)
    grad : ndarray, shape (NI, NJ, nvar, 2)
        Output, overwritten.
    """
    NI = volume.shape[0]
    NJ = volume.shape[1]
    nvar = Q.shape[2]

    for i in range(NI):
        for j in range(NJ):
            for k in range(nvar):
                grad[i, j, k, 0] = 0.0
                grad[i, j, k, 1] = 0.0

    # I-faces: face i lies between cells i-1 and i (Q indices i and i+1)
    for i in range(NI + 1):
        for j in range(NJ):
            nx = Si_x[i, j]
            ny = Si_y[i, j]
            for k in range(nvar):
                phi_face = 0.5 * (Q[i, j + 1, k] + Q[i + 1, j + 1, k])
                if i > 0:
                    grad[i - 1, j, k, 0] += phi_face * nx
                    grad[i - 1, j, k, 1] += phi_face * ny
                if i < NI:
                    grad[i, j, k, 0] -= phi_face * nx
                    grad[i, j, k, 1] -= phi_face * ny

    # J-faces: face j lies between cells j-1 and j (Q indices j and j+1)
    for i in range(NI):
        for j in range(NJ + 1):
            nx = Sj_x[i, j]
            ny = Sj_y[i, j]
            for k in range(nvar):
                phi_face = 0.5 * (Q[i + 1, j, k] + Q[i + 1, j + 1, k])
                if j > 0:
                    grad[i, j - 1, k, 0] += phi_face * nx
                    grad[i, j - 1, k, 1] += phi_face * ny
                if j < NJ:
                    grad[i, j, k, 0] -= phi_face * nx
                    grad[i, j, k, 1] -= phi_face * ny

    for i in range(NI):
        for j in range(NJ):
            inv_vol = 1.0 / volume[i, j]
            for k in range(nvar):
                grad[i, j, k, 0] *= inv_vol
                grad[i, j, k, 1] *= inv_vol


def compute_gradients(Q: np.ndarray, metrics: GradientMetrics) -> np.ndarray:
    """
    Compute cell-centered gradients using the Green-Gauss theorem.

        ∇φ = (1/V) Σ_faces (φ_face · S_face),   φ_face = 0.5 (φ_L + φ_R)

    Parameters
    ----------
    Q : ndarray, shape (NI+2, NJ+2, nvar) or (NI+2, NJ+2)
        Ghost-padded variables. The closure stacks them in the order
        [u, v, k, omega] (see ``constants``).
    metrics : GradientMetrics
        Face normals and cell volumes.

    Returns
    -------
    grad : ndarray, shape (NI, NJ, nvar, 2) or (NI, NJ, 2)
        grad[i, j, k, 0] = ∂Q[k]/∂x, grad[i, j, k, 1] = ∂Q[k]/∂y.

    Example
    -------
    >>> Q = np.stack([u_bc.apply(U), v_bc.apply(V)], axis=-1)
    >>> grad = compute_gradients(Q, GradientMetrics.from_fvm(mesh))
    >>> dudy = grad[:, :, 0, 1]
    """
    Q = np.asarray(Q, dtype=np.float64)
    scalar = Q.ndim == 2
    if scalar:
        Q = Q[:, :, None]

    NI, NJ = metrics.volume.shape
    if Q.shape[:2] != (NI + 2, NJ + 2):
        raise ValueError(f"Q must be ghost-padded to {(NI + 2, NJ + 2)}, got {Q.shape[:2]}")

    grad = np.zeros((NI, NJ, Q.shape[2], 2), dtype=np.float64)
    _gradient_kernel(
        np.ascontiguousarray(Q),
        metrics.Si_x.astype(np.float64),
        metrics.Si_y.astype(np.float64),
        metrics.Sj_x.astype(np.float64),
        metrics.Sj_y.astype(np.float64),
        metrics.volume.astype(np.float64),
        grad
    )

    if scalar:
        return grad[:, :, 0, :]
    return grad


def velocity_gradient(grad: np.ndarray) -> np.ndarray:
    """
    Velocity gradient tensor from a gradient array.

    Parameters
    ----------
    grad : ndarray, shape (NI, NJ, nvar, 2)
        Output of ``compute_gradients`` with u, v at U_IDX, V_IDX.

    Returns
    -------
    grad_vel : ndarray, shape (NI, NJ, 2, 2)
        grad_vel[..., i, j] = ∂u_i/∂x_j.
    """
    return np.stack([grad[:, :, U_IDX, :], grad[:, :, V_IDX, :]], axis=-2)

