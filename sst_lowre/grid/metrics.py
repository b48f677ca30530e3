"""
Grid Metrics for the Finite Volume Closure.

This module provides the MetricComputer class for computing the geometric
data the closure consumes read-only: cell volumes and centers, face normals,
face centers and the wall distance field, plus a Geometric Conservation Law
(GCL) check.

Coordinate System:
    - i: streamwise direction
    - j: wall-normal direction (j=0 at the lower wall)

Grid Layout:
    - Node coordinates X, Y have shape (NI+1, NJ+1)
    - Cell (i,j) is bounded by nodes (i,j), (i+1,j), (i+1,j+1), (i,j+1)
    - There are NI×NJ cells total
"""

import numpy as np
from typing import NamedTuple, Optional, Sequence
from dataclasses import dataclass

WALL_SIDES = ('i_min', 'i_max', 'j_min', 'j_max')


class FVMMetrics(NamedTuple):
    """
    Finite Volume Method metrics for a 2D structured grid.

    All arrays use the convention that:
    - Cell quantities have shape (NI, NJ)
    - I-face quantities have shape (NI+1, NJ) - faces between i-1 and i
    - J-face quantities have shape (NI, NJ+1) - faces between j-1 and j

    Face normals are scaled by face area (length in 2D), pointing in the
    positive coordinate direction.
    """

    # Cell properties
    volume: np.ndarray      # (NI, NJ) Cell areas
    xc: np.ndarray          # (NI, NJ) Cell center x
    yc: np.ndarray          # (NI, NJ) Cell center y

    # I-face normals (scaled by face length) and face centers
    Si_x: np.ndarray        # (NI+1, NJ)
    Si_y: np.ndarray        # (NI+1, NJ)
    xf_i: np.ndarray        # (NI+1, NJ)
    yf_i: np.ndarray        # (NI+1, NJ)

    # J-face normals (scaled by face length) and face centers
    Sj_x: np.ndarray        # (NI, NJ+1)
    Sj_y: np.ndarray        # (NI, NJ+1)
    xf_j: np.ndarray        # (NI, NJ+1)
    yf_j: np.ndarray        # (NI, NJ+1)

    # Distance to the nearest wall segment
    wall_distance: np.ndarray  # (NI, NJ)

    @property
    def NI(self) -> int:
        """Number of cells in i-direction."""
        return self.volume.shape[0]

    @property
    def NJ(self) -> int:
        """Number of cells in j-direction."""
        return self.volume.shape[1]

    @property
    def Si_mag(self) -> np.ndarray:
        """I-face area (length in 2D)."""
        return np.sqrt(self.Si_x**2 + self.Si_y**2)

    @property
    def Sj_mag(self) -> np.ndarray:
        """J-face area (length in 2D)."""
        return np.sqrt(self.Sj_x**2 + self.Sj_y**2)


@dataclass
class GCLValidation:
    """Results of Geometric Conservation Law validation."""

    passed: bool
    max_x_residual: float
    max_y_residual: float
    message: str

    def __str__(self) -> str:
        status = "✓" if self.passed else "✗"
        return f"{status} GCL: max residual ({self.max_x_residual:.2e}, {self.max_y_residual:.2e})"


class MetricComputer:
    """
    Computes Finite Volume Method metrics from grid coordinates.

    Example
    -------
    >>> computer = MetricComputer(X, Y, wall_sides=('j_min', 'j_max'))
    >>> metrics = computer.compute()
    >>> print(computer.validate_gcl())
    ✓ GCL: max residual (0.00e+00, 0.00e+00)
    """

    def __init__(self, X: np.ndarray, Y: np.ndarray,
                 wall_sides: Sequence[str] = ('j_min',)):
        """
        Parameters
        ----------
        X, Y : ndarray, shape (NI+1, NJ+1)
            Node coordinates.
        wall_sides : sequence of str
            Boundaries that are solid walls, any of 'i_min', 'i_max',
            'j_min', 'j_max'.
        """
        for side in wall_sides:
            if side not in WALL_SIDES:
                raise ValueError(f"Unknown wall side '{side}', expected one of {WALL_SIDES}")
        if X.shape != Y.shape or X.ndim != 2 or min(X.shape) < 2:
            raise ValueError(f"X and Y must be matching 2D node arrays, got {X.shape} and {Y.shape}")

        self.X = np.asarray(X, dtype=np.float64)
        self.Y = np.asarray(Y, dtype=np.float64)
        self.wall_sides = tuple(wall_sides)

        self.NI = X.shape[0] - 1
        self.NJ = X.shape[1] - 1

        self._metrics: Optional[FVMMetrics] = None

    def compute(self) -> FVMMetrics:
        """Compute all FVM metrics."""
        X, Y = self.X, self.Y

        xc = 0.25 * (X[:-1, :-1] + X[1:, :-1] + X[1:, 1:] + X[:-1, 1:])
        yc = 0.25 * (Y[:-1, :-1] + Y[1:, :-1] + Y[1:, 1:] + Y[:-1, 1:])

        # Area = 0.5 * |AC × BD| for quad A=(i,j), B=(i+1,j), C=(i+1,j+1), D=(i,j+1)
        dx_ac = X[1:, 1:] - X[:-1, :-1]
        dy_ac = Y[1:, 1:] - Y[:-1, :-1]
        dx_bd = X[:-1, 1:] - X[1:, :-1]
        dy_bd = Y[:-1, 1:] - Y[1:, :-1]
        volume = 0.5 * np.abs(dx_ac * dy_bd - dy_ac * dx_bd)

        # I-face from node (i,j) to (i,j+1); normal (dy, -dx) points in +i
        dx = X[:, 1:] - X[:, :-1]
        dy = Y[:, 1:] - Y[:, :-1]
        Si_x, Si_y = dy, -dx
        xf_i = 0.5 * (X[:, 1:] + X[:, :-1])
        yf_i = 0.5 * (Y[:, 1:] + Y[:, :-1])

        # J-face from node (i,j) to (i+1,j); normal (-dy, dx) points in +j
        dx = X[1:, :] - X[:-1, :]
        dy = Y[1:, :] - Y[:-1, :]
        Sj_x, Sj_y = -dy, dx
        xf_j = 0.5 * (X[1:, :] + X[:-1, :])
        yf_j = 0.5 * (Y[1:, :] + Y[:-1, :])

        wall_distance = self._compute_wall_distance(xc, yc)

        self._metrics = FVMMetrics(
            volume=volume, xc=xc, yc=yc,
            Si_x=Si_x, Si_y=Si_y, xf_i=xf_i, yf_i=yf_i,
            Sj_x=Sj_x, Sj_y=Sj_y, xf_j=xf_j, yf_j=yf_j,
            wall_distance=wall_distance,
        )
        return self._metrics

    def _wall_polylines(self):
        X, Y = self.X, self.Y
        lines = {
            'i_min': (X[0, :], Y[0, :]),
            'i_max': (X[-1, :], Y[-1, :]),
            'j_min': (X[:, 0], Y[:, 0]),
            'j_max': (X[:, -1], Y[:, -1]),
        }
        return [lines[side] for side in self.wall_sides]

    def _compute_wall_distance(self, xc: np.ndarray, yc: np.ndarray) -> np.ndarray:
        """
        Minimum point-to-segment distance from each cell center to the walls.

        Without walls the distance is infinite (free-stream everywhere).
        """
        wall_dist = np.full(xc.shape, np.inf)

        for x_wall, y_wall in self._wall_polylines():
            ax, ay = x_wall[:-1], y_wall[:-1]
            abx, aby = x_wall[1:] - ax, y_wall[1:] - ay
            ab_sq = abx * abx + aby * aby

            # Broadcast (cells, 1) against (1, segments)
            apx = xc.reshape(-1, 1) - ax[None, :]
            apy = yc.reshape(-1, 1) - ay[None, :]

            # Projection parameter clamped to the segment
            t = np.where(ab_sq > 1e-30, (apx * abx + apy * aby) / np.maximum(ab_sq, 1e-30), 0.0)
            t = np.clip(t, 0.0, 1.0)

            dist = np.hypot(apx - t * abx, apy - t * aby).min(axis=1)
            wall_dist = np.minimum(wall_dist, dist.reshape(xc.shape))

        return wall_dist

    def validate_gcl(self, tol: float = 1e-10) -> GCLValidation:
        """
        Validate the Geometric Conservation Law: the outward face normals of
        every closed cell must sum to zero.
        """
        if self._metrics is None:
            self.compute()

        m = self._metrics

        residual_x = m.Si_x[1:, :] - m.Si_x[:-1, :] + m.Sj_x[:, 1:] - m.Sj_x[:, :-1]
        residual_y = m.Si_y[1:, :] - m.Si_y[:-1, :] + m.Sj_y[:, 1:] - m.Sj_y[:, :-1]

        perimeter = (m.Si_mag[:-1, :] + m.Si_mag[1:, :] +
                     m.Sj_mag[:, :-1] + m.Sj_mag[:, 1:])

        max_rel = max(np.max(np.abs(residual_x) / (perimeter + 1e-30)),
                      np.max(np.abs(residual_y) / (perimeter + 1e-30)))
        passed = bool(max_rel < tol)

        if passed:
            message = f"GCL satisfied (max relative residual: {max_rel:.2e})"
        else:
            message = f"GCL VIOLATED (max relative residual: {max_rel:.2e} > {tol:.2e})"

        return GCLValidation(
            passed=passed,
            max_x_residual=float(np.max(np.abs(residual_x))),
            max_y_residual=float(np.max(np.abs(residual_y))),
            message=message,
        )


def compute_metrics(X: np.ndarray, Y: np.ndarray,
                    wall_sides: Sequence[str] = ('j_min',)) -> FVMMetrics:
    """Convenience wrapper around MetricComputer."""
    return MetricComputer(X, Y, wall_sides).compute()
