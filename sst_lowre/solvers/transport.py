"""
Implicit scalar transport on a structured grid.

Discretizes, for one scalar phi in every cell P of volume V,

    V (phi - phi_old)/dt + Σ_f F_f phi_f - Σ_f D_f (phi_N - phi_P) = V (Su - Sp phi)

with
    F_f = u_f · S_f                  face volume flux (outward)
    phi_f                            first-order upwind value
    D_f = Gamma_f |S_f| / d_PN       two-point diffusion coefficient

The resulting five-point system

    aP phi_P - aW phi_W - aE phi_E - aS phi_S - aN phi_N = rhs

is solved matrix-free with Jacobi-preconditioned GMRES. Periodic sides
wrap through jnp.roll; other boundary faces fold into aP and rhs.
Cells flagged in ``fixed_mask`` become identity rows.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from sst_lowre.physics.jax_config import jax, jnp
from sst_lowre.numerics.gmres import gmres
from sst_lowre.solvers.boundary_conditions import FieldBoundaryConditions, BoundaryPatch


class LinearSolverError(RuntimeError):
    """A transport solve did not converge or produced non-finite values.

    Attributes
    ----------
    field : str
        Name of the transported field.
    residual : float
        Final relative residual.
    iterations : int
        GMRES iterations performed.
    """

    def __init__(self, field_name: str, residual: float, iterations: int, reason: str):
        self.field = field_name
        self.residual = residual
        self.iterations = iterations
        super().__init__(
            f"Linear solve for '{field_name}' failed after {iterations} iterations "
            f"(relative residual {residual:.3e}): {reason}")


@dataclass
class LinearSolverSettings:
    """GMRES controls for one transport solve."""
    tol: float = 1e-8
    restart: int = 30
    maxiter: int = 300


@dataclass
class SolverPerformance:
    """Outcome of one transport solve."""
    field: str
    initial_residual: float
    final_residual: float
    iterations: int
    converged: bool

    def __str__(self) -> str:
        return (f"{self.field}: initial residual = {self.initial_residual:.3e}, "
                f"final residual = {self.final_residual:.3e}, "
                f"No Iterations {self.iterations}")


@dataclass
class TransportEquation:
    """
    One scalar transport equation ready for assembly.

    Attributes
    ----------
    name : str
        Field name, used in reports and errors.
    phi : ndarray (NI, NJ)
        Value at the previous time level (also the initial guess).
    diffusivity : ndarray (NI, NJ)
        Effective diffusivity Gamma in cells.
    Su : ndarray (NI, NJ)
        Explicit source per unit volume.
    Sp : ndarray (NI, NJ)
        Implicit sink coefficient (>= 0): source = Su - Sp*phi.
    bcs : FieldBoundaryConditions
        Boundary patches of phi.
    fixed_mask : ndarray (NI, NJ) of bool, optional
        Cells whose value is prescribed.
    fixed_values : ndarray (NI, NJ), optional
        Prescribed values where fixed_mask is set.
    """
    name: str
    phi: np.ndarray
    diffusivity: np.ndarray
    Su: np.ndarray
    Sp: np.ndarray
    bcs: FieldBoundaryConditions
    fixed_mask: Optional[np.ndarray] = None
    fixed_values: Optional[np.ndarray] = None


@dataclass
class _Coefficients:
    aP: np.ndarray
    aW: np.ndarray
    aE: np.ndarray
    aS: np.ndarray
    aN: np.ndarray
    rhs: np.ndarray


def _face_average(padded: np.ndarray, axis: int) -> np.ndarray:
    """Arithmetic face values from a ghost-padded cell array."""
    if axis == 0:
        inner = padded[:, 1:-1]
        return 0.5 * (inner[:-1, :] + inner[1:, :])
    inner = padded[1:-1, :]
    return 0.5 * (inner[:, :-1] + inner[:, 1:])


def _face_distances(mesh, bcs: FieldBoundaryConditions) -> Tuple[np.ndarray, np.ndarray]:
    """Cell-to-cell distances across i-faces (NI+1, NJ) and j-faces (NI, NJ+1)."""
    xc, yc = mesh.xc, mesh.yc

    d_i = np.empty(mesh.Si_x.shape)
    d_i[1:-1, :] = np.hypot(np.diff(xc, axis=0), np.diff(yc, axis=0))
    d_lo = np.hypot(xc[0, :] - mesh.xf_i[0, :], yc[0, :] - mesh.yf_i[0, :])
    d_hi = np.hypot(xc[-1, :] - mesh.xf_i[-1, :], yc[-1, :] - mesh.yf_i[-1, :])
    if bcs.i_min.kind == 'periodic':
        d_lo = d_hi = d_lo + d_hi
    d_i[0, :], d_i[-1, :] = d_lo, d_hi

    d_j = np.empty(mesh.Sj_x.shape)
    d_j[:, 1:-1] = np.hypot(np.diff(xc, axis=1), np.diff(yc, axis=1))
    d_lo = np.hypot(xc[:, 0] - mesh.xf_j[:, 0], yc[:, 0] - mesh.yf_j[:, 0])
    d_hi = np.hypot(xc[:, -1] - mesh.xf_j[:, -1], yc[:, -1] - mesh.yf_j[:, -1])
    if bcs.j_min.kind == 'periodic':
        d_lo = d_hi = d_lo + d_hi
    d_j[:, 0], d_j[:, -1] = d_lo, d_hi

    return d_i, d_j


def _boundary_face(patch: BoundaryPatch, F_out, D, phi_old, aP, rhs, a_nb):
    """Fold one boundary face row into aP/rhs (or the periodic neighbour)."""
    if patch.kind == 'periodic':
        aP += np.maximum(F_out, 0.0) + D
        a_nb += D + np.maximum(-F_out, 0.0)
    elif patch.kind == 'fixed_value':
        aP += np.maximum(F_out, 0.0) + D
        rhs += (D + np.maximum(-F_out, 0.0)) * patch.value
    else:
        # Zero gradient: outflow carries phi_P, inflow lags phi_P
        aP += np.maximum(F_out, 0.0)
        rhs += np.maximum(-F_out, 0.0) * phi_old


def assemble(eq: TransportEquation, mesh, velocity: Tuple[np.ndarray, np.ndarray],
             velocity_bcs: Tuple[FieldBoundaryConditions, FieldBoundaryConditions],
             dt: float) -> _Coefficients:
    """
    Assemble the five-point coefficients of an implicit Euler step.

    Parameters
    ----------
    eq : TransportEquation
    mesh : FVMMetrics
    velocity : (U, V) cell arrays of shape (NI, NJ)
    velocity_bcs : boundary conditions of U and V
    dt : float
        Pseudo-time step (> 0).
    """
    NI, NJ = mesh.volume.shape
    vol = mesh.volume
    phi_old = np.asarray(eq.phi, dtype=np.float64)
    bcs = eq.bcs

    U_pad = velocity_bcs[0].apply(velocity[0])
    V_pad = velocity_bcs[1].apply(velocity[1])
    gamma_pad = np.pad(np.asarray(eq.diffusivity, dtype=np.float64), 1, mode='edge')
    if bcs.i_min.kind == 'periodic':
        gamma_pad[0, 1:-1], gamma_pad[-1, 1:-1] = gamma_pad[-2, 1:-1], gamma_pad[1, 1:-1]
    if bcs.j_min.kind == 'periodic':
        gamma_pad[1:-1, 0], gamma_pad[1:-1, -1] = gamma_pad[1:-1, -2], gamma_pad[1:-1, 1]

    # Face fluxes along +i / +j normals
    Fi = _face_average(U_pad, 0) * mesh.Si_x + _face_average(V_pad, 0) * mesh.Si_y
    Fj = _face_average(U_pad, 1) * mesh.Sj_x + _face_average(V_pad, 1) * mesh.Sj_y

    d_i, d_j = _face_distances(mesh, bcs)
    Di = _face_average(gamma_pad, 0) * mesh.Si_mag / d_i
    Dj = _face_average(gamma_pad, 1) * mesh.Sj_mag / d_j

    aP = vol / dt + vol * np.asarray(eq.Sp, dtype=np.float64)
    rhs = vol / dt * phi_old + vol * np.asarray(eq.Su, dtype=np.float64)
    aW = np.zeros((NI, NJ))
    aE = np.zeros((NI, NJ))
    aS = np.zeros((NI, NJ))
    aN = np.zeros((NI, NJ))

    # Interior faces: outward flux is +F on the low side and -F on the high side
    F, D = Fi[1:-1, :], Di[1:-1, :]
    aP[:-1, :] += np.maximum(F, 0.0) + D
    aE[:-1, :] += D + np.maximum(-F, 0.0)
    aP[1:, :] += np.maximum(-F, 0.0) + D
    aW[1:, :] += D + np.maximum(F, 0.0)

    F, D = Fj[:, 1:-1], Dj[:, 1:-1]
    aP[:, :-1] += np.maximum(F, 0.0) + D
    aN[:, :-1] += D + np.maximum(-F, 0.0)
    aP[:, 1:] += np.maximum(-F, 0.0) + D
    aS[:, 1:] += D + np.maximum(F, 0.0)

    # Boundary faces (views, updated in place)
    _boundary_face(bcs.i_min, -Fi[0, :], Di[0, :], phi_old[0, :], aP[0, :], rhs[0, :], aW[0, :])
    _boundary_face(bcs.i_max, Fi[-1, :], Di[-1, :], phi_old[-1, :], aP[-1, :], rhs[-1, :], aE[-1, :])
    _boundary_face(bcs.j_min, -Fj[:, 0], Dj[:, 0], phi_old[:, 0], aP[:, 0], rhs[:, 0], aS[:, 0])
    _boundary_face(bcs.j_max, Fj[:, -1], Dj[:, -1], phi_old[:, -1], aP[:, -1], rhs[:, -1], aN[:, -1])

    if eq.fixed_mask is not None:
        mask = np.asarray(eq.fixed_mask, dtype=bool)
        aP = np.where(mask, 1.0, aP)
        rhs = np.where(mask, eq.fixed_values, rhs)
        aW, aE, aS, aN = (np.where(mask, 0.0, a) for a in (aW, aE, aS, aN))

    return _Coefficients(aP, aW, aE, aS, aN, rhs)


@jax.jit
def _matvec(v, aP, aW, aE, aS, aN):
    phi = v.reshape(aP.shape)
    out = (aP * phi
           - aW * jnp.roll(phi, 1, axis=0)
           - aE * jnp.roll(phi, -1, axis=0)
           - aS * jnp.roll(phi, 1, axis=1)
           - aN * jnp.roll(phi, -1, axis=1))
    return out.flatten()


@jax.jit
def _jacobi(v, aP, aW, aE, aS, aN):
    return v / aP.flatten()


def solve_transport(eq: TransportEquation, mesh, velocity, velocity_bcs, dt: float,
                    settings: Optional[LinearSolverSettings] = None
                    ) -> Tuple[jnp.ndarray, SolverPerformance]:
    """
    Advance one implicit Euler step of a transport equation.

    Returns
    -------
    phi_new : jnp.ndarray (NI, NJ)
    performance : SolverPerformance

    Raises
    ------
    LinearSolverError
        GMRES did not reach the tolerance or the result is not finite.
    """
    settings = settings or LinearSolverSettings()
    c = assemble(eq, mesh, velocity, velocity_bcs, dt)
    args = tuple(jnp.asarray(a) for a in (c.aP, c.aW, c.aE, c.aS, c.aN))
    b = jnp.asarray(c.rhs).flatten()
    x0 = jnp.asarray(eq.phi, dtype=jnp.float64).flatten()

    b_scale = float(jnp.linalg.norm(_jacobi(b, *args)))
    r0 = _jacobi(b - _matvec(x0, *args), *args)
    initial_residual = float(jnp.linalg.norm(r0)) / max(b_scale, 1e-30)

    result = gmres(_matvec, b, x0=x0, tol=settings.tol, restart=settings.restart,
                   maxiter=settings.maxiter, preconditioner=_jacobi, args=args)

    phi_new = result.x.reshape(c.aP.shape)
    performance = SolverPerformance(
        field=eq.name,
        initial_residual=initial_residual,
        final_residual=result.relative_residual,
        iterations=result.iterations,
        converged=result.converged,
    )

    if not bool(jnp.all(jnp.isfinite(phi_new))):
        raise LinearSolverError(eq.name, performance.final_residual, result.iterations,
                                "non-finite solution")
    if not result.converged:
        raise LinearSolverError(eq.name, performance.final_residual, result.iterations,
                                f"tolerance {settings.tol:.1e} not reached")

    return phi_new, performance
