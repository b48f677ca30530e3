"""
Boundary Conditions for cell-centered scalar fields on a structured grid.

Each field carries one patch per side of the grid:

        j_max  ─────────────────────────
               │                       │
        i_min  │       INTERIOR        │  i_max
               │                       │
        j_min  ═════════════════════════  (lower wall)

Patch kinds:
    fixed_value   : face value prescribed (ghost = 2*value - interior)
    zero_gradient : ghost = interior
    periodic      : i_min/i_max (or j_min/j_max) wrap onto each other

Ghost Cell Convention:
    - apply(phi) returns an array of shape (NI+2, NJ+2)
    - Interior cells: padded[1:-1, 1:-1]
    - Corner ghosts are never read by the face-based stencils
"""

import numpy as np
from typing import Dict, Optional, Tuple
from dataclasses import dataclass, field

from sst_lowre.constants import NGHOST

PATCH_KINDS = ('fixed_value', 'zero_gradient', 'periodic')
SIDES = ('i_min', 'i_max', 'j_min', 'j_max')


@dataclass(frozen=True)
class BoundaryPatch:
    """Boundary condition on one side of the grid."""

    kind: str = 'zero_gradient'
    value: float = 0.0

    def __post_init__(self):
        if self.kind not in PATCH_KINDS:
            raise ValueError(f"Unknown boundary patch kind '{self.kind}', expected one of {PATCH_KINDS}")


def fixed_value(value: float) -> BoundaryPatch:
    return BoundaryPatch('fixed_value', float(value))


def zero_gradient() -> BoundaryPatch:
    return BoundaryPatch('zero_gradient')


def periodic() -> BoundaryPatch:
    return BoundaryPatch('periodic')


@dataclass(frozen=True)
class FieldBoundaryConditions:
    """Patches for the four sides of a scalar field."""

    i_min: BoundaryPatch = field(default_factory=zero_gradient)
    i_max: BoundaryPatch = field(default_factory=zero_gradient)
    j_min: BoundaryPatch = field(default_factory=zero_gradient)
    j_max: BoundaryPatch = field(default_factory=zero_gradient)

    def __post_init__(self):
        for lo, hi in (('i_min', 'i_max'), ('j_min', 'j_max')):
            lo_periodic = getattr(self, lo).kind == 'periodic'
            hi_periodic = getattr(self, hi).kind == 'periodic'
            if lo_periodic != hi_periodic:
                raise ValueError(f"Periodic patches must be paired: {lo} and {hi}")

    def patches(self) -> Dict[str, BoundaryPatch]:
        return {side: getattr(self, side) for side in SIDES}

    def apply(self, phi: np.ndarray) -> np.ndarray:
        """
        Fill one layer of ghost cells around an interior field.

        Parameters
        ----------
        phi : ndarray, shape (NI, NJ)
            Interior cell values.

        Returns
        -------
        padded : ndarray, shape (NI+2, NJ+2)
        """
        phi = np.asarray(phi, dtype=np.float64)
        padded = np.pad(phi, NGHOST, mode='edge')

        padded[0, 1:-1] = _ghost(self.i_min, phi[0, :], phi[-1, :])
        padded[-1, 1:-1] = _ghost(self.i_max, phi[-1, :], phi[0, :])
        padded[1:-1, 0] = _ghost(self.j_min, phi[:, 0], phi[:, -1])
        padded[1:-1, -1] = _ghost(self.j_max, phi[:, -1], phi[:, 0])

        return padded


def _ghost(patch: BoundaryPatch, inner: np.ndarray, opposite: np.ndarray) -> np.ndarray:
    if patch.kind == 'fixed_value':
        return 2.0 * patch.value - inner
    if patch.kind == 'periodic':
        return opposite
    return inner


@dataclass
class FreestreamConditions:
    """Free-stream turbulence state and velocity."""

    u_inf: float = 1.0          # Free-stream x-velocity
    v_inf: float = 0.0          # Free-stream y-velocity
    k_inf: float = 1e-6         # Free-stream turbulent kinetic energy
    omega_inf: float = 1.0      # Free-stream specific dissipation rate

    @classmethod
    def from_intensity(cls, u_inf: float, intensity: float, viscosity_ratio: float,
                       nu: float, v_inf: float = 0.0) -> 'FreestreamConditions':
        """
        Free-stream k and omega from turbulence intensity and nu_t/nu.

            k = 1.5 (I |U|)^2,   omega = k / (nu * nu_t/nu)

        Parameters
        ----------
        u_inf, v_inf : float
            Free-stream velocity components.
        intensity : float
            Turbulence intensity I (e.g. 0.01 for 1 %).
        viscosity_ratio : float
            Free-stream eddy-to-laminar viscosity ratio.
        nu : float
            Laminar kinematic viscosity.
        """
        speed = np.hypot(u_inf, v_inf)
        k_inf = 1.5 * (intensity * speed) ** 2
        omega_inf = k_inf / (nu * viscosity_ratio)
        return cls(u_inf=u_inf, v_inf=v_inf, k_inf=k_inf, omega_inf=omega_inf)


def wall_bounded_bcs(wall_sides: Tuple[str, ...], wall_value: float,
                     streamwise: str = 'periodic',
                     far_value: Optional[float] = None) -> FieldBoundaryConditions:
    """
    Patches for a field on a wall-bounded grid.

    Parameters
    ----------
    wall_sides : tuple of str
        Sides that are walls; they get fixed_value(wall_value).
    wall_value : float
        Wall value (0 for k and velocity, unused for omega).
    streamwise : str
        'periodic' or 'zero_gradient' on i_min/i_max.
    far_value : float, optional
        Non-wall j sides are fixed_value(far_value) when given,
        zero_gradient otherwise.
    """
    patches = {}
    for side in SIDES:
        if side in wall_sides:
            patches[side] = fixed_value(wall_value)
        elif side.startswith('i'):
            patches[side] = periodic() if streamwise == 'periodic' else zero_gradient()
        elif far_value is not None:
            patches[side] = fixed_value(far_value)
        else:
            patches[side] = zero_gradient()
    return FieldBoundaryConditions(**patches)
