"""
k-omega SST source terms for the implicit transport solves.

Each function returns (Su, Sp) such that the source per unit volume is
Su - Sp*phi with Su >= 0 and Sp >= 0, so the implicit part only adds to
the diagonal.

omega equation:
    gamma S^2 - beta omega^2 + (1 - F1) CDkOmega
    The positive part of the cross-diffusion is explicit, the negative
    part is linearized as -(1-F1)|CD-|/omega * omega.

k equation:
    min(nu_t S^2, c1 beta* k omega) - beta* k omega
"""

import numpy as np
from typing import Sequence

from sst_lowre.physics.jax_config import jax, jnp
from sst_lowre.constants import OMEGA_FLOOR, Y_FLOOR


@jax.jit
def omega_sources(F1, gamma, beta, S2, CDkOmega, omega):
    """
    Source split for the omega equation.

    Parameters
    ----------
    F1 : jnp.ndarray
        Inner blending function.
    gamma, beta : jnp.ndarray
        Blended production and destruction coefficients.
    S2 : jnp.ndarray
        Square of the limiter rate.
    CDkOmega : jnp.ndarray
        Signed cross-diffusion.
    omega : jnp.ndarray
        Current omega.

    Returns
    -------
    Su, Sp : jnp.ndarray
    """
    omega = jnp.maximum(omega, OMEGA_FLOOR)
    cd = (1.0 - F1) * CDkOmega
    Su = gamma * S2 + jnp.maximum(cd, 0.0)
    Sp = beta * omega + jnp.maximum(-cd, 0.0) / omega
    return Su, Sp


@jax.jit
def k_sources(nut, S2, beta_star, k, omega, c1):
    """
    Source split for the k equation with the production limiter.

        P_k = min(nu_t S^2, c1 beta* k omega),  Sp = beta* omega
    """
    k = jnp.maximum(k, 0.0)
    omega = jnp.maximum(omega, OMEGA_FLOOR)
    Su = jnp.minimum(nut * S2, c1 * beta_star * k * omega)
    Sp = beta_star * omega
    return Su, Sp


@jax.jit
def near_wall_omega(y, nu, beta1):
    """Asymptotic wall value omega = 6 nu / (beta1 y^2)."""
    y = jnp.maximum(y, Y_FLOOR)
    return 6.0 * nu / (beta1 * y * y)


def wall_adjacent_mask(shape, wall_sides: Sequence[str]) -> np.ndarray:
    """
    Boolean mask of the first cell layer next to each wall side.

    Parameters
    ----------
    shape : (NI, NJ)
    wall_sides : sequence of 'i_min', 'i_max', 'j_min', 'j_max'
    """
    mask = np.zeros(shape, dtype=bool)
    for side in wall_sides:
        if side == 'i_min':
            mask[0, :] = True
        elif side == 'i_max':
            mask[-1, :] = True
        elif side == 'j_min':
            mask[:, 0] = True
        elif side == 'j_max':
            mask[:, -1] = True
        else:
            raise ValueError(f"Unknown wall side '{side}'")
    return mask
