"""
Blending and low-Re damping functions of the k-omega SST model.

Dimension Agnostic:
    All functions work with any array shape - scalars, 1D wall-normal
    profiles or 2D fields. Broadcasting rules apply, every cell is
    evaluated independently.

Functions:
    turbulence_reynolds : ReT = k / (nu omega)
    alpha_star          : low-Re damping of the eddy viscosity
    beta_star           : low-Re damping of the k destruction
    cross_diffusion     : CDkOmega = (2/sigma_omega2) grad(k).grad(omega) / omega
    F1, F2              : inner/outer blending functions
    F3, F23             : Hellsten rough-wall modification of F2

Robustness:
    Wall distance and omega are floored, k is clipped at zero before the
    square root and every hyperbolic-tangent argument is capped, so all
    results are finite for any finite input. None of these guards raise.
"""

from sst_lowre.physics.jax_config import jax, jnp
from sst_lowre.physics.params import SSTParams
from sst_lowre.constants import Y_FLOOR, OMEGA_FLOOR, CD_FLOOR

# Caps on the tanh arguments
ARG1_MAX = 10.0
ARG2_MAX = 100.0
ARG3_MAX = 10.0

# ReT/R ratios are capped before raising to the 4th power
RATIO_MAX = 1e3


def _safe(k, omega, y):
    return jnp.maximum(k, 0.0), jnp.maximum(omega, OMEGA_FLOOR), jnp.maximum(y, Y_FLOOR)


@jax.jit
def turbulence_reynolds(k, omega, nu):
    """
    Turbulence Reynolds number ReT = k / (nu * omega).

    Parameters
    ----------
    k, omega : jnp.ndarray
        Turbulent kinetic energy and specific dissipation rate.
    nu : float or jnp.ndarray
        Laminar kinematic viscosity.
    """
    return jnp.maximum(k, 0.0) / (nu * jnp.maximum(omega, OMEGA_FLOOR))


@jax.jit
def alpha_star(ReT, params: SSTParams, beta_i):
    """
    Low-Re damping of the eddy viscosity.

        alpha* = alpha*_inf (alpha*_0 + ReT/Rk) / (1 + ReT/Rk),  alpha*_0 = beta_i/3

    Tends to alpha*_inf as ReT -> inf.

    Parameters
    ----------
    ReT : jnp.ndarray
        Turbulence Reynolds number.
    params : SSTParams
        Model coefficients.
    beta_i : jnp.ndarray
        Blended beta(F1).
    """
    x = jnp.minimum(ReT / params.R_k, RATIO_MAX ** 4)
    return params.alpha_star_inf * (beta_i / 3.0 + x) / (1.0 + x)


@jax.jit
def beta_star(ReT, params: SSTParams):
    """
    Low-Re damping of the k destruction coefficient.

        beta* = beta*_inf (4/15 + (ReT/Rbeta)^4) / (1 + (ReT/Rbeta)^4)

    Tends to beta*_inf as ReT -> inf and to 4/15 beta*_inf as ReT -> 0.
    """
    x4 = jnp.minimum(ReT / params.R_beta, RATIO_MAX) ** 4
    return params.beta_star_inf * (4.0 / 15.0 + x4) / (1.0 + x4)


@jax.jit
def cross_diffusion(grad_k, grad_omega, omega, params: SSTParams):
    """
    Cross-diffusion term CDkOmega = (2/sigma_omega2) grad(k).grad(omega) / omega.

    Parameters
    ----------
    grad_k, grad_omega : jnp.ndarray (..., ndim)
        Cell gradients, last axis holds the Cartesian components.
    omega : jnp.ndarray (...)
        Specific dissipation rate.

    Returns
    -------
    CDkOmega : jnp.ndarray (...)
        Signed cross-diffusion.
    """
    dot = jnp.sum(grad_k * grad_omega, axis=-1)
    return (2.0 / params.sigma_omega2) * dot / jnp.maximum(omega, OMEGA_FLOOR)


@jax.jit
def F1(k, omega, y, nu, CDkOmega, params: SSTParams):
    """
    Inner blending function, 1 near walls and 0 in the free stream.

        arg1 = min(max(sqrt(k)/(beta*_inf omega y), 500 nu/(y^2 omega)),
                   4 k/(sigma_omega2 CDkOmega+ y^2))
        F1   = tanh(min(arg1, 10)^4)

    with CDkOmega+ = max(CDkOmega, 1e-10).
    """
    k, omega, y = _safe(k, omega, y)
    y2 = y * y
    CDkOmegaPlus = jnp.maximum(CDkOmega, CD_FLOOR)

    arg1 = jnp.minimum(
        jnp.maximum(jnp.sqrt(k) / (params.beta_star_inf * omega * y),
                    500.0 * nu / (y2 * omega)),
        4.0 * k / (params.sigma_omega2 * CDkOmegaPlus * y2),
    )
    return jnp.tanh(jnp.minimum(arg1, ARG1_MAX) ** 4)


@jax.jit
def F2(k, omega, y, nu, params: SSTParams):
    """
    Outer blending function used by the viscosity limiter.

        arg2 = max(2 sqrt(k)/(beta*_inf omega y), 500 nu/(y^2 omega))
        F2   = tanh(min(arg2, 100)^2)
    """
    k, omega, y = _safe(k, omega, y)
    arg2 = jnp.maximum(2.0 * jnp.sqrt(k) / (params.beta_star_inf * omega * y),
                       500.0 * nu / (y * y * omega))
    return jnp.tanh(jnp.minimum(arg2, ARG2_MAX) ** 2)


@jax.jit
def F3(omega, y, nu):
    """
    Hellsten rough-wall function, 0 at the wall and 1 away from it.

        arg3 = min(150 nu/(omega y^2), 10)
        F3   = 1 - tanh(arg3^4)
    """
    omega = jnp.maximum(omega, OMEGA_FLOOR)
    y = jnp.maximum(y, Y_FLOOR)
    arg3 = jnp.minimum(150.0 * nu / (omega * y * y), ARG3_MAX)
    return 1.0 - jnp.tanh(arg3 ** 4)


def F23(F2_val, F3_val=None):
    """
    Limiter blending function.

    Returns F2 when the rough-wall switch is off (``F3_val`` is None) and
    F2*F3 when it is on.
    """
    if F3_val is None:
        return F2_val
    return F2_val * F3_val


def compute_F23(k, omega, y, nu, params: SSTParams, use_F3: bool = False):
    """F23 field from the turbulence state; ``use_F3`` is the model switch."""
    f2 = F2(k, omega, y, nu, params)
    if not use_F3:
        return f2
    return F23(f2, F3(omega, y, nu))
