"""
Eddy viscosity of the SST model with the Bradshaw stress limiter.

    nu_t = a1 k / max(a1 omega / alpha*, b1 F23 S)

In equilibrium regions the first branch gives the k-omega value
k omega^-1 alpha*. Where the strain is large the second branch caps the
shear stress at nu_t S <= a1 k / (b1 F23), which is Bradshaw's assumption
that turbulent shear stress is proportional to k.
"""

from sst_lowre.physics.jax_config import jax, jnp
from sst_lowre.constants import OMEGA_FLOOR, SMALL, EPSILON_COEFF

LIMITER_RATES = ('strain', 'vorticity')


@jax.jit
def limited_eddy_viscosity(k, omega, F23, S, a1, b1, alpha_star=1.0):
    """
    Limited eddy viscosity.

    Parameters
    ----------
    k, omega : jnp.ndarray
        Turbulence state.
    F23 : jnp.ndarray
        Limiter blending function (F2 or F2*F3).
    S : jnp.ndarray
        Limiter rate (strain or vorticity magnitude), >= 0.
    a1, b1 : float
        Limiter coefficients.
    alpha_star : float or jnp.ndarray
        Low-Re damping; 1 gives the standard high-Re limiter.

    Returns
    -------
    nut : jnp.ndarray
        Non-negative eddy viscosity, same shape as k.
    """
    k = jnp.maximum(k, 0.0)
    omega = jnp.maximum(omega, OMEGA_FLOOR)
    denom = jnp.maximum(a1 * omega / alpha_star, b1 * F23 * S)
    return a1 * k / jnp.maximum(denom, SMALL)


@jax.jit
def strain_rate_magnitude(grad_vel):
    """
    S = sqrt(2 S_ij S_ij) from the velocity gradient tensor.

    Parameters
    ----------
    grad_vel : jnp.ndarray (..., 2, 2)
        grad_vel[..., i, j] = d u_i / d x_j.
    """
    dudx = grad_vel[..., 0, 0]
    dudy = grad_vel[..., 0, 1]
    dvdx = grad_vel[..., 1, 0]
    dvdy = grad_vel[..., 1, 1]
    return jnp.sqrt(2.0 * (dudx**2 + dvdy**2) + (dudy + dvdx)**2)


@jax.jit
def vorticity_magnitude(grad_vel):
    """|omega_z| = |dv/dx - du/dy| from the velocity gradient tensor."""
    return jnp.abs(grad_vel[..., 1, 0] - grad_vel[..., 0, 1])


def limiter_rate(grad_vel, kind: str = 'strain'):
    """
    Rate used by the eddy-viscosity limiter.

    Parameters
    ----------
    grad_vel : jnp.ndarray (..., 2, 2)
        Velocity gradient tensor.
    kind : str
        'strain' for sqrt(2 S_ij S_ij), 'vorticity' for the vorticity
        magnitude.
    """
    if kind == 'strain':
        return strain_rate_magnitude(grad_vel)
    if kind == 'vorticity':
        return vorticity_magnitude(grad_vel)
    raise ValueError(f"Unknown limiter rate '{kind}', expected one of {LIMITER_RATES}")


@jax.jit
def epsilon(k, omega):
    """Reporting-only dissipation rate epsilon = 0.09 k omega."""
    return EPSILON_COEFF * k * omega
