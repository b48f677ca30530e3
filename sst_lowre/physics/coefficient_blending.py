"""
F1-weighted blending of the SST model coefficients.

Every blended coefficient psi(F1) takes the k-omega value psi1 where F1 = 1
and the k-epsilon value psi2 where F1 = 0:

    blend(F1, psi1, psi2) = F1 (psi1 - psi2) + psi2

Diffusion Prandtl numbers are blended through their reciprocals, so that
the effective diffusivities nu + nu_t/sigma blend linearly.
"""

from sst_lowre.physics.jax_config import jax, jnp
from sst_lowre.physics.params import SSTParams


@jax.jit
def blend(F1, psi1, psi2):
    """Linear F1 interpolation between the inner and outer coefficient values."""
    return F1 * (psi1 - psi2) + psi2


@jax.jit
def alpha_inf(F1, params: SSTParams):
    """High-Re omega-production coefficient (gamma1 / gamma2 blend)."""
    return blend(F1, params.alpha_inf1, params.alpha_inf2)


@jax.jit
def beta(F1, params: SSTParams):
    """omega destruction coefficient (incompressible: beta = beta_i)."""
    return blend(F1, params.beta1, params.beta2)


@jax.jit
def sigma_k(F1, params: SSTParams):
    return 1.0 / blend(F1, 1.0 / params.sigma_k1, 1.0 / params.sigma_k2)


@jax.jit
def sigma_omega(F1, params: SSTParams):
    return 1.0 / blend(F1, 1.0 / params.sigma_omega1, 1.0 / params.sigma_omega2)


@jax.jit
def alpha(F1, alpha_star_val, ReT, params: SSTParams):
    """
    Low-Re omega-production coefficient.

        alpha = alpha_inf(F1)/alpha* (alpha_0 + ReT/Romega) / (1 + ReT/Romega)

    Parameters
    ----------
    F1 : jnp.ndarray
        Inner blending function.
    alpha_star_val : jnp.ndarray
        Low-Re eddy-viscosity damping alpha*.
    ReT : jnp.ndarray
        Turbulence Reynolds number.
    """
    x = jnp.minimum(ReT / params.R_omega, 1e12)
    return alpha_inf(F1, params) / alpha_star_val * (params.alpha_zero + x) / (1.0 + x)


@jax.jit
def gamma(F1, alpha_star_val, ReT, params: SSTParams):
    """
    Coefficient multiplying S^2 in the omega production, gamma = alpha* alpha(F1).

    Reduces to the blended gamma1/gamma2 as ReT -> inf.
    """
    return alpha_star_val * alpha(F1, alpha_star_val, ReT, params)


@jax.jit
def DkEff(F1, nut, nu, params: SSTParams):
    """Effective diffusivity of k: nu_t/sigma_k(F1) + nu."""
    return nut / sigma_k(F1, params) + nu


@jax.jit
def DomegaEff(F1, nut, nu, params: SSTParams):
    """Effective diffusivity of omega: nu_t/sigma_omega(F1) + nu."""
    return nut / sigma_omega(F1, params) + nu
