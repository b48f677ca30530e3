from typing import NamedTuple

from sst_lowre.physics.coefficients import ModelCoefficients


class SSTParams(NamedTuple):
    """
    JAX-compatible tuple for passing model coefficients to JIT kernels.

    The fields are traced, not static, so re-reading coefficients does not
    trigger recompilation. The F3 switch is not part of the tuple; it
    selects a code path outside of jit.
    """
    beta1: float
    beta2: float
    beta_star_inf: float
    alpha_star_inf: float
    kappa: float

    # Diffusion Prandtl numbers (nu + nu_t/sigma convention)
    sigma_k1: float
    sigma_k2: float
    sigma_omega1: float
    sigma_omega2: float

    # Limiter / production cap
    a1: float
    b1: float
    c1: float

    # Low-Re damping
    R_beta: float
    R_k: float
    R_omega: float
    alpha_zero: float

    # Derived omega-production coefficients (gamma1, gamma2)
    alpha_inf1: float
    alpha_inf2: float


def make_params(coeffs: ModelCoefficients) -> SSTParams:
    """Pack a ModelCoefficients instance for the JIT kernels."""
    values = {name: float(getattr(coeffs, name))
              for name in SSTParams._fields
              if name not in ('alpha_inf1', 'alpha_inf2')}
    return SSTParams(alpha_inf1=coeffs.alpha_inf1,
                     alpha_inf2=coeffs.alpha_inf2,
                     **values)
