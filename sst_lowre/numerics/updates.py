"""
Bounding of transported turbulence quantities.

After each implicit solve the new k or omega field is clipped to a
positive floor. The number of clipped cells is returned so that the
caller can report it; clipping is a numerical guard and never raises.
"""

from typing import Tuple

from sst_lowre.physics.jax_config import jax, jnp


@jax.jit
def _bound(phi: jnp.ndarray, floor: float) -> Tuple[jnp.ndarray, jnp.ndarray]:
    below = phi < floor
    return jnp.where(below, floor, phi), jnp.sum(below)


def bound(phi: jnp.ndarray, floor: float) -> Tuple[jnp.ndarray, int]:
    """Clip a field to ``floor`` from below.

    Parameters
    ----------
    phi : jnp.ndarray
        Field after the transport solve.
    floor : float
        Smallest admissible value (> 0).

    Returns
    -------
    phi_bounded : jnp.ndarray
        max(phi, floor).
    n_bounded : int
        Number of cells that were raised to the floor.
    """
    phi_bounded, n_bounded = _bound(jnp.asarray(phi), floor)
    return phi_bounded, int(n_bounded)

