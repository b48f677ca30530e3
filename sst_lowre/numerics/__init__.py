"""
Numerical methods for the k-omega SST closure.

This module provides:
- Green-Gauss gradient reconstruction
- Restarted GMRES for the implicit transport solves
- k and omega source-term splits
- Bounding of the transported fields
"""

from sst_lowre.numerics.gradients import (
    compute_gradients,
    velocity_gradient,
    GradientMetrics,
)

from sst_lowre.numerics.gmres import (
    gmres,
    GMRESResult,
)

from sst_lowre.numerics.sst_sources import (
    omega_sources,
    k_sources,
    near_wall_omega,
    wall_adjacent_mask,
)

from sst_lowre.numerics.updates import bound

__all__ = [
    # Gradients
    'compute_gradients',
    'velocity_gradient',
    'GradientMetrics',
    # Linear solver
    'gmres',
    'GMRESResult',
    # Sources
    'omega_sources',
    'k_sources',
    'near_wall_omega',
    'wall_adjacent_mask',
    # Bounding
    'bound',
]
