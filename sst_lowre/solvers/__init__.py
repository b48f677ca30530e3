"""
Solver components for the closure's transport equations.

This package provides:
    - Boundary patches and ghost-cell filling for cell-centered fields
    - Implicit Euler transport of a scalar with GMRES
"""

from sst_lowre.solvers.boundary_conditions import (
    BoundaryPatch,
    FieldBoundaryConditions,
    FreestreamConditions,
    fixed_value,
    zero_gradient,
    periodic,
    wall_bounded_bcs,
)

from sst_lowre.solvers.transport import (
    TransportEquation,
    LinearSolverSettings,
    LinearSolverError,
    SolverPerformance,
    assemble,
    solve_transport,
)

__all__ = [
    # Boundary conditions
    'BoundaryPatch',
    'FieldBoundaryConditions',
    'FreestreamConditions',
    'fixed_value',
    'zero_gradient',
    'periodic',
    'wall_bounded_bcs',
    # Transport
    'TransportEquation',
    'LinearSolverSettings',
    'LinearSolverError',
    'SolverPerformance',
    'assemble',
    'solve_transport',
]
