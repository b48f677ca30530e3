"""
Grid generation and processing module.

This module provides tools for:
- Generating rectilinear channel and flat-plate grids with wall stretching
- Computing FVM grid metrics (cell centers, volumes, face normals, wall distance)
"""

from sst_lowre.grid.cartesian import (
    generate_stretched_grid,
    first_cell_height,
    flat_plate_grid,
    channel_grid,
)

from sst_lowre.grid.metrics import (
    MetricComputer,
    FVMMetrics,
    GCLValidation,
    compute_metrics,
    WALL_SIDES,
)

__all__ = [
    # Grid generation
    'generate_stretched_grid',
    'first_cell_height',
    'flat_plate_grid',
    'channel_grid',
    # Metrics
    'MetricComputer',
    'FVMMetrics',
    'GCLValidation',
    'compute_metrics',
    'WALL_SIDES',
]
