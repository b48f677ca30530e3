"""
Shared pytest fixtures for the test suite.

Grids are kept small: the closure tests run full implicit solves on them.
"""

import sys
from pathlib import Path

import pytest
import numpy as np

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from sst_lowre.config import SimulationConfig, ModelSettings, GridConfig, FlowConfig, SolverSettings
from sst_lowre.grid import channel_grid, compute_metrics
from sst_lowre.physics.coefficients import ModelCoefficients
from sst_lowre.physics.params import make_params
from sst_lowre.solvers import wall_bounded_bcs
from sst_lowre.models import MeanFlow


NU = 1.5e-5


# =============================================================================
# Coefficients
# =============================================================================

@pytest.fixture
def default_coeffs():
    return ModelCoefficients()


@pytest.fixture
def default_params(default_coeffs):
    return make_params(default_coeffs)


# =============================================================================
# Grids
# =============================================================================

@pytest.fixture
def simple_uniform_grid():
    """Create a simple uniform Cartesian grid."""
    NI, NJ = 20, 20
    x = np.linspace(0, 1, NI + 1)
    y = np.linspace(0, 1, NJ + 1)
    X, Y = np.meshgrid(x, y, indexing='ij')
    return X, Y


@pytest.fixture
def channel_config():
    """Small wall-bounded channel, periodic in x."""
    return SimulationConfig(
        model=ModelSettings(print_coeffs=False),
        grid=GridConfig(ni=2, nj=24, height=2.0, ratio=1.15, walls='both'),
        flow=FlowConfig(nu=NU, u_bulk=1.0),
        solver=SolverSettings(delta_t=1e-2, n_steps=5),
    )


@pytest.fixture
def channel_mesh(channel_config):
    g = channel_config.grid
    X, Y = channel_grid(g.ni, g.nj, g.length, g.height, g.ratio)
    return compute_metrics(X, Y, channel_config.wall_sides())


@pytest.fixture
def channel_flow(channel_config, channel_mesh):
    """Power-law channel profile with no-slip velocity patches."""
    eta = np.clip(channel_mesh.wall_distance / (0.5 * channel_config.grid.height), 0.0, 1.0)
    U = (8.0 / 7.0) * eta ** (1.0 / 7.0)
    bcs = wall_bounded_bcs(channel_config.wall_sides(), 0.0, 'periodic')
    return MeanFlow(U=U, V=np.zeros_like(U), nu=NU, u_bcs=bcs, v_bcs=bcs)


@pytest.fixture
def wall_free_config():
    """Doubly periodic box without walls: every cell evolves identically."""
    return SimulationConfig(
        model=ModelSettings(print_coeffs=False),
        grid=GridConfig(ni=3, nj=3, length=1.0, height=1.0, ratio=1.0, walls='none'),
        flow=FlowConfig(nu=NU, k_init=0.01, omega_init=10.0),
        solver=SolverSettings(delta_t=1e-2),
    )


@pytest.fixture
def wall_free_mesh():
    """3x3 box with a prescribed wall distance of 0.05 in every cell."""
    x = np.linspace(0.0, 1.0, 4)
    X, Y = np.meshgrid(x, x, indexing='ij')
    mesh = compute_metrics(X, Y, wall_sides=())
    return mesh._replace(wall_distance=np.full(mesh.volume.shape, 0.05))


@pytest.fixture
def still_flow(wall_free_mesh):
    """Zero velocity, periodic in both directions."""
    bcs = wall_bounded_bcs((), 0.0, 'periodic')
    shape = wall_free_mesh.volume.shape
    return MeanFlow(U=np.zeros(shape), V=np.zeros(shape), nu=NU, u_bcs=bcs, v_bcs=bcs)
