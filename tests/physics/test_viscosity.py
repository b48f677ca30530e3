"""
Tests for the limited eddy viscosity and the limiter rates.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from sst_lowre.physics.jax_config import jnp
from sst_lowre.physics.viscosity import (
    limited_eddy_viscosity, strain_rate_magnitude, vorticity_magnitude,
    limiter_rate, epsilon,
)

A1 = 0.31
B1 = 1.0


class TestLimiter:

    def test_unlimited_branch(self):
        """Low strain gives k/omega."""
        nut = limited_eddy_viscosity(0.01, 10.0, 1.0, 0.0, A1, B1)
        assert_allclose(nut, 0.01 / 10.0)

    def test_low_re_damping(self):
        nut = limited_eddy_viscosity(0.01, 10.0, 1.0, 0.0, A1, B1, alpha_star=0.3)
        assert_allclose(nut, 0.3 * 0.01 / 10.0)

    def test_limited_branch(self):
        S = 1e3
        nut = limited_eddy_viscosity(0.01, 10.0, 1.0, S, A1, B1)
        assert_allclose(nut, A1 * 0.01 / (B1 * S))

    def test_bradshaw_bound_over_strain_sweep(self):
        k = 0.02
        omega = 5.0
        F23 = jnp.array([1.0, 0.8, 0.3])[:, None]
        S = jnp.logspace(-3, 5, 200)[None, :]
        nut = limited_eddy_viscosity(k, omega, F23, S, A1, B1)
        lhs = np.asarray(B1 * F23 * S * nut)
        assert np.all(lhs <= A1 * k * (1.0 + 1e-12))

    def test_shear_stress_bound_where_limiter_fully_active(self):
        """nu_t S <= a1 k holds where b1 F23 >= 1."""
        k = 0.02
        S = jnp.logspace(-3, 5, 200)
        nut = limited_eddy_viscosity(k, 5.0, 1.0, S, A1, 1.2)
        assert np.all(np.asarray(nut * S) <= A1 * k * (1.0 + 1e-12))

    def test_non_negative(self):
        k = jnp.array([-1e-6, 0.0, 1.0])
        omega = jnp.array([0.0, 1.0, 1e6])
        nut = limited_eddy_viscosity(k, omega, 0.5, 10.0, A1, B1)
        assert np.all(np.asarray(nut) >= 0.0)
        assert np.all(np.isfinite(nut))

    def test_shape_preserved(self):
        k = jnp.full((4, 7), 0.01)
        assert limited_eddy_viscosity(k, 10.0, 1.0, 1.0, A1, B1).shape == (4, 7)


class TestRates:

    @pytest.fixture
    def simple_shear(self):
        """du/dy = 2, all other components zero."""
        g = np.zeros((3, 2, 2))
        g[..., 0, 1] = 2.0
        return jnp.array(g)

    def test_simple_shear_rates_agree(self, simple_shear):
        assert_allclose(strain_rate_magnitude(simple_shear), 2.0)
        assert_allclose(vorticity_magnitude(simple_shear), 2.0)

    def test_pure_strain_has_no_vorticity(self):
        g = jnp.array([[1.0, 0.0], [0.0, -1.0]])
        assert_allclose(strain_rate_magnitude(g), 2.0)
        assert_allclose(vorticity_magnitude(g), 0.0)

    def test_solid_rotation_has_no_strain(self):
        g = jnp.array([[0.0, -1.0], [1.0, 0.0]])
        assert_allclose(strain_rate_magnitude(g), 0.0)
        assert_allclose(vorticity_magnitude(g), 2.0)

    def test_limiter_rate_dispatch(self, simple_shear):
        assert_allclose(limiter_rate(simple_shear, 'strain'), 2.0)
        assert_allclose(limiter_rate(simple_shear, 'vorticity'), 2.0)
        with pytest.raises(ValueError):
            limiter_rate(simple_shear, 'helicity')


def test_epsilon():
    assert_allclose(epsilon(0.01, 10.0), 0.09 * 0.01 * 10.0)
