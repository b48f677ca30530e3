"""
Tests for the k-omega SST low-Re closure.

Validates:
1. Decay of homogeneous turbulence (exact implicit Euler update)
2. Positivity of k, omega and nu_t from extreme initial fields
3. F3 switch acts only near walls
4. Coefficient re-reading
5. Stage handling on success, failure and with turbulence off
6. Model registry
"""

from dataclasses import replace

import pytest
import numpy as np
from numpy.testing import assert_allclose

from sst_lowre.physics.coefficients import CoefficientError
from sst_lowre.physics import blending
from sst_lowre.physics import coefficient_blending as cb
from sst_lowre.solvers import LinearSolverError
from sst_lowre.models import (
    KOmegaSSTLowRe, CorrectionStage, CorrectionReport, MeanFlow,
    create_model, available_models, register_model,
)

NU = 1.5e-5


@pytest.fixture
def decaying_model(wall_free_config, wall_free_mesh, still_flow):
    return KOmegaSSTLowRe(wall_free_mesh, still_flow, wall_free_config)


@pytest.fixture
def channel_model(channel_config, channel_mesh, channel_flow):
    return KOmegaSSTLowRe(channel_mesh, channel_flow, channel_config)


# =============================================================================
# Homogeneous decay
# =============================================================================

class TestHomogeneousDecay:
    """Without mean strain both fields decay and stay uniform."""

    def test_single_step_matches_implicit_euler(self, decaying_model, default_params):
        dt = decaying_model.delta_t
        k0, omega0 = 0.01, 10.0

        F1 = blending.F1(k0, omega0, 0.05, NU, 0.0, default_params)
        beta = float(cb.beta(F1, default_params))
        omega1 = omega0 / (1.0 + dt * beta * omega0)
        beta_star = float(blending.beta_star(k0 / (NU * omega1), default_params))
        k1 = k0 / (1.0 + dt * beta_star * omega1)

        report = decaying_model.correct()

        assert isinstance(report, CorrectionReport)
        assert_allclose(decaying_model.omega(), omega1, rtol=1e-7)
        assert_allclose(decaying_model.k(), k1, rtol=1e-7)

    def test_monotone_decay(self, decaying_model):
        k_prev = np.asarray(decaying_model.k()).copy()
        omega_prev = np.asarray(decaying_model.omega()).copy()

        for _ in range(5):
            report = decaying_model.correct()
            k = np.asarray(decaying_model.k())
            omega = np.asarray(decaying_model.omega())

            assert np.all(k < k_prev)
            assert np.all(omega < omega_prev)
            assert np.ptp(k) <= 1e-6 * k.max()
            assert np.ptp(omega) <= 1e-6 * omega.max()
            k_prev, omega_prev = k, omega

        assert decaying_model.stage == CorrectionStage.IDLE
        assert report.last_stage == CorrectionStage.VISCOSITY_UPDATED

    def test_unlimited_viscosity_without_strain(self, decaying_model, default_params):
        """S = 0 leaves the first limiter branch: nu_t = alpha* k / omega."""
        decaying_model.correct()
        k = np.asarray(decaying_model.k())
        omega = np.asarray(decaying_model.omega())
        F1 = decaying_model.F1()
        ReT = blending.turbulence_reynolds(k, omega, NU)
        alpha_star = blending.alpha_star(ReT, default_params, cb.beta(F1, default_params))
        assert_allclose(decaying_model.nut(), alpha_star * k / omega, rtol=1e-10)

    def test_epsilon_is_reporting_value(self, decaying_model):
        assert_allclose(decaying_model.epsilon(),
                        0.09 * np.asarray(decaying_model.k()) * np.asarray(decaying_model.omega()))


# =============================================================================
# Channel
# =============================================================================

class TestChannel:

    def test_positivity_from_extreme_initial_fields(self, channel_config, channel_mesh,
                                                    channel_flow):
        config = replace(channel_config,
                         solver=replace(channel_config.solver, gmres_restart=60,
                                        gmres_maxiter=600))
        shape = channel_mesh.volume.shape
        rng = np.random.default_rng(3)
        k0 = 10.0 ** rng.uniform(-12, 0, shape)
        k0[0, 0] = -1.0
        omega0 = 10.0 ** rng.uniform(-3, 5, shape)
        omega0[-1, -1] = 0.0

        model = KOmegaSSTLowRe(channel_mesh, channel_flow, config, k0=k0, omega0=omega0)
        for _ in range(5):
            model.correct()
            assert np.all(np.asarray(model.k()) >= config.model.k_min)
            assert np.all(np.asarray(model.omega()) >= config.model.omega_min)
            nut = np.asarray(model.nut())
            assert np.all(np.isfinite(nut))
            assert np.all(nut >= 0.0)

    def test_wall_adjacent_omega(self, channel_model, channel_mesh, default_coeffs):
        channel_model.correct()
        y = channel_mesh.wall_distance
        expected = 6.0 * NU / (default_coeffs.beta1 * y ** 2)
        omega = np.asarray(channel_model.omega())
        assert_allclose(omega[:, 0], expected[:, 0], rtol=1e-6)
        assert_allclose(omega[:, -1], expected[:, -1], rtol=1e-6)

    def test_F1_range_and_wall_limit(self, channel_model):
        F1 = np.asarray(channel_model.F1())
        assert np.all((F1 >= 0.0) & (F1 <= 1.0))
        assert np.all(F1[:, 0] > 0.999)
        assert np.all(F1[:, F1.shape[1] // 2] < 1e-3)

    def test_effective_diffusivities(self, channel_model):
        assert np.all(np.asarray(channel_model.DkEff()) >= NU)
        assert np.all(np.asarray(channel_model.DomegaEff()) >= NU)

    def test_F3_only_acts_near_walls(self, channel_config, channel_mesh, channel_flow):
        off = KOmegaSSTLowRe(channel_mesh, channel_flow, channel_config)
        on_config = replace(channel_config, coefficients={'F3': True})
        on = KOmegaSSTLowRe(channel_mesh, channel_flow, on_config)

        nut_off = np.asarray(off.nut())
        nut_on = np.asarray(on.nut())
        far = channel_mesh.wall_distance >= 0.5

        assert on.coefficients.F3 and not off.coefficients.F3
        assert_allclose(nut_on[far], nut_off[far], rtol=1e-10)
        assert np.all(nut_on >= nut_off * (1.0 - 1e-12))
        assert np.any(nut_on > nut_off * (1.0 + 1e-6))

    def test_vorticity_limiter_rate(self, channel_config, channel_mesh, channel_flow):
        """In a pure shear flow the vorticity and strain rates coincide."""
        strain = KOmegaSSTLowRe(channel_mesh, channel_flow, channel_config)
        config = replace(channel_config,
                         model=replace(channel_config.model, limiter_rate='vorticity'))
        vorticity = KOmegaSSTLowRe(channel_mesh, channel_flow, config)
        assert_allclose(vorticity.nut(), strain.nut(), rtol=1e-10)

    def test_unknown_limiter_rate(self, channel_config, channel_mesh, channel_flow):
        config = replace(channel_config,
                         model=replace(channel_config.model, limiter_rate='helicity'))
        with pytest.raises(ValueError):
            KOmegaSSTLowRe(channel_mesh, channel_flow, config)


# =============================================================================
# Stages and failures
# =============================================================================

class TestStages:

    def test_initial_stage(self, channel_model):
        assert channel_model.stage == CorrectionStage.IDLE

    def test_turbulence_off_skips(self, channel_config, channel_mesh, channel_flow):
        config = replace(channel_config,
                         model=replace(channel_config.model, turbulence=False))
        model = KOmegaSSTLowRe(channel_mesh, channel_flow, config)
        k = np.asarray(model.k()).copy()
        nut = np.asarray(model.nut()).copy()

        report = model.correct()

        assert report.skipped
        assert report.omega is None and report.k is None
        assert model.stage == CorrectionStage.IDLE
        assert_allclose(model.k(), k)
        assert_allclose(model.nut(), nut)

    def test_failed_solve_returns_to_idle(self, channel_config, channel_mesh, channel_flow):
        config = replace(channel_config,
                         solver=replace(channel_config.solver, gmres_tol=1e-14,
                                        gmres_restart=1, gmres_maxiter=1))
        model = KOmegaSSTLowRe(channel_mesh, channel_flow, config)
        k = np.asarray(model.k()).copy()
        omega = np.asarray(model.omega()).copy()

        with pytest.raises(LinearSolverError) as excinfo:
            model.correct()

        assert excinfo.value.field == 'omega'
        assert model.stage == CorrectionStage.IDLE
        assert_allclose(model.k(), k)
        assert_allclose(model.omega(), omega)

    def test_success_reports_both_solves(self, channel_model):
        report = channel_model.correct()
        assert report.omega.field == 'omega'
        assert report.k.field == 'k'
        assert report.omega.converged and report.k.converged


# =============================================================================
# Coefficient re-reading
# =============================================================================

class TestRead:

    def test_unchanged_returns_false(self, channel_model):
        k = np.asarray(channel_model.k()).copy()
        nut = np.asarray(channel_model.nut()).copy()
        coeffs = channel_model.coefficients

        assert channel_model.read() is False
        assert channel_model.read({'a1': 0.31}) is False
        assert channel_model.coefficients is coeffs
        assert_allclose(channel_model.k(), k)
        assert_allclose(channel_model.nut(), nut)

    def test_changed_returns_true(self, channel_model):
        k = np.asarray(channel_model.k()).copy()
        nut = np.asarray(channel_model.nut()).copy()

        assert channel_model.read({'coefficients': {'a1': 0.3, 'b1': 1.1}}) is True
        assert channel_model.coefficients.a1 == 0.3
        assert channel_model.coefficients.b1 == 1.1
        # Fields are only touched by correct()/correct_nut()
        assert_allclose(channel_model.k(), k)
        assert_allclose(channel_model.nut(), nut)

    def test_new_coefficients_used_by_correct_nut(self, channel_model):
        nut_before = np.asarray(channel_model.nut()).copy()
        channel_model.read({'a1': 0.62})
        channel_model.correct_nut()
        assert not np.allclose(channel_model.nut(), nut_before)

    def test_read_from_yaml(self, channel_model, tmp_path):
        path = tmp_path / "coeffs.yaml"
        path.write_text("coefficients:\n  c1: 8.0\n  F3: yes\n")
        assert channel_model.read(path) is True
        assert channel_model.coefficients.c1 == 8.0
        assert channel_model.coefficients.F3 is True

    def test_missing_file(self, channel_model, tmp_path):
        with pytest.raises(FileNotFoundError):
            channel_model.read(tmp_path / "missing.yaml")

    @pytest.mark.parametrize("mapping", [
        {'betaStarr': 0.09},
        {'a1': -0.31},
        {'F3': 'maybe'},
        {'a1': 0.3, 'sigma_k1': 'x'},
    ])
    def test_invalid_keeps_previous(self, channel_model, mapping):
        coeffs = channel_model.coefficients
        with pytest.raises(CoefficientError):
            channel_model.read(mapping)
        assert channel_model.coefficients is coeffs


# =============================================================================
# Construction and registry
# =============================================================================

class TestConstruction:

    def test_registry(self):
        assert 'kOmegaSSTLowRe' in available_models()
        assert KOmegaSSTLowRe.type_name == 'kOmegaSSTLowRe'

    def test_create_model(self, channel_config, channel_mesh, channel_flow):
        model = create_model('kOmegaSSTLowRe', channel_mesh, channel_flow, channel_config)
        assert isinstance(model, KOmegaSSTLowRe)

    def test_unknown_model(self, channel_mesh, channel_flow):
        with pytest.raises(ValueError):
            create_model('kEpsilon', channel_mesh, channel_flow)

    def test_duplicate_registration(self):
        with pytest.raises(ValueError):
            register_model('kOmegaSSTLowRe')(KOmegaSSTLowRe)

    def test_mean_flow_update_reaches_model(self, wall_free_config, wall_free_mesh, still_flow):
        sheared_flow = MeanFlow(U=still_flow.U, V=still_flow.V, nu=NU,
                                u_bcs=still_flow.u_bcs, v_bcs=still_flow.v_bcs)
        still = KOmegaSSTLowRe(wall_free_mesh, still_flow, wall_free_config)
        sheared = KOmegaSSTLowRe(wall_free_mesh, sheared_flow, wall_free_config)

        sheared_flow.update(10.0 * wall_free_mesh.yc, np.zeros(wall_free_mesh.volume.shape))
        assert_allclose(sheared.mean_flow.U, 10.0 * wall_free_mesh.yc)

        still.correct()
        sheared.correct()
        # Shear production raises k above pure decay
        assert np.mean(np.asarray(sheared.k())) > np.mean(np.asarray(still.k()))

    def test_mean_flow_update_keeps_shape(self, still_flow):
        with pytest.raises(ValueError):
            still_flow.update(np.zeros((2, 2)), np.zeros((2, 2)))

    def test_mean_flow_shape_mismatch(self, channel_mesh):
        flow = MeanFlow(U=np.zeros((3, 3)), V=np.zeros((3, 3)), nu=NU)
        with pytest.raises(ValueError):
            KOmegaSSTLowRe(channel_mesh, flow)

    def test_initial_field_shape(self, channel_config, channel_mesh, channel_flow):
        with pytest.raises(ValueError):
            KOmegaSSTLowRe(channel_mesh, channel_flow, channel_config, k0=np.ones((2, 2)))

    def test_initial_fields_from_intensity(self, channel_model, channel_config):
        flow = channel_config.flow
        k_inf = 1.5 * (flow.intensity * flow.u_bulk) ** 2
        assert_allclose(channel_model.k(), k_inf)
        assert_allclose(channel_model.omega(), k_inf / (NU * flow.viscosity_ratio))

    def test_invalid_coefficients_in_config(self, channel_config, channel_mesh, channel_flow):
        config = replace(channel_config, coefficients={'beta1': 0.0})
        with pytest.raises(CoefficientError):
            KOmegaSSTLowRe(channel_mesh, channel_flow, config)
