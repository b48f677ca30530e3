"""
k-omega SST turbulence model with low-Reynolds-number damping.

Transport equations (incompressible, per unit mass):

    Dk/Dt     = div(DkEff grad k) + min(nu_t S^2, c1 beta* k omega) - beta* k omega
    Domega/Dt = div(DomegaEff grad omega) + gamma S^2 - beta omega^2
                + (1 - F1) CDkOmega

    nu_t = a1 k / max(a1 omega / alpha*, b1 F23 S)

Low-Re damping (ReT = k/(nu omega)):

    alpha* = alpha*_inf (beta_i/3 + ReT/Rk) / (1 + ReT/Rk)
    beta*  = beta*_inf (4/15 + (ReT/Rbeta)^4) / (1 + (ReT/Rbeta)^4)
    alpha  = alpha_inf/alpha* (alpha_0 + ReT/Romega) / (1 + ReT/Romega)

Update order of one correct() call:

    IDLE -> F1_COMPUTED -> OMEGA_SOLVED -> K_SOLVED -> VISCOSITY_UPDATED

F1 is evaluated once from the state at the start of the step and reused
by both equations; omega is solved before k and k sees the new omega;
nu_t is recomputed last. The first cell layer next to each wall has
omega fixed to 6 nu / (beta1 y^2).

References:
    Menter, F. R. & Esch, T. (2001), "Elements of Industrial Heat Transfer
    Prediction", 16th Brazilian Congress of Mechanical Engineering.
    Hellsten, A. (1998), "Some Improvements in Menter's k-omega SST
    turbulence model", 29th AIAA Fluid Dynamics Conference, AIAA-98-2554.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, NamedTuple, Optional, Union

import numpy as np
from loguru import logger

from sst_lowre.physics.jax_config import jnp
from sst_lowre.physics.coefficients import ModelCoefficients, CoefficientError
from sst_lowre.physics.params import make_params
from sst_lowre.physics import blending
from sst_lowre.physics import coefficient_blending as cb
from sst_lowre.physics.viscosity import (
    limited_eddy_viscosity, limiter_rate, strain_rate_magnitude, epsilon as epsilon_of,
)
from sst_lowre.numerics.gradients import GradientMetrics, compute_gradients, velocity_gradient
from sst_lowre.numerics.sst_sources import omega_sources, k_sources, near_wall_omega, wall_adjacent_mask
from sst_lowre.numerics.updates import bound
from sst_lowre.solvers.boundary_conditions import (
    FieldBoundaryConditions, FreestreamConditions, wall_bounded_bcs,
)
from sst_lowre.solvers.transport import (
    TransportEquation, LinearSolverError, LinearSolverSettings, SolverPerformance,
    solve_transport,
)
from sst_lowre.config.schema import SimulationConfig
from sst_lowre.config.loader import read_coefficients
from sst_lowre.constants import K_IDX, OMEGA_IDX
from sst_lowre.models.base import TurbulenceModel, MeanFlow, register_model


class CorrectionStage(Enum):
    """Progress of the current correct() call."""
    IDLE = 0
    F1_COMPUTED = 1
    OMEGA_SOLVED = 2
    K_SOLVED = 3
    VISCOSITY_UPDATED = 4


@dataclass
class CorrectionReport:
    """Summary of one correct() call."""
    omega: Optional[SolverPerformance] = None
    k: Optional[SolverPerformance] = None
    omega_bounded: int = 0
    k_bounded: int = 0
    skipped: bool = False
    last_stage: Optional[CorrectionStage] = None


class BlendingState(NamedTuple):
    """Cell fields derived from the state at the start of a step."""
    grad: np.ndarray          # (NI, NJ, 4, 2) gradients of [u, v, k, omega]
    S2: jnp.ndarray           # squared strain-rate magnitude
    S_limiter: jnp.ndarray    # limiter rate
    CDkOmega: jnp.ndarray
    F1: jnp.ndarray
    ReT: jnp.ndarray
    beta: jnp.ndarray         # beta(F1)
    alpha_star: jnp.ndarray
    gamma: jnp.ndarray


CoefficientSource = Union[str, Path, Mapping[str, Any], SimulationConfig]


@register_model('kOmegaSSTLowRe')
class KOmegaSSTLowRe(TurbulenceModel):
    """
    k-omega SST low-Re closure on a structured 2D grid.

    Parameters
    ----------
    mesh : FVMMetrics
        Geometry, including the wall distance.
    mean_flow : MeanFlow
        Velocity, its boundary conditions and the laminar viscosity.
    config : SimulationConfig, optional
        Coefficients, model switches and solver settings. Defaults apply
        when omitted.
    k0, omega0 : ndarray (NI, NJ), optional
        Initial fields (restart). Taken from the configuration otherwise.
    k_bcs, omega_bcs : FieldBoundaryConditions, optional
        Boundary patches. Derived from the configured walls otherwise.
    """

    def __init__(self, mesh, mean_flow: MeanFlow, config: Optional[SimulationConfig] = None,
                 k0: Optional[np.ndarray] = None, omega0: Optional[np.ndarray] = None,
                 k_bcs: Optional[FieldBoundaryConditions] = None,
                 omega_bcs: Optional[FieldBoundaryConditions] = None):
        super().__init__(mesh, mean_flow)

        self.config = config if config is not None else SimulationConfig()
        self.settings = self.config.model
        self._source: CoefficientSource = self.config
        self._coeffs = self.config.model_coefficients()
        self._params = make_params(self._coeffs)

        if self.settings.limiter_rate not in ('strain', 'vorticity'):
            raise ValueError(f"Unknown limiter rate '{self.settings.limiter_rate}'")

        self.linear_solver = LinearSolverSettings(
            tol=self.config.solver.gmres_tol,
            restart=self.config.solver.gmres_restart,
            maxiter=self.config.solver.gmres_maxiter,
        )
        self.delta_t = self.config.solver.delta_t

        self.wall_sides = self.config.wall_sides()
        streamwise = self.config.grid.streamwise
        self.k_bcs = k_bcs or wall_bounded_bcs(self.wall_sides, 0.0, streamwise)
        # omega is fixed in the wall-adjacent cells, the wall face itself is not used
        self.omega_bcs = omega_bcs or wall_bounded_bcs((), 0.0, streamwise)

        self._y = jnp.asarray(mesh.wall_distance)
        self._gradient_metrics = GradientMetrics.from_fvm(mesh)
        self._wall_mask = wall_adjacent_mask(mesh.volume.shape, self.wall_sides)

        k_init, omega_init = self._initial_fields(k0, omega0)
        self._k, _ = bound(k_init, self.settings.k_min)
        self._omega, _ = bound(omega_init, self.settings.omega_min)
        self._nut = jnp.zeros(mesh.volume.shape)
        self._stage = CorrectionStage.IDLE

        logger.info(f"Selecting turbulence model {self.type_name} "
                    f"({mesh.NI}x{mesh.NJ} cells, walls: {', '.join(self.wall_sides) or 'none'})")
        if self.settings.print_coeffs:
            self._log_coefficients()

        self.correct_nut()

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _initial_fields(self, k0, omega0):
        shape = self.mesh.volume.shape
        flow = self.config.flow
        freestream = FreestreamConditions.from_intensity(
            flow.u_bulk, flow.intensity, flow.viscosity_ratio, self.nu)
        k_value = flow.k_init if flow.k_init is not None else freestream.k_inf
        omega_value = flow.omega_init if flow.omega_init is not None else freestream.omega_inf

        fields = []
        for name, given, value in (('k', k0, k_value), ('omega', omega0, omega_value)):
            if given is None:
                fields.append(jnp.full(shape, float(value)))
                continue
            given = jnp.asarray(given, dtype=jnp.float64)
            if given.shape != shape:
                raise ValueError(f"Initial {name} has shape {given.shape}, expected {shape}")
            fields.append(given)
        return fields

    def _log_coefficients(self):
        lines = [f"{self.type_name}Coeffs"]
        for name, value in self._coeffs.as_dict().items():
            lines.append(f"    {name:<16} {value}")
        lines.append(f"    {'gamma1':<16} {self._coeffs.gamma1:.6g}")
        lines.append(f"    {'gamma2':<16} {self._coeffs.gamma2:.6g}")
        logger.info("\n".join(lines))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def coefficients(self) -> ModelCoefficients:
        return self._coeffs

    @property
    def stage(self) -> CorrectionStage:
        return self._stage

    def k(self):
        return self._k

    def omega(self):
        return self._omega

    def epsilon(self):
        """0.09 k omega; for reporting only, not used by the model."""
        return epsilon_of(self._k, self._omega)

    def nut(self):
        return self._nut

    def F1(self):
        """Inner blending function of the current state."""
        return self._blending_state().F1

    def DkEff(self, F1=None):
        """Effective diffusivity of k."""
        F1 = self.F1() if F1 is None else F1
        return cb.DkEff(F1, self._nut, self.nu, self._params)

    def DomegaEff(self, F1=None):
        """Effective diffusivity of omega."""
        F1 = self.F1() if F1 is None else F1
        return cb.DomegaEff(F1, self._nut, self.nu, self._params)

    # ------------------------------------------------------------------
    # Field evaluation
    # ------------------------------------------------------------------

    def _gradients(self) -> np.ndarray:
        flow = self.mean_flow
        Q = np.stack([
            flow.u_bcs.apply(flow.U),
            flow.v_bcs.apply(flow.V),
            self.k_bcs.apply(np.asarray(self._k)),
            self.omega_bcs.apply(np.asarray(self._omega)),
        ], axis=-1)
        return compute_gradients(Q, self._gradient_metrics)

    def _blending_state(self) -> BlendingState:
        p = self._params
        k, omega, nu = self._k, self._omega, self.nu

        grad = self._gradients()
        grad_vel = jnp.asarray(velocity_gradient(grad))
        S = strain_rate_magnitude(grad_vel)
        S_limiter = limiter_rate(grad_vel, self.settings.limiter_rate)

        CDkOmega = blending.cross_diffusion(
            jnp.asarray(grad[:, :, K_IDX, :]), jnp.asarray(grad[:, :, OMEGA_IDX, :]), omega, p)
        F1 = blending.F1(k, omega, self._y, nu, CDkOmega, p)
        ReT = blending.turbulence_reynolds(k, omega, nu)
        beta = cb.beta(F1, p)
        alpha_star = blending.alpha_star(ReT, p, beta)
        gamma = cb.gamma(F1, alpha_star, ReT, p)

        return BlendingState(grad, S * S, S_limiter, CDkOmega, F1, ReT, beta, alpha_star, gamma)

    # ------------------------------------------------------------------
    # Model update
    # ------------------------------------------------------------------

    def correct_nut(self) -> None:
        """Recompute nu_t from the current k, omega and mean flow."""
        state = self._blending_state()
        self._nut = self._limited_nut(state)

    def _limited_nut(self, state: BlendingState):
        p = self._params
        F23 = blending.compute_F23(self._k, self._omega, self._y, self.nu, p,
                                   use_F3=self._coeffs.F3)
        return limited_eddy_viscosity(self._k, self._omega, F23, state.S_limiter,
                                      p.a1, p.b1, state.alpha_star)

    def correct(self) -> CorrectionReport:
        """
        Advance k, omega and nu_t by one implicit step.

        Returns
        -------
        CorrectionReport
            Solver performance of both equations and bounding counts.

        Raises
        ------
        LinearSolverError
            A transport solve failed; the stage returns to IDLE and the
            fields not yet solved keep their previous values.
        """
        if not self.settings.turbulence:
            logger.debug("Turbulence off, skipping correct()")
            return CorrectionReport(skipped=True)

        try:
            return self._correct()
        except LinearSolverError as err:
            logger.error(f"{self.type_name}: {err}")
            self._stage = CorrectionStage.IDLE
            raise
        except Exception:
            self._stage = CorrectionStage.IDLE
            raise

    def _correct(self) -> CorrectionReport:
        p = self._params
        nu = self.nu
        flow = self.mean_flow
        velocity = (flow.U, flow.V)
        velocity_bcs = (flow.u_bcs, flow.v_bcs)
        report = CorrectionReport()

        self._stage = CorrectionStage.IDLE
        state = self._blending_state()
        self._stage = CorrectionStage.F1_COMPUTED
        logger.debug(f"F1 in [{float(state.F1.min()):.3g}, {float(state.F1.max()):.3g}]")

        # omega equation
        Su, Sp = omega_sources(state.F1, state.gamma, state.beta, state.S2,
                               state.CDkOmega, self._omega)
        omega_eq = TransportEquation(
            name='omega',
            phi=np.asarray(self._omega),
            diffusivity=np.asarray(cb.DomegaEff(state.F1, self._nut, nu, p)),
            Su=np.asarray(Su),
            Sp=np.asarray(Sp),
            bcs=self.omega_bcs,
            fixed_mask=self._wall_mask,
            fixed_values=np.asarray(near_wall_omega(self._y, nu, p.beta1)),
        )
        omega_new, report.omega = solve_transport(
            omega_eq, self.mesh, velocity, velocity_bcs, self.delta_t, self.linear_solver)
        self._omega, report.omega_bounded = bound(omega_new, self.settings.omega_min)
        self._stage = CorrectionStage.OMEGA_SOLVED
        logger.debug(f"Solving for omega, {report.omega}")
        if report.omega_bounded:
            logger.warning(f"bounding omega: {report.omega_bounded} cells raised to "
                           f"{self.settings.omega_min:g}")

        # k equation sees the new omega through beta*
        beta_star = blending.beta_star(blending.turbulence_reynolds(self._k, self._omega, nu), p)
        Su, Sp = k_sources(self._nut, state.S2, beta_star, self._k, self._omega, p.c1)
        k_eq = TransportEquation(
            name='k',
            phi=np.asarray(self._k),
            diffusivity=np.asarray(cb.DkEff(state.F1, self._nut, nu, p)),
            Su=np.asarray(Su),
            Sp=np.asarray(Sp),
            bcs=self.k_bcs,
        )
        k_new, report.k = solve_transport(
            k_eq, self.mesh, velocity, velocity_bcs, self.delta_t, self.linear_solver)
        self._k, report.k_bounded = bound(k_new, self.settings.k_min)
        self._stage = CorrectionStage.K_SOLVED
        logger.debug(f"Solving for k, {report.k}")
        if report.k_bounded:
            logger.warning(f"bounding k: {report.k_bounded} cells raised to {self.settings.k_min:g}")

        self.correct_nut()
        self._stage = CorrectionStage.VISCOSITY_UPDATED
        logger.debug(f"nut in [{float(self._nut.min()):.3g}, {float(self._nut.max()):.3g}]")
        report.last_stage = self._stage
        self._stage = CorrectionStage.IDLE

        return report

    # ------------------------------------------------------------------
    # Coefficients
    # ------------------------------------------------------------------

    def read(self, source: Optional[CoefficientSource] = None) -> bool:
        """
        Re-read model coefficients.

        Parameters
        ----------
        source : mapping, YAML path or SimulationConfig, optional
            Where to read from. Defaults to the configuration the model was
            built with. Names absent from the source keep their current value.

        Returns
        -------
        bool
            True iff at least one coefficient changed. k, omega and nu_t
            are never modified.

        Raises
        ------
        CoefficientError
            Unknown or invalid coefficient; the previous coefficients stay
            in effect.
        FileNotFoundError
            ``source`` names a file that does not exist.
        """
        source = self._source if source is None else source
        try:
            mapping = read_coefficients(source)
            updated = ModelCoefficients.from_mapping(mapping, base=self._coeffs)
        except CoefficientError as err:
            logger.error(f"{self.type_name}: {err}; keeping previous coefficients")
            raise

        changed = updated.changed_keys(self._coeffs)
        if not changed:
            return False

        self._coeffs = updated
        self._params = make_params(updated)
        logger.info(f"{self.type_name}: coefficients changed: {', '.join(changed)}")
        if self.settings.print_coeffs:
            self._log_coefficients()
        return True
