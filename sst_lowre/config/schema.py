"""
Configuration schema for the k-omega SST low-Re closure.

Dataclass-based configuration that can be loaded from YAML or constructed programmatically.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any

from sst_lowre.constants import K_MIN, OMEGA_MIN


@dataclass
class ModelSettings:
    """Closure switches and bounding floors."""

    turbulence: bool = True        # False: correct() leaves k, omega, nu_t untouched
    k_min: float = K_MIN           # Floor applied to k after each solve
    omega_min: float = OMEGA_MIN   # Floor applied to omega after each solve
    limiter_rate: str = "strain"   # "strain" (sqrt(2 S_ij S_ij)) or "vorticity"
    print_coeffs: bool = True      # Log coefficients when the model is built


@dataclass
class GridConfig:
    """Rectilinear channel / flat-plate grid."""

    ni: int = 4                # Streamwise cells
    nj: int = 64               # Wall-normal cells
    length: float = 1.0        # Streamwise extent
    height: float = 2.0        # Wall-normal extent
    ratio: float = 1.1         # Wall-normal cell growth ratio
    walls: str = "both"        # "both" (channel), "lower" (flat plate) or "none"
    streamwise: str = "periodic"   # "periodic" or "zero_gradient"


@dataclass
class FlowConfig:
    """Mean flow and initial turbulence state."""

    nu: float = 1.5e-5             # Laminar kinematic viscosity
    u_bulk: float = 1.0            # Bulk / free-stream velocity
    profile: str = "turbulent"     # "turbulent" (1/7 power law), "laminar" (parabola) or "uniform"

    # Initial / far-field turbulence from intensity and nu_t/nu ...
    intensity: float = 0.05
    viscosity_ratio: float = 10.0

    # ... unless given explicitly
    k_init: Optional[float] = None
    omega_init: Optional[float] = None


@dataclass
class SolverSettings:
    """Pseudo-time stepping and linear solver settings."""

    delta_t: float = 1e-2       # Implicit Euler step of the k/omega equations
    n_steps: int = 200          # Number of correct() calls
    print_freq: int = 10

    # GMRES settings for each transport solve
    gmres_tol: float = 1e-8     # Relative tolerance
    gmres_restart: int = 30     # GMRES(m) restart parameter
    gmres_maxiter: int = 300    # Maximum GMRES iterations (across restarts)


@dataclass
class OutputConfig:
    """Output configuration."""

    directory: str = "output/channel"
    case_name: str = "solution"
    save_fields: bool = True    # Write k, omega, nu_t to <directory>/<case_name>.npz


@dataclass
class DeviceConfig:
    """Device/GPU configuration."""

    # Device selection: "auto", "cpu", or GPU index ("0", "1", "cuda:0", etc.)
    device: Optional[str] = "auto"


@dataclass
class SimulationConfig:
    """Complete simulation configuration."""

    # Coefficient overrides by name; absent names keep their defaults
    coefficients: Dict[str, Any] = field(default_factory=dict)
    model: ModelSettings = field(default_factory=ModelSettings)
    grid: GridConfig = field(default_factory=GridConfig)
    flow: FlowConfig = field(default_factory=FlowConfig)
    solver: SolverSettings = field(default_factory=SolverSettings)
    output: OutputConfig = field(default_factory=OutputConfig)
    device: DeviceConfig = field(default_factory=DeviceConfig)

    def model_coefficients(self):
        """Validated ModelCoefficients built from the coefficients section."""
        from sst_lowre.physics.coefficients import ModelCoefficients
        return ModelCoefficients.from_mapping(self.coefficients)

    def wall_sides(self):
        sides = {
            'both': ('j_min', 'j_max'),
            'lower': ('j_min',),
            'none': (),
        }
        if self.grid.walls not in sides:
            raise ValueError(f"grid.walls must be one of {tuple(sides)}, got '{self.grid.walls}'")
        return sides[self.grid.walls]

    def to_dict(self) -> dict:
        """Convert to nested dictionary."""
        return asdict(self)


# Preset configurations
def coarse_preset() -> GridConfig:
    """Coarse channel for quick checks."""
    return GridConfig(ni=2, nj=32, ratio=1.2)


def production_preset() -> GridConfig:
    """Wall-resolved channel."""
    return GridConfig(ni=4, nj=128, ratio=1.08)
