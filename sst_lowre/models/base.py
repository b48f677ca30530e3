"""
Turbulence model interface and registry.

A model owns its transported fields and the eddy viscosity, and is driven
by the enclosing flow solver through a small capability set:

    correct()      advance the model by one step
    correct_nut()  recompute nu_t from the current state
    read()         re-read coefficients, report whether anything changed
    k(), omega(), epsilon(), nut()

Usage:
    model = create_model("kOmegaSSTLowRe", mesh, mean_flow, config)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Type

import numpy as np

from sst_lowre.solvers.boundary_conditions import FieldBoundaryConditions


@dataclass
class MeanFlow:
    """
    Read-only mean-flow state seen by the closure.

    Attributes
    ----------
    U, V : ndarray (NI, NJ)
        Cell-centered velocity components.
    nu : float
        Laminar kinematic viscosity.
    u_bcs, v_bcs : FieldBoundaryConditions
        Velocity boundary patches (used for gradients and face fluxes).
    """
    U: np.ndarray
    V: np.ndarray
    nu: float
    u_bcs: FieldBoundaryConditions = field(default_factory=FieldBoundaryConditions)
    v_bcs: FieldBoundaryConditions = field(default_factory=FieldBoundaryConditions)

    def __post_init__(self):
        self.U = np.asarray(self.U, dtype=np.float64)
        self.V = np.asarray(self.V, dtype=np.float64)
        if self.U.shape != self.V.shape:
            raise ValueError(f"U and V shapes differ: {self.U.shape} vs {self.V.shape}")
        if not self.nu > 0.0:
            raise ValueError(f"Laminar viscosity must be positive, got {self.nu}")

    @property
    def shape(self):
        return self.U.shape

    def update(self, U: np.ndarray, V: np.ndarray) -> None:
        """Replace the velocity field (called by the flow solver between steps)."""
        U = np.asarray(U, dtype=np.float64)
        V = np.asarray(V, dtype=np.float64)
        if U.shape != self.U.shape or V.shape != self.V.shape:
            raise ValueError(f"Velocity shape must stay {self.U.shape}")
        self.U, self.V = U, V


class TurbulenceModel(ABC):
    """Abstract interface of a two-equation eddy-viscosity closure."""

    type_name: str = ""

    def __init__(self, mesh, mean_flow: MeanFlow):
        if mean_flow.shape != mesh.volume.shape:
            raise ValueError(
                f"Mean flow shape {mean_flow.shape} does not match mesh {mesh.volume.shape}")
        self.mesh = mesh
        self.mean_flow = mean_flow

    @property
    def nu(self) -> float:
        return self.mean_flow.nu

    @abstractmethod
    def correct(self):
        """Advance the turbulence state by one step."""

    @abstractmethod
    def correct_nut(self) -> None:
        """Recompute the eddy viscosity from the current state."""

    @abstractmethod
    def read(self, source=None) -> bool:
        """Re-read model coefficients; True iff any value changed."""

    @abstractmethod
    def k(self):
        """Turbulent kinetic energy."""

    @abstractmethod
    def omega(self):
        """Specific dissipation rate."""

    @abstractmethod
    def epsilon(self):
        """Dissipation rate."""

    @abstractmethod
    def nut(self):
        """Eddy viscosity."""


_REGISTRY: Dict[str, Type[TurbulenceModel]] = {}


def register_model(name: str) -> Callable[[Type[TurbulenceModel]], Type[TurbulenceModel]]:
    """Class decorator adding a model to the registry under ``name``."""
    def decorator(cls):
        if name in _REGISTRY:
            raise ValueError(f"Turbulence model '{name}' is already registered")
        _REGISTRY[name] = cls
        cls.type_name = name
        return cls
    return decorator


def available_models():
    return tuple(sorted(_REGISTRY))


def create_model(name: str, *args, **kwargs) -> TurbulenceModel:
    """Factory: instantiate a turbulence model by registered name."""
    cls: Optional[Type[TurbulenceModel]] = _REGISTRY.get(name)
    if cls is None:
        supported = ", ".join(available_models())
        raise ValueError(f"Unknown turbulence model '{name}'. Supported: {supported}")
    return cls(*args, **kwargs)
