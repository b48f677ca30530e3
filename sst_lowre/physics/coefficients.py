"""
Model coefficients for the k-omega SST low-Re closure.

The coefficients are an immutable value object. Re-reading configuration
never mutates an instance; it builds a new one on top of the current values
(see ``ModelCoefficients.from_mapping``) and the model swaps it in.

Notation:
    Diffusion Prandtl numbers follow the low-Re convention in which the
    effective diffusivity is nu + nu_t/sigma (sigma_k1 = 1.176,
    sigma_omega1 = 2.0, ...). Blending acts on 1/sigma so that every
    coefficient is blended the same way.

Defaults:
    beta1 0.075, beta2 0.0828, betaStar 0.09, gamma1 0.5532, gamma2 0.4403,
    a1 0.31, b1 1.0, c1 10.0, F3 off.
    gamma1/gamma2 are not free parameters: they are alpha_inf1/alpha_inf2,
    derived from beta, betaStar, kappa and sigma_omega.
"""

import math
from dataclasses import dataclass, fields, asdict, replace
from typing import Any, Dict, Mapping, Optional, Tuple


class CoefficientError(ValueError):
    """Invalid or unknown model coefficient.

    Attributes
    ----------
    key : str
        Name of the offending coefficient.
    """

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid model coefficient '{key}': {reason}")


_TRUE_WORDS = {'true', 'yes', 'on', '1'}
_FALSE_WORDS = {'false', 'no', 'off', '0', 'none'}


@dataclass(frozen=True)
class ModelCoefficients:
    """Physical constants of the k-omega SST low-Re model."""

    beta1: float = 0.075
    beta2: float = 0.0828
    beta_star_inf: float = 0.09
    alpha_star_inf: float = 1.0
    kappa: float = 0.41
    sigma_k1: float = 1.176
    sigma_k2: float = 1.0
    sigma_omega1: float = 2.0
    sigma_omega2: float = 1.168
    a1: float = 0.31
    b1: float = 1.0
    c1: float = 10.0
    R_beta: float = 8.0
    R_k: float = 6.0
    R_omega: float = 2.95
    alpha_zero: float = 1.0 / 9.0
    F3: bool = False

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == 'F3':
                if not isinstance(value, bool):
                    raise CoefficientError(f.name, f"expected a boolean switch, got {value!r}")
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise CoefficientError(f.name, f"expected a real number, got {value!r}")
            if not math.isfinite(value) or value <= 0.0:
                raise CoefficientError(f.name, f"must be finite and strictly positive, got {value!r}")

    # ------------------------------------------------------------------
    # Derived coefficients
    # ------------------------------------------------------------------

    @property
    def alpha_inf1(self) -> float:
        """alpha_inf for the k-omega branch (gamma1 = 0.5532 with defaults)."""
        return (self.beta1 / self.beta_star_inf
                - self.kappa ** 2 / (self.sigma_omega1 * math.sqrt(self.beta_star_inf)))

    @property
    def alpha_inf2(self) -> float:
        """alpha_inf for the k-epsilon branch (gamma2 = 0.4403 with defaults)."""
        return (self.beta2 / self.beta_star_inf
                - self.kappa ** 2 / (self.sigma_omega2 * math.sqrt(self.beta_star_inf)))

    @property
    def gamma1(self) -> float:
        return self.alpha_inf1

    @property
    def gamma2(self) -> float:
        return self.alpha_inf2

    # ------------------------------------------------------------------
    # Construction / comparison
    # ------------------------------------------------------------------

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]],
                     base: Optional['ModelCoefficients'] = None) -> 'ModelCoefficients':
        """
        Build coefficients from a name -> value mapping.

        Keys absent from ``mapping`` keep their value from ``base`` (or the
        defaults when no base is given).

        Raises
        ------
        CoefficientError
            Unknown key, non-numeric value, non-positive value or a switch
            that cannot be read as a boolean.
        """
        base = base if base is not None else cls()
        if not mapping:
            return base

        known = set(cls.names())
        updates = {}
        for key, value in mapping.items():
            if key not in known:
                raise CoefficientError(key, "unknown coefficient")
            if key == 'F3':
                updates[key] = _coerce_switch(key, value)
            else:
                updates[key] = _coerce_real(key, value)

        return replace(base, **updates)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def changed_keys(self, other: 'ModelCoefficients') -> Tuple[str, ...]:
        """Names of the coefficients whose value differs from ``other``."""
        return tuple(name for name in self.names()
                     if getattr(self, name) != getattr(other, name))


def _coerce_real(key: str, value: Any) -> float:
    # YAML loads "6.0e-2" style numbers as strings in some dialects
    if isinstance(value, bool):
        raise CoefficientError(key, f"expected a real number, got {value!r}")
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            raise CoefficientError(key, f"expected a real number, got {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    raise CoefficientError(key, f"expected a real number, got {value!r}")


def _coerce_switch(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise CoefficientError(key, f"expected a boolean switch, got {value!r}")
