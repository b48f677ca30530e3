"""
Turbulence models.

Usage:
    from sst_lowre.models import create_model
    model = create_model("kOmegaSSTLowRe", mesh, mean_flow, config)
"""

from sst_lowre.models.base import (
    TurbulenceModel,
    MeanFlow,
    register_model,
    create_model,
    available_models,
)

from sst_lowre.models.k_omega_sst_low_re import (
    KOmegaSSTLowRe,
    CorrectionStage,
    CorrectionReport,
)

__all__ = [
    'TurbulenceModel',
    'MeanFlow',
    'register_model',
    'create_model',
    'available_models',
    'KOmegaSSTLowRe',
    'CorrectionStage',
    'CorrectionReport',
]
