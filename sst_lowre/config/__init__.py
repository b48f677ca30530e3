"""
Configuration module for the k-omega SST low-Re closure.

Provides YAML-based configuration with dataclass schema.
"""

from sst_lowre.config.schema import (
    SimulationConfig,
    ModelSettings,
    GridConfig,
    FlowConfig,
    SolverSettings,
    OutputConfig,
    DeviceConfig,
    coarse_preset,
    production_preset,
)

from sst_lowre.config.loader import (
    load_yaml,
    from_dict,
    read_coefficients,
    apply_cli_overrides,
    save_yaml,
)

__all__ = [
    # Schema classes
    'SimulationConfig',
    'ModelSettings',
    'GridConfig',
    'FlowConfig',
    'SolverSettings',
    'OutputConfig',
    'DeviceConfig',
    # Presets
    'coarse_preset',
    'production_preset',
    # Loader functions
    'load_yaml',
    'from_dict',
    'read_coefficients',
    'apply_cli_overrides',
    'save_yaml',
]
