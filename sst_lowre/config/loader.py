"""
YAML configuration loader with validation.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Mapping, Optional, Union
from dataclasses import fields, is_dataclass

from sst_lowre.physics.coefficients import CoefficientError

from sst_lowre.config.schema import (
    SimulationConfig, ModelSettings, GridConfig, FlowConfig, SolverSettings,
    OutputConfig, DeviceConfig,
    coarse_preset, production_preset,
)


def _merge_dict(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def _coerce_type(value, field_type):
    """Coerce value to the expected field type."""
    # Handle string representations of numbers (e.g., "1.5e-5")
    if field_type in (float, Optional[float]) and isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    if field_type == int and isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return value
    return value


def _dict_to_dataclass(cls, data: dict):
    """Convert a nested dictionary to a dataclass instance."""
    if not is_dataclass(cls):
        return data

    field_types = {f.name: f.type for f in fields(cls)}
    kwargs = {}

    for key, value in data.items():
        if key not in field_types:
            continue  # Skip unknown fields

        field_type = field_types[key]

        if is_dataclass(field_type) and isinstance(value, dict):
            kwargs[key] = _dict_to_dataclass(field_type, value)
        else:
            kwargs[key] = _coerce_type(value, field_type)

    return cls(**kwargs)


def _read_mapping(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Configuration file {path} must contain a mapping, "
                         f"got {type(data).__name__}")
    return data


def load_yaml(path: Union[str, Path]) -> SimulationConfig:
    """
    Load simulation configuration from a YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        SimulationConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    return from_dict(_read_mapping(path))


def from_dict(data: Dict[str, Any]) -> SimulationConfig:
    """
    Create SimulationConfig from a dictionary.

    Handles nested structures and applies defaults for missing values.
    The coefficients section is kept as a plain mapping; it is validated
    when the model coefficients are built from it.
    """
    data = dict(data)

    preset = data.pop('preset', None)
    if preset:
        grid_preset = {
            'coarse': coarse_preset(),
            'production': production_preset(),
        }.get(preset)
        if grid_preset:
            # Merge preset with any explicit grid overrides
            grid_data = data.get('grid', {})
            preset_dict = {f.name: getattr(grid_preset, f.name) for f in fields(GridConfig)}
            data['grid'] = _merge_dict(preset_dict, grid_data)

    config_dict = {}

    if 'coefficients' in data:
        coefficients = data['coefficients'] or {}
        if not isinstance(coefficients, Mapping):
            raise ValueError(f"'coefficients' must be a mapping, got {type(coefficients).__name__}")
        config_dict['coefficients'] = dict(coefficients)

    sections = {
        'model': ModelSettings,
        'grid': GridConfig,
        'flow': FlowConfig,
        'solver': SolverSettings,
        'output': OutputConfig,
        'device': DeviceConfig,
    }
    for name, cls in sections.items():
        if name in data and data[name] is not None:
            config_dict[name] = _dict_to_dataclass(cls, data[name])

    return SimulationConfig(**config_dict)


def read_coefficients(source: Union[str, Path, Mapping[str, Any], SimulationConfig]) -> Dict[str, Any]:
    """
    Extract the coefficient mapping from a configuration source.

    Args:
        source: YAML path, SimulationConfig, a full configuration mapping
            (with a 'coefficients' section) or a bare coefficient mapping

    Returns:
        Mapping of coefficient name to raw value (not yet validated)
    """
    if isinstance(source, SimulationConfig):
        return dict(source.coefficients)
    if isinstance(source, (str, Path)):
        source = _read_mapping(source)
    if not isinstance(source, Mapping):
        raise CoefficientError(f"Coefficient source must be a mapping, got {type(source).__name__}")
    if 'coefficients' in source:
        section = source['coefficients'] or {}
        if not isinstance(section, Mapping):
            raise CoefficientError(f"'coefficients' section must be a mapping, "
                                   f"got {type(section).__name__}")
        return dict(section)
    return dict(source)


def apply_cli_overrides(config: SimulationConfig, args) -> SimulationConfig:
    """
    Apply command-line argument overrides to a configuration.

    Only overrides values that were explicitly set (not default).

    Args:
        config: Base configuration
        args: argparse.Namespace with CLI arguments

    Returns:
        Updated SimulationConfig
    """
    config_dict = config.to_dict()

    # Map CLI args to config paths
    cli_mapping = {
        # Flow conditions
        'nu': ('flow', 'nu'),
        'u_bulk': ('flow', 'u_bulk'),
        'profile': ('flow', 'profile'),
        'intensity': ('flow', 'intensity'),
        'viscosity_ratio': ('flow', 'viscosity_ratio'),

        # Grid
        'ni': ('grid', 'ni'),
        'nj': ('grid', 'nj'),
        'ratio': ('grid', 'ratio'),
        'walls': ('grid', 'walls'),

        # Model
        'limiter_rate': ('model', 'limiter_rate'),

        # Solver
        'delta_t': ('solver', 'delta_t'),
        'n_steps': ('solver', 'n_steps'),
        'print_freq': ('solver', 'print_freq'),
        'gmres_tol': ('solver', 'gmres_tol'),

        # Output
        'output_dir': ('output', 'directory'),
        'case_name': ('output', 'case_name'),

        # Device
        'device': ('device', 'device'),
    }

    for cli_name, config_path in cli_mapping.items():
        if hasattr(args, cli_name):
            value = getattr(args, cli_name)
            if value is not None:
                target = config_dict
                for key in config_path[:-1]:
                    target = target[key]
                target[config_path[-1]] = value

    # Switches
    if getattr(args, 'f3', False):
        config_dict['coefficients']['F3'] = True
    if getattr(args, 'laminar', False):
        config_dict['model']['turbulence'] = False

    return from_dict(config_dict)


def save_yaml(config: SimulationConfig, path: Union[str, Path]) -> None:
    """Save configuration to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
