"""
Tests for YAML configuration loading and CLI overrides.
"""

import argparse
from pathlib import Path

import pytest

from sst_lowre.config import (
    SimulationConfig, GridConfig, load_yaml, from_dict, read_coefficients,
    apply_cli_overrides, save_yaml,
)
from sst_lowre.physics.coefficients import CoefficientError

EXAMPLE_CONFIG = Path(__file__).parent.parent / "configs" / "channel_decay.yaml"


class TestFromDict:

    def test_defaults(self):
        config = from_dict({})
        assert config == SimulationConfig()
        assert config.wall_sides() == ('j_min', 'j_max')

    def test_sections_and_string_numbers(self):
        config = from_dict({
            'flow': {'nu': '2.0e-5', 'k_init': '1e-3'},
            'solver': {'n_steps': '50'},
            'grid': {'walls': 'lower', 'unknown_key': 1},
        })
        assert config.flow.nu == 2.0e-5
        assert config.flow.k_init == 1e-3
        assert config.solver.n_steps == 50
        assert config.wall_sides() == ('j_min',)

    def test_preset_with_override(self):
        config = from_dict({'preset': 'coarse', 'grid': {'nj': 40}})
        assert config.grid.ni == 2
        assert config.grid.ratio == 1.2
        assert config.grid.nj == 40

    def test_coefficients_kept_raw(self):
        config = from_dict({'coefficients': {'a1': '0.3', 'F3': 'on'}})
        coeffs = config.model_coefficients()
        assert coeffs.a1 == 0.3
        assert coeffs.F3 is True

    def test_coefficients_must_be_mapping(self):
        with pytest.raises(ValueError):
            from_dict({'coefficients': [1, 2]})

    def test_invalid_coefficient_detected_when_built(self):
        config = from_dict({'coefficients': {'beta_1': 0.075}})
        with pytest.raises(CoefficientError):
            config.model_coefficients()

    def test_bad_walls(self):
        with pytest.raises(ValueError):
            SimulationConfig(grid=GridConfig(walls='upper')).wall_sides()


class TestYaml:

    def test_load_example(self):
        config = load_yaml(EXAMPLE_CONFIG)
        assert config.coefficients['F3'] is False
        assert config.grid.nj == 64
        assert config.output.case_name == 'channel_decay'

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml(tmp_path / 'nope.yaml')

    def test_save_and_reload(self, tmp_path):
        config = from_dict({'coefficients': {'c1': 8.0}, 'solver': {'delta_t': 0.5}})
        path = tmp_path / 'out' / 'case.yaml'
        save_yaml(config, path)
        assert load_yaml(path) == config


class TestReadCoefficients:

    def test_from_config(self):
        config = from_dict({'coefficients': {'b1': 1.1}})
        assert read_coefficients(config) == {'b1': 1.1}

    def test_from_full_mapping_and_bare_mapping(self):
        assert read_coefficients({'coefficients': {'a1': 0.3}, 'grid': {}}) == {'a1': 0.3}
        assert read_coefficients({'a1': 0.3}) == {'a1': 0.3}
        assert read_coefficients({'coefficients': None}) == {}

    def test_from_file(self):
        assert read_coefficients(EXAMPLE_CONFIG) == {'F3': False, 'a1': 0.31}

    def test_scalar_file_rejected(self, tmp_path):
        path = tmp_path / 'scalar.yaml'
        path.write_text('0.3\n')
        with pytest.raises(ValueError, match='scalar.yaml'):
            read_coefficients(path)
        with pytest.raises(ValueError, match='scalar.yaml'):
            load_yaml(path)

    def test_non_mapping_sources_rejected(self):
        with pytest.raises(CoefficientError):
            read_coefficients(0.3)
        with pytest.raises(CoefficientError):
            read_coefficients({'coefficients': [0.3]})


class TestCliOverrides:

    def test_only_given_values_override(self):
        args = argparse.Namespace(nu=None, nj=32, walls='lower', n_steps=None,
                                  limiter_rate='vorticity', f3=True, laminar=False)
        config = apply_cli_overrides(SimulationConfig(), args)

        assert config.flow.nu == 1.5e-5
        assert config.grid.nj == 32
        assert config.grid.walls == 'lower'
        assert config.model.limiter_rate == 'vorticity'
        assert config.coefficients == {'F3': True}
        assert config.model.turbulence is True

    def test_laminar_switch(self):
        args = argparse.Namespace(laminar=True)
        assert apply_cli_overrides(SimulationConfig(), args).model.turbulence is False
