"""
Tests for ej_atlas.config.
"""

import copy

import pytest

from ej_atlas.config import CENSUS_API_KEY_ENV, ConfigError, load_config, parse_config
from ej_atlas.io_utils import read_yaml
from ej_atlas.paths import paths


@pytest.fixture
def params():
    return copy.deepcopy(read_yaml(paths.params_yml))


class TestLoadConfig:

    def test_repository_params(self, atlas_config):
        assert atlas_config.census.year == 2022
        assert atlas_config.counties == ["Bronx", "Kings", "New York"]
        assert atlas_config.census.income_label == "Median household income"
        assert atlas_config.census.race_categories == ["White", "Black", "Asian", "Hispanic"]
        assert atlas_config.ties == "all"
        assert atlas_config.source_path == paths.params_yml

    def test_fips_codes_are_strings(self, atlas_config):
        assert atlas_config.census.state_fips == "36"
        assert atlas_config.census.counties["Bronx"] == "005"

    def test_all_variables(self, atlas_config):
        variables = atlas_config.census.all_variables
        assert list(variables)[0] == "Median household income"
        assert variables["Hispanic"] == "B03002_012"

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv(CENSUS_API_KEY_ENV, "abc123")
        assert load_config().census.api_key == "abc123"

    def test_api_key_optional(self, monkeypatch):
        monkeypatch.delenv(CENSUS_API_KEY_ENV, raising=False)
        assert load_config().census.api_key is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yml")

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "params.yml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)


class TestParseConfig:

    def test_unknown_county(self, params):
        params["census"]["counties"]["Nassau"] = "059"
        with pytest.raises(ConfigError, match="Nassau"):
            parse_config(params)

    def test_mismatched_county_fips(self, params):
        params["census"]["counties"]["Bronx"] = "047"
        with pytest.raises(ConfigError, match="Bronx"):
            parse_config(params)

    def test_missing_section(self, params):
        del params["sites"]
        with pytest.raises(ConfigError, match="sites"):
            parse_config(params)

    def test_missing_key(self, params):
        del params["census"]["year"]
        with pytest.raises(ConfigError, match="census.year"):
            parse_config(params)

    def test_missing_category_color(self, params):
        del params["maps"]["category_colors"]["remediated"]
        with pytest.raises(ConfigError, match="remediated"):
            parse_config(params)

    def test_single_income_variable(self, params):
        params["census"]["income_variable"]["Per capita income"] = "B19301_001"
        with pytest.raises(ConfigError, match="exactly one"):
            parse_config(params)

    def test_bad_tie_policy(self, params):
        params["tabulate"]["ties"] = "random"
        with pytest.raises(ConfigError, match="ties"):
            parse_config(params)

    def test_tabulate_section_optional(self, params):
        del params["tabulate"]
        assert parse_config(params).ties == "all"

    def test_config_is_frozen(self, params):
        from dataclasses import FrozenInstanceError

        config = parse_config(params)
        with pytest.raises(FrozenInstanceError):
            config.ties = "first"
