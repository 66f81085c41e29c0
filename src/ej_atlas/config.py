"""
Pipeline configuration.

configs/params.yml is parsed into frozen dataclasses so each stage receives
exactly the parameters it needs. The Census API key is optional and comes
from the CENSUS_API_KEY environment variable.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

from ej_atlas.io_utils import read_yaml
from ej_atlas.paths import paths
from ej_atlas.records import NY_STATE_FIPS, NYC_COUNTY_FIPS, SiteCategory


CENSUS_API_KEY_ENV = "CENSUS_API_KEY"


class ConfigError(Exception):
    """Raised when params.yml is missing keys or holds invalid values."""
    pass


@dataclass(frozen=True)
class CensusConfig:
    year: int
    dataset: str
    api_base: str
    boundary_url: str
    state_fips: str
    counties: dict[str, str]
    income_variable: dict[str, str]
    race_variables: dict[str, str]
    timeout_seconds: float = 60
    api_key: str | None = None

    @property
    def income_label(self) -> str:
        return next(iter(self.income_variable))

    @property
    def race_categories(self) -> list[str]:
        return list(self.race_variables)

    @property
    def all_variables(self) -> dict[str, str]:
        return {**self.income_variable, **self.race_variables}


@dataclass(frozen=True)
class SitesConfig:
    url: str
    display_columns: dict[str, str]
    timeout_seconds: float = 120


@dataclass(frozen=True)
class MapConfig:
    center: tuple[float, float]
    zoom_start: int
    bounds: tuple[tuple[float, float], tuple[float, float]]
    income_palette: list[str]
    race_palette: list[str]
    category_colors: dict[str, str]
    min_zoom: int = 10
    tiles: str = "CartoDB positron"
    bins: int = 6
    nodata_color: str = "#bdbdbd"


@dataclass(frozen=True)
class AtlasConfig:
    census: CensusConfig
    sites: SitesConfig
    maps: MapConfig
    ties: str = "all"
    source_path: Path | None = field(default=None, compare=False)

    @property
    def counties(self) -> list[str]:
        return list(self.census.counties)


def _section(params: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = params.get(name)
    if not isinstance(section, Mapping):
        raise ConfigError(f"Missing or invalid section '{name}' in params.yml")
    return section


def _require(section: Mapping[str, Any], key: str, section_name: str) -> Any:
    if key not in section:
        raise ConfigError(f"Missing key '{section_name}.{key}' in params.yml")
    return section[key]


def parse_config(params: Mapping[str, Any], api_key: str | None = None) -> AtlasConfig:
    """
    Build an AtlasConfig from a parsed params mapping.

    Raises:
        ConfigError: If a required key is missing, a county is not one of the
            five NYC counties, or a map category color is missing.
    """
    census = _section(params, "census")
    sites = _section(params, "sites")
    maps = _section(params, "maps")
    tabulate = params.get("tabulate") or {}

    counties = {str(k): str(v) for k, v in _require(census, "counties", "census").items()}
    for name, fips in counties.items():
        if NYC_COUNTY_FIPS.get(name) != fips:
            raise ConfigError(
                f"Unknown county '{name}' (FIPS {fips}); "
                f"expected one of {sorted(NYC_COUNTY_FIPS)}"
            )

    income_variable = dict(_require(census, "income_variable", "census"))
    if len(income_variable) != 1:
        raise ConfigError("census.income_variable must map exactly one label to a code")
    race_variables = dict(_require(census, "race_variables", "census"))
    if not race_variables:
        raise ConfigError("census.race_variables must not be empty")

    category_colors = dict(_require(maps, "category_colors", "maps"))
    for category in (SiteCategory.HAZARDOUS, SiteCategory.REMEDIATED):
        if category.value not in category_colors:
            raise ConfigError(f"maps.category_colors is missing '{category.value}'")

    ties = tabulate.get("ties", "all")
    if ties not in ("all", "first"):
        raise ConfigError(f"tabulate.ties must be 'all' or 'first', got '{ties}'")

    (south, west), (north, east) = _require(maps, "bounds", "maps")

    return AtlasConfig(
        census=CensusConfig(
            year=int(_require(census, "year", "census")),
            dataset=str(census.get("dataset", "acs/acs5")),
            api_base=str(census.get("api_base", "https://api.census.gov/data")),
            boundary_url=str(_require(census, "boundary_url", "census")),
            state_fips=str(census.get("state_fips", NY_STATE_FIPS)),
            counties=counties,
            income_variable=income_variable,
            race_variables=race_variables,
            timeout_seconds=float(census.get("timeout_seconds", 60)),
            api_key=api_key,
        ),
        sites=SitesConfig(
            url=str(_require(sites, "url", "sites")),
            display_columns=dict(_require(sites, "display_columns", "sites")),
            timeout_seconds=float(sites.get("timeout_seconds", 120)),
        ),
        maps=MapConfig(
            center=tuple(_require(maps, "center", "maps")),
            zoom_start=int(_require(maps, "zoom_start", "maps")),
            bounds=((float(south), float(west)), (float(north), float(east))),
            income_palette=list(_require(maps, "income_palette", "maps")),
            race_palette=list(_require(maps, "race_palette", "maps")),
            category_colors=category_colors,
            min_zoom=int(maps.get("min_zoom", 10)),
            tiles=str(maps.get("tiles", "CartoDB positron")),
            bins=int(maps.get("bins", 6)),
            nodata_color=str(maps.get("nodata_color", "#bdbdbd")),
        ),
        ties=ties,
    )


def load_config(config_path: Path | str | None = None) -> AtlasConfig:
    """Load and validate params.yml (defaults to configs/params.yml)."""
    config_path = Path(config_path) if config_path else paths.params_yml
    params = read_yaml(config_path)
    if not isinstance(params, Mapping):
        raise ConfigError(f"{config_path} does not contain a mapping")

    config = parse_config(params, api_key=os.environ.get(CENSUS_API_KEY_ENV) or None)
    return replace(config, source_path=config_path)
