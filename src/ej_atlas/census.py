"""
ACS tract estimates with tract boundaries.

Estimates come from the Census Data API, one request per county; polygons
come from the Census cartographic boundary file for the state. The joined
result is a long table (one row per tract and variable) in EPSG:4326.

Any upstream failure raises DataUnavailableError. Nothing is retried.
"""

import logging
from typing import Mapping

import geopandas as gpd
import pandas as pd
import requests

from ej_atlas.config import CensusConfig
from ej_atlas.errors import DataUnavailableError
from ej_atlas.logging_utils import log_records_skipped, log_step_end, log_step_start
from ej_atlas.qa import CANONICAL_EPSG, run_geo_qa_checks
from ej_atlas.schemas import SCHEMA_TRACT_ESTIMATES, validate_geodataframe


ACS_SOURCE = "census_acs"
BOUNDARY_SOURCE = "census_boundaries"

# ACS annotation values that stand in for suppressed or unavailable estimates
ACS_JAM_VALUES = (
    -999999999, -888888888, -666666666, -555555555, -333333333, -222222222,
)

TRACT_COLUMNS = ["geoid", "name", "variable", "estimate", "moe"]

logger_default = logging.getLogger(__name__)


def _get_json(http, url: str, params: dict, timeout: float, source: str, what: str):
    try:
        response = http.get(url, params=params, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise DataUnavailableError(source, f"request for {what} failed: {e}") from e

    if response.status_code == 204 or not response.content.strip():
        raise DataUnavailableError(source, f"no data returned for {what}")

    try:
        return response.json()
    except ValueError as e:
        raise DataUnavailableError(source, f"unreadable response for {what}") from e


def _to_numeric(series: pd.Series) -> pd.Series:
    values = pd.to_numeric(series, errors="coerce").astype("float64")
    return values.mask(values.isin(ACS_JAM_VALUES))


def fetch_acs_estimates(
    variables: Mapping[str, str],
    counties: Mapping[str, str],
    year: int,
    state_fips: str = "36",
    dataset: str = "acs/acs5",
    api_base: str = "https://api.census.gov/data",
    api_key: str | None = None,
    timeout: float = 60,
    session: requests.Session | None = None,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """
    Fetch tract-level ACS estimates and margins of error.

    Args:
        variables: Variable label -> ACS code without suffix
            (e.g. {"White": "B03002_003"}).
        counties: County name -> county FIPS (e.g. {"Bronx": "005"}).
        year: ACS end year.

    Returns:
        Long DataFrame with geoid, name, variable (label), estimate, moe.

    Raises:
        DataUnavailableError: If any request fails or returns no rows.
    """
    logger = logger or logger_default
    http = session or requests
    log_step_start(logger, "fetch_acs_estimates", year=year, counties=list(counties))

    fields = ["NAME"]
    for code in variables.values():
        fields.extend([f"{code}E", f"{code}M"])

    url = f"{api_base}/{year}/{dataset}"
    frames = []

    for county_name, county_fips in counties.items():
        params = {
            "get": ",".join(fields),
            "for": "tract:*",
            "in": f"state:{state_fips} county:{county_fips}",
        }
        if api_key:
            params["key"] = api_key

        what = f"{county_name} County, {year} {dataset}"
        logger.info(f"Fetching ACS tracts for {county_name}...")
        payload = _get_json(http, url, params, timeout, ACS_SOURCE, what)

        if not isinstance(payload, list) or len(payload) < 2:
            raise DataUnavailableError(ACS_SOURCE, f"no tracts returned for {what}")

        raw = pd.DataFrame(payload[1:], columns=payload[0])
        raw["geoid"] = raw["state"] + raw["county"] + raw["tract"]
        frames.append(raw)
        logger.info(f"  Got {len(raw)} tracts")

    raw = pd.concat(frames, ignore_index=True)

    long_frames = []
    for label, code in variables.items():
        long_frames.append(pd.DataFrame({
            "geoid": raw["geoid"],
            "name": raw["NAME"],
            "variable": label,
            "estimate": _to_numeric(raw[f"{code}E"]),
            "moe": _to_numeric(raw[f"{code}M"]),
        }))

    estimates = (
        pd.concat(long_frames, ignore_index=True)
        .sort_values("geoid", kind="stable")
        .reset_index(drop=True)
    )

    log_step_end(logger, "fetch_acs_estimates", row_count=len(estimates),
                 tract_count=int(raw["geoid"].nunique()))
    return estimates[TRACT_COLUMNS]


def fetch_tract_boundaries(
    url_template: str,
    year: int,
    state_fips: str,
    county_fips: list[str],
    logger: logging.Logger | None = None,
) -> gpd.GeoDataFrame:
    """
    Read cartographic boundary tract polygons for the requested counties.

    Returns:
        GeoDataFrame with geoid and geometry in the source CRS.

    Raises:
        DataUnavailableError: If the boundary file cannot be read or holds
            no tracts for the counties.
    """
    logger = logger or logger_default
    url = url_template.format(year=year, state=state_fips)
    log_step_start(logger, "fetch_tract_boundaries", url=url)

    try:
        boundaries = gpd.read_file(url)
    except Exception as e:
        raise DataUnavailableError(BOUNDARY_SOURCE, f"cannot read {url}: {e}") from e

    boundaries = boundaries[boundaries["COUNTYFP"].isin(county_fips)]
    if boundaries.empty:
        raise DataUnavailableError(
            BOUNDARY_SOURCE, f"no tracts for counties {county_fips} in {url}"
        )

    boundaries = boundaries.rename(columns={"GEOID": "geoid"})[["geoid", "geometry"]]
    log_step_end(logger, "fetch_tract_boundaries", tract_count=len(boundaries))
    return boundaries.reset_index(drop=True)


def reproject_to_canonical(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """
    Return a copy of gdf in EPSG:4326 (longitude/latitude).

    Already-canonical input is returned unchanged (as a copy).

    Raises:
        ValueError: If gdf has no CRS.
    """
    if gdf.crs is None:
        raise ValueError("Cannot reproject a GeoDataFrame without a CRS")
    if gdf.crs.to_epsg() == CANONICAL_EPSG:
        return gdf.copy()
    return gdf.to_crs(epsg=CANONICAL_EPSG)


def join_tract_geometry(
    estimates: pd.DataFrame,
    boundaries: gpd.GeoDataFrame,
    logger: logging.Logger | None = None,
) -> gpd.GeoDataFrame:
    """
    Attach tract polygons to estimates.

    Estimates for tracts absent from the boundary file are dropped and
    logged, so every returned row has a geometry.
    """
    logger = logger or logger_default

    unmatched = sorted(set(estimates["geoid"]) - set(boundaries["geoid"]))
    log_records_skipped(logger, "no tract boundary", unmatched)

    merged = estimates.merge(boundaries, on="geoid", how="inner")
    return gpd.GeoDataFrame(merged, geometry="geometry", crs=boundaries.crs)


def fetch_tracts(
    config: CensusConfig,
    session: requests.Session | None = None,
    logger: logging.Logger | None = None,
) -> gpd.GeoDataFrame:
    """
    Fetch every configured variable for every configured county.

    Returns:
        GeoDataFrame validated against SCHEMA_TRACT_ESTIMATES, in EPSG:4326.
    """
    logger = logger or logger_default

    estimates = fetch_acs_estimates(
        config.all_variables,
        config.counties,
        config.year,
        state_fips=config.state_fips,
        dataset=config.dataset,
        api_base=config.api_base,
        api_key=config.api_key,
        timeout=config.timeout_seconds,
        session=session,
        logger=logger,
    )
    boundaries = fetch_tract_boundaries(
        config.boundary_url,
        config.year,
        config.state_fips,
        list(config.counties.values()),
        logger=logger,
    )

    tracts = reproject_to_canonical(join_tract_geometry(estimates, boundaries, logger))
    validate_geodataframe(tracts, SCHEMA_TRACT_ESTIMATES)
    run_geo_qa_checks(tracts, ["geoid", "variable"], logger=logger)

    logger.info(f"Loaded {tracts['geoid'].nunique()} tracts x "
                f"{tracts['variable'].nunique()} variables")
    return tracts
