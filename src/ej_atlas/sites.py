"""
NYS DEC environmental remediation sites.

The statewide export lists one row per site and per waste/control entry, so
the same site repeats many times. Loading runs four steps in order:

    1. deduplicate on the identifying column tuple
    2. classify each site class code as hazardous, remediated or excluded
    3. keep the configured counties (exact, case-sensitive match)
    4. attach point geometry from the latitude/longitude fields

Records with missing or malformed coordinates are kept in the site table but
left out of the point layer; each such skip is logged as a warning.
"""

import io
import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable

import geopandas as gpd
import pandas as pd
import requests

from ej_atlas.errors import DataUnavailableError
from ej_atlas.logging_utils import log_records_skipped, log_step_end, log_step_start
from ej_atlas.qa import check_bounds_nyc
from ej_atlas.records import (
    HAZARDOUS_SITE_CLASSES,
    REMEDIATED_SITE_CLASSES,
    SiteCategory,
    SiteRecord,
)
from ej_atlas.schemas import SCHEMA_SITE_RECORDS, validate_schema


SITES_SOURCE = "dec_remediation_sites"

# DEC export header -> normalized column
SOURCE_COLUMN_MAP = {
    "Program Number": "program_number",
    "Program Type": "program_type",
    "Program Facility Name": "facility_name",
    "Site Class": "site_class",
    "Address1": "address",
    "Locality": "locality",
    "County": "county",
    "ZIPCode": "zip_code",
    "DEC Region": "dec_region",
    "Latitude": "latitude",
    "Longitude": "longitude",
}

# Rows identical on these columns describe the same site
DEDUP_COLUMNS = [
    "program_type",
    "facility_name",
    "site_class",
    "address",
    "locality",
    "county",
    "zip_code",
    "dec_region",
    "latitude",
    "longitude",
]

logger_default = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemediationSites:
    """Classified sites for the counties of interest."""
    table: pd.DataFrame
    points: gpd.GeoDataFrame

    def records(self) -> list[SiteRecord]:
        return [SiteRecord.from_row(row) for row in self.table.to_dict("records")]

    def category_counts(self) -> dict[str, int]:
        counts = self.table["category"].value_counts()
        return {c.value: int(counts.get(c.value, 0))
                for c in (SiteCategory.HAZARDOUS, SiteCategory.REMEDIATED)}


# =============================================================================
# Download and normalization
# =============================================================================

def download_sites(
    url: str,
    timeout: float = 120,
    session: requests.Session | None = None,
) -> pd.DataFrame:
    """
    Download the statewide remediation CSV with every column read as text.

    Raises:
        DataUnavailableError: If the request fails or the file has no rows.
    """
    http = session or requests
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise DataUnavailableError(SITES_SOURCE, f"request failed: {e}") from e

    try:
        df = pd.read_csv(io.StringIO(response.text), dtype=str)
    except pd.errors.EmptyDataError as e:
        raise DataUnavailableError(SITES_SOURCE, "downloaded file is empty") from e

    if df.empty:
        raise DataUnavailableError(SITES_SOURCE, "downloaded file has no rows")
    return df


def normalize_site_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename DEC headers to normalized names and drop unused columns.

    Raises:
        SchemaValidationError: If a required column is missing.
    """
    normalized = df.rename(columns=SOURCE_COLUMN_MAP)
    normalized = normalized[[c for c in SCHEMA_SITE_RECORDS.all_columns()
                             if c in normalized.columns]]
    validate_schema(normalized, SCHEMA_SITE_RECORDS)
    return normalized.reset_index(drop=True)


# =============================================================================
# Pipeline steps
# =============================================================================

def deduplicate_sites(df: pd.DataFrame) -> pd.DataFrame:
    """Keep the first row of every group identical on DEDUP_COLUMNS."""
    return df.drop_duplicates(subset=DEDUP_COLUMNS, keep="first").reset_index(drop=True)


def classify_site_class(code: Any) -> SiteCategory:
    """
    Map a DEC site class code to its category.

    Surrounding whitespace is ignored; anything outside the hazardous and
    remediated code sets (including blanks) is excluded.
    """
    if code is None or (isinstance(code, float) and math.isnan(code)):
        return SiteCategory.EXCLUDED

    code = str(code).strip()
    if code in HAZARDOUS_SITE_CLASSES:
        return SiteCategory.HAZARDOUS
    if code in REMEDIATED_SITE_CLASSES:
        return SiteCategory.REMEDIATED
    return SiteCategory.EXCLUDED


def classify_sites(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of df with a category column."""
    return df.assign(category=[classify_site_class(c).value for c in df["site_class"]])


def filter_counties(df: pd.DataFrame, counties: Iterable[str]) -> pd.DataFrame:
    """Keep rows whose county exactly matches one of counties."""
    return df[df["county"].isin(list(counties))].reset_index(drop=True)


def valid_coordinate_mask(df: pd.DataFrame) -> pd.Series:
    """
    True where latitude and longitude parse as numbers within range.

    (0, 0) is treated as a placeholder, not a location.
    """
    lat = pd.to_numeric(df["latitude"], errors="coerce")
    lon = pd.to_numeric(df["longitude"], errors="coerce")
    return (
        lat.between(-90, 90)
        & lon.between(-180, 180)
        & ~((lat == 0) & (lon == 0))
    )


def attach_point_geometry(
    df: pd.DataFrame,
    logger: logging.Logger | None = None,
) -> gpd.GeoDataFrame:
    """
    Build EPSG:4326 points for records with valid coordinates.

    Records with missing or malformed coordinates are skipped and logged.
    """
    logger = logger or logger_default
    valid = valid_coordinate_mask(df)

    log_records_skipped(logger, "missing or malformed coordinates",
                        df.loc[~valid, "program_number"].fillna("<no program number>"))

    located = df[valid].copy()
    located["latitude"] = pd.to_numeric(located["latitude"]).astype("float64")
    located["longitude"] = pd.to_numeric(located["longitude"]).astype("float64")

    return gpd.GeoDataFrame(
        located,
        geometry=gpd.points_from_xy(located["longitude"], located["latitude"]),
        crs="EPSG:4326",
    ).reset_index(drop=True)


def prepare_sites(
    raw: pd.DataFrame,
    counties: Iterable[str],
    logger: logging.Logger | None = None,
) -> RemediationSites:
    """Run normalization, dedup, classification, county filter and geometry."""
    logger = logger or logger_default
    counties = list(counties)
    log_step_start(logger, "prepare_sites", input_rows=len(raw), counties=counties)

    sites = normalize_site_columns(raw)
    deduped = deduplicate_sites(sites)
    logger.info(f"Deduplicated {len(sites):,} rows to {len(deduped):,} sites")

    classified = filter_counties(classify_sites(deduped), counties)
    category_counts = classified["category"].value_counts().to_dict()
    logger.info(f"Sites in {counties}: {category_counts}")

    table = classified[classified["category"] != SiteCategory.EXCLUDED.value]
    table = table.reset_index(drop=True)

    points = attach_point_geometry(table, logger)
    check_bounds_nyc(points, logger=logger)

    log_step_end(logger, "prepare_sites", table_rows=len(table), point_rows=len(points))
    return RemediationSites(table=table, points=points)


def load_sites(
    url: str,
    counties: Iterable[str],
    timeout: float = 120,
    session: requests.Session | None = None,
    logger: logging.Logger | None = None,
) -> RemediationSites:
    """Download and prepare the remediation sites for the given counties."""
    logger = logger or logger_default
    logger.info("Downloading DEC remediation sites...")
    raw = download_sites(url, timeout=timeout, session=session)
    logger.info(f"  Got {len(raw):,} rows")
    return prepare_sites(raw, counties, logger)
