"""
Quality assurance checks for tract polygons and site points.

Checks return QAResult objects and log through log_qa_check. A failed check
is reported, not raised, unless the caller asks for fail_on_error.
"""

import logging
from dataclasses import dataclass
from typing import Any

import geopandas as gpd
import pandas as pd

from ej_atlas.logging_utils import log_qa_check


# NYC bounding box (WGS84), slightly padded
NYC_BOUNDS = {
    "min_lon": -74.30,
    "max_lon": -73.65,
    "min_lat": 40.47,
    "max_lat": 40.95,
}

CANONICAL_EPSG = 4326


@dataclass
class QAResult:
    """Result of a QA check."""
    check_name: str
    passed: bool
    message: str
    details: dict[str, Any] | None = None

    def __bool__(self) -> bool:
        return self.passed


def _report(result: QAResult, logger: logging.Logger | None) -> QAResult:
    if logger:
        log_qa_check(logger, result.check_name, result.passed, result.message,
                     **(result.details or {}))
    return result


def check_crs(
    gdf: pd.DataFrame,
    expected_epsg: int = CANONICAL_EPSG,
    logger: logging.Logger | None = None,
) -> QAResult:
    """Check that a GeoDataFrame carries the expected CRS."""
    check_name = "crs_valid"

    if not isinstance(gdf, gpd.GeoDataFrame):
        result = QAResult(check_name, False, "Input is not a GeoDataFrame",
                          {"type": type(gdf).__name__})
    elif gdf.crs is None:
        result = QAResult(check_name, False, "GeoDataFrame has no CRS defined")
    else:
        actual_epsg = gdf.crs.to_epsg()
        result = QAResult(
            check_name,
            actual_epsg == expected_epsg,
            f"CRS is EPSG:{actual_epsg}, expected EPSG:{expected_epsg}",
            {"crs": str(gdf.crs)},
        )

    return _report(result, logger)


def check_bounds_nyc(
    gdf: pd.DataFrame,
    bounds: dict | None = None,
    tolerance: float = 0.01,
    logger: logging.Logger | None = None,
) -> QAResult:
    """Check that all geometries fall inside the NYC bounding box."""
    check_name = "bounds_nyc"
    bounds = bounds or NYC_BOUNDS

    if not isinstance(gdf, gpd.GeoDataFrame) or gdf.crs is None:
        result = QAResult(check_name, False, "Cannot check bounds: no CRS defined")
    elif gdf.empty:
        result = QAResult(check_name, True, "No geometries to check")
    else:
        gdf_wgs84 = gdf if gdf.crs.to_epsg() == 4326 else gdf.to_crs(epsg=4326)
        min_lon, min_lat, max_lon, max_lat = gdf_wgs84.total_bounds
        within = (
            min_lon >= bounds["min_lon"] - tolerance and
            max_lon <= bounds["max_lon"] + tolerance and
            min_lat >= bounds["min_lat"] - tolerance and
            max_lat <= bounds["max_lat"] + tolerance
        )
        result = QAResult(
            check_name,
            bool(within),
            "All geometries within NYC bounds" if within
            else "Some geometries outside NYC bounds",
            {"data_bounds": {"min_lon": float(min_lon), "min_lat": float(min_lat),
                             "max_lon": float(max_lon), "max_lat": float(max_lat)}},
        )

    return _report(result, logger)


def check_unique_keys(
    df: pd.DataFrame,
    key_columns: list[str],
    logger: logging.Logger | None = None,
) -> QAResult:
    """Check that the combination of key columns is unique."""
    check_name = "unique_keys"

    missing = [c for c in key_columns if c not in df.columns]
    if missing:
        result = QAResult(check_name, False, f"Key columns not found: {missing}")
    else:
        duplicated = int(df.duplicated(subset=key_columns).sum())
        result = QAResult(
            check_name,
            duplicated == 0,
            f"All {len(df)} keys are unique" if duplicated == 0
            else f"Found {duplicated} duplicate keys",
            {"key_columns": key_columns, "duplicates": duplicated},
        )

    return _report(result, logger)


def check_no_empty_geoms(
    gdf: pd.DataFrame,
    logger: logging.Logger | None = None,
) -> QAResult:
    """Check that there are no empty or null geometries."""
    check_name = "no_empty_geoms"

    if not isinstance(gdf, gpd.GeoDataFrame):
        result = QAResult(check_name, False, "Input is not a GeoDataFrame")
    else:
        empty_count = int(gdf.geometry.is_empty.sum())
        null_count = int(gdf.geometry.isna().sum())
        passed = empty_count == 0 and null_count == 0
        result = QAResult(
            check_name,
            passed,
            f"All {len(gdf)} geometries present" if passed
            else f"Found {empty_count} empty and {null_count} null geometries",
            {"total": len(gdf), "empty": empty_count, "null": null_count},
        )

    return _report(result, logger)


def run_geo_qa_checks(
    gdf: gpd.GeoDataFrame,
    key_columns: list[str],
    logger: logging.Logger | None = None,
    fail_on_error: bool = False,
) -> list[QAResult]:
    """
    Run CRS, bounds, key uniqueness and geometry checks.

    Raises:
        ValueError: If fail_on_error and any check fails.
    """
    results = [
        check_crs(gdf, logger=logger),
        check_bounds_nyc(gdf, logger=logger),
        check_unique_keys(gdf, key_columns, logger),
        check_no_empty_geoms(gdf, logger),
    ]

    if fail_on_error:
        failed = [r for r in results if not r.passed]
        if failed:
            messages = [f"{r.check_name}: {r.message}" for r in failed]
            raise ValueError("QA checks failed:\n" + "\n".join(messages))

    return results
