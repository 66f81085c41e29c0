"""
Schema validation for pipeline tables.

Each stage validates the frame it hands downstream. Schema drift (a renamed
column in the DEC export, a missing ACS field) is a hard failure.
"""

from dataclasses import dataclass

import pandas as pd


class SchemaValidationError(Exception):
    """Raised when data does not conform to expected schema."""
    pass


@dataclass
class ColumnSpec:
    """Specification for a single column."""
    name: str
    dtype: str  # pandas dtype string ("object", "float64", "int64", "geometry")
    required: bool = True
    nullable: bool = False
    description: str = ""


@dataclass
class TableSchema:
    """Schema definition for a table."""
    name: str
    description: str
    columns: list[ColumnSpec]

    def required_columns(self) -> list[str]:
        return [c.name for c in self.columns if c.required]

    def all_columns(self) -> list[str]:
        return [c.name for c in self.columns]


# =============================================================================
# Schema definitions
# =============================================================================

SCHEMA_TRACT_ESTIMATES = TableSchema(
    name="tract_estimates",
    description="ACS estimates in long format, one row per tract and variable",
    columns=[
        ColumnSpec("geoid", "object", description="11-digit tract GEOID"),
        ColumnSpec("name", "object", nullable=True,
                   description="Census tract name"),
        ColumnSpec("variable", "object",
                   description="Variable label (e.g. 'White')"),
        ColumnSpec("estimate", "float64", nullable=True,
                   description="ACS estimate; null for suppressed values"),
        ColumnSpec("moe", "float64", nullable=True,
                   description="90% margin of error"),
        ColumnSpec("geometry", "geometry", description="Tract polygon"),
    ]
)

SCHEMA_SITE_RECORDS = TableSchema(
    name="site_records",
    description="Normalized DEC environmental remediation site records",
    columns=[
        ColumnSpec("program_number", "object", nullable=True),
        ColumnSpec("program_type", "object", nullable=True),
        ColumnSpec("facility_name", "object", nullable=True),
        ColumnSpec("site_class", "object", nullable=True),
        ColumnSpec("address", "object", nullable=True),
        ColumnSpec("locality", "object", nullable=True),
        ColumnSpec("county", "object", nullable=True),
        ColumnSpec("zip_code", "object", nullable=True),
        ColumnSpec("dec_region", "object", nullable=True),
        ColumnSpec("latitude", "object", nullable=True,
                   description="Raw latitude text; parsed when geometry is attached"),
        ColumnSpec("longitude", "object", nullable=True),
    ]
)

SCHEMA_MAJORITY_TALLY = TableSchema(
    name="majority_tally",
    description="Tract counts per plurality race/ethnicity category",
    columns=[
        ColumnSpec("category", "object"),
        ColumnSpec("tract_count", "int64"),
    ]
)

SCHEMA_REGISTRY: dict[str, TableSchema] = {
    "tract_estimates": SCHEMA_TRACT_ESTIMATES,
    "site_records": SCHEMA_SITE_RECORDS,
    "majority_tally": SCHEMA_MAJORITY_TALLY,
}


# =============================================================================
# Validation functions
# =============================================================================

def get_schema(name: str) -> TableSchema:
    """
    Get a schema by name from the registry.

    Raises:
        ValueError: If schema not found.
    """
    if name not in SCHEMA_REGISTRY:
        raise ValueError(f"Unknown schema: {name}. Available: {list(SCHEMA_REGISTRY.keys())}")
    return SCHEMA_REGISTRY[name]


def _dtype_compatible(expected: str, actual: str) -> bool:
    if expected == "object":
        return actual in ("object", "string", "str", "category")
    if expected == "int64":
        return actual in ("int64", "int32", "Int64", "Int32")
    if expected == "float64":
        return actual in ("float64", "float32", "Float64", "int64", "Int64")
    return expected == actual


def validate_schema(
    df: pd.DataFrame,
    schema: TableSchema | str,
    strict: bool = False,
) -> list[str]:
    """
    Validate a DataFrame against a schema.

    Args:
        df: DataFrame to validate.
        schema: TableSchema object or schema name from registry.
        strict: If True, fail on extra columns not in schema.

    Returns:
        Empty list when valid.

    Raises:
        SchemaValidationError: If validation fails.
    """
    if isinstance(schema, str):
        schema = get_schema(schema)

    errors = []

    for col in schema.columns:
        if col.required and col.name not in df.columns:
            errors.append(f"Missing required column: {col.name}")

    if strict:
        extra_cols = set(df.columns) - set(schema.all_columns())
        if extra_cols:
            errors.append(f"Unexpected columns: {sorted(extra_cols)}")

    for col in schema.columns:
        if col.name not in df.columns:
            continue

        series = df[col.name]

        if not col.nullable and series.isna().any():
            errors.append(
                f"Column '{col.name}' has {series.isna().sum()} null values but is not nullable"
            )

        # geometry columns are checked by validate_geodataframe
        if col.dtype != "geometry":
            actual_dtype = str(series.dtype)
            if not _dtype_compatible(col.dtype, actual_dtype):
                errors.append(
                    f"Column '{col.name}' has dtype '{actual_dtype}', expected '{col.dtype}'"
                )

    if errors:
        raise SchemaValidationError(
            f"Schema validation failed for '{schema.name}':\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    return errors


def validate_geodataframe(
    gdf: pd.DataFrame,
    schema: TableSchema | str,
    expected_epsg: int = 4326,
) -> list[str]:
    """
    Validate a GeoDataFrame against a schema, its CRS and its geometries.

    Raises:
        SchemaValidationError: If validation fails.
    """
    import geopandas as gpd

    if not isinstance(gdf, gpd.GeoDataFrame):
        raise SchemaValidationError("Expected GeoDataFrame but got DataFrame")

    errors = []

    if gdf.crs is None:
        errors.append("GeoDataFrame has no CRS defined")
    elif gdf.crs.to_epsg() != expected_epsg:
        errors.append(f"CRS mismatch: got {gdf.crs}, expected EPSG:{expected_epsg}")

    if gdf.geometry.isna().any():
        errors.append(f"GeoDataFrame has {gdf.geometry.isna().sum()} null geometries")
    elif gdf.geometry.is_empty.any():
        errors.append(f"GeoDataFrame has {gdf.geometry.is_empty.sum()} empty geometries")

    try:
        validate_schema(gdf, schema)
    except SchemaValidationError as e:
        errors.extend(line.strip()[2:] for line in str(e).split("\n")[1:])

    if errors:
        raise SchemaValidationError(
            "GeoDataFrame validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )

    return errors
