"""
Typed records for the entities passed between pipeline stages.

County names, site-class codes and site categories are declared here once;
config loading and site classification validate against these constants so
a misspelt county or code fails at load time rather than producing an
empty map layer.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


# =============================================================================
# Counties
# =============================================================================

NY_STATE_FIPS = "36"

# County names as they appear in the DEC remediation file, keyed to ACS
# county FIPS codes. Matching is exact and case-sensitive.
NYC_COUNTY_FIPS: dict[str, str] = {
    "Bronx": "005",
    "Kings": "047",
    "New York": "061",
    "Queens": "081",
    "Richmond": "085",
}


# =============================================================================
# Site classification
# =============================================================================

class SiteCategory(str, Enum):
    HAZARDOUS = "hazardous"
    REMEDIATED = "remediated"
    EXCLUDED = "excluded"


# DEC site-class codes
#   01  imminent danger            A   active remediation program site
#   02  significant threat         P   preliminary contamination data
#   03  no significant threat      PR  potential registry site
#   04  closed, continued mgmt     C   completed
#   05  closed, no further action  N   no further action
HAZARDOUS_SITE_CLASSES = frozenset({"01", "02", "03", "A", "P", "PR"})
REMEDIATED_SITE_CLASSES = frozenset({"04", "05", "C", "N"})


# =============================================================================
# Records
# =============================================================================

@dataclass(frozen=True)
class SiteRecord:
    """One deduplicated, classified remediation program entry."""
    program_number: str
    program_type: str
    facility_name: str
    site_class: str
    address: str
    locality: str
    county: str
    zip_code: str
    category: SiteCategory
    latitude: float | None = None
    longitude: float | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SiteRecord":
        """Build a record from a normalized site table row."""
        def text(key: str) -> str:
            value = row.get(key)
            if value is None or (isinstance(value, float) and math.isnan(value)):
                return ""
            return str(value)

        def number(key: str) -> float | None:
            value = row.get(key)
            try:
                value = float(value)
            except (TypeError, ValueError):
                return None
            return None if math.isnan(value) else value

        return cls(
            program_number=text("program_number"),
            program_type=text("program_type"),
            facility_name=text("facility_name"),
            site_class=text("site_class"),
            address=text("address"),
            locality=text("locality"),
            county=text("county"),
            zip_code=text("zip_code"),
            category=SiteCategory(row["category"]),
            latitude=number("latitude"),
            longitude=number("longitude"),
        )


@dataclass(frozen=True)
class MajorityTally:
    """Number of tracts where a race/ethnicity category holds the maximum estimate."""
    category: str
    tract_count: int
