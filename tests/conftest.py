"""
Pytest configuration and shared fixtures.

Network access is never used: Census and DEC responses are served by
FakeSession, and boundary files by monkeypatching geopandas.read_file.
"""

import json
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
import requests
from shapely.geometry import box


# =============================================================================
# Fake HTTP
# =============================================================================

class FakeResponse:
    """Just enough of requests.Response for the fetchers."""

    def __init__(self, payload=None, status_code=200, text=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.content = text.encode("utf-8")

    def json(self):
        return json.loads(self.text)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error", response=self)


class FakeSession:
    """
    Records GET calls and answers them with `responder(url, params)`,
    which returns a FakeResponse or raises.
    """

    def __init__(self, responder):
        self.responder = responder
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        return self.responder(url, params)


@pytest.fixture
def fake_session_factory():
    return FakeSession


@pytest.fixture
def fake_response_factory():
    return FakeResponse


# =============================================================================
# Config
# =============================================================================

@pytest.fixture(scope="session")
def atlas_config():
    """Configuration parsed from the repository's configs/params.yml."""
    from ej_atlas.config import load_config
    return load_config()


@pytest.fixture
def race_categories():
    return ["White", "Black", "Asian", "Hispanic"]


# =============================================================================
# Tracts
# =============================================================================

TRACT_BOXES = {
    "36005000100": box(-73.91, 40.83, -73.90, 40.84),
    "36005000200": box(-73.90, 40.83, -73.89, 40.84),
    "36047000100": box(-73.96, 40.68, -73.95, 40.69),
    "36061000100": box(-73.99, 40.75, -73.98, 40.76),
}

TRACT_ESTIMATES = {
    # geoid: {variable: estimate}
    "36005000100": {"Median household income": 50000.0,
                    "White": 80.0, "Black": 20.0, "Asian": 0.0, "Hispanic": 0.0},
    "36005000200": {"Median household income": np.nan,
                    "White": 40.0, "Black": 40.0, "Asian": 5.0, "Hispanic": 10.0},
    "36047000100": {"Median household income": 70000.0,
                    "White": 0.0, "Black": 0.0, "Asian": 0.0, "Hispanic": 0.0},
    "36061000100": {"Median household income": 120000.0,
                    "White": np.nan, "Black": 50.0, "Asian": 100.0, "Hispanic": 300.0},
}


@pytest.fixture
def sample_tracts():
    """Long-format tract estimates with polygons in EPSG:4326."""
    rows = []
    for geoid, estimates in TRACT_ESTIMATES.items():
        for variable, estimate in estimates.items():
            rows.append({
                "geoid": geoid,
                "name": f"Census Tract {int(geoid[-6:]) / 100:g}",
                "variable": variable,
                "estimate": estimate,
                "moe": 10.0,
                "geometry": TRACT_BOXES[geoid],
            })
    return gpd.GeoDataFrame(rows, geometry="geometry", crs="EPSG:4326")


@pytest.fixture
def sample_boundaries():
    """Cartographic boundary file rows as read by geopandas (NAD83)."""
    return gpd.GeoDataFrame(
        {
            "STATEFP": ["36"] * 5,
            "COUNTYFP": ["005", "005", "047", "061", "081"],
            "GEOID": ["36005000100", "36005000200", "36047000100",
                      "36061000100", "36081000100"],
            "NAMELSAD": ["Census Tract 1", "Census Tract 2", "Census Tract 1",
                         "Census Tract 1", "Census Tract 1"],
        },
        geometry=[
            TRACT_BOXES["36005000100"],
            TRACT_BOXES["36005000200"],
            TRACT_BOXES["36047000100"],
            TRACT_BOXES["36061000100"],
            box(-73.80, 40.70, -73.79, 40.71),
        ],
        crs="EPSG:4269",
    )


# =============================================================================
# Sites
# =============================================================================

DEC_COLUMNS = [
    "Program Number", "Program Type", "Program Facility Name", "Site Class",
    "Address1", "Locality", "County", "ZIPCode", "DEC Region",
    "Latitude", "Longitude", "Waste Name",
]

DEC_ROWS = [
    ["P1", "HW", "Acme Plating", "02", "1 Main St", "Bronx", "Bronx", "10451", "2",
     "40.82", "-73.91", "lead"],
    # same site, different waste entry
    ["P1", "HW", "Acme Plating", "02", "1 Main St", "Bronx", "Bronx", "10451", "2",
     "40.82", "-73.91", "chromium"],
    ["P2", "BCP", "Old Gas Works", "C", "2 Front St", "Brooklyn", "Kings", "11201", "2",
     "40.69", "-73.99", "coal tar"],
    ["P3", "HW", "Queens Dump", "02", "3 Bay Rd", "Queens", "Queens", "11101", "2",
     "40.74", "-73.94", "solvents"],
    ["P4", "BCP", "Lowercase County", "A", "4 Elm St", "Brooklyn", "kings", "11211", "2",
     "40.71", "-73.95", "pcbs"],
    ["P5", "VCP", "No Coords Corp", "05", "5 Park Ave", "New York", "New York", "10016", "2",
     None, None, "petroleum"],
    ["P6", "HW", "Bad Coords", "N", "6 Canal St", "New York", "New York", "10013", "2",
     "abc", "-73.98", "mercury"],
    ["P7", "HW", "Delisted Lot", "D", "7 Grand Concourse", "Bronx", "Bronx", "10451", "2",
     "40.83", "-73.92", "none"],
    ["P8", "ERP", "Zero Island", "A", "8 Nowhere", "Bronx", "Bronx", "10454", "2",
     "0", "0", "arsenic"],
    ["P9", "BCP", "Padded Class", " 04 ", "9 Hudson St", "New York", "New York", "10014", "2",
     "40.73", "-74.01", "benzene"],
]


@pytest.fixture
def raw_sites():
    """Statewide DEC export rows (with headers as published)."""
    return pd.DataFrame(DEC_ROWS, columns=DEC_COLUMNS)


@pytest.fixture
def raw_sites_csv(raw_sites):
    return raw_sites.to_csv(index=False)


@pytest.fixture
def counties():
    return ["Bronx", "Kings", "New York"]


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "smoke: mark test as smoke test (quick sanity checks)"
    )
