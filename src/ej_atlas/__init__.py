"""
NYC Environmental Justice Atlas

Joins ACS tract demographics with NYS DEC environmental-remediation sites
for the Bronx, Brooklyn (Kings) and Manhattan (New York) and renders the
tables and maps of the report.

Core modules:
    - paths: Canonical root and path resolution
    - config: params.yml loading and validation
    - logging_utils: JSONL structured logging
    - io_utils: Atomic writes and I/O helpers
    - schemas: Schema validation for pipeline tables
    - qa: Quality assurance checks (CRS, bounds, etc.)
    - census: ACS estimates and tract boundaries
    - sites: Remediation site loading and classification
    - tabulate: Majority tallies and display tables
    - maps: Folium choropleth and marker maps
    - report: Output artifacts
"""

__version__ = "0.1.0"
__author__ = "NYC Environmental Justice Atlas Team"
