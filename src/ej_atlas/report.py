"""
Report artifacts.

Writes the two tables, the two maps, a README and a JSON summary of the run:

    reports/tables/majority_race_tally.csv / .md
    reports/tables/remediation_sites.csv / .html   (sortable, searchable)
    reports/maps/demographic_map.html
    reports/maps/site_map.html
    reports/README.md
    reports/run_summary.json                         (counts, for diffing runs)
"""

import html
import logging
from datetime import datetime, timezone
from pathlib import Path

import folium
import pandas as pd
import requests

from ej_atlas.census import fetch_tracts
from ej_atlas.config import AtlasConfig
from ej_atlas.io_utils import (
    atomic_write_csv, atomic_write_json, atomic_write_map, atomic_write_text, clean_tmp_files
)
from ej_atlas.logging_utils import (
    get_run_id, log_output_written, log_step_end, log_step_start
)
from ej_atlas.maps import build_demographic_map, build_site_map, feature_groups
from ej_atlas.paths import paths
from ej_atlas.records import MajorityTally
from ej_atlas.sites import load_sites
from ej_atlas.tabulate import majority_tally, site_display_table, tally_records


DATATABLES_CSS = "https://cdn.datatables.net/1.13.8/css/jquery.dataTables.min.css"
DATATABLES_JS = "https://cdn.datatables.net/1.13.8/js/jquery.dataTables.min.js"
JQUERY_JS = "https://code.jquery.com/jquery-3.7.1.min.js"


def render_summary_table(tallies: list[MajorityTally]) -> str:
    """Markdown table of tract counts per plurality category."""
    lines = [
        "| Race/ethnicity | Tracts |",
        "|----------------|--------|",
    ]
    lines.extend(f"| {t.category} | {t.tract_count:,} |" for t in tallies)
    return "\n".join(lines) + "\n"


def render_sites_html(display: pd.DataFrame, title: str) -> str:
    """Standalone HTML page with the site table as a DataTables table."""
    table_html = display.to_html(
        index=False, table_id="sites", classes="display compact", na_rep="", escape=True,
        border=0,
    )
    return "\n".join([
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{html.escape(title)}</title>",
        f'<link rel="stylesheet" href="{DATATABLES_CSS}">',
        f'<script src="{JQUERY_JS}"></script>',
        f'<script src="{DATATABLES_JS}"></script>',
        "</head>",
        "<body>",
        f"<h2>{html.escape(title)}</h2>",
        table_html,
        "<script>$(function () { $('#sites').DataTable({pageLength: 25}); });</script>",
        "</body>",
        "</html>",
        "",
    ])


def render_readme(
    config: AtlasConfig,
    tallies: list[MajorityTally],
    site_counts: dict[str, int],
    table_rows: int,
    point_rows: int,
    tract_count: int,
) -> str:
    counties = ", ".join(config.counties)
    lines = [
        "# NYC Environmental Justice Atlas",
        "",
        f"Generated: {datetime.now(timezone.utc).isoformat()}",
        "",
        "## Overview",
        "",
        f"ACS {config.census.year} ({config.census.dataset}) tract estimates and NYS DEC "
        f"environmental remediation sites for {counties}.",
        "",
        f"- **{tract_count:,}** census tracts",
        f"- **{site_counts.get('hazardous', 0):,}** hazardous sites",
        f"- **{site_counts.get('remediated', 0):,}** remediated sites",
        f"- **{table_rows - point_rows:,}** sites listed without usable coordinates "
        "(in the site table, not on the map)",
        "",
        "## Plurality race/ethnicity by tract",
        "",
    ]
    if tallies:
        lines.append(render_summary_table(tallies))
        if config.ties == "all":
            lines.append("Tracts where categories tie are counted under each tied category.")
    else:
        lines.append("No tract has a plurality category.")
    lines.extend([
        "",
        "## Files",
        "",
        "| File | Description |",
        "|------|-------------|",
        "| `tables/majority_race_tally.csv` | Tract counts per plurality category |",
        "| `tables/remediation_sites.html` | Searchable table of remediation sites |",
        "| `tables/remediation_sites.csv` | Same table as CSV |",
        "| `maps/demographic_map.html` | Income and race/ethnicity choropleths |",
        "| `maps/site_map.html` | Hazardous and remediated sites over income |",
        "",
        "## Sources",
        "",
        "- U.S. Census Bureau, American Community Survey 5-year estimates",
        "- NYS Department of Environmental Conservation, Environmental Remediation Sites",
        "",
    ])
    return "\n".join(lines)


def run_summary(
    config: AtlasConfig,
    tallies: list[MajorityTally],
    site_counts: dict[str, int],
    table_rows: int,
    point_rows: int,
    tract_count: int,
) -> dict:
    return {
        "run_id": get_run_id(),
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "acs_year": config.census.year,
        "acs_dataset": config.census.dataset,
        "counties": config.counties,
        "ties": config.ties,
        "tract_count": tract_count,
        "majority_tally": {t.category: t.tract_count for t in tallies},
        "site_counts": site_counts,
        "site_table_rows": table_rows,
        "site_point_rows": point_rows,
    }


def write_report(
    config: AtlasConfig,
    tally: pd.DataFrame,
    display: pd.DataFrame,
    demographic_map: folium.Map,
    site_map: folium.Map,
    site_counts: dict[str, int],
    point_rows: int,
    tract_count: int,
    logger: logging.Logger,
    output_dir: Path | None = None,
) -> dict[str, Path]:
    """Write every report artifact atomically; return name -> path."""
    output_dir = Path(output_dir or paths.reports)
    tables_dir = output_dir / "tables"
    maps_dir = output_dir / "maps"
    for directory in (tables_dir, maps_dir):
        clean_tmp_files(directory)

    tallies = tally_records(tally)
    written = {
        "tally_csv": atomic_write_csv(tables_dir / "majority_race_tally.csv", tally),
        "tally_md": atomic_write_text(tables_dir / "majority_race_tally.md",
                                      render_summary_table(tallies)),
        "sites_csv": atomic_write_csv(tables_dir / "remediation_sites.csv", display),
        "sites_html": atomic_write_text(
            tables_dir / "remediation_sites.html",
            render_sites_html(display, f"Environmental remediation sites: "
                                       f"{', '.join(config.counties)}"),
        ),
        "demographic_map": atomic_write_map(maps_dir / "demographic_map.html", demographic_map),
        "site_map": atomic_write_map(maps_dir / "site_map.html", site_map),
        "readme": atomic_write_text(
            output_dir / "README.md",
            render_readme(config, tallies, site_counts, len(display), point_rows, tract_count),
        ),
        "summary_json": atomic_write_json(
            output_dir / "run_summary.json",
            run_summary(config, tallies, site_counts, len(display), point_rows, tract_count),
        ),
    }

    row_counts = {"tally_csv": len(tally), "sites_csv": len(display), "sites_html": len(display)}
    for name, path in written.items():
        log_output_written(logger, path, row_count=row_counts.get(name))

    return written


def run_report(
    config: AtlasConfig,
    logger: logging.Logger,
    session: requests.Session | None = None,
    output_dir: Path | None = None,
) -> dict[str, Path]:
    """
    Fetch both sources, build tables and maps, and write the report.

    Raises:
        DataUnavailableError: If either upstream source is unavailable.
    """
    log_step_start(logger, "run_report")

    tracts = fetch_tracts(config.census, session=session, logger=logger)
    sites = load_sites(config.sites.url, config.counties,
                       timeout=config.sites.timeout_seconds, session=session, logger=logger)

    tally = majority_tally(tracts, config.census.race_categories, ties=config.ties)
    display = site_display_table(sites.table, config.sites.display_columns)
    logger.info(f"Majority tally: {dict(zip(tally['category'], tally['tract_count']))}")

    demographic_map = build_demographic_map(tracts, config.census, config.maps)
    site_map = build_site_map(tracts, sites.points, config.census, config.maps)
    for name, group in feature_groups(site_map).items():
        logger.debug(f"Site map layer '{name}': {len(group._children)} elements")

    written = write_report(
        config,
        tally,
        display,
        demographic_map,
        site_map,
        site_counts=sites.category_counts(),
        point_rows=len(sites.points),
        tract_count=int(tracts["geoid"].nunique()),
        logger=logger,
        output_dir=output_dir,
    )

    log_step_end(logger, "run_report", outputs=len(written))
    return written
