#!/usr/bin/env python3
"""
render_report.py

Render the NYC Environmental Justice Atlas report.

Inputs:
    - configs/params.yml
    - Census Data API (ACS tract estimates), optional CENSUS_API_KEY
    - Census cartographic boundary tracts
    - NYS DEC environmental remediation sites CSV

Outputs:
    - reports/tables/majority_race_tally.{csv,md}
    - reports/tables/remediation_sites.{csv,html}
    - reports/maps/demographic_map.html
    - reports/maps/site_map.html
    - reports/README.md

Failure Modes:
    - Upstream source unavailable (fatal, no retry)
    - Schema drift in either source (fatal)
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import requests

from ej_atlas.config import load_config
from ej_atlas.errors import DataUnavailableError
from ej_atlas.logging_utils import get_logger, get_run_id, log_source_unavailable
from ej_atlas.report import run_report


SCRIPT_NAME = "render_report"


def main():
    """Main entry point."""
    run_id = get_run_id()
    logger = get_logger(SCRIPT_NAME, run_id)

    logger.info("=" * 60)
    logger.info(f"Starting {SCRIPT_NAME}")
    logger.info(f"Run ID: {run_id}")
    logger.info("=" * 60)

    try:
        config = load_config()
        logger.info(f"ACS {config.census.year}, counties: {config.counties}")
        if config.census.api_key is None:
            logger.info("CENSUS_API_KEY not set; using unauthenticated Census API requests")

        with requests.Session() as session:
            written = run_report(config, logger, session=session)

        logger.info("=" * 60)
        logger.info(f"✅ {SCRIPT_NAME} completed successfully")
        for path in written.values():
            logger.info(f"   {path}")
        logger.info("=" * 60)

        return 0

    except DataUnavailableError as e:
        log_source_unavailable(logger, e.source, e)
        return 1

    except Exception as e:
        logger.exception(f"Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
