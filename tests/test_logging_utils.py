"""
Tests for ej_atlas.logging_utils.

Tests cover:
- Run ID format
- JSONL file output with event types and context
- Skipped-record warnings
"""

import json
import logging
import re

import pytest

from ej_atlas.logging_utils import (
    generate_run_id,
    get_logger,
    log_output_written,
    log_qa_check,
    log_records_skipped,
    log_source_unavailable,
    log_step_start,
)


def _entries(log_dir):
    (log_file,) = log_dir.glob("*.jsonl")
    return [json.loads(line) for line in log_file.read_text().splitlines()]


@pytest.fixture
def run_logger(tmp_path):
    logger = get_logger("test_logging", run_id=generate_run_id(), log_dir=tmp_path)
    yield logger
    for handler in logger.handlers:
        handler.close()


class TestRunId:

    def test_format(self):
        assert re.fullmatch(r"\d{8}_\d{6}_[0-9a-f]{8}", generate_run_id())

    def test_unique(self):
        assert generate_run_id() != generate_run_id()


class TestJsonlLogging:

    def test_file_named_after_script_and_run(self, run_logger, tmp_path):
        (log_file,) = tmp_path.glob("*.jsonl")
        assert log_file.name.startswith("test_logging_")

    def test_logger_is_reused(self, run_logger, tmp_path):
        run_id = _entries(tmp_path)[0]["run_id"]
        assert get_logger("test_logging", run_id=run_id, log_dir=tmp_path) is run_logger

    def test_step_event(self, run_logger, tmp_path):
        log_step_start(run_logger, "fetch", year=2022)
        entry = _entries(tmp_path)[-1]
        assert entry["event_type"] == "step_start"
        assert entry["context"] == {"step_name": "fetch", "year": 2022}
        assert entry["message"] == "Starting: fetch"

    def test_failed_qa_check_is_error(self, run_logger, tmp_path):
        log_qa_check(run_logger, "unique_keys", False, "Found 2 duplicate keys")
        entry = _entries(tmp_path)[-1]
        assert entry["level"] == "ERROR"
        assert entry["context"]["passed"] is False

    def test_output_written(self, run_logger, tmp_path):
        log_output_written(run_logger, tmp_path / "out.csv", row_count=1200)
        entry = _entries(tmp_path)[-1]
        assert "1,200 rows" in entry["message"]

    def test_exception_recorded(self, run_logger, tmp_path):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            run_logger.exception("Pipeline failed")
        entry = _entries(tmp_path)[-1]
        assert "RuntimeError: boom" in entry["exception"]

    def test_source_unavailable(self, run_logger, tmp_path):
        from ej_atlas.errors import DataUnavailableError

        try:
            raise DataUnavailableError("census_acs", "no data returned")
        except DataUnavailableError as e:
            log_source_unavailable(run_logger, e.source, e)
        entry = _entries(tmp_path)[-1]
        assert entry["level"] == "ERROR"
        assert entry["event_type"] == "source_unavailable"
        assert entry["context"] == {"source": "census_acs"}
        assert "DataUnavailableError" in entry["exception"]


class TestRecordsSkipped:

    def test_warning_lists_ids(self, caplog):
        logger = logging.getLogger("ej_atlas.test")
        with caplog.at_level(logging.WARNING, logger="ej_atlas.test"):
            log_records_skipped(logger, "malformed coordinates", ["P5", "P6"])
        (record,) = caplog.records
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "Skipped 2 records (malformed coordinates): P5, P6"
        assert record.event_type == "records_skipped"
        assert record.context["record_ids"] == ["P5", "P6"]

    def test_nothing_logged_without_ids(self, caplog):
        logger = logging.getLogger("ej_atlas.test")
        with caplog.at_level(logging.WARNING, logger="ej_atlas.test"):
            log_records_skipped(logger, "malformed coordinates", [])
        assert caplog.records == []

    def test_long_lists_are_truncated(self, caplog):
        logger = logging.getLogger("ej_atlas.test")
        with caplog.at_level(logging.WARNING, logger="ej_atlas.test"):
            log_records_skipped(logger, "no tract boundary", range(25))
        message = caplog.records[0].getMessage()
        assert message.startswith("Skipped 25 records")
        assert message.endswith("19, ...")
        assert len(caplog.records[0].context["record_ids"]) == 25
