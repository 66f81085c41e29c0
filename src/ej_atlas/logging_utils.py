"""
Run logging: console lines plus a JSONL event file per render.

A render gets one run id (``YYYYMMDD_HHMMSS_<8 hex>``). Console output is
human-readable; the JSONL file under logs/ holds one object per record with
the run id, level, logger, message and, for pipeline events, an
``event_type`` and ``context`` dict:

    step_start / step_end     a pipeline step began or finished
    qa_check                  a QA check result (failures at ERROR)
    records_skipped           per-record drops (bad coordinates, unmatched tracts)
    source_unavailable        an upstream source failed; the render stops
    output_written            a report artifact was written
"""

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from ej_atlas.paths import paths, ensure_dir


CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# IDs shown inline in a records_skipped message; the JSONL context has all
SKIPPED_ID_SAMPLE = 20


# =============================================================================
# Run ID
# =============================================================================

_current_run_id: str | None = None


def generate_run_id() -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{stamp}_{uuid.uuid4().hex[:8]}"


def get_run_id() -> str:
    """Run ID of the current render, created on first use."""
    global _current_run_id
    if _current_run_id is None:
        _current_run_id = generate_run_id()
    return _current_run_id


def set_run_id(run_id: str) -> None:
    global _current_run_id
    _current_run_id = run_id


# =============================================================================
# JSONL output
# =============================================================================

def record_to_entry(record: logging.LogRecord, run_id: str) -> dict[str, Any]:
    """JSON-serializable view of a log record."""
    entry = {
        "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
        "run_id": run_id,
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    for attr in ("event_type", "context"):
        if hasattr(record, attr):
            entry[attr] = getattr(record, attr)
    return entry


class JSONLHandler(logging.Handler):
    """Appends one JSON line per record; the file is opened on first write."""

    def __init__(self, log_path: Path, run_id: str):
        super().__init__()
        self.log_path = Path(log_path)
        self.run_id = run_id
        self._stream = None

    def emit(self, record: logging.LogRecord):
        try:
            if self._stream is None:
                ensure_dir(self.log_path.parent)
                self._stream = self.log_path.open("a", encoding="utf-8")

            entry = record_to_entry(record, self.run_id)
            if record.exc_info:
                entry["exception"] = self.format(record)

            self._stream.write(json.dumps(entry, default=str) + "\n")
            self._stream.flush()
        except Exception:
            self.handleError(record)

    def close(self):
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        super().close()


# =============================================================================
# Logger setup
# =============================================================================

_run_loggers: dict[str, logging.Logger] = {}


def get_logger(
    script_name: str,
    run_id: str | None = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    log_dir: Path | None = None,
) -> logging.Logger:
    """
    Logger for one script run, writing to stdout and
    ``<log_dir>/<script_name>_<run_id>.jsonl``.

    Calling again with the same script and run id returns the same logger.
    Records do not propagate to the root logger.

    Args:
        script_name: Name of the running script (e.g. "render_report").
        run_id: Run ID to use; defaults to the current one.
        log_dir: Directory for the JSONL file; defaults to paths.logs.
    """
    if run_id is None:
        run_id = get_run_id()
    else:
        set_run_id(run_id)

    name = f"{script_name}_{run_id}"
    if name in _run_loggers:
        return _run_loggers[name]

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT))

    jsonl = JSONLHandler(Path(log_dir or paths.logs) / f"{name}.jsonl", run_id)
    jsonl.setLevel(file_level)

    logger = logging.getLogger(name)
    logger.setLevel(min(console_level, file_level))
    logger.propagate = False
    logger.handlers = [console, jsonl]
    _run_loggers[name] = logger

    log_event(logger, logging.INFO, f"Logging {script_name} run {run_id}",
              "logger_init", script_name=script_name, run_id=run_id,
              log_file=str(jsonl.log_path))
    return logger


# =============================================================================
# Pipeline events
# =============================================================================

def log_event(
    logger: logging.Logger,
    level: int,
    message: str,
    event_type: str,
    **context: Any
) -> None:
    logger.log(level, message, extra={"event_type": event_type, "context": context})


def log_step_start(logger: logging.Logger, step_name: str, **context: Any) -> None:
    log_event(logger, logging.INFO, f"Starting: {step_name}", "step_start",
              step_name=step_name, **context)


def log_step_end(logger: logging.Logger, step_name: str, **context: Any) -> None:
    log_event(logger, logging.INFO, f"Completed: {step_name}", "step_end",
              step_name=step_name, **context)


def log_qa_check(
    logger: logging.Logger,
    check_name: str,
    passed: bool,
    details: str | None = None,
    **context: Any
) -> None:
    """QA results are INFO when passed and ERROR when failed."""
    message = f"QA Check [{check_name}]: {'PASSED' if passed else 'FAILED'}"
    if details:
        message = f"{message} - {details}"
    log_event(logger, logging.INFO if passed else logging.ERROR, message, "qa_check",
              check_name=check_name, passed=passed, details=details, **context)


def log_records_skipped(
    logger: logging.Logger,
    reason: str,
    record_ids: Iterable[Any],
    **context: Any
) -> None:
    """
    Warn about records left out of an output for a per-record reason.

    Nothing is logged when record_ids is empty.
    """
    ids = [str(r) for r in record_ids]
    if not ids:
        return
    shown = ", ".join(ids[:SKIPPED_ID_SAMPLE])
    if len(ids) > SKIPPED_ID_SAMPLE:
        shown += ", ..."
    log_event(logger, logging.WARNING, f"Skipped {len(ids)} records ({reason}): {shown}",
              "records_skipped", reason=reason, count=len(ids), record_ids=ids, **context)


def log_source_unavailable(logger: logging.Logger, source: str, error: Exception) -> None:
    """Log an upstream failure, with traceback, at ERROR."""
    logger.error(f"Source unavailable [{source}]: {error}", exc_info=error,
                 extra={"event_type": "source_unavailable",
                        "context": {"source": source}})


def log_output_written(
    logger: logging.Logger,
    output_path: str | Path,
    row_count: int | None = None,
    **context: Any
) -> None:
    suffix = "" if row_count is None else f" ({row_count:,} rows)"
    log_event(logger, logging.INFO, f"Output written: {output_path}{suffix}",
              "output_written", output_path=str(output_path), row_count=row_count,
              **context)
