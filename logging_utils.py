"""
Logging Utilities for the Thematic QA core

Provides run-level logging configuration for CLI runs, exception logging with
context, and the structured event sink that components receive at
construction instead of writing to module-level state.
"""

import json
import logging
import sys
import threading
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config import TQAConfig


def _run_header(inputs: Sequence[str], log_filename: str) -> List[str]:
    issues = TQAConfig.validate_config()
    errors = sum(1 for issue in issues if issue.startswith("ERROR:"))
    lines = [f"QC run over {len(inputs)} batch file(s)"]
    lines += [f"  [{index}] {path}" for index, path in enumerate(inputs, 1)]
    lines.append(
        f"Classifier rules: version {TQAConfig.CLASSIFIER_RULES_VERSION}, "
        f"{len(TQAConfig.CLASSIFIER_RULES)} row(s)"
    )
    lines.append(f"Config issues: {len(issues)} ({errors} error(s))")
    lines.append(f"Log: {log_filename}")
    return lines


def setup_run_logging(log_dir: str, inputs: Sequence[str]) -> Tuple[logging.Logger, str]:
    """
    Route every module logger to a per-run QC log file plus the console.

    The root logger is reconfigured: existing handlers are dropped, a DEBUG
    file handler and an INFO stdout handler are attached.

    Args:
        log_dir: Directory for ``qc_run_<timestamp>.log`` (created if missing)
        inputs: Batch file paths checked in this run, listed in the header

    Returns:
        Tuple of (run logger, log file path)
    """
    started = datetime.now()
    log_filename = f"qc_run_{started.strftime('%Y%m%d_%H%M%S')}.log"
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_file_path = str(Path(log_dir) / log_filename)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    file_handler = logging.FileHandler(log_file_path, mode='w', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)-7s %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    run_logger = logging.getLogger('tqa_run')
    run_logger.setLevel(logging.DEBUG)
    for line in _run_header(inputs, log_filename):
        run_logger.info(line)
    run_logger.debug("Run started at %s", started.isoformat())

    return run_logger, log_file_path


def log_exception(logger: logging.Logger, exc: Exception, context: str = "", **kwargs) -> None:
    """
    Log a full exception with traceback and context information.

    Args:
        logger: Logger instance to use
        exc: Exception that was raised
        context: Additional context string
        **kwargs: Additional context key-value pairs
    """
    error_msg = f"Exception occurred: {type(exc).__name__}: {str(exc)}"
    if context:
        error_msg = f"{context} - {error_msg}"

    logger.error(error_msg)
    logger.error(f"Traceback:\n{traceback.format_exc()}")

    if kwargs:
        logger.error(f"Context: {kwargs}")

    issues = getattr(exc, "issues", None)
    if issues:
        for issue in issues:
            logger.error(f"Issue: {issue}")


class EventSink:
    """
    Structured event recorder handed to each component at construction.

    Events are kept in memory in emission order and mirrored to a logger.
    Emission is lock protected so one sink can be shared by parallel
    verification workers.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.DEBUG):
        self._logger = logger or logging.getLogger("tqa_events")
        self._level = level
        self._events: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def emit(self, event: str, **fields: Any) -> None:
        record = {"event": event, **fields}
        with self._lock:
            self._events.append(record)
        if self._logger.isEnabledFor(self._level):
            self._logger.log(
                self._level,
                "[%s] %s",
                event,
                json.dumps(fields, sort_keys=True, default=str),
            )

    @property
    def events(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(record) for record in self._events]

    def names(self) -> List[str]:
        with self._lock:
            return [record["event"] for record in self._events]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
