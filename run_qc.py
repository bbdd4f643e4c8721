"""CLI to run batch error analysis over JSON outcome files."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from analysis_contracts import BatchContractError
from batch_report import BatchAnalyzer, format_report
from config import TQAConfig
from logging_utils import EventSink, log_exception, setup_run_logging

logger = logging.getLogger(__name__)


def _load_batch(path: Path) -> Tuple[Any, Optional[int], Dict[str, Any]]:
    if not path.exists():
        raise FileNotFoundError(f"{path} does not exist")
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict) and "outcomes" in data:
        requested = data.get("requested_units")
        if requested is not None and not isinstance(requested, int):
            raise BatchContractError([f"requested_units must be an integer (got {requested!r})"])
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise BatchContractError(["metadata must be an object"])
        return data["outcomes"], requested, metadata
    return data, None, {}


def _check_path(raw_path: str, analyzer: BatchAnalyzer, as_json: bool) -> List[str]:
    path = Path(raw_path)
    try:
        outcomes, requested, metadata = _load_batch(path)
        report = analyzer.analyze(outcomes, requested, {"source": str(path), **metadata})
    except BatchContractError as exc:
        log_exception(logger, exc, context="analyze", path=str(path))
        return [f"ERROR: {path}: {issue}" for issue in exc.issues]
    except (OSError, ValueError) as exc:
        log_exception(logger, exc, context="load", path=str(path))
        return [f"ERROR: {path}: {exc}"]

    messages = [report.model_dump_json(indent=2) if as_json else format_report(report)]
    if report.quality.reliability == "low":
        messages.append(
            f"ERROR: {path}: reliability is low (completion {report.quality.completion_rate}%)"
        )
    return messages


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Analyze batches of unit outcomes for failures and quality.")
    parser.add_argument("paths", nargs="+", help="JSON files with outcome records.")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON instead of text.")
    parser.add_argument("--log-dir", default=None, help="Write a run log into this directory.")
    parser.add_argument("--debug", action="store_true", help="Enable verbose logging.")
    args = parser.parse_args(argv)

    if args.log_dir:
        setup_run_logging(args.log_dir, args.paths)
    elif args.debug:
        logging.basicConfig(level=logging.DEBUG)

    for issue in TQAConfig.validate_config():
        logger.warning("Config %s", issue)

    exit_code = 0
    for raw_path in args.paths:
        analyzer = BatchAnalyzer(sink=EventSink())
        for message in _check_path(raw_path, analyzer, args.json):
            print(message)
            if message.startswith("ERROR:"):
                exit_code = 1
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
