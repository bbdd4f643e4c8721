"""Keyword-priority failure classification and batch failure flattening."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from analysis_contracts import coerce_outcomes
from config import TQAConfig
from models import (
    ErrorCategory,
    FailureRecord,
    HardFailure,
    PartialFailure,
    Severity,
)

logger = logging.getLogger(__name__)

Rule = Tuple[ErrorCategory, Tuple[str, ...]]


def _compile_rules(rules: Sequence[Tuple[str, Sequence[str]]]) -> List[Rule]:
    """Compile rule rows, skipping rows whose category is not an ``ErrorCategory``."""
    compiled: List[Rule] = []
    for category, keywords in rules:
        name = str(getattr(category, "value", category)).lower()
        try:
            resolved = ErrorCategory(name)
        except ValueError:
            logger.warning("Skipping classifier rule with unknown category '%s'", name)
            continue
        compiled.append((resolved, tuple(keyword.lower() for keyword in keywords if keyword)))
    return compiled


class FailureClassifier:
    """Maps a raw failure message to an ``ErrorCategory``.

    Rows are tried in order and the first row with a keyword contained in the
    lowercased message wins, so a message mentioning both a timeout and data
    classifies as ``TIMEOUT``.
    """

    def __init__(
        self,
        rules: Optional[Sequence[Tuple[str, Sequence[str]]]] = None,
        version: Optional[str] = None,
    ):
        self.rules = _compile_rules(TQAConfig.CLASSIFIER_RULES if rules is None else rules)
        self.version = version or TQAConfig.CLASSIFIER_RULES_VERSION

    def classify(self, message: object) -> ErrorCategory:
        if not isinstance(message, str) or not message:
            return ErrorCategory.UNKNOWN
        lowered = message.lower()
        for category, keywords in self.rules:
            if any(keyword in lowered for keyword in keywords):
                return category
        return ErrorCategory.UNKNOWN


def classify(message: object) -> ErrorCategory:
    return FailureClassifier().classify(message)


def failure_records(
    outcomes: Sequence, classifier: Optional[FailureClassifier] = None
) -> List[FailureRecord]:
    """Flatten hard failures and partial-failure components into records.

    Records are coerced first, so legacy shapes count and malformed ones
    raise ``BatchContractError``. Hard failures become ``CRITICAL`` records
    with no component; partial components keep the severity they were
    reported with.
    """
    classifier = classifier or FailureClassifier()
    records: List[FailureRecord] = []
    for outcome in coerce_outcomes(outcomes):
        if isinstance(outcome, HardFailure):
            records.append(
                FailureRecord(
                    unit_id=outcome.unit_id,
                    component=None,
                    raw_message=outcome.error_message,
                    category=classifier.classify(outcome.error_message),
                    severity=Severity.CRITICAL,
                )
            )
        elif isinstance(outcome, PartialFailure):
            for failure in outcome.failed_components:
                records.append(
                    FailureRecord(
                        unit_id=outcome.unit_id,
                        component=failure.component,
                        raw_message=failure.error,
                        category=classifier.classify(failure.error),
                        severity=failure.severity,
                    )
                )
    return records


def categorize(records: Iterable[FailureRecord]) -> Dict[ErrorCategory, List[FailureRecord]]:
    """Group records by category; every category is present, possibly empty."""
    grouped: Dict[ErrorCategory, List[FailureRecord]] = {category: [] for category in ErrorCategory}
    for record in records:
        grouped[record.category].append(record)
    return grouped


__all__ = ["FailureClassifier", "categorize", "classify", "failure_records"]
