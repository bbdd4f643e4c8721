"""Cross-unit failure pattern detection."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from analysis_contracts import coerce_outcomes
from config import TQAConfig
from failure_classifier import FailureClassifier, failure_records
from logging_utils import EventSink
from models import ComponentBreakdown, ErrorCategory, FailureRecord, Pattern, Severity

logger = logging.getLogger(__name__)

LLM_CATEGORIES = frozenset(
    {ErrorCategory.LLM_FAILURE, ErrorCategory.QUOTA_EXCEEDED, ErrorCategory.TIMEOUT}
)
UNTAGGED_COMPONENT = "unknown"


@dataclass(frozen=True)
class PatternRule:
    name: str
    severity: Severity
    description: str
    recommendation: str
    matches: Callable[[FailureRecord], bool]
    # Minimum count as a function of batch size.
    threshold: Callable[[int], int]


def _ratio_threshold(ratio: float) -> Callable[[int], int]:
    return lambda batch_size: max(1, math.ceil(ratio * batch_size))


def _fixed_threshold(minimum: int) -> Callable[[int], int]:
    return lambda batch_size: max(1, minimum)


def _is_quote_failure(record: FailureRecord) -> bool:
    if record.component == "quote_extraction":
        return True
    text = record.raw_message.lower()
    return record.category is ErrorCategory.VALIDATION_FAILURE and ("quote" in text or "hallucin" in text)


def default_rules(
    llm_ratio: Optional[float] = None,
    data_ratio: Optional[float] = None,
    component_min: Optional[int] = None,
) -> List[PatternRule]:
    llm_ratio = TQAConfig.LLM_PATTERN_RATIO if llm_ratio is None else llm_ratio
    data_ratio = TQAConfig.DATA_QUALITY_PATTERN_RATIO if data_ratio is None else data_ratio
    component_min = TQAConfig.COMPONENT_PATTERN_MIN if component_min is None else component_min
    return [
        PatternRule(
            name="widespread_llm_issues",
            severity=Severity.CRITICAL,
            description="Multiple units experiencing LLM-related failures",
            recommendation="Check LLM service status, API quotas, and network connectivity",
            matches=lambda record: record.category in LLM_CATEGORIES,
            threshold=_ratio_threshold(llm_ratio),
        ),
        PatternRule(
            name="classification_batch_issues",
            severity=Severity.HIGH,
            description="Multiple units experiencing classification failures",
            recommendation="Review classification prompts and response completeness",
            matches=lambda record: record.component == "classification",
            threshold=_fixed_threshold(component_min),
        ),
        PatternRule(
            name="quote_validation_issues",
            severity=Severity.MEDIUM,
            description="Multiple units experiencing quote validation failures",
            recommendation="Review quote extraction prompts and conversation format parsing",
            matches=_is_quote_failure,
            threshold=_fixed_threshold(component_min),
        ),
        PatternRule(
            name="data_quality_issues",
            severity=Severity.HIGH,
            description="Multiple units experiencing data quality issues",
            recommendation="Review input data format and conversation structure",
            matches=lambda record: record.category is ErrorCategory.DATA_QUALITY,
            threshold=_ratio_threshold(data_ratio),
        ),
    ]


class PatternDetector:
    """Evaluates independent rules over the flattened failures of one batch.

    Patterns come back in rule-declaration order, never sorted by severity.
    """

    def __init__(
        self,
        classifier: Optional[FailureClassifier] = None,
        rules: Optional[Sequence[PatternRule]] = None,
        sink: Optional[EventSink] = None,
    ):
        self.classifier = classifier or FailureClassifier()
        self.rules = list(rules) if rules is not None else default_rules()
        self.sink = sink or EventSink(logger)

    def detect(self, outcomes: Sequence) -> List[Pattern]:
        """Detect patterns over a raw batch; raises ``BatchContractError`` on malformed input."""
        units = coerce_outcomes(outcomes)
        return self.detect_records(failure_records(units, self.classifier), len(units))

    def detect_records(self, records: Sequence[FailureRecord], batch_size: int) -> List[Pattern]:
        patterns: List[Pattern] = []
        for rule in self.rules:
            matched = [record for record in records if rule.matches(record)]
            if not matched or len(matched) < rule.threshold(batch_size):
                continue
            units: List[str] = []
            for record in matched:
                if record.unit_id not in units:
                    units.append(record.unit_id)
            pattern = Pattern(
                name=rule.name,
                severity=rule.severity,
                affected_count=len(matched),
                affected_units=units,
                description=rule.description,
                recommendation=rule.recommendation,
            )
            patterns.append(pattern)
            self.sink.emit(
                "pattern-detected",
                pattern=rule.name,
                severity=rule.severity.value,
                affected_count=len(matched),
                batch_size=batch_size,
            )
        return patterns


def detect(outcomes: Sequence) -> List[Pattern]:
    return PatternDetector().detect(outcomes)


def component_breakdown(records: Iterable[FailureRecord]) -> ComponentBreakdown:
    counts: Dict[str, int] = {}
    for record in records:
        component = record.component or UNTAGGED_COMPONENT
        counts[component] = counts.get(component, 0) + 1
    ordered = dict(sorted(counts.items()))
    most = min(ordered, key=lambda name: (-ordered[name], name)) if ordered else None
    return ComponentBreakdown(by_component=ordered, most_problematic=most)


__all__ = ["PatternDetector", "PatternRule", "component_breakdown", "default_rules", "detect"]
