"""
Batch error analysis.

Runs classification, pattern detection, quality aggregation and
recommendations over a fully resolved batch of unit outcomes and assembles
one read-only ``BatchReport``. This is a barrier step: it takes the complete
outcome list, never a stream.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from analysis_contracts import coerce_outcomes
from failure_classifier import FailureClassifier, categorize, failure_records
from labels import friendly_category, friendly_pattern, priority_tag
from logging_utils import EventSink
from models import BatchReport, BatchSummary, HardFailure, PartialFailure, Severity, Success
from pattern_detector import PatternDetector, component_breakdown
from quality import QualityAggregator
from recommendations import RecommendationGenerator

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BatchAnalyzer:
    def __init__(
        self,
        classifier: Optional[FailureClassifier] = None,
        detector: Optional[PatternDetector] = None,
        aggregator: Optional[QualityAggregator] = None,
        recommender: Optional[RecommendationGenerator] = None,
        sink: Optional[EventSink] = None,
        clock: Optional[Clock] = None,
    ):
        self.sink = sink or EventSink(logger)
        self.classifier = classifier or FailureClassifier()
        self.detector = detector or PatternDetector(self.classifier, sink=self.sink)
        self.aggregator = aggregator or QualityAggregator(sink=self.sink)
        self.recommender = recommender or RecommendationGenerator(sink=self.sink)
        self.clock = clock or _utc_now

    def analyze(
        self,
        outcomes: Any,
        requested_units: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> BatchReport:
        """Analyze one batch; raises ``BatchContractError`` on malformed input."""
        units = coerce_outcomes(outcomes, requested_units)

        records = failure_records(units, self.classifier)
        categorized = categorize(records)
        self.sink.emit(
            "failures-categorized",
            total_failures=len(records),
            by_category={
                category.value: len(items) for category, items in categorized.items() if items
            },
            rules_version=self.classifier.version,
        )

        patterns = self.detector.detect_records(records, len(units))
        quality = self.aggregator.aggregate(units, requested_units)
        recommendations = self.recommender.recommend(patterns, quality)

        summary = BatchSummary(
            total_units=len(units),
            successful_units=sum(1 for unit in units if isinstance(unit, Success)),
            partial_units=sum(1 for unit in units if isinstance(unit, PartialFailure)),
            failed_units=sum(1 for unit in units if isinstance(unit, HardFailure)),
            total_failures=len(records),
            critical_failures=sum(1 for r in records if r.severity is Severity.CRITICAL),
            high_severity_failures=sum(1 for r in records if r.severity is Severity.HIGH),
        )
        report = BatchReport(
            summary=summary,
            categorized_failures=categorized,
            detected_patterns=patterns,
            component_breakdown=component_breakdown(records),
            quality=quality,
            quality_score=quality.quality_score,
            recommendations=recommendations,
            metadata=dict(metadata or {}),
            generated_at=self.clock().isoformat(),
        )
        self.sink.emit(
            "batch-analysis-completed",
            total_units=summary.total_units,
            total_failures=summary.total_failures,
            patterns=[pattern.name for pattern in patterns],
            quality_score=report.quality_score,
        )
        return report


def analyze_batch(
    outcomes: Any,
    requested_units: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    sink: Optional[EventSink] = None,
    clock: Optional[Clock] = None,
) -> BatchReport:
    return BatchAnalyzer(sink=sink, clock=clock).analyze(outcomes, requested_units, metadata)


def format_report(report: BatchReport) -> str:
    """Render the plain-text report logged after a batch run."""
    summary = report.summary
    quality = report.quality
    lines: List[str] = [
        "Multi-Unit Error Analysis Report",
        "=" * 50,
        "",
        "Summary:",
        f"  - Total Units: {summary.total_units}",
        f"  - Successful: {summary.successful_units}",
        f"  - Partial Failures: {summary.partial_units}",
        f"  - Complete Failures: {summary.failed_units}",
        f"  - Completion Rate: {quality.completion_rate}%",
        "",
        "Quality Impact:",
        f"  - Overall Quality: {quality.overall_quality.upper()}",
        f"  - Data Completeness: {quality.data_completeness}%",
        f"  - Analysis Reliability: {quality.reliability.upper()}",
        "  - Quote Verification: "
        + (
            "N/A"
            if quality.quote_verification_rate is None
            else f"{quality.quote_verification_rate}% ({quality.verified_quotes}/{quality.total_quotes})"
        ),
        f"  - Quality Score: {report.quality_score:.3f}",
    ]
    for issue in quality.critical_issues:
        lines.append(f"  - Critical: {issue}")
    lines.append("")

    failing = {category: records for category, records in report.categorized_failures.items() if records}
    if failing:
        lines.append("Failures by Category:")
        for category, records in failing.items():
            lines.append(f"  - {friendly_category(category)}: {len(records)}")
        lines.append("")

    if report.detected_patterns:
        lines.append("Detected Patterns:")
        for pattern in report.detected_patterns:
            lines.append(
                f"  - {friendly_pattern(pattern.name)}: {pattern.description} ({pattern.severity.value})"
            )
            lines.append(f"    Recommendation: {pattern.recommendation}")
        lines.append("")

    if report.recommendations:
        lines.append("Recommendations:")
        for index, rec in enumerate(report.recommendations, start=1):
            lines.append(f"  {index}. {priority_tag(rec.priority)} {rec.title}")
            lines.append(f"     {rec.description}")

    return "\n".join(lines).rstrip() + "\n"


__all__ = ["BatchAnalyzer", "analyze_batch", "format_report"]
