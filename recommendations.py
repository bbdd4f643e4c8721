"""Remediation recommendations derived from detected patterns and quality."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from config import TQAConfig
from logging_utils import EventSink
from models import Pattern, Priority, QualitySummary, Recommendation, Severity

logger = logging.getLogger(__name__)

LOW_COMPLETION_CAUSE = "low_completion_rate"

# Severity LOW has no priority of its own; it is raised to MEDIUM.
SEVERITY_PRIORITY: Dict[Severity, Priority] = {
    Severity.CRITICAL: Priority.CRITICAL,
    Severity.HIGH: Priority.HIGH,
    Severity.MEDIUM: Priority.MEDIUM,
    Severity.LOW: Priority.MEDIUM,
}

PATTERN_PLAYBOOKS: Dict[str, Dict[str, object]] = {
    "widespread_llm_issues": {
        "category": "infrastructure",
        "title": "LLM Service Issues Detected",
        "action_items": [
            "Verify API key and quota status",
            "Check network connectivity and firewall settings",
            "Consider implementing exponential backoff for retries",
            "Monitor LLM service status pages",
        ],
    },
    "classification_batch_issues": {
        "category": "analysis_pipeline",
        "title": "Classification Failures Across Units",
        "action_items": [
            "Review classification prompts for completeness",
            "Check that every participant receives a theme assignment",
            "Reduce classification batch size for long transcripts",
        ],
    },
    "quote_validation_issues": {
        "category": "quality_assurance",
        "title": "Validation Failures Detected",
        "action_items": [
            "Review quote extraction prompts for clarity",
            "Validate conversation format parsing logic",
            "Consider adjusting validation thresholds",
            "Test with additional conversation format variations",
        ],
    },
    "data_quality_issues": {
        "category": "data_quality",
        "title": "Input Data Quality Issues",
        "action_items": [
            "Review input data format and conversation structure",
            "Check for empty or truncated participant responses",
            "Confirm role markers are present in every transcript",
        ],
    },
}

COMPLETION_ACTION_ITEMS = [
    "Investigate root cause of widespread failures",
    "Consider implementing more robust retry mechanisms",
    "Review input data quality and format",
    "Implement graceful degradation for critical failures",
]


class RecommendationGenerator:
    def __init__(self, low_completion: Optional[float] = None, sink: Optional[EventSink] = None):
        self.low_completion = (
            TQAConfig.LOW_COMPLETION_THRESHOLD if low_completion is None else low_completion
        )
        self.sink = sink or EventSink(logger)

    def recommend(self, patterns: Sequence[Pattern], summary: QualitySummary) -> List[Recommendation]:
        """Completion-rate entry first (when low), then one per pattern in order."""
        recommendations: List[Recommendation] = []
        causes = set()

        if summary.total_units and summary.completion_rate < self.low_completion:
            recommendations.append(
                Recommendation(
                    cause=LOW_COMPLETION_CAUSE,
                    priority=Priority.CRITICAL,
                    category="pipeline_reliability",
                    title="Low Completion Rate",
                    description=f"Only {summary.completion_rate}% of units completed successfully.",
                    action_items=list(COMPLETION_ACTION_ITEMS),
                )
            )
            causes.add(LOW_COMPLETION_CAUSE)

        for pattern in patterns:
            if pattern.name in causes:
                continue
            causes.add(pattern.name)
            playbook = PATTERN_PLAYBOOKS.get(pattern.name, {})
            recommendations.append(
                Recommendation(
                    cause=pattern.name,
                    priority=SEVERITY_PRIORITY[pattern.severity],
                    category=str(playbook.get("category", "general")),
                    title=str(playbook.get("title", pattern.name.replace("_", " ").title())),
                    description=f"{pattern.description}. {pattern.recommendation}.",
                    action_items=list(playbook.get("action_items", [pattern.recommendation])),
                )
            )

        self.sink.emit(
            "recommendations-generated",
            count=len(recommendations),
            causes=[rec.cause for rec in recommendations],
        )
        return recommendations


def recommend(patterns: Sequence[Pattern], summary: QualitySummary) -> List[Recommendation]:
    return RecommendationGenerator().recommend(patterns, summary)


__all__ = ["RecommendationGenerator", "recommend"]
