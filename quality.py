"""Batch quality aggregation and the weighted quality score."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from analysis_contracts import coerce_outcomes
from config import TQAConfig
from logging_utils import EventSink
from models import HardFailure, PartialFailure, QualitySummary, Success, VerifiedQuote

logger = logging.getLogger(__name__)


@dataclass
class QualityBreakdown:
    """Fractions in [0, 1] behind the headline quality score."""

    completion: float
    verification: Optional[float] = None

    def clamp(self) -> "QualityBreakdown":
        def _c(val: float) -> float:
            return max(0.0, min(1.0, float(val)))

        return QualityBreakdown(
            completion=_c(self.completion),
            verification=None if self.verification is None else _c(self.verification),
        )


def headline(breakdown: QualityBreakdown, weights: Optional[Dict[str, float]] = None) -> float:
    b = breakdown.clamp()
    if b.verification is None:
        return round(b.completion, 3)
    weights = weights or TQAConfig.QUALITY_SCORE_WEIGHTS
    score = weights["completion"] * b.completion + weights["verification"] * b.verification
    return round(max(0.0, min(1.0, score)), 3)


def _unit_quotes(outcome) -> List[VerifiedQuote]:
    if outcome.quotes_by_theme:
        return [quote for quotes in outcome.quotes_by_theme.values() for quote in quotes]
    return [quote for theme in outcome.themes for quote in theme.supporting_quotes]


def _label(rate: float, high: float, medium: float) -> str:
    if rate >= high:
        return "high"
    if rate >= medium:
        return "medium"
    return "low"


class QualityAggregator:
    """Computes completeness, reliability and quote verification for a batch.

    Only counts feed the result, so any permutation of the same outcomes
    yields the same summary.
    """

    def __init__(
        self,
        partial_weight: Optional[float] = None,
        sink: Optional[EventSink] = None,
        weights: Optional[Dict[str, float]] = None,
    ):
        self.partial_weight = (
            TQAConfig.PARTIAL_SUCCESS_WEIGHT if partial_weight is None else partial_weight
        )
        self.weights = weights or TQAConfig.QUALITY_SCORE_WEIGHTS
        self.sink = sink or EventSink(logger)

    def _rate(self, success: int, partial: int, denominator: int) -> float:
        if denominator <= 0:
            return 0.0
        return round((success + partial * self.partial_weight) / denominator * 100, 1)

    def aggregate(
        self, outcomes: Sequence, requested_units: Optional[int] = None
    ) -> QualitySummary:
        """Summarize one batch; raises ``BatchContractError`` on malformed input."""
        outcomes = coerce_outcomes(outcomes, requested_units)
        total = len(outcomes)
        successes = [o for o in outcomes if isinstance(o, Success)]
        partials = [o for o in outcomes if isinstance(o, PartialFailure)]
        failed = sum(1 for o in outcomes if isinstance(o, HardFailure))

        completion_rate = self._rate(len(successes), len(partials), total)
        requested = total if requested_units is None else requested_units
        data_completeness = self._rate(len(successes), len(partials), requested)

        quotes = [quote for outcome in successes + partials for quote in _unit_quotes(outcome)]
        verified = sum(1 for quote in quotes if quote.verified)
        verification_rate = round(verified / len(quotes) * 100, 1) if quotes else None

        themes_per_unit = (
            round(sum(len(o.themes) for o in successes) / len(successes), 2) if successes else 0.0
        )

        critical_issues: List[str] = []
        if data_completeness < TQAConfig.USABILITY_FLOOR:
            critical_issues.append("Very low data completeness significantly impacts analysis quality")
        elif data_completeness < TQAConfig.RELIABILITY_MEDIUM:
            critical_issues.append("Low data completeness may affect analysis reliability")

        score = headline(
            QualityBreakdown(
                completion=completion_rate / 100,
                verification=None if verification_rate is None else verification_rate / 100,
            ),
            self.weights,
        )
        summary = QualitySummary(
            total_units=total,
            requested_units=requested,
            success_count=len(successes),
            partial_count=len(partials),
            failed_count=failed,
            completion_rate=completion_rate,
            data_completeness=data_completeness,
            reliability=_label(completion_rate, TQAConfig.RELIABILITY_HIGH, TQAConfig.RELIABILITY_MEDIUM),
            overall_quality=_label(completion_rate, TQAConfig.RELIABILITY_HIGH, TQAConfig.USABILITY_FLOOR),
            output_usability=_label(completion_rate, TQAConfig.RELIABILITY_MEDIUM, TQAConfig.USABILITY_FLOOR),
            total_quotes=len(quotes),
            verified_quotes=verified,
            quote_verification_rate=verification_rate,
            average_themes_per_unit=themes_per_unit,
            quality_score=score,
            critical_issues=critical_issues,
        )
        self.sink.emit(
            "quality-aggregated",
            total_units=total,
            completion_rate=completion_rate,
            reliability=summary.reliability,
            quote_verification_rate=verification_rate,
            quality_score=score,
        )
        return summary


def aggregate(outcomes: Sequence, requested_units: Optional[int] = None) -> QualitySummary:
    return QualityAggregator().aggregate(outcomes, requested_units)


__all__ = ["QualityAggregator", "QualityBreakdown", "aggregate", "headline"]
