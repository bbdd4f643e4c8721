"""Unit acceptance gate: a unit becomes Success only after its quotes verify."""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Sequence, Union

from logging_utils import EventSink
from models import (
    AnalysisSummary,
    CandidateQuote,
    Classification,
    FailedComponent,
    HardFailure,
    PartialFailure,
    Severity,
    Success,
    Theme,
)
from quote_verification import QuoteVerifier, TranscriptSource
from theme_validator import ThemeValidator

logger = logging.getLogger(__name__)

QUOTE_COMPONENT = "quote_extraction"
THEME_VALIDATION_COMPONENT = "theme_validation"


def finalize_unit(
    unit_id: str,
    themes: Sequence[Theme],
    quotes_by_theme: Mapping[str, Sequence[CandidateQuote]],
    transcripts: TranscriptSource,
    classifications: Sequence[Classification] = (),
    summary: Optional[AnalysisSummary] = None,
    derived_question: Optional[str] = None,
    failed_components: Sequence[FailedComponent] = (),
    verifier: Optional[QuoteVerifier] = None,
    theme_validator: Optional[ThemeValidator] = None,
    sink: Optional[EventSink] = None,
) -> Union[Success, PartialFailure]:
    """Verify quotes, attach them to their themes, and pick the outcome variant.

    Hallucinated or unverifiable quotes stay attached with ``verified=False``
    and add a ``quote_extraction`` failed component; theme validation errors
    add a ``theme_validation`` component. Upstream failures pass through.
    """
    sink = sink or EventSink(logger)
    verifier = verifier or QuoteVerifier(sink=sink)
    theme_validator = theme_validator or ThemeValidator()

    quote_result = verifier.validate_theme_quotes(themes, quotes_by_theme, transcripts, classifications)
    attached: List[Theme] = [
        theme.model_copy(update={"supporting_quotes": quote_result.verified_by_theme.get(theme.id, [])})
        for theme in themes
    ]

    failures: List[FailedComponent] = list(failed_components)
    if not quote_result.passed:
        failures.append(
            FailedComponent(
                component=QUOTE_COMPONENT,
                error="Quote validation failed: " + "; ".join(quote_result.errors),
                severity=Severity.MEDIUM,
            )
        )
    theme_result = theme_validator.validate(themes, classifications)
    if not theme_result.passed:
        failures.append(
            FailedComponent(
                component=THEME_VALIDATION_COMPONENT,
                error="Theme validation failed: " + "; ".join(theme_result.errors),
                severity=Severity.MEDIUM,
            )
        )

    payload = dict(
        unit_id=unit_id,
        derived_question=derived_question,
        themes=attached,
        classifications=list(classifications),
        quotes_by_theme=quote_result.verified_by_theme,
        summary=summary,
    )
    if failures:
        outcome: Union[Success, PartialFailure] = PartialFailure(failed_components=failures, **payload)
    else:
        outcome = Success(**payload)
    sink.emit(
        "unit-finalized",
        unit_id=unit_id,
        status=outcome.status,
        failed_components=[failure.component for failure in failures],
        warnings=len(quote_result.warnings) + len(theme_result.warnings),
    )
    return outcome


def hard_failure(unit_id: str, message: str) -> HardFailure:
    return HardFailure(unit_id=unit_id, error_message=message)
