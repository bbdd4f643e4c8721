import pytest

from analysis_contracts import BatchContractError
from batch_report import BatchAnalyzer, analyze_batch, format_report
from conftest import hard, partial, success, verified_quote
from logging_utils import EventSink
from models import ErrorCategory, Severity

QUOTE_ERROR = 'Quote validation failed: HALLUCINATED QUOTE: "made up" for participant p1'


def _mixed_batch():
    return [
        success("q1", quotes=[verified_quote("a b c"), verified_quote("d e f", verified=False)]),
        partial("q2", ("quote_extraction", QUOTE_ERROR)),
        partial("q3", ("quote_extraction", QUOTE_ERROR), ("classification", "classification incomplete")),
        hard("q4", "LLM quota exceeded"),
        hard("q5", "Request timed out"),
    ]


def test_quota_failure_batch(fixed_clock):
    report = analyze_batch(
        [success("q1"), success("q2"), hard("q3", "LLM quota exceeded")], clock=fixed_clock
    )
    assert report.quality.completion_rate == 66.7
    assert report.quality.reliability == "low"
    assert len(report.categorized_failures[ErrorCategory.QUOTA_EXCEEDED]) == 1
    assert set(report.categorized_failures) == set(ErrorCategory)
    assert report.summary.failed_units == 1
    assert report.summary.critical_failures == 1
    assert report.generated_at == "2025-01-15T12:00:00+00:00"


def test_full_report_contents(fixed_clock):
    report = analyze_batch(_mixed_batch(), metadata={"batch": "nightly"}, clock=fixed_clock)
    assert report.summary.total_units == 5
    assert report.summary.partial_units == 2
    assert report.summary.total_failures == 5
    assert [p.name for p in report.detected_patterns] == ["quote_validation_issues"]
    assert report.component_breakdown.most_problematic == "quote_extraction"
    assert report.quality.quote_verification_rate == 50.0
    assert report.quality_score == report.quality.quality_score
    assert [r.cause for r in report.recommendations] == [
        "low_completion_rate",
        "quote_validation_issues",
    ]
    assert report.metadata == {"batch": "nightly"}


def test_repeated_runs_are_byte_identical(fixed_clock):
    outcomes = _mixed_batch()
    analyzer = BatchAnalyzer(clock=fixed_clock)
    first = analyzer.analyze(outcomes).model_dump_json()
    second = analyzer.analyze(outcomes).model_dump_json()
    assert first == second


def test_only_timestamp_differs_without_fixed_clock():
    outcomes = _mixed_batch()
    first = analyze_batch(outcomes).model_dump(exclude={"generated_at"})
    second = analyze_batch(outcomes).model_dump(exclude={"generated_at"})
    assert first == second


def test_legacy_records_are_accepted(fixed_clock):
    records = [
        {"questionId": "q1", "themes": [{"id": "t0", "title": "Speed"}]},
        {"questionId": "q2", "error": "Connection refused"},
    ]
    report = analyze_batch(records, clock=fixed_clock)
    assert report.summary.successful_units == 1
    assert len(report.categorized_failures[ErrorCategory.NETWORK_ERROR]) == 1


def test_contract_violations_fail_fast():
    with pytest.raises(BatchContractError):
        analyze_batch({"not": "a list"})
    with pytest.raises(BatchContractError):
        analyze_batch([{"questionId": "q1"}])


def test_events_follow_pipeline_order(fixed_clock):
    sink = EventSink()
    BatchAnalyzer(sink=sink, clock=fixed_clock).analyze(_mixed_batch())
    assert sink.names() == [
        "failures-categorized",
        "pattern-detected",
        "quality-aggregated",
        "recommendations-generated",
        "batch-analysis-completed",
    ]
    assert sink.events[0]["by_category"] == {
        "validation_failure": 2,
        "quota_exceeded": 1,
        "timeout": 1,
        "unknown": 1,
    }


def test_high_severity_count():
    from models import FailedComponent, PartialFailure

    unit = PartialFailure(
        unit_id="q1",
        failed_components=[FailedComponent(component="summary", error="boom", severity=Severity.HIGH)],
    )
    assert analyze_batch([unit]).summary.high_severity_failures == 1


def test_format_report_sections(fixed_clock):
    text = format_report(analyze_batch(_mixed_batch(), clock=fixed_clock))
    assert "Total Units: 5" in text
    assert "Completion Rate: 48.0%" in text
    assert "Analysis Reliability: LOW" in text
    assert "Quote Verification: 50.0% (1/2)" in text
    assert "Quota exceeded: 1" in text
    assert "Quote validation issues" in text
    assert "1. [CRITICAL] Low Completion Rate" in text
    assert "2. [MEDIUM] Validation Failures Detected" in text


def test_format_report_without_quotes_or_failures(fixed_clock):
    text = format_report(analyze_batch([success("q1")], clock=fixed_clock))
    assert "Quote Verification: N/A" in text
    assert "Detected Patterns" not in text
    assert "Recommendations" not in text
