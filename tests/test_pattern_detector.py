import pytest

from analysis_contracts import BatchContractError
from conftest import hard, partial, success
from failure_classifier import failure_records
from logging_utils import EventSink
from models import ErrorCategory, FailureRecord, Severity
from pattern_detector import PatternDetector, component_breakdown, default_rules, detect

QUOTE_ERROR = 'Quote validation failed: HALLUCINATED QUOTE: "made up" for participant p1'


def _names(patterns):
    return [pattern.name for pattern in patterns]


def test_widespread_llm_issues_fire_at_half_the_batch():
    outcomes = [
        hard("q1", "LLM request failed"),
        hard("q2", "OpenAI API error"),
        hard("q3", "LLM quota exceeded"),
        success("q4"),
        success("q5"),
    ]
    patterns = detect(outcomes)
    assert _names(patterns) == ["widespread_llm_issues"]
    assert patterns[0].severity is Severity.CRITICAL
    assert patterns[0].affected_count == 3
    assert patterns[0].affected_units == ["q1", "q2", "q3"]
    assert "API quotas" in patterns[0].recommendation


def test_below_threshold_does_not_fire():
    outcomes = [hard("q1", "LLM request failed"), hard("q2", "Request timed out")]
    outcomes += [success(f"q{i}") for i in range(3, 6)]
    assert detect(outcomes) == []


def test_empty_and_clean_batches_have_no_patterns():
    assert detect([]) == []
    assert detect([success("q1"), success("q2")]) == []


def test_classification_component_pattern():
    outcomes = [partial("q1"), partial("q2"), success("q3"), success("q4")]
    patterns = detect(outcomes)
    assert _names(patterns) == ["classification_batch_issues"]
    assert patterns[0].severity is Severity.HIGH


def test_quote_validation_pattern_from_component_or_text():
    by_component = [
        partial("q1", ("quote_extraction", QUOTE_ERROR)),
        partial("q2", ("quote_extraction", QUOTE_ERROR)),
        success("q3"),
        success("q4"),
    ]
    assert "quote_validation_issues" in _names(detect(by_component))

    by_text = [
        hard("q1", "Validation failed: hallucinated quote"),
        hard("q2", "Validation failed: quote missing from transcript"),
    ] + [success(f"q{i}") for i in range(3, 8)]
    patterns = detect(by_text)
    assert _names(patterns) == ["quote_validation_issues"]
    assert patterns[0].severity is Severity.MEDIUM


def test_data_quality_pattern_uses_thirty_percent():
    failing = [hard(f"q{i}", "Empty participant response") for i in range(3)]
    clean = [success(f"q{i}") for i in range(3, 10)]
    assert _names(detect(failing + clean)) == ["data_quality_issues"]
    assert detect(failing[:2] + clean) == []


def test_patterns_follow_declaration_order_and_may_co_fire():
    outcomes = [
        partial("q1"),
        partial("q2"),
        hard("q3", "LLM request failed"),
        hard("q4", "LLM request failed"),
    ]
    assert _names(detect(outcomes)) == ["widespread_llm_issues", "classification_batch_issues"]


def test_custom_ratios_and_events():
    sink = EventSink()
    detector = PatternDetector(rules=default_rules(llm_ratio=0.2), sink=sink)
    outcomes = [hard("q1", "LLM request failed")] + [success(f"q{i}") for i in range(2, 6)]
    assert _names(detector.detect(outcomes)) == ["widespread_llm_issues"]
    assert sink.names() == ["pattern-detected"]
    assert sink.events[0]["batch_size"] == 5


def test_component_breakdown_counts_and_most_problematic():
    records = failure_records([partial("q1"), partial("q2"), hard("q3", "boom")])
    breakdown = component_breakdown(records)
    assert breakdown.by_component == {"classification": 2, "unknown": 1}
    assert breakdown.most_problematic == "classification"


def test_component_breakdown_ties_break_alphabetically():
    records = [
        FailureRecord(unit_id="q1", component=name, raw_message="x", category=ErrorCategory.UNKNOWN, severity=Severity.LOW)
        for name in ("summary", "classification")
    ]
    assert component_breakdown(records).most_problematic == "classification"
    assert component_breakdown([]).most_problematic is None


def test_legacy_error_records_count_toward_patterns():
    patterns = detect([{"error": "LLM quota exceeded"}, {"error": "LLM timeout"}])
    assert _names(patterns) == ["widespread_llm_issues"]
    assert patterns[0].affected_units == ["unit_1", "unit_2"]


def test_malformed_records_are_rejected():
    with pytest.raises(BatchContractError) as excinfo:
        detect([hard("q1", "LLM request failed"), {"unit_id": "q2"}])
    assert excinfo.value.issues[0].startswith("outcomes[1]")
    with pytest.raises(BatchContractError, match="must be a list"):
        detect("abc")
