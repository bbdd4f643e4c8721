from conftest import hard, success
from logging_utils import EventSink
from models import Pattern, Priority, Severity
from quality import aggregate
from recommendations import LOW_COMPLETION_CAUSE, RecommendationGenerator, recommend


def _pattern(name, severity):
    return Pattern(
        name=name,
        severity=severity,
        affected_count=2,
        affected_units=["q1", "q2"],
        description="Multiple units failing",
        recommendation="Look into it",
    )


def test_low_completion_recommendation():
    summary = aggregate([success("q1"), success("q2"), hard("q3", "LLM quota exceeded")])
    recs = recommend([], summary)
    assert len(recs) == 1
    assert recs[0].cause == LOW_COMPLETION_CAUSE
    assert recs[0].priority is Priority.CRITICAL
    assert recs[0].category == "pipeline_reliability"
    assert recs[0].description == "Only 66.7% of units completed successfully."
    assert "Investigate root cause of widespread failures" in recs[0].action_items


def test_healthy_batch_without_patterns_has_no_recommendations():
    assert recommend([], aggregate([success("q1")])) == []
    assert recommend([], aggregate([])) == []


def test_completion_first_then_patterns_in_order():
    summary = aggregate([success("q1"), hard("q2", "LLM failed")])
    patterns = [
        _pattern("quote_validation_issues", Severity.MEDIUM),
        _pattern("widespread_llm_issues", Severity.CRITICAL),
    ]
    recs = recommend(patterns, summary)
    assert [r.cause for r in recs] == [
        LOW_COMPLETION_CAUSE,
        "quote_validation_issues",
        "widespread_llm_issues",
    ]
    assert [r.priority for r in recs] == [Priority.CRITICAL, Priority.MEDIUM, Priority.CRITICAL]
    assert recs[2].title == "LLM Service Issues Detected"


def test_each_cause_is_recommended_once():
    summary = aggregate([success("q1")])
    pattern = _pattern("data_quality_issues", Severity.HIGH)
    recs = recommend([pattern, pattern], summary)
    assert [r.cause for r in recs] == ["data_quality_issues"]
    assert recs[0].priority is Priority.HIGH


def test_low_severity_maps_to_medium_priority_and_unknown_patterns_get_defaults():
    recs = recommend([_pattern("novel_issue", Severity.LOW)], aggregate([success("q1")]))
    assert recs[0].priority is Priority.MEDIUM
    assert recs[0].title == "Novel Issue"
    assert recs[0].action_items == ["Look into it"]


def test_threshold_is_configurable_and_emits_event():
    sink = EventSink()
    generator = RecommendationGenerator(low_completion=50, sink=sink)
    summary = aggregate([success("q1"), success("q2"), hard("q3", "boom")])
    assert generator.recommend([], summary) == []
    assert sink.events[0] == {"event": "recommendations-generated", "count": 0, "causes": []}
