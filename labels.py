"""Shared helpers for labeling failure categories, patterns and priorities."""

from __future__ import annotations

from typing import Dict

CATEGORY_LABELS: Dict[str, str] = {
    "llm_failure": "LLM failure",
    "validation_failure": "Validation failure",
    "data_quality": "Data quality",
    "timeout": "Timeout",
    "quota_exceeded": "Quota exceeded",
    "network_error": "Network error",
    "parsing_error": "Parsing error",
    "workflow_error": "Workflow error",
    "unknown": "Unclassified",
}

PATTERN_LABELS: Dict[str, str] = {
    "widespread_llm_issues": "Widespread LLM issues",
    "classification_batch_issues": "Classification batch issues",
    "quote_validation_issues": "Quote validation issues",
    "data_quality_issues": "Data quality issues",
}


def _value(raw: object) -> str:
    return str(getattr(raw, "value", raw) or "").strip().lower()


def friendly_category(raw: object) -> str:
    normalized = _value(raw)
    if not normalized:
        return "Unclassified"
    return CATEGORY_LABELS.get(normalized) or normalized.replace("_", " ").capitalize()


def friendly_pattern(raw: object) -> str:
    normalized = _value(raw)
    if not normalized:
        return "Pattern"
    return PATTERN_LABELS.get(normalized) or normalized.replace("_", " ").capitalize()


def priority_tag(raw: object) -> str:
    return f"[{_value(raw).upper() or 'UNKNOWN'}]"


__all__ = ["friendly_category", "friendly_pattern", "priority_tag"]
