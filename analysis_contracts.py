"""Input contract checks for the batch analysis stage.

Outcome records arrive either in the explicit tagged shape (``status`` of
``success``, ``partial_failure`` or ``hard_failure``) or in the legacy ad hoc
shape where an ``error`` string marks a hard failure and a non-empty
``partialFailures`` list marks a partial one. Both are coerced into the
tagged union; anything ambiguous is rejected before analysis starts.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ValidationError

from models import UNIT_OUTCOME_ADAPTER, HardFailure, PartialFailure, Success

OUTCOME_TYPES = (Success, PartialFailure, HardFailure)
STATUS_TAGS = {"success", "partial_failure", "hard_failure"}
UNIT_ID_KEYS = ("unit_id", "question_id", "questionId")
PARTIAL_KEYS = ("partial_failures", "partialFailures", "failed_components")
SUCCESS_KEYS = (
    "themes",
    "classifications",
    "quotes_by_theme",
    "quotesByTheme",
    "summary",
    "headline",
    "derived_question",
    "derivedQuestion",
)


class BatchContractError(ValueError):
    """Raised when the batch input violates its structural contract."""

    def __init__(self, issues: Sequence[str]):
        self.issues = list(issues)
        super().__init__("; ".join(self.issues) or "batch contract violated")


def _present(value: Any) -> bool:
    return value is not None and value != "" and value != [] and value != {}


def _first(record: Dict[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return None


def lint_outcome_record(record: Any) -> List[str]:
    """Return contract violations for one outcome record (empty when valid)."""
    if isinstance(record, OUTCOME_TYPES):
        return []
    if isinstance(record, BaseModel):
        return [f"unsupported outcome model {type(record).__name__}"]
    if not isinstance(record, dict):
        return [f"outcome record must be an object (got {type(record).__name__})"]

    issues: List[str] = []
    status = record.get("status")
    if status is not None:
        if status not in STATUS_TAGS:
            issues.append(f"unknown status tag '{status}' (expected one of {sorted(STATUS_TAGS)})")
        return issues

    has_error = _present(record.get("error"))
    partials = _first(record, PARTIAL_KEYS)
    has_partial = _present(partials)
    has_success = any(_present(record.get(key)) for key in SUCCESS_KEYS)

    if has_error and not isinstance(record.get("error"), str):
        issues.append("error must be a string message")
    if partials is not None and not isinstance(partials, list):
        issues.append("partial failures must be a list")
    if has_error and (has_success or has_partial):
        issues.append("record carries both a failure message and a result payload")
    if not (has_error or has_partial or has_success):
        issues.append("record has neither a success payload nor a failure payload")
    return issues


def _legacy_components(partials: List[Any]) -> List[Dict[str, Any]]:
    components: List[Dict[str, Any]] = []
    for failure in partials:
        if isinstance(failure, dict):
            components.append(
                {
                    "component": failure.get("component") or "unknown",
                    "error": failure.get("error") or failure.get("reason") or "unspecified failure",
                    **({"severity": failure["severity"]} if failure.get("severity") else {}),
                }
            )
        else:
            components.append({"component": "unknown", "error": str(failure)})
    return components


def _legacy_to_tagged(record: Dict[str, Any], unit_id: str) -> Dict[str, Any]:
    if _present(record.get("error")):
        return {"status": "hard_failure", "unit_id": unit_id, "error_message": record["error"]}

    themes = []
    for theme in record.get("themes") or []:
        if isinstance(theme, dict) and "supportingQuotes" in theme and "supporting_quotes" not in theme:
            theme = {**theme, "supporting_quotes": theme["supportingQuotes"]}
        themes.append(theme)
    summary = record.get("summary")
    if isinstance(summary, str) or (summary is None and record.get("headline")):
        summary = {"headline": record.get("headline") or "", "summary": summary or ""}
    payload: Dict[str, Any] = {
        "unit_id": unit_id,
        "derived_question": record.get("derived_question") or record.get("derivedQuestion"),
        "themes": themes,
        "classifications": record.get("classifications") or [],
        "quotes_by_theme": record.get("quotes_by_theme") or record.get("quotesByTheme") or {},
        "summary": summary,
    }
    partials = _first(record, PARTIAL_KEYS)
    if _present(partials):
        return {"status": "partial_failure", "failed_components": _legacy_components(partials), **payload}
    return {"status": "success", **payload}


def coerce_outcome(record: Any, fallback_unit_id: str = "unit_1"):
    """Return ``record`` as a ``Success``/``PartialFailure``/``HardFailure``."""
    if isinstance(record, OUTCOME_TYPES):
        return record
    issues = lint_outcome_record(record)
    if issues:
        raise BatchContractError(issues)
    unit_id = str(_first(record, UNIT_ID_KEYS) or fallback_unit_id)
    tagged = dict(record) if "status" in record else _legacy_to_tagged(record, unit_id)
    tagged.setdefault("unit_id", unit_id)
    try:
        return UNIT_OUTCOME_ADAPTER.validate_python(tagged)
    except ValidationError as exc:
        raise BatchContractError(
            [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()]
        ) from exc


def coerce_outcomes(raw: Any, requested_units: Optional[int] = None) -> list:
    """Coerce a whole batch, collecting every violation before failing."""
    if not isinstance(raw, (list, tuple)):
        raise BatchContractError([f"outcomes must be a list (got {type(raw).__name__})"])

    outcomes = []
    issues: List[str] = []
    seen: Dict[str, int] = {}
    for index, record in enumerate(raw):
        try:
            outcome = coerce_outcome(record, fallback_unit_id=f"unit_{index + 1}")
        except BatchContractError as exc:
            issues.extend(f"outcomes[{index}]: {issue}" for issue in exc.issues)
            continue
        if outcome.unit_id in seen:
            issues.append(
                f"outcomes[{index}]: duplicate unit id '{outcome.unit_id}' "
                f"(first seen at outcomes[{seen[outcome.unit_id]}])"
            )
        seen.setdefault(outcome.unit_id, index)
        outcomes.append(outcome)

    if requested_units is not None and requested_units < len(raw):
        issues.append(
            f"requested_units {requested_units} is smaller than the {len(raw)} attempted units"
        )
    if issues:
        raise BatchContractError(issues)
    return outcomes


__all__ = [
    "BatchContractError",
    "coerce_outcome",
    "coerce_outcomes",
    "lint_outcome_record",
]
