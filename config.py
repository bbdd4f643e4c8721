"""
Thematic QA Configuration

Single configuration surface for quote verification and batch error analysis.
Every value can be overridden through a ``TQA_`` environment variable (or a
``.env`` file) so thresholds can be tuned per deployment without code edits.
"""

import json
import os
import re
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off", ""}


def _parse_classifier_rules(
    raw: Optional[str], default: List[Tuple[str, List[str]]]
) -> List[Tuple[str, List[str]]]:
    """Parse ``[[category, [keyword, ...]], ...]``; any malformed row falls back to ``default``."""
    if not raw:
        return list(default)
    try:
        rows = json.loads(raw)
    except ValueError:
        return list(default)
    if not isinstance(rows, list):
        return list(default)
    parsed: List[Tuple[str, List[str]]] = []
    for row in rows:
        if not isinstance(row, (list, tuple)) or len(row) != 2 or not isinstance(row[1], (list, tuple)):
            return list(default)
        parsed.append((str(row[0]).strip().lower(), [str(k).lower() for k in row[1] if str(k).strip()]))
    return parsed


class TQAConfig:
    """Thresholds, toggles and rule tables shared across the QA core."""

    # Quote verification
    QUOTE_SEPARATOR = os.getenv("TQA_QUOTE_SEPARATOR", " ... ")
    NORMALIZE_WHITESPACE = _env_bool("TQA_NORMALIZE_WHITESPACE", True)
    NORMALIZE_CASE = _env_bool("TQA_NORMALIZE_CASE", False)
    NORMALIZE_PUNCTUATION = _env_bool("TQA_NORMALIZE_PUNCTUATION", True)
    QUOTE_MIN_WORDS = int(os.getenv("TQA_QUOTE_MIN_WORDS", "3"))
    QUOTE_MAX_CHARS = int(os.getenv("TQA_QUOTE_MAX_CHARS", "500"))

    _role_markers_raw = os.getenv(
        "TQA_ROLE_MARKERS",
        json.dumps({"assistant": "ASK", "user": "RESPOND"}),
    )
    try:
        ROLE_MARKERS: Dict[str, str] = {
            str(marker).strip().lower(): str(role).strip().upper()
            for marker, role in (json.loads(_role_markers_raw) or {}).items()
            if str(marker).strip()
        }
    except (ValueError, AttributeError):
        ROLE_MARKERS = {"assistant": "ASK", "user": "RESPOND"}

    # Theme validation
    THEME_MIN_COUNT = int(os.getenv("TQA_THEME_MIN_COUNT", "3"))
    THEME_MAX_COUNT = int(os.getenv("TQA_THEME_MAX_COUNT", "5"))
    THEME_MIN_PARTICIPANTS = int(os.getenv("TQA_THEME_MIN_PARTICIPANTS", "3"))
    THEME_MIN_DESCRIPTION_LENGTH = int(os.getenv("TQA_THEME_MIN_DESCRIPTION", "20"))
    THEME_REQUIRE_DESCRIPTIONS = _env_bool("TQA_THEME_REQUIRE_DESCRIPTIONS", True)
    THEME_GENERIC_PATTERNS = [
        r"various\s+(reasons|concerns|factors)",
        r"mixed\s+(reactions|opinions|feelings)",
        r"different\s+(views|perspectives|approaches)",
        r"some\s+users?\s+(want|prefer|think)",
        r"general\s+(concerns|opinions|thoughts)",
        r"other\s+(factors|considerations|reasons)",
    ]

    # Quality aggregation
    PARTIAL_SUCCESS_WEIGHT = float(os.getenv("TQA_PARTIAL_SUCCESS_WEIGHT", "0.7"))
    RELIABILITY_HIGH = float(os.getenv("TQA_RELIABILITY_HIGH", "90"))
    RELIABILITY_MEDIUM = float(os.getenv("TQA_RELIABILITY_MEDIUM", "70"))
    USABILITY_FLOOR = float(os.getenv("TQA_USABILITY_FLOOR", "50"))
    LOW_COMPLETION_THRESHOLD = float(os.getenv("TQA_LOW_COMPLETION", "80"))
    QUALITY_SCORE_WEIGHTS = {
        "completion": float(os.getenv("TQA_SCORE_WEIGHT_COMPLETION", "0.7")),
        "verification": float(os.getenv("TQA_SCORE_WEIGHT_VERIFICATION", "0.3")),
    }

    # Pattern detection
    LLM_PATTERN_RATIO = float(os.getenv("TQA_LLM_PATTERN_RATIO", "0.5"))
    DATA_QUALITY_PATTERN_RATIO = float(os.getenv("TQA_DATA_PATTERN_RATIO", "0.3"))
    COMPONENT_PATTERN_MIN = int(os.getenv("TQA_COMPONENT_PATTERN_MIN", "2"))

    # Failure classification. Order is priority: first matching row wins.
    CLASSIFIER_RULES_VERSION = os.getenv("TQA_CLASSIFIER_RULES_VERSION", "2025.1")
    DEFAULT_CLASSIFIER_RULES: List[Tuple[str, List[str]]] = [
        ("quota_exceeded", ["rate limit", "quota exceeded"]),
        ("timeout", ["timeout", "timed out"]),
        ("network_error", ["network", "connection"]),
        ("llm_failure", ["llm", "openai", "api"]),
        ("validation_failure", ["validation", "hallucinated", "quote"]),
        ("parsing_error", ["json", "parse", "format"]),
        ("workflow_error", ["workflow", "state", "node"]),
        ("data_quality", ["data", "response", "participant"]),
    ]
    CLASSIFIER_RULES = _parse_classifier_rules(os.getenv("TQA_CLASSIFIER_RULES"), DEFAULT_CLASSIFIER_RULES)

    @classmethod
    def validate_config(cls) -> List[str]:
        """Return severity-tagged issues for inconsistent settings."""
        from models import ErrorCategory

        issues: List[str] = []
        if cls.THEME_MIN_COUNT > cls.THEME_MAX_COUNT:
            issues.append(
                f"ERROR: THEME_MIN_COUNT {cls.THEME_MIN_COUNT} > THEME_MAX_COUNT {cls.THEME_MAX_COUNT}"
            )
        if cls.THEME_MIN_COUNT < 1:
            issues.append("ERROR: THEME_MIN_COUNT must be at least 1")
        if not cls.QUOTE_SEPARATOR.strip():
            issues.append("ERROR: QUOTE_SEPARATOR must contain a visible token")
        for label, ratio in (
            ("PARTIAL_SUCCESS_WEIGHT", cls.PARTIAL_SUCCESS_WEIGHT),
            ("LLM_PATTERN_RATIO", cls.LLM_PATTERN_RATIO),
            ("DATA_QUALITY_PATTERN_RATIO", cls.DATA_QUALITY_PATTERN_RATIO),
        ):
            if not (0.0 <= ratio <= 1.0):
                issues.append(f"ERROR: {label} must be between 0.0 and 1.0 (got {ratio})")
        if cls.RELIABILITY_MEDIUM > cls.RELIABILITY_HIGH:
            issues.append("ERROR: RELIABILITY_MEDIUM cannot exceed RELIABILITY_HIGH")
        weight_total = sum(cls.QUALITY_SCORE_WEIGHTS.values())
        if abs(weight_total - 1.0) > 1e-6:
            issues.append(f"WARN: QUALITY_SCORE_WEIGHTS sum to {weight_total:.3f}, expected 1.0")
        known = {category.value for category in ErrorCategory}
        for category, keywords in cls.CLASSIFIER_RULES:
            if category not in known:
                issues.append(f"ERROR: classifier rule references unknown category '{category}'")
            if not keywords:
                issues.append(f"WARN: classifier rule '{category}' has no keywords")
        for marker, role in cls.ROLE_MARKERS.items():
            if role not in {"ASK", "RESPOND"}:
                issues.append(f"ERROR: role marker '{marker}' maps to unknown role '{role}'")
        if "RESPOND" not in cls.ROLE_MARKERS.values():
            issues.append("ERROR: ROLE_MARKERS must define at least one RESPOND marker")
        for pattern in cls.THEME_GENERIC_PATTERNS:
            try:
                re.compile(pattern)
            except re.error as exc:
                issues.append(f"ERROR: generic theme pattern '{pattern}' is invalid ({exc})")
        return issues
