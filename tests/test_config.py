import importlib

import pytest

import config
from config import TQAConfig


@pytest.fixture
def reload_config(monkeypatch):
    def _reload(**env):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        return importlib.reload(config).TQAConfig

    yield _reload
    monkeypatch.undo()
    importlib.reload(config)


def test_defaults_are_consistent():
    assert TQAConfig.validate_config() == []


def test_default_classifier_table_order():
    categories = [category for category, _ in TQAConfig.DEFAULT_CLASSIFIER_RULES]
    assert categories.index("quota_exceeded") < categories.index("timeout")
    assert categories.index("timeout") < categories.index("data_quality")


def test_inconsistent_theme_counts_are_reported(monkeypatch):
    monkeypatch.setattr(TQAConfig, "THEME_MIN_COUNT", 6)
    issues = TQAConfig.validate_config()
    assert any(issue.startswith("ERROR: THEME_MIN_COUNT 6") for issue in issues)


def test_bad_ratios_and_weights_are_reported(monkeypatch):
    monkeypatch.setattr(TQAConfig, "LLM_PATTERN_RATIO", 1.5)
    monkeypatch.setattr(TQAConfig, "QUALITY_SCORE_WEIGHTS", {"completion": 0.5, "verification": 0.2})
    issues = TQAConfig.validate_config()
    assert any("LLM_PATTERN_RATIO" in issue for issue in issues)
    assert any(issue.startswith("WARN: QUALITY_SCORE_WEIGHTS") for issue in issues)


def test_unknown_classifier_category_is_reported(monkeypatch):
    monkeypatch.setattr(TQAConfig, "CLASSIFIER_RULES", [("cosmic_rays", ["solar"])])
    assert any("cosmic_rays" in issue for issue in TQAConfig.validate_config())


def test_environment_overrides(reload_config):
    cfg = reload_config(
        TQA_NORMALIZE_CASE="true",
        TQA_QUOTE_SEPARATOR=" [...] ",
        TQA_ROLE_MARKERS='{"Interviewer": "ask", "Participant": "respond"}',
        TQA_CLASSIFIER_RULES='[["timeout", ["Deadline"]]]',
    )
    assert cfg.NORMALIZE_CASE is True
    assert cfg.QUOTE_SEPARATOR == " [...] "
    assert cfg.ROLE_MARKERS == {"interviewer": "ASK", "participant": "RESPOND"}
    assert cfg.CLASSIFIER_RULES == [("timeout", ["deadline"])]


def test_malformed_json_overrides_fall_back(reload_config):
    cfg = reload_config(TQA_ROLE_MARKERS="not json", TQA_CLASSIFIER_RULES="[1]")
    assert cfg.ROLE_MARKERS == {"assistant": "ASK", "user": "RESPOND"}
    assert cfg.CLASSIFIER_RULES == list(cfg.DEFAULT_CLASSIFIER_RULES)


@pytest.mark.parametrize(
    "raw",
    ['[["timeout", "timed out"]]', '[["timeout"]]', '{"timeout": ["timed out"]}'],
)
def test_malformed_classifier_rows_fall_back(reload_config, raw):
    cfg = reload_config(TQA_CLASSIFIER_RULES=raw)
    assert cfg.CLASSIFIER_RULES == list(cfg.DEFAULT_CLASSIFIER_RULES)


def test_unknown_env_category_is_reported_not_fatal(reload_config, monkeypatch):
    cfg = reload_config(TQA_CLASSIFIER_RULES='[["rate_limited", ["quota"]], ["timeout", ["timed out"]]]')
    import failure_classifier
    from models import ErrorCategory

    monkeypatch.setattr(failure_classifier, "TQAConfig", cfg)
    assert any("rate_limited" in issue for issue in cfg.validate_config())
    assert [c for c, _ in failure_classifier.FailureClassifier().rules] == [ErrorCategory.TIMEOUT]
    assert failure_classifier.classify("quota hit") is ErrorCategory.UNKNOWN
    assert failure_classifier.classify("Request timed out") is ErrorCategory.TIMEOUT
