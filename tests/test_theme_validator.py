from conftest import classification, theme
from models import Theme
from theme_validator import ThemeValidator


def _themes():
    return [
        theme("t0", "Onboarding is confusing"),
        theme("t1", "Pricing blocks small teams"),
        theme("t2", "Support responds quickly"),
    ]


def test_well_formed_themes_pass():
    result = ThemeValidator().validate(_themes())
    assert result.passed is True
    assert result.errors == []
    assert result.warnings == []


def test_no_themes_fails():
    result = ThemeValidator().validate([])
    assert result.passed is False
    assert result.errors == ["No themes provided for validation"]


def test_count_outside_optimal_range_warns():
    result = ThemeValidator(min_themes=3, max_themes=5).validate(_themes()[:1])
    assert result.passed is True
    assert "consider more granularity" in result.warnings[0]


def test_generic_title_is_an_error():
    themes = _themes() + [theme("t3", "Various reasons for churn")]
    result = ThemeValidator().validate(themes)
    assert result.passed is False
    assert any("Generic theme detected" in e for e in result.errors)


def test_missing_and_short_descriptions():
    themes = [
        Theme(id="t0", title="Onboarding is confusing", description=""),
        Theme(id="t1", title="Pricing blocks small teams", description="Too short"),
        theme("t2", "Support responds quickly"),
    ]
    result = ThemeValidator().validate(themes)
    assert "Theme at index 0 missing required description" in result.errors
    assert any("index 1 description too short" in e for e in result.errors)


def test_descriptions_optional_when_disabled():
    themes = [Theme(id=f"t{i}", title=f"Distinct theme {i}") for i in range(3)]
    assert ThemeValidator(require_descriptions=False).validate(themes).passed is True


def test_coverage_errors_and_warnings():
    classifications = [classification("p1", "t0"), classification("p2", "t0"), classification("p3", "t0")]
    classifications += [classification("p4", "t1")]
    result = ThemeValidator(min_participants=3).validate(_themes(), classifications)
    assert result.passed is False
    assert 'No participants classified to theme: "Support responds quickly"' in result.errors
    assert any('Low participation in "Pricing blocks small teams"' in w for w in result.warnings)
