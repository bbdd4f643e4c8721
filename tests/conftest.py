from datetime import datetime, timezone

import pytest

from logging_utils import EventSink
from models import (
    CandidateQuote,
    Classification,
    FailedComponent,
    HardFailure,
    PartialFailure,
    Severity,
    SourceTranscript,
    Success,
    Theme,
    VerifiedQuote,
)


def transcript(respondent_id, *turns):
    """Build a transcript from alternating assistant/user turns."""
    lines = []
    for index, text in enumerate(turns):
        marker = "assistant" if index % 2 == 0 else "user"
        lines.append(f"{marker}: {text}")
    return SourceTranscript(respondent_id=respondent_id, text="\n".join(lines))


def quote(text, respondent_id="p1", prior_verified=None):
    return CandidateQuote(text=text, respondent_id=respondent_id, prior_verified=prior_verified)


def verified_quote(text, respondent_id="p1", verified=True):
    return VerifiedQuote(text=text, respondent_id=respondent_id, verified=verified)


def theme(theme_id, title=None, description="A specific description of the shared experience"):
    return Theme(id=theme_id, title=title or f"Specific theme {theme_id}", description=description)


def success(unit_id, quotes=None, themes=1):
    return Success(
        unit_id=unit_id,
        themes=[theme(f"t{i}") for i in range(themes)],
        quotes_by_theme={"t0": list(quotes or [])},
    )


def partial(unit_id, *components, quotes=None):
    failed = [
        FailedComponent(component=name, error=error, severity=Severity.MEDIUM)
        for name, error in components
    ] or [FailedComponent(component="classification", error="classification incomplete")]
    return PartialFailure(
        unit_id=unit_id,
        themes=[theme("t0")],
        quotes_by_theme={"t0": list(quotes or [])},
        failed_components=failed,
    )


def hard(unit_id, message):
    return HardFailure(unit_id=unit_id, error_message=message)


def classification(participant_id, theme_id):
    return Classification(participant_id=participant_id, theme_id=theme_id)


@pytest.fixture
def sink():
    return EventSink()


@pytest.fixture
def fixed_clock():
    stamp = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
    return lambda: stamp


@pytest.fixture
def interview():
    return [
        transcript(
            "p1",
            "How do you feel about the product?",
            "I love it a lot, but it's slow sometimes.",
            "Anything else?",
            "The setup was painless and quick.",
        ),
        transcript(
            "p2",
            "How do you feel about the product?",
            "Honestly, the pricing feels too high for a small team.",
        ),
    ]
