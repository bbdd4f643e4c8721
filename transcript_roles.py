"""Respondent-only text extraction from role-tagged transcripts."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Pattern, Tuple

from config import TQAConfig
from models import Role


class MalformedTranscript(ValueError):
    """Raised when a transcript carries no recognisable role marker."""


def _marker_pattern(markers: Dict[str, str]) -> Pattern[str]:
    alternatives = "|".join(re.escape(marker) for marker in sorted(markers, key=len, reverse=True))
    return re.compile(rf"(?<![\w])({alternatives})\s*:", re.IGNORECASE)


class RoleExtractor:
    """Splits a transcript on role markers and keeps the respondent's turns."""

    def __init__(self, markers: Optional[Dict[str, str]] = None):
        raw = markers if markers is not None else TQAConfig.ROLE_MARKERS
        self.markers: Dict[str, Role] = {
            marker.strip().lower(): Role(str(role).upper()) for marker, role in raw.items()
        }
        if not self.markers:
            raise ValueError("at least one role marker is required")
        self._pattern = _marker_pattern(self.markers)

    def split_turns(self, transcript: str) -> List[Tuple[Role, str]]:
        """Return ``(role, text)`` turns in order; leading unlabelled text counts as ASK."""
        if not transcript or not transcript.strip():
            raise MalformedTranscript("transcript is empty")
        pieces = self._pattern.split(transcript)
        if len(pieces) == 1:
            raise MalformedTranscript(
                f"no role markers found (expected one of {sorted(self.markers)})"
            )
        turns: List[Tuple[Role, str]] = []
        preamble = pieces[0].strip()
        if preamble:
            turns.append((Role.ASK, preamble))
        for marker, segment in zip(pieces[1::2], pieces[2::2]):
            text = segment.strip()
            if text:
                turns.append((self.markers[marker.lower()], text))
        return turns

    def extract_respondent_text(self, transcript: str) -> str:
        """Join every RESPOND turn with a single space.

        Returns ``""`` when markers exist but the respondent never spoke; raises
        ``MalformedTranscript`` when the format is not recognised at all.
        """
        turns = self.split_turns(transcript)
        return " ".join(text for role, text in turns if role is Role.RESPOND).strip()


def extract_respondent_text(transcript: str, markers: Optional[Dict[str, str]] = None) -> str:
    return RoleExtractor(markers).extract_respondent_text(transcript)


__all__ = ["MalformedTranscript", "RoleExtractor", "extract_respondent_text"]
