"""Text canonicalization used for normalized quote matching."""

from __future__ import annotations

import re
from dataclasses import dataclass

from config import TQAConfig

_WHITESPACE_RE = re.compile(r"\s+")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")


@dataclass(frozen=True)
class NormalizeOptions:
    """Independent toggles applied in a fixed order: whitespace, case, punctuation."""

    collapse_whitespace: bool = True
    fold_case: bool = False
    strip_punctuation: bool = True

    @property
    def any_enabled(self) -> bool:
        return self.collapse_whitespace or self.fold_case or self.strip_punctuation

    @classmethod
    def from_config(cls) -> "NormalizeOptions":
        return cls(
            collapse_whitespace=TQAConfig.NORMALIZE_WHITESPACE,
            fold_case=TQAConfig.NORMALIZE_CASE,
            strip_punctuation=TQAConfig.NORMALIZE_PUNCTUATION,
        )


EXACT_ONLY = NormalizeOptions(collapse_whitespace=False, fold_case=False, strip_punctuation=False)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize(text: str, options: NormalizeOptions = NormalizeOptions()) -> str:
    """Return ``text`` canonicalized per ``options``. Total: falsy input yields ``""``."""
    if not text:
        return ""
    normalized = str(text)
    if options.collapse_whitespace:
        normalized = collapse_whitespace(normalized)
    if options.fold_case:
        normalized = normalized.casefold()
    if options.strip_punctuation:
        normalized = _PUNCTUATION_RE.sub("", normalized)
        # Removing a standalone mark ("a - b") leaves a double gap.
        if options.collapse_whitespace:
            normalized = collapse_whitespace(normalized)
    return normalized


__all__ = ["NormalizeOptions", "EXACT_ONLY", "collapse_whitespace", "normalize"]
