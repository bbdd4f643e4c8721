"""Rule-based theme validation: structure, specificity and coverage, no scoring."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence

from config import TQAConfig
from models import Classification, Theme, ValidationResult

logger = logging.getLogger(__name__)


class ThemeValidator:
    def __init__(
        self,
        min_themes: Optional[int] = None,
        max_themes: Optional[int] = None,
        min_participants: Optional[int] = None,
        min_description_length: Optional[int] = None,
        require_descriptions: Optional[bool] = None,
        generic_patterns: Optional[Sequence[str]] = None,
    ):
        self.min_themes = TQAConfig.THEME_MIN_COUNT if min_themes is None else min_themes
        self.max_themes = TQAConfig.THEME_MAX_COUNT if max_themes is None else max_themes
        self.min_participants = (
            TQAConfig.THEME_MIN_PARTICIPANTS if min_participants is None else min_participants
        )
        self.min_description_length = (
            TQAConfig.THEME_MIN_DESCRIPTION_LENGTH
            if min_description_length is None
            else min_description_length
        )
        self.require_descriptions = (
            TQAConfig.THEME_REQUIRE_DESCRIPTIONS
            if require_descriptions is None
            else require_descriptions
        )
        self.generic_patterns = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in (generic_patterns or TQAConfig.THEME_GENERIC_PATTERNS)
        ]

    def validate(
        self,
        themes: Sequence[Theme],
        classifications: Optional[Sequence[Classification]] = None,
    ) -> ValidationResult:
        if not themes:
            return ValidationResult(passed=False, errors=["No themes provided for validation"])

        errors: List[str] = []
        warnings: List[str] = []

        if len(themes) < self.min_themes:
            warnings.append(
                f"Only {len(themes)} themes - consider more granularity "
                f"(optimal: {self.min_themes}-{self.max_themes})"
            )
        if len(themes) > self.max_themes:
            warnings.append(
                f"{len(themes)} themes - consider consolidating similar themes "
                f"(optimal: {self.min_themes}-{self.max_themes})"
            )

        for index, theme in enumerate(themes):
            errors.extend(self._structure_errors(theme, index))
            generic = self._generic_error(theme)
            if generic:
                errors.append(generic)

        if classifications:
            self._coverage(themes, classifications, errors, warnings)

        if errors:
            logger.debug("Theme validation failed with %d errors", len(errors))
        return ValidationResult(passed=not errors, errors=errors, warnings=warnings)

    def _structure_errors(self, theme: Theme, index: int) -> List[str]:
        errors: List[str] = []
        if not theme.id:
            errors.append(f"Theme at index {index} missing required field: id")
        if not theme.title.strip():
            errors.append(f"Theme at index {index} missing or invalid title")
        if self.require_descriptions:
            description = theme.description.strip()
            if not description:
                errors.append(f"Theme at index {index} missing required description")
            elif len(description) < self.min_description_length:
                errors.append(
                    f"Theme at index {index} description too short "
                    f"(minimum {self.min_description_length} characters)"
                )
        return errors

    def _generic_error(self, theme: Theme) -> Optional[str]:
        if not theme.title:
            return None
        for pattern in self.generic_patterns:
            if pattern.search(theme.title):
                return f'Generic theme detected: "{theme.title}" - be more specific'
        return None

    def _coverage(
        self,
        themes: Sequence[Theme],
        classifications: Sequence[Classification],
        errors: List[str],
        warnings: List[str],
    ) -> None:
        counts: Dict[str, int] = {theme.id: 0 for theme in themes}
        for classification in classifications:
            if classification.theme_id in counts:
                counts[classification.theme_id] += 1
        for theme in themes:
            count = counts.get(theme.id, 0)
            if count == 0:
                errors.append(f'No participants classified to theme: "{theme.title}"')
            elif count < self.min_participants:
                warnings.append(
                    f'Low participation in "{theme.title}": {count} participants '
                    f"(min recommended: {self.min_participants})"
                )
