"""
Quote verification and hallucination prevention.

Every quote attributed to a respondent must appear in that respondent's own
turns of the transcript, verbatim or after whitespace/case/punctuation
normalization. Failures are reported on the returned ``VerifiedQuote`` and
never raised, so one fabricated quote cannot block the rest of a unit.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from config import TQAConfig
from logging_utils import EventSink
from models import (
    CandidateQuote,
    Classification,
    MatchKind,
    QuoteValidationResult,
    SourceTranscript,
    Theme,
    VerificationFailure,
    VerifiedQuote,
)
from text_normalizer import NormalizeOptions, normalize
from transcript_roles import MalformedTranscript, RoleExtractor

logger = logging.getLogger(__name__)

TranscriptSource = Union[Sequence[SourceTranscript], Mapping[str, SourceTranscript]]

_LEADING_ELLIPSIS_RE = re.compile(r"^\s*(\.{3,}|…)")
_TRAILING_ELLIPSIS_RE = re.compile(r"(\.{3,}|…)\s*$")


def _preview(text: str, limit: int = 50) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


def _lookup(transcripts: TranscriptSource) -> Dict[str, SourceTranscript]:
    if isinstance(transcripts, Mapping):
        return dict(transcripts)
    lookup: Dict[str, SourceTranscript] = {}
    for transcript in transcripts:
        lookup[transcript.respondent_id] = transcript
    return lookup


class QuoteVerifier:
    """Verifies candidate quotes against respondent-only transcript text.

    Holds configuration only; ``verify`` is safe to call from many threads.
    """

    def __init__(
        self,
        options: Optional[NormalizeOptions] = None,
        separator: Optional[str] = None,
        extractor: Optional[RoleExtractor] = None,
        sink: Optional[EventSink] = None,
        min_words: Optional[int] = None,
        max_chars: Optional[int] = None,
    ):
        self.options = options if options is not None else NormalizeOptions.from_config()
        self.separator = separator or TQAConfig.QUOTE_SEPARATOR
        self.extractor = extractor or RoleExtractor()
        self.sink = sink or EventSink(logger)
        self.min_words = TQAConfig.QUOTE_MIN_WORDS if min_words is None else min_words
        self.max_chars = TQAConfig.QUOTE_MAX_CHARS if max_chars is None else max_chars

    # ------------------------------------------------------------------
    # Single quote
    # ------------------------------------------------------------------

    def split_parts(self, text: str) -> List[str]:
        if self.separator in text:
            return [part.strip() for part in text.split(self.separator)]
        return [text.strip()]

    def verify(self, quote: CandidateQuote, transcripts: TranscriptSource) -> VerifiedQuote:
        return self._verify(quote, _lookup(transcripts), {})

    def _verify(
        self,
        quote: CandidateQuote,
        lookup: Mapping[str, SourceTranscript],
        text_cache: Dict[str, Union[str, MalformedTranscript]],
    ) -> VerifiedQuote:
        if not quote.text or not quote.text.strip():
            return self._reject(quote, VerificationFailure.EMPTY_QUOTE, "Quote text is empty")

        transcript = lookup.get(quote.respondent_id)
        if transcript is None:
            return self._reject(
                quote,
                VerificationFailure.RESPONDENT_NOT_FOUND,
                f"No transcript found for respondent {quote.respondent_id}",
            )

        respondent_text = text_cache.get(quote.respondent_id)
        if respondent_text is None:
            try:
                respondent_text = self.extractor.extract_respondent_text(transcript.text)
            except MalformedTranscript as exc:
                respondent_text = exc
            text_cache[quote.respondent_id] = respondent_text
        if isinstance(respondent_text, MalformedTranscript):
            return self._reject(
                quote,
                VerificationFailure.MALFORMED_TRANSCRIPT,
                f"Transcript for respondent {quote.respondent_id} is malformed: {respondent_text}",
            )
        if not respondent_text:
            return self._reject(
                quote,
                VerificationFailure.NO_RESPONDENT_TEXT,
                f"No respondent turns in transcript for respondent {quote.respondent_id}",
            )

        match_kind, reason = self._match_parts(self.split_parts(quote.text), respondent_text)
        if match_kind is MatchKind.NONE:
            return self._reject(quote, VerificationFailure.QUOTE_NOT_FOUND, reason)

        verified = VerifiedQuote(
            text=quote.text,
            respondent_id=quote.respondent_id,
            prior_verified=quote.prior_verified,
            verified=True,
            match_kind=match_kind,
        )
        self.sink.emit(
            "quote-verified", respondent_id=quote.respondent_id, match_kind=match_kind.value
        )
        return verified

    def _match_parts(self, parts: List[str], respondent_text: str) -> Tuple[MatchKind, str]:
        """AND over parts: every part must match or the whole quote fails."""
        normalized_text: Optional[str] = None
        all_exact = True
        for part in parts:
            if not part:
                return MatchKind.NONE, "Quote contains an empty part"
            if part in respondent_text:
                continue
            all_exact = False
            if self.options.any_enabled:
                if normalized_text is None:
                    normalized_text = normalize(respondent_text, self.options)
                normalized_part = normalize(part, self.options)
                if normalized_part and normalized_part in normalized_text:
                    continue
            return MatchKind.NONE, f'Quote part "{_preview(part, 30)}" not found in respondent text'
        return (MatchKind.EXACT if all_exact else MatchKind.NORMALIZED), ""

    def _reject(
        self, quote: CandidateQuote, kind: VerificationFailure, reason: str
    ) -> VerifiedQuote:
        self.sink.emit(
            "quote-rejected",
            respondent_id=quote.respondent_id,
            failure_kind=kind.value,
            reason=reason,
        )
        if quote.prior_verified:
            self.sink.emit(
                "prior-verification-overturned",
                respondent_id=quote.respondent_id,
                failure_kind=kind.value,
            )
        return VerifiedQuote(
            text=quote.text,
            respondent_id=quote.respondent_id,
            prior_verified=quote.prior_verified,
            verified=False,
            match_kind=MatchKind.NONE,
            failure_kind=kind,
            failure_reason=reason,
        )

    # ------------------------------------------------------------------
    # Many quotes
    # ------------------------------------------------------------------

    def verify_many(
        self,
        quotes: Iterable[CandidateQuote],
        transcripts: TranscriptSource,
        max_workers: Optional[int] = None,
    ) -> List[VerifiedQuote]:
        """Verify quotes in input order, optionally across a thread pool."""
        lookup = _lookup(transcripts)
        quotes = list(quotes)
        if not max_workers or max_workers <= 1 or len(quotes) <= 1:
            cache: Dict[str, Union[str, MalformedTranscript]] = {}
            return [self._verify(quote, lookup, cache) for quote in quotes]
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(lambda quote: self._verify(quote, lookup, {}), quotes))

    def quality_warnings(self, text: str) -> List[str]:
        warnings: List[str] = []
        word_count = len(text.split())
        if word_count < self.min_words:
            warnings.append(f'Quote is very short ({word_count} words): "{text}"')
        if len(text) > self.max_chars:
            warnings.append(
                f"Quote is very long ({len(text)} chars) - consider shorter excerpts"
            )
        if _LEADING_ELLIPSIS_RE.search(text) or _TRAILING_ELLIPSIS_RE.search(text):
            warnings.append(f'Quote appears to be truncated with ellipsis: "{_preview(text)}"')
        return warnings

    def validate_theme_quotes(
        self,
        themes: Sequence[Theme],
        quotes_by_theme: Mapping[str, Sequence[CandidateQuote]],
        transcripts: TranscriptSource,
        classifications: Optional[Sequence[Classification]] = None,
    ) -> QuoteValidationResult:
        """Verify every quote of every theme and collect errors and warnings."""
        lookup = _lookup(transcripts)
        cache: Dict[str, Union[str, MalformedTranscript]] = {}
        classified: Dict[str, Classification] = {}
        for classification in classifications or []:
            classified.setdefault(classification.participant_id, classification)

        errors: List[str] = []
        warnings: List[str] = []
        verified_by_theme: Dict[str, List[VerifiedQuote]] = {}
        seen: Dict[Tuple[str, str], str] = {}
        known_ids = {theme.id for theme in themes}

        for theme in themes:
            theme_quotes = list(quotes_by_theme.get(theme.id) or [])
            if not theme_quotes:
                warnings.append(f'No quotes found for theme: "{theme.title}"')
            results: List[VerifiedQuote] = []
            for quote in theme_quotes:
                result = self._verify(quote, lookup, cache)
                results.append(result)
                if not result.verified:
                    if result.failure_kind is VerificationFailure.QUOTE_NOT_FOUND:
                        errors.append(
                            f'HALLUCINATED QUOTE: "{_preview(quote.text)}" for participant '
                            f"{quote.respondent_id} - {result.failure_reason}"
                        )
                    else:
                        errors.append(
                            f'Unverifiable quote "{_preview(quote.text)}" for participant '
                            f"{quote.respondent_id} - {result.failure_reason}"
                        )
                match = classified.get(quote.respondent_id)
                if match is not None and match.theme_id != theme.id:
                    warnings.append(
                        f'Quote from participant {quote.respondent_id} for theme "{theme.title}" '
                        f'but participant classified to "{match.theme or match.theme_id}"'
                    )
                if quote.text and quote.text.strip():
                    warnings.extend(self.quality_warnings(quote.text))
                key = (quote.respondent_id, quote.text)
                if key in seen:
                    warnings.append(
                        f'Duplicate quote found: "{_preview(quote.text)}" from participant '
                        f"{quote.respondent_id}"
                    )
                else:
                    seen[key] = theme.id
            verified_by_theme[theme.id] = results

        for theme_id in quotes_by_theme:
            if theme_id not in known_ids:
                warnings.append(f"Quotes supplied for unknown theme id: {theme_id}")

        total = sum(len(quotes) for quotes in verified_by_theme.values())
        result = QuoteValidationResult(
            passed=not errors,
            errors=errors,
            warnings=warnings,
            verified_by_theme=verified_by_theme,
            total_quotes_validated=total,
            theme_quote_counts={theme_id: len(q) for theme_id, q in verified_by_theme.items()},
        )
        self.sink.emit(
            "theme-quotes-validated",
            passed=result.passed,
            quotes=total,
            errors=len(errors),
            warnings=len(warnings),
        )
        return result


def verify(
    quote: CandidateQuote,
    transcripts: TranscriptSource,
    options: Optional[NormalizeOptions] = None,
) -> VerifiedQuote:
    return QuoteVerifier(options=options).verify(quote, transcripts)


__all__ = ["QuoteVerifier", "TranscriptSource", "verify"]
