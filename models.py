from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Role(str, Enum):
    ASK = "ASK"
    RESPOND = "RESPOND"


class MatchKind(str, Enum):
    EXACT = "EXACT"
    NORMALIZED = "NORMALIZED"
    NONE = "NONE"


class VerificationFailure(str, Enum):
    """Why a quote could not be verified. Reported as data, never raised."""

    RESPONDENT_NOT_FOUND = "respondent_not_found"
    MALFORMED_TRANSCRIPT = "malformed_transcript"
    NO_RESPONDENT_TEXT = "no_respondent_text"
    EMPTY_QUOTE = "empty_quote"
    QUOTE_NOT_FOUND = "quote_not_found"


class ErrorCategory(str, Enum):
    LLM_FAILURE = "llm_failure"
    VALIDATION_FAILURE = "validation_failure"
    DATA_QUALITY = "data_quality"
    TIMEOUT = "timeout"
    QUOTA_EXCEEDED = "quota_exceeded"
    NETWORK_ERROR = "network_error"
    PARSING_ERROR = "parsing_error"
    WORKFLOW_ERROR = "workflow_error"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    CRITICAL = "critical"  # whole unit failed
    HIGH = "high"          # major component failed
    MEDIUM = "medium"      # partial component failure
    LOW = "low"            # minor issue, fallback worked


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ---------------------------------------------------------------------------
# Verification inputs and outputs
# ---------------------------------------------------------------------------


class SourceTranscript(_Frozen):
    respondent_id: str = Field(
        validation_alias=AliasChoices("respondent_id", "participant_id", "participantId")
    )
    text: str = Field(
        validation_alias=AliasChoices("text", "clean_response", "cleanResponse", "response")
    )


class CandidateQuote(_Frozen):
    text: str = Field(validation_alias=AliasChoices("text", "quote"))
    respondent_id: str = Field(
        validation_alias=AliasChoices("respondent_id", "participant_id", "participantId")
    )
    prior_verified: Optional[bool] = None


class VerifiedQuote(CandidateQuote):
    verified: bool
    match_kind: MatchKind = MatchKind.NONE
    failure_kind: Optional[VerificationFailure] = None
    failure_reason: Optional[str] = None


# ---------------------------------------------------------------------------
# Unit payloads
# ---------------------------------------------------------------------------


class Theme(_Frozen):
    id: str
    title: str = ""
    description: str = ""
    estimated_participants: Optional[int] = None
    participant_count: Optional[int] = None
    supporting_quotes: List[VerifiedQuote] = Field(default_factory=list)


class Classification(_Frozen):
    participant_id: str = Field(
        validation_alias=AliasChoices("participant_id", "participantId", "respondent_id")
    )
    theme_id: str = Field(validation_alias=AliasChoices("theme_id", "themeId"))
    theme: str = ""
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class AnalysisSummary(_Frozen):
    headline: str = ""
    summary: str = ""
    key_insights: List[str] = Field(default_factory=list)


class FailedComponent(_Frozen):
    component: str
    error: str
    severity: Severity = Severity.MEDIUM


class ValidationResult(_Frozen):
    passed: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class QuoteValidationResult(ValidationResult):
    verified_by_theme: Dict[str, List[VerifiedQuote]] = Field(default_factory=dict)
    total_quotes_validated: int = 0
    theme_quote_counts: Dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# UnitOutcome: exactly one variant per instance, selected by ``status``
# ---------------------------------------------------------------------------


class Success(_Frozen):
    status: Literal["success"] = "success"
    unit_id: str
    derived_question: Optional[str] = None
    themes: List[Theme] = Field(default_factory=list)
    classifications: List[Classification] = Field(default_factory=list)
    quotes_by_theme: Dict[str, List[VerifiedQuote]] = Field(default_factory=dict)
    summary: Optional[AnalysisSummary] = None


class PartialFailure(_Frozen):
    status: Literal["partial_failure"] = "partial_failure"
    unit_id: str
    derived_question: Optional[str] = None
    themes: List[Theme] = Field(default_factory=list)
    classifications: List[Classification] = Field(default_factory=list)
    quotes_by_theme: Dict[str, List[VerifiedQuote]] = Field(default_factory=dict)
    summary: Optional[AnalysisSummary] = None
    failed_components: List[FailedComponent]

    @field_validator("failed_components")
    def require_failed_components(cls, v: List[FailedComponent]) -> List[FailedComponent]:
        if not v:
            raise ValueError("a partial failure must list at least one failed component")
        return v


class HardFailure(_Frozen):
    status: Literal["hard_failure"] = "hard_failure"
    unit_id: str
    error_message: str

    @field_validator("error_message")
    def require_message(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("a hard failure must carry an error message")
        return v


UnitOutcome = Annotated[Union[Success, PartialFailure, HardFailure], Field(discriminator="status")]
UNIT_OUTCOME_ADAPTER: TypeAdapter = TypeAdapter(UnitOutcome)


# ---------------------------------------------------------------------------
# Batch analysis
# ---------------------------------------------------------------------------


class FailureRecord(_Frozen):
    unit_id: str
    component: Optional[str] = None
    raw_message: str
    category: ErrorCategory
    severity: Severity


class Pattern(_Frozen):
    name: str
    severity: Severity
    affected_count: int
    affected_units: List[str] = Field(default_factory=list)
    description: str
    recommendation: str


class ComponentBreakdown(_Frozen):
    by_component: Dict[str, int] = Field(default_factory=dict)
    most_problematic: Optional[str] = None


class QualitySummary(_Frozen):
    total_units: int
    requested_units: int
    success_count: int
    partial_count: int
    failed_count: int
    completion_rate: float
    data_completeness: float
    reliability: str
    overall_quality: str
    output_usability: str
    total_quotes: int
    verified_quotes: int
    quote_verification_rate: Optional[float] = Field(
        default=None, description="Percentage of verified quotes; None when no quotes (N/A)"
    )
    average_themes_per_unit: float = 0.0
    quality_score: float = Field(ge=0.0, le=1.0)
    critical_issues: List[str] = Field(default_factory=list)


class Recommendation(_Frozen):
    cause: str
    priority: Priority
    category: str
    title: str
    description: str
    action_items: List[str] = Field(default_factory=list)


class BatchSummary(_Frozen):
    total_units: int
    successful_units: int
    partial_units: int
    failed_units: int
    total_failures: int
    critical_failures: int
    high_severity_failures: int


class BatchReport(_Frozen):
    summary: BatchSummary
    categorized_failures: Dict[ErrorCategory, List[FailureRecord]]
    detected_patterns: List[Pattern] = Field(default_factory=list)
    component_breakdown: ComponentBreakdown
    quality: QualitySummary
    quality_score: float = Field(ge=0.0, le=1.0)
    recommendations: List[Recommendation] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    generated_at: str
