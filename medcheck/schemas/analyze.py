"""
API Schemas — Request and Response Models

Pydantic models for the MedCheck API.
"""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field

from medcheck.config import settings
from medcheck.matcher import MatchOptions
from medcheck.taxonomy import (
    CredibilityLevel,
    Department,
    Grade,
    PatternCategory,
    PatternSeverity,
    RiskLevel,
    SectionType,
    ToneType,
    ViolationSeverity,
    ViolationStatus,
    ViolationType,
)


# ============================================================
# REQUESTS
# ============================================================

class AnalyzeOptions(BaseModel):
    """Pattern matching knobs. Omitted fields use server defaults."""
    categories: Optional[list[PatternCategory]] = None
    min_severity: Optional[PatternSeverity] = None
    context_length: int = Field(settings.CONTEXT_LENGTH, ge=0, le=500)
    max_matches: int = Field(settings.MAX_MATCHES, ge=1, le=1000)
    min_confidence: float = Field(settings.MIN_CONFIDENCE, ge=0.0, le=1.0)
    filter_exceptions: bool = True
    dedupe_sentences: bool = True

    def to_match_options(self) -> MatchOptions:
        return MatchOptions(
            categories=tuple(self.categories) if self.categories else None,
            min_severity=self.min_severity,
            context_length=self.context_length,
            max_matches=self.max_matches,
            min_confidence=self.min_confidence,
            filter_exceptions=self.filter_exceptions,
            dedupe_sentences=self.dedupe_sentences,
        )


class AnalyzeRequest(BaseModel):
    """POST /analyze request body. Blank text yields a no-input result."""
    text: str = Field(..., max_length=settings.MAX_TEXT_LENGTH,
                      description="Advertisement text, already extracted from the page.")
    url: Optional[str] = Field(None, max_length=2048,
                               description="Page URL, used only to guess the page section.")
    options: Optional[AnalyzeOptions] = None
    enable_extended: bool = True
    enable_compound: bool = True
    enable_department: bool = True
    enable_mandatory: bool = True
    enable_impression: bool = True
    department: Optional[Department] = Field(
        None, description="Pin the specialty instead of auto-detecting it.",
    )

    model_config = {"json_schema_extra": {"examples": [
        {"text": "오늘만 50% 할인! 100% 효과 보장합니다", "url": "https://example.com/event"},
    ]}}


class AnalyzeBatchRequest(BaseModel):
    """POST /analyze/batch request body."""
    items: list[AnalyzeRequest] = Field(..., min_length=1, max_length=50)


# ============================================================
# MATCHES AND VIOLATIONS
# ============================================================

class PatternMatchResponse(BaseModel):
    pattern_id: str
    category: PatternCategory
    subcategory: str
    matched_text: str
    position: int
    end_position: int
    context: str
    severity: PatternSeverity
    confidence: float
    sentence_id: int
    disclaimer_detected: bool
    legal_basis: str
    description: str
    suggestion: str = ""


class LegalCitationResponse(BaseModel):
    law: str
    article: str
    description: str = ""


class ViolationResponse(BaseModel):
    type: ViolationType
    status: ViolationStatus
    severity: ViolationSeverity
    matched_text: str
    position: int
    description: str
    legal_basis: list[LegalCitationResponse]
    confidence: float
    pattern_id: str
    label: str
    suggestion: str
    category: PatternCategory
    disclaimer_applied: bool = False


class GradeInfoResponse(BaseModel):
    emoji: str
    status: str
    message: str


class ScoreResponse(BaseModel):
    clean_score: int
    total_deduction: int
    severity_deductions: dict[str, int]
    severity_counts: dict[str, int]
    category_deductions: dict[str, float]
    grade: Grade
    grade_info: GradeInfoResponse
    section_type: SectionType


class JudgmentResponse(BaseModel):
    violations: list[ViolationResponse]
    score: ScoreResponse
    summary: str
    recommendations: list[str]
    analyzed_at: str


# ============================================================
# OPTIONAL STAGES
# ============================================================

class CompoundViolationResponse(BaseModel):
    rule_id: str
    rule_name: str
    category: str
    matched_conditions: list[str]
    unmatched_conditions: list[str]
    matched_text: str
    context: str
    position: int
    end_position: int
    severity: PatternSeverity
    legal_basis: str
    description: str
    suggestion: str
    confidence: float
    related_pattern_ids: list[str] = []


class DepartmentDetectionResponse(BaseModel):
    department: Department
    confidence: float
    evidence: list[str]
    pinned: bool = False


class DepartmentViolationResponse(BaseModel):
    rule_id: str
    department: Department
    rule_name: str
    matched_text: str
    context: str
    position: int
    end_position: int
    severity: PatternSeverity
    legal_basis: str
    description: str
    suggestion: str
    confidence: float


class MandatoryItemResponse(BaseModel):
    name: str
    required: bool
    found: bool
    is_valid: bool
    value: Optional[str] = None
    position: Optional[int] = None
    issue: Optional[str] = None


class MandatoryCheckResponse(BaseModel):
    is_complete: bool
    score: int
    items: list[MandatoryItemResponse]
    missing_items: list[str]
    warnings: list[str]


class ToneResponse(BaseModel):
    primary_tone: ToneType
    secondary_tones: list[ToneType]
    tone_score: float
    aggressiveness: float
    tone_signals: list[str]
    tone_counts: dict[str, int] = {}


class CredibilityResponse(BaseModel):
    impression: CredibilityLevel
    score: int
    positive_factors: list[str]
    negative_factors: list[str]


class ImpressionResponse(BaseModel):
    risk_level: RiskLevel
    risk_score: int
    tone_analysis: ToneResponse
    credibility_analysis: CredibilityResponse
    compliance_score: int
    violation_score: int
    overall_assessment: str
    key_issues: list[str]
    recommendations: list[str]
    confidence: float


# ============================================================
# ANALYZE
# ============================================================

class AnalyzeResponse(BaseModel):
    """POST /analyze response body."""
    id: str
    input_length: int
    no_input: bool
    section_type: SectionType
    matches: list[PatternMatchResponse]
    judgment: JudgmentResponse
    processing_time_ms: int
    compound_violations: Optional[list[CompoundViolationResponse]] = None
    department_detection: Optional[DepartmentDetectionResponse] = None
    department_violations: Optional[list[DepartmentViolationResponse]] = None
    mandatory_check: Optional[MandatoryCheckResponse] = None
    impression: Optional[ImpressionResponse] = None
    overall_risk_score: Optional[int] = None
    overall_compliance_score: Optional[int] = None


class AnalyzeBatchItem(BaseModel):
    index: int
    result: Optional[AnalyzeResponse] = None
    error: Optional[str] = None


class AnalyzeBatchResponse(BaseModel):
    """POST /analyze/batch response body."""
    results: list[AnalyzeBatchItem]
    total: int
    analyzed: int


# ============================================================
# CATALOGUE
# ============================================================

class PatternInfo(BaseModel):
    id: str
    category: PatternCategory
    subcategory: str
    severity: PatternSeverity
    legal_basis: str
    description: str
    example: str = ""
    absolute: bool = False


class PatternsResponse(BaseModel):
    dictionary_version: str
    category: Optional[PatternCategory] = None
    total: int
    patterns: list[PatternInfo]


class DepartmentInfo(BaseModel):
    department: Department
    name: str
    rule_count: int


class DepartmentsResponse(BaseModel):
    departments: list[DepartmentInfo]


# ============================================================
# HEALTH
# ============================================================

class HealthResponse(BaseModel):
    status: str
    version: str
    core_version: str
    dictionary_version: str
    rule_counts: dict[str, int]
