"""
Taxonomy — Closed Vocabularies of the Pipeline

Every category, severity, department and status the pipeline emits is
one of the enumerations below. They subclass ``str`` so they serialize
as their Korean/English literal values in JSON without any adapter.

Also defines the ``Rule`` protocol: atomic patterns, compound rules,
department rules and mandatory items all expose ``id`` and
``evaluate(text)`` so they can be iterated as one list.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


# ============================================================
# SEVERITY
# ============================================================

class PatternSeverity(str, Enum):
    """Three-level severity carried by rule definitions."""
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"

    @property
    def rank(self) -> int:
        return _PATTERN_RANK[self]

    @property
    def confidence_bonus(self) -> float:
        """Bonus added to a base confidence of 0.7."""
        return _SEVERITY_BONUS[self]


_PATTERN_RANK = {
    PatternSeverity.CRITICAL: 3,
    PatternSeverity.MAJOR: 2,
    PatternSeverity.MINOR: 1,
}

_SEVERITY_BONUS = {
    PatternSeverity.CRITICAL: 0.15,
    PatternSeverity.MAJOR: 0.10,
    PatternSeverity.MINOR: 0.0,
}


class ViolationSeverity(str, Enum):
    """Four-level severity of normalized violations. Ordering is total."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _VIOLATION_RANK[self]

    def downgrade(self) -> "ViolationSeverity":
        """One step down. LOW stays LOW."""
        return _DOWNGRADE[self]

    @classmethod
    def from_pattern(cls, severity: PatternSeverity) -> "ViolationSeverity":
        return _FROM_PATTERN[severity]


_VIOLATION_RANK = {
    ViolationSeverity.CRITICAL: 4,
    ViolationSeverity.HIGH: 3,
    ViolationSeverity.MEDIUM: 2,
    ViolationSeverity.LOW: 1,
}

_DOWNGRADE = {
    ViolationSeverity.CRITICAL: ViolationSeverity.HIGH,
    ViolationSeverity.HIGH: ViolationSeverity.MEDIUM,
    ViolationSeverity.MEDIUM: ViolationSeverity.LOW,
    ViolationSeverity.LOW: ViolationSeverity.LOW,
}

_FROM_PATTERN = {
    PatternSeverity.CRITICAL: ViolationSeverity.CRITICAL,
    PatternSeverity.MAJOR: ViolationSeverity.HIGH,
    PatternSeverity.MINOR: ViolationSeverity.MEDIUM,
}


# ============================================================
# CATEGORIES & VIOLATION TYPES
# ============================================================

class ViolationType(str, Enum):
    GUARANTEE = "guarantee"
    FALSE_CLAIM = "false_claim"
    EXAGGERATION = "exaggeration"
    COMPARISON = "comparison"
    PRICE_INDUCEMENT = "price_inducement"
    BEFORE_AFTER = "before_after"
    TESTIMONIAL = "testimonial"
    PROHIBITED_EXPRESSION = "prohibited_expression"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]


_TYPE_LABELS = {
    ViolationType.GUARANTEE: "치료 효과 보장",
    ViolationType.FALSE_CLAIM: "허위·부작용 부정",
    ViolationType.EXAGGERATION: "과장 표현",
    ViolationType.COMPARISON: "비교 광고",
    ViolationType.PRICE_INDUCEMENT: "가격 유인",
    ViolationType.BEFORE_AFTER: "전후 사진",
    ViolationType.TESTIMONIAL: "체험기",
    ViolationType.PROHIBITED_EXPRESSION: "금지 표현",
    ViolationType.OTHER: "기타",
}


class PatternCategory(str, Enum):
    """Atomic pattern categories, named as in the Medical Service Act guidance."""
    GUARANTEE = "치료효과보장"
    SIDE_EFFECT_DENIAL = "부작용부정"
    SUPERLATIVE = "최상급표현"
    COMPARISON = "비교광고"
    INDUCEMENT = "환자유인"
    BEFORE_AFTER = "전후사진"
    TESTIMONIAL = "체험기"
    PROHIBITED = "금지어"

    @property
    def weight(self) -> float:
        """Multiplier applied to a violation's deduction."""
        return _CATEGORY_WEIGHTS[self]

    @property
    def violation_type(self) -> ViolationType:
        return _CATEGORY_TYPES[self]


_CATEGORY_WEIGHTS = {
    PatternCategory.GUARANTEE: 1.3,
    PatternCategory.SIDE_EFFECT_DENIAL: 1.3,
    PatternCategory.SUPERLATIVE: 1.1,
    PatternCategory.COMPARISON: 1.2,
    PatternCategory.INDUCEMENT: 1.2,
    PatternCategory.BEFORE_AFTER: 1.1,
    PatternCategory.TESTIMONIAL: 1.0,
    PatternCategory.PROHIBITED: 1.0,
}

_CATEGORY_TYPES = {
    PatternCategory.GUARANTEE: ViolationType.GUARANTEE,
    PatternCategory.SIDE_EFFECT_DENIAL: ViolationType.FALSE_CLAIM,
    PatternCategory.SUPERLATIVE: ViolationType.EXAGGERATION,
    PatternCategory.COMPARISON: ViolationType.COMPARISON,
    PatternCategory.INDUCEMENT: ViolationType.PRICE_INDUCEMENT,
    PatternCategory.BEFORE_AFTER: ViolationType.BEFORE_AFTER,
    PatternCategory.TESTIMONIAL: ViolationType.TESTIMONIAL,
    PatternCategory.PROHIBITED: ViolationType.PROHIBITED_EXPRESSION,
}


class ViolationStatus(str, Enum):
    VIOLATION = "violation"
    LIKELY = "likely"
    POSSIBLE = "possible"

    @classmethod
    def from_confidence(cls, confidence: float) -> "ViolationStatus":
        if confidence >= 0.85:
            return cls.VIOLATION
        if confidence >= 0.70:
            return cls.LIKELY
        return cls.POSSIBLE


class Grade(str, Enum):
    S = "S"
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


# ============================================================
# PAGE SECTIONS & DEPARTMENTS
# ============================================================

class SectionType(str, Enum):
    EVENT = "event"
    TREATMENT = "treatment"
    FAQ = "faq"
    REVIEW = "review"
    DOCTOR = "doctor"
    DEFAULT = "default"

    @property
    def weight(self) -> float:
        return _SECTION_WEIGHTS[self]


_SECTION_WEIGHTS = {
    SectionType.EVENT: 0.8,
    SectionType.TREATMENT: 1.2,
    SectionType.FAQ: 0.6,
    SectionType.REVIEW: 0.7,
    SectionType.DOCTOR: 1.0,
    SectionType.DEFAULT: 1.0,
}


class Department(str, Enum):
    DERMATOLOGY = "dermatology"
    PLASTIC_SURGERY = "plastic_surgery"
    DENTAL = "dental"
    ORIENTAL_MEDICINE = "oriental_medicine"
    PSYCHIATRY = "psychiatry"
    OPHTHALMOLOGY = "ophthalmology"
    ORTHOPEDICS = "orthopedics"
    INTERNAL_MEDICINE = "internal_medicine"
    GENERAL = "general"

    @property
    def korean_name(self) -> str:
        return _DEPARTMENT_NAMES[self]


_DEPARTMENT_NAMES = {
    Department.DERMATOLOGY: "피부과",
    Department.PLASTIC_SURGERY: "성형외과",
    Department.DENTAL: "치과",
    Department.ORIENTAL_MEDICINE: "한의원",
    Department.PSYCHIATRY: "정신건강의학과",
    Department.OPHTHALMOLOGY: "안과",
    Department.ORTHOPEDICS: "정형외과",
    Department.INTERNAL_MEDICINE: "내과",
    Department.GENERAL: "일반/기타",
}


# ============================================================
# RULE MECHANICS
# ============================================================

class LogicOperator(str, Enum):
    AND = "AND"
    OR = "OR"
    AND_NOT = "AND_NOT"
    SEQUENCE = "SEQUENCE"


class ExceptionType(str, Enum):
    """Contextual exception kinds, in the order they are tested."""
    NEGATION_BEFORE = "negation_before"
    NEGATION_AFTER = "negation_after"
    DISCLAIMER = "disclaimer"
    LEGAL_NOTICE = "legal_notice"
    NEGATIVE_EXAMPLE = "negative_example"
    QUESTION = "question"
    QUOTATION = "quotation"
    CONDITIONAL = "conditional"

    @property
    def discards(self) -> bool:
        """Disclaimers and legal notices only mark the match."""
        return self not in (ExceptionType.DISCLAIMER, ExceptionType.LEGAL_NOTICE)

    @property
    def is_negation(self) -> bool:
        return self in (ExceptionType.NEGATION_BEFORE, ExceptionType.NEGATION_AFTER)


# ============================================================
# IMPRESSION
# ============================================================

class RiskLevel(str, Enum):
    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ToneType(str, Enum):
    AGGRESSIVE = "aggressive"
    PROMOTIONAL = "promotional"
    EMOTIONAL = "emotional"
    REASSURING = "reassuring"
    URGENT = "urgent"
    PROFESSIONAL = "professional"
    INFORMATIVE = "informative"
    NEUTRAL = "neutral"


class CredibilityLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    SUSPICIOUS = "suspicious"


# ============================================================
# RULE PROTOCOL
# ============================================================

@runtime_checkable
class Finding(Protocol):
    """Anything a rule reports: where it hit and what it matched."""
    matched_text: str
    position: int


class Rule(Protocol):
    """
    One evaluation interface for every rule kind.

    ``evaluate`` returns the rule's finding for ``text``, or None when
    the rule does not fire.
    """
    id: str

    def evaluate(self, text: str) -> Optional[Any]: ...
