"""
Rule Engine — Violation Normalization, Score and Grade

Converts PatternMatch[] into ViolationResult[] and a ScoreResult.

Severity:  critical→critical, major→high, minor→medium.
           A detected disclaimer softens it one step, except for the
           absolute-violation ids in the dictionary.
Status:    confidence ≥0.85 violation, ≥0.70 likely, else possible.
Score:     per violation, base(25/15/8/3) × category weight
           × section weight × confidence. Total capped at 100.
Grade:     from severity counts, not from the score.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from medcheck.dictionary import PatternDictionary
from medcheck.matcher import PatternMatch
from medcheck.taxonomy import (
    Grade,
    PatternCategory,
    SectionType,
    ViolationSeverity,
    ViolationStatus,
    ViolationType,
)


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class LegalCitation:
    law: str
    article: str
    description: str = ""


@dataclass(frozen=True)
class GradeInfo:
    emoji: str
    status: str
    message: str


@dataclass
class ViolationResult:
    """A normalized violation."""
    type: ViolationType
    status: ViolationStatus
    severity: ViolationSeverity
    matched_text: str
    position: int
    description: str
    legal_basis: list[LegalCitation]
    confidence: float
    pattern_id: str
    label: str
    suggestion: str
    category: PatternCategory
    disclaimer_applied: bool = False


@dataclass
class ScoreResult:
    clean_score: int
    total_deduction: int
    severity_deductions: dict[str, int]
    severity_counts: dict[str, int]
    category_deductions: dict[str, float]
    grade: Grade
    grade_info: GradeInfo
    section_type: SectionType


@dataclass
class RuleJudgment:
    violations: list[ViolationResult]
    score: ScoreResult
    summary: str
    recommendations: list[str]
    analyzed_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        compare=False,
    )


# ============================================================
# TABLES
# ============================================================

BASE_DEDUCTIONS: dict[ViolationSeverity, int] = {
    ViolationSeverity.CRITICAL: 25,
    ViolationSeverity.HIGH: 15,
    ViolationSeverity.MEDIUM: 8,
    ViolationSeverity.LOW: 3,
}

GRADE_INFO: dict[Grade, GradeInfo] = {
    Grade.S: GradeInfo("☀️", "쾌적", "완벽해요! 규정을 잘 준수했어요"),
    Grade.A: GradeInfo("🌤️", "맑음", "아주 좋아요! 사소한 표현만 확인해보세요"),
    Grade.B: GradeInfo("⛅", "구름 조금", "괜찮아요. 몇 가지 표현을 다듬어보세요"),
    Grade.C: GradeInfo("☁️", "흐림", "주의가 필요해요. 수정을 권장드려요"),
    Grade.D: GradeInfo("🌧️", "비", "위반 소지가 커요. 빠른 수정이 필요해요"),
    Grade.F: GradeInfo("⛈️", "경고", "전체적인 검토를 권장드려요"),
}

SEVERITY_RECOMMENDATIONS: dict[ViolationSeverity, str] = {
    ViolationSeverity.CRITICAL: "⛈️ 즉시 수정 {n}건: 법적 위반 가능성이 높아요",
    ViolationSeverity.HIGH: "🌧️ 수정 권장 {n}건: 위반 소지가 있어요",
    ViolationSeverity.MEDIUM: "☁️ 검토 필요 {n}건: 표현을 다듬어보세요",
    ViolationSeverity.LOW: "🌤️ 참고 {n}건: 더 나은 표현을 고려해보세요",
}

CATEGORY_TIPS: dict[ViolationType, str] = {
    ViolationType.GUARANTEE: '💡 효과 보장 표현은 "개인에 따라 다를 수 있습니다" 문구를 추가해보세요',
    ViolationType.FALSE_CLAIM: "💡 부작용·통증 관련 표현에는 발생 가능한 부작용을 함께 안내해보세요",
    ViolationType.EXAGGERATION: '💡 "최고", "유일" 같은 최상급 표현은 객관적 근거가 없다면 삭제해보세요',
    ViolationType.COMPARISON: "💡 다른 의료기관과 비교하는 표현은 삭제해보세요",
    ViolationType.PRICE_INDUCEMENT: "💡 할인·무료 이벤트 문구는 환자 유인으로 볼 수 있어요",
    ViolationType.BEFORE_AFTER: "💡 전후 사진에는 개인차와 부작용 가능성을 함께 표시해보세요",
    ViolationType.TESTIMONIAL: "💡 치료 경험담은 광고에 사용할 수 없어요",
    ViolationType.PROHIBITED_EXPRESSION: "💡 전문의약품 명칭이나 과장된 비유는 피해주세요",
}

CLEAN_RECOMMENDATION = "✨ 위반 사항이 발견되지 않았어요. 지금처럼 유지해주세요!"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def confidence_label(confidence: float) -> str:
    if confidence >= 0.85:
        return "수정 권장"
    if confidence >= 0.70:
        return "검토 필요"
    return "참고"


def parse_legal_basis(legal_basis: str, description: str = "") -> list[LegalCitation]:
    """'의료법 제56조 제2항 제2호' → [LegalCitation('의료법', '제56조 제2항 제2호')]."""
    citations = []
    for part in legal_basis.split(","):
        part = part.strip()
        if not part:
            continue
        law, _, article = part.partition(" ")
        citations.append(LegalCitation(law=law, article=article.strip(), description=description))
    return citations


def grade_for_counts(counts: dict[str, int]) -> Grade:
    critical = counts.get(ViolationSeverity.CRITICAL.value, 0)
    high = counts.get(ViolationSeverity.HIGH.value, 0)
    medium = counts.get(ViolationSeverity.MEDIUM.value, 0)

    if sum(counts.values()) == 0:
        return Grade.S
    if critical == 0 and high == 0 and medium <= 2:
        return Grade.A
    if critical == 0 and high <= 1:
        return Grade.B
    if critical == 0:
        return Grade.C
    if critical <= 2:
        return Grade.D
    return Grade.F


# ============================================================
# ENGINE
# ============================================================

class RuleEngine:
    """Pure function of (matches, section type) over an injected dictionary."""

    def __init__(self, dictionary: PatternDictionary):
        self.dictionary = dictionary

    def judge(
        self,
        matches: list[PatternMatch],
        section_type: SectionType = SectionType.DEFAULT,
    ) -> RuleJudgment:
        violations = [self.convert(m) for m in matches]
        score = self.calculate_score(violations, section_type)
        return RuleJudgment(
            violations=violations,
            score=score,
            summary=self.build_summary(score, violations),
            recommendations=self.build_recommendations(score, violations),
        )

    def convert(self, match: PatternMatch) -> ViolationResult:
        severity = ViolationSeverity.from_pattern(match.severity)
        softened = match.disclaimer_detected and not self.dictionary.is_absolute(match.pattern_id)
        if softened:
            severity = severity.downgrade()

        return ViolationResult(
            type=match.category.violation_type,
            status=ViolationStatus.from_confidence(match.confidence),
            severity=severity,
            matched_text=match.matched_text,
            position=match.position,
            description=match.description,
            legal_basis=parse_legal_basis(match.legal_basis, match.description),
            confidence=match.confidence,
            pattern_id=match.pattern_id,
            label=confidence_label(match.confidence),
            suggestion=match.suggestion,
            category=match.category,
            disclaimer_applied=softened,
        )

    def deduction(self, violation: ViolationResult, section_type: SectionType) -> float:
        return (
            BASE_DEDUCTIONS[violation.severity]
            * violation.category.weight
            * section_type.weight
            * violation.confidence
        )

    def calculate_score(
        self,
        violations: list[ViolationResult],
        section_type: SectionType = SectionType.DEFAULT,
    ) -> ScoreResult:
        raw_by_severity = {s.value: 0.0 for s in ViolationSeverity}
        counts = {s.value: 0 for s in ViolationSeverity}
        by_category: dict[str, float] = {}

        total = 0.0
        for v in violations:
            amount = self.deduction(v, section_type)
            total += amount
            raw_by_severity[v.severity.value] += amount
            counts[v.severity.value] += 1
            by_category[v.category.value] = by_category.get(v.category.value, 0.0) + amount

        total_deduction = min(100, round_half_up(total))
        grade = grade_for_counts(counts)

        return ScoreResult(
            clean_score=max(0, 100 - total_deduction),
            total_deduction=total_deduction,
            severity_deductions={k: round_half_up(v) for k, v in raw_by_severity.items()},
            severity_counts=counts,
            category_deductions={k: round(v, 1) for k, v in by_category.items()},
            grade=grade,
            grade_info=GRADE_INFO[grade],
            section_type=section_type,
        )

    def build_recommendations(
        self, score: ScoreResult, violations: list[ViolationResult],
    ) -> list[str]:
        if not violations:
            return [CLEAN_RECOMMENDATION]

        recommendations = []
        for severity in ViolationSeverity:
            n = score.severity_counts.get(severity.value, 0)
            if n:
                recommendations.append(SEVERITY_RECOMMENDATIONS[severity].format(n=n))

        seen: set[ViolationType] = set()
        for v in violations:
            if v.type in seen:
                continue
            seen.add(v.type)
            tip = CATEGORY_TIPS.get(v.type)
            if tip:
                recommendations.append(tip)
        return recommendations

    def build_summary(self, score: ScoreResult, violations: list[ViolationResult]) -> str:
        info = score.grade_info
        head = f"{info.emoji} {info.status} ({score.clean_score}점) - {info.message}"
        if not violations:
            return head
        return f"{head} (위반 의심 {len(violations)}건)"

    @staticmethod
    def grade_info(grade: Grade) -> GradeInfo:
        return GRADE_INFO[grade]

    @staticmethod
    def worst_severity(violations: list[ViolationResult]) -> Optional[ViolationSeverity]:
        if not violations:
            return None
        return max((v.severity for v in violations), key=lambda s: s.rank)
