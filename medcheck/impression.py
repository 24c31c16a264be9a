"""
Impression Analyzer — Whole-Page Risk Assessment

Looks past individual hits at how the page reads overall:

  - tone:        eight buckets scored by pattern hits
  - credibility: starts at 50, moved by evidence and red-flag phrases
  - violations:  fixed points per finding, per source
  - mandatory:   disclosure completeness

risk = violation×0.40 + (100−credibility)×0.25 + toneRisk×0.20
       + (100−mandatory)×0.15
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from medcheck.compound import CompoundViolation
from medcheck.dictionary import compile_rule_pattern
from medcheck.departments import DepartmentViolation
from medcheck.mandatory import MandatoryCheckResult
from medcheck.matcher import PatternMatch
from medcheck.rule_engine import round_half_up
from medcheck.taxonomy import CredibilityLevel, PatternSeverity, RiskLevel, ToneType


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass
class ToneAnalysis:
    primary_tone: ToneType
    secondary_tones: list[ToneType]
    tone_score: float
    aggressiveness: float
    tone_signals: list[str]
    tone_counts: dict[str, int] = field(default_factory=dict)


@dataclass
class CredibilityAnalysis:
    impression: CredibilityLevel
    score: int
    positive_factors: list[str]
    negative_factors: list[str]


@dataclass
class ImpressionAnalysis:
    risk_level: RiskLevel
    risk_score: int
    tone_analysis: ToneAnalysis
    credibility_analysis: CredibilityAnalysis
    compliance_score: int
    violation_score: int
    overall_assessment: str
    key_issues: list[str]
    recommendations: list[str]
    confidence: float


# ============================================================
# TONE TABLE
# ============================================================

def _compile(rule_id: str, *patterns: str) -> tuple[re.Pattern, ...]:
    compiled = (compile_rule_pattern(rule_id, p) for p in patterns)
    return tuple(r for r in compiled if r is not None)


# Positive weights add to aggressiveness; negative ones are credible tones.
TONE_PATTERNS: tuple[tuple[ToneType, tuple[re.Pattern, ...], float], ...] = (
    (ToneType.AGGRESSIVE, _compile(
        "tone:aggressive",
        r"지금\s*(?:당장|바로|즉시)",
        r"(?:놓치지|후회하지)\s*마세요",
        r"한정|마감|선착순",
        r"(?:오늘|이번\s*주)\s*(?:만|까지)",
    ), 1.0),
    (ToneType.PROMOTIONAL, _compile(
        "tone:promotional",
        r"특가|할인|이벤트|세일",
        r"\d+\s*%\s*(?:할인|DC|OFF)",
        r"무료|공짜|0원",
        r"(?:가격|비용)\s*(?:파격|특별)",
    ), 0.8),
    (ToneType.EMOTIONAL, _compile(
        "tone:emotional",
        r"(?:고민|걱정|스트레스)\s*(?:이신가요|되시나요)",
        r"(?:힘드|괴로|어려)\s*(?:시죠|우시죠)",
        r"(?:행복|기쁨|만족)\s*(?:을|를)\s*(?:드립니다|선물)",
        r"꿈|희망|소망",
    ), 0.6),
    (ToneType.REASSURING, _compile(
        "tone:reassuring",
        r"안심|안전|걱정\s*없",
        r"(?:믿고|신뢰)\s*(?:맡기|오세요)",
        r"편안한?|부담\s*없",
        r"확실한?|보장",
    ), 0.5),
    (ToneType.URGENT, _compile(
        "tone:urgent",
        r"(?:마감|종료)\s*(?:임박|직전)",
        r"서두르|빨리",
        r"지금이\s*아니면|기회",
        r"막차|마지막",
    ), 0.9),
    (ToneType.PROFESSIONAL, _compile(
        "tone:professional",
        r"(?:전문|숙련|경력)\s*(?:의료진|의사)",
        r"(?:최신|첨단)\s*(?:장비|기술)",
        r"연구|논문|학회",
        r"인증|허가|승인",
    ), -0.3),
    (ToneType.INFORMATIVE, _compile(
        "tone:informative",
        r"안내|설명|정보",
        r"(?:특징|장점|효과)\s*(?:는|은)",
        r"방법|과정|절차",
        r"주의사항|부작용",
    ), -0.2),
)

SIGNALS_PER_PATTERN = 2


# ============================================================
# CREDIBILITY TABLES
# ============================================================

def _factors(rule_id: str, rows) -> tuple[tuple[re.Pattern, str, int], ...]:
    compiled = ((compile_rule_pattern(rule_id, p), factor, weight) for p, factor, weight in rows)
    return tuple(row for row in compiled if row[0] is not None)


CREDIBILITY_POSITIVE: tuple[tuple[re.Pattern, str, int], ...] = _factors("credibility:positive", (
    (r"의료법\s*(?:제?\s*\d+\s*조)?", "법적 근거 제시", 10),
    (r"(?:식약처|FDA|CE)\s*(?:허가|승인|인증)", "공인 인증 언급", 10),
    (r"(?:연구|논문|임상)\s*(?:결과|데이터)", "연구 근거 제시", 8),
    (r"개인\s*(?:차이|마다|에\s*따라)", "개인차 명시", 5),
    (r"(?:부작용|이상반응)\s*(?:이|가)\s*(?:있을|발생)", "부작용 언급", 8),
    (r"(?:전문의|의사)\s*(?:와|과)\s*(?:상담|상의)", "전문 상담 권유", 5),
    (r"(?:사전\s*)?(?:검사|진단)\s*(?:이\s*|가\s*)?(?:필요|필수)", "사전 검사 안내", 5),
))

CREDIBILITY_NEGATIVE: tuple[tuple[re.Pattern, str, int], ...] = _factors("credibility:negative", (
    (r"(?:100\s*%|완벽|확실)\s*(?:의\s*)?(?:효과|완치|보장)", "효과 100% 보장", 15),
    (r"부작용\s*(?:이|은|도)?\s*(?:전혀\s*)?(?:없|제로|0)", "부작용 없다고 단정", 15),
    (r"최고|최초|유일|독보적", "최상급 표현 사용", 10),
    (r"(?:다른|타)\s*(?:병원|의원)\s*(?:보다|대비)", "타 의료기관 비교", 12),
    (r"(?:1|한)\s*(?:번|회)\s*(?:에|로|만에)\s*(?:완치|해결)", "단기 완치 주장", 10),
    (r"(?:평생|영구)\s*(?:효과|보장|유지)", "영구적 효과 주장", 10),
    (r"재발\s*(?:이\s*)?없|다시는\s*안", "재발 없음 주장", 12),
))

CREDIBILITY_BASE = 50


# ============================================================
# SCORING TABLES
# ============================================================

PATTERN_POINTS = {PatternSeverity.CRITICAL: 25, PatternSeverity.MAJOR: 15, PatternSeverity.MINOR: 5}
COMPOUND_POINTS = {PatternSeverity.CRITICAL: 30, PatternSeverity.MAJOR: 20, PatternSeverity.MINOR: 10}
DEPARTMENT_POINTS = {PatternSeverity.CRITICAL: 20, PatternSeverity.MAJOR: 12, PatternSeverity.MINOR: 5}

RISK_WEIGHTS = {"violation": 0.4, "credibility": 0.25, "tone": 0.2, "mandatory": 0.15}

RISK_LEVEL_LABELS = {
    RiskLevel.SAFE: "안전",
    RiskLevel.LOW: "낮은 위험",
    RiskLevel.MEDIUM: "중간 위험",
    RiskLevel.HIGH: "높은 위험",
    RiskLevel.CRITICAL: "심각한 위험",
}

RISK_ASSESSMENTS = {
    RiskLevel.SAFE: "이 광고는 의료광고 규정을 잘 준수하고 있습니다.",
    RiskLevel.LOW: "이 광고는 대체로 규정을 준수하고 있으나, 일부 개선이 필요합니다.",
    RiskLevel.MEDIUM: "이 광고는 여러 문제점이 있어 수정이 필요합니다.",
    RiskLevel.HIGH: "이 광고는 심각한 규정 위반이 있어 즉각적인 수정이 필요합니다.",
    RiskLevel.CRITICAL: "이 광고는 다수의 심각한 위반이 있어 게시를 중단하고 전면 수정해야 합니다.",
}

TONE_LABELS = {
    ToneType.PROFESSIONAL: "전문적",
    ToneType.PROMOTIONAL: "홍보성",
    ToneType.AGGRESSIVE: "공격적",
    ToneType.EMOTIONAL: "감성적",
    ToneType.INFORMATIVE: "정보 제공적",
    ToneType.REASSURING: "안심 유도",
    ToneType.URGENT: "긴급성 강조",
    ToneType.NEUTRAL: "중립적",
}

CREDIBILITY_LABELS = {
    CredibilityLevel.HIGH: "높은 신뢰성",
    CredibilityLevel.MEDIUM: "보통",
    CredibilityLevel.LOW: "낮은 신뢰성",
    CredibilityLevel.SUSPICIOUS: "의심스러움",
}


def risk_level_for(score: float) -> RiskLevel:
    if score >= 80:
        return RiskLevel.CRITICAL
    if score >= 60:
        return RiskLevel.HIGH
    if score >= 40:
        return RiskLevel.MEDIUM
    if score >= 20:
        return RiskLevel.LOW
    return RiskLevel.SAFE


def credibility_level_for(score: float) -> CredibilityLevel:
    if score >= 70:
        return CredibilityLevel.HIGH
    if score >= 50:
        return CredibilityLevel.MEDIUM
    if score >= 30:
        return CredibilityLevel.LOW
    return CredibilityLevel.SUSPICIOUS


# ============================================================
# ANALYZER
# ============================================================

class ImpressionAnalyzer:
    """
    Stateless. Every input except ``text`` is optional; an omitted
    stage contributes nothing to the risk score.
    """

    def analyze(
        self,
        text: str,
        pattern_matches: Optional[list[PatternMatch]] = None,
        compound_violations: Optional[list[CompoundViolation]] = None,
        department_violations: Optional[list[DepartmentViolation]] = None,
        mandatory_check: Optional[MandatoryCheckResult] = None,
    ) -> ImpressionAnalysis:
        text = text if isinstance(text, str) else ""
        tone = self.analyze_tone(text)
        credibility = self.analyze_credibility(text)
        violation_score = self.violation_score(
            pattern_matches, compound_violations, department_violations,
        )
        risk_score = self.risk_score(tone, credibility, violation_score, mandatory_check)
        risk_level = risk_level_for(risk_score)

        key_issues = self.key_issues(
            tone, credibility, pattern_matches, compound_violations,
            department_violations, mandatory_check,
        )
        finding_count = sum(
            len(x or []) for x in (pattern_matches, compound_violations, department_violations)
        )

        return ImpressionAnalysis(
            risk_level=risk_level,
            risk_score=risk_score,
            tone_analysis=tone,
            credibility_analysis=credibility,
            compliance_score=max(0, 100 - risk_score),
            violation_score=violation_score,
            overall_assessment=self.assessment(risk_level, risk_score, len(key_issues)),
            key_issues=key_issues,
            recommendations=self.recommendations(key_issues, tone, credibility, mandatory_check),
            confidence=self.confidence(len(text), finding_count),
        )

    def analyze_simple(self, text: str) -> ImpressionAnalysis:
        return self.analyze(text)

    # --- tone ---

    def analyze_tone(self, text: str) -> ToneAnalysis:
        counts: dict[ToneType, int] = {}
        signals: list[str] = []
        aggressiveness = 0.0

        for tone, patterns, weight in TONE_PATTERNS:
            score = 0
            for regex in patterns:
                found = [m.group(0) for m in regex.finditer(text)]
                score += len(found)
                signals.extend(f"[{tone.value}] {s}" for s in found[:SIGNALS_PER_PATTERN])
            counts[tone] = score
            if weight > 0:
                aggressiveness += score * weight

        best = max(counts.values(), default=0)
        if best > 0:
            primary = next(t for t, s in counts.items() if s == best)
            secondary = [t for t, s in counts.items() if s > 0 and t is not primary]
        else:
            primary, secondary = ToneType.NEUTRAL, []

        pressure = (
            counts[ToneType.AGGRESSIVE] * 1.0
            + counts[ToneType.URGENT] * 0.8
            + counts[ToneType.PROMOTIONAL] * 0.3
        )
        credible = counts[ToneType.PROFESSIONAL] * 0.5 + counts[ToneType.INFORMATIVE] * 0.5
        total = pressure + credible
        tone_score = (credible - pressure) / total if total > 0 else 0.0

        return ToneAnalysis(
            primary_tone=primary,
            secondary_tones=secondary,
            tone_score=round(tone_score, 3),
            aggressiveness=round(min(1.0, aggressiveness / 10), 3),
            tone_signals=signals,
            tone_counts={t.value: n for t, n in counts.items()},
        )

    # --- credibility ---

    def analyze_credibility(self, text: str) -> CredibilityAnalysis:
        score = CREDIBILITY_BASE
        positive, negative = [], []
        for regex, factor, weight in CREDIBILITY_POSITIVE:
            if regex.search(text):
                positive.append(factor)
                score += weight
        for regex, factor, weight in CREDIBILITY_NEGATIVE:
            if regex.search(text):
                negative.append(factor)
                score -= weight

        score = max(0, min(100, score))
        return CredibilityAnalysis(
            impression=credibility_level_for(score),
            score=score,
            positive_factors=positive,
            negative_factors=negative,
        )

    # --- scores ---

    @staticmethod
    def violation_score(
        pattern_matches: Optional[list[PatternMatch]] = None,
        compound_violations: Optional[list[CompoundViolation]] = None,
        department_violations: Optional[list[DepartmentViolation]] = None,
    ) -> int:
        score = sum(PATTERN_POINTS[m.severity] for m in pattern_matches or [])
        score += sum(COMPOUND_POINTS[v.severity] for v in compound_violations or [])
        score += sum(DEPARTMENT_POINTS[v.severity] for v in department_violations or [])
        return min(100, score)

    @staticmethod
    def risk_score(
        tone: ToneAnalysis,
        credibility: CredibilityAnalysis,
        violation_score: int,
        mandatory_check: Optional[MandatoryCheckResult] = None,
    ) -> int:
        tone_risk = (tone.aggressiveness + (1 - (tone.tone_score + 1) / 2)) * 50
        mandatory_risk = 100 - mandatory_check.score if mandatory_check is not None else 0

        raw = (
            violation_score * RISK_WEIGHTS["violation"]
            + (100 - credibility.score) * RISK_WEIGHTS["credibility"]
            + tone_risk * RISK_WEIGHTS["tone"]
            + mandatory_risk * RISK_WEIGHTS["mandatory"]
        )
        return round_half_up(min(100.0, max(0.0, raw)))

    @staticmethod
    def confidence(text_length: int, finding_count: int) -> float:
        confidence = 0.7
        if text_length > 500:
            confidence += 0.1
        if text_length > 1000:
            confidence += 0.05
        if text_length < 100:
            confidence -= 0.15
        if finding_count > 0:
            confidence += 0.05
        if finding_count > 5:
            confidence += 0.05
        return round(min(0.95, max(0.5, confidence)), 2)

    # --- narrative ---

    @staticmethod
    def key_issues(
        tone: ToneAnalysis,
        credibility: CredibilityAnalysis,
        pattern_matches: Optional[list[PatternMatch]] = None,
        compound_violations: Optional[list[CompoundViolation]] = None,
        department_violations: Optional[list[DepartmentViolation]] = None,
        mandatory_check: Optional[MandatoryCheckResult] = None,
    ) -> list[str]:
        issues = []
        if tone.aggressiveness > 0.6:
            issues.append("광고 톤이 지나치게 공격적입니다")
        if tone.primary_tone is ToneType.URGENT:
            issues.append("긴급성을 과도하게 강조하고 있습니다")

        issues.extend(credibility.negative_factors)

        critical = [m for m in pattern_matches or [] if m.severity is PatternSeverity.CRITICAL]
        if critical:
            issues.append(f"심각한 위반 {len(critical)}건 감지됨")
        if compound_violations:
            issues.append(f"복합 위반 {len(compound_violations)}건 감지됨")
        if department_violations:
            issues.append(f"진료과목 특화 위반 {len(department_violations)}건 감지됨")
        if mandatory_check and mandatory_check.missing_items:
            issues.append(f"필수 기재사항 누락: {', '.join(mandatory_check.missing_items)}")
        return issues

    @staticmethod
    def recommendations(
        key_issues: list[str],
        tone: ToneAnalysis,
        credibility: CredibilityAnalysis,
        mandatory_check: Optional[MandatoryCheckResult] = None,
    ) -> list[str]:
        recs = []
        if tone.aggressiveness > 0.5:
            recs.append("광고 톤을 보다 정보 제공적으로 조정하세요")
        if credibility.score < 50:
            recs.append("객관적인 근거와 데이터를 추가하세요")
            recs.append("부작용 가능성과 개인차를 명시하세요")
        if mandatory_check:
            recs.extend(f"{item}을(를) 추가하세요" for item in mandatory_check.missing_items)
        if key_issues:
            recs.append("전문가 상담을 통한 법적 검토를 권장합니다")
        if not credibility.positive_factors:
            recs.append("면책 조항을 추가하여 법적 위험을 줄이세요")
        return recs

    @staticmethod
    def assessment(risk_level: RiskLevel, risk_score: int, issue_count: int) -> str:
        return (
            f"[{RISK_LEVEL_LABELS[risk_level]}] 위험 점수: {risk_score}/100, "
            f"문제점 {issue_count}건 발견. {RISK_ASSESSMENTS[risk_level]}"
        )

    # --- labels ---

    @staticmethod
    def risk_level_label(level: RiskLevel) -> str:
        return RISK_LEVEL_LABELS[level]

    @staticmethod
    def tone_label(tone: ToneType) -> str:
        return TONE_LABELS[tone]

    @staticmethod
    def credibility_label(level: CredibilityLevel) -> str:
        return CREDIBILITY_LABELS[level]
