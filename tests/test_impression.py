"""
Tests for the impression analyzer — tone, credibility and overall risk.
"""

from types import SimpleNamespace

import pytest

from medcheck.impression import ImpressionAnalyzer, credibility_level_for, risk_level_for
from medcheck.mandatory import MandatoryCheckResult
from medcheck.taxonomy import CredibilityLevel, PatternSeverity, RiskLevel, ToneType


analyzer = ImpressionAnalyzer()

INFORMATIVE_AD = "시술 방법과 주의사항을 안내해 드립니다. 개인에 따라 결과가 다를 수 있으며 전문의와 상담하세요."
AGGRESSIVE_AD = "지금 바로 예약! 오늘만 50% 할인, 선착순 마감 임박! 놓치지 마세요"


def finding(severity):
    return SimpleNamespace(severity=severity)


# ============================================================
# TONE
# ============================================================

class TestTone:

    def test_informative(self):
        tone = analyzer.analyze_tone(INFORMATIVE_AD)
        assert tone.primary_tone is ToneType.INFORMATIVE
        assert tone.aggressiveness == 0.0
        assert tone.tone_score == 1.0

    def test_aggressive(self):
        tone = analyzer.analyze_tone(AGGRESSIVE_AD)
        assert tone.primary_tone is ToneType.AGGRESSIVE
        assert ToneType.PROMOTIONAL in tone.secondary_tones
        assert ToneType.URGENT in tone.secondary_tones
        assert tone.aggressiveness == 0.75
        assert tone.tone_score == -1.0
        assert tone.tone_counts["aggressive"] == 5

    def test_neutral(self):
        tone = analyzer.analyze_tone("진료 시간은 평일 9시부터입니다")
        assert tone.primary_tone is ToneType.NEUTRAL
        assert tone.secondary_tones == []
        assert tone.tone_score == 0.0


# ============================================================
# CREDIBILITY
# ============================================================

class TestCredibility:

    def test_disclaimers_raise_score(self):
        cred = analyzer.analyze_credibility(INFORMATIVE_AD)
        assert cred.score == 60
        assert cred.impression is CredibilityLevel.MEDIUM
        assert cred.positive_factors == ["개인차 명시", "전문 상담 권유"]

    def test_red_flags_lower_score(self):
        cred = analyzer.analyze_credibility("국내 최고 병원, 100% 효과 보장, 부작용 전혀 없음")
        assert cred.score == 10
        assert cred.impression is CredibilityLevel.SUSPICIOUS
        assert "효과 100% 보장" in cred.negative_factors

    @pytest.mark.parametrize("score,level", [
        (70, CredibilityLevel.HIGH),
        (50, CredibilityLevel.MEDIUM),
        (30, CredibilityLevel.LOW),
        (29, CredibilityLevel.SUSPICIOUS),
    ])
    def test_levels(self, score, level):
        assert credibility_level_for(score) is level


# ============================================================
# RISK
# ============================================================

class TestRisk:

    def test_informative_ad_is_safe(self):
        result = analyzer.analyze(INFORMATIVE_AD)
        assert result.risk_score == 10
        assert result.risk_level is RiskLevel.SAFE
        assert result.compliance_score == 90
        assert result.violation_score == 0
        assert result.key_issues == []

    def test_missing_mandatory_adds_risk(self):
        mandatory = MandatoryCheckResult(
            is_complete=False, score=0, items=[],
            missing_items=["의료기관명", "소재지", "전화번호"], warnings=[],
        )
        result = analyzer.analyze(INFORMATIVE_AD, mandatory_check=mandatory)
        assert result.risk_score == 25
        assert result.risk_level is RiskLevel.LOW
        assert "필수 기재사항 누락: 의료기관명, 소재지, 전화번호" in result.key_issues
        assert "의료기관명을(를) 추가하세요" in result.recommendations

    def test_aggressive_ad_issues(self):
        result = analyzer.analyze(AGGRESSIVE_AD)
        assert "광고 톤이 지나치게 공격적입니다" in result.key_issues
        assert "광고 톤을 보다 정보 제공적으로 조정하세요" in result.recommendations

    def test_violation_points(self):
        score = analyzer.violation_score(
            pattern_matches=[finding(PatternSeverity.CRITICAL), finding(PatternSeverity.MINOR)],
            compound_violations=[finding(PatternSeverity.MAJOR)],
            department_violations=[finding(PatternSeverity.CRITICAL)],
        )
        assert score == 25 + 5 + 20 + 20

    def test_violation_points_capped(self):
        matches = [finding(PatternSeverity.CRITICAL)] * 6
        assert analyzer.violation_score(pattern_matches=matches) == 100

    def test_critical_findings_reported(self):
        result = analyzer.analyze(
            "100% 완치", pattern_matches=[finding(PatternSeverity.CRITICAL)],
        )
        assert "심각한 위반 1건 감지됨" in result.key_issues

    @pytest.mark.parametrize("score,level", [
        (0, RiskLevel.SAFE),
        (19, RiskLevel.SAFE),
        (20, RiskLevel.LOW),
        (40, RiskLevel.MEDIUM),
        (60, RiskLevel.HIGH),
        (80, RiskLevel.CRITICAL),
        (100, RiskLevel.CRITICAL),
    ])
    def test_risk_levels(self, score, level):
        assert risk_level_for(score) is level


class TestConfidence:

    def test_short_text_without_findings(self):
        assert analyzer.confidence(50, 0) == 0.55

    def test_long_text_with_findings(self):
        assert analyzer.confidence(2000, 10) == 0.95

    def test_medium_text(self):
        assert analyzer.confidence(300, 1) == 0.75


class TestNarrative:

    def test_assessment_format(self):
        text = analyzer.assessment(RiskLevel.SAFE, 10, 0)
        assert text.startswith("[안전] 위험 점수: 10/100, 문제점 0건 발견.")

    def test_labels(self):
        assert analyzer.risk_level_label(RiskLevel.CRITICAL) == "심각한 위험"
        assert analyzer.tone_label(ToneType.URGENT) == "긴급성 강조"
        assert analyzer.credibility_label(CredibilityLevel.SUSPICIOUS) == "의심스러움"

    def test_simple_analysis(self):
        assert analyzer.analyze_simple(INFORMATIVE_AD).risk_level is RiskLevel.SAFE
