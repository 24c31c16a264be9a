"""
Tests for department detection and specialty rule overlays.
"""

import pytest

from medcheck.departments import (
    DEPARTMENT_RULES,
    DEPARTMENT_SIGNATURES,
    MAX_EVIDENCE,
    DepartmentRule,
    DepartmentRuleEngine,
)
from medcheck.taxonomy import Department, PatternSeverity


engine = DepartmentRuleEngine(DEPARTMENT_RULES, DEPARTMENT_SIGNATURES)


def _rule(rule_id):
    return next(r for r in engine.rules if r.id == rule_id)


# ============================================================
# DETECTION
# ============================================================

class TestDetection:

    def test_dermatology(self):
        detection = engine.detect("피부과 전문의가 직접 시술합니다")
        assert detection.department is Department.DERMATOLOGY
        assert detection.confidence == 0.3
        assert "피부과" in detection.evidence
        assert detection.pinned is False

    def test_dental(self):
        detection = engine.detect("임플란트 평생 보장 치과")
        assert detection.department is Department.DENTAL
        assert detection.confidence == 0.6

    def test_no_signal_is_general(self):
        detection = engine.detect("진료 시간 안내")
        assert detection.department is Department.GENERAL
        assert detection.confidence == 0.0
        assert detection.evidence == []

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_blank_is_general(self, text):
        assert engine.detect(text).department is Department.GENERAL

    def test_evidence_is_capped(self):
        signature = next(s for s in DEPARTMENT_SIGNATURES if s.department is Department.DERMATOLOGY)
        text = "피부과 여드름 모공 기미 주근깨 레이저 토닝 보톡스 필러 피부 관리 미백"
        score, evidence = signature.score(text)
        assert score > MAX_EVIDENCE
        assert len(evidence) == MAX_EVIDENCE
        assert evidence[0] == "피부과"

    def test_confidence_is_capped(self):
        text = "피부과 여드름 모공 기미 레이저 토닝 보톡스 필러 피부 관리 미백 주근깨 " * 3
        assert engine.detect(text).confidence == 0.95


# ============================================================
# RULES
# ============================================================

class TestRules:

    def test_dental_implant_lifetime(self):
        violations = engine.check_with_department("임플란트 평생 보장 치과", Department.DENTAL)
        assert [v.rule_id for v in violations] == ["DENT-001"]
        v = violations[0]
        assert v.severity is PatternSeverity.CRITICAL
        assert v.matched_text == "임플란트 평생 보장"
        assert v.confidence == 0.85

    def test_acne_cure(self):
        v = _rule("DERM-003").evaluate("여드름 완치 프로그램")
        assert v is not None
        assert v.department is Department.DERMATOLOGY

    def test_exception_nearby_suppresses(self):
        rule = _rule("DERM-001")
        assert rule.evaluate("한 번에 끝나는 레이저 시술") is not None
        assert rule.evaluate("한 번에 끝나는 레이저 시술. 개인에 따라 차이가 있습니다") is None

    def test_other_department_rules_not_applied(self):
        violations = engine.check_with_department("임플란트 평생 보장", Department.DERMATOLOGY)
        assert violations == []

    def test_blank_text(self):
        assert engine.check_with_department("", Department.DENTAL) == []

    def test_malformed_pattern_is_dropped(self):
        rule = DepartmentRule(
            id="TEST-001",
            department=Department.GENERAL,
            name="test",
            description="test",
            patterns=("(unclosed", r"정상"),
            severity=PatternSeverity.MINOR,
            legal_basis="의료법 제56조",
            suggestion="",
        )
        v = rule.evaluate("정상 작동")
        assert v is not None
        assert v.matched_text == "정상"
        assert v.confidence == 0.7


# ============================================================
# ANALYZE
# ============================================================

class TestAnalyze:

    def test_detected_department_adds_general_rules(self):
        result = engine.analyze("피부과 여드름 치료와 완벽 건강검진")
        assert result.detection.department is Department.DERMATOLOGY
        assert "GENL-001" in [v.rule_id for v in result.violations]

    def test_pinned_department(self):
        result = engine.analyze("임플란트 평생 보장", Department.DENTAL)
        assert result.detection.pinned is True
        assert result.detection.confidence == 1.0
        assert [v.rule_id for v in result.violations] == ["DENT-001"]

    def test_general_only_once(self):
        result = engine.analyze("완벽 건강검진", Department.GENERAL)
        assert [v.rule_id for v in result.violations] == ["GENL-001"]

    def test_check_all_ignores_department(self):
        ids = [v.rule_id for v in engine.check_all("임플란트 평생 보장. 여드름 완치")]
        assert "DENT-001" in ids
        assert "DERM-003" in ids


class TestCatalogue:

    def test_rule_counts(self):
        assert len(engine.get_rules()) == 20
        assert len(engine.get_rules(Department.DERMATOLOGY)) == 3
        assert len(engine.get_rules(Department.GENERAL)) == 1

    def test_department_name(self):
        assert engine.department_name(Department.DENTAL) == "치과"
        assert engine.department_name(Department.GENERAL) == "일반/기타"
