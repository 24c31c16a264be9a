"""
Tests for compound rules — AND, OR, AND_NOT and SEQUENCE operators.
"""

from medcheck.compound import (
    COMPOUND_RULES,
    CompoundDetector,
    CompoundRule,
    Condition,
    extract_context,
)
from medcheck.dictionary import PatternDictionary
from medcheck.matcher import PatternMatcher
from medcheck.taxonomy import LogicOperator, PatternSeverity


detector = CompoundDetector(COMPOUND_RULES)


def _rule_ids(violations):
    return [v.rule_id for v in violations]


class TestAnd:
    """CPD-001: price inducement combined with an effect guarantee."""

    def test_price_plus_guarantee_fires(self):
        v = detector.detect_with_rule("오늘만 50% 할인! 100% 효과 보장합니다", "CPD-001")
        assert v is not None
        assert v.severity is PatternSeverity.CRITICAL
        assert v.matched_conditions == ["price", "guarantee"]
        assert v.unmatched_conditions == []
        assert v.confidence == 0.95
        assert " + " in v.matched_text

    def test_price_alone_does_not_fire(self):
        assert detector.detect_with_rule("오늘만 50% 할인합니다", "CPD-001") is None

    def test_guarantee_alone_does_not_fire(self):
        assert detector.detect_with_rule("100% 효과 보장합니다", "CPD-001") is None

    def test_full_detect_includes_urgency_rule(self):
        ids = _rule_ids(detector.detect("오늘만 50% 할인! 100% 효과 보장합니다"))
        assert "CPD-001" in ids
        assert "CPD-005" in ids


class TestOr:
    """CPD-010 needs at least two promotional signals."""

    def test_two_signals_fire(self):
        v = detector.detect_with_rule("국내 최고 병원, 선착순 10명", "CPD-010")
        assert v is not None
        assert v.matched_conditions == ["superlative", "urgency"]
        assert set(v.unmatched_conditions) == {"free_offer", "testimonial"}

    def test_one_signal_does_not_fire(self):
        assert detector.detect_with_rule("국내 최고 병원", "CPD-010") is None


class TestAndNot:
    """CPD-008: an effect claim without any disclaimer."""

    def test_claim_without_disclaimer_fires(self):
        assert detector.detect_with_rule("시술 후 피부가 개선됩니다", "CPD-008") is not None

    def test_disclaimer_suppresses(self):
        text = "시술 후 피부가 개선됩니다. 개인에 따라 차이가 있습니다"
        assert detector.detect_with_rule(text, "CPD-008") is None

    def test_optional_hit_alone_does_not_fire(self):
        rule = CompoundRule(
            id="CPD-T02",
            name="test",
            description="test",
            category="test",
            operator=LogicOperator.AND_NOT,
            conditions=(
                Condition(id="claim", description="claim", patterns=(r"개선",)),
                Condition(id="extra", description="extra", patterns=(r"특가",), required=False),
                Condition(id="notice", description="notice", patterns=(r"개인차",), exclusion=True),
            ),
            severity=PatternSeverity.MAJOR,
            legal_basis="의료법 제56조",
            suggestion="",
        )
        assert rule.evaluate("이번 달 특가") is None
        assert rule.evaluate("이번 달 특가로 피부 개선").matched_conditions == ["claim", "extra"]
        assert rule.evaluate("특가로 피부 개선, 개인차 있음") is None

    def test_rule_with_only_optional_conditions_never_fires(self):
        rule = CompoundRule(
            id="CPD-T03",
            name="test",
            description="test",
            category="test",
            operator=LogicOperator.AND_NOT,
            conditions=(
                Condition(id="extra", description="extra", patterns=(r"특가",), required=False),
                Condition(id="notice", description="notice", patterns=(r"개인차",), exclusion=True),
            ),
            severity=PatternSeverity.MINOR,
            legal_basis="의료법 제56조",
            suggestion="",
        )
        assert rule.evaluate("이번 달 특가") is None


class TestSequence:
    """CPD-009: problem statement followed by the clinic's solution."""

    def test_problem_then_solution_fires(self):
        v = detector.detect_with_rule("피부 고민이신가요? 저희 병원에서 해결해 드립니다", "CPD-009")
        assert v is not None
        assert v.matched_conditions == ["problem", "solution"]

    def test_reversed_order_does_not_fire(self):
        text = "저희 병원에서 상담하세요. 피부 고민이신가요?"
        assert detector.detect_with_rule(text, "CPD-009") is None

    def test_max_distance(self):
        far = "피부 고민이신가요?" + " 가나다라" * 60 + " 저희 병원에서 해결해 드립니다"
        assert detector.detect_with_rule(far, "CPD-009") is None


class TestDetector:

    def test_empty_text(self):
        assert detector.detect("") == []
        assert detector.detect("   ") == []

    def test_unknown_rule(self):
        assert detector.detect_with_rule("100% 효과", "CPD-999") is None

    def test_by_category(self):
        text = "오늘만 50% 할인! 100% 효과 보장합니다"
        ids = _rule_ids(detector.detect_by_category(text, "환자 유인"))
        categories = {r.id: r.category for r in detector.rules}
        assert "CPD-001" in ids
        assert all(categories[i].endswith("환자 유인") for i in ids)

    def test_rule_table_is_complete(self):
        assert [r.id for r in detector.rules] == [f"CPD-{n:03d}" for n in range(1, 11)]

    def test_combine_with_pattern_matches(self):
        text = "오늘만 50% 할인! 100% 효과 보장합니다"
        matches = PatternMatcher(PatternDictionary()).match(text)
        combined = detector.combine_with_pattern_matches(detector.detect(text), matches)
        cpd001 = next(v for v in combined if v.rule_id == "CPD-001")
        assert "P-56-05-001" in cpd001.related_pattern_ids
        assert "P-56-01-002" in cpd001.related_pattern_ids


class TestRuleConstruction:

    def test_malformed_condition_pattern_is_dropped(self):
        rule = CompoundRule(
            id="CPD-T01",
            name="test",
            description="test",
            category="test",
            operator=LogicOperator.AND,
            conditions=(
                Condition(id="a", description="a", patterns=("(unclosed", r"할인")),
                Condition(id="b", description="b", patterns=(r"보장",)),
            ),
            severity=PatternSeverity.MAJOR,
            legal_basis="의료법 제56조",
            suggestion="",
        )
        v = rule.evaluate("할인 그리고 보장")
        assert v is not None
        assert v.matched_text == "할인 + 보장"


class TestExtractContext:

    def test_short_text_has_no_ellipses(self):
        assert extract_context("가나다", 0, 3) == "가나다"

    def test_cut_text_has_ellipses(self):
        text = "가" * 200
        ctx = extract_context(text, 100, 101, radius=10)
        assert ctx.startswith("...") and ctx.endswith("...")
        assert len(ctx) == 21 + 6
