"""
Tests for the pattern matcher — atomic detection and context exceptions.

Covers:
  - Core guarantee / side-effect hits and their confidence
  - Negative list (bare device and drug names)
  - Context exceptions of every type, literal exceptions
  - Disclaimer marking, navigation penalty, sentence dedup
  - Option filters (category, severity, max matches)
"""

import pytest

from medcheck.dictionary import PatternDictionary
from medcheck.matcher import MatchOptions, PatternMatcher, split_sentences
from medcheck.taxonomy import PatternCategory, PatternSeverity


matcher = PatternMatcher(PatternDictionary())


def _ids(matches):
    return [m.pattern_id for m in matches]


# ============================================================
# CORE DETECTION
# ============================================================

class TestGuarantee:
    """Treatment-guarantee copy is the highest-value catch."""

    def test_full_cure_guarantee(self):
        matches = matcher.match("이 시술은 100% 완치를 보장합니다")
        assert _ids(matches) == ["P-56-01-001"]
        m = matches[0]
        assert m.matched_text == "100% 완치"
        assert m.severity is PatternSeverity.CRITICAL
        assert m.confidence == 0.9
        assert m.disclaimer_detected is False

    def test_higher_confidence_wins_within_sentence(self):
        """'완치를 보장' (major) loses to '100% 완치' (critical) in the same sentence."""
        matches = matcher.match("이 시술은 100% 완치를 보장합니다")
        assert "P-56-01-003" not in _ids(matches)

    def test_effect_guarantee_with_disclaimer(self):
        matches = matcher.match("100% 효과를 보장합니다. 개인에 따라 결과가 다를 수 있습니다.")
        assert _ids(matches) == ["P-56-01-002"]
        m = matches[0]
        assert m.matched_text == "100% 효과를 보장"
        assert m.disclaimer_detected is True
        # base .85, long match +.05, "100%" boost +.05, hedge -.10
        assert m.confidence == 0.85

    def test_clean_text_has_no_matches(self):
        assert matcher.match("진료 시간은 평일 오전 9시부터 오후 6시까지입니다.") == []

    def test_empty_and_blank_input(self):
        assert matcher.match("") == []
        assert matcher.match("   \n ") == []

    def test_confidence_is_bounded(self):
        text = "국내 최고! 100% 완치 보장, 부작용 전혀 없음. 다른 병원보다 저렴. 50% 할인 이벤트"
        for m in matcher.match(text):
            assert 0.1 <= m.confidence <= 0.95


# ============================================================
# NEGATIVE LIST
# ============================================================

class TestNegativeList:
    """A bare product name is not a violation on its own."""

    def test_bare_drug_name_ignored(self):
        assert matcher.match("보톡스 가격 안내") == []

    def test_drug_name_with_promotion_flags(self):
        matches = matcher.match("보톡스 특가")
        assert _ids(matches) == ["P-56-08-001"]
        assert matches[0].matched_text == "보톡스 특가"


# ============================================================
# CONTEXT EXCEPTIONS
# ============================================================

class TestContextExceptions:
    """Surrounding context cancels or softens a hit."""

    def test_negation_after_discards(self):
        assert matcher.match("100% 완치를 보장하지 않습니다") == []

    def test_cannot_say_discards(self):
        assert matcher.match("100% 완치라고는 할 수 없습니다") == []

    def test_side_effect_denial_ignores_negation(self):
        """'부작용이 없다고는 할 수 없습니다' still reads as a denial hit."""
        matches = matcher.match("부작용이 없다고는 할 수 없습니다")
        assert _ids(matches) == ["P-56-02-001"]
        assert matches[0].severity is PatternSeverity.CRITICAL

    def test_question_discards(self):
        assert matcher.match("정말 100% 완치가 되나요?") == []

    def test_quotation_discards(self):
        assert matcher.match('A씨는 "100% 완치"라고 말했다') == []

    def test_literal_exception_discards(self):
        assert matcher.match("최고경영자 인터뷰") == []

    def test_filter_exceptions_off_keeps_hit(self):
        matches = matcher.match(
            "정말 100% 완치가 되나요?",
            MatchOptions(filter_exceptions=False),
        )
        assert "P-56-01-001" in _ids(matches)

    @pytest.mark.parametrize("text,pattern_id", [
        ("근거 없는 100% 완치 주장에 속지 마세요", "P-56-01-001"),
        ("100% 완치와 같은 표현은 위반 사례입니다", "P-56-01-001"),
        ("꾸준히 관리하면 효과가 평생 유지될 수 있습니다", "P-56-01-005"),
        ("경우에 따라 평생 효과가 나타납니다", "P-56-01-005"),
    ])
    def test_each_discarding_exception(self, text, pattern_id):
        """Negation-before, negative example, conditional after and before."""
        assert matcher.match(text) == []
        unfiltered = matcher.match(text, MatchOptions(filter_exceptions=False))
        assert pattern_id in _ids(unfiltered)

    def test_negation_before_stays_in_its_sentence(self):
        matches = matcher.match("근거 없는 주장입니다. 100% 완치")
        assert _ids(matches) == ["P-56-01-001"]

    def test_legal_notice_marks_without_discarding(self):
        text = "의료광고 심의필 제2024-1호, 완치를 책임집니다"
        assert matcher.dictionary.has_disclaimer(text) is False
        matches = matcher.match(text)
        assert _ids(matches) == ["P-56-01-003"]
        assert matches[0].disclaimer_detected is True

    def test_disclaimer_in_same_sentence_marks(self):
        matches = matcher.match("개인에 따라 다르지만 확실한 효과를 보장합니다")
        assert _ids(matches) == ["P-56-01-002"]
        assert matches[0].disclaimer_detected is True


class TestGuaranteeModal:
    """'보장할 수 있습니다' asserts the guarantee; it is not a conditional."""

    def test_absolute_guarantee_with_modal_kept(self):
        matches = matcher.match("저희 병원은 100% 완치를 보장할 수 있습니다")
        assert _ids(matches) == ["P-56-01-001"]
        assert matches[0].severity is PatternSeverity.CRITICAL

    def test_promise_with_modal_kept(self):
        assert _ids(matcher.match("완치를 약속할 수 있습니다")) == ["P-56-01-003"]

    def test_plain_possibility_still_discarded(self):
        assert matcher.match("효과가 평생 유지될 수 있습니다") == []


class TestNavigation:
    """Breadcrumb text is menu chrome, not ad copy."""

    def test_breadcrumb_drops_below_default_threshold(self):
        assert matcher.match("홈 > 시술 > 100% 완치") == []

    def test_breadcrumb_confidence_penalty(self):
        matches = matcher.match("홈 > 시술 > 100% 완치", MatchOptions(min_confidence=0.1))
        assert _ids(matches) == ["P-56-01-001"]
        assert matches[0].confidence == 0.4


# ============================================================
# DEDUP AND OPTIONS
# ============================================================

class TestDedup:

    def test_one_match_per_sentence_and_category(self):
        matches = matcher.match("국내 최고 No.1 병원")
        assert len(matches) == 1
        assert matches[0].matched_text == "국내 최고"

    def test_dedup_off_keeps_both(self):
        matches = matcher.match("국내 최고 No.1 병원", MatchOptions(dedupe_sentences=False))
        assert _ids(matches) == ["P-56-03-001", "P-56-03-002"]

    def test_results_sorted_by_position(self):
        matches = matcher.match("국내 최고 병원. 100% 완치 보장!")
        positions = [m.position for m in matches]
        assert positions == sorted(positions)


class TestOptions:

    def test_category_filter(self):
        matches = matcher.match_category("100% 완치. 국내 최고", PatternCategory.SUPERLATIVE)
        assert _ids(matches) == ["P-56-03-001"]

    def test_critical_only(self):
        matches = matcher.match_critical("100% 완치. 국내 최고")
        assert _ids(matches) == ["P-56-01-001"]

    def test_max_matches(self):
        matches = matcher.match("국내 최고. 국내 최초.", MatchOptions(max_matches=1))
        assert len(matches) == 1

    def test_single_pattern(self):
        matches = matcher.match_with_pattern("국내 최고. 100% 완치", "P-56-03-001")
        assert _ids(matches) == ["P-56-03-001"]

    def test_unknown_pattern_id(self):
        assert matcher.match_with_pattern("100% 완치", "P-99-99-999") == []


class TestSentences:

    def test_split_on_terminators(self):
        text = "가나다. 라마바! 사아자"
        spans = split_sentences(text)
        assert [text[s:e].strip() for s, e in spans] == ["가나다.", "라마바!", "사아자"]

    def test_decimal_point_is_not_a_break(self):
        assert len(split_sentences("시력 1.0 이상")) == 1

    @pytest.mark.parametrize("text", ["", "   "])
    def test_blank_text_is_one_span(self, text):
        assert split_sentences(text) == [(0, len(text))]
