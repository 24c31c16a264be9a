"""
Tests for the mandatory disclosure checker.
"""

from medcheck.mandatory import (
    MANDATORY_ITEMS,
    MandatoryChecker,
    MandatoryItem,
    extract_specialty_type,
    specialist_mismatch,
)


checker = MandatoryChecker(MANDATORY_ITEMS)

COMPLETE_AD = (
    "강남피부과의원 | 서울시 강남구 역삼동 123 | 대표원장: 홍길동 | "
    "02-1234-5678 | 진료과목: 피부과 | 피부과 전문의"
)


class TestCompleteAd:

    def test_all_items_found(self):
        result = checker.check(COMPLETE_AD)
        assert result.is_complete is True
        assert result.missing_items == []
        assert result.score == 100
        assert result.warnings == []
        assert all(item.found and item.is_valid for item in result.items)

    def test_extracted_values(self):
        result = checker.check(COMPLETE_AD)
        assert result.item("의료기관명").value == "강남피부과의원"
        assert result.item("소재지").value == "서울시 강남구 역삼동"
        assert result.item("전화번호").value == "02-1234-5678"
        assert result.item("전문의 자격").value == "피부과 전문의"


class TestMissing:

    def test_empty_text(self):
        result = checker.check("")
        assert result.is_complete is False
        assert result.score == 0
        assert result.missing_items == ["의료기관명", "소재지", "전화번호"]

    def test_phone_without_institution_warns(self):
        result = checker.check("예약 문의 02-555-1234")
        assert result.item("전화번호").found is True
        assert "의료기관명이 명시되지 않았습니다. 필수 기재사항입니다." in result.warnings
        assert result.missing_items == ["의료기관명", "소재지"]
        # 30 of 120 weighted points
        assert result.score == 25


class TestSpecialist:

    def test_specialist_without_specialty_warns(self):
        result = checker.check("피부과 전문의가 직접 시술합니다")
        assert result.item("전문의 자격").found is True
        assert result.item("진료과목").found is False
        assert "전문의 자격 표시 시 진료과목도 함께 표시하는 것이 권장됨" in result.warnings

    def test_incompatible_specialty_warns(self):
        result = checker.check("정형외과 진료 안내. 피부과 전문의 상주")
        assert result.item("진료과목").value == "정형외과"
        assert (
            "전문의 자격(피부과 전문의)과 표시된 진료과목(정형외과)이 일치하지 않을 수 있습니다"
            in result.warnings
        )

    def test_extract_specialty_type(self):
        assert extract_specialty_type("피부과 전문의") == "피부"
        assert extract_specialty_type("정형외과") == "정형"
        assert extract_specialty_type("") is None

    def test_matching_specialty_has_no_mismatch(self):
        assert specialist_mismatch("피부과 전문의", "피부과") is None


class TestSingleItem:

    def test_invalid_representative_name(self):
        item = checker.check_single_item("대표 원장님", "대표자명")
        assert item.found is True
        assert item.is_valid is False
        assert item.issue == "대표자명 형식이 올바르지 않음"

    def test_absent_item(self):
        item = checker.check_single_item("아무 내용 없음", "전화번호")
        assert item.found is False
        assert item.required is True

    def test_unknown_item(self):
        assert checker.check_single_item(COMPLETE_AD, "사업자번호") is None


class TestScore:

    def test_invalid_item_earns_half(self):
        items = [
            MandatoryItem("a", required=True, found=True, is_valid=False),
            MandatoryItem("b", required=False, found=False, is_valid=False),
        ]
        # 15 of 40
        assert checker.score(items) == 38

    def test_no_items_is_full_score(self):
        assert checker.score([]) == 100


class TestCatalogue:

    def test_required_items(self):
        assert checker.get_required_items() == ["의료기관명", "소재지", "전화번호"]

    def test_all_items(self):
        items = checker.get_all_items()
        assert len(items) == 6
        assert {"name": "대표자명", "required": False} in items
