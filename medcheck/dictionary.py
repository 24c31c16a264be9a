"""
Pattern Dictionary — Static Rule Tables for Atomic Detection

The dictionary defines:
  1. What an atomic violation looks like (PatternDefinition, P-56-XX-NNN)
  2. Which names are never violations on their own (the negative list)
  3. Which surrounding context cancels or softens a hit (context exceptions)
  4. Which keywords nudge confidence up or down (boost / hedge / navigation)

It is compiled once into a PatternDictionary and never mutated after.
A pattern that fails to compile is logged and skipped; the rest of the
dictionary stays usable.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from medcheck.taxonomy import ExceptionType, PatternCategory, PatternSeverity

logger = logging.getLogger(__name__)

DICTIONARY_VERSION = "2.3.0"

REGEX_FLAGS = re.IGNORECASE


def compile_rule_pattern(
    rule_id: str, pattern: str, flags: int = REGEX_FLAGS,
) -> Optional[re.Pattern]:
    """Compile one rule regex. A malformed pattern is logged and returns None."""
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        logger.warning(
            f"Skipping malformed pattern in rule {rule_id}: {exc}",
            extra={"rule_id": rule_id, "error": str(exc)},
        )
        return None


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class PatternDefinition:
    """
    One atomic detection rule.

    ``exceptions`` are literal phrases: when one of them occurs within
    a few characters of the hit, the hit is not a violation.
    """
    id: str
    category: PatternCategory
    subcategory: str
    pattern: str
    severity: PatternSeverity
    legal_basis: str
    description: str
    example: str = ""
    suggestion: str = ""
    exceptions: tuple[str, ...] = ()


@dataclass(frozen=True)
class RawHit:
    """A regex hit before any filtering."""
    pattern_id: str
    matched_text: str
    position: int
    end_position: int


@dataclass(frozen=True)
class CompiledPattern:
    """A PatternDefinition with its compiled regex."""
    definition: PatternDefinition
    regex: re.Pattern

    @property
    def id(self) -> str:
        return self.definition.id

    def finditer(self, text: str) -> Iterable[RawHit]:
        for m in self.regex.finditer(text):
            if not m.group(0).strip():
                continue
            yield RawHit(self.definition.id, m.group(0), m.start(), m.end())

    def evaluate(self, text: str) -> Optional[RawHit]:
        """First hit in ``text``, or None."""
        return next(iter(self.finditer(text)), None)


@dataclass(frozen=True)
class ContextException:
    """
    A contextual pattern that cancels (or, for disclaimers, marks) a hit.

    ``scope`` selects the text each pattern is tested against:
      - "before":      the sentence text preceding the hit
      - "after":       the sentence text following the hit
      - "sentence":    the whole enclosing sentence
      - "surrounding": the sentence plus a fixed-radius window
    """
    type: ExceptionType
    patterns: tuple[str, ...]
    scope: str
    description: str


@dataclass(frozen=True)
class CompiledException:
    type: ExceptionType
    scope: str
    regexes: tuple[re.Pattern, ...]
    description: str

    def hits(self, segment: str) -> bool:
        return any(r.search(segment) for r in self.regexes)


# ============================================================
# ATOMIC PATTERNS (의료법 제56조 중심)
# ============================================================

_ART_56_2_2 = "의료법 제56조 제2항 제2호"
_ART_56_2_3 = "의료법 제56조 제2항 제3호"
_ART_56_2_4 = "의료법 제56조 제2항 제4호"
_ART_56_2_7 = "의료법 제56조 제2항 제7호"
_ART_56_2_8 = "의료법 제56조 제2항 제8호"
_ART_27_3 = "의료법 제27조 제3항"
_PHARMA_68 = "약사법 제68조 제6항"

PATTERN_DEFINITIONS: tuple[PatternDefinition, ...] = (
    # --- 치료효과보장 ---
    PatternDefinition(
        id="P-56-01-001",
        category=PatternCategory.GUARANTEE,
        subcategory="100% 완치/성공",
        pattern=r"100\s*%\s*(?:완치|성공|치료|회복)",
        severity=PatternSeverity.CRITICAL,
        legal_basis=_ART_56_2_2,
        description="치료 결과를 100% 완치·성공으로 단정하는 표현",
        example="100% 완치됩니다",
        suggestion="치료 결과는 개인에 따라 다를 수 있음을 명시하세요",
    ),
    PatternDefinition(
        id="P-56-01-002",
        category=PatternCategory.GUARANTEE,
        subcategory="효과 보장",
        pattern=(
            r"(?:100\s*%|완벽(?:한|하게)?|확실(?:한|하게|히)?)\s*(?:효과|결과)"
            r"(?:를|을)?(?:\s*(?:보장|약속))?"
        ),
        severity=PatternSeverity.CRITICAL,
        legal_basis=_ART_56_2_2,
        description="시술 효과나 결과를 보장하는 표현",
        example="100% 효과를 보장합니다",
        suggestion="'효과를 기대할 수 있습니다' 등 완화된 표현과 개인차 문구를 사용하세요",
    ),
    PatternDefinition(
        id="P-56-01-003",
        category=PatternCategory.GUARANTEE,
        subcategory="완치 보장",
        pattern=r"완치(?:를|을)?\s*(?:보장|약속|책임)",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_56_2_2,
        description="완치를 보장하거나 책임진다는 표현",
        example="완치를 책임집니다",
        suggestion="완치 보장 표현을 삭제하세요",
    ),
    PatternDefinition(
        id="P-56-01-004",
        category=PatternCategory.GUARANTEE,
        subcategory="재발 없음",
        pattern=r"재발\s*(?:이|은|도)?\s*(?:전혀\s*)?(?:없|제로|zero)|다시는\s*재발",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_56_2_2,
        description="재발하지 않는다고 단정하는 표현",
        example="재발 없는 치료",
        suggestion="재발 가능성을 함께 안내하세요",
    ),
    PatternDefinition(
        id="P-56-01-005",
        category=PatternCategory.GUARANTEE,
        subcategory="영구 효과",
        pattern=r"(?:평생|영구(?:적인?)?)\s*(?:효과|유지|보장)",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_56_2_8,
        description="효과가 영구적으로 유지된다는 표현",
        example="영구적인 효과",
        suggestion="효과 지속 기간은 개인에 따라 다를 수 있음을 명시하세요",
    ),
    PatternDefinition(
        id="P-56-01-006",
        category=PatternCategory.GUARANTEE,
        subcategory="단기 완치",
        pattern=r"(?:1|한)\s*(?:번|회)\s*(?:만에|만으로|시술로)\s*(?:완치|해결|끝)|당일\s*완치",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_56_2_8,
        description="단 한 번의 시술로 완치된다는 표현",
        example="한 번 만에 해결",
        suggestion="필요한 치료 횟수는 진료 후 결정됨을 안내하세요",
    ),

    # --- 부작용부정 ---
    PatternDefinition(
        id="P-56-02-001",
        category=PatternCategory.SIDE_EFFECT_DENIAL,
        subcategory="부작용 없음 단정",
        pattern=r"부작용\s*(?:이|은|도)?\s*(?:전혀\s*|절대\s*)?(?:없|제로|0\s*%)",
        severity=PatternSeverity.CRITICAL,
        legal_basis=_ART_56_2_7,
        description="부작용이 전혀 없다고 단정하는 표현",
        example="부작용이 전혀 없습니다",
        suggestion="발생 가능한 부작용을 함께 고지하세요",
    ),
    PatternDefinition(
        id="P-56-02-002",
        category=PatternCategory.SIDE_EFFECT_DENIAL,
        subcategory="부작용 최소화 단정",
        pattern=r"부작용\s*(?:이|은)?\s*거의\s*없|부작용\s*걱정\s*(?:없|끝|NO)",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_56_2_7,
        description="부작용 걱정이 없다고 안심시키는 표현",
        example="부작용 걱정 없는 시술",
        suggestion="부작용 가능성을 구체적으로 안내하세요",
    ),
    PatternDefinition(
        id="P-56-02-003",
        category=PatternCategory.SIDE_EFFECT_DENIAL,
        subcategory="통증 없음",
        pattern=r"(?:통증|아픔)\s*(?:이|은|도)?\s*(?:전혀\s*)?(?:없|제로)|무통\s*(?:시술|치료|수술)",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_56_2_7,
        description="통증이 전혀 없다고 단정하는 표현",
        example="통증 없는 시술",
        suggestion="통증은 개인에 따라 다를 수 있음을 명시하세요",
    ),
    PatternDefinition(
        id="P-56-02-004",
        category=PatternCategory.SIDE_EFFECT_DENIAL,
        subcategory="완전 안전",
        pattern=r"(?:100\s*%|완벽(?:하게|히)?|절대)\s*안전",
        severity=PatternSeverity.CRITICAL,
        legal_basis=_ART_56_2_7,
        description="시술이 완전히 안전하다고 단정하는 표현",
        example="100% 안전한 시술",
        suggestion="안전성에 대한 단정 표현을 삭제하세요",
    ),

    # --- 최상급표현 ---
    PatternDefinition(
        id="P-56-03-001",
        category=PatternCategory.SUPERLATIVE,
        subcategory="최상급 표현",
        pattern=r"(?:(?:국내|업계|지역|세계|아시아)\s*)?(?:최고|최초|최상|유일|독보적)",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_56_2_8,
        description="객관적 근거 없는 최상급 표현",
        example="국내 최고의 기술력",
        suggestion="객관적으로 입증 가능한 사실만 기재하세요",
        exceptions=("최고경영자", "최고령", "최초 내원", "최초 진료", "최초 방문"),
    ),
    PatternDefinition(
        id="P-56-03-002",
        category=PatternCategory.SUPERLATIVE,
        subcategory="순위 표현",
        pattern=r"No\.?\s*1(?!\d)|넘버\s*원|(?:(?:만족도|실적|매출)\s*)?(?<!\d)1\s*(?:위|등)(?!급)",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_56_2_8,
        description="근거 없는 순위·1등 표현",
        example="강남 No.1 피부과",
        suggestion="순위 표현을 삭제하세요",
    ),
    PatternDefinition(
        id="P-56-03-003",
        category=PatternCategory.SUPERLATIVE,
        subcategory="최다·최신 장비",
        pattern=r"(?:국내|업계)\s*최다|(?:최신|첨단)\s*(?:장비|기술|기기)",
        severity=PatternSeverity.MINOR,
        legal_basis=_ART_56_2_8,
        description="장비나 실적을 과장하는 표현",
        example="국내 최다 시술",
        suggestion="보유 장비는 명칭만 사실대로 기재하세요",
    ),

    # --- 비교광고 ---
    PatternDefinition(
        id="P-56-04-001",
        category=PatternCategory.COMPARISON,
        subcategory="타 의료기관 비교",
        pattern=r"(?:다른|타)\s*(?:병원|의원|클리닉|의료기관)\s*(?:보다|에\s*비해|과\s*달리|와\s*달리|대비)",
        severity=PatternSeverity.CRITICAL,
        legal_basis=_ART_56_2_4,
        description="다른 의료기관과 비교하는 표현",
        example="다른 병원보다 저렴하고 효과적",
        suggestion="타 기관과의 비교 표현을 삭제하세요",
    ),
    PatternDefinition(
        id="P-56-04-002",
        category=PatternCategory.COMPARISON,
        subcategory="타 병원 실패 사례",
        pattern=r"(?:다른|타)\s*(?:병원|의원)\s*(?:에서\s*)?(?:실패|재수술|포기)",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_56_2_4,
        description="다른 의료기관의 실패를 부각하는 표현",
        example="타 병원 실패 환자 전문",
        suggestion="다른 의료기관을 언급하지 마세요",
    ),

    # --- 환자유인 ---
    PatternDefinition(
        id="P-56-05-001",
        category=PatternCategory.INDUCEMENT,
        subcategory="할인율 표시",
        pattern=r"\d{1,3}\s*%\s*(?:할인|DC|OFF|세일)",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_27_3,
        description="할인율을 내세워 환자를 유인하는 표현",
        example="50% 할인",
        suggestion="비급여 진료비 할인 광고를 삭제하세요",
    ),
    PatternDefinition(
        id="P-56-05-002",
        category=PatternCategory.INDUCEMENT,
        subcategory="무료 시술",
        pattern=r"(?:무료|공짜|0\s*원)\s*(?:시술|체험|이벤트|제공|쿠폰)",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_27_3,
        description="무료 시술·체험을 내세운 유인 표현",
        example="무료 체험 이벤트",
        suggestion="무료 제공 문구를 삭제하세요",
    ),
    PatternDefinition(
        id="P-56-05-003",
        category=PatternCategory.INDUCEMENT,
        subcategory="기간 한정",
        pattern=r"(?:오늘|이번\s*(?:주|달))\s*(?:만|까지|한정)|선착순(?:\s*\d+\s*(?:명|분))?|마감\s*임박",
        severity=PatternSeverity.MINOR,
        legal_basis=_ART_27_3,
        description="기간·인원을 한정해 결정을 재촉하는 표현",
        example="선착순 10명",
        suggestion="기간 한정·선착순 표현을 삭제하세요",
    ),
    PatternDefinition(
        id="P-56-05-004",
        category=PatternCategory.INDUCEMENT,
        subcategory="최저가",
        pattern=r"최저\s*가|반값|파격\s*(?:할인|가격|혜택)",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_27_3,
        description="가격을 내세운 유인 표현",
        example="최저가 보장",
        suggestion="가격 비교·최저가 표현을 삭제하세요",
    ),
    PatternDefinition(
        id="P-56-05-005",
        category=PatternCategory.INDUCEMENT,
        subcategory="소개 혜택",
        pattern=r"(?:친구|지인)\s*(?:소개|추천)\s*(?:시|하면)?\s*(?:할인|적립|혜택|선물)|경품",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_27_3,
        description="소개·경품으로 환자를 유인하는 표현",
        example="친구 소개 시 할인",
        suggestion="소개 혜택·경품 문구를 삭제하세요",
    ),

    # --- 전후사진 ---
    PatternDefinition(
        id="P-56-06-001",
        category=PatternCategory.BEFORE_AFTER,
        subcategory="전후 비교",
        pattern=(
            r"(?:시술|수술|치료)\s*전\s*[·/&,]?\s*후|전\s*[·/&]\s*후\s*(?:사진|비교)"
            r"|비포\s*(?:앤|&)?\s*애프터|before\s*(?:&|and|/)?\s*after"
        ),
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_56_2_2,
        description="치료 전후 비교로 효과를 오인하게 하는 표현",
        example="시술 전후 사진",
        suggestion="전후 사진 게시를 중단하거나 부작용 정보를 함께 고지하세요",
        exceptions=("전후 주의사항", "전후 관리", "전후 유의사항"),
    ),

    # --- 체험기 ---
    PatternDefinition(
        id="P-56-07-001",
        category=PatternCategory.TESTIMONIAL,
        subcategory="치료 경험담",
        pattern=r"(?:치료|시술|수술)\s*(?:후기|체험기|경험담)|(?:실제|생생한|솔직한)\s*(?:후기|체험)",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_56_2_2,
        description="환자의 치료 경험담을 광고에 사용하는 표현",
        example="실제 환자 시술 후기",
        suggestion="치료 경험담 게시를 삭제하세요",
    ),
    PatternDefinition(
        id="P-56-07-002",
        category=PatternCategory.TESTIMONIAL,
        subcategory="만족도 수치",
        pattern=r"만족(?:도|률|율)\s*\d{2,3}(?:\.\d)?\s*%",
        severity=PatternSeverity.MINOR,
        legal_basis=_ART_56_2_2,
        description="환자 만족도를 수치로 내세우는 표현",
        example="만족도 98%",
        suggestion="근거 없는 만족도 수치를 삭제하세요",
    ),

    # --- 금지어 ---
    PatternDefinition(
        id="P-56-08-001",
        category=PatternCategory.PROHIBITED,
        subcategory="전문의약품 명칭",
        pattern=r"(?:보톡스|디스포트|제오민|나보타|보툴렉스)(?:\s*(?:특가|할인|이벤트|최저가))?",
        severity=PatternSeverity.MINOR,
        legal_basis=_PHARMA_68,
        description="전문의약품 명칭을 판촉에 사용하는 표현",
        example="보톡스 특가",
        suggestion="전문의약품 명칭 대신 시술명을 사용하세요",
    ),
    PatternDefinition(
        id="P-56-08-002",
        category=PatternCategory.PROHIBITED,
        subcategory="기적·마법",
        pattern=r"(?:기적|마법)(?:(?:의|같은|처럼)?\s*(?:효과|시술|치료|변화))?",
        severity=PatternSeverity.MAJOR,
        legal_basis=_ART_56_2_3,
        description="기적·마법 같은 효과를 암시하는 표현",
        example="기적의 시술",
        suggestion="과장된 비유 표현을 삭제하세요",
    ),
    PatternDefinition(
        id="P-56-08-003",
        category=PatternCategory.PROHIBITED,
        subcategory="인증 과장",
        pattern=r"(?:FDA|식약처|CE)\s*(?:승인|인증|허가)(?:\s*(?:받은|획득한?))?\s*(?:최초|유일|독점)",
        severity=PatternSeverity.MINOR,
        legal_basis=_ART_56_2_3,
        description="인증 사실을 과장해 독점적 지위를 주장하는 표현",
        example="FDA 승인 유일 장비",
        suggestion="인증 사실만 정확히 기재하세요",
    ),
)

# Hits on these ids are never softened by a disclaimer.
ABSOLUTE_VIOLATION_IDS: frozenset[str] = frozenset({
    "P-56-01-001",
    "P-56-02-001",
})


# ============================================================
# NEGATIVE LIST
# ============================================================

NEGATIVE_LIST: dict[str, tuple[str, ...]] = {
    "equipment": (
        "울쎄라", "써마지", "인모드", "슈링크", "올리지오", "텐쎄라", "포텐자",
        "피코슈어", "피코웨이", "레블라이트", "클라리티", "엑셀V", "젠틀맥스",
        "IPL", "RF", "HIFU",
    ),
    "medications": (
        "보톡스", "디스포트", "제오민", "나보타", "보툴렉스", "리쥬란",
        "쥬베룩", "레디어스", "스컬트라", "엘란쎄", "필러", "히알루론산",
    ),
    "skincare": (
        "물광주사", "연어주사", "백옥주사", "신데렐라주사", "아쿠아필", "LDM",
    ),
    "medical_terms": (
        "피부과", "성형외과", "치과", "한의원", "전문의", "레이저", "리프팅",
        "보툴리눔", "진료과목",
    ),
    "certifications": (
        "FDA 승인", "FDA 인증", "식약처 인증", "식약처 허가", "KFDA", "CE 인증",
        "ISO 인증", "보건복지부 인증",
    ),
}

# A hit may exceed a listed name by this many characters (e.g. a particle).
NEGATIVE_LIST_SLACK = 1


def normalize_term(text: str) -> str:
    return re.sub(r"\s+", "", text).lower()


# ============================================================
# CONTEXT EXCEPTIONS
# ============================================================

CONTEXT_EXCEPTIONS: tuple[ContextException, ...] = (
    ContextException(
        type=ExceptionType.NEGATION_BEFORE,
        patterns=(
            r"(?:근거\s*(?:없는|없이)|검증되지\s*않은|허위의?|거짓된?|과장된|불가능한|금지된)\s*[\"'“‘]?\s*$",
            r"(?:결코|절대로?)\s+(?:안|못)\s*$",
        ),
        scope="before",
        description="앞쪽 부정 표현 (근거 없는 ~)",
    ),
    ContextException(
        type=ExceptionType.NEGATION_AFTER,
        patterns=(
            r"^\s*(?:을|를|이|가|은|는|도)?\s*(?:[가-힣]{1,4}\s*)?(?:하지|되지|하진|되진|드리지)\s*(?:않|못)",
            r"^\s*(?:을|를|이|가|은|는|도)?\s*(?:[가-힣]{1,4}\s*)?(?:할|될|드릴)\s*수\s*(?:는\s*)?없",
            r"^\s*(?:이|가|은|는)?\s*(?:아닙니다|아니(?:다|며|고|에요|예요))",
        ),
        scope="after",
        description="뒤쪽 부정 표현 (~하지 않습니다)",
    ),
    ContextException(
        type=ExceptionType.DISCLAIMER,
        patterns=(
            r"개인\s*(?:에\s*따라|마다|별로)",
            r"개인\s*(?:차|차이)(?:가|는)?\s*(?:있|존재)",
            r"결과(?:를|는)?\s*보장(?:하지|할\s*수)\s*(?:않|없)",
            r"부작용이\s*(?:발생할|나타날|있을)\s*수",
            r"시술\s*전\s*(?:반드시\s*)?(?:전문의(?:와)?\s*)?상담",
            r"개인\s*체질에\s*따라",
            r"효과에는\s*개인\s*차",
        ),
        scope="surrounding",
        description="개인차·부작용 고지 등 면책 문구 (심각도 한 단계 완화)",
    ),
    ContextException(
        type=ExceptionType.LEGAL_NOTICE,
        patterns=(
            r"의료법\s*(?:제\s*)?\d+\s*조",
            r"(?:의료\s*)?광고\s*심의\s*(?:필|번호)",
            r"관련\s*법령에\s*따라",
        ),
        scope="surrounding",
        description="법령 고지 (심각도 한 단계 완화)",
    ),
    ContextException(
        type=ExceptionType.NEGATIVE_EXAMPLE,
        patterns=(
            r"(?:위반|금지|잘못된|불법)\s*(?:사례|예시|표현|광고)",
            r"(?:와|과)\s*같은\s*(?:표현|광고|문구)(?:은|는|을|를)",
            r"(?:표현|문구)(?:은|는)\s*(?:사용할\s*수\s*없|금지|불가)",
            r"(?:하면|해서는)\s*안\s*(?:됩니다|돼요|된다)",
        ),
        scope="sentence",
        description="위반 사례를 예시로 든 문장",
    ),
    ContextException(
        type=ExceptionType.QUESTION,
        patterns=(
            r"\?",
            r"(?:나요|까요|습니까|인가요|을까|ㄹ까|가요)\s*$",
        ),
        scope="after",
        description="질문형 문장 (FAQ 질문 등)",
    ),
    ContextException(
        type=ExceptionType.CONDITIONAL,
        patterns=(
            r"^[^.!?\n]{0,12}?(?:할|될|볼|줄|있을|얻을)\s*수\s*(?:도\s*)?있",
            r"^[^.!?\n]{0,12}?경우(?:가|도)?\s*있",
        ),
        scope="after",
        description="가능성만 언급하는 조건부 표현 (~할 수 있습니다)",
    ),
    ContextException(
        type=ExceptionType.CONDITIONAL,
        patterns=(r"(?:경우에\s*따라|상황에\s*따라|만약|만일)",),
        scope="before",
        description="조건을 먼저 제시하는 표현 (경우에 따라 ~)",
    ),
)

# Quotation is decided structurally (balanced quotes), not by pattern.
QUOTE_PAIRS: dict[str, str] = {'"': '"', "'": "'", "“": "”", "‘": "’", "「": "」", "『": "』"}

EXCEPTION_WINDOW = 30


# ============================================================
# CONFIDENCE MODIFIERS
# ============================================================

BOOST_KEYWORDS = r"절대|반드시|확실|틀림없|무조건|100\s*%|완벽"
HEDGE_KEYWORDS = r"개인\s*(?:차|마다|에\s*따라|별로)|다를\s*수\s*있|차이가\s*있을\s*수"
NAVIGATION_SEPARATORS = r"\s[>›»|]\s"
# "보장할 수 있습니다" asserts the guarantee; the modal does not hedge it.
GUARANTEE_MODAL = r"(?:보장|약속|책임)\s*(?:을\s*)?(?:할|질|드릴)\s*수\s*(?:도\s*)?있"


# ============================================================
# COMPILED DICTIONARY
# ============================================================

class PatternDictionary:
    """
    Compiled, read-only view of the atomic rule tables.

    Built once per process and handed to the PatternMatcher and
    RuleEngine. Concurrent analyses share it without locking.
    """

    def __init__(
        self,
        definitions: Iterable[PatternDefinition] = PATTERN_DEFINITIONS,
        negative_list: dict[str, tuple[str, ...]] = NEGATIVE_LIST,
        context_exceptions: Iterable[ContextException] = CONTEXT_EXCEPTIONS,
        absolute_ids: frozenset[str] = ABSOLUTE_VIOLATION_IDS,
        version: str = DICTIONARY_VERSION,
    ):
        self.version = version
        self.absolute_ids = frozenset(absolute_ids)

        compiled = []
        for definition in definitions:
            regex = compile_rule_pattern(definition.id, definition.pattern)
            if regex is not None:
                compiled.append(CompiledPattern(definition, regex))
        self.patterns: tuple[CompiledPattern, ...] = tuple(compiled)
        self._by_id = {p.id: p for p in self.patterns}

        self.negative_terms: frozenset[str] = frozenset(
            normalize_term(term)
            for group in negative_list.values()
            for term in group
        )

        order = list(ExceptionType)
        exceptions = []
        for exc in sorted(context_exceptions, key=lambda e: order.index(e.type)):
            regexes = tuple(
                r for r in (
                    compile_rule_pattern(f"exception:{exc.type.value}", p)
                    for p in exc.patterns
                )
                if r is not None
            )
            if regexes:
                exceptions.append(CompiledException(exc.type, exc.scope, regexes, exc.description))
        self.exceptions: tuple[CompiledException, ...] = tuple(exceptions)

        self._disclaimer_regexes = tuple(
            r for e in self.exceptions
            if e.type is ExceptionType.DISCLAIMER
            for r in e.regexes
        )
        self.boost = re.compile(BOOST_KEYWORDS, REGEX_FLAGS)
        self.hedge = re.compile(HEDGE_KEYWORDS, REGEX_FLAGS)
        self.navigation = re.compile(NAVIGATION_SEPARATORS)
        self.guarantee_modal = re.compile(GUARANTEE_MODAL, REGEX_FLAGS)

        logger.debug(
            f"Pattern dictionary {version} compiled: {len(self.patterns)} patterns",
        )

    def __len__(self) -> int:
        return len(self.patterns)

    def get(self, pattern_id: str) -> Optional[CompiledPattern]:
        return self._by_id.get(pattern_id)

    def by_category(self, category: PatternCategory) -> list[CompiledPattern]:
        return [p for p in self.patterns if p.definition.category is category]

    def is_absolute(self, pattern_id: str) -> bool:
        return pattern_id in self.absolute_ids

    def is_negative(self, matched_text: str) -> bool:
        """
        True when the hit is just a listed device/drug/term name.

        The hit counts as a bare name when it equals a listed name, is a
        fragment of one, or extends one by at most NEGATIVE_LIST_SLACK
        characters.
        """
        hit = normalize_term(matched_text)
        if not hit:
            return False
        for term in self.negative_terms:
            if hit == term or hit in term:
                return True
            if term in hit and len(hit) - len(term) <= NEGATIVE_LIST_SLACK:
                return True
        return False

    def has_disclaimer(self, text: str) -> bool:
        """Page-level disclaimer check, independent of position."""
        return any(r.search(text) for r in self._disclaimer_regexes)

    def get_patterns(self, category: Optional[PatternCategory] = None) -> list[dict]:
        """Serializable pattern list for the /patterns endpoint."""
        return [
            {
                "id": p.definition.id,
                "category": p.definition.category.value,
                "subcategory": p.definition.subcategory,
                "severity": p.definition.severity.value,
                "legal_basis": p.definition.legal_basis,
                "description": p.definition.description,
                "example": p.definition.example,
                "absolute": p.id in self.absolute_ids,
            }
            for p in self.patterns
            if category is None or p.definition.category is category
        ]
