"""
Mandatory Checker — Required Disclosure Fields

Medical advertisements must show who is advertising: institution name,
location and phone number are required; specialty, specialist
credential and representative name are recommended.

Each field is tried pattern by pattern. The first hit is validated and
recorded as found/valid. Score is weighted completion: 30 per required
field, 10 per recommended field, half credit when found but invalid.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from medcheck.dictionary import compile_rule_pattern
from medcheck.rule_engine import round_half_up

REQUIRED_WEIGHT = 30
RECOMMENDED_WEIGHT = 10

INSTITUTION = "의료기관명"
LOCATION = "소재지"
PHONE = "전화번호"
SPECIALTY = "진료과목"
SPECIALIST = "전문의 자격"
REPRESENTATIVE = "대표자명"


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass
class MandatoryItem:
    name: str
    required: bool
    found: bool
    is_valid: bool
    value: Optional[str] = None
    position: Optional[int] = None
    issue: Optional[str] = None

    @property
    def matched_text(self) -> str:
        return self.value or ""


@dataclass
class MandatoryCheckResult:
    is_complete: bool
    score: int
    items: list[MandatoryItem]
    missing_items: list[str]
    warnings: list[str]

    def item(self, name: str) -> Optional[MandatoryItem]:
        return next((i for i in self.items if i.name == name), None)


@dataclass(frozen=True)
class MandatoryItemDefinition:
    """
    One disclosure field.

    ``validate(value, text)`` judges the extracted value. ``group`` picks
    the capture group used as the value (0 = whole match).
    """
    id: str
    required: bool
    patterns: tuple[str, ...]
    validate: Callable[[str, str], bool] = lambda value, text: True
    group: int = 0
    _compiled: tuple = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_compiled", tuple(
            r for r in (compile_rule_pattern(self.id, p) for p in self.patterns)
            if r is not None
        ))

    def evaluate(self, text: str) -> Optional[MandatoryItem]:
        """The found item, or None when no pattern hits."""
        for regex in self._compiled:
            m = regex.search(text)
            if not m:
                continue
            value = m.group(self.group).strip()
            valid = bool(self.validate(value, text))
            return MandatoryItem(
                name=self.id,
                required=self.required,
                found=True,
                is_valid=valid,
                value=value,
                position=m.start(self.group),
                issue=None if valid else f"{self.id} 형식이 올바르지 않음",
            )
        return None

    def absent(self) -> MandatoryItem:
        return MandatoryItem(name=self.id, required=self.required, found=False, is_valid=False)


# ============================================================
# VALIDATORS
# ============================================================

_NAME_TITLES = re.compile(r"대표|원장|의사|:|\s")
_HANGUL_NAME = re.compile(r"^[가-힣]{2,4}$")


def _length_between(lo: int, hi: int) -> Callable[[str, str], bool]:
    return lambda value, text: lo <= len(value) <= hi


def _valid_phone(value: str, text: str) -> bool:
    digits = re.sub(r"\D", "", value)
    return 8 <= len(digits) <= 12


def _valid_name(value: str, text: str) -> bool:
    return bool(_HANGUL_NAME.match(_NAME_TITLES.sub("", value)))


# ============================================================
# ITEM TABLE
# ============================================================

# A specialty followed by "전문의" is a credential, not a stated department.
_DEPARTMENTS = (
    "피부과|성형외과|정형외과|신경외과|흉부외과|이비인후과|정신건강의학과|산부인과"
    "|소아청소년과|비뇨의학과|내과|외과|안과|치과|한의원"
)

MANDATORY_ITEMS: tuple[MandatoryItemDefinition, ...] = (
    MandatoryItemDefinition(
        id=INSTITUTION,
        required=True,
        patterns=(
            r"([가-힣A-Za-z0-9]+\s*(?:의원|병원|클리닉|센터|의료원|메디컬))",
            r"([A-Za-z]+\s*(?:clinic|hospital|center|medical))",
        ),
        validate=_length_between(2, 50),
        group=1,
    ),
    MandatoryItemDefinition(
        id=LOCATION,
        required=True,
        patterns=(
            r"[가-힣]+(?:시|도)\s*[가-힣]+(?:구|군)\s*[가-힣]+(?:동|읍|면|로|길)",
            r"서울|부산|대구|인천|광주|대전|울산|세종|경기|강원|충북|충남|전북|전남|경북|경남|제주",
            r"[가-힣]+구\s+[가-힣]+동",
            r"[가-힣]+시\s+[가-힣]+구",
        ),
        validate=_length_between(2, 100),
    ),
    MandatoryItemDefinition(
        id=PHONE,
        required=True,
        patterns=(
            r"\d{2,4}[-.\s]?\d{3,4}[-.\s]?\d{4}",
            r"1\d{3}[-.\s]?\d{4}",
        ),
        validate=_valid_phone,
    ),
    MandatoryItemDefinition(
        id=SPECIALTY,
        required=False,
        patterns=(
            rf"(?:{_DEPARTMENTS})(?!\s*전문의)",
            r"(?:피부|성형|미용|에스테틱|리프팅|레이저)(?!과?\s*전문의)",
        ),
    ),
    MandatoryItemDefinition(
        id=SPECIALIST,
        required=False,
        patterns=(
            r"[가-힣]+\s*전문의",
            r"전문의\s*\d+\s*인",
        ),
    ),
    MandatoryItemDefinition(
        id=REPRESENTATIVE,
        required=False,
        patterns=(
            r"대표\s*(?:원장|의사)?\s*:?\s*[가-힣]{2,4}",
            r"원장\s*:?\s*[가-힣]{2,4}",
        ),
        validate=_valid_name,
    ),
)


# ============================================================
# SPECIALIST / SPECIALTY CROSS-CHECK
# ============================================================

_SPECIALTY_TYPE = re.compile(
    r"피부|성형|정형|이비인후|한의|정신|산부|소아|비뇨|신경|흉부|내|외|안|치"
)

# Credential type → specialty types it rarely coexists with.
INCOMPATIBLE_SPECIALTIES: dict[str, frozenset[str]] = {
    "피부": frozenset({"정형", "내", "외", "안"}),
    "성형": frozenset({"피부", "내", "정형", "안"}),
    "정형": frozenset({"피부", "성형", "내", "안"}),
    "안": frozenset({"피부", "성형", "정형"}),
}


def extract_specialty_type(text: str) -> Optional[str]:
    m = _SPECIALTY_TYPE.search(text or "")
    return m.group(0) if m else None


def specialist_mismatch(specialist: str, department: str) -> Optional[str]:
    """Warning text when the credential and stated specialty look incompatible."""
    credential = extract_specialty_type(specialist)
    stated = extract_specialty_type(department)
    if not credential or not stated:
        return None
    if stated in INCOMPATIBLE_SPECIALTIES.get(credential, frozenset()):
        return f"전문의 자격({specialist})과 표시된 진료과목({department})이 일치하지 않을 수 있습니다"
    return None


# ============================================================
# CHECKER
# ============================================================

class MandatoryChecker:
    """Checks an injected tuple of disclosure-field definitions."""

    def __init__(self, items: Iterable[MandatoryItemDefinition] = MANDATORY_ITEMS):
        self.items: tuple[MandatoryItemDefinition, ...] = tuple(items)

    def check(self, text: str) -> MandatoryCheckResult:
        text = text if isinstance(text, str) else ""
        results = [d.evaluate(text) or d.absent() for d in self.items]
        by_name = {r.name: r for r in results}

        missing = [r.name for r in results if r.required and not r.found]
        warnings = self._warnings(by_name)

        return MandatoryCheckResult(
            is_complete=not missing,
            score=self.score(results),
            items=results,
            missing_items=missing,
            warnings=warnings,
        )

    @staticmethod
    def _warnings(by_name: dict[str, MandatoryItem]) -> list[str]:
        warnings = []
        specialist = by_name.get(SPECIALIST)
        department = by_name.get(SPECIALTY)
        institution = by_name.get(INSTITUTION)
        phone = by_name.get(PHONE)

        if specialist and specialist.found:
            if not (department and department.found):
                warnings.append("전문의 자격 표시 시 진료과목도 함께 표시하는 것이 권장됨")
            else:
                mismatch = specialist_mismatch(specialist.value or "", department.value or "")
                if mismatch:
                    warnings.append(mismatch)

        if phone and phone.found and institution and not institution.found:
            warnings.append("의료기관명이 명시되지 않았습니다. 필수 기재사항입니다.")

        return warnings

    @staticmethod
    def score(items: list[MandatoryItem]) -> int:
        total = 0.0
        earned = 0.0
        for item in items:
            weight = REQUIRED_WEIGHT if item.required else RECOMMENDED_WEIGHT
            total += weight
            if item.found:
                earned += weight if item.is_valid else weight * 0.5
        if total == 0:
            return 100
        return round_half_up(earned / total * 100)

    def get_required_items(self) -> list[str]:
        return [d.id for d in self.items if d.required]

    def get_all_items(self) -> list[dict]:
        return [{"name": d.id, "required": d.required} for d in self.items]

    def check_single_item(self, text: str, name: str) -> Optional[MandatoryItem]:
        """None for an unknown field name."""
        definition = next((d for d in self.items if d.id == name), None)
        if definition is None:
            return None
        return definition.evaluate(text if isinstance(text, str) else "") or definition.absent()
