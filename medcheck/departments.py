"""
Department Rules — Specialty-Aware Rule Overlays

Detects which medical specialty a page belongs to, then applies that
specialty's rule set. Automatic analysis also applies the "general"
rules whenever a specific specialty was detected.

Detection scoring: 2 points per regex hit, 1 point per keyword present.
Confidence is min(0.95, score × 0.1). No signal means "general".
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from medcheck.compound import extract_context
from medcheck.dictionary import compile_rule_pattern
from medcheck.taxonomy import Department, PatternSeverity

EXCEPTION_RADIUS = 50
EVIDENCE_PER_PATTERN = 3
MAX_EVIDENCE = 5


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass
class DepartmentViolation:
    rule_id: str
    department: Department
    rule_name: str
    matched_text: str
    context: str
    position: int
    end_position: int
    severity: PatternSeverity
    legal_basis: str
    description: str
    suggestion: str
    confidence: float


@dataclass
class DepartmentDetection:
    department: Department
    confidence: float
    evidence: list[str]
    pinned: bool = False


@dataclass
class DepartmentAnalysis:
    detection: DepartmentDetection
    violations: list[DepartmentViolation]


@dataclass(frozen=True)
class DepartmentSignature:
    """Regexes and bare keywords that point to one specialty."""
    department: Department
    patterns: tuple[str, ...]
    keywords: tuple[str, ...]
    _compiled: tuple = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_compiled", tuple(
            r for r in (
                compile_rule_pattern(f"signature:{self.department.value}", p)
                for p in self.patterns
            )
            if r is not None
        ))

    def score(self, text: str) -> tuple[int, list[str]]:
        score = 0
        evidence: list[str] = []
        for regex in self._compiled:
            found = [m.group(0) for m in regex.finditer(text) if m.group(0).strip()]
            if found:
                score += 2 * len(found)
                evidence.extend(found[:EVIDENCE_PER_PATTERN])
        for keyword in self.keywords:
            if keyword in text:
                score += 1
                if keyword not in evidence:
                    evidence.append(keyword)
        return score, evidence[:MAX_EVIDENCE]


@dataclass(frozen=True)
class DepartmentRule:
    """A specialty-scoped atomic rule. First matching pattern wins."""
    id: str
    department: Department
    name: str
    description: str
    patterns: tuple[str, ...]
    severity: PatternSeverity
    legal_basis: str
    suggestion: str
    exceptions: tuple[str, ...] = ()
    _compiled: tuple = field(init=False, repr=False, compare=False)
    _exceptions: tuple = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_compiled", tuple(
            r for r in (compile_rule_pattern(self.id, p) for p in self.patterns)
            if r is not None
        ))
        object.__setattr__(self, "_exceptions", tuple(
            r for r in (compile_rule_pattern(f"{self.id}/exception", p) for p in self.exceptions)
            if r is not None
        ))

    def evaluate(self, text: str) -> Optional[DepartmentViolation]:
        for regex in self._compiled:
            m = regex.search(text)
            if not m or not m.group(0).strip():
                continue
            if self._excepted(text, m):
                continue

            matched = m.group(0)
            confidence = 0.7 + self.severity.confidence_bonus
            if len(matched) > 10:
                confidence += 0.05

            return DepartmentViolation(
                rule_id=self.id,
                department=self.department,
                rule_name=self.name,
                matched_text=matched,
                context=extract_context(text, m.start(), m.end()),
                position=m.start(),
                end_position=m.end(),
                severity=self.severity,
                legal_basis=self.legal_basis,
                description=self.description,
                suggestion=self.suggestion,
                confidence=round(min(0.95, confidence), 2),
            )
        return None

    def _excepted(self, text: str, m: re.Match) -> bool:
        if not self._exceptions:
            return False
        nearby = text[max(0, m.start() - EXCEPTION_RADIUS):m.end() + EXCEPTION_RADIUS]
        return any(r.search(nearby) for r in self._exceptions)


# ============================================================
# DETECTION SIGNATURES
# ============================================================

DEPARTMENT_SIGNATURES: tuple[DepartmentSignature, ...] = (
    DepartmentSignature(
        Department.DERMATOLOGY,
        patterns=(
            r"피부과|피부\s*클리닉|피부\s*전문",
            r"여드름|모공|피부\s*톤|색소|기미|주근깨",
            r"레이저\s*토닝|보톡스|필러|리프팅",
            r"피부\s*관리|스킨\s*케어|피부\s*시술",
        ),
        keywords=("피부", "여드름", "레이저", "보톡스", "필러", "기미", "주근깨", "미백"),
    ),
    DepartmentSignature(
        Department.PLASTIC_SURGERY,
        patterns=(
            r"성형외과|성형\s*클리닉|성형\s*전문",
            r"코\s*성형|눈\s*성형|안면\s*윤곽|지방\s*흡입",
            r"가슴\s*성형|쌍꺼풀|눈매\s*교정|코끝",
            r"리프팅|페이스\s*리프트|턱\s*수술",
        ),
        keywords=("성형", "쌍꺼풀", "코", "가슴", "지방흡입", "리프팅", "안면윤곽"),
    ),
    DepartmentSignature(
        Department.DENTAL,
        patterns=(
            r"치과|치아|잇몸|치주",
            r"임플란트|교정|라미네이트|치아\s*미백",
            r"충치|발치|신경\s*치료|스케일링",
            r"투명\s*교정|교정\s*치료|치아\s*교정",
        ),
        keywords=("치과", "임플란트", "교정", "잇몸", "충치", "발치", "라미네이트"),
    ),
    DepartmentSignature(
        Department.ORIENTAL_MEDICINE,
        patterns=(
            r"한의원|한방|한의|침\s*치료",
            r"한약|약침|추나|부항|뜸",
            r"다이어트\s*한약|보약|체질",
            r"한방\s*치료|경락|기혈",
        ),
        keywords=("한의원", "한약", "침", "추나", "부항", "한방", "체질"),
    ),
    DepartmentSignature(
        Department.PSYCHIATRY,
        patterns=(
            r"정신건강의학과|정신과|신경정신과",
            r"우울증|불안|공황\s*장애|불면증",
            r"ADHD|조현병|양극성\s*장애",
            r"심리\s*상담|심리\s*치료|정신\s*건강",
        ),
        keywords=("정신과", "우울증", "불안", "공황", "불면증", "ADHD"),
    ),
    DepartmentSignature(
        Department.OPHTHALMOLOGY,
        patterns=(
            r"안과|눈\s*병원|눈\s*클리닉",
            r"라식|라섹|스마일\s*라식|렌즈삽입술",
            r"백내장|녹내장|망막|시력\s*교정",
            r"노안|다초점|렌즈",
        ),
        keywords=("안과", "라식", "라섹", "백내장", "녹내장", "시력", "노안"),
    ),
    DepartmentSignature(
        Department.ORTHOPEDICS,
        patterns=(
            r"정형외과|관절|척추",
            r"디스크|허리|무릎|어깨",
            r"인공관절|척추\s*수술|관절염",
            r"물리\s*치료|도수\s*치료|재활",
        ),
        keywords=("정형외과", "관절", "척추", "디스크", "무릎", "허리", "인공관절"),
    ),
    DepartmentSignature(
        Department.INTERNAL_MEDICINE,
        patterns=(
            r"내과|종합\s*검진|건강\s*검진",
            r"당뇨|고혈압|고지혈증",
            r"소화기|호흡기|순환기",
            r"내시경|초음파|CT|MRI",
        ),
        keywords=("내과", "검진", "당뇨", "고혈압", "내시경", "소화기"),
    ),
)


# ============================================================
# RULE TABLE
# ============================================================

_EFFECT = "의료법 제56조 제2항 제3호"
_SIDE_EFFECT = "의료법 제56조 제2항 제7호"
_INDIVIDUAL = r"개인\s*(?:차이|마다|에\s*따라)"

DEPARTMENT_RULES: tuple[DepartmentRule, ...] = (
    # --- 피부과 ---
    DepartmentRule(
        id="DERM-001", department=Department.DERMATOLOGY,
        name="시술 횟수 과소 표현",
        description="레이저·시술 횟수를 적게 표현해 효과를 과장",
        patterns=(
            r"(?:단\s*)?(?:1|한)\s*회\s*(?:만으로|로)\s*(?:효과|완료|해결)",
            r"(?:1|한)\s*번\s*(?:에|으로)\s*(?:끝|완료|해결)",
            r"원\s*샷\s*(?:레이저|시술)",
        ),
        severity=PatternSeverity.MAJOR, legal_basis=_EFFECT,
        suggestion="필요한 시술 횟수에 대한 정확한 정보를 제공하세요",
        exceptions=(_INDIVIDUAL,),
    ),
    DepartmentRule(
        id="DERM-002", department=Department.DERMATOLOGY,
        name="피부 완벽 재생 주장",
        description="피부의 완벽한 재생·복구를 보장",
        patterns=(
            r"피부\s*(?:완벽|완전)\s*(?:재생|복구|회복)",
            r"(?:새|baby)\s*살\s*(?:처럼|같이)",
            r"(?:모공|주름)\s*(?:완전|100\s*%)\s*(?:제거|소멸)",
        ),
        severity=PatternSeverity.CRITICAL, legal_basis=_EFFECT,
        suggestion="피부 개선 효과로 표현하고 개인차를 명시하세요",
    ),
    DepartmentRule(
        id="DERM-003", department=Department.DERMATOLOGY,
        name="여드름 완치 보장",
        description="여드름 완치나 재발 방지를 보장",
        patterns=(
            r"여드름\s*(?:완치|완전\s*치료|근본\s*치료)",
            r"(?:재발\s*없|다시는\s*안)\s*(?:는|나는|생기)",
            r"여드름\s*(?:영구|평생)\s*(?:제거|해결)",
        ),
        severity=PatternSeverity.CRITICAL, legal_basis=_EFFECT,
        suggestion="여드름 관리·개선으로 표현하세요",
    ),

    # --- 성형외과 ---
    DepartmentRule(
        id="PLST-001", department=Department.PLASTIC_SURGERY,
        name="자연스러운 결과 보장",
        description="수술 결과의 자연스러움을 보장",
        patterns=(
            r"(?:100\s*%|완벽)\s*자연스러운?\s*(?:결과|모습)",
            r"티\s*안\s*나|눈치\s*못\s*채",
            r"자연\s*그\s*자체",
        ),
        severity=PatternSeverity.MAJOR, legal_basis=_EFFECT,
        suggestion="자연스러운 결과를 위해 노력한다고 표현하세요",
        exceptions=(r"자연스러운\s*결과를\s*위해",),
    ),
    DepartmentRule(
        id="PLST-002", department=Department.PLASTIC_SURGERY,
        name="흉터 없음 주장",
        description="수술 흉터가 없다고 단정",
        patterns=(
            r"(?:흉터|반흔)\s*(?:이\s*)?(?:없|제로|zero)",
            r"(?:절개|흉터)\s*(?:없는|없이)\s*수술",
            r"노\s*스카",
        ),
        severity=PatternSeverity.MAJOR, legal_basis="의료법 제56조 제2항 제2호",
        suggestion="최소 흉터·흉터 관리 등으로 표현하세요",
        exceptions=(r"비절개",),
    ),
    DepartmentRule(
        id="PLST-003", department=Department.PLASTIC_SURGERY,
        name="성형 효과 영구성 주장",
        description="성형 효과가 영구적이라고 표현",
        patterns=(
            r"(?:평생|영구적?|반영구)\s*(?:유지|효과|결과)",
            r"(?:다시는|재수술)\s*(?:필요\s*없|안\s*해도)",
            r"(?:한\s*번|1회)\s*(?:로|에)\s*평생",
        ),
        severity=PatternSeverity.MAJOR, legal_basis=_EFFECT,
        suggestion="효과 유지 기간에 대한 정확한 정보를 제공하세요",
    ),

    # --- 치과 ---
    DepartmentRule(
        id="DENT-001", department=Department.DENTAL,
        name="임플란트 평생 보장",
        description="임플란트의 평생 사용을 보장",
        patterns=(
            r"임플란트\s*평생\s*(?:보장|사용|유지)",
            r"(?:반영구|영구)\s*임플란트",
            r"임플란트\s*(?:한\s*번|1회)\s*(?:로|에)\s*평생",
        ),
        severity=PatternSeverity.CRITICAL, legal_basis=_EFFECT,
        suggestion="임플란트 수명과 관리 필요성을 정확히 안내하세요",
    ),
    DepartmentRule(
        id="DENT-002", department=Department.DENTAL,
        name="무통 치료 단정",
        description="치과 치료가 무통이라고 단정",
        patterns=(
            r"(?:무통|통증\s*없는|아프지\s*않은)\s*(?:치료|시술|발치|임플란트)",
            r"(?:전혀|절대)\s*(?:안\s*아프|무통)",
            r"통증\s*(?:제로|0|zero)",
        ),
        severity=PatternSeverity.MAJOR, legal_basis="의료법 제56조 제2항 제2호",
        suggestion="통증을 줄이기 위한 노력을 설명하세요",
        exceptions=(r"통증을\s*최소화",),
    ),
    DepartmentRule(
        id="DENT-003", department=Department.DENTAL,
        name="교정 기간 과소 표현",
        description="치아 교정 기간을 짧게 표현",
        patterns=(
            r"\d+\s*(?:개월|일)\s*(?:만에|에)\s*완료",
            r"빠른\s*교정|급속\s*교정",
            r"(?:초|슈퍼)\s*스피드\s*교정",
        ),
        severity=PatternSeverity.MINOR, legal_basis=_EFFECT,
        suggestion="예상 교정 기간의 범위를 안내하세요",
        exceptions=(_INDIVIDUAL,),
    ),

    # --- 한의원 ---
    DepartmentRule(
        id="ORNT-001", department=Department.ORIENTAL_MEDICINE,
        name="한약 효과 보장",
        description="한약의 효과를 단정적으로 표현",
        patterns=(
            r"한약\s*(?:만으로|으로)\s*(?:완치|완전\s*치료)",
            r"(?:체질\s*개선|면역력)\s*(?:확실|100\s*%)",
            r"한방\s*(?:으로\s*)?(?:완치|근본\s*치료)",
        ),
        severity=PatternSeverity.CRITICAL, legal_basis=_EFFECT,
        suggestion="한방 치료의 효과 가능성으로 표현하세요",
    ),
    DepartmentRule(
        id="ORNT-002", department=Department.ORIENTAL_MEDICINE,
        name="다이어트 한약 효과 과장",
        description="다이어트 한약의 효과를 과장",
        patterns=(
            r"\d+\s*(?:kg|킬로)\s*(?:감량\s*)?(?:보장|확실)",
            r"(?:살\s*빠지는|체중\s*감량)\s*한약",
            r"(?:요요|부작용)\s*없는?\s*(?:다이어트|한약)",
        ),
        severity=PatternSeverity.CRITICAL, legal_basis=_EFFECT,
        suggestion="체중 관리 지원 한약으로 표현하고 개인차를 명시하세요",
    ),
    DepartmentRule(
        id="ORNT-003", department=Department.ORIENTAL_MEDICINE,
        name="침·추나 효과 과장",
        description="침·추나 치료 효과를 과장",
        patterns=(
            r"침\s*(?:한\s*번|1회)\s*(?:로|에)\s*(?:완치|해결)",
            r"추나\s*(?:만으로|로)\s*(?:완치|완전\s*교정)",
            r"(?:디스크|척추)\s*(?:완치|완전\s*치료)",
        ),
        severity=PatternSeverity.MAJOR, legal_basis=_EFFECT,
        suggestion="증상 개선·관리로 표현하세요",
    ),

    # --- 정신건강의학과 ---
    DepartmentRule(
        id="PSYC-001", department=Department.PSYCHIATRY,
        name="정신질환 완치 보장",
        description="정신질환 완치를 보장",
        patterns=(
            r"(?:우울증|불안|공황)\s*(?:완치|완전\s*치료)",
            r"(?:정신|심리)\s*질환\s*(?:완치|근본\s*치료)",
            r"(?:재발\s*없|다시는)\s*(?:안|없)",
        ),
        severity=PatternSeverity.CRITICAL, legal_basis=_EFFECT,
        suggestion="증상 관리와 치료 지원으로 표현하세요",
    ),
    DepartmentRule(
        id="PSYC-002", department=Department.PSYCHIATRY,
        name="약물 부작용 부정",
        description="정신과 약물의 부작용이 없다고 표현",
        patterns=(
            r"(?:약물|정신과\s*약)\s*부작용\s*(?:없|제로|0)",
            r"(?:안전한?|무해한?)\s*(?:약물|정신과\s*약)",
            r"(?:중독|의존)\s*(?:없|걱정\s*없)",
        ),
        severity=PatternSeverity.CRITICAL, legal_basis=_SIDE_EFFECT,
        suggestion="약물 부작용 가능성과 관리 방법을 안내하세요",
    ),

    # --- 안과 ---
    DepartmentRule(
        id="OPHT-001", department=Department.OPHTHALMOLOGY,
        name="시력 보장 표현",
        description="라식·라섹 후 특정 시력을 보장",
        patterns=(
            r"(?:1\.0|2\.0)\s*(?:이상|보장|확보)",
            r"(?:완벽|100\s*%)\s*시력\s*(?:회복|교정)",
            r"(?:평생|영구)\s*시력\s*유지",
        ),
        severity=PatternSeverity.CRITICAL, legal_basis=_EFFECT,
        suggestion="시력 교정 목표와 개인차를 함께 안내하세요",
    ),
    DepartmentRule(
        id="OPHT-002", department=Department.OPHTHALMOLOGY,
        name="수술 부작용 부정",
        description="눈 수술 부작용이 없다고 표현",
        patterns=(
            r"(?:라식|라섹|렌즈삽입)\s*부작용\s*(?:없|제로)",
            r"(?:안구\s*건조|야간\s*눈부심)\s*(?:없|걱정\s*없)",
            r"(?:100\s*%|완벽)\s*안전\s*(?:수술|시술)",
        ),
        severity=PatternSeverity.CRITICAL, legal_basis=_SIDE_EFFECT,
        suggestion="수술 부작용 가능성과 관리 방법을 안내하세요",
    ),

    # --- 정형외과 ---
    DepartmentRule(
        id="ORTH-001", department=Department.ORTHOPEDICS,
        name="관절·척추 완치 보장",
        description="관절·척추 질환 완치를 보장",
        patterns=(
            r"(?:디스크|척추|관절)\s*(?:완치|완전\s*치료)",
            r"(?:수술\s*없이|비수술)\s*(?:로\s*)?완치",
            r"(?:재발\s*없|평생)\s*(?:건강한?|튼튼한?)\s*(?:관절|척추)",
        ),
        severity=PatternSeverity.CRITICAL, legal_basis=_EFFECT,
        suggestion="증상 관리와 기능 개선으로 표현하세요",
    ),
    DepartmentRule(
        id="ORTH-002", department=Department.ORTHOPEDICS,
        name="도수치료 효과 과장",
        description="도수치료 효과를 과장",
        patterns=(
            r"도수\s*(?:치료\s*)?(?:한\s*번|1회)\s*(?:로|에)\s*(?:완치|해결)",
            r"(?:즉각적|당일)\s*(?:효과|통증\s*해소)",
            r"(?:수술\s*대신|수술\s*없이)\s*(?:완치|완전\s*치료)",
        ),
        severity=PatternSeverity.MAJOR, legal_basis=_EFFECT,
        suggestion="도수치료의 효과와 필요 횟수를 정확히 안내하세요",
    ),

    # --- 내과 / 일반 ---
    DepartmentRule(
        id="INTL-001", department=Department.INTERNAL_MEDICINE,
        name="만성질환 완치 보장",
        description="당뇨·고혈압 같은 만성질환 완치를 보장",
        patterns=(
            r"(?:당뇨|고혈압|고지혈증)\s*(?:완치|완전\s*치료)",
            r"(?:약\s*없이|약\s*끊고)\s*(?:완치|건강)",
            r"(?:만성\s*질환|성인병)\s*(?:완치|근본\s*치료)",
        ),
        severity=PatternSeverity.CRITICAL, legal_basis=_EFFECT,
        suggestion="질환 관리와 조절로 표현하세요",
    ),
    DepartmentRule(
        id="GENL-001", department=Department.GENERAL,
        name="검진 결과 보장",
        description="건강검진으로 특정 결과를 보장",
        patterns=(
            r"(?:100\s*%|모든)\s*(?:질환|암|질병)\s*(?:발견|진단)",
            r"(?:완벽|완전)\s*(?:건강\s*)?검진",
            r"(?:놓치는|빠지는)\s*(?:것\s*)?없는?\s*검진",
        ),
        severity=PatternSeverity.MAJOR, legal_basis=_EFFECT,
        suggestion="검진의 한계와 정기 검진의 중요성을 함께 안내하세요",
    ),
)


# ============================================================
# ENGINE
# ============================================================

class DepartmentRuleEngine:
    """Specialty detection plus specialty-scoped rule evaluation."""

    def __init__(
        self,
        rules: Iterable[DepartmentRule] = DEPARTMENT_RULES,
        signatures: Iterable[DepartmentSignature] = DEPARTMENT_SIGNATURES,
    ):
        self.rules: tuple[DepartmentRule, ...] = tuple(rules)
        self.signatures: tuple[DepartmentSignature, ...] = tuple(signatures)

    def detect(self, text: str) -> DepartmentDetection:
        """Highest-scoring specialty; the first listed wins ties."""
        best = Department.GENERAL
        best_score = 0
        best_evidence: list[str] = []

        if isinstance(text, str) and text.strip():
            for signature in self.signatures:
                score, evidence = signature.score(text)
                if score > best_score:
                    best, best_score, best_evidence = signature.department, score, evidence

        return DepartmentDetection(
            department=best,
            confidence=round(min(0.95, best_score * 0.1), 2),
            evidence=best_evidence,
        )

    def check_with_department(self, text: str, department: Department) -> list[DepartmentViolation]:
        """Apply only ``department``'s rules."""
        if not isinstance(text, str) or not text.strip():
            return []
        return [
            v for v in (r.evaluate(text) for r in self.get_rules(department))
            if v is not None
        ]

    def analyze(self, text: str, department: Optional[Department] = None) -> DepartmentAnalysis:
        """
        Detect (or accept a pinned) specialty and apply its rules.

        General rules are added whenever a specific specialty applies.
        A pinned department is reported with confidence 1.0.
        """
        if department is not None:
            detection = DepartmentDetection(department, 1.0, [], pinned=True)
        else:
            detection = self.detect(text)

        violations = self.check_with_department(text, detection.department)
        if detection.department is not Department.GENERAL:
            violations.extend(self.check_with_department(text, Department.GENERAL))
        return DepartmentAnalysis(detection=detection, violations=violations)

    def check_all(self, text: str) -> list[DepartmentViolation]:
        return [v for v in (r.evaluate(text) for r in self.rules) if v is not None]

    def get_rules(self, department: Optional[Department] = None) -> list[DepartmentRule]:
        if department is None:
            return list(self.rules)
        return [r for r in self.rules if r.department is department]

    @staticmethod
    def department_name(department: Department) -> str:
        return department.korean_name
