"""
Compound Detector — Rules Built from Combinations of Conditions

Some advertising copy is only a violation in combination: a discount
on its own is ordinary, a guarantee on its own is caught elsewhere,
but "50% 할인 + 100% 효과" is the classic patient-inducement pattern.

Operators:
  - AND:       every required, non-exclusion condition must match
  - OR:        at least ``min_conditions_met`` conditions must match
  - AND_NOT:   the required conditions match and no exclusion does
  - SEQUENCE:  conditions match in text order, each within
               ``max_distance`` characters of the previous match
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from medcheck.dictionary import compile_rule_pattern
from medcheck.matcher import PatternMatch
from medcheck.taxonomy import LogicOperator, PatternSeverity


CONTEXT_RADIUS = 50


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class Condition:
    id: str
    description: str
    patterns: tuple[str, ...]
    required: bool = True
    exclusion: bool = False
    # SEQUENCE only: max gap in characters from the previous match's end
    max_distance: Optional[int] = None


@dataclass(frozen=True)
class ConditionHit:
    condition_id: str
    text: str
    start: int
    end: int


@dataclass
class CompoundViolation:
    """A fired compound rule."""
    rule_id: str
    rule_name: str
    category: str
    matched_conditions: list[str]
    unmatched_conditions: list[str]
    matched_text: str
    context: str
    position: int
    end_position: int
    severity: PatternSeverity
    legal_basis: str
    description: str
    suggestion: str
    confidence: float
    related_pattern_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CompoundRule:
    """
    A compound rule. Condition regexes are compiled on construction;
    a malformed condition pattern is dropped with a warning.
    """
    id: str
    name: str
    description: str
    category: str
    operator: LogicOperator
    conditions: tuple[Condition, ...]
    severity: PatternSeverity
    legal_basis: str
    suggestion: str
    min_conditions_met: int = 1
    _compiled: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        compiled = {}
        for condition in self.conditions:
            compiled[condition.id] = tuple(
                r for r in (
                    compile_rule_pattern(f"{self.id}/{condition.id}", p)
                    for p in condition.patterns
                )
                if r is not None
            )
        object.__setattr__(self, "_compiled", compiled)

    def find(self, condition: Condition, text: str, offset: int = 0) -> Optional[ConditionHit]:
        """First hit of ``condition`` in ``text[offset:]``, in pattern order."""
        for regex in self._compiled.get(condition.id, ()):
            m = regex.search(text, offset)
            if m and m.group(0).strip():
                return ConditionHit(condition.id, m.group(0).strip(), m.start(), m.end())
        return None

    def evaluate(self, text: str) -> Optional[CompoundViolation]:
        """Return the violation if this rule fires on ``text``."""
        if not text:
            return None
        if self.operator is LogicOperator.AND:
            hits = self._evaluate_and(text)
        elif self.operator is LogicOperator.OR:
            hits = self._evaluate_or(text)
        elif self.operator is LogicOperator.AND_NOT:
            hits = self._evaluate_and_not(text)
        elif self.operator is LogicOperator.SEQUENCE:
            hits = self._evaluate_sequence(text)
        else:
            raise ValueError(f"Unknown operator {self.operator!r} in {self.id}")

        if not hits:
            return None
        return self._build_violation(text, hits)

    @property
    def positive_conditions(self) -> list[Condition]:
        return [c for c in self.conditions if not c.exclusion]

    # --- operators ---

    def _evaluate_and(self, text: str) -> list[ConditionHit]:
        hits = []
        for condition in self.positive_conditions:
            hit = self.find(condition, text)
            if hit:
                hits.append(hit)
            elif condition.required:
                return []
        return hits

    def _evaluate_or(self, text: str) -> list[ConditionHit]:
        hits = [
            hit for hit in (self.find(c, text) for c in self.positive_conditions)
            if hit is not None
        ]
        return hits if len(hits) >= max(1, self.min_conditions_met) else []

    def _evaluate_and_not(self, text: str) -> list[ConditionHit]:
        hits = []
        required_met = False
        for condition in self.conditions:
            hit = self.find(condition, text)
            if condition.exclusion:
                if hit:
                    return []
                continue
            if hit:
                hits.append(hit)
                required_met = required_met or condition.required
            elif condition.required:
                return []
        # Optional hits alone never fire the rule.
        return hits if required_met else []

    def _evaluate_sequence(self, text: str) -> list[ConditionHit]:
        hits: list[ConditionHit] = []
        cursor = 0
        for condition in self.positive_conditions:
            hit = self.find(condition, text, cursor)
            if hit is None:
                if condition.required:
                    return []
                continue
            if hits and condition.max_distance is not None:
                if hit.start - hits[-1].end > condition.max_distance:
                    return []
            hits.append(hit)
            cursor = hit.end
        return hits

    # --- assembly ---

    def _build_violation(self, text: str, hits: list[ConditionHit]) -> CompoundViolation:
        matched_ids = [h.condition_id for h in hits]
        start = min(h.start for h in hits)
        end = max(h.end for h in hits)

        ratio = len(hits) / max(1, len(self.positive_conditions))
        confidence = round(min(0.95, 0.7 + self.severity.confidence_bonus + ratio * 0.1), 2)

        return CompoundViolation(
            rule_id=self.id,
            rule_name=self.name,
            category=self.category,
            matched_conditions=matched_ids,
            unmatched_conditions=[
                c.id for c in self.positive_conditions if c.id not in matched_ids
            ],
            matched_text=" + ".join(h.text for h in hits),
            context=extract_context(text, start, end),
            position=start,
            end_position=end,
            severity=self.severity,
            legal_basis=self.legal_basis,
            description=self.description,
            suggestion=self.suggestion,
            confidence=confidence,
        )


def extract_context(text: str, start: int, end: int, radius: int = CONTEXT_RADIUS) -> str:
    """±radius characters around [start, end), with ellipses where cut."""
    lo = max(0, start - radius)
    hi = min(len(text), end + radius)
    prefix = "..." if lo > 0 else ""
    suffix = "..." if hi < len(text) else ""
    return f"{prefix}{text[lo:hi].strip()}{suffix}"


# ============================================================
# RULE TABLE
# ============================================================

COMPOUND_RULES: tuple[CompoundRule, ...] = (
    CompoundRule(
        id="CPD-001",
        name="가격 유인 + 효과 보장",
        description="저가·할인을 강조하면서 효과를 보장하는 표현",
        category="복합 위반 - 환자 유인",
        operator=LogicOperator.AND,
        conditions=(
            Condition(
                id="price",
                description="가격 유인 요소",
                patterns=(
                    r"(?:\d+\s*%?\s*)?(?:할인|세일|특가|이벤트)",
                    r"(?:저렴|싼|최저|파격|부담\s*없)",
                    r"(?:무료|0원|공짜)\s*(?:상담|체험|시술)",
                ),
            ),
            Condition(
                id="guarantee",
                description="효과 보장 표현",
                patterns=(
                    r"(?:100\s*%|완벽|확실)\s*(?:효과|완치|치료)",
                    r"(?:보장|약속)\s*(?:합니다|드립니다)",
                    r"(?:틀림없|분명)\s*(?:효과|결과)",
                ),
            ),
        ),
        severity=PatternSeverity.CRITICAL,
        legal_basis="의료법 제56조 제2항 제3호, 의료법 제27조 제3항",
        suggestion="가격 정보와 치료 효과를 분리하고 효과 보장 표현을 제거하세요",
    ),
    CompoundRule(
        id="CPD-002",
        name="전후 사진 + 결과 보장",
        description="전후 사진과 함께 특정 결과를 암시하는 표현",
        category="복합 위반 - 전후 사진",
        operator=LogicOperator.AND,
        conditions=(
            Condition(
                id="before_after",
                description="전후 사진 언급",
                patterns=(
                    r"(?:전|후)\s*(?:사진|이미지|비교)",
                    r"(?:before|after)\s*(?:photo|image)?",
                    r"(?:시술|수술|치료)\s*(?:전|후)",
                ),
            ),
            Condition(
                id="result_guarantee",
                description="결과 보장 표현",
                patterns=(
                    r"(?:이렇게|이처럼)\s*(?:변합니다|됩니다|바뀝니다)",
                    r"(?:같은|동일한)\s*결과",
                    r"(?:달라진|변화된)\s*(?:모습|결과)",
                ),
            ),
        ),
        severity=PatternSeverity.CRITICAL,
        legal_basis="의료법 제56조 제2항 제2호",
        suggestion='전후 사진에는 "개인차가 있을 수 있습니다" 등 면책 문구를 명시하세요',
    ),
    CompoundRule(
        id="CPD-003",
        name="최상급 표현 + 비교 광고",
        description="최상급 표현과 함께 다른 의료기관과 비교하는 표현",
        category="복합 위반 - 비교 광고",
        operator=LogicOperator.AND,
        conditions=(
            Condition(
                id="superlative",
                description="최상급 표현",
                patterns=(
                    r"(?:최고|최초|최신|최상|유일|독보적)",
                    r"(?:가장|제일)\s*(?:좋|뛰어|우수)",
                    r"(?:No\.?\s*1|넘버원|1위|1등)",
                ),
            ),
            Condition(
                id="comparison",
                description="비교 표현",
                patterns=(
                    r"(?:다른|타)\s*(?:병원|의원|클리닉)",
                    r"(?:보다|에\s*비해)\s*(?:뛰어|우수|좋)",
                    r"(?:대비|비교)\s*(?:우수|탁월)",
                ),
            ),
        ),
        severity=PatternSeverity.CRITICAL,
        legal_basis="의료법 제56조 제2항 제4호, 제8호",
        suggestion="최상급 표현과 비교 표현을 모두 제거하세요",
    ),
    CompoundRule(
        id="CPD-004",
        name="부작용 부정 + 안전성 강조",
        description="부작용이 없다고 단정하면서 안전성을 강조하는 표현",
        category="복합 위반 - 허위·과장",
        operator=LogicOperator.AND,
        conditions=(
            Condition(
                id="no_side_effect",
                description="부작용 부정",
                patterns=(
                    r"부작용\s*(?:이|가)?\s*(?:없|제로|0)",
                    r"(?:전혀|절대)\s*(?:부작용|이상\s*반응)",
                    r"안전\s*(?:100\s*%|완벽)",
                ),
            ),
            Condition(
                id="safety_emphasis",
                description="안전성 강조",
                patterns=(
                    r"(?:안심|걱정\s*없|안전)\s*(?:하세요|됩니다|합니다)",
                    r"(?:무해|해\s*없)",
                    r"(?:검증된?|입증된?)\s*안전",
                ),
            ),
        ),
        severity=PatternSeverity.CRITICAL,
        legal_basis="의료법 제56조 제2항 제7호",
        suggestion="부작용 가능성을 명시하고 상담을 통한 확인을 권유하세요",
    ),
    CompoundRule(
        id="CPD-005",
        name="긴급성 유도 + 가격 할인",
        description="시간 제한을 강조하며 가격 할인으로 환자를 유인하는 표현",
        category="복합 위반 - 환자 유인",
        operator=LogicOperator.AND,
        conditions=(
            Condition(
                id="urgency",
                description="긴급성 표현",
                patterns=(
                    r"(?:오늘|지금|당장)\s*(?:만|까지|한정)",
                    r"(?:마감|종료)\s*(?:임박|직전)",
                    r"(?:선착순|한정|마지막)",
                ),
            ),
            Condition(
                id="discount",
                description="가격 할인",
                patterns=(
                    r"\d+\s*%\s*(?:할인|DC|세일)",
                    r"(?:반값|절반|파격\s*할인)",
                    r"(?:특가|이벤트\s*가격?)",
                ),
            ),
        ),
        severity=PatternSeverity.MAJOR,
        legal_basis="의료법 제27조 제3항",
        suggestion="시간 제한 없는 정상 가격 정보만 표시하세요",
    ),
    CompoundRule(
        id="CPD-006",
        name="전문의 자격 + 과장된 경력",
        description="전문의 자격과 함께 검증하기 어려운 경력을 과장하는 표현",
        category="복합 위반 - 허위·과장",
        operator=LogicOperator.AND,
        conditions=(
            Condition(
                id="specialist",
                description="전문의 언급",
                patterns=(r"[가-힣]+\s*전문의", r"(?:전문|숙련)\s*의료진"),
            ),
            Condition(
                id="exaggerated_career",
                description="과장된 경력",
                patterns=(
                    r"\d+\s*(?:만|천)\s*(?:건|케이스|례)",
                    r"(?:수많은|수천|수만)\s*(?:경험|시술|수술)",
                    r"(?:국내\s*최다|업계\s*최고)\s*(?:경험|경력)",
                ),
            ),
        ),
        severity=PatternSeverity.MAJOR,
        legal_basis="의료법 제56조 제2항 제8호",
        suggestion="검증 가능한 객관적 경력 정보만 표시하세요",
    ),
    CompoundRule(
        id="CPD-007",
        name="특정 질환 + 완치 보장",
        description="특정 질환을 언급하며 완치를 보장하는 표현",
        category="복합 위반 - 효과 보장",
        operator=LogicOperator.AND,
        conditions=(
            Condition(
                id="disease",
                description="질환 언급",
                patterns=(
                    r"(?:암|당뇨|고혈압|치매|관절염)",
                    r"(?:아토피|탈모|비만|우울증)",
                    r"(?:디스크|척추\s*질환|만성\s*통증)",
                ),
            ),
            Condition(
                id="cure_guarantee",
                description="완치 보장",
                patterns=(
                    r"(?:완치|완전\s*치료|근본\s*치료)",
                    r"(?:뿌리\s*뽑|완전\s*제거|근절)",
                    r"(?:다시는|재발\s*없)",
                ),
            ),
        ),
        severity=PatternSeverity.CRITICAL,
        legal_basis="의료법 제56조 제2항 제3호",
        suggestion="완치 보장 표현을 제거하고 치료 가능성으로 표현하세요",
    ),
    CompoundRule(
        id="CPD-008",
        name="효과 주장 - 면책 문구 없음",
        description="효과를 주장하면서 개인차·부작용 고지가 없는 경우",
        category="복합 위반 - 면책 누락",
        operator=LogicOperator.AND_NOT,
        conditions=(
            Condition(
                id="effect_claim",
                description="효과 주장",
                patterns=(
                    r"(?:효과|결과)\s*(?:가|를)\s*(?:보|느끼)",
                    r"(?:개선|완화|호전)\s*(?:됩니다|됐습니다|되었습니다)",
                    r"(?:만족|성공)\s*(?:률|율)\s*(?:\d+)?\s*%",
                ),
            ),
            Condition(
                id="disclaimer",
                description="면책 문구",
                patterns=(
                    r"개인\s*(?:에\s*따라|마다|차이|차)",
                    r"(?:결과|효과)\s*(?:가|는)\s*다를\s*수",
                    r"(?:부작용|이상\s*반응)\s*(?:이|가)\s*(?:있을|발생)",
                ),
                required=False,
                exclusion=True,
            ),
        ),
        severity=PatternSeverity.MINOR,
        legal_basis="의료법 시행령 제23조",
        suggestion='"개인에 따라 결과가 다를 수 있습니다" 등 면책 문구를 추가하세요',
    ),
    CompoundRule(
        id="CPD-009",
        name="문제 제기 → 해결책 제시",
        description="불안을 제기한 직후 자사 시술을 해결책으로 제시하는 표현",
        category="복합 위반 - 불안 조장",
        operator=LogicOperator.SEQUENCE,
        conditions=(
            Condition(
                id="problem",
                description="문제·불안 제기",
                patterns=(
                    r"(?:고민|걱정|스트레스)\s*(?:이신가요|되시나요|있으신가요)",
                    r"(?:힘드|어렵|불편)\s*(?:시죠|으시죠|지\s*않으세요)",
                    r"(?:때문에|로\s*인해)\s*(?:고민|힘들)",
                ),
            ),
            Condition(
                id="solution",
                description="자사 해결책 제시",
                patterns=(
                    r"(?:저희|당원|본원)\s*(?:에서|병원|클리닉)",
                    r"(?:해결|치료|시술)\s*(?:해\s*드립니다|가능합니다)",
                    r"(?:지금|바로)\s*(?:상담|예약)",
                ),
                max_distance=200,
            ),
        ),
        severity=PatternSeverity.MINOR,
        legal_basis="의료법 제56조 제2항",
        suggestion="불안을 조장하지 말고 객관적인 정보를 제공하세요",
    ),
    CompoundRule(
        id="CPD-010",
        name="다중 판촉 신호",
        description="최상급·긴급성·무료 제공·후기 중 두 가지 이상을 함께 쓰는 판촉 문구",
        category="복합 위반 - 환자 유인",
        operator=LogicOperator.OR,
        conditions=(
            Condition(id="superlative", description="최상급 표현", patterns=(r"최고|유일|No\.?\s*1",)),
            Condition(id="urgency", description="긴급성 표현", patterns=(r"선착순|마감\s*임박|오늘\s*만",)),
            Condition(id="free_offer", description="무료 제공", patterns=(r"(?:무료|공짜)\s*(?:시술|체험|제공)",)),
            Condition(id="testimonial", description="후기 활용", patterns=(r"(?:실제|생생한)\s*후기|체험기",)),
        ),
        severity=PatternSeverity.MINOR,
        legal_basis="의료법 제27조 제3항",
        suggestion="판촉 문구를 줄이고 진료 정보 중심으로 구성하세요",
        min_conditions_met=2,
    ),
)


# ============================================================
# DETECTOR
# ============================================================

class CompoundDetector:
    """Evaluates an injected, immutable tuple of compound rules."""

    def __init__(self, rules: Iterable[CompoundRule] = COMPOUND_RULES):
        self.rules: tuple[CompoundRule, ...] = tuple(rules)
        self._by_id = {r.id: r for r in self.rules}

    def detect(self, text: str) -> list[CompoundViolation]:
        if not isinstance(text, str) or not text.strip():
            return []
        violations = []
        for rule in self.rules:
            violation = rule.evaluate(text)
            if violation is not None:
                violations.append(violation)
        return violations

    def detect_with_rule(self, text: str, rule_id: str) -> Optional[CompoundViolation]:
        rule = self._by_id.get(rule_id)
        if rule is None:
            return None
        return rule.evaluate(text)

    def detect_by_category(self, text: str, category: str) -> list[CompoundViolation]:
        """Rules whose category label contains ``category`` (e.g. "환자 유인")."""
        return [
            v for v in (r.evaluate(text) for r in self.rules if category in r.category)
            if v is not None
        ]

    @staticmethod
    def combine_with_pattern_matches(
        violations: list[CompoundViolation],
        pattern_matches: list[PatternMatch],
    ) -> list[CompoundViolation]:
        """Annotate each violation with the atomic matches whose span overlaps it."""
        combined = []
        for v in violations:
            related = [
                m.pattern_id for m in pattern_matches
                if m.position < v.end_position and m.end_position > v.position
            ]
            combined.append(replace(v, related_pattern_ids=related))
        return combined
