"""
Detector — Pipeline Orchestrator

One pass per request:

  section type → PatternMatcher → RuleEngine
               → CompoundDetector ┐
               → DepartmentRules  ├ independent, optional
               → MandatoryChecker ┘
               → ImpressionAnalyzer (consumes everything)

Every stage is a pure function of (text, immutable tables, options).
``analyze`` runs the optional stages in order; ``analyze_async`` runs
the three independent ones concurrently and joins before impression.
"""

from __future__ import annotations

import asyncio
import logging
import re
import secrets
import time
from dataclasses import asdict, dataclass
from typing import Iterator, Optional

from medcheck.compound import COMPOUND_RULES, CompoundDetector, CompoundViolation
from medcheck.config import settings
from medcheck.departments import (
    DEPARTMENT_RULES,
    DEPARTMENT_SIGNATURES,
    DepartmentAnalysis,
    DepartmentDetection,
    DepartmentRuleEngine,
    DepartmentViolation,
)
from medcheck.dictionary import PatternDictionary
from medcheck.impression import ImpressionAnalysis, ImpressionAnalyzer
from medcheck.mandatory import MANDATORY_ITEMS, MandatoryCheckResult, MandatoryChecker
from medcheck.matcher import MatchOptions, PatternMatch, PatternMatcher
from medcheck.rule_engine import RuleEngine, RuleJudgment, ScoreResult
from medcheck.taxonomy import (
    Department,
    Grade,
    PatternCategory,
    PatternSeverity,
    Rule,
    SectionType,
)

logger = logging.getLogger(__name__)


# ============================================================
# REQUEST / RESPONSE
# ============================================================

@dataclass
class DetectionRequest:
    text: Optional[str]
    url: Optional[str] = None
    options: Optional[MatchOptions] = None
    enable_extended: bool = True
    enable_compound: bool = True
    enable_department: bool = True
    enable_mandatory: bool = True
    enable_impression: bool = True
    # Pinned specialty; auto-detected when None
    department: Optional[Department] = None


@dataclass
class DetectionResponse:
    id: str
    input_length: int
    no_input: bool
    section_type: SectionType
    matches: list[PatternMatch]
    judgment: RuleJudgment
    processing_time_ms: int = 0
    compound_violations: Optional[list[CompoundViolation]] = None
    department_detection: Optional[DepartmentDetection] = None
    department_violations: Optional[list[DepartmentViolation]] = None
    mandatory_check: Optional[MandatoryCheckResult] = None
    impression: Optional[ImpressionAnalysis] = None
    overall_risk_score: Optional[int] = None
    overall_compliance_score: Optional[int] = None

    @property
    def score(self) -> ScoreResult:
        return self.judgment.score

    @property
    def violations(self):
        return self.judgment.violations

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class _OptionalStages:
    compound: Optional[list[CompoundViolation]] = None
    department: Optional[DepartmentAnalysis] = None
    mandatory: Optional[MandatoryCheckResult] = None


# ============================================================
# SECTION DETECTION
# ============================================================

_URL_SECTIONS: tuple[tuple[re.Pattern, SectionType], ...] = (
    (re.compile(r"event|이벤트|할인|프로모션|discount|sale", re.I), SectionType.EVENT),
    (re.compile(r"treatment|시술|surgery|수술|procedure", re.I), SectionType.TREATMENT),
    (re.compile(r"faq|자주\s*묻는|qna|qa", re.I), SectionType.FAQ),
    (re.compile(r"review|후기|전후|before.?after", re.I), SectionType.REVIEW),
    (re.compile(r"doctor|의료진|원장|staff|team", re.I), SectionType.DOCTOR),
)


def detect_section(url: Optional[str] = None) -> SectionType:
    """
    Section from the page URL. Falls back to DEFAULT.

    Only the URL is consulted. Section words in the copy (후기, 할인, 전후)
    are themselves violation triggers and must not lower the section weight.
    """
    if url:
        for regex, section in _URL_SECTIONS:
            if regex.search(url):
                return section
    return SectionType.DEFAULT


def generate_analysis_id() -> str:
    """vd_<epoch ms in hex>_<6 hex chars>."""
    return f"vd_{int(time.time() * 1000):x}_{secrets.token_hex(3)}"


# ============================================================
# ORCHESTRATOR
# ============================================================

class ViolationDetector:
    """
    Owns one instance of each stage. The stages share the same
    immutable PatternDictionary; the detector itself holds no
    per-request state, so one instance serves concurrent callers.
    """

    def __init__(
        self,
        matcher: PatternMatcher,
        engine: RuleEngine,
        compound: CompoundDetector,
        departments: DepartmentRuleEngine,
        mandatory: MandatoryChecker,
        impression: ImpressionAnalyzer,
    ):
        self.matcher = matcher
        self.engine = engine
        self.compound = compound
        self.departments = departments
        self.mandatory = mandatory
        self.impression = impression

    # --- main entry points ---

    def analyze(self, request: DetectionRequest | str) -> DetectionResponse:
        request = _as_request(request)
        started = time.perf_counter()

        response = self._core(request)
        if response.no_input:
            return self._finish(response, started)

        stages = _OptionalStages()
        if self._stage_on(request, request.enable_compound):
            stages.compound = self.compound.detect(request.text)
        if self._stage_on(request, request.enable_department):
            stages.department = self.departments.analyze(request.text, request.department)
        if self._stage_on(request, request.enable_mandatory):
            stages.mandatory = self.mandatory.check(request.text)

        self._apply_stages(request, response, stages)
        return self._finish(response, started)

    async def analyze_async(self, request: DetectionRequest | str) -> DetectionResponse:
        """
        Same result as ``analyze``. The independent stages run on worker
        threads and are joined before the impression stage.
        """
        request = _as_request(request)
        started = time.perf_counter()

        response = await asyncio.to_thread(self._core, request)
        if response.no_input:
            return self._finish(response, started)

        text = request.text
        jobs = {}
        if self._stage_on(request, request.enable_compound):
            jobs["compound"] = lambda: self.compound.detect(text)
        if self._stage_on(request, request.enable_department):
            jobs["department"] = lambda: self.departments.analyze(text, request.department)
        if self._stage_on(request, request.enable_mandatory):
            jobs["mandatory"] = lambda: self.mandatory.check(text)

        if settings.PARALLEL_STAGES:
            results = await asyncio.gather(*(asyncio.to_thread(job) for job in jobs.values()))
        else:
            results = [job() for job in jobs.values()]

        stages = _OptionalStages(**dict(zip(jobs.keys(), results)))
        await asyncio.to_thread(self._apply_stages, request, response, stages)
        return self._finish(response, started)

    # --- pipeline pieces ---

    def _core(self, request: DetectionRequest) -> DetectionResponse:
        text = request.text
        no_input = not isinstance(text, str) or not text.strip()
        section = detect_section(request.url)

        matches = [] if no_input else self.matcher.match(text, request.options)
        judgment = self.engine.judge(matches, section)

        return DetectionResponse(
            id=generate_analysis_id(),
            input_length=len(text) if isinstance(text, str) else 0,
            no_input=no_input,
            section_type=section,
            matches=matches,
            judgment=judgment,
        )

    @staticmethod
    def _stage_on(request: DetectionRequest, flag: bool) -> bool:
        return request.enable_extended and flag

    def _apply_stages(
        self,
        request: DetectionRequest,
        response: DetectionResponse,
        stages: _OptionalStages,
    ) -> None:
        if stages.compound is not None:
            response.compound_violations = self.compound.combine_with_pattern_matches(
                stages.compound, response.matches,
            )
        if stages.department is not None:
            response.department_detection = stages.department.detection
            response.department_violations = stages.department.violations
        response.mandatory_check = stages.mandatory

        if self._stage_on(request, request.enable_impression):
            impression = self.impression.analyze(
                request.text,
                pattern_matches=response.matches,
                compound_violations=response.compound_violations,
                department_violations=response.department_violations,
                mandatory_check=response.mandatory_check,
            )
            response.impression = impression
            response.overall_risk_score = impression.risk_score
            response.overall_compliance_score = impression.compliance_score

    @staticmethod
    def _finish(response: DetectionResponse, started: float) -> DetectionResponse:
        response.processing_time_ms = int((time.perf_counter() - started) * 1000)
        score = response.judgment.score
        logger.info(
            "Analysis complete",
            extra={
                "analysis_id": response.id,
                "grade": score.grade.value,
                "clean_score": score.clean_score,
                "violation_count": len(response.judgment.violations),
                "match_count": len(response.matches),
                "section_type": response.section_type.value,
                "department": (
                    response.department_detection.department.value
                    if response.department_detection else None
                ),
                "risk_level": response.impression.risk_level.value if response.impression else None,
                "duration_ms": response.processing_time_ms,
            },
        )
        return response

    # --- polymorphic rule view ---

    def rules(self) -> list[Rule]:
        """Every rule of every kind, as one list."""
        return [
            *self.matcher.dictionary.patterns,
            *self.compound.rules,
            *self.departments.rules,
            *self.mandatory.items,
        ]

    def iter_findings(self, text: str) -> Iterator[tuple[str, object]]:
        """
        (rule id, finding) for every rule that fires on ``text``.

        Raw view: no context exceptions, dedup or department scoping.
        """
        if not isinstance(text, str) or not text.strip():
            return
        for rule in self.rules():
            finding = rule.evaluate(text)
            if finding is not None:
                yield rule.id, finding

    # --- convenience ---

    def quick_score(self, text: str) -> ScoreResult:
        return self.engine.judge(self.matcher.match(text)).score

    def get_grade(self, text: str) -> Grade:
        return self.quick_score(text).grade

    def has_violation(self, text: str) -> bool:
        return bool(self.matcher.match(text))

    def analyze_category(self, text: str, category: PatternCategory) -> DetectionResponse:
        return self.analyze(DetectionRequest(text=text, options=MatchOptions(categories=(category,))))

    def analyze_critical(self, text: str) -> DetectionResponse:
        return self.analyze(
            DetectionRequest(text=text, options=MatchOptions(min_severity=PatternSeverity.CRITICAL))
        )

    def analyze_with_department(self, text: str, department: Department) -> DetectionResponse:
        return self.analyze(DetectionRequest(text=text, department=department))

    def analyze_quick(self, text: str, options: Optional[MatchOptions] = None) -> DetectionResponse:
        """Matcher and rule engine only."""
        return self.analyze(DetectionRequest(text=text, options=options, enable_extended=False))

    def analyze_full(self, text: str) -> DetectionResponse:
        return self.analyze(DetectionRequest(text=text))

    def counts(self) -> dict[str, int]:
        return {
            "patterns": self.matcher.pattern_count,
            "compound_rules": len(self.compound.rules),
            "department_rules": len(self.departments.rules),
            "mandatory_items": len(self.mandatory.items),
        }


def _as_request(request: DetectionRequest | str) -> DetectionRequest:
    if isinstance(request, DetectionRequest):
        return request
    return DetectionRequest(text=request)


def build_detector(dictionary: Optional[PatternDictionary] = None) -> ViolationDetector:
    """Wire every stage from the built-in rule tables."""
    dictionary = dictionary or PatternDictionary()
    return ViolationDetector(
        matcher=PatternMatcher(dictionary),
        engine=RuleEngine(dictionary),
        compound=CompoundDetector(COMPOUND_RULES),
        departments=DepartmentRuleEngine(DEPARTMENT_RULES, DEPARTMENT_SIGNATURES),
        mandatory=MandatoryChecker(MANDATORY_ITEMS),
        impression=ImpressionAnalyzer(),
    )
