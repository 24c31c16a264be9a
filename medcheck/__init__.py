"""
MedCheck — Medical Advertisement Violation Detection Engine

Checks Korean medical advertising copy against 의료법 제56조 and
related guidance, then scores and grades it.

Public API:
  - PatternDictionary:    Compiled, immutable atomic rule tables
  - PatternMatcher:       Atomic regex detection with context exceptions
  - RuleEngine:           Severity normalization, clean score and grade
  - CompoundDetector:     Rules built from combinations of conditions
  - DepartmentRuleEngine: Specialty detection and specialty rule overlays
  - MandatoryChecker:     Required disclosure fields
  - ImpressionAnalyzer:   Tone, credibility and overall risk
  - ViolationDetector:    The orchestrator; build one with build_detector()

Usage:
    from medcheck import build_detector
    detector = build_detector()
    result = detector.analyze("이 시술은 100% 완치를 보장합니다")
    result.judgment.score.grade
"""

__version__ = "1.0.0"

from medcheck.dictionary import PatternDictionary, PatternDefinition, DICTIONARY_VERSION
from medcheck.matcher import PatternMatcher, PatternMatch, MatchOptions
from medcheck.rule_engine import RuleEngine, RuleJudgment, ScoreResult, ViolationResult
from medcheck.compound import CompoundDetector, CompoundRule, CompoundViolation
from medcheck.departments import DepartmentRuleEngine, DepartmentRule, DepartmentViolation
from medcheck.mandatory import MandatoryChecker, MandatoryCheckResult
from medcheck.impression import ImpressionAnalyzer, ImpressionAnalysis
from medcheck.detector import (
    ViolationDetector,
    DetectionRequest,
    DetectionResponse,
    build_detector,
    detect_section,
)

__all__ = [
    "PatternDictionary",
    "PatternDefinition",
    "DICTIONARY_VERSION",
    "PatternMatcher",
    "PatternMatch",
    "MatchOptions",
    "RuleEngine",
    "RuleJudgment",
    "ScoreResult",
    "ViolationResult",
    "CompoundDetector",
    "CompoundRule",
    "CompoundViolation",
    "DepartmentRuleEngine",
    "DepartmentRule",
    "DepartmentViolation",
    "MandatoryChecker",
    "MandatoryCheckResult",
    "ImpressionAnalyzer",
    "ImpressionAnalysis",
    "ViolationDetector",
    "DetectionRequest",
    "DetectionResponse",
    "build_detector",
    "detect_section",
]
