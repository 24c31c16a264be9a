"""
Pattern Matcher — Atomic Violation Detection

Scans text against the compiled PatternDictionary and returns one
PatternMatch per surviving hit, ordered by position.

Each regex hit passes through three filters before it counts:
  1. The pattern's own literal exceptions (a few characters around the hit)
  2. The negative list (bare device, drug and medical-term names)
  3. Context exceptions, tested in a fixed order

Disclaimers and legal notices never discard a hit. They set
``disclaimer_detected`` so the RuleEngine can soften the severity.
Hits in the 부작용부정 category skip the negation exceptions.

Survivors are scored for confidence and, by default, reduced to the
single most confident hit per (sentence, category).
"""

from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass
from typing import Optional

from medcheck.config import settings
from medcheck.dictionary import (
    EXCEPTION_WINDOW,
    QUOTE_PAIRS,
    CompiledPattern,
    PatternDefinition,
    PatternDictionary,
    RawHit,
)
from medcheck.taxonomy import ExceptionType, PatternCategory, PatternSeverity

logger = logging.getLogger(__name__)

LITERAL_EXCEPTION_WINDOW = 20

CONFIDENCE_BASE = 0.7
CONFIDENCE_FLOOR = 0.1
CONFIDENCE_CEILING = 0.95


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class MatchOptions:
    """Per-call knobs. Defaults come from settings."""
    categories: Optional[tuple[PatternCategory, ...]] = None
    min_severity: Optional[PatternSeverity] = None
    context_length: int = settings.CONTEXT_LENGTH
    max_matches: int = settings.MAX_MATCHES
    min_confidence: float = settings.MIN_CONFIDENCE
    filter_exceptions: bool = True
    dedupe_sentences: bool = True


@dataclass
class PatternMatch:
    """A single surviving atomic hit."""
    pattern_id: str
    category: PatternCategory
    subcategory: str
    matched_text: str
    position: int
    end_position: int
    context: str
    severity: PatternSeverity
    confidence: float
    sentence_id: int
    disclaimer_detected: bool
    legal_basis: str
    description: str
    suggestion: str = ""


# ============================================================
# SENTENCES
# ============================================================

# Periods between digits ("1.0") are not sentence breaks.
_SENTENCE_END = re.compile(r"(?:(?<!\d)\.(?!\d)|[!?。\n])+")


def split_sentences(text: str) -> list[tuple[int, int]]:
    """Return (start, end) spans of sentences, terminators included."""
    spans: list[tuple[int, int]] = []
    start = 0
    for m in _SENTENCE_END.finditer(text):
        if text[start:m.end()].strip():
            spans.append((start, m.end()))
        start = m.end()
    if text[start:].strip() or not spans:
        spans.append((start, len(text)))
    return spans


def _sentence_index(starts: list[int], position: int) -> int:
    return max(0, bisect.bisect_right(starts, position) - 1)


def _is_quoted(before: str, after: str) -> bool:
    """Balanced-quote heuristic: an opener before the hit, its closer after."""
    for opener, closer in QUOTE_PAIRS.items():
        if opener == closer:
            if before.count(opener) % 2 == 1 and closer in after:
                return True
        elif before.rfind(opener) > before.rfind(closer) and closer in after:
            return True
    return False


# ============================================================
# MATCHER
# ============================================================

class PatternMatcher:
    """
    Stateless matcher over an injected PatternDictionary.

    Safe to share across threads: all per-call state lives on the stack.
    """

    def __init__(self, dictionary: PatternDictionary):
        self.dictionary = dictionary

    @property
    def pattern_count(self) -> int:
        return len(self.dictionary)

    def match(self, text: str, options: Optional[MatchOptions] = None) -> list[PatternMatch]:
        """Run every enabled pattern over ``text``."""
        options = options or MatchOptions()
        return self._run(text, self._active_patterns(options), options)

    def match_with_pattern(
        self, text: str, pattern_id: str, options: Optional[MatchOptions] = None,
    ) -> list[PatternMatch]:
        """Run a single pattern. Unknown ids yield no matches."""
        compiled = self.dictionary.get(pattern_id)
        if compiled is None:
            return []
        return self._run(text, [compiled], options or MatchOptions())

    def match_category(self, text: str, category: PatternCategory) -> list[PatternMatch]:
        return self.match(text, MatchOptions(categories=(category,)))

    def match_critical(self, text: str) -> list[PatternMatch]:
        return self.match(text, MatchOptions(min_severity=PatternSeverity.CRITICAL))

    # --- internals ---

    def _active_patterns(self, options: MatchOptions) -> list[CompiledPattern]:
        active = []
        for compiled in self.dictionary.patterns:
            d = compiled.definition
            if options.categories and d.category not in options.categories:
                continue
            if options.min_severity and d.severity.rank < options.min_severity.rank:
                continue
            active.append(compiled)
        return active

    def _run(
        self, text: str, patterns: list[CompiledPattern], options: MatchOptions,
    ) -> list[PatternMatch]:
        if not isinstance(text, str) or not text.strip():
            return []

        sentences = split_sentences(text)
        starts = [s for s, _ in sentences]
        page_disclaimer = self.dictionary.has_disclaimer(text)

        matches: list[PatternMatch] = []
        for compiled in patterns:
            for hit in compiled.finditer(text):
                if len(matches) >= options.max_matches:
                    break
                sentence_id = _sentence_index(starts, hit.position)
                match = self._evaluate_hit(
                    text, hit, compiled.definition, sentences[sentence_id],
                    sentence_id, page_disclaimer, options,
                )
                if match is not None:
                    matches.append(match)

        if options.dedupe_sentences:
            matches = self._dedupe(matches)
        return sorted(matches, key=lambda m: (m.position, m.pattern_id))

    def _evaluate_hit(
        self,
        text: str,
        hit: RawHit,
        definition: PatternDefinition,
        sentence: tuple[int, int],
        sentence_id: int,
        page_disclaimer: bool,
        options: MatchOptions,
    ) -> Optional[PatternMatch]:
        if self._literal_exception(text, hit, definition):
            return None
        if self.dictionary.is_negative(hit.matched_text):
            logger.debug("Negative-list hit dropped", extra={"pattern_id": definition.id})
            return None

        disclaimer = page_disclaimer
        if options.filter_exceptions:
            discarded_by, in_context = self._context_exception(text, hit, definition, sentence)
            if discarded_by is not None:
                logger.debug(
                    f"Context exception {discarded_by.value} dropped hit",
                    extra={"pattern_id": definition.id},
                )
                return None
            disclaimer = disclaimer or in_context

        ctx = options.context_length
        context = text[max(0, hit.position - ctx):hit.end_position + ctx]
        confidence = self._confidence(hit.matched_text, context, definition.severity)
        if confidence < options.min_confidence:
            return None

        return PatternMatch(
            pattern_id=definition.id,
            category=definition.category,
            subcategory=definition.subcategory,
            matched_text=hit.matched_text,
            position=hit.position,
            end_position=hit.end_position,
            context=context,
            severity=definition.severity,
            confidence=confidence,
            sentence_id=sentence_id,
            disclaimer_detected=disclaimer,
            legal_basis=definition.legal_basis,
            description=definition.description,
            suggestion=definition.suggestion,
        )

    def _literal_exception(self, text: str, hit: RawHit, definition: PatternDefinition) -> bool:
        if not definition.exceptions:
            return False
        window = text[
            max(0, hit.position - LITERAL_EXCEPTION_WINDOW):
            hit.end_position + LITERAL_EXCEPTION_WINDOW
        ]
        return any(exc in window for exc in definition.exceptions)

    def _context_exception(
        self,
        text: str,
        hit: RawHit,
        definition: PatternDefinition,
        sentence: tuple[int, int],
    ) -> tuple[Optional[ExceptionType], bool]:
        """
        Test context exceptions in order.

        Returns (discarding exception type or None, disclaimer seen).
        """
        s_start, s_end = sentence
        segments = {
            "before": text[s_start:hit.position],
            "after": text[hit.end_position:s_end],
            "sentence": text[s_start:s_end],
        }
        segments["surrounding"] = (
            segments["sentence"] + "\n"
            + text[max(0, hit.position - EXCEPTION_WINDOW):hit.end_position + EXCEPTION_WINDOW]
        )
        exempt_from_negation = definition.category is PatternCategory.SIDE_EFFECT_DENIAL
        absolute = self.dictionary.is_absolute(definition.id)
        claim = hit.matched_text + segments["after"]
        asserted = bool(self.dictionary.guarantee_modal.search(claim))

        disclaimer = False
        quotation_checked = False
        for exc in self.dictionary.exceptions:
            # Quotation sits between question and conditional in the order.
            if not quotation_checked and exc.type is ExceptionType.CONDITIONAL:
                quotation_checked = True
                if _is_quoted(segments["before"], segments["after"]):
                    return ExceptionType.QUOTATION, disclaimer
            if exc.type.is_negation and exempt_from_negation:
                continue
            if exc.type is ExceptionType.CONDITIONAL and (absolute or asserted):
                continue
            if not exc.hits(segments[exc.scope]):
                continue
            if exc.type.discards:
                return exc.type, disclaimer
            disclaimer = True

        if not quotation_checked and _is_quoted(segments["before"], segments["after"]):
            return ExceptionType.QUOTATION, disclaimer
        return None, disclaimer

    def _confidence(self, matched_text: str, context: str, severity: PatternSeverity) -> float:
        confidence = CONFIDENCE_BASE + severity.confidence_bonus

        if len(matched_text) > 10:
            confidence += 0.05
        if len(matched_text) > 20:
            confidence += 0.05

        if self.dictionary.boost.search(context):
            confidence += 0.05
        if self.dictionary.hedge.search(context):
            confidence -= 0.10

        # Breadcrumbs like "홈 > 시술 > 리프팅" mean menu text, not copy.
        if len(self.dictionary.navigation.findall(context)) >= 2:
            confidence -= 0.5

        return round(min(CONFIDENCE_CEILING, max(CONFIDENCE_FLOOR, confidence)), 2)

    @staticmethod
    def _dedupe(matches: list[PatternMatch]) -> list[PatternMatch]:
        """Keep the most confident match per (sentence, category); earliest wins ties."""
        best: dict[tuple[int, PatternCategory], PatternMatch] = {}
        for m in sorted(matches, key=lambda m: (m.position, m.pattern_id)):
            key = (m.sentence_id, m.category)
            current = best.get(key)
            if current is None or m.confidence > current.confidence:
                best[key] = m
        return list(best.values())
