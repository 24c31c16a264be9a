"""
Tests for structured logging, settings and malformed rule handling.
"""

import dataclasses
import json
import logging

import pytest

from medcheck.config import Settings, settings
from medcheck.dictionary import PatternDefinition, PatternDictionary, compile_rule_pattern
from medcheck.logging import JSONFormatter, TextFormatter, get_logger, setup_logging
from medcheck.taxonomy import PatternCategory, PatternSeverity


class TestLogging:
    """Structured log output."""

    def _record(self, message="분석 완료", **extra):
        record = logging.LogRecord("medcheck.test", logging.INFO, __file__, 1, message, None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_formatter_fields(self):
        out = JSONFormatter().format(self._record(grade="D", clean_score=71))
        entry = json.loads(out)
        assert entry["level"] == "INFO"
        assert entry["logger"] == "medcheck.test"
        assert entry["message"] == "분석 완료"
        assert entry["grade"] == "D"
        assert entry["clean_score"] == 71
        assert "timestamp" in entry

    def test_json_formatter_keeps_korean_readable(self):
        out = JSONFormatter().format(self._record())
        assert "분석 완료" in out

    def test_json_formatter_ignores_unknown_extras(self):
        entry = json.loads(JSONFormatter().format(self._record(secret="x")))
        assert "secret" not in entry

    def test_setup_logging_text(self):
        try:
            root = setup_logging("debug", "text")
            assert root.name == "medcheck"
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, TextFormatter)
        finally:
            setup_logging("INFO", "json")

    def test_setup_logging_replaces_handlers(self):
        setup_logging("INFO", "json")
        root = setup_logging("INFO", "json")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_get_logger_namespace(self):
        assert get_logger("api").name == "medcheck.api"


class TestSettings:

    def test_defaults(self):
        assert 0.0 <= settings.MIN_CONFIDENCE <= 1.0
        assert settings.MAX_MATCHES > 0
        assert settings.CORE_VERSION

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            settings.MIN_CONFIDENCE = 0.1

    def test_independent_instance(self):
        assert Settings().CONTEXT_LENGTH == settings.CONTEXT_LENGTH


class TestMalformedRules:
    """A broken regex is skipped with a warning; the rest stays usable."""

    def test_compile_rule_pattern_returns_none(self, caplog):
        with caplog.at_level(logging.WARNING, logger="medcheck.dictionary"):
            assert compile_rule_pattern("P-TEST-BAD", "(unclosed") is None
        assert "P-TEST-BAD" in caplog.text

    def test_dictionary_skips_bad_definition(self):
        good = PatternDefinition(
            id="P-TEST-001", category=PatternCategory.PROHIBITED, subcategory="test",
            pattern=r"기적", severity=PatternSeverity.MAJOR,
            legal_basis="의료법 제56조", description="test",
        )
        bad = dataclasses.replace(good, id="P-TEST-002", pattern="[unclosed")
        dictionary = PatternDictionary(definitions=[good, bad])
        assert len(dictionary) == 1
        assert dictionary.get("P-TEST-001") is not None
        assert dictionary.get("P-TEST-002") is None

    def test_impression_tables_skip_bad_pattern(self, caplog):
        from medcheck.impression import _compile

        with caplog.at_level(logging.WARNING, logger="medcheck.dictionary"):
            compiled = _compile("tone:test", "(unclosed", r"할인")
        assert [r.pattern for r in compiled] == ["할인"]
        assert "tone:test" in caplog.text
