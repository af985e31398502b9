import pytest

from shared.helper.ResponseParser import (
    FALLBACK_SUMMARY,
    build_result,
    clean_response,
    parse_json,
    recover_result,
)
from shared.models.errors import ParseError


class TestCleanResponse:
    def test_strips_think_block_and_fence(self):
        raw = '<think>let me see</think>\nHere you go:\n```json\n{"summary": "ok"}\n```\nBye.'
        assert clean_response(raw) == '{"summary": "ok"}'

    def test_plain_text_is_only_stripped(self):
        assert clean_response("  {\"a\": 1}  ") == '{"a": 1}'


class TestParseJson:
    def test_fenced_output(self):
        assert parse_json('```\n{"summary": "fenced"}\n```') == {"summary": "fenced"}

    def test_narrated_output_uses_outer_braces(self):
        raw = 'Sure! The analysis is {"summary": "narrated", "entities": []} as requested.'
        assert parse_json(raw)["summary"] == "narrated"

    def test_non_object_raises(self):
        with pytest.raises(ParseError):
            parse_json("[1, 2, 3]")

    def test_garbage_raises(self):
        with pytest.raises(ParseError):
            parse_json("I could not analyse this document.")


class TestBuildResult:
    def test_camel_case_keys_and_famous_alias(self):
        result = build_result(
            {
                "summary": "Deposition transcript.",
                "entities": [{"name": " Jane Doe ", "role": "witness", "isFamous": True}, "John Roe", {"role": "nameless"}],
                "keyInsights": ["Flight log mentioned"],
                "flaggedPOIs": ["Jane Doe"],
                "documentDate": "1999-01-01",
                "confidence": "0.8",
            },
            provider="gemini",
        )
        assert [e.name for e in result.entities] == ["Jane Doe", "John Roe"]
        assert result.entities[0].notable is True
        assert result.key_insights == ["Flight log mentioned"]
        assert result.flagged_subjects == ["Jane Doe"]
        assert result.metadata.document_date == "1999-01-01"
        assert result.metadata.confidence == 0.8
        assert result.metadata.processed_by == ["gemini"]
        assert result.degraded is False

    def test_missing_summary_with_structured_data(self):
        result = build_result({"entities": ["Jane Doe"]})
        assert result.summary == FALLBACK_SUMMARY

    def test_missing_summary_without_data_uses_raw_text(self):
        result = build_result({}, raw_text="x" * 800)
        assert result.summary == "x" * 500


class TestRecoverResult:
    def test_unparseable_output_degrades(self):
        raw = "The model rambled " * 60
        result = recover_result(raw, provider="lmstudio")
        assert result.degraded is True
        assert result.summary == raw.strip()[:500]
        assert result.entities == []
        assert result.metadata.processed_by == ["lmstudio"]

    def test_parseable_output_is_not_degraded(self):
        result = recover_result('<think>hmm</think>{"summary": "fine"}')
        assert result.summary == "fine"
        assert result.degraded is False

    def test_numeric_document_date_is_kept_as_text(self):
        result = recover_result('{"summary": "Flight log", "documentDate": 1994, "sentiment": 3}')
        assert result.degraded is False
        assert result.summary == "Flight log"
        assert result.metadata.document_date == "1994"
        assert result.sentiment == "3"

    def test_structured_document_date_is_dropped(self):
        result = recover_result('{"summary": "Flight log", "documentDate": {"year": 1994}, "sentiment": ["calm"]}')
        assert result.degraded is False
        assert result.metadata.document_date is None
        assert result.sentiment is None
