"""Tests for AI response parsing strategies."""

import json

import pytest

from idempiere_codegen.response_parser import NO_JSON_FOUND, parse, parse_response
from tests.conftest import files_response


VALID = files_response(("src/x/Foo.java", "package x;\nclass Foo{}"))


# ---------------------------------------------------------------------------
# Successful parses
# ---------------------------------------------------------------------------

class TestStrategies:
    def test_raw_json(self):
        result = parse_response(VALID)
        assert result.ok
        assert result.source == "raw response"
        assert result.code.files[0].path == "src/x/Foo.java"

    @pytest.mark.parametrize("padding", ["", "\n", "   \n\t", "\r\n\r\n"])
    def test_whitespace_does_not_change_content(self, padding):
        result = parse_response(padding + VALID + padding)
        assert result.code.files[0].content == "package x;\nclass Foo{}"

    def test_content_preserved_exactly(self):
        content = "package x;\n\n/* tabs\tand \"quotes\" */\nclass Foo {\r\n}\n"
        result = parse_response(files_response(("src/x/Foo.java", content)))
        assert result.code.files[0].content == content

    def test_fenced_json_matches_unwrapped(self):
        fenced = "Here you go:\n```json\n" + VALID + "\n```\nHope this helps!"
        wrapped = parse_response(fenced)
        direct = parse_response(VALID)
        assert wrapped.ok
        assert wrapped.source == "markdown code fence"
        assert wrapped.code == direct.code

    def test_unlabelled_fence(self):
        result = parse_response("```\n" + VALID + "\n```")
        assert result.ok
        assert result.source == "markdown code fence"

    def test_outer_braces(self):
        result = parse_response("Sure! " + VALID + " Let me know.")
        assert result.ok
        assert result.source == "outer JSON block"

    def test_additions_parsed(self):
        raw = files_response(
            ("src/x/Foo.java", "package x;"),
            manifest_additions=["org.compiere.model"],
            build_properties_additions=None,
        )
        code = parse(raw)
        assert code.manifest_additions == ["org.compiere.model"]
        assert code.build_properties_additions == []


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestFailures:
    @pytest.mark.parametrize("raw", [None, "", "   \n"])
    def test_empty_response(self, raw):
        result = parse_response(raw)
        assert not result.ok
        assert result.error == "AI response is empty"

    def test_empty_files_is_failure(self):
        result = parse_response(json.dumps({"files": []}))
        assert not result.ok
        assert result.code is None
        assert result.error == "Parsed outer JSON block but files array is empty"

    def test_missing_files_is_failure(self):
        result = parse_response(json.dumps({"manifest_additions": ["x"]}))
        assert not result.ok
        assert "files array is empty" in result.error

    def test_no_json_at_all(self):
        result = parse_response("I cannot help with that.")
        assert not result.ok
        assert result.error.startswith("Invalid JSON in raw response")

    def test_last_error_reported(self):
        result = parse_response("prefix { not json } suffix")
        assert result.error.startswith("Invalid JSON in outer JSON block:")

    def test_error_is_single_line(self):
        result = parse_response("{\n  \"files\": [\n")
        assert "\n" not in result.error

    def test_wrong_shape(self):
        result = parse_response(json.dumps({"files": "nope"}))
        assert not result.ok
        assert result.error.startswith("Invalid JSON in")

    def test_parse_returns_none(self):
        assert parse("garbage") is None

    def test_no_json_found_constant(self):
        assert NO_JSON_FOUND == "No parseable JSON object found in AI response"
