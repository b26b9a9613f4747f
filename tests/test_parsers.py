"""Tests for the built-in parsers."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from loggy.modules.base import ParserOptions
from loggy.modules.parsers.json_parser import JsonParser
from loggy.modules.parsers.passthru import PassThruParser
from loggy.modules.parsers.regex import RegexParser


def _regex(pattern: str, **options) -> RegexParser:
    return RegexParser("access", RegexParser.Options(pattern=pattern, **options))


# ---------------------------------------------------------------------------
# PassThruParser
# ---------------------------------------------------------------------------

class TestPassThruParser:
    def test_returns_line_unchanged(self) -> None:
        p = PassThruParser("all", ParserOptions())
        assert p.parse("some text") == {"line": "some text"}

    def test_matches_empty_line(self) -> None:
        p = PassThruParser("all", ParserOptions())
        assert p.parse("") == {"line": ""}

    def test_output_keys(self) -> None:
        assert PassThruParser("all", ParserOptions()).output_keys == ["line"]

    def test_run_always_from_options(self) -> None:
        p = PassThruParser("all", ParserOptions.model_validate({"runAlways": True}))
        assert p.run_always is True

    def test_run_always_defaults_to_false(self) -> None:
        assert PassThruParser("all", ParserOptions()).run_always is False


# ---------------------------------------------------------------------------
# RegexParser
# ---------------------------------------------------------------------------

class TestRegexParser:
    PATTERN = r"(?P<method>GET|POST) (?P<path>\S+) (?P<status>\d{3})"

    def test_named_groups_become_fields(self) -> None:
        p = _regex(self.PATTERN)
        assert p.parse("GET /api/v1/health 200 3") == {
            "method": "GET",
            "path": "/api/v1/health",
            "status": "200",
        }

    def test_no_match_returns_none(self) -> None:
        assert _regex(self.PATTERN).parse("DELETE /x 500") is None

    def test_match_is_anchored_by_default(self) -> None:
        assert _regex(self.PATTERN).parse("-> GET /x 200") is None

    def test_search_finds_pattern_anywhere(self) -> None:
        p = _regex(self.PATTERN, search=True)
        assert p.parse("-> GET /x 200")["path"] == "/x"

    def test_flags(self) -> None:
        p = _regex(r"(?P<level>error)", flags=["IGNORECASE"])
        assert p.parse("ERROR disk full") == {"level": "ERROR"}

    def test_unmatched_optional_group_is_empty_string(self) -> None:
        p = _regex(r"(?P<code>\d+)(?: (?P<reason>\w+))?")
        assert p.parse("404") == {"code": "404", "reason": ""}

    def test_output_keys_in_pattern_order(self) -> None:
        assert _regex(self.PATTERN).output_keys == ["method", "path", "status"]

    def test_invalid_pattern_rejected(self) -> None:
        with pytest.raises(ValidationError, match="invalid regular expression"):
            RegexParser.Options(pattern="(?P<x>")

    def test_pattern_without_named_group_rejected(self) -> None:
        with pytest.raises(ValidationError, match="named group"):
            RegexParser.Options(pattern=r"\d+")

    def test_unknown_flag_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RegexParser.Options(pattern="(?P<x>.)", flags=["VERBOSE"])

    def test_unknown_option_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RegexParser.Options.model_validate({"pattern": "(?P<x>.)", "patern": "y"})


# ---------------------------------------------------------------------------
# JsonParser
# ---------------------------------------------------------------------------

class TestJsonParser:
    def _parser(self, **options) -> JsonParser:
        return JsonParser("json", JsonParser.Options.model_validate(options))

    def test_object_fields_become_strings(self) -> None:
        fields = self._parser().parse('{"level": "ERROR", "status": 500, "ok": false}')
        assert fields == {"level": "ERROR", "status": "500", "ok": "false"}

    def test_nested_objects_are_flattened(self) -> None:
        fields = self._parser().parse('{"http": {"status": 200, "path": "/"}}')
        assert fields == {"http.status": "200", "http.path": "/"}

    def test_flatten_off_keeps_nested_json(self) -> None:
        fields = self._parser(flatten=False).parse('{"http": {"status": 200}}')
        assert fields == {"http": '{"status": 200}'}

    def test_null_and_lists_keep_json_spelling(self) -> None:
        fields = self._parser().parse('{"user": null, "tags": ["a", "b"]}')
        assert fields == {"user": "null", "tags": '["a", "b"]'}

    @pytest.mark.parametrize("line", ["", "   ", "not json", "[1, 2]", '"text"', "42"])
    def test_non_object_lines_do_not_match(self, line: str) -> None:
        assert self._parser().parse(line) is None

    def test_missing_output_key_does_not_match(self) -> None:
        p = self._parser(outputKeys=["level", "message"])
        assert p.parse('{"level": "INFO"}') is None
        assert p.parse('{"level": "INFO", "message": "up"}') is not None

    def test_output_keys(self) -> None:
        assert self._parser(output_keys=["level"]).output_keys == ["level"]
