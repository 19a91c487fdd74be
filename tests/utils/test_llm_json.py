"""Unit tests for lenient LLM JSON parsing."""

from typing import Any

from pydantic import BaseModel

from blogforge.utils.llm_json import loads_lenient, parse_llm_json, repair_json, strip_code_fences


class _Titles(BaseModel):
    titles: list[str]


class TestStripCodeFences:
    def test_removes_language_fence(self) -> None:
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_text_unchanged(self) -> None:
        assert strip_code_fences("hello") == "hello"


class TestParseLlmJson:
    def test_fenced_json_with_prose(self) -> None:
        text = 'Here you go:\n```json\n{"titles": ["A", "B"]}\n```\nEnjoy!'
        result = parse_llm_json(text, _Titles)
        assert result.ok
        assert result.value is not None
        assert result.value.titles == ["A", "B"]

    def test_repairs_newlines_inside_strings_and_trailing_commas(self) -> None:
        text = '{"titles": ["line one\nline two", "B",],}'
        result = parse_llm_json(text, _Titles)
        assert result.ok
        assert result.value is not None
        assert result.value.titles[0] == "line one\nline two"

    def test_top_level_list(self) -> None:
        result = parse_llm_json('[{"x": 1}, {"x": 2}]', list[dict[str, Any]])
        assert result.ok
        assert result.value == [{"x": 1}, {"x": 2}]

    def test_empty_response(self) -> None:
        result = parse_llm_json("   ", _Titles)
        assert not result.ok
        assert result.error == "empty response"

    def test_not_json(self) -> None:
        result = parse_llm_json("I cannot help with that.", _Titles)
        assert not result.ok
        assert result.error == "response is not valid JSON"

    def test_schema_mismatch(self) -> None:
        result = parse_llm_json('{"headlines": ["A"]}', _Titles)
        assert not result.ok
        assert result.error is not None
        assert result.error.startswith("schema validation failed")


class TestRepair:
    def test_output_cut_off_mid_array(self) -> None:
        result = parse_llm_json('```json\n{"titles": ["A", "B"', _Titles)
        assert result.ok
        assert result.value is not None
        assert result.value.titles == ["A", "B"]

    def test_single_quotes(self) -> None:
        result = parse_llm_json("{'titles': ['A']}", _Titles)
        assert result.ok
        assert result.value is not None
        assert result.value.titles == ["A"]

    def test_unquoted_keys(self) -> None:
        ok, value = loads_lenient('{titles: ["A"]}')
        assert ok
        assert value == {"titles": ["A"]}

    def test_prose_is_not_repaired(self) -> None:
        assert repair_json("no json here") == (False, None)

    def test_valid_json_round_trips(self) -> None:
        assert repair_json('{"a": [1, 2]}') == (True, {"a": [1, 2]})
