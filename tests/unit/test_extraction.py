"""Unit tests for classifier reply extraction and taxonomy filtering."""

from __future__ import annotations

import pytest

from config.category_taxonomy import CATEGORY_TAXONOMY
from tupconnect.config import OutputShape
from tupconnect.pipelines.extraction import (
    MatchResult,
    ParseError,
    filter_categories,
    find_json_fragment,
    normalize_affiliation,
    parse_match_response,
    strip_code_fences,
)


def parse_array(raw: str) -> MatchResult:
    return parse_match_response(raw, shape=OutputShape.ARRAY, categories=CATEGORY_TAXONOMY)


def parse_object(raw: str, include_negative_keywords: bool = True) -> MatchResult:
    return parse_match_response(
        raw,
        shape=OutputShape.OBJECT,
        categories=CATEGORY_TAXONOMY,
        include_negative_keywords=include_negative_keywords,
    )


@pytest.mark.unit
class TestStripCodeFences:
    """Tests for markdown fence removal."""

    def test_tagged_fence(self) -> None:
        assert strip_code_fences('```json\n["Academic/Research"]\n```') == '["Academic/Research"]'

    def test_untagged_fence(self) -> None:
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_single_line_fence(self) -> None:
        assert strip_code_fences('```["Culture/Religion"]```') == '["Culture/Religion"]'

    def test_plain_text_untouched(self) -> None:
        assert strip_code_fences('  ["Arts/Design/Media"]  ') == '["Arts/Design/Media"]'

    def test_stray_markers_removed(self) -> None:
        assert strip_code_fences('Here you go: ```json ["x"]') == 'Here you go:  ["x"]'


@pytest.mark.unit
class TestFindJsonFragment:
    """Tests for the bracket-matched scan."""

    def test_finds_array_inside_chatter(self) -> None:
        text = 'Sure! The categories are ["Academic/Research", "Culture/Religion"]. Hope it helps.'
        assert find_json_fragment(text) == '["Academic/Research", "Culture/Religion"]'

    def test_nested_brackets(self) -> None:
        text = 'x {"a": [1, {"b": 2}], "c": "d"} y'
        assert find_json_fragment(text) == '{"a": [1, {"b": 2}], "c": "d"}'

    def test_brackets_inside_strings_ignored(self) -> None:
        text = '{"note": "use ] and } freely \\" ok", "n": 1} trailing }'
        assert find_json_fragment(text) == '{"note": "use ] and } freely \\" ok", "n": 1}'

    def test_missing_opener(self) -> None:
        assert find_json_fragment("no json here") is None

    def test_unclosed_fragment(self) -> None:
        assert find_json_fragment('["Academic/Research"') is None

    def test_starts_at_first_top_level_value(self) -> None:
        text = '{"matched_categories": ["Academic/Research"]}'
        assert find_json_fragment(text) == text

    def test_array_wrapping_object_returned_whole(self) -> None:
        assert find_json_fragment('ok: [{"a": 1}] done') == '[{"a": 1}]'


@pytest.mark.unit
class TestArrayShape:
    """Tests for the categories-only reply format."""

    def test_fenced_array(self) -> None:
        result = parse_array('```json\n["Academic/Research"]\n```')
        assert result.matched_categories == ("Academic/Research",)

    def test_unknown_categories_dropped(self) -> None:
        result = parse_array('["Academic/Research", "Not A Real Category"]')
        assert result.matched_categories == ("Academic/Research",)

    def test_non_string_items_dropped(self) -> None:
        result = parse_array('["Culture/Religion", 3, null, ["Arts/Design/Media"]]')
        assert result.matched_categories == ("Culture/Religion",)

    def test_order_preserved(self) -> None:
        result = parse_array('["Culture/Religion", "Academic/Research"]')
        assert result.matched_categories == ("Culture/Religion", "Academic/Research")

    def test_empty_array(self) -> None:
        assert parse_array("[]").matched_categories == ()

    def test_no_array_is_parse_error(self) -> None:
        with pytest.raises(ParseError, match="does not contain a JSON array"):
            parse_array("I could not decide, sorry.")

    def test_invalid_json_is_parse_error(self) -> None:
        with pytest.raises(ParseError, match="Failed to parse"):
            parse_array("['Academic/Research']")

    def test_object_reply_is_parse_error(self) -> None:
        with pytest.raises(ParseError, match="not a JSON array"):
            parse_array('{"user_affiliation": "COS", "matched_categories": ["Technology/IT/Gaming"]}')


@pytest.mark.unit
class TestObjectShape:
    """Tests for the affiliation + categories + keywords reply format."""

    def test_full_object(self) -> None:
        raw = """```json
{
  "user_affiliation": "COS",
  "matched_categories": ["Technology/IT/Gaming", "Fake"],
  "specific_keywords": ["esports", " programming "],
  "negative_keywords": ["sports"]
}
```"""
        result = parse_object(raw)
        assert result == MatchResult(
            matched_categories=("Technology/IT/Gaming",),
            user_affiliation="COS",
            specific_keywords=("esports", "programming"),
            negative_keywords=("sports",),
        )

    def test_unknown_affiliation_becomes_none(self) -> None:
        result = parse_object('{"user_affiliation": "XYZ", "matched_categories": []}')
        assert result.user_affiliation == "NONE"

    def test_missing_fields_use_defaults(self) -> None:
        result = parse_object("{}")
        assert result == MatchResult()
        assert result.user_affiliation == "NONE"

    def test_non_array_keyword_fields_coerced(self) -> None:
        result = parse_object(
            '{"matched_categories": "Academic/Research", "specific_keywords": "chess", "negative_keywords": 5}'
        )
        assert result.matched_categories == ()
        assert result.specific_keywords == ()
        assert result.negative_keywords == ()

    def test_three_field_variant_ignores_negative_keywords(self) -> None:
        result = parse_object('{"negative_keywords": ["math"]}', include_negative_keywords=False)
        assert result.negative_keywords == ()

    def test_array_reply_is_parse_error(self) -> None:
        with pytest.raises(ParseError):
            parse_object('["Academic/Research"]')

    def test_object_wrapped_in_array_is_parse_error(self) -> None:
        with pytest.raises(ParseError, match="not a JSON object"):
            parse_object('[{"user_affiliation": "CIT", "matched_categories": ["Academic/Research"]}]')


@pytest.mark.unit
class TestHelpers:
    def test_filter_categories(self) -> None:
        assert filter_categories(["a", "b", "c"], ["c", "a"]) == ("a", "c")

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("COE", "COE"), (" cafa ", "CAFA"), ("XYZ", "NONE"), (None, "NONE"), (7, "NONE")],
    )
    def test_normalize_affiliation(self, value: object, expected: str) -> None:
        assert normalize_affiliation(value) == expected

    def test_payload_for_array_shape(self) -> None:
        result = MatchResult(matched_categories=("Academic/Research",), user_affiliation="COS")
        assert result.to_payload(OutputShape.ARRAY) == {"matched_categories": ["Academic/Research"]}

    def test_payload_for_three_field_object(self) -> None:
        payload = MatchResult(specific_keywords=("robots",)).to_payload(
            OutputShape.OBJECT, include_negative_keywords=False
        )
        assert payload == {
            "matched_categories": [],
            "user_affiliation": "NONE",
            "specific_keywords": ["robots"],
        }
