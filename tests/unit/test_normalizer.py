"""Field normalization and confidence summary."""

import math

import pytest

from invoice_extractor.core.types import BoundingBox, ExtractedField
from invoice_extractor.normalizer import (
    CONFIDENCE_RULE,
    VALUE_RULE,
    normalize_field,
    normalize_fields,
    summarize_confidence,
)

pytestmark = pytest.mark.unit


class TestNormalizeField:
    def test_composite_with_confidence_score(self):
        field = normalize_field({"value": "120.500", "confidence_score": 0.97})

        assert field == ExtractedField(value="120.500", confidence=0.97)

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ({"text": "EDF"}, "EDF"),
            ({"content": "Paris"}, "Paris"),
            ({"value": None, "text": "fallback text"}, "fallback text"),
            ({"value": "first", "text": "second"}, "first"),
        ],
    )
    def test_value_alias_precedence(self, raw, expected):
        assert normalize_field(raw).value == expected

    def test_confidence_score_wins_over_confidence(self):
        field = normalize_field(
            {"value": "x", "confidence_score": 0.4, "confidence": 0.8}
        )

        assert field.confidence == 0.4

    def test_zero_confidence_is_kept(self):
        assert normalize_field({"value": "x", "confidence": 0}).confidence == 0.0

    @pytest.mark.parametrize(
        "raw_confidence", [None, "high", True, math.nan, 10**400]
    )
    def test_unusable_confidence_falls_back(self, raw_confidence):
        field = normalize_field({"value": "x", "confidence": raw_confidence}, 0.75)

        assert field.confidence == 0.75

    @pytest.mark.parametrize(("raw", "expected"), [(1.7, 1.0), (-0.2, 0.0), ("0.5", 0.5)])
    def test_confidence_is_coerced_into_unit_interval(self, raw, expected):
        assert normalize_field({"value": "x", "confidence": raw}).confidence == expected

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("ABC-1", "ABC-1"), (42, "42"), (12.5, "12.5"), (None, ""), (False, "false")],
    )
    def test_primitive_becomes_string_with_fallback_confidence(self, raw, expected):
        field = normalize_field(raw, 0.9)

        assert field.value == expected
        assert field.confidence == 0.9
        assert field.position is None

    def test_composite_without_value_becomes_empty_string(self):
        assert normalize_field({"confidence": 0.3}).value == ""

    def test_position_is_carried_when_complete(self):
        field = normalize_field(
            {
                "value": "x",
                "position": {"x": 1, "y": 2, "width": 30, "height": 4.5},
            }
        )

        assert field.position == BoundingBox(x=1.0, y=2.0, width=30.0, height=4.5)

    def test_incomplete_position_is_dropped(self):
        field = normalize_field({"value": "x", "position": {"x": 1, "y": 2}})

        assert field.position is None

    def test_position_with_oversized_coordinate_is_dropped(self):
        field = normalize_field(
            {
                "value": "x",
                "position": {"x": 10**400, "y": 0, "width": 1, "height": 1},
            }
        )

        assert field.value == "x"
        assert field.position is None


class TestNormalizeFields:
    def test_names_are_kept_verbatim(self):
        fields = normalize_fields(
            {
                "NET A PAYER": {"value": "120.500", "confidence_score": 0.97},
                "Référence client": "C-42",
            }
        )

        assert list(fields) == ["NET A PAYER", "Référence client"]
        assert fields["Référence client"].confidence == 0.9

    def test_repeated_name_in_pairs_keeps_the_last(self):
        fields = normalize_fields([("Total", "1"), ("Total", "2")])

        assert fields == {"Total": ExtractedField(value="2", confidence=0.9)}

    def test_normalizing_twice_is_a_no_op(self):
        raw = {
            "A": {"value": 12, "confidence": 0.31},
            "B": "plain",
            "C": {"text": "t", "position": {"x": 0, "y": 0, "width": 1, "height": 1}},
            "D": None,
        }
        once = normalize_fields(raw, 0.6)

        assert normalize_fields(once, 0.6) == once

    def test_empty_input_yields_empty_mapping(self):
        assert normalize_fields({}) == {}


class TestSummarizeConfidence:
    def test_average_is_rounded_to_two_decimals(self):
        fields = {
            "a": ExtractedField("1", 0.9),
            "b": ExtractedField("2", 0.8),
            "c": ExtractedField("3", 0.77),
        }

        assert summarize_confidence(fields) == 0.82

    def test_empty_fields_report_the_fallback(self):
        assert summarize_confidence({}, 0.9) == 0.9


def test_alias_rules_skip_none_values():
    assert VALUE_RULE.pick({"value": None, "content": "c"}) == "c"
    assert CONFIDENCE_RULE.pick({"confidence": None}) is None
