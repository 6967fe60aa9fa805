"""
Tests for flasknext/contracts/annotations.py

The constraint reader is shared by schema derivation and validation, so
its parsing rules are pinned here.
"""

import pytest

from flasknext.contracts.annotations import (
    ConstraintSet,
    EMPTY_CONSTRAINTS,
    FieldAnnotation,
    parse_constraints,
    parse_json_name,
    read_annotation,
)


class TestParseConstraints:
    """Tests for parse_constraints()"""

    def test_empty_expression(self):
        assert parse_constraints(None) is EMPTY_CONSTRAINTS
        assert parse_constraints("") is EMPTY_CONSTRAINTS

    def test_all_tokens(self):
        c = parse_constraints("required,min=2,max=50,email,oneof=a b c")
        assert c.required is True
        assert c.minimum == 2
        assert c.maximum == 50
        assert c.email is True
        assert c.one_of == ("a", "b", "c")

    def test_whitespace_around_tokens(self):
        c = parse_constraints(" required , min=1 ")
        assert c.required is True
        assert c.minimum == 1

    def test_unknown_tokens_ignored(self):
        c = parse_constraints("required,uuid,gte=5")
        assert c == ConstraintSet(required=True)

    def test_unparseable_bound_is_absent(self):
        c = parse_constraints("min=abc,max=10")
        assert c.minimum is None
        assert c.maximum == 10

    def test_non_finite_bound_is_absent(self):
        assert parse_constraints("max=inf").maximum is None
        assert parse_constraints("min=nan").minimum is None

    def test_len_sets_both_bounds(self):
        c = parse_constraints("len=4")
        assert (c.minimum, c.maximum) == (4, 4)

    def test_omitempty(self):
        assert parse_constraints("omitempty,min=1").omit_empty is True

    def test_cached(self):
        assert parse_constraints("required,min=3") is parse_constraints("required,min=3")


class TestBounds:
    """Tests for ConstraintSet.length_bounds() / value_bounds()"""

    def test_integral_length_bounds(self):
        assert ConstraintSet(minimum=2.0, maximum=10.0).length_bounds() == (2, 10)

    def test_fractional_length_bound_dropped(self):
        assert ConstraintSet(minimum=1.5, maximum=3.0).length_bounds() == (None, 3)

    def test_negative_length_bound_dropped(self):
        assert ConstraintSet(minimum=-1.0).length_bounds() == (None, None)

    def test_value_bounds_untouched(self):
        assert ConstraintSet(minimum=-1.5, maximum=2.5).value_bounds() == (-1.5, 2.5)


class TestParseJsonName:
    """Tests for parse_json_name()"""

    @pytest.mark.parametrize("expr,expected", [
        (None, ("attr", False, False)),
        ("", ("attr", False, False)),
        ("display_name", ("display_name", False, False)),
        ("display_name,omitempty", ("display_name", True, False)),
        (",omitempty", ("attr", True, False)),
        ("-", ("attr", False, True)),
    ])
    def test_forms(self, expr, expected):
        assert parse_json_name(expr, "attr") == expected


class TestFieldAnnotation:
    """Tests for FieldAnnotation / read_annotation()"""

    def test_omitempty_flag_merges_with_json(self):
        annotation = FieldAnnotation(json="nick", omitempty=True)
        assert annotation.serialized_name("nickname") == ("nick", True, False)

    def test_query_name(self):
        assert FieldAnnotation(query="page").query_name == "page"
        assert FieldAnnotation(query="-").query_name is None
        assert FieldAnnotation().query_name is None

    def test_read_annotation_without_metadata(self):
        assert read_annotation(None).constraints.is_empty
        assert read_annotation({"other": 1}).json is None
