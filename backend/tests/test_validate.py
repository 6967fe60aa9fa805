"""
Tests for flasknext/contracts/validate.py
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import pytest

from flasknext import api_field
from flasknext.contracts.shapes import shape_of
from flasknext.contracts.validate import ContractViolation, validate_instance


@dataclass
class CreateUserRequest:
    name: str = api_field(validate="required,min=2", default="")
    email: str = api_field(validate="required,email", default="")


@dataclass
class Filters:
    page: int = api_field(validate="omitempty,min=1", default=0)
    limit: int = api_field(validate="min=1,max=100", default=10)
    sort: str = api_field(validate="omitempty,oneof=created_at title", default="")
    completed: Optional[bool] = api_field(validate="oneof=true", default=None)
    ratio: float = api_field(validate="max=1.5", default=0.0)


@dataclass
class Window:
    at: datetime = api_field(validate="required,min=50,email,oneof=a b", default=None)
    priority: int = api_field(validate="oneof=1 2 3", default=1)


@dataclass
class Line:
    sku: str = api_field(validate="required")


@dataclass
class Basket:
    owner: CreateUserRequest = field(default_factory=CreateUserRequest)
    lines: List[Line] = field(default_factory=list)


def _violations(shape_type, instance):
    with pytest.raises(ContractViolation) as exc:
        validate_instance(shape_of(shape_type), instance)
    return exc.value


class TestRequired:
    """Tests for the required rule"""

    def test_missing_required(self):
        error = _violations(CreateUserRequest, CreateUserRequest(name="", email="a@b.co"))
        assert error.violations == [
            {"field": "name", "error": "required", "message": "'name' is required"},
        ]

    def test_all_failing_fields_collected(self):
        error = _violations(CreateUserRequest, CreateUserRequest(name="J", email="not-an-email"))
        rules = {v["field"]: v["error"] for v in error.violations}
        assert rules == {"name": "min", "email": "email"}
        assert "valid email" in str(error)

    def test_valid(self):
        validate_instance(shape_of(CreateUserRequest), CreateUserRequest(name="John Doe", email="john@example.com"))


class TestBounds:
    """Tests for min/max"""

    def test_omitempty_skips_zero(self):
        validate_instance(shape_of(Filters), Filters(page=0))

    def test_value_bounds(self):
        error = _violations(Filters, Filters(page=1, limit=101))
        assert error.violations[0]["field"] == "limit"
        assert error.violations[0]["message"] == "'limit' must be 100 or less"

    def test_zero_without_omitempty_fails_min(self):
        error = _violations(Filters, Filters(limit=0))
        assert error.violations[0]["error"] == "min"

    def test_fractional_bound(self):
        error = _violations(Filters, Filters(ratio=2.0))
        assert error.violations[0]["message"] == "'ratio' must be 1.5 or less"


    @pytest.mark.parametrize("ratio", [float("nan"), float("inf")])
    def test_non_finite_fails_max(self, ratio):
        error = _violations(Filters, Filters(ratio=ratio))
        assert error.violations[0]["error"] == "max"

    def test_nan_fails_min(self):
        error = _violations(Filters, Filters(limit=float("nan")))
        assert error.violations[0]["error"] == "min"


class TestOneOf:
    """Tests for oneof"""

    def test_allowed(self):
        validate_instance(shape_of(Filters), Filters(sort="title"))

    def test_rejected(self):
        error = _violations(Filters, Filters(sort="priority"))
        assert error.violations[0]["message"] == "'sort' must be one of [created_at, title]"

    def test_none_skips_rules(self):
        validate_instance(shape_of(Filters), Filters(completed=None))

    def test_bool_rendering(self):
        validate_instance(shape_of(Filters), Filters(completed=True))
        error = _violations(Filters, Filters(completed=False))
        assert error.violations[0]["field"] == "completed"


class TestRulesFollowShape:
    """Only the rules that the derived schema documents are enforced"""

    def test_timestamp_ignores_scalar_rules(self):
        validate_instance(shape_of(Window), Window(at=datetime(2024, 1, 1)))

    def test_timestamp_still_required(self):
        error = _violations(Window, Window(at=None))
        assert error.violations[0]["error"] == "required"

    def test_integer_oneof(self):
        validate_instance(shape_of(Window), Window(at=datetime(2024, 1, 1), priority=2))
        error = _violations(Window, Window(at=datetime(2024, 1, 1), priority=5))
        assert error.violations[0]["message"] == "'priority' must be one of [1, 2, 3]"


class TestNested:
    """Tests for recursive validation"""

    def test_nested_paths(self):
        basket = Basket(
            owner=CreateUserRequest(name="Jane", email="jane"),
            lines=[Line(sku="A1"), Line(sku="")],
        )
        error = _violations(Basket, basket)
        fields = [v["field"] for v in error.violations]
        assert fields == ["owner.email", "lines[1].sku"]
        assert error.to_dict()["details"]["violations"] == error.violations
