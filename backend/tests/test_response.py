"""
Tests for flasknext/serializers/response.py
"""

from dataclasses import dataclass
from datetime import datetime

from werkzeug.exceptions import NotFound

from flasknext import BadInput, Context, HTTPError, Route
from flasknext.contracts.registry import OperationRegistry
from flasknext.serializers.response import (
    Envelope,
    error_envelope,
    error_status,
    normalize_result,
    success_envelope,
)
from flasknext.contracts.shapes import shape_of


@dataclass
class Event:
    name: str = ""
    at: datetime = None


def get_event(ctx: Context) -> Event:
    return Event()


def _operation(route=None):
    return OperationRegistry().register("GET", "/events", get_event, route)


class TestEnvelope:
    """Tests for Envelope.to_dict()"""

    def test_success_omits_error(self):
        envelope = success_envelope({"a": 1})
        assert envelope.to_dict() == {"data": {"a": 1}, "success": True}

    def test_error_omits_data(self):
        assert error_envelope("boom").to_dict() == {"error": "boom", "success": False}

    def test_success_always_present(self):
        assert Envelope().to_dict() == {"success": False}

    def test_data_dumped_through_shape(self):
        event = Event(name="launch", at=datetime(2024, 1, 15, 10, 30))
        envelope = success_envelope(event, shape_of(Event))
        assert envelope.to_dict()["data"] == {"name": "launch", "at": "2024-01-15T10:30:00"}


class TestErrorStatus:
    """Tests for error_status()"""

    def test_http_error(self):
        assert error_status(HTTPError(409, "conflict")) == (409, "conflict")

    def test_werkzeug(self):
        status, message = error_status(NotFound("no such event"))
        assert status == 404
        assert message == "no such event"

    def test_bad_input(self):
        assert error_status(BadInput("Invalid query parameters: x")) == (400, "Invalid query parameters: x")

    def test_other(self):
        assert error_status(KeyError("k")) == (500, "'k'")
        assert error_status(RuntimeError()) == (500, "RuntimeError")


class TestNormalizeResult:
    """Tests for normalize_result()"""

    def test_error_wins(self):
        status, envelope = normalize_result(_operation(), Event(name="x"), HTTPError(404, "gone"))
        assert status == 404
        assert envelope.to_dict() == {"error": "gone", "success": False}

    def test_empty_result(self):
        assert normalize_result(_operation(), Event(), None) == (204, None)
        assert normalize_result(_operation(), None, None) == (204, None)

    def test_declared_success_status(self):
        status, envelope = normalize_result(_operation(Route(success_status=202)), Event(name="x"))
        assert status == 202
        assert envelope.success is True
