"""
Response envelope and result normalization.

Every response body, success or failure, has the same top-level shape:

    {"data": ..., "success": true}
    {"error": "...", "success": false}

normalize_result() picks the status code:

    handler raised HTTPError / werkzeug HTTPException -> its status
    handler raised BadInput                           -> 400
    handler raised anything else                      -> 500
    handler returned an empty value                   -> 204, no body
    handler returned a value                          -> route.success_status
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from werkzeug.exceptions import HTTPException

from ..contracts.registry import Operation
from ..contracts.shapes import Shape, dump, is_empty
from ..errors import BadInput, HTTPError


@dataclass
class Envelope:
    """Uniform response wrapper. Built fresh per request."""
    data: Any = None
    error: str = ""
    success: bool = False
    shape: Optional[Shape] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        JSON-ready dict. "data" and "error" are omitted when empty,
        "success" is always present.
        """
        body: Dict[str, Any] = {}
        if not is_empty(self.data):
            body["data"] = dump(self.shape, self.data)
        if self.error:
            body["error"] = self.error
        body["success"] = self.success
        return body


def success_envelope(data: Any, shape: Optional[Shape] = None) -> Envelope:
    return Envelope(data=data, success=True, shape=shape)


def error_envelope(message: str) -> Envelope:
    return Envelope(error=message, success=False)


def error_status(err: BaseException) -> Tuple[int, str]:
    """Map an exception to (status code, message)."""
    if isinstance(err, HTTPError):
        return err.status_code, err.message
    if isinstance(err, HTTPException):
        return err.code or 500, err.description or err.name
    if isinstance(err, BadInput):
        return 400, str(err)
    return 500, str(err) or type(err).__name__


def normalize_result(
    operation: Operation,
    result: Any,
    err: Optional[BaseException] = None,
) -> Tuple[int, Optional[Envelope]]:
    """
    Turn a handler outcome into (status code, envelope).

    Returns:
        (status, Envelope) or (204, None) for an empty result
    """
    if err is not None:
        status, message = error_status(err)
        return status, error_envelope(message)

    if is_empty(result):
        return 204, None

    return operation.route.success_status, success_envelope(result, operation.output_shape)
