"""
Handler adapter - turns a registered Operation into a Flask view function.

The view:
1. Builds the Context for the current request
2. Binds and validates the input value (normalize.bind)
3. Calls the handler according to its HandlerKind
4. Normalizes the result or error into an envelope (serializers.response)
5. Writes the JSON response (or an empty 204)

The handler is never called when binding or validation fails.
The served Operation and the elapsed time are left on flask.g for
middleware/operation_logging.py.
"""

import logging
import time
from typing import Any, Callable, Optional

from flask import Response, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ..errors import BadInput, HTTPError
from ..serializers.response import Envelope, normalize_result
from .context import Context
from .normalize import bind
from .registry import Operation


logger = logging.getLogger('flasknext.contracts')


def make_view(operation: Operation) -> Callable[..., Response]:
    """
    Build the Flask view function for an operation.

    Usage:
        app.add_url_rule(
            operation.path.flask_rule,
            endpoint=operation.endpoint,
            view_func=make_view(operation),
            methods=[operation.verb],
        )
    """
    def view(**_path_vars) -> Response:
        start_time = time.perf_counter()
        g.operation = operation
        ctx = Context(request, operation)

        try:
            payload = bind(operation, ctx)
        except BadInput as e:
            _log_bad_input(operation, e, ctx.request_id)
            status, envelope = normalize_result(operation, None, e)
            g.operation_elapsed_ms = _elapsed_ms(start_time)
            return _write(status, envelope)

        result, err = None, None
        try:
            result = invoke(operation, ctx, payload)
        except (HTTPError, HTTPException) as e:
            err = e
        except Exception as e:
            logger.exception(f"Handler error for {operation.verb} {operation.path.raw}")
            err = e

        status, envelope = normalize_result(operation, result, err)
        response = _write(status, envelope)

        g.operation_elapsed_ms = _elapsed_ms(start_time)
        return response

    view.__name__ = operation.endpoint
    view.__doc__ = operation.route.description or operation.route.summary or None
    return view


def invoke(operation: Operation, ctx: Context, payload: Any = None) -> Any:
    """Call the handler with the arguments its signature declares."""
    if operation.kind.takes_input:
        result = operation.handler(ctx, payload)
    else:
        result = operation.handler(ctx)

    if operation.output_shape is None:
        return None
    return result


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


def _write(status: int, envelope: Optional[Envelope]) -> Response:
    if envelope is None:
        return Response(status=status)
    response = jsonify(envelope.to_dict())
    response.status_code = status
    return response


def _log_bad_input(operation: Operation, error: BadInput, request_id: Optional[str]) -> None:
    """Log rejected input for observability."""
    logger.info(
        f"Bad input: operation={operation.operation_id} "
        f"request_id={request_id} message={error.message}",
        extra={
            "event": "bad_input",
            "operation": operation.operation_id,
            "request_id": request_id,
            "details": error.details,
        }
    )
