"""
Request binding - materializes the typed input value for an operation.

Order (fixed):
1. Start from the zero instance of the input shape
2. GET/DELETE: bind fields declaring a query name from query parameters
   POST/PUT/PATCH: bind the body by content type (JSON or form)
3. Overlay path variables onto fields with a matching binding name
   (path values win over body values)
4. Validate constraints (validate.py)

Every failure surfaces as BadInput with a human-readable cause:
    "Invalid query parameters: ..."
    "Invalid request body: ..."
    "Invalid path parameters: ..."
    "Validation failed: ..."
"""

import dataclasses
import json
import logging
from typing import Any, Dict, List, Optional

from ..errors import BadInput
from ..utils.normalize import (
    ValidationError,
    to_bool,
    to_date,
    to_datetime,
    to_float,
    to_int,
    to_str,
)
from .context import Context
from .registry import Operation
from .shapes import (
    BOOLEAN,
    INTEGER,
    LoadError,
    Mapping,
    NUMBER,
    STRING,
    Scalar,
    Sequence,
    Shape,
    Structured,
    Timestamp,
    load,
    new_instance,
    zero_value,
)
from .validate import ContractViolation, validate_instance


logger = logging.getLogger('flasknext.contracts.normalize')


JSON_CONTENT_TYPES = ("application/json",)
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def bind(operation: Operation, ctx: Context) -> Any:
    """
    Bind and validate the input value for an operation.

    Returns:
        The typed instance (None if the operation takes no input)

    Raises:
        BadInput: if binding or validation fails
    """
    shape = operation.input_shape
    if shape is None:
        return None

    if operation.has_body:
        instance = _bind_body(shape, ctx)
    else:
        instance = _bind_query(shape, ctx)

    instance = _bind_path(shape, instance, ctx)

    try:
        validate_instance(shape, instance)
    except ContractViolation as e:
        raise BadInput(f"Validation failed: {e}", details=e.details) from e

    return instance


# =============================================================================
# SOURCES
# =============================================================================

def _bind_query(shape: Shape, ctx: Context) -> Any:
    if not isinstance(shape, Structured):
        return zero_value(shape)
    try:
        return _bind_multidict(shape, ctx.request.args, "query")
    except ValidationError as e:
        raise BadInput(f"Invalid query parameters: {e}", field=e.field) from e


def _bind_body(shape: Shape, ctx: Context) -> Any:
    request = ctx.request
    mimetype = (request.mimetype or "").lower()

    if mimetype in FORM_CONTENT_TYPES:
        if not isinstance(shape, Structured):
            raise BadInput(f"Invalid request body: cannot bind form data to {type(shape).__name__}")
        if not request.form:
            return zero_value(shape)
        try:
            return _bind_multidict(shape, request.form, "form")
        except ValidationError as e:
            raise BadInput(f"Invalid request body: {e}", field=e.field) from e

    raw = request.get_data(cache=True)
    if not raw:
        return zero_value(shape)

    if _is_json(mimetype):
        try:
            payload = json.loads(raw, parse_constant=_reject_constant)
        except ValueError as e:
            raise BadInput(f"Invalid request body: malformed JSON ({e})") from e
        try:
            return load(shape, payload)
        except LoadError as e:
            raise BadInput(f"Invalid request body: {e}", field=e.path or None) from e

    raise BadInput(f"Invalid request body: unsupported media type '{mimetype or 'none'}'")


def _bind_path(shape: Shape, instance: Any, ctx: Context) -> Any:
    view_args = ctx.request.view_args or {}
    if not view_args or not isinstance(shape, Structured):
        return instance

    updates = {}
    for field in shape.fields:
        if field.binding_name not in view_args:
            continue
        try:
            value = coerce(field.shape, view_args[field.binding_name], field.binding_name)
        except ValidationError as e:
            raise BadInput(f"Invalid path parameters: {e}", field=e.field) from e
        if value is _UNBINDABLE:
            continue
        updates[field.name] = value
        _log_binding("path", field.binding_name, value)

    # instance may be a frozen dataclass
    return dataclasses.replace(instance, **updates) if updates else instance


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not allowed")


def _is_json(mimetype: str) -> bool:
    return mimetype in JSON_CONTENT_TYPES or mimetype.endswith("+json")


# =============================================================================
# STRING COERCION
# =============================================================================

_UNBINDABLE = object()


def _bind_multidict(shape: Structured, source, kind: str) -> Any:
    """
    Bind string values into a fresh instance.

    Query strings bind only fields with a query name, matching the
    parameters the document lists; forms use the binding name.
    """
    values: Dict[str, Any] = {}
    for field in shape.fields:
        name = field.query_name if kind == "query" else field.binding_name
        if not name or name not in source:
            continue
        if field.nullable and source.get(name) == "":
            values[field.name] = None
            continue

        if isinstance(field.shape, Sequence):
            raw_items = _split_items(source.getlist(name))
            value = coerce(field.shape, raw_items, name)
        else:
            value = coerce(field.shape, source.get(name), name)

        if value is _UNBINDABLE:
            continue
        values[field.name] = value
        _log_binding(kind, name, value)

    return new_instance(shape, values)


def _split_items(raw_items: List[str]) -> List[str]:
    """Accept both ?tag=a&tag=b and ?tag=a,b."""
    if len(raw_items) == 1 and "," in raw_items[0]:
        return [item.strip() for item in raw_items[0].split(",") if item.strip()]
    return raw_items


def coerce(shape: Shape, value: Any, name: Optional[str] = None) -> Any:
    """
    Coerce a string value (or list of strings, for sequences) to a shape.

    Returns _UNBINDABLE for shapes that cannot be expressed as strings
    (objects and maps); those fields keep their current value.

    Raises:
        ValidationError: if the value cannot be converted
    """
    if isinstance(shape, Scalar):
        if shape.kind == STRING:
            return to_str(value, default="", field=name)
        if shape.kind == INTEGER:
            return to_int(value, default=0, field=name)
        if shape.kind == NUMBER:
            return to_float(value, default=0.0, field=name)
        if shape.kind == BOOLEAN:
            return to_bool(value, default=False, field=name)

    if isinstance(shape, Timestamp):
        if shape.date_only:
            return to_date(value, field=name)
        return to_datetime(value, field=name)

    if isinstance(shape, Sequence):
        items = value if isinstance(value, list) else [value]
        coerced = [coerce(shape.element, item, name) for item in items]
        if any(item is _UNBINDABLE for item in coerced):
            return _UNBINDABLE
        return coerced

    if isinstance(shape, (Structured, Mapping)):
        return _UNBINDABLE

    return value


def _log_binding(source: str, name: str, value: Any) -> None:
    """Log bound values for observability."""
    logger.debug(f"param_binding: {source}.{name} = {value!r}")
