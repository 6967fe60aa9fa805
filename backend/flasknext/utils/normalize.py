"""
Input Normalization Utilities
=============================

Single source of truth for string-to-value coercion of request inputs
(query strings, path variables, form fields). JSON bodies are typed by the
decoder and go through shapes.load instead.

Usage:
    from flasknext.utils.normalize import to_int, to_bool, ValidationError

    try:
        limit = to_int(request.args.get("limit"), default=100, field="limit")
    except ValidationError as e:
        ...
"""

import math
from datetime import date, datetime
from typing import Optional, Union


class ValidationError(ValueError):
    """Raised when input cannot be normalized to expected type."""

    def __init__(self, message: str, field: str = None, received_value=None):
        super().__init__(message)
        self.field = field
        self.received_value = received_value


def to_int(
    value: Optional[str],
    *,
    default: Optional[int] = None,
    field: str = None
) -> Optional[int]:
    """
    Convert string to int, with explicit None handling.

    Args:
        value: Input string (typically from request.args.get())
        default: Value to return if input is None or empty
        field: Field name for error messages

    Returns:
        Parsed integer or default

    Raises:
        ValidationError: If value cannot be converted to int
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError(
            f"Expected int, got bool: {value!r}",
            field=field,
            received_value=value
        )
    try:
        return int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"Expected int, got {type(value).__name__}: {value!r}",
            field=field,
            received_value=value
        )


def to_float(
    value: Optional[str],
    *,
    default: Optional[float] = None,
    field: str = None
) -> Optional[float]:
    """
    Convert string to float, with explicit None handling.

    Raises:
        ValidationError: If value cannot be converted to a finite float
    """
    if value is None or value == "":
        return default
    try:
        result = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"Expected float, got {type(value).__name__}: {value!r}",
            field=field,
            received_value=value
        )
    if not math.isfinite(result):
        raise ValidationError(
            f"Expected finite float, got {value!r}",
            field=field,
            received_value=value
        )
    return result


def to_bool(
    value: Optional[str],
    *,
    default: bool = False,
    field: str = None
) -> bool:
    """
    Convert string to bool.

    Accepts (case-insensitive):
        True: 'true', '1', 'yes', 'on', 't'
        False: 'false', '0', 'no', 'off', 'f'

    Raises:
        ValidationError: If value is not a recognized boolean string
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    lower = str(value).lower()
    if lower in ("true", "1", "yes", "on", "t"):
        return True
    if lower in ("false", "0", "no", "off", "f"):
        return False
    raise ValidationError(
        f"Expected bool, got: {value!r}",
        field=field,
        received_value=value
    )


def to_date(
    value: Optional[Union[str, date]],
    *,
    default: Optional[date] = None,
    field: str = None
) -> Optional[date]:
    """
    Convert YYYY-MM-DD string to date object.

    Raises:
        ValidationError: If value cannot be parsed as date
    """
    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (ValueError, TypeError):
        raise ValidationError(
            f"Expected date (YYYY-MM-DD), got {type(value).__name__}: {value!r}",
            field=field,
            received_value=value
        )


def to_datetime(
    value: Optional[str],
    *,
    default: Optional[datetime] = None,
    field: str = None
) -> Optional[datetime]:
    """
    Convert ISO string to datetime object.

    Accepts formats:
        - ISO 8601 format (e.g., 2024-01-15T10:30:00Z)
        - Already a datetime object (passthrough)

    Raises:
        ValidationError: If value cannot be parsed as datetime
    """
    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError, AttributeError):
        raise ValidationError(
            f"Expected ISO datetime, got {type(value).__name__}: {value!r}",
            field=field,
            received_value=value
        )


def to_str(
    value: Optional[str],
    *,
    default: Optional[str] = None,
    field: str = None
) -> Optional[str]:
    """Normalize string input. Unlike the numeric helpers, whitespace is kept."""
    if value is None:
        return default
    return str(value)
