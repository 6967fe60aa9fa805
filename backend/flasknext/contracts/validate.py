"""
Constraint validation for bound request instances.

Checks, per field, the same rules schema derivation emits (shapes.rules_for):
- required: the value must not be empty (None, "", 0, False, empty container)
- min / max: string length for strings, value for integers/numbers
  (NaN and infinities fail whichever bound is declared)
- oneof: value must be one of the allowed values
- email: string value must look like an email address

Rules on a None value are skipped (only "required" applies), and the
"omitempty" token skips the remaining rules when the value is empty.

Each field reports its first failing rule; every failing field is
collected, and the caller receives one ContractViolation listing them all.
Nested dataclasses, and dataclass elements of lists, are validated
recursively with dotted/indexed paths ("address.city", "items[0].sku").
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .shapes import (
    Field,
    Sequence,
    Shape,
    Structured,
    is_empty,
)


EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+$"
)


@dataclass
class ContractViolation(Exception):
    """Raised when a bound instance violates its declared constraints."""
    message: str
    details: Dict[str, Any]

    def __str__(self):
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "message": self.message,
            "details": self.details,
        }

    @property
    def violations(self) -> List[Dict[str, Any]]:
        return self.details.get("violations", [])


def validate_instance(shape: Shape, instance: Any) -> None:
    """
    Validate a bound instance against the constraints of its shape.

    Raises:
        ContractViolation: listing one violation per failing field
    """
    violations: List[Dict[str, Any]] = []
    if isinstance(shape, Structured):
        _validate_structured(shape, instance, "", violations)

    if violations:
        raise ContractViolation(
            message="; ".join(v["message"] for v in violations),
            details={"violations": violations},
        )


def _validate_structured(
    shape: Structured,
    instance: Any,
    prefix: str,
    violations: List[Dict[str, Any]],
) -> None:
    if not isinstance(instance, shape.cls):
        return

    for field in shape.fields:
        value = getattr(instance, field.name)
        path = f"{prefix}.{field.serialized_name}" if prefix else field.serialized_name

        violation = check_field(field, value, path)
        if violation:
            violations.append(violation)
            continue

        _validate_nested(field.shape, value, path, violations)


def _validate_nested(shape: Shape, value: Any, path: str, violations: List[Dict[str, Any]]) -> None:
    if isinstance(shape, Structured):
        _validate_structured(shape, value, path, violations)
    elif isinstance(shape, Sequence) and isinstance(shape.element, Structured) and value:
        for i, item in enumerate(value):
            _validate_structured(shape.element, item, f"{path}[{i}]", violations)


def check_field(field: Field, value: Any, path: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Check one value against one field's constraints.

    Returns:
        A violation dict for the first failing rule, or None if valid.
    """
    constraints = field.constraints
    path = path or field.serialized_name
    empty = is_empty(value)

    if constraints.required and empty:
        return _violation(path, "required", f"'{path}' is required")

    if value is None:
        return None
    if constraints.omit_empty and empty:
        return None

    rules = field.rules
    if isinstance(value, str):
        if rules.min_length is not None and len(value) < rules.min_length:
            return _violation(path, "min", f"'{path}' must be at least {rules.min_length} characters long")
        if rules.max_length is not None and len(value) > rules.max_length:
            return _violation(path, "max", f"'{path}' must be at most {rules.max_length} characters long")

    elif _is_number(value):
        # negated comparisons so NaN fails any declared bound
        if rules.minimum is not None and not value >= rules.minimum:
            return _violation(path, "min", f"'{path}' must be {_fmt(rules.minimum)} or greater")
        if rules.maximum is not None and not value <= rules.maximum:
            return _violation(path, "max", f"'{path}' must be {_fmt(rules.maximum)} or less")

    if rules.enum and not _one_of(value, rules.enum):
        allowed = ", ".join(constraints.one_of)
        return _violation(path, "oneof", f"'{path}' must be one of [{allowed}]")

    if rules.email and not (isinstance(value, str) and EMAIL_PATTERN.match(value)):
        return _violation(path, "email", f"'{path}' must be a valid email address")

    return None


def _violation(path: str, rule: str, message: str) -> Dict[str, Any]:
    return {
        "field": path,
        "error": rule,
        "message": message,
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _one_of(value: Any, allowed: Tuple[Any, ...]) -> bool:
    # 1 == True in Python; compare bools only against bools
    return any(
        value == option and isinstance(value, bool) == isinstance(option, bool)
        for option in allowed
    )


def _fmt(bound: float) -> str:
    return str(int(bound)) if bound.is_integer() else str(bound)
