"""
Schema derivation - Shape tree -> OpenAPI schema object.

    derive(shape_of(CreateUserRequest))
    -> {"type": "object",
        "properties": {"name": {"type": "string", "minLength": 2}, ...},
        "required": ["name", "email"]}

Rules:
- A field is listed in "required" iff its constraints say required and it is
  not serialized with omitempty.
- Constraints are gated by shape through shapes.rules_for(), the same
  gate validation uses: length bounds and email on strings, value bounds
  on integers/numbers, oneof on scalars as a typed enum.
- Timestamps become {"type": "string", "format": "date-time"} (or "date").
- Unknown shapes become an open {"type": "object"}.

Derivation is pure: no I/O, and every call returns freshly built dicts.
"""

import copy
from typing import Any, Dict

from .shapes import (
    Field,
    FieldRules,
    Mapping,
    Scalar,
    Sequence,
    Shape,
    Structured,
    Timestamp,
)


def derive(shape: Shape) -> Dict[str, Any]:
    """Derive the schema object for a shape."""
    if isinstance(shape, Scalar):
        return {"type": shape.kind}

    if isinstance(shape, Timestamp):
        return {"type": "string", "format": "date" if shape.date_only else "date-time"}

    if isinstance(shape, Sequence):
        return {"type": "array", "items": derive(shape.element)}

    if isinstance(shape, Mapping):
        return {"type": "object", "additionalProperties": derive(shape.value)}

    if isinstance(shape, Structured):
        return _derive_structured(shape)

    return {"type": "object"}


def _derive_structured(shape: Structured) -> Dict[str, Any]:
    properties: Dict[str, Any] = {}
    required = []

    for field in shape.fields:
        properties[field.serialized_name] = derive_field(field)
        if field.constraints.required and not field.omit_empty:
            required.append(field.serialized_name)

    return {
        "type": "object",
        "properties": properties,
        "required": required,
    }


def derive_field(field: Field) -> Dict[str, Any]:
    """Schema for one field: its shape's schema plus example, nullability and constraints."""
    schema = derive(field.shape)

    if field.example is not None:
        schema["example"] = copy.deepcopy(field.example)
    if field.nullable:
        schema["nullable"] = True

    apply_rules(schema, field.rules)
    return schema


def apply_rules(schema: Dict[str, Any], rules: FieldRules) -> Dict[str, Any]:
    """Translate the rules that apply to a field into schema keywords."""
    if rules.min_length is not None:
        schema["minLength"] = rules.min_length
    if rules.max_length is not None:
        schema["maxLength"] = rules.max_length
    if rules.minimum is not None:
        schema["minimum"] = _number(rules.minimum)
    if rules.maximum is not None:
        schema["maximum"] = _number(rules.maximum)
    if rules.email:
        schema["format"] = "email"
    if rules.enum:
        schema["enum"] = list(rules.enum)
    return schema


def _number(value: float):
    return int(value) if value.is_integer() else value
