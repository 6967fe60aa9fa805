"""
Constraint annotation reader.

Turns the per-field declaration surface into values the rest of the engine
consumes:

- validate="required,min=2,max=50"  -> ConstraintSet
- json="display_name,omitempty"     -> serialized name + omit-if-empty flag
- query="page"                       -> binding name for query/path sources
- example=...                        -> literal example for the schema

Parsing is tolerant. Unknown tokens are ignored and a bound that does not
parse as a number is dropped (absent, which is not the same as 0).

The same ConstraintSet is read by schema derivation (derive.py) and by
runtime validation (validate.py). Bound interpretation lives here, in
length_bounds() / value_bounds(), so the two consumers cannot drift apart.
"""

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Optional, Tuple


METADATA_KEY = "flasknext"


@dataclass(frozen=True)
class ConstraintSet:
    """Declarative validation rules for one field."""
    required: bool = False
    omit_empty: bool = False            # validation-level "omitempty": skip rules on empty values
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    one_of: Tuple[str, ...] = ()
    email: bool = False

    def length_bounds(self) -> Tuple[Optional[int], Optional[int]]:
        """Bounds as string lengths. Non-integral or negative bounds are dropped."""
        return _as_length(self.minimum), _as_length(self.maximum)

    def value_bounds(self) -> Tuple[Optional[float], Optional[float]]:
        """Bounds as numeric values."""
        return self.minimum, self.maximum

    @property
    def is_empty(self) -> bool:
        return self == EMPTY_CONSTRAINTS


EMPTY_CONSTRAINTS = ConstraintSet()


def _as_length(bound: Optional[float]) -> Optional[int]:
    if bound is None or bound < 0 or not bound.is_integer():
        return None
    return int(bound)


def _parse_bound(raw: str) -> Optional[float]:
    try:
        value = float(raw.strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


@lru_cache(maxsize=512)
def parse_constraints(expr: Optional[str]) -> ConstraintSet:
    """
    Parse a constraint expression into a ConstraintSet.

    Tokens (comma-separated):
        required, omitempty, email, min=N, max=N, len=N, oneof=a b c

    Examples:
        "required,min=2"          -> ConstraintSet(required=True, minimum=2.0)
        "min=abc,max=10"          -> ConstraintSet(maximum=10.0)
        "oneof=asc desc"          -> ConstraintSet(one_of=("asc", "desc"))
    """
    if not expr:
        return EMPTY_CONSTRAINTS

    rules = {}
    for token in expr.split(","):
        token = token.strip()
        if not token:
            continue

        name, sep, arg = token.partition("=")
        if name == "required" and not sep:
            rules["required"] = True
        elif name == "omitempty" and not sep:
            rules["omit_empty"] = True
        elif name == "email" and not sep:
            rules["email"] = True
        elif name == "min" and sep:
            bound = _parse_bound(arg)
            if bound is not None:
                rules["minimum"] = bound
        elif name == "max" and sep:
            bound = _parse_bound(arg)
            if bound is not None:
                rules["maximum"] = bound
        elif name == "len" and sep:
            bound = _parse_bound(arg)
            if bound is not None:
                rules["minimum"] = bound
                rules["maximum"] = bound
        elif name == "oneof" and sep:
            values = tuple(v for v in arg.split() if v)
            if values:
                rules["one_of"] = values
        # anything else is ignored

    return ConstraintSet(**rules) if rules else EMPTY_CONSTRAINTS


def parse_json_name(expr: Optional[str], default: str) -> Tuple[str, bool, bool]:
    """
    Parse a serialization expression.

    Returns:
        (serialized_name, omit_empty, skip)

    Examples:
        None                  -> (default, False, False)
        "display_name"        -> ("display_name", False, False)
        ",omitempty"          -> (default, True, False)
        "-"                   -> (default, False, True)
    """
    if expr is None or expr == "":
        return default, False, False
    if expr == "-":
        return default, False, True

    parts = [p.strip() for p in expr.split(",")]
    name = parts[0] or default
    omit_empty = "omitempty" in parts[1:]
    return name, omit_empty, False


@dataclass(frozen=True)
class FieldAnnotation:
    """Everything declared on a field through api_field()."""
    json: Optional[str] = None
    validate: Optional[str] = None
    query: Optional[str] = None
    example: Any = None
    omitempty: bool = False

    def serialized_name(self, attr_name: str) -> Tuple[str, bool, bool]:
        name, omit_empty, skip = parse_json_name(self.json, attr_name)
        return name, omit_empty or self.omitempty, skip

    @property
    def constraints(self) -> ConstraintSet:
        return parse_constraints(self.validate)

    @property
    def query_name(self) -> Optional[str]:
        if self.query is None or self.query in ("", "-"):
            return None
        return self.query


NO_ANNOTATION = FieldAnnotation()


def read_annotation(metadata: Optional[Mapping[str, Any]]) -> FieldAnnotation:
    """Read the FieldAnnotation from dataclass field metadata (or the empty one)."""
    if not metadata:
        return NO_ANNOTATION
    annotation = metadata.get(METADATA_KEY)
    if isinstance(annotation, FieldAnnotation):
        return annotation
    return NO_ANNOTATION
