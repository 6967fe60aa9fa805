"""
Shape model - explicit structural description of declared request/response types.

A Shape tree is built once per type (at registration) by shape_of():

    Scalar      str / int / float / bool
    Timestamp   datetime / date
    Sequence    list[T], tuple[T, ...], set[T]
    Mapping     dict[str, T]
    Structured  a dataclass, fields in declaration order
    Unknown     anything else (degrades to an untyped object schema)

Optional[T] is dereferenced transparently; the field is marked nullable.

Everything downstream (derive, bind, validate, dump) walks the Shape tree,
never the Python type again.

Declaring fields:

    @dataclass
    class CreateUserRequest:
        name: str = api_field(validate="required,min=2", example="Jane")
        email: str = api_field(validate="required,email")
        nickname: Optional[str] = api_field(json="nick,omitempty", default=None)
"""

import dataclasses
import math
import types
from dataclasses import dataclass, MISSING
from datetime import date, datetime
from decimal import Decimal
from typing import (
    Annotated,
    Any,
    Dict,
    List,
    Optional,
    Tuple,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)
from collections import abc

from ..errors import ConfigurationError
from ..utils.normalize import to_date, to_datetime, ValidationError
from .annotations import (
    ConstraintSet,
    EMPTY_CONSTRAINTS,
    FieldAnnotation,
    METADATA_KEY,
    read_annotation,
)


STRING = "string"
INTEGER = "integer"
NUMBER = "number"
BOOLEAN = "boolean"

NUMERIC_KINDS = (INTEGER, NUMBER)

# Field.default / Field.default_factory when the dataclass field declares none
NO_DEFAULT = object()


# =============================================================================
# SHAPE TYPES
# =============================================================================

class Shape:
    """Base class for all shape nodes."""


@dataclass(frozen=True)
class Scalar(Shape):
    kind: str


@dataclass(frozen=True)
class Timestamp(Shape):
    date_only: bool = False


@dataclass(frozen=True)
class Sequence(Shape):
    element: Shape


@dataclass(frozen=True)
class Mapping(Shape):
    value: Shape


@dataclass(frozen=True)
class Field:
    """One field of a Structured shape."""
    name: str                           # attribute name on the dataclass
    serialized_name: str
    shape: Shape
    omit_empty: bool = False
    nullable: bool = False
    constraints: ConstraintSet = EMPTY_CONSTRAINTS
    example: Any = None
    query_name: Optional[str] = None
    default: Any = NO_DEFAULT
    default_factory: Any = NO_DEFAULT

    @property
    def binding_name(self) -> str:
        """Name used when binding from forms and path variables."""
        return self.query_name or self.serialized_name

    @property
    def rules(self) -> "FieldRules":
        return rules_for(self.shape, self.constraints)


@dataclass(frozen=True)
class Structured(Shape):
    cls: type
    fields: Tuple[Field, ...] = ()

    @property
    def name(self) -> str:
        return self.cls.__name__


@dataclass(frozen=True)
class Unknown(Shape):
    pass


UNKNOWN = Unknown()

_SCALARS = {
    str: Scalar(STRING),
    int: Scalar(INTEGER),
    float: Scalar(NUMBER),
    Decimal: Scalar(NUMBER),
    bool: Scalar(BOOLEAN),
}

_SEQUENCE_ORIGINS = (list, set, frozenset, tuple, abc.Sequence, abc.Set, abc.MutableSequence)
_MAPPING_ORIGINS = (dict, abc.Mapping, abc.MutableMapping)


# =============================================================================
# DECLARATION
# =============================================================================

def api_field(
    *,
    json: Optional[str] = None,
    omitempty: bool = False,
    validate: Optional[str] = None,
    query: Optional[str] = None,
    example: Any = None,
    default: Any = MISSING,
    default_factory: Any = MISSING,
    **kwargs,
):
    """
    Declare a dataclass field with serialization, binding and validation rules.

    Args:
        json: Serialized name, optionally with ",omitempty" (e.g. "created_at,omitempty").
              "-" excludes the field from schemas and payloads.
        omitempty: Omit the field from payloads when empty (same as ",omitempty").
        validate: Constraint expression, e.g. "required,min=1,max=100".
        query: Query-string name. Only fields declaring one bind from the
               query string; forms and path variables fall back to the
               serialized name.
        example: Literal example shown in the generated schema.
        default / default_factory: Passed through to dataclasses.field().
            Without either, the field has no default, and the usual dataclass
            ordering rule applies: it cannot follow a field that has one.
    """
    annotation = FieldAnnotation(
        json=json,
        validate=validate,
        query=query,
        example=example,
        omitempty=omitempty,
    )
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[METADATA_KEY] = annotation
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata=metadata,
        **kwargs,
    )


# =============================================================================
# SHAPE BUILDING
# =============================================================================

_SHAPE_CACHE: Dict[Any, Shape] = {}


def shape_of(tp: Any) -> Shape:
    """
    Build (or fetch the cached) Shape for a type annotation.

    Raises:
        ConfigurationError: on self-referencing dataclasses, duplicate
            serialized names, or unresolvable forward references.
    """
    shape, _ = _build(tp, ())
    return shape


def _unwrap_optional(tp: Any) -> Tuple[Any, bool]:
    origin = get_origin(tp)
    if origin is Union or (hasattr(types, "UnionType") and origin is types.UnionType):
        args = [a for a in get_args(tp) if a is not type(None)]
        nullable = len(args) != len(get_args(tp))
        if len(args) == 1:
            return args[0], nullable
        return Any, nullable
    return tp, False


def _build(tp: Any, stack: Tuple[type, ...]) -> Tuple[Shape, bool]:
    """Returns (shape, nullable)."""
    tp, nullable = _unwrap_optional(tp)

    origin = get_origin(tp)
    if origin is Annotated:
        shape, inner_nullable = _build(get_args(tp)[0], stack)
        return shape, nullable or inner_nullable

    try:
        cached = _SHAPE_CACHE.get(tp)
    except TypeError:
        cached = None
    if cached is not None:
        return cached, nullable

    shape = _classify(tp, origin, stack)

    try:
        _SHAPE_CACHE[tp] = shape
    except TypeError:
        pass
    return shape, nullable


def _classify(tp: Any, origin: Any, stack: Tuple[type, ...]) -> Shape:
    if tp is Any or tp is None:
        return UNKNOWN

    if isinstance(tp, type) and tp in _SCALARS:
        return _SCALARS[tp]
    if tp is datetime:
        return Timestamp()
    if tp is date:
        return Timestamp(date_only=True)

    if origin is not None:
        args = get_args(tp)
        if origin in _SEQUENCE_ORIGINS:
            if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
                return Sequence(UNKNOWN)
            element = _build(args[0], stack)[0] if args else UNKNOWN
            return Sequence(element)
        if origin in _MAPPING_ORIGINS:
            value = _build(args[1], stack)[0] if len(args) == 2 else UNKNOWN
            return Mapping(value)
        return UNKNOWN

    if tp in (list, set, frozenset, tuple):
        return Sequence(UNKNOWN)
    if tp is dict:
        return Mapping(UNKNOWN)

    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        if tp in stack:
            chain = " -> ".join(c.__name__ for c in stack + (tp,))
            raise ConfigurationError(f"Recursive shape is not supported: {chain}")
        return _build_structured(tp, stack + (tp,))

    return UNKNOWN


def _build_structured(cls: type, stack: Tuple[type, ...]) -> Structured:
    try:
        hints = get_type_hints(cls, include_extras=True)
    except NameError as e:
        raise ConfigurationError(f"Cannot resolve type hints for {cls.__name__}: {e}") from e

    fields: List[Field] = []
    seen: Dict[str, str] = {}

    for f in dataclasses.fields(cls):
        if not f.init:
            continue

        annotation = read_annotation(f.metadata)
        serialized_name, omit_empty, skip = annotation.serialized_name(f.name)
        if skip:
            continue

        if serialized_name in seen:
            raise ConfigurationError(
                f"{cls.__name__}: fields '{seen[serialized_name]}' and '{f.name}' "
                f"both serialize as '{serialized_name}'"
            )
        seen[serialized_name] = f.name

        shape, nullable = _build(hints.get(f.name, Any), stack)
        fields.append(Field(
            name=f.name,
            serialized_name=serialized_name,
            shape=shape,
            omit_empty=omit_empty,
            nullable=nullable,
            constraints=annotation.constraints,
            example=annotation.example,
            query_name=annotation.query_name,
            default=NO_DEFAULT if f.default is MISSING else f.default,
            default_factory=NO_DEFAULT if f.default_factory is MISSING else f.default_factory,
        ))

    return Structured(cls=cls, fields=tuple(fields))


# =============================================================================
# APPLICABLE RULES
# =============================================================================

@dataclass(frozen=True)
class FieldRules:
    """
    The constraints that apply to one shape.

    Schema derivation and runtime validation both read these, so a rule
    is either documented and enforced, or neither.
    """
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    enum: Tuple[Any, ...] = ()
    email: bool = False


NO_RULES = FieldRules()


def rules_for(shape: Shape, constraints: ConstraintSet) -> FieldRules:
    """
    Gate a ConstraintSet by shape.

        string          length bounds, oneof, email
        integer/number  value bounds, oneof (as numbers)
        boolean         oneof (as true/false)
        anything else   none

    A oneof whose tokens do not all parse as the scalar's type is dropped.
    """
    if not isinstance(shape, Scalar) or constraints.is_empty:
        return NO_RULES

    enum = _typed_enum(shape.kind, constraints.one_of)
    if shape.kind == STRING:
        min_length, max_length = constraints.length_bounds()
        return FieldRules(
            min_length=min_length,
            max_length=max_length,
            enum=enum,
            email=constraints.email,
        )
    if shape.kind in NUMERIC_KINDS:
        minimum, maximum = constraints.value_bounds()
        return FieldRules(minimum=minimum, maximum=maximum, enum=enum)
    return FieldRules(enum=enum)


def _typed_enum(kind: str, tokens: Tuple[str, ...]) -> Tuple[Any, ...]:
    if kind == STRING:
        return tokens
    try:
        return tuple(_parse_token(kind, token) for token in tokens)
    except ValueError:
        return ()


def _parse_token(kind: str, token: str) -> Any:
    if kind == INTEGER:
        return int(token)
    if kind == NUMBER:
        value = float(token)
        if not math.isfinite(value):
            raise ValueError(token)
        return value
    if token in ("true", "false"):
        return token == "true"
    raise ValueError(token)


# =============================================================================
# ZERO VALUES AND EMPTINESS
# =============================================================================

def zero_value(shape: Shape, nullable: bool = False) -> Any:
    """Materialize the zero value of a shape (fresh containers every call)."""
    if nullable:
        return None
    if isinstance(shape, Scalar):
        return {STRING: "", INTEGER: 0, NUMBER: 0.0, BOOLEAN: False}[shape.kind]
    if isinstance(shape, Sequence):
        return []
    if isinstance(shape, Mapping):
        return {}
    if isinstance(shape, Structured):
        return new_instance(shape)
    return None


def field_initial(field: Field) -> Any:
    """Initial value of a field: its declared default, or the zero value of its shape."""
    if field.default is not NO_DEFAULT:
        return field.default
    if field.default_factory is not NO_DEFAULT:
        return field.default_factory()
    return zero_value(field.shape, field.nullable)


def new_instance(shape: Structured, values: Optional[Dict[str, Any]] = None) -> Any:
    """Create an instance of the structured shape's class, filling unspecified fields."""
    values = values or {}
    kwargs = {}
    for field in shape.fields:
        kwargs[field.name] = values[field.name] if field.name in values else field_initial(field)
    return shape.cls(**kwargs)


def is_empty(value: Any) -> bool:
    """
    True for the "empty" value of any payload: None, "", 0, False,
    empty containers, and dataclass instances whose fields are all empty.
    """
    if value is None:
        return True
    if isinstance(value, (bool, int, float, Decimal, str, bytes)):
        return not value
    if isinstance(value, (list, tuple, dict, set, frozenset)):
        return len(value) == 0
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return all(is_empty(getattr(value, f.name)) for f in dataclasses.fields(value))
    return False


# =============================================================================
# LOADING (decoded JSON -> typed values)
# =============================================================================

class LoadError(ValueError):
    """Raised when a decoded JSON value does not fit its shape."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


def _json_type_name(raw: Any) -> str:
    if raw is None:
        return "null"
    if isinstance(raw, bool):
        return "boolean"
    if isinstance(raw, (int, float)):
        return "number"
    if isinstance(raw, str):
        return "string"
    if isinstance(raw, list):
        return "array"
    if isinstance(raw, dict):
        return "object"
    return type(raw).__name__


def _mismatch(expected: str, raw: Any, path: str) -> LoadError:
    where = f" at '{path}'" if path else ""
    return LoadError(f"cannot load {_json_type_name(raw)} into {expected}{where}", path)


def load(shape: Shape, raw: Any, path: str = "", nullable: bool = False) -> Any:
    """
    Convert a decoded JSON value into the typed value described by shape.

    JSON null yields None for nullable fields and the zero value otherwise.
    Unknown object keys are ignored.

    Raises:
        LoadError: on a type mismatch, naming the offending path.
    """
    if raw is None:
        return zero_value(shape, nullable)

    if isinstance(shape, Scalar):
        kind = shape.kind
        if kind == STRING and isinstance(raw, str):
            return raw
        if kind == BOOLEAN and isinstance(raw, bool):
            return raw
        if kind == INTEGER and isinstance(raw, int) and not isinstance(raw, bool):
            return raw
        if kind == NUMBER and isinstance(raw, (int, float)) and not isinstance(raw, bool):
            try:
                number = float(raw)
            except OverflowError:
                number = math.inf
            if not math.isfinite(number):
                where = f" at '{path}'" if path else ""
                raise LoadError(f"number out of range{where}", path)
            return number
        raise _mismatch(kind, raw, path)

    if isinstance(shape, Timestamp):
        if not isinstance(raw, str):
            raise _mismatch("date" if shape.date_only else "date-time", raw, path)
        try:
            if shape.date_only:
                return to_date(raw, field=path)
            return to_datetime(raw, field=path)
        except ValidationError as e:
            raise LoadError(f"{e} at '{path}'" if path else str(e), path) from e

    if isinstance(shape, Sequence):
        if not isinstance(raw, list):
            raise _mismatch("array", raw, path)
        return [load(shape.element, item, f"{path}[{i}]") for i, item in enumerate(raw)]

    if isinstance(shape, Mapping):
        if not isinstance(raw, dict):
            raise _mismatch("object", raw, path)
        return {
            str(key): load(shape.value, item, f"{path}.{key}" if path else str(key))
            for key, item in raw.items()
        }

    if isinstance(shape, Structured):
        if not isinstance(raw, dict):
            raise _mismatch(f"object {shape.name}", raw, path)
        values = {}
        for field in shape.fields:
            if field.serialized_name in raw:
                child = f"{path}.{field.serialized_name}" if path else field.serialized_name
                values[field.name] = load(field.shape, raw[field.serialized_name], child, field.nullable)
        return new_instance(shape, values)

    return raw


# =============================================================================
# DUMPING (typed values -> JSON-ready values)
# =============================================================================

def dump(shape: Optional[Shape], value: Any) -> Any:
    """
    Convert a typed value into JSON-ready data, honoring serialized names
    and omit-if-empty flags. Values that do not match their shape (e.g. a
    plain dict returned for a dataclass shape) are dumped generically.
    """
    if value is None:
        return None

    if isinstance(shape, Structured) and isinstance(value, shape.cls):
        out = {}
        for field in shape.fields:
            item = getattr(value, field.name)
            if field.omit_empty and is_empty(item):
                continue
            out[field.serialized_name] = dump(field.shape, item)
        return out

    if isinstance(shape, Sequence) and isinstance(value, (list, tuple, set, frozenset)):
        return [dump(shape.element, item) for item in value]

    if isinstance(shape, Mapping) and isinstance(value, dict):
        return {str(k): dump(shape.value, v) for k, v in value.items()}

    return _dump_any(value)


def _dump_any(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dump(shape_of(type(value)), value)
    if isinstance(value, dict):
        return {str(k): _dump_any(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_dump_any(v) for v in value]
    return value
