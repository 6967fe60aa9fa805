"""
Operation Registry - single source of truth for registered operations.

Each operation has:
- verb + PathTemplate: where it is routed
- handler + HandlerKind: how it is called (resolved once from its signature)
- input/output Shape: derived from the handler's second argument and return annotation
- Route: documentation metadata (summary, tags, security, success status, ...)

Lifecycle is two-phase: operations are registered during startup, then the
registry is frozen (first document build) and read concurrently without
locking. Registration after freeze() is a ConfigurationError.
"""

import inspect
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, get_type_hints

from ..errors import ConfigurationError
from .context import Context
from .shapes import Shape, shape_of


logger = logging.getLogger('flasknext.contracts')


VERBS = ("GET", "POST", "PUT", "PATCH", "DELETE")
BODY_VERBS = ("POST", "PUT", "PATCH")
DEFAULT_CONTENT_TYPE = "application/json"


class SchemaMode(Enum):
    """Contract enforcement mode."""
    WARN = "warn"      # Log inconsistencies, don't fail
    STRICT = "strict"  # Fail on inconsistencies


def parse_mode(value) -> SchemaMode:
    """SchemaMode from a config value ("warn" / "strict" or a SchemaMode)."""
    if isinstance(value, SchemaMode):
        return value
    return SchemaMode.STRICT if str(value or '').lower() == 'strict' else SchemaMode.WARN


def get_default_mode() -> SchemaMode:
    """Get schema mode from environment."""
    return parse_mode(os.environ.get('CONTRACT_MODE', 'warn'))


# =============================================================================
# ROUTE METADATA
# =============================================================================

@dataclass(frozen=True)
class HeaderInfo:
    """Describes a request or response header."""
    description: str = ""
    required: bool = False
    schema: str = "string"              # "string", "integer", ...


@dataclass(frozen=True)
class Security:
    """
    Security requirement (on a route) or scheme definition (on the app).

    type: "bearer", "apiKey", "basic" or "oauth2"
    name: header/query/cookie name for apiKey
    scheme: bearer format for bearer (e.g. "JWT")
    location: "header", "query" or "cookie" for apiKey
    scheme_name: explicit name of the registered scheme to reference
    """
    type: str
    name: str = ""
    scheme: str = ""
    location: str = ""
    scheme_name: Optional[str] = None

    def requirement_name(self) -> Optional[str]:
        """Name of the security scheme this requirement refers to."""
        if self.scheme_name:
            return self.scheme_name
        if self.type == "bearer":
            return "bearerAuth"
        if self.type == "basic":
            return "basicAuth"
        if self.type == "apiKey":
            return self.name or None
        if self.type == "oauth2":
            return "oauth2"
        return None


@dataclass(frozen=True)
class Route:
    """Operation-level documentation metadata."""
    summary: str = ""
    description: str = ""
    tags: Tuple[str, ...] = ()
    security: Tuple[Security, ...] = ()
    success_status: int = 200
    request_headers: Any = field(default_factory=dict)
    response_headers: Any = field(default_factory=dict)
    content_types: Tuple[str, ...] = (DEFAULT_CONTENT_TYPE,)
    examples: Any = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "tags", tuple(self.tags or ()))
        object.__setattr__(self, "security", tuple(self.security or ()))
        object.__setattr__(self, "content_types", tuple(self.content_types or (DEFAULT_CONTENT_TYPE,)))
        object.__setattr__(self, "request_headers", MappingProxyType(dict(self.request_headers or {})))
        object.__setattr__(self, "response_headers", MappingProxyType(dict(self.response_headers or {})))
        object.__setattr__(self, "examples", MappingProxyType(dict(self.examples or {})))
        if not self.success_status:
            object.__setattr__(self, "success_status", 200)
        if not 100 <= int(self.success_status) <= 599:
            raise ConfigurationError(f"Invalid success status: {self.success_status}")


DEFAULT_ROUTE = Route()


# =============================================================================
# PATH TEMPLATES
# =============================================================================

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_FLASK_VAR = re.compile(r"^<(?:(?P<converter>[A-Za-z_][A-Za-z0-9_]*):)?(?P<name>[^<>:]+)>$")


@dataclass(frozen=True)
class PathSegment:
    value: str
    variable: bool = False
    converter: Optional[str] = None


@dataclass(frozen=True)
class PathTemplate:
    """
    Parsed path template. Accepts ":id", "{id}" and Flask's "<id>" / "<int:id>".

        PathTemplate.parse("/todos/:id").flask_rule    -> "/todos/<id>"
        PathTemplate.parse("/todos/:id").openapi_path  -> "/todos/{id}"
    """
    raw: str
    segments: Tuple[PathSegment, ...]

    @classmethod
    def parse(cls, path: str) -> "PathTemplate":
        if not path.startswith("/"):
            path = "/" + path

        segments = []
        for part in path.split("/"):
            name, converter = None, None
            if part.startswith(":"):
                name = part[1:]
            elif part.startswith("{") and part.endswith("}"):
                name = part[1:-1]
            elif part.startswith("<"):
                match = _FLASK_VAR.match(part)
                if not match:
                    raise ConfigurationError(f"Invalid path variable '{part}' in '{path}'")
                name, converter = match.group("name"), match.group("converter")

            if name is None:
                segments.append(PathSegment(part))
                continue
            if not _IDENT.match(name):
                raise ConfigurationError(f"Invalid path variable '{part}' in '{path}'")
            segments.append(PathSegment(name, variable=True, converter=converter))

        names = [s.value for s in segments if s.variable]
        if len(names) != len(set(names)):
            raise ConfigurationError(f"Duplicate path variable in '{path}'")

        return cls(raw=path, segments=tuple(segments))

    @property
    def variables(self) -> Tuple[str, ...]:
        return tuple(s.value for s in self.segments if s.variable)

    @property
    def flask_rule(self) -> str:
        parts = []
        for s in self.segments:
            if not s.variable:
                parts.append(s.value)
            elif s.converter:
                parts.append(f"<{s.converter}:{s.value}>")
            else:
                parts.append(f"<{s.value}>")
        return "/".join(parts)

    @property
    def openapi_path(self) -> str:
        return "/".join("{" + s.value + "}" if s.variable else s.value for s in self.segments)


# =============================================================================
# HANDLER RESOLUTION
# =============================================================================

class HandlerKind(Enum):
    """Supported handler signatures."""
    NO_IO = "no_io"                     # def h(ctx) -> None
    INPUT_ONLY = "input_only"           # def h(ctx, req: In) -> None
    OUTPUT_ONLY = "output_only"         # def h(ctx) -> Out
    INPUT_OUTPUT = "input_output"       # def h(ctx, req: In) -> Out

    @property
    def takes_input(self) -> bool:
        return self in (HandlerKind.INPUT_ONLY, HandlerKind.INPUT_OUTPUT)


_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def resolve_handler(handler: Any) -> Tuple[HandlerKind, Any, Any]:
    """
    Resolve a handler's signature into (kind, input_type, output_type).

    Raises:
        ConfigurationError: if handler is not a callable taking a context first
    """
    if not callable(handler):
        raise ConfigurationError(f"handler must be callable, got {type(handler).__name__}")

    try:
        signature = inspect.signature(handler)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Cannot inspect handler {handler!r}: {e}") from e

    name = _handler_name(handler)
    params = list(signature.parameters.values())
    positional = [p for p in params if p.kind in _POSITIONAL]

    if not positional:
        raise ConfigurationError(f"handler '{name}' must take a context as its first argument")
    if any(p.default is p.empty for p in positional[2:]):
        raise ConfigurationError(f"handler '{name}' takes more than (context, request) arguments")
    if any(p.kind is inspect.Parameter.KEYWORD_ONLY and p.default is p.empty for p in params):
        raise ConfigurationError(f"handler '{name}' has required keyword-only arguments")

    target = handler if inspect.isroutine(handler) else type(handler).__call__
    try:
        hints = get_type_hints(target)
    except NameError as e:
        raise ConfigurationError(f"Cannot resolve type hints for handler '{name}': {e}") from e
    except TypeError:
        hints = {}

    ctx_type = hints.get(positional[0].name)
    if ctx_type is not None and not (isinstance(ctx_type, type) and issubclass(ctx_type, Context)):
        raise ConfigurationError(
            f"handler '{name}' first argument must be a Context, got {ctx_type!r}"
        )

    input_type = None
    if len(positional) >= 2 and positional[1].default is positional[1].empty:
        input_type = hints.get(positional[1].name)
        if input_type is None:
            raise ConfigurationError(
                f"handler '{name}' argument '{positional[1].name}' needs a type annotation"
            )

    output_type = hints.get("return")
    if output_type is type(None):
        output_type = None

    if input_type is not None:
        kind = HandlerKind.INPUT_OUTPUT if output_type is not None else HandlerKind.INPUT_ONLY
    else:
        kind = HandlerKind.OUTPUT_ONLY if output_type is not None else HandlerKind.NO_IO

    return kind, input_type, output_type


def _handler_name(handler: Any) -> str:
    return getattr(handler, "__name__", None) or type(handler).__name__


# =============================================================================
# OPERATIONS
# =============================================================================

@dataclass(frozen=True)
class Operation:
    """One registered endpoint. Immutable after registration."""
    verb: str
    path: PathTemplate
    handler: Callable
    kind: HandlerKind
    route: Route = DEFAULT_ROUTE
    input_shape: Optional[Shape] = None
    output_shape: Optional[Shape] = None
    index: int = 0

    @property
    def has_body(self) -> bool:
        return self.verb in BODY_VERBS

    @property
    def name(self) -> str:
        return _handler_name(self.handler)

    @property
    def operation_id(self) -> str:
        return f"{self.verb.lower()}_{self.name}"

    @property
    def endpoint(self) -> str:
        """Unique Flask endpoint name."""
        return f"flasknext.{self.index}.{self.operation_id}"


class OperationRegistry:
    """Ordered, append-only collection of operations."""

    def __init__(self):
        self._operations: List[Operation] = []
        self._keys: Dict[Tuple[str, str], Operation] = {}
        self._frozen = False

    def register(
        self,
        verb: str,
        path: str,
        handler: Callable,
        route: Optional[Route] = None,
    ) -> Operation:
        """
        Register an operation.

        Raises:
            ConfigurationError: on a bad verb, path or handler, a duplicate
                (verb, path), or registration after freeze()
        """
        if self._frozen:
            raise ConfigurationError(f"Cannot register {verb} {path}: registry is frozen")

        verb = verb.upper()
        if verb not in VERBS:
            raise ConfigurationError(f"Unsupported HTTP verb: {verb}")

        template = PathTemplate.parse(path)
        key = (verb, template.openapi_path)
        if key in self._keys:
            raise ConfigurationError(f"Duplicate operation: {verb} {template.openapi_path}")

        kind, input_type, output_type = resolve_handler(handler)
        operation = Operation(
            verb=verb,
            path=template,
            handler=handler,
            kind=kind,
            route=route or DEFAULT_ROUTE,
            input_shape=shape_of(input_type) if input_type is not None else None,
            output_shape=shape_of(output_type) if output_type is not None else None,
            index=len(self._operations),
        )

        self._operations.append(operation)
        self._keys[key] = operation
        logger.debug(f"Registered operation {verb} {template.openapi_path} ({kind.value})")
        return operation

    def operations(self) -> Tuple[Operation, ...]:
        """All operations in registration order."""
        return tuple(self._operations)

    def get(self, verb: str, path: str) -> Optional[Operation]:
        return self._keys.get((verb.upper(), PathTemplate.parse(path).openapi_path))

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations())
