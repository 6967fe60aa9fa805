"""
Contract package.

Typed shapes, constraint annotations, schema derivation, the operation
registry, request binding/validation and OpenAPI document assembly.
"""

from .annotations import ConstraintSet, parse_constraints
from .context import Context
from .derive import derive
from .document import Contact, Info, License, SecurityScheme, Server, assemble
from .registry import (
    HandlerKind,
    HeaderInfo,
    Operation,
    OperationRegistry,
    Route,
    SchemaMode,
    Security,
)
from .shapes import api_field, shape_of
from .validate import ContractViolation
from .wrapper import make_view

__all__ = [
    'ConstraintSet',
    'parse_constraints',
    'Context',
    'derive',
    'Contact',
    'Info',
    'License',
    'SecurityScheme',
    'Server',
    'assemble',
    'HandlerKind',
    'HeaderInfo',
    'Operation',
    'OperationRegistry',
    'Route',
    'SchemaMode',
    'Security',
    'api_field',
    'shape_of',
    'ContractViolation',
    'make_view',
]
