"""
flasknext - typed handlers for Flask with a generated OpenAPI document.
"""

from .app import App
from .contracts import (
    Context,
    HeaderInfo,
    Route,
    SchemaMode,
    Security,
    Server,
    api_field,
)
from .errors import BadInput, ConfigurationError, HTTPError

__version__ = "0.1.0"

__all__ = [
    'App',
    'Context',
    'HeaderInfo',
    'Route',
    'SchemaMode',
    'Security',
    'Server',
    'api_field',
    'BadInput',
    'ConfigurationError',
    'HTTPError',
]
