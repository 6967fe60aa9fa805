"""
Request context handed to every handler as its first argument.
"""

from typing import Any, Optional, TYPE_CHECKING

from flask import Request, g

if TYPE_CHECKING:
    from .registry import Operation


class Context:
    """
    Thin view over the current Flask request.

    Usage:
        def get_todo(ctx: Context) -> Todo:
            todo_id = ctx.param("id")
            verbose = ctx.query("verbose", "false")
    """

    def __init__(self, request: Request, operation: "Optional[Operation]" = None):
        self.request = request
        self.operation = operation

    def param(self, name: str) -> Optional[str]:
        """Path variable value, as matched by the router."""
        value = (self.request.view_args or {}).get(name)
        return None if value is None else str(value)

    def query(self, name: str, default: Any = None) -> Any:
        """First query-string value for name."""
        return self.request.args.get(name, default)

    def header(self, name: str, default: Any = None) -> Any:
        return self.request.headers.get(name, default)

    @property
    def body(self) -> bytes:
        """Raw request body."""
        return self.request.get_data(cache=True)

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def request_id(self) -> Optional[str]:
        return getattr(g, "request_id", None)
