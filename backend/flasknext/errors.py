"""
Error taxonomy.

- ConfigurationError: bad registration or declaration, raised at startup
- BadInput: request could not be bound or failed validation (400)
- HTTPError: raised by handlers to fail with an explicit status code
"""

from typing import Any, Dict, Optional


class ConfigurationError(Exception):
    """Raised when a route, shape or document setting is declared incorrectly."""


class BadInput(ValueError):
    """Raised when a request cannot be bound to, or validated against, its input shape."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details or {}

    def __str__(self):
        return self.message


class HTTPError(Exception):
    """
    Operation failure carrying an explicit transport status.

    Usage:
        def get_todo(ctx: Context) -> Todo:
            todo = TODOS.get(ctx.param("id"))
            if todo is None:
                raise HTTPError(404, "todo not found")
            return todo
    """

    def __init__(self, status_code: int, message: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self):
        return self.message

    def __repr__(self):
        return f"HTTPError(status_code={self.status_code}, message={self.message!r})"
