"""
Global middleware for API requests.

Provides:
- Request ID injection (X-Request-ID)
- Operation logging (failures, watchlist, sampling)
- Error envelope standardization
"""

from .request_id import setup_request_id_middleware, get_request_id
from .operation_logging import setup_operation_logging
from .error_envelope import setup_error_handlers

__all__ = [
    'setup_request_id_middleware',
    'get_request_id',
    'setup_operation_logging',
    'setup_error_handlers',
]
