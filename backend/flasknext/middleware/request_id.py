"""
Request ID middleware - Inject X-Request-ID for request correlation.

The id is available to handlers as Context.request_id and is echoed
back on every response, error envelopes included.
"""

import uuid
from flask import Flask, request, g


REQUEST_ID_HEADER = 'X-Request-ID'


def setup_request_id_middleware(app: Flask) -> None:
    """
    Set up request ID middleware on Flask app.

    Injects X-Request-ID into:
    - Flask's g object (g.request_id)
    - Response headers (X-Request-ID)
    """

    @app.before_request
    def inject_request_id():
        # Reuse the caller's id if provided
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

    @app.after_request
    def add_request_id_header(response):
        if hasattr(g, 'request_id'):
            response.headers[REQUEST_ID_HEADER] = g.request_id
        return response


def get_request_id() -> str:
    """
    Get current request ID from Flask context.

    Returns:
        Request ID string, or a fresh UUID outside a tagged request
    """
    if hasattr(g, 'request_id'):
        return g.request_id
    return str(uuid.uuid4())
