"""
Error envelope middleware - Standardize error responses produced outside handlers.

Routing failures (404, 405), aborts in before_request hooks and unhandled
exceptions get the same envelope as handler failures:

    {"error": "The requested URL was not found on the server...", "success": false}
"""

import logging
from flask import Flask, jsonify, g
from werkzeug.exceptions import HTTPException

from ..serializers.response import error_envelope


logger = logging.getLogger('flasknext.middleware.error')


def setup_error_handlers(app: Flask) -> None:
    """
    Set up envelope-shaped error handlers on Flask app.

    Handles:
    - HTTP exceptions (400, 404, 405, etc.), status preserved
    - Unhandled Python exceptions, as 500
    """

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return make_error_response(error.description or error.name, error.code or 500)

    @app.errorhandler(Exception)
    def handle_generic_error(error):
        request_id = getattr(g, 'request_id', None)

        logger.exception(
            f"Unhandled error: {error}",
            extra={
                "event": "unhandled_error",
                "request_id": request_id,
                "error_type": type(error).__name__,
            }
        )

        return make_error_response("An unexpected error occurred", 500)


def make_error_response(message: str, status_code: int = 500):
    """
    Create an error envelope response.

    Returns:
        Tuple of (response, status_code)
    """
    request_id = getattr(g, 'request_id', None)

    response = jsonify(error_envelope(message).to_dict())
    if request_id:
        response.headers['X-Request-ID'] = request_id

    return response, status_code
