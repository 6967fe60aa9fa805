"""
Operation logging - one line per typed-handler call.

The handler view records the Operation it served (and how long the
bind/invoke/envelope pipeline took) on flask.g; this middleware turns
that into a log record on "flasknext.operations". Requests that did not
reach a typed handler (the document, the docs page, 404s) are not logged
here.

Which calls are logged:
- failures (status >= 400), always
- operations listed in OPERATION_LOG_WATCHLIST (operation ids), always
- everything else at OPERATION_LOG_SAMPLE_RATE
"""

import logging
import random
from typing import FrozenSet

from flask import Flask, g


logger = logging.getLogger("flasknext.operations")


def _watchlist(raw) -> FrozenSet[str]:
    if not raw:
        return frozenset()
    if isinstance(raw, str):
        raw = raw.split(",")
    return frozenset(item.strip() for item in raw if item.strip())


def setup_operation_logging(app: Flask) -> None:
    """
    Log typed-handler calls served by this Flask app.

    Reads app.config:
      - OPERATION_LOG_ENABLED (default: True)
      - OPERATION_LOG_SAMPLE_RATE (default: 0.0)
      - OPERATION_LOG_WATCHLIST (operation ids, comma-separated or a list)
    """
    if not app.config.get("OPERATION_LOG_ENABLED", True):
        return

    try:
        sample_rate = float(app.config.get("OPERATION_LOG_SAMPLE_RATE", 0.0))
    except (TypeError, ValueError):
        sample_rate = 0.0
    watchlist = _watchlist(app.config.get("OPERATION_LOG_WATCHLIST"))

    @app.after_request
    def _log_operation(response):
        operation = g.get("operation")
        if operation is None:
            return response

        status = response.status_code
        if status < 400 and operation.operation_id not in watchlist:
            if sample_rate <= 0 or random.random() > sample_rate:
                return response

        logger.log(
            logging.WARNING if status >= 500 else logging.INFO,
            f"operation={operation.operation_id} {operation.verb} {operation.path.raw} "
            f"status={status} elapsed_ms={g.get('operation_elapsed_ms')} "
            f"request_id={g.get('request_id')}",
            extra={
                "event": "operation",
                "operation": operation.operation_id,
                "status": status,
            },
        )
        return response
