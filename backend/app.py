"""
Flask Application Factory - Todo API built on flasknext.

Typed handlers are registered on a flasknext App; the OpenAPI document
and the Swagger UI are served alongside them.
"""

import logging

from flask import Flask
from flask_cors import CORS

from flasknext import App, Security, Server
from flasknext.config import Config
from flasknext.middleware import (
    setup_error_handlers,
    setup_request_id_middleware,
    setup_operation_logging,
)
from routes.todos import register_todo_routes


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    CORS(app,
         resources={r"/api/*": {"origins": "*"}},
         methods=["GET", "POST", "OPTIONS", "PUT", "PATCH", "DELETE"],
         allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
         expose_headers=["X-Request-ID"],
         supports_credentials=False,
         send_wildcard=True)

    # === MIDDLEWARE ===
    setup_request_id_middleware(app)
    setup_operation_logging(app)
    setup_error_handlers(app)

    # === API ===
    api = App(app)
    api.set_info(
        "Todo API",
        "1.0.0",
        "A simple todo management API built with flasknext",
    )
    api.set_servers([Server(url="http://localhost:5000", description="Local development")])
    api.add_security_scheme("bearerAuth", Security(type="bearer", scheme="JWT"))

    app.extensions["todo_store"] = register_todo_routes(api)
    app.extensions["flasknext"] = api

    api.serve_openapi_spec(app.config["OPENAPI_PATH"])
    api.serve_swagger_ui(app.config["DOCS_PATH"], app.config["OPENAPI_PATH"])

    return app


def run_app():
    """Main entry point for local development - starts server with Flask's dev server."""
    logging.basicConfig(level=logging.INFO)

    app = create_app()

    print("=" * 60)
    print("Starting Todo API")
    print(f"   API documentation: http://localhost:5000{app.config['DOCS_PATH']}")
    print("=" * 60)
    app.run(debug=app.config.get("DEBUG", False), host="0.0.0.0", port=5000)


if __name__ == "__main__":
    run_app()
