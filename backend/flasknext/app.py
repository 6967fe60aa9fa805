"""
Application facade.

Wraps a Flask app: typed handlers are registered per verb, mounted as
Flask views, and described in a generated OpenAPI document.

Usage:
    api = App(flask_app)
    api.set_info("Todo API", "1.0.0", "Manage todos")

    @api.post("/todos", summary="Create a todo", tags=["Todos"])
    def create_todo(ctx: Context, req: CreateTodoRequest) -> Todo:
        ...

    api.serve_openapi_spec("/api/openapi.json")
    api.serve_swagger_ui("/api/docs", "/api/openapi.json")
"""

import copy
import json
import logging
import threading
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

from flask import Flask, Response

from .contracts.document import (
    Contact,
    Info,
    License,
    SecurityScheme,
    Server,
    assemble,
)
from .contracts.registry import (
    Operation,
    OperationRegistry,
    Route,
    Security,
    get_default_mode,
    parse_mode,
)
from .contracts.wrapper import make_view
from .docs import swagger_ui_html
from .errors import ConfigurationError


logger = logging.getLogger('flasknext')


DEFAULT_OPENAPI_PATH = "/api/openapi.json"
DEFAULT_DOCS_PATH = "/api/docs"


class App:
    """Typed-handler registration plus OpenAPI generation on top of Flask."""

    def __init__(self, flask_app: Optional[Flask] = None, *, config: Any = None, mode: Any = None):
        self.flask_app = flask_app if flask_app is not None else Flask(__name__)
        if config is not None:
            self.flask_app.config.from_object(config)

        settings = self.flask_app.config
        if mode is not None:
            self.mode = parse_mode(mode)
        elif settings.get("CONTRACT_MODE"):
            self.mode = parse_mode(settings["CONTRACT_MODE"])
        else:
            self.mode = get_default_mode()

        self.registry = OperationRegistry()
        self._info = Info(
            title=settings.get("API_TITLE") or "API",
            version=settings.get("API_VERSION") or "1.0.0",
            description=settings.get("API_DESCRIPTION") or "",
        )
        self._servers: Tuple[Server, ...] = ()
        self._security_schemes: Dict[str, SecurityScheme] = {}
        self._document: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Document metadata
    # -------------------------------------------------------------------------

    def set_info(self, title: str, version: str, description: str = "") -> None:
        self._check_open("set_info")
        self._info = Info(
            title=title,
            version=version,
            description=description,
            contact=self._info.contact,
            license=self._info.license,
        )

    def set_contact(self, name: str = "", url: str = "", email: str = "") -> None:
        self._check_open("set_contact")
        self._info = self._info.model_copy(update={"contact": Contact(name=name, url=url, email=email)})

    def set_license(self, name: str, url: str = "") -> None:
        self._check_open("set_license")
        self._info = self._info.model_copy(update={"license": License(name=name, url=url)})

    def set_servers(self, servers: Iterable[Union[Server, Dict[str, str], str]]) -> None:
        self._check_open("set_servers")
        self._servers = tuple(_as_server(s) for s in servers)

    def add_security_scheme(self, name: str, security: Union[Security, SecurityScheme]) -> None:
        """Register a named security scheme (components.securitySchemes)."""
        self._check_open("add_security_scheme")
        if not isinstance(security, SecurityScheme):
            security = SecurityScheme.from_security(security)
        self._security_schemes[name] = security

    @property
    def info(self) -> Info:
        return self._info

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def get(self, path: str, handler: Optional[Callable] = None, route: Optional[Route] = None, **metadata):
        return self.add_operation("GET", path, handler, route, **metadata)

    def post(self, path: str, handler: Optional[Callable] = None, route: Optional[Route] = None, **metadata):
        return self.add_operation("POST", path, handler, route, **metadata)

    def put(self, path: str, handler: Optional[Callable] = None, route: Optional[Route] = None, **metadata):
        return self.add_operation("PUT", path, handler, route, **metadata)

    def patch(self, path: str, handler: Optional[Callable] = None, route: Optional[Route] = None, **metadata):
        return self.add_operation("PATCH", path, handler, route, **metadata)

    def delete(self, path: str, handler: Optional[Callable] = None, route: Optional[Route] = None, **metadata):
        return self.add_operation("DELETE", path, handler, route, **metadata)

    def add_operation(
        self,
        verb: str,
        path: str,
        handler: Optional[Callable] = None,
        route: Optional[Route] = None,
        **metadata,
    ):
        """
        Register a handler for (verb, path) and mount it on the Flask app.

        Route metadata is either a Route or its fields as keywords:
            api.get("/todos/:id", get_todo, summary="Get todo", tags=["Todos"])

        Without a handler, returns a decorator. Either way the handler is
        returned unchanged.

        Raises:
            ConfigurationError: on an invalid handler, path or verb, a
                duplicate registration, or registration after document()
        """
        if metadata:
            if route is not None:
                raise ConfigurationError("Pass either a Route or route keywords, not both")
            route = Route(**metadata)

        if handler is None:
            def decorator(fn: Callable) -> Callable:
                self._mount(verb, path, fn, route)
                return fn
            return decorator

        self._mount(verb, path, handler, route)
        return handler

    def _mount(self, verb: str, path: str, handler: Callable, route: Optional[Route]) -> Operation:
        operation = self.registry.register(verb, path, handler, route)
        self.flask_app.add_url_rule(
            operation.path.flask_rule,
            endpoint=operation.endpoint,
            view_func=make_view(operation),
            methods=[operation.verb],
        )
        return operation

    @property
    def operations(self) -> Tuple[Operation, ...]:
        return self.registry.operations()

    # -------------------------------------------------------------------------
    # Document
    # -------------------------------------------------------------------------

    def document(self) -> Dict[str, Any]:
        """
        The OpenAPI document for every registered operation.

        Built once, on first call; the registry is frozen afterwards.
        Callers get their own copy.

        Raises:
            ConfigurationError: in STRICT mode, on an unresolved security reference
        """
        with self._lock:
            if self._document is None:
                self._document = assemble(
                    self.registry.operations(),
                    info=self._info,
                    servers=self._servers,
                    security_schemes=self._security_schemes,
                    mode=self.mode,
                )
                self.registry.freeze()
                logger.info(
                    f"OpenAPI document built: {len(self.registry)} operations, "
                    f"{len(self._document['paths'])} paths"
                )
        return copy.deepcopy(self._document)

    def serve_openapi_spec(self, path: Optional[str] = None) -> None:
        """Serve the document as JSON at path (default OPENAPI_PATH)."""
        path = path or self.flask_app.config.get("OPENAPI_PATH") or DEFAULT_OPENAPI_PATH

        def openapi_spec() -> Response:
            # unsorted: paths keep registration order
            return Response(json.dumps(self.document()), mimetype="application/json")

        self.flask_app.add_url_rule(
            path, endpoint=f"flasknext.openapi:{path}", view_func=openapi_spec, methods=["GET"]
        )

    def serve_swagger_ui(self, path: Optional[str] = None, spec_path: Optional[str] = None) -> None:
        """Serve the Swagger UI page at path, loading the document from spec_path."""
        settings = self.flask_app.config
        path = path or settings.get("DOCS_PATH") or DEFAULT_DOCS_PATH
        spec_path = spec_path or settings.get("OPENAPI_PATH") or DEFAULT_OPENAPI_PATH

        def swagger_ui() -> Response:
            return Response(swagger_ui_html(self._info.title, spec_path), mimetype="text/html")

        self.flask_app.add_url_rule(
            path, endpoint=f"flasknext.docs:{path}", view_func=swagger_ui, methods=["GET"]
        )

    def __call__(self, environ, start_response):
        return self.flask_app(environ, start_response)

    def _check_open(self, action: str) -> None:
        if self._document is not None:
            raise ConfigurationError(f"Cannot {action} after the document has been built")


def _as_server(server: Union[Server, Dict[str, str], str]) -> Server:
    if isinstance(server, Server):
        return server
    if isinstance(server, str):
        return Server(url=server)
    return Server(**server)
