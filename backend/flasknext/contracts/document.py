"""
Document assembly - registered operations -> OpenAPI 3.0 document.

For each operation, in registration order:
- path parameters from path variables (string, required)
- header parameters from Route.request_headers
- query parameters from input fields with a query binding name (GET/DELETE)
- request body from the input shape, one media type per content type (POST/PUT/PATCH)
- success response keyed by Route.success_status, wrapping the output schema
  in the {data, error, success} envelope
- fixed 400 and 500 responses describing the error envelope
- security requirements referencing schemes registered on the app

Document-level metadata (info, servers, security schemes) are pydantic
models, frozen once built.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField

from ..errors import ConfigurationError
from .derive import derive, derive_field
from .registry import Operation, SchemaMode, Security
from .shapes import Shape, Structured


logger = logging.getLogger('flasknext.contracts.document')


OPENAPI_VERSION = "3.0.3"
JSON_MEDIA_TYPE = "application/json"


# =============================================================================
# DOCUMENT METADATA MODELS
# =============================================================================

class DocumentModel(BaseModel):
    """
    Base model for document metadata.

    - frozen=True: immutable once set on the app
    - populate_by_name=True: accept both alias and field name
    - extra='ignore': ignore undeclared fields
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra='ignore',
    )

    def to_openapi(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, exclude_defaults=True)


class Contact(DocumentModel):
    name: str = ""
    url: str = ""
    email: str = ""


class License(DocumentModel):
    name: str
    url: str = ""


class Server(DocumentModel):
    url: str
    description: str = ""


class Info(DocumentModel):
    title: str = "API"
    version: str = "1.0.0"
    description: str = ""
    contact: Optional[Contact] = None
    license: Optional[License] = None

    def to_openapi(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {"title": self.title, "version": self.version}
        if self.description:
            info["description"] = self.description
        if self.contact is not None:
            info["contact"] = self.contact.to_openapi()
        if self.license is not None:
            info["license"] = self.license.to_openapi()
        return info


class SecurityScheme(DocumentModel):
    """OpenAPI securityScheme object."""
    type: str
    scheme: Optional[str] = None
    bearer_format: Optional[str] = PydanticField(default=None, alias="bearerFormat")
    name: Optional[str] = None
    location: Optional[str] = PydanticField(default=None, alias="in")
    flows: Optional[Dict[str, Any]] = None

    @classmethod
    def from_security(cls, security: Security) -> "SecurityScheme":
        """
        Translate a Security declaration into a scheme definition.

            bearer -> http/bearer (+ bearerFormat)
            basic  -> http/basic
            apiKey -> apiKey with name/in
            oauth2 -> oauth2 (flows left empty)

        Raises:
            ConfigurationError: for unknown security types
        """
        if security.type == "bearer":
            return cls(type="http", scheme="bearer", bearer_format=security.scheme or None)
        if security.type == "basic":
            return cls(type="http", scheme="basic")
        if security.type == "apiKey":
            return cls(type="apiKey", name=security.name, location=security.location or "header")
        if security.type == "oauth2":
            return cls(type="oauth2", flows={})
        raise ConfigurationError(f"Unsupported security type: {security.type}")

    def to_openapi(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# ASSEMBLY
# =============================================================================

def assemble(
    operations: Iterable[Operation],
    info: Optional[Info] = None,
    servers: Iterable[Server] = (),
    security_schemes: Optional[Mapping[str, SecurityScheme]] = None,
    mode: SchemaMode = SchemaMode.WARN,
) -> Dict[str, Any]:
    """
    Assemble the OpenAPI document.

    Raises:
        ConfigurationError: in STRICT mode, if an operation references a
            security scheme that was never registered
    """
    info = info or Info()
    security_schemes = dict(security_schemes or {})

    paths: Dict[str, Dict[str, Any]] = {}
    for operation in operations:
        item = paths.setdefault(operation.path.openapi_path, {})
        item[operation.verb.lower()] = build_operation(operation, security_schemes, mode)

    document: Dict[str, Any] = {
        "openapi": OPENAPI_VERSION,
        "info": info.to_openapi(),
    }
    servers = [server.to_openapi() for server in servers]
    if servers:
        document["servers"] = servers
    document["paths"] = paths

    components: Dict[str, Any] = {}
    if security_schemes:
        components["securitySchemes"] = {
            name: scheme.to_openapi() for name, scheme in security_schemes.items()
        }
    document["components"] = components
    return document


def build_operation(
    operation: Operation,
    security_schemes: Mapping[str, SecurityScheme],
    mode: SchemaMode = SchemaMode.WARN,
) -> Dict[str, Any]:
    """OpenAPI operation object for one registered operation."""
    route = operation.route
    result: Dict[str, Any] = {"operationId": operation.operation_id}
    if route.summary:
        result["summary"] = route.summary
    if route.description:
        result["description"] = route.description
    if route.tags:
        result["tags"] = list(route.tags)

    parameters = path_parameters(operation) + header_parameters(operation)
    if operation.input_shape is not None:
        if operation.has_body:
            result["requestBody"] = request_body(operation)
        else:
            parameters += query_parameters(operation.input_shape, exclude=operation.path.variables)
    if parameters:
        result["parameters"] = parameters

    responses: Dict[str, Any] = {}
    if operation.output_shape is not None:
        responses[str(route.success_status)] = success_response(operation)
    responses["400"] = error_response("Bad request")
    responses["500"] = error_response("Internal server error")
    result["responses"] = responses

    security = security_requirements(operation, security_schemes, mode)
    if security:
        result["security"] = security

    return result


def path_parameters(operation: Operation) -> List[Dict[str, Any]]:
    return [
        {
            "name": name,
            "in": "path",
            "required": True,
            "schema": {"type": "string"},
        }
        for name in operation.path.variables
    ]


def header_parameters(operation: Operation) -> List[Dict[str, Any]]:
    parameters = []
    for name, header in operation.route.request_headers.items():
        param: Dict[str, Any] = {
            "name": name,
            "in": "header",
            "required": header.required,
            "schema": {"type": header.schema or "string"},
        }
        if header.description:
            param["description"] = header.description
        parameters.append(param)
    return parameters


def query_parameters(shape: Shape, exclude: Iterable[str] = ()) -> List[Dict[str, Any]]:
    """Query parameters for input fields declared with a query binding name."""
    if not isinstance(shape, Structured):
        return []

    excluded = set(exclude)
    parameters = []
    for field in shape.fields:
        if not field.query_name or field.query_name in excluded:
            continue
        parameters.append({
            "name": field.query_name,
            "in": "query",
            "required": field.constraints.required,
            "schema": derive_field(field),
        })
    return parameters


def request_body(operation: Operation) -> Dict[str, Any]:
    route = operation.route
    content = {}
    for content_type in route.content_types:
        media: Dict[str, Any] = {"schema": derive(operation.input_shape)}
        if route.examples:
            media["examples"] = {name: {"value": value} for name, value in route.examples.items()}
        content[content_type] = media
    return {"required": True, "content": content}


def envelope_schema(data_schema: Dict[str, Any]) -> Dict[str, Any]:
    """The runtime envelope, described as a schema."""
    return {
        "type": "object",
        "properties": {
            "success": {"type": "boolean"},
            "data": data_schema,
            "error": {"type": "string"},
        },
        "required": ["success"],
    }


def error_envelope_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "success": {"type": "boolean", "default": False},
            "error": {"type": "string"},
        },
        "required": ["success", "error"],
    }


def success_response(operation: Operation) -> Dict[str, Any]:
    response: Dict[str, Any] = {
        "description": "Successful response",
        "content": {
            JSON_MEDIA_TYPE: {"schema": envelope_schema(derive(operation.output_shape))},
        },
    }
    headers = operation.route.response_headers
    if headers:
        response["headers"] = {
            name: _header_object(header) for name, header in headers.items()
        }
    return response


def error_response(description: str) -> Dict[str, Any]:
    return {
        "description": description,
        "content": {
            JSON_MEDIA_TYPE: {"schema": error_envelope_schema()},
        },
    }


def _header_object(header) -> Dict[str, Any]:
    obj: Dict[str, Any] = {"schema": {"type": header.schema or "string"}}
    if header.description:
        obj["description"] = header.description
    return obj


def security_requirements(
    operation: Operation,
    security_schemes: Mapping[str, SecurityScheme],
    mode: SchemaMode = SchemaMode.WARN,
) -> List[Dict[str, List[str]]]:
    """
    Security requirement objects for an operation.

    A requirement naming an unregistered scheme is a configuration
    inconsistency: logged and emitted as-is in WARN mode, raised in STRICT.
    """
    requirements = []
    for security in operation.route.security:
        name = security.requirement_name()
        if name is None:
            logger.debug(f"Skipping unnamed {security.type} requirement on {operation.operation_id}")
            continue

        if name not in security_schemes:
            message = (
                f"Operation {operation.verb} {operation.path.openapi_path} references "
                f"undeclared security scheme '{name}'"
            )
            if mode == SchemaMode.STRICT:
                raise ConfigurationError(message)
            logger.warning(message, extra={"event": "unresolved_security_scheme", "scheme": name})

        requirements.append({name: []})
    return requirements
