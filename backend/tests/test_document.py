"""
Tests for flasknext/contracts/document.py
"""

import logging
from dataclasses import dataclass, field
from typing import List

import pytest

from flasknext import ConfigurationError, Context, HeaderInfo, Route, Security, api_field
from flasknext.contracts.document import (
    Contact,
    Info,
    License,
    SecurityScheme,
    Server,
    assemble,
)
from flasknext.contracts.registry import OperationRegistry, SchemaMode


@dataclass
class CreateUserRequest:
    name: str = api_field(validate="required,min=2", example="Jane", default="")
    email: str = api_field(validate="required,email", default="")


@dataclass
class User:
    id: str = ""
    name: str = ""
    email: str = ""


@dataclass
class ListUsersRequest:
    page: int = api_field(query="page", validate="min=1", default=1)
    limit: int = api_field(query="limit", validate="required,min=1,max=100", default=10)
    internal: str = ""


@dataclass
class UserPage:
    users: List[User] = field(default_factory=list)
    total: int = 0


def create_user(ctx: Context, req: CreateUserRequest) -> User:
    return User()


def list_users(ctx: Context, req: ListUsersRequest) -> UserPage:
    return UserPage()


def get_user(ctx: Context) -> User:
    return User()


def delete_user(ctx: Context) -> None:
    pass


@pytest.fixture
def registry():
    registry = OperationRegistry()
    registry.register("POST", "/users", create_user, Route(
        summary="Create user",
        description="Creates a user",
        tags=["Users"],
        success_status=201,
        request_headers={"X-Tenant": HeaderInfo(description="Tenant id", required=True)},
        response_headers={"Location": HeaderInfo(description="New user URL")},
        content_types=["application/json", "application/x-www-form-urlencoded"],
        examples={"jane": {"name": "Jane", "email": "jane@example.com"}},
        security=[Security(type="bearer")],
    ))
    registry.register("GET", "/users", list_users)
    registry.register("GET", "/users/:id", get_user)
    registry.register("DELETE", "/users/:id", delete_user, Route(security=[Security(type="apiKey", name="X-API-Key")]))
    return registry


@pytest.fixture
def schemes():
    return {"bearerAuth": SecurityScheme.from_security(Security(type="bearer", scheme="JWT"))}


class TestAssemble:
    """Tests for assemble()"""

    def test_top_level(self, registry, schemes):
        doc = assemble(
            registry.operations(),
            info=Info(title="Users", version="2.0.0", description="User API",
                      contact=Contact(name="Team", email="team@example.com"),
                      license=License(name="MIT")),
            servers=[Server(url="https://api.example.com", description="prod")],
            security_schemes=schemes,
        )
        assert doc["openapi"] == "3.0.3"
        assert doc["info"] == {
            "title": "Users",
            "version": "2.0.0",
            "description": "User API",
            "contact": {"name": "Team", "email": "team@example.com"},
            "license": {"name": "MIT"},
        }
        assert doc["servers"] == [{"url": "https://api.example.com", "description": "prod"}]
        assert doc["components"]["securitySchemes"] == {
            "bearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
        }

    def test_paths_in_registration_order(self, registry, schemes):
        doc = assemble(registry.operations(), security_schemes=schemes)
        assert list(doc["paths"]) == ["/users", "/users/{id}"]
        assert list(doc["paths"]["/users"]) == ["post", "get"]
        assert list(doc["paths"]["/users/{id}"]) == ["get", "delete"]

    def test_post_operation(self, registry, schemes):
        op = assemble(registry.operations(), security_schemes=schemes)["paths"]["/users"]["post"]

        assert op["operationId"] == "post_create_user"
        assert op["summary"] == "Create user"
        assert op["tags"] == ["Users"]
        assert op["parameters"] == [{
            "name": "X-Tenant",
            "in": "header",
            "required": True,
            "schema": {"type": "string"},
            "description": "Tenant id",
        }]

        body = op["requestBody"]
        assert body["required"] is True
        assert list(body["content"]) == ["application/json", "application/x-www-form-urlencoded"]
        media = body["content"]["application/json"]
        assert media["schema"]["required"] == ["name", "email"]
        assert media["schema"]["properties"]["email"]["format"] == "email"
        assert media["examples"] == {"jane": {"value": {"name": "Jane", "email": "jane@example.com"}}}

        success = op["responses"]["201"]
        envelope = success["content"]["application/json"]["schema"]
        assert envelope["properties"]["data"]["properties"]["id"] == {"type": "string"}
        assert envelope["properties"]["success"] == {"type": "boolean"}
        assert success["headers"] == {"Location": {"schema": {"type": "string"}, "description": "New user URL"}}

        assert op["security"] == [{"bearerAuth": []}]

    def test_error_responses(self, registry, schemes):
        op = assemble(registry.operations(), security_schemes=schemes)["paths"]["/users"]["post"]
        for status in ("400", "500"):
            schema = op["responses"][status]["content"]["application/json"]["schema"]
            assert schema["properties"]["success"] == {"type": "boolean", "default": False}
            assert schema["properties"]["error"] == {"type": "string"}

    def test_query_parameters(self, registry, schemes):
        op = assemble(registry.operations(), security_schemes=schemes)["paths"]["/users"]["get"]
        assert "requestBody" not in op
        assert op["parameters"] == [
            {"name": "page", "in": "query", "required": False, "schema": {"type": "integer", "minimum": 1}},
            {"name": "limit", "in": "query", "required": True,
             "schema": {"type": "integer", "minimum": 1, "maximum": 100}},
        ]

    def test_path_parameters(self, registry, schemes):
        op = assemble(registry.operations(), security_schemes=schemes)["paths"]["/users/{id}"]["get"]
        assert op["parameters"] == [{"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}]

    def test_no_output_no_success_response(self, registry, schemes):
        op = assemble(registry.operations(), security_schemes=schemes)["paths"]["/users/{id}"]["delete"]
        assert set(op["responses"]) == {"400", "500"}

    def test_unresolved_security_warns(self, registry, schemes, caplog):
        with caplog.at_level(logging.WARNING, logger="flasknext.contracts.document"):
            doc = assemble(registry.operations(), security_schemes=schemes)
        assert doc["paths"]["/users/{id}"]["delete"]["security"] == [{"X-API-Key": []}]
        assert any("X-API-Key" in r.getMessage() for r in caplog.records)

    def test_unresolved_security_strict(self, registry, schemes):
        with pytest.raises(ConfigurationError, match="X-API-Key"):
            assemble(registry.operations(), security_schemes=schemes, mode=SchemaMode.STRICT)

    def test_fresh_documents(self, registry, schemes):
        first = assemble(registry.operations(), security_schemes=schemes)
        second = assemble(registry.operations(), security_schemes=schemes)
        assert first == second


class TestSecurityScheme:
    """Tests for SecurityScheme.from_security()"""

    @pytest.mark.parametrize("security,expected", [
        (Security(type="bearer"), {"type": "http", "scheme": "bearer"}),
        (Security(type="basic"), {"type": "http", "scheme": "basic"}),
        (Security(type="apiKey", name="X-API-Key", location="query"),
         {"type": "apiKey", "name": "X-API-Key", "in": "query"}),
        (Security(type="apiKey", name="X-API-Key"), {"type": "apiKey", "name": "X-API-Key", "in": "header"}),
        (Security(type="oauth2"), {"type": "oauth2", "flows": {}}),
    ])
    def test_translation(self, security, expected):
        assert SecurityScheme.from_security(security).to_openapi() == expected

    def test_unknown_type(self):
        with pytest.raises(ConfigurationError):
            SecurityScheme.from_security(Security(type="mutualTLS"))
