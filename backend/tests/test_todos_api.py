"""
Integration tests for the example Todo API (app.py + routes/todos.py).
"""

import pytest

from routes.todos import ListTodosRequest


def _create(client, title="Read a book", description=""):
    response = client.post("/api/todos", json={"title": title, "description": description})
    assert response.status_code == 201
    return response.get_json()["data"]


class TestTodoCrud:
    """Create / read / update / delete"""

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["status"] == "healthy"
        assert "T" in data["time"]

    def test_create(self, client):
        todo = _create(client, "Write docs", "For the API")
        assert todo["title"] == "Write docs"
        assert todo["completed"] is False
        assert todo["id"]

    def test_create_validation(self, client, app):
        before = len(app.extensions["todo_store"])
        response = client.post("/api/todos", json={"title": "ab"})

        assert response.status_code == 400
        body = response.get_json()
        assert body["success"] is False
        assert "'title' must be at least 3 characters long" in body["error"]
        assert len(app.extensions["todo_store"]) == before

    def test_get(self, client):
        todo = _create(client)
        response = client.get(f"/api/todos/{todo['id']}")
        assert response.status_code == 200
        assert response.get_json()["data"]["title"] == "Read a book"

    def test_get_missing(self, client):
        response = client.get("/api/todos/does-not-exist")
        assert response.status_code == 404
        assert response.get_json() == {"error": "todo not found", "success": False}

    def test_update(self, client):
        todo = _create(client)
        response = client.put(f"/api/todos/{todo['id']}", json={"completed": True})

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["completed"] is True
        assert data["title"] == "Read a book"

    def test_update_validation(self, client):
        todo = _create(client)
        response = client.put(f"/api/todos/{todo['id']}", json={"title": "no"})
        assert response.status_code == 400

    def test_delete(self, client):
        todo = _create(client)
        response = client.delete(f"/api/todos/{todo['id']}")
        assert response.status_code == 204
        assert client.get(f"/api/todos/{todo['id']}").status_code == 404

    def test_delete_missing(self, client):
        assert client.delete("/api/todos/does-not-exist").status_code == 404


class TestTodoListing:
    """Query binding on GET /api/todos"""

    def test_defaults(self, client):
        data = client.get("/api/todos").get_json()["data"]
        assert data["page"] == 1
        assert data["limit"] == 10
        assert data["total_count"] == 2

    def test_paging(self, client):
        for i in range(3):
            _create(client, f"Todo number {i}")

        data = client.get("/api/todos?page=2&limit=2").get_json()["data"]
        assert data["page"] == 2
        assert data["limit"] == 2
        assert data["total_count"] == 5
        assert len(data["todos"]) == 2

    def test_filter_completed(self, client):
        data = client.get("/api/todos?completed=true").get_json()["data"]
        assert data["total_count"] == 1
        assert all(t["completed"] for t in data["todos"])

    def test_sort(self, client):
        _create(client, "Aardvark care")
        titles = [t["title"] for t in client.get("/api/todos?sort=title").get_json()["data"]["todos"]]
        assert titles == sorted(titles)

    def test_list_request_defaults(self):
        request = ListTodosRequest()
        assert (request.page, request.limit, request.completed, request.sort) == (0, 0, None, "")

    @pytest.mark.parametrize("query", ["limit=500", "page=-1", "sort=priority", "page=abc"])
    def test_invalid_queries(self, client, query):
        response = client.get(f"/api/todos?{query}")
        assert response.status_code == 400
        assert response.get_json()["success"] is False


class TestDocumentation:
    """Spec and docs endpoints"""

    def test_openapi_document(self, client):
        response = client.get("/api/openapi.json")
        assert response.status_code == 200
        doc = response.get_json()

        assert doc["info"]["title"] == "Todo API"
        assert set(doc["paths"]) == {"/api/health", "/api/todos", "/api/todos/{id}"}

        create = doc["paths"]["/api/todos"]["post"]
        schema = create["requestBody"]["content"]["application/json"]["schema"]
        assert schema["required"] == ["title"]
        assert schema["properties"]["title"]["minLength"] == 3
        assert schema["properties"]["title"]["maxLength"] == 200
        assert "201" in create["responses"]

        listing = doc["paths"]["/api/todos"]["get"]
        names = [p["name"] for p in listing["parameters"]]
        assert names == ["page", "limit", "completed", "sort"]

        update = doc["paths"]["/api/todos/{id}"]["put"]
        assert update["security"] == [{"bearerAuth": []}]
        assert doc["components"]["securitySchemes"]["bearerAuth"]["scheme"] == "bearer"

    def test_swagger_ui(self, client):
        response = client.get("/api/docs")
        assert response.status_code == 200
        assert b"SwaggerUIBundle" in response.data

    def test_request_id_and_cors(self, client):
        response = client.get("/api/health", headers={"Origin": "http://example.com"})
        assert response.headers.get("X-Request-ID")
        assert response.headers.get("Access-Control-Allow-Origin") == "*"
