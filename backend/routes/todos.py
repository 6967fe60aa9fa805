"""
Todo Routes - in-memory todo management API.

Every handler is typed: request shapes are bound and validated before the
handler runs, and return values are wrapped in the {data, success} envelope.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flasknext import App, Context, HTTPError, Route, Security, api_field


# =============================================================================
# SHAPES
# =============================================================================

@dataclass
class Todo:
    id: str = api_field(example="3f2b8c1e")
    title: str = api_field(example="Buy groceries")
    description: str = api_field(example="Milk, eggs, bread")
    completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class CreateTodoRequest:
    title: str = api_field(validate="required,min=3,max=200", example="Buy groceries")
    description: str = api_field(validate="max=1000", example="Milk, eggs, bread")


@dataclass
class UpdateTodoRequest:
    title: str = api_field(json="title,omitempty", validate="omitempty,min=3,max=200")
    description: str = api_field(json="description,omitempty", validate="omitempty,max=1000")
    completed: Optional[bool] = api_field(json="completed,omitempty", default=None)


@dataclass
class ListTodosRequest:
    page: int = api_field(query="page", validate="omitempty,min=1", example=1, default=0)
    limit: int = api_field(query="limit", validate="omitempty,min=1,max=100", example=10, default=0)
    completed: Optional[bool] = api_field(query="completed", default=None)
    sort: str = api_field(query="sort", validate="omitempty,oneof=created_at updated_at title", default="")


@dataclass
class ListTodosResponse:
    todos: List[Todo] = field(default_factory=list)
    total_count: int = 0
    page: int = 0
    limit: int = 0


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


# =============================================================================
# STORAGE
# =============================================================================

class TodoStore:
    """Thread-safe in-memory todo storage, insertion ordered."""

    def __init__(self):
        self._todos: Dict[str, Todo] = {}
        self._lock = threading.Lock()

    def add(self, title: str, description: str = "", completed: bool = False) -> Todo:
        now = datetime.now(timezone.utc)
        todo = Todo(
            id=uuid.uuid4().hex[:8],
            title=title,
            description=description,
            completed=completed,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._todos[todo.id] = todo
        return todo

    def get(self, todo_id: str) -> Optional[Todo]:
        with self._lock:
            return self._todos.get(todo_id)

    def all(self) -> List[Todo]:
        with self._lock:
            return list(self._todos.values())

    def remove(self, todo_id: str) -> bool:
        with self._lock:
            return self._todos.pop(todo_id, None) is not None

    def __len__(self) -> int:
        return len(self._todos)


def seed(store: TodoStore) -> None:
    store.add("Learn flasknext", "Read the docs and build an API")
    store.add("Write tests", "Cover the handlers with pytest", completed=True)


# =============================================================================
# ROUTES
# =============================================================================

def register_todo_routes(api: App, store: Optional[TodoStore] = None, prefix: str = "/api") -> TodoStore:
    """
    Register the todo endpoints on an App.

    Returns:
        The backing store (seeded when created here)
    """
    if store is None:
        store = TodoStore()
        seed(store)

    def health_check(ctx: Context) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": "todo-api",
            "time": datetime.now(timezone.utc),
        }

    def create_todo(ctx: Context, req: CreateTodoRequest) -> Todo:
        return store.add(req.title, req.description)

    def list_todos(ctx: Context, req: ListTodosRequest) -> ListTodosResponse:
        page = req.page or DEFAULT_PAGE
        limit = req.limit or DEFAULT_LIMIT

        todos = store.all()
        if req.completed is not None:
            todos = [t for t in todos if t.completed == req.completed]
        if req.sort:
            todos.sort(key=lambda t: getattr(t, req.sort))

        start = (page - 1) * limit
        return ListTodosResponse(
            todos=todos[start:start + limit],
            total_count=len(todos),
            page=page,
            limit=limit,
        )

    def get_todo(ctx: Context) -> Todo:
        todo = store.get(ctx.param("id"))
        if todo is None:
            raise HTTPError(404, "todo not found")
        return todo

    def update_todo(ctx: Context, req: UpdateTodoRequest) -> Todo:
        todo = store.get(ctx.param("id"))
        if todo is None:
            raise HTTPError(404, "todo not found")

        if req.title:
            todo.title = req.title
        if req.description:
            todo.description = req.description
        if req.completed is not None:
            todo.completed = req.completed
        todo.updated_at = datetime.now(timezone.utc)
        return todo

    def delete_todo(ctx: Context) -> None:
        if not store.remove(ctx.param("id")):
            raise HTTPError(404, "todo not found")

    api.get(f"{prefix}/health", health_check, summary="Health check", tags=["System"])

    api.post(
        f"{prefix}/todos",
        create_todo,
        Route(
            summary="Create a new todo",
            description="Creates a new todo item with the provided title and description",
            tags=["Todos"],
            success_status=201,
            examples={"groceries": {"title": "Buy groceries", "description": "Milk, eggs, bread"}},
        ),
    )
    api.get(
        f"{prefix}/todos",
        list_todos,
        summary="List todos",
        description="Returns a paginated list of todos with optional filtering",
        tags=["Todos"],
    )
    api.get(
        f"{prefix}/todos/:id",
        get_todo,
        summary="Get todo by ID",
        description="Returns a single todo item by its ID",
        tags=["Todos"],
    )
    api.put(
        f"{prefix}/todos/:id",
        update_todo,
        summary="Update todo",
        description="Updates an existing todo item",
        tags=["Todos"],
        security=[Security(type="bearer")],
    )
    api.delete(
        f"{prefix}/todos/:id",
        delete_todo,
        summary="Delete todo",
        description="Deletes a todo item by its ID",
        tags=["Todos"],
        security=[Security(type="bearer")],
    )

    return store
