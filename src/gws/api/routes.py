"""REST API routes for gws."""

from typing import Any, Callable, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from gws.errors import ConflictError, DataError, NotFoundError, TodoIOError, TrackerError
from gws.tools.todo_tools import (
    handle_agenda,
    handle_agenda_move,
    handle_archive_done,
    handle_category_add,
    handle_category_delete,
    handle_category_move,
    handle_category_rename,
    handle_collapse,
    handle_outline,
    handle_project_add,
    handle_project_delete,
    handle_project_move,
    handle_project_toggle,
    handle_project_update,
    handle_reload,
    handle_resolve_conflict,
    handle_save,
    handle_status,
    handle_task_add,
    handle_task_delete,
    handle_task_demote,
    handle_task_move,
    handle_task_note_line,
    handle_task_promote,
    handle_task_update,
)


# ---------------------------------------------------------------------------
# Request body models
# ---------------------------------------------------------------------------


class TaskAddBody(BaseModel):
    project_id: str
    text: str
    note: Optional[str] = None
    index: Optional[int] = None


class TaskUpdateBody(BaseModel):
    text: Optional[str] = None
    state: Optional[str] = None
    note: Optional[str] = None


class NoteLineBody(BaseModel):
    add: Optional[str] = None
    delete_index: Optional[int] = None


class TaskMoveBody(BaseModel):
    direction: Optional[str] = None
    project_id: Optional[str] = None
    index: Optional[int] = None


class DirectionBody(BaseModel):
    direction: str


class ProjectAddBody(BaseModel):
    category_id: str
    name: str
    active: bool = True
    note: Optional[str] = None


class ProjectUpdateBody(BaseModel):
    name: Optional[str] = None
    note: Optional[str] = None


class ProjectMoveBody(BaseModel):
    direction: Optional[str] = None
    category_id: Optional[str] = None
    index: Optional[int] = None


class CategoryAddBody(BaseModel):
    name: str
    index: Optional[int] = None


class CategoryRenameBody(BaseModel):
    name: str


class CollapseBody(BaseModel):
    collapsed: Optional[bool] = None


class ReloadBody(BaseModel):
    discard: bool = False


class ResolveBody(BaseModel):
    choice: str


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def _status_for(error: TrackerError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ConflictError):
        return 409
    if isinstance(error, TodoIOError):
        return 503
    if isinstance(error, DataError):
        return 400
    return 500


def _run(handler: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    try:
        return handler(*args, **kwargs)
    except TrackerError as e:
        raise HTTPException(status_code=_status_for(e), detail=str(e))


# ---------------------------------------------------------------------------
# Route registration
# ---------------------------------------------------------------------------


def register_routes(app_router: APIRouter, loop) -> None:
    """Attach all REST routes that use the shared command loop."""

    # --- Views ---

    @app_router.get("/agenda")
    def get_agenda():
        return _run(handle_agenda, loop)

    @app_router.get("/outline")
    def get_outline():
        return _run(handle_outline, loop)

    # --- Task routes ---

    @app_router.post("/tasks", status_code=201)
    def add_task(body: TaskAddBody):
        return _run(handle_task_add, loop, **body.model_dump())

    @app_router.patch("/tasks/{task_id}")
    def update_task(task_id: str, body: TaskUpdateBody):
        return _run(handle_task_update, loop, task_id=task_id, **body.model_dump())

    @app_router.post("/tasks/{task_id}/note")
    def edit_task_note(task_id: str, body: NoteLineBody):
        return _run(handle_task_note_line, loop, task_id=task_id, **body.model_dump())

    @app_router.delete("/tasks/{task_id}")
    def delete_task(task_id: str):
        return _run(handle_task_delete, loop, task_id=task_id)

    @app_router.post("/tasks/{task_id}/promote")
    def promote_task(task_id: str):
        return _run(handle_task_promote, loop, task_id=task_id)

    @app_router.post("/tasks/{task_id}/demote")
    def demote_task(task_id: str):
        return _run(handle_task_demote, loop, task_id=task_id)

    @app_router.post("/tasks/{task_id}/move")
    def move_task(task_id: str, body: TaskMoveBody):
        return _run(handle_task_move, loop, task_id=task_id, **body.model_dump())

    @app_router.post("/agenda/{task_id}/move")
    def move_agenda_item(task_id: str, body: DirectionBody):
        return _run(handle_agenda_move, loop, task_id=task_id, direction=body.direction)

    # --- Project routes ---

    @app_router.post("/projects", status_code=201)
    def add_project(body: ProjectAddBody):
        return _run(handle_project_add, loop, **body.model_dump())

    @app_router.patch("/projects/{project_id}")
    def update_project(project_id: str, body: ProjectUpdateBody):
        return _run(handle_project_update, loop, project_id=project_id, **body.model_dump())

    @app_router.post("/projects/{project_id}/toggle")
    def toggle_project(project_id: str):
        return _run(handle_project_toggle, loop, project_id=project_id)

    @app_router.delete("/projects/{project_id}")
    def delete_project(project_id: str):
        return _run(handle_project_delete, loop, project_id=project_id)

    @app_router.post("/projects/{project_id}/move")
    def move_project(project_id: str, body: ProjectMoveBody):
        return _run(handle_project_move, loop, project_id=project_id, **body.model_dump())

    # --- Category routes ---

    @app_router.post("/categories", status_code=201)
    def add_category(body: CategoryAddBody):
        return _run(handle_category_add, loop, **body.model_dump())

    @app_router.patch("/categories/{category_id}")
    def rename_category(category_id: str, body: CategoryRenameBody):
        return _run(handle_category_rename, loop, category_id=category_id, name=body.name)

    @app_router.delete("/categories/{category_id}")
    def delete_category(category_id: str):
        return _run(handle_category_delete, loop, category_id=category_id)

    @app_router.post("/categories/{category_id}/move")
    def move_category(category_id: str, body: DirectionBody):
        return _run(handle_category_move, loop, category_id=category_id, direction=body.direction)

    # --- Document routes ---

    @app_router.post("/archive")
    def archive_done():
        return _run(handle_archive_done, loop)

    @app_router.post("/items/{entity_id}/collapse")
    def collapse_item(entity_id: str, body: CollapseBody):
        return _run(handle_collapse, loop, entity_id=entity_id, collapsed=body.collapsed)

    @app_router.post("/save")
    def save():
        return _run(handle_save, loop)

    @app_router.post("/reload")
    def reload(body: ReloadBody):
        return _run(handle_reload, loop, discard=body.discard)

    @app_router.post("/conflict/resolve")
    def resolve_conflict(body: ResolveBody):
        return _run(handle_resolve_conflict, loop, choice=body.choice)

    @app_router.get("/status")
    def get_status():
        return _run(handle_status, loop)
