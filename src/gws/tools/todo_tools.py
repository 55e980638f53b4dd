"""
Todo tool handlers.

Core logic lives in handle_* functions (return dicts). Each one runs its work
on the command loop, so it is safe to call from any thread. MCP wrappers in
register_todo_tools() serialize to JSON strings; the REST routes in
gws.api.routes call the same handlers.

Handlers raise TrackerError subclasses; the MCP wrappers turn them into
{"error": ...} payloads and the REST layer maps them to status codes.
"""

import json
import logging
from typing import Any, Callable, Optional

from mcp.server.fastmcp import FastMCP

from gws.errors import DataError, TrackerError
from gws.models import AgendaItem, Category, Document, Project, Task, TaskState

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def _task_to_dict(task: Task, collapsed: bool = False) -> dict:
    return {
        "id": task.id,
        "text": task.text,
        "state": task.state.value,
        "glyph": task.state.glyph,
        "note": task.note,
        "project_id": task.project_id,
        "position": task.position,
        "archived": task.is_archived,
        "collapsed": collapsed,
    }


def _project_to_dict(doc: Document, project: Project, collapsed=frozenset()) -> dict:
    return {
        "id": project.id,
        "name": project.name,
        "active": project.active,
        "note": project.note,
        "category_id": project.category_id,
        "position": project.position,
        "collapsed": project.id in collapsed,
        "tasks": [_task_to_dict(t, t.id in collapsed) for t in doc.project_tasks(project)],
    }


def _category_to_dict(doc: Document, category: Category, collapsed=frozenset()) -> dict:
    d = {
        "id": category.id,
        "name": category.name,
        "position": category.position,
        "archive": category.is_archive,
        "collapsed": category.id in collapsed,
    }
    if category.is_archive:
        d["tasks"] = [
            _task_to_dict(doc.tasks[tid], tid in collapsed) for tid in category.task_ids
        ]
    else:
        d["projects"] = [
            _project_to_dict(doc, p, collapsed) for p in doc.ordered_projects(category)
        ]
    return d


def _agenda_item_to_dict(rank: int, item: AgendaItem) -> dict:
    return {
        "rank": rank,
        "task_id": item.task_id,
        "text": item.text,
        "state": item.state.value,
        "glyph": item.state.glyph,
        "label": item.label,
        "project_id": item.project_id,
        "project_name": item.project_name,
        "category_id": item.category_id,
        "category_name": item.category_name,
    }


def _parse_state(state: str) -> TaskState:
    try:
        return TaskState(state)
    except ValueError:
        valid = ", ".join(s.value for s in TaskState)
        raise DataError(f"Invalid state '{state}'. Valid: {valid}") from None


# ---------------------------------------------------------------------------
# Handler functions (return dicts, shared by MCP tools and REST API)
# ---------------------------------------------------------------------------


def handle_agenda(loop) -> list[dict]:
    def run(session):
        return [_agenda_item_to_dict(i, item) for i, item in enumerate(session.agenda(), 1)]
    return loop.call(run)


def handle_outline(loop) -> dict:
    def run(session):
        doc = session.doc
        return {
            "preamble": list(doc.preamble),
            "categories": [
                _category_to_dict(doc, c, session.collapsed) for c in doc.ordered_categories()
            ],
        }
    return loop.call(run)


# --- Tasks ---


def handle_task_add(
    loop, *, project_id: str, text: str, note: Optional[str] = None, index: Optional[int] = None
) -> dict:
    def run(session):
        task = session.add_task(project_id, text, note=note, index=index)
        return _task_to_dict(task)
    return loop.call(run)


def handle_task_update(
    loop,
    *,
    task_id: str,
    text: Optional[str] = None,
    state: Optional[str] = None,
    note: Optional[str] = None,
    add_note_line: Optional[str] = None,
    delete_note_line: Optional[int] = None,
) -> dict:
    """
    Apply any combination of text / state / note changes as one command.

    ``note=""`` clears the note. If any value is invalid nothing changes.
    """
    new_state = _parse_state(state) if state is not None else None

    def run(session):
        session.update_task(
            task_id,
            text=text,
            state=new_state,
            note=note,
            add_note_line=add_note_line,
            delete_note_line=delete_note_line,
        )
        return _task_to_dict(session.doc.tasks[task_id], session.is_collapsed(task_id))
    return loop.call(run)


def handle_task_note_line(
    loop, *, task_id: str, add: Optional[str] = None, delete_index: Optional[int] = None
) -> dict:
    def run(session):
        task = session.update_task(task_id, add_note_line=add, delete_note_line=delete_index)
        return _task_to_dict(task)
    return loop.call(run)


def handle_task_delete(loop, *, task_id: str) -> dict:
    def run(session):
        task = session.delete_task(task_id)
        return {"deleted": task.id, "text": task.text}
    return loop.call(run)


def handle_task_promote(loop, *, task_id: str) -> dict:
    def run(session):
        session.promote_task(task_id)
        return _task_to_dict(session.doc.tasks[task_id])
    return loop.call(run)


def handle_task_demote(loop, *, task_id: str) -> dict:
    def run(session):
        session.demote_task(task_id)
        return _task_to_dict(session.doc.tasks[task_id])
    return loop.call(run)


def handle_task_move(
    loop,
    *,
    task_id: str,
    direction: Optional[str] = None,
    project_id: Optional[str] = None,
    index: Optional[int] = None,
) -> dict:
    """Move a task one step (``direction``) or into another project (``project_id``)."""
    if direction is None and project_id is None:
        raise DataError("Provide either direction or project_id")

    def run(session):
        if project_id is not None:
            session.move_task_to_project(task_id, project_id, index)
            moved = True
        else:
            moved = session.move_task(task_id, direction)
        return {"moved": moved, "task": _task_to_dict(session.doc.tasks[task_id])}
    return loop.call(run)


def handle_agenda_move(loop, *, task_id: str, direction: str) -> dict:
    def run(session):
        moved = session.move_agenda_item(task_id, direction)
        agenda = [_agenda_item_to_dict(i, item) for i, item in enumerate(session.agenda(), 1)]
        return {"moved": moved, "agenda": agenda}
    return loop.call(run)


# --- Projects ---


def handle_project_add(
    loop,
    *,
    category_id: str,
    name: str,
    active: bool = True,
    note: Optional[str] = None,
) -> dict:
    def run(session):
        project = session.add_project(category_id, name, active=active, note=note)
        return _project_to_dict(session.doc, project)
    return loop.call(run)


def handle_project_update(
    loop, *, project_id: str, name: Optional[str] = None, note: Optional[str] = None
) -> dict:
    def run(session):
        if name is None and note is None:
            project = session.doc.project(project_id)
        else:
            project = session.update_project(project_id, name=name, note=note)
        return _project_to_dict(session.doc, project, session.collapsed)
    return loop.call(run)


def handle_project_toggle(loop, *, project_id: str) -> dict:
    def run(session):
        session.toggle_project(project_id)
        return _project_to_dict(session.doc, session.doc.projects[project_id], session.collapsed)
    return loop.call(run)


def handle_project_delete(loop, *, project_id: str) -> dict:
    def run(session):
        project = session.delete_project(project_id)
        return {"deleted": project.id, "name": project.name}
    return loop.call(run)


def handle_project_move(
    loop,
    *,
    project_id: str,
    direction: Optional[str] = None,
    category_id: Optional[str] = None,
    index: Optional[int] = None,
) -> dict:
    """Move a project one step (``direction``) or under another category (``category_id``)."""
    if direction is None and category_id is None:
        raise DataError("Provide either direction or category_id")

    def run(session):
        if category_id is not None:
            session.move_project_to_category(project_id, category_id, index)
            moved = True
        else:
            moved = session.move_project(project_id, direction)
        project = session.doc.projects[project_id]
        return {"moved": moved, "category_id": project.category_id, "position": project.position}
    return loop.call(run)


# --- Categories ---


def handle_category_add(loop, *, name: str, index: Optional[int] = None) -> dict:
    def run(session):
        category = session.add_category(name, index)
        return _category_to_dict(session.doc, category)
    return loop.call(run)


def handle_category_rename(loop, *, category_id: str, name: str) -> dict:
    def run(session):
        category = session.rename_category(category_id, name)
        return _category_to_dict(session.doc, category, session.collapsed)
    return loop.call(run)


def handle_category_delete(loop, *, category_id: str) -> dict:
    def run(session):
        category = session.delete_category(category_id)
        return {"deleted": category.id, "name": category.name}
    return loop.call(run)


def handle_category_move(loop, *, category_id: str, direction: str) -> dict:
    def run(session):
        moved = session.move_category(category_id, direction)
        return {"moved": moved, "position": session.doc.categories[category_id].position}
    return loop.call(run)


# --- Whole document ---


def handle_archive_done(loop) -> dict:
    def run(session):
        archived = session.archive_done()
        return {"count": len(archived), "archived": archived}
    return loop.call(run)


def handle_collapse(loop, *, entity_id: str, collapsed: Optional[bool] = None) -> dict:
    """Set or (when ``collapsed`` is None) toggle an entity's collapsed flag."""
    def run(session):
        if collapsed is None:
            value = session.toggle_collapsed(entity_id)
        else:
            session.set_collapsed(entity_id, collapsed)
            value = collapsed
        return {"id": entity_id, "collapsed": value}
    return loop.call(run)


def handle_save(loop) -> dict:
    def run(session):
        session.save()
        return session.status()
    return loop.call(run)


def handle_reload(loop, *, discard: bool = False) -> dict:
    def run(session):
        session.reload(discard=discard)
        return session.status()
    return loop.call(run)


def handle_resolve_conflict(loop, *, choice: str) -> dict:
    def run(session):
        session.resolve_conflict(choice)
        return session.status()
    return loop.call(run)


def handle_status(loop) -> dict:
    return loop.call(lambda session: session.status())


# ---------------------------------------------------------------------------
# MCP tool registration (thin wrappers)
# ---------------------------------------------------------------------------


def _dump(handler: Callable[..., Any], *args: Any, **kwargs: Any) -> str:
    try:
        return json.dumps(handler(*args, **kwargs), indent=2, ensure_ascii=False)
    except TrackerError as e:
        return json.dumps({"error": str(e)})


def register_todo_tools(mcp: FastMCP, loop) -> None:
    """Register all todo MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def agenda() -> str:
        """
        Show the force-ranked agenda.

        Lists every On Deck, In Progress and Done task of every active
        project, in document order (category, project, task). Todo tasks and
        inactive projects are hidden. Projects with no task in flight get
        their first open task moved to On Deck first.

        Returns:
            JSON array of agenda rows with rank, task_id, state, label
        """
        return _dump(handle_agenda, loop)

    @mcp.tool()
    def outline() -> str:
        """
        Show the whole todo file as a tree.

        Returns:
            JSON object with preamble lines and categories → projects → tasks.
            The Done category lists archived tasks directly.
        """
        return _dump(handle_outline, loop)

    @mcp.tool()
    def task_add(
        project_id: str,
        text: str,
        note: Optional[str] = None,
        index: Optional[int] = None,
    ) -> str:
        """
        Add a Todo task to a project.

        Args:
            project_id: ID of the owning project (see outline)
            text: Task text, single line
            note: Optional multi-line note
            index: Position within the project (default: append)

        Returns:
            JSON object of the created task
        """
        return _dump(
            handle_task_add, loop, project_id=project_id, text=text, note=note, index=index
        )

    @mcp.tool()
    def task_update(
        task_id: str,
        text: Optional[str] = None,
        state: Optional[str] = None,
        note: Optional[str] = None,
        add_note_line: Optional[str] = None,
        delete_note_line: Optional[int] = None,
    ) -> str:
        """
        Update a task.

        Args:
            task_id: Task ID
            text: New text
            state: One of: todo, on-deck, in-progress, done
            note: Replace the whole note ("" clears it)
            add_note_line: Append one line to the note
            delete_note_line: Remove the note line at this 0-based index

        Returns:
            JSON object of the updated task
        """
        try:
            result = handle_task_update(
                loop,
                task_id=task_id,
                text=text,
                state=state,
                note=note,
                add_note_line=add_note_line,
                delete_note_line=delete_note_line,
            )
            return json.dumps(result, indent=2, ensure_ascii=False)
        except TrackerError as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def task_delete(task_id: str) -> str:
        """Delete a task (project task or archived task)."""
        return _dump(handle_task_delete, loop, task_id=task_id)

    @mcp.tool()
    def task_promote(task_id: str) -> str:
        """
        Advance a task one state: Todo → On Deck → In Progress → Done → Todo.

        Archived tasks cannot be promoted.
        """
        return _dump(handle_task_promote, loop, task_id=task_id)

    @mcp.tool()
    def task_demote(task_id: str) -> str:
        """Move a task back one state: Todo → Done → In Progress → On Deck → Todo."""
        return _dump(handle_task_demote, loop, task_id=task_id)

    @mcp.tool()
    def task_move(
        task_id: str,
        direction: Optional[str] = None,
        project_id: Optional[str] = None,
        index: Optional[int] = None,
    ) -> str:
        """
        Move a task.

        Args:
            task_id: Task ID
            direction: "up" or "down", one step within the project
            project_id: Move into this project instead
            index: Position in the target project (default: append)
        """
        return _dump(
            handle_task_move,
            loop,
            task_id=task_id,
            direction=direction,
            project_id=project_id,
            index=index,
        )

    @mcp.tool()
    def agenda_move(task_id: str, direction: str) -> str:
        """
        Move a task one step up or down the agenda.

        The task stays in its project; hidden Todo siblings are skipped.
        Moving past the first/last agenda task of its project does nothing.

        Returns:
            JSON object with "moved" and the new agenda
        """
        return _dump(handle_agenda_move, loop, task_id=task_id, direction=direction)

    @mcp.tool()
    def project_add(
        category_id: str,
        name: str,
        active: bool = True,
        note: Optional[str] = None,
    ) -> str:
        """Add a project at the end of a category. Projects are active by default."""
        return _dump(
            handle_project_add, loop, category_id=category_id, name=name, active=active, note=note
        )

    @mcp.tool()
    def project_update(
        project_id: str, name: Optional[str] = None, note: Optional[str] = None
    ) -> str:
        """Rename a project and/or replace its note ("" clears it)."""
        return _dump(handle_project_update, loop, project_id=project_id, name=name, note=note)

    @mcp.tool()
    def project_toggle(project_id: str) -> str:
        """Activate or deactivate a project. Only active projects feed the agenda."""
        return _dump(handle_project_toggle, loop, project_id=project_id)

    @mcp.tool()
    def project_delete(project_id: str) -> str:
        """Delete a project and all its tasks."""
        return _dump(handle_project_delete, loop, project_id=project_id)

    @mcp.tool()
    def project_move(
        project_id: str,
        direction: Optional[str] = None,
        category_id: Optional[str] = None,
        index: Optional[int] = None,
    ) -> str:
        """
        Move a project.

        Args:
            project_id: Project ID
            direction: "up" or "down". At the edge of its category the project
                moves into the neighbouring category.
            category_id: Move under this category instead
            index: Position in the target category (default: append)
        """
        return _dump(
            handle_project_move,
            loop,
            project_id=project_id,
            direction=direction,
            category_id=category_id,
            index=index,
        )

    @mcp.tool()
    def category_add(name: str, index: Optional[int] = None) -> str:
        """Add a category. "Done" is reserved."""
        return _dump(handle_category_add, loop, name=name, index=index)

    @mcp.tool()
    def category_rename(category_id: str, name: str) -> str:
        """Rename a category. The Done category cannot be renamed."""
        return _dump(handle_category_rename, loop, category_id=category_id, name=name)

    @mcp.tool()
    def category_delete(category_id: str) -> str:
        """Delete a category with all its projects and tasks."""
        return _dump(handle_category_delete, loop, category_id=category_id)

    @mcp.tool()
    def category_move(category_id: str, direction: str) -> str:
        """Move a category one step "up" or "down"."""
        return _dump(handle_category_move, loop, category_id=category_id, direction=direction)

    @mcp.tool()
    def archive_done() -> str:
        """
        Archive every Done task.

        Done tasks leave their projects and are appended to the bottom of
        the "## Done" section in document order.
        """
        return _dump(handle_archive_done, loop)

    @mcp.tool()
    def item_collapse(entity_id: str, collapsed: Optional[bool] = None) -> str:
        """Set (or toggle, when omitted) the collapsed flag of a category, project or task."""
        return _dump(handle_collapse, loop, entity_id=entity_id, collapsed=collapsed)

    @mcp.tool()
    def todo_save() -> str:
        """Write the todo file to disk."""
        return _dump(handle_save, loop)

    @mcp.tool()
    def todo_reload(discard: bool = False) -> str:
        """
        Re-read the todo file from disk.

        Fails with an error when there are unsaved edits unless discard=True.
        """
        return _dump(handle_reload, loop, discard=discard)

    @mcp.tool()
    def todo_resolve_conflict(choice: str) -> str:
        """
        Settle an external-change conflict.

        Args:
            choice: "reload" to take the file from disk, "overwrite" to save
                the in-memory edits over it
        """
        return _dump(handle_resolve_conflict, loop, choice=choice)

    @mcp.tool()
    def todo_status() -> str:
        """Return session status: path, dirty flag, conflict flag, counts and diagnostics."""
        return _dump(handle_status, loop)
