"""
TodoSession: the open todo file and everything known about it.

A session bundles the parsed Document with its path, the dirty flag, the
fingerprint recorded at the last load or save, any pending external-change
conflict and the collapsed flags.

Sessions are not thread-safe. The CommandLoop owns one and runs every
command and reload signal on its worker thread.

Auto-promote is enforced here, after each command that can change which task
of a project should be On Deck. Promotions done while loading are not
counted as edits: they are reproduced identically by every load.
"""

import logging
from pathlib import Path
from typing import List, Optional, Set

from gws.engine import (
    archive_done,
    auto_promote,
    auto_promote_project,
    build_agenda,
    demote_task,
    edit,
    move_agenda_item,
    move_category,
    move_project,
    move_project_to_category,
    move_task,
    move_task_to_project,
    promote_task,
    set_task_state,
    toggle_project,
)
from gws.errors import ConflictError, DataError, NotFoundError
from gws.models import AgendaItem, Category, Diagnostic, Document, Project, Task, TaskState
from gws.store import todo_file
from gws.store.todo_file import Fingerprint
from gws.store.view_state import ViewState, state_file_for

log = logging.getLogger(__name__)

RESOLVE_RELOAD = "reload"
RESOLVE_OVERWRITE = "overwrite"


class TodoSession:
    """
    One open todo file.

    Usage:
        session = TodoSession.open(path)
        session.promote_task(task_id)
        session.save()
    """

    def __init__(
        self,
        path: Path,
        doc: Document,
        fingerprint: Optional[Fingerprint],
        diagnostics: Optional[List[Diagnostic]] = None,
        view_state: Optional[ViewState] = None,
        autosave: bool = False,
    ) -> None:
        self.path = path
        self.doc = doc
        self.fingerprint = fingerprint
        self.diagnostics: List[Diagnostic] = diagnostics or []
        self.dirty = False
        self.conflict: Optional[Fingerprint] = None
        self.autosave = autosave
        self.view_state = view_state
        self.collapsed: Set[str] = set()
        if view_state is not None:
            self.collapsed = view_state.collapsed_ids(doc)
        auto_promote(self.doc)

    @classmethod
    def open(cls, path: Path, autosave: bool = False, with_view_state: bool = True) -> "TodoSession":
        """Load ``path`` and its view state. Raises the TodoIOError family."""
        doc, diagnostics, fingerprint = todo_file.load(path)
        _log_diagnostics(path, diagnostics)

        view_state = None
        if with_view_state:
            view_state = ViewState(state_file_for(path))
            view_state.load()

        log.info(
            "Loaded %s: %d categories, %d projects, %d tasks",
            path, len(doc.categories), len(doc.projects), len(doc.tasks),
        )
        return cls(path, doc, fingerprint, diagnostics, view_state, autosave)

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _touch(self, *project_ids: Optional[str]) -> None:
        """Mark the session dirty and re-check auto-promote on the given projects."""
        self.dirty = True
        for project_id in project_ids:
            if project_id is not None and project_id in self.doc.projects:
                auto_promote_project(self.doc, project_id)

    def _forget(self, *entity_ids: str) -> None:
        self.collapsed.difference_update(entity_ids)

    def _prune_collapsed(self) -> None:
        self.collapsed = {eid for eid in self.collapsed if eid in self.doc}

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def agenda(self) -> List[AgendaItem]:
        return build_agenda(self.doc)

    # ------------------------------------------------------------------
    # State commands
    # ------------------------------------------------------------------

    def promote_task(self, task_id: str) -> TaskState:
        state = promote_task(self.doc, task_id)
        self._touch(self.doc.tasks[task_id].project_id)
        return state

    def demote_task(self, task_id: str) -> TaskState:
        state = demote_task(self.doc, task_id)
        self._touch(self.doc.tasks[task_id].project_id)
        return state

    def set_task_state(self, task_id: str, state: TaskState) -> TaskState:
        new_state = set_task_state(self.doc, task_id, state)
        self._touch(self.doc.tasks[task_id].project_id)
        return new_state

    def toggle_project(self, project_id: str) -> bool:
        active = toggle_project(self.doc, project_id)
        self._touch(project_id)
        return active

    def archive_done(self) -> List[str]:
        archived = archive_done(self.doc)
        if archived:
            self._touch()
        return archived

    # ------------------------------------------------------------------
    # Ordering commands
    # ------------------------------------------------------------------

    def move_category(self, category_id: str, direction) -> bool:
        moved = move_category(self.doc, category_id, direction)
        if moved:
            self._touch()
        return moved

    def move_project(self, project_id: str, direction) -> bool:
        moved = move_project(self.doc, project_id, direction)
        if moved:
            self._touch()
        return moved

    def move_project_to_category(
        self, project_id: str, category_id: str, index: Optional[int] = None
    ) -> int:
        new_index = move_project_to_category(self.doc, project_id, category_id, index)
        self._touch()
        return new_index

    def move_task(self, task_id: str, direction) -> bool:
        moved = move_task(self.doc, task_id, direction)
        if moved:
            self._touch(self.doc.tasks[task_id].project_id)
        return moved

    def move_task_to_project(
        self, task_id: str, project_id: str, index: Optional[int] = None
    ) -> int:
        source = self.doc.project_task(task_id).project_id
        new_index = move_task_to_project(self.doc, task_id, project_id, index)
        self._touch(source, project_id)
        return new_index

    def move_agenda_item(self, task_id: str, direction) -> bool:
        moved = move_agenda_item(self.doc, task_id, direction)
        if moved:
            self._touch()
        return moved

    # ------------------------------------------------------------------
    # Edit commands
    # ------------------------------------------------------------------

    def add_category(self, name: str, index: Optional[int] = None) -> Category:
        category = edit.add_category(self.doc, name, index)
        self._touch()
        return category

    def rename_category(self, category_id: str, name: str) -> Category:
        category = edit.rename_category(self.doc, category_id, name)
        self._touch()
        return category

    def delete_category(self, category_id: str) -> Category:
        category = edit.delete_category(self.doc, category_id)
        self._touch()
        self._prune_collapsed()
        return category

    def add_project(
        self,
        category_id: str,
        name: str,
        active: bool = True,
        index: Optional[int] = None,
        note: Optional[str] = None,
    ) -> Project:
        project = edit.add_project(self.doc, category_id, name, active, index, note)
        self._touch(project.id)
        return project

    def update_project(
        self, project_id: str, name: Optional[str] = None, note: Optional[str] = None
    ) -> Project:
        project = edit.update_project(self.doc, project_id, name, note)
        self._touch()
        return project

    def delete_project(self, project_id: str) -> Project:
        project = edit.delete_project(self.doc, project_id)
        self._touch()
        self._prune_collapsed()
        return project

    def add_task(
        self,
        project_id: str,
        text: str,
        note: Optional[str] = None,
        index: Optional[int] = None,
    ) -> Task:
        task = edit.add_task(self.doc, project_id, text, note, index)
        self._touch(project_id)
        return task

    def update_task(
        self,
        task_id: str,
        text: Optional[str] = None,
        state: Optional[TaskState] = None,
        note: Optional[str] = None,
        add_note_line: Optional[str] = None,
        delete_note_line: Optional[int] = None,
    ) -> Task:
        """Apply text, note and state changes together; any invalid value rejects all of them."""
        if all(v is None for v in (text, state, note, add_note_line, delete_note_line)):
            return self.doc.task(task_id)
        if state is not None:
            self.doc.project_task(task_id)
        task = edit.update_task(self.doc, task_id, text, note, add_note_line, delete_note_line)
        if state is not None:
            set_task_state(self.doc, task_id, state)
        self._touch(task.project_id)
        return task

    def delete_task(self, task_id: str) -> Task:
        task = edit.delete_task(self.doc, task_id)
        self._touch(task.project_id)
        self._forget(task_id)
        return task

    # ------------------------------------------------------------------
    # Collapsed flags
    # ------------------------------------------------------------------

    def _require(self, entity_id: str) -> None:
        if entity_id not in self.doc:
            raise NotFoundError("entity", entity_id)

    def is_collapsed(self, entity_id: str) -> bool:
        return entity_id in self.collapsed

    def set_collapsed(self, entity_id: str, collapsed: bool) -> None:
        self._require(entity_id)
        if collapsed:
            self.collapsed.add(entity_id)
        else:
            self.collapsed.discard(entity_id)

    def toggle_collapsed(self, entity_id: str) -> bool:
        collapsed = not self.is_collapsed(entity_id)
        self.set_collapsed(entity_id, collapsed)
        return collapsed

    def persist_view_state(self) -> None:
        if self.view_state is None:
            return
        self.view_state.update(self.doc, self.collapsed)
        self.view_state.save()

    # ------------------------------------------------------------------
    # Save / reload
    # ------------------------------------------------------------------

    def save(self) -> Fingerprint:
        """Write the document out. On failure nothing in memory changes."""
        self.fingerprint = todo_file.save(self.path, self.doc)
        self.dirty = False
        self.conflict = None
        return self.fingerprint

    def autosave_if_dirty(self) -> bool:
        if not (self.autosave and self.dirty):
            return False
        if self.conflict is not None:
            log.warning("Not autosaving %s: resolve the pending conflict first", self.path)
            return False
        self.save()
        return True

    def _reload(self) -> None:
        doc, diagnostics, fingerprint = todo_file.load(self.path, previous=self.doc)
        _log_diagnostics(self.path, diagnostics)
        auto_promote(doc)
        self.doc = doc
        self.diagnostics = diagnostics
        self.fingerprint = fingerprint
        self.dirty = False
        self.conflict = None
        self._prune_collapsed()
        log.info("Reloaded %s", self.path)

    def reload(self, discard: bool = False) -> None:
        """
        Re-read the file from disk.

        Raises:
            ConflictError: the session has unsaved edits and ``discard`` is False
        """
        if self.dirty and not discard:
            raise ConflictError(
                f"{self.path} has unsaved edits; save first or reload with discard=True"
            )
        self._reload()

    def handle_reload_signal(self) -> str:
        """
        React to the watcher noticing a change on disk.

        Returns one of "unchanged", "missing", "conflict", "reloaded".
        """
        current = todo_file.read_fingerprint(self.path)
        if current is None:
            log.warning("Todo file %s is missing or unreadable; keeping in-memory copy", self.path)
            return "missing"

        if self.fingerprint is not None and current.digest == self.fingerprint.digest:
            # Our own save, or a touch without a content change
            self.fingerprint = current
            return "unchanged"

        if self.dirty:
            self.conflict = current
            log.warning(
                "%s changed on disk while there are unsaved edits; waiting for resolution",
                self.path,
            )
            return "conflict"

        self._reload()
        return "reloaded"

    def resolve_conflict(self, choice: str) -> None:
        """Settle a pending conflict by reloading from disk or overwriting it."""
        if choice == RESOLVE_RELOAD:
            self._reload()
        elif choice == RESOLVE_OVERWRITE:
            self.save()
        else:
            raise DataError(
                f"Invalid resolution '{choice}'. Use '{RESOLVE_RELOAD}' or '{RESOLVE_OVERWRITE}'."
            )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> dict:
        return {
            "path": str(self.path),
            "dirty": self.dirty,
            "conflict": self.conflict is not None,
            "autosave": self.autosave,
            "categories": len(self.doc.categories),
            "projects": len(self.doc.projects),
            "tasks": len(self.doc.tasks),
            "archived": len(self.doc.archived_tasks()),
            "diagnostics": [str(d) for d in self.diagnostics],
        }


def _log_diagnostics(path: Path, diagnostics: List[Diagnostic]) -> None:
    for diagnostic in diagnostics:
        log.warning("%s: %s", path.name, diagnostic)
