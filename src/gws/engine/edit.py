"""
Add / rename / delete commands and note edits.

Every command validates its input before touching the document, so a
DataError or NotFoundError leaves the model unchanged. Names and texts are
trimmed; notes are kept line by line with trailing whitespace removed and
blank lines dropped, which is exactly what survives a save and reload.
"""

import re
from typing import Optional

from gws.errors import DataError
from gws.models import (
    DONE_CATEGORY,
    Category,
    Document,
    Project,
    Task,
    TaskState,
    split_glyph,
)

# Line shapes that the parser would read as structure rather than note text
_LIST_LINE_RE = re.compile(r"^-(\s|$)")
_HEADING_LINE_RE = re.compile(r"^#{2,3}(\s|$)")


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _clean_text(value: str, what: str) -> str:
    text = (value or "").strip()
    if not text:
        raise DataError(f"{what} cannot be empty")
    if "\n" in text or "\r" in text:
        raise DataError(f"{what} must be a single line")
    return text


def _category_name(name: str) -> str:
    name = _clean_text(name, "Category name")
    if name == DONE_CATEGORY:
        raise DataError(f"'{DONE_CATEGORY}' is reserved for archived tasks")
    return name


def _project_name(name: str) -> str:
    name = _clean_text(name, "Project name")
    if split_glyph(name)[0] is not None:
        raise DataError("Project name cannot start with a state glyph")
    return name


def _is_task_line(line: str) -> bool:
    stripped = line.strip()
    return bool(_LIST_LINE_RE.match(stripped)) and split_glyph(stripped[1:].strip())[0] is not None


def _clean_note(note: Optional[str], *, indented: bool) -> Optional[str]:
    """
    Normalise note text. Returns None for an empty note.

    Task notes are written indented under their task; project notes are
    written flush left, so they additionally cannot look like a heading or
    a list item.
    """
    if note is None:
        return None
    lines = [line.rstrip() for line in note.splitlines()]
    lines = [line for line in lines if line.strip()]
    for line in lines:
        if _is_task_line(line):
            raise DataError(f"Note line looks like a task: {line.strip()!r}")
        if not indented and not line[:1].isspace():
            if _HEADING_LINE_RE.match(line) or _LIST_LINE_RE.match(line):
                raise DataError(f"Note line looks like a heading or list item: {line!r}")
    return "\n".join(lines) or None


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def add_category(doc: Document, name: str, index: Optional[int] = None) -> Category:
    return doc.attach_category(Category(name=_category_name(name)), index)


def rename_category(doc: Document, category_id: str, name: str) -> Category:
    category = doc.category(category_id)
    if category.is_archive:
        raise DataError(f"The '{DONE_CATEGORY}' category cannot be renamed")
    category.name = _category_name(name)
    return category


def delete_category(doc: Document, category_id: str) -> Category:
    """Delete a category and everything in it."""
    return doc.remove_category(category_id)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def add_project(
    doc: Document,
    category_id: str,
    name: str,
    active: bool = True,
    index: Optional[int] = None,
    note: Optional[str] = None,
) -> Project:
    category = doc.category(category_id)
    if category.is_archive:
        raise DataError(f"Projects cannot be added to the '{DONE_CATEGORY}' category")
    project = Project(
        name=_project_name(name), active=active, note=_clean_note(note, indented=False)
    )
    return doc.attach_project(category.id, project, index)


def update_project(
    doc: Document, project_id: str, name: Optional[str] = None, note: Optional[str] = None
) -> Project:
    """
    Change a project's name and/or note.

    None leaves a field alone; ``note=""`` clears the note. Both values are
    checked before either is applied.
    """
    project = doc.project(project_id)
    new_name = _project_name(name) if name is not None else project.name
    new_note = _clean_note(note, indented=False) if note is not None else project.note
    project.name = new_name
    project.note = new_note
    return project


def rename_project(doc: Document, project_id: str, name: str) -> Project:
    return update_project(doc, project_id, name=name)


def delete_project(doc: Document, project_id: str) -> Project:
    return doc.remove_project(project_id)


def set_project_note(doc: Document, project_id: str, note: Optional[str]) -> Project:
    project = doc.project(project_id)
    project.note = _clean_note(note, indented=False)
    return project


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

def add_task(
    doc: Document,
    project_id: str,
    text: str,
    note: Optional[str] = None,
    index: Optional[int] = None,
) -> Task:
    """Add a Todo task, appended to the project unless ``index`` is given."""
    doc.project(project_id)
    task = Task(
        text=_clean_text(text, "Task text"),
        state=TaskState.TODO,
        note=_clean_note(note, indented=True),
    )
    return doc.attach_task(project_id, task, index)


def update_task(
    doc: Document,
    task_id: str,
    text: Optional[str] = None,
    note: Optional[str] = None,
    add_note_line: Optional[str] = None,
    delete_note_line: Optional[int] = None,
) -> Task:
    """
    Change a task's text and note in one step.

    ``note`` replaces the whole note (``""`` clears it). The note-line edits
    apply after that: append ``add_note_line``, then delete the line at
    ``delete_note_line``, counted on the note as it stands after the append.
    Every value is checked before anything is written.
    """
    task = doc.task(task_id)
    new_text = _clean_text(text, "Task text") if text is not None else task.text
    new_note = _clean_note(note, indented=True) if note is not None else task.note

    lines = new_note.split("\n") if new_note else []
    if add_note_line is not None:
        line = _clean_note(add_note_line, indented=True)
        if line is None:
            raise DataError("Note line cannot be empty")
        lines.extend(line.split("\n"))
    if delete_note_line is not None:
        if not 0 <= delete_note_line < len(lines):
            raise DataError(f"Task '{task_id}' has no note line {delete_note_line}")
        del lines[delete_note_line]

    task.text = new_text
    task.note = "\n".join(lines) or None
    return task


def rename_task(doc: Document, task_id: str, text: str) -> Task:
    return update_task(doc, task_id, text=text)


def delete_task(doc: Document, task_id: str) -> Task:
    return doc.remove_task(task_id)


def set_task_note(doc: Document, task_id: str, note: Optional[str]) -> Task:
    """Replace a task's note. None or blank text clears it."""
    task = doc.task(task_id)
    task.note = _clean_note(note, indented=True)
    return task


def add_task_note_line(doc: Document, task_id: str, line: str) -> Task:
    return update_task(doc, task_id, add_note_line=line)


def delete_task_note_line(doc: Document, task_id: str, line_index: int) -> Task:
    return update_task(doc, task_id, delete_note_line=line_index)
