"""
Parser for the todo markdown dialect.

Main API:
    parse_content(content, previous=None)  → (Document, diagnostics)

Layout of a todo file:

    ## Category
    ### 🔶 Active project
    Project note
    - 🔵 Task
      Task note
    ### Inactive project
    - 🔴 Task

    ## Done
    - ✅ Archived task

Parsing never fails. Anything that does not fit the grammar is given a
best-effort meaning and reported as a Diagnostic, so no text from the file is
ever dropped silently.

When ``previous`` is given, entities that still match by name (categories,
projects) or text (tasks) keep their old IDs.
"""

import re
from collections import defaultdict, deque
from typing import Deque, Dict, List, Optional, Set, Tuple

from gws.models.document import Document
from gws.models.task import (
    DONE_CATEGORY,
    UNCATEGORIZED,
    Category,
    Diagnostic,
    Project,
    Task,
    TaskState,
    split_glyph,
)
from gws.utils.ids import generate_unique_id

# "## Name" / "### Name", only recognised on unindented lines
_HEADING_RE = re.compile(r"^(#{2,3})(?:\s+(.*?))?\s*$")

# "- text" list item at any indentation
_LIST_RE = re.compile(r"^\s*-(?:\s+(.*?))?\s*$")

_INDENTS = ("  ", "\t")


# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------

def _is_indented(line: str) -> bool:
    return line.startswith(_INDENTS)


def _dedent_note(line: str) -> str:
    """Remove one level of note indentation, keeping any deeper indent."""
    if line.startswith("\t"):
        line = line[1:]
    elif line.startswith("  "):
        line = line[2:]
    return line.rstrip()


def _parse_list_item(line: str) -> Optional[str]:
    """Return the text of a ``- text`` line, or None if not a list item."""
    m = _LIST_RE.match(line)
    if not m:
        return None
    return m.group(1) or ""


def _parse_heading(line: str) -> Optional[Tuple[int, str]]:
    """Return (level, text) for an unindented ``##``/``###`` heading."""
    if line[:1].isspace():
        return None
    m = _HEADING_RE.match(line)
    if not m:
        return None
    return len(m.group(1)), (m.group(2) or "").strip()


def _parse_project_heading(text: str) -> Tuple[bool, str]:
    """
    Split a project heading into (active, name).

    🔶 marks an active project. Older files put any state glyph in front of
    the project name; those other glyphs mean inactive. Only the first glyph
    decides; any further leading glyphs are dropped from the name.
    """
    state, name = split_glyph(text)
    rest_state = state
    while rest_state is not None:
        rest_state, name = split_glyph(name)
    return state is TaskState.IN_PROGRESS, name


def _join_note(note: Optional[str], line: str) -> str:
    return f"{note}\n{line}" if note is not None else line


# ---------------------------------------------------------------------------
# ID reuse
# ---------------------------------------------------------------------------

class _IdPool:
    """IDs from a previous parse, keyed by what identifies an entity in the file."""

    def __init__(self, previous: Optional[Document]) -> None:
        self._pool: Dict[tuple, Deque[str]] = defaultdict(deque)
        self._reserved: Set[str] = set()
        if previous is None:
            return
        self._reserved.update(previous.categories, previous.projects, previous.tasks)
        for category in previous.ordered_categories():
            self._pool[("category", category.name)].append(category.id)
            for project in previous.ordered_projects(category):
                self._pool[("project", category.name, project.name)].append(project.id)
                for task in previous.project_tasks(project):
                    key = ("task", category.name, project.name, task.text)
                    self._pool[key].append(task.id)
            for task_id in category.task_ids:
                self._pool[("archived", previous.tasks[task_id].text)].append(task_id)

    def take(self, doc: Document, *key: str) -> str:
        """Return the old ID for ``key``, or a fresh one no old entity could claim."""
        ids = self._pool.get(key)
        if ids:
            return ids.popleft()
        new_id = generate_unique_id(doc)
        while new_id in self._reserved:
            new_id = generate_unique_id(doc)
        return new_id


# ---------------------------------------------------------------------------
# Document builder
# ---------------------------------------------------------------------------

class _Builder:
    """Accumulates entities line by line and tracks the current context."""

    def __init__(self, previous: Optional[Document]) -> None:
        self.doc = Document()
        self.diagnostics: List[Diagnostic] = []
        self._ids = _IdPool(previous)
        self.category: Optional[Category] = None
        self.project: Optional[Project] = None
        self.task: Optional[Task] = None
        self.note_open = False
        self.in_body = False

    def warn(self, line_number: int, reason: str) -> None:
        self.diagnostics.append(Diagnostic(line_number, reason))

    # --- headings --------------------------------------------------------

    def open_category(self, name: str, line_number: int) -> None:
        self.in_body = True
        self.project = None
        self.task = None
        self.note_open = False

        existing_done = self.doc.done_category() if name == DONE_CATEGORY else None
        if existing_done is not None:
            self.warn(line_number, "duplicate 'Done' section merged into the first one")
            self.category = existing_done
            return

        category = Category(name=name, id=self._ids.take(self.doc, "category", name))
        self.category = self.doc.attach_category(category)

    def open_project(self, heading: str, line_number: int) -> None:
        self.in_body = True
        self.task = None
        self.note_open = False

        if self.category is None:
            self.warn(line_number, f"project outside any category; placed in '{UNCATEGORIZED}'")
            self.open_category(UNCATEGORIZED, line_number)

        if self.category.is_archive:
            self.warn(line_number, "project heading inside the Done section ignored")
            self.project = None
            return

        active, name = _parse_project_heading(heading)
        project = Project(
            name=name,
            active=active,
            id=self._ids.take(self.doc, "project", self.category.name, name),
        )
        self.project = self.doc.attach_project(self.category.id, project)

    def _implicit_project(self, line_number: int, reason: str) -> None:
        self.warn(line_number, reason)
        if self.category is None:
            self.open_category(UNCATEGORIZED, line_number)
        project = Project(name="", id=self._ids.take(self.doc, "project", self.category.name, ""))
        self.project = self.doc.attach_project(self.category.id, project)

    # --- tasks and notes -------------------------------------------------

    def add_task(self, content: str, line_number: int) -> None:
        self.in_body = True
        state, text = split_glyph(content)

        if self.category is not None and self.category.is_archive:
            task = Task(text=text, id=self._ids.take(self.doc, "archived", text))
            self.task = self.doc.attach_archived_task(task)
            self.note_open = True
            return

        if state is None:
            self.warn(line_number, "task without a recognised state glyph treated as Todo")
            state = TaskState.TODO

        if self.project is None:
            self._implicit_project(line_number, "task outside any project; placed in an unnamed project")

        task = Task(
            text=text,
            state=state,
            id=self._ids.take(self.doc, "task", self.category.name, self.project.name, text),
        )
        self.task = self.doc.attach_task(self.project.id, task)
        self.note_open = True

    def add_note_line(self, line: str) -> None:
        self.task.note = _join_note(self.task.note, _dedent_note(line))

    def add_stray_text(self, line: str, line_number: int) -> None:
        """Text that is not a heading, task or continued note."""
        text = line.strip()

        if self.category is not None and self.category.is_archive:
            if self.task is None:
                self.warn(line_number, "text in the Done section kept as an archived task")
                self.add_task(text, line_number)
                return
            self.warn(line_number, "detached text appended to the previous archived task's note")
            self.task.note = _join_note(self.task.note, text)
            self.note_open = True
            return

        if self.project is None:
            self._implicit_project(line_number, "text outside any project; kept as an unnamed project's note")

        if self.task is None:
            # Lines between a project heading and its first task, indentation kept
            self.project.note = _join_note(self.project.note, line.rstrip())
            return

        self.warn(line_number, "detached text appended to the previous task's note")
        self.task.note = _join_note(self.task.note, text)
        self.note_open = True


# ---------------------------------------------------------------------------
# Main parse API
# ---------------------------------------------------------------------------

def parse_content(
    content: str, previous: Optional[Document] = None
) -> Tuple[Document, List[Diagnostic]]:
    """
    Parse todo markdown into a Document.

    Args:
        content: Full file content as a string
        previous: Document from an earlier parse whose IDs should be reused

    Returns:
        (document, diagnostics); diagnostics are in line order
    """
    builder = _Builder(previous)
    preamble: List[str] = []

    for line_number, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            builder.note_open = False
            if not builder.in_body:
                preamble.append("")
            continue

        list_text = _parse_list_item(line)
        is_glyph_task = list_text is not None and split_glyph(list_text)[0] is not None

        if _is_indented(line) and builder.note_open and not is_glyph_task:
            builder.add_note_line(line)
            continue

        heading = _parse_heading(line)
        if heading:
            level, text = heading
            if level == 2:
                builder.open_category(text, line_number)
            else:
                builder.open_project(text, line_number)
            continue

        # Plain "- text" before the first heading belongs to the preamble
        if is_glyph_task or (
            list_text is not None and builder.in_body and not _is_indented(line)
        ):
            builder.add_task(list_text, line_number)
            continue

        if not builder.in_body:
            preamble.append(line.rstrip())
            continue

        builder.add_stray_text(line, line_number)

    while preamble and not preamble[0]:
        preamble.pop(0)
    while preamble and not preamble[-1]:
        preamble.pop()
    builder.doc.preamble = preamble

    return builder.doc, builder.diagnostics
