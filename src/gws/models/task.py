"""
Core entity models.

Categories, projects and tasks never hold references to each other. Parents
list their children by ID and children carry their parent's ID, so the whole
document lives in flat per-kind tables (see models.document).

The four task states and the active-project marker are closed sets with a
single glyph mapping table; the parser and serializer both go through it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class TaskState(str, Enum):
    TODO = "todo"
    ON_DECK = "on-deck"
    IN_PROGRESS = "in-progress"
    DONE = "done"

    @property
    def glyph(self) -> str:
        return STATE_TO_GLYPH[self]

    @property
    def label(self) -> str:
        return _STATE_LABELS[self]


STATE_TO_GLYPH: Dict[TaskState, str] = {
    TaskState.TODO: "🔴",
    TaskState.ON_DECK: "🔵",
    TaskState.IN_PROGRESS: "🔶",
    TaskState.DONE: "✅",
}

GLYPH_TO_STATE: Dict[str, TaskState] = {v: k for k, v in STATE_TO_GLYPH.items()}

_STATE_LABELS: Dict[TaskState, str] = {
    TaskState.TODO: "Todo",
    TaskState.ON_DECK: "On Deck",
    TaskState.IN_PROGRESS: "In Progress",
    TaskState.DONE: "Done",
}

# Marks an active project heading: "### 🔶 Name"
ACTIVE_PROJECT_GLYPH = STATE_TO_GLYPH[TaskState.IN_PROGRESS]

# Reserved category holding archived tasks (exact, case-sensitive)
DONE_CATEGORY = "Done"

# Name given to the category created for projects that appear before any "##"
UNCATEGORIZED = "Uncategorized"

# Emoji presentation selector some editors append after a glyph
_VARIATION_SELECTOR = "\ufe0f"

# States that make a task visible on the agenda
AGENDA_STATES = frozenset({TaskState.ON_DECK, TaskState.IN_PROGRESS, TaskState.DONE})


def split_glyph(text: str) -> Tuple[Optional[TaskState], str]:
    """
    Split a leading state glyph off ``text``.

    Returns:
        (state, remainder) where state is None if text does not start with
        one of the four glyphs. The remainder is stripped.
    """
    for glyph, state in GLYPH_TO_STATE.items():
        if text.startswith(glyph):
            rest = text[len(glyph):]
            if rest.startswith(_VARIATION_SELECTOR):
                rest = rest[1:]
            return state, rest.strip()
    return None, text.strip()


@dataclass
class Task:
    """
    A single task line, e.g. ``- 🔵 Call the bank``.

    ``project_id`` is None for archived tasks, which live directly in the
    reserved Done category.
    """

    text: str
    state: TaskState = TaskState.TODO
    note: Optional[str] = None
    id: str = field(default="", compare=False)
    project_id: Optional[str] = field(default=None, compare=False)
    position: int = field(default=0, compare=False)

    @property
    def is_archived(self) -> bool:
        return self.project_id is None

    @property
    def note_lines(self) -> List[str]:
        return self.note.split("\n") if self.note else []


@dataclass
class Project:
    """A ``###`` heading and the ordered tasks beneath it."""

    name: str
    active: bool = False
    note: Optional[str] = None
    task_ids: List[str] = field(default_factory=list, compare=False)
    id: str = field(default="", compare=False)
    category_id: str = field(default="", compare=False)
    position: int = field(default=0, compare=False)

    @property
    def note_lines(self) -> List[str]:
        return self.note.split("\n") if self.note else []


@dataclass
class Category:
    """
    A ``##`` heading.

    Regular categories hold projects. The reserved Done category holds
    archived tasks directly in ``task_ids`` and never has projects.
    """

    name: str
    project_ids: List[str] = field(default_factory=list, compare=False)
    task_ids: List[str] = field(default_factory=list, compare=False)
    id: str = field(default="", compare=False)
    position: int = field(default=0, compare=False)

    @property
    def is_archive(self) -> bool:
        return self.name == DONE_CATEGORY


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem found while parsing. ``line_number`` is 1-based; 0 means file-level."""

    line_number: int
    reason: str

    def __str__(self) -> str:
        if self.line_number:
            return f"line {self.line_number}: {self.reason}"
        return self.reason


@dataclass(frozen=True)
class AgendaItem:
    """One row of the agenda view."""

    task_id: str
    project_id: str
    category_id: str
    project_name: str
    category_name: str
    state: TaskState
    text: str

    @property
    def label(self) -> str:
        return f"{self.project_name}/{self.text}"
