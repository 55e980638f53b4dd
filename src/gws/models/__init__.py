from .task import (
    ACTIVE_PROJECT_GLYPH,
    AGENDA_STATES,
    DONE_CATEGORY,
    GLYPH_TO_STATE,
    STATE_TO_GLYPH,
    UNCATEGORIZED,
    AgendaItem,
    Category,
    Diagnostic,
    Project,
    Task,
    TaskState,
    split_glyph,
)
from .document import Document, renumber

__all__ = [
    "ACTIVE_PROJECT_GLYPH",
    "AGENDA_STATES",
    "DONE_CATEGORY",
    "GLYPH_TO_STATE",
    "STATE_TO_GLYPH",
    "UNCATEGORIZED",
    "AgendaItem",
    "Category",
    "Diagnostic",
    "Document",
    "Project",
    "Task",
    "TaskState",
    "renumber",
    "split_glyph",
]
