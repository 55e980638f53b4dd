"""
Ordering engine: one-step reranks and cross-container moves.

Two generic primitives work on plain ordered ID lists:

    move_step(ids, item_id, direction)   swap with the neighbour, False at a boundary
    relocate(src, dst, item_id, index)   remove from src, insert into dst (index clamped)

Everything else is a document-level wrapper that picks the right list,
reassigns parent IDs and renumbers the affected containers.

Direction is -1 (up / earlier) or +1 (down / later).
"""

import logging
from typing import List, Optional, Union

from gws.errors import DataError
from gws.models import AGENDA_STATES, Category, Document, renumber

log = logging.getLogger(__name__)

UP = -1
DOWN = 1

_DIRECTION_NAMES = {"up": UP, "down": DOWN}


def parse_direction(direction: Union[int, str]) -> int:
    """Accept -1/+1 or "up"/"down"."""
    if isinstance(direction, str):
        value = _DIRECTION_NAMES.get(direction.strip().lower())
        if value is None:
            raise DataError(f"Invalid direction '{direction}'. Use 'up' or 'down'.")
        return value
    if direction not in (UP, DOWN):
        raise DataError(f"Invalid direction {direction!r}. Use -1 or 1.")
    return direction


# ---------------------------------------------------------------------------
# Generic primitives
# ---------------------------------------------------------------------------

def move_step(ids: List[str], item_id: str, direction: int) -> bool:
    """Swap ``item_id`` with its neighbour. Returns False at the boundary."""
    index = ids.index(item_id)
    target = index + direction
    if target < 0 or target >= len(ids):
        return False
    ids[index], ids[target] = ids[target], ids[index]
    return True


def relocate(src: List[str], dst: List[str], item_id: str, index: Optional[int] = None) -> int:
    """
    Move ``item_id`` from ``src`` into ``dst``.

    ``index`` is clamped to [0, len(dst)] after removal; None appends.
    ``src`` and ``dst`` may be the same list.

    Returns:
        The index the item ended up at.
    """
    src.remove(item_id)
    if index is None:
        index = len(dst)
    index = max(0, min(index, len(dst)))
    dst.insert(index, item_id)
    return index


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def move_category(doc: Document, category_id: str, direction: int) -> bool:
    doc.category(category_id)
    moved = move_step(doc.category_ids, category_id, parse_direction(direction))
    if moved:
        renumber(doc.category_ids, doc.categories)
    return moved


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def _regular_neighbour(doc: Document, category: Category, direction: int) -> Optional[Category]:
    """Nearest category in ``direction`` that can hold projects."""
    index = doc.category_ids.index(category.id) + direction
    while 0 <= index < len(doc.category_ids):
        candidate = doc.categories[doc.category_ids[index]]
        if not candidate.is_archive:
            return candidate
        index += direction
    return None


def move_project(doc: Document, project_id: str, direction: int) -> bool:
    """
    Move a project one step within its category.

    At the first/last slot the project spills into the neighbouring regular
    category: the end of the previous one when moving up, the start of the
    next one when moving down. The Done category is skipped.
    """
    direction = parse_direction(direction)
    project = doc.project(project_id)
    category = doc.categories[project.category_id]

    if move_step(category.project_ids, project_id, direction):
        renumber(category.project_ids, doc.projects)
        return True

    neighbour = _regular_neighbour(doc, category, direction)
    if neighbour is None:
        return False

    index = len(neighbour.project_ids) if direction == UP else 0
    move_project_to_category(doc, project_id, neighbour.id, index)
    return True


def move_project_to_category(
    doc: Document, project_id: str, category_id: str, index: Optional[int] = None
) -> int:
    """Move a project under another category. Returns its new index."""
    project = doc.project(project_id)
    target = doc.category(category_id)
    if target.is_archive:
        raise DataError("Projects cannot be moved into the Done category")

    source = doc.categories[project.category_id]
    new_index = relocate(source.project_ids, target.project_ids, project_id, index)
    project.category_id = target.id
    renumber(source.project_ids, doc.projects)
    renumber(target.project_ids, doc.projects)
    log.debug("Moved project '%s' to category '%s'", project.name, target.name)
    return new_index


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

def move_task(doc: Document, task_id: str, direction: int) -> bool:
    """Move a task one step within its project."""
    task = doc.project_task(task_id)
    project = doc.projects[task.project_id]
    moved = move_step(project.task_ids, task_id, parse_direction(direction))
    if moved:
        renumber(project.task_ids, doc.tasks)
    return moved


def move_task_to_project(
    doc: Document, task_id: str, project_id: str, index: Optional[int] = None
) -> int:
    """Move a task under another project. Returns its new index."""
    task = doc.project_task(task_id)
    target = doc.project(project_id)
    source = doc.projects[task.project_id]
    new_index = relocate(source.task_ids, target.task_ids, task_id, index)
    task.project_id = target.id
    renumber(source.task_ids, doc.tasks)
    renumber(target.task_ids, doc.tasks)
    return new_index


def move_agenda_item(doc: Document, task_id: str, direction: int) -> bool:
    """
    Move an agenda task one step in agenda order.

    The task stays in its project and jumps over Todo siblings (which the
    agenda hides) to land next to the nearest visible sibling. When no
    visible sibling exists in that direction the move is a no-op.
    """
    direction = parse_direction(direction)
    task = doc.project_task(task_id)
    project = doc.projects[task.project_id]
    if not project.active or task.state not in AGENDA_STATES:
        raise DataError(f"Task '{task_id}' is not on the agenda")

    ids = project.task_ids
    index = ids.index(task_id) + direction
    while 0 <= index < len(ids):
        if doc.tasks[ids[index]].state in AGENDA_STATES:
            break
        index += direction
    else:
        return False

    ids.remove(task_id)
    ids.insert(index, task_id)
    renumber(ids, doc.tasks)
    return True
