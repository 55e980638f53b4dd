"""
Task and project state transitions, and the auto-promote invariant.

Task states form a four-step cycle:

    promote:  Todo → On Deck → In Progress → Done → Todo
    demote:   the exact reverse

Projects have a single boolean (active), so promote and demote both toggle it.

Auto-promote: an active project with no On Deck / In Progress task gets its
first not-Done task (by position) moved to On Deck. It never demotes or
reorders, and touches at most one task per project.
"""

import logging
from typing import Dict, List, Optional

from gws.models import Document, TaskState

log = logging.getLogger(__name__)

_PROMOTE: Dict[TaskState, TaskState] = {
    TaskState.TODO: TaskState.ON_DECK,
    TaskState.ON_DECK: TaskState.IN_PROGRESS,
    TaskState.IN_PROGRESS: TaskState.DONE,
    TaskState.DONE: TaskState.TODO,
}

_DEMOTE: Dict[TaskState, TaskState] = {v: k for k, v in _PROMOTE.items()}

# A project already has a task in flight when one of these is present
_WORKING_STATES = frozenset({TaskState.ON_DECK, TaskState.IN_PROGRESS})


def next_state(state: TaskState) -> TaskState:
    return _PROMOTE[state]


def previous_state(state: TaskState) -> TaskState:
    return _DEMOTE[state]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def promote_task(doc: Document, task_id: str) -> TaskState:
    """Advance a project task one step. Archived tasks are not addressable."""
    task = doc.project_task(task_id)
    task.state = _PROMOTE[task.state]
    return task.state


def demote_task(doc: Document, task_id: str) -> TaskState:
    task = doc.project_task(task_id)
    task.state = _DEMOTE[task.state]
    return task.state


def set_task_state(doc: Document, task_id: str, state: TaskState) -> TaskState:
    """Jump a project task straight to ``state``."""
    task = doc.project_task(task_id)
    task.state = TaskState(state)
    return task.state


def toggle_project(doc: Document, project_id: str) -> bool:
    """Flip a project's active flag and return the new value."""
    project = doc.project(project_id)
    project.active = not project.active
    return project.active


# ---------------------------------------------------------------------------
# Auto-promote
# ---------------------------------------------------------------------------

def auto_promote_project(doc: Document, project_id: str) -> Optional[str]:
    """
    Enforce auto-promote on one project.

    Returns:
        The ID of the task moved to On Deck, or None if nothing changed
        (inactive project, a task already in flight, or no eligible task).
    """
    project = doc.project(project_id)
    if not project.active:
        return None

    tasks = doc.project_tasks(project)
    if any(task.state in _WORKING_STATES for task in tasks):
        return None

    for task in tasks:
        if task.state is not TaskState.DONE:
            task.state = TaskState.ON_DECK
            log.debug("Auto-promoted task %s in project '%s'", task.id, project.name)
            return task.id
    return None


def auto_promote(doc: Document) -> List[str]:
    """Run auto-promote over every project; return the promoted task IDs."""
    promoted = []
    for _, project in doc.iter_projects():
        task_id = auto_promote_project(doc, project.id)
        if task_id is not None:
            promoted.append(task_id)
    return promoted
