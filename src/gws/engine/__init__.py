from .agenda import build_agenda
from .archive import archive_done
from .ordering import (
    DOWN,
    UP,
    move_agenda_item,
    move_category,
    move_project,
    move_project_to_category,
    move_step,
    move_task,
    move_task_to_project,
    parse_direction,
    relocate,
)
from .state import (
    auto_promote,
    auto_promote_project,
    demote_task,
    next_state,
    previous_state,
    promote_task,
    set_task_state,
    toggle_project,
)

__all__ = [
    "DOWN",
    "UP",
    "archive_done",
    "auto_promote",
    "auto_promote_project",
    "build_agenda",
    "demote_task",
    "move_agenda_item",
    "move_category",
    "move_project",
    "move_project_to_category",
    "move_step",
    "move_task",
    "move_task_to_project",
    "next_state",
    "parse_direction",
    "previous_state",
    "promote_task",
    "relocate",
    "set_task_state",
    "toggle_project",
]
