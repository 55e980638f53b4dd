"""Agenda view: every visible task of every active project, in document order."""

from typing import List

from gws.engine.state import auto_promote_project
from gws.models import AGENDA_STATES, AgendaItem, Document


def build_agenda(doc: Document) -> List[AgendaItem]:
    """
    Build the force-ranked agenda.

    Auto-promote runs for each active project before its tasks are read, so
    building the agenda may change task states. Rank is document order:
    category, then project, then task position.
    """
    items: List[AgendaItem] = []
    for category, project in doc.iter_projects():
        if not project.active:
            continue
        auto_promote_project(doc, project.id)
        for task in doc.project_tasks(project):
            if task.state not in AGENDA_STATES:
                continue
            items.append(
                AgendaItem(
                    task_id=task.id,
                    project_id=project.id,
                    category_id=category.id,
                    project_name=project.name,
                    category_name=category.name,
                    state=task.state,
                    text=task.text,
                )
            )
    return items
