"""
Archive completed tasks into the reserved Done category.

Every project is scanned, active or not, in category → project → task order.
Done tasks leave their project and are appended to the bottom of the Done
category in that encounter order. Done is created at the end of the document
if the file has none.
"""

import logging
from typing import List, Set

from gws.engine.state import auto_promote_project
from gws.models import Document, TaskState, renumber

log = logging.getLogger(__name__)


def collect_done_tasks(doc: Document) -> List[str]:
    """IDs of project tasks in the Done state, in document order."""
    done = []
    for _, project in doc.iter_projects():
        for task in doc.project_tasks(project):
            if task.state is TaskState.DONE:
                done.append(task.id)
    return done


def archive_done(doc: Document) -> List[str]:
    """
    Move every Done task into the Done category.

    Returns:
        IDs of the archived tasks, in the order they were appended.
    """
    task_ids = collect_done_tasks(doc)
    if not task_ids:
        return []

    archive = doc.ensure_done_category()
    affected: Set[str] = set()

    for task_id in task_ids:
        task = doc.tasks[task_id]
        project = doc.projects[task.project_id]
        project.task_ids.remove(task_id)
        affected.add(project.id)
        task.project_id = None
        archive.task_ids.append(task_id)

    renumber(archive.task_ids, doc.tasks)
    for project_id in affected:
        renumber(doc.projects[project_id].task_ids, doc.tasks)
        auto_promote_project(doc, project_id)

    log.info("Archived %d task(s)", len(task_ids))
    return task_ids
