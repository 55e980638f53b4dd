"""
The in-memory todo document.

Storage is a flat table per entity kind keyed by ID, plus ordered ID lists on
each container. Position indices are kept in step with those lists: every
primitive that changes a list renumbers it.

Equality is structural: two documents are equal when their outlines match,
regardless of the IDs that were handed out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from gws.errors import NotFoundError
from gws.models.task import DONE_CATEGORY, Category, Project, Task, TaskState
from gws.utils.ids import generate_unique_id


def renumber(ids: List[str], table: Dict[str, object]) -> None:
    """Rewrite ``position`` of every entity in ``ids`` to match list order."""
    for position, entity_id in enumerate(ids):
        table[entity_id].position = position


def _insert(ids: List[str], entity_id: str, index: Optional[int]) -> None:
    if index is None or index >= len(ids):
        ids.append(entity_id)
    else:
        ids.insert(max(index, 0), entity_id)


@dataclass(eq=False)
class Document:
    """A fully parsed todo file."""

    categories: Dict[str, Category] = field(default_factory=dict)
    projects: Dict[str, Project] = field(default_factory=dict)
    tasks: Dict[str, Task] = field(default_factory=dict)
    category_ids: List[str] = field(default_factory=list)
    preamble: List[str] = field(default_factory=list)

    # ------------------------------------------------------------------
    # IDs
    # ------------------------------------------------------------------

    def __contains__(self, entity_id: str) -> bool:
        return (
            entity_id in self.categories
            or entity_id in self.projects
            or entity_id in self.tasks
        )

    def _claim_id(self, wanted: str) -> str:
        if wanted and wanted not in self:
            return wanted
        return generate_unique_id(self)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def category(self, category_id: str) -> Category:
        try:
            return self.categories[category_id]
        except KeyError:
            raise NotFoundError("category", category_id) from None

    def project(self, project_id: str) -> Project:
        try:
            return self.projects[project_id]
        except KeyError:
            raise NotFoundError("project", project_id) from None

    def task(self, task_id: str) -> Task:
        try:
            return self.tasks[task_id]
        except KeyError:
            raise NotFoundError("task", task_id) from None

    def project_task(self, task_id: str) -> Task:
        """Return a task that belongs to a project. Archived tasks are not found."""
        task = self.tasks.get(task_id)
        if task is None or task.is_archived:
            raise NotFoundError("task", task_id)
        return task

    def find_category(self, name: str) -> Optional[Category]:
        for category in self.ordered_categories():
            if category.name == name:
                return category
        return None

    def done_category(self) -> Optional[Category]:
        return self.find_category(DONE_CATEGORY)

    def ordered_categories(self) -> List[Category]:
        return [self.categories[cid] for cid in self.category_ids]

    def ordered_projects(self, category: Category) -> List[Project]:
        return [self.projects[pid] for pid in category.project_ids]

    def project_tasks(self, project: Project) -> List[Task]:
        return [self.tasks[tid] for tid in project.task_ids]

    def archived_tasks(self) -> List[Task]:
        done = self.done_category()
        if done is None:
            return []
        return [self.tasks[tid] for tid in done.task_ids]

    def iter_projects(self) -> Iterator[Tuple[Category, Project]]:
        """Yield (category, project) pairs in document order."""
        for category in self.ordered_categories():
            for project in self.ordered_projects(category):
                yield category, project

    def task_container(self, task: Task) -> List[str]:
        """The ordered ID list a task currently sits in."""
        if task.is_archived:
            done = self.done_category()
            return done.task_ids if done else []
        return self.projects[task.project_id].task_ids

    # ------------------------------------------------------------------
    # Structural primitives
    # ------------------------------------------------------------------

    def attach_category(self, category: Category, index: Optional[int] = None) -> Category:
        category.id = self._claim_id(category.id)
        self.categories[category.id] = category
        _insert(self.category_ids, category.id, index)
        renumber(self.category_ids, self.categories)
        return category

    def attach_project(
        self, category_id: str, project: Project, index: Optional[int] = None
    ) -> Project:
        category = self.category(category_id)
        project.id = self._claim_id(project.id)
        project.category_id = category.id
        self.projects[project.id] = project
        _insert(category.project_ids, project.id, index)
        renumber(category.project_ids, self.projects)
        return project

    def attach_task(self, project_id: str, task: Task, index: Optional[int] = None) -> Task:
        project = self.project(project_id)
        task.id = self._claim_id(task.id)
        task.project_id = project.id
        self.tasks[task.id] = task
        _insert(project.task_ids, task.id, index)
        renumber(project.task_ids, self.tasks)
        return task

    def ensure_done_category(self) -> Category:
        done = self.done_category()
        if done is None:
            done = self.attach_category(Category(name=DONE_CATEGORY))
        return done

    def attach_archived_task(self, task: Task, index: Optional[int] = None) -> Task:
        done = self.ensure_done_category()
        task.id = self._claim_id(task.id)
        task.project_id = None
        task.state = TaskState.DONE
        self.tasks[task.id] = task
        _insert(done.task_ids, task.id, index)
        renumber(done.task_ids, self.tasks)
        return task

    def remove_task(self, task_id: str) -> Task:
        task = self.task(task_id)
        container = self.task_container(task)
        container.remove(task_id)
        renumber(container, self.tasks)
        del self.tasks[task_id]
        return task

    def remove_project(self, project_id: str) -> Project:
        project = self.project(project_id)
        for task_id in project.task_ids:
            del self.tasks[task_id]
        category = self.categories[project.category_id]
        category.project_ids.remove(project_id)
        renumber(category.project_ids, self.projects)
        del self.projects[project_id]
        return project

    def remove_category(self, category_id: str) -> Category:
        category = self.category(category_id)
        for project_id in list(category.project_ids):
            self.remove_project(project_id)
        for task_id in category.task_ids:
            del self.tasks[task_id]
        self.category_ids.remove(category_id)
        renumber(self.category_ids, self.categories)
        del self.categories[category_id]
        return category

    # ------------------------------------------------------------------
    # Structural equality
    # ------------------------------------------------------------------

    def outline(self) -> tuple:
        """Everything that round-trips through the file, without IDs."""
        cats = []
        for category in self.ordered_categories():
            projects = tuple(
                (
                    project.name,
                    project.active,
                    project.note,
                    tuple(
                        (task.state, task.text, task.note)
                        for task in self.project_tasks(project)
                    ),
                )
                for project in self.ordered_projects(category)
            )
            archived = tuple(
                (self.tasks[tid].state, self.tasks[tid].text, self.tasks[tid].note)
                for tid in category.task_ids
            )
            cats.append((category.name, projects, archived))
        return tuple(self.preamble), tuple(cats)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return self.outline() == other.outline()
