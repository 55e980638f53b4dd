"""
Serializer for the todo markdown dialect.

Main API:
    serialize(document)  → str

This is the inverse of parsers.todo_parser: ``parse_content(serialize(doc))``
yields a document equal to ``doc``. Output is canonical, so the same document
always produces byte-identical text:

- one blank line between categories and before every project heading
- archived tasks directly under ``## Done``, always with the ✅ glyph
- notes indented by two spaces under their task
- exactly one trailing newline
"""

from typing import List

from gws.models.document import Document
from gws.models.task import ACTIVE_PROJECT_GLYPH, Category, Project, Task, TaskState

NOTE_INDENT = "  "


def _task_lines(task: Task, state: TaskState) -> List[str]:
    lines = [f"- {state.glyph} {task.text}".rstrip()]
    for note in task.note_lines:
        lines.append(f"{NOTE_INDENT}{note}".rstrip())
    return lines


def _project_lines(doc: Document, project: Project) -> List[str]:
    if project.active:
        heading = f"### {ACTIVE_PROJECT_GLYPH} {project.name}"
    else:
        heading = f"### {project.name}"
    lines = [heading.rstrip()]
    lines.extend(project.note_lines)
    for task in doc.project_tasks(project):
        lines.extend(_task_lines(task, task.state))
    return lines


def _category_lines(doc: Document, category: Category) -> List[str]:
    lines = [f"## {category.name}".rstrip()]
    if category.is_archive:
        for task_id in category.task_ids:
            lines.extend(_task_lines(doc.tasks[task_id], TaskState.DONE))
        return lines
    for project in doc.ordered_projects(category):
        lines.append("")
        lines.extend(_project_lines(doc, project))
    return lines


def serialize(doc: Document) -> str:
    """Render a Document as canonical todo markdown."""
    lines: List[str] = list(doc.preamble)

    for category in doc.ordered_categories():
        if lines:
            lines.append("")
        lines.extend(_category_lines(doc, category))

    return "\n".join(lines) + "\n"
