"""
Collapsed-flag sidecar file.

The flags are UI state, not data, so they stay out of the todo file. They are
stored next to it (``todo.md`` → ``todo.state``) as JSON. IDs are not stable
across processes, so entries are keyed by name path instead. The trailing
number tells apart siblings that share a name:

    {"collapsed": [["category", "Work", "0"],
                   ["project", "Work", "Website", "0"],
                   ["task", "Work", "Website", "Fix the header", "0"],
                   ["archived", "Old task", "0"]]}

Entries whose entity no longer exists are dropped on the next save.
"""

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List, Set, Tuple

from gws.errors import TodoIOError
from gws.models import Document
from gws.store.todo_file import atomic_write

log = logging.getLogger(__name__)

NamePath = Tuple[str, ...]


def state_file_for(todo_path: Path) -> Path:
    return todo_path.with_suffix(".state")


def name_paths(doc: Document) -> Dict[str, NamePath]:
    """
    Map every entity ID in ``doc`` to its name path.

    The last element counts earlier siblings with the same name, so two
    tasks called "Call the bank" in one project keep separate entries.
    """
    paths: Dict[str, NamePath] = {}
    seen: Counter = Counter()

    def add(entity_id: str, *parts: str) -> None:
        paths[entity_id] = parts + (str(seen[parts]),)
        seen[parts] += 1

    for category in doc.ordered_categories():
        add(category.id, "category", category.name)
        for project in doc.ordered_projects(category):
            add(project.id, "project", category.name, project.name)
            for task in doc.project_tasks(project):
                add(task.id, "task", category.name, project.name, task.text)
        for task_id in category.task_ids:
            add(task_id, "archived", doc.tasks[task_id].text)
    return paths


class ViewState:
    """Collapsed flags for one todo file, persisted as JSON."""

    def __init__(self, state_file: Path) -> None:
        self.state_file = state_file
        self._paths: Set[NamePath] = set()

    def load(self) -> None:
        """Read the sidecar. A missing or corrupt file means nothing is collapsed."""
        self._paths = set()
        if not self.state_file.exists():
            return
        try:
            with open(self.state_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError):
            log.warning("Ignoring unreadable view state file %s", self.state_file)
            return
        if not isinstance(data, dict):
            log.warning("Ignoring malformed view state file %s", self.state_file)
            return
        for entry in data.get("collapsed", []):
            if isinstance(entry, list) and all(isinstance(part, str) for part in entry):
                self._paths.add(tuple(entry))

    def save(self) -> None:
        data = {"collapsed": sorted(list(path) for path in self._paths)}
        try:
            atomic_write(self.state_file, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
        except TodoIOError:
            log.exception("Failed to save view state to %s", self.state_file)

    def collapsed_ids(self, doc: Document) -> Set[str]:
        """Resolve the stored name paths against ``doc``."""
        return {eid for eid, path in name_paths(doc).items() if path in self._paths}

    def update(self, doc: Document, collapsed: Iterable[str]) -> None:
        """Replace the stored paths with those of the ``collapsed`` IDs."""
        paths = name_paths(doc)
        self._paths = {paths[eid] for eid in collapsed if eid in paths}

    @property
    def entries(self) -> List[NamePath]:
        return sorted(self._paths)
