"""
Tests for tools/todo_tools.py.

Uses a real TodoSession backed by a temporary todo file. The command loop is
not started, so every tool runs inline. Exercises the MCP tool functions
directly (bypasses transport).
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from gws.store import CommandLoop, TodoSession
from gws.tools import register_todo_tools


CONTENT = (
    "Things to do\n"
    "\n"
    "## Work\n"
    "### 🔶 Site\n"
    "- 🔴 header\n"
    "  with a note\n"
    "- 🔴 footer\n"
    "### Paused\n"
    "- 🔴 idle\n"
    "## Home\n"
    "### 🔶 Garden\n"
    "- 🔶 weeding\n"
    "- ✅ mowing\n"
    "## Done\n"
    "- ✅ old\n"
)


class _FakeMCP:
    """Minimal fake to capture tool registrations."""

    def __init__(self):
        self._tools = {}

    def tool(self, *args, **kwargs):
        """Decorator that records functions by name."""
        def decorator(fn):
            self._tools[fn.__name__] = fn
            return fn
        return decorator

    def get(self, name: str):
        return self._tools[name]


@pytest.fixture
def setup(tmp_path):
    todo = tmp_path / "todo.md"
    todo.write_text(CONTENT, encoding="utf-8")
    session = TodoSession.open(todo)
    loop = CommandLoop(session)

    mcp = _FakeMCP()
    register_todo_tools(mcp, loop)

    return mcp, session, todo


def _call(mcp, tool_name, /, **kwargs):
    return json.loads(mcp.get(tool_name)(**kwargs))


def _task_id(session, text):
    return next(t.id for t in session.doc.tasks.values() if t.text == text)


def _project_id(session, name):
    return next(p.id for p in session.doc.projects.values() if p.name == name)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

class TestViews:
    def test_agenda(self, setup):
        mcp, _, _ = setup
        rows = _call(mcp, "agenda")
        assert [r["label"] for r in rows] == ["Site/header", "Garden/weeding", "Garden/mowing"]
        assert [r["rank"] for r in rows] == [1, 2, 3]
        assert rows[0]["state"] == "on-deck"
        assert rows[0]["glyph"] == "🔵"

    def test_outline(self, setup):
        mcp, _, _ = setup
        outline = _call(mcp, "outline")
        assert outline["preamble"] == ["Things to do"]
        names = [c["name"] for c in outline["categories"]]
        assert names == ["Work", "Home", "Done"]

        work = outline["categories"][0]
        assert [p["name"] for p in work["projects"]] == ["Site", "Paused"]
        assert work["projects"][0]["tasks"][0]["note"] == "with a note"

        done = outline["categories"][2]
        assert done["archive"] is True
        assert [t["text"] for t in done["tasks"]] == ["old"]

    def test_status(self, setup):
        mcp, _, todo = setup
        status = _call(mcp, "todo_status")
        assert status["path"] == str(todo)
        assert status["dirty"] is False
        assert status["tasks"] == 6


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

class TestTaskTools:
    def test_add(self, setup):
        mcp, session, _ = setup
        result = _call(mcp, "task_add", project_id=_project_id(session, "Site"), text="sidebar")
        assert result["text"] == "sidebar"
        assert result["state"] == "todo"
        assert result["position"] == 2
        assert session.dirty is True

    def test_add_to_unknown_project(self, setup):
        mcp, _, _ = setup
        result = _call(mcp, "task_add", project_id="nope00", text="x")
        assert result == {"error": "Project 'nope00' not found"}

    def test_update_text_state_and_note(self, setup):
        mcp, session, _ = setup
        task_id = _task_id(session, "footer")
        result = _call(
            mcp, "task_update", task_id=task_id, text="new footer", state="in-progress", note="n"
        )
        assert result["text"] == "new footer"
        assert result["state"] == "in-progress"
        assert result["note"] == "n"

    def test_update_bad_state_changes_nothing(self, setup):
        mcp, session, _ = setup
        task_id = _task_id(session, "footer")
        result = _call(mcp, "task_update", task_id=task_id, text="renamed", state="maybe")
        assert "error" in result
        assert session.doc.tasks[task_id].text == "footer"

    def test_rejected_note_leaves_text_unchanged(self, setup):
        mcp, session, _ = setup
        task_id = _task_id(session, "footer")
        result = _call(
            mcp, "task_update", task_id=task_id, text="renamed", note="- 🔴 looks like a task"
        )
        assert "error" in result
        assert session.doc.tasks[task_id].text == "footer"
        assert session.dirty is False

    def test_bad_note_line_index_rejects_whole_update(self, setup):
        mcp, session, _ = setup
        task_id = _task_id(session, "header")
        result = _call(
            mcp, "task_update", task_id=task_id, text="renamed", add_note_line="x", delete_note_line=5
        )
        assert "error" in result
        task = session.doc.tasks[task_id]
        assert (task.text, task.note) == ("header", "with a note")

    def test_note_lines(self, setup):
        mcp, session, _ = setup
        task_id = _task_id(session, "header")
        result = _call(mcp, "task_update", task_id=task_id, add_note_line="second line")
        assert result["note"] == "with a note\nsecond line"
        result = _call(mcp, "task_update", task_id=task_id, delete_note_line=0)
        assert result["note"] == "second line"

    def test_promote_and_demote(self, setup):
        mcp, session, _ = setup
        task_id = _task_id(session, "header")
        assert _call(mcp, "task_promote", task_id=task_id)["state"] == "in-progress"
        assert _call(mcp, "task_demote", task_id=task_id)["state"] == "on-deck"

    def test_promote_archived_task(self, setup):
        mcp, session, _ = setup
        result = _call(mcp, "task_promote", task_id=_task_id(session, "old"))
        assert "error" in result

    def test_delete(self, setup):
        mcp, session, _ = setup
        task_id = _task_id(session, "header")
        result = _call(mcp, "task_delete", task_id=task_id)
        assert result == {"deleted": task_id, "text": "header"}
        # Auto-promote picked the next task
        assert session.doc.tasks[_task_id(session, "footer")].state.value == "on-deck"

    def test_move_step(self, setup):
        mcp, session, _ = setup
        result = _call(mcp, "task_move", task_id=_task_id(session, "footer"), direction="up")
        assert result["moved"] is True
        assert result["task"]["position"] == 0

    def test_move_to_project(self, setup):
        mcp, session, _ = setup
        garden = _project_id(session, "Garden")
        result = _call(
            mcp, "task_move", task_id=_task_id(session, "footer"), project_id=garden, index=0
        )
        assert result["task"]["project_id"] == garden
        assert result["task"]["position"] == 0

    def test_move_needs_a_target(self, setup):
        mcp, session, _ = setup
        result = _call(mcp, "task_move", task_id=_task_id(session, "footer"))
        assert "error" in result

    def test_agenda_move(self, setup):
        mcp, session, _ = setup
        result = _call(mcp, "agenda_move", task_id=_task_id(session, "mowing"), direction="up")
        assert result["moved"] is True
        assert [r["label"] for r in result["agenda"]] == [
            "Site/header", "Garden/mowing", "Garden/weeding",
        ]

    def test_agenda_move_bad_direction(self, setup):
        mcp, session, _ = setup
        result = _call(mcp, "agenda_move", task_id=_task_id(session, "mowing"), direction="left")
        assert "error" in result


# ---------------------------------------------------------------------------
# Projects and categories
# ---------------------------------------------------------------------------

class TestProjectTools:
    def test_add_with_note(self, setup):
        mcp, session, _ = setup
        home = session.doc.find_category("Home").id
        result = _call(mcp, "project_add", category_id=home, name="Kitchen", note="Plan it")
        assert result["active"] is True
        assert result["note"] == "Plan it"
        assert result["category_id"] == home

    def test_add_with_bad_note_adds_nothing(self, setup):
        mcp, session, _ = setup
        home = session.doc.find_category("Home").id
        result = _call(mcp, "project_add", category_id=home, name="New", note="## heading")
        assert "error" in result
        assert "New" not in [p.name for p in session.doc.projects.values()]
        assert session.dirty is False

    def test_update_with_bad_note_keeps_name(self, setup):
        mcp, session, _ = setup
        site = _project_id(session, "Site")
        result = _call(mcp, "project_update", project_id=site, name="Website", note="- list item")
        assert "error" in result
        assert session.doc.projects[site].name == "Site"

    def test_toggle(self, setup):
        mcp, session, _ = setup
        result = _call(mcp, "project_toggle", project_id=_project_id(session, "Paused"))
        assert result["active"] is True
        assert result["tasks"][0]["state"] == "on-deck"

    def test_update(self, setup):
        mcp, session, _ = setup
        result = _call(
            mcp, "project_update", project_id=_project_id(session, "Site"), name="Website"
        )
        assert result["name"] == "Website"

    def test_delete(self, setup):
        mcp, session, _ = setup
        result = _call(mcp, "project_delete", project_id=_project_id(session, "Paused"))
        assert result["name"] == "Paused"
        assert "idle" not in [t.text for t in session.doc.tasks.values()]

    def test_move_spills_into_next_category(self, setup):
        mcp, session, _ = setup
        result = _call(
            mcp, "project_move", project_id=_project_id(session, "Paused"), direction="down"
        )
        assert result["moved"] is True
        assert result["category_id"] == session.doc.find_category("Home").id
        assert result["position"] == 0

    def test_move_into_done_rejected(self, setup):
        mcp, session, _ = setup
        result = _call(
            mcp,
            "project_move",
            project_id=_project_id(session, "Paused"),
            category_id=session.doc.done_category().id,
        )
        assert "error" in result


class TestCategoryTools:
    def test_add(self, setup):
        mcp, _, _ = setup
        result = _call(mcp, "category_add", name="Errands", index=0)
        assert result["position"] == 0
        assert result["projects"] == []

    def test_add_done_rejected(self, setup):
        mcp, _, _ = setup
        assert "error" in _call(mcp, "category_add", name="Done")

    def test_rename(self, setup):
        mcp, session, _ = setup
        result = _call(
            mcp, "category_rename", category_id=session.doc.find_category("Home").id, name="House"
        )
        assert result["name"] == "House"

    def test_delete(self, setup):
        mcp, session, _ = setup
        result = _call(mcp, "category_delete", category_id=session.doc.find_category("Home").id)
        assert result["name"] == "Home"
        assert session.doc.find_category("Home") is None

    def test_move(self, setup):
        mcp, session, _ = setup
        home = session.doc.find_category("Home").id
        result = _call(mcp, "category_move", category_id=home, direction="up")
        assert result == {"moved": True, "position": 0}


# ---------------------------------------------------------------------------
# Whole document
# ---------------------------------------------------------------------------

class TestDocumentTools:
    def test_archive_done(self, setup):
        mcp, session, _ = setup
        result = _call(mcp, "archive_done")
        assert result["count"] == 1
        assert [t.text for t in session.doc.archived_tasks()] == ["old", "mowing"]

    def test_collapse_toggle_and_set(self, setup):
        mcp, session, _ = setup
        work = session.doc.find_category("Work").id
        assert _call(mcp, "item_collapse", entity_id=work) == {"id": work, "collapsed": True}
        assert _call(mcp, "item_collapse", entity_id=work, collapsed=True)["collapsed"] is True
        outline = _call(mcp, "outline")
        assert outline["categories"][0]["collapsed"] is True

    def test_collapse_unknown(self, setup):
        mcp, _, _ = setup
        assert "error" in _call(mcp, "item_collapse", entity_id="nope00")

    def test_save(self, setup):
        mcp, session, todo = setup
        _call(mcp, "task_promote", task_id=_task_id(session, "header"))
        status = _call(mcp, "todo_save")
        assert status["dirty"] is False
        assert "- 🔶 header\n" in todo.read_text(encoding="utf-8")

    def test_reload_with_unsaved_edits(self, setup):
        mcp, session, _ = setup
        _call(mcp, "task_promote", task_id=_task_id(session, "header"))
        assert "error" in _call(mcp, "todo_reload")
        assert _call(mcp, "todo_reload", discard=True)["dirty"] is False

    def test_resolve_conflict(self, setup):
        mcp, session, todo = setup
        _call(mcp, "task_promote", task_id=_task_id(session, "header"))
        todo.write_text(CONTENT + "## Extra\n", encoding="utf-8")
        assert session.handle_reload_signal() == "conflict"

        assert "error" in _call(mcp, "todo_resolve_conflict", choice="merge")
        status = _call(mcp, "todo_resolve_conflict", choice="reload")
        assert status["conflict"] is False
        assert session.doc.find_category("Extra") is not None
