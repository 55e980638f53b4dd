"""
Tests for the REST API routes.

Uses FastAPI TestClient against a real TodoSession with a temp todo file.
The command loop is not started; handlers run inline.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from fastapi.testclient import TestClient

from gws.api import create_app
from gws.store import CommandLoop, TodoSession, todo_file


CONTENT = (
    "## Work\n"
    "### 🔶 Site\n"
    "- 🔴 header\n"
    "- 🔴 footer\n"
    "### Paused\n"
    "- 🔴 idle\n"
    "## Done\n"
    "- ✅ old\n"
)


@pytest.fixture
def env(tmp_path):
    todo = tmp_path / "todo.md"
    todo.write_text(CONTENT, encoding="utf-8")
    session = TodoSession.open(todo)
    client = TestClient(create_app(CommandLoop(session)))
    return client, session, todo


def _task_id(session, text):
    return next(t.id for t in session.doc.tasks.values() if t.text == text)


def _project_id(session, name):
    return next(p.id for p in session.doc.projects.values() if p.name == name)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

class TestViews:
    def test_agenda(self, env):
        client, _, _ = env
        resp = client.get("/api/agenda")
        assert resp.status_code == 200
        assert [row["label"] for row in resp.json()] == ["Site/header"]

    def test_outline(self, env):
        client, _, _ = env
        resp = client.get("/api/outline")
        assert resp.status_code == 200
        assert [c["name"] for c in resp.json()["categories"]] == ["Work", "Done"]

    def test_status(self, env):
        client, _, _ = env
        resp = client.get("/api/status")
        assert resp.status_code == 200
        assert resp.json()["dirty"] is False

    def test_docs_served_under_api(self, env):
        client, _, _ = env
        assert client.get("/api/openapi.json").status_code == 200


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

class TestTaskRoutes:
    def test_add(self, env):
        client, session, _ = env
        resp = client.post(
            "/api/tasks", json={"project_id": _project_id(session, "Site"), "text": "sidebar"}
        )
        assert resp.status_code == 201
        assert resp.json()["state"] == "todo"

    def test_add_unknown_project(self, env):
        client, _, _ = env
        resp = client.post("/api/tasks", json={"project_id": "nope00", "text": "x"})
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Project 'nope00' not found"

    def test_add_empty_text(self, env):
        client, session, _ = env
        resp = client.post(
            "/api/tasks", json={"project_id": _project_id(session, "Site"), "text": "  "}
        )
        assert resp.status_code == 400

    def test_add_missing_field(self, env):
        client, _, _ = env
        assert client.post("/api/tasks", json={"text": "x"}).status_code == 422

    def test_patch(self, env):
        client, session, _ = env
        task_id = _task_id(session, "footer")
        resp = client.patch(f"/api/tasks/{task_id}", json={"state": "done"})
        assert resp.status_code == 200
        assert resp.json()["state"] == "done"

    def test_patch_bad_state(self, env):
        client, session, _ = env
        resp = client.patch(f"/api/tasks/{_task_id(session, 'footer')}", json={"state": "later"})
        assert resp.status_code == 400

    def test_note_line(self, env):
        client, session, _ = env
        task_id = _task_id(session, "header")
        resp = client.post(f"/api/tasks/{task_id}/note", json={"add": "remember"})
        assert resp.status_code == 200
        assert resp.json()["note"] == "remember"

    def test_promote_demote(self, env):
        client, session, _ = env
        task_id = _task_id(session, "header")
        assert client.post(f"/api/tasks/{task_id}/promote").json()["state"] == "in-progress"
        assert client.post(f"/api/tasks/{task_id}/demote").json()["state"] == "on-deck"

    def test_promote_unknown(self, env):
        client, _, _ = env
        assert client.post("/api/tasks/nope00/promote").status_code == 404

    def test_delete(self, env):
        client, session, _ = env
        task_id = _task_id(session, "old")
        resp = client.delete(f"/api/tasks/{task_id}")
        assert resp.status_code == 200
        assert session.doc.archived_tasks() == []

    def test_move(self, env):
        client, session, _ = env
        resp = client.post(
            f"/api/tasks/{_task_id(session, 'footer')}/move", json={"direction": "up"}
        )
        assert resp.status_code == 200
        assert resp.json()["moved"] is True

    def test_agenda_move_hidden_task(self, env):
        client, session, _ = env
        resp = client.post(
            f"/api/agenda/{_task_id(session, 'footer')}/move", json={"direction": "down"}
        )
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Projects and categories
# ---------------------------------------------------------------------------

class TestStructureRoutes:
    def test_project_lifecycle(self, env):
        client, session, _ = env
        work = session.doc.find_category("Work").id
        resp = client.post("/api/projects", json={"category_id": work, "name": "Blog"})
        assert resp.status_code == 201
        project_id = resp.json()["id"]

        resp = client.patch(f"/api/projects/{project_id}", json={"note": "Weekly posts"})
        assert resp.json()["note"] == "Weekly posts"

        resp = client.post(f"/api/projects/{project_id}/toggle")
        assert resp.json()["active"] is False

        resp = client.post(f"/api/projects/{project_id}/move", json={"direction": "up"})
        assert resp.json()["position"] == 1

        assert client.delete(f"/api/projects/{project_id}").status_code == 200
        assert project_id not in session.doc.projects

    def test_project_into_done(self, env):
        client, session, _ = env
        resp = client.post(
            f"/api/projects/{_project_id(session, 'Paused')}/move",
            json={"category_id": session.doc.done_category().id},
        )
        assert resp.status_code == 400

    def test_category_lifecycle(self, env):
        client, session, _ = env
        resp = client.post("/api/categories", json={"name": "Home", "index": 0})
        assert resp.status_code == 201
        category_id = resp.json()["id"]

        resp = client.patch(f"/api/categories/{category_id}", json={"name": "House"})
        assert resp.json()["name"] == "House"

        resp = client.post(f"/api/categories/{category_id}/move", json={"direction": "down"})
        assert resp.json() == {"moved": True, "position": 1}

        assert client.delete(f"/api/categories/{category_id}").status_code == 200
        assert session.doc.find_category("House") is None

    def test_reserved_category_name(self, env):
        client, _, _ = env
        assert client.post("/api/categories", json={"name": "Done"}).status_code == 400


# ---------------------------------------------------------------------------
# Document routes
# ---------------------------------------------------------------------------

class TestDocumentRoutes:
    def test_archive(self, env):
        client, session, _ = env
        client.patch(f"/api/tasks/{_task_id(session, 'header')}", json={"state": "done"})
        resp = client.post("/api/archive")
        assert resp.status_code == 200
        assert resp.json()["count"] == 1

    def test_collapse(self, env):
        client, session, _ = env
        work = session.doc.find_category("Work").id
        resp = client.post(f"/api/items/{work}/collapse", json={"collapsed": True})
        assert resp.json() == {"id": work, "collapsed": True}
        assert client.post("/api/items/nope00/collapse", json={}).status_code == 404

    def test_save(self, env):
        client, session, todo = env
        client.post(f"/api/tasks/{_task_id(session, 'header')}/promote")
        resp = client.post("/api/save")
        assert resp.status_code == 200
        assert resp.json()["dirty"] is False
        assert "- 🔶 header\n" in todo.read_text(encoding="utf-8")

    def test_save_failure_is_503(self, env, monkeypatch):
        client, session, _ = env

        def boom(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(todo_file.os, "replace", boom)
        resp = client.post("/api/save")
        assert resp.status_code == 503

    def test_reload_conflict_is_409(self, env):
        client, session, _ = env
        client.post(f"/api/tasks/{_task_id(session, 'header')}/promote")
        assert client.post("/api/reload", json={}).status_code == 409
        resp = client.post("/api/reload", json={"discard": True})
        assert resp.status_code == 200
        assert resp.json()["dirty"] is False

    def test_resolve_conflict(self, env):
        client, session, todo = env
        client.post(f"/api/tasks/{_task_id(session, 'header')}/promote")
        todo.write_text(CONTENT + "## Home\n", encoding="utf-8")
        assert session.handle_reload_signal() == "conflict"
        assert client.get("/api/status").json()["conflict"] is True

        assert client.post("/api/conflict/resolve", json={"choice": "merge"}).status_code == 400
        resp = client.post("/api/conflict/resolve", json={"choice": "overwrite"})
        assert resp.status_code == 200
        assert resp.json()["conflict"] is False
        assert "## Home" not in todo.read_text(encoding="utf-8")
