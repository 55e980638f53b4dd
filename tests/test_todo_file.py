"""
Tests for store/todo_file.py.

Uses real files under tmp_path. Interrupted saves are simulated by making
os.fsync / os.replace fail part-way through.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from gws.errors import TodoFileNotFoundError, TodoIOError
from gws.parsers import parse_content
from gws.store import todo_file
from gws.store.todo_file import load, read_fingerprint, save


CONTENT = "## Work\n\n### 🔶 Site\n- 🔵 header\n  a note\n"


@pytest.fixture
def todo(tmp_path):
    path = tmp_path / "todo.md"
    path.write_text(CONTENT, encoding="utf-8")
    return path


class TestLoad:
    def test_load(self, todo):
        doc, diagnostics, fingerprint = load(todo)
        assert [c.name for c in doc.ordered_categories()] == ["Work"]
        assert diagnostics == []
        assert fingerprint.size == len(CONTENT.encode("utf-8"))

    def test_missing_file(self, tmp_path):
        with pytest.raises(TodoFileNotFoundError):
            load(tmp_path / "nope.md")

    def test_missing_file_is_an_io_error(self, tmp_path):
        with pytest.raises(TodoIOError):
            load(tmp_path / "nope.md")

    def test_invalid_utf8_is_replaced(self, tmp_path):
        path = tmp_path / "todo.md"
        path.write_bytes(b"## Work\n### P\n- \xf0\x9f\x94\xb4 bad \xff byte\n")
        doc, diagnostics, _ = load(path)
        task = next(iter(doc.tasks.values()))
        assert "�" in task.text
        assert diagnostics[0].line_number == 0

    def test_previous_ids_reused(self, todo):
        first, _, _ = load(todo)
        second, _, _ = load(todo, previous=first)
        assert set(second.tasks) == set(first.tasks)


class TestSave:
    def test_save_and_reload(self, todo):
        doc, _, _ = load(todo)
        next(iter(doc.tasks.values())).text = "renamed"
        save(todo, doc)
        again, _, _ = load(todo)
        assert again == doc
        assert "- 🔵 renamed\n" in todo.read_text(encoding="utf-8")

    def test_fingerprint_matches_disk(self, todo):
        doc, _, _ = load(todo)
        fingerprint = save(todo, doc)
        on_disk = read_fingerprint(todo)
        assert on_disk.digest == fingerprint.digest
        assert on_disk.size == fingerprint.size

    def test_missing_directory(self, tmp_path):
        doc, _ = parse_content(CONTENT)
        with pytest.raises(TodoIOError):
            save(tmp_path / "missing" / "todo.md", doc)

    def test_no_temp_files_left(self, todo):
        doc, _, _ = load(todo)
        save(todo, doc)
        assert sorted(p.name for p in todo.parent.iterdir()) == ["todo.md"]


class TestAtomicity:
    def _broken_doc(self, todo):
        doc, _, _ = load(todo)
        next(iter(doc.tasks.values())).text = "never written"
        return doc

    def test_failed_rename_leaves_target_untouched(self, todo, monkeypatch):
        doc = self._broken_doc(todo)

        def boom(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(todo_file.os, "replace", boom)
        with pytest.raises(TodoIOError):
            save(todo, doc)

        assert todo.read_text(encoding="utf-8") == CONTENT
        assert sorted(p.name for p in todo.parent.iterdir()) == ["todo.md"]

    def test_failed_fsync_leaves_target_untouched(self, todo, monkeypatch):
        doc = self._broken_doc(todo)

        def boom(fd):
            raise OSError("I/O error")

        monkeypatch.setattr(todo_file.os, "fsync", boom)
        with pytest.raises(TodoIOError):
            save(todo, doc)

        assert todo.read_text(encoding="utf-8") == CONTENT
        assert sorted(p.name for p in todo.parent.iterdir()) == ["todo.md"]


class TestFingerprint:
    def test_missing_file(self, tmp_path):
        assert read_fingerprint(tmp_path / "nope.md") is None

    def test_content_change_changes_digest(self, todo):
        before = read_fingerprint(todo)
        todo.write_text(CONTENT + "\n## More\n", encoding="utf-8")
        after = read_fingerprint(todo)
        assert before.digest != after.digest

    def test_same_content_same_digest(self, todo):
        before = read_fingerprint(todo)
        todo.write_text(CONTENT, encoding="utf-8")
        assert read_fingerprint(todo).digest == before.digest
