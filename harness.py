"""
Interactive harness for testing gws without MCP integration.

Usage:
    python harness.py <TODO_FILE> [--no-autosave]

Drops you into an interactive REPL where you can run the tool handlers
directly. Also prints a quick smoke test on startup to verify parsing and the
agenda work.
"""

import sys
import json
from pathlib import Path

# Add src/ to path so imports work
sys.path.insert(0, str(Path(__file__).parent / "src"))

from gws.errors import TrackerError
from gws.store import CommandLoop, TodoSession
from gws.tools import todo_tools


def smoke_test(loop: CommandLoop) -> None:
    """Quick automated checks after loading."""
    st = todo_tools.handle_status(loop)
    print("\n=== Smoke Test ===")
    print(f"  Todo file:      {st['path']}")
    print(f"  Categories:     {st['categories']}")
    print(f"  Projects:       {st['projects']}")
    print(f"  Tasks:          {st['tasks']} ({st['archived']} archived)")
    print(f"  Autosave:       {st['autosave']}")

    if st["diagnostics"]:
        print(f"\n  Diagnostics ({len(st['diagnostics'])}):")
        for d in st["diagnostics"][:10]:
            print(f"    {d}")

    rows = todo_tools.handle_agenda(loop)
    print(f"\n  Agenda ({len(rows)}):")
    for row in rows[:10]:
        print(f"    {row['rank']:3d}. {row['glyph']} {row['label']}  [{row['task_id']}]")
    if len(rows) > 10:
        print(f"    ... and {len(rows) - 10} more")

    print("\n=== Smoke Test Complete ===\n")


def _print_outline(outline: dict) -> None:
    for category in outline["categories"]:
        print(f"## {category['name']}  [{category['id']}]")
        for project in category.get("projects", []):
            marker = "🔶 " if project["active"] else ""
            print(f"  ### {marker}{project['name']}  [{project['id']}]")
            for task in project["tasks"]:
                print(f"    - {task['glyph']} {task['text']}  [{task['id']}]")
        for task in category.get("tasks", []):
            print(f"  - {task['glyph']} {task['text']}  [{task['id']}]")


def repl(loop: CommandLoop) -> None:
    """Simple REPL for interactive exploration."""
    print("Interactive mode. Type 'help' for commands, 'quit' to exit.\n")

    commands = {
        "help":     "Show this help",
        "status":   "Show session status",
        "agenda":   "Show the agenda",
        "outline":  "Show the whole file as a tree",
        "find":     "Search task texts. Usage: find <substring>",
        "promote":  "Promote a task. Usage: promote <task_id>",
        "demote":   "Demote a task. Usage: demote <task_id>",
        "toggle":   "Activate/deactivate a project. Usage: toggle <project_id>",
        "add":      "Add a task. Usage: add <project_id> <text...>",
        "up":       "Move an agenda item up. Usage: up <task_id>",
        "down":     "Move an agenda item down. Usage: down <task_id>",
        "archive":  "Archive all Done tasks",
        "save":     "Write the file",
        "reload":   "Re-read the file. Usage: reload [discard]",
        "quit":     "Exit",
    }

    while True:
        try:
            line = input("gws> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not line:
            continue

        parts = line.split()
        cmd = parts[0].lower()

        if cmd == "quit" or cmd == "exit":
            break

        try:
            if cmd == "help":
                for k, v in commands.items():
                    print(f"  {k:12s} {v}")

            elif cmd == "status":
                print(json.dumps(todo_tools.handle_status(loop), indent=2))

            elif cmd == "agenda":
                for row in todo_tools.handle_agenda(loop):
                    print(f"  {row['rank']:3d}. {row['glyph']} {row['label']}  [{row['task_id']}]")

            elif cmd == "outline":
                _print_outline(todo_tools.handle_outline(loop))

            elif cmd == "find":
                if len(parts) < 2:
                    print("Usage: find <substring>")
                    continue
                needle = " ".join(parts[1:]).lower()
                tasks = loop.call(lambda s: list(s.doc.tasks.values()))
                matches = [t for t in tasks if needle in t.text.lower()]
                print(f"Found {len(matches)} tasks:")
                for t in matches:
                    print(f"  {t.state.glyph} {t.id:8s} {t.text}")

            elif cmd in ("promote", "demote"):
                if len(parts) < 2:
                    print(f"Usage: {cmd} <task_id>")
                    continue
                handler = todo_tools.handle_task_promote if cmd == "promote" else todo_tools.handle_task_demote
                task = handler(loop, task_id=parts[1])
                print(f"  {task['glyph']} {task['text']}")

            elif cmd == "toggle":
                if len(parts) < 2:
                    print("Usage: toggle <project_id>")
                    continue
                project = todo_tools.handle_project_toggle(loop, project_id=parts[1])
                print(f"  {project['name']}: {'active' if project['active'] else 'inactive'}")

            elif cmd == "add":
                if len(parts) < 3:
                    print("Usage: add <project_id> <text...>")
                    continue
                task = todo_tools.handle_task_add(loop, project_id=parts[1], text=" ".join(parts[2:]))
                print(f"  Added [{task['id']}] {task['text']}")

            elif cmd in ("up", "down"):
                if len(parts) < 2:
                    print(f"Usage: {cmd} <task_id>")
                    continue
                result = todo_tools.handle_agenda_move(loop, task_id=parts[1], direction=cmd)
                print("  Moved" if result["moved"] else "  Already at the edge of its project")

            elif cmd == "archive":
                result = todo_tools.handle_archive_done(loop)
                print(f"  Archived {result['count']} tasks")

            elif cmd == "save":
                todo_tools.handle_save(loop)
                print("  Saved")

            elif cmd == "reload":
                discard = len(parts) > 1 and parts[1] == "discard"
                todo_tools.handle_reload(loop, discard=discard)
                print("  Reloaded")

            else:
                print(f"  Unknown command: {cmd}. Type 'help' for commands.")

        except TrackerError as e:
            print(f"  Error: {e}")


def main():
    if len(sys.argv) < 2:
        print("Usage: python harness.py <TODO_FILE> [--no-autosave]")
        sys.exit(1)

    todo_path = Path(sys.argv[1]).expanduser().resolve()
    if not todo_path.is_file():
        print(f"Error: {todo_path} is not a file")
        sys.exit(1)

    autosave = "--no-autosave" not in sys.argv[2:]

    print(f"Loading {todo_path} ...")
    session = TodoSession.open(todo_path, autosave=autosave)

    # The loop is never started, so every command runs inline
    loop = CommandLoop(session)

    smoke_test(loop)
    try:
        repl(loop)
    finally:
        if session.dirty:
            session.save()
            print("Saved unsaved edits.")
        session.persist_view_state()


if __name__ == "__main__":
    main()
