"""
gws MCP server entry point.

Startup sequence:
1. Read GWS_FILE and the other settings from the environment
2. Open the TodoSession (parse the file, load view state)
3. Start the command loop worker thread
4. Start the FileWatcher daemon thread
5. Start REST API server in background thread (if API_ENABLED)
6. Register all MCP tools
7. Run MCP server (stdio transport)

Shutdown: stop the watcher, save if dirty, persist view state, stop the loop.
"""

import logging
import os
import sys
import threading
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from gws.errors import TodoIOError
from gws.store import CommandLoop, TodoSession
from gws.tools import register_todo_tools
from gws.watcher import FileWatcher

log = logging.getLogger(__name__)

DEFAULT_TODO_FILE = "~/.gws/todo.md"
DEFAULT_API_PORT = 9410


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


def _configure_logging() -> None:
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _start_api_server(loop, port: int) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from gws.api.app import create_app

    app = create_app(loop)
    log.info("Starting REST API on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")


def shutdown(watcher: FileWatcher, loop: CommandLoop) -> None:
    """Stop the watcher, flush unsaved edits and view state, stop the loop."""
    watcher.stop()

    def flush(session: TodoSession) -> None:
        if session.dirty:
            log.info("Saving unsaved edits before exit")
            session.save()
        session.persist_view_state()

    try:
        loop.call(flush)
    except TodoIOError:
        log.exception("Could not save %s on shutdown", loop.session.path)
    finally:
        loop.stop()


def main() -> None:
    _configure_logging()

    todo_path = Path(os.environ.get("GWS_FILE", DEFAULT_TODO_FILE)).expanduser()
    if not todo_path.is_file():
        log.error("Todo file does not exist: %s", todo_path)
        sys.exit(1)

    autosave = _env_flag("AUTOSAVE", "true")
    log.info("Todo file: %s (autosave %s)", todo_path, "on" if autosave else "off")

    try:
        session = TodoSession.open(todo_path, autosave=autosave)
    except TodoIOError as e:
        log.error("Could not load todo file: %s", e)
        sys.exit(1)

    # Start the worker that owns the session
    loop = CommandLoop(session)
    loop.start()

    # Start file watcher
    watcher = FileWatcher(loop, todo_path)
    watcher.start()

    # Start REST API in a daemon thread
    if _env_flag("API_ENABLED", "true"):
        api_port = int(os.environ.get("API_PORT", str(DEFAULT_API_PORT)))
        api_thread = threading.Thread(
            target=_start_api_server, args=(loop, api_port), daemon=True
        )
        api_thread.start()

    # Create MCP server and register tools
    mcp = FastMCP("gws")
    register_todo_tools(mcp, loop)

    log.info("Starting gws server")
    try:
        mcp.run(transport="stdio")
    finally:
        shutdown(watcher, loop)


if __name__ == "__main__":
    main()
