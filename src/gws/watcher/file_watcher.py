"""
Polling watcher for the todo file.

Editors commonly save by writing a new file and renaming it into place, and
bind mounts do not always forward inotify events, so we poll the file's
mtime and size instead of subscribing to filesystem events.

The watcher never reads the document. On a change it calls the command
loop's request_reload(); the session then decides (on the loop's thread)
whether the change is its own save, a clean reload or a conflict.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Optional, Tuple

log = logging.getLogger(__name__)

# Default polling interval in seconds (configurable via POLL_INTERVAL env var)
_DEFAULT_POLL_INTERVAL = 1.0

_Snapshot = Optional[Tuple[int, int]]


class FileWatcher:
    """
    Polls one file and posts reload signals when it changes.

    Usage:
        watcher = FileWatcher(loop, path)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(self, loop, path: Path, poll_interval: Optional[float] = None) -> None:
        self._loop = loop
        self._path = path
        self._poll_interval = poll_interval or float(
            os.environ.get("POLL_INTERVAL", _DEFAULT_POLL_INTERVAL)
        )
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._known: _Snapshot = self._snapshot()

    def start(self) -> None:
        """Start the polling thread (daemon)."""
        log.info("Watching %s (polling every %.1fs)", self._path, self._poll_interval)
        self._known = self._snapshot()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop, daemon=True, name="gws-file-watcher"
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the poll thread to stop and wait for it."""
        log.info("Stopping file watcher")
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self._poll_interval + 2)
            self._thread = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _poll_loop(self) -> None:
        """Poll until stop_event is set."""
        while not self._stop_event.is_set():
            self._stop_event.wait(self._poll_interval)
            if self._stop_event.is_set():
                break
            try:
                self.check_for_changes()
            except Exception:
                log.exception("Error during poll cycle")

    def check_for_changes(self) -> bool:
        """Single poll cycle. Returns True if a reload was requested."""
        current = self._snapshot()
        if current == self._known:
            return False

        if current is None:
            log.debug("Todo file disappeared: %s", self._path)
        else:
            log.debug("Todo file changed: %s", self._path)
        self._known = current
        self._loop.request_reload()
        return True

    def _snapshot(self) -> _Snapshot:
        try:
            stat = self._path.stat()
        except OSError:
            return None
        return stat.st_mtime_ns, stat.st_size
