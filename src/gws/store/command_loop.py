"""
Sequential command loop.

Every read and write of the TodoSession happens on one worker thread, fed by
a queue. MCP tools and REST handlers call submit() and block on the returned
Future; the file watcher calls request_reload(), which only enqueues a
signal. Nothing outside the worker ever touches the session, so no locking
is needed anywhere else.
"""

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional, Tuple, Union

from gws.errors import TodoIOError
from gws.store.session import TodoSession

log = logging.getLogger(__name__)

# How long a caller waits for its command before giving up
DEFAULT_TIMEOUT = 30.0


class ReloadRequested:
    """Queue marker: the file changed on disk."""


_RELOAD = ReloadRequested()
_STOP = None

_Command = Tuple[Callable[..., Any], tuple, dict, Future]
_Item = Union[_Command, ReloadRequested, None]


class CommandLoop:
    """
    Owns a TodoSession and runs commands against it one at a time.

    Usage:
        loop = CommandLoop(session)
        loop.start()
        state = loop.call(lambda s: s.promote_task(task_id))
        loop.stop()
    """

    def __init__(self, session: TodoSession) -> None:
        self._session = session
        self._queue: "queue.Queue[_Item]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._reload_pending = threading.Event()

    @property
    def session(self) -> TodoSession:
        """Direct access for startup and shutdown only, while the worker is not running."""
        return self._session

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the worker thread (daemon)."""
        self._thread = threading.Thread(
            target=self._worker_loop, daemon=True, name="gws-command-loop"
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Drain queued commands, then stop the worker and wait for it."""
        self._queue.put(_STOP)
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """
        Queue ``fn(session, *args, **kwargs)`` and return its Future.

        If the worker is not running the command runs inline, which keeps
        single-threaded callers (tests, startup code) simple.
        """
        future: Future = Future()
        if not self.running:
            self._run(fn, args, kwargs, future)
            return future
        self._queue.put((fn, args, kwargs, future))
        return future

    def call(self, fn: Callable[..., Any], *args: Any, timeout: float = DEFAULT_TIMEOUT, **kwargs: Any) -> Any:
        """submit() and wait. Exceptions raised by ``fn`` propagate to the caller."""
        return self.submit(fn, *args, **kwargs).result(timeout=timeout)

    def request_reload(self) -> None:
        """
        Signal that the file changed on disk (non-blocking).

        Repeated signals collapse into one while the first is still queued.
        """
        if not self.running:
            self._handle_reload()
            return
        if self._reload_pending.is_set():
            return
        self._reload_pending.set()
        self._queue.put(_RELOAD)

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _worker_loop(self) -> None:
        """Drain the queue, running commands and reload signals in order."""
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            if isinstance(item, ReloadRequested):
                self._reload_pending.clear()
                self._handle_reload()
                continue
            fn, args, kwargs, future = item
            self._run(fn, args, kwargs, future)

    def _run(self, fn: Callable[..., Any], args: tuple, kwargs: dict, future: Future) -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(self._session, *args, **kwargs)
        except Exception as e:
            future.set_exception(e)
            return
        self._autosave()
        future.set_result(result)

    def _autosave(self) -> None:
        try:
            self._session.autosave_if_dirty()
        except TodoIOError:
            log.exception("Autosave failed; edits are kept in memory")

    def _handle_reload(self) -> None:
        try:
            outcome = self._session.handle_reload_signal()
        except Exception:
            log.exception("Reload of %s failed", self._session.path)
            return
        log.debug("Reload signal handled: %s", outcome)
