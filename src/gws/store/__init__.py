from .todo_file import Fingerprint, atomic_write, load, read_fingerprint, save
from .view_state import ViewState, state_file_for
from .session import RESOLVE_OVERWRITE, RESOLVE_RELOAD, TodoSession
from .command_loop import CommandLoop, ReloadRequested

__all__ = [
    "CommandLoop",
    "Fingerprint",
    "RESOLVE_OVERWRITE",
    "RESOLVE_RELOAD",
    "ReloadRequested",
    "TodoSession",
    "ViewState",
    "atomic_write",
    "load",
    "read_fingerprint",
    "save",
    "state_file_for",
]
