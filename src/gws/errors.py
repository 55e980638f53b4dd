"""
Error taxonomy for the tracker core.

Malformed file content never raises: the parser recovers and reports
``Diagnostic`` entries instead. Everything here is raised by commands and
storage calls and surfaced to the caller.
"""


class TrackerError(Exception):
    """Base class for all tracker errors."""


class DataError(TrackerError):
    """A command was given input the model cannot represent."""


class NotFoundError(TrackerError, LookupError):
    """A command referenced an entity ID that does not exist."""

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind.capitalize()} '{entity_id}' not found")
        self.kind = kind
        self.entity_id = entity_id


class TodoIOError(TrackerError):
    """Loading or saving the todo file failed."""


class TodoFileNotFoundError(TodoIOError):
    pass


class TodoPermissionError(TodoIOError):
    pass


class ConflictError(TrackerError):
    """The file changed on disk while the session holds unsaved edits."""
