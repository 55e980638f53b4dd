from .todo_parser import parse_content
from .serializer import NOTE_INDENT, serialize

__all__ = [
    "parse_content",
    "serialize",
    "NOTE_INDENT",
]
