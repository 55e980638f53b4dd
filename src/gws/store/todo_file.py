"""
Reading and writing the todo file.

Main API:
    load(path, previous=None)  → (Document, diagnostics, Fingerprint)
    save(path, document)       → Fingerprint
    read_fingerprint(path)     → Optional[Fingerprint]
    atomic_write(path, text)

Saves never leave a half-written file behind: the text goes to a temp file in
the same directory, is flushed and fsynced, then renamed over the target with
os.replace. If any step fails the temp file is removed and the target is
left as it was.

OS errors are mapped onto the TodoIOError family so callers only deal with
tracker errors.
"""

import hashlib
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from gws.errors import TodoFileNotFoundError, TodoIOError, TodoPermissionError
from gws.models import Diagnostic, Document
from gws.parsers import parse_content, serialize

log = logging.getLogger(__name__)

ENCODING = "utf-8"


@dataclass(frozen=True)
class Fingerprint:
    """What the file looked like the last time we read or wrote it."""

    mtime_ns: int
    size: int
    digest: str

    @classmethod
    def of(cls, data: bytes, stat: os.stat_result) -> "Fingerprint":
        return cls(stat.st_mtime_ns, stat.st_size, hashlib.sha256(data).hexdigest())


def _map_os_error(path: Path, exc: OSError) -> TodoIOError:
    if isinstance(exc, FileNotFoundError):
        return TodoFileNotFoundError(f"Todo file not found: {path}")
    if isinstance(exc, PermissionError):
        return TodoPermissionError(f"Permission denied: {path}")
    return TodoIOError(f"I/O error on {path}: {exc}")


def _read_bytes(path: Path) -> Tuple[bytes, os.stat_result]:
    try:
        with open(path, "rb") as f:
            data = f.read()
            stat = os.fstat(f.fileno())
    except OSError as e:
        raise _map_os_error(path, e) from e
    return data, stat


def read_fingerprint(path: Path) -> Optional[Fingerprint]:
    """Fingerprint the file as it is on disk now, or None if it is unreadable."""
    try:
        data, stat = _read_bytes(path)
    except TodoIOError:
        return None
    return Fingerprint.of(data, stat)


def decode(data: bytes) -> Tuple[str, List[Diagnostic]]:
    """Decode file bytes, replacing anything that is not valid UTF-8."""
    try:
        return data.decode(ENCODING), []
    except UnicodeDecodeError:
        text = data.decode(ENCODING, errors="replace")
        return text, [Diagnostic(0, "file is not valid UTF-8; undecodable bytes were replaced")]


def load(
    path: Path, previous: Optional[Document] = None
) -> Tuple[Document, List[Diagnostic], Fingerprint]:
    """
    Read and parse the todo file.

    Raises:
        TodoFileNotFoundError, TodoPermissionError, TodoIOError
    """
    data, stat = _read_bytes(path)
    text, diagnostics = decode(data)
    doc, parse_diagnostics = parse_content(text, previous=previous)
    diagnostics.extend(parse_diagnostics)
    return doc, diagnostics, Fingerprint.of(data, stat)


def atomic_write(path: Path, text: str) -> Tuple[bytes, os.stat_result]:
    """
    Replace ``path`` with ``text`` atomically.

    Returns the bytes written and the stat of the new file.
    """
    data = text.encode(ENCODING)
    tmp_path: Optional[str] = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_path = tmp.name
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
        stat = os.stat(path)
    except OSError as e:
        raise _map_os_error(path, e) from e
    finally:
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                log.warning("Could not remove temp file %s", tmp_path)
    return data, stat


def save(path: Path, doc: Document) -> Fingerprint:
    """
    Serialize ``doc`` and write it to ``path`` atomically.

    Raises:
        TodoPermissionError, TodoIOError
    """
    data, stat = atomic_write(path, serialize(doc))
    log.info("Saved %s (%d bytes)", path, len(data))
    return Fingerprint.of(data, stat)
