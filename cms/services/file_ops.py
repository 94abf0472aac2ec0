"""Filesystem primitives: atomic writes, per-index locks, journaled moves."""

import logging
import os
import shutil
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path

from cms.services.errors import WriteError

logger = logging.getLogger(__name__)

# One re-entrant lock per resolved index path; guards the read-modify-write
# cycle of that index and the directory tree it describes.
_locks: dict[Path, threading.RLock] = {}
_locks_guard = threading.Lock()


def index_lock(index_path: Path) -> threading.RLock:
    """Return the process-wide writer lock for an index file."""
    key = index_path.resolve()
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.RLock()
        return lock


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via temp file, fsync and rename-into-place.

    Raises:
        WriteError: if any step fails; the target is left untouched.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        logger.error("Failed writing %s: %s", path, e)
        raise WriteError(f"Failed writing {path.name}") from e


def atomic_write_text(path: Path, text: str) -> None:
    atomic_write_bytes(path, text.encode("utf-8"))


def move_dir(src: Path, dest: Path) -> None:
    """Move a directory, merging file-by-file when ``dest`` already exists."""
    if src == dest or not src.is_dir():
        return
    if not dest.exists():
        dest.parent.mkdir(parents=True, exist_ok=True)
        os.rename(src, dest)
        return
    for child in sorted(src.iterdir()):
        target = dest / child.name
        if child.is_dir():
            move_dir(child, target)
        else:
            os.replace(child, target)
    src.rmdir()


def remove_tree(path: Path) -> None:
    """Remove a directory tree if present."""
    if path.is_dir():
        shutil.rmtree(path)


class MoveJournal:
    """Records completed moves so a failed multi-step update can be undone.

    Usage::

        journal = MoveJournal()
        journal.move_dir(old_dir, new_dir)
        journal.move_file(old_html, new_html)
        try:
            ...
        except WriteError:
            journal.rollback()
            raise
    """

    def __init__(self) -> None:
        self._undo: list[Callable[[], None]] = []

    def move_dir(self, src: Path, dest: Path) -> None:
        if src == dest or not src.is_dir():
            return
        if dest.exists():
            # Merged into an existing directory: only the moved names go back.
            moved = [child.name for child in src.iterdir()]
            move_dir(src, dest)

            def undo() -> None:
                src.mkdir(parents=True, exist_ok=True)
                for name in moved:
                    if (dest / name).exists():
                        os.replace(dest / name, src / name)

            self._undo.append(undo)
        else:
            move_dir(src, dest)
            self._undo.append(lambda: move_dir(dest, src))

    def move_file(self, src: Path, dest: Path) -> None:
        if src == dest or not src.is_file():
            return
        dest.parent.mkdir(parents=True, exist_ok=True)
        os.replace(src, dest)
        self._undo.append(lambda: os.replace(dest, src))

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def rollback(self) -> None:
        """Undo recorded steps in reverse order. Failures are logged, not raised."""
        while self._undo:
            step = self._undo.pop()
            try:
                step()
            except OSError as e:
                logger.error("Rollback step failed: %s", e)
