"""
Filesystem universe: files under a directory as trackable subjects.

Watchdog pushes file system events on its observer thread; this module
turns them into the dirty flags that a UniverseTracker polls on the
driver's thread. The observer thread only sets flags and creates subjects;
all logging happens in the tracker's cycle.

This module provides:
- FileSubject: one file, dirty on create/modify/move, invalid once deleted
- DirectoryUniverse: enumerates relevant files and owns the watchdog observer
"""

from __future__ import annotations

import fnmatch
import hashlib
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .errors import InvalidSubjectError

logger = logging.getLogger(__name__)

HASH_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class FileState:
    """Observable state of a file at snapshot time."""

    path: str
    size: int
    mtime: float
    hash: str | None = None

    def to_dict(self) -> dict[str, object]:
        d: dict[str, object] = {"path": self.path, "size": self.size, "mtime": self.mtime}
        if self.hash:
            d["hash"] = self.hash
        return d


class FileSubject:
    """A file being tracked. New subjects start dirty so they get logged once."""

    def __init__(self, path: Path, *, include_hash: bool = False):
        self.path = path
        self.include_hash = include_hash
        self.has_changed = True
        self.deleted = False

    @property
    def alive(self) -> bool:
        return not self.deleted and self.path.is_file()

    def snapshot(self) -> FileState:
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            raise InvalidSubjectError(self, f"{self.path} no longer exists") from None
        file_hash = self._content_hash() if self.include_hash else None
        return FileState(str(self.path), stat.st_size, stat.st_mtime, file_hash)

    def _content_hash(self) -> str:
        digest = hashlib.sha256()
        try:
            with self.path.open("rb") as handle:
                for chunk in iter(lambda: handle.read(HASH_CHUNK_SIZE), b""):
                    digest.update(chunk)
        except FileNotFoundError:
            raise InvalidSubjectError(self, f"{self.path} vanished while hashing") from None
        return digest.hexdigest()[:16]

    def __repr__(self) -> str:
        return f"FileSubject({self.path.name})"


class _UniverseEventHandler(FileSystemEventHandler):
    """Forwards watchdog events to the universe's flag updates."""

    def __init__(self, universe: "DirectoryUniverse"):
        super().__init__()
        self.universe = universe

    def on_created(self, event: FileCreatedEvent) -> None:
        if not event.is_directory:
            self.universe.mark_changed(Path(event.src_path))

    def on_modified(self, event: FileModifiedEvent) -> None:
        if not event.is_directory:
            self.universe.mark_changed(Path(event.src_path))

    def on_deleted(self, event: FileDeletedEvent) -> None:
        if not event.is_directory:
            self.universe.mark_deleted(Path(event.src_path))

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory:
            return
        self.universe.mark_deleted(Path(event.src_path))
        self.universe.mark_changed(Path(event.dest_path))


class DirectoryUniverse:
    """
    Every relevant file under `root`, one stable FileSubject per path.

    Args:
        root: Directory to enumerate
        patterns: Glob patterns matched against the file name or the
            root-relative path (None/empty = all files)
        include_hash: Whether snapshots include a content hash
    """

    def __init__(
        self,
        root: Path,
        patterns: Iterable[str] | None = None,
        *,
        include_hash: bool = False,
    ):
        self.root = Path(root).resolve()
        self.patterns = list(patterns or [])
        self.include_hash = include_hash
        self._subjects: dict[Path, FileSubject] = {}
        self._lock = threading.Lock()
        self._observer: Observer | None = None

    def _is_relevant(self, path: Path) -> bool:
        try:
            rel = path.relative_to(self.root)
        except ValueError:
            return False

        # Skip hidden files and directories
        if any(part.startswith(".") for part in rel.parts):
            return False

        if not self.patterns:
            return True
        rel_str = rel.as_posix()
        return any(fnmatch.fnmatch(path.name, p) or fnmatch.fnmatch(rel_str, p) for p in self.patterns)

    def _subject_for(self, path: Path) -> FileSubject:
        # Caller holds the lock.
        subject = self._subjects.get(path)
        if subject is None or subject.deleted:
            subject = FileSubject(path, include_hash=self.include_hash)
            self._subjects[path] = subject
        return subject

    def subjects(self) -> list[FileSubject]:
        """Enumerate files currently on disk."""
        found = [p.resolve() for p in sorted(self.root.rglob("*")) if p.is_file()]
        with self._lock:
            return [self._subject_for(path) for path in found if self._is_relevant(path)]

    def mark_changed(self, path: Path) -> None:
        path = path.resolve()
        if not self._is_relevant(path):
            return
        with self._lock:
            self._subject_for(path).has_changed = True

    def mark_deleted(self, path: Path) -> None:
        path = path.resolve()
        with self._lock:
            subject = self._subjects.get(path)
            if subject is not None:
                subject.deleted = True

    # --- Observer lifecycle ---

    def start(self, *, polling: bool = False) -> None:
        """Start a watchdog observer (PollingObserver if `polling`)."""
        if self._observer is not None:
            return
        observer = PollingObserver() if polling else Observer()
        observer.schedule(_UniverseEventHandler(self), str(self.root), recursive=True)
        observer.start()
        self._observer = observer
        logger.debug("watching %s (%s)", self.root, "polling" if polling else "native")

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None

    def __enter__(self) -> "DirectoryUniverse":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def __len__(self) -> int:
        return len(self._subjects)
