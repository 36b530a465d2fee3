"""
Tests for the filesystem universe.

Watchdog events are fed to the handler directly, so no observer thread is
needed; the tracker cycle is driven by hand as the CLI would.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest
from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from ispy.errors import InvalidSubjectError
from ispy.fs import DirectoryUniverse, FileState, FileSubject, _UniverseEventHandler
from ispy.tracking import UniverseTracker


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    (tmp_path / "notes").mkdir()
    (tmp_path / "notes" / "a.md").write_text("alpha", encoding="utf-8")
    (tmp_path / "b.py").write_text("print('b')", encoding="utf-8")
    (tmp_path / ".hidden").mkdir()
    (tmp_path / ".hidden" / "secret.md").write_text("x", encoding="utf-8")
    return tmp_path


def names(subjects) -> list[str]:
    return sorted(s.path.name for s in subjects)


def test_enumerates_visible_files(tree):
    universe = DirectoryUniverse(tree)
    assert names(universe.subjects()) == ["a.md", "b.py"]


def test_patterns_filter_by_name_or_relative_path(tree):
    assert names(DirectoryUniverse(tree, ["*.py"]).subjects()) == ["b.py"]
    assert names(DirectoryUniverse(tree, ["notes/*"]).subjects()) == ["a.md"]


def test_subjects_are_stable_per_path(tree):
    universe = DirectoryUniverse(tree)
    first = {s.path: s for s in universe.subjects()}
    second = {s.path: s for s in universe.subjects()}
    assert all(first[p] is second[p] for p in first)


def test_file_subject_snapshot(tree):
    subject = FileSubject(tree / "b.py", include_hash=True)
    state = subject.snapshot()
    assert isinstance(state, FileState)
    assert state.size == len("print('b')")
    assert state.hash == hashlib.sha256(b"print('b')").hexdigest()[:16]
    assert "hash" in state.to_dict()


def test_missing_file_is_invalid(tmp_path):
    subject = FileSubject(tmp_path / "gone.txt")
    assert subject.alive is False
    with pytest.raises(InvalidSubjectError):
        subject.snapshot()


def test_hash_of_file_deleted_after_stat_is_invalid(tmp_path, monkeypatch):
    target = tmp_path / "brief.txt"
    target.write_text("x", encoding="utf-8")
    subject = FileSubject(target, include_hash=True)

    def vanished(*args, **kwargs):
        raise FileNotFoundError(target)

    monkeypatch.setattr(Path, "open", vanished)
    with pytest.raises(InvalidSubjectError, match="vanished"):
        subject.snapshot()


class TestTrackingCycle:
    def test_first_cycle_logs_existing_files_once(self, tree, clock):
        tracker = UniverseTracker(DirectoryUniverse(tree), clock=clock)

        records = tracker.cycle()
        assert names(r.subject for r in records) == ["a.md", "b.py"]
        assert tracker.cycle() == []

    def test_modify_event_marks_dirty(self, tree, clock):
        universe = DirectoryUniverse(tree)
        tracker = UniverseTracker(universe, clock=clock)
        tracker.cycle()
        handler = _UniverseEventHandler(universe)

        target = tree / "b.py"
        target.write_text("print('changed')", encoding="utf-8")
        handler.on_modified(FileModifiedEvent(str(target)))
        clock.advance(1.0)
        records = tracker.cycle()

        assert names(r.subject for r in records) == ["b.py"]
        assert records[0].value.size == len("print('changed')")

    def test_created_file_is_picked_up(self, tree, clock):
        universe = DirectoryUniverse(tree)
        tracker = UniverseTracker(universe, clock=clock)
        tracker.cycle()

        new_file = tree / "c.md"
        new_file.write_text("new", encoding="utf-8")
        _UniverseEventHandler(universe).on_created(FileCreatedEvent(str(new_file)))
        records = tracker.cycle()

        assert names(r.subject for r in records) == ["c.md"]

    def test_deleted_file_is_dropped(self, tree, clock):
        universe = DirectoryUniverse(tree)
        tracker = UniverseTracker(universe, clock=clock)
        tracker.cycle()

        target = tree / "b.py"
        target.unlink()
        _UniverseEventHandler(universe).on_deleted(FileDeletedEvent(str(target)))
        tracker.cycle()

        assert names(tracker.watched) == ["a.md"]

    def test_moved_file_is_a_new_subject(self, tree, clock):
        universe = DirectoryUniverse(tree)
        tracker = UniverseTracker(universe, clock=clock)
        tracker.cycle()

        src, dest = tree / "b.py", tree / "renamed.py"
        src.rename(dest)
        _UniverseEventHandler(universe).on_moved(FileMovedEvent(str(src), str(dest)))
        records = tracker.cycle()

        assert names(r.subject for r in records) == ["renamed.py"]
        assert names(tracker.watched) == ["a.md", "renamed.py"]

    def test_hidden_and_directory_events_are_ignored(self, tree):
        universe = DirectoryUniverse(tree)
        handler = _UniverseEventHandler(universe)
        handler.on_modified(FileModifiedEvent(str(tree / ".hidden" / "secret.md")))
        handler.on_created(DirCreatedEvent(str(tree / "newdir")))
        assert len(universe) == 0
