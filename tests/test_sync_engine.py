import os
from pathlib import Path
import shutil
import stat

import pytest

from sfbackup import sync_engine
from sfbackup.exclusion import ExclusionSet
from sfbackup.models import ACTION_COPY_NEW, ACTION_COPY_REFRESH, ACTION_SKIP, CatalogEntry, KIND_FILE, VolumeCounter
from sfbackup.sync_engine import RunContext, SyncRunOptions, plan_file, sync_root, target_for


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _context(base: Path, excludes=(), dry_run: bool = False) -> RunContext:
    base.mkdir(parents=True, exist_ok=True)
    volumes = VolumeCounter()
    volumes.register("/")
    return RunContext(
        target_base=str(base),
        exclusions=ExclusionSet(excludes),
        volumes=volumes,
        options=SyncRunOptions(dry_run=dry_run),
    )


def test_excluded_subtree_never_reaches_target(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "a.txt", "a" * 100)
    _write(source / "sub" / "b.txt", "b" * 50)
    context = _context(tmp_path / "bk", excludes=[source / "sub"])

    stats = sync_root(source, context)

    mirrored_root = target_for(source, context.target_base)
    assert mirrored_root.is_dir()
    assert (mirrored_root / "a.txt").read_text(encoding="utf-8") == "a" * 100
    assert not (mirrored_root / "sub").exists()
    assert stats.new_copies == 1
    assert stats.files_copied == 1
    assert stats.bytes_copied == 100


def test_second_run_copies_nothing(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "one.txt", "1")
    _write(source / "nested" / "two.txt", "22")
    _write(source / "nested" / "deeper" / "three.txt", "333")
    context = _context(tmp_path / "bk")

    first = sync_root(source, context)
    second = sync_root(source, context)

    assert first.files_copied == 3
    assert first.new_copies == 3
    assert first.refresh_copies == 0
    assert second.new_copies == 0
    assert second.refresh_copies == 0
    assert second.skipped == 3
    assert second.directories_created == 0


def test_changed_size_triggers_refresh(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "f.txt", "old")
    context = _context(tmp_path / "bk")
    sync_root(source, context)

    _write(source / "f.txt", "new and longer")
    stats = sync_root(source, context)

    target = target_for(source / "f.txt", context.target_base)
    assert stats.refresh_copies == 1
    assert target.read_text(encoding="utf-8") == "new and longer"
    assert os.stat(target).st_mtime_ns == os.stat(source / "f.txt").st_mtime_ns


def test_changed_mtime_triggers_refresh(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "f.txt", "abc")
    context = _context(tmp_path / "bk")
    sync_root(source, context)

    os.utime(source / "f.txt", ns=(1_600_000_000_000_000_000, 1_600_000_000_000_000_000))
    stats = sync_root(source, context)

    target = target_for(source / "f.txt", context.target_base)
    assert stats.refresh_copies == 1
    assert os.stat(target).st_mtime_ns == 1_600_000_000_000_000_000


def test_matching_size_and_mtime_skips_without_reading_content(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "f.txt", "abc")
    context = _context(tmp_path / "bk")
    sync_root(source, context)

    target = target_for(source / "f.txt", context.target_base)
    target.write_text("xyz", encoding="utf-8")
    source_stat = os.stat(source / "f.txt")
    os.utime(target, ns=(source_stat.st_atime_ns, source_stat.st_mtime_ns))

    decision, _ = plan_file(CatalogEntry(source / "f.txt", KIND_FILE), context.target_base)
    stats = sync_root(source, context)

    assert decision.action == ACTION_SKIP
    assert stats.skipped == 1
    assert stats.files_copied == 0
    assert target.read_text(encoding="utf-8") == "xyz"


def test_plan_file_reports_new_and_refresh(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "f.txt", "abc")
    context = _context(tmp_path / "bk")
    entry = CatalogEntry(source / "f.txt", KIND_FILE)

    decision, target_meta = plan_file(entry, context.target_base)
    assert decision.action == ACTION_COPY_NEW
    assert target_meta is None

    _write(target_for(entry.path, context.target_base), "abcd")
    decision, target_meta = plan_file(entry, context.target_base)
    assert decision.action == ACTION_COPY_REFRESH
    assert target_meta is not None and target_meta.size == 4


def test_read_only_target_is_refreshed_when_attribute_clears(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "f.txt", "fresh content")
    context = _context(tmp_path / "bk")
    target = target_for(source / "f.txt", context.target_base)
    _write(target, "stale")
    os.chmod(target, stat.S_IREAD)

    stats = sync_root(source, context)

    assert stats.refresh_copies == 1
    assert stats.blocked_read_only == 0
    assert target.read_text(encoding="utf-8") == "fresh content"


def test_read_only_target_left_alone_when_attribute_cannot_clear(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "proj"
    _write(source / "f.txt", "fresh content")
    context = _context(tmp_path / "bk")
    target = target_for(source / "f.txt", context.target_base)
    _write(target, "stale")
    os.chmod(target, stat.S_IREAD)
    monkeypatch.setattr(sync_engine, "clear_read_only", lambda path: False)

    stats = sync_root(source, context)

    assert stats.blocked_read_only == 1
    assert stats.files_copied == 0
    assert stats.refresh_copies == 0
    assert target.read_text(encoding="utf-8") == "stale"


def test_directories_exist_before_first_file_copy(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "proj"
    _write(source / "a.txt", "a")
    _write(source / "z" / "deep" / "y.txt", "y")
    context = _context(tmp_path / "bk")
    deep_target = target_for(source / "z" / "deep", context.target_base)
    observed: list[tuple[str, bool]] = []
    real_copy = sync_engine.copy_file

    def recording_copy(source_file: Path, destination_file: Path):
        observed.append((source_file.name, deep_target.is_dir()))
        return real_copy(source_file, destination_file)

    monkeypatch.setattr(sync_engine, "copy_file", recording_copy)

    stats = sync_root(source, context)

    assert observed == [("a.txt", True), ("y.txt", True)]
    assert stats.directories_created == 3


def test_copy_failure_is_counted_and_run_continues(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "proj"
    _write(source / "bad.txt", "bad")
    _write(source / "good.txt", "good")
    context = _context(tmp_path / "bk")
    real_copy2 = shutil.copy2

    def failing_copy2(src, dst, *args, **kwargs):
        if Path(src).name == "bad.txt":
            raise OSError("disk full")
        return real_copy2(src, dst, *args, **kwargs)

    monkeypatch.setattr(shutil, "copy2", failing_copy2)

    stats = sync_root(source, context)

    mirrored_root = target_for(source, context.target_base)
    assert stats.failed == 1
    assert stats.files_copied == 1
    assert stats.bytes_copied == 4
    assert not (mirrored_root / "bad.txt").exists()
    assert sorted(p.name for p in mirrored_root.iterdir()) == ["good.txt"]


def test_directory_creation_failure_is_not_fatal(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "blocked" / "inner.txt", "i")
    _write(source / "ok.txt", "ok")
    context = _context(tmp_path / "bk")
    _write(target_for(source / "blocked", context.target_base), "a file in the way")

    stats = sync_root(source, context)

    assert stats.failed == 2
    assert stats.new_copies == 1
    assert target_for(source / "ok.txt", context.target_base).exists()


def test_dry_run_writes_nothing(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "a.txt", "abc")
    context = _context(tmp_path / "bk", dry_run=True)

    stats = sync_root(source, context)

    assert stats.new_copies == 1
    assert stats.bytes_copied == 3
    assert list((tmp_path / "bk").iterdir()) == []


def test_directories_are_counted_per_volume(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "x" / "f.txt", "f")
    _write(source / "y" / "g.txt", "g")
    context = _context(tmp_path / "bk", excludes=[source / "y"])

    sync_root(source, context)

    assert context.volumes.items() == [("/", 2)]


def test_target_base_inside_source_must_be_excluded(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "a.txt", "a")
    base = source / "bk"

    with pytest.raises(ValueError, match="would recurse"):
        sync_root(source, _context(base))

    stats = sync_root(source, _context(base, excludes=[base]))
    assert stats.new_copies == 1


def test_relative_target_base_inside_source_is_recognised_as_excluded(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    source = tmp_path / "proj"
    _write(source / "a.txt", "a")
    context = _context(Path("proj") / "bk", excludes=[source / "bk"])

    stats = sync_root(source, context)

    assert stats.new_copies == 1
