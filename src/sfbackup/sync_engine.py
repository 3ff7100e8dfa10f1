from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path

from sfbackup.copier import copy_file
from sfbackup.enumerator import TreeEnumerator
from sfbackup.exclusion import ExclusionSet, absolute_path
from sfbackup.metadata import clear_read_only, get_metadata
from sfbackup.models import (
    ACTION_BLOCKED_READ_ONLY,
    ACTION_COPY_NEW,
    ACTION_COPY_REFRESH,
    ACTION_CREATE_DIRECTORY,
    ACTION_SKIP,
    CatalogEntry,
    CopyDecision,
    FileMetadata,
    SyncStats,
    VolumeCounter,
)
from sfbackup.remap import remap, volume_prefix

log = logging.getLogger("sfbackup.sync")


@dataclass(slots=True)
class SyncRunOptions:
    dry_run: bool = False


@dataclass(slots=True)
class RunContext:
    target_base: str
    exclusions: ExclusionSet
    volumes: VolumeCounter = field(default_factory=VolumeCounter)
    options: SyncRunOptions = field(default_factory=SyncRunOptions)


def target_for(source_path: Path, target_base: str) -> Path:
    return Path(remap(source_path, target_base))


def _validate_root(source_root: Path, context: RunContext) -> None:
    source_resolved = source_root.resolve()
    target_resolved = Path(context.target_base).resolve()

    if source_resolved == target_resolved:
        raise ValueError(f"Invalid source: source and target base are equal: {source_root}")

    if target_resolved.is_relative_to(source_resolved) and not context.exclusions.is_excluded(
        absolute_path(context.target_base)
    ):
        raise ValueError(
            f"Invalid source: target base {context.target_base} is inside {source_root} "
            "and is not excluded, which would recurse"
        )


def collect_candidates(source_root: Path, exclusions: ExclusionSet) -> list[CatalogEntry]:
    log.info("Examining the directory structure of %s", source_root)
    discovered = 0
    retained: list[CatalogEntry] = []
    for entry in TreeEnumerator(source_root):
        discovered += 1
        if exclusions.is_excluded(entry.path):
            continue
        retained.append(entry)

    log.info("Number of potential backups = %s", discovered)
    log.info("Number of potential backups after removing exclusions = %s", len(retained))
    return retained


def needs_refresh(source_meta: FileMetadata, target_meta: FileMetadata) -> bool:
    mtime_changed = source_meta.modification_time != target_meta.modification_time
    size_changed = source_meta.size != target_meta.size
    return mtime_changed or size_changed


def plan_directory(entry: CatalogEntry, target_base: str) -> CopyDecision | None:
    destination = target_for(entry.path, target_base)
    if destination.is_dir():
        return None
    return CopyDecision(entry.path, destination, ACTION_CREATE_DIRECTORY)


def plan_file(entry: CatalogEntry, target_base: str) -> tuple[CopyDecision, FileMetadata | None]:
    destination = target_for(entry.path, target_base)
    if not destination.exists():
        return CopyDecision(entry.path, destination, ACTION_COPY_NEW), None

    source_meta = get_metadata(entry.path)
    target_meta = get_metadata(destination)
    if not needs_refresh(source_meta, target_meta):
        return CopyDecision(entry.path, destination, ACTION_SKIP), target_meta
    return CopyDecision(entry.path, destination, ACTION_COPY_REFRESH), target_meta


def _create_directories(entries: list[CatalogEntry], context: RunContext, stats: SyncStats) -> None:
    for entry in entries:
        if not entry.is_dir:
            continue
        context.volumes.record(volume_prefix(entry.path))

        decision = plan_directory(entry, context.target_base)
        if decision is None:
            continue
        if context.options.dry_run:
            log.info("Would create directory %s", decision.destination)
            stats.directories_created += 1
            continue
        try:
            decision.destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            log.error("Unable to create directory %s: %s", decision.destination, exc)
            stats.failed += 1
            continue
        stats.directories_created += 1
        log.info("Created directory %s", decision.destination)


def _execute_copy(decision: CopyDecision, context: RunContext) -> int | None:
    if context.options.dry_run:
        return get_metadata(decision.source).size
    return copy_file(decision.source, decision.destination)


def _copy_files(entries: list[CatalogEntry], context: RunContext, stats: SyncStats) -> None:
    for entry in entries:
        if not entry.is_file:
            continue
        stats.files_examined += 1

        decision, target_meta = plan_file(entry, context.target_base)
        if decision.action == ACTION_SKIP:
            stats.skipped += 1
            continue

        if (
            decision.action == ACTION_COPY_REFRESH
            and target_meta is not None
            and target_meta.is_read_only
            and not context.options.dry_run
            and not clear_read_only(decision.destination)
        ):
            decision.action = ACTION_BLOCKED_READ_ONLY
            stats.blocked_read_only += 1
            log.warning("Read-only target not refreshed: %s", decision.destination)
            continue

        copied = _execute_copy(decision, context)
        if copied is None:
            stats.failed += 1
            continue

        stats.files_copied += 1
        stats.bytes_copied += copied
        if decision.action == ACTION_COPY_NEW:
            stats.new_copies += 1
            log.info("Copy new => %s %s", decision.source, copied)
        else:
            stats.refresh_copies += 1
            log.info("Copy ref => %s %s", decision.source, copied)


def sync_root(source_root: Path, context: RunContext) -> SyncStats:
    _validate_root(source_root, context)

    entries = collect_candidates(source_root, context.exclusions)
    stats = SyncStats()

    _create_directories(entries, context, stats)
    log.info("Number of target directories created = %s", stats.directories_created)

    _copy_files(entries, context, stats)
    log.info(
        "%s -> %s | copied=%s new=%s refreshed=%s skipped=%s blocked=%s failed=%s",
        source_root,
        target_for(source_root, context.target_base),
        stats.files_copied,
        stats.new_copies,
        stats.refresh_copies,
        stats.skipped,
        stats.blocked_read_only,
        stats.failed,
    )
    return stats
