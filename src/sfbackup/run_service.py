from __future__ import annotations

from pathlib import Path
import logging
import time

from sfbackup.config import (
    ConfigurationError,
    InputFileError,
    TargetValidationError,
    load_config,
)
from sfbackup.models import SyncStats, VolumeCounter
from sfbackup.remap import volume_prefix
from sfbackup.stats import render_summary, render_volumes
from sfbackup.sync_engine import RunContext, SyncRunOptions, sync_root


EXIT_SUCCESS = 0
EXIT_NO_INPUT = 66
EXIT_TARGET_INVALID = 73
EXIT_CONFIG = 78


def run_backup(
    config_path: Path,
    dry_run: bool = False,
    logger: logging.Logger | None = None,
) -> tuple[int, SyncStats]:
    log = logger or logging.getLogger("sfbackup.run")
    summary = SyncStats()

    log.info("File backup operation(s) initiated")
    log.info("Attempting to open %s", config_path)
    try:
        config = load_config(config_path)
    except ConfigurationError as exc:
        log.error("%s", exc)
        log.info("Terminating program execution")
        return EXIT_CONFIG, summary
    except InputFileError as exc:
        log.error("%s", exc)
        log.info("Terminating program execution")
        return EXIT_NO_INPUT, summary
    except TargetValidationError as exc:
        log.error("%s", exc)
        log.info("Terminating program execution")
        return EXIT_TARGET_INVALID, summary

    log.info("Source directory list is %s", config.source_list)
    log.info("Exclude directory list is %s", config.exclude_list)
    log.info("Target backup location is %s", config.target_base)
    log.info("%s validated as a directory structure", config.target_base)

    volumes = VolumeCounter()
    for source_root in config.source_roots:
        volumes.register(volume_prefix(source_root))
        log.info("Base Directory = %s", source_root)
    log.info("Number of source drives is %s", len(volumes.counts))
    log.info("Number of base directories to backup is %s", len(config.source_roots))
    log.info("Number of directories to exclude is %s", len(config.exclusions))

    context = RunContext(
        target_base=config.target_base,
        exclusions=config.exclusions,
        volumes=volumes,
        options=SyncRunOptions(dry_run=dry_run),
    )

    started = time.monotonic()
    for source_root in config.source_roots:
        try:
            stats = sync_root(source_root, context)
        except ValueError as exc:
            log.error("Skipping source %s: %s", source_root, exc)
            summary.failed += 1
            continue
        summary.absorb(stats)

    log.info("File backup operation(s) complete!")
    for line in render_volumes(volumes):
        log.info("%s", line)
    for line in render_summary(summary, elapsed_seconds=time.monotonic() - started):
        log.info("%s", line)
    log.info("Terminating program execution")
    return EXIT_SUCCESS, summary
