from __future__ import annotations

import logging
import os
from pathlib import Path
import stat

from sfbackup.models import FileMetadata


FILE_ATTRIBUTE_READONLY = 0x00000001
FILE_ATTRIBUTE_DIRECTORY = 0x00000010

log = logging.getLogger("sfbackup.metadata")


def _attributes_from_stat(result: os.stat_result) -> int:
    native = getattr(result, "st_file_attributes", None)
    if native is not None:
        return int(native)

    attributes = 0
    if not result.st_mode & stat.S_IWUSR:
        attributes |= FILE_ATTRIBUTE_READONLY
    if stat.S_ISDIR(result.st_mode):
        attributes |= FILE_ATTRIBUTE_DIRECTORY
    return attributes


def _creation_time_ns(result: os.stat_result) -> int:
    birthtime_ns = getattr(result, "st_birthtime_ns", None)
    if birthtime_ns is not None:
        return int(birthtime_ns)
    birthtime = getattr(result, "st_birthtime", None)
    if birthtime is not None:
        return int(birthtime * 1_000_000_000)
    return result.st_ctime_ns


def get_metadata(path: Path) -> FileMetadata:
    try:
        result = os.stat(path)
    except OSError as exc:
        log.warning("Unable to obtain metadata for %s: %s", path, exc)
        return FileMetadata.missing()

    attributes = _attributes_from_stat(result)
    return FileMetadata(
        attributes=attributes,
        creation_time=_creation_time_ns(result),
        access_time=result.st_atime_ns,
        modification_time=result.st_mtime_ns,
        size=result.st_size,
        is_directory=bool(attributes & FILE_ATTRIBUTE_DIRECTORY),
        is_read_only=bool(attributes & FILE_ATTRIBUTE_READONLY),
    )


def clear_read_only(path: Path) -> bool:
    try:
        mode = os.stat(path).st_mode
    except OSError as exc:
        log.warning("Unable to obtain metadata for %s: %s", path, exc)
        return False

    try:
        os.chmod(path, stat.S_IMODE(mode) | stat.S_IWUSR)
    except OSError as exc:
        log.warning("Unable to clear read-only attribute on %s: %s", path, exc)
        return False
    return True
