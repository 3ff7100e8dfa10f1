from __future__ import annotations

import logging
from pathlib import Path
import shutil
import tempfile

log = logging.getLogger("sfbackup.copier")


def _safe_copy(source_file: Path, destination_file: Path) -> int:
    with tempfile.NamedTemporaryFile(delete=False, dir=str(destination_file.parent)) as tmp:
        tmp_path = Path(tmp.name)
    try:
        shutil.copy2(source_file, tmp_path)
        copied = tmp_path.stat().st_size
        tmp_path.replace(destination_file)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
    return copied


def copy_file(source_file: Path, destination_file: Path) -> int | None:
    try:
        return _safe_copy(source_file, destination_file)
    except OSError as exc:
        log.error("Copy failed %s -> %s: %s", source_file, destination_file, exc)
        return None
