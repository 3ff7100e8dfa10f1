from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator

from sfbackup.models import KIND_DIRECTORY, KIND_FILE, CatalogEntry

log = logging.getLogger("sfbackup.enumerator")


def _sort_key(entry: os.DirEntry) -> bytes:
    return os.fsencode(entry.name)


class TreeEnumerator:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def __iter__(self) -> Iterator[CatalogEntry]:
        try:
            is_dir = self.root.is_dir()
            exists = is_dir or self.root.exists()
        except OSError as exc:
            log.warning("Error obtaining directory entry %s: %s", self.root, exc)
            return
        if not exists:
            log.warning("Error obtaining directory entry %s: no such file or directory", self.root)
            return

        if not is_dir:
            yield CatalogEntry(self.root, KIND_FILE)
            return

        yield CatalogEntry(self.root, KIND_DIRECTORY)
        yield from self._walk(self.root)

    def _walk(self, directory: Path) -> Iterator[CatalogEntry]:
        try:
            with os.scandir(directory) as listing:
                children = sorted(listing, key=_sort_key)
        except OSError as exc:
            log.warning("Error obtaining directory entry %s: %s", directory, exc)
            return

        for child in children:
            child_path = Path(child.path)
            try:
                is_dir = child.is_dir()
                is_real_dir = is_dir and not child.is_symlink()
                is_file = not is_dir and child.is_file()
            except OSError as exc:
                log.warning("Error obtaining directory entry %s: %s", child_path, exc)
                continue

            if is_dir:
                yield CatalogEntry(child_path, KIND_DIRECTORY)
                if is_real_dir:
                    yield from self._walk(child_path)
            elif is_file:
                yield CatalogEntry(child_path, KIND_FILE)
            else:
                log.debug("Skipping special or dangling entry %s", child_path)
