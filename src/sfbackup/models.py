from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path


KIND_DIRECTORY = "directory"
KIND_FILE = "file"

ACTION_CREATE_DIRECTORY = "create-directory"
ACTION_COPY_NEW = "copy-new"
ACTION_COPY_REFRESH = "copy-refresh"
ACTION_SKIP = "skip"
ACTION_BLOCKED_READ_ONLY = "blocked-read-only"


@dataclass(slots=True, frozen=True)
class CatalogEntry:
    path: Path
    kind: str

    @property
    def is_dir(self) -> bool:
        return self.kind == KIND_DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.kind == KIND_FILE


@dataclass(slots=True, frozen=True)
class FileMetadata:
    attributes: int = 0
    creation_time: int = 0
    access_time: int = 0
    modification_time: int = 0
    size: int = 0
    is_directory: bool = False
    is_read_only: bool = False

    @classmethod
    def missing(cls) -> "FileMetadata":
        return cls()


@dataclass(slots=True)
class CopyDecision:
    source: Path
    destination: Path
    action: str


@dataclass(slots=True)
class SyncStats:
    files_examined: int = 0
    files_copied: int = 0
    new_copies: int = 0
    refresh_copies: int = 0
    bytes_copied: int = 0
    skipped: int = 0
    blocked_read_only: int = 0
    failed: int = 0
    directories_created: int = 0

    def absorb(self, other: "SyncStats") -> None:
        for item in fields(self):
            setattr(self, item.name, getattr(self, item.name) + getattr(other, item.name))


@dataclass(slots=True)
class VolumeCounter:
    counts: dict[str, int] = field(default_factory=dict)

    def register(self, prefix: str) -> None:
        self.counts.setdefault(prefix, 0)

    def record(self, prefix: str) -> None:
        if prefix in self.counts:
            self.counts[prefix] += 1

    def items(self) -> list[tuple[str, int]]:
        return sorted(self.counts.items())
