from __future__ import annotations

from pathlib import Path, PurePath
from typing import Iterable


def absolute_path(value: str | PurePath) -> Path:
    return Path(value).expanduser().absolute()


def _read_exclusion_lines(path: Path) -> list[str]:
    return [line.strip() for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


class ExclusionSet:
    def __init__(self, prefixes: Iterable[str | PurePath]) -> None:
        self._prefixes: list[PurePath] = []
        for prefix in prefixes:
            text = str(prefix).strip()
            if not text:
                continue
            candidate = PurePath(text)
            if candidate not in self._prefixes:
                self._prefixes.append(candidate)

    def __len__(self) -> int:
        return len(self._prefixes)

    def is_excluded(self, path: str | PurePath) -> bool:
        parts = PurePath(path).parts
        for prefix in self._prefixes:
            prefix_parts = prefix.parts
            if parts[: len(prefix_parts)] == prefix_parts:
                return True
        return False


def load_exclusion_set(path: Path) -> ExclusionSet:
    return ExclusionSet(absolute_path(line) for line in _read_exclusion_lines(path))
