from __future__ import annotations

import os
from pathlib import PurePath

VOLUME_SEPARATOR = ":"


def has_volume_prefix(path: str) -> bool:
    return len(path) >= 2 and path[1] == VOLUME_SEPARATOR


def volume_prefix(path: str | PurePath) -> str:
    text = os.fspath(path)
    if has_volume_prefix(text):
        return text[:2]
    return text[:1]


def remap(source_path: str | PurePath, target_base: str | PurePath) -> str:
    source = os.fspath(source_path)
    base = os.fspath(target_base)
    if has_volume_prefix(source):
        return base + source[0] + source[2:]
    if len(source) < 1:
        raise ValueError(f"Cannot remap an empty path under {base}")
    return base + source
