from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import json
import os
import yaml

from sfbackup.exclusion import ExclusionSet, absolute_path, load_exclusion_set
from sfbackup.metadata import get_metadata


KEY_BACKUP_SOURCE = "BackupSource"
KEY_EXCLUDE_SOURCE = "ExcludeSource"
KEY_BACKUP_BASE_LOCATION = "BackupBaseLocation"
REQUIRED_KEYS = (KEY_BACKUP_SOURCE, KEY_EXCLUDE_SOURCE, KEY_BACKUP_BASE_LOCATION)

_MISSING_MESSAGES = {
    KEY_BACKUP_SOURCE: "No source directory list provided",
    KEY_EXCLUDE_SOURCE: "No exclude directory list provided",
    KEY_BACKUP_BASE_LOCATION: "No target directory base provided",
}


class ConfigurationError(ValueError):
    pass


class InputFileError(ValueError):
    pass


class TargetValidationError(ValueError):
    pass


@dataclass(slots=True)
class BackupConfig:
    source_list: Path
    exclude_list: Path
    target_base: str
    source_roots: list[Path] = field(default_factory=list)
    exclusions: ExclusionSet = field(default_factory=lambda: ExclusionSet([]))


def _parse_parms(text: str) -> dict[str, Any]:
    loaded: dict[str, Any] = {}
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, value = stripped.partition("=")
        if not sep:
            continue
        loaded[key.strip()] = value.strip()
    return loaded


def _load_raw_config(config_path: Path) -> dict[str, Any]:
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Unable to open parameter file {config_path}: {exc}") from exc

    suffix = config_path.suffix.lower()
    try:
        if suffix in {".yml", ".yaml"}:
            loaded = yaml.safe_load(text)
        elif suffix == ".json":
            loaded = json.loads(text)
        else:
            loaded = _parse_parms(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Unable to parse parameter file {config_path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError("Parameter file root must be a mapping of keys to values")
    return loaded


def _required_value(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if value is None or not str(value).strip():
        raise ConfigurationError(_MISSING_MESSAGES[key])
    return str(value).strip()


def read_source_roots(source_list: Path) -> list[Path]:
    try:
        text = source_list.read_text(encoding="utf-8")
    except OSError as exc:
        raise InputFileError(f"Unable to open source directory list {source_list}: {exc}") from exc

    roots: list[Path] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        roots.append(absolute_path(stripped))
    return roots


def read_exclusions(exclude_list: Path) -> ExclusionSet:
    try:
        return load_exclusion_set(exclude_list)
    except OSError as exc:
        raise InputFileError(f"Unable to open exclude directory list {exclude_list}: {exc}") from exc


def validate_target_base(target_base: str) -> None:
    if not get_metadata(Path(target_base)).is_directory:
        raise TargetValidationError(f"{target_base} is not a valid directory structure!")


def load_config(config_path: Path) -> BackupConfig:
    raw = _load_raw_config(config_path)
    values = {key: _required_value(raw, key) for key in REQUIRED_KEYS}

    source_list = Path(values[KEY_BACKUP_SOURCE]).expanduser()
    exclude_list = Path(values[KEY_EXCLUDE_SOURCE]).expanduser()
    target_base = os.path.expanduser(values[KEY_BACKUP_BASE_LOCATION])

    source_roots = read_source_roots(source_list)
    exclusions = read_exclusions(exclude_list)
    validate_target_base(target_base)

    return BackupConfig(
        source_list=source_list,
        exclude_list=exclude_list,
        target_base=target_base,
        source_roots=source_roots,
        exclusions=exclusions,
    )
