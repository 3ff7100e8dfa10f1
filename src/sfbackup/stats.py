from __future__ import annotations

from sfbackup.models import SyncStats, VolumeCounter


KILO_BYTE = 1024.0
MEGA_BYTE = KILO_BYTE * KILO_BYTE
GIGA_BYTE = MEGA_BYTE * KILO_BYTE

_UNITS = ("Bytes", "KiloBytes", "MegaBytes", "GigaBytes")


def scale_bytes(value: float) -> tuple[float, str]:
    scaled = float(value)
    for unit in _UNITS[:-1]:
        if round(scaled, 2) < KILO_BYTE:
            return scaled, unit
        scaled /= KILO_BYTE
    return scaled, _UNITS[-1]


def render_summary(stats: SyncStats, elapsed_seconds: float | None = None) -> list[str]:
    lines = [f"Total files processed   = {stats.files_copied}"]
    if not stats.files_copied:
        return lines

    lines.append(f"Total new files copied  = {stats.new_copies}")
    lines.append(f"Total files refreshed   = {stats.refresh_copies}")
    if elapsed_seconds is not None:
        lines.append(f"Time to perform backups = {elapsed_seconds:.2f} seconds.")
        lines.append(
            f"Average duration per backup = {elapsed_seconds / stats.files_copied:.2f} seconds."
        )

    total, total_unit = scale_bytes(stats.bytes_copied)
    lines.append(f"{total:.2f} {total_unit} copied")
    mean, mean_unit = scale_bytes(stats.bytes_copied / stats.files_copied)
    lines.append(f"Average file size {mean:.2f} {mean_unit}")
    return lines


def render_volumes(volumes: VolumeCounter) -> list[str]:
    return [f"Directories processed on {prefix} = {count}" for prefix, count in volumes.items()]
