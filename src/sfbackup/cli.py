from __future__ import annotations

import argparse
from pathlib import Path
import sys

from sfbackup import __version__
from sfbackup.config import (
    ConfigurationError,
    InputFileError,
    TargetValidationError,
    load_config,
)
from sfbackup.logging_setup import build_log_file_name, configure_logging
from sfbackup.run_service import (
    EXIT_CONFIG,
    EXIT_NO_INPUT,
    EXIT_TARGET_INVALID,
    EXIT_SUCCESS,
    run_backup,
)
from sfbackup.sync_engine import target_for


DEFAULT_CONFIG_NAME = "sfbackup.parms"
EXIT_LOG_UNAVAILABLE = 74


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sfbackup", description="Simple File Backup Program")
    parser.add_argument(
        "log_location",
        type=Path,
        nargs="?",
        help="Directory for the run's log file, e.g. C:\\Logs (not needed with --list)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Parameter file (default: ./{DEFAULT_CONFIG_NAME})",
    )
    parser.add_argument("--debug", action="store_true", help="Mirror log output to stdout")
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument(
        "--list",
        action="store_true",
        help="List source roots and their target locations, then exit",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def cmd_list(config_path: Path) -> int:
    try:
        config = load_config(config_path)
    except ConfigurationError as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_CONFIG
    except InputFileError as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_NO_INPUT
    except TargetValidationError as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_TARGET_INVALID

    print(f"target base: {config.target_base} ({len(config.exclusions)} exclusion(s))")
    for source_root in config.source_roots:
        print(f"  - {source_root} -> {target_for(source_root, config.target_base)}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    config_path = args.config or Path.cwd() / DEFAULT_CONFIG_NAME

    if args.list:
        return cmd_list(config_path)
    if args.log_location is None:
        parser.error("the log_location argument is required unless --list is given")

    log_file = build_log_file_name(args.log_location)
    try:
        logger = configure_logging(log_file, echo_stdout=args.debug)
    except OSError as exc:
        print(f"Failed to initialize logging at {log_file}: {exc}", file=sys.stderr)
        return EXIT_LOG_UNAVAILABLE
    logger.info("Beginning program execution")
    exit_code, _ = run_backup(config_path, dry_run=args.dry_run)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
