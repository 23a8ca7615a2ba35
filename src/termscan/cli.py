"""Command-line entry point that scans a saved screen snapshot."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

from .config import ScanConfig, ScanConfigError, load_scan_config
from .report import format_report, screen_object_as_dict
from .screen_object import scan, scan_nested
from .snapshot import SnapshotFormatError, load_snapshot

__all__ = ["parse_args", "main"]


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="termscan",
        description="Extract titles, fields and tables from a 5250 screen snapshot.",
    )
    parser.add_argument("snapshot", type=Path, help="JSON screen snapshot to scan")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="TOML file with a [scan] table",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Apply [scan.profiles.<name>] overrides from --config",
    )
    parser.add_argument(
        "--nested",
        action="store_true",
        help="Scan only the nested window drawn on the screen",
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        "--json",
        action="store_true",
        help="Emit the screen model as JSON instead of a text report",
    )
    output.add_argument(
        "--csv",
        action="store_true",
        help="Emit the table found on the screen as CSV",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log scan diagnostics to stderr",
    )
    return parser.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> ScanConfig:
    if args.config is None:
        if args.profile is not None:
            raise SystemExit("--profile requires --config")
        return ScanConfig()
    if not args.config.exists():
        raise SystemExit(f"config file not found: {args.config}")
    try:
        return load_scan_config(args.config, profile=args.profile)
    except ScanConfigError as exc:
        raise SystemExit(f"invalid config {args.config}: {exc}") from exc


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config = _resolve_config(args)
    if not args.snapshot.exists():
        raise SystemExit(f"snapshot not found: {args.snapshot}")
    try:
        snapshot = load_snapshot(args.snapshot)
    except SnapshotFormatError as exc:
        raise SystemExit(str(exc)) from exc

    screen = scan_nested(snapshot, config) if args.nested else scan(snapshot, config)
    if screen is None:
        raise SystemExit("no nested window found in the snapshot")

    if args.csv:
        if screen.table is None:
            raise SystemExit("no table found in the snapshot")
        sys.stdout.write(screen.table.to_csv())
    elif args.json:
        print(json.dumps(screen_object_as_dict(screen), indent=2))
    else:
        print(format_report(screen))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
