"""Approx trace CLI entry points.

This module exposes read-only inspection commands for trace containers.
It maps argparse commands onto the region reader and Lance export.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from core.config import TraceConfig
from store.lance_export import export_region_to_lance
from store.region_reader import RegionReader


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="approx-trace",
        description="Approx trace inspection CLI",
    )
    parser.add_argument("--db", help="Override APPROX_TRACE_DB for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("regions", help="List recorded regions")
    show_parser = subparsers.add_parser("show", help="Describe streams of one region")
    show_parser.add_argument("region", help="Region group name")
    export_parser = subparsers.add_parser(
        "export-lance",
        help="Export one region to a Lance dataset",
    )
    export_parser.add_argument("region", help="Region group name")
    export_parser.add_argument("output_uri", help="Destination Lance dataset URI")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the approx trace CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    db_path = _resolve_db_path(args.db)
    with RegionReader(db_path) as reader:
        if args.command == "regions":
            return _run_regions_command(reader)
        if args.command == "show":
            return _run_show_command(reader, args)
        if args.command == "export-lance":
            return _run_export_command(reader, args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _resolve_db_path(db_path: str | None) -> Path:
    """Return the container path from override or environment config."""
    if db_path:
        return Path(db_path).expanduser().resolve()
    return TraceConfig.from_env().db_path


def _run_regions_command(reader: RegionReader) -> int:
    """Handle regions command.

    Args:
        reader: Open region reader.

    Returns:
        Exit code.
    """
    for name in reader.region_names():
        info = reader.region_info(name)
        row_counts = ",".join(f"{stream.name}={stream.row_count}" for stream in info.streams)
        print(f"{info.name}\t{info.kind}\t{hex(info.address)}\t{row_counts or '-'}")
    return 0


def _run_show_command(reader: RegionReader, args: argparse.Namespace) -> int:
    """Handle show command.

    Args:
        reader: Open region reader.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    info = reader.region_info(args.region)
    print(f"region\t{info.name}\t{info.kind}\t{hex(info.address)}")
    for stream in info.streams:
        shape = "x".join(str(dim) for dim in stream.row_shape) or "scalar"
        print(f"{stream.name}\t{stream.scalar_type.name}\t{shape}\t{stream.row_count}")
    return 0


def _run_export_command(reader: RegionReader, args: argparse.Namespace) -> int:
    """Handle export-lance command.

    Args:
        reader: Open region reader.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    row_count = export_region_to_lance(reader, args.region, args.output_uri)
    print(row_count)
    return 0
