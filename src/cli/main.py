"""ShardLens CLI entry points.

This module exposes manifest, record, and field inspection commands.
It maps argparse commands onto ``DatasetBrowser`` requests.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import logging
from pathlib import Path
import sys
from typing import Any, Sequence

from cli.output_format import (
    render_json,
    render_manifest,
    render_preview,
    render_records,
)
from core.config import ShardLensConfig, parse_positive_int
from core.errors import ShardLensError
from core.logging_config import enable_console_logging
from store.dataset_browser import DatasetBrowser


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="shardlens", description="Inspect sharded datasets")
    parser.add_argument("--json", action="store_true", help="Render results as JSON")
    parser.add_argument("--materialize-dir", help="Override SHARDLENS_MATERIALIZE_DIR")
    parser.add_argument(
        "--max-decompressed-bytes",
        help="Override SHARDLENS_MAX_DECOMPRESSED_BYTES",
    )
    parser.add_argument("--verbose", action="store_true", help="Emit structured logs on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_manifest_command(subparsers)
    _add_shards_command(subparsers)
    _add_records_command(subparsers)
    _add_field_command(subparsers, "preview", "Preview one field as text or hex")
    _add_field_command(subparsers, "materialize", "Write one field to a file and print its path")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the ShardLens CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        enable_console_logging(logging.DEBUG)
    try:
        with _build_browser(args) as browser:
            output = _run_command(browser, args)
    except ShardLensError as error:
        print(f"error={error.code} message={error}", file=sys.stderr)
        return 1
    if output:
        print(output)
    return 0


def _build_browser(args: argparse.Namespace) -> DatasetBrowser:
    """Build a browser with optional config overrides.

    Args:
        args: Parsed CLI args.

    Returns:
        Configured browser.
    """
    config = ShardLensConfig.from_env()
    if args.materialize_dir:
        config = replace(config, materialize_dir=Path(args.materialize_dir).expanduser().resolve())
    if args.max_decompressed_bytes:
        config = replace(
            config,
            max_decompressed_bytes=parse_positive_int(
                "--max-decompressed-bytes", args.max_decompressed_bytes
            ),
        )
    return DatasetBrowser(config)


def _run_command(browser: DatasetBrowser, args: argparse.Namespace) -> str:
    """Dispatch one parsed command.

    Args:
        browser: Request facade.
        args: Parsed CLI args.

    Returns:
        Rendered command output.
    """
    if args.command == "shards":
        manifest = browser.load_from_raw_shards(args.paths)
        return render_json(manifest) if args.json else render_manifest(manifest)
    manifest = browser.load_manifest(args.path)
    if args.command == "manifest":
        return render_json(manifest) if args.json else render_manifest(manifest)
    if args.command == "records":
        records = browser.list_records(manifest.manifest_id, args.shard)
        return render_json(records) if args.json else render_records(records)
    coordinates = (manifest.manifest_id, args.shard, args.record, args.field)
    if args.command == "preview":
        field_preview = browser.preview_field(*coordinates)
        return render_json(field_preview) if args.json else render_preview(field_preview)
    leaf = browser.materialize_field(*coordinates)
    return render_json({"path": leaf}) if args.json else str(leaf)


def _add_manifest_command(subparsers: Any) -> None:
    """Register manifest subcommand."""
    parser = subparsers.add_parser("manifest", help="Summarize a dataset manifest")
    parser.add_argument("path", help="Manifest file, dataset directory, or shard file")


def _add_shards_command(subparsers: Any) -> None:
    """Register shards subcommand."""
    parser = subparsers.add_parser("shards", help="Summarize shard files without a manifest")
    parser.add_argument("paths", nargs="+", help="Shard file paths")


def _add_records_command(subparsers: Any) -> None:
    """Register records subcommand."""
    parser = subparsers.add_parser("records", help="List records and field sizes of a shard")
    parser.add_argument("path", help="Manifest file, dataset directory, or shard file")
    parser.add_argument("shard", help="Shard filename listed by the manifest")


def _add_field_command(subparsers: Any, name: str, help_text: str) -> None:
    """Register a subcommand addressing one field."""
    parser = subparsers.add_parser(name, help=help_text)
    parser.add_argument("path", help="Manifest file, dataset directory, or shard file")
    parser.add_argument("shard", help="Shard filename listed by the manifest")
    parser.add_argument("record", type=int, help="Zero-based record index")
    parser.add_argument("field", type=int, help="Zero-based field index")
