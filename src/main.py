# src/main.py — v2
"""CLI entry point: check, refresh, dupes and compare commands.

Usage:
    fpcache check <file>
    fpcache refresh <directory> [--no-recursive] [--images-only]
    fpcache dupes <directory> [--threshold N]
    fpcache compare <file_a> <file_b>
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from fpcache.version import __version__

if TYPE_CHECKING:
    from fpcache.config.settings import Settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from fpcache.config.settings import ConfigurationError, load_settings
    from fpcache.logging.logger import setup_logging

    try:
        settings = load_settings(**_settings_overrides(args))
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="fpcache",
        description=f"fpcache v{__version__}: staleness-aware file fingerprint cache",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    backend = parser.add_mutually_exclusive_group()
    backend.add_argument(
        "--cache-file", type=Path, default=None,
        help="Use the JSON store at this path",
    )
    backend.add_argument(
        "--redis-url", default=None,
        help="Use the Redis store at this URL",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- check ---
    p_check = subparsers.add_parser(
        "check", help="Tell whether a file's fingerprint must be recomputed",
    )
    p_check.add_argument("file", type=Path, help="Path to file")
    p_check.set_defaults(func=_cmd_check)

    # --- refresh ---
    p_refresh = subparsers.add_parser(
        "refresh", help="Recompute stale fingerprints under a directory",
    )
    p_refresh.add_argument("directory", type=Path, help="Directory to scan")
    p_refresh.add_argument(
        "--no-recursive", action="store_true",
        help="Disable recursive scanning",
    )
    p_refresh.add_argument(
        "--images-only", action="store_true",
        help="Only fingerprint recognized image files",
    )
    p_refresh.set_defaults(func=_cmd_refresh)

    # --- dupes ---
    p_dupes = subparsers.add_parser(
        "dupes", help="Refresh a directory and report duplicates",
    )
    p_dupes.add_argument("directory", type=Path, help="Directory to scan")
    p_dupes.add_argument(
        "--no-recursive", action="store_true",
        help="Disable recursive scanning",
    )
    p_dupes.add_argument(
        "--threshold", type=int, default=None,
        help="Max perceptual distance for near duplicates (default: from settings)",
    )
    p_dupes.set_defaults(func=_cmd_dupes)

    # --- compare ---
    p_compare = subparsers.add_parser(
        "compare", help="Compare the fingerprints of two files",
    )
    p_compare.add_argument("first", type=Path, help="First file")
    p_compare.add_argument("second", type=Path, help="Second file")
    p_compare.set_defaults(func=_cmd_compare)

    return parser


def _settings_overrides(args: argparse.Namespace) -> dict[str, object]:
    """Map global CLI flags onto Settings fields."""
    overrides: dict[str, object] = {}
    if args.cache_file is not None:
        overrides["cache_backend"] = "json"
        overrides["cache_file"] = args.cache_file
    if args.redis_url is not None:
        overrides["cache_backend"] = "redis"
        overrides["cache_redis_url"] = args.redis_url
    return overrides


async def _cmd_check(args: argparse.Namespace, settings: Settings) -> int:
    """Report whether one file is stale."""
    from fpcache.cache.cache_factory import create_fingerprint_store
    from fpcache.cache.oracle import StalenessOracle

    with create_fingerprint_store(settings) as store:
        stale = StalenessOracle(store).should_recompute(args.file)
    print(f"{args.file}: {'stale' if stale else 'fresh'}")
    return 0


async def _cmd_refresh(args: argparse.Namespace, settings: Settings) -> int:
    """Scan a directory and refresh its fingerprints."""
    from fpcache.batch.scanner import BatchScanner
    from fpcache.cache.cache_factory import create_fingerprint_store

    directory: Path = args.directory
    if not directory.is_dir():
        logger.error("Not a directory: %s", directory)
        return 1

    with create_fingerprint_store(settings) as store:
        scanner = BatchScanner(store=store, settings=settings)
        result = await scanner.scan_and_refresh(
            directory,
            recursive=settings.batch_recursive and not args.no_recursive,
            images_only=args.images_only,
        )

    print("\nRefresh complete:")
    print(f"  Files found:  {result.total_files_found}")
    print(f"  Recomputed:   {result.recomputed}")
    print(f"  Fresh:        {result.skipped}")
    print(f"  Errors:       {result.errors}")
    print(f"  Duration:     {result.duration_seconds:.1f}s")
    return 1 if result.errors else 0


async def _cmd_dupes(args: argparse.Namespace, settings: Settings) -> int:
    """Refresh a directory, then print duplicate groups and near duplicates."""
    from fpcache.batch.dedup import BatchDeduplicator
    from fpcache.batch.scanner import BatchScanner
    from fpcache.cache.cache_factory import create_fingerprint_store

    directory: Path = args.directory
    if not directory.is_dir():
        logger.error("Not a directory: %s", directory)
        return 1

    threshold = (
        args.threshold if args.threshold is not None
        else settings.near_duplicate_threshold
    )
    with create_fingerprint_store(settings) as store:
        scanner = BatchScanner(store=store, settings=settings)
        result = await scanner.scan_and_refresh(
            directory, recursive=settings.batch_recursive and not args.no_recursive,
        )
        report = BatchDeduplicator(store).report(
            [e.file_path for e in result.entries if e.status != "error"],
            threshold=threshold,
        )

    print(f"\nExact duplicates ({len(report.exact_groups)} groups):")
    for group in report.exact_groups:
        print("  " + "\n    ".join(group))
    print(f"\nNear duplicates ({len(report.near_duplicates)} pairs):")
    for pair in report.near_duplicates:
        print(f"  {pair.first} ~ {pair.second} (distance {pair.distance})")
    return 1 if result.errors else 0


async def _cmd_compare(args: argparse.Namespace, settings: Settings) -> int:
    """Compute and compare two fingerprints without touching the store."""
    from fpcache.cache.computer import FingerprintComputer

    computer = FingerprintComputer.from_settings(settings)
    first = computer.compute(args.first)
    second = computer.compute(args.second)

    print(f"Content equal:       {first.content_equal(second)}")
    if first.perceptual_digest is not None and second.perceptual_digest is not None:
        print(f"Perceptual distance: {first.perceptual_distance(second)}")
    else:
        print("Perceptual distance: n/a (not both images)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
