# src/main.py — v2
"""CLI entry point — extract, hash, events, sync commands.

Usage:
    healthfacts extract <file> [--domain biomarker|body_comp]
    healthfacts hash <path> [--pattern GLOB]
    healthfacts events [--data-root DIR] [--domain D ...] [--severity S ...] [--limit N]
    healthfacts sync [--data-root DIR]

Exit codes: 0 ok, 1 error, 2 invalid query, 130 interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from healthfacts.config.settings import ConfigurationError, Settings, load_settings
from healthfacts.core.errors import HealthFactsError, InvalidQueryParameter
from healthfacts.core.models import DOMAINS, SEVERITIES
from healthfacts.logging.logger import setup_logging
from healthfacts.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_QUERY = 2
EXIT_INTERRUPTED = 130


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_ERROR

    try:
        settings = _load_settings(args)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except InvalidQueryParameter as exc:
        logger.error("Invalid query: %s", exc)
        return EXIT_INVALID_QUERY
    except HealthFactsError as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return EXIT_ERROR


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="healthfacts",
        description=f"healthfacts v{__version__} — biomarker and body-composition facts",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging (text format)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- extract ---
    p_extract = subparsers.add_parser(
        "extract", help="Extract readings from one text report",
    )
    p_extract.add_argument("file", type=Path, help="Path to a .txt/.md report")
    p_extract.add_argument(
        "--domain", choices=["biomarker", "body_comp"], default="biomarker",
        help="Extraction engine (default: biomarker)",
    )
    p_extract.set_defaults(func=_cmd_extract)

    # --- hash ---
    p_hash = subparsers.add_parser(
        "hash", help="Print the content hash of a file or folder",
    )
    p_hash.add_argument("path", type=Path, help="File or folder")
    p_hash.add_argument(
        "--pattern", default="*",
        help="Glob for folder members (default: *)",
    )
    p_hash.set_defaults(func=_cmd_hash)

    # --- events ---
    p_events = subparsers.add_parser(
        "events", help="Print the health event feed as JSON",
    )
    _add_data_root(p_events)
    p_events.add_argument(
        "--domain", dest="domains", action="append", choices=DOMAINS,
        help="Only these domains (repeatable)",
    )
    p_events.add_argument(
        "--severity", dest="severities", action="append", choices=SEVERITIES,
        help="Only these severities (repeatable)",
    )
    p_events.add_argument(
        "--limit", type=int, default=None,
        help="Maximum number of events",
    )
    p_events.set_defaults(func=_cmd_events)

    # --- sync ---
    p_sync = subparsers.add_parser(
        "sync", help="Clear all caches; the next read re-extracts every source",
    )
    _add_data_root(p_sync)
    p_sync.set_defaults(func=_cmd_sync)

    return parser


def _add_data_root(sub: argparse.ArgumentParser) -> None:
    sub.add_argument(
        "--data-root", type=Path, default=None,
        help="Source tree root (default: DATA_ROOT from .env)",
    )


def _load_settings(args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if getattr(args, "data_root", None) is not None:
        overrides["data_root"] = args.data_root
    return load_settings(**overrides)


async def _cmd_extract(args: argparse.Namespace, settings: Settings) -> int:
    """Run one engine over one report, without caching."""
    from healthfacts.extraction.extractor_factory import create_extractor
    from healthfacts.extraction.text_loader import load_text

    file_path: Path = args.file
    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        return EXIT_ERROR

    text = await asyncio.to_thread(load_text, file_path)
    engine = create_extractor(args.domain, settings)
    result = engine.extract_result(text, str(file_path.resolve()))
    print(result.model_dump_json(indent=2))
    return EXIT_OK


async def _cmd_hash(args: argparse.Namespace, settings: Settings) -> int:
    """Print the digest used for change detection."""
    from healthfacts.cache.fingerprint import ABSENT_HASH, hash_source

    digest = await asyncio.to_thread(hash_source, args.path, args.pattern)
    print(digest)
    return EXIT_OK if digest != ABSENT_HASH else EXIT_ERROR


async def _cmd_events(args: argparse.Namespace, settings: Settings) -> int:
    """Print the (filtered) event feed."""
    from healthfacts.api.facade import HealthDataStore
    from healthfacts.events.query import EventQuery

    query = EventQuery.create(
        domains=args.domains,
        severities=args.severities,
        limit=args.limit,
        default_limit=settings.event_default_limit,
        max_limit=settings.event_max_limit,
    )
    store = HealthDataStore(settings)
    events = await store.get_events(query)
    print(json.dumps([e.model_dump(mode="json") for e in events], indent=2))
    return EXIT_OK


async def _cmd_sync(args: argparse.Namespace, settings: Settings) -> int:
    """Invalidate the manifest and every typed cache."""
    from healthfacts.api.facade import HealthDataStore

    result = await HealthDataStore(settings).sync()
    print(f"Caches cleared (generation {result.generation})")
    return EXIT_OK


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format="text" if verbose else settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
