"""Command-line entry point for webclone."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Sequence

from .config import CrawlConfig
from .errors import WebcloneError, describe_error
from .export import build_export_archive, export_filename
from .ingest import ingest_website
from .models import ParseOptions
from .serializer import serialize_content

logger = logging.getLogger("webclone.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("fetch", *argv)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_ingest_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("url", help="Website URL to clone")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request timeout in seconds (default: WEBCLONE_TIMEOUT or 30)",
    )
    parser.add_argument(
        "--max-size",
        type=int,
        default=None,
        help="Maximum response size in bytes (default: WEBCLONE_MAX_SIZE or 50 MiB)",
    )
    parser.add_argument(
        "--no-assets",
        action="store_true",
        help="Skip external stylesheets, scripts and asset references",
    )
    parser.add_argument(
        "--keep-comments",
        action="store_true",
        help="Keep HTML comments in the cleaned markup",
    )
    _add_common_arguments(parser)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Clone a web page into editable HTML, CSS and JS, or serve the HTTP API.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch_parser = subparsers.add_parser("fetch", help="Fetch a page and print it as JSON")
    _add_ingest_arguments(fetch_parser)
    fetch_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the JSON to this file instead of STDOUT",
    )

    export_parser = subparsers.add_parser("export", help="Fetch a page and write a zip archive")
    _add_ingest_arguments(export_parser)
    export_parser.add_argument(
        "--output",
        type=Path,
        default=Path("."),
        help="Directory where the archive should be written",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind")
    _add_common_arguments(serve_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _build_config(args: argparse.Namespace) -> CrawlConfig:
    config = CrawlConfig.from_env()
    if args.timeout:
        config.timeout = args.timeout
    if args.max_size:
        config.max_size = args.max_size
    return config


def _ingest(args: argparse.Namespace, config: CrawlConfig):
    options = ParseOptions(
        include_external_assets=not args.no_assets,
        preserve_comments=args.keep_comments,
    )
    return asyncio.run(ingest_website(args.url, options, config))


def _run_fetch(args: argparse.Namespace) -> int:
    config = _build_config(args)
    start = time.perf_counter()
    content = _ingest(args, config)
    payload = json.dumps(serialize_content(content, config), indent=2, ensure_ascii=False)
    if args.output:
        args.output.write_text(payload + "\n", encoding="utf-8")
        logger.info("Saved JSON to %s", args.output)
    else:
        sys.stdout.write(payload + "\n")
        sys.stdout.flush()
    logger.debug("Finished in %.2fs", time.perf_counter() - start)
    return 0


def _run_export(args: argparse.Namespace) -> int:
    config = _build_config(args)
    content = _ingest(args, config)
    exported_at = datetime.now(timezone.utc)
    archive = build_export_archive(content, not args.no_assets, exported_at)
    args.output.mkdir(parents=True, exist_ok=True)
    destination = args.output / export_filename(content, exported_at)
    destination.write_bytes(archive)
    logger.info("Saved archive to %s", destination)
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "webclone.app:app",
        host=args.host,
        port=args.port,
        log_level="debug" if args.verbose else "info",
    )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    if args.command == "serve":
        return _run_serve(args)
    try:
        if args.command == "export":
            return _run_export(args)
        return _run_fetch(args)
    except WebcloneError as exc:
        logger.error("%s", describe_error(exc))
        logger.debug("Failure details", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
