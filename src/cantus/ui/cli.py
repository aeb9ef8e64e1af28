# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from signal import SIGINT, SIGTERM, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from cantus.app import (
    browse_service,
    cleanup_orphans,
    import_library,
    list_tracks,
    list_unmatched,
    rebuild_index,
    run_enrichment,
    search_catalog,
)
from cantus.config import configure_logging
from cantus.domain.browse import ArtistView, ReleaseView, TrackView
from cantus.domain.model import CatalogFilter, EntityKind, TrackStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from cantus.domain.browse import CatalogView

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage a local music library catalog")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Scan a directory and import its audio files")
    scan.add_argument("path", type=_existing_path, help="Library root or single audio file")
    scan.add_argument(
        "--cleanup",
        action="store_true",
        help="Delete releases and artists left without tracks after the import",
    )

    subparsers.add_parser("rebuild-index", help="Rebuild the search index from the catalog")

    search = subparsers.add_parser("search", help="Free-text search over the catalog")
    search.add_argument("text", type=str, help="Search text; typos are tolerated")
    search.add_argument(
        "--kind",
        type=EntityKind,
        choices=list(EntityKind),
        action="append",
        help="Restrict results to an entity kind (repeatable)",
    )
    search.add_argument("--limit", type=int, default=20, help="Maximum number of results")

    listing = subparsers.add_parser("list", help="List catalog entries")
    listing.add_argument(
        "kind",
        choices=["tracks", "releases", "artists"],
        help="What to list",
    )
    listing.add_argument("--artist", type=str, help="Artist name contains")
    listing.add_argument("--genre", type=str, help="Genre name")
    listing.add_argument("--from", dest="date_from", type=str, help="Earliest release date")
    listing.add_argument("--to", dest="date_to", type=str, help="Latest release date")
    listing.add_argument("--format", type=str, help="File format, e.g. flac")
    listing.add_argument(
        "--status",
        type=TrackStatus,
        choices=list(TrackStatus),
        help="Track status",
    )
    listing.add_argument("--limit", type=int, help="Maximum number of entries")
    listing.add_argument("--offset", type=int, default=0, help="Entries to skip")

    unmatched = subparsers.add_parser("unmatched", help="List files waiting for review")
    unmatched.add_argument("--limit", type=int, help="Maximum number of entries")

    subparsers.add_parser("cleanup", help="Delete releases and artists without tracks")

    enrich = subparsers.add_parser("enrich", help="Run the enrichment scheduler until stopped")
    enrich.add_argument(
        "--now",
        action="store_true",
        help="Submit every enrichment kind once at startup instead of waiting for cron",
    )

    return parser.parse_args(list(argv))


def _existing_path(value: str) -> Path:
    path = Path(value).expanduser()
    if not path.exists():
        raise argparse.ArgumentTypeError(f"No such file or directory: {value}")
    return path


def _filter_from(args: argparse.Namespace) -> CatalogFilter:
    if args.limit is not None and args.limit < 0:
        raise ValueError("--limit must be non-negative")
    if args.offset < 0:
        raise ValueError("--offset must be non-negative")
    return CatalogFilter(
        artist=args.artist,
        genre=args.genre,
        date_from=args.date_from,
        date_to=args.date_to,
        format=args.format,
        status=args.status,
        limit=args.limit,
        offset=args.offset,
    )


def format_view(view: CatalogView) -> str:
    if isinstance(view, ArtistView):
        return f"artist  {view.mbid}  {view.name}"
    if isinstance(view, ReleaseView):
        date = f" ({view.date})" if view.date else ""
        return f"release {view.mbid}  {view.artists} - {view.title}{date}"
    return format_track(view)


def format_track(view: TrackView) -> str:
    if view.status is TrackStatus.UNMATCHED:
        score = f" {view.confidence:.2f}" if view.confidence is not None else ""
        return f"unmatched [{view.unmatched_reason}{score}]  {view.path}"
    position = f"{view.disc or 1}-{view.number:02d} " if view.number is not None else ""
    return f"track   {view.mbid}  {position}{view.artists} - {view.title}  {view.path}"


def _enrich(*, run_now: bool) -> None:
    async def _run() -> None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (SIGINT, SIGTERM):
            loop.add_signal_handler(signum, stop.set)
        await run_enrichment(stop, run_now=run_now)

    asyncio.run(_run())


def _run_command(args: argparse.Namespace) -> None:
    if args.command == "scan":
        report = import_library(args.path, cleanup=args.cleanup)
        log.info("Import finished: %s (removed %d track(s))", report.summary(), report.removed)
        for path, error in sorted(report.errors.items()):
            print(f"failed  {path}: {error}")
    elif args.command == "rebuild-index":
        count = rebuild_index()
        log.info("Indexed %d document(s)", count)
    elif args.command == "search":
        for result in search_catalog(args.text, kinds=args.kind, limit=args.limit):
            print(f"{result.score:5.2f}  {format_view(result.view)}")
    elif args.command == "list":
        criteria = _filter_from(args)
        if args.kind == "tracks":
            views: Sequence[CatalogView] = list_tracks(criteria)
        elif args.kind == "releases":
            views = browse_service().releases(criteria)
        else:
            views = browse_service().artists(name=args.artist, limit=args.limit)
        for view in views:
            print(format_view(view))
    elif args.command == "unmatched":
        for view in list_unmatched(limit=args.limit):
            print(format_track(view))
    elif args.command == "cleanup":
        removed = cleanup_orphans()
        log.info("Removed %d release(s) and %d artist(s)", removed.releases, removed.artists)
    elif args.command == "enrich":
        _enrich(run_now=args.now)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "list":
            _filter_from(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        _run_command(parsed_args)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()
