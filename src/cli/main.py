"""Command-line client for bookmarks kept in a local JSON file."""
import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from core.config import Settings, get_settings
from schemas.bookmark import LocalBookmarkCreate, validate_tag, validate_tags
from services.bookmark_ordering import filter_bookmarks
from services.exceptions import StorageError
from services.local_store import JsonFileStorage, LocalBookmarkStore
from services.url_scraper import fetch_metadata
from services.url_utils import validate_and_normalize_url

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path("bookmarks.json")
DEFAULT_USER = "local"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    parser = argparse.ArgumentParser(prog="bookmarks", description=__doc__)
    parser.add_argument(
        "--store", type=Path, default=DEFAULT_STORE_PATH,
        help="JSON file holding the bookmarks (default: %(default)s)",
    )
    parser.add_argument(
        "--user", default=DEFAULT_USER,
        help="Owner id used to scope bookmarks (default: %(default)s)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Save a URL, scraping its metadata")
    add.add_argument("url")
    add.add_argument("--title")
    add.add_argument("--summary")
    add.add_argument("--tag", dest="tags", action="append", default=[], help="Repeatable")
    add.add_argument("--no-fetch", action="store_true", help="Skip fetching the page")

    list_cmd = subparsers.add_parser("list", help="List bookmarks in display order")
    list_cmd.add_argument("--filter", dest="term", default="", help="Case-insensitive text filter")

    delete = subparsers.add_parser("delete", help="Delete a bookmark")
    delete.add_argument("bookmark_id")

    tag = subparsers.add_parser("tag", help="Add a tag to a bookmark")
    tag.add_argument("bookmark_id")
    tag.add_argument("tag")

    order = subparsers.add_parser("order", help="Replace the custom display order")
    order.add_argument("bookmark_ids", nargs="*")

    metadata = subparsers.add_parser("metadata", help="Show scraped metadata without saving")
    metadata.add_argument("url")

    return parser


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


async def _fetch(url: str, settings: Settings) -> dict[str, str | None]:
    metadata = await fetch_metadata(
        url,
        timeout=settings.fetch_timeout,
        summary_endpoint=settings.summary_service_url or None,
        summary_timeout=settings.summary_timeout,
        summary_max_length=settings.summary_max_length,
        block_private_addresses=settings.block_private_addresses,
    )
    return asdict(metadata)


def _add(args: argparse.Namespace, store: LocalBookmarkStore, settings: Settings) -> int:
    url = validate_and_normalize_url(args.url)
    fields: dict[str, str | None] = {"title": None, "favicon": None, "summary": None}
    if not args.no_fetch:
        fields = asyncio.run(_fetch(url, settings))
    if args.title:
        fields["title"] = args.title
    if args.summary:
        fields["summary"] = args.summary

    bookmark = store.add(
        LocalBookmarkCreate(
            user_id=args.user,
            url=url,
            title=fields["title"],
            favicon=fields["favicon"],
            summary=fields["summary"],
            tags=validate_tags(args.tags),
        ),
    )
    _print_json(bookmark.model_dump())
    return 0


def run(args: argparse.Namespace, settings: Settings) -> int:
    """Execute a parsed command and return the exit status."""
    if args.command == "metadata":
        _print_json(asyncio.run(_fetch(args.url, settings)))
        return 0

    store = LocalBookmarkStore(JsonFileStorage(args.store))

    if args.command == "add":
        return _add(args, store, settings)

    if args.command == "list":
        bookmarks = filter_bookmarks(store.list(args.user), args.term)
        _print_json([bookmark.model_dump() for bookmark in bookmarks])
        return 0

    if args.command == "delete":
        if not store.delete(args.bookmark_id, args.user):
            logger.error("Bookmark %s not found", args.bookmark_id)
            return 1
        _print_json({"deleted": args.bookmark_id})
        return 0

    if args.command == "tag":
        tag = validate_tag(args.tag)
        bookmark = store.get(args.bookmark_id, args.user)
        if bookmark is None:
            logger.error("Bookmark %s not found", args.bookmark_id)
            return 1
        added = store.add_tag(args.bookmark_id, tag, args.user)
        bookmark = store.get(args.bookmark_id, args.user) or bookmark
        _print_json({"added": added, "tags": bookmark.tags})
        return 0

    if args.command == "order":
        store.save_order(args.bookmark_ids, args.user)
        _print_json({"bookmark_ids": [bookmark.id for bookmark in store.list(args.user)]})
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``bookmarks`` command."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    try:
        return run(args, get_settings())
    except StorageError as e:
        logger.error("%s", e)
        return 1
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
