"""
kivaw-feed command line entry point.

    kivaw-feed                      open the last used view (feed or explore)
    kivaw-feed feed                 print the Fresh / Today / Trending sections
    kivaw-feed explore --more 2     print the explore stream, three pages deep
    kivaw-feed mode explore         remember the preferred view
    kivaw-feed serve                run the HTTP API
"""

import argparse
import asyncio
import os
import sys
from typing import Optional

from dotenv import load_dotenv

from kivaw_feed.api.services import (
    AggregatorClient,
    ExploreService,
    FeedService,
    SaveService,
    SqlContentStore,
    SqlSavedItemStore,
    close_database,
    init_database,
)
from kivaw_feed.config.settings import get_app_settings, resolve_client_settings
from kivaw_feed.core.errors import FeedError
from kivaw_feed.core.models import ExploreFilters
from kivaw_feed.core.pagination import ExploreView
from kivaw_feed.core.preferences import LocalState, ViewMode
from kivaw_feed.utils.logging_config import configure_logging, get_logger

logger = get_logger(__name__)

LOCAL_USER_ENV = "KIVAW_USER_ID"
DEFAULT_LOCAL_USER = "local"


def _local_user() -> str:
    return os.getenv(LOCAL_USER_ENV) or DEFAULT_LOCAL_USER


async def show_feed() -> int:
    settings = get_app_settings()
    await init_database(settings.database.path)
    aggregator = AggregatorClient(settings.aggregator)
    try:
        saves = SaveService(SqlContentStore(), SqlSavedItemStore())
        saved_ids, aliases = await saves.saved_view(_local_user())
        response = await FeedService(aggregator, settings.feed).get_feed(saved_ids, aliases)
    except FeedError as e:
        print(f"Error: {e.message}")
        if e.retryable:
            print("Please try again.")
        return 1
    finally:
        await aggregator.aclose()
        await close_database()

    if response.stale:
        print(f"⚠ Showing an earlier feed: {response.error}")
    if not response.sections:
        print("Nothing new in the last two days.")
    for section in response.sections:
        print(f"\n{section.title} · {section.subtitle}")
        print("-" * 60)
        for item in section.items:
            mark = "★" if item.is_saved else " "
            print(f" {mark} {item.title}  [{item.source}]")
            if item.url:
                print(f"     {item.url}")
    return 0


def _print_explore(view: ExploreView, start: int = 0) -> None:
    for index, item in enumerate(view.items[start:], start=start + 1):
        byline = f" · {item.byline}" if item.byline else ""
        print(f"{index:>4}. {item.title or 'Untitled'}{byline}  [{item.kind or '?'}]")


async def show_explore(
    kinds: Optional[list[str]] = None,
    providers: Optional[list[str]] = None,
    more: int = 0,
    refresh: bool = False,
) -> int:
    settings = get_app_settings()
    aggregator = AggregatorClient(settings.aggregator)
    service = ExploreService(aggregator, settings.explore)
    user_id = _local_user()
    filters = ExploreFilters.parse(kinds, providers)

    try:
        try:
            view = await service.load(user_id, filters, refresh=refresh)
        except FeedError as e:
            print(f"Error: {e.message}")
            return 1
        _print_explore(view)

        for _ in range(max(0, more)):
            if not view.has_more:
                break
            shown = len(view.items)
            try:
                view = await service.load_more(user_id)
            except FeedError as e:
                print(f"Couldn't load more: {e.message}")
                break
            _print_explore(view, start=shown)

        if not view.items:
            print("No items.")
        elif view.has_more:
            print(f"\n… more available (use --more {more + 1})")
        return 0
    finally:
        await aggregator.aclose()


def set_mode(state: LocalState, mode: Optional[str]) -> int:
    if mode is None:
        print(state.read_view_mode().value)
        return 0
    state.write_view_mode(ViewMode(mode))
    print(f"View mode set to {mode}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kivaw-feed",
        description="Kivaw feed - Fresh / Today / Trending sections and the explore stream",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("feed", help="Show the Fresh / Today / Trending sections")

    explore = sub.add_parser("explore", help="Show the explore stream")
    explore.add_argument(
        "-k", "--kinds",
        action="append",
        help="Content kinds to include (repeat or comma-separate)",
    )
    explore.add_argument(
        "-p", "--providers",
        action="append",
        help="Providers to include (repeat or comma-separate)",
    )
    explore.add_argument(
        "--more",
        type=int,
        default=0,
        help="Number of additional pages to load (default: 0)",
    )
    explore.add_argument(
        "--refresh",
        action="store_true",
        help="Ignore the cached first page",
    )

    mode = sub.add_parser("mode", help="Show or set the preferred view")
    mode.add_argument("mode", nargs="?", choices=[m.value for m in ViewMode])

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point."""
    load_dotenv()
    configure_logging()

    args = build_parser().parse_args(argv)
    state = LocalState(resolve_client_settings().state_path)

    command = args.command
    if command is None:
        command = state.read_view_mode().value
        logger.debug("Opening persisted view", mode=command)

    if command == "feed":
        return asyncio.run(show_feed())
    if command == "explore":
        return asyncio.run(
            show_explore(
                kinds=getattr(args, "kinds", None),
                providers=getattr(args, "providers", None),
                more=getattr(args, "more", 0),
                refresh=getattr(args, "refresh", False),
            )
        )
    if command == "mode":
        return set_mode(state, args.mode)
    if command == "serve":
        from kivaw_feed.api.main import main as serve

        serve(reload=args.reload)
        return 0

    return 2


if __name__ == "__main__":
    sys.exit(main())
