"""Command-line interface for the Miniflux client."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

import requests

from .api import MinifluxClient
from .config import connection_loader, parse_app_config
from .errors import ApiError
from .models import (
    ENTRY_STATUSES,
    STATUS_UNREAD,
    DiscoveryRequest,
    Entry,
    FeedCreationRequest,
)
from .renderers import (
    render_article,
    render_categories,
    render_discovered_feeds,
    render_entries,
    to_json,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Talk to a Miniflux server.")
    parser.add_argument(
        "--config",
        default="configs/config.xml",
        help="Path to the main configuration XML file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING). Overrides config.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to a log file. Overrides config.",
    )
    parser.add_argument(
        "--format",
        choices=("json", "text"),
        default="json",
        help="Output format.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    search = commands.add_parser("search", help="Search entries.")
    search.add_argument("query")
    search.add_argument("--limit", type=int, default=None)

    recent = commands.add_parser("recent", help="List recent unread entries.")
    recent.add_argument("--limit", type=int, default=None)

    link = commands.add_parser("entry-url", help="Print the reader link of an entry.")
    link.add_argument("entry_id", type=int)
    link.add_argument("status", nargs="?", default=STATUS_UNREAD)

    origin = commands.add_parser("origin", help="Fetch the original article.")
    origin.add_argument("entry_id", type=int)
    origin.add_argument(
        "--plain", action="store_true", help="Strip HTML from the article."
    )

    icon = commands.add_parser("icon", help="Fetch a feed icon.")
    icon.add_argument("feed_id", type=int)

    commands.add_parser("categories", help="List categories.")

    bookmark = commands.add_parser("bookmark", help="Toggle the bookmark of an entry.")
    bookmark.add_argument("entry_id", type=int)

    status = commands.add_parser("status", help="Change the status of an entry.")
    status.add_argument("entry_id", type=int)
    status.add_argument("status", choices=ENTRY_STATUSES)

    discover = commands.add_parser("discover", help="Discover feeds at a URL.")
    discover.add_argument("url")
    discover.add_argument("--username")
    discover.add_argument("--password")
    discover.add_argument("--user-agent")

    create = commands.add_parser("create-feed", help="Subscribe to a feed.")
    create.add_argument("feed_url")
    create.add_argument("category_id", type=int)
    create.add_argument("--username")
    create.add_argument("--password")
    create.add_argument("--crawler", action="store_true", default=None)

    return parser


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Replace the root handlers with a console handler and an optional log file."""
    level = level_name.upper()
    if not isinstance(getattr(logging, level, None), int):
        raise ValueError(f"Unsupported log level: {level_name}")

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )
    logger.debug("Logging to %s at %s", log_file or "console", level)


def run_command(client: MinifluxClient, args: argparse.Namespace) -> str:
    """Execute the selected subcommand and return the text to print."""
    text = args.format == "text"

    if args.command in ("search", "recent"):
        if args.command == "search":
            entries = client.search(args.query, limit=args.limit)
        else:
            entries = client.get_recent_entries(limit=args.limit)
        if text:
            return render_entries(entries, client.entry_linker())
        return to_json(entries)

    if args.command == "entry-url":
        return client.get_entry_url(Entry(id=args.entry_id, status=args.status))

    if args.command == "origin":
        article = client.get_origin_article(Entry(id=args.entry_id, status=STATUS_UNREAD))
        if text or args.plain:
            return render_article(article, plain=args.plain)
        return to_json(article)

    if args.command == "icon":
        return to_json(client.get_icon_for_feed(args.feed_id))

    if args.command == "categories":
        categories = client.get_categories()
        return render_categories(categories) if text else to_json(categories)

    if args.command == "bookmark":
        toggled = client.toggle_bookmark(Entry(id=args.entry_id, status=STATUS_UNREAD))
        return f"Bookmark toggled: {'yes' if toggled else 'no'}"

    if args.command == "status":
        updated = client.update_entry_status(args.entry_id, args.status)
        return f"Status updated to {args.status}: {'yes' if updated else 'no'}"

    if args.command == "discover":
        feeds = client.discover_feeds(
            DiscoveryRequest(
                url=args.url,
                username=args.username,
                password=args.password,
                user_agent=args.user_agent,
            )
        )
        return render_discovered_feeds(feeds) if text else to_json(feeds)

    if args.command == "create-feed":
        created = client.create_feed(
            FeedCreationRequest(
                feed_url=args.feed_url,
                category_id=args.category_id,
                username=args.username,
                password=args.password,
                crawler=args.crawler,
            )
        )
        return f"Created feed {created.feed_id}" if text else to_json(created)

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = parse_app_config(args.config)

        # CLI overrides config
        log_level = args.log_level or app_config.logging.level
        log_file = args.log_file or app_config.logging.file
        configure_logging(log_level, log_file)

        client = MinifluxClient(connection_loader(args.config))
        output = run_command(client, args)
    except ApiError as exc:
        logger.error("Miniflux API error (%d): %s", exc.status_code, exc.message)
        return 1
    except requests.RequestException as exc:
        # requests.JSONDecodeError is also a ValueError
        logger.error("Request to Miniflux failed: %s", exc)
        return 1
    except ValueError as exc:
        parser.error(str(exc))
    except (RuntimeError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1

    print(output)
    return 0
