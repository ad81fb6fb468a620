"""Command-line tools for pageStash.

Usage::

    python -m pagestash.cli bulk-import --user-id alice --file urls.txt
    python -m pagestash.cli bulk-import --server http://localhost:8000 \\
        --token "$TOKEN" https://example.com/a https://example.com/b
    python -m pagestash.cli list --user-id alice --limit 20
    python -m pagestash.cli issue-token alice

``bulk-import`` runs the orchestrator in-process against the local item
store, or with ``--server`` consumes a running server's progress stream.
Either way it prints one line per URL and the final counts.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from pagestash.config.settings import Settings
from pagestash.models.progress import BatchSummary, BulkScrapeProgress
from pagestash.utils.errors import PageStashError


def read_url_file(path: Path) -> list[str]:
    """Read one URL per line; blank lines and ``#`` comments are skipped."""
    urls: list[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            urls.append(stripped)
    return urls


def _print_progress(event: BulkScrapeProgress) -> None:
    print(f"[{event.completed}/{event.total}] {event.status.value:<7} {event.url}")


def _print_summary(summary: BatchSummary) -> None:
    print()
    label = "Import finished" if summary.is_complete else "Import incomplete"
    print(f"{label}: {summary.message}")
    for url in summary.failed_urls:
        print(f"  failed: {url}")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_bulk_import(args: argparse.Namespace, app_settings: Settings) -> int:
    urls = list(args.urls)
    if args.file:
        urls.extend(read_url_file(Path(args.file)))

    if args.server:
        from pagestash.client.bulk_client import BulkImportClient

        async with BulkImportClient(args.server, token=args.token, user_id=args.user_id) as client:
            summary = await client.run(urls, on_progress=_print_progress)
    else:
        if not args.user_id:
            print("Error: --user-id is required without --server", file=sys.stderr)
            return 1
        from pagestash.client.bulk_client import collect_summary
        from pagestash.main import build_pipeline

        components = await build_pipeline(app_settings)
        try:
            events = components["orchestrator"].run(args.user_id, urls)
            summary = await collect_summary(events, on_progress=_print_progress)
        finally:
            await components["extraction_provider"].close()

    _print_summary(summary)
    if not summary.is_complete:
        expected = summary.total or len(urls)
        print(
            f"Error: progress stream ended after {summary.last_completed} of {expected} URLs",
            file=sys.stderr,
        )
        return 1
    return 0


async def _handle_list(args: argparse.Namespace, app_settings: Settings) -> int:
    from pagestash.providers.store.sqlite_item_store import SQLiteItemStore

    store = SQLiteItemStore(app_settings.items_db_path)
    await store.initialize()
    items = await store.find_many(args.user_id, limit=args.limit)
    if not items:
        print("No items.")
        return 0
    for item in items:
        title = item.title or "(untitled)"
        print(f"{item.created_at:%Y-%m-%d %H:%M}  {item.status.value:<10} {item.id}  {title}")
        print(f"    {item.url}")
    return 0


def _handle_issue_token(args: argparse.Namespace, app_settings: Settings) -> int:
    from pagestash.api.auth import create_session_token

    if not app_settings.session_secret:
        print("Error: SESSION_SECRET is not set", file=sys.stderr)
        return 1
    print(create_session_token(args.user_id, app_settings.session_secret))
    return 0


# ---------------------------------------------------------------------------
# Parser / entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagestash",
        description="pageStash command-line tools",
    )
    subparsers = parser.add_subparsers(dest="command")

    bulk = subparsers.add_parser("bulk-import", help="Import a batch of URLs")
    bulk.add_argument("urls", nargs="*", help="URLs to import, in order")
    bulk.add_argument("--file", help="File with one URL per line")
    bulk.add_argument("--user-id", help="Owning user (required for local runs)")
    bulk.add_argument("--server", help="Stream from a running server instead of running locally")
    bulk.add_argument("--token", help="Session token for --server")

    list_cmd = subparsers.add_parser("list", help="List a user's saved items")
    list_cmd.add_argument("--user-id", required=True)
    list_cmd.add_argument("--limit", type=int, default=20)

    token = subparsers.add_parser("issue-token", help="Mint a session token")
    token.add_argument("user_id")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse *argv*, run the subcommand, and return its exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    app_settings = Settings()
    try:
        if args.command == "bulk-import":
            return asyncio.run(_handle_bulk_import(args, app_settings))
        if args.command == "list":
            return asyncio.run(_handle_list(args, app_settings))
        if args.command == "issue-token":
            return _handle_issue_token(args, app_settings)
    except PageStashError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
