#!/usr/bin/env python3
"""
Command line access to the ebook queue.

Usage:
    python -m ebookgen.jobs.cli submit "Ebook Title" --page Intro --page Body --page Conclusion
    python -m ebookgen.jobs.cli submit "Ebook Title" --pages-file titles.txt --mode FULL
    python -m ebookgen.jobs.cli status 1718030000000-abc1234 [--pages]
    python -m ebookgen.jobs.cli health
"""

import argparse
import asyncio
import json
import sys
from typing import List

from ebookgen.config import config
from ebookgen.jobs.models import ContentMode
from ebookgen.jobs.queue import DocumentJobQueue
from ebookgen.jobs.store import JobStore
from ebookgen.queue.connection import (
    StoreUnavailableError,
    close_redis_connection,
    create_redis_connection,
)
from ebookgen.utils.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Submit and inspect ebook generation jobs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    submit = subparsers.add_parser("submit", help="Queue a new ebook")
    submit.add_argument("title", help="Ebook title")
    submit.add_argument("--description", "-d", default="", help="Ebook description")
    submit.add_argument(
        "--mode",
        "-m",
        default=ContentMode.MEDIUM.value,
        choices=[m.value for m in ContentMode],
        help="Content length preset (default: MEDIUM)"
    )
    submit.add_argument("--page", "-p", action="append", default=[], help="Page title (repeatable, in order)")
    submit.add_argument("--pages-file", help="File with one page title per line")

    status = subparsers.add_parser("status", help="Show an ebook's aggregate status")
    status.add_argument("document_id")
    status.add_argument("--pages", action="store_true", help="Include page records and content")

    subparsers.add_parser("health", help="Check the store and show the queue length")

    return parser


def read_page_titles(args: argparse.Namespace) -> List[str]:
    titles = list(args.page)
    if args.pages_file:
        with open(args.pages_file, encoding="utf-8") as f:
            titles.extend(line.strip() for line in f if line.strip())
    return titles


async def main(args: argparse.Namespace) -> int:
    client = create_redis_connection(config.REDIS_URL)
    store = JobStore(client)
    queue = DocumentJobQueue(store)

    try:
        if args.command == "submit":
            document_id, document = await queue.enqueue(
                args.title,
                args.description,
                args.mode,
                read_page_titles(args),
            )
            print(json.dumps({"document_id": document_id, "document": document.to_dict()}, indent=2, ensure_ascii=False))
            return 0

        if args.command == "status":
            if args.pages:
                snapshot = await queue.get_snapshot(args.document_id)
                result = snapshot.to_dict() if snapshot else None
            else:
                result = await queue.get_status(args.document_id)

            if result is None:
                print(f"Ebook {args.document_id} not found", file=sys.stderr)
                return 1
            print(json.dumps(result, indent=2, ensure_ascii=False))
            return 0

        health = await store.health_check()
        print(json.dumps(health, indent=2))
        return 0 if health["connected"] else 1
    finally:
        await close_redis_connection(client)


def run(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging(config.LOG_LEVEL)

    try:
        sys.exit(asyncio.run(main(args)))
    except (ValueError, StoreUnavailableError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
