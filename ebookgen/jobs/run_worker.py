#!/usr/bin/env python3
"""
Standalone page worker pool process.

Run this separately from whatever accepts ebook requests. It polls the Redis
page queue with CONCURRENT_WORKERS workers until SIGINT/SIGTERM.

Usage:
    python -m ebookgen.jobs.run_worker
    python -m ebookgen.jobs.run_worker --workers 5
    python -m ebookgen.jobs.run_worker --verbose
"""

import argparse
import asyncio
import signal
import sys

from ebookgen.agents.page_writer import PageWriter
from ebookgen.config import config
from ebookgen.jobs.retry import RetryPolicy
from ebookgen.jobs.store import JobStore
from ebookgen.jobs.worker import WorkerPool
from ebookgen.queue.connection import (
    check_redis_connection,
    close_redis_connection,
    create_redis_connection,
    redact_url,
)
from ebookgen.utils.logging import configure_logging, get_log_buffer, worker_logger as logger


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the ebook page worker pool")
    parser.add_argument(
        "--workers",
        "-w",
        type=int,
        default=None,
        help=f"Number of concurrent workers (default: CONCURRENT_WORKERS={config.CONCURRENT_WORKERS})"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    return parser.parse_args(argv)


async def main(args: argparse.Namespace) -> int:
    """Run the worker pool. Returns the process exit code."""
    missing = config.missing_required_settings
    if missing:
        for name in missing:
            logger.critical(f"Missing environment variable: {name} is required")
        return 1

    worker_count = args.workers or config.CONCURRENT_WORKERS

    print("=" * 60)
    print("Starting Ebook Page Worker Pool")
    print("=" * 60)
    print(f"  Redis: {redact_url(config.REDIS_URL)}")
    print(f"  Model: {config.MODEL_NAME}")
    print(f"  Config: {dict(config.worker_settings, CONCURRENT_WORKERS=worker_count)}")
    print("=" * 60)

    client = create_redis_connection(config.REDIS_URL)
    try:
        if not await check_redis_connection(client):
            logger.critical("Initial Redis connection check failed. Exiting.")
            return 1
        logger.info("Redis connection successful")

        store = JobStore(client)
        pool = WorkerPool(
            store,
            PageWriter(),
            worker_count=worker_count,
            retry_policy=RetryPolicy(max_retries=config.MAX_RETRIES),
        )

        # Handle shutdown signals gracefully
        shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        def handle_shutdown(signame: str):
            logger.info(f"Received {signame}, shutting down...")
            shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, handle_shutdown, sig.name)

        await pool.start()
        print("\n  Worker pool running. Press Ctrl+C to stop.\n")

        await shutdown_event.wait()
        await pool.stop()

        log_stats = get_log_buffer().get_stats()
        logger.info(
            "Worker pool stopped",
            errors_logged=log_stats["error_count"],
            warnings_logged=log_stats["warning_count"],
        )
        return 0
    finally:
        await close_redis_connection(client)


def run(argv=None):
    args = parse_args(argv)
    configure_logging("DEBUG" if args.verbose else config.LOG_LEVEL)
    sys.exit(asyncio.run(main(args)))


if __name__ == "__main__":
    run()
