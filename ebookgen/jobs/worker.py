"""
Worker pool for ebook page generation.

Each worker is an independent asyncio task that pops page jobs from the shared
Redis queue, writes the page with the PageWriter and records the result. There
is no dispatcher: LPOP hands each queue entry to exactly one worker.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ebookgen.agents.page_writer import PageWriter
from ebookgen.config import config
from ebookgen.jobs.models import PageStatus, QueueEntry
from ebookgen.jobs.retry import RetryPolicy
from ebookgen.jobs.store import JobStore
from ebookgen.utils.logging import worker_logger as logger

# Back-off (seconds) after an error escapes a worker iteration
STORE_DOWN_BACKOFF = 10.0
LOOP_ERROR_BACKOFF = 5.0

PAGES_MISSING_ERROR = "Page data not found or invalid in store"
PAGE_NOT_IN_LIST_ERROR = "Current page data not found in list"


async def _sleep(seconds: float):
    """Retry backoff wait. Not interrupted by shutdown."""
    await asyncio.sleep(seconds)


@dataclass
class PoolStats:
    """Counters shared by all workers of a pool."""
    total_processed: int = 0
    total_succeeded: int = 0
    total_failed: int = 0
    active_workers: int = 0
    start_time: float = field(default_factory=time.time)

    @property
    def uptime_seconds(self) -> int:
        return int(time.time() - self.start_time)

    @property
    def success_rate(self) -> float:
        if not self.total_processed:
            return 0.0
        return self.total_succeeded * 100 / self.total_processed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uptime_seconds": self.uptime_seconds,
            "total_processed": self.total_processed,
            "total_succeeded": self.total_succeeded,
            "total_failed": self.total_failed,
            "success_rate": round(self.success_rate, 1),
            "active_workers": self.active_workers,
        }

    def summary(self) -> str:
        return (
            f"Uptime: {self.uptime_seconds}s | Processed: {self.total_processed} | "
            f"Success: {self.total_succeeded} | Failed: {self.total_failed} | "
            f"Success Rate: {self.success_rate:.1f}% | Active: {self.active_workers}"
        )


class PageWorker:
    """
    One polling worker.

    IDLE -> pop -> fetch context -> generate (with retry waits) -> write result -> IDLE
    """

    def __init__(
        self,
        worker_id: int,
        store: JobStore,
        writer: PageWriter,
        retry_policy: RetryPolicy,
        stats: PoolStats,
        stop_event: asyncio.Event,
        poll_interval: float,
        processing_delay: float,
    ):
        self.worker_id = worker_id
        self.store = store
        self.writer = writer
        self.retry_policy = retry_policy
        self.stats = stats
        self.stop_event = stop_event
        self.poll_interval = poll_interval
        self.processing_delay = processing_delay

        self._current_entry: Optional[QueueEntry] = None

    @property
    def name(self) -> str:
        return f"Worker-{self.worker_id}"

    @property
    def current_entry(self) -> Optional[QueueEntry]:
        return self._current_entry

    async def run(self):
        """Loop until the pool's stop event is set. Never exits on errors."""
        logger.info(f"{self.name} started")

        while not self.stop_event.is_set():
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"{self.name} error in worker loop: {e}")

                if not await self.store.check_connection():
                    logger.error(f"{self.name} lost the store connection, retrying in {STORE_DOWN_BACKOFF:.0f}s")
                    await self._idle(STORE_DOWN_BACKOFF)
                else:
                    await self._idle(LOOP_ERROR_BACKOFF)

        logger.info(f"{self.name} stopped")

    async def run_once(self) -> bool:
        """
        One loop iteration.

        Returns:
            True if a queue entry was processed, False if the queue was empty
        """
        entry = await self.store.pop_next_queue_entry()
        if entry is None:
            await self._idle(self.poll_interval)
            return False

        await self.process_entry(entry)

        if self.processing_delay > 0:
            await self._idle(self.processing_delay)
        return True

    async def process_entry(self, entry: QueueEntry) -> bool:
        """Process one popped entry. Returns True if the page was completed."""
        self.stats.active_workers += 1
        self._current_entry = entry

        try:
            succeeded = await self._process(entry)
        except Exception:
            self.stats.total_failed += 1
            raise
        finally:
            self.stats.active_workers -= 1
            self.stats.total_processed += 1
            self._current_entry = None

        if succeeded:
            self.stats.total_succeeded += 1
        else:
            self.stats.total_failed += 1
        return succeeded

    async def _process(self, entry: QueueEntry) -> bool:
        document_id, page_index = entry.document_id, entry.page_index
        logger.info(f"{self.name} processing job", document_id=document_id, page_index=page_index)

        document, pages = await asyncio.gather(
            self.store.get_document(document_id),
            self.store.get_pages(document_id),
        )

        if document is None:
            # Nothing to mark: the page has no owning document
            logger.error(f"{self.name} document not found, dropping job", document_id=document_id, page_index=page_index)
            return False

        if not pages:
            logger.error(f"{self.name} page data not found or invalid", document_id=document_id)
            await self.store.update_page_status(document_id, page_index, PageStatus.FAILED, error=PAGES_MISSING_ERROR)
            return False

        page = next((p for p in pages if p.page_index == page_index), None)
        if page is None:
            logger.error(f"{self.name} page missing from page list", document_id=document_id, page_index=page_index)
            await self.store.update_page_status(document_id, page_index, PageStatus.FAILED, error=PAGE_NOT_IN_LIST_ERROR)
            return False

        all_page_titles = [p.page_title for p in pages]

        await self.store.update_page_status(document_id, page_index, PageStatus.PROCESSING)

        attempt = 0
        while True:
            try:
                content = await self.writer.generate(
                    document_title=document.title,
                    document_description=document.description,
                    page_title=page.page_title,
                    page_index=page_index,
                    content_mode=document.content_mode,
                    all_page_titles=all_page_titles,
                )
                break
            except Exception as e:
                if self.retry_policy.should_retry(e, attempt):
                    delay = self.retry_policy.backoff_delay(attempt)
                    logger.warning(
                        f"{self.name} retrying in {delay:.0f}s",
                        document_id=document_id,
                        page_index=page_index,
                        attempt=attempt + 1,
                        error=str(e),
                    )
                    await _sleep(delay)
                    attempt += 1
                    continue

                logger.error(
                    f"{self.name} page failed",
                    document_id=document_id,
                    page_index=page_index,
                    attempts=attempt + 1,
                    error=str(e),
                )
                await self.store.update_page_status(document_id, page_index, PageStatus.FAILED, error=str(e))
                return False

        await self.store.update_page_status(document_id, page_index, PageStatus.COMPLETED, content=content)
        logger.info(f"{self.name} page completed", document_id=document_id, page_index=page_index, attempts=attempt + 1)
        return True

    async def _idle(self, seconds: float):
        """Sleep that ends early when the pool is stopping."""
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass


class WorkerPool:
    """
    Runs N PageWorkers against one JobStore.

    Usage:
        pool = WorkerPool(store, PageWriter())
        await pool.start()
        ...
        await pool.stop()   # finishes in-flight jobs, logs final stats
    """

    def __init__(
        self,
        store: JobStore,
        writer: PageWriter,
        worker_count: Optional[int] = None,
        retry_policy: Optional[RetryPolicy] = None,
        poll_interval: Optional[float] = None,
        processing_delay: Optional[float] = None,
        stats_interval: Optional[int] = None,
    ):
        self.store = store
        self.writer = writer
        self.worker_count = config.CONCURRENT_WORKERS if worker_count is None else worker_count
        self.retry_policy = retry_policy or RetryPolicy(max_retries=config.MAX_RETRIES)
        self.poll_interval = config.poll_interval_seconds if poll_interval is None else poll_interval
        self.processing_delay = config.processing_delay_seconds if processing_delay is None else processing_delay
        self.stats_interval = config.STATS_INTERVAL if stats_interval is None else stats_interval

        self.stats = PoolStats()
        self.scheduler = AsyncIOScheduler()
        self.workers: List[PageWorker] = []

        self._stop_event = asyncio.Event()
        self._tasks: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def start(self):
        """Start all workers and the periodic stats job."""
        if self.is_running:
            return

        self._stop_event.clear()
        self.stats = PoolStats()
        self.workers = [
            PageWorker(
                worker_id=i + 1,
                store=self.store,
                writer=self.writer,
                retry_policy=self.retry_policy,
                stats=self.stats,
                stop_event=self._stop_event,
                poll_interval=self.poll_interval,
                processing_delay=self.processing_delay,
            )
            for i in range(self.worker_count)
        ]
        self._tasks = [
            asyncio.create_task(worker.run(), name=f"page-worker-{worker.worker_id}")
            for worker in self.workers
        ]

        self.scheduler.add_job(
            self.log_stats,
            trigger=IntervalTrigger(seconds=self.stats_interval),
            id="pool_stats",
            name="Log worker pool statistics",
            replace_existing=True,
            max_instances=1
        )
        self.scheduler.start()

        logger.info(f"All {self.worker_count} workers started", stats_interval=self.stats_interval)

    async def log_stats(self):
        queue_length = await self.store.queue_length()
        logger.info(f"[Stats] {self.stats.summary()}", queue_length=queue_length)

    async def wait(self):
        """Wait until every worker has stopped."""
        await asyncio.gather(*self._tasks, return_exceptions=True)

    async def stop(self):
        """
        Stop taking new queue entries and wait for in-flight jobs.

        Generation calls already running are not cancelled.
        """
        logger.info("Worker pool shutting down gracefully...")
        self._stop_event.set()

        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        await self.wait()
        await self.log_stats()
