"""
Ebook page job queue system.

Components:
- JobStore: Redis-backed document/page records and the FIFO page queue
- StatusAggregator: derives a document's status from its pages
- DocumentJobQueue: high-level submit/status interface
- RetryPolicy: transient-failure classification and backoff
- WorkerPool: concurrent workers that generate pages

Usage:
    # Submit an ebook
    from ebookgen.jobs import JobStore, DocumentJobQueue
    store = JobStore(create_redis_connection(config.REDIS_URL))
    queue = DocumentJobQueue(store)
    document_id, document = await queue.enqueue(title, description, "MEDIUM", page_titles)

    # Run workers
    pool = WorkerPool(store, PageWriter())
    await pool.start()

    # Check status
    status = await queue.get_status(document_id)
"""

from ebookgen.jobs.models import (
    ContentMode,
    DocumentJob,
    DocumentSnapshot,
    DocumentStatus,
    MalformedRecordError,
    PageJob,
    PageStatus,
    QueueEntry,
)
from ebookgen.jobs.aggregator import StatusAggregator, derive_document_status
from ebookgen.jobs.store import JobStore
from ebookgen.jobs.queue import DocumentJobQueue
from ebookgen.jobs.retry import RetryPolicy
from ebookgen.jobs.worker import PageWorker, PoolStats, WorkerPool

__all__ = [
    # Models
    "ContentMode",
    "DocumentJob",
    "DocumentSnapshot",
    "DocumentStatus",
    "MalformedRecordError",
    "PageJob",
    "PageStatus",
    "QueueEntry",

    # Store
    "JobStore",
    "StatusAggregator",
    "derive_document_status",

    # Queue
    "DocumentJobQueue",

    # Worker
    "RetryPolicy",
    "PageWorker",
    "PoolStats",
    "WorkerPool",
]
