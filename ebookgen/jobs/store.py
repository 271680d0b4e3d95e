"""
Redis-backed storage for document records, page records, and the page queue.

Key layout (shared with other services, must not change):
    ebook:<documentId>                     DocumentJob JSON
    ebook-page:<documentId>:<pageIndex>    PageJob JSON
    ebook-queue:pages                      FIFO list of QueueEntry JSON

Reads degrade to None / [] when the store is unreachable or a record is
malformed; page writes are best-effort. Only create_document raises on
store failures.
"""

import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ebookgen.jobs.aggregator import StatusAggregator
from ebookgen.jobs.models import (
    DocumentJob,
    DocumentStatus,
    MalformedRecordError,
    PageJob,
    PageStatus,
    QueueEntry,
    decode_payload,
    generate_document_id,
    now_ms,
)
from ebookgen.queue.connection import StoreUnavailableError, check_redis_connection
from ebookgen.utils.logging import store_logger as logger

DOCUMENT_PREFIX = "ebook:"
PAGE_PREFIX = "ebook-page:"
QUEUE_KEY = "ebook-queue:pages"

# Errors raised by redis-py for unreachable or failing servers
STORE_ERRORS = (RedisError, OSError)


def document_key(document_id: str) -> str:
    return f"{DOCUMENT_PREFIX}{document_id}"


def page_key(document_id: str, page_index: int) -> str:
    return f"{PAGE_PREFIX}{document_id}:{page_index}"


class JobStore:
    """
    Storage operations for ebook generation jobs.

    Usage:
        store = JobStore(create_redis_connection(config.REDIS_URL))
        document_id, document = await store.create_document(
            "My Ebook", "About things", "MEDIUM", ["Intro", "Body"]
        )
        entry = await store.pop_next_queue_entry()
    """

    def __init__(self, client: Redis):
        self.client = client
        self.aggregator = StatusAggregator(self)

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_document(
        self,
        title: str,
        description: str,
        content_mode: str,
        page_titles: Sequence[str],
    ) -> Tuple[str, DocumentJob]:
        """
        Write a document, one page per title, and one queue entry per page.

        The writes are pipelined but not transactional. If any of them fails
        nothing is rolled back; the aggregator tolerates partial documents.

        Raises:
            StoreUnavailableError: If the store cannot be reached or a write fails
        """
        document_id = generate_document_id()
        created_at = now_ms()

        document = DocumentJob(
            id=document_id,
            title=title,
            description=description,
            content_mode=content_mode,
            status=DocumentStatus.QUEUED,
            total_pages=len(page_titles),
            queued_pages=len(page_titles),
            created_at=created_at,
            updated_at=created_at,
        )

        pipe = self.client.pipeline(transaction=False)
        pipe.set(document_key(document_id), _encode(document.to_dict()))
        for index, page_title in enumerate(page_titles):
            page = PageJob(
                document_id=document_id,
                page_index=index,
                page_title=page_title,
                created_at=created_at,
                updated_at=created_at,
            )
            pipe.set(page_key(document_id, index), _encode(page.to_dict()))
            pipe.rpush(QUEUE_KEY, QueueEntry(document_id, index).to_json())

        try:
            await pipe.execute()
        except STORE_ERRORS as e:
            logger.error("Failed to create document queue", document_id=document_id, error=str(e))
            raise StoreUnavailableError(f"Failed to create document queue: {e}") from e

        logger.info(
            "Document queued",
            document_id=document_id,
            total_pages=document.total_pages,
            content_mode=content_mode,
        )
        return document_id, document

    # =========================================================================
    # Retrieval
    # =========================================================================

    async def get_document(self, document_id: str) -> Optional[DocumentJob]:
        raw = await self._get(document_key(document_id))
        if raw is None:
            return None

        try:
            return DocumentJob.from_dict(decode_payload(raw))
        except MalformedRecordError as e:
            logger.error("Malformed document record", document_id=document_id, error=str(e))
            return None

    async def get_page(self, document_id: str, page_index: int) -> Optional[PageJob]:
        raw = await self._get(page_key(document_id, page_index))
        if raw is None:
            return None

        try:
            return PageJob.from_dict(decode_payload(raw))
        except MalformedRecordError as e:
            logger.error(
                "Malformed page record",
                document_id=document_id,
                page_index=page_index,
                error=str(e),
            )
            return None

    async def get_pages(self, document_id: str) -> List[PageJob]:
        """All readable pages of a document, sorted by page index."""
        document = await self.get_document(document_id)
        if document is None:
            logger.warning("Document not found, returning no pages", document_id=document_id)
            return []

        if document.total_pages <= 0:
            return []

        keys = [page_key(document_id, i) for i in range(document.total_pages)]
        try:
            results = await self.client.mget(keys)
        except STORE_ERRORS as e:
            logger.error("Failed to read pages", document_id=document_id, error=str(e))
            return []

        pages = []
        for index, raw in enumerate(results):
            if raw is None:
                continue
            try:
                pages.append(PageJob.from_dict(decode_payload(raw)))
            except MalformedRecordError as e:
                logger.warning(
                    "Skipping malformed page record",
                    document_id=document_id,
                    page_index=index,
                    error=str(e),
                )

        pages.sort(key=lambda p: p.page_index)
        return pages

    async def pop_next_queue_entry(self) -> Optional[QueueEntry]:
        """
        Pop the oldest queue entry without blocking.

        None means the queue is empty right now, or the popped entry was
        unreadable (it is dropped and logged).
        """
        try:
            raw = await self.client.lpop(QUEUE_KEY)
        except STORE_ERRORS as e:
            logger.error("Failed to pop queue entry", error=str(e))
            return None

        if raw is None:
            return None

        try:
            return QueueEntry.from_dict(decode_payload(raw))
        except MalformedRecordError as e:
            logger.error("Dropping malformed queue entry", entry=str(raw)[:200], error=str(e))
            return None

    async def queue_length(self) -> int:
        try:
            return await self.client.llen(QUEUE_KEY)
        except STORE_ERRORS as e:
            logger.error("Failed to read queue length", error=str(e))
            return 0

    # =========================================================================
    # Updates
    # =========================================================================

    async def update_page_status(
        self,
        document_id: str,
        page_index: int,
        status: PageStatus | str,
        content: str = "",
        error: str = "",
    ):
        """
        Set a page's status, content and error, then recompute the document.

        Store failures are logged and the update is abandoned; they never
        propagate to the worker loop.

        Raises:
            ValueError: If `status` is not a PageStatus value
        """
        status = PageStatus(status)

        try:
            page = await self.get_page(document_id, page_index)
            if page is None:
                logger.warning(
                    "Page not found, update abandoned",
                    document_id=document_id,
                    page_index=page_index,
                )
                return

            page.status = status
            page.content = content
            page.error = error
            page.updated_at = max(now_ms(), page.updated_at)

            await self.client.set(page_key(document_id, page_index), _encode(page.to_dict()))
            await self.aggregator.recompute(document_id)
        except STORE_ERRORS as e:
            logger.error(
                "Failed to update page status",
                document_id=document_id,
                page_index=page_index,
                status=status.value,
                error=str(e),
            )

    async def save_document(self, document: DocumentJob) -> bool:
        """Overwrite the document record. Returns False if the write failed."""
        try:
            await self.client.set(document_key(document.id), _encode(document.to_dict()))
            return True
        except STORE_ERRORS as e:
            logger.error("Failed to save document", document_id=document.id, error=str(e))
            return False

    # =========================================================================
    # Health
    # =========================================================================

    async def check_connection(self) -> bool:
        return await check_redis_connection(self.client)

    async def health_check(self) -> Dict[str, Any]:
        """
        Check store health.

        Returns:
            Dict with connection status and current queue length
        """
        try:
            await self.client.ping()
            return {
                "status": "healthy",
                "connected": True,
                "queue_length": await self.client.llen(QUEUE_KEY),
            }
        except STORE_ERRORS as e:
            return {
                "status": "unhealthy",
                "connected": False,
                "error": str(e),
            }

    async def _get(self, key: str) -> Any:
        try:
            return await self.client.get(key)
        except STORE_ERRORS as e:
            logger.error("Store read failed", key=key, error=str(e))
            return None


def _encode(data: Dict[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=False)
