"""
Ebook job queue manager.
Provides the high-level interface for submitting ebooks and reading their progress.
"""

from typing import Any, Dict, Optional, Sequence, Tuple

from ebookgen.jobs.models import ContentMode, DocumentJob, DocumentSnapshot
from ebookgen.jobs.store import JobStore


class DocumentJobQueue:
    """
    High-level interface for the ebook job queue.

    Usage:
        queue = DocumentJobQueue(store)

        # Queue an ebook
        document_id, document = await queue.enqueue(title, description, "MEDIUM", titles)

        # Check status
        status = await queue.get_status(document_id)
    """

    def __init__(self, store: JobStore):
        self.store = store

    async def enqueue(
        self,
        title: str,
        description: str,
        content_mode: str | ContentMode,
        page_titles: Sequence[str],
    ) -> Tuple[str, DocumentJob]:
        """
        Queue a new ebook: one page job per title.

        Args:
            title: Ebook title
            description: Short description used as generation context
            content_mode: FULL, MEDIUM, MINIMAL or ULTRA_MINIMAL
            page_titles: Page titles in reading order

        Returns:
            (document_id, DocumentJob) as written

        Raises:
            ValueError: Empty title, no pages, blank page title or unknown mode
            StoreUnavailableError: The store rejected the writes
        """
        if not title or not title.strip():
            raise ValueError("Ebook title is required")

        titles = [t.strip() for t in page_titles]
        if not titles:
            raise ValueError("At least one page title is required")
        if any(not t for t in titles):
            raise ValueError("Page titles must not be blank")

        try:
            mode = ContentMode(content_mode)
        except ValueError:
            valid = ", ".join(m.value for m in ContentMode)
            raise ValueError(f"Unknown content mode {content_mode!r} (expected one of: {valid})")

        return await self.store.create_document(title.strip(), description or "", mode.value, titles)

    async def get_snapshot(self, document_id: str) -> Optional[DocumentSnapshot]:
        """
        Current document record and its pages.

        Used by the library collaborator to migrate finished ebooks
        (completed, partial, failed) out of the queue store.
        """
        document = await self.store.get_document(document_id)
        if document is None:
            return None

        pages = await self.store.get_pages(document_id)
        return DocumentSnapshot(document=document, pages=pages)

    async def get_status(self, document_id: str) -> Optional[Dict[str, Any]]:
        """
        Get the current status of an ebook.

        Returns:
            Dict with status and counters, or None if not found
        """
        document = await self.store.get_document(document_id)
        if document is None:
            return None

        progress = 0
        if document.total_pages:
            done = document.completed_pages + document.failed_pages
            progress = round(done * 100 / document.total_pages)

        return {
            "document_id": document.id,
            "status": document.status.value,
            "total_pages": document.total_pages,
            "completed_pages": document.completed_pages,
            "processing_pages": document.processing_pages,
            "queued_pages": document.queued_pages,
            "failed_pages": document.failed_pages,
            "progress_percent": progress,
            "created_at": document.created_at,
            "updated_at": document.updated_at,
        }

    async def get_pending_count(self) -> int:
        """Number of page jobs waiting in the queue"""
        return await self.store.queue_length()
