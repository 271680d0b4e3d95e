"""
Document status aggregation.

A document's status and counters are recomputed from scratch out of its page
records after every page transition. There is no locking: when two workers
finish pages of the same document at once, the later aggregate write wins and
the next page transition corrects it.
"""

from dataclasses import dataclass
from typing import Iterable

from ebookgen.jobs.models import DocumentStatus, PageJob, PageStatus
from ebookgen.utils.logging import store_logger as logger


@dataclass(frozen=True)
class PageCounts:
    completed: int = 0
    processing: int = 0
    queued: int = 0
    failed: int = 0

    @classmethod
    def from_pages(cls, pages: Iterable[PageJob]) -> "PageCounts":
        counts = {status: 0 for status in PageStatus}
        for page in pages:
            counts[page.status] += 1
        return cls(
            completed=counts[PageStatus.COMPLETED],
            processing=counts[PageStatus.PROCESSING],
            queued=counts[PageStatus.QUEUED],
            failed=counts[PageStatus.FAILED],
        )


def derive_document_status(counts: PageCounts, total_pages: int) -> DocumentStatus:
    """Aggregate status precedence: terminal, all queued, in progress, fallback."""
    if counts.failed + counts.completed == total_pages:
        if counts.failed == total_pages:
            return DocumentStatus.FAILED
        if counts.failed > 0:
            return DocumentStatus.PARTIAL
        return DocumentStatus.COMPLETED

    if counts.queued == total_pages:
        return DocumentStatus.QUEUED

    if counts.processing > 0 or counts.queued > 0:
        return DocumentStatus.PROCESSING

    # Counts don't add up to total_pages (missing or unreadable page records)
    return DocumentStatus.PARTIAL


class StatusAggregator:
    """Recomputes a DocumentJob's derived fields from its PageJobs."""

    def __init__(self, store):
        self.store = store

    async def recompute(self, document_id: str):
        document = await self.store.get_document(document_id)
        if document is None:
            logger.warning("Document not found for status recompute", document_id=document_id)
            return

        pages = await self.store.get_pages(document_id)
        if not isinstance(pages, list):
            logger.error("Page list is not a list, skipping recompute", document_id=document_id)
            return

        counts = PageCounts.from_pages(pages)

        document.status = derive_document_status(counts, document.total_pages)
        document.completed_pages = counts.completed
        document.processing_pages = counts.processing
        document.queued_pages = counts.queued
        document.failed_pages = counts.failed
        document.touch()

        await self.store.save_document(document)
