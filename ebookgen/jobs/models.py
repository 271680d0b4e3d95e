"""
Records stored in Redis for ebook generation.

DocumentJob and PageJob are serialized as camelCase JSON so that records stay
readable by other services sharing the same store. Decoding goes through one
step (decode_payload + from_dict) that either returns a record or raises
MalformedRecordError.

Page records and queue entries are written with `documentId`. Older workers
wrote and read `ebookId`; decoding accepts either name, but records written
here are not readable by those older workers.
"""

import json
import random
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class MalformedRecordError(ValueError):
    """Raised when a stored value fails structural validation after decoding."""
    pass


class DocumentStatus(str, Enum):
    """Aggregate status of a document, derived from its pages"""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"


class PageStatus(str, Enum):
    """Status values for page generation jobs"""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ContentMode(str, Enum):
    """Length preset for generated page prose"""
    FULL = "FULL"
    MEDIUM = "MEDIUM"
    MINIMAL = "MINIMAL"
    ULTRA_MINIMAL = "ULTRA_MINIMAL"


FINISHED_STATUSES = (
    DocumentStatus.COMPLETED,
    DocumentStatus.PARTIAL,
    DocumentStatus.FAILED,
)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_document_id() -> str:
    """Time-based id with a random suffix. Unique in practice, not guaranteed."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"{now_ms()}-{suffix}"


def decode_payload(raw: Any) -> Dict[str, Any]:
    """
    Normalize a value read from the store into a dict.

    Accepts a pre-parsed mapping or a JSON text/bytes blob; anything else
    raises MalformedRecordError.
    """
    if isinstance(raw, dict):
        return raw

    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedRecordError(f"Invalid JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise MalformedRecordError(f"Expected a JSON object, got {type(parsed).__name__}")
        return parsed

    raise MalformedRecordError(f"Unexpected value type from store: {type(raw).__name__}")


def _document_id_of(data: Dict[str, Any]) -> Any:
    # Older writers used "ebookId"
    return data.get("documentId") or data.get("ebookId")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class DocumentJob:
    """Aggregate record for one submitted document."""
    id: str
    title: str
    description: str
    content_mode: str
    status: DocumentStatus
    total_pages: int
    completed_pages: int = 0
    processing_pages: int = 0
    queued_pages: int = 0
    failed_pages: int = 0
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    def touch(self):
        """Bump updated_at without ever moving it backwards."""
        self.updated_at = max(now_ms(), self.updated_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "contentMode": self.content_mode,
            "status": self.status.value,
            "totalPages": self.total_pages,
            "completedPages": self.completed_pages,
            "processingPages": self.processing_pages,
            "queuedPages": self.queued_pages,
            "failedPages": self.failed_pages,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentJob":
        if not data.get("id") or not data.get("title") or not _is_int(data.get("totalPages")):
            raise MalformedRecordError(f"Invalid document record: {data!r}")

        try:
            return cls(
                id=str(data["id"]),
                title=str(data["title"]),
                description=str(data.get("description") or ""),
                content_mode=str(data.get("contentMode") or ContentMode.MEDIUM.value),
                status=DocumentStatus(data.get("status", DocumentStatus.QUEUED.value)),
                total_pages=data["totalPages"],
                completed_pages=int(data.get("completedPages", 0)),
                processing_pages=int(data.get("processingPages", 0)),
                queued_pages=int(data.get("queuedPages", 0)),
                failed_pages=int(data.get("failedPages", 0)),
                created_at=int(data.get("createdAt", 0)),
                updated_at=int(data.get("updatedAt", 0)),
            )
        except (TypeError, ValueError) as e:
            raise MalformedRecordError(f"Invalid document record: {e}") from e


@dataclass
class PageJob:
    """One page's unit of work and its result."""
    document_id: str
    page_index: int
    page_title: str
    status: PageStatus = PageStatus.QUEUED
    content: str = ""
    error: str = ""
    # Stored for compatibility; retries are counted in worker memory only
    attempts: int = 0
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "pageIndex": self.page_index,
            "pageTitle": self.page_title,
            "status": self.status.value,
            "content": self.content,
            "error": self.error,
            "attempts": self.attempts,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageJob":
        document_id = _document_id_of(data)
        if not document_id or not _is_int(data.get("pageIndex")) or not data.get("pageTitle"):
            raise MalformedRecordError(f"Invalid page record: {data!r}")

        try:
            return cls(
                document_id=str(document_id),
                page_index=data["pageIndex"],
                page_title=str(data["pageTitle"]),
                status=PageStatus(data.get("status", PageStatus.QUEUED.value)),
                content=str(data.get("content") or ""),
                error=str(data.get("error") or ""),
                attempts=int(data.get("attempts", 0)),
                created_at=int(data.get("createdAt", 0)),
                updated_at=int(data.get("updatedAt", 0)),
            )
        except (TypeError, ValueError) as e:
            raise MalformedRecordError(f"Invalid page record: {e}") from e


@dataclass(frozen=True)
class QueueEntry:
    """Reference to a page job awaiting processing. Carries identity only."""
    document_id: str
    page_index: int

    def to_json(self) -> str:
        return json.dumps({"documentId": self.document_id, "pageIndex": self.page_index})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueueEntry":
        document_id = _document_id_of(data)
        if not document_id or not _is_int(data.get("pageIndex")):
            raise MalformedRecordError(f"Invalid queue entry: {data!r}")
        return cls(document_id=str(document_id), page_index=data["pageIndex"])


@dataclass
class DocumentSnapshot:
    """
    Current document record plus its ordered pages.

    Read-only view handed to the library collaborator that migrates finished
    documents into durable storage.
    """
    document: DocumentJob
    pages: List[PageJob]

    @property
    def is_finished(self) -> bool:
        return self.document.is_finished

    def page(self, page_index: int) -> Optional[PageJob]:
        for page in self.pages:
            if page.page_index == page_index:
                return page
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = self.document.to_dict()
        data["pages"] = [page.to_dict() for page in self.pages]
        return data
