"""Tests for record encoding and the decode step at the store boundary."""

import json
import re

import pytest

from ebookgen.jobs.models import (
    DocumentJob,
    DocumentStatus,
    MalformedRecordError,
    PageJob,
    PageStatus,
    QueueEntry,
    decode_payload,
    generate_document_id,
)


def _document_dict(**overrides):
    data = {
        "id": "1700000000000-abc1234",
        "title": "Ebook",
        "description": "About things",
        "contentMode": "MEDIUM",
        "status": "queued",
        "totalPages": 2,
        "completedPages": 0,
        "processingPages": 0,
        "queuedPages": 2,
        "failedPages": 0,
        "createdAt": 1700000000000,
        "updatedAt": 1700000000000,
    }
    data.update(overrides)
    return data


def test_decode_accepts_mapping_text_and_bytes():
    data = {"documentId": "doc", "pageIndex": 0}

    assert decode_payload(data) is data
    assert decode_payload(json.dumps(data)) == data
    assert decode_payload(json.dumps(data).encode("utf-8")) == data


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", "42", 42, None, ["a"]])
def test_decode_rejects_non_objects(raw):
    with pytest.raises(MalformedRecordError):
        decode_payload(raw)


def test_document_round_trips_camel_case_fields():
    document = DocumentJob.from_dict(_document_dict())

    assert document.status is DocumentStatus.QUEUED
    assert document.content_mode == "MEDIUM"
    assert document.to_dict() == _document_dict()


@pytest.mark.parametrize(
    "overrides",
    [
        {"id": ""},
        {"title": None},
        {"totalPages": "2"},
        {"totalPages": True},
        {"status": "exploded"},
    ],
)
def test_invalid_document_records_are_malformed(overrides):
    with pytest.raises(MalformedRecordError):
        DocumentJob.from_dict(_document_dict(**overrides))


def test_page_accepts_legacy_ebook_id_field():
    page = PageJob.from_dict({"ebookId": "doc-1", "pageIndex": 3, "pageTitle": "Body", "status": "completed"})

    assert page.document_id == "doc-1"
    assert page.status is PageStatus.COMPLETED
    assert page.to_dict()["documentId"] == "doc-1"


def test_page_missing_title_is_malformed():
    with pytest.raises(MalformedRecordError):
        PageJob.from_dict({"documentId": "doc-1", "pageIndex": 0, "pageTitle": ""})


def test_queue_entry_json_and_legacy_field():
    entry = QueueEntry("doc-1", 2)

    assert json.loads(entry.to_json()) == {"documentId": "doc-1", "pageIndex": 2}
    assert QueueEntry.from_dict({"ebookId": "doc-1", "pageIndex": 2}) == entry

    with pytest.raises(MalformedRecordError):
        QueueEntry.from_dict({"documentId": "doc-1", "pageIndex": "2"})


def test_document_id_is_time_based_with_random_suffix():
    document_id = generate_document_id()

    assert re.fullmatch(r"\d{13}-[a-z0-9]{7}", document_id)
    assert generate_document_id() != document_id


def test_touch_never_moves_updated_at_backwards():
    document = DocumentJob.from_dict(_document_dict(updatedAt=99999999999999))

    document.touch()

    assert document.updated_at == 99999999999999
