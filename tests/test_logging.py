"""Tests for the log buffer the worker runner reports from."""

from ebookgen.utils.logging import AppLogger, LogBuffer, get_log_buffer


def test_logger_records_entries_by_source_and_level():
    logger = AppLogger("test_source")

    logger.info("Started", worker=1)
    logger.warning("Slow page", page_index=2)
    logger.error("Page failed")
    logger.critical("Store gone")

    stats = get_log_buffer().get_stats()
    assert stats["total"] == 4
    assert stats["by_source"] == {"test_source": 4}
    assert stats["by_level"] == {"info": 1, "warning": 1, "error": 1, "critical": 1}
    assert stats["error_count"] == 2
    assert stats["warning_count"] == 1


def test_counters_outlive_evicted_entries():
    buffer = LogBuffer(max_size=2)
    logger = AppLogger("bounded")

    for _ in range(3):
        logger.error("boom")
    for entry in get_log_buffer()._entries:
        buffer.add(entry)

    stats = buffer.get_stats()
    assert stats["total"] == 2
    assert stats["error_count"] == 3

    buffer.clear()
    assert buffer.get_stats()["error_count"] == 0
