"""Utility modules for ebookgen."""

from ebookgen.utils.logging import (
    AppLogger,
    configure_logging,
    get_log_buffer,
    generator_logger,
    store_logger,
    worker_logger,
)

__all__ = [
    "AppLogger",
    "configure_logging",
    "get_log_buffer",
    "generator_logger",
    "store_logger",
    "worker_logger",
]
