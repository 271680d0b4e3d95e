"""
LLM agents for ebook generation.

- PageWriter: writes one page from the ebook context and table of contents
"""

from ebookgen.agents.page_writer import (
    PageWriter,
    GenerationError,
    GenerationTimeoutError,
    CONTENT_MODES,
    get_content_mode,
)

__all__ = [
    "PageWriter",
    "GenerationError",
    "GenerationTimeoutError",
    "CONTENT_MODES",
    "get_content_mode",
]
