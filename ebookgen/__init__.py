"""ebookgen: asynchronous multi-page ebook generation with Redis-backed workers."""

__version__ = "0.1.0"
