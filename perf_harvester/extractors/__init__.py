"""Data extraction utilities for API responses."""

from .cursor_extractor import CursorExtractor, LinkHeaderParser, PageResponse
from .record_decoder import RecordDecoder

__all__ = ["CursorExtractor", "LinkHeaderParser", "PageResponse", "RecordDecoder"]
