"""Report persistence."""

from .report_writer import AGGREGATE_HEADERS, SPAN_HEADERS, ReportWriter

__all__ = ["ReportWriter", "AGGREGATE_HEADERS", "SPAN_HEADERS"]
