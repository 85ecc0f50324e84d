"""Processors for fetching and aggregating telemetry."""

from .aggregator import TraceAggregator
from .dump_reader import DumpReader
from .fan_out import BoundedFanOut
from .paginator import CursorPaginator

__all__ = [
    "TraceAggregator",
    "DumpReader",
    "BoundedFanOut",
    "CursorPaginator",
]
