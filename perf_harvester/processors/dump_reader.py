"""
Streaming reader for aggregated-row JSON dumps.
"""

import logging
from typing import BinaryIO, Dict, Iterator, Union

import ijson

from ..core.types import Team
from .aggregator import TraceAggregator

logger = logging.getLogger(__name__)


class DumpReader:
    """Reads dumps written by ReportWriter.dump_rows using a streaming parser."""

    @staticmethod
    def iter_rows(source: Union[str, BinaryIO]) -> Iterator[Dict]:
        """
        Yield the row objects of one dump.

        Args:
            source: File path or binary file object

        Returns:
            Iterator of row dicts with float durations
        """
        if isinstance(source, str):
            with open(source, 'rb') as f:
                yield from DumpReader.iter_rows(f)
            return

        for row in ijson.items(source, 'rows.item'):
            if not isinstance(row, dict) or not row.get('trace'):
                continue
            yield {
                'trace': str(row['trace']),
                'count': int(row.get('count', 0)),
                'avg_duration': float(row.get('avg_duration', 0)),
                'min_duration': float(row.get('min_duration', 0)),
                'max_duration': float(row.get('max_duration', 0)),
                'team': row.get('team', Team.FRONTEND.value),
            }

    @classmethod
    def merge_into(cls, aggregator: TraceAggregator, source: Union[str, BinaryIO]) -> int:
        """
        Fold every row of a dump into an aggregator.

        Returns:
            Number of rows merged
        """
        merged = 0
        for row in cls.iter_rows(source):
            try:
                team = Team(row['team'])
            except ValueError:
                team = Team.FRONTEND
            if team is Team.EXCLUDED:
                continue
            aggregator.merge_row(
                row['trace'], row['count'], row['avg_duration'],
                row['min_duration'], row['max_duration'], team
            )
            merged += 1

            if merged % 1000 == 0:
                logger.info(f"  Merged {merged} rows...")

        logger.info(f"Merged {merged} rows from {getattr(source, 'name', source)}")
        return merged
