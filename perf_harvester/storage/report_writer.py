"""
Report writer for harvest results.

CSV reports are append-or-create: the header row is only written when the
target file does not exist yet. Aggregated rows can also be dumped as JSON
at full export precision so later runs can be merged (see DumpReader).
"""

import csv
import json
import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional

from ..core.types import AggregateRow, HarvestReport, SpanRow

logger = logging.getLogger(__name__)

AGGREGATE_HEADERS = ['Trace', 'Count', 'Avg_Duration', 'Min_Duration', 'Max_Duration']
SPAN_HEADERS = ['Transaction', 'Operation', 'Event Id', 'Trace', 'Time duration', 'SproutsTeam']

DUMP_PRECISION = 9


def run_stamp() -> str:
    """Timestamp used in report file names, e.g. 2024-05-01-13-45-10."""
    return time.strftime('%Y-%m-%d-%H-%M-%S')


class ReportWriter:
    """Writes HarvestReport contents to CSV files in an output directory."""

    def __init__(self, output_dir: str = 'reports', prefix: str = 'sentry',
                 stamp: Optional[str] = None, write_dump: bool = True):
        """
        Args:
            output_dir: Directory for report files (created on first write)
            prefix: File name prefix
            stamp: Run timestamp in file names (default: now)
            write_dump: Also write a JSON dump of aggregated rows for cross-run merges
        """
        self.output_dir = Path(output_dir)
        self.prefix = prefix
        self.stamp = stamp or run_stamp()
        self.write_dump = write_dump

    def path_for(self, kind: str, suffix: str = '', extension: str = 'csv') -> Path:
        name = f"{self.prefix}_{kind}_{self.stamp}"
        if suffix:
            name += f"_{suffix}"
        return self.output_dir / f"{name}.{extension}"

    def _append_rows(self, path: Path, headers: List[str], rows: List[List]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        is_new = not path.exists()
        with open(path, 'a', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            if is_new:
                writer.writerow(headers)
            writer.writerows(rows)
        action = 'Created' if is_new else 'Appended to'
        logger.info(f"{action} {path} ({len(rows)} rows)")

    def write_aggregate_rows(self, rows: List[AggregateRow], path: Path) -> Optional[Path]:
        if not rows:
            logger.info(f"No rows to save for {path.name}")
            return None
        self._append_rows(path, AGGREGATE_HEADERS, [
            [row.trace, row.count, row.avg_duration, row.min_duration, row.max_duration]
            for row in rows
        ])
        return path

    def write_span_rows(self, rows: List[SpanRow], path: Path) -> Optional[Path]:
        if not rows:
            logger.info(f"No span rows to save for {path.name}")
            return None
        self._append_rows(path, SPAN_HEADERS, [
            [
                row.transaction or 'No transaction',
                row.operation or 'No operation',
                row.event_id or 'No event',
                row.trace or 'No trace',
                row.duration,
                row.team.value,
            ]
            for row in rows
        ])
        return path

    @staticmethod
    def dump_rows(rows: Iterable[AggregateRow], path: Path, precision: int = DUMP_PRECISION) -> Path:
        """
        Write aggregated rows as a JSON document readable by DumpReader.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            'generated_at': time.strftime('%Y-%m-%dT%H:%M:%S'),
            'precision': precision,
            'rows': [row.to_dict() for row in rows],
        }
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)
        logger.info(f"Wrote {len(payload['rows'])} aggregated rows to {path}")
        return path

    def export(self, report: HarvestReport, suffix: str = '', dump_rows: Optional[List[AggregateRow]] = None) -> List[Path]:
        """
        Write every section of a report.

        Args:
            report: Report to write
            suffix: File name suffix, e.g. 'partial' or 'error'
            dump_rows: Full precision rows for the JSON dump (skipped when None)

        Returns:
            Paths of the files written
        """
        written = [
            self.write_aggregate_rows(report.backend, self.path_for('backend', suffix)),
            self.write_aggregate_rows(report.frontend, self.path_for('frontend', suffix)),
            self.write_span_rows(report.span_rows, self.path_for('spans', suffix)),
        ]
        if self.write_dump and dump_rows:
            written.append(self.dump_rows(dump_rows, self.path_for('dump', suffix, 'json')))
        return [path for path in written if path is not None]
