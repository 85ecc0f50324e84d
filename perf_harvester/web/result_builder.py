"""
Result builder for JSON API output.
"""

from typing import Dict, List

from ..core.types import AggregateRow, HarvestReport
from ..formatters import format_elapsed
from ..processors import TraceAggregator


def _rows(rows: List[AggregateRow]) -> List[Dict]:
    return [row.to_dict() for row in rows]


def prepare_results(report: HarvestReport) -> Dict:
    """
    Convert a harvest report to a structured format for JSON output.

    Args:
        report: HarvestReport from a finished (or interrupted) run

    Returns:
        Dictionary with summary, backend/frontend rows and span rows
    """
    stats = report.stats or {}
    timings = stats.get('timings', {})
    summary = {
        'state': report.state.value,
        'partial': report.partial,
        'transactions_fetched': stats.get('transactions_fetched', 0),
        'transactions_kept': stats.get('transactions_kept', 0),
        'events': stats.get('events', 0),
        'spans': stats.get('spans', 0),
        'spans_aggregated': stats.get('spans_aggregated', 0),
        'spans_excluded': stats.get('spans_excluded', 0),
        'failed_subfetches': stats.get('failed_subfetches', 0),
        'backend_rows': len(report.backend),
        'frontend_rows': len(report.frontend),
        'timings': {name: format_elapsed(seconds) for name, seconds in timings.items()},
    }

    return {
        'summary': summary,
        'backend': _rows(report.backend),
        'frontend': _rows(report.frontend),
        'spans': [
            {
                'transaction': row.transaction,
                'operation': row.operation,
                'event_id': row.event_id,
                'trace': row.trace,
                'duration': row.duration,
                'team': row.team.value,
            }
            for row in report.span_rows
        ],
        'errors': list(stats.get('fetch_errors', [])),
    }


def prepare_merge_results(rows: List[AggregateRow], files: List[str]) -> Dict:
    """JSON output for a cross-run merge."""
    backend, frontend = TraceAggregator.split_by_team(rows)
    return {
        'summary': {
            'files': files,
            'rows': len(rows),
            'backend_rows': len(backend),
            'frontend_rows': len(frontend),
        },
        'backend': _rows(backend),
        'frontend': _rows(frontend),
    }
