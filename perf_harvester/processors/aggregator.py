"""
Running aggregation of span durations keyed by description.
"""

from typing import Dict, List, Tuple

from ..core.types import AggregateRow, AggregateStats, Team
from ..formatters import round_duration


class TraceAggregator:
    """Folds timed observations into per-description statistics."""

    def __init__(self):
        # Insertion ordered; export relies on it for tie breaking
        self.rows: Dict[str, AggregateStats] = {}

    def __len__(self) -> int:
        return len(self.rows)

    def __contains__(self, key: str) -> bool:
        return key in self.rows

    def observe(self, key: str, duration_seconds: float, team: Team):
        """
        Add one observation.

        Args:
            key: Span description
            duration_seconds: Exclusive duration of the span in seconds
            team: Classification of the span
        """
        self.merge_row(key, 1, duration_seconds, duration_seconds, duration_seconds, team)

    def merge_row(self, key: str, count: int, avg: float, minimum: float, maximum: float, team: Team):
        """
        Fold an already aggregated row (count observations with the given
        average, min and max) into this aggregator.

        Values are kept at full precision; rounding only happens on export.
        """
        if count <= 0:
            return
        stats = self.rows.get(key)
        if stats is None:
            self.rows[key] = {
                'count': count,
                'avg': avg,
                'min': minimum,
                'max': maximum,
                'team': team,
            }
            return

        old_count = stats['count']
        stats['avg'] = (stats['avg'] * old_count + avg * count) / (old_count + count)
        stats['count'] = old_count + count
        stats['min'] = min(stats['min'], minimum)
        stats['max'] = max(stats['max'], maximum)

    def export(self, decimals: int = 3) -> List[AggregateRow]:
        """
        Export rows sorted by descending count.

        Args:
            decimals: Decimal places for the duration columns
                      (9 for intermediate dumps, 3 for final reports)

        Returns:
            List of AggregateRow; rows with equal counts keep insertion order
        """
        rows = [
            AggregateRow(
                trace=key,
                count=stats['count'],
                avg_duration=round_duration(stats['avg'], decimals),
                min_duration=round_duration(stats['min'], decimals),
                max_duration=round_duration(stats['max'], decimals),
                team=stats['team'],
            )
            for key, stats in self.rows.items()
        ]
        # sorted() is stable
        return sorted(rows, key=lambda row: -row.count)

    @staticmethod
    def split_by_team(rows: List[AggregateRow]) -> Tuple[List[AggregateRow], List[AggregateRow]]:
        """
        Split exported rows into (backend, frontend). Excluded rows are dropped.
        """
        backend = [row for row in rows if row.team is Team.BACKEND]
        frontend = [row for row in rows if row.team is Team.FRONTEND]
        return backend, frontend
