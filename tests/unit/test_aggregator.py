"""
Unit tests for perf_harvester.processors.aggregator module.
"""
import itertools

import pytest

from perf_harvester.core.types import Team
from perf_harvester.processors.aggregator import TraceAggregator


class TestTraceAggregator:
    """Tests for the TraceAggregator class."""

    def test_first_observation(self):
        aggregator = TraceAggregator()
        aggregator.observe('db.sprouts.ai/query', 6.0, Team.BACKEND)

        row = aggregator.export()[0]
        assert (row.trace, row.count, row.avg_duration, row.min_duration, row.max_duration) == \
            ('db.sprouts.ai/query', 1, 6.0, 6.0, 6.0)
        assert row.team is Team.BACKEND

    def test_running_average(self):
        aggregator = TraceAggregator()
        for duration in (6.0, 9.0, 12.0):
            aggregator.observe('k', duration, Team.FRONTEND)

        row = aggregator.export()[0]
        assert row.count == 3
        assert row.avg_duration == 9.0
        assert row.min_duration == 6.0
        assert row.max_duration == 12.0

    def test_rounding_only_on_export(self):
        aggregator = TraceAggregator()
        for duration in (5.0011, 5.0012, 5.0014):
            aggregator.observe('k', duration, Team.BACKEND)

        assert aggregator.export(3)[0].avg_duration == 5.001
        assert aggregator.export(9)[0].avg_duration == pytest.approx(5.001233333, abs=1e-9)
        assert aggregator.rows['k']['avg'] == pytest.approx((5.0011 + 5.0012 + 5.0014) / 3)

    def test_sorted_by_count_with_stable_ties(self):
        aggregator = TraceAggregator()
        aggregator.observe('first', 6.0, Team.FRONTEND)
        aggregator.observe('second', 6.0, Team.FRONTEND)
        aggregator.observe('busy', 6.0, Team.BACKEND)
        aggregator.observe('busy', 7.0, Team.BACKEND)
        aggregator.observe('third', 6.0, Team.FRONTEND)

        assert [row.trace for row in aggregator.export()] == ['busy', 'first', 'second', 'third']

    def test_order_independence(self):
        observations = [('a', 5.1), ('b', 7.25), ('a', 6.3), ('a', 11.7), ('b', 5.5), ('c', 9.0)]
        results = []
        for permutation in itertools.permutations(observations):
            aggregator = TraceAggregator()
            for key, duration in permutation:
                aggregator.observe(key, duration, Team.FRONTEND)
            results.append({row.trace: row for row in aggregator.export(9)})

        baseline = results[0]
        for result in results[1:]:
            assert result.keys() == baseline.keys()
            for key, row in result.items():
                assert row.count == baseline[key].count
                assert row.min_duration == baseline[key].min_duration
                assert row.max_duration == baseline[key].max_duration
                assert row.avg_duration == pytest.approx(baseline[key].avg_duration, abs=1e-6)

    def test_merge_row_weights_by_count(self):
        aggregator = TraceAggregator()
        aggregator.merge_row('k', 2, 6.0, 5.5, 6.5, Team.BACKEND)
        aggregator.merge_row('k', 1, 9.0, 9.0, 9.0, Team.BACKEND)

        row = aggregator.export()[0]
        assert row.count == 3
        assert row.avg_duration == 7.0
        assert row.min_duration == 5.5
        assert row.max_duration == 9.0

    def test_merge_row_ignores_empty_rows(self):
        aggregator = TraceAggregator()
        aggregator.merge_row('k', 0, 1.0, 1.0, 1.0, Team.BACKEND)
        assert len(aggregator) == 0
        assert 'k' not in aggregator

    def test_split_by_team(self):
        aggregator = TraceAggregator()
        aggregator.observe('db.sprouts.ai/q', 6.0, Team.BACKEND)
        aggregator.observe('ui.render', 6.0, Team.FRONTEND)
        aggregator.observe('cdn.pendo.io', 6.0, Team.EXCLUDED)

        backend, frontend = TraceAggregator.split_by_team(aggregator.export())
        assert [row.trace for row in backend] == ['db.sprouts.ai/q']
        assert [row.trace for row in frontend] == ['ui.render']
