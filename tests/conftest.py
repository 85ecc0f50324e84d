"""
Pytest configuration and shared fixtures for harvester tests.
"""
import json

import httpx
import pytest

from perf_harvester.core.types import HarvestConfig


class FakeSentryApi:
    """
    In-memory stand-in for the events endpoint.

    Pages are lists of items; page N+1 is announced through `meta.cursor`.
    Keys in `failing` (transaction names or trace ids) answer with HTTP 500.
    """

    def __init__(self, transactions=None, events=None, traces=None, failing=None):
        self.transactions = transactions or [[]]
        self.events = events or {}
        self.traces = traces or {}
        self.failing = set(failing or ())
        self.requests = []

    def _pages_for(self, params):
        query = params.get('query', '')
        if params.get('dataset') == 'spansIndexed':
            key = query.split('trace:', 1)[1].strip()
            return key, self.traces.get(key, [[]])
        if 'transaction:' in query:
            key = query.split('transaction:', 1)[1].strip().strip('"')
            return key, self.events.get(key, [[]])
        return 'transactions', self.transactions

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params
        key, pages = self._pages_for(params)
        if key in self.failing:
            return httpx.Response(500, text='upstream error')

        index = int(params.get('cursor') or 0)
        body = {'data': pages[index]}
        if index + 1 < len(pages):
            body['meta'] = {'cursor': str(index + 1)}
        return httpx.Response(200, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def fake_api():
    """Factory for FakeSentryApi instances."""
    return FakeSentryApi


@pytest.fixture
def make_config():
    """HarvestConfig factory with no inter-page delay."""
    def _make(**overrides):
        values = {'page_delay': 0, 'api_base_url': 'https://sentry.test/api/0'}
        values.update(overrides)
        return HarvestConfig(**values)
    return _make


@pytest.fixture
def sample_transactions_page():
    """Transactions-dataset rows; only T1 is above the default threshold."""
    return [
        {'transaction': 'T1', 'transaction.op': 'pageload', 'p95()': 12000, 'count()': 40},
        {'transaction': 'T-fast', 'transaction.op': 'navigation', 'p95()': 800, 'count()': 300},
    ]


@pytest.fixture
def sample_spans_page():
    """Spans of trace tr1: one backend DB call and one excluded pendo call."""
    return [
        {'description': 'db.sprouts.ai/query', 'exclusive_time': 6000, 'timestamp': '2024-05-01T10:00:00'},
        {'description': 'cdn.pendo.io/x', 'exclusive_time': 9000, 'timestamp': '2024-05-01T10:00:01'},
    ]


@pytest.fixture
def json_response():
    """Build an httpx.Response with a JSON body and optional headers."""
    def _make(body, status=200, headers=None):
        return httpx.Response(status, content=json.dumps(body).encode(),
                              headers={'content-type': 'application/json', **(headers or {})})
    return _make
