"""
Unit tests for configuration, queries and the session provider.
"""
import os
from unittest.mock import patch

import httpx
import pytest

from perf_harvester.core.errors import ConfigurationError
from perf_harvester.core.queries import QueryBuilder
from perf_harvester.core.session import TOKEN_ENV_VAR, TokenSessionProvider
from perf_harvester.core.types import (
    DEFAULT_BACKEND_DOMAINS,
    HarvestConfig,
    PageRequest,
    SampledEvent,
    Transaction,
)


class TestHarvestConfig:
    """Tests for HarvestConfig."""

    def test_defaults(self):
        config = HarvestConfig().validate()

        assert config.project_id == '4506947671425024'
        assert config.transaction_threshold_ms == 10000
        assert config.span_threshold_ms == 5000
        assert config.concurrency == 2
        assert config.max_pages == 50
        assert config.backend_domains == DEFAULT_BACKEND_DOMAINS

    def test_raw_project_id(self):
        assert HarvestConfig(project='123').validate().project_id == '123'

    @pytest.mark.parametrize('overrides', [
        {'project': 'unknown'},
        {'percentile': 'p99'},
        {'report_mode': 'xlsx'},
        {'concurrency': 0},
        {'max_pages': 0},
        {'page_delay': -1},
        {'organization': ''},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ConfigurationError):
            HarvestConfig(**overrides).validate()

    def test_from_dict_ignores_unknown_keys(self):
        config = HarvestConfig.from_dict({'stats_period': '14d', 'write_reports': False})
        assert config.stats_period == '14d'

    def test_trailing_slash_removed(self):
        assert HarvestConfig(api_base_url='https://x/api/0/').api_base_url == 'https://x/api/0'


class TestQueryBuilder:
    """Tests for the stage request descriptors."""

    @pytest.fixture
    def queries(self):
        return QueryBuilder(HarvestConfig(organization='acme', project='42', stats_period='14d'))

    def test_transactions(self, queries):
        request = queries.transactions()
        params = dict(request.params)

        assert request.url == 'https://us.sentry.io/api/0/organizations/acme/events/'
        assert ('field', 'p95()') in request.params
        assert params['sort'] == '-p95()'
        assert params['statsPeriod'] == '14d'
        assert params['project'] == '42'

    def test_events(self, queries):
        params = dict(queries.events(Transaction(name='/checkout', percentile_ms=1)).params)
        assert params['query'] == 'event.type:transaction transaction:"/checkout"'

    def test_traces(self, queries):
        params = dict(queries.traces(SampledEvent(event_id='E1', trace_id='tr1')).params)
        assert params['dataset'] == 'spansIndexed'
        assert params['query'] == 'trace:tr1'

    def test_with_cursor_replaces_existing(self):
        request = PageRequest(url='u', params=(('a', '1'), ('cursor', 'old')))
        assert request.with_cursor('new').params == (('a', '1'), ('cursor', 'new'))
        assert request.with_cursor(None).params == (('a', '1'),)


class TestTokenSessionProvider:
    """Tests for the bearer token session provider."""

    def test_headers(self):
        provider = TokenSessionProvider('secret')
        assert provider.headers['Authorization'] == 'Bearer secret'
        assert provider.headers['Accept'].startswith('application/json')

    def test_empty_token(self):
        with pytest.raises(ConfigurationError):
            TokenSessionProvider('')

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv(TOKEN_ENV_VAR, 'from-env')
        provider = TokenSessionProvider.from_env(str(tmp_path / 'missing.env'))
        assert provider.token == 'from-env'

    def test_from_env_missing(self, monkeypatch, tmp_path):
        monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)
        with pytest.raises(ConfigurationError):
            TokenSessionProvider.from_env(str(tmp_path / 'missing.env'))

    def test_from_env_file(self, tmp_path):
        env_file = tmp_path / '.env'
        env_file.write_text(f'{TOKEN_ENV_VAR}=from-file\n')

        with patch.dict(os.environ):
            os.environ.pop(TOKEN_ENV_VAR, None)
            provider = TokenSessionProvider.from_env(str(env_file))
        assert provider.token == 'from-file'

    @pytest.mark.asyncio
    async def test_client_sends_bearer_token(self):
        seen = []

        def handler(request):
            seen.append(request.headers['Authorization'])
            return httpx.Response(200, json={'data': []})

        provider = TokenSessionProvider('secret', transport=httpx.MockTransport(handler))
        async with provider.client() as client:
            await client.get('https://sentry.test/api/0/')

        assert seen == ['Bearer secret']
