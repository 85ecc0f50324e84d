"""
Request descriptors for the three harvest stages.
"""

from .types import HarvestConfig, PageRequest, SampledEvent, Transaction


class QueryBuilder:
    """Builds the events-endpoint queries used by each stage."""

    def __init__(self, config: HarvestConfig):
        self.config = config

    @property
    def events_url(self) -> str:
        return f"{self.config.api_base_url}/organizations/{self.config.organization}/events/"

    def _common(self):
        return (
            ('project', str(self.config.project_id)),
            ('statsPeriod', self.config.stats_period),
            ('per_page', str(self.config.per_page)),
        )

    def transactions(self) -> PageRequest:
        percentile = f"{self.config.percentile}()"
        params = (
            ('dataset', self.config.dataset),
            ('field', 'transaction'),
            ('field', 'transaction.op'),
            ('field', percentile),
            ('field', 'count()'),
            ('sort', f"-{percentile}"),
            ('query', 'event.type:transaction'),
        ) + self._common()
        return PageRequest(url=self.events_url, params=params)

    def events(self, transaction: Transaction) -> PageRequest:
        params = (
            ('dataset', self.config.dataset),
            ('field', 'id'),
            ('field', 'transaction.duration'),
            ('field', 'trace'),
            ('field', 'timestamp'),
            ('sort', '-transaction.duration'),
            ('query', f'event.type:transaction transaction:"{transaction.name}"'),
        ) + self._common()
        return PageRequest(url=self.events_url, params=params)

    def traces(self, event: SampledEvent) -> PageRequest:
        params = (
            ('dataset', 'spansIndexed'),
            ('field', 'transaction'),
            ('field', 'description'),
            ('field', 'timestamp'),
            ('field', 'span.duration'),
            ('field', 'exclusive_time'),
            ('field', 'trace'),
            ('query', f'trace:{event.trace_id}'),
        ) + self._common()
        return PageRequest(url=self.events_url, params=params)
