"""
Type definitions for telemetry harvesting.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, TypedDict

from .errors import ConfigurationError


class Team(str, Enum):
    """Ownership classification of a span."""
    BACKEND = 'Backend'
    FRONTEND = 'Frontend'
    EXCLUDED = 'Excluded'


class PageKind(Enum):
    """Which endpoint variant a page of items came from."""
    TRANSACTIONS = 'transactions'
    EVENTS = 'events'
    TRACES = 'traces'


class PipelineState(Enum):
    """Lifecycle states of a harvest run."""
    INIT = 'init'
    FETCHING_TRANSACTIONS = 'fetching_transactions'
    FETCHING_EVENTS = 'fetching_events'
    FETCHING_TRACES = 'fetching_traces'
    AGGREGATING = 'aggregating'
    EXPORTED = 'exported'


@dataclass(frozen=True)
class Transaction:
    """A named transaction with its latency percentile."""
    name: str
    percentile_ms: float
    sample_count: int = 0
    operation: str = ''


@dataclass(frozen=True)
class SampledEvent:
    """One sampled event of a transaction."""
    event_id: str
    trace_id: str
    timestamp: str = ''
    transaction: str = ''


@dataclass(frozen=True)
class SpanRecord:
    """One timed operation inside a trace."""
    description: str
    exclusive_time_ms: float
    timestamp: str = ''
    trace_id: str = ''
    event_id: str = ''
    transaction: str = ''


class AggregateStats(TypedDict):
    """Running statistics for one span description."""
    count: int
    avg: float
    min: float
    max: float
    team: Team


@dataclass(frozen=True)
class AggregateRow:
    """Exported view of an aggregated span description."""
    trace: str
    count: int
    avg_duration: float
    min_duration: float
    max_duration: float
    team: Team

    def to_dict(self) -> Dict:
        return {
            'trace': self.trace,
            'count': self.count,
            'avg_duration': self.avg_duration,
            'min_duration': self.min_duration,
            'max_duration': self.max_duration,
            'team': self.team.value,
        }


@dataclass(frozen=True)
class SpanRow:
    """Per-span export row used by the non-aggregated report mode."""
    transaction: str
    operation: str
    event_id: str
    trace: str
    duration: float
    team: Team


@dataclass(frozen=True)
class PageRequest:
    """Initial request descriptor for one paginated endpoint call."""
    url: str
    params: Tuple[Tuple[str, str], ...] = ()
    headers: Tuple[Tuple[str, str], ...] = ()

    def with_cursor(self, cursor: Optional[str]) -> 'PageRequest':
        """Return a copy whose `cursor` query parameter is replaced."""
        params = tuple((k, v) for k, v in self.params if k != 'cursor')
        if cursor:
            params = params + (('cursor', cursor),)
        return PageRequest(url=self.url, params=params, headers=self.headers)


@dataclass
class PaginationResult:
    """Outcome of driving one paginated endpoint."""
    items: List[Dict] = field(default_factory=list)
    pages: int = 0
    error: Optional[str] = None
    stop_reason: str = 'exhausted'

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class HarvestReport:
    """Final (or partial) output of a harvest run."""
    backend: List[AggregateRow] = field(default_factory=list)
    frontend: List[AggregateRow] = field(default_factory=list)
    span_rows: List[SpanRow] = field(default_factory=list)
    state: PipelineState = PipelineState.INIT
    partial: bool = False
    stats: Dict = field(default_factory=dict)


# Project presets for the target organization
PROJECTS: Dict[str, str] = {
    'javascript-react': '4506947671425024',
    'javascript-react-qa': '4509228726681602',
}

DEFAULT_BACKEND_DOMAINS: Tuple[str, ...] = (
    'qams.sprouts.ai',
    'devmdqs.sprouts.ai',
    'agenticapi.sprouts.ai',
    'crmms.sprouts.ai',
    'ms.sprouts.ai',
    'wa.sprouts.ai',
    'db.sprouts.ai',
    'mdqs.sprouts.ai',
    'agenticprodapi.sprouts.ai',
    'upload.sprouts.ai',
)

DEFAULT_EXCLUDED_DOMAINS: Tuple[str, ...] = (
    'run.dev.reply.io',
    'run.reply.io',
    'api-js.mixpanel.com',
    'data.pendo.io',
    'cdn.pendo.io',
)

PERCENTILES = ('p50', 'p75', 'p95')
REPORT_MODES = ('aggregate', 'spans')


class HarvestConfig:
    """Configuration for a harvest run."""

    def __init__(
        self,
        organization: str = 'sprouts-x2',
        project: str = 'javascript-react',
        api_base_url: str = 'https://us.sentry.io/api/0',
        dataset: str = 'transactions',
        stats_period: str = '7d',
        percentile: str = 'p95',
        transaction_threshold_ms: float = 10000,
        span_threshold_ms: float = 5000,
        concurrency: int = 2,
        max_pages: int = 50,
        per_page: int = 100,
        page_delay: float = 0.5,
        backend_domains: Optional[Sequence[str]] = None,
        excluded_domains: Optional[Sequence[str]] = None,
        report_mode: str = 'aggregate',
        precision: int = 3,
        fallback_cursor: Optional[str] = None,
        streaming: bool = True
    ):
        """
        Initialize harvest configuration.

        Args:
            organization: Organization slug used in API paths.
            project: Project preset name (see PROJECTS) or a raw numeric project id.
            api_base_url: Base URL of the analytics API, e.g. https://us.sentry.io/api/0
            dataset: Dataset queried for transactions and events.
            stats_period: Query window, e.g. '24h', '7d', '14d'.
            percentile: Latency percentile used to rank and filter transactions.

            transaction_threshold_ms: Transactions are kept only when their percentile
                                      value is strictly greater than this.
                                      Default: 10000

            span_threshold_ms: Spans are aggregated only when their exclusive time is
                               strictly greater than this. Default: 5000

            concurrency: Maximum number of sub-fetches in flight. Default: 2
            max_pages: Page cap per paginated call. Default: 50
            per_page: Page size requested from the API.
            page_delay: Seconds to wait between successive pages of one call.
            backend_domains: Substrings marking a span as Backend.
            excluded_domains: Substrings marking a span as Excluded (wins over backend).

            report_mode: 'aggregate' exports one row per span description,
                         'spans' exports one row per span.

            precision: Decimal places used when exporting aggregate rows.

            fallback_cursor: Cursor to use when a full page carries no cursor at all.
                             Default: None (disabled; some API variants need it)

            streaming: If True, spans are aggregated as each trace fetch completes,
                       otherwise after the whole trace stage.
        """
        self.organization = organization
        self.project = project
        self.api_base_url = api_base_url.rstrip('/')
        self.dataset = dataset
        self.stats_period = stats_period
        self.percentile = percentile
        self.transaction_threshold_ms = transaction_threshold_ms
        self.span_threshold_ms = span_threshold_ms
        self.concurrency = concurrency
        self.max_pages = max_pages
        self.per_page = per_page
        self.page_delay = page_delay
        self.backend_domains = tuple(
            DEFAULT_BACKEND_DOMAINS if backend_domains is None else backend_domains
        )
        self.excluded_domains = tuple(
            DEFAULT_EXCLUDED_DOMAINS if excluded_domains is None else excluded_domains
        )
        self.report_mode = report_mode
        self.precision = precision
        self.fallback_cursor = fallback_cursor
        self.streaming = streaming

    @property
    def project_id(self) -> str:
        return PROJECTS.get(self.project, self.project)

    def validate(self) -> 'HarvestConfig':
        """
        Check the configuration before a run starts.

        Raises:
            ConfigurationError: If any value is out of range.
        """
        if not self.organization:
            raise ConfigurationError('organization must not be empty')
        if not self.project_id or not str(self.project_id).isdigit():
            raise ConfigurationError(f"unknown project '{self.project}'")
        if self.percentile not in PERCENTILES:
            raise ConfigurationError(f"percentile must be one of {', '.join(PERCENTILES)}")
        if self.report_mode not in REPORT_MODES:
            raise ConfigurationError(f"report_mode must be one of {', '.join(REPORT_MODES)}")
        if self.concurrency < 1:
            raise ConfigurationError('concurrency must be at least 1')
        if self.max_pages < 1:
            raise ConfigurationError('max_pages must be at least 1')
        if self.per_page < 1:
            raise ConfigurationError('per_page must be at least 1')
        if self.page_delay < 0:
            raise ConfigurationError('page_delay must not be negative')
        if self.precision < 0:
            raise ConfigurationError('precision must not be negative')
        return self

    @classmethod
    def from_dict(cls, data: Dict) -> 'HarvestConfig':
        """Build a configuration from a plain mapping, ignoring unknown keys."""
        allowed = {
            'organization', 'project', 'api_base_url', 'dataset', 'stats_period',
            'percentile', 'transaction_threshold_ms', 'span_threshold_ms',
            'concurrency', 'max_pages', 'per_page', 'page_delay',
            'backend_domains', 'excluded_domains', 'report_mode', 'precision',
            'fallback_cursor', 'streaming',
        }
        return cls(**{k: v for k, v in data.items() if k in allowed})
