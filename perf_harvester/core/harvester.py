"""
Main harvest pipeline orchestrator.
"""

import logging
import time
from typing import Dict, List, Optional

import httpx

from ..core.queries import QueryBuilder
from ..core.types import (
    HarvestConfig,
    HarvestReport,
    PageKind,
    PipelineState,
    SampledEvent,
    SpanRecord,
    SpanRow,
    Transaction,
)
from ..extractors import RecordDecoder
from ..filters import DomainClassifier
from ..formatters import format_elapsed
from ..processors import BoundedFanOut, CursorPaginator, TraceAggregator

logger = logging.getLogger(__name__)


class HarvestPipeline:
    """
    Runs transactions -> events -> traces fetching and aggregates the result.

    Stages run strictly one after another; inside the events and traces
    stages sub-fetches fan out under the configured concurrency limit.
    """

    def __init__(
        self,
        config: HarvestConfig,
        client: httpx.AsyncClient,
        exporter=None,
        aggregator: Optional[TraceAggregator] = None
    ):
        """
        Initialize the pipeline.

        Args:
            config: HarvestConfig for this run
            client: Authenticated async HTTP client (owned by the caller)
            exporter: Object with export(report, suffix='', dump_rows=None), e.g. ReportWriter
            aggregator: TraceAggregator to fill (a fresh one by default)
        """
        self.config = config
        self.client = client
        self.exporter = exporter
        self.aggregator = aggregator if aggregator is not None else TraceAggregator()

        self.state = PipelineState.INIT
        self.interrupted = False
        self.exported = False
        self.span_rows: List[SpanRow] = []
        self.stats: Dict = {
            'transactions_fetched': 0,
            'transactions_kept': 0,
            'events': 0,
            'spans': 0,
            'spans_aggregated': 0,
            'spans_excluded': 0,
            'failed_subfetches': 0,
            'fetch_errors': [],
            'timings': {},
        }

        self.queries = QueryBuilder(config)
        self.decoder = RecordDecoder(config.percentile)
        self.classifier = DomainClassifier(config)
        self.fan_out = BoundedFanOut(config.concurrency)
        self.paginator = CursorPaginator(
            client,
            max_pages=config.max_pages,
            page_delay=config.page_delay,
            per_page=config.per_page,
            fallback_cursor=config.fallback_cursor,
            should_stop=self.should_stop
        )
        self._operations: Dict[str, str] = {}

    def interrupt(self):
        """Request a graceful stop; honoured between requests and stages."""
        if not self.interrupted:
            logger.warning('Interrupt received; flushing collected data after in-flight requests')
        self.interrupted = True

    def should_stop(self) -> bool:
        return self.interrupted

    def _enter(self, state: PipelineState):
        logger.info(f"Pipeline state: {self.state.value} -> {state.value}")
        self.state = state

    def _record_error(self, label: str, error: str):
        self.stats['fetch_errors'].append({'stage': self.state.value, 'target': label, 'error': error})

    async def run(self) -> HarvestReport:
        """
        Execute the whole harvest.

        Returns:
            HarvestReport; `partial` is True when the run was interrupted

        Raises:
            ConfigurationError: If the configuration is invalid
            Exception: Unexpected errors are re-raised after a best-effort flush
        """
        self.config.validate()
        start = time.monotonic()
        try:
            report = await self._run_stages()
        except Exception:
            logger.exception(f"Harvest aborted during {self.state.value}; saving collected data")
            self.flush('error')
            raise
        self.stats['timings']['total'] = time.monotonic() - start
        logger.info(f"Total execution time: {format_elapsed(self.stats['timings']['total'])}")
        return report

    async def _run_stages(self) -> HarvestReport:
        self._enter(PipelineState.FETCHING_TRANSACTIONS)
        transactions = await self._timed('transactions', self.fetch_transactions())
        if not transactions:
            logger.info(f"No transactions found with {self.config.percentile}() > "
                        f"{self.config.transaction_threshold_ms}ms")
            return self._finish()
        if self.interrupted:
            return self._finish()

        self._enter(PipelineState.FETCHING_EVENTS)
        events = await self._timed('events', self.fetch_all_events(transactions))
        if self.interrupted:
            return self._finish()

        self._enter(PipelineState.FETCHING_TRACES)
        spans = await self._timed('traces', self.fetch_all_traces(events))

        self._enter(PipelineState.AGGREGATING)
        if not self.config.streaming:
            self.aggregate_spans(spans)
        logger.info(f"Aggregated {self.stats['spans_aggregated']} of {self.stats['spans']} spans "
                    f"into {len(self.aggregator)} rows")
        return self._finish()

    async def _timed(self, name: str, coro):
        start = time.monotonic()
        result = await coro
        self.stats['timings'][name] = time.monotonic() - start
        logger.info(f"{name.capitalize()} fetch time: {format_elapsed(self.stats['timings'][name])}")
        return result

    async def fetch_transactions(self) -> List[Transaction]:
        """Fetch all transactions and keep those above the percentile threshold."""
        result = await self.paginator.paginate(self.queries.transactions(), 'transactions')
        if result.error:
            self._record_error('transactions', result.error)
        transactions = self.decoder.decode_page(PageKind.TRANSACTIONS, result.items)
        self.stats['transactions_fetched'] = len(transactions)

        kept = [t for t in transactions if t.percentile_ms > self.config.transaction_threshold_ms]
        self.stats['transactions_kept'] = len(kept)
        self._operations = {t.name: t.operation for t in kept}
        logger.info(f"Kept {len(kept)} of {len(transactions)} transactions with "
                    f"{self.config.percentile}() > {self.config.transaction_threshold_ms}ms")
        return kept

    async def fetch_events(self, transaction: Transaction) -> List[SampledEvent]:
        label = f"events for '{transaction.name}'"
        result = await self.paginator.paginate(self.queries.events(transaction), label)
        if result.error:
            self._record_error(label, result.error)
        return self.decoder.decode_page(PageKind.EVENTS, result.items, transaction.name)

    async def fetch_traces(self, event: SampledEvent) -> List[SpanRecord]:
        label = f"trace {event.trace_id}"
        result = await self.paginator.paginate(self.queries.traces(event), label)
        if result.error:
            self._record_error(label, result.error)
        if not result.items:
            logger.info(f"No spans found for trace '{event.trace_id}'")
        return self.decoder.decode_page(PageKind.TRACES, result.items, event)

    async def fetch_all_events(self, transactions: List[Transaction]) -> List[SampledEvent]:
        results = await self.fan_out.run(
            [lambda t=t: self.fetch_events(t) for t in transactions],
            labels=[f"transaction '{t.name}'" for t in transactions],
            should_stop=self.should_stop
        )
        self.stats['failed_subfetches'] += self.fan_out.failures
        events = [event for batch in results for event in batch]
        self.stats['events'] = len(events)
        logger.info(f"Total events fetched: {len(events)}")
        return events

    async def fetch_all_traces(self, events: List[SampledEvent]) -> List[SpanRecord]:
        with_trace = [e for e in events if e.trace_id]
        if len(with_trace) < len(events):
            logger.warning(f"Skipping {len(events) - len(with_trace)} events without a trace id")

        def on_result(index: int, spans: List[SpanRecord]):
            self.stats['spans'] += len(spans)
            if self.config.streaming:
                self.aggregate_spans(spans)

        results = await self.fan_out.run(
            [lambda e=e: self.fetch_traces(e) for e in with_trace],
            labels=[f"trace {e.trace_id}" for e in with_trace],
            on_result=on_result,
            should_stop=self.should_stop
        )
        self.stats['failed_subfetches'] += self.fan_out.failures
        spans = [span for batch in results for span in batch]
        logger.info(f"Total spans fetched: {len(spans)}")
        return spans

    def aggregate_spans(self, spans: List[SpanRecord]):
        """
        Filter, classify and fold spans into the aggregator.

        Only spans strictly above the duration threshold and outside the
        excluded domains are observed, keyed by description.
        """
        for span in spans:
            if not self.classifier.should_include_span(span):
                if self.classifier.exceeds_threshold(span):
                    self.stats['spans_excluded'] += 1
                    logger.debug(f"Excluding description '{span.description}' due to excluded domain")
                continue
            team = self.classifier.classify(span.description)

            seconds = span.exclusive_time_ms / 1000
            self.aggregator.observe(span.description, seconds, team)
            self.stats['spans_aggregated'] += 1
            if self.config.report_mode == 'spans':
                self.span_rows.append(SpanRow(
                    transaction=span.transaction,
                    operation=self._operations.get(span.transaction, ''),
                    event_id=span.event_id,
                    trace=span.description,
                    duration=seconds,
                    team=team,
                ))

    def build_report(self) -> HarvestReport:
        """Snapshot the current aggregation state as a report."""
        rows = self.aggregator.export(self.config.precision)
        backend, frontend = TraceAggregator.split_by_team(rows)
        return HarvestReport(
            backend=backend if self.config.report_mode == 'aggregate' else [],
            frontend=frontend if self.config.report_mode == 'aggregate' else [],
            span_rows=list(self.span_rows),
            state=self.state,
            partial=self.interrupted,
            stats=self.stats,
        )

    def flush(self, suffix: str = '') -> HarvestReport:
        """
        Hand the current state to the exporter. Used for the normal end of a
        run as well as for interrupt and error paths.
        """
        report = self.build_report()
        if self.exporter is not None and not self.exported:
            self.exported = True
            try:
                self.exporter.export(report, suffix=suffix, dump_rows=self.aggregator.export(9))
            except OSError:
                logger.exception('Failed to write report')
                if not suffix:
                    raise
        logger.info(f"Backend rows: {len(report.backend)}, Frontend rows: {len(report.frontend)}, "
                    f"Span rows: {len(report.span_rows)}")
        return report

    def _finish(self) -> HarvestReport:
        self._enter(PipelineState.EXPORTED)
        return self.flush('partial' if self.interrupted else '')
