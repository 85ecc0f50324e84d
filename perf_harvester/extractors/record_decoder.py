"""
Decoding of raw API items into typed records.
"""

from typing import Any, Dict, List, Optional

from ..core.types import PageKind, SampledEvent, SpanRecord, Transaction

NO_DESCRIPTION = 'No description'
NO_TRANSACTION = 'No transaction'


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _first_number(item: Dict, keys) -> float:
    for key in keys:
        value = _number(item.get(key))
        if value is not None:
            return value
    return 0.0


def _text(value: Any) -> str:
    if value is None:
        return ''
    return str(value)


class RecordDecoder:
    """Turns raw page items into Transaction, SampledEvent and SpanRecord."""

    def __init__(self, percentile: str = 'p95'):
        """
        Args:
            percentile: Percentile prefix of the transaction latency field (p50, p75, p95)
        """
        self.percentile = percentile

    def decode_transaction(self, item: Dict) -> Transaction:
        """
        Decode one transactions-dataset row.

        Both the short (`p95()`) and the long (`p95(transaction.duration)`)
        field spellings are accepted.
        """
        percentile_ms = _first_number(item, (
            f'{self.percentile}()',
            f'{self.percentile}(transaction.duration)',
        ))
        return Transaction(
            name=_text(item.get('transaction')) or NO_TRANSACTION,
            percentile_ms=percentile_ms,
            sample_count=int(_first_number(item, ('count()',))),
            operation=_text(item.get('transaction.op')),
        )

    @staticmethod
    def decode_event(item: Dict, transaction: str = '') -> SampledEvent:
        trace_id = item.get('trace')
        if not trace_id:
            contexts = item.get('contexts')
            if isinstance(contexts, dict) and isinstance(contexts.get('trace'), dict):
                trace_id = contexts['trace'].get('trace_id')
        return SampledEvent(
            event_id=_text(item.get('id')),
            trace_id=_text(trace_id),
            timestamp=_text(item.get('timestamp')),
            transaction=transaction or _text(item.get('transaction')),
        )

    @staticmethod
    def decode_span(item: Dict, event: Optional[SampledEvent] = None) -> SpanRecord:
        """
        Decode one span row.

        Missing descriptions fall back to the span op, then to a placeholder;
        missing durations become zero.
        """
        description = _text(item.get('description')) or _text(item.get('op')) or NO_DESCRIPTION
        exclusive = _first_number(item, ('exclusive_time', 'span.duration', 'span_duration', 'duration'))
        return SpanRecord(
            description=description,
            exclusive_time_ms=exclusive,
            timestamp=_text(item.get('timestamp')),
            trace_id=_text(item.get('trace')) or (event.trace_id if event else ''),
            event_id=event.event_id if event else '',
            transaction=(event.transaction if event else '') or _text(item.get('transaction')),
        )

    def decode_page(self, kind: PageKind, items: List[Any], parent=None) -> List:
        """
        Decode all items of a page of the given kind, skipping non-object items.

        Args:
            kind: Which endpoint variant the items came from
            items: Raw `data` items
            parent: Transaction name for EVENTS, SampledEvent for TRACES

        Returns:
            List of typed records
        """
        records = []
        for item in items:
            if not isinstance(item, dict):
                continue
            if kind is PageKind.TRANSACTIONS:
                records.append(self.decode_transaction(item))
            elif kind is PageKind.EVENTS:
                records.append(self.decode_event(item, parent or ''))
            else:
                records.append(self.decode_span(item, parent))
        return records
