"""
Service-origin classification and filtering of trace spans.
"""

from typing import Iterable, Tuple

from ..core.types import SpanRecord, Team


class DomainClassifier:
    """Classifies span descriptions into Backend, Frontend or Excluded."""

    def __init__(self, config):
        """
        Initialize with harvest configuration.

        Args:
            config: HarvestConfig instance
        """
        self.config = config
        self.excluded_domains = self._lowered(config.excluded_domains)
        self.backend_domains = self._lowered(config.backend_domains)

    @staticmethod
    def _lowered(domains: Iterable[str]) -> Tuple[str, ...]:
        return tuple(d.lower() for d in domains if d)

    def classify(self, description: str) -> Team:
        """
        Classify a span description by domain substring.

        Exclusion is checked first and wins over a backend match. Anything
        that matches neither list (including an empty description) is Frontend.

        Args:
            description: Free-text span description (URL, DB call, ...)

        Returns:
            Team value
        """
        text = (description or '').lower()
        if not text:
            return Team.FRONTEND
        if any(domain in text for domain in self.excluded_domains):
            return Team.EXCLUDED
        if any(domain in text for domain in self.backend_domains):
            return Team.BACKEND
        return Team.FRONTEND

    def exceeds_threshold(self, span: SpanRecord) -> bool:
        # Strictly greater: a span at exactly the threshold is dropped
        return (span.exclusive_time_ms or 0) > self.config.span_threshold_ms

    def should_include_span(self, span: SpanRecord) -> bool:
        """
        Determine if a span takes part in aggregation.

        Args:
            span: Decoded span record

        Returns:
            True if the span is slow enough and not from an excluded domain
        """
        if not self.exceeds_threshold(span):
            return False
        return self.classify(span.description) is not Team.EXCLUDED
