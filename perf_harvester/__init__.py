"""
Performance Harvester - Sentry performance telemetry harvesting tool
"""

__version__ = "1.0.0"

from .core.harvester import HarvestPipeline
from .core.types import AggregateRow, HarvestConfig, HarvestReport, Team

__all__ = ["HarvestPipeline", "HarvestConfig", "HarvestReport", "AggregateRow", "Team"]
