"""Core pipeline and type definitions."""

from .errors import ConfigurationError, HarvestError
from .harvester import HarvestPipeline
from .types import HarvestConfig

__all__ = ["HarvestPipeline", "HarvestConfig", "ConfigurationError", "HarvestError"]
