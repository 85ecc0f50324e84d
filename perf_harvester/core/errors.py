"""
Exception types raised by the harvester.
"""


class HarvestError(Exception):
    """Base class for harvester errors."""


class ConfigurationError(HarvestError, ValueError):
    """Raised when a run configuration or credential is invalid."""
