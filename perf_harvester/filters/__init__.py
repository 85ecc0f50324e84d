"""Span filtering and classification."""

from .domain_classifier import DomainClassifier

__all__ = ["DomainClassifier"]
