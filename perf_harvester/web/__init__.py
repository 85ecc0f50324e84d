"""Helpers for the JSON API."""

from .result_builder import prepare_merge_results, prepare_results

__all__ = ["prepare_results", "prepare_merge_results"]
