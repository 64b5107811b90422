"""Fetch, association, enrichment and aggregation stages."""

from .core import ActivityService, parse_repository

__all__ = ['ActivityService', 'parse_repository']
