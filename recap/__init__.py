"""Recap - aggregate GitHub activity into one cross-referenced dataset."""

from .models import (
    ActivityResult, ActivitySummary, Commit, EnrichedCommit, Issue, PullRequest,
    RepositoryOptions, Statistics, UserActivityOptions,
)
from .api_client import GitHubAPIClient
from .rate_limiter import RateLimiter
from .settings import EnrichmentLimits, Settings
from .exceptions import ActivityFetchError, InvalidInputError, RecapError
from .analyzer import ActivityService

__all__ = [
    'ActivityResult',
    'ActivitySummary',
    'Commit',
    'EnrichedCommit',
    'Issue',
    'PullRequest',
    'RepositoryOptions',
    'Statistics',
    'UserActivityOptions',
    'GitHubAPIClient',
    'RateLimiter',
    'EnrichmentLimits',
    'Settings',
    'ActivityFetchError',
    'InvalidInputError',
    'RecapError',
    'ActivityService',
]
