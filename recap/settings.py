"""Runtime configuration for the activity pipeline."""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional

from .api_client import GITHUB_API_URL
from .rate_limiter import DEFAULT_DELAY_MS


@dataclass(frozen=True)
class EnrichmentLimits:
    """How many leading items get secondary detail, and how much of it."""
    commits: int = 20
    pull_requests: int = 10
    issues: int = 10
    search_pull_requests: int = 5
    search_issues: int = 5
    pull_request_comments: int = 10
    issue_comments: int = 5
    search_issue_comments: int = 3
    comment_body_chars: int = 300
    patch_chars: int = 500


@dataclass(frozen=True)
class Settings:
    """Service-wide settings."""
    token: Optional[str] = None
    api_url: str = GITHUB_API_URL
    rate_limit_delay_ms: int = DEFAULT_DELAY_MS
    request_timeout: float = 30.0
    task_timeout: Optional[float] = None
    limits: EnrichmentLimits = field(default_factory=EnrichmentLimits)

    @classmethod
    def from_env(cls) -> 'Settings':
        """Build settings from environment variables.

        Invalid numeric values are logged and replaced by the defaults.
        """
        defaults = cls()
        default_limits = EnrichmentLimits()
        search_limit = _int_env('SEARCH_ENRICHMENT_LIMIT', default_limits.search_pull_requests)
        limits = EnrichmentLimits(
            commits=_int_env('COMMIT_ENRICHMENT_LIMIT', default_limits.commits),
            pull_requests=_int_env('PR_ENRICHMENT_LIMIT', default_limits.pull_requests),
            issues=_int_env('ISSUE_ENRICHMENT_LIMIT', default_limits.issues),
            search_pull_requests=search_limit,
            search_issues=search_limit,
        )
        return cls(
            token=os.environ.get('GITHUB_TOKEN') or None,
            api_url=os.environ.get('GITHUB_API_URL', defaults.api_url),
            rate_limit_delay_ms=_int_env('RATE_LIMIT_DELAY_MS', defaults.rate_limit_delay_ms),
            request_timeout=_float_env('REQUEST_TIMEOUT', defaults.request_timeout),
            task_timeout=_float_env('TASK_TIMEOUT', defaults.task_timeout),
            limits=limits,
        )


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value.strip() == '':
        return default
    try:
        parsed = int(value)
    except ValueError:
        logging.warning(f"Invalid {name} value '{value}', using default: {default}")
        return default
    if parsed < 0:
        logging.warning(f"Negative {name} value '{value}', using default: {default}")
        return default
    return parsed


def _float_env(name: str, default: Optional[float]) -> Optional[float]:
    value = os.environ.get(name)
    if value is None or value.strip() == '':
        return default
    try:
        parsed = float(value)
    except ValueError:
        logging.warning(f"Invalid {name} value '{value}', using default: {default}")
        return default
    if parsed <= 0:
        logging.warning(f"Non-positive {name} value '{value}', using default: {default}")
        return default
    return parsed
