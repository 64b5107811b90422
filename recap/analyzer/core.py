"""Main GitHub activity service."""

import re
import asyncio
import logging
from typing import List, Optional, Tuple

from ..api_client import GitHubAPIClient
from ..exceptions import ActivityFetchError, InvalidInputError
from ..models import ActivityResult, RepositoryOptions, UserActivityOptions
from ..rate_limiter import RateLimiter
from ..settings import Settings
from ..timeutils import ensure_utc
from .association import associate_commits
from .statistics import calculate_statistics, generate_activity_summary

REPOSITORY_PATTERN = re.compile(r'^(?!\.+/)([A-Za-z0-9_.-]+)/(?!\.+$)([A-Za-z0-9_.-]+)$')
USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?(?:\[bot\])?$')


def parse_repository(repository: str) -> Tuple[str, str]:
    """Split 'owner/name' into its parts.

    Raises:
        InvalidInputError: If the identifier is malformed
    """
    match = REPOSITORY_PATTERN.match((repository or '').strip())
    if not match:
        raise InvalidInputError(f"Invalid repository '{repository}' (expected owner/repo)")
    return match.group(1), match.group(2)


def _validate_window(since, until, max_results: int):
    if max_results < 1:
        raise InvalidInputError(f"max_results must be positive, got {max_results}")
    if since and until and ensure_utc(since) > ensure_utc(until):
        raise InvalidInputError("since must not be later than until")


async def _nothing() -> List:
    return []


class ActivityService:
    """Fetches, associates, enriches and aggregates GitHub activity.

    All outbound calls go through one RateLimiter owned by the service.
    Pass an existing limiter to share it between services.
    """

    def __init__(
        self,
        token: str = None,
        settings: Settings = None,
        api_client: GitHubAPIClient = None,
        rate_limiter: RateLimiter = None
    ):
        """Initialize the service.

        Args:
            token: GitHub personal access token (overrides settings.token)
            settings: Service settings, defaults to Settings()
            api_client: Client to use instead of building one from settings
            rate_limiter: Limiter to use instead of building one from settings
        """
        self.settings = settings or Settings()
        self.limits = self.settings.limits
        self.api_client = api_client or GitHubAPIClient(
            token or self.settings.token,
            base_url=self.settings.api_url,
            timeout=self.settings.request_timeout
        )
        self.rate_limiter = rate_limiter or RateLimiter(
            self.settings.rate_limit_delay_ms,
            task_timeout=self.settings.task_timeout
        )

    async def __aenter__(self) -> 'ActivityService':
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        await self.api_client.close()

    async def fetch_repository_activity(self, repository: str,
                                        options: Optional[RepositoryOptions] = None) -> ActivityResult:
        """Fetch activity for one repository with commit-PR associations.

        Args:
            repository: Repository in format 'owner/repo'
            options: Time window, filters and inclusion flags

        Returns:
            ActivityResult over the complete fetched set

        Raises:
            InvalidInputError: Before any network call, for bad input
            ActivityFetchError: If any primary fetch fails
        """
        owner, repo = parse_repository(repository)
        options = options or RepositoryOptions()
        _validate_window(options.since, options.until, options.max_results)
        full_name = f"{owner}/{repo}"

        logging.info(f"Fetching activity for repository: {full_name}")

        try:
            commits, pull_requests, issues = await asyncio.gather(
                self._fetch_commits(owner, repo, options),
                self._fetch_pull_requests(owner, repo, options) if options.include_prs else _nothing(),
                self._fetch_issues(owner, repo, options) if options.include_issues else _nothing(),
            )
            logging.info(f"Fetched {len(commits)} commits, {len(pull_requests)} PRs "
                         f"and {len(issues)} issues from {full_name}")

            enriched_commits = associate_commits(commits, pull_requests)
            if options.include_reviews:
                enriched_commits = await self._enrich_commits(owner, repo, enriched_commits)
                pull_requests = await self._enrich_pull_requests(owner, repo, pull_requests)
            issues = await self._enrich_issues(owner, repo, issues)

            statistics = calculate_statistics(enriched_commits, pull_requests, issues)
            summary = generate_activity_summary(pull_requests, issues, full_name)
        except Exception as e:
            logging.error(f"Error fetching repository data for {full_name}: {e}")
            raise ActivityFetchError(f"Failed to fetch repository data: {e}") from e

        logging.info(f"Completed activity fetch for repository: {full_name}")
        return ActivityResult(
            commits=tuple(enriched_commits),
            pull_requests=tuple(pull_requests),
            issues=tuple(issues),
            code_reviews=tuple(review for enriched in enriched_commits for review in enriched.reviews),
            statistics=statistics,
            summary=summary,
        )

    async def fetch_user_activity(self, username: str,
                                  options: Optional[UserActivityOptions] = None) -> ActivityResult:
        """Fetch a user's pull requests and issues across all repositories.

        Uses the search API, so no commits are returned.

        Args:
            username: GitHub login
            options: Time window and result cap

        Returns:
            ActivityResult with an empty commit list

        Raises:
            InvalidInputError: Before any network call, for bad input
            ActivityFetchError: If either search fails
        """
        username = (username or '').strip()
        if not USERNAME_PATTERN.match(username):
            raise InvalidInputError(f"Invalid GitHub username '{username}'")
        options = options or UserActivityOptions()
        _validate_window(options.since, options.until, options.max_results)

        logging.info(f"Fetching activity for user: {username}")

        try:
            pull_requests, issues = await asyncio.gather(
                self._search_pull_requests(username, options),
                self._search_issues(username, options),
            )
            logging.info(f"Found {len(pull_requests)} PRs and {len(issues)} issues by {username}")

            pull_requests = await self._enrich_pull_requests_from_search(pull_requests)
            issues = await self._enrich_issues_from_search(issues)

            statistics = calculate_statistics([], pull_requests, issues)
            summary = generate_activity_summary(pull_requests, issues)
        except Exception as e:
            logging.error(f"Error fetching user activity for {username}: {e}")
            raise ActivityFetchError(f"Failed to fetch user activity: {e}") from e

        logging.info(f"Completed activity fetch for user: {username}")
        return ActivityResult(
            commits=(),
            pull_requests=tuple(pull_requests),
            issues=tuple(issues),
            code_reviews=(),
            statistics=statistics,
            summary=summary,
        )


# Import and attach methods from submodules
from .fetchers import (_call, _fetch_commits, _fetch_pull_requests, _fetch_issues,
                       _search_pull_requests, _search_issues)
from .enrichment import (_enrich_leading, _enrich_commits, _enrich_pull_requests, _enrich_issues,
                         _enrich_pull_requests_from_search, _enrich_issues_from_search)

# Attach methods to class
ActivityService._call = _call
ActivityService._fetch_commits = _fetch_commits
ActivityService._fetch_pull_requests = _fetch_pull_requests
ActivityService._fetch_issues = _fetch_issues
ActivityService._search_pull_requests = _search_pull_requests
ActivityService._search_issues = _search_issues
ActivityService._enrich_leading = _enrich_leading
ActivityService._enrich_commits = _enrich_commits
ActivityService._enrich_pull_requests = _enrich_pull_requests
ActivityService._enrich_issues = _enrich_issues
ActivityService._enrich_pull_requests_from_search = _enrich_pull_requests_from_search
ActivityService._enrich_issues_from_search = _enrich_issues_from_search
