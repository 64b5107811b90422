"""Primary fetch methods for ActivityService."""

import logging
from datetime import datetime
from functools import partial
from typing import Any, List, Optional

from ..models import (
    Commit, Issue, PullRequest, RepositoryOptions, UserActivityOptions, is_pull_request_record,
)
from ..timeutils import ensure_utc


async def _call(self, method, *args, **kwargs) -> Any:
    """Run one API call through the shared rate limiter."""
    return await self.rate_limiter.execute(partial(method, *args, **kwargs))


def _created_within(created_at: Optional[datetime], since: Optional[datetime],
                    until: Optional[datetime]) -> bool:
    if created_at is None:
        return True
    if since and created_at < ensure_utc(since):
        return False
    if until and created_at > ensure_utc(until):
        return False
    return True


def _build_date_filter(since: Optional[datetime], until: Optional[datetime]) -> str:
    """Build 'created:' qualifiers for a search query."""
    filters = []
    if since:
        filters.append(f"created:>={ensure_utc(since).strftime('%Y-%m-%d')}")
    if until:
        filters.append(f"created:<={ensure_utc(until).strftime('%Y-%m-%d')}")
    return ' '.join(filters)


async def _fetch_commits(self, owner: str, repo: str, options: RepositoryOptions) -> List[Commit]:
    """Fetch commits, filtered upstream by branch, window and author.

    Args:
        owner: Repository owner
        repo: Repository name
        options: Fetch options

    Returns:
        List of commits, newest first
    """
    data = await self._call(
        self.api_client.list_commits, owner, repo,
        sha=options.branch,
        since=options.since,
        until=options.until,
        author=options.author,
        per_page=options.max_results
    )
    return [Commit.from_api(item) for item in data]


async def _fetch_pull_requests(self, owner: str, repo: str, options: RepositoryOptions) -> List[PullRequest]:
    """Fetch pull requests and filter them by author and creation time.

    The listing is sorted by update time, so a page can hold PRs created
    outside the window. They are dropped here.
    """
    data = await self._call(
        self.api_client.list_pull_requests, owner, repo,
        state='all',
        per_page=options.max_results
    )
    pull_requests = []
    for pr in (PullRequest.from_api(item) for item in data):
        if options.author and pr.author != options.author:
            continue
        if not _created_within(pr.created_at, options.since, options.until):
            continue
        pull_requests.append(pr)

    logging.debug(f"Kept {len(pull_requests)} of {len(data)} PRs from {owner}/{repo}")
    return pull_requests


async def _fetch_issues(self, owner: str, repo: str, options: RepositoryOptions) -> List[Issue]:
    """Fetch issues, excluding pull requests, filtered by author and creation time.

    GitHub's 'since' filters by update time, so creation bounds are
    re-checked client side.
    """
    data = await self._call(
        self.api_client.list_issues, owner, repo,
        state='all',
        creator=options.author,
        since=options.since,
        per_page=options.max_results
    )
    issues = []
    for item in data:
        if is_pull_request_record(item):
            continue
        issue = Issue.from_api(item)
        if options.author and issue.author != options.author:
            continue
        if not _created_within(issue.created_at, options.since, options.until):
            continue
        issues.append(issue)

    logging.debug(f"Kept {len(issues)} of {len(data)} issues from {owner}/{repo}")
    return issues


async def _search_pull_requests(self, username: str, options: UserActivityOptions) -> List[PullRequest]:
    query = f"author:{username} is:pr {_build_date_filter(options.since, options.until)}".strip()
    items = await self._call(self.api_client.search_issues, query, per_page=options.max_results)
    return [PullRequest.from_api(item) for item in items if is_pull_request_record(item)]


async def _search_issues(self, username: str, options: UserActivityOptions) -> List[Issue]:
    query = f"author:{username} is:issue {_build_date_filter(options.since, options.until)}".strip()
    items = await self._call(self.api_client.search_issues, query, per_page=options.max_results)
    return [Issue.from_api(item) for item in items if not is_pull_request_record(item)]
