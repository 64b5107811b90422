"""Enrichment methods for ActivityService.

Only a leading slice of each list is enriched. A failure on one item is
logged at DEBUG level and the item is kept as fetched.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from ..models import (
    Comment, CommitEnrichment, EnrichedCommit, FileChange, Issue, IssueEnrichment,
    PullRequest, PullRequestEnrichment, Review,
)

T = TypeVar('T')


async def _enrich_leading(self, items: Sequence[T], limit: int,
                          enrich_one: Callable[[T], Awaitable[T]],
                          describe: Callable[[T], str]) -> List[T]:
    """Enrich the first `limit` items one after another.

    Args:
        items: All fetched items
        limit: Number of leading items to enrich
        enrich_one: Coroutine function returning the enriched item
        describe: Label for log messages

    Returns:
        Same length and order as `items`
    """
    results = []
    enriched = 0
    for index, item in enumerate(items):
        if index >= limit:
            results.append(item)
            continue
        try:
            results.append(await enrich_one(item))
            enriched += 1
        except Exception as e:
            logging.debug(f"Could not enrich {describe(item)}: {e}")
            results.append(item)

    if items:
        logging.info(f"Enriched {enriched} of {min(limit, len(items))} selected items ({len(items)} total)")
    return results


def _build_pr_enrichment(pr: PullRequest, repository: str, reviews: List, files: List,
                         comments: List, limits) -> PullRequestEnrichment:
    file_changes = tuple(FileChange.from_api(f, limits.patch_chars) for f in files)
    return PullRequestEnrichment(
        url=pr.html_url,
        repository=repository,
        reviews=tuple(Review.from_api(r) for r in reviews),
        files=file_changes,
        comments=tuple(Comment.from_api(c, limits.comment_body_chars) for c in comments),
        files_changed=len(file_changes),
        lines_added=sum(f.additions for f in file_changes),
        lines_deleted=sum(f.deletions for f in file_changes),
    )


def _build_issue_enrichment(issue: Issue, repository: str, comments: List, limits) -> IssueEnrichment:
    parsed = tuple(Comment.from_api(c, limits.comment_body_chars) for c in comments)
    return IssueEnrichment(
        url=issue.html_url,
        repository=repository,
        comments=parsed,
        comment_count=len(parsed),
    )


def _split_repository(repository: Optional[str]):
    if not repository or '/' not in repository:
        return None
    owner, repo = repository.split('/', 1)
    return owner, repo


async def _enrich_commits(self, owner: str, repo: str,
                          commits: Sequence[EnrichedCommit]) -> List[EnrichedCommit]:
    """Attach reviews and files of the associated PR to the leading commits."""
    async def enrich(enriched: EnrichedCommit) -> EnrichedCommit:
        if enriched.pull_request is None:
            return enriched
        number = enriched.pull_request.number
        reviews, files = await asyncio.gather(
            self._call(self.api_client.list_pull_reviews, owner, repo, number),
            self._call(self.api_client.list_pull_files, owner, repo, number),
        )
        return replace(enriched, enrichment=CommitEnrichment(
            reviews=tuple(Review.from_api(r) for r in reviews),
            files=tuple(FileChange.from_api(f, self.limits.patch_chars) for f in files),
        ))

    return await self._enrich_leading(
        commits, self.limits.commits, enrich,
        lambda enriched: f"commit {enriched.commit.sha[:7]}"
    )


async def _enrich_pull_requests(self, owner: str, repo: str,
                                pull_requests: Sequence[PullRequest]) -> List[PullRequest]:
    """Attach reviews, files and (capped) review comments to the leading PRs."""
    async def enrich(pr: PullRequest) -> PullRequest:
        reviews, files, comments = await asyncio.gather(
            self._call(self.api_client.list_pull_reviews, owner, repo, pr.number),
            self._call(self.api_client.list_pull_files, owner, repo, pr.number),
            self._call(self.api_client.list_review_comments, owner, repo, pr.number),
        )
        comments = comments[:self.limits.pull_request_comments]
        return replace(pr, enrichment=_build_pr_enrichment(
            pr, f"{owner}/{repo}", reviews, files, comments, self.limits
        ))

    return await self._enrich_leading(
        pull_requests, self.limits.pull_requests, enrich, lambda pr: f"PR #{pr.number}"
    )


async def _enrich_issues(self, owner: str, repo: str, issues: Sequence[Issue]) -> List[Issue]:
    """Attach (capped) comments to the leading issues."""
    async def enrich(issue: Issue) -> Issue:
        comments = await self._call(self.api_client.list_issue_comments, owner, repo, issue.number)
        comments = comments[:self.limits.issue_comments]
        return replace(issue, enrichment=_build_issue_enrichment(
            issue, f"{owner}/{repo}", comments, self.limits
        ))

    return await self._enrich_leading(
        issues, self.limits.issues, enrich, lambda issue: f"issue #{issue.number}"
    )


async def _enrich_pull_requests_from_search(self, pull_requests: Sequence[PullRequest]) -> List[PullRequest]:
    """Attach reviews and files to the leading search results.

    Results without a repository reference are left as they are.
    """
    async def enrich(pr: PullRequest) -> PullRequest:
        parts = _split_repository(pr.repository)
        if parts is None:
            return pr
        owner, repo = parts
        reviews, files = await asyncio.gather(
            self._call(self.api_client.list_pull_reviews, owner, repo, pr.number),
            self._call(self.api_client.list_pull_files, owner, repo, pr.number),
        )
        return replace(pr, enrichment=_build_pr_enrichment(
            pr, pr.repository, reviews, files, [], self.limits
        ))

    return await self._enrich_leading(
        pull_requests, self.limits.search_pull_requests, enrich,
        lambda pr: f"PR {pr.repository}#{pr.number}"
    )


async def _enrich_issues_from_search(self, issues: Sequence[Issue]) -> List[Issue]:
    async def enrich(issue: Issue) -> Issue:
        parts = _split_repository(issue.repository)
        if parts is None:
            return issue
        owner, repo = parts
        comments = await self._call(self.api_client.list_issue_comments, owner, repo, issue.number)
        comments = comments[:self.limits.search_issue_comments]
        return replace(issue, enrichment=_build_issue_enrichment(
            issue, issue.repository, comments, self.limits
        ))

    return await self._enrich_leading(
        issues, self.limits.search_issues, enrich,
        lambda issue: f"issue {issue.repository}#{issue.number}"
    )
