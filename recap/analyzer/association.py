"""Commit to pull request association heuristics.

Strategies are tried in order, and each strategy is tried against every
pull request before the next strategy is considered. The first match wins.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from ..models import Commit, EnrichedCommit, PullRequest

TITLE_PREFIX_LENGTH = 20

Strategy = Callable[[Commit, PullRequest, datetime], bool]


def match_merge_commit(commit: Commit, pr: PullRequest, now: datetime) -> bool:
    """The commit is the PR's recorded merge commit."""
    return bool(pr.merge_commit_sha) and pr.merge_commit_sha == commit.sha


def match_timeframe_and_reference(commit: Commit, pr: PullRequest, now: datetime) -> bool:
    """The commit falls inside the PR's lifetime and its message references the PR.

    The lifetime runs from creation to merge (or now if unmerged). The
    message must contain '#<number>', 'pull/<number>' or the lowercased
    first 20 characters of the PR title.
    """
    if pr.created_at is None:
        return False

    committed_at = commit.timestamp or now
    ends_at = pr.merged_at or now
    if not pr.created_at <= committed_at <= ends_at:
        return False

    message = commit.message.lower()
    if f'#{pr.number}' in message or f'pull/{pr.number}' in message:
        return True

    title_prefix = pr.title.lower()[:TITLE_PREFIX_LENGTH]
    return bool(title_prefix) and title_prefix in message


ASSOCIATION_STRATEGIES: Sequence[Strategy] = (
    match_merge_commit,
    match_timeframe_and_reference,
)


def find_associated_pr(commit: Commit, pull_requests: Sequence[PullRequest],
                       strategies: Sequence[Strategy] = ASSOCIATION_STRATEGIES,
                       now: Optional[datetime] = None) -> Optional[PullRequest]:
    """Find the pull request that most plausibly introduced a commit.

    Args:
        commit: The commit to place
        pull_requests: Candidate pull requests, in fetch order
        strategies: Ordered predicates, first success wins
        now: Reference time for open PRs and undated commits

    Returns:
        The matching pull request, or None
    """
    now = now or datetime.now(timezone.utc)
    for strategy in strategies:
        for pr in pull_requests:
            if strategy(commit, pr, now):
                return pr
    return None


def associate_commits(commits: Sequence[Commit],
                      pull_requests: Sequence[PullRequest],
                      now: Optional[datetime] = None) -> List[EnrichedCommit]:
    """Pair every commit with at most one pull request."""
    now = now or datetime.now(timezone.utc)
    return [
        EnrichedCommit(commit=commit, pull_request=find_associated_pr(commit, pull_requests, now=now))
        for commit in commits
    ]
