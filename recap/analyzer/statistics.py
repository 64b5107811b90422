"""Statistics and summary rollups over a fetched activity set."""

from collections import Counter
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..models import (
    ActivitySummary, ContributorCount, EnrichedCommit, Issue, IssueBreakdown,
    LabelCount, PullRequest, PullRequestBreakdown, RepositoryCount, Statistics,
)

TOP_N = 5


def _top(counts: Counter, n: int = TOP_N) -> List[Tuple[str, int]]:
    """Highest counts first; ties broken by name so input order never matters."""
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:n]


def calculate_statistics(commits: Sequence[EnrichedCommit],
                         pull_requests: Sequence[PullRequest],
                         issues: Sequence[Issue]) -> Statistics:
    """Calculate statistics over the complete fetched set.

    File and line averages use only the files known for enriched commits
    but always divide by the total number of commits.

    Args:
        commits: All fetched commits, enriched or not
        pull_requests: All fetched pull requests
        issues: All fetched issues

    Returns:
        Statistics rollup
    """
    author_counts = Counter(enriched.commit.author for enriched in commits)

    label_counts: Counter = Counter()
    for item in list(pull_requests) + list(issues):
        label_counts.update(item.labels)

    total_files = 0
    total_lines = 0
    for enriched in commits:
        total_files += len(enriched.files)
        total_lines += sum(f.additions + f.deletions for f in enriched.files)

    total_commits = len(commits)
    return Statistics(
        total_commits=total_commits,
        total_prs=len(pull_requests),
        total_issues=len(issues),
        total_reviews=sum(1 for enriched in commits if enriched.reviews),
        avg_files_per_commit=total_files / total_commits if total_commits else 0,
        avg_lines_changed=total_lines / total_commits if total_commits else 0,
        top_contributors=tuple(ContributorCount(author, count) for author, count in _top(author_counts)),
        top_labels=tuple(LabelCount(label, count) for label, count in _top(label_counts)),
    )


def _count_repositories(items: Iterable[Union[PullRequest, Issue]],
                        fallback: Optional[str]) -> Counter:
    repo_counts: Counter = Counter()
    for item in items:
        repo = item.repository or fallback
        if repo:
            repo_counts[repo] += 1
    return repo_counts


def generate_activity_summary(pull_requests: Sequence[PullRequest],
                              issues: Sequence[Issue],
                              repository: Optional[str] = None) -> ActivitySummary:
    """Summarize PR/issue states and the most active repositories.

    Args:
        pull_requests: All fetched pull requests
        issues: All fetched issues
        repository: Name used for items without their own repository reference

    Returns:
        ActivitySummary
    """
    pr_open = sum(1 for pr in pull_requests if pr.state == 'open')
    pr_merged = sum(1 for pr in pull_requests if pr.state != 'open' and pr.merged)
    issue_open = sum(1 for issue in issues if issue.state == 'open')

    repo_counts = _count_repositories(list(pull_requests) + list(issues), repository)

    return ActivitySummary(
        total_activity=len(pull_requests) + len(issues),
        pull_requests=PullRequestBreakdown(
            total=len(pull_requests),
            open=pr_open,
            merged=pr_merged,
            closed=len(pull_requests) - pr_open - pr_merged,
        ),
        issues=IssueBreakdown(
            total=len(issues),
            open=issue_open,
            closed=len(issues) - issue_open,
        ),
        top_repositories=tuple(RepositoryCount(repo, count) for repo, count in _top(repo_counts)),
    )
