"""Data models for the GitHub activity pipeline.

Every model is a frozen dataclass. Enriched variants are derived with
``dataclasses.replace`` so a fetched record is never mutated in place.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from .timeutils import parse_timestamp

UNKNOWN_AUTHOR = 'Unknown'


def _login(user: Optional[Dict]) -> Optional[str]:
    """Return the login of a GitHub user object, if any."""
    if not user:
        return None
    return user.get('login')


def _label_names(labels: Optional[List]) -> Tuple[str, ...]:
    """Normalise GitHub labels (objects or plain strings) to their names."""
    names = []
    for label in labels or []:
        name = label if isinstance(label, str) else label.get('name')
        if name and isinstance(name, str):
            names.append(name)
    return tuple(names)


def repository_from_url(repository_url: Optional[str]) -> Optional[str]:
    """Extract 'owner/name' from an API repository URL."""
    if not repository_url:
        return None
    parts = repository_url.rstrip('/').split('/')
    if len(parts) < 2:
        return None
    return '/'.join(parts[-2:])


def is_pull_request_record(item: Dict) -> bool:
    """Check whether an issue-shaped API record actually describes a PR."""
    return 'pull_request' in item or 'head' in item


@dataclass(frozen=True)
class Review:
    """A pull request review."""
    id: int
    author: str
    state: str
    submitted_at: Optional[datetime] = None

    @classmethod
    def from_api(cls, data: Dict) -> 'Review':
        return cls(
            id=data.get('id', 0),
            author=_login(data.get('user')) or UNKNOWN_AUTHOR,
            state=data.get('state', ''),
            submitted_at=parse_timestamp(data.get('submitted_at')),
        )


@dataclass(frozen=True)
class FileChange:
    """A file touched by a pull request."""
    filename: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict, max_patch_chars: Optional[int] = None) -> 'FileChange':
        patch = data.get('patch')
        if patch is not None and max_patch_chars is not None:
            patch = patch[:max_patch_chars]
        return cls(
            filename=data.get('filename', ''),
            additions=data.get('additions') or 0,
            deletions=data.get('deletions') or 0,
            changes=data.get('changes') or 0,
            patch=patch,
        )


@dataclass(frozen=True)
class Comment:
    """A review or issue comment, with the body optionally truncated."""
    author: str
    body: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_api(cls, data: Dict, max_body_chars: Optional[int] = None) -> 'Comment':
        body = data.get('body') or ''
        if max_body_chars is not None:
            body = body[:max_body_chars]
        return cls(
            author=_login(data.get('user')) or UNKNOWN_AUTHOR,
            body=body,
            created_at=parse_timestamp(data.get('created_at')),
        )


@dataclass(frozen=True)
class Commit:
    """A commit as returned by the list-commits endpoint."""
    sha: str
    message: str
    author_login: Optional[str] = None
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    committer_name: Optional[str] = None
    timestamp: Optional[datetime] = None
    html_url: Optional[str] = None

    @property
    def author(self) -> str:
        """Resolve the commit author.

        Priority: GitHub login > git author name > git author email >
        committer name > 'Unknown'.
        """
        return (self.author_login or self.author_name or self.author_email
                or self.committer_name or UNKNOWN_AUTHOR)

    @classmethod
    def from_api(cls, data: Dict) -> 'Commit':
        commit = data.get('commit') or {}
        git_author = commit.get('author') or {}
        git_committer = commit.get('committer') or {}
        return cls(
            sha=data['sha'],
            message=commit.get('message') or '',
            author_login=_login(data.get('author')),
            author_name=git_author.get('name'),
            author_email=git_author.get('email'),
            committer_name=git_committer.get('name'),
            timestamp=parse_timestamp(git_author.get('date') or git_committer.get('date')),
            html_url=data.get('html_url'),
        )


@dataclass(frozen=True)
class PullRequestEnrichment:
    """Secondary detail fetched for a pull request."""
    url: Optional[str]
    repository: str
    reviews: Tuple[Review, ...] = ()
    files: Tuple[FileChange, ...] = ()
    comments: Tuple[Comment, ...] = ()
    files_changed: int = 0
    lines_added: int = 0
    lines_deleted: int = 0


@dataclass(frozen=True)
class PullRequest:
    """A pull request. 'merged' is derived from the merge timestamp."""
    number: int
    title: str
    state: str
    author: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    merge_commit_sha: Optional[str] = None
    labels: Tuple[str, ...] = ()
    html_url: Optional[str] = None
    repository_url: Optional[str] = None
    enrichment: Optional[PullRequestEnrichment] = None

    @property
    def merged(self) -> bool:
        return self.merged_at is not None

    @property
    def repository(self) -> Optional[str]:
        return repository_from_url(self.repository_url)

    @classmethod
    def from_api(cls, data: Dict) -> 'PullRequest':
        # Search results nest the merge timestamp under 'pull_request'
        merged_at = data.get('merged_at') or (data.get('pull_request') or {}).get('merged_at')
        return cls(
            number=data['number'],
            title=data.get('title') or '',
            state=data.get('state', 'open'),
            author=_login(data.get('user')),
            created_at=parse_timestamp(data.get('created_at')),
            updated_at=parse_timestamp(data.get('updated_at')),
            merged_at=parse_timestamp(merged_at),
            closed_at=parse_timestamp(data.get('closed_at')),
            merge_commit_sha=data.get('merge_commit_sha'),
            labels=_label_names(data.get('labels')),
            html_url=data.get('html_url'),
            repository_url=data.get('repository_url'),
        )


@dataclass(frozen=True)
class IssueEnrichment:
    """Secondary detail fetched for an issue."""
    url: Optional[str]
    repository: str
    comments: Tuple[Comment, ...] = ()
    comment_count: int = 0


@dataclass(frozen=True)
class Issue:
    """An issue (never a pull request)."""
    number: int
    title: str
    state: str
    author: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    labels: Tuple[str, ...] = ()
    html_url: Optional[str] = None
    repository_url: Optional[str] = None
    enrichment: Optional[IssueEnrichment] = None

    @property
    def repository(self) -> Optional[str]:
        return repository_from_url(self.repository_url)

    @classmethod
    def from_api(cls, data: Dict) -> 'Issue':
        return cls(
            number=data['number'],
            title=data.get('title') or '',
            state=data.get('state', 'open'),
            author=_login(data.get('user')),
            created_at=parse_timestamp(data.get('created_at')),
            updated_at=parse_timestamp(data.get('updated_at')),
            closed_at=parse_timestamp(data.get('closed_at')),
            labels=_label_names(data.get('labels')),
            html_url=data.get('html_url'),
            repository_url=data.get('repository_url'),
        )


@dataclass(frozen=True)
class CommitEnrichment:
    """Reviews and files of the pull request a commit belongs to."""
    reviews: Tuple[Review, ...] = ()
    files: Tuple[FileChange, ...] = ()


@dataclass(frozen=True)
class EnrichedCommit:
    """A commit together with its associated pull request, if any."""
    commit: Commit
    pull_request: Optional[PullRequest] = None
    enrichment: Optional[CommitEnrichment] = None

    @property
    def reviews(self) -> Tuple[Review, ...]:
        return self.enrichment.reviews if self.enrichment else ()

    @property
    def files(self) -> Tuple[FileChange, ...]:
        return self.enrichment.files if self.enrichment else ()


@dataclass(frozen=True)
class ContributorCount:
    author: str
    count: int


@dataclass(frozen=True)
class LabelCount:
    label: str
    count: int


@dataclass(frozen=True)
class RepositoryCount:
    repo: str
    count: int


@dataclass(frozen=True)
class Statistics:
    """Rollups over the complete fetched set."""
    total_commits: int = 0
    total_prs: int = 0
    total_issues: int = 0
    total_reviews: int = 0
    avg_files_per_commit: float = 0.0
    avg_lines_changed: float = 0.0
    top_contributors: Tuple[ContributorCount, ...] = ()
    top_labels: Tuple[LabelCount, ...] = ()


@dataclass(frozen=True)
class PullRequestBreakdown:
    total: int = 0
    open: int = 0
    merged: int = 0
    closed: int = 0


@dataclass(frozen=True)
class IssueBreakdown:
    total: int = 0
    open: int = 0
    closed: int = 0


@dataclass(frozen=True)
class ActivitySummary:
    total_activity: int = 0
    pull_requests: PullRequestBreakdown = field(default_factory=PullRequestBreakdown)
    issues: IssueBreakdown = field(default_factory=IssueBreakdown)
    top_repositories: Tuple[RepositoryCount, ...] = ()


@dataclass(frozen=True)
class ActivityResult:
    """The unified output of one pipeline invocation."""
    commits: Tuple[EnrichedCommit, ...]
    pull_requests: Tuple[PullRequest, ...]
    issues: Tuple[Issue, ...]
    code_reviews: Tuple[Review, ...]
    statistics: Statistics
    summary: ActivitySummary

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain containers (datetimes are left as datetime).

        Derived values (resolved commit author, PR merged flag, repository
        names) are included alongside the stored fields.
        """
        data = asdict(self)
        for enriched, item in zip(self.commits, data['commits']):
            item['commit']['author'] = enriched.commit.author
            if enriched.pull_request is not None:
                _add_derived_fields(enriched.pull_request, item['pull_request'])
        for pr, item in zip(self.pull_requests, data['pull_requests']):
            _add_derived_fields(pr, item)
        for issue, item in zip(self.issues, data['issues']):
            _add_derived_fields(issue, item)
        return data


def _add_derived_fields(record: Union[PullRequest, Issue], item: Dict[str, Any]):
    if isinstance(record, PullRequest):
        item['merged'] = record.merged
    item['repository'] = record.repository


@dataclass(frozen=True)
class RepositoryOptions:
    """Inputs for a single-repository fetch.

    Args:
        since: Only include activity created at or after this time
        until: Only include activity created at or before this time
        branch: Branch to list commits from (None = default branch)
        author: Only include activity by this GitHub login
        include_prs: Fetch pull requests
        include_issues: Fetch issues
        include_reviews: Enrich commits and pull requests with review data
        max_results: Page size cap for each primary listing
    """
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    branch: Optional[str] = None
    author: Optional[str] = None
    include_prs: bool = True
    include_issues: bool = True
    include_reviews: bool = True
    max_results: int = 100


@dataclass(frozen=True)
class UserActivityOptions:
    """Inputs for a cross-repository (search based) fetch."""
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    max_results: int = 100
