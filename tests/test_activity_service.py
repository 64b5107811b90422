"""
Unit tests for the ActivityService pipeline
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from recap.analyzer import ActivityService, parse_repository
from recap.exceptions import ActivityFetchError, InvalidInputError
from recap.models import PullRequestBreakdown, RepositoryOptions, UserActivityOptions
from recap.rate_limiter import RateLimiter
from recap.settings import EnrichmentLimits, Settings


def commit_item(sha, message, date='2024-05-05T12:00:00Z', login='octocat'):
    return {
        'sha': sha,
        'author': {'login': login} if login else None,
        'commit': {
            'message': message,
            'author': {'name': 'Mona Lisa', 'email': 'mona@example.com', 'date': date},
            'committer': {'name': 'GitHub', 'date': date},
        },
    }


def pr_item(number, title, state='open', created='2024-05-01T00:00:00Z', merged=None,
            merge_sha=None, login='octocat', labels=()):
    return {
        'number': number,
        'title': title,
        'state': state,
        'user': {'login': login},
        'created_at': created,
        'updated_at': created,
        'merged_at': merged,
        'merge_commit_sha': merge_sha,
        'labels': [{'name': name} for name in labels],
        'html_url': f'https://github.com/acme/widgets/pull/{number}',
    }


def issue_item(number, title, state='open', created='2024-05-01T00:00:00Z', login='octocat', **extra):
    item = {
        'number': number,
        'title': title,
        'state': state,
        'user': {'login': login},
        'created_at': created,
        'labels': [],
        'html_url': f'https://github.com/acme/widgets/issues/{number}',
    }
    item.update(extra)
    return item


class CountingLimiter(RateLimiter):
    """RateLimiter that records how many tasks passed through it."""

    def __init__(self):
        super().__init__(delay_ms=0)
        self.calls = 0

    async def execute(self, task):
        self.calls += 1
        return await super().execute(task)


@pytest.fixture
def api():
    """Create a mocked GitHub API client with empty responses."""
    client = Mock()
    client.list_commits = AsyncMock(return_value=[])
    client.list_pull_requests = AsyncMock(return_value=[])
    client.list_issues = AsyncMock(return_value=[])
    client.list_pull_reviews = AsyncMock(return_value=[])
    client.list_pull_files = AsyncMock(return_value=[])
    client.list_review_comments = AsyncMock(return_value=[])
    client.list_issue_comments = AsyncMock(return_value=[])
    client.search_issues = AsyncMock(return_value=[])
    client.close = AsyncMock()
    return client


@pytest.fixture
def limiter():
    return CountingLimiter()


@pytest.fixture
def service(api, limiter):
    return ActivityService(api_client=api, rate_limiter=limiter)


class TestRepositoryActivity:
    """Test cases for fetch_repository_activity."""

    @pytest.mark.asyncio
    async def test_end_to_end_merge_commit_association(self, service, api):
        """Test the acme/widgets scenario with one merge commit."""
        api.list_commits.return_value = [
            commit_item('merge7', 'Merge pull request from feature branch', date='2024-05-03T10:00:00Z'),
            commit_item('c2', 'Update README', date='2024-05-04T10:00:00Z'),
            commit_item('c3', 'Bump dependencies', date='2024-05-04T11:00:00Z'),
        ]
        api.list_pull_requests.return_value = [
            pr_item(7, 'Add widget caching', state='closed', merged='2024-05-03T10:00:00Z', merge_sha='merge7'),
            pr_item(8, 'Introduce dark mode', state='open', created='2024-05-02T00:00:00Z'),
        ]

        result = await service.fetch_repository_activity('acme/widgets')

        assert result.commits[0].pull_request.number == 7
        assert result.commits[1].pull_request is None
        assert result.commits[2].pull_request is None
        assert result.statistics.total_commits == 3
        assert result.statistics.total_prs == 2
        assert result.summary.pull_requests == PullRequestBreakdown(total=2, open=1, merged=1, closed=0)
        assert result.summary.top_repositories[0].repo == 'acme/widgets'

    @pytest.mark.asyncio
    async def test_every_call_goes_through_limiter(self, service, api, limiter):
        """Test that primary and secondary calls are all rate limited."""
        api.list_commits.return_value = [commit_item('m', 'Merge', date='2024-05-03T10:00:00Z')]
        api.list_pull_requests.return_value = [
            pr_item(7, 'Feature', state='closed', merged='2024-05-03T10:00:00Z', merge_sha='m'),
        ]
        api.list_issues.return_value = [issue_item(12, 'Bug')]

        await service.fetch_repository_activity('acme/widgets')

        # 3 primary + 2 commit enrichment + 3 PR enrichment + 1 issue enrichment
        assert limiter.calls == 9

    @pytest.mark.asyncio
    async def test_statistics_cover_commits_beyond_enrichment_limit(self, service, api):
        """Test that 25 commits with 20 enriched still count as 25."""
        api.list_commits.return_value = [
            commit_item(f'sha{i}', f'Work on #1 part {i}', date='2024-05-05T12:00:00Z') for i in range(25)
        ]
        api.list_pull_requests.return_value = [pr_item(1, 'Big feature')]
        api.list_pull_reviews.return_value = [{'id': 1, 'user': {'login': 'rev'}, 'state': 'APPROVED'}]

        result = await service.fetch_repository_activity('acme/widgets')

        assert result.statistics.total_commits == 25
        assert all(c.pull_request is not None for c in result.commits)
        assert sum(1 for c in result.commits if c.enrichment is not None) == 20
        assert result.commits[20].enrichment is None
        assert result.statistics.total_reviews == 20
        assert len(result.code_reviews) == 20

    @pytest.mark.asyncio
    async def test_pr_enrichment_failure_is_isolated(self, service, api):
        """Test that a failing PR keeps its place, un-enriched, and later PRs are enriched."""
        api.list_pull_requests.return_value = [pr_item(1, 'One'), pr_item(2, 'Two'), pr_item(3, 'Three')]

        def reviews(owner, repo, number):
            if number == 2:
                raise httpx.ConnectError("connection reset")
            return [{'id': number, 'user': {'login': 'rev'}, 'state': 'COMMENTED'}]

        api.list_pull_reviews.side_effect = reviews
        api.list_pull_files.return_value = [{'filename': 'a.py', 'additions': 4, 'deletions': 1, 'changes': 5}]

        result = await service.fetch_repository_activity('acme/widgets')

        assert [pr.number for pr in result.pull_requests] == [1, 2, 3]
        assert result.pull_requests[0].enrichment is not None
        assert result.pull_requests[1].enrichment is None
        assert result.pull_requests[2].enrichment is not None
        assert result.pull_requests[2].enrichment.lines_added == 4
        assert result.statistics.total_prs == 3

    @pytest.mark.asyncio
    async def test_pr_enrichment_contents(self, service, api):
        """Test PR enrichment fields and the review comment cap."""
        api.list_pull_requests.return_value = [pr_item(5, 'Refactor', labels=('refactor',))]
        api.list_pull_files.return_value = [
            {'filename': 'a.py', 'additions': 10, 'deletions': 2, 'changes': 12, 'patch': 'x' * 800},
            {'filename': 'b.py', 'additions': 1, 'deletions': 7, 'changes': 8},
        ]
        api.list_review_comments.return_value = [
            {'user': {'login': 'rev'}, 'body': f'comment {i}', 'created_at': '2024-05-02T00:00:00Z'}
            for i in range(15)
        ]

        result = await service.fetch_repository_activity('acme/widgets')
        enrichment = result.pull_requests[0].enrichment

        assert enrichment.repository == 'acme/widgets'
        assert enrichment.files_changed == 2
        assert enrichment.lines_added == 11
        assert enrichment.lines_deleted == 9
        assert len(enrichment.files[0].patch) == 500
        assert len(enrichment.comments) == 10

    @pytest.mark.asyncio
    async def test_issue_enrichment_caps_comments(self, service, api):
        """Test that issue comments are capped at five."""
        api.list_issues.return_value = [issue_item(12, 'Crash')]
        api.list_issue_comments.return_value = [{'user': {'login': 'u'}, 'body': 'same'} for _ in range(8)]

        result = await service.fetch_repository_activity('acme/widgets')

        assert result.issues[0].enrichment.comment_count == 5

    @pytest.mark.asyncio
    async def test_enrichment_limits_are_configurable(self, api, limiter):
        """Test that only the configured number of PRs is enriched."""
        service = ActivityService(
            settings=Settings(limits=EnrichmentLimits(pull_requests=1)),
            api_client=api,
            rate_limiter=limiter
        )
        api.list_pull_requests.return_value = [pr_item(1, 'One'), pr_item(2, 'Two')]

        result = await service.fetch_repository_activity('acme/widgets')

        assert result.pull_requests[0].enrichment is not None
        assert result.pull_requests[1].enrichment is None

    @pytest.mark.asyncio
    async def test_client_side_filters(self, service, api):
        """Test author and creation-time post-filtering, and PR exclusion from issues."""
        api.list_pull_requests.return_value = [
            pr_item(1, 'Mine, recent', created='2024-05-10T00:00:00Z'),
            pr_item(2, 'Someone else', created='2024-05-10T00:00:00Z', login='hubot'),
            pr_item(3, 'Mine, too old', created='2024-04-01T00:00:00Z'),
            pr_item(4, 'Mine, too new', created='2024-06-10T00:00:00Z'),
        ]
        api.list_issues.return_value = [
            issue_item(10, 'Real issue', created='2024-05-10T00:00:00Z'),
            issue_item(11, 'Actually a PR', created='2024-05-10T00:00:00Z', pull_request={'url': 'x'}),
            issue_item(12, 'Updated recently, created long ago', created='2023-01-01T00:00:00Z'),
        ]
        options = RepositoryOptions(
            since=datetime(2024, 5, 1, tzinfo=timezone.utc),
            until=datetime(2024, 5, 31, tzinfo=timezone.utc),
            author='octocat',
            include_reviews=False
        )

        result = await service.fetch_repository_activity('acme/widgets', options)

        assert [pr.number for pr in result.pull_requests] == [1]
        assert [issue.number for issue in result.issues] == [10]
        api.list_issues.assert_awaited_once()
        assert api.list_issues.await_args.kwargs['creator'] == 'octocat'

    @pytest.mark.asyncio
    async def test_inclusion_flags(self, service, api):
        """Test that disabled listings and enrichment are never requested."""
        api.list_commits.return_value = [commit_item('m', 'Merge')]
        options = RepositoryOptions(include_prs=False, include_issues=False, include_reviews=False)

        result = await service.fetch_repository_activity('acme/widgets', options)

        api.list_pull_requests.assert_not_called()
        api.list_issues.assert_not_called()
        api.list_pull_reviews.assert_not_called()
        assert result.statistics.total_commits == 1

    @pytest.mark.asyncio
    async def test_primary_failure_is_wrapped(self, service, api):
        """Test that a failing primary fetch aborts with one wrapped error."""
        cause = RuntimeError("boom")
        api.list_pull_requests.side_effect = cause

        with pytest.raises(ActivityFetchError) as exc_info:
            await service.fetch_repository_activity('acme/widgets')

        assert str(exc_info.value) == "Failed to fetch repository data: boom"
        assert exc_info.value.__cause__ is cause

    @pytest.mark.asyncio
    async def test_invalid_repository_rejected_before_network(self, service, api, limiter):
        """Test that malformed identifiers never reach the API."""
        for repository in ['widgets', 'acme/widgets/extra', '', 'acme/ widgets', '../..', 'acme/..', './widgets']:
            with pytest.raises(InvalidInputError):
                await service.fetch_repository_activity(repository)

        api.list_commits.assert_not_called()
        assert limiter.calls == 0

    @pytest.mark.asyncio
    async def test_inverted_window_rejected(self, service, api):
        """Test that since later than until is rejected."""
        options = RepositoryOptions(
            since=datetime(2024, 6, 1, tzinfo=timezone.utc),
            until=datetime(2024, 5, 1, tzinfo=timezone.utc)
        )
        with pytest.raises(InvalidInputError):
            await service.fetch_repository_activity('acme/widgets', options)
        api.list_commits.assert_not_called()

    def test_parse_repository(self):
        """Test splitting owner/name."""
        assert parse_repository('acme/widgets') == ('acme', 'widgets')
        assert parse_repository(' acme/my.repo-2 ') == ('acme', 'my.repo-2')


class TestUserActivity:
    """Test cases for fetch_user_activity (search mode)."""

    @pytest.mark.asyncio
    async def test_search_mode(self, service, api):
        """Test splitting, enrichment and summary of search results."""
        pr_result = {
            'number': 3, 'title': 'Add API', 'state': 'closed',
            'user': {'login': 'octocat'}, 'created_at': '2024-05-02T00:00:00Z',
            'pull_request': {'merged_at': '2024-05-03T00:00:00Z'},
            'repository_url': 'https://api.github.com/repos/acme/gadgets',
            'labels': [{'name': 'feature'}],
        }
        issue_result = issue_item(4, 'Broken docs', repository_url='https://api.github.com/repos/acme/widgets')
        stray_pr = dict(pr_result, number=99)

        def search(query, per_page=100):
            return [pr_result] if 'is:pr' in query else [issue_result, stray_pr]

        api.search_issues.side_effect = search
        api.list_pull_files.return_value = [{'filename': 'api.py', 'additions': 30, 'deletions': 0, 'changes': 30}]
        api.list_issue_comments.return_value = [{'user': {'login': 'u'}, 'body': 'b'} for _ in range(6)]

        options = UserActivityOptions(since=datetime(2024, 5, 1, tzinfo=timezone.utc), max_results=20)
        result = await service.fetch_user_activity('octocat', options)

        queries = sorted(call.args[0] for call in api.search_issues.await_args_list)
        assert queries == ['author:octocat is:issue created:>=2024-05-01',
                           'author:octocat is:pr created:>=2024-05-01']
        assert result.commits == ()
        assert [pr.number for pr in result.pull_requests] == [3]
        assert [issue.number for issue in result.issues] == [4]
        assert result.pull_requests[0].enrichment.repository == 'acme/gadgets'
        assert result.pull_requests[0].enrichment.lines_added == 30
        assert result.issues[0].enrichment.comment_count == 3
        assert result.summary.pull_requests == PullRequestBreakdown(total=1, open=0, merged=1, closed=0)
        assert {r.repo for r in result.summary.top_repositories} == {'acme/gadgets', 'acme/widgets'}
        assert result.statistics.top_labels[0].label == 'feature'

    @pytest.mark.asyncio
    async def test_search_results_without_repository_not_enriched(self, service, api):
        """Test that results lacking a repository reference stay un-enriched."""
        api.search_issues.side_effect = lambda query, per_page=100: (
            [{'number': 1, 'title': 'x', 'state': 'open', 'pull_request': {}}] if 'is:pr' in query else []
        )

        result = await service.fetch_user_activity('octocat')

        assert result.pull_requests[0].enrichment is None
        api.list_pull_reviews.assert_not_called()

    @pytest.mark.asyncio
    async def test_search_failure_is_wrapped(self, service, api):
        """Test that a failing search aborts with one wrapped error."""
        api.search_issues.side_effect = RuntimeError("search down")

        with pytest.raises(ActivityFetchError, match="Failed to fetch user activity: search down"):
            await service.fetch_user_activity('octocat')

    @pytest.mark.asyncio
    async def test_invalid_username_rejected(self, service, api):
        """Test that missing or malformed usernames never reach the API."""
        for username in ['', '   ', 'two words', 'author:evil']:
            with pytest.raises(InvalidInputError):
                await service.fetch_user_activity(username)
        api.search_issues.assert_not_called()


class TestServiceLifecycle:
    """Test cases for construction and cleanup."""

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self, api):
        """Test that leaving the context closes the API client."""
        async with ActivityService(api_client=api, rate_limiter=RateLimiter(delay_ms=0)):
            pass
        api.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_default_limiter_uses_settings(self):
        """Test that a service builds its own limiter from settings."""
        service = ActivityService(token='test_token', settings=Settings(rate_limit_delay_ms=250, task_timeout=5))
        assert service.rate_limiter.delay_ms == 250
        assert service.rate_limiter.task_timeout == 5
        assert service.api_client.token == 'test_token'
        await service.close()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
