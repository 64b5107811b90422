"""Async GitHub REST API client."""

import os
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from .timeutils import format_timestamp

GITHUB_API_URL = 'https://api.github.com'
MAX_PER_PAGE = 100


class GitHubAPIClient:
    """Thin async wrapper around the GitHub read endpoints used by the pipeline.

    Every method issues exactly one request and returns the decoded JSON.
    Rate limiting is the caller's job (see RateLimiter).
    """

    def __init__(self, token: str = None, base_url: str = GITHUB_API_URL,
                 timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the GitHub API client.

        Args:
            token: GitHub personal access token for authentication
            base_url: API root, override for GitHub Enterprise
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        # Use provided token or fall back to environment variable
        self.token = token or os.environ.get('GITHUB_TOKEN')

        headers = {
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': '2022-11-28',
        }
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
            logging.info("Initialized GitHub API client with token")
        else:
            logging.warning("No GitHub token provided. Rate limits will be much lower.")
            logging.warning("Set GITHUB_TOKEN environment variable or pass token as argument.")

        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip('/'),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> 'GitHubAPIClient':
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        await self.client.aclose()

    async def get(self, path: str, params: Dict = None) -> Any:
        """Make a single GET request and return the decoded JSON body.

        Args:
            path: Endpoint path relative to the API root
            params: Query parameters; None values are dropped

        Raises:
            httpx.HTTPStatusError: On any non-2xx response
        """
        params = {k: v for k, v in (params or {}).items() if v is not None}
        logging.debug(f"GET {path} {params}")
        response = await self.client.get(path, params=params)

        if response.status_code == 403 and response.headers.get('X-RateLimit-Remaining') == '0':
            logging.error(f"Rate limit exceeded. Response: {response.text}")

        response.raise_for_status()
        return response.json()

    async def list_commits(self, owner: str, repo: str, sha: str = None,
                           since: Optional[datetime] = None, until: Optional[datetime] = None,
                           author: str = None, per_page: int = MAX_PER_PAGE) -> List[Dict]:
        return await self.get(f'/repos/{owner}/{repo}/commits', {
            'sha': sha,
            'since': format_timestamp(since) if since else None,
            'until': format_timestamp(until) if until else None,
            'author': author,
            'per_page': min(per_page, MAX_PER_PAGE),
        })

    async def list_pull_requests(self, owner: str, repo: str, state: str = 'all',
                                 per_page: int = MAX_PER_PAGE) -> List[Dict]:
        """List pull requests, most recently updated first."""
        return await self.get(f'/repos/{owner}/{repo}/pulls', {
            'state': state,
            'sort': 'updated',
            'direction': 'desc',
            'per_page': min(per_page, MAX_PER_PAGE),
        })

    async def list_issues(self, owner: str, repo: str, state: str = 'all', creator: str = None,
                          since: Optional[datetime] = None, per_page: int = MAX_PER_PAGE) -> List[Dict]:
        """List issues, most recently updated first.

        Note that GitHub's ``since`` filters on update time and that the
        response also contains pull requests.
        """
        return await self.get(f'/repos/{owner}/{repo}/issues', {
            'state': state,
            'sort': 'updated',
            'direction': 'desc',
            'creator': creator,
            'since': format_timestamp(since) if since else None,
            'per_page': min(per_page, MAX_PER_PAGE),
        })

    async def list_pull_reviews(self, owner: str, repo: str, number: int) -> List[Dict]:
        return await self.get(f'/repos/{owner}/{repo}/pulls/{number}/reviews')

    async def list_pull_files(self, owner: str, repo: str, number: int) -> List[Dict]:
        return await self.get(f'/repos/{owner}/{repo}/pulls/{number}/files')

    async def list_review_comments(self, owner: str, repo: str, number: int) -> List[Dict]:
        return await self.get(f'/repos/{owner}/{repo}/pulls/{number}/comments')

    async def list_issue_comments(self, owner: str, repo: str, number: int) -> List[Dict]:
        return await self.get(f'/repos/{owner}/{repo}/issues/{number}/comments')

    async def search_issues(self, query: str, per_page: int = MAX_PER_PAGE) -> List[Dict]:
        """Search issues and pull requests across repositories.

        Args:
            query: Search query, e.g. 'author:octocat is:pr created:>=2024-01-01'
            per_page: Maximum number of results

        Returns:
            The 'items' of the search response
        """
        data = await self.get('/search/issues', {
            'q': query,
            'sort': 'updated',
            'order': 'desc',
            'per_page': min(per_page, MAX_PER_PAGE),
            'advanced_search': 'true',
        })
        return data.get('items', [])
