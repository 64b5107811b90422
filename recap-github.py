#!/usr/bin/env python3
"""
Recap GitHub Activity
Fetches enriched GitHub activity for a repository or a user and writes it as JSON.
"""

import os
import sys
import json
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from dotenv import load_dotenv

from recap.analyzer import ActivityService
from recap.exceptions import RecapError
from recap.models import RepositoryOptions, UserActivityOptions
from recap.settings import Settings
from recap.timeutils import parse_date, parse_timeframe

# Configure logging (can be overridden by LOG_LEVEL environment variable)
log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format='%(asctime)s %(levelname)s: %(message)s',
    datefmt='%m/%d/%Y %I:%M:%S %p',
    stream=sys.stderr
)


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def resolve_window(now: Optional[datetime] = None) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Read the time window from TIMEFRAME, or SINCE/UNTIL.

    TIMEFRAME (e.g. '2w') wins over SINCE/UNTIL when both are set.

    Raises:
        ValueError: If a value cannot be parsed
    """
    timeframe = os.environ.get('TIMEFRAME', '').strip()
    if timeframe:
        now = now or datetime.now(timezone.utc)
        return now - parse_timeframe(timeframe), now

    since_env = os.environ.get('SINCE', '').strip()
    until_env = os.environ.get('UNTIL', '').strip()
    since = parse_date(since_env) if since_env else None
    until = parse_date(until_env) if until_env else None
    return since, until


def resolve_max_results(default: int = 100) -> int:
    max_results_env = os.environ.get('MAX_RESULTS')
    if not max_results_env:
        return default
    try:
        return int(max_results_env)
    except ValueError:
        logging.warning(f"Invalid MAX_RESULTS value '{max_results_env}', using default: {default}")
        return default


async def run(repo: Optional[str], username: Optional[str], since, until, max_results: int):
    """Run one pipeline invocation and return the result as a dict."""
    async with ActivityService(settings=Settings.from_env()) as service:
        if repo:
            options = RepositoryOptions(
                since=since,
                until=until,
                branch=os.environ.get('BRANCH') or None,
                author=os.environ.get('AUTHOR') or None,
                max_results=max_results
            )
            result = await service.fetch_repository_activity(repo, options)
        else:
            options = UserActivityOptions(since=since, until=until, max_results=max_results)
            result = await service.fetch_user_activity(username, options)
    return result.to_dict()


def main():
    """Main entry point for the script."""
    # Load environment variables from .env file if it exists
    load_dotenv()

    repo = os.environ.get('GITHUB_REPO', '').strip()
    username = os.environ.get('GITHUB_USERNAME', '').strip()
    if not repo and not username:
        repo = input("Repository (owner/repo), or press Enter to use a username: ").strip()
        if not repo:
            username = input("GitHub username: ").strip()

    if not repo and not username:
        logging.error("A repository or a username is required")
        sys.exit(1)

    try:
        since, until = resolve_window()
    except ValueError as e:
        logging.error(f"Invalid time window: {e}")
        sys.exit(1)

    try:
        data = asyncio.run(run(repo, username, since, until, resolve_max_results()))
    except RecapError as e:
        logging.error(str(e))
        sys.exit(1)

    output = json.dumps(data, indent=2, default=_json_default)
    output_file = os.environ.get('OUTPUT_FILE')
    if output_file:
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(output)
        logging.info(f"Wrote activity data to {output_file}")
    else:
        print(output)


if __name__ == "__main__":
    main()
