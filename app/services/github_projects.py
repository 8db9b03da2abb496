"""GitHub-backed project showcase: repo listing, project aggregation and commit stats."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import timezone
from typing import Any, Iterable, Optional, Sequence

from dateutil import parser as date_parser
from pydantic import ValidationError

from app.clients.contracts import FetchResult, FetchState
from app.clients.logging_utils import sanitize_log_extra
from app.config.settings import settings
from app.errors import GitHubRequestError
from app.schemas.github import CommitStat, GitHubRepo, GitHubUser, ProjectData

logger = logging.getLogger(__name__)


def process_commit_stats(commits: Iterable[dict[str, Any]]) -> list[CommitStat]:
    """Group commits by authored calendar day (UTC) and return ascending counts."""

    counts: Counter[str] = Counter()
    for commit in commits:
        raw_date = ((commit.get("commit") or {}).get("author") or {}).get("date")
        if not raw_date:
            continue
        try:
            authored_at = date_parser.isoparse(raw_date)
        except (ValueError, OverflowError):
            logger.warning("Skipping commit with unparseable date", extra={"raw_date": raw_date})
            continue
        if authored_at.tzinfo is not None:
            authored_at = authored_at.astimezone(timezone.utc)
        counts[authored_at.date().isoformat()] += 1

    return [CommitStat(date=day, count=counts[day]) for day in sorted(counts)]


class GitHubProjectService:
    """Read-only view of one GitHub account's repositories."""

    def __init__(
        self,
        client: Any,
        *,
        username: Optional[str] = None,
        readme_branches: Optional[Sequence[str]] = None,
        per_page: Optional[int] = None,
        featured_topic: Optional[str] = None,
        featured_fallback_count: Optional[int] = None,
    ) -> None:
        self._client = client
        self.username = username or settings.GITHUB_USERNAME
        self._readme_branches = tuple(readme_branches or settings.GITHUB_README_BRANCHES)
        self._per_page = per_page or settings.GITHUB_PER_PAGE
        self._featured_topic = featured_topic or settings.FEATURED_TOPIC
        self._featured_fallback_count = featured_fallback_count or settings.FEATURED_FALLBACK_COUNT

    async def fetch_user(self) -> GitHubUser:
        result = await self._client.get_user(self.username)
        payload = self._require(result, what=f"user {self.username}")
        return GitHubUser.model_validate(payload)

    async def fetch_repos(self, exclude_forks: bool = True) -> list[GitHubRepo]:
        result = await self._client.list_user_repos(
            self.username,
            sort="updated",
            direction="desc",
            per_page=self._per_page,
        )
        if result.state == FetchState.EMPTY:
            return []
        payload = self._require(result, what=f"repositories of {self.username}")

        repos = self._parse_repos(payload)
        if exclude_forks:
            repos = [repo for repo in repos if not repo.fork]
        return repos

    async def fetch_repo(self, repo_name: str) -> GitHubRepo:
        result = await self._client.get_repo(self.username, repo_name)
        payload = self._require(result, what=f"repository {repo_name}")
        try:
            return GitHubRepo.model_validate(payload)
        except ValidationError as exc:
            raise GitHubRequestError(f"Malformed repository payload for {repo_name}") from exc

    async def fetch_repos_by_topics(self, topics: Sequence[str], exclude_forks: bool = True) -> list[GitHubRepo]:
        wanted = set(topics)
        repos = await self.fetch_repos(exclude_forks)
        return [repo for repo in repos if wanted.intersection(repo.topics)]

    async def fetch_featured_repos(self) -> list[GitHubRepo]:
        """Repos tagged with the featured topic, else the most recently updated ones."""

        featured = await self.fetch_repos_by_topics([self._featured_topic])
        if featured:
            return featured

        repos = await self.fetch_repos(exclude_forks=True)
        repos.sort(key=lambda repo: _sortable_timestamp(repo.updated_at), reverse=True)
        return repos[: self._featured_fallback_count]

    async def fetch_commits(self, repo_name: str, per_page: int = 100) -> list[dict[str, Any]]:
        result = await self._client.list_commits(self.username, repo_name, per_page=per_page, page=1)
        if result.state == FetchState.EMPTY:
            return []
        payload = self._require(result, what=f"commits of {repo_name}")
        return [commit for commit in payload if isinstance(commit, dict)]

    async def fetch_commit_stats(self, repo_name: str) -> list[CommitStat]:
        commits = await self.fetch_commits(repo_name)
        return process_commit_stats(commits)

    async def fetch_readme(self, repo_name: str, branch: str = "main") -> Optional[str]:
        """Return decoded README text, trying the fallback branches; never raises."""

        branches = [branch] + [candidate for candidate in self._readme_branches if candidate != branch]
        for ref in branches:
            try:
                result = await self._client.get_readme(self.username, repo_name, ref=ref)
            except Exception as exc:
                logger.warning(
                    "README fetch raised",
                    extra=sanitize_log_extra(repo_name=repo_name, ref=ref, error=str(exc)),
                )
                continue
            if result.state == FetchState.OK and result.data:
                return result.data

        logger.info(
            "No README found",
            extra=sanitize_log_extra(repo_name=repo_name, branches=branches),
        )
        return None

    async def fetch_project_data(self, repo_name: str) -> ProjectData:
        """Fetch repo metadata, README and commit stats concurrently.

        README and commit failures degrade to `None` / `[]`; a repo metadata
        failure raises `GitHubRequestError` once all three fetches have settled.
        """

        repo_result, readme_result, stats_result = await asyncio.gather(
            self.fetch_repo(repo_name),
            self.fetch_readme(repo_name),
            self.fetch_commit_stats(repo_name),
            return_exceptions=True,
        )

        if isinstance(repo_result, BaseException):
            logger.error(
                "Failed to fetch project data",
                extra=sanitize_log_extra(repo_name=repo_name, error=str(repo_result)),
            )
            raise repo_result

        readme_content: Optional[str] = None
        if isinstance(readme_result, BaseException):
            logger.warning(
                "README unavailable, continuing without it",
                extra=sanitize_log_extra(repo_name=repo_name, error=str(readme_result)),
            )
        else:
            readme_content = readme_result

        commit_stats: list[CommitStat] = []
        if isinstance(stats_result, BaseException):
            logger.warning(
                "Commit stats unavailable, continuing with empty history",
                extra=sanitize_log_extra(repo_name=repo_name, error=str(stats_result)),
            )
        else:
            commit_stats = stats_result

        return ProjectData(repo=repo_result, readme_content=readme_content, commit_stats=commit_stats)

    @staticmethod
    def _require(result: FetchResult[Any], *, what: str) -> Any:
        if result.state != FetchState.OK:
            message = result.error or f"GitHub returned no data for {what}"
            raise GitHubRequestError(f"Failed to fetch {what}: {message}", status_code=result.status_code)
        return result.data

    @staticmethod
    def _parse_repos(payload: Any) -> list[GitHubRepo]:
        repos: list[GitHubRepo] = []
        for item in payload if isinstance(payload, list) else []:
            try:
                repos.append(GitHubRepo.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed repository payload", extra={"error": str(exc)})
        return repos


def _sortable_timestamp(raw: Optional[str]) -> float:
    if not raw:
        return 0.0
    try:
        return date_parser.isoparse(raw).timestamp()
    except (ValueError, OverflowError):
        return 0.0
