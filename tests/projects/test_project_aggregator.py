from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from app.clients.contracts import FetchResult, FetchState
from app.errors import GitHubRequestError
from app.schemas.github import CommitStat
from app.services.github_projects import GitHubProjectService, process_commit_stats


def repo_payload(name: str, **overrides: Any) -> dict[str, Any]:
    payload = {
        "id": abs(hash(name)) % 100000,
        "name": name,
        "full_name": f"octo/{name}",
        "html_url": f"https://github.com/octo/{name}",
        "description": f"{name} description",
        "fork": False,
        "updated_at": "2026-01-01T00:00:00Z",
        "stargazers_count": 3,
        "forks_count": 1,
        "open_issues_count": 0,
        "language": "Python",
        "topics": [],
        "unexpected_field": "ignored",
    }
    payload.update(overrides)
    return payload


def commit_payload(authored_at: str) -> dict[str, Any]:
    return {"sha": authored_at, "commit": {"author": {"name": "octo", "date": authored_at}}}


@dataclass
class FakeGitHubClient:
    repos: dict[str, dict[str, Any]] = field(default_factory=dict)
    repo_list: FetchResult[list[dict[str, Any]]] | None = None
    readmes: dict[str, str] = field(default_factory=dict)
    commits: dict[str, FetchResult[list[dict[str, Any]]]] = field(default_factory=dict)
    readme_error: Exception | None = None
    readme_refs: list[str] = field(default_factory=list)

    async def get_repo(self, _owner: str, repo: str) -> FetchResult[dict[str, Any]]:
        if repo not in self.repos:
            return FetchResult(state=FetchState.FAILED, status_code=404, error="Not Found")
        return FetchResult(state=FetchState.OK, data=self.repos[repo])

    async def list_user_repos(self, _username: str, **_: Any) -> FetchResult[list[dict[str, Any]]]:
        if self.repo_list is not None:
            return self.repo_list
        return FetchResult(state=FetchState.OK, data=list(self.repos.values()))

    async def get_readme(self, _owner: str, _repo: str, *, ref: str) -> FetchResult[str]:
        self.readme_refs.append(ref)
        if self.readme_error is not None:
            raise self.readme_error
        if ref not in self.readmes:
            return FetchResult(state=FetchState.FAILED, status_code=404, error="Not Found")
        return FetchResult(state=FetchState.OK, data=self.readmes[ref])

    async def list_commits(self, _owner: str, repo: str, **_: Any) -> FetchResult[list[dict[str, Any]]]:
        return self.commits.get(repo, FetchResult(state=FetchState.FAILED, status_code=409, error="Git Repository is empty."))


def test_process_commit_stats_groups_by_utc_day_and_sorts_ascending() -> None:
    commits = [
        commit_payload("2026-02-11T10:00:00Z"),
        commit_payload("2026-02-10T23:30:00-02:00"),  # 2026-02-11 in UTC
        commit_payload("2026-02-09T08:00:00Z"),
        commit_payload("2026-02-11T12:00:00Z"),
    ]

    stats = process_commit_stats(commits)

    assert stats == [
        CommitStat(date="2026-02-09", count=1),
        CommitStat(date="2026-02-11", count=3),
    ]


def test_process_commit_stats_is_idempotent_and_preserves_total() -> None:
    commits = [commit_payload(f"2026-01-{day:02d}T09:00:00Z") for day in (5, 3, 5, 1, 3, 5)]

    first = process_commit_stats(commits)
    second = process_commit_stats(commits)

    assert first == second
    assert sum(stat.count for stat in first) == len(commits)
    assert [stat.date for stat in first] == sorted(stat.date for stat in first)


def test_process_commit_stats_skips_commits_without_dates() -> None:
    commits = [commit_payload("2026-01-01T00:00:00Z"), {"sha": "x", "commit": {}}, {"sha": "y"}]

    assert process_commit_stats(commits) == [CommitStat(date="2026-01-01", count=1)]


@pytest.mark.asyncio
async def test_fetch_project_data_assembles_all_three_sources() -> None:
    client = FakeGitHubClient(
        repos={"demo": repo_payload("demo")},
        readmes={"main": "# Demo"},
        commits={
            "demo": FetchResult(
                state=FetchState.OK,
                data=[commit_payload("2026-02-01T00:00:00Z"), commit_payload("2026-02-01T05:00:00Z")],
            )
        },
    )
    service = GitHubProjectService(client, username="octo")

    project = await service.fetch_project_data("demo")

    assert project.repo.name == "demo"
    assert project.readme_content == "# Demo"
    assert project.commit_stats == [CommitStat(date="2026-02-01", count=2)]


@pytest.mark.asyncio
async def test_fetch_project_data_tolerates_readme_and_commit_failures() -> None:
    client = FakeGitHubClient(
        repos={"demo": repo_payload("demo")},
        readme_error=RuntimeError("socket closed"),
    )
    service = GitHubProjectService(client, username="octo")

    project = await service.fetch_project_data("demo")

    assert project.repo.name == "demo"
    assert project.readme_content is None
    assert project.commit_stats == []


@pytest.mark.asyncio
async def test_fetch_project_data_raises_when_repo_metadata_fails() -> None:
    client = FakeGitHubClient(readmes={"main": "# Demo"})
    service = GitHubProjectService(client, username="octo")

    with pytest.raises(GitHubRequestError) as excinfo:
        await service.fetch_project_data("missing")

    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_fetch_readme_falls_back_to_master_then_gives_up() -> None:
    client = FakeGitHubClient(readmes={"master": "legacy readme"})
    service = GitHubProjectService(client, username="octo")

    assert await service.fetch_readme("demo") == "legacy readme"
    assert client.readme_refs == ["main", "master"]

    client.readmes.clear()
    assert await service.fetch_readme("demo") is None


def test_fetch_repos_excludes_forks_by_default() -> None:
    client = FakeGitHubClient(
        repos={
            "own": repo_payload("own"),
            "forked": repo_payload("forked", fork=True),
        }
    )
    service = GitHubProjectService(client, username="octo")

    without_forks = asyncio.run(service.fetch_repos())
    with_forks = asyncio.run(service.fetch_repos(exclude_forks=False))

    assert [repo.name for repo in without_forks] == ["own"]
    assert {repo.name for repo in with_forks} == {"own", "forked"}


def test_fetch_repos_raises_on_listing_failure() -> None:
    client = FakeGitHubClient(repo_list=FetchResult(state=FetchState.FAILED, status_code=403, error="rate limited"))
    service = GitHubProjectService(client, username="octo")

    with pytest.raises(GitHubRequestError):
        asyncio.run(service.fetch_repos())


def test_featured_repos_prefer_featured_topic() -> None:
    client = FakeGitHubClient(
        repos={
            "alpha": repo_payload("alpha", topics=["featured", "react"]),
            "beta": repo_payload("beta", topics=["python"]),
        }
    )
    service = GitHubProjectService(client, username="octo")

    featured = asyncio.run(service.fetch_featured_repos())

    assert [repo.name for repo in featured] == ["alpha"]


def test_featured_repos_fall_back_to_most_recently_updated() -> None:
    client = FakeGitHubClient(
        repos={
            "old": repo_payload("old", updated_at="2024-01-01T00:00:00Z"),
            "newest": repo_payload("newest", updated_at="2026-03-01T00:00:00Z"),
            "middle": repo_payload("middle", updated_at="2025-06-01T00:00:00Z"),
            "recent": repo_payload("recent", updated_at="2026-01-01T00:00:00Z"),
            "fork": repo_payload("fork", fork=True, updated_at="2026-04-01T00:00:00Z"),
        }
    )
    service = GitHubProjectService(client, username="octo", featured_fallback_count=3)

    featured = asyncio.run(service.fetch_featured_repos())

    assert [repo.name for repo in featured] == ["newest", "recent", "middle"]


def test_fetch_repos_by_topics_matches_any_topic() -> None:
    client = FakeGitHubClient(
        repos={
            "web": repo_payload("web", topics=["react"]),
            "ml": repo_payload("ml", topics=["pytorch"]),
            "misc": repo_payload("misc", topics=[]),
        }
    )
    service = GitHubProjectService(client, username="octo")

    matched = asyncio.run(service.fetch_repos_by_topics(["react", "pytorch"]))

    assert {repo.name for repo in matched} == {"web", "ml"}
