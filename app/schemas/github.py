"""GitHub payload models used by the project showcase."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _GitHubModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class GitHubLicense(_GitHubModel):
    key: str
    name: str
    url: Optional[str] = None


class GitHubRepo(_GitHubModel):
    """Immutable snapshot of a repository at fetch time."""

    id: int
    name: str
    full_name: str = ""
    html_url: str = ""
    description: Optional[str] = None
    fork: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    pushed_at: Optional[str] = None
    homepage: Optional[str] = None
    size: int = 0
    stargazers_count: int = 0
    watchers_count: int = 0
    language: Optional[str] = None
    forks_count: int = 0
    archived: bool = False
    disabled: bool = False
    open_issues_count: int = 0
    license: Optional[GitHubLicense] = None
    topics: list[str] = Field(default_factory=list)
    visibility: str = "public"
    default_branch: str = "main"


class GitHubUser(_GitHubModel):
    login: str
    id: int
    avatar_url: str = ""
    html_url: str = ""
    name: Optional[str] = None
    company: Optional[str] = None
    blog: Optional[str] = None
    location: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    public_repos: int = 0
    public_gists: int = 0
    followers: int = 0
    following: int = 0


class CommitStat(_GitHubModel):
    """Number of commits authored on one calendar day (UTC, YYYY-MM-DD)."""

    date: str
    count: int


class ProjectData(BaseModel):
    repo: GitHubRepo
    readme_content: Optional[str] = None
    commit_stats: list[CommitStat] = Field(default_factory=list)
