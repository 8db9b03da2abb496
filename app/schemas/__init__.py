"""Pydantic models exchanged between services and the API"""

from app.schemas.blog import BlogPost, BlogPostDraft, BlogPostPatch
from app.schemas.github import CommitStat, GitHubLicense, GitHubRepo, GitHubUser, ProjectData

__all__ = [
    "BlogPost",
    "BlogPostDraft",
    "BlogPostPatch",
    "CommitStat",
    "GitHubLicense",
    "GitHubRepo",
    "GitHubUser",
    "ProjectData",
]
