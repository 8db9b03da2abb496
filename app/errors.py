"""Exception taxonomy shared by services and the HTTP layer."""

from __future__ import annotations

from typing import Optional


class PortfolioError(Exception):
    """Base class for application errors."""


class GitHubRequestError(PortfolioError):
    """A GitHub call whose failure aborts the caller (repo metadata, repo list, user)."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SummaryGenerationError(PortfolioError):
    """The LLM provider failed to produce a summary."""


class AuthenticationError(PortfolioError):
    """Credentials or session token were rejected."""


class BlogPostNotFoundError(PortfolioError):
    def __init__(self, slug: str) -> None:
        super().__init__(f"Blog post not found: {slug}")
        self.slug = slug


class DuplicateSlugError(PortfolioError):
    def __init__(self, slug: str) -> None:
        super().__init__(f"A blog post with slug '{slug}' already exists")
        self.slug = slug


class BlogValidationError(PortfolioError):
    """A blog draft is missing required fields."""

    def __init__(self, fields: list[str]) -> None:
        super().__init__(f"Missing required fields: {', '.join(fields)}")
        self.fields = fields


class FrontmatterError(PortfolioError):
    """Markdown does not carry a parseable frontmatter block."""
