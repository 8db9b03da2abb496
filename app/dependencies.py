"""Service container and FastAPI dependencies."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.clients.github import GitHubClient
from app.clients.openrouter import OpenRouterClient
from app.config.database import SessionLocal, init_db
from app.config.settings import settings
from app.errors import AuthenticationError
from app.services.auth import AdminUser, AuthService
from app.services.blog_store import BlogStore, SQLAlchemyBlogRepository
from app.services.github_projects import GitHubProjectService
from app.services.state_store import StateStore
from app.services.summarizer import ProjectSummarizer
from app.services.summary_cache import SummaryCache, SummaryService

logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Services:
    """Everything the API needs, built once per application."""

    projects: GitHubProjectService
    summaries: SummaryService
    blog: BlogStore
    auth: AuthService
    state: StateStore
    github_client: Optional[Any] = None
    llm_client: Optional[Any] = None

    async def aclose(self) -> None:
        for client in (self.github_client, self.llm_client):
            if client is not None and hasattr(client, "aclose"):
                await client.aclose()


def build_services() -> Services:
    """Wire the default runtime: GitHub + OpenRouter clients, SQL-backed blog."""

    init_db()

    github_client = GitHubClient()
    llm_client = OpenRouterClient()
    state = StateStore()

    projects = GitHubProjectService(github_client)
    summaries = SummaryService(ProjectSummarizer(llm_client), SummaryCache(), projects=projects)
    blog = BlogStore(SQLAlchemyBlogRepository(SessionLocal))
    if settings.BLOG_SEED_DEFAULT_POSTS:
        blog.seed_defaults()

    return Services(
        projects=projects,
        summaries=summaries,
        blog=blog,
        auth=AuthService(state_store=state),
        state=state,
        github_client=github_client,
        llm_client=llm_client,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_optional_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: Services = Depends(get_services),
) -> Optional[AdminUser]:
    if credentials is None:
        return None
    try:
        return services.auth.verify(credentials.credentials)
    except AuthenticationError:
        return None


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: Services = Depends(get_services),
) -> AdminUser:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return services.auth.verify(credentials.credentials)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
