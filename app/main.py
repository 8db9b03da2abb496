"""FastAPI application entry point"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional
import logging

from fastapi import Cookie, Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from app.config.settings import settings
from app.dependencies import Services, build_services, get_optional_admin, get_services, require_admin
from app.errors import (
    AuthenticationError,
    BlogPostNotFoundError,
    BlogValidationError,
    DuplicateSlugError,
    FrontmatterError,
    GitHubRequestError,
    SummaryGenerationError,
)
from app.schemas.blog import BlogPost, BlogPostDraft, BlogPostPatch
from app.schemas.github import CommitStat, GitHubRepo, GitHubUser, ProjectData
from app.services.auth import AdminCredentials, AdminUser
from app.services.frontmatter import post_from_markdown, render_markdown
from app.services.state_store import THEME_STATE_KEY, THEMES

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

THEME_COOKIE_MAX_AGE = 365 * 24 * 60 * 60


class SummaryResponse(BaseModel):
    summary: str
    generated_at: int
    cached: bool


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: AdminUser


class MarkdownImport(BaseModel):
    markdown: str
    slug: Optional[str] = None


class ThemePreference(BaseModel):
    theme: str


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the API; tests pass prebuilt services, production wires defaults at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_services = getattr(app.state, "services", None) is None
        if owns_services:
            app.state.services = build_services()
        logger.info(f"{settings.APP_NAME} started")
        try:
            yield
        finally:
            if owns_services:
                await app.state.services.aclose()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Portfolio backend: GitHub project showcase, AI summaries and blog",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)
    _register_routes(app)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(GitHubRequestError)
    async def github_error_handler(request: Request, exc: GitHubRequestError):
        logger.error(f"GitHub request failed for {request.url.path}: {exc}")
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content={"detail": "Repository not found"})
        return JSONResponse(status_code=502, content={"detail": "Failed to fetch data from GitHub"})

    @app.exception_handler(SummaryGenerationError)
    async def summary_error_handler(request: Request, exc: SummaryGenerationError):
        logger.error(f"Summary generation failed for {request.url.path}: {exc}")
        return JSONResponse(status_code=502, content={"detail": "Failed to generate AI summary"})

    @app.exception_handler(AuthenticationError)
    async def auth_error_handler(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content={"detail": str(exc)},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(BlogPostNotFoundError)
    async def not_found_handler(request: Request, exc: BlogPostNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(DuplicateSlugError)
    async def duplicate_slug_handler(request: Request, exc: DuplicateSlugError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(BlogValidationError)
    async def validation_handler(request: Request, exc: BlogValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc), "fields": exc.fields})

    @app.exception_handler(FrontmatterError)
    async def frontmatter_handler(request: Request, exc: FrontmatterError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})


def _register_routes(app: FastAPI) -> None:
    @app.get("/")
    async def root() -> Dict[str, Any]:
        """Root endpoint"""
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running",
            "endpoints": {
                "health": "/api/health",
                "projects": "/api/projects",
                "featured": "/api/projects/featured",
                "project": "/api/projects/{name}",
                "summary": "/api/projects/{name}/summary",
                "blog": "/api/blog/posts",
                "login": "POST /api/auth/login",
            },
        }

    @app.get("/api/health")
    async def health_check() -> Dict[str, str]:
        return {
            "status": "healthy",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
        }

    # Projects

    @app.get("/api/github/user", response_model=GitHubUser)
    async def github_user(services: Services = Depends(get_services)):
        return await services.projects.fetch_user()

    @app.get("/api/projects", response_model=list[GitHubRepo])
    async def list_projects(
        exclude_forks: bool = True,
        topics: Optional[str] = Query(default=None, description="Comma-separated topics"),
        services: Services = Depends(get_services),
    ):
        if topics:
            wanted = [topic.strip() for topic in topics.split(",") if topic.strip()]
            return await services.projects.fetch_repos_by_topics(wanted, exclude_forks=exclude_forks)
        return await services.projects.fetch_repos(exclude_forks=exclude_forks)

    @app.get("/api/projects/featured", response_model=list[GitHubRepo])
    async def featured_projects(services: Services = Depends(get_services)):
        return await services.projects.fetch_featured_repos()

    @app.get("/api/projects/{name}", response_model=ProjectData)
    async def project_detail(name: str, services: Services = Depends(get_services)):
        return await services.projects.fetch_project_data(name)

    @app.get("/api/projects/{name}/commits/stats", response_model=list[CommitStat])
    async def project_commit_stats(name: str, services: Services = Depends(get_services)):
        return await services.projects.fetch_commit_stats(name)

    # AI summaries

    @app.get("/api/projects/{name}/summary", response_model=SummaryResponse)
    async def project_summary(name: str, services: Services = Depends(get_services)):
        record = await services.summaries.summarize_project(name)
        return SummaryResponse(summary=record.summary, generated_at=record.generated_at, cached=record.cached)

    @app.get("/api/projects/{name}/summary/cached", response_model=SummaryResponse)
    async def cached_project_summary(name: str, services: Services = Depends(get_services)):
        record = services.summaries.get_cached_summary(name)
        if record is None:
            raise HTTPException(status_code=404, detail="No cached summary")
        return SummaryResponse(summary=record.summary, generated_at=record.generated_at, cached=record.cached)

    @app.delete("/api/projects/{name}/summary", status_code=status.HTTP_204_NO_CONTENT)
    async def clear_project_summary(
        name: str,
        services: Services = Depends(get_services),
        admin: AdminUser = Depends(require_admin),
    ):
        services.summaries.clear_project_cache(name)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.delete("/api/summaries", status_code=status.HTTP_204_NO_CONTENT)
    async def clear_all_summaries(
        services: Services = Depends(get_services),
        admin: AdminUser = Depends(require_admin),
    ):
        services.summaries.clear_all_cache()
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/api/summaries/stats")
    async def summary_stats(services: Services = Depends(get_services)) -> Dict[str, int]:
        return services.summaries.cache_stats()

    # Blog (public)

    @app.get("/api/blog/posts", response_model=list[BlogPost])
    async def list_posts(
        category: Optional[str] = None,
        tag: Optional[str] = None,
        search: Optional[str] = None,
        services: Services = Depends(get_services),
    ):
        return services.blog.search(category=category, tag=tag, query=search)

    @app.get("/api/blog/categories", response_model=list[str])
    async def blog_categories(services: Services = Depends(get_services)):
        return services.blog.categories()

    @app.get("/api/blog/tags", response_model=list[str])
    async def blog_tags(services: Services = Depends(get_services)):
        return services.blog.tags()

    @app.get("/api/blog/posts/{slug}", response_model=BlogPost)
    async def get_post(
        slug: str,
        services: Services = Depends(get_services),
        admin: Optional[AdminUser] = Depends(get_optional_admin),
    ):
        post = services.blog.get_by_slug(slug, include_drafts=admin is not None)
        if post is None:
            raise BlogPostNotFoundError(slug)
        return post

    @app.get("/api/blog/posts/{slug}/markdown", response_class=PlainTextResponse)
    async def export_post_markdown(
        slug: str,
        services: Services = Depends(get_services),
        admin: Optional[AdminUser] = Depends(get_optional_admin),
    ):
        post = services.blog.get_by_slug(slug, include_drafts=admin is not None)
        if post is None:
            raise BlogPostNotFoundError(slug)
        return PlainTextResponse(render_markdown(post), media_type="text/markdown; charset=utf-8")

    # Blog (admin)

    @app.get("/api/admin/blog/posts", response_model=list[BlogPost])
    async def admin_list_posts(
        services: Services = Depends(get_services),
        admin: AdminUser = Depends(require_admin),
    ):
        return services.blog.list(include_drafts=True)

    @app.post("/api/admin/blog/posts", response_model=BlogPost, status_code=status.HTTP_201_CREATED)
    async def admin_create_post(
        draft: BlogPostDraft,
        services: Services = Depends(get_services),
        admin: AdminUser = Depends(require_admin),
    ):
        return services.blog.create(draft)

    @app.post("/api/admin/blog/posts/import", response_model=BlogPost, status_code=status.HTTP_201_CREATED)
    async def admin_import_post(
        payload: MarkdownImport,
        services: Services = Depends(get_services),
        admin: AdminUser = Depends(require_admin),
    ):
        return services.blog.create(post_from_markdown(payload.markdown, slug=payload.slug))

    @app.put("/api/admin/blog/posts/{slug}", response_model=BlogPost)
    async def admin_update_post(
        slug: str,
        patch: BlogPostPatch,
        services: Services = Depends(get_services),
        admin: AdminUser = Depends(require_admin),
    ):
        updated = services.blog.update(slug, patch)
        if updated is None:
            raise BlogPostNotFoundError(slug)
        return updated

    @app.delete("/api/admin/blog/posts/{slug}", status_code=status.HTTP_204_NO_CONTENT)
    async def admin_delete_post(
        slug: str,
        services: Services = Depends(get_services),
        admin: AdminUser = Depends(require_admin),
    ):
        if not services.blog.delete(slug):
            raise BlogPostNotFoundError(slug)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # Auth

    @app.post("/api/auth/login", response_model=TokenResponse)
    async def login(credentials: AdminCredentials, services: Services = Depends(get_services)):
        session = services.auth.login(credentials)
        return TokenResponse(
            access_token=session.access_token,
            token_type=session.token_type,
            expires_in=session.expires_in,
            user=session.user,
        )

    @app.get("/api/auth/me", response_model=AdminUser)
    async def me(admin: AdminUser = Depends(require_admin)):
        return admin

    @app.post("/api/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
    async def logout(
        services: Services = Depends(get_services),
        admin: AdminUser = Depends(require_admin),
    ):
        services.auth.logout()
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # Preferences

    @app.get("/api/preferences/theme", response_model=ThemePreference)
    async def get_theme(
        theme: Optional[str] = Cookie(default=None),
        services: Services = Depends(get_services),
    ):
        """The caller's theme cookie, else the site default."""
        if theme in THEMES:
            return ThemePreference(theme=theme)
        return ThemePreference(theme=services.state.get_theme())

    @app.put("/api/preferences/theme", response_model=ThemePreference)
    async def set_theme(preference: ThemePreference, response: Response):
        """Remember the theme for this client only."""
        if preference.theme not in THEMES:
            raise HTTPException(status_code=400, detail=f"Unsupported theme: {preference.theme}")
        response.set_cookie(
            THEME_STATE_KEY,
            preference.theme,
            max_age=THEME_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
        )
        return preference

    @app.put("/api/admin/preferences/theme", response_model=ThemePreference)
    async def set_default_theme(
        preference: ThemePreference,
        services: Services = Depends(get_services),
        admin: AdminUser = Depends(require_admin),
    ):
        try:
            theme = services.state.set_theme(preference.theme)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return ThemePreference(theme=theme)


app = create_app()
