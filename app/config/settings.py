"""Application settings and configuration"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Portfolio API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    USER_AGENT: str = "PortfolioAPI/1.0"
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # Database
    DATABASE_URL: str = "sqlite:///./portfolio.db"

    # GitHub API
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_USERNAME: str = "AlexandrLebegue"
    GITHUB_API_BASE_URL: str = "https://api.github.com"
    GITHUB_TIMEOUT_SECONDS: float = 30.0
    GITHUB_PER_PAGE: int = 100  # GitHub API limit is 100 per page
    GITHUB_README_BRANCHES: list[str] = ["main", "master"]

    # Project showcase
    FEATURED_TOPIC: str = "featured"
    FEATURED_FALLBACK_COUNT: int = 3

    # LLM API for project summaries (OpenRouter, OpenAI-compatible)
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_MODEL: str = "mistralai/mistral-small-24b-instruct-2501:free"
    OPENROUTER_SITE_URL: str = "http://localhost:3000"
    OPENROUTER_APP_TITLE: str = "Portfolio Project Summarizer"
    OPENROUTER_TIMEOUT_SECONDS: float = 60.0

    # Summary generation
    SUMMARY_MAX_TOKENS: int = 250
    SUMMARY_TEMPERATURE: float = 0.8
    SUMMARY_README_MAX_CHARS: int = 2000
    SUMMARY_CACHE_TTL_HOURS: int = 24

    # Admin authentication
    ADMIN_USERNAME: str = "admin"
    ADMIN_DISPLAY_NAME: str = "Administrator"
    # bcrypt hash; generate with `python -m app.services.auth <password>`
    ADMIN_PASSWORD_HASH: Optional[str] = None
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 60

    # Persisted client state (admin session, theme preference)
    STATE_FILE_PATH: str = ".portfolio_state.json"

    # Blog
    BLOG_SEED_DEFAULT_POSTS: bool = True
    BLOG_DEFAULT_AUTHOR: str = "Alexandre Lebegue"
    BLOG_DEFAULT_COVER_IMAGE: str = "📝"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env


settings = Settings()
