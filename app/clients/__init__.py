"""Provider clients (GitHub REST, OpenRouter completions)."""

from app.clients.contracts import FetchResult, FetchState
from app.clients.github import GitHubClient
from app.clients.openrouter import ChatMessage, OpenRouterClient

__all__ = [
    "FetchResult",
    "FetchState",
    "GitHubClient",
    "ChatMessage",
    "OpenRouterClient",
]
