"""Chat completion client for OpenRouter's OpenAI-compatible API."""

from __future__ import annotations

import logging
from typing import Literal, Optional, TypedDict

from openai import AsyncOpenAI, OpenAIError

from app.clients.logging_utils import sanitize_log_extra
from app.config.settings import settings
from app.errors import SummaryGenerationError

logger = logging.getLogger(__name__)


class ChatMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


class OpenRouterClient:
    """Issues chat completions and returns the first choice's text."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        site_url: Optional[str] = None,
        app_title: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._api_key = api_key or settings.OPENROUTER_API_KEY
        self._base_url = base_url or settings.OPENROUTER_BASE_URL
        self.model = model or settings.OPENROUTER_MODEL
        self._site_url = site_url or settings.OPENROUTER_SITE_URL
        self._app_title = app_title or settings.OPENROUTER_APP_TITLE
        self._timeout_seconds = timeout_seconds or settings.OPENROUTER_TIMEOUT_SECONDS
        self._client = client

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client
        if not self._api_key:
            raise SummaryGenerationError("OPENROUTER_API_KEY is not configured")

        self._client = AsyncOpenAI(
            api_key=self._api_key,
            base_url=self._base_url,
            timeout=self._timeout_seconds,
            default_headers={
                "HTTP-Referer": self._site_url,
                "X-Title": self._app_title,
            },
        )
        return self._client

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> str:
        client = self._ensure_client()
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except OpenAIError as exc:
            logger.error(
                "OpenRouter completion request failed",
                extra=sanitize_log_extra(model=self.model, error=str(exc)),
            )
            raise SummaryGenerationError("Completion request failed") from exc

        if not response.choices:
            raise SummaryGenerationError("No completion choices returned from OpenRouter API")

        content = response.choices[0].message.content
        if not content:
            raise SummaryGenerationError("Empty completion returned from OpenRouter API")
        return content

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
