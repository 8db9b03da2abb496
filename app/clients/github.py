"""Async GitHub REST client for the project showcase."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Optional

import httpx

from app.clients.contracts import (
    CommitListContract,
    ContentContract,
    FetchResult,
    FetchState,
    RepoContract,
    RepoListContract,
    UserContract,
)
from app.clients.logging_utils import sanitize_log_extra
from app.config.settings import settings

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100


class GitHubClient:
    """Thin typed wrapper over the GitHub REST API.

    Every call returns a `FetchResult`; HTTP and transport failures are reported
    as `FetchState.FAILED` with the status code rather than raised. Only the
    first page of list endpoints is fetched and nothing is retried.
    """

    API_VERSION = "2022-11-28"
    ACCEPT_JSON = "application/vnd.github+json"

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._token = token if token is not None else settings.GITHUB_TOKEN
        self._base_url = base_url or settings.GITHUB_API_BASE_URL
        self._timeout_seconds = timeout_seconds or settings.GITHUB_TIMEOUT_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "GitHubClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_user(self, username: str) -> UserContract:
        return await self._fetch_json_contract(f"/users/{username}")

    async def list_user_repos(
        self,
        username: str,
        *,
        sort: str = "updated",
        direction: str = "desc",
        per_page: int = MAX_PER_PAGE,
    ) -> RepoListContract:
        return await self._fetch_json_contract(
            f"/users/{username}/repos",
            params={"sort": sort, "direction": direction, "per_page": min(per_page, MAX_PER_PAGE)},
        )

    async def get_repo(self, owner: str, repo: str) -> RepoContract:
        return await self._fetch_json_contract(f"/repos/{owner}/{repo}")

    async def list_commits(
        self,
        owner: str,
        repo: str,
        *,
        per_page: int = MAX_PER_PAGE,
        page: int = 1,
    ) -> CommitListContract:
        return await self._fetch_json_contract(
            f"/repos/{owner}/{repo}/commits",
            params={"per_page": min(per_page, MAX_PER_PAGE), "page": page},
        )

    async def get_readme(self, owner: str, repo: str, *, ref: str) -> ContentContract:
        """Fetch and decode `README.md` at `ref`."""

        response = await self._request(f"/repos/{owner}/{repo}/contents/README.md", params={"ref": ref})
        if response.state != FetchState.OK:
            return FetchResult(
                state=response.state,
                data=None,
                status_code=response.status_code,
                error=response.error,
            )

        payload = response.data if isinstance(response.data, dict) else {}
        encoded = payload.get("content") if isinstance(payload.get("content"), str) else ""
        encoding = payload.get("encoding") if isinstance(payload.get("encoding"), str) else "base64"

        if not encoded:
            return FetchResult(state=FetchState.EMPTY, data="", status_code=response.status_code)

        if encoding == "base64":
            try:
                # GitHub wraps base64 content at 60 columns
                compact = "".join(encoded.split())
                decoded = base64.b64decode(compact).decode("utf-8", errors="replace")
            except (binascii.Error, ValueError) as exc:
                return FetchResult(
                    state=FetchState.FAILED,
                    error=f"Failed to decode base64 content: {exc}",
                    status_code=response.status_code,
                )
        else:
            decoded = encoded

        if not decoded.strip():
            return FetchResult(state=FetchState.EMPTY, data=decoded, status_code=response.status_code)

        return FetchResult(state=FetchState.OK, data=decoded, status_code=response.status_code)

    async def _fetch_json_contract(
        self,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
    ) -> FetchResult[Any]:
        response = await self._request(path, params=params)
        if response.state != FetchState.OK:
            return response

        payload = response.data
        if payload is None or (isinstance(payload, (list, dict)) and len(payload) == 0):
            return FetchResult(state=FetchState.EMPTY, data=payload, status_code=response.status_code)

        return response

    async def _request(self, path: str, *, params: Optional[dict[str, Any]] = None) -> FetchResult[Any]:
        client = await self._ensure_client()
        try:
            response = await client.get(path, params=params)
            response.raise_for_status()
            return FetchResult(
                state=FetchState.OK,
                data=response.json(),
                status_code=response.status_code,
            )
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.warning(
                "GitHub request returned error status",
                extra=sanitize_log_extra(path=path, params=params, status_code=status_code),
            )
            return FetchResult(state=FetchState.FAILED, error=str(exc), status_code=status_code)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "GitHub request failed",
                extra=sanitize_log_extra(path=path, params=params, error=str(exc)),
            )
            return FetchResult(state=FetchState.FAILED, error=str(exc))

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client:
            return self._client

        headers = {
            "Accept": self.ACCEPT_JSON,
            "User-Agent": settings.USER_AGENT,
            "X-GitHub-Api-Version": self.API_VERSION,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout_seconds,
            transport=self._transport,
        )
        return self._client
