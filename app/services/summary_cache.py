"""Process-lifetime cache of AI project summaries and the generation coordinator."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

from app.clients.logging_utils import sanitize_log_extra
from app.config.settings import settings
from app.schemas.github import GitHubRepo
from app.services.summarizer import prepare_project_data

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "ai_summary_"


@dataclass(frozen=True, slots=True)
class SummaryRecord:
    """A generated summary; `generated_at` is epoch milliseconds."""

    summary: str
    generated_at: int
    cached: bool = False


def _cache_key(repo_name: str) -> str:
    return f"{CACHE_KEY_PREFIX}{repo_name}"


class SummaryCache:
    """In-memory summary store with a fixed validity window.

    Entries older than the TTL read as misses. Nothing is persisted and nothing
    is evicted except through `invalidate_if_stale`, `clear` and `clear_all`.
    """

    def __init__(
        self,
        *,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds is None:
            ttl_seconds = settings.SUMMARY_CACHE_TTL_HOURS * 60 * 60
        self._ttl_ms = int(ttl_seconds * 1000)
        self._clock = clock
        self._entries: dict[str, SummaryRecord] = {}

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def is_valid(self, record: SummaryRecord) -> bool:
        return self.now_ms() - record.generated_at < self._ttl_ms

    def get(self, repo_name: str) -> Optional[SummaryRecord]:
        record = self._entries.get(_cache_key(repo_name))
        if record is None or not self.is_valid(record):
            return None
        return replace(record, cached=True)

    def put(self, repo_name: str, record: SummaryRecord) -> None:
        self._entries[_cache_key(repo_name)] = record

    def invalidate_if_stale(self, repo_name: str) -> bool:
        key = _cache_key(repo_name)
        record = self._entries.get(key)
        if record is not None and not self.is_valid(record):
            del self._entries[key]
            return True
        return False

    def clear(self, repo_name: str) -> None:
        self._entries.pop(_cache_key(repo_name), None)

    def clear_all(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        total = len(self._entries)
        valid = sum(1 for record in self._entries.values() if self.is_valid(record))
        return {
            "total_entries": total,
            "valid_entries": valid,
            "expired_entries": total - valid,
        }


class SummaryService:
    """Serves cached summaries and coalesces concurrent generation per repo.

    All callers share one in-flight task per repo name, so simultaneous cache
    misses trigger a single LLM call. A failed generation is re-raised to every
    waiter and leaves the cache untouched.
    """

    def __init__(
        self,
        summarizer: Any,
        cache: SummaryCache,
        *,
        projects: Any = None,
    ) -> None:
        self._summarizer = summarizer
        self.cache = cache
        self._projects = projects
        self._in_flight: dict[str, asyncio.Task[SummaryRecord]] = {}

    def get_cached_summary(self, repo_name: str) -> Optional[SummaryRecord]:
        return self.cache.get(repo_name)

    def is_generating(self, repo_name: str) -> bool:
        return repo_name in self._in_flight

    async def generate_ai_summary(self, repo: GitHubRepo, readme_content: Optional[str] = None) -> SummaryRecord:
        cached = self.cache.get(repo.name)
        if cached is not None:
            return cached

        task = self._in_flight.get(repo.name)
        if task is None:
            task = asyncio.create_task(self._generate(repo, readme_content))
            self._in_flight[repo.name] = task
            task.add_done_callback(lambda done, name=repo.name: self._forget(name, done))
        else:
            logger.debug("Joining in-flight summary generation", extra={"repo_name": repo.name})

        # A cancelled caller must not cancel generation for the other waiters
        return await asyncio.shield(task)

    async def summarize_project(self, repo_name: str) -> SummaryRecord:
        """Fetch project data through the aggregator, then summarize it via the cache."""

        cached = self.cache.get(repo_name)
        if cached is not None:
            return cached
        if self._projects is None:
            raise RuntimeError("SummaryService was built without a project aggregator")

        project = await self._projects.fetch_project_data(repo_name)
        return await self.generate_ai_summary(project.repo, project.readme_content)

    def clear_project_cache(self, repo_name: str) -> None:
        self.cache.clear(repo_name)

    def clear_all_cache(self) -> None:
        self.cache.clear_all()

    def cache_stats(self) -> dict[str, int]:
        return self.cache.stats()

    def _forget(self, repo_name: str, task: asyncio.Task) -> None:
        if self._in_flight.get(repo_name) is task:
            del self._in_flight[repo_name]

    async def _generate(self, repo: GitHubRepo, readme_content: Optional[str]) -> SummaryRecord:
        started = time.perf_counter()
        summary = await self._summarizer.generate(prepare_project_data(repo, readme_content))
        record = SummaryRecord(summary=summary, generated_at=self.cache.now_ms(), cached=False)
        self.cache.put(repo.name, record)
        logger.info(
            "Generated project summary",
            extra=sanitize_log_extra(
                repo_name=repo.name,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            ),
        )
        return record
