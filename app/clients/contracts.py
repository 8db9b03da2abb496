"""Typed fetch contracts returned by provider clients."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class FetchState(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(slots=True)
class FetchResult(Generic[T]):
    """Outcome of a single provider call; clients never raise on HTTP failures."""

    state: FetchState
    data: Optional[T] = None
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state == FetchState.OK


RepoContract = FetchResult[dict[str, Any]]
RepoListContract = FetchResult[list[dict[str, Any]]]
CommitListContract = FetchResult[list[dict[str, Any]]]
UserContract = FetchResult[dict[str, Any]]
ContentContract = FetchResult[str]
