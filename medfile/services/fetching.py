"""Tagged fetch outcomes and concurrent sibling fetches.

Every fetch issued for a view resolves to a ``FetchResult``: ``ok`` with
data, ``empty``, or ``failed`` with the cause. Callers never see the
exception, so one failing collection cannot take down the whole view.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Generic, Literal, TypeVar

from medfile.config import FETCH_TIMEOUT_SECONDS
from medfile.models.views import CollectionStatus
from medfile.services.store import StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FetchResult(Generic[T]):
    status: Literal["ok", "empty", "failed"]
    items: list[T] = field(default_factory=list)
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    def to_status(self) -> CollectionStatus:
        return CollectionStatus(status=self.status, error=self.error)

    @classmethod
    def of(cls, items) -> FetchResult[T]:
        items = list(items or [])
        return cls(status="ok" if items else "empty", items=items)

    @classmethod
    def failure(cls, error: str) -> FetchResult[T]:
        return cls(status="failed", error=error)


async def fetch_outcome(
    name: str,
    awaitable: Awaitable[Any],
    timeout: float | None = None,
) -> FetchResult:
    """Await a collection fetch and tag its outcome.

    ``asyncio.CancelledError`` is not caught: a cancelled view must stop.
    """
    timeout = FETCH_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        items = await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError:
        logger.warning("Fetch of %s timed out after %.1fs", name, timeout)
        return FetchResult.failure(f"{name} fetch timed out")
    except Exception as exc:
        logger.warning("Fetch of %s failed: %s", name, exc)
        return FetchResult.failure(str(exc) or exc.__class__.__name__)
    return FetchResult.of(items)


async def gather_outcomes(
    fetchers: dict[str, Awaitable[Any]],
    timeout: float | None = None,
) -> dict[str, FetchResult]:
    """Run sibling fetches concurrently and wait for all of them."""
    keys = list(fetchers.keys())
    results = await asyncio.gather(
        *(fetch_outcome(key, fetchers[key], timeout) for key in keys)
    )
    return dict(zip(keys, results, strict=True))


async def fetch_within_timeout(
    name: str,
    awaitable: Awaitable[T],
    timeout: float | None = None,
) -> T:
    """Await a single fetch, turning a hang into ``StoreError``.

    Used where the caller needs the value itself rather than a tagged outcome.
    """
    timeout = FETCH_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError:
        logger.warning("Fetch of %s timed out after %.1fs", name, timeout)
        raise StoreError(f"{name} fetch timed out") from None
