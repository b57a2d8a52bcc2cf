"""Cancellable, per-viewer task scopes.

Each viewer (the acting user) owns a ``ViewScope``. A scope has named slots,
for example ``"consultation"`` for the drill-down dialog. Running a new task
in a slot cancels whatever was still in flight there, and dismissing a slot
cancels it outright, so a late response can never land on a view the user
already closed.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine

logger = logging.getLogger(__name__)


class ViewDismissedError(Exception):
    """The scoped task was cancelled by a dismiss or a newer request."""


class ViewScope:
    def __init__(
        self,
        viewer_id: str,
        on_idle: Callable[["ViewScope"], None] | None = None,
    ) -> None:
        self.viewer_id = viewer_id
        self._tasks: dict[str, asyncio.Task] = {}
        self._on_idle = on_idle

    @property
    def idle(self) -> bool:
        return all(task.done() for task in self._tasks.values())

    def active(self, slot: str) -> bool:
        task = self._tasks.get(slot)
        return task is not None and not task.done()

    async def run(self, slot: str, coro: Coroutine[Any, Any, Any]) -> Any:
        """Run ``coro`` as the current task of ``slot`` and return its result."""
        previous = self._tasks.get(slot)
        if previous is not None and not previous.done():
            logger.info("Superseding %s view for viewer %s", slot, self.viewer_id)
            previous.cancel()

        task = asyncio.create_task(coro)
        self._tasks[slot] = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                # The caller itself is being cancelled; let it unwind.
                raise
            raise ViewDismissedError(f"{slot} view dismissed") from None
        finally:
            if self._tasks.get(slot) is task:
                del self._tasks[slot]
            if self._on_idle is not None and self.idle:
                self._on_idle(self)

    def dismiss(self, slot: str | None = None) -> int:
        """Cancel one slot, or every slot when ``slot`` is None."""
        slots = [slot] if slot is not None else list(self._tasks)
        cancelled = 0
        for name in slots:
            task = self._tasks.pop(name, None)
            if task is not None and not task.done():
                task.cancel()
                cancelled += 1
        return cancelled


class ViewScopeRegistry:
    """In-memory registry of scopes keyed by viewer id."""

    def __init__(self) -> None:
        self._scopes: dict[str, ViewScope] = {}

    def __contains__(self, viewer_id: str) -> bool:
        return viewer_id in self._scopes

    def __len__(self) -> int:
        return len(self._scopes)

    def get(self, viewer_id: str) -> ViewScope:
        if viewer_id not in self._scopes:
            self._scopes[viewer_id] = ViewScope(viewer_id, on_idle=self._release)
        return self._scopes[viewer_id]

    def _release(self, scope: ViewScope) -> None:
        # Scopes live only while something runs in them
        if self._scopes.get(scope.viewer_id) is scope and scope.idle:
            del self._scopes[scope.viewer_id]

    def dismiss(self, viewer_id: str, slot: str | None = None) -> int:
        scope = self._scopes.get(viewer_id)
        if scope is None:
            return 0
        cancelled = scope.dismiss(slot)
        self._release(scope)
        return cancelled


view_scopes = ViewScopeRegistry()
