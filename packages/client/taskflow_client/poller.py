"""
Fixed-interval polling of read projections.

A poller keeps the latest snapshot of one projection (a board, a task, the
dashboard) fresh by re-running its refresh coroutine every ``interval``
seconds. Failures are logged and the previous snapshot is kept. Stopping
never cancels a refresh that is already in flight; it just ends the loop.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Awaitable, Callable, Generic, Optional, TypeVar

import structlog

from .client import TaskFlowClient
from .config import PollingConfig

log = structlog.get_logger()

T = TypeVar("T")
UpdateHandler = Callable[[T], None]


class ProjectionPoller(Generic[T]):
    def __init__(
        self,
        refresh: Callable[[], Awaitable[T]],
        interval: float,
        *,
        name: str = "projection",
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._refresh = refresh
        self._interval = interval
        self._name = name

        self._handlers: list[UpdateHandler] = []
        self._latest: Optional[T] = None
        self._last_error: Optional[BaseException] = None
        self._refresh_count = 0
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def latest(self) -> Optional[T]:
        return self._latest

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._last_error

    @property
    def refresh_count(self) -> int:
        return self._refresh_count

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def on_update(self, handler: UpdateHandler) -> None:
        """Register a handler called with every new snapshot."""
        self._handlers.append(handler)

    def stop_on_sign_out(self, client: TaskFlowClient) -> None:
        client.on_sign_out(self.stop)

    async def refresh_now(self) -> Optional[T]:
        """Refresh once, outside the schedule (e.g. right after a mutation)."""
        try:
            snapshot = await self._refresh()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._last_error = exc
            log.warning("poller.refresh_failed", poller=self._name, error=str(exc))
            return self._latest

        self._latest = snapshot
        self._last_error = None
        self._refresh_count += 1
        for handler in list(self._handlers):
            try:
                handler(snapshot)
            except Exception:
                log.exception("poller.handler_failed", poller=self._name)
        return snapshot

    async def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._poll_loop())
        log.info("poller.started", poller=self._name, interval=self._interval)

    async def stop(self) -> None:
        """End the loop after any in-flight refresh completes."""
        self._stop_event.set()
        task = self._task
        if task is None:
            return
        # Stopped from inside a refresh (e.g. a 401 triggering sign-out)
        if task is asyncio.current_task():
            return
        await task
        log.info("poller.stopped", poller=self._name, refreshes=self._refresh_count)

    async def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            await self.refresh_now()
            if self._stop_event.is_set():
                break
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass


# ---------------------------------------------------------------------------
# Ready-made pollers
# ---------------------------------------------------------------------------

def board_poller(
    client: TaskFlowClient,
    project_id: uuid.UUID,
    polling: PollingConfig | None = None,
) -> ProjectionPoller:
    polling = polling or PollingConfig()
    poller = ProjectionPoller(
        lambda: client.get_board(project_id),
        polling.board_interval_seconds,
        name=f"board:{project_id}",
    )
    poller.stop_on_sign_out(client)
    return poller


def task_poller(
    client: TaskFlowClient,
    task_id: uuid.UUID,
    polling: PollingConfig | None = None,
) -> ProjectionPoller:
    polling = polling or PollingConfig()
    poller = ProjectionPoller(
        lambda: client.get_task(task_id),
        polling.task_interval_seconds,
        name=f"task:{task_id}",
    )
    poller.stop_on_sign_out(client)
    return poller
