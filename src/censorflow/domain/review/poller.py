"""Background polling of providers for async review results."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from censorflow.domain.ports import is_async_capable

if TYPE_CHECKING:
    from censorflow.domain.model import PendingTask

    from .client import ModerationClient

log = getLogger(__name__)

DEFAULT_POLL_INTERVAL: Final[float] = 30.0
DEFAULT_BATCH_SIZE: Final[int] = 50
DEFAULT_WORKERS: Final[int] = 3


@dataclass(slots=True, frozen=True)
class PollerConfig:
    poll_interval: float = DEFAULT_POLL_INTERVAL
    batch_size: int = DEFAULT_BATCH_SIZE
    workers: int = DEFAULT_WORKERS
    providers: tuple[str, ...] | None = None


class Poller:
    """One supervisor task per async provider, each fanning ticks out to a worker pool.

    Every failure inside a tick is logged and skipped; the task is retried on a later tick.
    """

    def __init__(self, client: ModerationClient, config: PollerConfig | None = None) -> None:
        self.client = client
        self.config = config or PollerConfig()
        self._supervisors: list[asyncio.Task[None]] = []

    @property
    def provider_names(self) -> list[str]:
        names = self.config.providers or tuple(self.client.providers)
        return [
            name
            for name in names
            if name in self.client.providers and is_async_capable(self.client.providers[name])
        ]

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._supervisors)

    def start(self) -> None:
        if self.running:
            return
        names = self.provider_names
        self._supervisors = [
            asyncio.create_task(self._supervise(name), name=f"poller:{name}") for name in names
        ]
        log.info("Started polling %s provider(s): %s", len(names), ", ".join(names) or "-")

    async def stop(self) -> None:
        for task in self._supervisors:
            task.cancel()
        for task in self._supervisors:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._supervisors = []
        log.info("Stopped polling")

    async def poll_now(self) -> int:
        total = 0
        for name in self.provider_names:
            total += await self.poll_once(name)
        return total

    async def _supervise(self, provider: str) -> None:
        while True:
            await self.poll_once(provider)
            await asyncio.sleep(self.config.poll_interval)

    async def poll_once(self, provider: str) -> int:
        """Run one tick for ``provider``; returns the number of tasks examined."""

        try:
            tasks = self.client.store.list_pending_async_tasks(provider, self.config.batch_size)
        except Exception:
            log.exception("Listing pending tasks for %s failed", provider)
            return 0
        if not tasks:
            return 0

        log.info("Found %s pending task(s) for %s", len(tasks), provider)
        queue: asyncio.Queue[PendingTask] = asyncio.Queue(maxsize=len(tasks))
        for task in tasks:
            queue.put_nowait(task)

        workers = [
            asyncio.create_task(self._work(queue))
            for _ in range(max(1, min(self.config.workers, len(tasks))))
        ]
        try:
            await asyncio.gather(*workers)
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
        return len(tasks)

    async def _work(self, queue: asyncio.Queue[PendingTask]) -> None:
        while True:
            try:
                pending = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                await self.process(pending)
            except Exception:
                log.exception(
                    "Processing task %s of %s failed", pending.provider_task_id, pending.provider
                )
            finally:
                queue.task_done()

    async def process(self, pending: PendingTask) -> bool:
        """Query one task and complete it; returns ``True`` when a result was applied."""

        provider = self.client.providers.get(pending.provider)
        if provider is None:
            log.warning(
                "Provider %s not found for task %s", pending.provider, pending.provider_task_id
            )
            return False

        response = await provider.query(pending.remote_task_id)
        if not response.done:
            return False

        task = self.client.store.get_provider_task(pending.provider_task_id)
        if not self.client.store.update_provider_task_result(
            task.id, True, response.result, response.raw
        ):
            log.debug("Task %s was completed elsewhere", task.id)
            return False

        await self.client.process_async_completion(task, response.result)
        return True
