"""Bounded-concurrency FIFO dispatcher for document ids.

The orchestrator runs two independent instances: the primary scheduler and
the verification scheduler, each with its own worker limit, so a verification
backlog never blocks new documents.

Queue state is only touched by synchronous code (``enqueue`` and ``_pump``),
which the event loop never interleaves. An id leaves the queue when its
worker is dispatched, not when the worker finishes, so a document can never
have two workers even if it is triggered twice in a row.
"""

import asyncio
from collections import deque
from typing import Awaitable, Callable

from shared.helper.HelperConfig import HelperConfig

Handler = Callable[[str], Awaitable[None]]


class WorkScheduler:
    def __init__(self, helper_config: HelperConfig, name: str, max_workers: int, handler: Handler):
        if max_workers < 1:
            raise ValueError(f"Scheduler '{name}' needs at least one worker, got {max_workers}.")
        self.logging = helper_config.get_logger()
        self.name = name
        self._max_workers = max_workers
        self._handler = handler

        self._queue: deque[str] = deque()
        self._active: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    ##########################################
    ################ GETTER ##################
    ##########################################

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def active_count(self) -> int:
        return len(self._active)

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    def get_queued_ids(self) -> list[str]:
        return list(self._queue)

    def is_scheduled(self, doc_id: str) -> bool:
        """True if the id is queued or has a running worker."""
        return doc_id in self._active or doc_id in self._queue

    ##########################################
    ################# QUEUE ##################
    ##########################################

    def enqueue(self, doc_id: str) -> bool:
        """Append an id to the queue and dispatch workers if capacity allows.

        Returns:
            bool: False if the id was already queued or in flight.
        """
        if self.is_scheduled(doc_id):
            self.logging.debug("Scheduler '%s': %s already scheduled, ignoring.", self.name, doc_id)
            return False
        self._queue.append(doc_id)
        self._idle.clear()
        self._pump()
        return True

    def enqueue_many(self, doc_ids: list[str]) -> int:
        """Enqueue several ids in order. Returns how many were accepted."""
        return sum(1 for doc_id in doc_ids if self.enqueue(doc_id))

    def clear_queue(self) -> int:
        """Drop every queued id. Running workers are left alone."""
        dropped = len(self._queue)
        self._queue.clear()
        self._update_idle()
        return dropped

    def set_max_workers(self, max_workers: int) -> None:
        if max_workers < 1:
            raise ValueError(f"Scheduler '{self.name}' needs at least one worker, got {max_workers}.")
        self._max_workers = max_workers
        self._pump()

    ##########################################
    ################ WORKERS #################
    ##########################################

    def _pump(self) -> None:
        while len(self._active) < self._max_workers and self._queue:
            doc_id = self._queue.popleft()
            self._active.add(doc_id)
            task = asyncio.create_task(self._run(doc_id), name=f"{self.name}:{doc_id}")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            self.logging.debug(
                "Scheduler '%s': dispatched %s (%d/%d active, %d queued).",
                self.name, doc_id, len(self._active), self._max_workers, len(self._queue),
            )

    async def _run(self, doc_id: str) -> None:
        try:
            await self._handler(doc_id)
        except Exception:
            self.logging.exception("Scheduler '%s': worker for %s raised.", self.name, doc_id)
        finally:
            self._active.discard(doc_id)
            self._pump()
            self._update_idle()

    def _update_idle(self) -> None:
        if not self._queue and not self._active:
            self._idle.set()

    async def wait_idle(self) -> None:
        """Wait until the queue is empty and no worker is running."""
        await self._idle.wait()

    async def close(self) -> None:
        """Drop queued ids and cancel running workers."""
        self._queue.clear()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._update_idle()
