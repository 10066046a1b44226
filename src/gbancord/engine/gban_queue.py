"""
Single-concurrency FIFO queue for gban tasks.

Every ban, multi-ban, retry and approved unban walks the full target list
under one global rate limit, so tasks must never overlap. The queue keeps
them in submission order and runs exactly one at a time on a lazily
started runner task.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque

from gbancord.util.logger import get_logger

logger = get_logger("gban_queue")

TaskFactory = Callable[[], Awaitable[Any]]


@dataclass
class QueuedTask:
    """A unit of queued work and the future its submitter holds."""
    work: TaskFactory
    future: "asyncio.Future[Any]"
    label: str = "gban-task"


class GbanQueue:
    """
    FIFO of asynchronous tasks with at most one task running.

    Attributes:
        yield_seconds (float): Pause between two consecutive tasks.
        tasks (Deque[QueuedTask]): Unfinished tasks; the head is the one running.
        runner_task (asyncio.Task | None): Background task draining the queue.
    """

    def __init__(self, yield_seconds: float = 0.5) -> None:
        self.yield_seconds = yield_seconds
        self.tasks: Deque[QueuedTask] = deque()
        self.runner_task: asyncio.Task[None] | None = None

    @property
    def size(self) -> int:
        """Number of unfinished tasks, including the one running."""
        return len(self.tasks)

    @property
    def is_processing(self) -> bool:
        return self.runner_task is not None and not self.runner_task.done()

    def submit(self, work: TaskFactory, *, label: str = "gban-task") -> "asyncio.Future[Any]":
        """
        Append a task to the tail of the queue.

        Returns immediately with a future that resolves to the task's result,
        or raises the task's exception. Starts the runner if none is active.

        Args:
            work (TaskFactory): Zero-argument coroutine factory to run.
            label (str): Name used in log lines.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        self.tasks.append(QueuedTask(work=work, future=future, label=label))
        logger.debug("[GBAN QUEUE] Queued %s (queue size %d)", label, len(self.tasks))
        self.ensure_runner()
        return future

    def ensure_runner(self) -> None:
        """Create the runner task if it's not already active."""
        if self.is_processing:
            return
        loop = asyncio.get_running_loop()
        self.runner_task = loop.create_task(self.run(), name="gbancord-gban-queue")

    async def run(self) -> None:
        """
        Drain the queue head first until it is empty.

        A task that raises only fails its own future; the runner always pops
        the head and moves on. The runner exits when the queue is empty so
        the next ``submit`` starts a fresh one.
        """
        logger.info("[GBAN QUEUE] Processing gban queue (size %d)", len(self.tasks))
        while self.tasks:
            head = self.tasks[0]
            try:
                result = await head.work()
            except asyncio.CancelledError:
                if not head.future.done():
                    head.future.cancel()
                raise
            except Exception as exc:
                logger.error("[GBAN QUEUE] Task %s failed: %s", head.label, exc, exc_info=exc)
                if not head.future.done():
                    head.future.set_exception(exc)
            else:
                if not head.future.done():
                    head.future.set_result(result)
            finally:
                self.tasks.popleft()

            if self.tasks:
                await asyncio.sleep(self.yield_seconds)

        logger.debug("[GBAN QUEUE] Queue drained; runner stopping")

    async def shutdown(self) -> None:
        """
        Stop the runner and drop tasks that never started.

        Queued work is not persisted; the futures of dropped tasks are
        cancelled so their submitters are released.
        """
        runner = self.runner_task
        if runner is not None and not runner.done():
            runner.cancel()
            try:
                await runner
            except asyncio.CancelledError:
                pass
        self.runner_task = None

        dropped = 0
        while self.tasks:
            queued = self.tasks.popleft()
            if not queued.future.done():
                queued.future.cancel()
                dropped += 1
        if dropped:
            logger.warning("[GBAN QUEUE] Dropped %d queued task(s) on shutdown", dropped)
