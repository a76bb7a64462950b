"""
Work Distributor — fan-out/fan-in over a bounded asyncio queue.

Items are enqueued, the queue is closed with one marker per worker, and a
fixed number of worker tasks drain it. Each worker keeps its own result list;
the caller receives one list per worker once every worker has exited.

Failure policy is fail-fast: the first handler error cancels the producer and
all sibling workers (in-flight work is abandoned) and is re-raised as-is.
"""

import asyncio
import logging
import time
from typing import AsyncIterable, Awaitable, Callable, Generic, Iterable, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Close marker: one per worker, placed after the last item
_CLOSED = object()


class WorkDistributor(Generic[T, R]):
    def __init__(self, workers: int, queue_size: Optional[int] = None, name: str = "worker"):
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        if queue_size is not None and queue_size < 1:
            raise ValueError(f"queue_size must be >= 1, got {queue_size}")
        self.workers = workers
        self.queue_size = queue_size
        self.name = name

    async def run(
        self,
        items: Union[Iterable[T], AsyncIterable[T]],
        handler: Callable[[T], Awaitable[R]],
    ) -> list[list[R]]:
        """
        Process every item with ``handler`` on ``self.workers`` concurrent workers.

        A plain iterable is materialized and enqueued up front into a queue sized
        to hold all of it. An async iterable is fed by a producer task into a
        queue bounded by ``queue_size`` (default: the worker count).

        Returns the per-worker result lists, in worker order.
        """
        start = time.perf_counter()
        tasks: list[asyncio.Task] = []

        if hasattr(items, "__aiter__"):
            queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size or self.workers)
            tasks.append(asyncio.create_task(self._produce(queue, items), name=f"{self.name}-producer"))
            total = None
        else:
            pending_items = list(items)
            total = len(pending_items)
            queue = asyncio.Queue(maxsize=total + self.workers)
            for item in pending_items:
                queue.put_nowait(item)
            for _ in range(self.workers):
                queue.put_nowait(_CLOSED)

        worker_tasks = [
            asyncio.create_task(self._work(queue, handler, i), name=f"{self.name}-{i}")
            for i in range(self.workers)
        ]
        tasks.extend(worker_tasks)

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            await self._cancel(tasks)
            raise

        failed = [t for t in tasks if t in done and not t.cancelled() and t.exception() is not None]
        if failed:
            await self._cancel(pending)
            error = failed[0].exception()
            logger.error(
                f"{self.name}: {failed[0].get_name()} failed, cancelled {len(pending)} sibling task(s): {error}"
            )
            raise error

        results = [t.result() for t in worker_tasks]
        processed = sum(len(r) for r in results)
        logger.debug(
            f"{self.name}: {self.workers} workers processed {processed}"
            f"{'' if total is None else f'/{total}'} items in {time.perf_counter() - start:.3f}s"
        )
        return results

    async def _produce(self, queue: asyncio.Queue, items: AsyncIterable[T]) -> None:
        async for item in items:
            await queue.put(item)
        for _ in range(self.workers):
            await queue.put(_CLOSED)

    async def _work(self, queue: asyncio.Queue, handler: Callable[[T], Awaitable[R]], index: int) -> list[R]:
        results: list[R] = []
        while True:
            item = await queue.get()
            if item is _CLOSED:
                logger.debug(f"{self.name}-{index} exiting after {len(results)} items")
                return results
            results.append(await handler(item))

    @staticmethod
    async def _cancel(tasks) -> None:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
