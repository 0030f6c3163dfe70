"""
Concurrency Infrastructure.

Bounded fan-out primitives used by the bulk API operations.

    fan_out        - one asyncio task per item, capped by a semaphore,
                     joined with a TaskGroup barrier
    run_in_threads - one thread-pool job per item for blocking or CPU-local
                     work, joined before returning

Both helpers block until every unit has completed. Neither guarantees any
ordering between units. Units are expected to record their own outcome and
not raise; an exception escaping a unit propagates after the barrier.

Usage:
    from hastily.core.concurrency import fan_out, run_in_threads

    await fan_out(models, delete_one, limit=10)
    run_in_threads(models, merge_one, max_workers=4)
"""

import asyncio
import contextvars
from collections.abc import Awaitable, Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, wait
from typing import TypeVar

from hastily.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class TracedThreadPoolExecutor(ThreadPoolExecutor):
    """ThreadPoolExecutor that propagates contextvars to worker threads.

    Standard ThreadPoolExecutor does not carry structlog context into worker
    threads. This subclass copies the current context before dispatching,
    so bound fields like model and operation are preserved.
    """

    def submit(self, fn, /, *args, **kwargs):
        ctx = contextvars.copy_context()
        return super().submit(ctx.run, fn, *args, **kwargs)


async def fan_out(
    items: Iterable[T],
    unit: Callable[[T], Awaitable[None]],
    limit: int | None = None,
) -> None:
    """Run ``unit(item)`` concurrently for every item and wait for all of them.

    Args:
        items: Items to dispatch, one task each
        unit: Coroutine function processing a single item
        limit: Maximum number of units running at once. None or a value
            below 1 means unbounded.
    """
    items = list(items)
    if not items:
        return

    capacity = limit if limit and limit > 0 else len(items)
    semaphore = asyncio.Semaphore(capacity)

    async def _bounded(item: T) -> None:
        async with semaphore:
            await unit(item)

    logger.debug("Fan-out dispatched", units=len(items), limit=capacity)
    async with asyncio.TaskGroup() as tg:
        for item in items:
            tg.create_task(_bounded(item))
    logger.debug("Fan-out completed", units=len(items))


def run_in_threads(
    items: Iterable[T],
    unit: Callable[[T], None],
    max_workers: int | None = None,
) -> None:
    """Run ``unit(item)`` on a thread pool for every item and wait for all of them.

    The first exception raised by any unit is re-raised once every unit has
    finished.
    """
    items = list(items)
    if not items:
        return

    workers = max_workers if max_workers and max_workers > 0 else len(items)
    with TracedThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(unit, item) for item in items]
        wait(futures)

    for future in futures:
        future.result()
