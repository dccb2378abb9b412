"""Parallel upload utilities."""
import asyncio
from typing import Awaitable, Callable


async def run_workers(
    count: int,
    concurrency: int,
    handle: Callable[[int], Awaitable[None]],
) -> None:
    """
    Process indices 0..count-1 with at most `concurrency` in flight.

    Each worker claims the next free index from one shared iterator and
    handles it end-to-end before claiming another, so no two workers ever
    touch the same index. If `handle` raises, the remaining workers are
    cancelled and awaited before the exception propagates.
    """
    indices = iter(range(count))

    async def worker() -> None:
        for index in indices:
            await handle(index)

    tasks = [asyncio.ensure_future(worker()) for _ in range(min(concurrency, count))]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
