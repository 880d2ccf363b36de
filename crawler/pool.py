"""Bounded worker pools for coroutines."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Sequence

logger = logging.getLogger(__name__)


class BoundedPool:
    """
    Admit at most `limit` in-flight tasks.

    A pool is meant to be created per invocation scope (one per page crawl,
    one per book), so limits never leak between unrelated crawls.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError(f"Pool limit must be at least 1, got {limit}")
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)

    async def run(self, func: Callable[..., Awaitable[Any]], *args) -> Any:
        """Run one task once a slot is free."""
        async with self._semaphore:
            return await func(*args)

    async def map_settled(self, func: Callable[[Any], Awaitable[Any]], items: Sequence) -> List[Any]:
        """
        Run `func` over `items` with at most `limit` running at once.

        A new task starts as soon as any slot frees up. Failures do not
        cancel siblings: the returned list holds either the result or the
        raised exception for each item, in input order.
        """
        return await asyncio.gather(
            *(self.run(func, item) for item in items),
            return_exceptions=True,
        )

    async def map_batched(self, func: Callable[[Any], Awaitable[Any]], items: Sequence) -> List[Any]:
        """
        Run `func` over `items` in consecutive batches of `limit`.

        Everything in a batch runs in parallel; the next batch starts only
        after the whole batch is done. Results are written back by input
        index, so output order equals input order regardless of which task
        finished first.
        """
        results: List[Any] = [None] * len(items)

        for start in range(0, len(items), self.limit):
            batch = items[start:start + self.limit]
            logger.debug(f"Running batch {start // self.limit + 1} ({len(batch)} tasks)")
            batch_results = await asyncio.gather(*(func(item) for item in batch))
            for offset, result in enumerate(batch_results):
                results[start + offset] = result

        return results
