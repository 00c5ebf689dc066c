"""
Fixed-delay batch scheduler for per-item upstream calls (embeddings, AI
analysis) that must stay under provider rate limits.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    """Split items into consecutive chunks of at most `size` elements"""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


async def run_in_batches(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    batch_size: int = 5,
    delay: float = 0.5,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> List[R]:
    """Run `worker` over items one batch at a time.

    Items within a batch run concurrently; batches run strictly in sequence
    with `delay` seconds between them. Results keep input order. Exceptions
    raised by the worker propagate, so workers that should fail open must
    catch their own errors.
    """
    batches = chunk(items, batch_size)
    results: List[R] = []

    for index, batch in enumerate(batches):
        logger.debug("Dispatching batch %d/%d (%d items)", index + 1, len(batches), len(batch))
        results.extend(await asyncio.gather(*(worker(item) for item in batch)))
        if index < len(batches) - 1:
            await sleep(delay)

    return results
