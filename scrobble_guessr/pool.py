"""Bounded-concurrency runner for independent async jobs.

``run_bounded`` starts at most ``limit`` workers that pull jobs in order.
Each job is awaited exactly once; a job that raises is logged and recorded
as ``None`` in its own slot. Slot ``i`` of the result always belongs to job
``i``, whatever order the jobs finish in, and the runner itself never fails.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONCURRENCY = 4

Job = Callable[[], Awaitable[T]]


async def run_bounded(jobs: Sequence[Job[T]], limit: int = DEFAULT_CONCURRENCY) -> list[T | None]:
    """Run *jobs* with at most *limit* in flight.

    Args:
        jobs: Zero-argument coroutine factories.
        limit: Maximum number of jobs awaited concurrently.

    Returns:
        One entry per job, in job order; ``None`` where the job raised.

    Raises:
        ValueError: If *limit* is smaller than 1.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    results: list[T | None] = [None] * len(jobs)
    # Workers share this iterator; next() never suspends, so no lock is needed.
    pending = iter(enumerate(jobs))

    async def worker() -> None:
        for index, job in pending:
            try:
                results[index] = await job()
            except Exception as exc:
                logger.warning("Job %d failed: %s", index, exc)
                results[index] = None

    workers = min(limit, len(jobs))
    if workers:
        await asyncio.gather(*(worker() for _ in range(workers)))
    return results
