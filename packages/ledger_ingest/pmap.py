"""Bounded-concurrency ``map`` over a thread pool, in the spirit of ``p-map``.

Used for the classification fallback, where each call is an independent
network round-trip. Results come back in input order. With
``stop_on_error=True`` the first mapper error propagates and queued work is
cancelled; otherwise every item runs and failures are raised together as an
``ExceptionGroup``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    stop_on_error: bool = True,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with at most ``concurrency`` calls in flight."""

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    items = enumerate(iterable)
    results: dict[int, OutT] = {}
    errors: list[Exception] = []
    in_flight: dict[Future[OutT], int] = {}

    def _submit_next(pool: ThreadPoolExecutor) -> bool:
        for idx, item in items:
            in_flight[pool.submit(mapper, item)] = idx
            return True
        return False

    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        for _ in range(concurrency):
            if not _submit_next(pool):
                break
        while in_flight:
            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = in_flight.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception as e:
                    if stop_on_error:
                        pool.shutdown(wait=False, cancel_futures=True)
                        raise
                    errors.append(e)
                _submit_next(pool)

    if errors:
        raise ExceptionGroup("p_map: one or more mapper calls failed", errors)
    return [results[i] for i in sorted(results)]


__all__ = ["p_map"]
