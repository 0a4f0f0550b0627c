"""Bounded worker pool for per-document calls that may block.

Workers only compute; results are handed back to the calling thread, which
is the only one that touches the records. A call that outlives `timeout` is
reported as a TimeoutError and its eventual result is discarded.

Threads cannot be interrupted: a timed-out call keeps running on its worker
thread until it returns, and interpreter exit waits for it. Callers whose
work can hang for good (a stuck device read) must bound it themselves.
"""

from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Iterator, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class Outcome(Generic[T, R]):
    """Result of one call: exactly one of `value` / `error` is meaningful."""

    item: T
    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_bounded(
    items: Iterable[T],
    func: Callable[[T], R],
    max_workers: int,
    timeout: Optional[float] = None,
) -> Iterator[Outcome[T, R]]:
    """Run `func` over `items` with at most `max_workers` calls in flight.

    Items are processed in batches of `max_workers`, each batch on a fresh
    pool, so a call stuck past its timeout never holds a slot needed by the
    next batch. Outcomes are yielded in input order.
    """
    items = list(items)
    for start in range(0, len(items), max_workers):
        batch = items[start : start + max_workers]
        executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="inkshelf-worker"
        )
        try:
            futures = [(executor.submit(func, item), item) for item in batch]
            _, not_done = wait([f for f, _ in futures], timeout=timeout)
            for future, item in futures:
                if future in not_done:
                    future.cancel()
                    error = TimeoutError(f"timed out after {timeout}s")
                    yield Outcome(item, error=error)
                elif future.exception() is not None:
                    yield Outcome(item, error=future.exception())
                else:
                    yield Outcome(item, value=future.result())
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
