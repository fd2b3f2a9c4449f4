# photomosaic/mosaic/scheduler.py
"""
Worker-pool fan-out. Every submit returns futures in the same order as the
inputs; callers join by position, never by completion order.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class TaskScheduler:
    """Thin wrapper around a ThreadPoolExecutor. No cancellation is exposed."""

    def __init__(self, workers: Optional[int] = None, name: str = "photomosaic"):
        self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=name)

    def submit_all(self, fn: Callable[[T], R], items: Iterable[T]) -> List["Future[R]"]:
        return [self._pool.submit(fn, item) for item in items]

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)


def gather(futures: Sequence["Future[R]"]) -> List[R]:
    """Block on each future in order. A task's exception re-raises here."""
    return [f.result() for f in futures]


__all__ = ["TaskScheduler", "gather"]
