"""
Bounded fan-out with join-all semantics.

Items are scheduled on worker threads (one per item up to max_threads); a
counting semaphore admits at most max_concurrency of them into the work
function at a time. Each worker owns the result slot at its item's index, so
slots are written without locking and the final order always equals input
order. The shared error list and success counter are guarded by a single
lock. One item failing never stops its siblings, and run_all only returns
after every worker has finished.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Generic, List, Optional, Sequence, TypeVar
import logging
import threading

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

MAX_THREADS = 64


@dataclass(frozen=True)
class PipelineResult(Generic[R]):
    """Exactly one per item: either a value or an error message."""
    index: int
    value: Optional[R] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchOutcome(Generic[R]):
    slots: List[PipelineResult[R]]
    errors: List[str] = field(default_factory=list)
    success_count: int = 0

    @property
    def total(self) -> int:
        return len(self.slots)

    @property
    def failed_count(self) -> int:
        return self.total - self.success_count

    @property
    def results(self) -> List[Optional[R]]:
        return [slot.value for slot in self.slots]


class FanOutOrchestrator:
    def __init__(self, max_concurrency: int, error_label: str = "Task", max_threads: int = MAX_THREADS):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.max_concurrency = max_concurrency
        self.error_label = error_label
        self.max_threads = max(max_threads, max_concurrency)

    def format_error(self, index: int, exc: BaseException) -> str:
        return f"{self.error_label} {index} failed: {exc}"

    def run_all(self, items: Sequence[T], work: Callable[[int, T], R]) -> BatchOutcome[R]:
        n = len(items)
        slots: List[Optional[PipelineResult[R]]] = [None] * n
        outcome: BatchOutcome[R] = BatchOutcome(slots=[])
        if n == 0:
            return outcome

        gate = threading.BoundedSemaphore(self.max_concurrency)
        lock = threading.Lock()

        def unit(index: int, item: T) -> None:
            with gate:
                try:
                    value = work(index, item)
                except Exception as e:
                    message = self.format_error(index, e)
                    logger.warning(message)
                    slots[index] = PipelineResult(index=index, error=str(e))
                    with lock:
                        outcome.errors.append(message)
                    return
            slots[index] = PipelineResult(index=index, value=value)
            with lock:
                outcome.success_count += 1

        with ThreadPoolExecutor(max_workers=min(n, self.max_threads), thread_name_prefix="fanout") as pool:
            futures = [pool.submit(unit, i, item) for i, item in enumerate(items)]
            wait(futures)
        for future in futures:
            # unit() handles work errors itself; anything raised here is a bug
            future.result()

        outcome.slots = list(slots)
        return outcome
