"""Bounded concurrent fan-out with per-task failure isolation.

Runs independent blocking calls (one per wallet, protocol or exchange
account) on a thread pool and joins them before returning. A failing task
never fails the call; it lands in ``errors``. Cancellation and timeouts are
soft: whatever finished is returned with ``cancelled=True``.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# How often a blocked join re-checks the cancel event
_CANCEL_POLL_SECONDS = 0.05


@dataclass
class FanOutResult(Generic[T]):
    """Merged outcome of a fan-out call."""

    results: dict[str, T] = field(default_factory=dict)
    errors: dict[str, Exception] = field(default_factory=dict)
    cancelled: bool = False
    order: list[str] = field(default_factory=list)

    def ordered_results(self) -> list[tuple[str, T]]:
        """Successful results in task submission order."""
        return [(key, self.results[key]) for key in self.order if key in self.results]

    def ordered_errors(self) -> list[tuple[str, Exception]]:
        return [(key, self.errors[key]) for key in self.order if key in self.errors]


class FanOut:
    """Thread-pool fan-out runner.

    Example:
        fan_out = FanOut(max_workers=8, timeout_seconds=30)
        outcome = fan_out.run({addr: partial(fetch, addr) for addr in wallets})
        for addr, positions in outcome.ordered_results():
            ...
    """

    def __init__(self, max_workers: int = 8, timeout_seconds: Optional[float] = None):
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.max_workers = max_workers
        self.timeout_seconds = timeout_seconds

    def run(
        self,
        tasks: dict[str, Callable[[], T]],
        cancel_event: Optional[threading.Event] = None,
    ) -> FanOutResult[T]:
        """Run every task concurrently and wait for all of them.

        Args:
            tasks: Task key to zero-argument callable. Keys identify the
                   source in results, errors and logs.
            cancel_event: When set, stop waiting and return what finished.

        Returns:
            FanOutResult with successful results and per-task exceptions.
        """
        outcome: FanOutResult[T] = FanOutResult(order=list(tasks))
        if not tasks:
            return outcome

        lock = threading.Lock()
        collected: dict[str, T] = {}
        failed: dict[str, Exception] = {}

        def worker(key: str, fn: Callable[[], T]) -> None:
            try:
                value = fn()
            except Exception as exc:
                with lock:
                    failed[key] = exc
                return
            with lock:
                collected[key] = value

        deadline = (
            time.monotonic() + self.timeout_seconds
            if self.timeout_seconds is not None
            else None
        )
        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(tasks)),
            thread_name_prefix="fan-out",
        )
        pending = set()
        try:
            pending = {executor.submit(worker, key, fn) for key, fn in tasks.items()}
            while pending:
                if cancel_event is not None and cancel_event.is_set():
                    logger.info("Fan-out cancelled with %d task(s) unfinished", len(pending))
                    outcome.cancelled = True
                    break

                wait_for = _CANCEL_POLL_SECONDS if cancel_event is not None else None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        logger.warning(
                            "Fan-out timed out after %.1fs with %d task(s) unfinished",
                            self.timeout_seconds, len(pending),
                        )
                        outcome.cancelled = True
                        break
                    wait_for = remaining if wait_for is None else min(wait_for, remaining)

                _, pending = wait(pending, timeout=wait_for, return_when=FIRST_COMPLETED)
        finally:
            for future in pending:
                future.cancel()
            # Don't block on stragglers; their late results are discarded
            executor.shutdown(wait=not pending, cancel_futures=True)

        with lock:
            outcome.results = dict(collected)
            outcome.errors = dict(failed)
        return outcome
