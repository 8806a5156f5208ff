from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from threading import Event
from typing import Optional, Callable, TypeVar, Any

from attr import define, field

from fix_datasource_azure.errors import ReadTimeoutError, ReadCancelledError

log = logging.getLogger("fix.datasource.azure")

T = TypeVar("T")

DefaultReadTimeout = timedelta(minutes=5)


@define
class ReadContext:
    """
    Bounds a single data source read: a deadline and a cooperative cancellation signal.
    Child contexts created via `with_timeout(parent=...)` share the cancellation signal
    of the parent and never outlive its deadline.
    """

    timeout: float
    deadline: float
    poll_interval: float = 0.05
    _cancelled: Event = field(factory=Event)

    @staticmethod
    def with_timeout(timeout: timedelta = DefaultReadTimeout, parent: Optional[ReadContext] = None) -> ReadContext:
        seconds = timeout.total_seconds()
        deadline = time.monotonic() + seconds
        if parent is None:
            return ReadContext(timeout=seconds, deadline=deadline)
        return ReadContext(
            timeout=min(seconds, parent.timeout),
            deadline=min(deadline, parent.deadline),
            poll_interval=parent.poll_interval,
            cancelled=parent._cancelled,
        )

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def run(self, resource_id: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Call fn in a worker thread and wait for the result.
        Raises ReadCancelledError if the context is cancelled while waiting
        and ReadTimeoutError once the deadline passes. Errors raised by fn are propagated.
        """
        if self.cancelled:
            raise ReadCancelledError(resource_id)
        if self.expired:
            raise ReadTimeoutError(resource_id, self.timeout)

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="azure-read")
        future = executor.submit(fn, *args, **kwargs)
        try:
            while not future.done():
                remaining = self.remaining()
                if remaining <= 0:
                    future.cancel()
                    log.warning(f"[Azure] Read of {resource_id} did not finish within {self.timeout:.1f}s")
                    raise ReadTimeoutError(resource_id, self.timeout)
                # the event doubles as an interruptible sleep
                if self._cancelled.wait(min(self.poll_interval, remaining)):
                    future.cancel()
                    log.info(f"[Azure] Read of {resource_id} was cancelled")
                    raise ReadCancelledError(resource_id)
            return future.result()
        finally:
            # never block on a call that is still in flight
            executor.shutdown(wait=False, cancel_futures=True)
