"""Single-flight operation lock and per-service session state.

All mutating save operations share one ``OperationLock``. A second
operation started while one is in flight is rejected immediately with a
busy result naming the running operation; nothing is queued.

The lock is a plain attribute check-and-set. Everything runs on one event
loop and ``acquire`` never awaits, so no other coroutine can interleave
between the check and the set.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from cloudsaves.results import UNEXPECTED, OperationResult

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[OperationResult]])


class OperationLock:
    """Holds the name of the in-flight operation, or None when idle."""

    def __init__(self) -> None:
        self._current: str | None = None

    @property
    def current(self) -> str | None:
        return self._current

    @property
    def locked(self) -> bool:
        return self._current is not None

    def acquire(self, operation: str) -> bool:
        """Take the lock for operation. False if something else holds it."""
        if self._current is not None:
            return False
        self._current = operation
        return True

    def release(self, operation: str | None = None) -> None:
        """Release the lock. With operation given, only if it is the holder."""
        if operation is not None and self._current != operation:
            logger.warning(f"Release of {operation} ignored, lock held by {self._current}")
            return
        self._current = None


class Session:
    """State owned by one long-lived service instance.

    Attributes:
        lock: The single-flight operation lock
        timer: The auto-save timer task, if one is installed
    """

    def __init__(self) -> None:
        self.lock = OperationLock()
        self.timer: asyncio.Task | None = None


def exclusive(operation: str) -> Callable[[F], F]:
    """Run an async method under ``self.session.lock``.

    Busy -> ``OperationResult.busy``. Unexpected exceptions become a failed
    result. The lock is released on every path.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> OperationResult:
            lock: OperationLock = self.session.lock
            if not lock.acquire(operation):
                logger.info(f"Rejected {operation}: {lock.current} in progress")
                return OperationResult.busy(lock.current)
            try:
                return await func(self, *args, **kwargs)
            except Exception as e:
                logger.exception(f"{operation} failed unexpectedly")
                return OperationResult.fail(
                    f"Unexpected error during {operation}: {e}",
                    code=UNEXPECTED,
                )
            finally:
                lock.release(operation)

        return wrapper  # type: ignore[return-value]

    return decorator
