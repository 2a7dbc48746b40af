"""
dynamodb_export_poller.scope — Cancellation and deadline scope for polling.

A Scope is shared by every worker of one poll call.  Cancelling a scope, or
reaching its deadline, wakes every backoff sleep waiting on it and makes
semaphore acquisition give up.  Child scopes are cancelled with their parent
but never cancel the parent themselves.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from types import TracebackType

from dynamodb_export_poller.exceptions import ScopeCancelledError

# Upper bound for a single blocking wait on a primitive that cannot be woken
# by the scope's event (threading.Semaphore).
ACQUIRE_SLICE_SECONDS = 0.05


class Scope:
    def __init__(
        self,
        *,
        timeout: float | None = None,
        parent: Scope | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: list[Scope] = []
        self._deadline_exceeded = False
        self._parent = parent

        deadline = clock() + timeout if timeout else None
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline: float | None = deadline

        if parent is not None:
            parent._attach(self)

    # ------------------------------------------------------------------
    # Tree management
    # ------------------------------------------------------------------

    def _attach(self, child: Scope) -> None:
        with self._lock:
            self._children.append(child)
            cancelled = self._event.is_set()
        if cancelled:
            child.cancel()

    def _detach(self, child: Scope) -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def with_timeout(self, timeout: float) -> Scope:
        """Return a child scope that ends after timeout seconds.

        Use as a context manager so the child is released on every exit path.
        """
        return Scope(timeout=timeout, parent=self, clock=self._clock)

    def close(self) -> None:
        """Cancel this scope and detach it from its parent."""
        self.cancel()
        if self._parent is not None:
            self._parent._detach(self)

    def __enter__(self) -> Scope:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        with self._lock:
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel()

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    @property
    def cancelled(self) -> bool:
        expired = self.deadline is not None and self._clock() >= self.deadline
        if self._event.is_set():
            # A parent may have been cancelled by reaching the same deadline.
            if expired:
                self._deadline_exceeded = True
            return True
        if expired:
            self._deadline_exceeded = True
            self.cancel()
            return True
        return False

    @property
    def deadline_exceeded(self) -> bool:
        return self._deadline_exceeded

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise ScopeCancelledError(deadline_exceeded=self._deadline_exceeded)

    # ------------------------------------------------------------------
    # Suspension points
    # ------------------------------------------------------------------

    def sleep(self, seconds: float) -> bool:
        """Sleep for seconds unless the scope ends first.

        Returns True if the full interval elapsed, False if the scope was
        cancelled or its deadline passed while waiting.
        """
        if self.cancelled:
            return False
        wait_for = seconds
        remaining = self.remaining()
        if remaining is not None:
            wait_for = min(wait_for, remaining)
        if wait_for > 0:
            self._event.wait(wait_for)
        return not self.cancelled

    def acquire(self, semaphore: threading.Semaphore) -> bool:
        """Acquire semaphore, giving up when the scope ends.

        Returns True if a slot was acquired.
        """
        while not self.cancelled:
            wait_for = ACQUIRE_SLICE_SECONDS
            remaining = self.remaining()
            if remaining is not None:
                wait_for = min(wait_for, remaining)
            if semaphore.acquire(timeout=wait_for):
                if self.cancelled:
                    semaphore.release()
                    return False
                return True
        return False
