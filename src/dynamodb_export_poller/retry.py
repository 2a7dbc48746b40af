"""
dynamodb_export_poller.retry — Backoff and retry decisions for one export.

Each export gets its own RetryRun; nothing here is shared between workers.

    PENDING -> ATTEMPTING -> SUCCEEDED
                          -> PERMANENTLY_FAILED   (error wrapped by mark_permanent)
                          -> EXHAUSTED            (max_attempts reached, or scope ended)

Every exception that is not marked permanent is transient, including
NotYetFinishedError for exports that are still IN_PROGRESS.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TypeVar

from dynamodb_export_poller.exceptions import (
    ExhaustedError,
    PermanentExportError,
    ScopeCancelledError,
)
from dynamodb_export_poller.scope import Scope

T = TypeVar("T")


class RetryState(StrEnum):
    PENDING = "pending"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    PERMANENTLY_FAILED = "permanently_failed"
    EXHAUSTED = "exhausted"


class Permanent(Exception):
    """Wraps an error that must not be retried."""

    def __init__(self, error: BaseException) -> None:
        self.error = error
        super().__init__(str(error))


def mark_permanent(error: BaseException) -> Permanent:
    return Permanent(error)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff between min_delay and max_delay.

    max_attempts of 0 retries until success, a permanent error, or the
    scope ends.
    """

    min_delay: float = 1.0
    max_delay: float = 10.0
    max_attempts: int = 0

    def delay(self, attempt: int) -> float:
        """Backoff after the given (1-based) failed attempt."""
        return min(self.max_delay, self.min_delay * (2 ** (attempt - 1)))

    def start(self, export_arn: str) -> RetryRun:
        return RetryRun(policy=self, export_arn=export_arn)

    def run(self, scope: Scope, export_arn: str, operation: Callable[[], T]) -> T:
        return self.start(export_arn).run(scope, operation)


@dataclass
class RetryRun:
    policy: RetryPolicy
    export_arn: str
    state: RetryState = RetryState.PENDING
    attempts: int = 0
    last_error: BaseException | None = field(default=None, repr=False)

    def _exhausted(
        self, *, deadline_exceeded: bool = False, cancelled: bool = False
    ) -> ExhaustedError:
        self.state = RetryState.EXHAUSTED
        return ExhaustedError(
            self.export_arn,
            attempts=self.attempts,
            cause=self.last_error,
            deadline_exceeded=deadline_exceeded,
            cancelled=cancelled,
        )

    def _scope_ended(self, *, deadline_exceeded: bool) -> ExhaustedError:
        # Cancelled and deadline_exceeded are exclusive on ExhaustedError.
        return self._exhausted(deadline_exceeded=deadline_exceeded, cancelled=True)

    def run(self, scope: Scope, operation: Callable[[], T]) -> T:
        if self.state is not RetryState.PENDING:
            raise RuntimeError(f"retry run for {self.export_arn} already {self.state}")
        self.state = RetryState.ATTEMPTING
        while True:
            if scope.cancelled:
                ended = self._scope_ended(deadline_exceeded=scope.deadline_exceeded)
                raise ended from self.last_error
            self.attempts += 1
            try:
                result = operation()
            except Permanent as exc:
                self.last_error = exc.error
                self.state = RetryState.PERMANENTLY_FAILED
                raise PermanentExportError(self.export_arn, cause=exc.error) from exc.error
            except ScopeCancelledError as exc:
                ended = self._scope_ended(deadline_exceeded=exc.deadline_exceeded)
                raise ended from self.last_error
            except Exception as exc:
                self.last_error = exc
            else:
                self.state = RetryState.SUCCEEDED
                return result

            if self.policy.max_attempts and self.attempts >= self.policy.max_attempts:
                raise self._exhausted() from self.last_error
            if not scope.sleep(self.policy.delay(self.attempts)):
                ended = self._scope_ended(deadline_exceeded=scope.deadline_exceeded)
                raise ended from self.last_error
