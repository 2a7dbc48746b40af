"""
dynamodb_export_poller.exceptions — Error taxonomy for export polling.

Call-level errors (ConfigError, listing TransportError) abort a poll before
any per-export work starts.  Per-export errors (PermanentExportError,
ExhaustedError) are collected into a single AggregateError.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum


class ExportPollerError(Exception):
    """Base class for all poller errors."""


class ConfigError(ExportPollerError, ValueError):
    """Raised when poller options or identifiers are invalid.

    Attributes:
        reasons: Every violated rule, in the order it was checked.
    """

    def __init__(self, reasons: Iterable[str]) -> None:
        self.reasons: tuple[str, ...] = tuple(reasons)
        super().__init__("; ".join(self.reasons))


class IdentifierRequiredError(ConfigError):
    """Raised when a table or export ARN is missing or malformed."""

    def __init__(self, identifier: str | None = None, *, kind: str = "table") -> None:
        self.identifier = identifier
        super().__init__([f"{kind} ARN required"])


class Fault(StrEnum):
    """Which side of the API call is to blame for a failure."""

    CLIENT = "client"
    SERVER = "server"
    UNKNOWN = "unknown"


class TransportError(ExportPollerError):
    """Raised when a ListExports or DescribeExport call fails.

    Client faults (malformed request, not found, access denied) are
    permanent.  Server and unknown faults are transient.
    """

    def __init__(
        self,
        *,
        operation: str,
        fault: Fault,
        code: str = "",
        message: str = "",
    ) -> None:
        self.operation = operation
        self.fault = fault
        self.code = code
        self.message = message
        detail = ": ".join(part for part in (code, message) if part) or "request failed"
        super().__init__(f"{operation}(): {detail}")

    @property
    def permanent(self) -> bool:
        return self.fault is Fault.CLIENT


class NotYetFinishedError(ExportPollerError):
    """The export is still IN_PROGRESS; retried like any transient error."""

    def __init__(self, export_arn: str = "") -> None:
        self.export_arn = export_arn
        super().__init__("export has not been finished")


class ExportFailedError(ExportPollerError):
    """DescribeExport reported the export as FAILED; retrying cannot help."""

    def __init__(self, *, failure_code: str | None = None, failure_message: str | None = None) -> None:
        self.failure_code = failure_code
        self.failure_message = failure_message
        detail = ": ".join(part for part in (failure_code, failure_message) if part)
        super().__init__(f"export failed: {detail}" if detail else "export failed")


class ScopeCancelledError(ExportPollerError):
    """Raised when the polling scope was cancelled or its deadline passed."""

    def __init__(self, *, deadline_exceeded: bool = False) -> None:
        self.deadline_exceeded = deadline_exceeded
        super().__init__("deadline exceeded" if deadline_exceeded else "scope cancelled")


class ExportError(ExportPollerError):
    """Base class for errors that belong to one export."""

    def __init__(self, export_arn: str, message: str, *, cause: BaseException | None = None) -> None:
        self.export_arn = export_arn
        self.cause = cause
        super().__init__(f"{export_arn}: {message}")


class PermanentExportError(ExportError):
    """The export failed with a non-retryable error after one attempt."""

    def __init__(self, export_arn: str, *, cause: BaseException) -> None:
        super().__init__(export_arn, str(cause), cause=cause)


class ExhaustedError(ExportError):
    """Attempts or the overall deadline ran out while the export was still transient.

    Attributes:
        attempts:          Number of describe attempts actually made.
        deadline_exceeded: True when the scope's deadline passed.
        cancelled:         True when the scope was cancelled before its deadline.
    """

    def __init__(
        self,
        export_arn: str,
        *,
        attempts: int,
        cause: BaseException | None = None,
        deadline_exceeded: bool = False,
        cancelled: bool = False,
    ) -> None:
        self.attempts = attempts
        self.deadline_exceeded = deadline_exceeded
        self.cancelled = cancelled and not deadline_exceeded
        if deadline_exceeded:
            reason = "deadline exceeded"
        elif self.cancelled:
            reason = f"cancelled after {attempts} attempts"
        else:
            reason = f"gave up after {attempts} attempts"
        detail = f"{reason}: {cause}" if cause is not None else reason
        super().__init__(export_arn, detail, cause=cause)


class AggregateError(ExportPollerError):
    """Every per-export error from a single poll_group call.

    Members are sorted by export ARN so the message is deterministic.
    """

    def __init__(self, errors: Iterable[ExportError]) -> None:
        self.errors: list[ExportError] = sorted(errors, key=lambda err: err.export_arn)
        super().__init__("\n".join(str(err) for err in self.errors))

    def __len__(self) -> int:
        return len(self.errors)

    def find(self, error_type: type[BaseException]) -> list[ExportError]:
        """Members that are, or were caused by, an error of error_type.

        ``aggregate.find(TransportError)`` matches an ExhaustedError whose last
        attempt failed with a TransportError as well as the TransportError
        wrapped by a PermanentExportError.
        """
        return [
            err
            for err in self.errors
            if isinstance(err, error_type) or isinstance(err.cause, error_type)
        ]
