"""
dynamodb_export_poller.models — Export snapshots returned by the status API.

ExportSummary comes from ListExports, ExportDescription from DescribeExport.
Both are immutable values that live for one poll attempt only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

# An ARN is arn:partition:service:region:account-id:resource, and the
# resource part may itself contain colons.
_ARN_PREFIX = "arn:"
_ARN_MIN_SECTIONS = 6


class ExportStatus(StrEnum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


def is_arn(value: object) -> bool:
    """Return True if value has ARN syntax.

    Only the shape is checked: the ``arn:`` prefix and at least six
    colon-separated sections.  Partition, service and region are not
    validated against a known list.
    """
    if not isinstance(value, str) or not value.startswith(_ARN_PREFIX):
        return False
    return len(value.split(":", _ARN_MIN_SECTIONS - 1)) == _ARN_MIN_SECTIONS


def is_in_progress(status: str | ExportStatus) -> bool:
    """Anything other than IN_PROGRESS is terminal, including unknown values."""
    return status == ExportStatus.IN_PROGRESS


@dataclass(frozen=True)
class ExportSummary:
    """One entry of a ListExports page."""

    export_arn: str
    status: str  # ExportStatus value; unknown values are kept verbatim

    @classmethod
    def from_api(cls, raw: dict) -> ExportSummary:
        return cls(export_arn=raw.get("ExportArn", ""), status=raw.get("ExportStatus", ""))


@dataclass(frozen=True)
class ExportDescription:
    """Result of one DescribeExport call.

    failure_code / failure_message are only set by the API for FAILED exports.
    """

    export_arn: str
    status: str
    failure_code: str | None = None
    failure_message: str | None = None

    @classmethod
    def from_api(cls, raw: dict) -> ExportDescription:
        return cls(
            export_arn=raw.get("ExportArn", ""),
            status=raw.get("ExportStatus", ""),
            failure_code=raw.get("FailureCode"),
            failure_message=raw.get("FailureMessage"),
        )
