"""
dynamodb_export_poller — Wait for in-flight DynamoDB table exports to finish.

Poller.poll_group() discovers the IN_PROGRESS exports of a table and polls
each one concurrently with exponential backoff.  Errors from individual
exports are collected into a single AggregateError.
"""

from dynamodb_export_poller.client import DynamoDBExportClient, ExportStatusClient
from dynamodb_export_poller.exceptions import (
    AggregateError,
    ConfigError,
    ExhaustedError,
    ExportError,
    ExportFailedError,
    ExportPollerError,
    Fault,
    IdentifierRequiredError,
    NotYetFinishedError,
    PermanentExportError,
    ScopeCancelledError,
    TransportError,
)
from dynamodb_export_poller.models import ExportDescription, ExportStatus, ExportSummary, is_arn
from dynamodb_export_poller.options import PollerOptions, parse_duration
from dynamodb_export_poller.poller import Poller
from dynamodb_export_poller.retry import RetryPolicy, RetryState, mark_permanent
from dynamodb_export_poller.scope import Scope

__all__ = [
    "AggregateError",
    "ConfigError",
    "DynamoDBExportClient",
    "ExhaustedError",
    "ExportDescription",
    "ExportError",
    "ExportFailedError",
    "ExportPollerError",
    "ExportStatus",
    "ExportStatusClient",
    "ExportSummary",
    "Fault",
    "IdentifierRequiredError",
    "NotYetFinishedError",
    "PermanentExportError",
    "Poller",
    "PollerOptions",
    "RetryPolicy",
    "RetryState",
    "Scope",
    "ScopeCancelledError",
    "TransportError",
    "is_arn",
    "mark_permanent",
    "parse_duration",
]
