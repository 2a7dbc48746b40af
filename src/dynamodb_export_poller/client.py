"""
dynamodb_export_poller.client — Export status API used by the Poller.

ExportStatusClient is the capability the Poller depends on: list the exports
of a table, describe one export.  DynamoDBExportClient is the boto3-backed
implementation; tests substitute their own.

Fault classification:
  - 4xx responses are client faults (permanent), except throttling codes.
  - 5xx responses and throttling are server faults (transient).
  - Connection and read errors raised by botocore are unknown (transient).
"""

from __future__ import annotations

import os
from typing import Any, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from dynamodb_export_poller.exceptions import Fault, TransportError
from dynamodb_export_poller.models import ExportDescription, ExportSummary
from dynamodb_export_poller.scope import Scope

DEFAULT_CONNECT_TIMEOUT_SECONDS = 5
DEFAULT_READ_TIMEOUT_SECONDS = 30

THROTTLING_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottledException",
        "TooManyRequestsException",
        "ProvisionedThroughputExceededException",
        "RequestLimitExceeded",
        "LimitExceededException",
        "SlowDown",
    }
)


class ExportStatusClient(Protocol):
    def list_exports(self, scope: Scope, table_arn: str) -> list[ExportSummary]: ...

    def describe_export(self, scope: Scope, export_arn: str) -> ExportDescription: ...


def classify_client_error(error: ClientError) -> Fault:
    code = error.response.get("Error", {}).get("Code", "")
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if code in THROTTLING_ERROR_CODES:
        return Fault.SERVER
    if isinstance(status, int):
        if 400 <= status < 500:
            return Fault.CLIENT
        if status >= 500:
            return Fault.SERVER
    return Fault.UNKNOWN


def to_transport_error(operation: str, error: Exception) -> TransportError:
    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        return TransportError(
            operation=operation,
            fault=classify_client_error(error),
            code=details.get("Code", ""),
            message=details.get("Message", ""),
        )
    return TransportError(operation=operation, fault=Fault.UNKNOWN, message=str(error))


class DynamoDBExportClient:
    """
    ExportStatusClient backed by the DynamoDB ListExports / DescribeExport APIs.

    The boto3 client is injectable for tests.  When none is given one is
    built for region_name (or AWS_REGION) with bounded connect/read timeouts,
    so an in-flight call cannot outlive the polling scope by much.
    """

    def __init__(
        self,
        *,
        dynamodb_client: Any = None,
        region_name: str | None = None,
    ) -> None:
        if dynamodb_client is None:
            region = region_name or os.environ.get("AWS_REGION") or None
            dynamodb_client = boto3.client(
                "dynamodb",
                region_name=region,
                config=Config(
                    connect_timeout=DEFAULT_CONNECT_TIMEOUT_SECONDS,
                    read_timeout=DEFAULT_READ_TIMEOUT_SECONDS,
                ),
            )
        self._dynamodb: Any = dynamodb_client

    def list_exports(self, scope: Scope, table_arn: str) -> list[ExportSummary]:
        """Return the first page of exports for table_arn.

        Pagination via NextToken is not followed.
        """
        scope.raise_if_cancelled()
        try:
            response = self._dynamodb.list_exports(TableArn=table_arn)
        except (ClientError, BotoCoreError) as exc:
            raise to_transport_error("ListExports", exc) from exc
        return [ExportSummary.from_api(raw) for raw in response.get("ExportSummaries", [])]

    def describe_export(self, scope: Scope, export_arn: str) -> ExportDescription:
        scope.raise_if_cancelled()
        try:
            response = self._dynamodb.describe_export(ExportArn=export_arn)
        except (ClientError, BotoCoreError) as exc:
            raise to_transport_error("DescribeExport", exc) from exc
        return ExportDescription.from_api(response.get("ExportDescription", {}))
