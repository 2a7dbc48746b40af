"""
dynamodb_export_poller.poller — Wait for in-flight DynamoDB table exports.

poll_group() lists the exports of a table, then polls every IN_PROGRESS
export on its own worker thread.  At most `concurrency` workers run at once.
Every worker's outcome is collected before returning: one export failing
never cancels its siblings.  The only call-level failures are an invalid
table ARN and a failed ListExports call.
"""

from __future__ import annotations

import itertools
import logging
import threading
from contextlib import nullcontext
from typing import Any

from aws_lambda_powertools import Logger

from dynamodb_export_poller.client import DynamoDBExportClient, ExportStatusClient
from dynamodb_export_poller.exceptions import (
    AggregateError,
    ExportError,
    ExportFailedError,
    IdentifierRequiredError,
    NotYetFinishedError,
    TransportError,
)
from dynamodb_export_poller.models import (
    ExportDescription,
    ExportStatus,
    is_arn,
    is_in_progress,
)
from dynamodb_export_poller.options import PollerOptions
from dynamodb_export_poller.retry import RetryPolicy, mark_permanent
from dynamodb_export_poller.scope import Scope

SERVICE_NAME = "dynamodb-export-poller"


class PollerLogger(Logger):
    """Powertools Logger backed by its own logging.Logger.

    Powertools configures one logging.Logger per service name and ignores the
    level and stream of every later instance.  Each PollerLogger gets a
    uniquely named logging.Logger, so its level and stream always apply.
    """

    _sequence = itertools.count()

    def _get_logger(self) -> logging.Logger:
        return logging.getLogger(f"{self.service}.{next(self._sequence)}")


def build_logger(*, debug: bool = False, **kwargs: Any) -> Logger:
    return PollerLogger(service=SERVICE_NAME, level="DEBUG" if debug else "INFO", **kwargs)


class Poller:
    """
    Polls DynamoDB table exports until each reaches a terminal state.

    Options are validated on construction (ConfigError).  The logger is
    owned by the instance; pass one in to control where output goes, or set
    debug=True to get per-attempt log lines from the default logger.
    """

    def __init__(
        self,
        client: ExportStatusClient | None = None,
        options: PollerOptions | None = None,
        *,
        logger: Logger | None = None,
        debug: bool = False,
    ) -> None:
        self.options = options or PollerOptions()
        self.options.validate()
        self._client: ExportStatusClient = client or DynamoDBExportClient()
        self._logger = logger or build_logger(debug=debug)
        self._policy = RetryPolicy(
            min_delay=self.options.initial_delay,
            max_delay=self.options.max_delay,
            max_attempts=self.options.max_attempts,
        )

    def _bounded(self, scope: Scope) -> Scope | nullcontext[Scope]:
        if self.options.timeout:
            return scope.with_timeout(self.options.timeout)
        return nullcontext(scope)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def poll_group(self, table_arn: str, scope: Scope | None = None) -> None:
        """Wait for every in-progress export of table_arn.

        Raises:
            IdentifierRequiredError: table_arn is not an ARN.  No API call is made.
            TransportError:          ListExports failed.
            AggregateError:          one or more exports failed or did not finish.
        """
        if not is_arn(table_arn):
            raise IdentifierRequiredError(table_arn, kind="table")

        with self._bounded(scope or Scope()) as bound:
            try:
                summaries = self._client.list_exports(bound, table_arn)
            except TransportError:
                self._logger.exception("failed to list exports", table_arn=table_arn)
                raise

            export_arns = list(
                dict.fromkeys(s.export_arn for s in summaries if is_in_progress(s.status))
            )
            self._logger.info(
                "found in-progress exports",
                table_arn=table_arn,
                total=len(summaries),
                in_progress=len(export_arns),
            )

            semaphore = threading.BoundedSemaphore(self.options.concurrency)
            results: dict[str, ExportError | None] = {}
            workers: list[threading.Thread] = []
            for export_arn in export_arns:
                if not bound.acquire(semaphore):
                    self._logger.error("failed to acquire worker slot", export_arn=export_arn)
                    break
                worker = threading.Thread(
                    target=self._work,
                    args=(bound, semaphore, export_arn, results),
                    name=f"export-poller-{len(workers)}",
                    daemon=True,
                )
                workers.append(worker)
                worker.start()
            for worker in workers:
                worker.join()

        errors = [err for err in results.values() if err is not None]
        if errors:
            raise AggregateError(errors)

    def poll_export(self, export_arn: str, scope: Scope | None = None) -> None:
        """Wait for a single export.

        Raises IdentifierRequiredError for a malformed ARN, otherwise the
        export's own PermanentExportError or ExhaustedError.
        """
        if not is_arn(export_arn):
            raise IdentifierRequiredError(export_arn, kind="export")
        with self._bounded(scope or Scope()) as bound:
            try:
                self._poll_with_retries(bound, export_arn)
            except ExportError:
                self._logger.exception("export did not finish", export_arn=export_arn)
                raise

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def _work(
        self,
        scope: Scope,
        semaphore: threading.BoundedSemaphore,
        export_arn: str,
        results: dict[str, ExportError | None],
    ) -> None:
        try:
            self._poll_with_retries(scope, export_arn)
        except ExportError as exc:
            self._logger.error("export did not finish", export_arn=export_arn, error=str(exc))
            results[export_arn] = exc
        else:
            results[export_arn] = None
        finally:
            semaphore.release()

    def _poll_with_retries(self, scope: Scope, export_arn: str) -> ExportDescription:
        return self._policy.run(scope, export_arn, lambda: self._poll_export(scope, export_arn))

    def _poll_export(self, scope: Scope, export_arn: str) -> ExportDescription:
        self._logger.debug("start describe export", export_arn=export_arn)
        try:
            description = self._client.describe_export(scope, export_arn)
        except TransportError as exc:
            if exc.permanent:
                raise mark_permanent(exc) from exc
            raise
        if is_in_progress(description.status):
            self._logger.debug("export is still in progress", export_arn=export_arn)
            raise NotYetFinishedError(export_arn)
        if description.status == ExportStatus.FAILED:
            raise mark_permanent(
                ExportFailedError(
                    failure_code=description.failure_code,
                    failure_message=description.failure_message,
                )
            )
        self._logger.debug(
            "export finishes",
            export_arn=export_arn,
            status=str(description.status),
        )
        return description
