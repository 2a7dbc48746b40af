#!/usr/bin/env python3
"""
dynamodb-export-poller — Wait until in-flight DynamoDB table exports finish.

Exactly one of --table-arn (every IN_PROGRESS export of the table) or
--export-arn (a single export) must be given.

Exit codes:
    0  All watched exports finished (or none were in progress)
    1  Invalid arguments, API failure, or an export failed / did not finish

Usage:
    dynamodb-export-poller --table-arn arn:aws:dynamodb:eu-west-2:123456789012:table/orders
    dynamodb-export-poller --export-arn <arn> --max-attempts 30 --timeout 15m --debug
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import IO

from botocore.exceptions import BotoCoreError

from dynamodb_export_poller.client import DynamoDBExportClient
from dynamodb_export_poller.exceptions import ExportPollerError
from dynamodb_export_poller.options import (
    DEFAULT_MAX_ATTEMPTS,
    PollerOptions,
    default_concurrency,
    parse_duration,
)
from dynamodb_export_poller.poller import Poller, build_logger

STATUS_OK = 0
STATUS_NG = 1


class ArgumentError(Exception):
    pass


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting with status 2."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise ArgumentError(message)


def _duration(text: str) -> float:
    try:
        return parse_duration(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="dynamodb-export-poller",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--table-arn", default="", help="table ARN to watch exports")
    parser.add_argument("--export-arn", default="", help="export ARN to watch")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument(
        "--initial-delay", type=_duration, default="1s", help="initial wait time (default 1s)"
    )
    parser.add_argument(
        "--max-delay", type=_duration, default="10s", help="max wait time (default 10s)"
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=default_concurrency(),
        help="concurrency to run requests (default: number of CPUs)",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=DEFAULT_MAX_ATTEMPTS,
        help="max attempts per export (zero means forever)",
    )
    parser.add_argument(
        "--timeout",
        type=_duration,
        default="0s",
        help="global timeout (zero means waits forever)",
    )
    parser.add_argument(
        "--region",
        default=os.environ.get("AWS_REGION") or None,
        help="AWS region (default: $AWS_REGION)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def run(args: argparse.Namespace, *, out: IO[str] | None = None) -> int:
    logger = build_logger(debug=args.debug, stream=out or sys.stderr)

    if args.table_arn and args.export_arn:
        logger.error("either one of --table-arn or --export-arn must be specified")
        return STATUS_NG
    if not (args.table_arn or args.export_arn):
        logger.error("neither --table-arn nor --export-arn specified")
        return STATUS_NG

    options = PollerOptions(
        concurrency=args.concurrency,
        initial_delay=args.initial_delay,
        max_delay=args.max_delay,
        max_attempts=args.max_attempts,
        timeout=args.timeout,
    )
    try:
        options.validate()
        poller = Poller(DynamoDBExportClient(region_name=args.region), options, logger=logger)
        if args.export_arn:
            poller.poll_export(args.export_arn)
        else:
            poller.poll_group(args.table_arn)
    except (ExportPollerError, BotoCoreError) as exc:
        logger.error(str(exc), error_type=type(exc).__name__)
        return STATUS_NG
    return STATUS_OK


def main(argv: list[str] | None = None, *, out: IO[str] | None = None) -> int:
    stream = out or sys.stderr
    try:
        args = parse_args(argv)
    except ArgumentError as exc:
        print(f"dynamodb-export-poller: error: {exc}", file=stream)
        return STATUS_NG
    except SystemExit as exc:
        # --help
        return STATUS_OK if exc.code in (0, None) else STATUS_NG
    return run(args, out=stream)


if __name__ == "__main__":
    raise SystemExit(main())
