"""Unit tests for the dynamodb-export-poller command line."""

from __future__ import annotations

import io
import json
from unittest.mock import MagicMock

import pytest
from dynamodb_export_poller import cli
from dynamodb_export_poller.exceptions import (
    AggregateError,
    Fault,
    PermanentExportError,
    TransportError,
)
from dynamodb_export_poller.models import ExportDescription, ExportStatus
from dynamodb_export_poller.poller import SERVICE_NAME, build_logger

TABLE_ARN = "arn:aws:dynamodb:us-east-1:123456789012:table/my-table"
EXPORT_ARN = f"{TABLE_ARN}/export/9012-3456"


@pytest.fixture(autouse=True)
def aws_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")


@pytest.fixture
def poller_cls(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace Poller in the CLI module; the instance is poller_cls.return_value."""
    mock = MagicMock(name="Poller")
    monkeypatch.setattr(cli, "Poller", mock)
    return mock


def _run(*argv: str) -> int:
    return cli.main(list(argv), out=io.StringIO())


class TestParseArgs:
    def test_defaults(self) -> None:
        args = cli.parse_args(["--table-arn", TABLE_ARN])
        assert args.table_arn == TABLE_ARN
        assert args.export_arn == ""
        assert args.debug is False
        assert args.initial_delay == 1.0
        assert args.max_delay == 10.0
        assert args.max_attempts == 0
        assert args.timeout == 0.0
        assert args.concurrency >= 1
        assert args.region == "us-east-1"

    def test_go_style_durations(self) -> None:
        args = cli.parse_args(
            ["--table-arn", TABLE_ARN, "--initial-delay", "500ms", "--timeout", "1m30s"]
        )
        assert args.initial_delay == pytest.approx(0.5)
        assert args.timeout == pytest.approx(90.0)


class TestMain:
    def test_neither_arn_specified(self, poller_cls: MagicMock) -> None:
        assert _run() == cli.STATUS_NG
        poller_cls.assert_not_called()

    def test_both_arns_specified(self, poller_cls: MagicMock) -> None:
        assert _run("--table-arn", TABLE_ARN, "--export-arn", EXPORT_ARN) == cli.STATUS_NG
        poller_cls.assert_not_called()

    def test_bad_duration_is_an_error(self, poller_cls: MagicMock) -> None:
        assert _run("--table-arn", TABLE_ARN, "--timeout", "soon") == cli.STATUS_NG
        poller_cls.assert_not_called()

    def test_unknown_flag_is_an_error(self) -> None:
        assert _run("--table-arn", TABLE_ARN, "--nope") == cli.STATUS_NG

    def test_help_exits_ok(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run("--help") == cli.STATUS_OK
        assert "--table-arn" in capsys.readouterr().out

    def test_invalid_concurrency(self, poller_cls: MagicMock) -> None:
        assert _run("--table-arn", TABLE_ARN, "--concurrency", "0") == cli.STATUS_NG
        poller_cls.assert_not_called()

    def test_malformed_table_arn_fails(self) -> None:
        assert _run("--table-arn", "my-table") == cli.STATUS_NG

    def test_table_success(self, poller_cls: MagicMock) -> None:
        status = _run("--table-arn", TABLE_ARN, "--concurrency", "3", "--max-attempts", "5")
        assert status == cli.STATUS_OK

        options = poller_cls.call_args.args[1]
        assert options.concurrency == 3
        assert options.max_attempts == 5
        poller_cls.return_value.poll_group.assert_called_once_with(TABLE_ARN)
        poller_cls.return_value.poll_export.assert_not_called()

    def test_export_success(self, poller_cls: MagicMock) -> None:
        assert _run("--export-arn", EXPORT_ARN) == cli.STATUS_OK
        poller_cls.return_value.poll_export.assert_called_once_with(EXPORT_ARN)
        poller_cls.return_value.poll_group.assert_not_called()

    @pytest.mark.parametrize(
        "error",
        [
            AggregateError(
                [
                    PermanentExportError(
                        EXPORT_ARN,
                        cause=TransportError(operation="DescribeExport", fault=Fault.CLIENT),
                    )
                ]
            ),
            TransportError(operation="ListExports", fault=Fault.SERVER, message="boom"),
        ],
    )
    def test_poll_error_maps_to_failure(self, poller_cls: MagicMock, error: Exception) -> None:
        poller_cls.return_value.poll_group.side_effect = error
        assert _run("--table-arn", TABLE_ARN) == cli.STATUS_NG

    def test_region_is_passed_to_client(
        self, poller_cls: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        client_cls = MagicMock(name="DynamoDBExportClient")
        monkeypatch.setattr(cli, "DynamoDBExportClient", client_cls)
        assert _run("--table-arn", TABLE_ARN, "--region", "ap-northeast-1") == cli.STATUS_OK
        client_cls.assert_called_once_with(region_name="ap-northeast-1")
        assert poller_cls.call_args.args[0] is client_cls.return_value

    def test_every_run_logs_to_its_own_stream(self) -> None:
        first, second = io.StringIO(), io.StringIO()
        assert cli.main(["--table-arn", "bad"], out=first) == cli.STATUS_NG
        assert cli.main(["--table-arn", "bad"], out=second) == cli.STATUS_NG
        assert "table ARN required" in first.getvalue()
        assert "table ARN required" in second.getvalue()
        assert first.getvalue().count("table ARN required") == 1

    def test_debug_flag_enables_debug_lines(self, monkeypatch: pytest.MonkeyPatch) -> None:
        export_client = MagicMock(name="DynamoDBExportClient")
        export_client.return_value.describe_export.return_value = ExportDescription(
            export_arn=EXPORT_ARN, status=ExportStatus.COMPLETED
        )
        monkeypatch.setattr(cli, "DynamoDBExportClient", export_client)

        quiet, verbose = io.StringIO(), io.StringIO()
        assert cli.main(["--export-arn", EXPORT_ARN], out=quiet) == cli.STATUS_OK
        assert cli.main(["--export-arn", EXPORT_ARN, "--debug"], out=verbose) == cli.STATUS_OK
        assert "start describe export" not in quiet.getvalue()
        assert "start describe export" in verbose.getvalue()


class TestBuildLogger:
    def test_each_logger_keeps_its_own_level_and_stream(self) -> None:
        first_out, second_out = io.StringIO(), io.StringIO()
        first = build_logger(debug=False, stream=first_out)
        second = build_logger(debug=True, stream=second_out)

        second.debug("hello-debug")
        first.debug("quiet-debug")
        first.info("hello-info")

        assert "hello-debug" in second_out.getvalue()
        assert "hello-debug" not in first_out.getvalue()
        assert "quiet-debug" not in first_out.getvalue()
        assert "hello-info" in first_out.getvalue()
        assert "hello-info" not in second_out.getvalue()

    def test_output_is_structured(self) -> None:
        out = io.StringIO()
        build_logger(stream=out).info("found in-progress exports", in_progress=2)
        record = json.loads(out.getvalue().splitlines()[-1])
        assert record["message"] == "found in-progress exports"
        assert record["in_progress"] == 2
        assert record["service"] == SERVICE_NAME
