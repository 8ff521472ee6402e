import json
from datetime import datetime, timezone

import pytest
from structlog.testing import capture_logs

import curquery.__main__ as entrypoint
from curquery.cli import parse_args
from curquery.decoder import IDENTITY_LINE_ITEM_ID, PRODUCT_CODE, UNBLENDED_COST


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch) -> "None":
    # keep structlog unconfigured so capture_logs works across tests
    monkeypatch.setattr(entrypoint, "setup_logging", lambda *args: None)
    for name in ("CURQUERY_HASH_ALGORITHM", "CURQUERY_HASH_WIDTH", "CURQUERY_ON_ERROR"):
        monkeypatch.delenv(name, raising=False)


class TestParseArgs:
    def test_defaults(self) -> "None":
        config = parse_args(["report.csv.gz"])
        assert config.report_path == "report.csv.gz"
        assert config.group_by == ["lineItem/ProductCode", "lineItem/Operation"]
        assert config.window_start == datetime(2020, 5, 1, tzinfo=timezone.utc)
        assert config.lenient_fields is False
        assert config.on_error == "abort"
        assert config.log_format == "console"

    def test_repeated_group_by_builds_composite_key(self) -> "None":
        config = parse_args(
            [
                "r.csv",
                "--group-by",
                "bill/PayerAccountId",
                "--group-by",
                "lineItem/UsageType",
                "--start",
                "2020-06-01T00:00:00Z",
                "--end",
                "2020-07-01T00:00:00Z",
                "--on-error",
                "skip",
                "--hash.algorithm",
                "blake2b",
                "--hash.width",
                "128",
            ]
        )
        assert config.group_by == ["bill/PayerAccountId", "lineItem/UsageType"]
        assert config.window_start == datetime(2020, 6, 1, tzinfo=timezone.utc)
        assert config.window_end == datetime(2020, 7, 1, tzinfo=timezone.utc)
        assert config.on_error == "skip"
        assert config.hash_algorithm == "blake2b"
        assert config.hash_width == 128

    @pytest.mark.parametrize(
        "name, value",
        [
            ("CURQUERY_HASH_WIDTH", "wide"),
            ("CURQUERY_ON_ERROR", "retry"),
            ("CURQUERY_HASH_ALGORITHM", "md5"),
        ],
    )
    def test_bad_environment_exits(self, monkeypatch, capsys, name, value) -> "None":
        monkeypatch.setenv(name, value)
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["r.csv"])
        assert exc_info.value.code == 2
        assert name in capsys.readouterr().err

    def test_rejects_bad_timestamp(self) -> "None":
        with pytest.raises(SystemExit):
            parse_args(["r.csv", "--start", "May 2020"])


class TestMain:
    def test_prints_grouped_costs(self, write_report, make_row, capsys) -> "None":
        path = write_report(
            [
                make_row(
                    {IDENTITY_LINE_ITEM_ID: "li-1", PRODUCT_CODE: "A", UNBLENDED_COST: "10"}
                ),
                make_row(
                    {IDENTITY_LINE_ITEM_ID: "li-2", PRODUCT_CODE: "A", UNBLENDED_COST: "5"}
                ),
                make_row(
                    {IDENTITY_LINE_ITEM_ID: "li-3", PRODUCT_CODE: "B", UNBLENDED_COST: "3"}
                ),
            ]
        )
        with capture_logs() as logs:
            entrypoint.main([path, "--group-by", "lineItem/ProductCode"])

        assert json.loads(capsys.readouterr().out) == {"A": 15.0, "B": 3.0}
        assert "report_loaded" in [entry["event"] for entry in logs]

    def test_writes_metrics_textfile(
        self, write_report, make_row, tmp_path, capsys
    ) -> "None":
        path = write_report([make_row()])
        textfile = tmp_path / "curquery.prom"
        with capture_logs():
            entrypoint.main([path, "--metrics.textfile", str(textfile)])

        assert json.loads(capsys.readouterr().out) == {
            "AmazonEC2_RunInstances": 0.0104
        }
        assert "curquery_line_items_ingested_total 1.0" in textfile.read_text()

    def test_unsupported_field_exits(self, write_report, make_row) -> "None":
        path = write_report([make_row()])
        with capture_logs(), pytest.raises(SystemExit, match="unsupported field"):
            entrypoint.main([path, "--group-by", "lineItem/Bogus"])

    def test_lenient_fields_skip_unsupported_field(
        self, write_report, make_row, capsys
    ) -> "None":
        path = write_report([make_row()])
        with capture_logs():
            entrypoint.main(
                [
                    path,
                    "--group-by",
                    "lineItem/Bogus",
                    "--group-by",
                    "lineItem/ProductCode",
                    "--lenient-fields",
                ]
            )
        assert json.loads(capsys.readouterr().out) == {"AmazonEC2": 0.0104}

    def test_bad_row_exits(self, write_report, make_row) -> "None":
        path = write_report([make_row({UNBLENDED_COST: "free"})])
        with capture_logs(), pytest.raises(SystemExit, match=UNBLENDED_COST):
            entrypoint.main([path])

    def test_invalid_hash_width_exits(self, write_report, make_row) -> "None":
        path = write_report([make_row()])
        with pytest.raises(SystemExit, match="xxh64"):
            entrypoint.main([path, "--hash.width", "32"])

    def test_bad_on_error_environment_exits_before_loading(
        self, write_report, make_row, monkeypatch
    ) -> "None":
        monkeypatch.setenv("CURQUERY_ON_ERROR", "retry")
        path = write_report([make_row()])
        with pytest.raises(SystemExit) as exc_info:
            entrypoint.main([path])
        assert exc_info.value.code == 2
