from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from tests.helpers.db import count_ledger_rows
from txn_pipeline.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _in_tmp_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep a developer's .env out of the run.
    monkeypatch.chdir(tmp_path)


def test_parse_notification_prints_row() -> None:
    result = runner.invoke(
        app,
        [
            "parse-notification",
            "--body",
            "Paid ₹499 to Swiggy",
            "--origin",
            "com.phonepe.app",
            "--observed-at",
            "2024-01-22T10:30:00",
        ],
    )
    assert result.exit_code == 0, result.output
    fields = result.output.strip().split("\t")
    assert fields[:2] == ["STORED", "PHONEPE"]
    assert fields[2] == "2024-01-22T10:30:00+05:30"
    assert fields[3:] == ["-499", "DEBIT", "Swiggy", "FOOD", "0.95", "RULE"]


def test_parse_notification_discarded() -> None:
    result = runner.invoke(
        app,
        [
            "parse-notification",
            "--body",
            "Your OTP for login is 123456. Do not share.",
            "--origin",
            "VM-HDFCBK",
        ],
    )
    assert result.exit_code == 0
    assert result.output.strip() == "DISCARDED\tHDFC"


def test_bad_timestamp_fails() -> None:
    result = runner.invoke(
        app,
        ["parse-notification", "--body", "x", "--origin", "y", "--observed-at", "yesterday"],
    )
    assert result.exit_code == 1
    assert "--observed-at" in result.output


def test_persist_needs_a_database_url() -> None:
    result = runner.invoke(
        app, ["parse-notification", "--body", "x", "--origin", "y", "--persist"]
    )
    assert result.exit_code == 1
    assert "--persist needs" in result.output


def test_persist_writes_the_ledger(tmp_path: Path) -> None:
    url = f"sqlite+pysqlite:///{tmp_path / 'cli.sqlite3'}"
    args = [
        "parse-notification",
        "--body",
        "Paid ₹499 to Swiggy",
        "--origin",
        "com.phonepe.app",
        "--persist",
        "--database-url",
        url,
    ]
    result = runner.invoke(app, args)
    assert result.exit_code == 0, result.output
    assert result.output.startswith("STORED")
    assert count_ledger_rows(url) == 1


def test_import_statement(tmp_path: Path) -> None:
    path = tmp_path / "sbi.csv"
    path.write_text(
        "Txn Date,Description,Value Date,Ref No,Debit,Credit\n"
        "22 Jan 2024,UPI/DR/RENT PAYMENT/Landlord/HDFC,,,500.00,\n"
        "22 Jan 2024,UPI/DR/RENT PAYMENT/Landlord/HDFC,,,500.00,\n",
        encoding="utf-8",
    )
    result = runner.invoke(app, ["import-statement", str(path), "--show-rows"])
    assert result.exit_code == 0, result.output
    lines = result.output.strip().splitlines()
    assert lines[-1] == "SBI Bank Statement\tparsed=2\timported=2\tskipped=0"
    assert "\tLandlord\t" in lines[0]


def test_import_unknown_format_exits_nonzero(tmp_path: Path) -> None:
    path = tmp_path / "mystery.csv"
    path.write_text("foo,bar\n1,2\n", encoding="utf-8")
    result = runner.invoke(app, ["import-statement", str(path)])
    assert result.exit_code == 1
    assert "Unknown file format" in result.output


def test_import_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["import-statement", str(tmp_path / "nope.csv")])
    assert result.exit_code == 1
    assert "File not found" in result.output


def test_categorize() -> None:
    result = runner.invoke(app, ["categorize", "--merchant", "Swiggy", "--amount", "499"])
    assert result.exit_code == 0
    assert result.output.strip() == "FOOD\tFood Delivery\t0.95\tRULE\tSwiggy"


def test_invalid_environment_is_reported() -> None:
    result = runner.invoke(
        app,
        ["categorize", "--merchant", "Swiggy"],
        env={"TXN_DEDUP_WINDOW_SECONDS": "soon"},
    )
    assert result.exit_code == 1
    assert "TXN_DEDUP_WINDOW_SECONDS" in result.output
