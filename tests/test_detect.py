from __future__ import annotations

from txn_pipeline.config import PipelineConfig
from txn_pipeline.detect import (
    EMPTY_FILE_MESSAGE,
    is_pdf,
    parse_statement,
    parse_statement_text,
)
from txn_pipeline.exceptions import UNKNOWN_FORMAT_MESSAGE


def test_empty_file() -> None:
    for data in (b"", b"  \n\n "):
        result = parse_statement(data, "empty.csv")
        assert not result.success
        assert result.errors == (EMPTY_FILE_MESSAGE,)
        assert result.transactions == ()


def test_unknown_format_message() -> None:
    result = parse_statement(b"foo,bar\n1,2\n", "mystery.csv")
    assert not result.success
    assert result.format_label == "Unknown"
    assert result.errors == (UNKNOWN_FORMAT_MESSAGE,)


def test_non_utf8_bytes_are_a_read_error() -> None:
    result = parse_statement(b"\xff\xfe\x00bad", "weird.csv")
    assert not result.success
    assert result.format_label == "Read Error"


def test_pdf_sniffing() -> None:
    assert is_pdf(b"%PDF-1.7 ...")
    assert is_pdf(b"anything", "Statement.PDF")
    assert not is_pdf(b"Date,Amount\n", "statement.csv")


def test_csv_bytes_with_bom() -> None:
    data = "\ufeffTxn Date,Description,Value Date,Ref No,Debit,Credit\n".encode()
    data += b"22 Jan 2024,UPI/DR/1/Landlord/HDFC,,,500.00,\n"
    result = parse_statement(data, "sbi.csv")
    assert result.success
    assert result.format_label == "SBI Bank Statement"


def test_plain_text_with_bank_landmark_falls_back_to_pdf_rules() -> None:
    text = "HDFC Bank\nStatement of account\n22/01/24 POS AMAZON 1,299.00 20,000.00\n"
    result = parse_statement_text(text, config=PipelineConfig())
    assert result.format_label == "HDFC PDF Statement"
    assert len(result.transactions) == 1
