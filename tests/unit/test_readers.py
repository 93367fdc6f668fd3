"""Tests for page image and record readers."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from docensemble.core.enums import DocumentType
from docensemble.core.exceptions import RecordParseError, UnsupportedFormatError
from docensemble.core.models import BillRecord
from docensemble.io.readers import read_page_images, read_record


def test_reads_pages_in_order(tmp_path: Path) -> None:
    first = tmp_path / "page1.png"
    second = tmp_path / "page2.JPG"
    first.write_bytes(b"\x89PNG-one")
    second.write_bytes(b"\xff\xd8-two")

    pages = read_page_images([first, second])

    assert [p.page_number for p in pages] == [1, 2]
    assert pages[0].data == b"\x89PNG-one"
    assert pages[0].mime_type == "image/png"
    assert pages[1].mime_type == "image/jpeg"


def test_unsupported_format(tmp_path: Path) -> None:
    with pytest.raises(UnsupportedFormatError, match=".pdf"):
        read_page_images([tmp_path / "scan.pdf"])


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_page_images([tmp_path / "missing.png"])


def test_read_record_camel_case(tmp_path: Path) -> None:
    path = tmp_path / "bill.json"
    path.write_text(json.dumps({"supplierName": "Power Co", "totalAmount": "80.00"}))
    record = read_record(path, DocumentType.BILL)
    assert isinstance(record, BillRecord)
    assert record.supplier_name == "Power Co"


def test_read_record_snake_case(tmp_path: Path) -> None:
    path = tmp_path / "bill.json"
    path.write_text(json.dumps({"supplier_name": "Power Co"}))
    assert read_record(path, DocumentType.BILL).supplier_name == "Power Co"


def test_read_record_requires_json(tmp_path: Path) -> None:
    with pytest.raises(UnsupportedFormatError):
        read_record(tmp_path / "bill.yaml", DocumentType.BILL)


def test_read_record_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_record(tmp_path / "bill.json", DocumentType.BILL)


def test_read_record_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "bill.json"
    path.write_text("{not json")
    with pytest.raises(RecordParseError, match="invalid JSON"):
        read_record(path, DocumentType.BILL)


def test_read_record_off_schema(tmp_path: Path) -> None:
    path = tmp_path / "bill.json"
    path.write_text(json.dumps({"confidence": 5}))
    with pytest.raises(RecordParseError, match="bill record") as exc_info:
        read_record(path, DocumentType.BILL)
    assert exc_info.value.path == str(path)
