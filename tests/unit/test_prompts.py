"""Tests for extraction prompt construction."""
from __future__ import annotations

import json

import pytest

from docensemble.agents.prompts import PROMPT_VERSION, build_extraction_prompt
from docensemble.core.enums import DocumentType


def _template(prompt: str) -> dict[str, object]:
    return json.loads(prompt.split("## REQUIRED OUTPUT (valid JSON only, no markdown)\n", 1)[1])


def test_prompt_version() -> None:
    assert PROMPT_VERSION == "v1"


@pytest.mark.parametrize("document_type", list(DocumentType))
def test_prompt_for_every_type(document_type: DocumentType) -> None:
    prompt = build_extraction_prompt(document_type, n_pages=1)
    assert document_type.value.upper() in prompt
    assert "confidence" in _template(prompt)


def test_invoice_template_keys() -> None:
    template = _template(build_extraction_prompt(DocumentType.INVOICE, n_pages=3))
    assert template["totalAmount"] is None
    assert template["lineItems"] == []
    assert template["vatBreakdown"] == []
    assert "provenance" not in template


def test_bill_template_keys() -> None:
    template = _template(build_extraction_prompt(DocumentType.BILL, n_pages=1))
    assert "bankAccount" in template
    assert "vendorName" not in template


def test_page_count_in_prompt() -> None:
    assert "3 scanned page(s)" in build_extraction_prompt(DocumentType.RECEIPT, n_pages=3)
