"""Extraction prompts, one per document type.

Each prompt lists the exact JSON keys of the target record so the model
answers with something ``ExtractedRecord.model_validate`` accepts.
"""
from __future__ import annotations

import json
from typing import get_origin

from docensemble.core.enums import DocumentType
from docensemble.core.models import record_model_for

PROMPT_VERSION = "v1"

_DOCUMENT_HINTS: dict[DocumentType, str] = {
    DocumentType.INVOICE: (
        "The document is an INVOICE (or credit note). The vendor is the party"
        " issuing the invoice. Fill lineItems and vatBreakdown when present."
    ),
    DocumentType.BILL: (
        "The document is a supplier BILL that has to be paid. The supplier is"
        " the party requesting payment; bankAccount is their IBAN."
    ),
    DocumentType.RECEIPT: (
        "The document is a point-of-sale RECEIPT. List purchased products"
        " under items; cardLastFour is the last four card digits if printed."
    ),
    DocumentType.EXPENSE: (
        "The document is an EXPENSE proof without a formal invoice number."
        " Use reference for any booking or ticket number."
    ),
}

_RULES = """\
1. Copy values exactly as printed; do not translate or normalise names.
2. Amounts: digits with a dot as decimal separator, no currency symbol (e.g. "1234.50").
3. Dates: ISO format YYYY-MM-DD when the date is unambiguous, otherwise as printed.
4. Use null for anything not visible on the pages. Never guess.
5. confidence: your overall certainty between 0.0 and 1.0."""


def _template_keys(document_type: DocumentType) -> dict[str, object]:
    model = record_model_for(document_type)
    keys: dict[str, object] = {}
    for name, field in model.model_fields.items():
        alias = field.alias or name
        if name == "provenance":
            continue
        keys[alias] = [] if get_origin(field.annotation) is list else None
    return keys


def build_extraction_prompt(document_type: DocumentType, n_pages: int) -> str:
    """Build the extraction prompt sent alongside the page images.

    Args:
        document_type: Record type the model must return.
        n_pages: Number of page images attached to the request.

    Returns:
        The formatted prompt string.
    """
    document_type = DocumentType(document_type)
    template = json.dumps(_template_keys(document_type), indent=2)
    return f"""You are a meticulous bookkeeping assistant extracting data from \
{n_pages} scanned page(s).

{_DOCUMENT_HINTS[document_type]}

## RULES
{_RULES}

## REQUIRED OUTPUT (valid JSON only, no markdown)
{template}"""
