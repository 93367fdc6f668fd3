"""Declarative field tables for every record type.

The consensus engine walks these tables in order instead of hand-writing
one merge routine per document type. Table order is also the order in
which conflicts appear in a ``ConflictReport``.
"""
from __future__ import annotations

from dataclasses import dataclass

from pydantic.alias_generators import to_camel

from docensemble.core.enums import FieldKind, ModelWeight
from docensemble.core.models import (
    BillRecord,
    ExpenseRecord,
    ExtractedRecord,
    InvoiceRecord,
    ReceiptRecord,
)


@dataclass(frozen=True)
class FieldSpec:
    """How one record attribute is reconciled.

    Attributes:
        name: Wire name used in conflict reports and weight tables.
        attr: Python attribute name on the record model.
        kind: Reconciliation strategy.
        weight: Per-type weight; None defers to the engine's weight table.
    """

    name: str
    attr: str
    kind: FieldKind
    weight: ModelWeight | None = None


def text(attr: str, weight: ModelWeight | None = None) -> FieldSpec:
    return FieldSpec(to_camel(attr), attr, FieldKind.TEXT, weight)


def money(attr: str, weight: ModelWeight | None = None) -> FieldSpec:
    return FieldSpec(to_camel(attr), attr, FieldKind.MONEY, weight)


def listed(attr: str) -> FieldSpec:
    return FieldSpec(to_camel(attr), attr, FieldKind.LIST)


def expert_first(attr: str) -> FieldSpec:
    return FieldSpec(to_camel(attr), attr, FieldKind.PREFER_EXPERT)


INVOICE_FIELDS: tuple[FieldSpec, ...] = (
    # Vendor
    text("vendor_name"),
    text("vendor_vat_number"),
    text("vendor_address"),
    # Invoice details
    text("invoice_number"),
    text("issue_date"),
    text("due_date"),
    text("payment_terms"),
    listed("line_items"),
    # Totals
    text("currency"),
    money("subtotal"),
    listed("vat_breakdown"),
    money("total_vat_amount"),
    money("total_amount"),
    # Payment
    text("iban"),
    text("bic"),
    text("payment_reference"),
    expert_first("extracted_text"),
    expert_first("provenance"),
    expert_first("credit_note_meta"),
)

BILL_FIELDS: tuple[FieldSpec, ...] = (
    text("supplier_name"),
    text("supplier_vat_number"),
    text("supplier_address"),
    text("invoice_number"),
    text("issue_date"),
    text("due_date"),
    text("currency"),
    money("amount"),
    money("vat_amount"),
    text("vat_rate"),
    money("total_amount"),
    listed("line_items"),
    text("category"),
    text("description"),
    text("payment_terms"),
    text("bank_account"),
    expert_first("notes"),
    expert_first("extracted_text"),
    expert_first("provenance"),
)

RECEIPT_FIELDS: tuple[FieldSpec, ...] = (
    text("merchant_name"),
    text("merchant_address"),
    text("merchant_vat_number"),
    text("receipt_number"),
    text("transaction_date"),
    text("transaction_time"),
    listed("items"),
    text("currency"),
    money("subtotal"),
    money("vat_amount"),
    money("total_amount"),
    text("payment_method"),
    text("card_last_four"),
    text("suggested_category"),
    expert_first("extracted_text"),
    expert_first("provenance"),
)

EXPENSE_FIELDS: tuple[FieldSpec, ...] = (
    text("merchant_name"),
    text("description"),
    text("date"),
    money("total_amount"),
    text("currency"),
    text("category"),
    text("payment_method"),
    money("vat_amount"),
    text("vat_rate"),
    text("reference"),
    expert_first("extracted_text"),
    expert_first("provenance"),
)

FIELD_TABLES: dict[type[ExtractedRecord], tuple[FieldSpec, ...]] = {
    InvoiceRecord: INVOICE_FIELDS,
    BillRecord: BILL_FIELDS,
    ReceiptRecord: RECEIPT_FIELDS,
    ExpenseRecord: EXPENSE_FIELDS,
}


def fields_for(record_type: type[ExtractedRecord]) -> tuple[FieldSpec, ...]:
    """Return the field table for a record model, walking the MRO.

    Raises:
        TypeError: If no table is registered for the record type.
    """
    for cls in record_type.__mro__:
        if cls in FIELD_TABLES:
            return FIELD_TABLES[cls]  # type: ignore[index]
    raise TypeError(f"No consensus field table for {record_type.__name__}")
