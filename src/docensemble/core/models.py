"""Core Pydantic data models for docensemble."""
from __future__ import annotations

import base64
from typing import Any, ClassVar, Generic, Literal, TypeVar, get_origin

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from docensemble.core.enums import (
    ConflictSeverity,
    DocumentType,
    ExtractionSource,
)

# Records are exchanged with the models (and written to disk) using
# camelCase keys; Python code uses snake_case attributes.
_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    coerce_numbers_to_str=True,
)


class PageImage(BaseModel):
    """One rendered page of a document, opaque to the coordinator.

    Attributes:
        page_number: 1-based page index within the document.
        data: Raw encoded image bytes.
        mime_type: Image MIME type (e.g., "image/png").
    """

    page_number: int = Field(ge=1)
    data: bytes
    mime_type: str = "image/png"

    model_config = {"frozen": True}

    def to_data_url(self) -> str:
        """Encode the page as a base64 ``data:`` URL for vision APIs."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


# ---------------------------------------------------------------------------
# Nested structured rows
# ---------------------------------------------------------------------------


class LineItem(BaseModel):
    """A single invoice or bill line."""

    model_config = _WIRE_CONFIG

    description: str | None = None
    quantity: str | None = None
    unit_price: str | None = None
    vat_rate: str | None = None
    total: str | None = None


class VatBreakdownEntry(BaseModel):
    """One VAT-rate row of an invoice summary (rate, taxable base, VAT)."""

    model_config = _WIRE_CONFIG

    rate: str | None = None
    base: str | None = None
    amount: str | None = None


class ReceiptItem(BaseModel):
    """A purchased item on a till receipt."""

    model_config = _WIRE_CONFIG

    description: str | None = None
    quantity: str | None = None
    price: str | None = None


class CreditNoteMeta(BaseModel):
    """Extra data present when an invoice is actually a credit note."""

    model_config = _WIRE_CONFIG

    original_invoice_number: str | None = None
    reason: str | None = None


# ---------------------------------------------------------------------------
# Document records
# ---------------------------------------------------------------------------


class ExtractedRecord(BaseModel):
    """Base class for every structured record an extraction agent returns.

    Attributes:
        confidence: Self-reported model confidence in [0, 1].
        extracted_text: Raw text the model read from the pages, if returned.
        provenance: Free-form source hints (page numbers, bounding boxes).
    """

    model_config = _WIRE_CONFIG

    document_type: ClassVar[DocumentType]

    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    extracted_text: str | None = None
    provenance: dict[str, Any] | None = None

    @field_validator("*", mode="before")
    @classmethod
    def null_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        """Map a model's ``null`` to an empty list or to zero confidence."""
        if value is not None or info.field_name is None:
            return value
        if info.field_name == "confidence":
            return 0.0
        if get_origin(cls.model_fields[info.field_name].annotation) is list:
            return []
        return value

    def confidence_score(self) -> float:
        """Confidence used by the fallback policy and the merge formula."""
        return self.confidence


class InvoiceRecord(ExtractedRecord):
    """Outgoing or incoming sales invoice (or credit note)."""

    document_type: ClassVar[DocumentType] = DocumentType.INVOICE

    vendor_name: str | None = None
    vendor_vat_number: str | None = None
    vendor_address: str | None = None
    invoice_number: str | None = None
    issue_date: str | None = None
    due_date: str | None = None
    payment_terms: str | None = None
    line_items: list[LineItem] = Field(default_factory=list)
    currency: str | None = None
    subtotal: str | None = None
    vat_breakdown: list[VatBreakdownEntry] = Field(default_factory=list)
    total_vat_amount: str | None = None
    total_amount: str | None = None
    iban: str | None = None
    bic: str | None = None
    payment_reference: str | None = None
    credit_note_meta: CreditNoteMeta | None = None


class BillRecord(ExtractedRecord):
    """Supplier bill to be paid."""

    document_type: ClassVar[DocumentType] = DocumentType.BILL

    supplier_name: str | None = None
    supplier_vat_number: str | None = None
    supplier_address: str | None = None
    invoice_number: str | None = None
    issue_date: str | None = None
    due_date: str | None = None
    currency: str | None = None
    amount: str | None = None
    vat_amount: str | None = None
    vat_rate: str | None = None
    total_amount: str | None = None
    line_items: list[LineItem] = Field(default_factory=list)
    category: str | None = None
    description: str | None = None
    payment_terms: str | None = None
    bank_account: str | None = None
    notes: str | None = None


class ReceiptRecord(ExtractedRecord):
    """Point-of-sale receipt."""

    document_type: ClassVar[DocumentType] = DocumentType.RECEIPT

    merchant_name: str | None = None
    merchant_address: str | None = None
    merchant_vat_number: str | None = None
    receipt_number: str | None = None
    transaction_date: str | None = None
    transaction_time: str | None = None
    items: list[ReceiptItem] = Field(default_factory=list)
    currency: str | None = None
    subtotal: str | None = None
    vat_amount: str | None = None
    total_amount: str | None = None
    payment_method: str | None = None
    card_last_four: str | None = None
    suggested_category: str | None = None


class ExpenseRecord(ExtractedRecord):
    """Generic expense claim without a formal invoice."""

    document_type: ClassVar[DocumentType] = DocumentType.EXPENSE

    merchant_name: str | None = None
    description: str | None = None
    date: str | None = None
    total_amount: str | None = None
    currency: str | None = None
    category: str | None = None
    payment_method: str | None = None
    vat_amount: str | None = None
    vat_rate: str | None = None
    reference: str | None = None


RECORD_TYPES: dict[DocumentType, type[ExtractedRecord]] = {
    DocumentType.INVOICE: InvoiceRecord,
    DocumentType.BILL: BillRecord,
    DocumentType.RECEIPT: ReceiptRecord,
    DocumentType.EXPENSE: ExpenseRecord,
}


def record_model_for(document_type: DocumentType) -> type[ExtractedRecord]:
    """Return the record model class for a document type."""
    return RECORD_TYPES[DocumentType(document_type)]


RecordT = TypeVar("RecordT", bound=ExtractedRecord)


# ---------------------------------------------------------------------------
# Coordinator output
# ---------------------------------------------------------------------------


class EnsemblePolicy(BaseModel):
    """Execution policy for one ``extract`` call.

    Attributes:
        run_parallel: Run both agents concurrently; otherwise run the fast
            agent first and only fall back to the expert when needed.
        max_concurrent_agents: Upper bound on simultaneously running agent
            calls within a single document's extraction.
    """

    run_parallel: bool = True
    max_concurrent_agents: int = Field(default=2, ge=1)


class ExtractionOutcome(BaseModel, Generic[RecordT]):
    """Result of running one agent: a decoded record or a captured failure.

    Attributes:
        agent_id: Identifier of the agent that produced this outcome.
        record: The decoded record on success, None on failure.
        error_kind: Exception class name on failure.
        error_message: Exception message on failure.
        duration_ms: Wall-clock time of the agent call.
    """

    agent_id: str
    record: RecordT | None = None
    error_kind: str | None = None
    error_message: str | None = None
    duration_ms: int = 0

    model_config = {"frozen": True}

    @property
    def succeeded(self) -> bool:
        return self.record is not None and self.error_kind is None

    @property
    def failed(self) -> bool:
        return not self.succeeded

    @classmethod
    def success(
        cls, agent_id: str, record: RecordT, duration_ms: int = 0
    ) -> ExtractionOutcome[RecordT]:
        return cls(agent_id=agent_id, record=record, duration_ms=duration_ms)

    @classmethod
    def failure(
        cls, agent_id: str, error: BaseException, duration_ms: int = 0
    ) -> ExtractionOutcome[RecordT]:
        return cls(
            agent_id=agent_id,
            error_kind=type(error).__name__,
            error_message=str(error),
            duration_ms=duration_ms,
        )


class EnsembleResult(BaseModel, Generic[RecordT]):
    """Both raw outcomes of one ensemble extraction.

    ``expert_outcome`` is None only when the sequential policy decided the
    fast result was good enough and never invoked the expert.
    """

    fast_outcome: ExtractionOutcome[RecordT] | None = None
    expert_outcome: ExtractionOutcome[RecordT] | None = None

    model_config = {"frozen": True}

    @property
    def fast_record(self) -> RecordT | None:
        """The fast agent's record, or None if it failed or never ran."""
        if self.fast_outcome is None or self.fast_outcome.failed:
            return None
        return self.fast_outcome.record

    @property
    def expert_record(self) -> RecordT | None:
        """The expert agent's record, or None if it failed or never ran."""
        if self.expert_outcome is None or self.expert_outcome.failed:
            return None
        return self.expert_outcome.record

    @property
    def expert_invoked(self) -> bool:
        return self.expert_outcome is not None


# ---------------------------------------------------------------------------
# Consensus output
# ---------------------------------------------------------------------------


class FieldConflict(BaseModel):
    """A genuine disagreement between the two agents on one field.

    Attributes:
        field: Wire name of the field (e.g., "totalAmount").
        fast_value: Raw value from the fast agent.
        expert_value: Raw value from the expert agent.
        chosen_value: Value written to the merged record (None under
            REQUIRE_MATCH).
        chosen_source: Which side the chosen value matches.
        severity: CRITICAL for financial and identifier fields.
    """

    field: str
    fast_value: str | None
    expert_value: str | None
    chosen_value: str | None
    chosen_source: ExtractionSource
    severity: ConflictSeverity

    model_config = {"frozen": True}


class ConflictReport(BaseModel):
    """Ordered list of field conflicts found during one merge."""

    conflicts: list[FieldConflict] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> ConflictReport:
        return cls()

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def critical_conflicts(self) -> list[FieldConflict]:
        return [c for c in self.conflicts if c.severity == ConflictSeverity.CRITICAL]

    @property
    def warning_conflicts(self) -> list[FieldConflict]:
        return [c for c in self.conflicts if c.severity == ConflictSeverity.WARNING]

    @property
    def has_critical(self) -> bool:
        return bool(self.critical_conflicts)

    @property
    def conflicts_by_field(self) -> dict[str, FieldConflict]:
        return {c.field: c for c in self.conflicts}


class _ConsensusBase(BaseModel):
    model_config = {"frozen": True}

    @property
    def has_data(self) -> bool:
        return self.data_or_none() is not None

    @property
    def has_both_sources(self) -> bool:
        return False

    def data_or_none(self) -> ExtractedRecord | None:
        return getattr(self, "value", None)

    def report_or_none(self) -> ConflictReport | None:
        return None


class NoData(_ConsensusBase):
    """Neither agent produced a record."""

    kind: Literal["no_data"] = "no_data"


class SingleSource(_ConsensusBase, Generic[RecordT]):
    """Exactly one agent produced a record."""

    kind: Literal["single_source"] = "single_source"
    value: RecordT
    source: ExtractionSource


class Unanimous(_ConsensusBase, Generic[RecordT]):
    """Both agents produced records and no field disagreed."""

    kind: Literal["unanimous"] = "unanimous"
    value: RecordT

    @property
    def has_both_sources(self) -> bool:
        return True


class WithConflicts(_ConsensusBase, Generic[RecordT]):
    """Both agents produced records and at least one field disagreed."""

    kind: Literal["with_conflicts"] = "with_conflicts"
    value: RecordT
    report: ConflictReport

    @property
    def has_both_sources(self) -> bool:
        return True

    def report_or_none(self) -> ConflictReport | None:
        return self.report


ConsensusResult = NoData | SingleSource | Unanimous | WithConflicts


class DocumentConsensus(BaseModel):
    """Everything produced for one document: raw outcomes plus consensus.

    Attributes:
        document_type: The record type that was extracted.
        ensemble: Raw fast/expert outcomes from the coordinator.
        consensus: The reconciled result.
    """

    document_type: DocumentType
    ensemble: EnsembleResult
    consensus: NoData | SingleSource | Unanimous | WithConflicts = Field(discriminator="kind")
