"""Field-level consensus between the fast and the expert extraction.

Compares two records of the same type field by field and resolves
disagreements:

1. **Agreement**: both models extracted the same value (ignoring
   surrounding whitespace, or formatting for amounts) → keep it.
2. **One missing**: only one model saw the field → take that value.
3. **Disagreement**: apply the field's weight (PREFER_FAST, PREFER_EXPERT,
   REQUIRE_MATCH) and record a ``FieldConflict``. Financial totals,
   IBANs, payment references and VAT identifiers are CRITICAL.

Structured lists (line items, VAT rows) are never merged element-wise;
the expert's list wins whenever it is non-empty.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

import structlog

from docensemble.config import EnsembleConfig
from docensemble.core.enums import ConflictSeverity, ExtractionSource, FieldKind, ModelWeight
from docensemble.core.models import (
    BillRecord,
    ConflictReport,
    ConsensusResult,
    EnsembleResult,
    ExpenseRecord,
    ExtractedRecord,
    FieldConflict,
    InvoiceRecord,
    NoData,
    ReceiptRecord,
    SingleSource,
    Unanimous,
    WithConflicts,
)
from docensemble.core.money import amounts_equal
from docensemble.ensemble.fields import FieldSpec, fields_for

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=ExtractedRecord)

CONFLICT_PENALTY = 0.05
MAX_CONFLICT_PENALTY = 0.25

CRITICAL_FIELDS: frozenset[str] = frozenset({
    "totalAmount",
    "subtotal",
    "totalVatAmount",
    "vatAmount",
    "amount",
    "iban",
    "bankAccount",  # the supplier IBAN on bills
    "paymentReference",
    "vendorVatNumber",
    "supplierVatNumber",
    "merchantVatNumber",
})

DEFAULT_FIELD_WEIGHTS: Mapping[str, ModelWeight] = {
    # Financial amounts
    "totalAmount": ModelWeight.PREFER_EXPERT,
    "subtotal": ModelWeight.PREFER_EXPERT,
    "totalVatAmount": ModelWeight.PREFER_EXPERT,
    "vatAmount": ModelWeight.PREFER_EXPERT,
    "amount": ModelWeight.PREFER_EXPERT,
    # Identifiers
    "vendorVatNumber": ModelWeight.PREFER_EXPERT,
    "supplierVatNumber": ModelWeight.PREFER_EXPERT,
    "merchantVatNumber": ModelWeight.PREFER_EXPERT,
    "iban": ModelWeight.PREFER_EXPERT,
    "paymentReference": ModelWeight.PREFER_EXPERT,
    "invoiceNumber": ModelWeight.PREFER_EXPERT,
    # Names
    "vendorName": ModelWeight.PREFER_EXPERT,
    "supplierName": ModelWeight.PREFER_EXPERT,
    "merchantName": ModelWeight.PREFER_EXPERT,
    # Dates
    "issueDate": ModelWeight.PREFER_EXPERT,
    "dueDate": ModelWeight.PREFER_EXPERT,
    "date": ModelWeight.PREFER_EXPERT,
    "transactionDate": ModelWeight.PREFER_EXPERT,
}


def calculate_merged_confidence(
    fast_confidence: float,
    expert_confidence: float,
    conflict_count: int,
    penalty_per_conflict: float = CONFLICT_PENALTY,
    max_penalty: float = MAX_CONFLICT_PENALTY,
) -> float:
    """Combine both confidences, weighting the expert twice, minus a conflict penalty.

    Args:
        fast_confidence: Confidence reported by the fast agent.
        expert_confidence: Confidence reported by the expert agent.
        conflict_count: Number of recorded field conflicts.
        penalty_per_conflict: Reduction per conflict.
        max_penalty: Cap on the total reduction.

    Returns:
        Merged confidence, never below 0.0.
    """
    base = (fast_confidence + 2 * expert_confidence) / 3
    penalty = min(conflict_count * penalty_per_conflict, max_penalty)
    return max(0.0, base - penalty)


class ConsensusEngine:
    """Merges a fast and an expert extraction into one consensus result.

    Args:
        field_weights: Overrides of the default weight table, keyed by wire
            field name. Take precedence over per-type field tables.
        critical_fields: Field names whose conflicts are CRITICAL.
        conflict_penalty: Confidence reduction per recorded conflict.
        max_conflict_penalty: Cap on the total conflict reduction.
    """

    def __init__(
        self,
        field_weights: Mapping[str, ModelWeight] | None = None,
        critical_fields: frozenset[str] | None = None,
        conflict_penalty: float = CONFLICT_PENALTY,
        max_conflict_penalty: float = MAX_CONFLICT_PENALTY,
    ) -> None:
        self._overrides = dict(field_weights or {})
        self._critical_fields = (
            CRITICAL_FIELDS if critical_fields is None else critical_fields
        )
        self._conflict_penalty = conflict_penalty
        self._max_conflict_penalty = max_conflict_penalty

    @classmethod
    def from_config(cls, cfg: EnsembleConfig) -> ConsensusEngine:
        """Build an engine from an ``EnsembleConfig``."""
        return cls(
            field_weights=cfg.field_weights,
            conflict_penalty=cfg.thresholds.conflict_penalty,
            max_conflict_penalty=cfg.thresholds.max_conflict_penalty,
        )

    # ------------------------------------------------------------------
    # Public merge API
    # ------------------------------------------------------------------

    def merge(self, fast: RecordT | None, expert: RecordT | None) -> ConsensusResult:
        """Merge two extractions of the same document.

        Args:
            fast: Record from the fast agent, or None if it produced nothing.
            expert: Record from the expert agent, or None.

        Returns:
            NoData, SingleSource, Unanimous or WithConflicts.

        Raises:
            TypeError: If the two records are of different types.
        """
        if fast is None and expert is None:
            return NoData()
        if fast is None:
            return SingleSource(value=expert, source=ExtractionSource.EXPERT)
        if expert is None:
            return SingleSource(value=fast, source=ExtractionSource.FAST)

        if type(fast) is not type(expert):
            raise TypeError(
                f"Cannot merge {type(fast).__name__} with {type(expert).__name__}"
            )

        conflicts: list[FieldConflict] = []
        merged = self._merge_fields(fast, expert, conflicts)

        logger.info(
            "consensus_merged",
            document_type=str(type(fast).document_type),
            n_conflicts=len(conflicts),
            n_critical=sum(1 for c in conflicts if c.severity == ConflictSeverity.CRITICAL),
            confidence=round(merged.confidence, 4),
        )

        if not conflicts:
            return Unanimous(value=merged)
        return WithConflicts(value=merged, report=ConflictReport(conflicts=conflicts))

    def merge_invoices(
        self, fast: InvoiceRecord | None, expert: InvoiceRecord | None
    ) -> ConsensusResult:
        return self.merge(fast, expert)

    def merge_bills(
        self, fast: BillRecord | None, expert: BillRecord | None
    ) -> ConsensusResult:
        return self.merge(fast, expert)

    def merge_receipts(
        self, fast: ReceiptRecord | None, expert: ReceiptRecord | None
    ) -> ConsensusResult:
        return self.merge(fast, expert)

    def merge_expenses(
        self, fast: ExpenseRecord | None, expert: ExpenseRecord | None
    ) -> ConsensusResult:
        return self.merge(fast, expert)

    def merge_outcomes(self, result: EnsembleResult) -> ConsensusResult:
        """Merge an ensemble result, treating failed outcomes as absent."""
        return self.merge(result.fast_record, result.expert_record)

    # ------------------------------------------------------------------
    # Field resolution
    # ------------------------------------------------------------------

    def resolve_string(
        self,
        field: str,
        fast_value: str | None,
        expert_value: str | None,
        conflicts: list[FieldConflict],
        weight: ModelWeight | None = None,
    ) -> str | None:
        """Resolve a text field, recording a conflict on genuine disagreement.

        Args:
            field: Wire field name.
            fast_value: Value from the fast agent.
            expert_value: Value from the expert agent.
            conflicts: Accumulator for recorded conflicts.
            weight: Weight to apply; looked up by field name if None.

        Returns:
            The value to keep in the merged record.
        """
        if fast_value == expert_value:
            return expert_value

        # Whitespace-only differences are not conflicts; keep expert formatting
        normalized_fast = fast_value.strip() if fast_value is not None else None
        normalized_expert = expert_value.strip() if expert_value is not None else None
        if normalized_fast == normalized_expert:
            return expert_value

        if fast_value is None:
            return expert_value
        if expert_value is None:
            return fast_value

        weight = weight or self.weight_for(field)
        if weight == ModelWeight.PREFER_FAST:
            chosen: str | None = fast_value
        elif weight == ModelWeight.PREFER_EXPERT:
            chosen = expert_value
        else:
            chosen = None

        if chosen == fast_value:
            source = ExtractionSource.FAST
        elif chosen == expert_value:
            source = ExtractionSource.EXPERT
        else:
            source = ExtractionSource.NONE

        severity = (
            ConflictSeverity.CRITICAL
            if field in self._critical_fields
            else ConflictSeverity.WARNING
        )
        conflicts.append(
            FieldConflict(
                field=field,
                fast_value=fast_value,
                expert_value=expert_value,
                chosen_value=chosen,
                chosen_source=source,
                severity=severity,
            )
        )
        logger.debug(
            "field_conflict",
            field=field,
            weight=str(weight),
            chosen_source=str(source),
            severity=str(severity),
        )
        return chosen

    def resolve_amount(
        self,
        field: str,
        fast_value: str | None,
        expert_value: str | None,
        conflicts: list[FieldConflict],
        weight: ModelWeight | None = None,
    ) -> str | None:
        """Resolve a monetary field; numerically equal amounts never conflict.

        "100.00" and "100" agree, and the expert's formatting is kept.
        Unparsable amounts fall through to plain string resolution.
        """
        if fast_value == expert_value:
            return expert_value

        if amounts_equal(fast_value, expert_value):
            return expert_value

        return self.resolve_string(field, fast_value, expert_value, conflicts, weight)

    def weight_for(self, field: str, spec: FieldSpec | None = None) -> ModelWeight:
        """Weight for a field: explicit override, then per-type table, then default."""
        if field in self._overrides:
            return self._overrides[field]
        if spec is not None and spec.weight is not None:
            return spec.weight
        return DEFAULT_FIELD_WEIGHTS.get(field, ModelWeight.PREFER_EXPERT)

    def merged_confidence(
        self, fast_confidence: float, expert_confidence: float, conflict_count: int
    ) -> float:
        return calculate_merged_confidence(
            fast_confidence,
            expert_confidence,
            conflict_count,
            penalty_per_conflict=self._conflict_penalty,
            max_penalty=self._max_conflict_penalty,
        )

    def _merge_fields(
        self,
        fast: RecordT,
        expert: RecordT,
        conflicts: list[FieldConflict],
    ) -> RecordT:
        values: dict[str, Any] = {}
        for spec in fields_for(type(expert)):
            fast_value = getattr(fast, spec.attr)
            expert_value = getattr(expert, spec.attr)

            if spec.kind == FieldKind.TEXT:
                values[spec.attr] = self.resolve_string(
                    spec.name, fast_value, expert_value, conflicts,
                    self.weight_for(spec.name, spec),
                )
            elif spec.kind == FieldKind.MONEY:
                values[spec.attr] = self.resolve_amount(
                    spec.name, fast_value, expert_value, conflicts,
                    self.weight_for(spec.name, spec),
                )
            elif spec.kind == FieldKind.LIST:
                values[spec.attr] = list(expert_value) if expert_value else list(fast_value)
            else:
                values[spec.attr] = expert_value if expert_value is not None else fast_value

        values["confidence"] = self.merged_confidence(
            fast.confidence_score(), expert.confidence_score(), len(conflicts)
        )
        return type(expert)(**values)
