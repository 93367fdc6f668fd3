"""Core enumerations for docensemble."""
from enum import StrEnum


class DocumentType(StrEnum):
    """Financial document types with a dedicated record model."""

    INVOICE = "invoice"
    BILL = "bill"
    RECEIPT = "receipt"
    EXPENSE = "expense"


class ExtractionSource(StrEnum):
    """Which extraction agent a value (or a whole record) came from."""

    FAST = "fast"
    EXPERT = "expert"
    NONE = "none"


class ModelWeight(StrEnum):
    """Per-field policy for resolving a genuine disagreement."""

    PREFER_FAST = "prefer_fast"
    PREFER_EXPERT = "prefer_expert"
    REQUIRE_MATCH = "require_match"  # neither side trusted alone → None


class ConflictSeverity(StrEnum):
    """Severity of a field-level disagreement."""

    CRITICAL = "critical"
    WARNING = "warning"


class FieldKind(StrEnum):
    """How a record field is reconciled between the two agents."""

    TEXT = "text"
    MONEY = "money"
    LIST = "list"
    PREFER_EXPERT = "prefer_expert"  # expert value if present, never a conflict
