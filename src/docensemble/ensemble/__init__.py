"""Fast/expert extraction ensemble and field-level consensus."""
from docensemble.ensemble.consensus import ConsensusEngine, calculate_merged_confidence
from docensemble.ensemble.coordinator import ExtractionEnsemble
from docensemble.ensemble.fields import FieldSpec, fields_for
from docensemble.ensemble.pipeline import process_document

__all__ = [
    "ConsensusEngine",
    "ExtractionEnsemble",
    "FieldSpec",
    "calculate_merged_confidence",
    "fields_for",
    "process_document",
]
