"""Single-document flow: ensemble extraction followed by consensus."""
from __future__ import annotations

from collections.abc import Sequence

import structlog

from docensemble.core.enums import DocumentType
from docensemble.core.models import DocumentConsensus, EnsemblePolicy, PageImage
from docensemble.ensemble.consensus import ConsensusEngine
from docensemble.ensemble.coordinator import ExtractionEnsemble

logger = structlog.get_logger(__name__)


async def process_document(
    images: Sequence[PageImage],
    document_type: DocumentType,
    ensemble: ExtractionEnsemble,
    engine: ConsensusEngine,
    policy: EnsemblePolicy | None = None,
) -> DocumentConsensus:
    """Extract one document with both agents and reconcile the results.

    Failed agent outcomes are treated as absent before merging, so a
    document where only one agent succeeded ends up as a SingleSource
    result and one where both failed as NoData.

    Args:
        images: Rendered document pages, in order.
        document_type: Record type to extract.
        ensemble: Coordinator holding the fast and expert agents.
        engine: Consensus engine.
        policy: Execution policy; the coordinator default if None.

    Returns:
        DocumentConsensus with the raw outcomes and the consensus result.
    """
    document_type = DocumentType(document_type)
    result = await ensemble.extract(images, policy=policy, document_type=document_type)
    consensus = engine.merge_outcomes(result)
    report = consensus.report_or_none()

    logger.info(
        "document_processed",
        document_type=str(document_type),
        consensus=consensus.kind,
        n_conflicts=len(report.conflicts) if report else 0,
    )
    return DocumentConsensus(
        document_type=document_type,
        ensemble=result,
        consensus=consensus,
    )
