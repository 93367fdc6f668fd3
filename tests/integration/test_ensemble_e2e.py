"""End-to-end test: page images -> ensemble extraction -> consensus -> JSON."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from docensemble.agents.adapters.mock import MockExtractionAgent
from docensemble.config import load_default_config
from docensemble.core.enums import ConflictSeverity, DocumentType, ExtractionSource
from docensemble.core.models import (
    EnsemblePolicy,
    NoData,
    PageImage,
    SingleSource,
    Unanimous,
    WithConflicts,
)
from docensemble.ensemble import ConsensusEngine, ExtractionEnsemble, process_document
from docensemble.io.writers import write_consensus


@pytest.mark.asyncio
async def test_parallel_invoice_with_conflicts(
    tmp_path: Path,
    page_images: list[PageImage],
    fast_agent: MockExtractionAgent,
    expert_agent: MockExtractionAgent,
) -> None:
    cfg = load_default_config()
    ensemble = ExtractionEnsemble.from_config(cfg, fast_agent, expert_agent)
    engine = ConsensusEngine.from_config(cfg)

    result = await process_document(page_images, DocumentType.INVOICE, ensemble, engine)

    consensus = result.consensus
    assert isinstance(consensus, WithConflicts)
    assert [c.field for c in consensus.report.conflicts] == ["totalVatAmount", "totalAmount"]
    assert all(c.severity == ConflictSeverity.CRITICAL for c in consensus.report.conflicts)
    merged = consensus.value
    assert merged.total_amount == "163.97"
    assert merged.vendor_name == "Acme BV"
    assert len(merged.line_items) == 1
    assert merged.confidence == pytest.approx((0.8 + 2 * 0.9) / 3 - 0.10)

    out = write_consensus(result, tmp_path / "consensus.json")
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["consensus"]["kind"] == "with_conflicts"
    assert data["consensus"]["value"]["totalAmount"] == "163.97"
    assert len(data["consensus"]["report"]["conflicts"]) == 2


@pytest.mark.asyncio
async def test_sequential_confident_fast_is_single_source(
    page_images: list[PageImage],
    fast_invoice_json: dict[str, Any],
    expert_agent: MockExtractionAgent,
) -> None:
    fast = MockExtractionAgent(
        agent_id="fast-mock", response_json={**fast_invoice_json, "confidence": 0.95}
    )
    ensemble = ExtractionEnsemble(fast, expert_agent)

    result = await process_document(
        page_images,
        DocumentType.INVOICE,
        ensemble,
        ConsensusEngine(),
        EnsemblePolicy(run_parallel=False),
    )

    assert expert_agent.calls == 0
    assert not result.ensemble.expert_invoked
    assert isinstance(result.consensus, SingleSource)
    assert result.consensus.source == ExtractionSource.FAST


@pytest.mark.asyncio
async def test_fast_failure_falls_back_to_expert(
    page_images: list[PageImage],
    failing_agent: MockExtractionAgent,
    expert_agent: MockExtractionAgent,
) -> None:
    ensemble = ExtractionEnsemble(failing_agent, expert_agent)

    result = await process_document(
        page_images,
        DocumentType.INVOICE,
        ensemble,
        ConsensusEngine(),
        EnsemblePolicy(run_parallel=False),
    )

    assert result.ensemble.fast_outcome.error_kind == "AgentError"
    assert isinstance(result.consensus, SingleSource)
    assert result.consensus.source == ExtractionSource.EXPERT


@pytest.mark.asyncio
async def test_both_agents_failing_is_no_data(
    page_images: list[PageImage],
    failing_agent: MockExtractionAgent,
) -> None:
    ensemble = ExtractionEnsemble(failing_agent, failing_agent)
    result = await process_document(page_images, DocumentType.BILL, ensemble, ConsensusEngine())
    assert isinstance(result.consensus, NoData)
    assert failing_agent.calls == 2


@pytest.mark.asyncio
async def test_agreeing_agents_are_unanimous(page_images: list[PageImage]) -> None:
    receipt = {"merchantName": "Carrefour", "totalAmount": "12,40", "confidence": 0.9}
    ensemble = ExtractionEnsemble(
        MockExtractionAgent(agent_id="fast", response_json=receipt),
        MockExtractionAgent(
            agent_id="expert", response_json={**receipt, "totalAmount": "12.40"}
        ),
    )

    result = await process_document(
        page_images, DocumentType.RECEIPT, ensemble, ConsensusEngine()
    )

    assert isinstance(result.consensus, Unanimous)
    assert result.consensus.value.total_amount == "12.40"
