"""Shared pytest fixtures for docensemble tests."""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pytest

from docensemble.agents.adapters.mock import MockExtractionAgent
from docensemble.core.exceptions import AgentError
from docensemble.core.models import InvoiceRecord, PageImage

# Smallest valid PNG (1x1 transparent pixel)
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d00000000"
    "49454e44ae426082"
)


class FailingAgent(MockExtractionAgent):
    """Mock agent whose model call always raises."""

    async def _call_api(self, prompt: str, images: Sequence[PageImage]) -> str:
        self.calls += 1
        raise AgentError("simulated API failure", agent_id=self.agent_id)


@pytest.fixture
def page_images() -> list[PageImage]:
    """A two-page document."""
    return [
        PageImage(page_number=1, data=PNG_BYTES, mime_type="image/png"),
        PageImage(page_number=2, data=PNG_BYTES, mime_type="image/png"),
    ]


@pytest.fixture
def fast_invoice_json() -> dict[str, Any]:
    """Fast-model invoice: VAT and total differ from the expert by 2 cents."""
    return {
        "vendorName": "Acme BV",
        "vendorVatNumber": "BE0123456789",
        "invoiceNumber": "INV-2024-0042",
        "issueDate": "2024-03-01",
        "currency": "EUR",
        "subtotal": "135.50",
        "totalVatAmount": "28.45",
        "totalAmount": "163.95",
        "iban": "BE68539007547034",
        "confidence": 0.8,
    }


@pytest.fixture
def expert_invoice_json() -> dict[str, Any]:
    return {
        "vendorName": "Acme BV",
        "vendorVatNumber": "BE0123456789",
        "invoiceNumber": "INV-2024-0042",
        "issueDate": "2024-03-01",
        "currency": "EUR",
        "subtotal": "135.50",
        "totalVatAmount": "28.47",
        "totalAmount": "163.97",
        "iban": "BE68539007547034",
        "lineItems": [
            {
                "description": "Consulting",
                "quantity": "1",
                "unitPrice": "135.50",
                "total": "135.50",
            }
        ],
        "confidence": 0.9,
    }


@pytest.fixture
def fast_agent(fast_invoice_json: dict[str, Any]) -> MockExtractionAgent:
    return MockExtractionAgent(agent_id="fast-mock", response_json=fast_invoice_json)


@pytest.fixture
def expert_agent(expert_invoice_json: dict[str, Any]) -> MockExtractionAgent:
    return MockExtractionAgent(agent_id="expert-mock", response_json=expert_invoice_json)


@pytest.fixture
def failing_agent() -> FailingAgent:
    return FailingAgent(agent_id="failing-mock")


@pytest.fixture
def sample_invoice() -> InvoiceRecord:
    return InvoiceRecord(
        vendor_name="Acme BV",
        vendor_vat_number="BE0123456789",
        invoice_number="INV-2024-0042",
        currency="EUR",
        total_amount="163.95",
        iban="BE68539007547034",
        confidence=0.9,
    )
