"""Mock extraction agent for offline testing."""
from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from typing import Any

from docensemble.agents.base import ExtractionAgent
from docensemble.core.models import PageImage


class MockExtractionAgent(ExtractionAgent):
    """Mock agent that returns a predefined record as JSON.

    Used exclusively for offline testing. Never call this in production.

    Args:
        agent_id: Identifier for this mock agent.
        response_json: Record dict (camelCase keys) to serialize as the response.
        latency_ms: Simulated latency in milliseconds.
    """

    def __init__(
        self,
        agent_id: str = "mock-agent",
        response_json: dict[str, Any] | None = None,
        latency_ms: float = 0.0,
    ) -> None:
        super().__init__(agent_id=agent_id)
        self._response = response_json or {
            "vendorName": "Mock Supplier BV",
            "totalAmount": "121.00",
            "currency": "EUR",
            "confidence": 0.85,
        }
        self._latency_ms = latency_ms
        self.calls = 0

    @property
    def model_version(self) -> str:
        return "mock-2026-01-01"

    async def _call_api(self, prompt: str, images: Sequence[PageImage]) -> str:
        self.calls += 1
        if self._latency_ms:
            await asyncio.sleep(self._latency_ms / 1000)
        return json.dumps(self._response)
