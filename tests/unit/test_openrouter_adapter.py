"""Tests for the OpenRouter vision agent adapter."""
from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from docensemble.agents.adapters.openrouter import OpenRouterVisionAgent
from docensemble.core.enums import DocumentType
from docensemble.core.exceptions import AgentRateLimitError, AgentTimeoutError
from docensemble.core.models import InvoiceRecord, PageImage


@pytest.fixture
def agent() -> OpenRouterVisionAgent:
    return OpenRouterVisionAgent(
        agent_id="expert",
        openrouter_model_name="qwen/qwen2.5-vl-72b-instruct",
        api_key="test-key-not-real",
        model_version="2025-01-28",
    )


def _ok_response(content: str) -> MagicMock:
    mock = MagicMock()
    mock.status_code = 200
    mock.json.return_value = {"choices": [{"message": {"content": content}}]}
    mock.raise_for_status = lambda: None
    return mock


def test_agent_identity(agent: OpenRouterVisionAgent) -> None:
    assert agent.agent_id == "expert"
    assert agent.model_version == "2025-01-28"


@pytest.mark.asyncio
async def test_agent_calls_openrouter(
    agent: OpenRouterVisionAgent, page_images: list[PageImage]
) -> None:
    """Agent returns the message content and decodes it into a record."""
    content = json.dumps({"vendorName": "Acme BV", "totalAmount": "163.97", "confidence": 0.9})

    with patch.object(
        agent._client,
        "post",
        new_callable=AsyncMock,
        return_value=_ok_response(content),
    ):
        record = await agent.extract(page_images, DocumentType.INVOICE)

    assert isinstance(record, InvoiceRecord)
    assert record.total_amount == "163.97"


@pytest.mark.asyncio
async def test_payload_attaches_every_page(
    agent: OpenRouterVisionAgent, page_images: list[PageImage]
) -> None:
    captured: dict[str, object] = {}

    async def capture_post(url: str, **kwargs: object) -> MagicMock:
        captured["url"] = url
        captured.update(kwargs.get("json", {}))  # type: ignore[arg-type]
        return _ok_response("{}")

    with patch.object(agent._client, "post", side_effect=capture_post):
        await agent._call_api("extract this", page_images)

    assert captured["url"] == "/chat/completions"
    assert captured["model"] == "qwen/qwen2.5-vl-72b-instruct"
    assert captured["temperature"] == 0.0
    assert captured["response_format"] == {"type": "json_object"}
    [message] = captured["messages"]  # type: ignore[misc]
    parts = message["content"]
    assert parts[0] == {"type": "text", "text": "extract this"}
    image_parts = [p for p in parts if p["type"] == "image_url"]
    assert len(image_parts) == len(page_images)
    assert image_parts[0]["image_url"]["url"].startswith("data:image/png;base64,")


@pytest.mark.asyncio
async def test_rate_limit_retries_then_raises(
    agent: OpenRouterVisionAgent, page_images: list[PageImage]
) -> None:
    limited = MagicMock()
    limited.status_code = 429

    post = AsyncMock(return_value=limited)
    with (
        patch.object(agent._client, "post", post),
        patch("docensemble.agents.adapters.openrouter.asyncio.sleep", new_callable=AsyncMock),
    ):
        with pytest.raises(AgentRateLimitError):
            await agent._call_api("prompt", page_images)

    assert post.await_count == 3


@pytest.mark.asyncio
async def test_recovers_after_transient_timeout(
    agent: OpenRouterVisionAgent, page_images: list[PageImage]
) -> None:
    post = AsyncMock(side_effect=[httpx.ReadTimeout("slow"), _ok_response('{"ok": true}')])
    with (
        patch.object(agent._client, "post", post),
        patch("docensemble.agents.adapters.openrouter.asyncio.sleep", new_callable=AsyncMock),
    ):
        content = await agent._call_api("prompt", page_images)

    assert content == '{"ok": true}'
    assert post.await_count == 2


@pytest.mark.asyncio
async def test_persistent_timeout_raises(page_images: list[PageImage]) -> None:
    agent = OpenRouterVisionAgent(
        agent_id="fast",
        openrouter_model_name="qwen/qwen-2.5-vl-7b-instruct",
        api_key="test-key-not-real",
        max_retries=2,
    )
    post = AsyncMock(side_effect=httpx.ConnectError("down"))
    with (
        patch.object(agent._client, "post", post),
        patch("docensemble.agents.adapters.openrouter.asyncio.sleep", new_callable=AsyncMock),
    ):
        with pytest.raises(AgentTimeoutError) as exc_info:
            await agent._call_api("prompt", page_images)

    assert exc_info.value.agent_id == "fast"
    assert post.await_count == 2


@pytest.mark.asyncio
async def test_close(agent: OpenRouterVisionAgent) -> None:
    await agent.close()
    assert agent._client.is_closed
