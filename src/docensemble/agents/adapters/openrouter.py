"""OpenRouter vision agent adapter.

OpenRouter exposes many vision-language models behind one
OpenAI-compatible chat-completions endpoint, so the fast and the expert
agent can be two instances of this adapter pointed at different models.
"""
from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from typing import Any

import httpx
import structlog

from docensemble.agents.base import INFERENCE_TEMPERATURE, ExtractionAgent
from docensemble.core.exceptions import AgentRateLimitError, AgentTimeoutError
from docensemble.core.models import PageImage

logger = structlog.get_logger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_TIMEOUT_S = 120.0
MAX_RETRIES = 3
RETRY_BASE_DELAY_S = 2.0


class OpenRouterVisionAgent(ExtractionAgent):
    """Extraction agent using a vision model served by OpenRouter.

    Args:
        agent_id: Internal agent identifier (e.g., 'fast').
        openrouter_model_name: OpenRouter model string
            (e.g., 'qwen/qwen2.5-vl-72b-instruct').
        api_key: OpenRouter API key.
        model_version: Version string for the audit trail.
        timeout_s: HTTP timeout in seconds.
        max_retries: Number of attempts on transient failures.
        temperature: Sampling temperature.
    """

    def __init__(
        self,
        agent_id: str,
        openrouter_model_name: str,
        api_key: str,
        model_version: str = "latest",
        timeout_s: float = DEFAULT_TIMEOUT_S,
        max_retries: int = MAX_RETRIES,
        temperature: float = INFERENCE_TEMPERATURE,
    ) -> None:
        super().__init__(agent_id=agent_id)
        self._openrouter_model_name = openrouter_model_name
        self._model_version = model_version
        self._max_retries = max_retries
        self._temperature = temperature
        self._client = httpx.AsyncClient(
            base_url=OPENROUTER_BASE_URL,
            headers={
                "Authorization": f"Bearer {api_key}",
                "X-Title": "docensemble",
            },
            timeout=timeout_s,
        )

    @property
    def model_version(self) -> str:
        return self._model_version

    def _build_payload(self, prompt: str, images: Sequence[PageImage]) -> dict[str, Any]:
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        for image in images:
            content.append(
                {"type": "image_url", "image_url": {"url": image.to_data_url()}}
            )
        return {
            "model": self._openrouter_model_name,
            "messages": [{"role": "user", "content": content}],
            "temperature": self._temperature,
            "response_format": {"type": "json_object"},
        }

    async def _call_api(self, prompt: str, images: Sequence[PageImage]) -> str:
        """Call OpenRouter with retry logic.

        Args:
            prompt: The complete extraction prompt.
            images: Page images attached as ``image_url`` content parts.

        Returns:
            Raw text content from the model response.

        Raises:
            AgentTimeoutError: If the request keeps failing after all retries.
            AgentRateLimitError: If the rate limit is still exceeded after
                all retries.
        """
        payload = self._build_payload(prompt, images)

        last_exc: Exception | None = None
        for attempt in range(self._max_retries):
            try:
                t0 = time.perf_counter()
                response = await self._client.post("/chat/completions", json=payload)
                latency_ms = (time.perf_counter() - t0) * 1000

                if response.status_code == 429:
                    raise AgentRateLimitError(
                        f"Rate limit exceeded (attempt {attempt + 1})",
                        agent_id=self.agent_id,
                    )

                response.raise_for_status()
                data = response.json()
                content: str = data["choices"][0]["message"]["content"]

                logger.info(
                    "openrouter_call_success",
                    agent_id=self.agent_id,
                    attempt=attempt + 1,
                    n_images=len(images),
                    latency_ms=round(latency_ms),
                )
                return content

            except (
                httpx.TimeoutException,
                httpx.ConnectError,
                AgentRateLimitError,
            ) as e:
                last_exc = e
                delay = RETRY_BASE_DELAY_S * (2**attempt)
                logger.warning(
                    "openrouter_call_retry",
                    agent_id=self.agent_id,
                    attempt=attempt + 1,
                    delay_s=delay,
                    error=str(e),
                    is_rate_limit=isinstance(e, AgentRateLimitError),
                )
                if attempt < self._max_retries - 1:
                    await asyncio.sleep(delay)

        if isinstance(last_exc, AgentRateLimitError):
            raise AgentRateLimitError(
                f"Rate limit exceeded after {self._max_retries} attempts",
                agent_id=self.agent_id,
            ) from last_exc

        raise AgentTimeoutError(
            f"OpenRouter call failed after {self._max_retries} attempts",
            agent_id=self.agent_id,
        ) from last_exc

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
