"""Abstract base class for all extraction agent adapters."""
from __future__ import annotations

import hashlib
import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from docensemble.agents.prompts import build_extraction_prompt
from docensemble.core.enums import DocumentType
from docensemble.core.exceptions import AgentParseError
from docensemble.core.models import ExtractedRecord, PageImage, record_model_for

# Temperature is always 0.0 so repeated runs over one document agree
INFERENCE_TEMPERATURE: float = 0.0


def hash_prompt(prompt: str) -> str:
    """Compute SHA256 hash of a prompt for audit trail.

    Args:
        prompt: The prompt string to hash.

    Returns:
        64-character hex string (SHA256).
    """
    return hashlib.sha256(prompt.encode("utf-8")).hexdigest()


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences from model response text.

    Handles both complete and unclosed fences, as well as fences with
    language tags (e.g., ````json``).

    Args:
        text: Raw text that may be wrapped in code fences.

    Returns:
        Text with code fences removed.
    """
    cleaned = text.strip()
    if not cleaned.startswith("```"):
        return cleaned

    lines = cleaned.split("\n")[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]

    return "\n".join(lines).strip()


def parse_agent_response(raw_response: str, agent_id: str) -> dict[str, Any]:
    """Parse the JSON object returned by an extraction model.

    Args:
        raw_response: Raw string response from the model API.
        agent_id: Agent identifier for error reporting.

    Returns:
        Parsed JSON object.

    Raises:
        AgentParseError: If the response is not a JSON object.
    """
    cleaned = strip_code_fences(raw_response)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise AgentParseError(
            f"Invalid JSON from {agent_id}: {e}",
            raw_response=raw_response,
            agent_id=agent_id,
        ) from e

    if not isinstance(parsed, dict):
        raise AgentParseError(
            f"Expected a JSON object from {agent_id}, got {type(parsed).__name__}",
            raw_response=raw_response,
            agent_id=agent_id,
        )
    return parsed


class ExtractionAgent(ABC):
    """Abstract base class for all extraction agents.

    An agent turns rendered page images into one structured record of a
    requested document type, or raises. Subclasses implement
    ``_call_api()`` and ``model_version``.
    """

    def __init__(self, agent_id: str) -> None:
        self._agent_id = agent_id
        self._log = structlog.get_logger(self.__class__.__name__)

    @property
    def agent_id(self) -> str:
        """Unique agent identifier (e.g., 'fast' or 'qwen2.5-vl-72b')."""
        return self._agent_id

    @property
    @abstractmethod
    def model_version(self) -> str:
        """Model version string for the audit trail."""
        ...

    @abstractmethod
    async def _call_api(self, prompt: str, images: Sequence[PageImage]) -> str:
        """Call the underlying vision model and return the raw text response.

        Args:
            prompt: The complete extraction prompt.
            images: Page images to attach to the request.

        Returns:
            Raw text response from the model.
        """
        ...

    async def extract(
        self,
        images: Sequence[PageImage],
        document_type: DocumentType,
    ) -> ExtractedRecord:
        """Extract one record of ``document_type`` from the page images.

        Args:
            images: Rendered document pages, in order.
            document_type: Record type to extract.

        Returns:
            The decoded record (an ``ExtractedRecord`` subclass).

        Raises:
            AgentParseError: If the response is not valid JSON or does not
                match the record schema.
        """
        prompt = build_extraction_prompt(document_type, n_pages=len(images))
        prompt_hash = hash_prompt(prompt)

        self._log.info(
            "extracting_document",
            agent_id=self.agent_id,
            document_type=str(document_type),
            n_pages=len(images),
            prompt_hash=prompt_hash[:8],
        )

        raw_response = await self._call_api(prompt, images)

        try:
            parsed = parse_agent_response(raw_response, self.agent_id)
            record = record_model_for(document_type).model_validate(parsed)
        except AgentParseError as e:
            self._log.error("parse_error", agent_id=self.agent_id, error=str(e))
            raise
        except PydanticValidationError as e:
            self._log.error("schema_error", agent_id=self.agent_id, error=str(e))
            raise AgentParseError(
                f"Response from {self.agent_id} does not match the "
                f"{document_type} schema: {e}",
                raw_response=raw_response,
                agent_id=self.agent_id,
            ) from e

        return record
