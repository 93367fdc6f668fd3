"""Custom exception hierarchy for docensemble.

Never use bare except clauses. Always catch specific exceptions.
"""
from __future__ import annotations


class DocEnsembleError(Exception):
    """Base exception for all docensemble errors."""


# Extraction agent exceptions
class AgentError(DocEnsembleError):
    """Base for all extraction agent failures."""

    def __init__(self, message: str, agent_id: str | None = None) -> None:
        super().__init__(message)
        self.agent_id = agent_id


class AgentTimeoutError(AgentError):
    """Agent API call timed out."""


class AgentRateLimitError(AgentError):
    """Agent API rate limit exceeded."""


class AgentParseError(AgentError):
    """Agent response was not valid JSON or did not match the record schema."""

    def __init__(
        self,
        message: str,
        raw_response: str | None = None,
        agent_id: str | None = None,
    ) -> None:
        super().__init__(message, agent_id=agent_id)
        self.raw_response = raw_response


# I/O exceptions
class IOError(DocEnsembleError):  # noqa: A001
    """Base for file I/O failures."""


class UnsupportedFormatError(IOError):
    """Unsupported file format."""

    def __init__(self, format: str, supported: list[str] | None = None) -> None:  # noqa: A002
        supported_str = ", ".join(supported) if supported else "unknown"
        super().__init__(f"Unsupported format '{format}'. Supported: {supported_str}")
        self.format = format
        self.supported = supported or []


class RecordParseError(IOError):
    """Saved record file is not valid JSON or does not match the record schema."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot read record from {path}: {reason}")
        self.path = path


# Configuration exceptions
class ConfigError(DocEnsembleError):
    """Invalid or incomplete configuration."""
