"""Tests for the custom exception hierarchy."""
from docensemble.core.exceptions import (
    AgentError,
    AgentParseError,
    AgentRateLimitError,
    AgentTimeoutError,
    ConfigError,
    DocEnsembleError,
    IOError as DEIOError,
    RecordParseError,
    UnsupportedFormatError,
)


def test_base_exception() -> None:
    err = DocEnsembleError("base error")
    assert str(err) == "base error"


def test_agent_error_is_base() -> None:
    err = AgentTimeoutError("timeout after 120s", agent_id="expert")
    assert isinstance(err, AgentError)
    assert isinstance(err, DocEnsembleError)
    assert err.agent_id == "expert"


def test_rate_limit_error() -> None:
    err = AgentRateLimitError("429", agent_id="fast")
    assert isinstance(err, AgentError)
    assert err.agent_id == "fast"


def test_agent_parse_error_stores_raw_response() -> None:
    err = AgentParseError("invalid JSON", raw_response="{broken}", agent_id="fast")
    assert err.raw_response == "{broken}"
    assert err.agent_id == "fast"


def test_unsupported_format_message() -> None:
    err = UnsupportedFormatError(".tiff", [".jpg", ".png"])
    assert isinstance(err, DEIOError)
    assert ".tiff" in str(err)
    assert ".png" in str(err)
    assert err.supported == [".jpg", ".png"]


def test_unsupported_format_without_list() -> None:
    err = UnsupportedFormatError(".xyz")
    assert "unknown" in str(err)
    assert err.supported == []


def test_config_error_is_base() -> None:
    assert issubclass(ConfigError, DocEnsembleError)


def test_record_parse_error() -> None:
    err = RecordParseError("fast.json", "invalid JSON")
    assert isinstance(err, DEIOError)
    assert err.path == "fast.json"
    assert "fast.json" in str(err)
