"""Configuration loading for the extraction ensemble.

Loads the fast/expert model pair, execution policy, consensus thresholds
and per-field weight overrides from a YAML file.
"""
from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from docensemble.core.enums import ModelWeight
from docensemble.core.exceptions import ConfigError
from docensemble.core.models import EnsemblePolicy

DEFAULT_CONFIG_PATH = Path(__file__).parent / "configs" / "models.yaml"

AGENT_ROLES = ("fast", "expert")


class ModelEntry(BaseModel):
    """A single extraction model configuration entry.

    Attributes:
        name: Human-readable model name (e.g., "Qwen2.5-VL 7B").
        version: Version date string for the audit trail.
        provider: API provider (e.g., "openrouter").
        model_id: Provider-specific model identifier.
        license_: Model license (e.g., "Apache-2.0").
    """

    name: str
    version: str
    provider: str
    model_id: str
    license_: str = Field(default="unknown", alias="license")

    model_config = {"populate_by_name": True}


class ThresholdConfig(BaseModel):
    """Ensemble and consensus thresholds.

    Attributes:
        fallback_confidence: Fast-agent confidence below which the
            sequential policy also runs the expert.
        conflict_penalty: Confidence reduction per recorded conflict.
        max_conflict_penalty: Cap on the total conflict reduction.
    """

    fallback_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    conflict_penalty: float = Field(default=0.05, ge=0.0)
    max_conflict_penalty: float = Field(default=0.25, ge=0.0)


class InferenceConfig(BaseModel):
    """Agent inference configuration.

    Attributes:
        temperature: Sampling temperature (0.0 for deterministic).
        timeout_s: HTTP timeout per agent call in seconds.
        max_retries: Maximum retry attempts per call.
    """

    temperature: float = 0.0
    timeout_s: float = 120.0
    max_retries: int = 3


class EnsembleConfig(BaseModel):
    """Root configuration for docensemble.

    Attributes:
        models: Model entries keyed by role ("fast", "expert").
        policy: Default execution policy for ``extract``.
        thresholds: Fallback and conflict-penalty settings.
        inference: Agent inference settings.
        field_weights: Per-field overrides of the default weight table,
            keyed by wire field name (e.g., "vendorName").
    """

    models: dict[str, ModelEntry] = Field(default_factory=dict)
    policy: EnsemblePolicy = Field(default_factory=EnsemblePolicy)
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    inference: InferenceConfig = Field(default_factory=InferenceConfig)
    field_weights: dict[str, ModelWeight] = Field(default_factory=dict)


def load_config(path: Path) -> EnsembleConfig:
    """Load ensemble configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        EnsembleConfig with models, policy, thresholds and weights.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ConfigError: If a model role is unknown or a value is invalid.
    """
    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    unknown_roles = set(data.get("models", {})) - set(AGENT_ROLES)
    if unknown_roles:
        msg = (
            f"Unknown model role(s) {sorted(unknown_roles)} in {path}. "
            f"Expected: {', '.join(AGENT_ROLES)}"
        )
        raise ConfigError(msg)

    try:
        return EnsembleConfig(
            models={k: ModelEntry(**v) for k, v in data.get("models", {}).items()},
            policy=EnsemblePolicy(**data.get("policy", {})),
            thresholds=ThresholdConfig(**data.get("thresholds", {})),
            inference=InferenceConfig(**data.get("inference", {})),
            field_weights=data.get("field_weights", {}),
        )
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e


def load_default_config() -> EnsembleConfig:
    """Load the packaged default configuration, or built-in defaults."""
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return EnsembleConfig()
