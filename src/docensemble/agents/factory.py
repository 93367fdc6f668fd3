"""Agent factory: creates the fast/expert agent pair from config and environment."""
from __future__ import annotations

import os

import structlog

from docensemble.agents.base import ExtractionAgent
from docensemble.config import EnsembleConfig, load_default_config
from docensemble.core.exceptions import ConfigError

logger = structlog.get_logger(__name__)


def create_agents(
    cfg: EnsembleConfig | None = None,
    api_key: str | None = None,
) -> tuple[ExtractionAgent, ExtractionAgent]:
    """Create the fast and expert extraction agents.

    Reads ``OPENROUTER_API_KEY`` from environment if not provided.
    Uses the packaged ``configs/models.yaml`` if no config is given.

    Args:
        cfg: Optional pre-loaded config.
        api_key: OpenRouter API key. Falls back to env var if None.

    Returns:
        ``(fast_agent, expert_agent)``.

    Raises:
        SystemExit: If no API key is available.
        ConfigError: If the config does not define both roles or names an
            unsupported provider.
    """
    from docensemble.agents.adapters.openrouter import OpenRouterVisionAgent  # noqa: PLC0415

    key = api_key or os.environ.get("OPENROUTER_API_KEY")
    if not key:
        msg = (
            "No API key found. Set OPENROUTER_API_KEY environment variable:\n"
            "  export OPENROUTER_API_KEY='sk-or-...'"
        )
        raise SystemExit(msg)

    if cfg is None:
        cfg = load_default_config()

    # Validate both roles before opening any HTTP client
    for role in ("fast", "expert"):
        entry = cfg.models.get(role)
        if entry is None:
            raise ConfigError(f"No '{role}' model configured.")
        if entry.provider != "openrouter":
            raise ConfigError(
                f"Unsupported provider '{entry.provider}' for the {role} model."
            )

    agents: dict[str, ExtractionAgent] = {}
    for role in ("fast", "expert"):
        entry = cfg.models[role]
        agents[role] = OpenRouterVisionAgent(
            agent_id=role,
            openrouter_model_name=entry.model_id,
            api_key=key,
            model_version=entry.version,
            timeout_s=cfg.inference.timeout_s,
            max_retries=cfg.inference.max_retries,
            temperature=cfg.inference.temperature,
        )

    logger.info(
        "agents_created",
        fast=cfg.models["fast"].model_id,
        expert=cfg.models["expert"].model_id,
    )
    return agents["fast"], agents["expert"]
