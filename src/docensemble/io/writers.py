"""Writers for consensus results."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


def to_json_dict(model: BaseModel) -> dict[str, Any]:
    """Dump a result model to JSON-safe data with camelCase record keys.

    Records nested in generic containers are serialized by their runtime
    type, so every record field is kept.
    """
    return model.model_dump(
        mode="json",
        by_alias=True,
        serialize_as_any=True,
    )


def write_consensus(result: BaseModel, path: Path) -> Path:
    """Write a ``DocumentConsensus`` or consensus result to a JSON file.

    Args:
        result: Model to write.
        path: Output file path; parent directories are created.

    Returns:
        Path to the written file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(to_json_dict(result), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    logger.info("write_consensus", path=str(path))
    return path
