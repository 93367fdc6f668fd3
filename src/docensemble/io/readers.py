"""Readers for page images and saved extraction records."""
from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

import structlog
from pydantic import ValidationError as PydanticValidationError

from docensemble.core.enums import DocumentType
from docensemble.core.exceptions import RecordParseError, UnsupportedFormatError
from docensemble.core.models import ExtractedRecord, PageImage, record_model_for

logger = structlog.get_logger(__name__)

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}


def read_page_images(paths: Sequence[Path]) -> list[PageImage]:
    """Read rendered document pages from image files, in the given order.

    Args:
        paths: One image file per page.

    Returns:
        PageImage list numbered from 1.

    Raises:
        UnsupportedFormatError: If a file extension is not a supported image type.
        FileNotFoundError: If a file does not exist.
    """
    pages: list[PageImage] = []
    for page_number, raw_path in enumerate(paths, start=1):
        path = Path(raw_path)
        ext = path.suffix.lower()

        # Check extension first so unsupported formats fail fast
        if ext not in IMAGE_MIME_TYPES:
            raise UnsupportedFormatError(ext, sorted(IMAGE_MIME_TYPES))
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        pages.append(
            PageImage(
                page_number=page_number,
                data=path.read_bytes(),
                mime_type=IMAGE_MIME_TYPES[ext],
            )
        )

    logger.info("read_page_images", n_pages=len(pages))
    return pages


def read_record(path: Path, document_type: DocumentType) -> ExtractedRecord:
    """Load a saved extraction record (camelCase or snake_case JSON keys).

    Args:
        path: Path to a ``.json`` file holding one record object.
        document_type: Record type to validate against.

    Returns:
        The validated record.

    Raises:
        UnsupportedFormatError: If the file is not ``.json``.
        FileNotFoundError: If the file does not exist.
        RecordParseError: If the file is not valid JSON or does not match
            the record schema.
    """
    path = Path(path)
    if path.suffix.lower() != ".json":
        raise UnsupportedFormatError(path.suffix.lower(), [".json"])
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return record_model_for(document_type).model_validate(data)
    except json.JSONDecodeError as e:
        raise RecordParseError(str(path), f"invalid JSON ({e})") from e
    except PydanticValidationError as e:
        raise RecordParseError(str(path), f"not a valid {document_type} record ({e})") from e
