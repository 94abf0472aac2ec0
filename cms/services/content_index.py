"""JSON index files: a flat array of records per file."""

import json
import logging
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from cms.services.errors import CorruptIndexError
from cms.services.file_ops import atomic_write_text

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def read_index(path: Path, model: type[RecordT]) -> list[RecordT]:
    """Read an index file into records, in file order.

    A missing file is an empty index. A file that is not a JSON array of
    valid records raises ``CorruptIndexError`` rather than being treated as
    empty, so a later write cannot silently drop its rows.
    """
    if not path.exists():
        return []
    try:
        raw = json.loads(path.read_text(encoding="utf-8") or "[]")
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Unreadable index %s: %s", path, e)
        raise CorruptIndexError(f"Index {path.name} is unreadable") from e

    if not isinstance(raw, list):
        logger.error("Index %s is not a JSON array", path)
        raise CorruptIndexError(f"Index {path.name} must contain a JSON array")

    try:
        return [model.model_validate(item) for item in raw]
    except ModelValidationError as e:
        logger.error("Invalid record in %s: %s", path, e)
        raise CorruptIndexError(f"Index {path.name} has an invalid record") from e


def write_index(path: Path, records: list) -> None:
    """Persist records atomically as a pretty-printed UTF-8 JSON array."""
    data = json.dumps([r.to_json() for r in records], indent=4, ensure_ascii=False)
    atomic_write_text(path, f"{data}\n")


def ensure_index(path: Path) -> None:
    """Create an empty index file if none exists."""
    if not path.exists():
        atomic_write_text(path, "[]\n")
