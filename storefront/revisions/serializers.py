"""Change-set <-> JSON text.

``encode_changes`` / ``decode_changes`` return ``Ok`` or ``Err`` and never
raise for bad data. ``changes_to_text`` / ``changes_from_text`` are the
fail-soft wrappers used when writing and reading the revision log: they log
the error and fall back to an empty change-set, so a broken revision write
never blocks the business mutation that produced it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, TypeVar

from loguru import logger

from storefront.revisions.constants import EMPTY_CHANGES_TEXT, LOG_PREFIX

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    reason: str


Result = Ok[T] | Err


def _encode_default(value: Any) -> Any:
    """Encode values the json module does not handle natively.

    Decimals are written as strings to keep their scale ("12.50").
    """
    if isinstance(value, datetime | date | time):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, set | frozenset):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_changes(changes: dict[str, Any]) -> Result[str]:
    """Encode a change-set as JSON text.

    Args:
        changes: Change-set (pair values are {"old": ..., "new": ...} dicts)

    Returns:
        Ok(text), or Err(reason) when a value cannot be encoded
    """
    try:
        return Ok(json.dumps(changes, default=_encode_default, ensure_ascii=False))
    except (TypeError, ValueError) as e:
        return Err(f"Error converting changes to JSON: {e}")


def decode_changes(text: str | None) -> Result[dict[str, Any]]:
    """Parse JSON text produced by ``encode_changes``.

    Returns:
        Ok(mapping), or Err(reason) for empty, malformed or non-object input
    """
    if not text:
        return Err("Empty changes text")
    try:
        parsed = json.loads(text)
    except ValueError as e:
        return Err(f"Error converting JSON to changes: {e}")
    if not isinstance(parsed, dict):
        return Err(f"Changes JSON must be an object, got {type(parsed).__name__}")
    return Ok(parsed)


def changes_to_text(changes: dict[str, Any]) -> str:
    """Encode a change-set, logging and returning "{}" on failure."""
    result = encode_changes(changes)
    if isinstance(result, Err):
        logger.error(f"{LOG_PREFIX} {result.reason}")
        return EMPTY_CHANGES_TEXT
    return result.value


def changes_from_text(text: str | None) -> dict[str, Any]:
    """Decode a stored change-set, logging and returning {} on failure."""
    result = decode_changes(text)
    if isinstance(result, Err):
        # Missing text is normal for rows written without changes
        if text:
            logger.error(f"{LOG_PREFIX} {result.reason}")
        return {}
    return result.value
