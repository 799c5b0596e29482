"""Entity snapshotter.

Flattens an entity into {field name: value} for diffing:
- entity references become ``<field>Id``
- collections become ``<field>Size`` (+ ``<field>Ids`` when they hold entities)
- None values are dropped
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

# Field reads that fail with these are skipped; anything else propagates
FIELD_ACCESS_ERRORS: tuple[type[Exception], ...] = (AttributeError, SQLAlchemyError)

COLLECTION_TYPES = (list, tuple, set, frozenset)

Snapshot = dict[str, Any]


@runtime_checkable
class Entity(Protocol):
    """Anything with an identity and an explicit field map."""

    id: int | None

    def to_field_map(self) -> Mapping[str, Any]: ...


def snapshot(entity: Entity | None) -> Snapshot:
    """Take a flat snapshot of an entity's current field values.

    Args:
        entity: Entity to snapshot, or None

    Returns:
        Snapshot dict (empty for None)
    """
    result: Snapshot = {}
    if entity is None:
        return result

    fields = entity.to_field_map()
    for name in fields:
        try:
            value = fields[name]
        except FIELD_ACCESS_ERRORS as e:
            logger.debug(f"Skipping field {type(entity).__name__}.{name}: {type(e).__name__}: {e}")
            continue

        if value is None:
            continue

        if isinstance(value, Entity):
            result[f"{name}Id"] = value.id
        elif isinstance(value, COLLECTION_TYPES):
            items = list(value)
            result[f"{name}Size"] = len(items)
            # Only the first element is inspected, as for homogeneous ORM collections
            if items and isinstance(items[0], Entity):
                result[f"{name}Ids"] = [item.id for item in items]
        else:
            result[name] = value

    return result
