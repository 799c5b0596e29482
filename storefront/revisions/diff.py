"""Snapshot diffing.

Produces a change-set:
- creation (no baseline): every snapshot entry as a raw value
- update: {"old": ..., "new": ...} for each field whose value changed
"""

from __future__ import annotations

from typing import Any

from storefront.revisions.snapshot import Entity, Snapshot, snapshot

ChangeSet = dict[str, Any]


class _Missing:
    """Marker for a key absent from the old snapshot."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def change_pair(old: Any, new: Any) -> dict[str, Any]:
    return {"old": old, "new": new}


def is_change_pair(value: Any) -> bool:
    return isinstance(value, dict) and set(value) == {"old", "new"}


def diff_snapshots(
    old: Snapshot | None,
    new: Snapshot | None,
    *,
    include_removed: bool = False,
) -> ChangeSet:
    """Compare two snapshots.

    Args:
        old: Snapshot before the mutation, or None for a creation
        new: Snapshot after the mutation
        include_removed: Also report keys present in ``old`` but absent from
            ``new`` (a field set to None drops out of the snapshot) as
            {"old": value, "new": None}. Off by default.

    Returns:
        ChangeSet; empty when ``new`` is None or nothing changed
    """
    if new is None:
        return {}
    if old is None:
        return dict(new)

    changes: ChangeSet = {}
    for key, new_value in new.items():
        old_value = old.get(key, MISSING)
        if old_value is MISSING or old_value != new_value:
            changes[key] = change_pair(None if old_value is MISSING else old_value, new_value)

    if include_removed:
        for key, old_value in old.items():
            if key not in new:
                changes[key] = change_pair(old_value, None)

    return changes


def compare_entities(
    old_entity: Entity | None,
    new_entity: Entity | None,
    *,
    include_removed: bool = False,
) -> ChangeSet:
    """Diff two entity instances (or a None baseline and a new instance)."""
    if new_entity is None:
        return {}
    old = None if old_entity is None else snapshot(old_entity)
    return diff_snapshots(old, snapshot(new_entity), include_removed=include_removed)
