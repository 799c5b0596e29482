"""Human-readable renderings of revisions and change-sets."""

from __future__ import annotations

import re
from datetime import date, datetime, tzinfo
from typing import TYPE_CHECKING, Any

from storefront.revisions.constants import DATE_TIME_FORMAT
from storefront.revisions.diff import is_change_pair

if TYPE_CHECKING:
    from storefront.db.models import Revision

_WORD_BOUNDARY = re.compile(r"(?=[A-Z])|_")


def format_field_name(field_name: str) -> str:
    """Split a field name into lowercase words.

    "stockQuantity" -> "stock quantity", "image_url" -> "image url"
    """
    parts = [part.lower() for part in _WORD_BOUNDARY.split(field_name) if part]
    return " ".join(parts)


def format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.strftime(DATE_TIME_FORMAT)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list | tuple | set | frozenset):
        return f"[{len(value)} items]"
    return str(value)


def render_changes(changes: dict[str, Any]) -> str:
    """Render a change-set, one "field: value" or "field: old → new" line per entry."""
    lines = []
    for key, value in changes.items():
        if is_change_pair(value):
            lines.append(f"{format_field_name(key)}: {format_value(value['old'])} → {format_value(value['new'])}\n")
        else:
            lines.append(f"{format_field_name(key)}: {format_value(value)}\n")
    return "".join(lines)


def render_summary(revision: Revision, tz: tzinfo | None = None) -> str:
    """One-line description of a revision.

    Example: "UPDATE Product 42 (ID: 7) by alice at 2024-06-15 10:30:00"
    """
    timestamp = revision.revision_date(tz).strftime(DATE_TIME_FORMAT)
    return (
        f"{revision.revision_type} {revision.entity_name} {revision.entity_id} "
        f"(ID: {revision.id}) by {revision.username} at {timestamp}"
    )
