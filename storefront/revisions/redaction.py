"""Strip sensitive fields from change-sets before they are stored or shown."""

from __future__ import annotations

from collections.abc import Collection
from typing import Any

from storefront.revisions.constants import SENSITIVE_FIELD_TOKENS


def is_field_excluded(field_name: str, excluded_fields: Collection[str]) -> bool:
    """Check if a field should be excluded from revision tracking.

    A field is excluded when it is listed in ``excluded_fields`` or its name
    contains "password", "secret" or "token" (case-sensitive).
    """
    if field_name in excluded_fields:
        return True
    return any(token in field_name for token in SENSITIVE_FIELD_TOKENS)


def sanitize_changes(changes: dict[str, Any], excluded_fields: Collection[str] = ()) -> dict[str, Any]:
    """Return a copy of ``changes`` without excluded fields. The input is not modified."""
    return {key: value for key, value in changes.items() if not is_field_excluded(key, excluded_fields)}
