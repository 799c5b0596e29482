"""Revision export to JSON and CSV."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence
from datetime import datetime, tzinfo
from enum import StrEnum

from storefront.db.models import Revision
from storefront.revisions.constants import DATE_TIME_FORMAT, EXPORT_TIMESTAMP_FORMAT
from storefront.revisions.formatting import render_changes
from storefront.schemas.revision import RevisionResponse


class ExportFormat(StrEnum):
    JSON = "json"
    CSV = "csv"


_CONTENT_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv",
}

CSV_COLUMNS = [
    "id",
    "entity_name",
    "entity_id",
    "revision_type",
    "username",
    "timestamp",
    "changes",
    "reason",
    "ip_address",
    "user_agent",
]


def export_revisions(revisions: Sequence[Revision], export_format: ExportFormat, tz: tzinfo | None = None) -> bytes:
    """Export revisions in the requested format.

    Args:
        revisions: Revisions to export
        export_format: JSON (pretty-printed list) or CSV (one row per revision)
        tz: Zone used to render CSV timestamps (None = host local time)

    Returns:
        UTF-8 encoded document
    """
    if export_format == ExportFormat.JSON:
        return _export_json(revisions)
    return _export_csv(revisions, tz)


def _export_json(revisions: Sequence[Revision]) -> bytes:
    payload = [RevisionResponse.from_revision(revision).model_dump(mode="json") for revision in revisions]
    return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")


def _export_csv(revisions: Sequence[Revision], tz: tzinfo | None) -> bytes:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_COLUMNS)
    writer.writeheader()
    for revision in revisions:
        writer.writerow(
            {
                "id": revision.id,
                "entity_name": revision.entity_name,
                "entity_id": revision.entity_id,
                "revision_type": revision.revision_type,
                "username": revision.username,
                "timestamp": revision.revision_date(tz).strftime(DATE_TIME_FORMAT),
                "changes": render_changes(revision.changes_as_map).rstrip("\n"),
                "reason": revision.reason or "",
                "ip_address": revision.ip_address or "",
                "user_agent": revision.user_agent or "",
            }
        )
    return output.getvalue().encode("utf-8")


def generate_export_filename(export_format: ExportFormat, entity_name: str | None = None, now: datetime | None = None) -> str:
    """Build a download filename, e.g. "revisions_Product_2024-06-15_10-30-00.csv"."""
    stamp = (now or datetime.now()).strftime(EXPORT_TIMESTAMP_FORMAT)
    return f"revisions_{entity_name or 'all'}_{stamp}.{export_format.value}"


def content_type_for(export_format: ExportFormat) -> str:
    return _CONTENT_TYPES[export_format]
