"""Tests for revision export."""

import csv
import io
import json
from datetime import UTC, datetime

import pytest

from storefront.revisions.constants import RevisionType
from storefront.revisions.export import (
    CSV_COLUMNS,
    ExportFormat,
    content_type_for,
    export_revisions,
    generate_export_filename,
)
from storefront.revisions.repository import create_revision

T0 = 1_718_447_400_000


@pytest.fixture
def revisions(db_session):
    return [
        create_revision(
            db_session,
            entity_name="Product",
            entity_id=42,
            revision_type=RevisionType.INSERT,
            changes={"name": "Widget", "price": "9.99"},
            username="alice",
            tenant_id=1,
            timestamp=T0,
        ),
        create_revision(
            db_session,
            entity_name="Product",
            entity_id=42,
            revision_type=RevisionType.UPDATE,
            changes={"price": {"old": "9.99", "new": "12.50"}},
            username="bob",
            tenant_id=1,
            reason="Summer pricing",
            ip_address="203.0.113.7",
            timestamp=T0 + 60_000,
        ),
    ]


def test_json_export(revisions):
    payload = json.loads(export_revisions(revisions, ExportFormat.JSON, UTC))

    assert [item["id"] for item in payload] == [r.id for r in revisions]
    assert payload[1]["revision_type"] == "UPDATE"
    assert payload[1]["changes"] == {"price": {"old": "9.99", "new": "12.50"}}
    assert payload[1]["timestamp"] == T0 + 60_000
    assert payload[0]["reason"] is None


def test_json_export_is_pretty_printed(revisions):
    assert b'\n  {\n    "id"' in export_revisions(revisions, ExportFormat.JSON)


def test_csv_export(revisions):
    content = export_revisions(revisions, ExportFormat.CSV, UTC).decode("utf-8")
    rows = list(csv.DictReader(io.StringIO(content)))

    assert list(rows[0]) == CSV_COLUMNS
    assert len(rows) == 2
    assert rows[0]["timestamp"] == "2024-06-15 10:30:00"
    assert rows[0]["changes"] == "name: Widget\nprice: 9.99"
    assert rows[0]["reason"] == ""
    assert rows[1]["username"] == "bob"
    assert rows[1]["changes"] == "price: 9.99 → 12.50"
    assert rows[1]["ip_address"] == "203.0.113.7"


def test_empty_export():
    assert json.loads(export_revisions([], ExportFormat.JSON)) == []
    assert export_revisions([], ExportFormat.CSV).decode("utf-8").strip() == ",".join(CSV_COLUMNS)


def test_generate_export_filename():
    now = datetime(2024, 6, 15, 10, 30, 0)

    assert generate_export_filename(ExportFormat.CSV, "Product", now) == "revisions_Product_2024-06-15_10-30-00.csv"
    assert generate_export_filename(ExportFormat.JSON, now=now) == "revisions_all_2024-06-15_10-30-00.json"


def test_content_types():
    assert content_type_for(ExportFormat.JSON) == "application/json"
    assert content_type_for(ExportFormat.CSV) == "text/csv"
