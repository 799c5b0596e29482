"""Tests for the revision log API."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.db.session import get_db
from storefront.main import app
from storefront.revisions.constants import RevisionType
from storefront.revisions.repository import create_revision
from storefront.services.catalog import delete_product, update_product

T0 = 1_718_447_400_000


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def headers(tenant):
    return {"X-Tenant-ID": str(tenant.id), "X-Username": "alice", "User-Agent": "pytest"}


@pytest.fixture
def product_history(db_session, audit_context, product):
    """UPDATE then DELETE revisions for the fixture product."""
    update_product(db_session, audit_context, product.id, price=Decimal("12.50"))
    delete_product(db_session, audit_context, product.id)
    return product


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_entity_history(client, headers, product_history):
    response = client.get(f"/revisions/entity/Product/{product_history.id}", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert [item["revision_type"] for item in data] == ["DELETE", "UPDATE"]
    assert data[1]["changes"]["price"] == {"old": "9.99", "new": "12.50"}
    assert data[1]["username"] == "alice"


def test_entity_history_hidden_from_other_tenant(client, headers, product_history):
    other = {**headers, "X-Tenant-ID": str(int(headers["X-Tenant-ID"]) + 1)}

    response = client.get(f"/revisions/entity/Product/{product_history.id}", headers=other)

    assert response.status_code == 200
    assert response.json() == []


def test_latest_and_count(client, headers, product_history):
    latest = client.get(f"/revisions/entity/Product/{product_history.id}/latest", headers=headers)
    count = client.get(f"/revisions/entity/Product/{product_history.id}/count", headers=headers)

    assert latest.json()["revision_type"] == "DELETE"
    assert count.json() == {"entity_name": "Product", "entity_id": product_history.id, "count": 2}


def test_latest_not_found(client, headers):
    response = client.get("/revisions/entity/Product/999/latest", headers=headers)

    assert response.status_code == 404


def test_get_revision_and_summary(client, headers, product_history):
    (update,) = client.get("/revisions/type/UPDATE", headers=headers).json()

    revision = client.get(f"/revisions/{update['id']}", headers=headers)
    summary = client.get(f"/revisions/{update['id']}/summary", headers=headers)

    assert revision.json()["entity_id"] == product_history.id
    body = summary.json()
    assert body["summary"].startswith(f"UPDATE Product {product_history.id} (ID: {update['id']}) by alice at ")
    assert "price: 9.99 → 12.50\n" in body["changes"]


def test_get_revision_not_found(client, headers):
    assert client.get("/revisions/999", headers=headers).status_code == 404
    assert client.get("/revisions/999/summary", headers=headers).status_code == 404


def test_by_username_and_type(client, headers, product_history):
    assert len(client.get("/revisions/user/alice", headers=headers).json()) == 2
    assert client.get("/revisions/user/bob", headers=headers).json() == []
    assert len(client.get("/revisions/type/DELETE", headers=headers).json()) == 1
    assert client.get("/revisions/type/MERGE", headers=headers).status_code == 422


def test_date_range(client, headers, db_session, tenant):
    create_revision(
        db_session,
        entity_name="Product",
        entity_id=1,
        revision_type=RevisionType.UPDATE,
        changes={"name": {"old": "A", "new": "B"}},
        username="alice",
        tenant_id=tenant.id,
        timestamp=T0,
    )
    params = {"start_date": "2024-06-15T10:00:00+00:00", "end_date": "2024-06-15T11:00:00+00:00"}

    response = client.get("/revisions/date-range", params=params, headers=headers)

    assert response.status_code == 200
    assert [item["timestamp"] for item in response.json()] == [T0]


def test_date_range_rejects_inverted_range(client, headers):
    params = {"start_date": "2024-06-15T11:00:00+00:00", "end_date": "2024-06-15T10:00:00+00:00"}

    response = client.get("/revisions/date-range", params=params, headers=headers)

    assert response.status_code == 400


def test_search_paginates(client, headers, product_history):
    response = client.get(
        "/revisions/search",
        params={"entity_name": "Product", "limit": 1, "offset": 1},
        headers=headers,
    )

    body = response.json()
    assert body["total"] == 2
    assert body["limit"] == 1
    assert [item["revision_type"] for item in body["items"]] == ["UPDATE"]


def test_search_caps_page_size(client, headers):
    body = client.get("/revisions/search", params={"limit": 10_000}, headers=headers).json()

    assert body["limit"] == 100


def test_create_revision_strips_sensitive_fields(client, headers):
    payload = {
        "revision_type": "UPDATE",
        "changes": {"password": {"old": "a", "new": "b"}, "price": {"old": 9.99, "new": 12.5}},
        "reason": "Manual correction",
    }

    response = client.post(
        "/revisions/entity/Product/42",
        json=payload,
        headers={**headers, "X-Forwarded-For": "198.51.100.4, 10.0.0.1"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["changes"] == {"price": {"old": 9.99, "new": 12.5}}
    assert body["username"] == "alice"
    assert body["ip_address"] == "198.51.100.4"
    assert body["user_agent"] == "pytest"
    assert body["reason"] == "Manual correction"


@pytest.mark.parametrize(
    ("path", "payload"),
    [
        ("/revisions/entity/Product/42", {"revision_type": "UPDATE", "changes": {}}),
        ("/revisions/entity/Product/42", {"revision_type": "UPDATE", "changes": {" ": 1}}),
        ("/revisions/entity/Product/42", {"revision_type": "MERGE", "changes": {"a": 1}}),
        ("/revisions/entity/Product/0", {"revision_type": "UPDATE", "changes": {"a": 1}}),
        ("/revisions/entity/%20/42", {"revision_type": "UPDATE", "changes": {"a": 1}}),
    ],
)
def test_create_revision_validation(client, headers, path, payload):
    assert client.post(path, json=payload, headers=headers).status_code == 422


def test_invalid_tenant_header(client, headers):
    response = client.get("/revisions/user/alice", headers={**headers, "X-Tenant-ID": "acme"})

    assert response.status_code == 400


@pytest.mark.parametrize(("export_format", "content_type"), [("json", "application/json"), ("csv", "text/csv")])
def test_export(client, headers, product_history, export_format, content_type):
    response = client.get("/revisions/export", params={"format": export_format, "entity_name": "Product"}, headers=headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(content_type)
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="revisions_Product_')
    assert disposition.endswith(f'.{export_format}"')


@pytest.fixture
def many_revisions(db_session, tenant):
    """150 revisions, more than one page at the configured maximum page size."""
    return [
        create_revision(
            db_session,
            entity_name="Product",
            entity_id=index,
            revision_type=RevisionType.UPDATE,
            changes={"stockQuantity": {"old": index, "new": index + 1}},
            username="alice",
            tenant_id=tenant.id,
            timestamp=T0 + index,
        )
        for index in range(1, 151)
    ]


def test_export_includes_every_matching_revision(client, headers, many_revisions):
    response = client.get("/revisions/export", params={"format": "json"}, headers=headers)

    assert response.status_code == 200
    assert response.headers["x-total-count"] == "150"
    payload = response.json()
    assert len(payload) == 150
    assert payload[0]["entity_id"] == 150
    assert payload[-1]["entity_id"] == 1


def test_export_honours_limit_and_offset(client, headers, many_revisions):
    response = client.get("/revisions/export", params={"format": "json", "limit": 20, "offset": 140}, headers=headers)

    assert response.headers["x-total-count"] == "150"
    assert [item["entity_id"] for item in response.json()] == list(range(10, 0, -1))
