"""Tests for change-set JSON serialization.

Tests cover:
- Round trip of raw, paired, numeric, textual and null-bearing change-sets
- Encoding of dates, decimals, enums and sets
- Fail-soft behavior: Err results, "{}" / {} fallbacks, error logging
"""

import json
from datetime import UTC, date, datetime
from decimal import Decimal

import pytest
from loguru import logger

from storefront.revisions.constants import RevisionType
from storefront.revisions.serializers import (
    Err,
    Ok,
    changes_from_text,
    changes_to_text,
    decode_changes,
    encode_changes,
)


@pytest.fixture
def captured_errors():
    """Collect ERROR-level loguru messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(messages.append, level="ERROR", format="{message}")
    try:
        yield messages
    finally:
        logger.remove(handler_id)


@pytest.mark.parametrize(
    "changes",
    [
        {},
        {"name": "Widget", "price": 9.99, "stockQuantity": 5, "active": True},
        {"price": {"old": 9.99, "new": 12.5}},
        {"description": {"old": None, "new": "Shiny"}, "deletedAt": None},
        {"imagesIds": {"old": [1, 2], "new": [1, 2, 3]}, "imagesSize": {"old": 2, "new": 3}},
        {"name": "Wídget ✓"},
    ],
)
def test_round_trip(changes):
    assert changes_from_text(changes_to_text(changes)) == changes


def test_pairs_are_nested_objects():
    text = changes_to_text({"price": {"old": 9.99, "new": 12.5}})

    assert json.loads(text) == {"price": {"old": 9.99, "new": 12.5}}


def test_encode_returns_ok():
    result = encode_changes({"name": "Widget"})

    assert isinstance(result, Ok)
    assert json.loads(result.value) == {"name": "Widget"}


def test_extended_types_encoded():
    changes = {
        "createdAt": datetime(2024, 6, 15, 10, 30, tzinfo=UTC),
        "launchDate": date(2024, 7, 1),
        "price": Decimal("12.50"),
        "type": RevisionType.UPDATE,
        "tags": {"sale"},
    }

    decoded = changes_from_text(changes_to_text(changes))

    assert decoded == {
        "createdAt": "2024-06-15T10:30:00+00:00",
        "launchDate": "2024-07-01",
        "price": "12.50",
        "type": "UPDATE",
        "tags": ["sale"],
    }


def test_unencodable_value_is_err():
    result = encode_changes({"data": b"\x00\x01"})

    assert isinstance(result, Err)
    assert "bytes" in result.reason


def test_unencodable_value_falls_back_to_empty_object(captured_errors):
    assert changes_to_text({"data": object()}) == "{}"
    assert len(captured_errors) == 1
    assert "[REVISION]" in captured_errors[0]


@pytest.mark.parametrize("text", ["not json", "{\"price\": ", "[1, 2, 3]", "42"])
def test_malformed_text_decodes_to_err(text):
    assert isinstance(decode_changes(text), Err)


def test_malformed_text_falls_back_to_empty_mapping(captured_errors):
    assert changes_from_text("{broken") == {}
    assert len(captured_errors) == 1


@pytest.mark.parametrize("text", [None, ""])
def test_missing_text_is_empty_without_logging(text, captured_errors):
    assert changes_from_text(text) == {}
    assert captured_errors == []


def test_product_price_round_trip_returns_strings(product):
    changes = {"price": {"old": product.price, "new": Decimal("12.50")}}

    decoded = changes_from_text(changes_to_text(changes))

    # Decimals come back as their string form, scale preserved
    assert decoded == {"price": {"old": "9.99", "new": "12.50"}}
    assert decoded != changes
    assert Decimal(decoded["price"]["new"]) == Decimal("12.50")
    assert str(Decimal(decoded["price"]["new"])) == "12.50"
