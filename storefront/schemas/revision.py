"""Revision API schemas."""

from __future__ import annotations

import ipaddress
from typing import Any

from pydantic import BaseModel, Field, field_validator

from storefront.config.settings import settings
from storefront.db.models import Revision
from storefront.revisions.constants import (
    ENTITY_NAME_MAX_LENGTH,
    REASON_MAX_LENGTH,
    USER_AGENT_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
    RevisionType,
)
from storefront.revisions.serializers import Err, encode_changes


class RevisionResponse(BaseModel):
    """A stored revision with its decoded change-set."""

    id: int
    tenant_id: int | None = None
    timestamp: int = Field(..., description="Epoch milliseconds")
    username: str
    ip_address: str | None = None
    user_agent: str | None = None
    revision_type: RevisionType
    entity_name: str
    entity_id: int
    changes: dict[str, Any] = Field(default_factory=dict)
    reason: str | None = None

    @classmethod
    def from_revision(cls, revision: Revision) -> RevisionResponse:
        return cls(
            id=revision.id,
            tenant_id=revision.tenant_id,
            timestamp=revision.timestamp,
            username=revision.username,
            ip_address=revision.ip_address,
            user_agent=revision.user_agent,
            revision_type=RevisionType(revision.revision_type),
            entity_name=revision.entity_name,
            entity_id=revision.entity_id,
            changes=revision.changes_as_map,
            reason=revision.reason,
        )


class RevisionSummaryResponse(BaseModel):
    id: int
    summary: str
    changes: str = Field(..., description="Multi-line rendering of the change-set")


class RevisionPage(BaseModel):
    items: list[RevisionResponse]
    total: int
    limit: int
    offset: int


class RevisionCountResponse(BaseModel):
    entity_name: str
    entity_id: int
    count: int


class RevisionCreate(BaseModel):
    """Manually submitted revision (admin tooling, imports)."""

    revision_type: RevisionType
    changes: dict[str, Any]
    reason: str | None = Field(None, max_length=REASON_MAX_LENGTH)

    @field_validator("changes")
    @classmethod
    def validate_changes(cls, value: dict[str, Any]) -> dict[str, Any]:
        if not value:
            raise ValueError("Changes are required")
        for key in value:
            if not key.strip():
                raise ValueError("Change key cannot be empty")
        encoded = encode_changes(value)
        if isinstance(encoded, Err):
            raise ValueError(encoded.reason)
        if len(encoded.value) > settings.revision_max_changes_length:
            raise ValueError(f"Changes cannot be longer than {settings.revision_max_changes_length} characters")
        return value


class RevisionTarget(BaseModel):
    """Entity identity and actor metadata, validated before a revision is stored."""

    entity_name: str = Field(..., min_length=1, max_length=ENTITY_NAME_MAX_LENGTH)
    entity_id: int = Field(..., gt=0)
    username: str = Field(..., min_length=1, max_length=USERNAME_MAX_LENGTH)
    ip_address: str | None = None
    user_agent: str | None = Field(None, max_length=USER_AGENT_MAX_LENGTH)

    @field_validator("entity_name", "username")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("ip_address")
    @classmethod
    def validate_ip_address(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        try:
            ipaddress.ip_address(value)
        except ValueError as e:
            raise ValueError("Invalid IP address format") from e
        return value
