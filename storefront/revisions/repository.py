"""Repository functions for revision persistence.

Handles creating and querying revisions.
Single responsibility: database operations only.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from storefront.db.models import Revision
from storefront.revisions.constants import LOG_PREFIX, RevisionType
from storefront.revisions.errors import RevisionNotFoundError, RevisionValidationError
from storefront.revisions.serializers import changes_to_text
from storefront.revisions.timestamps import now_millis


def _type_value(revision_type: RevisionType | str) -> str:
    try:
        return RevisionType(revision_type).value
    except ValueError as e:
        raise RevisionValidationError(f"Invalid revision type: {revision_type}") from e


def _scoped(query: Select, tenant_id: int | None) -> Select:
    if tenant_id is not None:
        query = query.where(Revision.tenant_id == tenant_id)
    return query


def _newest_first(query: Select) -> Select:
    return query.order_by(Revision.timestamp.desc(), Revision.id.desc())


def _all(session: Session, query: Select) -> list[Revision]:
    return list(session.execute(query).scalars().all())


def create_revision(
    session: Session,
    *,
    entity_name: str,
    entity_id: int,
    revision_type: RevisionType,
    changes: dict[str, Any] | None,
    username: str,
    tenant_id: int | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    timestamp: int | None = None,
) -> Revision:
    """Create a revision record.

    Args:
        session: Database session
        entity_name: Entity type name (e.g. "Product")
        entity_id: Entity identity
        revision_type: INSERT, UPDATE or DELETE
        changes: Sanitized change-set; serialized fail-soft ("{}" on encode errors)
        username: Acting user
        tenant_id: Tenant the entity belongs to
        reason: Optional reason for the mutation
        ip_address: Client IP address
        user_agent: Client User-Agent
        timestamp: Epoch milliseconds (defaults to now)

    Returns:
        Created Revision instance (flushed, id assigned)
    """
    revision = Revision(
        tenant_id=tenant_id,
        entity_name=entity_name,
        entity_id=entity_id,
        revision_type=_type_value(revision_type),
        changes=None if changes is None else changes_to_text(changes),
        username=username,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        timestamp=now_millis() if timestamp is None else timestamp,
    )
    session.add(revision)
    session.flush()
    logger.info(f"{LOG_PREFIX} Created {revision.revision_type} revision for {entity_name} {entity_id} with ID {revision.id}")
    return revision


def get_revision(session: Session, revision_id: int, *, tenant_id: int | None = None) -> Revision:
    """Get a revision by id.

    Raises:
        RevisionNotFoundError: If no such revision exists for the tenant
    """
    query = _scoped(select(Revision).where(Revision.id == revision_id), tenant_id)
    revision = session.execute(query).scalar_one_or_none()
    if revision is None:
        raise RevisionNotFoundError(f"Revision not found with id: {revision_id}")
    return revision


def list_revisions_for_entity(
    session: Session,
    entity_name: str,
    entity_id: int,
    *,
    tenant_id: int | None = None,
) -> list[Revision]:
    """List revisions of one entity, newest first."""
    query = select(Revision).where(Revision.entity_name == entity_name, Revision.entity_id == entity_id)
    return _all(session, _newest_first(_scoped(query, tenant_id)))


def get_latest_revision(
    session: Session,
    entity_name: str,
    entity_id: int,
    *,
    tenant_id: int | None = None,
) -> Revision:
    """Get the newest revision of an entity.

    Raises:
        RevisionNotFoundError: If the entity has no revisions
    """
    query = select(Revision).where(Revision.entity_name == entity_name, Revision.entity_id == entity_id)
    revision = session.execute(_newest_first(_scoped(query, tenant_id)).limit(1)).scalar_one_or_none()
    if revision is None:
        raise RevisionNotFoundError(f"No revisions found for {entity_name} with id {entity_id}")
    return revision


def list_revisions_by_username(session: Session, username: str, *, tenant_id: int | None = None) -> list[Revision]:
    query = select(Revision).where(Revision.username == username)
    return _all(session, _newest_first(_scoped(query, tenant_id)))


def list_revisions_by_type(
    session: Session,
    revision_type: RevisionType,
    *,
    tenant_id: int | None = None,
) -> list[Revision]:
    query = select(Revision).where(Revision.revision_type == _type_value(revision_type))
    return _all(session, _newest_first(_scoped(query, tenant_id)))


def list_revisions_by_date_range(
    session: Session,
    start_timestamp: int,
    end_timestamp: int,
    *,
    tenant_id: int | None = None,
) -> list[Revision]:
    """List revisions with start <= timestamp <= end (epoch milliseconds)."""
    query = select(Revision).where(Revision.timestamp >= start_timestamp, Revision.timestamp <= end_timestamp)
    return _all(session, _newest_first(_scoped(query, tenant_id)))


def list_revisions_by_ip_address(session: Session, ip_address: str, *, tenant_id: int | None = None) -> list[Revision]:
    query = select(Revision).where(Revision.ip_address == ip_address)
    return _all(session, _newest_first(_scoped(query, tenant_id)))


def list_revisions_by_user_agent(session: Session, user_agent: str, *, tenant_id: int | None = None) -> list[Revision]:
    query = select(Revision).where(Revision.user_agent == user_agent)
    return _all(session, _newest_first(_scoped(query, tenant_id)))


def list_revisions_by_changes(session: Session, pattern: str, *, tenant_id: int | None = None) -> list[Revision]:
    """List revisions whose serialized changes contain ``pattern`` (substring match)."""
    query = select(Revision).where(Revision.changes.contains(pattern, autoescape=True))
    return _all(session, _newest_first(_scoped(query, tenant_id)))


def search_revisions(
    session: Session,
    *,
    tenant_id: int | None = None,
    entity_name: str | None = None,
    entity_id: int | None = None,
    username: str | None = None,
    revision_type: RevisionType | None = None,
    start_timestamp: int | None = None,
    end_timestamp: int | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Revision], int]:
    """Search revisions by any combination of criteria.

    Unset criteria are ignored.

    Returns:
        (page of revisions newest first, total matching count)
    """
    conditions = []
    if entity_name is not None:
        conditions.append(Revision.entity_name == entity_name)
    if entity_id is not None:
        conditions.append(Revision.entity_id == entity_id)
    if username is not None:
        conditions.append(Revision.username == username)
    if revision_type is not None:
        conditions.append(Revision.revision_type == _type_value(revision_type))
    if start_timestamp is not None:
        conditions.append(Revision.timestamp >= start_timestamp)
    if end_timestamp is not None:
        conditions.append(Revision.timestamp <= end_timestamp)

    query = _scoped(select(Revision).where(*conditions), tenant_id)
    total = session.execute(select(func.count()).select_from(query.subquery())).scalar_one()
    items = _all(session, _newest_first(query).limit(limit).offset(offset))
    return items, total


def collect_revisions(
    session: Session,
    *,
    batch_size: int,
    limit: int | None = None,
    offset: int = 0,
    **criteria: Any,
) -> tuple[list[Revision], int]:
    """Page through ``search_revisions`` until ``limit`` rows (or every match) are read.

    Each query fetches at most ``batch_size`` rows.

    Args:
        session: Database session
        batch_size: Rows per query
        limit: Maximum rows to return; None reads every match
        offset: Rows to skip, newest first
        **criteria: Filters accepted by ``search_revisions``

    Returns:
        (revisions newest first, total matching count)
    """
    items: list[Revision] = []
    total = 0
    while limit is None or len(items) < limit:
        size = batch_size if limit is None else min(batch_size, limit - len(items))
        batch, total = search_revisions(session, limit=size, offset=offset + len(items), **criteria)
        items.extend(batch)
        if len(batch) < size:
            break
    return items, total


def _count(session: Session, *conditions, tenant_id: int | None) -> int:
    query = _scoped(select(func.count(Revision.id)).where(*conditions), tenant_id)
    return session.execute(query).scalar_one()


def count_revisions_by_entity(
    session: Session,
    entity_name: str,
    entity_id: int,
    *,
    tenant_id: int | None = None,
) -> int:
    return _count(session, Revision.entity_name == entity_name, Revision.entity_id == entity_id, tenant_id=tenant_id)


def count_revisions_by_username(session: Session, username: str, *, tenant_id: int | None = None) -> int:
    return _count(session, Revision.username == username, tenant_id=tenant_id)


def count_revisions_by_type(session: Session, revision_type: RevisionType, *, tenant_id: int | None = None) -> int:
    return _count(session, Revision.revision_type == _type_value(revision_type), tenant_id=tenant_id)
