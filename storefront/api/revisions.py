"""Revision log API endpoints.

Read access to the audit trail of catalog entities, scoped to the tenant in
the request's AuditContext, plus manual revision submission and export.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import Response
from loguru import logger
from pydantic import ValidationError
from sqlalchemy.orm import Session

from storefront.api.dependencies.context import get_audit_context
from storefront.config.settings import settings
from storefront.core.context import AuditContext
from storefront.db.session import get_db
from storefront.revisions import repository
from storefront.revisions.constants import RevisionType
from storefront.revisions.errors import RevisionNotFoundError
from storefront.revisions.export import ExportFormat, content_type_for, export_revisions, generate_export_filename
from storefront.revisions.formatting import render_changes, render_summary
from storefront.revisions.redaction import sanitize_changes
from storefront.revisions.timestamps import datetime_to_timestamp, resolve_timezone
from storefront.schemas.revision import (
    RevisionCountResponse,
    RevisionCreate,
    RevisionPage,
    RevisionResponse,
    RevisionSummaryResponse,
    RevisionTarget,
)

router = APIRouter(prefix="/revisions", tags=["revisions"])


def _not_found(e: RevisionNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _to_timestamp(value: datetime | None) -> int | None:
    return None if value is None else datetime_to_timestamp(value)


def _page_size(limit: int | None) -> int:
    return settings.revision_default_page_size if limit is None else min(limit, settings.revision_max_page_size)


@router.get("/search", response_model=RevisionPage)
def search_revisions(
    entity_name: str | None = Query(None, description="Entity type name, e.g. Product"),
    entity_id: int | None = Query(None),
    username: str | None = Query(None),
    revision_type: RevisionType | None = Query(None),
    start_date: datetime | None = Query(None, description="ISO datetime, inclusive"),
    end_date: datetime | None = Query(None, description="ISO datetime, inclusive"),
    limit: int | None = Query(None, ge=1, description="Page size (capped by REVISION_MAX_PAGE_SIZE)"),
    offset: int = Query(0, ge=0),
    context: AuditContext = Depends(get_audit_context),
    db: Session = Depends(get_db),
) -> RevisionPage:
    """Search revisions by any combination of criteria, newest first."""
    page_size = _page_size(limit)
    items, total = repository.search_revisions(
        db,
        tenant_id=context.tenant_id,
        entity_name=entity_name,
        entity_id=entity_id,
        username=username,
        revision_type=revision_type,
        start_timestamp=_to_timestamp(start_date),
        end_timestamp=_to_timestamp(end_date),
        limit=page_size,
        offset=offset,
    )
    return RevisionPage(
        items=[RevisionResponse.from_revision(revision) for revision in items],
        total=total,
        limit=page_size,
        offset=offset,
    )


@router.get("/date-range", response_model=list[RevisionResponse])
def get_revisions_by_date_range(
    start_date: datetime = Query(..., description="ISO datetime, inclusive"),
    end_date: datetime = Query(..., description="ISO datetime, inclusive"),
    context: AuditContext = Depends(get_audit_context),
    db: Session = Depends(get_db),
) -> list[RevisionResponse]:
    if end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date must not be before start_date")
    revisions = repository.list_revisions_by_date_range(
        db,
        datetime_to_timestamp(start_date),
        datetime_to_timestamp(end_date),
        tenant_id=context.tenant_id,
    )
    return [RevisionResponse.from_revision(revision) for revision in revisions]


@router.get("/export")
def export_revision_log(
    export_format: ExportFormat = Query(ExportFormat.JSON, alias="format"),
    entity_name: str | None = Query(None),
    entity_id: int | None = Query(None),
    limit: int | None = Query(None, ge=1, description="Maximum revisions to export (default: all)"),
    offset: int = Query(0, ge=0),
    context: AuditContext = Depends(get_audit_context),
    db: Session = Depends(get_db),
) -> Response:
    """Download revisions as JSON or CSV.

    Every matching revision is exported unless ``limit`` is set. The total
    number of matches is returned in the X-Total-Count header.
    """
    items, total = repository.collect_revisions(
        db,
        batch_size=settings.revision_max_page_size,
        limit=limit,
        offset=offset,
        tenant_id=context.tenant_id,
        entity_name=entity_name,
        entity_id=entity_id,
    )
    logger.info(f"Exporting {len(items)} of {total} revisions as {export_format.value} for tenant {context.tenant_id}")
    content = export_revisions(items, export_format, resolve_timezone(settings.revision_timezone))
    filename = generate_export_filename(export_format, entity_name)
    return Response(
        content=content,
        media_type=content_type_for(export_format),
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Total-Count": str(total),
        },
    )


@router.get("/user/{username}", response_model=list[RevisionResponse])
def get_revisions_by_username(
    username: str,
    context: AuditContext = Depends(get_audit_context),
    db: Session = Depends(get_db),
) -> list[RevisionResponse]:
    revisions = repository.list_revisions_by_username(db, username, tenant_id=context.tenant_id)
    return [RevisionResponse.from_revision(revision) for revision in revisions]


@router.get("/type/{revision_type}", response_model=list[RevisionResponse])
def get_revisions_by_type(
    revision_type: RevisionType,
    context: AuditContext = Depends(get_audit_context),
    db: Session = Depends(get_db),
) -> list[RevisionResponse]:
    revisions = repository.list_revisions_by_type(db, revision_type, tenant_id=context.tenant_id)
    return [RevisionResponse.from_revision(revision) for revision in revisions]


@router.get("/entity/{entity_name}/{entity_id}", response_model=list[RevisionResponse])
def get_revisions_by_entity(
    entity_name: str,
    entity_id: int,
    context: AuditContext = Depends(get_audit_context),
    db: Session = Depends(get_db),
) -> list[RevisionResponse]:
    revisions = repository.list_revisions_for_entity(db, entity_name, entity_id, tenant_id=context.tenant_id)
    return [RevisionResponse.from_revision(revision) for revision in revisions]


@router.get("/entity/{entity_name}/{entity_id}/latest", response_model=RevisionResponse)
def get_latest_revision(
    entity_name: str,
    entity_id: int,
    context: AuditContext = Depends(get_audit_context),
    db: Session = Depends(get_db),
) -> RevisionResponse:
    try:
        revision = repository.get_latest_revision(db, entity_name, entity_id, tenant_id=context.tenant_id)
    except RevisionNotFoundError as e:
        raise _not_found(e) from e
    return RevisionResponse.from_revision(revision)


@router.get("/entity/{entity_name}/{entity_id}/count", response_model=RevisionCountResponse)
def count_revisions_by_entity(
    entity_name: str,
    entity_id: int,
    context: AuditContext = Depends(get_audit_context),
    db: Session = Depends(get_db),
) -> RevisionCountResponse:
    count = repository.count_revisions_by_entity(db, entity_name, entity_id, tenant_id=context.tenant_id)
    return RevisionCountResponse(entity_name=entity_name, entity_id=entity_id, count=count)


@router.post("/entity/{entity_name}/{entity_id}", response_model=RevisionResponse, status_code=status.HTTP_201_CREATED)
def create_revision(
    entity_name: str,
    entity_id: int,
    payload: RevisionCreate = Body(...),
    context: AuditContext = Depends(get_audit_context),
    db: Session = Depends(get_db),
) -> RevisionResponse:
    """Store a manually submitted revision.

    Sensitive fields are stripped from the submitted changes before storage.

    Raises:
        HTTPException: 422 if the entity identity or actor metadata is invalid
    """
    try:
        target = RevisionTarget(
            entity_name=entity_name,
            entity_id=entity_id,
            username=context.username,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False),
        ) from e

    revision = repository.create_revision(
        db,
        entity_name=target.entity_name,
        entity_id=target.entity_id,
        revision_type=payload.revision_type,
        changes=sanitize_changes(payload.changes, settings.excluded_fields),
        username=target.username,
        tenant_id=context.tenant_id,
        reason=payload.reason,
        ip_address=target.ip_address,
        user_agent=target.user_agent,
    )
    db.commit()
    return RevisionResponse.from_revision(revision)


@router.get("/{revision_id}/summary", response_model=RevisionSummaryResponse)
def get_revision_summary(
    revision_id: int,
    context: AuditContext = Depends(get_audit_context),
    db: Session = Depends(get_db),
) -> RevisionSummaryResponse:
    """Human-readable summary line and change listing for one revision."""
    try:
        revision = repository.get_revision(db, revision_id, tenant_id=context.tenant_id)
    except RevisionNotFoundError as e:
        raise _not_found(e) from e
    tz = resolve_timezone(settings.revision_timezone)
    return RevisionSummaryResponse(
        id=revision.id,
        summary=render_summary(revision, tz),
        changes=render_changes(revision.changes_as_map),
    )


@router.get("/{revision_id}", response_model=RevisionResponse)
def get_revision(
    revision_id: int,
    context: AuditContext = Depends(get_audit_context),
    db: Session = Depends(get_db),
) -> RevisionResponse:
    try:
        revision = repository.get_revision(db, revision_id, tenant_id=context.tenant_id)
    except RevisionNotFoundError as e:
        raise _not_found(e) from e
    return RevisionResponse.from_revision(revision)
