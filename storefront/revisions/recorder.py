"""Audit hook: turns entity mutations into revision records.

Sequence per mutation:
    snapshot before -> mutate -> snapshot after -> diff -> sanitize -> persist

Revision writes never block the business mutation. Each insert runs inside a
SAVEPOINT; on a database error the savepoint is rolled back, the error is
logged and the recorder returns None.
"""

from __future__ import annotations

from collections.abc import Collection, Generator
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.config.settings import settings
from storefront.core.context import AuditContext
from storefront.db.models import Revision
from storefront.revisions.constants import (
    LOG_PREFIX,
    REASON_CREATED,
    REASON_DELETED,
    REASON_RESTORED,
    REASON_UPDATED,
    RevisionType,
)
from storefront.revisions.diff import diff_snapshots
from storefront.revisions.redaction import sanitize_changes
from storefront.revisions.repository import create_revision
from storefront.revisions.snapshot import Entity, Snapshot, snapshot


def entity_name_of(entity: object) -> str:
    return type(entity).__name__


class RevisionRecorder:
    """Records revisions for mutations made in one session on behalf of one actor."""

    def __init__(
        self,
        session: Session,
        context: AuditContext,
        *,
        excluded_fields: Collection[str] | None = None,
        track_removed_fields: bool | None = None,
    ) -> None:
        self.session = session
        self.context = context
        self.excluded_fields = settings.excluded_fields if excluded_fields is None else frozenset(excluded_fields)
        self.track_removed_fields = (
            settings.revision_track_removed_fields if track_removed_fields is None else track_removed_fields
        )

    def _persist(
        self,
        entity_name: str,
        entity_id: int,
        revision_type: RevisionType,
        changes: dict[str, Any],
        reason: str | None,
    ) -> Revision | None:
        sanitized = sanitize_changes(changes, self.excluded_fields)
        try:
            with self.session.begin_nested():
                return create_revision(
                    self.session,
                    entity_name=entity_name,
                    entity_id=entity_id,
                    revision_type=revision_type,
                    changes=sanitized,
                    username=self.context.username,
                    tenant_id=self.context.tenant_id,
                    reason=reason,
                    ip_address=self.context.ip_address,
                    user_agent=self.context.user_agent,
                )
        except SQLAlchemyError as e:
            logger.error(f"{LOG_PREFIX} Error processing revision for {entity_name} {entity_id}: {e}")
            return None

    def record_created(self, entity: Entity, reason: str = REASON_CREATED) -> Revision | None:
        """Record an INSERT with every non-null field of ``entity``."""
        self.session.flush()
        changes = diff_snapshots(None, snapshot(entity))
        return self._persist(entity_name_of(entity), entity.id, RevisionType.INSERT, changes, reason)

    def record_updated(
        self,
        before: Snapshot,
        entity: Entity,
        reason: str = REASON_UPDATED,
    ) -> Revision | None:
        """Record an UPDATE from a snapshot taken before the mutation.

        Nothing is written when no audited field changed.
        """
        self.session.flush()
        changes = diff_snapshots(before, snapshot(entity), include_removed=self.track_removed_fields)
        if not sanitize_changes(changes, self.excluded_fields):
            logger.debug(f"{LOG_PREFIX} No tracked changes for {entity_name_of(entity)} {entity.id}, skipping")
            return None
        return self._persist(entity_name_of(entity), entity.id, RevisionType.UPDATE, changes, reason)

    def record_deleted(self, entity_name: str, entity_id: int, reason: str = REASON_DELETED) -> Revision | None:
        return self._persist(
            entity_name,
            entity_id,
            RevisionType.DELETE,
            {"id": entity_id, "deleted": True},
            reason,
        )

    def record_restored(self, entity: Entity, reason: str = REASON_RESTORED) -> Revision | None:
        self.session.flush()
        changes = {"restored": True, "active": True, "deletedAt": None, "deletedBy": None}
        return self._persist(entity_name_of(entity), entity.id, RevisionType.UPDATE, changes, reason)

    @contextmanager
    def track(self, entity: Entity, reason: str = REASON_UPDATED) -> Generator[Snapshot, None, None]:
        """Snapshot ``entity`` now, run the block, then record what changed.

        Usage:
            with recorder.track(product):
                product.price = Decimal("12.50")

        No revision is written if the block raises.
        """
        before = snapshot(entity)
        yield before
        self.record_updated(before, entity, reason)
