from __future__ import annotations

from collections.abc import Iterator, Mapping
from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from typing import Any, ClassVar

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from storefront.revisions.constants import (
    ENTITY_NAME_MAX_LENGTH,
    IP_ADDRESS_MAX_LENGTH,
    REASON_MAX_LENGTH,
    USER_AGENT_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
)
from storefront.revisions.serializers import changes_from_text, changes_to_text
from storefront.revisions.timestamps import timestamp_to_datetime


class Base(DeclarativeBase):
    """Base class for all database models."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FieldMap(Mapping[str, Any]):
    """Read-only view of an entity's audited fields.

    Values are read on access, so a field that cannot be loaded (e.g. a lazy
    relationship on a detached instance) raises only when that key is read.
    """

    def __init__(self, entity: object, fields: Mapping[str, str]) -> None:
        self._entity = entity
        self._fields = fields

    def __getitem__(self, key: str) -> Any:
        return getattr(self._entity, self._fields[key])

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)


class BaseEntityMixin:
    """Columns and audit field mapping shared by every catalog entity.

    Subclasses declare ``__audit_fields__`` as {external field name: attribute};
    ``to_field_map`` merges the declarations along the MRO, base fields first.
    """

    __audit_fields__: ClassVar[dict[str, str]] = {
        "id": "id",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
        "createdBy": "created_by",
        "updatedBy": "updated_by",
        "deletedAt": "deleted_at",
        "deletedBy": "deleted_by",
        "active": "active",
    }

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, default=_utcnow, onupdate=_utcnow)
    created_by: Mapped[str | None] = mapped_column(String(USERNAME_MAX_LENGTH), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(USERNAME_MAX_LENGTH), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    deleted_by: Mapped[str | None] = mapped_column(String(USERNAME_MAX_LENGTH), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @classmethod
    def audit_fields(cls) -> dict[str, str]:
        fields: dict[str, str] = {}
        for klass in reversed(cls.__mro__):
            fields.update(vars(klass).get("__audit_fields__", {}))
        return fields

    def to_field_map(self) -> Mapping[str, Any]:
        return FieldMap(self, self.audit_fields())

    def soft_delete(self, deleted_by: str) -> None:
        self.deleted_at = _utcnow()
        self.deleted_by = deleted_by
        self.active = False

    def restore(self, restored_by: str) -> None:
        self.deleted_at = None
        self.deleted_by = None
        self.active = True
        self.updated_by = restored_by
        self.updated_at = _utcnow()

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Tenant(BaseEntityMixin, Base):
    """Storefront tenant (one shop)."""

    __tablename__ = "tenants"
    __audit_fields__: ClassVar[dict[str, str]] = {
        "name": "name",
        "subdomain": "subdomain",
        "contactEmail": "contact_email",
    }

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subdomain: Mapped[str] = mapped_column(String(63), nullable=False, unique=True, index=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Category(BaseEntityMixin, Base):
    """Product category, optionally nested under a parent category."""

    __tablename__ = "categories"
    __audit_fields__: ClassVar[dict[str, str]] = {
        "name": "name",
        "description": "description",
        "imageUrl": "image_url",
        "tenantId": "tenant_id",
        "parentCategory": "parent_category",
        "products": "products",
    }

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    tenant_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=True, index=True)
    parent_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("categories.id"), nullable=True)

    parent_category: Mapped[Category | None] = relationship(remote_side="Category.id")
    products: Mapped[list[Product]] = relationship(back_populates="category", order_by="Product.id")


class Product(BaseEntityMixin, Base):
    """Catalog product."""

    __tablename__ = "products"
    __audit_fields__: ClassVar[dict[str, str]] = {
        "sku": "sku",
        "name": "name",
        "description": "description",
        "price": "price",
        "stockQuantity": "stock_quantity",
        "tenantId": "tenant_id",
        "category": "category",
        "images": "images",
    }

    sku: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tenant_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=True, index=True)
    category_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("categories.id"), nullable=True)

    category: Mapped[Category | None] = relationship(back_populates="products")
    images: Mapped[list[ProductImage]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.id",
    )


class ProductImage(BaseEntityMixin, Base):
    """Image attached to a product. The binary payload is not audited."""

    __tablename__ = "product_images"
    __audit_fields__: ClassVar[dict[str, str]] = {
        "imageUrl": "image_url",
        "fileName": "file_name",
        "contentType": "content_type",
        "product": "product",
    }

    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    content_type: Mapped[str | None] = mapped_column(String(127), nullable=True)
    data: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    product_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("products.id"), nullable=True)

    product: Mapped[Product | None] = relationship(back_populates="images")


class Revision(Base):
    """Append-only audit record of one entity mutation.

    Stores:
    - entity_name / entity_id: which entity changed
    - revision_type: INSERT, UPDATE or DELETE
    - changes: JSON change-set (see storefront.revisions.serializers)
    - username / ip_address / user_agent: who changed it
    - timestamp: epoch milliseconds
    """

    __tablename__ = "revisions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(USERNAME_MAX_LENGTH), nullable=False, index=True)
    ip_address: Mapped[str | None] = mapped_column(String(IP_ADDRESS_MAX_LENGTH), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(USER_AGENT_MAX_LENGTH), nullable=True)
    revision_type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    entity_name: Mapped[str] = mapped_column(String(ENTITY_NAME_MAX_LENGTH), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    changes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reason: Mapped[str | None] = mapped_column(String(REASON_MAX_LENGTH), nullable=True)

    __table_args__ = (Index("idx_revisions_entity", "entity_name", "entity_id"),)

    def revision_date(self, tz: tzinfo | None = None) -> datetime:
        return timestamp_to_datetime(self.timestamp, tz)

    @property
    def changes_as_map(self) -> dict[str, Any]:
        return changes_from_text(self.changes)

    def set_changes_from_map(self, changes: dict[str, Any] | None) -> None:
        self.changes = None if changes is None else changes_to_text(changes)
