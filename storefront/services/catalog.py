"""Catalog mutations with revision tracking.

Every write goes through a RevisionRecorder bound to the caller's
AuditContext, so the revision log sees each create/update/delete/restore.
Reads and writes are scoped to ``context.tenant_id``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.core.context import AuditContext
from storefront.db.models import Category, Product, ProductImage
from storefront.revisions.recorder import RevisionRecorder

PRODUCT_UPDATABLE_FIELDS = {"sku", "name", "description", "price", "stock_quantity", "category_id"}
CATEGORY_UPDATABLE_FIELDS = {"name", "description", "image_url", "parent_id"}


class CatalogNotFoundError(LookupError):
    """Raised when a product or category does not exist for the tenant."""


def _get_scoped(session: Session, model: type[Product] | type[Category], entity_id: int, tenant_id: int | None):
    query = select(model).where(model.id == entity_id)
    if tenant_id is not None:
        query = query.where(model.tenant_id == tenant_id)
    entity = session.execute(query).scalar_one_or_none()
    if entity is None:
        raise CatalogNotFoundError(f"{model.__name__} not found with id: {entity_id}")
    return entity


def get_product(session: Session, context: AuditContext, product_id: int) -> Product:
    return _get_scoped(session, Product, product_id, context.tenant_id)


def get_category(session: Session, context: AuditContext, category_id: int) -> Category:
    return _get_scoped(session, Category, category_id, context.tenant_id)


def _apply_updates(entity: Product | Category, updates: dict[str, Any], allowed: set[str]) -> None:
    unknown = set(updates) - allowed
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    for field, value in updates.items():
        setattr(entity, field, value)


def create_category(
    session: Session,
    context: AuditContext,
    *,
    name: str,
    description: str | None = None,
    image_url: str | None = None,
    parent_id: int | None = None,
) -> Category:
    category = Category(
        name=name,
        description=description,
        image_url=image_url,
        parent_id=parent_id,
        tenant_id=context.tenant_id,
        created_by=context.username,
    )
    session.add(category)
    RevisionRecorder(session, context).record_created(category)
    logger.info(f"Created category {category.id} for tenant {context.tenant_id}")
    return category


def update_category(session: Session, context: AuditContext, category_id: int, **updates: Any) -> Category:
    category = get_category(session, context, category_id)
    recorder = RevisionRecorder(session, context)
    with recorder.track(category):
        _apply_updates(category, updates, CATEGORY_UPDATABLE_FIELDS)
        category.updated_by = context.username
        # Reload the relationship so the after-snapshot sees the new parent
        if "parent_id" in updates:
            session.flush()
            session.expire(category, ["parent_category"])
    return category


def create_product(
    session: Session,
    context: AuditContext,
    *,
    sku: str,
    name: str,
    price: Decimal,
    stock_quantity: int = 0,
    description: str | None = None,
    category_id: int | None = None,
) -> Product:
    if price <= 0:
        raise ValueError("Price must be greater than 0")
    if stock_quantity < 0:
        raise ValueError("Stock quantity must be greater than or equal to 0")
    product = Product(
        sku=sku,
        name=name,
        price=price,
        stock_quantity=stock_quantity,
        description=description,
        category_id=category_id,
        tenant_id=context.tenant_id,
        created_by=context.username,
    )
    session.add(product)
    RevisionRecorder(session, context).record_created(product)
    logger.info(f"Created product {product.id} (sku={sku}) for tenant {context.tenant_id}")
    return product


def update_product(session: Session, context: AuditContext, product_id: int, **updates: Any) -> Product:
    """Apply field updates to a product and record the resulting revision.

    Raises:
        CatalogNotFoundError: If the product does not exist for the tenant
        ValueError: If ``updates`` names a field that cannot be changed
    """
    product = get_product(session, context, product_id)
    recorder = RevisionRecorder(session, context)
    with recorder.track(product):
        _apply_updates(product, updates, PRODUCT_UPDATABLE_FIELDS)
        product.updated_by = context.username
        # Reload the relationship so the after-snapshot sees the new category
        if "category_id" in updates:
            session.flush()
            session.expire(product, ["category"])
    return product


def add_product_image(
    session: Session,
    context: AuditContext,
    product_id: int,
    *,
    image_url: str,
    file_name: str | None = None,
    content_type: str | None = None,
) -> ProductImage:
    product = get_product(session, context, product_id)
    recorder = RevisionRecorder(session, context)
    with recorder.track(product):
        image = ProductImage(
            image_url=image_url,
            file_name=file_name,
            content_type=content_type,
            created_by=context.username,
        )
        product.images.append(image)
    recorder.record_created(image)
    return image


def delete_product(session: Session, context: AuditContext, product_id: int) -> Product:
    """Soft-delete a product. Deleting an already deleted product is a no-op."""
    product = get_product(session, context, product_id)
    if product.is_deleted:
        logger.info(f"Product {product.id} is already deleted, skipping")
        return product
    product.soft_delete(context.username)
    session.flush()
    RevisionRecorder(session, context).record_deleted("Product", product.id)
    return product


def restore_product(session: Session, context: AuditContext, product_id: int) -> Product:
    product = get_product(session, context, product_id)
    if not product.is_deleted:
        logger.info(f"Product {product.id} is not deleted, nothing to restore")
        return product
    product.restore(context.username)
    RevisionRecorder(session, context).record_restored(product)
    return product
