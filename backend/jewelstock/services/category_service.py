# Overview: Category resolver (find-or-create from typed names) and explicit category management.

"""
Category Resolver

Turns the free-text category / sub-category names typed during product
entry into stable ids, creating rows on first use.

- Matching is case-insensitive and whitespace-insensitive (name_key).
- Resolving the same (shop, name) twice yields the same id and one row.
  A concurrent create of the same name hits the unique key; the loser
  re-reads the winner's row.
- A blank sub-category name means "no sub-category", not an error.

The resolver flushes but never commits: it runs inside the caller's unit
of work (product create / update).
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import MissingCategory
from ..models import Category, MetalType, SubCategory
from ..repository import InventoryRepository
from ..validation import ConflictError, ValidationError
from .audit_service import record_audit_event
from .concurrency import atomic


def _clean(name: str | None) -> str:
    return " ".join((name or "").split())


def _metal_type(value) -> str:
    if isinstance(value, MetalType):
        return value.value
    if value not in (MetalType.GOLD.value, MetalType.SILVER.value):
        raise ValidationError("category type must be Gold or Silver")
    return value


def resolve_category(
    repo: InventoryRepository,
    *,
    shop_id: int,
    typed_name: str | None = None,
    metal_type_if_new=MetalType.GOLD,
    category_id: int | None = None,
) -> Category:
    """
    Category for product entry.

    An explicit category_id wins and must exist in the shop (NotFound).
    Otherwise typed_name is matched case-insensitively, or created with
    metal_type_if_new. Neither given raises MissingCategory.
    """
    if category_id is not None:
        return repo.get_category(shop_id, category_id)

    name = _clean(typed_name)
    if not name:
        raise MissingCategory("category_id or category_name is required")

    existing = repo.find_category_by_name(shop_id, name)
    if existing is not None:
        return existing

    metal_type = _metal_type(metal_type_if_new)
    try:
        return repo.create_category(shop_id, name, metal_type)
    except IntegrityError:
        winner = repo.find_category_by_name(shop_id, name)
        if winner is None:
            raise
        return winner


def resolve_subcategory(
    repo: InventoryRepository,
    *,
    shop_id: int,
    category_id: int,
    typed_name: str | None = None,
    sub_category_id: int | None = None,
) -> SubCategory | None:
    """
    Sub-category for product entry, or None when nothing was typed.

    An explicit sub_category_id must exist in the shop and belong to
    category_id.
    """
    if sub_category_id is not None:
        sub = repo.get_subcategory(shop_id, sub_category_id)
        if sub.category_id != category_id:
            raise ValidationError("sub-category does not belong to the category")
        return sub

    name = _clean(typed_name)
    if not name:
        return None

    existing = repo.find_subcategory_by_name(shop_id, category_id, name)
    if existing is not None:
        return existing

    try:
        return repo.create_subcategory(shop_id, category_id, name)
    except IntegrityError:
        winner = repo.find_subcategory_by_name(shop_id, category_id, name)
        if winner is None:
            raise
        return winner


# -- explicit management (settings screen) --


def create_category(repo: InventoryRepository, *, shop_id: int, name: str, type) -> Category:
    name = _clean(name)
    if not name:
        raise ValidationError("name is required")
    metal_type = _metal_type(type)
    repo.get_shop(shop_id)
    if repo.find_category_by_name(shop_id, name) is not None:
        raise ConflictError(f"category '{name}' already exists")

    with atomic(repo.session):
        try:
            category = repo.create_category(shop_id, name, metal_type)
        except IntegrityError:
            raise ConflictError(f"category '{name}' already exists")
    return category


def list_categories(repo: InventoryRepository, *, shop_id: int, include_subcategories: bool = False) -> list[dict]:
    rows = []
    for category in repo.list_categories(shop_id):
        data = category.to_dict()
        if include_subcategories:
            data["subcategories"] = [s.to_dict() for s in category.subcategories]
        rows.append(data)
    return rows


def delete_category(repo: InventoryRepository, *, shop_id: int, category_id: int, actor_user_id: int | None = None) -> dict:
    """
    Delete a category and its sub-categories.

    Products that reference it keep the dangling category_id (they price
    to 0 until re-assigned); the count is returned and audited.
    """
    with atomic(repo.session):
        category, removed_subs = repo.delete_category(shop_id, category_id)
        orphaned = len(repo.list_products(shop_id, category_id=category_id))
        record_audit_event(
            repo.session,
            shop_id=shop_id,
            actor_user_id=actor_user_id,
            event_type="category.deleted",
            entity_type="Category",
            entity_id=category_id,
            payload={
                "name": category.name,
                "type": category.type,
                "subcategories_removed": removed_subs,
                "products_orphaned": orphaned,
            },
        )
    return {
        "deleted": category_id,
        "subcategories_removed": removed_subs,
        "products_orphaned": orphaned,
    }


def create_subcategory(repo: InventoryRepository, *, shop_id: int, category_id: int, name: str) -> SubCategory:
    name = _clean(name)
    if not name:
        raise ValidationError("name is required")
    repo.get_category(shop_id, category_id)
    if repo.find_subcategory_by_name(shop_id, category_id, name) is not None:
        raise ConflictError(f"sub-category '{name}' already exists")

    with atomic(repo.session):
        try:
            sub = repo.create_subcategory(shop_id, category_id, name)
        except IntegrityError:
            raise ConflictError(f"sub-category '{name}' already exists")
    return sub


def list_subcategories(repo: InventoryRepository, *, shop_id: int, category_id: int | None = None) -> list[dict]:
    if category_id is not None:
        repo.get_category(shop_id, category_id)
    return [s.to_dict() for s in repo.list_subcategories(shop_id, category_id)]


def delete_subcategory(repo: InventoryRepository, *, shop_id: int, sub_category_id: int, actor_user_id: int | None = None) -> dict:
    with atomic(repo.session):
        sub, cleared = repo.delete_subcategory(shop_id, sub_category_id)
        record_audit_event(
            repo.session,
            shop_id=shop_id,
            actor_user_id=actor_user_id,
            event_type="subcategory.deleted",
            entity_type="SubCategory",
            entity_id=sub_category_id,
            payload={"name": sub.name, "category_id": sub.category_id, "products_cleared": cleared},
        )
    return {"deleted": sub_category_id, "products_cleared": cleared}
