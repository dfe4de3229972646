# backend/jewelstock/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: every operation takes the caller's shop_id; products of other
shops are reported as NotFound.

LIFECYCLE:
- create_product resolves the category / sub-category (typed names are
  found-or-created), then books the opening stock as a STOCK_IN ledger row
  (reason Purchase, weight = unit weight * quantity) in the same unit of work.
- update_product edits descriptive and pricing fields only. quantity and
  weight move exclusively through the stock ledger.
- delete_product removes the product together with its ledger rows and keeps
  an AuditEvent with the final on-hand totals.

Every read returns the product with its computed price.
"""
from __future__ import annotations

import secrets
from datetime import timedelta

from ..errors import NotFound
from ..measures import round_weight
from ..models import (
    ItemType,
    MakingChargeType,
    MetalType,
    Product,
    ProductStatus,
    StockReason,
    TransactionType,
)
from ..repository import InventoryRepository
from ..validation import ConflictError, ValidationError
from .audit_service import record_audit_event
from .category_service import resolve_category, resolve_subcategory
from .concurrency import atomic
from .pricing_service import quote_price
from .stock_service import build_transaction, snapshot_rate

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "sku",
    "barcode",
    "hsn_code",
    "item_type",
    "making_charge",
    "making_charge_type",
    "profit_percent",
    "status",
}

CATEGORY_INPUT_FIELDS = {
    "category_id",
    "category_name",
    "category_type",
    "sub_category_id",
    "sub_category_name",
}

STOCK_FIELDS = {"quantity", "weight"}

BARCODE_DIGITS = 10
_BARCODE_ATTEMPTS = 20


def generate_barcode() -> str:
    """Random 10-digit numeric barcode."""
    return str(secrets.randbelow(10 ** BARCODE_DIGITS)).zfill(BARCODE_DIGITS)


def sku_for_barcode(barcode: str) -> str:
    return f"SKU-{barcode[-4:]}"


def _unused_barcode(repo: InventoryRepository, shop_id: int) -> str:
    for _ in range(_BARCODE_ATTEMPTS):
        candidate = generate_barcode()
        if repo.find_product_by_barcode(shop_id, candidate) is None:
            return candidate
    raise ConflictError("could not allocate a unique barcode")


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def price_product(
    repo: InventoryRepository,
    product: Product,
    *,
    categories: dict | None = None,
    metal_rate=None,
    rate_max_age: timedelta | None = None,
) -> dict:
    """Product dict with category names and its computed price."""
    if categories is None:
        category = repo.find_category(product.shop_id, product.category_id)
    else:
        category = categories.get(product.category_id)
    if metal_rate is None:
        metal_rate = repo.get_metal_rate(product.shop_id)

    quote = quote_price(product, category, metal_rate, max_age=rate_max_age)

    sub_name = None
    if category is not None and product.sub_category_id is not None:
        for sub in category.subcategories:
            if sub.id == product.sub_category_id:
                sub_name = sub.name
                break

    data = product.to_dict()
    data["category_name"] = category.name if category is not None else None
    data["category_type"] = category.type if category is not None else None
    data["sub_category_name"] = sub_name
    data["price"] = quote.display_price
    data["price_breakdown"] = quote.to_dict()
    return data


def _check_individual_quantity(item_type: str, quantity: int, *, allow_sold_out: bool = False) -> None:
    allowed = (0, 1) if allow_sold_out else (1,)
    if item_type == ItemType.INDIVIDUAL.value and quantity not in allowed:
        raise ValidationError("Individual items must have quantity 1")


def create_product(
    repo: InventoryRepository,
    *,
    shop_id: int,
    patch: dict,
    actor_user_id: int | None = None,
    rate_max_age: timedelta | None = None,
) -> dict:
    """
    Create a product and book its opening stock.

    patch carries the validated product fields plus category inputs
    (category_id or category_name [+ category_type], sub_category_id or
    sub_category_name). patch["weight"] is the weight of ONE unit.

    Raises:
        MissingCategory: no category id and no typed name
        NotFound: category_id / sub_category_id not in the shop
        ConflictError: barcode already used in the shop
        ValidationError: bad quantity / weight / item type
    """
    repo.get_shop(shop_id)

    name = (patch.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")

    quantity = patch.get("quantity")
    quantity = 1 if quantity is None else quantity
    unit_weight = float(patch.get("weight") or 0.0)
    item_type = patch.get("item_type") or ItemType.INDIVIDUAL.value

    if quantity < 1:
        raise ValidationError("quantity must be >= 1")
    if unit_weight < 0:
        raise ValidationError("weight must be >= 0")
    _check_individual_quantity(item_type, quantity)

    with atomic(repo.session):
        category = resolve_category(
            repo,
            shop_id=shop_id,
            typed_name=patch.get("category_name"),
            metal_type_if_new=patch.get("category_type") or MetalType.GOLD.value,
            category_id=patch.get("category_id"),
        )
        sub = resolve_subcategory(
            repo,
            shop_id=shop_id,
            category_id=category.id,
            typed_name=patch.get("sub_category_name"),
            sub_category_id=patch.get("sub_category_id"),
        )

        barcode = (patch.get("barcode") or "").strip()
        if barcode:
            if repo.find_product_by_barcode(shop_id, barcode) is not None:
                raise ConflictError("Barcode already exists for this shop.")
        else:
            barcode = _unused_barcode(repo, shop_id)
        sku = (patch.get("sku") or "").strip() or sku_for_barcode(barcode)

        p = Product(
            shop_id=shop_id,
            category_id=category.id,
            sub_category_id=sub.id if sub is not None else None,
            name=name,
            sku=sku,
            barcode=barcode,
            hsn_code=patch.get("hsn_code") or None,
            item_type=item_type,
            quantity=0,
            weight=0.0,
            making_charge=float(patch.get("making_charge") or 0.0),
            making_charge_type=patch.get("making_charge_type") or MakingChargeType.PER_GRAM.value,
            profit_percent=float(patch.get("profit_percent") or 0.0),
            status=patch.get("status") or ProductStatus.ACTIVE.value,
        )
        repo.add_product(p)  # ensure p.id exists before the opening STOCK_IN

        opening = build_transaction(
            type=TransactionType.STOCK_IN.value,
            quantity=quantity,
            weight=round_weight(unit_weight * quantity),
            reason=StockReason.PURCHASE.value,
            note="Opening stock",
            actor_user_id=actor_user_id,
            rate_per_gram=snapshot_rate(repo, p),
        )
        repo.apply_transaction(p, opening)

        record_audit_event(
            repo.session,
            shop_id=shop_id,
            actor_user_id=actor_user_id,
            event_type="product.created",
            entity_type="Product",
            entity_id=p.id,
            note=f"Created product barcode={p.barcode} name={p.name}",
            payload={"quantity": quantity, "weight": opening.weight},
        )

    return price_product(repo, p, rate_max_age=rate_max_age)


def update_product(
    repo: InventoryRepository,
    *,
    shop_id: int,
    product_id: int,
    patch: dict,
    actor_user_id: int | None = None,
    rate_max_age: timedelta | None = None,
) -> dict:
    """
    Update descriptive / pricing fields and re-resolve the category.

    Changing the category without naming a sub-category clears the
    sub-category. quantity / weight are rejected: use the stock ledger.
    """
    touched_stock = STOCK_FIELDS & set(patch)
    if touched_stock:
        raise ValidationError(
            f"{', '.join(sorted(touched_stock))} cannot be edited; record a stock transaction instead"
        )

    with atomic(repo.session):
        p = repo.get_product(shop_id, product_id, lock=True)

        if "name" in patch and not (patch["name"] or "").strip():
            raise ValidationError("name cannot be blank")

        if "barcode" in patch:
            barcode = (patch["barcode"] or "").strip()
            if not barcode:
                raise ValidationError("barcode cannot be blank")
            if barcode != p.barcode:
                clash = repo.find_product_by_barcode(shop_id, barcode)
                if clash is not None and clash.id != p.id:
                    raise ConflictError("Barcode already exists for this shop.")
            patch = {**patch, "barcode": barcode}

        if "item_type" in patch:
            _check_individual_quantity(patch["item_type"], int(p.quantity or 0), allow_sold_out=True)

        category_changed = "category_id" in patch or "category_name" in patch
        if category_changed:
            category = resolve_category(
                repo,
                shop_id=shop_id,
                typed_name=patch.get("category_name"),
                metal_type_if_new=patch.get("category_type") or MetalType.GOLD.value,
                category_id=patch.get("category_id"),
            )
            if category.id != p.category_id:
                p.category_id = category.id
                p.sub_category_id = None

        if "sub_category_id" in patch or "sub_category_name" in patch:
            if repo.find_category(shop_id, p.category_id) is None:
                raise NotFound("Category", p.category_id)
            sub = resolve_subcategory(
                repo,
                shop_id=shop_id,
                category_id=p.category_id,
                typed_name=patch.get("sub_category_name"),
                sub_category_id=patch.get("sub_category_id"),
            )
            p.sub_category_id = sub.id if sub is not None else None

        apply_product_patch(p, patch)
        repo.session.flush()

        record_audit_event(
            repo.session,
            shop_id=shop_id,
            actor_user_id=actor_user_id,
            event_type="product.updated",
            entity_type="Product",
            entity_id=p.id,
            note=f"Updated fields: {', '.join(sorted(patch.keys()))}",
        )

    return price_product(repo, p, rate_max_age=rate_max_age)


def delete_product(
    repo: InventoryRepository,
    *,
    shop_id: int,
    product_id: int,
    actor_user_id: int | None = None,
) -> dict:
    """Hard-delete a product and its ledger rows; the audit event keeps the final totals."""
    with atomic(repo.session):
        p = repo.delete_product(shop_id, product_id)
        summary = {
            "name": p.name,
            "barcode": p.barcode,
            "sku": p.sku,
            "category_id": p.category_id,
            "quantity": int(p.quantity or 0),
            "weight": float(p.weight or 0.0),
        }
        record_audit_event(
            repo.session,
            shop_id=shop_id,
            actor_user_id=actor_user_id,
            event_type="product.deleted",
            entity_type="Product",
            entity_id=product_id,
            note=f"Deleted product barcode={p.barcode} name={p.name}",
            payload=summary,
        )
    return {"deleted": product_id, **summary}


def get_product(repo: InventoryRepository, *, shop_id: int, product_id: int, rate_max_age: timedelta | None = None) -> dict:
    return price_product(repo, repo.get_product(shop_id, product_id), rate_max_age=rate_max_age)


def find_product_by_barcode(repo: InventoryRepository, *, shop_id: int, barcode: str, rate_max_age: timedelta | None = None) -> dict:
    barcode = (barcode or "").strip()
    if not barcode:
        raise ValidationError("barcode is required")
    p = repo.find_product_by_barcode(shop_id, barcode)
    if p is None:
        raise NotFound("Product with barcode", barcode)
    return price_product(repo, p, rate_max_age=rate_max_age)


def list_products(
    repo: InventoryRepository,
    *,
    shop_id: int,
    search: str | None = None,
    category_id: int | None = None,
    status: str | None = None,
    rate_max_age: timedelta | None = None,
) -> dict:
    if status is not None and status not in (ProductStatus.ACTIVE.value, ProductStatus.INACTIVE.value):
        raise ValidationError("status must be Active or Inactive")

    products = repo.list_products(shop_id, search=search, category_id=category_id, status=status)
    categories = repo.category_names(shop_id)
    metal_rate = repo.get_metal_rate(shop_id)
    items = [
        price_product(repo, p, categories=categories, metal_rate=metal_rate, rate_max_age=rate_max_age)
        for p in products
    ]
    return {"items": items, "count": len(items)}
