# Overview: Storage collaborator for the pricing/ledger core; every query is scoped by shop_id.

"""
InventoryRepository wraps one SQLAlchemy session and is handed to the core
services explicitly (one per request, see routes/_helpers.get_repository).

Contract:
- Reads never cross shops: a row from another shop is reported as NotFound.
- Writes flush but do not commit, except append_transaction_and_update_product,
  which is a complete atomic unit (lock, check, ledger append, cache update,
  commit).
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import case, func, or_
from sqlalchemy.exc import IntegrityError

from .errors import NotFound
from .measures import round_weight
from .models import (
    Category,
    MetalRate,
    Product,
    Shop,
    StockTransaction,
    SubCategory,
    TransactionType,
    normalize_name_key,
)
from .services.concurrency import atomic, lock_for_update


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally (escape char is a backslash)."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class InventoryRepository:
    def __init__(self, session):
        self.session = session

    # -- shops --

    def get_shop(self, shop_id: int) -> Shop:
        shop = self.session.query(Shop).filter_by(id=shop_id).first()
        if shop is None:
            raise NotFound("Shop", shop_id)
        return shop

    # -- products --

    def get_product(self, shop_id: int, product_id: int, *, lock: bool = False) -> Product:
        query = self.session.query(Product).filter_by(id=product_id, shop_id=shop_id)
        if lock:
            query = lock_for_update(query)
        product = query.first()
        if product is None:
            raise NotFound("Product", product_id)
        return product

    def find_product_by_barcode(self, shop_id: int, barcode: str) -> Optional[Product]:
        return (
            self.session.query(Product)
            .filter_by(shop_id=shop_id, barcode=barcode.strip())
            .first()
        )

    def list_products(
        self,
        shop_id: int,
        *,
        search: str | None = None,
        category_id: int | None = None,
        status: str | None = None,
    ) -> list[Product]:
        query = self.session.query(Product).filter(Product.shop_id == shop_id)
        if search:
            like = f"%{escape_like(search.strip())}%"
            query = query.filter(
                or_(
                    Product.name.ilike(like, escape="\\"),
                    Product.sku.ilike(like, escape="\\"),
                    Product.barcode.ilike(like, escape="\\"),
                )
            )
        if category_id is not None:
            query = query.filter(Product.category_id == category_id)
        if status:
            query = query.filter(Product.status == status)
        return query.order_by(Product.name.asc(), Product.id.asc()).all()

    def add_product(self, product: Product) -> Product:
        self.session.add(product)
        self.session.flush()
        return product

    def delete_product(self, shop_id: int, product_id: int) -> Product:
        """Delete a product and its ledger rows (flush only)."""
        product = self.get_product(shop_id, product_id, lock=True)
        (
            self.session.query(StockTransaction)
            .filter_by(shop_id=shop_id, product_id=product.id)
            .delete(synchronize_session=False)
        )
        self.session.delete(product)
        self.session.flush()
        return product

    # -- categories --

    def get_category(self, shop_id: int, category_id: int) -> Category:
        category = self.find_category(shop_id, category_id)
        if category is None:
            raise NotFound("Category", category_id)
        return category

    def find_category(self, shop_id: int, category_id: int | None) -> Optional[Category]:
        if category_id is None:
            return None
        return self.session.query(Category).filter_by(id=category_id, shop_id=shop_id).first()

    def find_category_by_name(self, shop_id: int, name: str) -> Optional[Category]:
        return (
            self.session.query(Category)
            .filter_by(shop_id=shop_id, name_key=normalize_name_key(name))
            .first()
        )

    def create_category(self, shop_id: int, name: str, type: str) -> Category:
        """
        Insert a category inside a savepoint.

        Raises IntegrityError if the (shop, name) key already exists; the
        savepoint keeps the outer transaction usable for a re-read.
        """
        category = Category(
            shop_id=shop_id,
            name=" ".join(name.split()),
            name_key=normalize_name_key(name),
            type=type,
        )
        with self.session.begin_nested():
            self.session.add(category)
        return category

    def list_categories(self, shop_id: int) -> list[Category]:
        return (
            self.session.query(Category)
            .filter_by(shop_id=shop_id)
            .order_by(Category.name.asc(), Category.id.asc())
            .all()
        )

    def category_names(self, shop_id: int) -> dict[int, Category]:
        return {c.id: c for c in self.list_categories(shop_id)}

    def delete_category(self, shop_id: int, category_id: int) -> tuple[Category, int]:
        """Delete a category and (via ORM cascade) its sub-categories. Returns the row and sub-category count."""
        category = self.get_category(shop_id, category_id)
        removed_subs = len(category.subcategories)
        self.session.delete(category)
        self.session.flush()
        return category, removed_subs

    # -- sub-categories --

    def get_subcategory(self, shop_id: int, sub_category_id: int) -> SubCategory:
        sub = (
            self.session.query(SubCategory)
            .filter_by(id=sub_category_id, shop_id=shop_id)
            .first()
        )
        if sub is None:
            raise NotFound("SubCategory", sub_category_id)
        return sub

    def find_subcategory_by_name(self, shop_id: int, category_id: int, name: str) -> Optional[SubCategory]:
        return (
            self.session.query(SubCategory)
            .filter_by(shop_id=shop_id, category_id=category_id, name_key=normalize_name_key(name))
            .first()
        )

    def create_subcategory(self, shop_id: int, category_id: int, name: str) -> SubCategory:
        sub = SubCategory(
            shop_id=shop_id,
            category_id=category_id,
            name=" ".join(name.split()),
            name_key=normalize_name_key(name),
        )
        with self.session.begin_nested():
            self.session.add(sub)
        return sub

    def list_subcategories(self, shop_id: int, category_id: int | None = None) -> list[SubCategory]:
        query = self.session.query(SubCategory).filter_by(shop_id=shop_id)
        if category_id is not None:
            query = query.filter_by(category_id=category_id)
        return query.order_by(SubCategory.name.asc(), SubCategory.id.asc()).all()

    def delete_subcategory(self, shop_id: int, sub_category_id: int) -> tuple[SubCategory, int]:
        """Delete a sub-category and clear it from referencing products. Returns the row and cleared count."""
        sub = self.get_subcategory(shop_id, sub_category_id)
        cleared = (
            self.session.query(Product)
            .filter_by(shop_id=shop_id, sub_category_id=sub.id)
            .update({Product.sub_category_id: None}, synchronize_session="fetch")
        )
        self.session.delete(sub)
        self.session.flush()
        return sub, cleared

    # -- metal rates --

    def get_metal_rate(self, shop_id: int) -> MetalRate:
        """
        Current rate row of a shop.

        Shops get a zero-rate row at creation; one is added here (flush only)
        for shops that predate that.
        """
        rate = self.session.query(MetalRate).filter_by(shop_id=shop_id).first()
        if rate is not None:
            return rate
        self.get_shop(shop_id)
        rate = MetalRate(shop_id=shop_id, gold_rate=0.0, silver_rate=0.0)
        try:
            with self.session.begin_nested():
                self.session.add(rate)
        except IntegrityError:
            rate = self.session.query(MetalRate).filter_by(shop_id=shop_id).one()
        return rate

    # -- ledger --

    def apply_transaction(self, product: Product, txn: StockTransaction) -> StockTransaction:
        """
        Append txn and move product's cached totals by its amounts (flush only).

        Callers provide the surrounding atomic unit.
        """
        sign = 1 if txn.type == TransactionType.STOCK_IN.value else -1
        product.quantity = int(product.quantity or 0) + sign * int(txn.quantity)
        product.weight = round_weight((product.weight or 0.0) + sign * txn.weight)
        txn.shop_id = product.shop_id
        txn.product_id = product.id
        self.session.add(txn)
        self.session.flush()
        return txn

    def append_transaction_and_update_product(
        self,
        shop_id: int,
        product_id: int,
        txn: StockTransaction,
        *,
        check: Callable[[Product], None] | None = None,
        prepare: Callable[[Product, StockTransaction], None] | None = None,
    ) -> tuple[StockTransaction, Product]:
        """
        Atomically lock the product, run check(product), append txn and update the cache.

        check may raise to abort with no mutation. prepare may fill txn fields
        that depend on the locked product (e.g. the rate snapshot). Storage
        races raise ConcurrencyConflict; everything is rolled back on failure.
        """
        with atomic(self.session):
            product = self.get_product(shop_id, product_id, lock=True)
            if check is not None:
                check(product)
            if prepare is not None:
                prepare(product, txn)
            self.apply_transaction(product, txn)
        return txn, product

    def list_transactions(
        self,
        shop_id: int,
        product_id: int | None = None,
        *,
        type: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
        newest_first: bool = True,
    ) -> list[StockTransaction]:
        query = self.session.query(StockTransaction).filter(StockTransaction.shop_id == shop_id)
        if product_id is not None:
            query = query.filter(StockTransaction.product_id == product_id)
        if type:
            query = query.filter(StockTransaction.type == type)
        if start is not None:
            query = query.filter(StockTransaction.occurred_at >= start)
        if end is not None:
            query = query.filter(StockTransaction.occurred_at <= end)
        if newest_first:
            query = query.order_by(StockTransaction.timestamp.desc(), StockTransaction.id.desc())
        else:
            query = query.order_by(StockTransaction.timestamp.asc(), StockTransaction.id.asc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def ledger_totals(self, shop_id: int, product_ids=None) -> dict[int, dict]:
        """Σ STOCK_IN / Σ STOCK_OUT quantity and weight per product."""
        is_in = StockTransaction.type == TransactionType.STOCK_IN.value
        query = self.session.query(
            StockTransaction.product_id,
            func.coalesce(func.sum(case((is_in, StockTransaction.quantity), else_=0)), 0).label("in_qty"),
            func.coalesce(func.sum(case((is_in, 0), else_=StockTransaction.quantity)), 0).label("out_qty"),
            func.coalesce(func.sum(case((is_in, StockTransaction.weight), else_=0.0)), 0.0).label("in_weight"),
            func.coalesce(func.sum(case((is_in, 0.0), else_=StockTransaction.weight)), 0.0).label("out_weight"),
            func.count(StockTransaction.id).label("entries"),
        ).filter(StockTransaction.shop_id == shop_id)
        if product_ids is not None:
            query = query.filter(StockTransaction.product_id.in_(list(product_ids)))
        rows = query.group_by(StockTransaction.product_id).all()
        return {
            row.product_id: {
                "in_quantity": int(row.in_qty or 0),
                "out_quantity": int(row.out_qty or 0),
                "in_weight": float(row.in_weight or 0.0),
                "out_weight": float(row.out_weight or 0.0),
                "entries": int(row.entries or 0),
            }
            for row in rows
        }
