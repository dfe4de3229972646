from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data with cached on-hand totals.

    MULTI-TENANT: Products are scoped to shops via shop_id.

    CACHED TOTALS:
    quantity (units) and weight (grams) are derived from the StockTransaction
    ledger: the sum of STOCK_IN minus STOCK_OUT since creation. They are
    written only by the stock service, never through product edits.

    category_id / sub_category_id are plain references: deleting a category
    leaves them dangling and the product prices to 0 until re-assigned.

    BARCODE: unique within a shop. SKU is a display code and may repeat.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "barcode", name="uq_products_shop_barcode"),
        db.Index("ix_products_shop_name", "shop_id", "name"),
        db.Index("ix_products_shop_category", "shop_id", "category_id"),
        db.Index("ix_products_shop_status", "shop_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    category_id = db.Column(db.Integer, nullable=False)
    sub_category_id = db.Column(db.Integer, nullable=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    barcode = db.Column(db.String(64), nullable=False)
    hsn_code = db.Column(db.String(32), nullable=True)

    # One of enums.ItemType
    item_type = db.Column(db.String(16), nullable=False, default="Individual")

    # Cached on-hand totals (ledger-derived)
    weight = db.Column(db.Float, nullable=False, default=0.0)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    making_charge = db.Column(db.Float, nullable=False, default=0.0)
    # One of enums.MakingChargeType
    making_charge_type = db.Column(db.String(16), nullable=False, default="per_gram")
    profit_percent = db.Column(db.Float, nullable=False, default=0.0)

    # One of enums.ProductStatus
    status = db.Column(db.String(16), nullable=False, default="Active")

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} barcode={self.barcode!r} name={self.name!r} shop_id={self.shop_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "category_id": self.category_id,
            "sub_category_id": self.sub_category_id,
            "name": self.name,
            "sku": self.sku,
            "barcode": self.barcode,
            "hsn_code": self.hsn_code,
            "item_type": self.item_type,
            "weight": self.weight,
            "quantity": self.quantity,
            "making_charge": self.making_charge,
            "making_charge_type": self.making_charge_type,
            "profit_percent": self.profit_percent,
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockTransaction(db.Model):
    """
    Append-only stock ledger row.

    Never updated; deleted only together with its product.
    occurred_at is the server-assigned business time ("date"), timestamp is
    the same instant as epoch milliseconds for cheap ordering.
    rate_per_gram snapshots the metal rate that applied to the product's
    category when the row was written (null if the category was missing).
    """
    __tablename__ = "stock_transactions"
    __table_args__ = (
        db.Index("ix_stocktx_shop_product_ts", "shop_id", "product_id", "timestamp"),
        db.Index("ix_stocktx_shop_type_occurred", "shop_id", "type", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # One of enums.TransactionType
    type = db.Column(db.String(16), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    weight = db.Column(db.Float, nullable=False, default=0.0)

    # One of enums.StockReason
    reason = db.Column(db.String(16), nullable=False)
    note = db.Column(db.String(255), nullable=True)

    rate_per_gram = db.Column(db.Float, nullable=True)
    created_by_user_id = db.Column(db.Integer, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    timestamp = db.Column(db.BigInteger, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return (
            f"<StockTransaction id={self.id} product_id={self.product_id} type={self.type} "
            f"quantity={self.quantity} weight={self.weight}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "weight": self.weight,
            "reason": self.reason,
            "note": self.note,
            "rate_per_gram": self.rate_per_gram,
            "created_by_user_id": self.created_by_user_id,
            "date": to_utc_z(self.occurred_at),
            "timestamp": self.timestamp,
        }
