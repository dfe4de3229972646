from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


def normalize_name_key(name: str) -> str:
    """Case-insensitive lookup key for category and sub-category names."""
    return " ".join(name.split()).casefold()


class Category(db.Model):
    """
    Product category with the metal that prices it.

    MULTI-TENANT: scoped by shop_id. Names are unique per shop, case-insensitive
    (enforced through name_key). Deleting a category deletes its sub-categories;
    products referencing it keep their category_id.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "name_key", name="uq_categories_shop_name_key"),
        db.Index("ix_categories_shop_id", "shop_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    name_key = db.Column(db.String(120), nullable=False)

    # One of enums.MetalType
    type = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    subcategories = db.relationship(
        "SubCategory",
        backref="category",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SubCategory.name",
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r} type={self.type} shop_id={self.shop_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "type": self.type,
            "created_at": to_utc_z(self.created_at),
        }


class SubCategory(db.Model):
    __tablename__ = "sub_categories"
    __table_args__ = (
        db.UniqueConstraint("category_id", "name_key", name="uq_sub_categories_category_name_key"),
        db.Index("ix_sub_categories_shop_category", "shop_id", "category_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    name_key = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<SubCategory id={self.id} name={self.name!r} category_id={self.category_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "category_id": self.category_id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }
