from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Shop(db.Model):
    """
    Multi-tenant root: every tenant is a Shop.

    All categories, products, stock transactions, metal rates and settings
    carry exactly one shop_id and are never visible outside that shop.
    The super-admin manages Shop rows themselves, not their contents.
    """
    __tablename__ = "shops"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Plain column: users.shop_id already points back here, a second FK would make the pair cyclic.
    owner_id = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship(
        "User",
        primaryjoin="foreign(Shop.owner_id) == User.id",
        viewonly=True,
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r}>"

    def to_dict(self, include_owner: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "owner_id": self.owner_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_owner:
            owner = self.owner
            data["owner"] = (
                {"id": owner.id, "name": owner.name, "email": owner.email} if owner else None
            )
        return data


class ShopSettings(db.Model):
    __tablename__ = "shop_settings"
    __table_args__ = (
        db.UniqueConstraint("shop_id", name="uq_shop_settings_shop"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    shop_name = db.Column(db.String(255), nullable=False, default="JEWELLERY STORE")
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    shop = db.relationship(
        "Shop",
        backref=db.backref("settings", uselist=False, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "shop_id": self.shop_id,
            "shop_name": self.shop_name,
            "updated_at": to_utc_z(self.updated_at),
        }
