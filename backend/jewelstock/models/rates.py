from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class MetalRate(db.Model):
    """
    Current per-gram gold and silver rate of a shop (one row per shop).

    Only the current value is kept; stock transactions snapshot the rate
    they were booked at.
    """
    __tablename__ = "metal_rates"
    __table_args__ = (
        db.UniqueConstraint("shop_id", name="uq_metal_rates_shop"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    gold_rate = db.Column(db.Float, nullable=False, default=0.0)
    silver_rate = db.Column(db.Float, nullable=False, default=0.0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)  # None until a rate is first set

    def __repr__(self) -> str:
        return f"<MetalRate shop_id={self.shop_id} gold={self.gold_rate} silver={self.silver_rate}>"

    def to_dict(self) -> dict:
        return {
            "shop_id": self.shop_id,
            "gold_rate": self.gold_rate,
            "silver_rate": self.silver_rate,
            "updated_at": to_utc_z(self.updated_at),
        }
