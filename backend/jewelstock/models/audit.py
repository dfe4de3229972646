from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class AuditEvent(db.Model):
    """
    Append-only audit trail for catalog, rate and shop mutations.

    Written in the same DB transaction as the change it records. Outlives
    the entities it mentions (no FK to products), so deleting a product keeps
    a record of what was removed.
    """
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_shop_occurred", "shop_id", "occurred_at"),
        db.Index("ix_audit_events_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, nullable=True, index=True)
    actor_user_id = db.Column(db.Integer, nullable=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # e.g. "product.deleted"
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.Integer, nullable=True)

    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.JSON, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "actor_user_id": self.actor_user_id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "note": self.note,
            "payload": self.payload,
            "occurred_at": to_utc_z(self.occurred_at),
        }
