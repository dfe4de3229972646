from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from jewelstock.extensions import db
from jewelstock.models import MetalRate, Shop, ShopSettings, User
from jewelstock.permissions import Role
from jewelstock.time_utils import utcnow
from jewelstock.validation import ConflictError, ValidationError
from jewelstock.services.audit_service import record_audit_event
from jewelstock.services.concurrency import atomic
from jewelstock.services.user_service import normalize_email


class ShopError(Exception):
    """Raised when shop operations fail."""
    pass


def create_shop(
    name: str,
    owner_name: str,
    owner_email: str,
    *,
    actor_user_id: int | None = None,
) -> dict:
    """
    Create a tenant: the Shop, its SHOP_OWNER user, ShopSettings and a
    zero-rate MetalRate row, all in one transaction.

    Raises ValidationError for blank fields and ConflictError if the owner
    email is already registered.
    """
    name = " ".join((name or "").split())
    owner_name = " ".join((owner_name or "").split())
    email = normalize_email(owner_email)
    if not name:
        raise ValidationError("Shop name is required")
    if not owner_name:
        raise ValidationError("Owner name is required")

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("Email already registered")

    try:
        shop, owner = _insert_shop(name, owner_name, email, actor_user_id)
    except IntegrityError:
        raise ConflictError("Email already registered")

    return {"shop": shop.to_dict(include_owner=True), "owner": owner.to_dict()}


def _insert_shop(name: str, owner_name: str, email: str, actor_user_id: int | None) -> tuple[Shop, User]:
    with atomic(db.session):
        shop = Shop(name=name)
        db.session.add(shop)
        db.session.flush()

        owner = User(
            shop_id=shop.id,
            email=email,
            name=owner_name,
            role=Role.SHOP_OWNER.value,
            is_active=True,
        )
        db.session.add(owner)
        db.session.flush()
        shop.owner_id = owner.id

        now = utcnow()
        db.session.add(ShopSettings(shop_id=shop.id, shop_name=name, updated_at=now))
        db.session.add(MetalRate(shop_id=shop.id, gold_rate=0.0, silver_rate=0.0, updated_at=None))

        record_audit_event(
            db.session,
            shop_id=shop.id,
            actor_user_id=actor_user_id,
            event_type="shop.created",
            entity_type="Shop",
            entity_id=shop.id,
            payload={"name": name, "owner_email": email},
        )
    return shop, owner


def get_shop(shop_id: int) -> dict:
    shop = db.session.query(Shop).filter_by(id=shop_id).first()
    if not shop:
        raise ShopError("Shop not found")
    return shop.to_dict(include_owner=True)


def list_shops() -> list[dict]:
    shops = db.session.query(Shop).order_by(Shop.name.asc(), Shop.id.asc()).all()
    return [s.to_dict(include_owner=True) for s in shops]
