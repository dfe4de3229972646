from __future__ import annotations

from ..models import ShopSettings
from ..repository import InventoryRepository
from ..time_utils import utcnow
from ..validation import ValidationError
from .concurrency import atomic

MAX_SHOP_NAME = 255


def _ensure_settings(repo: InventoryRepository, shop_id: int) -> ShopSettings:
    shop = repo.get_shop(shop_id)
    settings = repo.session.query(ShopSettings).filter_by(shop_id=shop_id).first()
    if settings is None:
        settings = ShopSettings(shop_id=shop_id, shop_name=shop.name, updated_at=utcnow())
        repo.session.add(settings)
        repo.session.flush()
    return settings


def get_shop_settings(repo: InventoryRepository, *, shop_id: int) -> dict:
    return _ensure_settings(repo, shop_id).to_dict()


def update_shop_settings(repo: InventoryRepository, *, shop_id: int, shop_name) -> dict:
    name = " ".join(str(shop_name or "").split())
    if not name:
        raise ValidationError("shop_name cannot be blank")
    if len(name) > MAX_SHOP_NAME:
        raise ValidationError(f"shop_name exceeds max length {MAX_SHOP_NAME}")

    with atomic(repo.session):
        settings = _ensure_settings(repo, shop_id)
        settings.shop_name = name
        settings.updated_at = utcnow()
    return settings.to_dict()
