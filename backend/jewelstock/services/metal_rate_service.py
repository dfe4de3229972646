# Overview: Metal Rate Register; current per-gram gold and silver rate of each shop.

"""
One MetalRate row per shop, created with zero rates and no updated_at when
the shop is made, so a shop whose rates were never set reads as stale.

Only the current value is kept. Readers (pricing) always see the latest
committed rate; stock transactions snapshot the rate they were booked at,
and every update leaves an AuditEvent with the previous values.
"""

from __future__ import annotations

from datetime import timedelta

from ..repository import InventoryRepository
from ..validation import ValidationError, coerce_float, enforce_rules_metal_rate
from ..time_utils import utcnow
from .audit_service import record_audit_event
from .concurrency import atomic
from .pricing_service import is_rate_stale


def get_metal_rate(repo: InventoryRepository, *, shop_id: int, max_age: timedelta | None = None) -> dict:
    rate = repo.get_metal_rate(shop_id)
    data = rate.to_dict()
    data["is_stale"] = is_rate_stale(rate, max_age=max_age)
    return data


def update_metal_rates(
    repo: InventoryRepository,
    *,
    shop_id: int,
    gold_rate=None,
    silver_rate=None,
    actor_user_id: int | None = None,
) -> dict:
    """
    Set the shop's gold and/or silver rate (currency per gram) and stamp updated_at.

    Omitted rates keep their value. Raises ValidationError for negative or
    non-numeric input, NotFound for an unknown shop.
    """
    patch = {}
    if gold_rate is not None:
        patch["gold_rate"] = coerce_float("gold_rate", gold_rate)
    if silver_rate is not None:
        patch["silver_rate"] = coerce_float("silver_rate", silver_rate)
    if not patch:
        raise ValidationError("gold_rate or silver_rate is required")
    enforce_rules_metal_rate(patch)

    with atomic(repo.session):
        rate = repo.get_metal_rate(shop_id)
        previous = {"gold_rate": rate.gold_rate, "silver_rate": rate.silver_rate}
        for key, value in patch.items():
            setattr(rate, key, value)
        rate.updated_at = utcnow()
        repo.session.flush()

        record_audit_event(
            repo.session,
            shop_id=shop_id,
            actor_user_id=actor_user_id,
            event_type="metal_rate.updated",
            entity_type="MetalRate",
            entity_id=rate.id,
            payload={"previous": previous, "current": patch},
        )

    data = rate.to_dict()
    data["is_stale"] = False
    return data
