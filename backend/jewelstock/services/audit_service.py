# Overview: Append-only audit trail for catalog, rate and shop mutations.

"""
Jewelstock Audit Trail Invariants (authoritative)

- Append-only: no updates/deletes of existing events.
- Events are written inside the same DB transaction as the change they record
  (flush only; the caller commits).
- occurred_at is business time; the row outlives the entity it mentions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..models import AuditEvent
from ..time_utils import utcnow


def record_audit_event(
    session,
    *,
    shop_id: int | None,
    event_type: str,
    entity_type: str,
    entity_id: int | None = None,
    actor_user_id: int | None = None,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
    occurred_at: Optional[datetime] = None,
) -> AuditEvent:
    event = AuditEvent(
        shop_id=shop_id,
        actor_user_id=actor_user_id,
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        note=note,
        payload=payload,
        occurred_at=occurred_at or utcnow(),
    )
    session.add(event)
    session.flush()
    return event


def list_audit_events(
    session,
    *,
    shop_id: int,
    event_type: str | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
    limit: int = 100,
) -> list[dict]:
    query = session.query(AuditEvent).filter(AuditEvent.shop_id == shop_id)
    if event_type:
        query = query.filter(AuditEvent.event_type == event_type)
    if entity_type:
        query = query.filter(AuditEvent.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditEvent.entity_id == entity_id)
    events = query.order_by(AuditEvent.occurred_at.desc(), AuditEvent.id.desc()).limit(limit).all()
    return [e.to_dict() for e in events]
